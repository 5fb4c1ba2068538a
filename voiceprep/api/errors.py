"""
Error responses for the API.

Every failure is returned as {"success": false, "error": "..."} with a
non-2xx status code.
"""

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from voiceprep.core.exceptions import (
    ExternalServiceError,
    ExternalTimeoutError,
    InputValidationError,
    StateConflictError,
    TranscriptionError,
    TranscriptionErrorCode,
    VoicePrepError,
)

logger = logging.getLogger(__name__)


TRANSCRIPTION_STATUS_CODES = {
    TranscriptionErrorCode.EMPTY_AUDIO: 400,
    TranscriptionErrorCode.UNSUPPORTED_LANGUAGE: 400,
    TranscriptionErrorCode.PAYLOAD_TOO_LARGE: 413,
    TranscriptionErrorCode.UNSUPPORTED_FORMAT: 415,
    TranscriptionErrorCode.EMPTY_RESULT: 422,
    TranscriptionErrorCode.TIMEOUT: 504,
    TranscriptionErrorCode.TRANSPORT: 502,
}


def status_code_for(error: VoicePrepError) -> int:
    """HTTP status code for a domain error."""
    if isinstance(error, TranscriptionError):
        return TRANSCRIPTION_STATUS_CODES[error.code]
    if isinstance(error, InputValidationError):
        return 400
    if isinstance(error, StateConflictError):
        return 409
    if isinstance(error, ExternalTimeoutError):
        return 504
    if isinstance(error, ExternalServiceError):
        return 502
    return 500


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def register_exception_handlers(app: FastAPI) -> None:
    """Install handlers that render every error in the common envelope."""

    @app.exception_handler(VoicePrepError)
    async def handle_domain_error(request: Request, exc: VoicePrepError) -> JSONResponse:
        status_code = status_code_for(exc)
        if status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return error_response(status_code, exc.message)

    @app.exception_handler(HTTPException)
    async def handle_http_error(request: Request, exc: HTTPException) -> JSONResponse:
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
        return error_response(400, message)
