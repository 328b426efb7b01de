"""
API error taxonomy and the handlers that turn errors into `{code, message}` responses.

Services raise the subclasses below; the handlers registered in `main.py`
translate them into JSON. Unexpected exceptions become a generic 500 so no
stack trace or internal identifier reaches the client.
"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from music_tutoring.logger import logger

DEFAULT_CODES = {
    400: 'BAD_REQUEST',
    401: 'UNAUTHORIZED',
    403: 'FORBIDDEN',
    404: 'NOT_FOUND',
    405: 'METHOD_NOT_ALLOWED',
    409: 'CONFLICT',
    422: 'UNPROCESSABLE_ENTITY',
    429: 'TOO_MANY_REQUESTS',
    500: 'INTERNAL_ERROR',
}

def default_code(status_code: int) -> str:
    return DEFAULT_CODES.get(status_code, 'ERROR')

class ApiError(Exception):
    """Base error carrying an HTTP status code and a machine readable code."""
    status_code = 500
    code = 'INTERNAL_ERROR'

    def __init__(self, message: str, code: str = None, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.code = code or type(self).code

class ValidationError(ApiError):
    status_code = 400
    code = 'VALIDATION_ERROR'

class UnauthorizedError(ApiError):
    status_code = 401
    code = 'UNAUTHORIZED'

class ForbiddenError(ApiError):
    status_code = 403
    code = 'FORBIDDEN'

class NotFoundError(ApiError):
    status_code = 404
    code = 'NOT_FOUND'

class ConflictError(ApiError):
    status_code = 409
    code = 'CONFLICT'

class InternalError(ApiError):
    status_code = 500
    code = 'INTERNAL_ERROR'

def error_body(code: str, message: str) -> dict:
    return {"code": code, "message": message}

def _format_validation_errors(exc: RequestValidationError) -> str:
    messages = []
    for error in exc.errors():
        # Drop the "body"/"query" prefix so clients see the field name only
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        path = ".".join(location)
        messages.append(f"{path}: {error['msg']}" if path else error["msg"])
    return ", ".join(messages)

async def api_error_handler(request: Request, exc: ApiError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.code, exc.message))

async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content=error_body('VALIDATION_ERROR', _format_validation_errors(exc)))

async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(default_code(exc.status_code), str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )

async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error processing {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content=error_body('INTERNAL_ERROR', 'Internal Server Error'))

def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
