"""Domain error taxonomy and its HTTP translation.

Services raise these; the handlers registered by register_exception_handlers()
turn them into JSON responses. The detail string is the only thing a client
ever sees — internal causes stay in the server log.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from muster.auth.cookies import SessionCookies

logger = structlog.get_logger()


class MusterError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = 500
    default_detail = "Internal server error"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationError(MusterError):
    """Malformed or missing input, password mismatch, disabled feature."""

    status_code = 400
    default_detail = "Invalid request"


class AuthenticationError(MusterError):
    """Missing or invalid credential.

    clear_session asks the handler to expire both session cookies on the
    error response (used after a corrupted or orphaned session cookie).
    """

    status_code = 401
    default_detail = "Authentication required"

    def __init__(self, detail: str | None = None, *, clear_session: bool = False):
        super().__init__(detail)
        self.clear_session = clear_session


class AuthorizationError(MusterError):
    """Authenticated, but the role or ownership check failed."""

    status_code = 403
    default_detail = "Not permitted"


class NotFoundError(MusterError):
    status_code = 404
    default_detail = "Not found"


class InternalError(MusterError):
    """Store, codec or render failure. Detail is never sent to the client."""

    status_code = 500


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the MusterError → JSON translation to the app."""

    @app.exception_handler(MusterError)
    async def handle_muster_error(request: Request, exc: MusterError):
        if isinstance(exc, InternalError):
            logger.error("request.internal_error", path=request.url.path, exc_info=exc)
            detail = InternalError.default_detail
        else:
            detail = exc.detail

        response = JSONResponse(status_code=exc.status_code, content={"detail": detail})
        if isinstance(exc, AuthenticationError) and exc.clear_session:
            SessionCookies(request.app.state.settings).clear(response)
        return response

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception("request.unhandled_error", path=request.url.path)
        return JSONResponse(
            status_code=500, content={"detail": InternalError.default_detail}
        )
