"""
Maps service-layer exceptions onto HTTP responses.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from structlog import get_logger

from xlanalytics.core.errors import (
    AdminRemovalError,
    GroupExistsError,
    MembershipValidationError,
    NotAuthorized,
    NotFound,
    StorageError,
)
from xlanalytics.core.tokens import KeyDecodeError, KeyExpiredError


def _handler(status_code: int, generic_detail: str | None = None):
    async def handler(request: Request, exc: Exception) -> JSONResponse:
        log = get_logger()
        await log.ainfo(
            "api.error",
            path=request.url.path,
            error_type=type(exc).__name__,
            error=str(exc),
            status_code=status_code,
        )
        return JSONResponse(
            status_code=status_code,
            content={"detail": generic_detail or str(exc)},
        )

    return handler


def add_exception_handlers(app: FastAPI) -> FastAPI:
    app.add_exception_handler(
        KeyDecodeError, _handler(status.HTTP_401_UNAUTHORIZED)
    )
    app.add_exception_handler(
        KeyExpiredError,
        _handler(status.HTTP_401_UNAUTHORIZED, "Identity token has expired"),
    )
    app.add_exception_handler(
        MembershipValidationError, _handler(status.HTTP_400_BAD_REQUEST)
    )
    app.add_exception_handler(NotAuthorized, _handler(status.HTTP_403_FORBIDDEN))
    app.add_exception_handler(NotFound, _handler(status.HTTP_404_NOT_FOUND))
    app.add_exception_handler(GroupExistsError, _handler(status.HTTP_409_CONFLICT))
    app.add_exception_handler(AdminRemovalError, _handler(status.HTTP_409_CONFLICT))
    app.add_exception_handler(
        StorageError,
        _handler(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "The request could not be completed, please try again",
        ),
    )
    return app
