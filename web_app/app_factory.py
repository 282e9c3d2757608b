"""FastAPI application factory."""

from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from linkcore.exceptions import (
    DuplicateEmailError,
    ForbiddenError,
    GuestLinkExistsError,
    InvalidCredentialsError,
    InvalidFormatError,
    InvalidInputError,
    LinkcoreError,
    NotFoundError,
    SlugTakenError,
)

from .api import api_router
from .web import web_router
from .middleware.logging import LoggingMiddleware
from .services import Services


ERROR_STATUS = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    SlugTakenError: status.HTTP_409_CONFLICT,
    DuplicateEmailError: status.HTTP_409_CONFLICT,
    GuestLinkExistsError: status.HTTP_409_CONFLICT,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
    InvalidCredentialsError: status.HTTP_401_UNAUTHORIZED,
    InvalidFormatError: status.HTTP_400_BAD_REQUEST,
    InvalidInputError: status.HTTP_400_BAD_REQUEST,
}


async def linkcore_error_handler(request: Request, exc: LinkcoreError) -> JSONResponse:
    """Map registry errors to HTTP responses."""
    status_code = ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    body = exc.to_dict()
    body["detail"] = exc.message
    return JSONResponse(status_code=status_code, content=body)


def create_app(services: Optional[Services], config) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        services: Wired services (may be set later in the lifespan)
        config: Configuration instance

    Returns:
        Configured FastAPI app
    """
    app = FastAPI(
        title="Link Registry",
        description="Short links with per-day click accounting",
        version="1.0.0",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    # Store instances in app state for access in routes
    app.state.services = services
    app.state.config = config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware)

    app.add_exception_handler(LinkcoreError, linkcore_error_handler)

    app.include_router(api_router, prefix="/api")
    app.include_router(web_router, tags=["Redirect"])

    return app
