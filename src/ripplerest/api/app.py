"""FastAPI application factory."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ripplerest import __version__
from ripplerest.config import get_settings
from ripplerest.remote.factory import close_remote


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    yield
    # Shutdown
    await close_remote()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="ripplerest API",
        description="Trust line queries and TrustSet submission",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register routes
    from ripplerest.api.routes import health, trustlines

    app.include_router(health.router, tags=["Health"])
    app.include_router(trustlines.router, tags=["Trust Lines"])

    return app


# Default app instance
app = create_app()
