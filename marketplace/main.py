from contextlib import asynccontextmanager
from fastapi import FastAPI

from marketplace.core.config import settings
from marketplace.core.exception_handler import register_exception_handlers
from marketplace.core.logging_config import setup_logging
from marketplace.core.middleware import register_middlewares
from marketplace.db.session import db

from marketplace.db import base  # noqa: F401

# Routers
from marketplace.api.v1.endpoints import ad_review, follow


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Handles application startup and shutdown events.
    """
    await db.connect()

    yield

    await db.disconnect()


def create_application() -> FastAPI:
    """Create and configure the FastAPI application."""
    setup_logging()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        description=settings.DESCRIPTION,
        lifespan=lifespan,
    )

    register_middlewares(app)
    register_exception_handlers(app)

    app.include_router(follow.router)
    app.include_router(ad_review.router)

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint."""
        return {"success": True, "data": {"status": "healthy"}, "message": None}

    return app


app = create_application()
