"""
Main module for the FastAPI application.
"""
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from social_signals.__version__ import __version__
from social_signals.api.v1.posts import router as posts_router
from social_signals.api.v1.profiles import router as profiles_router
from social_signals.api.v1.scrape import router as scrape_router
from social_signals.api.v1.webhooks import router as webhooks_router
from social_signals.core.config import settings
from social_signals.core.version import get_version_info
from social_signals.db.session import SessionLocal, engine
from social_signals.services.progress import SQLProgressStore
from social_signals.services.scrape_jobs import ScrapeWorkflows

# Setup logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# Lifespan event handler
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan event handler - runs on startup and shutdown.

    The schema is managed by Alembic (`alembic upgrade head` from backend/).
    """
    app.state.workflows = ScrapeWorkflows(SessionLocal, SQLProgressStore(SessionLocal))

    port = int(os.getenv("PORT", settings.API_PORT))
    logger.info(f"Social Signals API {__version__} listening on {settings.API_HOST}:{port}")

    yield

    # Shutdown
    await engine.dispose()
    logger.info("Social Signals API shutting down")


app = FastAPI(
    title="Social Signals API",
    description="Engagement analytics for tracked LinkedIn posts",
    version=__version__,
    lifespan=lifespan,
)

# Configure CORS
if settings.CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

# Include routers
app.include_router(posts_router, prefix="/api/v1")
app.include_router(scrape_router, prefix="/api/v1")
app.include_router(profiles_router, prefix="/api/v1")
app.include_router(webhooks_router, prefix="/api/v1")


@app.get("/")
async def root():
    """
    Root endpoint for health checks.
    """
    return {"message": "Social Signals API is running"}


@app.get("/health")
async def health():
    """
    Health check endpoint.
    """
    return {"status": "ok"}


@app.get("/version", tags=["health"])
async def get_version():
    """
    Get API version and feature flags.
    """
    return get_version_info()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=settings.API_HOST, port=int(os.getenv("PORT", settings.API_PORT)))
