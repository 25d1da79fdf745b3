"""Main FastAPI application."""
from fastapi import FastAPI
from contextlib import asynccontextmanager
from sqlalchemy.engine import make_url

from abexp.config import get_settings
from abexp.middleware.logging import LoggingMiddleware, configure_logging, get_logger
from abexp.api import experiments, health, statistics
from abexp.api.errors import register_exception_handlers
from abexp.database import init_db

settings = get_settings()
configure_logging(settings.log_level)
logger = get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan - startup and shutdown."""
    init_db()
    logger.info("database_ready", database_url=_redacted_url(settings.database_url))

    yield  # App runs here

    logger.info("shutting_down", service=settings.app_name)


def _redacted_url(url: str) -> str:
    """Hide credentials before logging a database URL."""
    return make_url(url).render_as_string(hide_password=True)


app = FastAPI(
    title="abexp",
    description="A/B experiments with deterministic device bucketing",
    version="0.1.0",
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan
)

# Logging middleware
app.add_middleware(LoggingMiddleware)

register_exception_handlers(app)

# Include routers
app.include_router(health.router, tags=["health"])
app.include_router(experiments.router, prefix="/api", tags=["experiments"])
app.include_router(statistics.router, prefix="/api", tags=["statistics"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": settings.app_name,
        "version": "0.1.0",
        "docs": "/docs" if settings.debug else "disabled",
        "endpoints": {
            "health": "/health",
            "experiments": "GET|POST /api/experiments",
            "finish": "PATCH /api/experiments/{id}",
            "statistics": "GET /api/statistics"
        }
    }


def run():
    """Serve the application with uvicorn."""
    import uvicorn

    uvicorn.run(
        "abexp.main:app",
        host=settings.server_host,
        port=settings.server_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
