from contextlib import asynccontextmanager

from fastapi import FastAPI

from open_sen.api import router
from open_sen.config import settings
from open_sen.utils.logging import get_logger, setup_logging

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # the daily collection job stays off under APP_ENV=test
    scheduler = None
    if settings.app_env != "test":
        from open_sen.scheduler import create_scheduler

        scheduler = create_scheduler()
        scheduler.start()
        logger.info("scheduler_started", jobs=len(scheduler.get_jobs()))

    yield

    if scheduler is not None:
        scheduler.shutdown(wait=False)
        logger.info("scheduler_stopped")


app = FastAPI(
    title="open-sen",
    description=(
        "Tracks promotional posts for software projects and records daily "
        "engagement and GitHub repository statistics."
    ),
    version="1.0.0",
    lifespan=lifespan,
)
app.include_router(router)


@app.get("/health", tags=["Health"], openapi_extra={"security": []})
async def health():
    """Liveness check; does not touch the store or any platform."""
    return {
        "status": "ok",
        "service": "open-sen",
        "environment": settings.app_env,
    }
