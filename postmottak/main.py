"""
FastAPI application for the post-room archive robot.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from postmottak import __version__
from postmottak.config import settings
from postmottak.core.logging import configure_logging, get_logger
from postmottak.routers.archive import router as archive_router
from postmottak.scheduler import start_scheduler, stop_scheduler

log = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    # Startup
    configure_logging(settings.log_level, settings.json_logs, settings.app_name, settings.app_version)
    log.info("application_starting", version=__version__)

    if settings.scheduler_enabled:
        start_scheduler()
    else:
        log.info("scheduler_disabled", reason="use GET /ArchiveEmails to run manually")

    yield

    # Shutdown
    if settings.scheduler_enabled:
        stop_scheduler()
    log.info("application_stopped")


app = FastAPI(
    title="Postmottak arkivering",
    description="Classifies and archives e-mails arriving in the post-room mailbox",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(archive_router)


@app.exception_handler(Exception)
async def unhandled_exception(request: Request, exc: Exception) -> JSONResponse:
    log.error("request_failed", path=request.url.path, error=str(exc), exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"message": "Internal server error", "exceptionMessage": str(exc)},
    )


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}


# Run with: uvicorn postmottak.main:app --host 0.0.0.0 --port 8000
