import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from jobrelay.auth import WebhookAuthenticator
from jobrelay.config import Settings
from jobrelay.core.config import STORAGE_CONNECT_BASE_DELAY
from jobrelay.core.errors import JobServiceError
from jobrelay.core.logging import setup_logging
from jobrelay.job_manager import JobManager
from jobrelay.job_store import JobStore, create_job_store
from jobrelay.routes import jobs
from jobrelay.scheduler import AsyncioScheduler, Scheduler
from jobrelay.worker import WorkerSimulator

logger = logging.getLogger(__name__)


async def connect_with_retry(store: JobStore, retries: int, max_delay: float) -> None:
    """Connect the store, backing off exponentially between failed attempts."""
    loop = asyncio.get_running_loop()
    for attempt in range(1, retries + 1):
        try:
            logger.info("Connecting to job storage...")
            await loop.run_in_executor(None, store.connect)
            logger.info("Connected to job storage")
            return
        except Exception as e:
            logger.error("Storage connection attempt %d/%d failed: %s", attempt, retries, e)
            if attempt == retries:
                raise
            delay = min(STORAGE_CONNECT_BASE_DELAY * 2 ** (attempt - 1), max_delay)
            logger.info("Retrying in %.1fs...", delay)
            await asyncio.sleep(delay)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[JobStore] = None,
    scheduler: Optional[Scheduler] = None,
) -> FastAPI:
    """Build the application and wire its components from one Settings instance."""
    settings = settings or Settings()
    setup_logging(settings.LOG_LEVEL, settings.LOG_FILE_PATH)

    store = store or create_job_store(settings.DATABASE_URL)
    scheduler = scheduler or AsyncioScheduler()
    worker = None
    if settings.SIMULATE_WORKER:
        worker = WorkerSimulator(
            settings.CALLBACK_BASE_URL,
            settings.WEBHOOK_SECRET,
            timeout=settings.CALLBACK_TIMEOUT_SECONDS,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await connect_with_retry(store, settings.STORAGE_CONNECT_RETRIES, settings.STORAGE_CONNECT_MAX_DELAY)
        yield
        await scheduler.shutdown()
        store.close()

    app = FastAPI(title="jobrelay", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.scheduler = scheduler
    app.state.worker = worker
    app.state.authenticator = WebhookAuthenticator(settings.WEBHOOK_SECRET)
    app.state.job_manager = JobManager(
        store,
        scheduler=scheduler,
        worker=worker,
        completion_delay=settings.CALLBACK_DELAY_SECONDS,
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(JobServiceError)
    async def job_service_error_handler(request: Request, exc: JobServiceError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        if any(err.get("type") == "json_invalid" for err in errors):
            return JSONResponse(status_code=400, content={"error": "Invalid request: body must be valid JSON"})
        fields = ", ".join(".".join(str(p) for p in err["loc"] if p != "body") or "body" for err in errors)
        return JSONResponse(status_code=400, content={"error": f"Invalid request: {fields}"})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "ok"}

    app.include_router(jobs.router)
    return app


app = create_app()
