"""
FastAPI app entrypoint.

Notification fan-out and delivery engine: inbox, preferences, digest preview, delivery processing.
"""
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from apscheduler.schedulers.background import BackgroundScheduler
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load .env from backend/ before any app code
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from app.api.routes import notifications
from app.config import settings
from app.scheduler.delivery_job import get_outbox, run_delivery_sweep_job

logger = logging.getLogger(__name__)

DELIVERY_SWEEP_JOB_ID = "notification_delivery_sweep"

# Scheduler: sweep pending email deliveries (retries, batches the post-emit trigger missed)
_scheduler = BackgroundScheduler()


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.scheduler_enabled:
        _scheduler.add_job(
            run_delivery_sweep_job,
            "interval",
            seconds=settings.delivery_poll_seconds,
            id=DELIVERY_SWEEP_JOB_ID,
            max_instances=1,
            coalesce=True,
        )
        _scheduler.start()
        app.state.scheduler = _scheduler
        logger.info("Delivery sweep scheduled every %ss", settings.delivery_poll_seconds)
    yield
    if _scheduler.running:
        _scheduler.shutdown(wait=False)
    get_outbox().shutdown(wait=False)


app = FastAPI(title="Notifications", version="0.1.0", lifespan=lifespan)

# CORS: dev origins + optional CORS_ORIGINS env (comma-separated) for production frontend
_cors_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
_cors_extra = os.getenv("CORS_ORIGINS", "")
if _cors_extra:
    _cors_origins.extend(o.strip() for o in _cors_extra.split(",") if o.strip())
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(notifications.router, tags=["notifications"])


@app.get("/", include_in_schema=False)
def root():
    """Root: point to API docs and health."""
    return {"message": "Notifications API", "docs": "/docs", "health": "/health"}


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
