# app/main.py

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from functools import partial
import uuid

from fastapi import FastAPI, BackgroundTasks, HTTPException, Depends, Request
from sqlalchemy.orm import Session

from app.config import get_settings, Settings
from app.database import get_db, SessionLocal
from app.logging_config import configure_logging
from app.scheduler import SyncScheduler
from app.schemas import HealthResponse, SyncJobResponse, WatermarkResponse, UserStatsResponse
from app.services.jobs import run_sync_job
from app.services.sessions import FirestoreSessionSource, SessionSource, build_firestore_client
from app.services.stats import get_user_stats
from app.services.watermark import get_watermark


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(settings.log_level)

    client = build_firestore_client(settings.firebase_service_account)
    source = FirestoreSessionSource(client, settings.firestore_collection)
    app.state.session_source = source

    scheduler = None
    if settings.scheduler_enabled:
        scheduler = SyncScheduler(
            partial(run_sync_job, source, SessionLocal, settings),
            settings.sync_interval_seconds,
        )
        scheduler.start()
    try:
        yield
    finally:
        if scheduler is not None:
            scheduler.stop(timeout=5)
        client.close()


app = FastAPI(lifespan=lifespan)


def get_session_factory():
    return SessionLocal


def get_session_source(request: Request) -> SessionSource:
    source = getattr(request.app.state, "session_source", None)
    if source is None:
        raise HTTPException(status_code=503, detail="Session source is not configured")
    return source


@app.get("/health", response_model=HealthResponse)
def health():
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@app.post("/sync", response_model=SyncJobResponse, status_code=202)
def trigger_sync(
    background_tasks: BackgroundTasks,
    source: SessionSource = Depends(get_session_source),
    session_factory=Depends(get_session_factory),
    settings: Settings = Depends(get_settings),
):
    job_id = str(uuid.uuid4())
    background_tasks.add_task(run_sync_job, source, session_factory, settings, job_id)

    return {
        "jobId": job_id,
        "status": "started",
    }


@app.get("/sync/watermark", response_model=WatermarkResponse)
def get_sync_watermark(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    wm = get_watermark(db, settings.sync_name)
    if wm is None:
        raise HTTPException(status_code=404, detail="No sync has completed yet")

    return {
        "name": wm.name,
        "lastSyncTime": wm.last_sync_time.isoformat() if wm.last_sync_time else None,
    }


@app.get("/stats", response_model=UserStatsResponse)
def get_stats(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    if not settings.user_id:
        raise HTTPException(status_code=503, detail="USER_ID is not configured")
    stats = get_user_stats(db, settings.user_id)
    if stats is None:
        raise HTTPException(status_code=404, detail="No stats row for the configured user")

    return {
        "userId": stats.user_id,
        "resizeCount": stats.resize_count,
        "cropHeadCount": stats.crop_head_count,
        "aiCount": stats.ai_count,
        "allProcessingCount": stats.all_processing_count,
        "processedImages": stats.processed_images,
        "successCount": stats.success_count,
        "failureCount": stats.failure_count,
        "updatedAt": stats.updated_at.isoformat(),
    }
