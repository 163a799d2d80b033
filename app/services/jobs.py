# app/services/jobs.py
import logging
import threading
import time
import uuid
from datetime import datetime, timezone
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import Settings
from app.errors import ConfigError, SyncCommitFailed, SyncError
from app.services.aggregator import SyncResult, run_sync_cycle
from app.services.sessions import SessionSource

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]

# One cycle at a time per process; overlapping ticks are skipped, not queued.
_cycle_lock = threading.Lock()


def run_sync_job(
    source: SessionSource,
    session_factory: SessionFactory,
    settings: Settings,
    job_id: str | None = None,
    lock: threading.Lock = _cycle_lock,
) -> SyncResult:
    job_id = job_id or str(uuid.uuid4())
    started_at = datetime.now(timezone.utc)

    if not lock.acquire(blocking=False):
        logger.warning({
            "event": "sync_skipped",
            "jobId": job_id,
            "reason": "previous cycle still running",
        })
        return SyncResult(status="skipped", started_at=started_at)

    try:
        return _run_locked(source, session_factory, settings, job_id, started_at)
    finally:
        lock.release()


def _run_locked(
    source: SessionSource,
    session_factory: SessionFactory,
    settings: Settings,
    job_id: str,
    started_at: datetime,
) -> SyncResult:
    start = time.time()

    logger.info({
        "event": "sync_started",
        "jobId": job_id,
        "startedAt": started_at.isoformat(),
    })

    db: Session | None = None
    try:
        user_id = settings.require_user_id()
        db = session_factory()
        result = run_sync_cycle(
            db, source, user_id, started_at, settings.sync_name, settings.route_by_user_id
        )

        logger.info({
            "event": "sync_watermark",
            "jobId": job_id,
            "watermark": result.watermark.isoformat() if result.watermark else None,
        })

        if result.status == "noop":
            logger.info({
                "event": "sync_noop",
                "jobId": job_id,
                "message": "no new sessions to sync",
            })
            return result

        try:
            db.commit()
        except SQLAlchemyError as exc:
            raise SyncCommitFailed(f"Commit failed: {exc}") from exc

        logger.info({
            "event": "sync_completed",
            "jobId": job_id,
            "sessions": result.sessions,
            "deltas": {user: delta.as_log() for user, delta in result.deltas.items()},
            "newWatermark": started_at.isoformat(),
            "durationSeconds": time.time() - start,
        })
        return result
    except (SyncError, ConfigError) as e:
        _rollback(db, job_id)
        logger.error({
            "event": "sync_failed",
            "jobId": job_id,
            "category": e.category,
            "error": str(e),
        })
        return SyncResult(status="failed", started_at=started_at, error=str(e))
    except Exception as e:
        _rollback(db, job_id)
        logger.exception({
            "event": "sync_failed",
            "jobId": job_id,
            "category": "unexpected",
            "error": str(e),
        })
        return SyncResult(status="failed", started_at=started_at, error=str(e))
    finally:
        if db is not None:
            db.close()


def _rollback(db: Session | None, job_id: str) -> None:
    if db is None:
        return
    try:
        db.rollback()
    except SQLAlchemyError as exc:
        logger.error({
            "event": "sync_rollback_failed",
            "jobId": job_id,
            "error": str(exc),
        })
