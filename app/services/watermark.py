# app/services/watermark.py
import logging
from datetime import datetime, timezone
from sqlalchemy.orm import Session
from sqlalchemy import select
from app.models import SyncMetadata

logger = logging.getLogger(__name__)

# Earliest representable instant, so a session stamped at the Unix epoch is still "after" it.
BEGINNING_OF_TIME = datetime.min.replace(tzinfo=timezone.utc)


def as_utc(value: datetime) -> datetime:
    # Some backends (SQLite) hand back naive datetimes for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def get_watermark(db: Session, name: str) -> SyncMetadata | None:
    stmt = select(SyncMetadata).where(SyncMetadata.name == name)
    return db.execute(stmt).scalar_one_or_none()


def effective_watermark(wm: SyncMetadata | None) -> datetime:
    """Lower bound for the next fetch; the beginning of time when nothing was synced yet."""
    if wm is None or wm.last_sync_time is None:
        return BEGINNING_OF_TIME
    return as_utc(wm.last_sync_time)


def upsert_watermark(db: Session, name: str, last_sync_time: datetime) -> datetime:
    """
    Create or advance the watermark `name`.
    A value older than the stored one is ignored; the watermark never moves back.
    Returns the watermark now stored.
    """
    wm = get_watermark(db, name)
    now = datetime.now(timezone.utc)
    target = as_utc(last_sync_time)

    if wm is None:
        wm = SyncMetadata(
            name=name,
            last_sync_time=target,
            updated_at=now,
        )
        db.add(wm)
    elif wm.last_sync_time is not None and as_utc(wm.last_sync_time) > target:
        logger.warning({
            "event": "watermark_not_moved_back",
            "name": name,
            "stored": as_utc(wm.last_sync_time).isoformat(),
            "requested": target.isoformat(),
        })
        return as_utc(wm.last_sync_time)
    else:
        wm.last_sync_time = target
        wm.updated_at = now

    db.flush()
    return target
