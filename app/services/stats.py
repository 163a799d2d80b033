# app/services/stats.py
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.models import UserStats

# Columns the sync job is allowed to write.
WRITABLE_FIELDS = frozenset({
    "resize_count",
    "crop_head_count",
    "ai_count",
    "all_processing_count",
    "processed_images",
    "success_count",
    "updated_at",
})


def get_user_stats(db: Session, user_id: str) -> UserStats | None:
    stmt = select(UserStats).where(UserStats.user_id == user_id)
    return db.execute(stmt).scalar_one_or_none()


def update_user_stats(db: Session, user_id: str, fields: dict[str, Any]) -> int:
    """
    Apply a single UPDATE to the row of `user_id`.
    Returns the number of rows matched.
    """
    unknown = set(fields) - WRITABLE_FIELDS
    if unknown:
        raise ValueError(f"Refusing to write columns: {sorted(unknown)}")

    stmt = (
        update(UserStats)
        .where(UserStats.user_id == user_id)
        .values(**fields)
        .execution_options(synchronize_session="fetch")
    )
    result = db.execute(stmt)
    return result.rowcount
