# app/services/aggregator.py

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.errors import (
    AggregateFetchFailed,
    AggregateWriteFailed,
    MetadataReadFailed,
    MetadataWriteFailed,
    SourceUnavailable,
    SyncError,
)
from app.models import UserStats
from app.schemas import SessionRecord
from app.services.sessions import SessionSource
from app.services.stats import get_user_stats, update_user_stats
from app.services.watermark import as_utc, effective_watermark, get_watermark, upsert_watermark


@dataclass(frozen=True)
class StatsDelta:
    resize: int = 0
    crop_head: int = 0
    remove_bg: int = 0
    images: int = 0

    @classmethod
    def from_session(cls, record: SessionRecord) -> "StatsDelta":
        return cls(
            resize=record.treatments.resize,
            crop_head=record.treatments.crop_mouth,
            remove_bg=record.treatments.remove_bg,
            images=record.total_images,
        )

    def __add__(self, other: "StatsDelta") -> "StatsDelta":
        return StatsDelta(
            resize=self.resize + other.resize,
            crop_head=self.crop_head + other.crop_head,
            remove_bg=self.remove_bg + other.remove_bg,
            images=self.images + other.images,
        )

    def as_log(self) -> dict:
        return {
            "resize": self.resize,
            "crop_head": self.crop_head,
            "remove_bg": self.remove_bg,
            "total_images": self.images,
        }


@dataclass
class SyncResult:
    status: str  # synced | noop | skipped | failed
    started_at: datetime
    watermark: datetime | None = None
    sessions: int = 0
    deltas: dict[str, StatsDelta] = field(default_factory=dict)
    error: str | None = None


def fold_sessions(
    records: Iterable[SessionRecord],
    default_user_id: str,
    route_by_user_id: bool = False,
) -> dict[str, StatsDelta]:
    """
    Sum session counters per target user.
    Every session is credited to `default_user_id` unless `route_by_user_id`
    is set, in which case a session carrying a user_id goes to that user.
    """
    deltas: dict[str, StatsDelta] = {}
    for record in records:
        user_id = default_user_id
        if route_by_user_id and record.user_id:
            user_id = record.user_id
        deltas[user_id] = deltas.get(user_id, StatsDelta()) + StatsDelta.from_session(record)
    return deltas


def apply_delta(stats: UserStats, delta: StatsDelta, now: datetime) -> dict:
    """New column values for `stats` after absorbing `delta`. failure_count is left out."""
    return {
        "resize_count": stats.resize_count + delta.resize,
        "crop_head_count": stats.crop_head_count + delta.crop_head,
        "ai_count": stats.ai_count + delta.remove_bg,
        "all_processing_count": stats.all_processing_count + delta.images,
        "processed_images": stats.processed_images + delta.images,
        "success_count": stats.success_count + delta.images,
        "updated_at": now,
    }


def run_sync_cycle(
    db: Session,
    source: SessionSource,
    default_user_id: str,
    started_at: datetime,
    sync_name: str = "firebase_sync",
    route_by_user_id: bool = False,
) -> SyncResult:
    """
    One incremental pass:
    - Read the watermark (beginning of time if none).
    - Fetch sessions with timestamp > watermark; stop with no writes if there are none.
    - Fold counters per user, read each aggregate row, write the sums back.
    - Move the watermark to `started_at`.
    Writes are flushed, not committed; the caller commits both the aggregate
    update and the watermark together or rolls both back.
    """
    try:
        watermark = effective_watermark(get_watermark(db, sync_name))
    except SQLAlchemyError as exc:
        raise MetadataReadFailed(f"Could not read watermark {sync_name!r}: {exc}") from exc

    try:
        records = source.query_sessions_after(watermark)
    except SyncError:
        raise
    except Exception as exc:
        raise SourceUnavailable(f"Session query failed: {exc}") from exc

    # Exclusive lower bound, whatever the source returned.
    records = [r for r in records if as_utc(r.timestamp) > watermark]
    if not records:
        return SyncResult(status="noop", started_at=started_at, watermark=watermark)

    deltas = fold_sessions(records, default_user_id, route_by_user_id)

    current: dict[str, UserStats] = {}
    for user_id in sorted(deltas):
        try:
            stats = get_user_stats(db, user_id)
        except SQLAlchemyError as exc:
            raise AggregateFetchFailed(f"Could not read stats for user {user_id}: {exc}") from exc
        if stats is None:
            raise AggregateFetchFailed(f"No stats row for user {user_id}")
        current[user_id] = stats

    now = datetime.now(started_at.tzinfo)
    for user_id in sorted(deltas):
        fields = apply_delta(current[user_id], deltas[user_id], now)
        try:
            matched = update_user_stats(db, user_id, fields)
        except SQLAlchemyError as exc:
            raise AggregateWriteFailed(f"Stats update for user {user_id} failed: {exc}") from exc
        if matched != 1:
            raise AggregateWriteFailed(f"Stats update for user {user_id} matched {matched} rows")

    try:
        upsert_watermark(db, sync_name, started_at)
    except SQLAlchemyError as exc:
        raise MetadataWriteFailed(f"Could not advance watermark {sync_name!r}: {exc}") from exc

    return SyncResult(
        status="synced",
        started_at=started_at,
        watermark=watermark,
        sessions=len(records),
        deltas=deltas,
    )
