# app/models.py
from sqlalchemy import Column, BigInteger, String, DateTime, Integer
from sqlalchemy.sql import func
from .database import Base


class UserStats(Base):
    __tablename__ = "user_stats"

    # SQLite only autoincrements INTEGER primary keys.
    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True)
    user_id = Column(String(255), nullable=False, unique=True, index=True)
    resize_count = Column(BigInteger, nullable=False, default=0)
    crop_head_count = Column(BigInteger, nullable=False, default=0)
    ai_count = Column(BigInteger, nullable=False, default=0)
    all_processing_count = Column(BigInteger, nullable=False, default=0)
    processed_images = Column(BigInteger, nullable=False, default=0)
    success_count = Column(BigInteger, nullable=False, default=0)
    # Owned by another writer; the sync job never touches it.
    failure_count = Column(BigInteger, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class SyncMetadata(Base):
    __tablename__ = "sync_metadata"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, unique=True, index=True)
    last_sync_time = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
