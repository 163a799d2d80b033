# app/schemas.py

from datetime import datetime

from pydantic import BaseModel, Field, field_validator


class HealthResponse(BaseModel):
    status: str
    timestamp: str


class SyncJobResponse(BaseModel):
    jobId: str
    status: str


class WatermarkResponse(BaseModel):
    name: str
    lastSyncTime: str | None


class UserStatsResponse(BaseModel):
    userId: str
    resizeCount: int
    cropHeadCount: int
    aiCount: int
    allProcessingCount: int
    processedImages: int
    successCount: int
    failureCount: int
    updatedAt: str


class Treatments(BaseModel):
    resize: int = Field(default=0, ge=0)
    crop_mouth: int = Field(default=0, ge=0)
    remove_bg: int = Field(default=0, ge=0)

    @field_validator("resize", "crop_mouth", "remove_bg", mode="before")
    @classmethod
    def _none_is_zero(cls, value):
        return 0 if value is None else value


class SessionRecord(BaseModel):
    """One processing session as stored in the document store."""

    timestamp: datetime
    treatments: Treatments = Field(default_factory=Treatments)
    total_images: int = Field(default=0, ge=0)
    user_id: str | None = None

    @field_validator("treatments", mode="before")
    @classmethod
    def _missing_treatments(cls, value):
        return {} if value is None else value

    @field_validator("total_images", mode="before")
    @classmethod
    def _none_is_zero(cls, value):
        return 0 if value is None else value
