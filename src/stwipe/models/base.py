"""Shared base model definitions for Stwipe domain objects."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class StwipeBaseModel(BaseModel):
    """Base model configured for Stwipe-wide defaults."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)


class ProcessingStatus(str, Enum):
    """Lifecycle states shared by playlists and videos."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


__all__ = ["ProcessingStatus", "StwipeBaseModel"]
