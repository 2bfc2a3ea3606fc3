from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel

from newsbrief.errors import ErrorCode
from newsbrief.models.snapshot import CacheState


class ErrorInfo(BaseModel):
    code: ErrorCode
    message: str


class CacheStatus(BaseModel):
    state: CacheState
    fetched_at: datetime | None  # Last attempt, success or failure
    succeeded_at: datetime | None
    attempts: int
    last_error: ErrorInfo | None = None


class HealthOutput(BaseModel):
    status: Literal["ok"] = "ok"
    cache: CacheStatus
