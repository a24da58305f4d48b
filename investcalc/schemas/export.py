"""Pydantic schemas for the export endpoints."""

from typing import Literal, Optional

from pydantic import BaseModel, Field


class ExportJobAccepted(BaseModel):
    job_id: str


class ExportJobStatus(BaseModel):
    job_id: str
    state: Literal["running", "completed", "cancelled", "failed"]
    progress: int = Field(..., ge=0, le=100)
    filename: str
    error: Optional[str] = None
