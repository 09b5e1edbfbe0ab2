"""Pydantic schemas for staged edit sessions."""

from datetime import datetime

from pydantic import BaseModel, Field

from drivedock.schemas.tracker import Section


class SessionRecord(BaseModel):
    """What is persisted per open page: snapshot plus pending overrides."""
    session_id: str
    tracker_id: str
    section: Section
    snapshot: dict = Field(default_factory=dict)
    staged: dict = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime


class StageRequest(BaseModel):
    """Partial field overrides; keys set to null are explicit clears."""
    fields: dict = Field(min_length=1)


class SessionOut(BaseModel):
    session_id: str
    tracker_id: str
    section: Section
    snapshot: dict
    staged: dict
    merged: dict
    dirty: bool


class CommitOut(BaseModel):
    committed: bool
    refreshed: bool
    session: SessionOut
