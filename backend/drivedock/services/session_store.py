"""Redis persistence for staged edit sessions.

One key per open page (``session:{session_id}``) holding the snapshot and
the staged overrides as JSON, refreshed to the configured TTL on every
write.  ``session-lock:{session_id}`` is the busy flag: every
read-modify-write of a session (stage, discard, commit, close) runs while
holding it, so a commit in flight never overwrites edits staged meanwhile.
"""

import json
import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import redis.asyncio as redis

from drivedock.config import settings
from drivedock.middleware.exceptions import CommitInProgressError, ResourceNotFoundError
from drivedock.schemas.session import SessionRecord
from drivedock.schemas.tracker import Section
from drivedock.services.staged_edit import StagedEditSession

logger = logging.getLogger(__name__)


def _session_key(session_id: str) -> str:
    return f"session:{session_id}"


def _lock_key(session_id: str) -> str:
    return f"session-lock:{session_id}"


class SessionStore:

    def __init__(self, client: redis.Redis):
        self.client = client

    async def create(self, tracker_id: str, section: Section, snapshot: dict) -> SessionRecord:
        now = datetime.now(timezone.utc)
        record = SessionRecord(
            session_id=str(uuid.uuid4()),
            tracker_id=tracker_id,
            section=section,
            snapshot=snapshot,
            staged={},
            created_at=now,
            updated_at=now,
        )
        await self._write(record)
        logger.info(f"Opened {section.value} session {record.session_id} for tracker {tracker_id}")
        return record

    async def load(self, session_id: str, tracker_id: str, section: Section) -> SessionRecord:
        raw = await self.client.get(_session_key(session_id))
        if not raw:
            raise ResourceNotFoundError("Edit session", session_id)
        record = SessionRecord.model_validate(json.loads(raw))
        # Session ids are only valid under the URL they were opened on
        if record.tracker_id != tracker_id or record.section != section:
            raise ResourceNotFoundError("Edit session", session_id)
        return record

    async def save(self, record: SessionRecord, session: StagedEditSession) -> SessionRecord:
        record = record.model_copy(update={
            "snapshot": session.snapshot,
            "staged": session.staged,
            "updated_at": datetime.now(timezone.utc),
        })
        await self._write(record)
        return record

    async def delete(self, session_id: str) -> None:
        await self.client.delete(_session_key(session_id))

    async def acquire_lock(self, session_id: str) -> bool:
        acquired = await self.client.set(
            _lock_key(session_id), "1", nx=True, ex=settings.commit_lock_seconds
        )
        return bool(acquired)

    async def release_lock(self, session_id: str) -> None:
        await self.client.delete(_lock_key(session_id))

    @asynccontextmanager
    async def locked(self, session_id: str):
        """Hold the session's busy flag; 409 if another write holds it."""
        if not await self.acquire_lock(session_id):
            raise CommitInProgressError(session_id)
        try:
            yield
        finally:
            await self.release_lock(session_id)

    async def _write(self, record: SessionRecord) -> None:
        await self.client.setex(
            _session_key(record.session_id),
            settings.session_ttl_seconds,
            record.model_dump_json(),
        )


def to_session(record: SessionRecord) -> StagedEditSession:
    return StagedEditSession(snapshot=record.snapshot, staged=record.staged)
