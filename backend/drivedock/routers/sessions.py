"""Staged edit sessions, one per open dashboard section.

Endpoints (all under /api/contracts/{tracker_id}/sections/{section}):
  POST   /sessions                    → open: fetch the section snapshot
  GET    /sessions/{sid}              → snapshot, staged, merged view
  PATCH  /sessions/{sid}              → stage a partial edit (merge)
  DELETE /sessions/{sid}/staged       → discard staged edits
  POST   /sessions/{sid}/commit       → validate + PATCH the merged view
  DELETE /sessions/{sid}              → close the session

Design:
  - Opening a session requires the section's gate to be open.
  - Staged edits live in Redis until a successful commit or a discard.
  - A failed commit keeps every staged edit so it can simply be retried.
  - Writes to one session (stage, discard, commit, close) never overlap;
    a write while another is in flight gets 409.
"""

import logging

from fastapi import APIRouter, Depends, status

from drivedock.middleware.exceptions import create_error_response, status_for_error
from drivedock.schemas.session import CommitOut, SessionOut, SessionRecord, StageRequest
from drivedock.schemas.tracker import Section
from drivedock.services.gates import compute_gates, require_open
from drivedock.services.progress import forget_tracker, load_tracker
from drivedock.services.record_api import RecordAPIClient, get_record_api
from drivedock.services.row_validation import prepare_section_payload, section_validator
from drivedock.services.session_store import SessionStore, to_session
from drivedock.services.staged_edit import StagedEditSession
from drivedock.utils.cache import get_redis

logger = logging.getLogger(__name__)

router = APIRouter()


async def get_session_store() -> SessionStore:
    return SessionStore(await get_redis())


def _session_out(record: SessionRecord, session: StagedEditSession) -> SessionOut:
    return SessionOut(
        session_id=record.session_id,
        tracker_id=record.tracker_id,
        section=record.section,
        snapshot=session.snapshot,
        staged=session.staged,
        merged=session.merged(),
        dirty=session.is_dirty(),
    )


# ── Open / read / close ──────────────────────────────────────

@router.post(
    "/{tracker_id}/sections/{section}/sessions",
    response_model=SessionOut,
    status_code=status.HTTP_201_CREATED,
)
async def open_session(
    tracker_id: str,
    section: Section,
    api: RecordAPIClient = Depends(get_record_api),
    store: SessionStore = Depends(get_session_store),
):
    tracker = await load_tracker(api, tracker_id)
    gates = compute_gates(
        tracker.status.current_step,
        tracker.needs_flatbed_training,
        tracker.status.completed,
    )
    require_open(gates, section)

    snapshot = await api.fetch_section(tracker_id, section)
    record = await store.create(tracker_id, section, snapshot)
    return _session_out(record, to_session(record))


@router.get("/{tracker_id}/sections/{section}/sessions/{session_id}", response_model=SessionOut)
async def get_session(
    tracker_id: str,
    section: Section,
    session_id: str,
    store: SessionStore = Depends(get_session_store),
):
    record = await store.load(session_id, tracker_id, section)
    return _session_out(record, to_session(record))


@router.delete(
    "/{tracker_id}/sections/{section}/sessions/{session_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def close_session(
    tracker_id: str,
    section: Section,
    session_id: str,
    store: SessionStore = Depends(get_session_store),
):
    async with store.locked(session_id):
        await store.load(session_id, tracker_id, section)
        await store.delete(session_id)


# ── Stage / discard ──────────────────────────────────────────

@router.patch("/{tracker_id}/sections/{section}/sessions/{session_id}", response_model=SessionOut)
async def stage_fields(
    tracker_id: str,
    section: Section,
    session_id: str,
    body: StageRequest,
    store: SessionStore = Depends(get_session_store),
):
    async with store.locked(session_id):
        record = await store.load(session_id, tracker_id, section)
        session = to_session(record)
        session.stage(body.fields)
        record = await store.save(record, session)
    return _session_out(record, session)


@router.delete(
    "/{tracker_id}/sections/{section}/sessions/{session_id}/staged",
    response_model=SessionOut,
)
async def discard_staged(
    tracker_id: str,
    section: Section,
    session_id: str,
    store: SessionStore = Depends(get_session_store),
):
    async with store.locked(session_id):
        record = await store.load(session_id, tracker_id, section)
        session = to_session(record)
        session.discard()
        record = await store.save(record, session)
    return _session_out(record, session)


# ── Commit ───────────────────────────────────────────────────

@router.post(
    "/{tracker_id}/sections/{section}/sessions/{session_id}/commit",
    response_model=CommitOut,
)
async def commit_session(
    tracker_id: str,
    section: Section,
    session_id: str,
    api: RecordAPIClient = Depends(get_record_api),
    store: SessionStore = Depends(get_session_store),
):
    async def submit(payload: dict) -> dict:
        return await api.patch_section(
            tracker_id, section, prepare_section_payload(section, payload)
        )

    async def refetch() -> dict:
        return await api.fetch_section(tracker_id, section)

    # Read under the lock: a record loaded before it may already be committed
    async with store.locked(session_id):
        record = await store.load(session_id, tracker_id, section)
        session = to_session(record)
        outcome = await session.commit(
            submit,
            validate=section_validator(section),
            refetch=refetch,
        )
        record = await store.save(record, session)

    if not outcome.ok:
        return create_error_response(
            status_code=status_for_error(outcome.error),
            message=outcome.error.message,
            error_code="COMMIT_FAILED",
            kind=outcome.error.kind.value,
            details={"staged": session.staged},
        )

    if outcome.committed:
        await forget_tracker(tracker_id)
        logger.info(f"Committed {section.value} for tracker {tracker_id} (session {session_id})")

    return CommitOut(
        committed=outcome.committed,
        refreshed=outcome.refreshed,
        session=_session_out(record, session),
    )
