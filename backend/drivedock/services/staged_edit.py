"""Staged edits over a server snapshot.

A StagedEditSession keeps two things apart:

  snapshot   what the record API last confirmed (replaced only after a
             successful fetch or a successful commit)
  staged     field overrides the administrator has not saved yet

Edits from independent sub-forms are shallow-merged into ``staged``, so two
cards touching different keys never clobber each other.  ``commit`` sends
the merged view as one PATCH.  A failed commit leaves ``staged`` untouched
so the administrator can retry without re-entering anything; a successful
commit is the only thing that clears it.

The session has no locking of its own.  Callers that can fire overlapping
commits must serialize them (see routers/sessions.py).
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from drivedock.middleware.exceptions import DriveDockException, ErrorInfo, ErrorKind

logger = logging.getLogger(__name__)

Validator = Callable[[dict], Optional[str]]
Submitter = Callable[[dict], Awaitable[Optional[dict]]]
Refetcher = Callable[[], Awaitable[dict]]


@dataclass
class CommitOutcome:
    """Result of a commit attempt.  Exactly one of success / error holds."""
    ok: bool
    committed: bool = False     # False for the clean no-op
    refreshed: bool = False     # snapshot came from the server after the write
    payload: dict | None = None
    error: ErrorInfo | None = None


class StagedEditSession:

    def __init__(self, snapshot: dict | None = None, staged: dict | None = None):
        self.snapshot: dict = dict(snapshot or {})
        self.staged: dict = dict(staged or {})

    # ── Editing ─────────────────────────────────────────────

    def stage(self, partial: dict) -> None:
        self.staged = {**self.staged, **partial}

    def current_value(self, field: str, default=None):
        # A staged None is an explicit clear, not "untouched"
        if field in self.staged:
            return self.staged[field]
        return self.snapshot.get(field, default)

    def is_touched(self, field: str) -> bool:
        return field in self.staged

    def merged(self) -> dict:
        return {**self.snapshot, **self.staged}

    def is_dirty(self) -> bool:
        return bool(self.staged)

    def discard(self) -> None:
        self.staged = {}

    def replace_snapshot(self, snapshot: dict) -> None:
        """Install a freshly fetched snapshot; staged edits still shadow it."""
        self.snapshot = dict(snapshot)

    # ── Commit ──────────────────────────────────────────────

    async def commit(
        self,
        submit: Submitter,
        validate: Validator | None = None,
        refetch: Refetcher | None = None,
    ) -> CommitOutcome:
        if not self.is_dirty():
            return CommitOutcome(ok=True)

        payload = self.merged()

        if validate is not None:
            message = validate(payload)
            if message:
                return CommitOutcome(
                    ok=False,
                    payload=payload,
                    error=ErrorInfo(ErrorKind.VALIDATION, message),
                )

        try:
            response = await submit(payload)
        except DriveDockException as exc:
            logger.warning(
                f"Commit failed, keeping {len(self.staged)} staged field(s): {exc.message}",
                extra={"error_code": exc.error_code},
            )
            return CommitOutcome(ok=False, payload=payload, error=exc.to_error_info())

        fresh, refreshed = await self._fresh_snapshot(response, refetch)
        self.snapshot = fresh if fresh is not None else payload
        self.staged = {}
        return CommitOutcome(ok=True, committed=True, refreshed=refreshed, payload=payload)

    async def _fresh_snapshot(
        self,
        response: dict | None,
        refetch: Refetcher | None,
    ) -> tuple[dict | None, bool]:
        if refetch is not None:
            try:
                return dict(await refetch()), True
            except DriveDockException as exc:
                # The write went through; only the re-read failed
                logger.warning(f"Refetch after commit failed: {exc.message}")
                return None, False
        if isinstance(response, dict):
            return dict(response), True
        return None, False
