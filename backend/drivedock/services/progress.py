"""Tracker snapshot loading and the derived progress view.

Snapshots are cached briefly in Redis (keyed by tracker) so every contract
page can redraw its header without hitting the record API; commits and
company changes invalidate the entry.
"""

import logging
from datetime import datetime

from drivedock.config import settings
from drivedock.middleware.exceptions import BusinessLogicError
from drivedock.schemas.tracker import ProgressOut, Tracker
from drivedock.services.gates import EditMode, compute_gates, editable_sections
from drivedock.services.notifications import derive_notices
from drivedock.services.record_api import RecordAPIClient
from drivedock.services.step_flow import (
    application_sub_percent,
    overall_percent,
    resolve_flow,
    step_label,
    to_macro_step,
)
from drivedock.utils.cache import cached, invalidate_cache, tracker_key

logger = logging.getLogger(__name__)


@cached(
    ttl=settings.snapshot_cache_ttl_seconds,
    key_builder=lambda api, tracker_id: tracker_key(tracker_id),
)
async def _load_tracker_data(api: RecordAPIClient, tracker_id: str) -> Tracker:
    return await api.fetch_tracker(tracker_id)


async def load_tracker(api: RecordAPIClient, tracker_id: str) -> Tracker:
    return Tracker.model_validate(await _load_tracker_data(api, tracker_id))


async def forget_tracker(tracker_id: str) -> None:
    await invalidate_cache(tracker_key(tracker_id))


def build_progress(
    tracker: Tracker,
    edit_mode: EditMode,
    now: datetime | None = None,
) -> ProgressOut:
    step = tracker.status.current_step
    flow = resolve_flow(tracker.needs_flatbed_training)
    gates = compute_gates(step, tracker.needs_flatbed_training, tracker.status.completed)

    return ProgressOut(
        tracker_id=tracker.id,
        company_id=tracker.company_id,
        current_step=step,
        current_step_label=step_label(step),
        completed=tracker.status.completed,
        needs_flatbed_training=tracker.needs_flatbed_training,
        macro_step=to_macro_step(step),
        total_macro_steps=len(flow),
        application_percent=application_sub_percent(step),
        overall_percent=overall_percent(flow, step),
        gates=gates.as_dict(),
        editable=editable_sections(gates, edit_mode),
        notices=derive_notices(tracker, now),
    )


async def change_company(
    api: RecordAPIClient,
    tracker_id: str,
    company_id: str,
    confirmed: bool,
) -> Tracker:
    """Move a tracker to another company.  Needs an explicit confirmation."""
    if not confirmed:
        raise BusinessLogicError(
            "Changing the company must be confirmed explicitly",
            error_code="CONFIRMATION_REQUIRED",
        )

    current = await api.fetch_tracker(tracker_id)
    if current.terminated:
        raise BusinessLogicError("Onboarding is terminated", error_code="TRACKER_TERMINATED")
    if current.company_id == company_id:
        raise BusinessLogicError(
            f"Tracker already belongs to company {company_id}",
            error_code="COMPANY_UNCHANGED",
        )

    updated = await api.change_company(tracker_id, company_id)
    await forget_tracker(tracker_id)
    logger.info(f"Tracker {tracker_id} moved from {current.company_id} to {company_id}")
    return updated
