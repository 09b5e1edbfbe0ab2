"""Contract header endpoints: progress view and company change.

Endpoints:
  GET   /api/contracts/{tracker_id}/progress  → step position, gates, notices
  PATCH /api/contracts/{tracker_id}/company   → privileged company change
"""

from fastapi import APIRouter, Depends

from drivedock.schemas.tracker import CompanyChange, ProgressOut
from drivedock.services.gates import EditMode
from drivedock.services.progress import build_progress, change_company, load_tracker
from drivedock.services.record_api import RecordAPIClient, get_record_api

router = APIRouter()


@router.get("/{tracker_id}/progress", response_model=ProgressOut)
async def get_progress(
    tracker_id: str,
    edit_mode: bool = False,
    api: RecordAPIClient = Depends(get_record_api),
):
    """Where the driver is, which sections are open, and what needs attention."""
    tracker = await load_tracker(api, tracker_id)
    return build_progress(tracker, EditMode(enabled=edit_mode))


@router.patch("/{tracker_id}/company", response_model=ProgressOut)
async def patch_company(
    tracker_id: str,
    body: CompanyChange,
    api: RecordAPIClient = Depends(get_record_api),
):
    """Move the tracker to another company. Body must carry confirm=true."""
    tracker = await change_company(api, tracker_id, body.company_id, body.confirm)
    return build_progress(tracker, EditMode())
