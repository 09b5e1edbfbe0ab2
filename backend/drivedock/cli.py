"""Management CLI for looking at trackers from a shell.

Usage:
    python -m drivedock.cli progress <tracker-id>   # Step, gates and notices
"""

import asyncio
import sys

import httpx

from drivedock.config import settings
from drivedock.middleware.exceptions import DriveDockException
from drivedock.services.gates import EditMode
from drivedock.services.progress import build_progress
from drivedock.services.record_api import RecordAPIClient


async def _progress(tracker_id: str):
    async with httpx.AsyncClient(
        base_url=settings.record_api_url,
        timeout=settings.record_api_timeout_seconds,
        headers={"Accept": "application/json"},
    ) as http:
        tracker = await RecordAPIClient(http).fetch_tracker(tracker_id)
    return build_progress(tracker, EditMode())


def show_progress(tracker_id: str) -> int:
    try:
        progress = asyncio.run(_progress(tracker_id))
    except DriveDockException as e:
        print(f"  FAILED [{e.kind.value}]: {e.message}")
        return 1

    print(f"Tracker {progress.tracker_id} (company {progress.company_id or '-'})")
    print(f"  Step:      {progress.current_step_label} "
          f"({progress.macro_step}/{progress.total_macro_steps})")
    print(f"  Progress:  {progress.overall_percent}%"
          + (" (completed)" if progress.completed else ""))
    print("  Sections:")
    for section, is_open in progress.gates.items():
        print(f"    {'open  ' if is_open else 'locked'}  {section}")
    if progress.notices:
        print("  Notices:")
        for notice in progress.notices:
            print(f"    - {notice.text}")
    return 0


if __name__ == "__main__":
    cmd = sys.argv[1] if len(sys.argv) > 1 else ""
    if cmd == "progress" and len(sys.argv) > 2:
        sys.exit(show_progress(sys.argv[2]))
    else:
        print("Usage: python -m drivedock.cli progress <tracker-id>")
        sys.exit(2)
