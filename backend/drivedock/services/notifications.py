"""Advisory notices derived from a tracker snapshot.

Each check_* function looks at the snapshot and returns at most one Notice.
``derive_notices`` runs them in a fixed priority order and concatenates the
results.  Pure and cheap: no I/O, safe to recompute on every request.
"""

import math
from datetime import date, datetime, timezone
from typing import Callable

from drivedock.config import settings
from drivedock.schemas.tracker import Notice, StepPath, Tracker
from drivedock.services.row_validation import is_blank
from drivedock.services.step_flow import is_step_before

DRUG_TEST_AWAITING_REVIEW = "AWAITING_REVIEW"

SECONDS_PER_DAY = 24 * 60 * 60

TRUCK_DETAIL_FIELDS = (
    "vin", "make", "model", "year", "province", "truckUnitNumber", "plateNumber",
)


def _parse_instant(value) -> datetime | None:
    """Aware UTC datetime for an ISO date/timestamp; bare dates mean midnight UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def days_until(value, now: datetime) -> int | None:
    """Whole days from ``now`` until ``value``, rounded up."""
    expires = _parse_instant(value)
    if expires is None:
        return None
    return math.ceil((expires - now).total_seconds() / SECONDS_PER_DAY)


# ── Checks ───────────────────────────────────────────────────

def check_license_expiry(tracker: Tracker, now: datetime) -> Notice | None:
    identifications = tracker.forms.get("identifications") or {}
    days = days_until(identifications.get("driverLicenseExpiration"), now)
    if days is None or days > settings.license_warning_days:
        return None
    if days < 0:
        return Notice(id="license", text=f"Driver's license expired {-days} day(s) ago")
    return Notice(id="license", text=f"Driver's license will expire in {days} day(s)")


def check_drive_test_pending(tracker: Tracker, now: datetime) -> Notice | None:
    drive_test = tracker.forms.get("driveTest") or {}
    if tracker.status.current_step == StepPath.DRIVE_TEST and drive_test.get("completed") is False:
        return Notice(id="dt", text="Driver is waiting for drive test")
    return None


def check_carriers_edge_credentials(tracker: Tracker, now: datetime) -> Notice | None:
    training = tracker.forms.get("carriersEdgeTraining") or {}
    if (
        tracker.status.current_step == StepPath.CARRIERS_EDGE_TRAINING
        and training.get("emailSent") is False
    ):
        return Notice(id="ce", text="Driver is waiting for Carrier's Edge test credentials")
    return None


def check_drug_test_review(tracker: Tracker, now: datetime) -> Notice | None:
    drug_test = tracker.forms.get("drugTest") or {}
    if (
        tracker.status.current_step == StepPath.DRUG_TEST
        and drug_test.get("status") == DRUG_TEST_AWAITING_REVIEW
    ):
        return Notice(id="drug", text="Driver is awaiting drug test result verification")
    return None


def check_truck_details(tracker: Tracker, now: datetime) -> Notice | None:
    """Truck details belong to application page 4; flag them once it is behind us."""
    passed_page_4 = tracker.status.completed or is_step_before(
        StepPath.APPLICATION_PAGE_4,
        tracker.status.current_step,
        tracker.needs_flatbed_training,
    )
    if not passed_page_4:
        return None
    identifications = tracker.forms.get("identifications") or {}
    truck = identifications.get("truckDetails") or {}
    if all(is_blank(truck.get(f)) for f in TRUCK_DETAIL_FIELDS):
        return Notice(id="truck", text="Truck details are missing")
    return None


CHECKS: tuple[Callable[[Tracker, datetime], Notice | None], ...] = (
    check_license_expiry,
    check_drive_test_pending,
    check_carriers_edge_credentials,
    check_drug_test_review,
    check_truck_details,
)


def derive_notices(tracker: Tracker, now: datetime | None = None) -> list[Notice]:
    now = now or datetime.now(timezone.utc)
    notices = []
    for check in CHECKS:
        notice = check(tracker, now)
        if notice is not None:
            notices.append(notice)
    return notices
