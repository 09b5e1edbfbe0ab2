"""Pydantic schemas for onboarding tracker snapshots.

The record API speaks camelCase; fields are snake_case here with aliases so
a raw API payload validates directly and ``model_dump(by_alias=True)``
round-trips it.
"""

import logging
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)


class StepPath(str, Enum):
    """Fine-grained onboarding stages, in flow order."""
    PRE_QUALIFICATIONS = "prequalifications"
    APPLICATION_PAGE_1 = "application-form/page-1"
    APPLICATION_PAGE_2 = "application-form/page-2"
    APPLICATION_PAGE_3 = "application-form/page-3"
    APPLICATION_PAGE_4 = "application-form/page-4"
    APPLICATION_PAGE_5 = "application-form/page-5"
    POLICIES_CONSENTS = "policies-consents"
    DRIVE_TEST = "drive-test"
    CARRIERS_EDGE_TRAINING = "carriers-edge-training"
    DRUG_TEST = "drug-test"
    FLATBED_TRAINING = "flatbed-training"


class Section(str, Enum):
    """Dashboard sections an administrator can open for a tracker."""
    PREQUALIFICATION = "prequalification"
    PERSONAL_DETAILS = "personal-details"
    EMPLOYMENT_HISTORY = "employment-history"
    ACCIDENT_CRIMINAL = "accident-criminal"
    IDENTIFICATIONS = "identifications"
    EXTRAS = "extras"
    QUIZ_RESULT = "quiz-result"
    POLICIES_CONSENTS = "policies-consents"
    DRIVE_TEST = "drive-test"
    CARRIERS_EDGE_TRAINING = "carriers-edge-training"
    DRUG_TEST = "drug-test"
    FLATBED_TRAINING = "flatbed-training"


def parse_step(value) -> StepPath | None:
    """Lenient StepPath lookup: unknown or empty values become None."""
    if value is None or isinstance(value, StepPath):
        return value
    try:
        return StepPath(value)
    except ValueError:
        logger.warning(f"Unknown onboarding step {value!r}; treating as not started")
        return None


class TrackerStatus(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_step: StepPath | None = Field(default=None, alias="currentStep")
    completed: bool = False
    completion_date: str | None = Field(default=None, alias="completionDate")

    @field_validator("current_step", mode="before")
    @classmethod
    def _lenient_step(cls, v):
        return parse_step(v)


class Tracker(BaseModel):
    """Cached snapshot of one driver's onboarding record."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    company_id: str = Field(alias="companyId")
    status: TrackerStatus = Field(default_factory=TrackerStatus)
    needs_flatbed_training: bool = Field(default=False, alias="needsFlatbedTraining")
    forms: dict[str, dict] = Field(default_factory=dict)
    notes: str | None = None
    terminated: bool = False
    item_summary: dict = Field(default_factory=dict, alias="itemSummary")

    @field_validator("forms", mode="before")
    @classmethod
    def _drop_empty_forms(cls, v):
        # Unpopulated form references come back as null or bare ids
        if not v:
            return {}
        return {k: val for k, val in v.items() if isinstance(val, dict)}


# ── Derived views ───────────────────────────────────────────

class Notice(BaseModel):
    id: str
    text: str


class ProgressOut(BaseModel):
    """Everything a contract page needs to draw its progress header."""
    tracker_id: str
    company_id: str
    current_step: StepPath | None
    current_step_label: str
    completed: bool
    needs_flatbed_training: bool
    macro_step: int
    total_macro_steps: int
    application_percent: int
    overall_percent: int
    gates: dict[str, bool]
    editable: dict[str, bool]
    notices: list[Notice]


class CompanyChange(BaseModel):
    company_id: str = Field(alias="companyId", min_length=1)
    confirm: bool = False

    model_config = ConfigDict(populate_by_name=True)
