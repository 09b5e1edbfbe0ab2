"""Section gating: which dashboard sections an administrator may edit.

A section opens once the driver has reached (or passed) the step that owns
it, and stays open after the driver moves on: onboarding progress only goes
forward, so a gate never re-locks.  A completed tracker opens everything.
An unknown or missing current step closes every gate.

Gates are a pure function of (current_step, needs_flatbed_training,
completed); they never look at whether a section already holds data.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from drivedock.middleware.exceptions import StepNotReachedError
from drivedock.schemas.tracker import Section, StepPath
from drivedock.services.step_flow import resolve_fine_flow, step_index, step_label

# Section → the step the driver must have reached
SECTION_STEPS: dict[Section, StepPath] = {
    Section.PREQUALIFICATION: StepPath.PRE_QUALIFICATIONS,
    Section.PERSONAL_DETAILS: StepPath.APPLICATION_PAGE_1,
    Section.EMPLOYMENT_HISTORY: StepPath.APPLICATION_PAGE_2,
    Section.ACCIDENT_CRIMINAL: StepPath.APPLICATION_PAGE_4,
    Section.IDENTIFICATIONS: StepPath.APPLICATION_PAGE_4,
    Section.EXTRAS: StepPath.APPLICATION_PAGE_4,
    Section.QUIZ_RESULT: StepPath.APPLICATION_PAGE_5,
    Section.POLICIES_CONSENTS: StepPath.POLICIES_CONSENTS,
    Section.DRIVE_TEST: StepPath.DRIVE_TEST,
    Section.CARRIERS_EDGE_TRAINING: StepPath.CARRIERS_EDGE_TRAINING,
    Section.DRUG_TEST: StepPath.DRUG_TEST,
    Section.FLATBED_TRAINING: StepPath.FLATBED_TRAINING,
}


@dataclass(frozen=True)
class EditMode:
    """Dashboard-wide edit switch, passed explicitly to whatever it gates."""
    enabled: bool = False


@dataclass
class GateInfo:
    """Gate state for one tracker.  Every section has an entry."""
    gates: dict[Section, bool] = field(default_factory=dict)

    def is_open(self, section: Section) -> bool:
        return self.gates.get(section, False)

    def open_sections(self) -> list[Section]:
        return [s for s, is_open in self.gates.items() if is_open]

    def as_dict(self) -> dict[str, bool]:
        return {s.value: is_open for s, is_open in self.gates.items()}


def compute_gates(
    current_step: StepPath | str | None,
    needs_flatbed_training: bool,
    completed: bool,
) -> GateInfo:
    if completed:
        return GateInfo({section: True for section in SECTION_STEPS})

    flow = resolve_fine_flow(needs_flatbed_training)
    current = step_index(flow, current_step)
    gates: dict[Section, bool] = {}
    for section, required in SECTION_STEPS.items():
        # Sections whose step is not in this tracker's flow stay closed
        required_idx = flow.index(required) if required in flow else -1
        gates[section] = current >= 0 and required_idx >= 0 and current >= required_idx
    return GateInfo(gates)


def editable_sections(info: GateInfo, edit_mode: EditMode) -> dict[str, bool]:
    """Gate AND edit mode, per section."""
    return {s.value: is_open and edit_mode.enabled for s, is_open in info.gates.items()}


def require_open(info: GateInfo, section: Section) -> None:
    """Raise StepNotReachedError if the section is still locked."""
    if not info.is_open(section):
        raise StepNotReachedError(
            f"Locked until step is reached: driver hasn't completed "
            f"{step_label(SECTION_STEPS[section])} yet"
        )
