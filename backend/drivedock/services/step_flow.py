"""Onboarding step flow: ordering, macro steps, progress percentages.

The flow is fixed apart from the flatbed-training step, which is appended
only when the tracker needs flatbed training.  Two views are exposed:

  - resolve_flow()       one StepPath per macro step (6 or 7 entries);
                         the application form is represented by page 1.
  - resolve_fine_flow()  every StepPath, application pages expanded
                         (10 or 11 entries).

None of these functions raise: an absent or unknown step degrades to 0 / -1.
"""

from drivedock.schemas.tracker import StepPath, parse_step

APPLICATION_PAGES: tuple[StepPath, ...] = (
    StepPath.APPLICATION_PAGE_1,
    StepPath.APPLICATION_PAGE_2,
    StepPath.APPLICATION_PAGE_3,
    StepPath.APPLICATION_PAGE_4,
    StepPath.APPLICATION_PAGE_5,
)

_BASE_FLOW: tuple[StepPath, ...] = (
    StepPath.PRE_QUALIFICATIONS,
    StepPath.APPLICATION_PAGE_1,
    StepPath.POLICIES_CONSENTS,
    StepPath.DRIVE_TEST,
    StepPath.CARRIERS_EDGE_TRAINING,
    StepPath.DRUG_TEST,
)

MACRO_STEPS: dict[StepPath, int] = {
    StepPath.PRE_QUALIFICATIONS: 1,
    StepPath.APPLICATION_PAGE_1: 2,
    StepPath.APPLICATION_PAGE_2: 2,
    StepPath.APPLICATION_PAGE_3: 2,
    StepPath.APPLICATION_PAGE_4: 2,
    StepPath.APPLICATION_PAGE_5: 2,
    StepPath.POLICIES_CONSENTS: 3,
    StepPath.DRIVE_TEST: 4,
    StepPath.CARRIERS_EDGE_TRAINING: 5,
    StepPath.DRUG_TEST: 6,
    StepPath.FLATBED_TRAINING: 7,
}

STEP_LABELS: dict[StepPath, str] = {
    StepPath.PRE_QUALIFICATIONS: "Prequalifications",
    StepPath.APPLICATION_PAGE_1: "Application Form Page 1",
    StepPath.APPLICATION_PAGE_2: "Application Form Page 2",
    StepPath.APPLICATION_PAGE_3: "Application Form Page 3",
    StepPath.APPLICATION_PAGE_4: "Application Form Page 4",
    StepPath.APPLICATION_PAGE_5: "Application Form Page 5",
    StepPath.POLICIES_CONSENTS: "Policies & Consents",
    StepPath.DRIVE_TEST: "Drive Test",
    StepPath.CARRIERS_EDGE_TRAINING: "Carrier's Edge",
    StepPath.DRUG_TEST: "Drug Test",
    StepPath.FLATBED_TRAINING: "Flatbed Training",
}


def resolve_flow(needs_flatbed_training: bool) -> list[StepPath]:
    """Macro-level step sequence for a tracker."""
    flow = list(_BASE_FLOW)
    if needs_flatbed_training:
        flow.append(StepPath.FLATBED_TRAINING)
    return flow


def resolve_fine_flow(needs_flatbed_training: bool) -> list[StepPath]:
    """Every step in order, application pages expanded."""
    fine: list[StepPath] = []
    for step in resolve_flow(needs_flatbed_training):
        if step == StepPath.APPLICATION_PAGE_1:
            fine.extend(APPLICATION_PAGES)
        else:
            fine.append(step)
    return fine


def to_macro_step(step: StepPath | str | None) -> int:
    """0 means no step yet / unknown."""
    step = parse_step(step)
    if step is None:
        return 0
    return MACRO_STEPS.get(step, 0)


def application_sub_percent(step: StepPath | str | None) -> int:
    """20/40/60/80/100 while on application pages 1-5, otherwise 0."""
    step = parse_step(step)
    if step not in APPLICATION_PAGES:
        return 0
    return (APPLICATION_PAGES.index(step) + 1) * 20


def step_index(flow: list[StepPath], step: StepPath | str | None) -> int:
    """Position of ``step`` in ``flow``, or -1 when absent.

    Works on both flow views: a step missing from a macro-level flow is
    located through the flow entry that shares its macro step.
    """
    step = parse_step(step)
    if step is None:
        return -1
    if step in flow:
        return flow.index(step)
    macro = to_macro_step(step)
    for i, candidate in enumerate(flow):
        if MACRO_STEPS[candidate] == macro:
            return i
    return -1


def overall_percent(flow: list[StepPath], current_step: StepPath | str | None) -> int:
    idx = step_index(flow, current_step)
    if idx < 0:
        return 0
    denom = max(1, len(flow) - 1)
    return min(100, max(0, round(100 * idx / denom)))


def is_step_before(
    step_a: StepPath | str | None,
    step_b: StepPath | str | None,
    needs_flatbed_training: bool = True,
) -> bool:
    """True if step_a comes strictly before step_b. Unknown steps never compare."""
    fine = resolve_fine_flow(needs_flatbed_training)
    a, b = step_index(fine, step_a), step_index(fine, step_b)
    if a < 0 or b < 0:
        return False
    return a < b


def next_step(step: StepPath | str | None, needs_flatbed_training: bool) -> StepPath | None:
    fine = resolve_fine_flow(needs_flatbed_training)
    idx = step_index(fine, step)
    if idx < 0 or idx + 1 >= len(fine):
        return None
    return fine[idx + 1]


def previous_step(step: StepPath | str | None, needs_flatbed_training: bool) -> StepPath | None:
    fine = resolve_fine_flow(needs_flatbed_training)
    idx = step_index(fine, step)
    if idx <= 0:
        return None
    return fine[idx - 1]


def step_label(step: StepPath | str | None) -> str:
    step = parse_step(step)
    if step is None:
        return "Unknown"
    return STEP_LABELS[step]
