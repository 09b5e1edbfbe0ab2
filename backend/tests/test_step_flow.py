"""Tests for step ordering, macro steps and progress percentages."""

import pytest

from drivedock.schemas.tracker import StepPath
from drivedock.services.step_flow import (
    application_sub_percent,
    is_step_before,
    next_step,
    overall_percent,
    previous_step,
    resolve_fine_flow,
    resolve_flow,
    step_index,
    step_label,
    to_macro_step,
)


@pytest.mark.unit
class TestResolveFlow:

    def test_base_flow_has_six_steps(self):
        flow = resolve_flow(False)
        assert len(flow) == 6
        assert StepPath.FLATBED_TRAINING not in flow

    def test_flatbed_appended_at_end(self):
        flow = resolve_flow(True)
        assert len(flow) == 7
        assert flow[-1] == StepPath.FLATBED_TRAINING
        assert flow[:6] == resolve_flow(False)

    def test_same_input_same_sequence(self):
        assert resolve_flow(True) == resolve_flow(True)

    def test_fine_flow_expands_application_pages(self):
        fine = resolve_fine_flow(False)
        assert len(fine) == 10
        assert fine[1:6] == [
            StepPath.APPLICATION_PAGE_1,
            StepPath.APPLICATION_PAGE_2,
            StepPath.APPLICATION_PAGE_3,
            StepPath.APPLICATION_PAGE_4,
            StepPath.APPLICATION_PAGE_5,
        ]
        assert len(resolve_fine_flow(True)) == 11


@pytest.mark.unit
class TestMacroStep:

    @pytest.mark.parametrize("step, expected", [
        (StepPath.PRE_QUALIFICATIONS, 1),
        (StepPath.APPLICATION_PAGE_1, 2),
        (StepPath.APPLICATION_PAGE_5, 2),
        (StepPath.POLICIES_CONSENTS, 3),
        (StepPath.DRIVE_TEST, 4),
        (StepPath.CARRIERS_EDGE_TRAINING, 5),
        (StepPath.DRUG_TEST, 6),
        (StepPath.FLATBED_TRAINING, 7),
    ])
    def test_macro_step(self, step, expected):
        assert to_macro_step(step) == expected

    def test_unknown_step_is_zero(self):
        assert to_macro_step(None) == 0
        assert to_macro_step("not-a-step") == 0

    def test_accepts_raw_slugs(self):
        assert to_macro_step("drug-test") == 6

    def test_application_sub_percent(self):
        assert application_sub_percent(StepPath.APPLICATION_PAGE_1) == 20
        assert application_sub_percent(StepPath.APPLICATION_PAGE_3) == 60
        assert application_sub_percent(StepPath.APPLICATION_PAGE_5) == 100
        assert application_sub_percent(StepPath.DRIVE_TEST) == 0


@pytest.mark.unit
class TestOverallPercent:

    def test_drive_test_without_flatbed_is_sixty(self):
        assert overall_percent(resolve_flow(False), StepPath.DRIVE_TEST) == 60

    def test_first_and_last_steps(self):
        flow = resolve_flow(False)
        assert overall_percent(flow, StepPath.PRE_QUALIFICATIONS) == 0
        assert overall_percent(flow, StepPath.DRUG_TEST) == 100

    def test_application_pages_share_macro_position(self):
        flow = resolve_flow(False)
        assert overall_percent(flow, StepPath.APPLICATION_PAGE_4) == 20

    def test_absent_step_is_zero(self):
        assert overall_percent(resolve_flow(False), StepPath.FLATBED_TRAINING) == 0
        assert overall_percent(resolve_flow(False), None) == 0

    def test_always_within_bounds(self):
        for needs in (True, False):
            flow = resolve_flow(needs)
            for step in StepPath:
                assert 0 <= overall_percent(flow, step) <= 100


@pytest.mark.unit
class TestNavigation:

    def test_step_index_on_fine_flow(self):
        fine = resolve_fine_flow(False)
        assert step_index(fine, StepPath.APPLICATION_PAGE_4) == 4
        assert step_index(fine, StepPath.FLATBED_TRAINING) == -1

    def test_is_step_before(self):
        assert is_step_before(StepPath.APPLICATION_PAGE_2, StepPath.DRIVE_TEST)
        assert not is_step_before(StepPath.DRIVE_TEST, StepPath.DRIVE_TEST)
        assert not is_step_before(None, StepPath.DRIVE_TEST)

    def test_next_and_previous(self):
        assert next_step(StepPath.PRE_QUALIFICATIONS, False) == StepPath.APPLICATION_PAGE_1
        assert next_step(StepPath.DRUG_TEST, False) is None
        assert next_step(StepPath.DRUG_TEST, True) == StepPath.FLATBED_TRAINING
        assert previous_step(StepPath.POLICIES_CONSENTS, False) == StepPath.APPLICATION_PAGE_5
        assert previous_step(StepPath.PRE_QUALIFICATIONS, False) is None

    def test_step_label(self):
        assert step_label(StepPath.DRIVE_TEST) == "Drive Test"
        assert step_label(None) == "Unknown"
