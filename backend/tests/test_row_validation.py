"""Tests for all-or-nothing row validation and pruning."""

import pytest

from drivedock.schemas.tracker import Section
from drivedock.services.row_validation import (
    ACCIDENT_HISTORY,
    CRIMINAL_RECORDS,
    RowSetValidator,
    prepare_section_payload,
    section_validator,
)

FULL_ACCIDENT = {
    "date": "2023-04-01",
    "natureOfAccident": "Rear-ended",
    "fatalities": 0,
    "injuries": 1,
}
BLANK_ACCIDENT = {"date": "", "natureOfAccident": "  ", "fatalities": None, "injuries": None}


@pytest.mark.unit
class TestRowSetValidator:

    def setup_method(self):
        self.validator = RowSetValidator(ACCIDENT_HISTORY)

    def test_blank_and_full_rows_pass(self):
        assert self.validator.validate([FULL_ACCIDENT, BLANK_ACCIDENT]) is None

    def test_zero_counts_as_populated(self):
        assert not self.validator.is_empty_row({"fatalities": 0})

    def test_partial_row_reports_one_based_index(self):
        partial = {**FULL_ACCIDENT, "injuries": ""}
        message = self.validator.validate([FULL_ACCIDENT, partial])
        assert message == "Accident row 2: complete all fields"

    def test_missing_rows_pass(self):
        assert self.validator.validate(None) is None
        assert self.validator.validate([]) is None

    def test_prune_drops_blank_rows_without_mutating(self):
        rows = [BLANK_ACCIDENT, FULL_ACCIDENT]
        pruned = self.validator.prune(rows)
        assert pruned == [FULL_ACCIDENT]
        assert len(rows) == 2

    @pytest.mark.parametrize("rows, expected", [
        ([None], "Accident row 1: invalid entry"),
        ([FULL_ACCIDENT, "row"], "Accident row 2: invalid entry"),
        ("abc", "Accident rows: expected a list of entries"),
        ({"date": "2023-04-01"}, "Accident rows: expected a list of entries"),
    ])
    def test_malformed_rows_fail_validation(self, rows, expected):
        assert self.validator.validate(rows) == expected

    def test_prune_tolerates_malformed_rows(self):
        assert self.validator.prune([None, "row", FULL_ACCIDENT]) == [FULL_ACCIDENT]
        assert self.validator.prune("abc") == []


@pytest.mark.unit
class TestSectionPayloads:

    def test_accident_section_has_validator(self):
        validate = section_validator(Section.ACCIDENT_CRIMINAL)
        payload = {
            "accidentHistory": [FULL_ACCIDENT],
            "criminalRecords": [{"offense": "Theft", "dateOfSentence": "", "courtLocation": ""}],
        }
        assert validate(payload) == "Criminal record row 1: complete all fields"

    def test_first_failing_group_wins(self):
        validate = section_validator(Section.ACCIDENT_CRIMINAL)
        payload = {
            "accidentHistory": [{"date": "2023-01-01"}],
            "trafficConvictions": [{"charge": "Speeding"}],
        }
        assert validate(payload).startswith("Accident row 1")

    def test_other_sections_have_no_validator(self):
        assert section_validator(Section.DRIVE_TEST) is None

    def test_prepare_prunes_every_group(self):
        payload = {
            "accidentHistory": [BLANK_ACCIDENT, FULL_ACCIDENT],
            "criminalRecords": [{"offense": None, "dateOfSentence": None, "courtLocation": None}],
            "notes": "kept",
        }
        prepared = prepare_section_payload(Section.ACCIDENT_CRIMINAL, payload)
        assert prepared["accidentHistory"] == [FULL_ACCIDENT]
        assert prepared["criminalRecords"] == []
        assert prepared["notes"] == "kept"
        assert len(payload["accidentHistory"]) == 2

    def test_prepare_passes_other_sections_through(self):
        payload = {"completed": True}
        assert prepare_section_payload(Section.DRIVE_TEST, payload) == payload

    def test_criminal_group_fields(self):
        assert CRIMINAL_RECORDS.fields == ("offense", "dateOfSentence", "courtLocation")
