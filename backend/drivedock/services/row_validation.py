"""All-or-nothing validation for repeatable row groups.

A row in a group (accident history, traffic convictions, criminal records)
is either fully blank or fully populated.  Blank rows are placeholders the
dashboard keeps while editing; they are pruned from the outgoing payload
once validation passes.  Partially filled rows fail validation with a
1-based row number so the page can point at the offending row, and so do
entries that are not rows at all (a null or a string where a row belongs).

Nothing here mutates its input.
"""

from dataclasses import dataclass

from drivedock.schemas.tracker import Section


@dataclass(frozen=True)
class RowGroup:
    key: str            # payload field holding the rows
    label: str          # used in messages: "Accident row 2: ..."
    fields: tuple[str, ...]


ACCIDENT_HISTORY = RowGroup(
    key="accidentHistory",
    label="Accident",
    fields=("date", "natureOfAccident", "fatalities", "injuries"),
)
TRAFFIC_CONVICTIONS = RowGroup(
    key="trafficConvictions",
    label="Traffic conviction",
    fields=("date", "location", "charge", "penalty"),
)
CRIMINAL_RECORDS = RowGroup(
    key="criminalRecords",
    label="Criminal record",
    fields=("offense", "dateOfSentence", "courtLocation"),
)

# Row groups per section, in the order they are validated
SECTION_ROW_GROUPS: dict[Section, tuple[RowGroup, ...]] = {
    Section.ACCIDENT_CRIMINAL: (ACCIDENT_HISTORY, TRAFFIC_CONVICTIONS, CRIMINAL_RECORDS),
}


def is_blank(value) -> bool:
    # 0 fatalities is an answer, not a blank
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


class RowSetValidator:
    """Validates and prunes the rows of one group."""

    def __init__(self, group: RowGroup):
        self.group = group

    def is_empty_row(self, row: dict) -> bool:
        return all(is_blank(row.get(f)) for f in self.group.fields)

    def validate(self, rows) -> str | None:
        """Return the first failure message, or None if every row is valid."""
        if rows is None:
            return None
        if not isinstance(rows, list):
            return f"{self.group.label} rows: expected a list of entries"
        for i, row in enumerate(rows, start=1):
            if not isinstance(row, dict):
                return f"{self.group.label} row {i}: invalid entry"
            if self.is_empty_row(row):
                continue
            if any(is_blank(row.get(f)) for f in self.group.fields):
                return f"{self.group.label} row {i}: complete all fields"
        return None

    def prune(self, rows) -> list[dict]:
        """Populated rows only; anything that is not a row is dropped."""
        if not isinstance(rows, list):
            return []
        return [
            dict(row) for row in rows
            if isinstance(row, dict) and not self.is_empty_row(row)
        ]


def validate_row_groups(payload: dict, groups: tuple[RowGroup, ...]) -> str | None:
    """First failing row across all groups, group by group."""
    for group in groups:
        if group.key not in payload:
            continue
        message = RowSetValidator(group).validate(payload[group.key])
        if message:
            return message
    return None


def prune_row_groups(payload: dict, groups: tuple[RowGroup, ...]) -> dict:
    """Copy of ``payload`` with blank rows removed from every group present."""
    pruned = dict(payload)
    for group in groups:
        if group.key in pruned:
            pruned[group.key] = RowSetValidator(group).prune(pruned[group.key])
    return pruned


def section_validator(section: Section):
    """Validator callable for a section's staged payload, or None."""
    groups = SECTION_ROW_GROUPS.get(section)
    if not groups:
        return None
    return lambda payload: validate_row_groups(payload, groups)


def prepare_section_payload(section: Section, payload: dict) -> dict:
    """Outgoing payload for a section: blank rows pruned where applicable."""
    groups = SECTION_ROW_GROUPS.get(section)
    if not groups:
        return dict(payload)
    return prune_row_groups(payload, groups)
