"""Value normalisation over heterogeneous change records."""

from __future__ import annotations

from draftdesk.domain.model.changes import UNSET, Maybe, parse_change


def extract_new(value: object) -> object:
    """Return the proposed side of a change record, or ``value`` itself."""

    record = parse_change(value)
    if record is None or record.proposed is UNSET:
        return value
    return record.proposed


def extract_old(value: object) -> object:
    """Return the baseline side of a change record, or ``value`` itself."""

    record = parse_change(value)
    if record is None or record.baseline is UNSET:
        return value
    return record.baseline


def baseline_of(value: object) -> Maybe[object]:
    """Baseline of a change record; ``UNSET`` when ``value`` carries none."""

    record = parse_change(value)
    return UNSET if record is None else record.baseline


def values_equal(left: Maybe[object], right: Maybe[object]) -> bool:
    """Deep equality where ``UNSET`` only equals itself."""

    if left is UNSET or right is UNSET:
        return left is right
    return left == right
