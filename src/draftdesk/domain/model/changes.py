"""Tagged union over the change-record shapes agents emit.

Agents describe a proposed value in several ways:

- ``{"old": ..., "new": ...}`` (``current`` may stand in for ``old``)
- ``{"new": ..., "confidence": ...}``, a plain ``new`` wrapper
- ``{"proposed": ..., "current": ...}``
- ``{"old": ...}`` / ``{"current": ...}`` with no proposed side

Anything else (primitives, lists, other mappings) is a bare value, not a record.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Final, Literal, cast

from .enums import ChangeKind


class Unset(Enum):
    """Marker for "no value", distinct from an explicit ``None``."""

    UNSET = "UNSET"

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNSET"


UNSET: Final = Unset.UNSET

type Maybe[T] = T | Literal[Unset.UNSET]


@dataclass(frozen=True, slots=True, kw_only=True)
class OldNewChange:
    new: object
    old: Maybe[object] = UNSET
    kind: Literal[ChangeKind.OLD_NEW] = ChangeKind.OLD_NEW

    @property
    def proposed(self) -> Maybe[object]:
        return self.new

    @property
    def baseline(self) -> Maybe[object]:
        return self.old


@dataclass(frozen=True, slots=True, kw_only=True)
class ConfidenceChange:
    new: object
    confidence: float | None = None
    kind: Literal[ChangeKind.CONFIDENCE] = ChangeKind.CONFIDENCE

    @property
    def proposed(self) -> Maybe[object]:
        return self.new

    @property
    def baseline(self) -> Maybe[object]:
        return UNSET


@dataclass(frozen=True, slots=True, kw_only=True)
class ProposedChange:
    value: object
    current: Maybe[object] = UNSET
    kind: Literal[ChangeKind.PROPOSED] = ChangeKind.PROPOSED

    @property
    def proposed(self) -> Maybe[object]:
        return self.value

    @property
    def baseline(self) -> Maybe[object]:
        return self.current


@dataclass(frozen=True, slots=True, kw_only=True)
class BaselineChange:
    current: object
    kind: Literal[ChangeKind.BASELINE] = ChangeKind.BASELINE

    @property
    def proposed(self) -> Maybe[object]:
        return UNSET

    @property
    def baseline(self) -> Maybe[object]:
        return self.current


type ChangeRecord = OldNewChange | ConfidenceChange | ProposedChange | BaselineChange

_CONFIDENCE_KEYS = frozenset({"new", "confidence"})


def _baseline_of(mapping: Mapping[str, object]) -> Maybe[object]:
    if "old" in mapping:
        return mapping["old"]
    if "current" in mapping:
        return mapping["current"]
    return UNSET


def parse_change(value: object) -> ChangeRecord | None:
    """Classify ``value`` as a change record, or ``None`` if it is a bare value."""

    if not isinstance(value, Mapping):
        return None
    mapping = cast(Mapping[str, object], value)

    if "new" in mapping:
        if mapping.keys() == _CONFIDENCE_KEYS:
            confidence = mapping["confidence"]
            return ConfidenceChange(
                new=mapping["new"],
                confidence=float(confidence) if isinstance(confidence, int | float) else None,
            )
        return OldNewChange(new=mapping["new"], old=_baseline_of(mapping))
    if "proposed" in mapping:
        return ProposedChange(value=mapping["proposed"], current=_baseline_of(mapping))

    baseline = _baseline_of(mapping)
    if baseline is not UNSET:
        return BaselineChange(current=baseline)
    return None
