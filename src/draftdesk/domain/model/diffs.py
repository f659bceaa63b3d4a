"""Read-only comparison records between the draft and an alternate source."""

from __future__ import annotations

from dataclasses import dataclass

from .changes import UNSET, Maybe


@dataclass(frozen=True, slots=True, kw_only=True)
class FieldDiff:
    field: str
    working_value: Maybe[object] = UNSET
    source_value: Maybe[object] = UNSET
    is_different: bool = False

    @property
    def is_absent_in_working(self) -> bool:
        return self.working_value is UNSET

    @property
    def is_absent_in_source(self) -> bool:
        return self.source_value is UNSET


@dataclass(frozen=True, slots=True, kw_only=True)
class RaceDiff:
    race_name: str | None
    working_race_id: str | None = None
    source_race_id: str | None = None
    field_diffs: tuple[FieldDiff, ...] = ()

    @property
    def race_id(self) -> str:
        return self.working_race_id or self.source_race_id or ""

    @property
    def exists_in_working(self) -> bool:
        return self.working_race_id is not None

    @property
    def exists_in_source(self) -> bool:
        return self.source_race_id is not None

    @property
    def is_different(self) -> bool:
        if not (self.exists_in_working and self.exists_in_source):
            return True
        return any(diff.is_different for diff in self.field_diffs)
