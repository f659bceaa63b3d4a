"""The working draft: the reviewer-facing consolidated view over source proposals."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from .changes import UNSET, Maybe
from .enums import ConsolidationMode

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping
    from datetime import datetime


@dataclass(frozen=True, slots=True, kw_only=True)
class FieldOption:
    source_id: str
    value: object
    agent_name: str | None = None
    confidence: float | None = None
    created_at: datetime | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class ConsolidatedField:
    """One field of the draft with every proposed option, best first."""

    field: str
    options: tuple[FieldOption, ...] = ()
    current_value: object = None
    selected_value: Maybe[object] = UNSET

    @property
    def proposed_value(self) -> Maybe[object]:
        return self.options[0].value if self.options else UNSET

    @property
    def effective_value(self) -> Maybe[object]:
        if self.selected_value is not UNSET:
            return self.selected_value
        return self.proposed_value

    @property
    def is_overridden(self) -> bool:
        return self.selected_value is not UNSET


@dataclass(frozen=True, slots=True, kw_only=True)
class RaceEntity:
    """A consolidated race.

    ``fields`` holds proposed values, ``original_fields`` the pre-change snapshot.
    """

    id: str
    name: str | None = None
    fields: Mapping[str, object] = field(default_factory=dict)
    original_fields: Mapping[str, object] = field(default_factory=dict)
    proposal_ids: tuple[str, ...] = ()
    is_existing_unchanged: bool = False


class RaceArena:
    """Insertion-ordered collection of race entities keyed by race id."""

    __slots__ = ("_races",)

    def __init__(self, races: Iterable[RaceEntity] = ()) -> None:
        self._races: dict[str, RaceEntity] = {}
        for race in races:
            self.merge(race)

    def __contains__(self, race_id: object) -> bool:
        return race_id in self._races

    def __iter__(self) -> Iterator[RaceEntity]:
        return iter(self._races.values())

    def __len__(self) -> int:
        return len(self._races)

    def __repr__(self) -> str:
        return f"RaceArena({list(self._races)!r})"

    def get(self, race_id: str) -> RaceEntity | None:
        return self._races.get(race_id)

    def ids(self) -> tuple[str, ...]:
        return tuple(self._races)

    def add(self, race: RaceEntity) -> None:
        if race.id in self._races:
            raise ValueError(f"Race {race.id} is already in the arena")
        self._races[race.id] = race

    def merge(self, race: RaceEntity) -> RaceEntity:
        """Insert ``race`` or fold it into the entity already stored under its id.

        Fields already set on the stored entity are never overwritten; the
        incoming race may only contribute fields that are still absent.
        """

        existing = self._races.get(race.id)
        if existing is None:
            self._races[race.id] = race
            return race

        fields = dict(existing.fields)
        for key, value in race.fields.items():
            fields.setdefault(key, value)
        original = dict(existing.original_fields)
        for key, value in race.original_fields.items():
            original.setdefault(key, value)
        proposal_ids = existing.proposal_ids + tuple(
            pid for pid in race.proposal_ids if pid not in existing.proposal_ids
        )
        merged = replace(
            existing,
            name=existing.name or race.name,
            fields=fields,
            original_fields=original,
            proposal_ids=proposal_ids,
            is_existing_unchanged=existing.is_existing_unchanged and race.is_existing_unchanged,
        )
        self._races[race.id] = merged
        return merged


@dataclass(frozen=True, slots=True, kw_only=True)
class ResolvedRace:
    """A race as the reviewer sees it: proposed values with overrides applied."""

    id: str
    name: str | None
    fields: Mapping[str, object]
    original_fields: Mapping[str, object]
    is_deleted: bool = False
    is_added: bool = False
    is_existing_unchanged: bool = False


@dataclass(frozen=True, slots=True, kw_only=True)
class WorkingDraft:
    """Consolidated, editable state derived from source proposals plus overrides.

    Instances are never mutated; every reviewer action produces a new draft and
    the owning editor swaps it in. ``revision`` increases with each edit so a save
    can tell whether the draft moved on while the request was in flight.
    """

    primary_proposal_id: str
    proposal_ids: tuple[str, ...]
    mode: ConsolidationMode = ConsolidationMode.PRIMARY_ONLY
    fields: tuple[ConsolidatedField, ...] = ()
    races: RaceArena = field(default_factory=RaceArena)
    race_positions: Mapping[str, str] = field(default_factory=dict)
    user_modified_fields: Mapping[str, object] = field(default_factory=dict)
    user_modified_races: Mapping[str, Mapping[str, object]] = field(default_factory=dict)
    added_race_ids: tuple[str, ...] = ()
    field_origins: Mapping[str, str] = field(default_factory=dict)
    race_field_origins: Mapping[str, Mapping[str, str]] = field(default_factory=dict)
    added_race_origins: Mapping[str, str] = field(default_factory=dict)
    approved_blocks: Mapping[str, bool] = field(default_factory=dict)
    read_only: bool = False
    is_dirty: bool = False
    last_saved: datetime | None = None
    revision: int = 0

    def get_field(self, name: str) -> ConsolidatedField | None:
        for consolidated in self.fields:
            if consolidated.field == name:
                return consolidated
        return None

    def proposed_value(self, name: str) -> Maybe[object]:
        consolidated = self.get_field(name)
        return consolidated.proposed_value if consolidated is not None else UNSET

    def effective_value(self, name: str) -> Maybe[object]:
        if name in self.user_modified_fields:
            return self.user_modified_fields[name]
        return self.proposed_value(name)

    def consolidated_fields(self) -> tuple[ConsolidatedField, ...]:
        """Fields with reviewer selections applied, override-only fields last."""

        result: list[ConsolidatedField] = []
        seen: set[str] = set()
        for consolidated in self.fields:
            seen.add(consolidated.field)
            if consolidated.field in self.user_modified_fields:
                consolidated = replace(
                    consolidated,
                    selected_value=self.user_modified_fields[consolidated.field],
                )
            result.append(consolidated)
        result.extend(
            ConsolidatedField(field=name, selected_value=value)
            for name, value in self.user_modified_fields.items()
            if name not in seen
        )
        return tuple(result)

    def knows_race(self, race_id: str) -> bool:
        return race_id in self.races or race_id in self.added_race_ids
