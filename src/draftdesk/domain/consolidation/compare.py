"""Two-pane compare and copy between the working draft and alternate sources.

The left pane is the working draft, the right pane one of the priority-sorted
source proposals. ``copy_all`` tags the overrides it writes with the source they
came from, so a later ``copy_all`` from another source can retract them when
that source has nothing to say about the field or race. Single copies are
reviewer choices and are never retracted.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from logging import getLogger
from typing import TYPE_CHECKING, cast

from draftdesk.domain.errors import UnknownRaceError, UnknownSourceError
from draftdesk.domain.model import (
    UNSET,
    ConsolidationMode,
    FieldDiff,
    RaceDiff,
    WorkingDraft,
)

from .fields import clear_field_override, flatten_changes, is_race_key, set_field_override
from .normalize import extract_new, values_equal
from .priority import sort_by_priority
from .races import (
    add_race,
    clear_race_field,
    is_persisted_race_id,
    public_fields,
    reconcile_races,
    remove_added_race,
    resolve_race,
    resolved_races,
    restore_overrides,
    set_race_field,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from draftdesk.domain.model import Maybe, ResolvedRace, SourceProposal

    from .priority import AgentPriorityTable

log = getLogger(__name__)


@dataclass(frozen=True, slots=True, kw_only=True)
class TwoPaneState:
    """Priority-sorted sources and the index of the one shown beside the draft."""

    sources: tuple[SourceProposal, ...]
    active_index: int = 0

    def __post_init__(self) -> None:
        if self.sources and not 0 <= self.active_index < len(self.sources):
            raise IndexError(
                f"Source index {self.active_index} out of range for {len(self.sources)} source(s)"
            )

    @classmethod
    def from_proposals(
        cls,
        proposals: Iterable[SourceProposal],
        table: AgentPriorityTable | None = None,
    ) -> TwoPaneState:
        ordered = tuple(sort_by_priority(proposals, table))
        # index 0 seeds the draft, so the first alternate is the natural comparison
        return cls(sources=ordered, active_index=1 if len(ordered) >= 2 else 0)

    @property
    def active_source(self) -> SourceProposal:
        if not self.sources:
            raise UnknownSourceError("No source proposals are loaded")
        return self.sources[self.active_index]

    def with_active_index(self, index: int) -> TwoPaneState:
        return replace(self, active_index=index)

    def with_active_source(self, source_id: str) -> TwoPaneState:
        for index, source in enumerate(self.sources):
            if source.id == source_id:
                return replace(self, active_index=index)
        raise UnknownSourceError(f"Source {source_id} is not loaded")


def source_field_value(source: SourceProposal, field: str) -> Maybe[object]:
    """A source's effective value: its own override, its proposal, a nested value."""

    saved = source.user_modified_changes
    if field in saved and not is_race_key(field):
        return saved[field]
    flat = flatten_changes(source.changes)
    if field in flat:
        return extract_new(flat[field])
    for raw in source.changes.values():
        inner = extract_new(raw)
        if isinstance(inner, Mapping) and field in inner:
            return extract_new(cast(Mapping[str, object], inner)[field])
    return UNSET


def source_field_values(source: SourceProposal) -> dict[str, object]:
    values = {key: extract_new(raw) for key, raw in flatten_changes(source.changes).items()}
    values.update(
        (key, value) for key, value in source.user_modified_changes.items() if not is_race_key(key)
    )
    return values


def source_races(source: SourceProposal) -> tuple[ResolvedRace, ...]:
    """The races a source shows on its own, with its saved race edits applied."""

    reconciliation = reconcile_races((source,), mode=ConsolidationMode.SINGLE)
    restored = restore_overrides(source.user_modified_changes, reconciliation)
    view = WorkingDraft(
        primary_proposal_id=source.id,
        proposal_ids=(source.id,),
        mode=ConsolidationMode.SINGLE,
        races=reconciliation.arena,
        race_positions=reconciliation.positions,
        user_modified_races=restored.races,
        added_race_ids=restored.added_race_ids,
    )
    return resolved_races(view, include_deleted=False)


def _name_key(name: str | None) -> str | None:
    if name is None or not name.strip():
        return None
    return name.strip().casefold()


type RacePair = tuple[ResolvedRace | None, ResolvedRace | None]


def match_races(
    working: Sequence[ResolvedRace],
    source: Sequence[ResolvedRace],
) -> list[RacePair]:
    """Pair source races with working races by persisted id, then by name.

    Positional ids (``new-<index>``) are local to one proposal and never match
    across sources. Unmatched races on either side are paired with ``None``.
    """

    by_id = {race.id: race for race in working if is_persisted_race_id(race.id)}
    by_name: dict[str, list[ResolvedRace]] = {}
    for race in working:
        key = _name_key(race.name)
        if key is not None:
            by_name.setdefault(key, []).append(race)

    matched: set[str] = set()
    pairs: list[RacePair] = []
    for candidate in source:
        target: ResolvedRace | None = None
        if is_persisted_race_id(candidate.id):
            target = by_id.get(candidate.id)
            if target is not None and target.id in matched:
                target = None
        if target is None:
            key = _name_key(candidate.name)
            named = by_name.get(key, []) if key is not None else []
            target = next((race for race in named if race.id not in matched), None)
        if target is not None:
            matched.add(target.id)
        pairs.append((target, candidate))
    pairs.extend((race, None) for race in working if race.id not in matched)
    return pairs


def _diff_mappings(
    working: Mapping[str, object],
    source: Mapping[str, object],
) -> tuple[FieldDiff, ...]:
    keys = dict.fromkeys([*working, *source])
    diffs: list[FieldDiff] = []
    for key in keys:
        working_value = working.get(key, UNSET)
        source_value = source.get(key, UNSET)
        diffs.append(
            FieldDiff(
                field=key,
                working_value=working_value,
                source_value=source_value,
                is_different=not values_equal(working_value, source_value),
            )
        )
    return tuple(diffs)


def field_differences(draft: WorkingDraft, source: SourceProposal) -> tuple[FieldDiff, ...]:
    """Compare every draft field with the source's value for it."""

    working = {
        consolidated.field: consolidated.effective_value
        for consolidated in draft.consolidated_fields()
        if consolidated.effective_value is not UNSET
    }
    return _diff_mappings(working, source_field_values(source))


def race_differences(draft: WorkingDraft, source: SourceProposal) -> tuple[RaceDiff, ...]:
    diffs: list[RaceDiff] = []
    for target, candidate in match_races(resolved_races(draft), source_races(source)):
        working_fields = public_fields(target.fields) if target is not None else {}
        source_fields = public_fields(candidate.fields) if candidate is not None else {}
        named = target if target is not None else candidate
        diffs.append(
            RaceDiff(
                race_name=named.name if named is not None else None,
                working_race_id=target.id if target is not None else None,
                source_race_id=candidate.id if candidate is not None else None,
                field_diffs=_diff_mappings(working_fields, source_fields),
            )
        )
    return tuple(diffs)


def copy_field(draft: WorkingDraft, pane: TwoPaneState, field: str) -> WorkingDraft:
    source = pane.active_source
    value = source_field_value(source, field)
    if value is UNSET:
        log.debug("Source %s has no value for %s; nothing copied", source.id, field)
        return draft
    return set_field_override(draft, field, value)


def _race_record(race: ResolvedRace) -> dict[str, object]:
    record = public_fields(race.fields)
    if race.name is not None:
        record.setdefault("name", race.name)
    return record


def _find_source_race(source: SourceProposal, race_id: str) -> ResolvedRace:
    for race in source_races(source):
        if race.id == race_id:
            return race
    raise UnknownRaceError(f"Race {race_id} is not part of source {source.id}")


def _proposed_race_value(draft: WorkingDraft, race_id: str, field: str) -> Maybe[object]:
    entity = draft.races.get(race_id)
    if entity is None:
        return UNSET
    if field in entity.fields:
        return entity.fields[field]
    return entity.original_fields.get(field, UNSET)


def _copy_race_fields(
    draft: WorkingDraft,
    target: ResolvedRace,
    candidate: ResolvedRace,
    *,
    origin: str | None,
    clear_when_proposed: bool,
) -> WorkingDraft:
    overrides = draft.user_modified_races.get(target.id, {})
    origins = draft.race_field_origins.get(target.id, {})
    for key, value in public_fields(candidate.fields).items():
        if values_equal(target.fields.get(key, UNSET), value):
            if key in origins:
                draft = set_race_field(draft, target.id, key, value, origin=origin)
            continue
        if (
            clear_when_proposed
            and key in overrides
            and values_equal(_proposed_race_value(draft, target.id, key), value)
        ):
            draft = clear_race_field(draft, target.id, key)
            continue
        draft = set_race_field(draft, target.id, key, value, origin=origin)
    return draft


def copy_race(
    draft: WorkingDraft,
    pane: TwoPaneState,
    source_race_id: str,
    target_race_id: str | None = None,
) -> tuple[WorkingDraft, str]:
    """Copy a race from the active source; returns the draft and the written race id.

    With a target only differing fields are written, other overrides on the
    target survive. Without one the race is added as a new temporary race.
    """

    source = pane.active_source
    candidate = _find_source_race(source, source_race_id)
    if target_race_id is None:
        return add_race(draft, _race_record(candidate))
    target = resolve_race(draft, target_race_id)
    if target is None:
        raise UnknownRaceError(f"Race {target_race_id} is not part of the draft")
    updated = _copy_race_fields(draft, target, candidate, origin=None, clear_when_proposed=False)
    return updated, target_race_id


def _retract_stale_fields(
    draft: WorkingDraft,
    source_id: str,
    values: Mapping[str, object],
) -> WorkingDraft:
    for field, origin in list(draft.field_origins.items()):
        if origin != source_id and field not in values:
            log.debug("Retracting %s copied from %s", field, origin)
            draft = clear_field_override(draft, field)
    return draft


def _retract_stale_race_fields(
    draft: WorkingDraft,
    source_id: str,
    race_id: str,
    candidate: ResolvedRace | None,
) -> WorkingDraft:
    present = public_fields(candidate.fields) if candidate is not None else {}
    for field, origin in list(draft.race_field_origins.get(race_id, {}).items()):
        if origin != source_id and field not in present:
            draft = clear_race_field(draft, race_id, field)
    return draft


def copy_all(draft: WorkingDraft, pane: TwoPaneState) -> WorkingDraft:
    """Bring the draft in line with the active source, difference by difference.

    Reviewer overrides on fields or races the source does not mention are kept.
    Overrides an earlier copy from another source introduced are retracted when
    this source does not carry the field or race.
    """

    source = pane.active_source
    values = source_field_values(source)
    draft = _retract_stale_fields(draft, source.id, values)

    for field, value in values.items():
        if values_equal(draft.effective_value(field), value):
            if field in draft.field_origins:
                draft = set_field_override(draft, field, value, origin=source.id)
            continue
        if values_equal(draft.proposed_value(field), value):
            draft = clear_field_override(draft, field)
        else:
            draft = set_field_override(draft, field, value, origin=source.id)

    for target, candidate in match_races(resolved_races(draft), source_races(source)):
        if target is None:
            if candidate is not None:
                draft, _ = add_race(draft, _race_record(candidate), origin=source.id)
            continue
        added_origin = draft.added_race_origins.get(target.id)
        if candidate is None:
            if added_origin is not None and added_origin != source.id:
                draft = remove_added_race(draft, target.id)
                continue
            draft = _retract_stale_race_fields(draft, source.id, target.id, None)
            continue
        if added_origin is not None and added_origin != source.id:
            draft = replace(
                draft, added_race_origins={**draft.added_race_origins, target.id: source.id}
            )
        draft = _retract_stale_race_fields(draft, source.id, target.id, candidate)
        refreshed = resolve_race(draft, target.id)
        if refreshed is not None:
            draft = _copy_race_fields(
                draft, refreshed, candidate, origin=source.id, clear_when_proposed=True
            )

    log.info("Copied all differences from source %s", source.id)
    return draft
