"""Race reconciliation: keyed consolidation of nested race entities.

Race ids are either persisted numeric ids (``"147544"``) or temporary ids with
the ``new-`` prefix. Agent-proposed additions are addressed positionally as
``new-<index>``; reviewer additions get ``new-<millis>-<counter>`` so the two
can never collide with each other or with persisted ids.
"""

from __future__ import annotations

import itertools
import time
from collections.abc import Mapping
from dataclasses import dataclass, replace
from logging import getLogger
from typing import TYPE_CHECKING, cast

from draftdesk.domain.errors import UnknownRaceError
from draftdesk.domain.model import (
    UNSET,
    ConsolidationMode,
    RaceArena,
    RaceEntity,
    ResolvedRace,
    WorkingDraft,
)

from .fields import is_race_key
from .normalize import baseline_of, extract_new

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from draftdesk.domain.model import RaceUpdate, SourceProposal

log = getLogger(__name__)

TEMP_RACE_PREFIX = "new-"
POSITION_PREFIX = "existing-"
DELETED_MARKER = "_deleted"
RECORD_ID_KEY = "id"

_id_counter = itertools.count(1)


def new_race_id() -> str:
    """Temporary id for a reviewer-added race, unique within and across sessions."""
    return f"{TEMP_RACE_PREFIX}{time.time_ns() // 1_000_000}-{next(_id_counter)}"


def addition_race_id(index: int) -> str:
    return f"{TEMP_RACE_PREFIX}{index}"


def position_key(index: int) -> str:
    return f"{POSITION_PREFIX}{index}"


def is_temporary_race_id(race_id: str) -> bool:
    return race_id.startswith(TEMP_RACE_PREFIX)


def is_persisted_race_id(race_id: str) -> bool:
    return race_id.isdecimal()


def agent_addition_index(race_id: str) -> int | None:
    """Position of an agent-proposed addition, ``None`` for any other id."""

    if not is_temporary_race_id(race_id):
        return None
    suffix = race_id.removeprefix(TEMP_RACE_PREFIX)
    return int(suffix) if suffix.isdecimal() else None


def public_fields(record: Mapping[str, object]) -> dict[str, object]:
    """Drop the id and internal markers (keys starting with ``_``) from a record."""
    return {
        key: value
        for key, value in record.items()
        if key != RECORD_ID_KEY and not key.startswith("_")
    }


@dataclass(frozen=True, slots=True, kw_only=True)
class RaceReconciliation:
    arena: RaceArena
    positions: Mapping[str, str]


def _entity_from_update(update: RaceUpdate, proposal_id: str) -> RaceEntity:
    fields = {key: extract_new(raw) for key, raw in update.updates.items()}
    if update.current_data:
        original = dict(update.current_data)
    else:
        original = {
            key: baseline
            for key, raw in update.updates.items()
            if (baseline := baseline_of(raw)) is not UNSET
        }
    name = update.race_name
    if name is None and isinstance(original.get("name"), str):
        name = cast(str, original["name"])
    return RaceEntity(
        id=update.race_id,
        name=name,
        fields=fields,
        original_fields=public_fields(original),
        proposal_ids=(proposal_id,),
    )


def reconcile_races(
    proposals: Sequence[SourceProposal],
    *,
    mode: ConsolidationMode,
) -> RaceReconciliation:
    """Consolidate races from priority-sorted proposals into an arena.

    Only the first proposal contributes outside merge-all mode. In merge-all mode
    later proposals are folded in with ``RaceArena.merge``: a field set by a
    higher-priority proposal is never overwritten, absent fields may be added.
    Positions (``race id -> existing-<index>``) always follow the first
    proposal's update list, which is how the backend addresses race edits.
    """

    arena = RaceArena()
    positions: dict[str, str] = {}
    if not proposals:
        return RaceReconciliation(arena=arena, positions=positions)

    primary = proposals[0]
    contributing = proposals if mode is ConsolidationMode.MERGE_ALL else proposals[:1]
    for proposal in contributing:
        is_primary = proposal is primary
        for index, update in enumerate(proposal.races_to_update):
            arena.merge(_entity_from_update(update, proposal.id))
            if is_primary:
                positions.setdefault(update.race_id, position_key(index))
        for index, addition in enumerate(proposal.races_to_add):
            race_id = (
                addition_race_id(index)
                if is_primary
                else f"{TEMP_RACE_PREFIX}{proposal.id}-{index}"
            )
            arena.merge(
                RaceEntity(
                    id=race_id,
                    name=addition.name,
                    fields=public_fields(addition.fields),
                    proposal_ids=(proposal.id,),
                )
            )
        for unchanged in proposal.races_unchanged:
            arena.merge(
                RaceEntity(
                    id=unchanged.race_id,
                    name=unchanged.race_name,
                    original_fields=public_fields(unchanged.fields),
                    proposal_ids=(proposal.id,),
                    is_existing_unchanged=True,
                )
            )

    log.debug("Reconciled %d race(s) from %d proposal(s)", len(arena), len(contributing))
    return RaceReconciliation(arena=arena, positions=positions)


@dataclass(frozen=True, slots=True, kw_only=True)
class RestoredOverrides:
    fields: dict[str, object]
    races: dict[str, dict[str, object]]
    added_race_ids: tuple[str, ...]


def _deleted_ids(raw: object) -> list[str]:
    if not isinstance(raw, list):
        return []
    ids: list[str] = []
    for item in cast(list[object], raw):
        if isinstance(item, Mapping):
            item = cast(Mapping[str, object], item).get("raceId")
        if isinstance(item, int | str) and str(item).strip().isdecimal():
            ids.append(str(item).strip())
    return ids


def restore_overrides(
    saved: Mapping[str, object],
    reconciliation: RaceReconciliation,
) -> RestoredOverrides:
    """Rebuild in-memory overrides from deltas persisted by an earlier session."""

    arena = reconciliation.arena
    by_position = {position: race_id for race_id, position in reconciliation.positions.items()}
    fields = {key: value for key, value in saved.items() if not is_race_key(key)}
    races: dict[str, dict[str, object]] = {}
    added: list[str] = []

    raw_edits = saved.get("raceEdits")
    if isinstance(raw_edits, Mapping):
        for key, record in cast(Mapping[str, object], raw_edits).items():
            if not isinstance(record, Mapping):
                log.warning("Ignoring malformed saved race edit for %s", key)
                continue
            record_map = dict(cast(Mapping[str, object], record))
            race_id = by_position.get(str(key), str(key))
            if race_id in arena:
                races[race_id] = record_map
            elif is_temporary_race_id(race_id) and record_map.get(RECORD_ID_KEY) == race_id:
                races[race_id] = record_map
                added.append(race_id)
            else:
                log.debug("Dropping saved edit for unknown race %s", key)

    filtered = saved.get("racesToAddFiltered")
    filtered_ids = [
        addition_race_id(index)
        for index in (cast(list[object], filtered) if isinstance(filtered, list) else [])
        if isinstance(index, int)
    ]
    for race_id in [*_deleted_ids(saved.get("racesToDelete")), *filtered_ids]:
        if race_id in arena:
            races.setdefault(race_id, {})[DELETED_MARKER] = True

    return RestoredOverrides(fields=fields, races=races, added_race_ids=tuple(added))


def _require_race(draft: WorkingDraft, race_id: str) -> None:
    if not draft.knows_race(race_id):
        raise UnknownRaceError(f"Race {race_id} is not part of the draft")


def _with_race_origin(
    draft: WorkingDraft,
    race_id: str,
    field: str,
    origin: str | None,
) -> dict[str, dict[str, str]]:
    origins = {key: dict(value) for key, value in draft.race_field_origins.items()}
    per_race = origins.setdefault(race_id, {})
    if origin is None:
        per_race.pop(field, None)
    else:
        per_race[field] = origin
    if not per_race:
        del origins[race_id]
    return origins


def set_race_field(
    draft: WorkingDraft,
    race_id: str,
    field: str,
    value: object,
    *,
    origin: str | None = None,
) -> WorkingDraft:
    if field == RECORD_ID_KEY or field.startswith("_"):
        raise ValueError(f"Race field {field!r} is reserved")
    _require_race(draft, race_id)
    races = dict(draft.user_modified_races)
    record = dict(races.get(race_id, {}))
    record[field] = value
    races[race_id] = record
    return replace(
        draft,
        user_modified_races=races,
        race_field_origins=_with_race_origin(draft, race_id, field, origin),
    )


def clear_race_field(draft: WorkingDraft, race_id: str, field: str) -> WorkingDraft:
    record = draft.user_modified_races.get(race_id)
    if record is None or field not in record:
        return draft
    races = dict(draft.user_modified_races)
    remaining = {key: value for key, value in record.items() if key != field}
    if remaining:
        races[race_id] = remaining
    else:
        del races[race_id]
    return replace(
        draft,
        user_modified_races=races,
        race_field_origins=_with_race_origin(draft, race_id, field, None),
    )


def toggle_race_deleted(draft: WorkingDraft, race_id: str) -> WorkingDraft:
    """Flip the soft-delete marker; an emptied override record is removed."""

    _require_race(draft, race_id)
    races = dict(draft.user_modified_races)
    record = dict(races.get(race_id, {}))
    if record.get(DELETED_MARKER):
        del record[DELETED_MARKER]
    else:
        record[DELETED_MARKER] = True
    if record:
        races[race_id] = record
    else:
        races.pop(race_id, None)
    return replace(draft, user_modified_races=races)


def add_race(
    draft: WorkingDraft,
    fields: Mapping[str, object],
    *,
    origin: str | None = None,
) -> tuple[WorkingDraft, str]:
    race_id = new_race_id()
    while draft.knows_race(race_id):
        race_id = new_race_id()
    record = public_fields(fields)
    record[RECORD_ID_KEY] = race_id
    races = dict(draft.user_modified_races)
    races[race_id] = record
    added_origins = dict(draft.added_race_origins)
    field_origins = dict(draft.race_field_origins)
    if origin is not None:
        added_origins[race_id] = origin
        field_origins[race_id] = {key: origin for key in record if key != RECORD_ID_KEY}
    updated = replace(
        draft,
        user_modified_races=races,
        added_race_ids=(*draft.added_race_ids, race_id),
        added_race_origins=added_origins,
        race_field_origins=field_origins,
    )
    return updated, race_id


def remove_added_race(draft: WorkingDraft, race_id: str) -> WorkingDraft:
    if race_id not in draft.added_race_ids:
        return draft
    return replace(
        draft,
        user_modified_races={k: v for k, v in draft.user_modified_races.items() if k != race_id},
        added_race_ids=tuple(rid for rid in draft.added_race_ids if rid != race_id),
        added_race_origins={k: v for k, v in draft.added_race_origins.items() if k != race_id},
        race_field_origins={k: v for k, v in draft.race_field_origins.items() if k != race_id},
    )


def _resolved_name(fields: Mapping[str, object], fallback: str | None) -> str | None:
    name = fields.get("name")
    return name if isinstance(name, str) else fallback


def resolve_race(draft: WorkingDraft, race_id: str) -> ResolvedRace | None:
    override = draft.user_modified_races.get(race_id, {})
    entity = draft.races.get(race_id)
    if entity is not None:
        fields = {**entity.original_fields, **entity.fields, **public_fields(override)}
        return ResolvedRace(
            id=race_id,
            name=_resolved_name(fields, entity.name),
            fields=fields,
            original_fields=entity.original_fields,
            is_deleted=bool(override.get(DELETED_MARKER)),
            is_existing_unchanged=entity.is_existing_unchanged,
        )
    if race_id in draft.added_race_ids and race_id in draft.user_modified_races:
        fields = public_fields(override)
        return ResolvedRace(
            id=race_id,
            name=_resolved_name(fields, None),
            fields=fields,
            original_fields={},
            is_deleted=bool(override.get(DELETED_MARKER)),
            is_added=True,
        )
    return None


def resolved_races(
    draft: WorkingDraft,
    *,
    include_deleted: bool = True,
) -> tuple[ResolvedRace, ...]:
    """Consolidated races followed by reviewer additions, overrides applied.

    Overrides keyed by ids the draft does not know are skipped here, so they can
    never surface as phantom races.
    """

    for race_id in draft.user_modified_races:
        if not draft.knows_race(race_id):
            log.debug("Ignoring override for unknown race %s", race_id)

    resolved = (resolve_race(draft, race_id) for race_id in _known_ids(draft))
    return tuple(
        race
        for race in resolved
        if race is not None and (include_deleted or not race.is_deleted)
    )


def _known_ids(draft: WorkingDraft) -> Iterable[str]:
    yield from draft.races.ids()
    yield from draft.added_race_ids
