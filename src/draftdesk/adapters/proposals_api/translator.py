"""Translate proposals API payloads into domain source proposals."""

from __future__ import annotations

from collections.abc import Mapping
from logging import getLogger
from typing import cast

from pydantic import ValidationError

from draftdesk.domain.consolidation.normalize import extract_new
from draftdesk.domain.model import (
    Provenance,
    RaceAddition,
    RaceUnchanged,
    RaceUpdate,
    SourceProposal,
)

from .schema import ProposalPayload, RaceExistingPayload, RaceUpdatePayload

log = getLogger(__name__)

_NESTED_RACES_KEY = "races"
_NESTED_SECTION_KEYS = ("toAdd", "toUpdate")
_TO_ADD_KEY = "racesToAdd"
_TO_UPDATE_KEY = "racesToUpdate"
_EXISTING_KEYS = ("racesExisting", "existingRaces")


def _as_list(value: object) -> list[object]:
    value = extract_new(value)
    return list(cast(list[object], value)) if isinstance(value, list) else []


def _edition_races(changes: Mapping[str, object]) -> list[object]:
    edition = extract_new(changes.get("edition"))
    if not isinstance(edition, Mapping):
        return []
    return _as_list(cast(Mapping[str, object], edition).get(_NESTED_RACES_KEY))


def _keyed_races(
    races: Mapping[str, object],
) -> tuple[list[object], list[object]]:
    """Split a ``{raceId: data}`` map into additions and id-addressed updates.

    Numeric keys are persisted races; any other key is a race to create.
    """
    to_add: list[object] = []
    to_update: list[object] = []
    for key, data in races.items():
        if not isinstance(data, Mapping):
            continue
        record = cast(Mapping[str, object], data)
        if str(key).isdigit():
            name = extract_new(record.get("name"))
            to_update.append(
                {
                    "raceId": str(key),
                    "raceName": name if isinstance(name, str) else None,
                    "updates": {k: v for k, v in record.items() if k != "id"},
                }
            )
        else:
            to_add.append(record)
    return to_add, to_update


def _race_sections(
    changes: Mapping[str, object],
) -> tuple[list[object], list[object], list[object]]:
    to_add = _as_list(changes.get(_TO_ADD_KEY))
    to_update = _as_list(changes.get(_TO_UPDATE_KEY))
    existing: list[object] = []
    for key in _EXISTING_KEYS:
        existing.extend(_as_list(changes.get(key)))

    nested = extract_new(changes.get(_NESTED_RACES_KEY))
    if isinstance(nested, list):
        to_add.extend(cast(list[object], nested))
    elif isinstance(nested, Mapping):
        nested_map = cast(Mapping[str, object], nested)
        if any(key in nested_map for key in _NESTED_SECTION_KEYS):
            to_add.extend(_as_list(nested_map.get("toAdd")))
            to_update.extend(_as_list(nested_map.get("toUpdate")))
        else:
            keyed_add, keyed_update = _keyed_races(nested_map)
            to_add.extend(keyed_add)
            to_update.extend(keyed_update)

    to_add.extend(_edition_races(changes))
    return to_add, to_update, existing


def _parse_updates(items: list[object]) -> tuple[RaceUpdate, ...]:
    updates: list[RaceUpdate] = []
    for item in items:
        try:
            payload = RaceUpdatePayload.model_validate(item)
        except ValidationError:
            log.warning("Skipping malformed race update: %r", item)
            continue
        updates.append(
            RaceUpdate(
                race_id=payload.race_id,
                race_name=payload.race_name,
                updates=payload.updates,
                current_data=payload.current_data,
            )
        )
    return tuple(updates)


def _parse_existing(items: list[object]) -> tuple[RaceUnchanged, ...]:
    existing: list[RaceUnchanged] = []
    for item in items:
        try:
            payload = RaceExistingPayload.model_validate(item)
        except ValidationError:
            log.debug("Skipping unchanged race without id: %r", item)
            continue
        existing.append(
            RaceUnchanged(
                race_id=payload.race_id,
                race_name=payload.race_name,
                fields=payload.race_fields,
            )
        )
    return tuple(existing)


def _parse_additions(items: list[object]) -> tuple[RaceAddition, ...]:
    return tuple(
        RaceAddition(
            fields={
                key: extract_new(value)
                for key, value in cast(Mapping[str, object], item).items()
            }
        )
        for item in items
        if isinstance(item, Mapping)
    )


def _strip_races(record: Mapping[str, object]) -> dict[str, object]:
    return {key: value for key, value in record.items() if key != _NESTED_RACES_KEY}


def _without_races(changes: Mapping[str, object]) -> dict[str, object]:
    kept = {
        key: value
        for key, value in changes.items()
        if key not in {_NESTED_RACES_KEY, _TO_ADD_KEY, _TO_UPDATE_KEY, *_EXISTING_KEYS}
    }
    edition = kept.get("edition")
    if isinstance(edition, Mapping):
        edition_map = cast(Mapping[str, object], edition)
        inner = edition_map.get("new")
        if isinstance(inner, Mapping):
            kept["edition"] = {
                **edition_map,
                "new": _strip_races(cast(Mapping[str, object], inner)),
            }
        elif _NESTED_RACES_KEY in edition_map:
            kept["edition"] = _strip_races(edition_map)
    return kept


def parse_proposal_model(payload: ProposalPayload) -> SourceProposal:
    to_add, to_update, existing = _race_sections(payload.changes)
    return SourceProposal(
        id=payload.id,
        provenance=Provenance(
            agent_name=payload.agent_name,
            agent_id=payload.agent_id,
            confidence=payload.confidence,
            created_at=payload.created_at,
        ),
        status=payload.status,
        changes=_without_races(payload.changes),
        races_to_add=_parse_additions(to_add),
        races_to_update=_parse_updates(to_update),
        races_unchanged=_parse_existing(existing),
        approved_blocks=dict(payload.approved_blocks),
        user_modified_changes=dict(payload.user_modified_changes),
        event_id=payload.event_id,
        edition_id=payload.edition_id,
        updated_at=payload.updated_at,
    )


def parse_proposal(payload: object) -> SourceProposal:
    """Validate a raw proposal mapping and translate it."""
    return parse_proposal_model(ProposalPayload.model_validate(payload))
