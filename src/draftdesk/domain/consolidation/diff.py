"""Autosave diffs and block-approval payloads.

The two are never conflated: the autosave diff carries reviewer deltas only,
while a block payload carries the effective value of every field in the block.
"""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from draftdesk.domain.model import UNSET, BlockKey

from .normalize import values_equal
from .races import (
    DELETED_MARKER,
    agent_addition_index,
    is_persisted_race_id,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from draftdesk.domain.model import WorkingDraft
    from draftdesk.domain.ports.classifier import BlockClassifier

log = getLogger(__name__)

RACE_EDITS_KEY = "raceEdits"
RACES_TO_DELETE_KEY = "racesToDelete"
RACES_TO_ADD_FILTERED_KEY = "racesToAddFiltered"
_RACE_SECTIONS = frozenset({RACE_EDITS_KEY, RACES_TO_DELETE_KEY, RACES_TO_ADD_FILTERED_KEY})


def _race_edit_sections(
    draft: WorkingDraft,
    *,
    positional: bool,
) -> tuple[dict[str, dict[str, object]], list[int], list[int]]:
    edits: dict[str, dict[str, object]] = {}
    to_delete: list[int] = []
    filtered: list[int] = []
    for race_id, record in draft.user_modified_races.items():
        if not draft.knows_race(race_id):
            log.debug("Skipping override for unknown race %s", race_id)
            continue
        key = draft.race_positions.get(race_id, race_id) if positional else race_id
        if record.get(DELETED_MARKER):
            if is_persisted_race_id(race_id):
                # keep the record so an undo after reload restores its content
                edits[key] = dict(record)
                to_delete.append(int(race_id))
            elif (index := agent_addition_index(race_id)) is not None:
                filtered.append(index)
            continue
        edits[key] = dict(record)
    return edits, sorted(to_delete), sorted(filtered)


def build_autosave_diff(draft: WorkingDraft) -> dict[str, object]:
    """Reviewer deltas to persist on the primary proposal.

    Overrides equal to the field's proposed value are left out, and temporary
    races marked deleted are omitted since nothing was ever persisted for them.
    """

    diff: dict[str, object] = {}
    for field, value in draft.user_modified_fields.items():
        if values_equal(draft.proposed_value(field), value):
            continue
        diff[field] = value

    edits, to_delete, filtered = _race_edit_sections(draft, positional=False)
    if edits:
        diff[RACE_EDITS_KEY] = edits
    if to_delete:
        diff[RACES_TO_DELETE_KEY] = to_delete
    if filtered:
        diff[RACES_TO_ADD_FILTERED_KEY] = filtered
    return diff


def build_races_payload(draft: WorkingDraft) -> dict[str, object]:
    edits, to_delete, filtered = _race_edit_sections(draft, positional=True)
    payload: dict[str, object] = {RACE_EDITS_KEY: edits, RACES_TO_DELETE_KEY: to_delete}
    if filtered:
        payload[RACES_TO_ADD_FILTERED_KEY] = filtered
    return payload


def build_block_payload(
    draft: WorkingDraft,
    block_key: str,
    classifier: BlockClassifier,
) -> dict[str, object]:
    """Effective values for every field the classifier puts in ``block_key``.

    The races block instead carries the full race-edit map, keyed by the
    backend's positional ``existing-<index>`` names where one exists.
    """

    if block_key == BlockKey.RACES:
        return build_races_payload(draft)
    payload: dict[str, object] = {}
    for consolidated in draft.consolidated_fields():
        if classifier(consolidated.field) != block_key:
            continue
        value = consolidated.effective_value
        if value is not UNSET:
            payload[consolidated.field] = value
    return payload


def build_full_payload(draft: WorkingDraft) -> dict[str, object]:
    """Every effective field value plus the race sections."""

    payload: dict[str, object] = {
        consolidated.field: consolidated.effective_value
        for consolidated in draft.consolidated_fields()
        if consolidated.effective_value is not UNSET
    }
    payload.update(build_races_payload(draft))
    return payload


def blocks_with_changes(draft: WorkingDraft, classifier: BlockClassifier) -> tuple[str, ...]:
    """Blocks that hold at least one reviewer override, in first-touched order."""

    blocks: dict[str, None] = {}
    for field, value in draft.user_modified_fields.items():
        if values_equal(draft.proposed_value(field), value):
            continue
        block = classifier(field)
        if block is not None:
            blocks.setdefault(block, None)
    if any(draft.knows_race(race_id) for race_id in draft.user_modified_races):
        blocks.setdefault(BlockKey.RACES, None)
    return tuple(blocks)


def blocks_in_draft(draft: WorkingDraft, classifier: BlockClassifier) -> tuple[str, ...]:
    blocks: dict[str, None] = {}
    for consolidated in draft.consolidated_fields():
        block = classifier(consolidated.field)
        if block is not None:
            blocks.setdefault(block, None)
    if len(draft.races) or draft.added_race_ids:
        blocks.setdefault(BlockKey.RACES, None)
    return tuple(blocks)


def describe_diff(diff: Mapping[str, object]) -> str:
    race_edits = diff.get(RACE_EDITS_KEY)
    fields = [key for key in diff if key not in _RACE_SECTIONS]
    edit_count = len(race_edits) if isinstance(race_edits, dict) else 0
    return f"{len(fields)} field(s), {edit_count} race edit(s)"
