"""Flat field consolidation over one or more source proposals."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from logging import getLogger
from typing import TYPE_CHECKING, cast

from draftdesk.domain.model import (
    UNSET,
    ConsolidatedField,
    ConsolidationMode,
    FieldOption,
    SourceProposal,
    WorkingDraft,
)

from .normalize import baseline_of, extract_new

if TYPE_CHECKING:
    from collections.abc import Sequence

log = getLogger(__name__)

EDITION_WRAPPER = "edition"
RACE_CHANGE_KEYS = frozenset(
    {
        "races",
        "racesToAdd",
        "racesToUpdate",
        "racesToDelete",
        "racesExisting",
        "existingRaces",
        "raceEdits",
        "racesToAddFiltered",
    }
)


def is_race_key(key: str) -> bool:
    return key in RACE_CHANGE_KEYS or key.startswith("race_")


def flatten_changes(changes: Mapping[str, object]) -> dict[str, object]:
    """Return ``field -> raw change record`` with race keys removed.

    The edition wrapper is unwrapped into top-level fields. Explicit top-level
    entries win over same-named fields inside the wrapper.
    """

    flat: dict[str, object] = {}
    nested: dict[str, object] = {}
    for key, raw in changes.items():
        if is_race_key(key):
            continue
        if key == EDITION_WRAPPER:
            edition = extract_new(raw)
            if isinstance(edition, Mapping):
                for sub_key, sub_raw in cast(Mapping[str, object], edition).items():
                    if not is_race_key(sub_key):
                        nested[sub_key] = sub_raw
                continue
        flat[key] = raw
    for key, raw in nested.items():
        flat.setdefault(key, raw)
    return flat


def proposed_fields(proposal: SourceProposal) -> dict[str, object]:
    """Proposed value per field for a single proposal."""
    return {key: extract_new(raw) for key, raw in flatten_changes(proposal.changes).items()}


def _option_for(proposal: SourceProposal, raw: object) -> FieldOption:
    provenance = proposal.provenance
    return FieldOption(
        source_id=proposal.id,
        value=extract_new(raw),
        agent_name=provenance.agent_name,
        confidence=provenance.confidence,
        created_at=provenance.created_at,
    )


def consolidate_fields(
    proposals: Sequence[SourceProposal],
    *,
    mode: ConsolidationMode,
) -> tuple[ConsolidatedField, ...]:
    """Build the consolidated field list from priority-sorted proposals.

    Single and primary-only modes read the first proposal only. Merge-all keeps
    one option per contributing proposal in priority order, so the first option
    is always the highest-priority source.
    """

    if not proposals:
        return ()
    contributing = proposals if mode is ConsolidationMode.MERGE_ALL else proposals[:1]

    options: dict[str, list[FieldOption]] = {}
    current: dict[str, object] = {}
    for proposal in contributing:
        for key, raw in flatten_changes(proposal.changes).items():
            options.setdefault(key, []).append(_option_for(proposal, raw))
            baseline = baseline_of(raw)
            if baseline is not UNSET and key not in current:
                current[key] = baseline

    log.debug(
        "Consolidated %d field(s) from %d proposal(s) in %s mode",
        len(options),
        len(contributing),
        mode,
    )
    return tuple(
        ConsolidatedField(field=key, options=tuple(field_options), current_value=current.get(key))
        for key, field_options in options.items()
    )


def set_field_override(
    draft: WorkingDraft,
    field: str,
    value: object,
    *,
    origin: str | None = None,
) -> WorkingDraft:
    """Record ``value`` as the reviewer's choice for ``field``.

    ``origin`` names the source proposal a copy came from; manual edits pass
    ``None`` and clear any copy bookkeeping for the field.
    """

    overrides = dict(draft.user_modified_fields)
    overrides[field] = value
    origins = dict(draft.field_origins)
    if origin is None:
        origins.pop(field, None)
    else:
        origins[field] = origin
    return replace(draft, user_modified_fields=overrides, field_origins=origins)


def clear_field_override(draft: WorkingDraft, field: str) -> WorkingDraft:
    if field not in draft.user_modified_fields and field not in draft.field_origins:
        return draft
    overrides = {key: value for key, value in draft.user_modified_fields.items() if key != field}
    origins = {key: value for key, value in draft.field_origins.items() if key != field}
    return replace(draft, user_modified_fields=overrides, field_origins=origins)
