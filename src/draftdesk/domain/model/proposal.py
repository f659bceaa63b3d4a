"""Source proposals: immutable snapshots of one agent's suggested changes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .enums import ProposalStatus

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime


@dataclass(frozen=True, slots=True, kw_only=True)
class Provenance:
    """Who proposed a change, how sure they were, and when."""

    agent_name: str | None = None
    agent_id: str | None = None
    confidence: float | None = None
    created_at: datetime | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class RaceAddition:
    """A race the agent wants created. Addressed by its position in the proposal."""

    fields: Mapping[str, object]

    @property
    def name(self) -> str | None:
        value = self.fields.get("name")
        return value if isinstance(value, str) else None


@dataclass(frozen=True, slots=True, kw_only=True)
class RaceUpdate:
    """Field updates for a persisted race, keyed by its stable id."""

    race_id: str
    race_name: str | None = None
    updates: Mapping[str, object] = field(default_factory=dict)
    current_data: Mapping[str, object] | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class RaceUnchanged:
    """A persisted race the agent saw but did not change. Informational only."""

    race_id: str
    race_name: str | None = None
    fields: Mapping[str, object] = field(default_factory=dict)


@dataclass(frozen=True, slots=True, kw_only=True)
class SourceProposal:
    """One agent's complete set of proposed changes.

    ``changes`` keeps the heterogeneous wire shape (see ``parse_change``); race
    changes are lifted into the three ``races_*`` tuples. ``user_modified_changes``
    holds the reviewer deltas persisted for this proposal by an earlier session.
    """

    id: str
    provenance: Provenance = field(default_factory=Provenance)
    status: ProposalStatus = ProposalStatus.PENDING
    changes: Mapping[str, object] = field(default_factory=dict)
    races_to_add: tuple[RaceAddition, ...] = ()
    races_to_update: tuple[RaceUpdate, ...] = ()
    races_unchanged: tuple[RaceUnchanged, ...] = ()
    approved_blocks: Mapping[str, bool] = field(default_factory=dict)
    user_modified_changes: Mapping[str, object] = field(default_factory=dict)
    event_id: str | None = None
    edition_id: str | None = None
    updated_at: datetime | None = None

    @property
    def agent_name(self) -> str | None:
        return self.provenance.agent_name

    @property
    def has_races(self) -> bool:
        return bool(self.races_to_add or self.races_to_update or self.races_unchanged)
