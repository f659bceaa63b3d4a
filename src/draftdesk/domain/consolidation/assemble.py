"""Working-draft construction from a group of source proposals."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from draftdesk.domain.errors import DraftLoadError
from draftdesk.domain.model import ConsolidationMode, ProposalStatus, WorkingDraft

from .fields import consolidate_fields
from .priority import sort_by_priority
from .races import reconcile_races, restore_overrides

if TYPE_CHECKING:
    from collections.abc import Sequence

    from draftdesk.domain.model import SourceProposal

    from .priority import AgentPriorityTable

log = getLogger(__name__)


@dataclass(frozen=True, slots=True, kw_only=True)
class ProposalPartition:
    """Which loaded proposals seed the draft and whether it may be edited."""

    active: tuple[SourceProposal, ...]
    historical: tuple[SourceProposal, ...]
    read_only: bool


def partition_by_status(proposals: Sequence[SourceProposal]) -> ProposalPartition:
    """Pending work is editable; an all-approved group is shown read-only."""

    editable = tuple(p for p in proposals if p.status.is_editable)
    approved = tuple(p for p in proposals if p.status is ProposalStatus.APPROVED)
    if editable:
        active, read_only = editable, False
    elif approved:
        active, read_only = approved, True
    else:
        active, read_only = (), True
    active_ids = {p.id for p in active}
    historical = tuple(p for p in proposals if p.id not in active_ids)
    return ProposalPartition(active=active, historical=historical, read_only=read_only)


def resolve_mode(requested: ConsolidationMode, proposal_count: int) -> ConsolidationMode:
    if proposal_count <= 1 and requested is ConsolidationMode.PRIMARY_ONLY:
        return ConsolidationMode.SINGLE
    return requested


def build_working_draft(
    proposals: Sequence[SourceProposal],
    *,
    mode: ConsolidationMode = ConsolidationMode.PRIMARY_ONLY,
    priority: AgentPriorityTable | None = None,
    read_only: bool = False,
) -> WorkingDraft:
    """Seed a draft from priority-sorted proposals and the primary's saved deltas."""

    if not proposals:
        raise DraftLoadError("Cannot build a draft without source proposals")
    ordered = sort_by_priority(proposals, priority)
    primary = ordered[0]
    effective_mode = resolve_mode(mode, len(ordered))

    fields = consolidate_fields(ordered, mode=effective_mode)
    reconciliation = reconcile_races(ordered, mode=effective_mode)
    restored = restore_overrides(primary.user_modified_changes, reconciliation)

    log.info(
        "Built draft for primary %s (%s) from %d proposal(s): %d field(s), %d race(s)",
        primary.id,
        primary.agent_name or "unknown agent",
        len(ordered),
        len(fields),
        len(reconciliation.arena),
    )
    return WorkingDraft(
        primary_proposal_id=primary.id,
        proposal_ids=tuple(proposal.id for proposal in ordered),
        mode=effective_mode,
        fields=fields,
        races=reconciliation.arena,
        race_positions=reconciliation.positions,
        user_modified_fields=restored.fields,
        user_modified_races=restored.races,
        added_race_ids=restored.added_race_ids,
        approved_blocks=dict(primary.approved_blocks),
        read_only=read_only,
    )
