from __future__ import annotations

from dataclasses import replace

import pytest

from draftdesk.domain.consolidation import build_working_draft, partition_by_status
from draftdesk.domain.consolidation.assemble import resolve_mode
from draftdesk.domain.errors import DraftLoadError
from draftdesk.domain.model import ConsolidationMode, ProposalStatus, SourceProposal


def test_primary_is_highest_priority(
    proposal_group: tuple[SourceProposal, ...],
) -> None:
    draft = build_working_draft(proposal_group)

    assert draft.primary_proposal_id == "proposal-ffa"
    assert draft.proposal_ids == ("proposal-ffa", "proposal-slack", "proposal-google")
    assert draft.mode is ConsolidationMode.PRIMARY_ONLY
    assert draft.get_field("city") is None
    assert draft.effective_value("startDate") == "2025-05-03"
    assert not draft.is_dirty


def test_single_proposal_resolves_to_single_mode(ffa: SourceProposal) -> None:
    assert build_working_draft([ffa]).mode is ConsolidationMode.SINGLE
    assert resolve_mode(ConsolidationMode.MERGE_ALL, 1) is ConsolidationMode.MERGE_ALL


def test_merge_all_fuses_every_proposal(
    proposal_group: tuple[SourceProposal, ...],
) -> None:
    draft = build_working_draft(proposal_group, mode=ConsolidationMode.MERGE_ALL)

    assert draft.effective_value("city") == "Lyon"
    assert draft.effective_value("registrationClosingDate") == "2025-05-08"
    assert "147546" in draft.races


def test_saved_deltas_of_primary_seed_overrides(
    ffa: SourceProposal,
    google: SourceProposal,
) -> None:
    primary = replace(
        ffa,
        user_modified_changes={"city": "Lyon", "raceEdits": {"existing-0": {"distance": 43}}},
        approved_blocks={"event": True},
    )
    alternate = replace(google, user_modified_changes={"city": "Nice"})

    draft = build_working_draft([alternate, primary])

    assert draft.user_modified_fields == {"city": "Lyon"}
    assert draft.user_modified_races == {"147544": {"distance": 43}}
    assert draft.approved_blocks == {"event": True}


def test_empty_group_cannot_be_built() -> None:
    with pytest.raises(DraftLoadError):
        build_working_draft([])


def test_partition_prefers_editable_proposals(
    ffa: SourceProposal,
    google: SourceProposal,
    slack: SourceProposal,
) -> None:
    approved = replace(ffa, status=ProposalStatus.APPROVED)
    rejected = replace(slack, status=ProposalStatus.REJECTED)

    partition = partition_by_status([approved, google, rejected])

    assert [p.id for p in partition.active] == ["proposal-google"]
    assert [p.id for p in partition.historical] == ["proposal-ffa", "proposal-slack"]
    assert not partition.read_only


def test_partition_falls_back_to_approved_read_only(
    ffa: SourceProposal,
    google: SourceProposal,
) -> None:
    approved = replace(ffa, status=ProposalStatus.APPROVED)
    archived = replace(google, status=ProposalStatus.ARCHIVED)

    partition = partition_by_status([approved, archived])

    assert [p.id for p in partition.active] == ["proposal-ffa"]
    assert [p.id for p in partition.historical] == ["proposal-google"]
    assert partition.read_only


def test_partition_with_nothing_usable(google: SourceProposal) -> None:
    partition = partition_by_status([replace(google, status=ProposalStatus.REJECTED)])

    assert partition.active == ()
    assert partition.read_only
