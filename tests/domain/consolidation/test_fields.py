from __future__ import annotations

from draftdesk.domain.consolidation import consolidate_fields, flatten_changes
from draftdesk.domain.consolidation.fields import (
    clear_field_override,
    is_race_key,
    proposed_fields,
    set_field_override,
)
from draftdesk.domain.model import ConsolidationMode, SourceProposal, WorkingDraft
from tests.support.proposals import make_proposal


def test_flatten_changes_unwraps_edition_and_drops_races() -> None:
    changes = {
        "city": {"old": "Paris", "new": "Lyon"},
        "edition": {"new": {"year": 2025, "startDate": "nested", "races": []}},
        "startDate": {"new": "top-level"},
        "racesToAdd": [{"name": "5km"}],
        "race_0": {"name": "legacy"},
    }

    flat = flatten_changes(changes)

    assert set(flat) == {"city", "year", "startDate"}
    assert flat["startDate"] == {"new": "top-level"}
    assert flat["year"] == 2025


def test_is_race_key() -> None:
    assert is_race_key("racesToUpdate")
    assert is_race_key("raceEdits")
    assert is_race_key("race_3")
    assert not is_race_key("raceName")


def test_proposed_fields(ffa: SourceProposal) -> None:
    assert proposed_fields(ffa) == {
        "startDate": "2025-05-03",
        "websiteUrl": "https://trail.example/ffa",
        "year": 2025,
        "registrantsNumber": 800,
    }


def test_primary_only_seeds_from_first_proposal(
    ffa: SourceProposal,
    slack: SourceProposal,
) -> None:
    fields = consolidate_fields([ffa, slack], mode=ConsolidationMode.PRIMARY_ONLY)

    names = [consolidated.field for consolidated in fields]
    assert "city" not in names
    start = next(f for f in fields if f.field == "startDate")
    assert [option.source_id for option in start.options] == ["proposal-ffa"]
    assert start.current_value == "2025-05-01"
    assert start.options[0].agent_name == "FFA Results Scraper"


def test_merge_all_keeps_options_in_priority_order(
    ffa: SourceProposal,
    slack: SourceProposal,
    google: SourceProposal,
) -> None:
    fields = consolidate_fields([ffa, slack, google], mode=ConsolidationMode.MERGE_ALL)

    start = next(f for f in fields if f.field == "startDate")
    assert [option.source_id for option in start.options] == [
        "proposal-ffa",
        "proposal-slack",
        "proposal-google",
    ]
    assert start.proposed_value == "2025-05-03"
    city = next(f for f in fields if f.field == "city")
    assert city.proposed_value == "Lyon"
    assert city.current_value == "Paris"


def test_consolidate_fields_without_proposals() -> None:
    assert consolidate_fields([], mode=ConsolidationMode.SINGLE) == ()


def test_confidence_wrapper_has_no_current_value() -> None:
    proposal = make_proposal("p", changes={"websiteUrl": {"new": "https://x", "confidence": 1}})

    (consolidated,) = consolidate_fields([proposal], mode=ConsolidationMode.SINGLE)

    assert consolidated.proposed_value == "https://x"
    assert consolidated.current_value is None


def test_field_override_set_and_clear() -> None:
    draft = WorkingDraft(primary_proposal_id="p", proposal_ids=("p",))

    copied = set_field_override(draft, "city", "Lyon", origin="other")
    assert copied.user_modified_fields == {"city": "Lyon"}
    assert copied.field_origins == {"city": "other"}

    edited = set_field_override(copied, "city", "Nice")
    assert edited.field_origins == {}

    cleared = clear_field_override(edited, "city")
    assert cleared.user_modified_fields == {}
    assert clear_field_override(cleared, "city") is cleared
