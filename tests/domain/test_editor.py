from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import UTC, datetime

import pytest

from draftdesk.domain.editor import DraftEditor
from draftdesk.domain.errors import (
    DraftLoadError,
    DraftNotLoadedError,
    DraftReadOnlyError,
    PersistenceError,
    UnknownSourceError,
)
from draftdesk.domain.model import BlockKey, EditorState, ProposalStatus, SourceProposal
from tests.support.stores import FakeProposalStore

SAVED_AT = datetime(2025, 3, 2, 9, 30, tzinfo=UTC)
GROUP_IDS = ("proposal-google", "proposal-ffa", "proposal-slack")


def _editor(store: FakeProposalStore, *, autosave_delay: float | None = None) -> DraftEditor:
    return DraftEditor(store, autosave_delay=autosave_delay, clock=lambda: SAVED_AT)


def test_load_builds_draft_from_all_proposals(store: FakeProposalStore) -> None:
    editor = _editor(store)

    draft = asyncio.run(editor.load([*GROUP_IDS, "proposal-ffa"]))

    assert editor.state is EditorState.READY
    assert store.fetched == list(GROUP_IDS)
    assert draft.primary_proposal_id == "proposal-ffa"
    assert editor.active_source.id == "proposal-slack"
    assert [source.id for source in editor.sources] == [
        "proposal-ffa",
        "proposal-slack",
        "proposal-google",
    ]


def test_load_failure_is_terminal(store: FakeProposalStore) -> None:
    editor = _editor(store)

    with pytest.raises(DraftLoadError) as excinfo:
        asyncio.run(editor.load(["proposal-ffa", "missing"]))

    assert editor.state is EditorState.FAILED
    assert isinstance(editor.error, PersistenceError)
    assert excinfo.value.proposal_ids == ("proposal-ffa", "missing")
    assert isinstance(excinfo.value.__cause__, PersistenceError)
    with pytest.raises(DraftNotLoadedError):
        _ = editor.draft


def test_load_requires_ids(store: FakeProposalStore) -> None:
    with pytest.raises(DraftLoadError):
        asyncio.run(_editor(store).load([]))


def test_load_with_only_rejected_proposals_fails(google: SourceProposal) -> None:
    store = FakeProposalStore([replace(google, status=ProposalStatus.REJECTED)])
    editor = _editor(store)

    with pytest.raises(DraftLoadError, match="pending or approved"):
        asyncio.run(editor.load(["proposal-google"]))

    assert editor.state is EditorState.FAILED


def test_actions_before_load_raise(store: FakeProposalStore) -> None:
    editor = _editor(store)

    assert not editor.has_unsaved_changes()
    with pytest.raises(DraftNotLoadedError):
        editor.update_field("city", "Lyon")


def test_edits_mark_dirty_and_bump_revision(
    store: FakeProposalStore,
    proposal_group: tuple[SourceProposal, ...],
) -> None:
    editor = _editor(store)
    editor.open(proposal_group)

    editor.update_field("city", "Lyon")
    editor.update_race("147544", "distance", 43)

    assert editor.has_unsaved_changes()
    assert editor.draft.revision == 2
    assert editor.autosave_diff() == {
        "city": "Lyon",
        "raceEdits": {"147544": {"distance": 43}},
    }


def test_revert_field(store: FakeProposalStore, proposal_group: tuple[SourceProposal, ...]) -> None:
    editor = _editor(store)
    editor.open(proposal_group)
    editor.update_field("startDate", "2025-06-01")

    editor.revert_field("startDate")

    assert editor.draft.effective_value("startDate") == "2025-05-03"
    assert editor.autosave_diff() == {}


def test_select_option(store: FakeProposalStore, ffa: SourceProposal) -> None:
    editor = _editor(store)
    editor.open([ffa])

    editor.select_option("startDate", "proposal-ffa")

    assert editor.draft.user_modified_fields == {"startDate": "2025-05-03"}
    # equal to the proposed value, so nothing to persist
    assert editor.autosave_diff() == {}
    with pytest.raises(UnknownSourceError):
        editor.select_option("startDate", "proposal-google")


def test_select_serialized_option_ignores_garbage(
    store: FakeProposalStore,
    proposal_group: tuple[SourceProposal, ...],
    caplog: pytest.LogCaptureFixture,
) -> None:
    editor = _editor(store)
    before = editor.open(proposal_group)

    after = editor.select_serialized_option("year", "{not json")

    assert after is before
    assert not editor.has_unsaved_changes()
    assert "unparsable" in caplog.text

    editor.select_serialized_option("year", "2026")
    assert editor.draft.user_modified_fields == {"year": 2026}


@pytest.mark.parametrize("raw", [None, {"city": "Lyon"}, 42])
def test_select_serialized_option_ignores_non_text_input(
    store: FakeProposalStore,
    proposal_group: tuple[SourceProposal, ...],
    caplog: pytest.LogCaptureFixture,
    raw: object,
) -> None:
    editor = _editor(store)
    before = editor.open(proposal_group)

    after = editor.select_serialized_option("city", raw)

    assert after is before
    assert not editor.has_unsaved_changes()
    assert "unparsable" in caplog.text


def test_add_delete_and_copy_through_editor(
    store: FakeProposalStore,
    proposal_group: tuple[SourceProposal, ...],
) -> None:
    editor = _editor(store)
    editor.open(proposal_group)

    race_id = editor.add_race({"name": "Relay"})
    editor.delete_race("147545")
    editor.set_active_source("proposal-google")
    copied_id = editor.copy_race("147546")
    editor.copy_field("registrationClosingDate")

    races = {race.id: race for race in editor.races()}
    assert races[race_id].is_added
    assert races["147545"].is_deleted
    assert races[copied_id].name == "Night Trail"
    diff = editor.autosave_diff()
    assert diff["racesToDelete"] == [147545]
    assert diff["registrationClosingDate"] == "2025-05-08"
    assert {race_id, copied_id} <= set(diff["raceEdits"])  # type: ignore[arg-type]
    assert {d.field for d in editor.field_differences() if d.is_different} >= {"websiteUrl"}


def test_copy_all_through_editor(
    store: FakeProposalStore,
    proposal_group: tuple[SourceProposal, ...],
) -> None:
    editor = _editor(store)
    editor.open(proposal_group)

    editor.copy_all()

    assert editor.autosave_diff() == {"city": "Lyon", "raceEdits": {"147544": {"distance": 43}}}
    trail = next(diff for diff in editor.race_differences() if diff.race_id == "147544")
    distance = next(diff for diff in trail.field_diffs if diff.field == "distance")
    assert not distance.is_different


def test_reset_drops_unsaved_edits(
    store: FakeProposalStore,
    proposal_group: tuple[SourceProposal, ...],
) -> None:
    editor = _editor(store)
    editor.open(proposal_group)
    editor.update_field("city", "Lyon")

    draft = editor.reset()

    assert draft.user_modified_fields == {}
    assert not editor.has_unsaved_changes()


def test_read_only_draft_rejects_edits(ffa: SourceProposal) -> None:
    approved = replace(ffa, status=ProposalStatus.APPROVED)
    store = FakeProposalStore([approved])
    editor = _editor(store)

    draft = asyncio.run(editor.load(["proposal-ffa"]))

    assert draft.read_only
    with pytest.raises(DraftReadOnlyError):
        editor.update_field("city", "Lyon")
    assert asyncio.run(editor.save()) is False
    assert store.persisted == []


def test_save_persists_diff_on_primary(
    store: FakeProposalStore,
    proposal_group: tuple[SourceProposal, ...],
) -> None:
    editor = _editor(store)
    editor.open(proposal_group)
    editor.update_field("city", "Lyon")

    assert asyncio.run(editor.save()) is True

    assert store.persisted == [("proposal-ffa", {"city": "Lyon"})]
    assert not editor.has_unsaved_changes()
    assert editor.draft.last_saved == SAVED_AT


def test_failed_save_keeps_draft_dirty(
    store: FakeProposalStore,
    proposal_group: tuple[SourceProposal, ...],
) -> None:
    editor = _editor(store)
    editor.open(proposal_group)
    editor.update_field("city", "Lyon")
    store.fail_persist = True

    with pytest.raises(PersistenceError):
        asyncio.run(editor.save())

    assert editor.has_unsaved_changes()
    assert editor.draft.last_saved is None
    assert not editor.is_saving


def test_save_while_in_flight_is_noop(
    store: FakeProposalStore,
    proposal_group: tuple[SourceProposal, ...],
) -> None:
    editor = _editor(store)
    editor.open(proposal_group)
    editor.update_field("city", "Lyon")

    async def scenario() -> tuple[bool, bool, bool]:
        gate = asyncio.Event()
        store.persist_gate = gate
        first = asyncio.create_task(editor.save())
        await asyncio.sleep(0)
        in_flight = editor.is_saving
        second = await editor.save()
        gate.set()
        return in_flight, second, await first

    in_flight, second, first = asyncio.run(scenario())

    assert in_flight
    assert second is False
    assert first is True
    assert len(store.persisted) == 1


def test_edit_during_save_stays_dirty(
    store: FakeProposalStore,
    proposal_group: tuple[SourceProposal, ...],
) -> None:
    editor = _editor(store)
    editor.open(proposal_group)
    editor.update_field("city", "Lyon")

    async def scenario() -> None:
        gate = asyncio.Event()
        store.persist_gate = gate
        pending = asyncio.create_task(editor.save())
        await asyncio.sleep(0)
        editor.update_field("city", "Nice")
        gate.set()
        await pending

    asyncio.run(scenario())

    assert store.persisted == [("proposal-ffa", {"city": "Lyon"})]
    assert editor.has_unsaved_changes()
    assert editor.draft.last_saved == SAVED_AT


def test_autosave_is_debounced(
    store: FakeProposalStore,
    proposal_group: tuple[SourceProposal, ...],
) -> None:
    editor = _editor(store, autosave_delay=0.1)
    editor.open(proposal_group)

    async def scenario() -> None:
        editor.update_field("city", "Lyon")
        await asyncio.sleep(0.01)
        editor.update_field("city", "Nice")
        await asyncio.sleep(0.01)
        editor.update_field("year", 2026)
        await asyncio.sleep(0.4)
        await editor.aclose()

    asyncio.run(scenario())

    assert store.persisted == [("proposal-ffa", {"city": "Nice", "year": 2026})]
    assert not editor.has_unsaved_changes()


def test_autosave_failure_is_logged_not_raised(
    store: FakeProposalStore,
    proposal_group: tuple[SourceProposal, ...],
    caplog: pytest.LogCaptureFixture,
) -> None:
    editor = _editor(store, autosave_delay=0.01)
    editor.open(proposal_group)
    store.fail_persist = True

    async def scenario() -> None:
        editor.update_field("city", "Lyon")
        await asyncio.sleep(0.1)
        await editor.aclose()

    asyncio.run(scenario())

    assert editor.has_unsaved_changes()
    assert "Autosave failed" in caplog.text


def test_teardown_cancels_pending_autosave(
    store: FakeProposalStore,
    proposal_group: tuple[SourceProposal, ...],
) -> None:
    async def scenario() -> None:
        async with _editor(store, autosave_delay=0.05) as editor:
            editor.open(proposal_group)
            editor.update_field("city", "Lyon")
        await asyncio.sleep(0.1)

    asyncio.run(scenario())

    assert store.persisted == []


def test_validate_block_flushes_then_validates(
    store: FakeProposalStore,
    proposal_group: tuple[SourceProposal, ...],
) -> None:
    editor = _editor(store)
    editor.open(proposal_group)
    editor.update_field("registrantsNumber", 950)

    asyncio.run(editor.validate_block(BlockKey.EDITION))

    assert store.persisted == [("proposal-ffa", {"registrantsNumber": 950})]
    assert store.validated == [
        (
            "proposal-ffa",
            "edition",
            {"startDate": "2025-05-03", "year": 2025, "registrantsNumber": 950},
        )
    ]
    assert editor.draft.approved_blocks == {"edition": True}
    assert not editor.has_unsaved_changes()


def test_validate_failure_propagates(
    store: FakeProposalStore,
    proposal_group: tuple[SourceProposal, ...],
) -> None:
    editor = _editor(store)
    editor.open(proposal_group)
    store.fail_validate = True

    with pytest.raises(PersistenceError):
        asyncio.run(editor.validate_block(BlockKey.EVENT))

    assert editor.draft.approved_blocks == {}


def test_unvalidate_block(
    ffa: SourceProposal,
    google: SourceProposal,
) -> None:
    store = FakeProposalStore([replace(ffa, approved_blocks={"event": True}), google])
    editor = _editor(store)
    asyncio.run(editor.load(["proposal-ffa", "proposal-google"]))

    asyncio.run(editor.unvalidate_block(BlockKey.EVENT))

    assert store.unvalidated == [("proposal-ffa", "event")]
    assert editor.draft.approved_blocks == {"event": False}


def test_validate_all_blocks_skips_approved(
    ffa: SourceProposal,
) -> None:
    store = FakeProposalStore([replace(ffa, approved_blocks={"event": True})])
    editor = _editor(store)
    asyncio.run(editor.load(["proposal-ffa"]))

    validated = asyncio.run(editor.validate_all_blocks())

    assert validated == (BlockKey.EDITION, BlockKey.RACES)
    assert [block for _, block, _ in store.validated] == ["edition", "races"]
    assert editor.draft.approved_blocks == {"event": True, "edition": True, "races": True}
    assert editor.blocks_with_changes() == ()
