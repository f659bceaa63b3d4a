"""The draft editor: one owned engine instance per reviewed proposal group.

Every reviewer action runs synchronously against the current draft and swaps
in the resulting draft. Edits restart a debounced autosave; saves never
overlap, and a save that fails leaves the draft dirty.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import replace
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from draftdesk.domain.consolidation import (
    DEFAULT_BLOCK_CLASSIFIER,
    TwoPaneState,
    blocks_with_changes,
    build_autosave_diff,
    build_block_payload,
    build_full_payload,
    build_working_draft,
    copy_all,
    copy_field,
    copy_race,
    field_differences,
    partition_by_status,
    race_differences,
    resolved_races,
    toggle_race_deleted,
)
from draftdesk.domain.consolidation.diff import blocks_in_draft, describe_diff
from draftdesk.domain.consolidation.fields import clear_field_override, set_field_override
from draftdesk.domain.consolidation.races import add_race, set_race_field
from draftdesk.domain.errors import (
    DraftLoadError,
    DraftNotLoadedError,
    DraftReadOnlyError,
    UnknownSourceError,
)
from draftdesk.domain.model import ConsolidationMode, EditorState

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence
    from types import TracebackType

    from draftdesk.domain.consolidation import AgentPriorityTable
    from draftdesk.domain.model import (
        FieldDiff,
        RaceDiff,
        ResolvedRace,
        SourceProposal,
        WorkingDraft,
    )
    from draftdesk.domain.ports import BlockClassifier, ProposalStore

log = getLogger(__name__)

DEFAULT_AUTOSAVE_DELAY_SECONDS = 2.0


def _utcnow() -> datetime:
    return datetime.now(UTC)


class DraftEditor:
    def __init__(
        self,
        store: ProposalStore,
        *,
        classifier: BlockClassifier | None = None,
        priority: AgentPriorityTable | None = None,
        mode: ConsolidationMode = ConsolidationMode.PRIMARY_ONLY,
        autosave_delay: float | None = DEFAULT_AUTOSAVE_DELAY_SECONDS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._classifier: BlockClassifier = classifier or DEFAULT_BLOCK_CLASSIFIER
        self._priority = priority
        self._mode = mode
        self._autosave_delay = autosave_delay
        self._clock = clock

        self.state = EditorState.IDLE
        self.error: BaseException | None = None
        self._draft: WorkingDraft | None = None
        self._pane: TwoPaneState | None = None
        self._proposals: tuple[SourceProposal, ...] = ()
        self._historical: tuple[SourceProposal, ...] = ()
        self._saving = False
        self._autosave_handle: asyncio.TimerHandle | None = None
        self._autosave_tasks: set[asyncio.Task[None]] = set()

    async def __aenter__(self) -> DraftEditor:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    # --- Loading -------------------------------------------------------------

    async def load(self, proposal_ids: Sequence[str]) -> WorkingDraft:
        """Fetch every proposal concurrently, then build the draft once."""

        ids = tuple(dict.fromkeys(proposal_ids))
        if not ids:
            raise DraftLoadError("No proposal ids given")
        self._cancel_autosave()
        self.state = EditorState.LOADING
        self.error = None
        log.info("Loading %d proposal(s): %s", len(ids), ", ".join(ids))
        try:
            proposals = await asyncio.gather(*(self._store.fetch(pid) for pid in ids))
            self._install(proposals, proposal_ids=ids)
        except Exception as exc:
            self.state = EditorState.FAILED
            self.error = exc
            log.error("Loading proposals %s failed: %s", ", ".join(ids), exc)
            if isinstance(exc, DraftLoadError):
                raise
            raise DraftLoadError(
                f"Could not load proposals {', '.join(ids)}", proposal_ids=ids
            ) from exc
        self.state = EditorState.READY
        return self.draft

    def open(self, proposals: Sequence[SourceProposal]) -> WorkingDraft:
        """Build the draft from proposals that were fetched elsewhere."""

        ids = tuple(proposal.id for proposal in proposals)
        try:
            self._install(proposals, proposal_ids=ids)
        except DraftLoadError as exc:
            self.state = EditorState.FAILED
            self.error = exc
            raise
        self.state = EditorState.READY
        return self.draft

    def _install(
        self,
        proposals: Sequence[SourceProposal],
        *,
        proposal_ids: tuple[str, ...],
    ) -> None:
        partition = partition_by_status(proposals)
        if not partition.active:
            raise DraftLoadError(
                "None of the proposals is pending or approved", proposal_ids=proposal_ids
            )
        self._proposals = partition.active
        self._historical = partition.historical
        self._draft = build_working_draft(
            partition.active,
            mode=self._mode,
            priority=self._priority,
            read_only=partition.read_only,
        )
        self._pane = TwoPaneState.from_proposals(partition.active, self._priority)
        if partition.read_only:
            log.info("No pending proposals; draft is read-only")

    def reset(self) -> WorkingDraft:
        """Rebuild the draft from the loaded sources, dropping unsaved edits."""

        self._require_loaded()
        self._cancel_autosave()
        self._install(self._proposals, proposal_ids=tuple(p.id for p in self._proposals))
        log.info("Draft reset to the loaded proposals")
        return self.draft

    # --- Accessors -----------------------------------------------------------

    @property
    def draft(self) -> WorkingDraft:
        return self._require_loaded()

    @property
    def sources(self) -> tuple[SourceProposal, ...]:
        return self._require_pane().sources

    @property
    def historical(self) -> tuple[SourceProposal, ...]:
        return self._historical

    @property
    def active_index(self) -> int:
        return self._require_pane().active_index

    @property
    def active_source(self) -> SourceProposal:
        return self._require_pane().active_source

    @property
    def is_saving(self) -> bool:
        return self._saving

    def has_unsaved_changes(self) -> bool:
        return self._draft is not None and self._draft.is_dirty

    def races(self, *, include_deleted: bool = True) -> tuple[ResolvedRace, ...]:
        return resolved_races(self.draft, include_deleted=include_deleted)

    def autosave_diff(self) -> dict[str, object]:
        return build_autosave_diff(self.draft)

    def payload(self) -> dict[str, object]:
        return build_full_payload(self.draft)

    def block_payload(self, block_key: str) -> dict[str, object]:
        return build_block_payload(self.draft, block_key, self._classifier)

    def blocks_with_changes(self) -> tuple[str, ...]:
        return blocks_with_changes(self.draft, self._classifier)

    def field_differences(self) -> tuple[FieldDiff, ...]:
        return field_differences(self.draft, self.active_source)

    def race_differences(self) -> tuple[RaceDiff, ...]:
        return race_differences(self.draft, self.active_source)

    def set_active_index(self, index: int) -> SourceProposal:
        self._pane = self._require_pane().with_active_index(index)
        return self._pane.active_source

    def set_active_source(self, source_id: str) -> SourceProposal:
        self._pane = self._require_pane().with_active_source(source_id)
        return self._pane.active_source

    # --- Reviewer actions ----------------------------------------------------

    def update_field(self, field: str, value: object) -> WorkingDraft:
        return self._commit(set_field_override(self._editable(), field, value))

    def revert_field(self, field: str) -> WorkingDraft:
        return self._commit(clear_field_override(self._editable(), field))

    def select_option(self, field: str, source_id: str) -> WorkingDraft:
        draft = self._editable()
        consolidated = draft.get_field(field)
        options = consolidated.options if consolidated is not None else ()
        for option in options:
            if option.source_id == source_id:
                return self._commit(set_field_override(draft, field, option.value))
        raise UnknownSourceError(f"No option from {source_id} for field {field}")

    def select_serialized_option(self, field: str, raw: object) -> WorkingDraft:
        """Select a JSON-encoded value; unparsable input leaves the draft untouched."""

        draft = self._editable()
        try:
            value = json.loads(raw)  # type: ignore[reportArgumentType]
        except (TypeError, ValueError) as exc:
            log.warning("Ignoring unparsable value for %s: %s", field, exc)
            return draft
        return self._commit(set_field_override(draft, field, value))

    def update_race(self, race_id: str, field: str, value: object) -> WorkingDraft:
        return self._commit(set_race_field(self._editable(), race_id, field, value))

    def delete_race(self, race_id: str) -> WorkingDraft:
        """Toggle the soft-delete marker on a race."""
        return self._commit(toggle_race_deleted(self._editable(), race_id))

    def add_race(self, fields: Mapping[str, object]) -> str:
        draft, race_id = add_race(self._editable(), fields)
        self._commit(draft)
        log.debug("Added race %s", race_id)
        return race_id

    def copy_field(self, field: str) -> WorkingDraft:
        return self._commit(copy_field(self._editable(), self._require_pane(), field))

    def copy_race(self, source_race_id: str, target_race_id: str | None = None) -> str:
        draft, race_id = copy_race(
            self._editable(), self._require_pane(), source_race_id, target_race_id
        )
        self._commit(draft)
        return race_id

    def copy_all(self) -> WorkingDraft:
        return self._commit(copy_all(self._editable(), self._require_pane()))

    # --- Persistence ---------------------------------------------------------

    async def save(self) -> bool:
        """Persist the autosave diff on the primary proposal.

        Returns ``False`` without doing anything when a save is already in flight
        or the draft is read-only. Failures keep the draft dirty and propagate.
        """

        draft = self.draft
        if draft.read_only:
            log.debug("Draft is read-only; nothing to save")
            return False
        if self._saving:
            log.debug("Save already in flight; skipping")
            return False

        self._saving = True
        diff = build_autosave_diff(draft)
        try:
            await self._store.persist_overrides(draft.primary_proposal_id, diff)
        except Exception:
            log.warning("Saving draft for %s failed; changes kept", draft.primary_proposal_id)
            raise
        finally:
            self._saving = False

        current = self.draft
        saved_at = self._clock()
        if current.revision == draft.revision:
            self._draft = replace(current, is_dirty=False, last_saved=saved_at)
        else:
            self._draft = replace(current, last_saved=saved_at)
        log.info("Saved %s for %s", describe_diff(diff), draft.primary_proposal_id)
        return True

    async def validate_block(self, block_key: str) -> None:
        """Flush pending edits, then approve ``block_key`` with its effective values."""

        self._editable()
        await self.save()
        await self._validate(block_key)

    async def unvalidate_block(self, block_key: str) -> None:
        draft = self._editable()
        await self._store.unvalidate_block(draft.primary_proposal_id, block_key)
        current = self.draft
        self._draft = replace(
            current, approved_blocks={**current.approved_blocks, block_key: False}
        )
        log.info("Unvalidated block %s on %s", block_key, draft.primary_proposal_id)

    async def validate_all_blocks(self) -> tuple[str, ...]:
        """Validate every block of the draft that is not approved yet."""

        draft = self._editable()
        await self.save()
        pending = tuple(
            block
            for block in blocks_in_draft(draft, self._classifier)
            if not draft.approved_blocks.get(block, False)
        )
        for block in pending:
            await self._validate(block)
        return pending

    async def _validate(self, block_key: str) -> None:
        draft = self.draft
        payload = build_block_payload(draft, block_key, self._classifier)
        await self._store.validate_block(draft.primary_proposal_id, block_key, payload)
        current = self.draft
        self._draft = replace(
            current, approved_blocks={**current.approved_blocks, block_key: True}
        )
        log.info("Validated block %s on %s", block_key, draft.primary_proposal_id)

    async def aclose(self) -> None:
        """Cancel the pending autosave and wait for any autosave in flight."""

        self._cancel_autosave()
        if self._autosave_tasks:
            await asyncio.gather(*self._autosave_tasks, return_exceptions=True)

    # --- Internals -----------------------------------------------------------

    def _require_loaded(self) -> WorkingDraft:
        if self._draft is None:
            raise DraftNotLoadedError("No draft has been loaded")
        return self._draft

    def _require_pane(self) -> TwoPaneState:
        self._require_loaded()
        if self._pane is None:
            raise DraftNotLoadedError("No source proposals have been loaded")
        return self._pane

    def _editable(self) -> WorkingDraft:
        draft = self._require_loaded()
        if draft.read_only:
            raise DraftReadOnlyError(f"Draft for {draft.primary_proposal_id} is read-only")
        return draft

    def _commit(self, updated: WorkingDraft) -> WorkingDraft:
        current = self._require_loaded()
        if updated is current:
            return current
        self._draft = replace(updated, is_dirty=True, revision=current.revision + 1)
        self._schedule_autosave()
        return self._draft

    def _schedule_autosave(self) -> None:
        if self._autosave_delay is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            log.debug("No running event loop; autosave not scheduled")
            return
        if self._autosave_handle is not None:
            self._autosave_handle.cancel()
        self._autosave_handle = loop.call_later(self._autosave_delay, self._start_autosave)

    def _start_autosave(self) -> None:
        self._autosave_handle = None
        task = asyncio.get_running_loop().create_task(self._autosave())
        self._autosave_tasks.add(task)
        task.add_done_callback(self._autosave_tasks.discard)

    async def _autosave(self) -> None:
        draft = self._draft
        if draft is None or draft.read_only or not draft.is_dirty:
            return
        try:
            saved = await self.save()
        except Exception:  # noqa: BLE001
            log.warning("Autosave failed; draft stays dirty", exc_info=True)
            return
        if not saved and self._saving:
            # a manual save was in flight; try again after another quiet period
            self._schedule_autosave()

    def _cancel_autosave(self) -> None:
        if self._autosave_handle is not None:
            self._autosave_handle.cancel()
            self._autosave_handle = None
