"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from draftdesk.adapters.proposals_api import HttpProposalStore
from draftdesk.config import EditorConfig, get_editor_config
from draftdesk.domain.consolidation import agent_priority
from draftdesk.domain.editor import DraftEditor
from draftdesk.domain.model import ConsolidationMode

if TYPE_CHECKING:
    from collections.abc import Sequence

    from draftdesk.domain.model import (
        ConsolidatedField,
        FieldDiff,
        RaceDiff,
        ResolvedRace,
    )
    from draftdesk.domain.ports import ProposalStore


log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SourceSummary:
    proposal_id: str
    agent_name: str | None
    priority: int


@dataclass(frozen=True, slots=True)
class DraftSummary:
    primary_proposal_id: str
    read_only: bool
    fields: tuple[ConsolidatedField, ...]
    races: tuple[ResolvedRace, ...]
    approved_blocks: dict[str, bool]
    sources: tuple[SourceSummary, ...]


@dataclass(frozen=True, slots=True)
class ComparisonResult:
    source_id: str
    field_diffs: tuple[FieldDiff, ...]
    race_diffs: tuple[RaceDiff, ...]


def build_editor(
    *,
    store: ProposalStore | None = None,
    editor_config: EditorConfig | None = None,
    mode: ConsolidationMode = ConsolidationMode.PRIMARY_ONLY,
) -> DraftEditor:
    config = editor_config or get_editor_config()
    return DraftEditor(
        store or HttpProposalStore(),
        mode=mode,
        autosave_delay=config.effective_autosave_delay,
    )


async def open_editor(
    proposal_ids: Sequence[str],
    *,
    store: ProposalStore | None = None,
    editor_config: EditorConfig | None = None,
    mode: ConsolidationMode = ConsolidationMode.PRIMARY_ONLY,
    source_id: str | None = None,
) -> DraftEditor:
    """Create an editor and load the given proposal group into it."""

    editor = build_editor(store=store, editor_config=editor_config, mode=mode)
    await editor.load(proposal_ids)
    if source_id is not None:
        editor.set_active_source(source_id)
    return editor


def _summarize(editor: DraftEditor) -> DraftSummary:
    draft = editor.draft
    return DraftSummary(
        primary_proposal_id=draft.primary_proposal_id,
        read_only=draft.read_only,
        fields=draft.consolidated_fields(),
        races=editor.races(),
        approved_blocks=dict(draft.approved_blocks),
        sources=tuple(
            SourceSummary(
                proposal_id=source.id,
                agent_name=source.agent_name,
                priority=agent_priority(source.agent_name),
            )
            for source in editor.sources
        ),
    )


def show_draft(
    proposal_ids: Sequence[str],
    *,
    store: ProposalStore | None = None,
    mode: ConsolidationMode = ConsolidationMode.PRIMARY_ONLY,
) -> DraftSummary:
    async def run() -> DraftSummary:
        async with await open_editor(
            proposal_ids, store=store, editor_config=EditorConfig(autosave=False), mode=mode
        ) as editor:
            return _summarize(editor)

    return asyncio.run(run())


def compare_sources(
    proposal_ids: Sequence[str],
    *,
    source_id: str | None = None,
    store: ProposalStore | None = None,
) -> ComparisonResult:
    async def run() -> ComparisonResult:
        async with await open_editor(
            proposal_ids,
            store=store,
            editor_config=EditorConfig(autosave=False),
            source_id=source_id,
        ) as editor:
            return ComparisonResult(
                source_id=editor.active_source.id,
                field_diffs=editor.field_differences(),
                race_diffs=editor.race_differences(),
            )

    return asyncio.run(run())


def copy_all_from_source(
    proposal_ids: Sequence[str],
    *,
    source_id: str | None = None,
    store: ProposalStore | None = None,
    dry_run: bool = False,
) -> dict[str, object]:
    """Copy every difference from an alternate source and persist the result.

    Returns the autosave diff that was (or, with ``dry_run``, would be) saved.
    """

    async def run() -> dict[str, object]:
        async with await open_editor(
            proposal_ids,
            store=store,
            editor_config=EditorConfig(autosave=False),
            source_id=source_id,
        ) as editor:
            editor.copy_all()
            diff = editor.autosave_diff()
            if dry_run:
                log.info("Dry run: not saving %d top-level change(s)", len(diff))
            else:
                await editor.save()
            return diff

    return asyncio.run(run())


def validate_blocks(
    proposal_ids: Sequence[str],
    *,
    blocks: Sequence[str] | None = None,
    store: ProposalStore | None = None,
) -> tuple[str, ...]:
    """Validate the named blocks, or every pending block when none are named."""

    async def run() -> tuple[str, ...]:
        async with await open_editor(
            proposal_ids, store=store, editor_config=EditorConfig(autosave=False)
        ) as editor:
            if not blocks:
                return await editor.validate_all_blocks()
            for block in blocks:
                await editor.validate_block(block)
            return tuple(blocks)

    return asyncio.run(run())
