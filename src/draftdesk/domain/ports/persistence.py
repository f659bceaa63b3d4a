"""Persistence port for source proposals and reviewer deltas."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping

    from draftdesk.domain.model import SourceProposal


@runtime_checkable
class ProposalStore(Protocol):
    """Async collaborator that owns proposals; calls either succeed or raise."""

    async def fetch(self, proposal_id: str) -> SourceProposal: ...

    async def persist_overrides(self, proposal_id: str, diff: Mapping[str, object]) -> None: ...

    async def validate_block(
        self,
        proposal_id: str,
        block_key: str,
        payload: Mapping[str, object],
    ) -> None: ...

    async def unvalidate_block(self, proposal_id: str, block_key: str) -> None: ...


__all__ = ["ProposalStore"]
