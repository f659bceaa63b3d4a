"""HTTP client for the proposals backend."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from draftdesk.adapters.http_resilience import ResilienceConfig, ResilientClient
from draftdesk.config import ProposalsApiConfig
from draftdesk.domain.errors import PersistenceError
from draftdesk.domain.ports.persistence import ProposalStore

from .schema import ApiEnvelope
from .translator import parse_proposal

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from draftdesk.domain.model import SourceProposal

log = getLogger(__name__)


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


class ProposalsApiError(PersistenceError):
    """Raised when the proposals API rejects a call or answers with garbage."""


@dataclass(slots=True)
class HttpProposalStore:
    config: ProposalsApiConfig = field(default_factory=ProposalsApiConfig.from_environment)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )

    async def fetch(self, proposal_id: str) -> SourceProposal:
        data = await self._call("GET", f"/proposals/{proposal_id}")
        try:
            return parse_proposal(data)
        except ValidationError as exc:
            log.error(f"Proposal {proposal_id} has an unexpected shape: {exc}")
            raise ProposalsApiError(f"Unexpected payload for proposal {proposal_id}") from exc

    async def persist_overrides(self, proposal_id: str, diff: Mapping[str, object]) -> None:
        await self._call(
            "PUT",
            f"/proposals/{proposal_id}",
            json={"userModifiedChanges": dict(diff)},
        )

    async def validate_block(
        self,
        proposal_id: str,
        block_key: str,
        payload: Mapping[str, object],
    ) -> None:
        await self._call(
            "POST",
            f"/proposals/{proposal_id}/validate-block",
            json={"block": block_key, "payload": dict(payload)},
        )

    async def unvalidate_block(self, proposal_id: str, block_key: str) -> None:
        await self._call(
            "POST",
            f"/proposals/{proposal_id}/unvalidate-block",
            json={"block": block_key},
        )

    async def _call(self, method: str, path: str, *, json: object = None) -> object:
        url = f"{self.config.base_url}{path}"
        async with self.client_factory(self.config.resilience) as client:
            try:
                if json is None:
                    response = await client.request(method, url)
                else:
                    response = await client.request(method, url, json=json)
            except httpx.HTTPError as exc:
                log.error(f"{method} {path} failed: {exc}")
                raise ProposalsApiError(f"{method} {path} failed: {exc}") from exc

        if response.is_error:
            message = _error_message(response)
            log.error(f"{method} {path} returned {response.status_code}: {message}")
            raise ProposalsApiError(message, status_code=response.status_code)

        try:
            envelope = ApiEnvelope.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise ProposalsApiError(
                f"Unexpected response from {method} {path}", status_code=response.status_code
            ) from exc
        if not envelope.success:
            message = envelope.message or envelope.error or "request was not successful"
            log.error(f"{method} {path} rejected: {message}")
            raise ProposalsApiError(message, status_code=response.status_code)
        return envelope.data


def _error_message(response: httpx.Response) -> str:
    try:
        envelope = ApiEnvelope.model_validate(response.json())
    except (ValueError, ValidationError):
        return response.text or response.reason_phrase
    return envelope.message or envelope.error or response.reason_phrase


if TYPE_CHECKING:
    _store_check: ProposalStore = HttpProposalStore()
