"""Proposals API configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env_var, optional_float_env_var, require_env_vars
from .http_resilience import RateLimit, ResilienceConfig

PROPOSALS_API_URL_VAR = "DRAFTDESK_API_URL"
PROPOSALS_API_TOKEN_VAR = "DRAFTDESK_API_TOKEN"  # noqa: S105
PROPOSALS_API_TIMEOUT_VAR = "DRAFTDESK_API_TIMEOUT"
PROPOSALS_API_TIMEOUT_SECONDS = 15.0


@dataclass(frozen=True)
class ProposalsApiConfig:
    """Holds the proposals backend location and credentials."""

    base_url: str
    token: str | None
    resilience: ResilienceConfig

    @classmethod
    def from_environment(cls) -> ProposalsApiConfig:
        return get_proposals_api_config()


def get_proposals_api_config(*, resilience: ResilienceConfig | None = None) -> ProposalsApiConfig:
    values = require_env_vars((PROPOSALS_API_URL_VAR,))
    base_url = values[PROPOSALS_API_URL_VAR].strip().rstrip("/")
    token = optional_env_var(PROPOSALS_API_TOKEN_VAR)
    timeout = optional_float_env_var(
        PROPOSALS_API_TIMEOUT_VAR,
        default=PROPOSALS_API_TIMEOUT_SECONDS,
        minimum=0.1,
    )
    headers = {"Accept": "application/json"}
    if token is not None:
        headers["Authorization"] = f"Bearer {token}"
    return ProposalsApiConfig(
        base_url=base_url,
        token=token,
        resilience=resilience
        or ResilienceConfig(
            name="proposals-api",
            base_url=base_url,
            timeout_seconds=timeout,
            ratelimit=RateLimit(max_calls=10, per_seconds=1.0),
            default_headers=headers,
        ),
    )
