"""Public interface for the proposals API adapter."""

from __future__ import annotations

from .client import HttpProposalStore, ProposalsApiError
from .schema import ApiEnvelope, ProposalPayload, RaceExistingPayload, RaceUpdatePayload
from .translator import parse_proposal, parse_proposal_model

__all__ = [
    "ApiEnvelope",
    "HttpProposalStore",
    "ProposalPayload",
    "ProposalsApiError",
    "RaceExistingPayload",
    "RaceUpdatePayload",
    "parse_proposal",
    "parse_proposal_model",
]
