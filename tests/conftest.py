from __future__ import annotations

import pytest

from draftdesk.domain.model import SourceProposal  # noqa: TC001
from tests.support.proposals import ffa_proposal, google_proposal, slack_proposal
from tests.support.stores import FakeProposalStore


@pytest.fixture
def ffa() -> SourceProposal:
    return ffa_proposal()


@pytest.fixture
def google() -> SourceProposal:
    return google_proposal()


@pytest.fixture
def slack() -> SourceProposal:
    return slack_proposal()


@pytest.fixture
def proposal_group(
    ffa: SourceProposal,
    google: SourceProposal,
    slack: SourceProposal,
) -> tuple[SourceProposal, ...]:
    # deliberately not in priority order
    return (google, ffa, slack)


@pytest.fixture
def store(proposal_group: tuple[SourceProposal, ...]) -> FakeProposalStore:
    return FakeProposalStore(proposal_group)


@pytest.fixture(autouse=True)
def _clear_draftdesk_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "DRAFTDESK_API_URL",
        "DRAFTDESK_API_TOKEN",
        "DRAFTDESK_API_TIMEOUT",
        "DRAFTDESK_AUTOSAVE",
        "DRAFTDESK_AUTOSAVE_DELAY",
    ):
        monkeypatch.delenv(name, raising=False)
