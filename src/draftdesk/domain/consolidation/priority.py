"""Agent reliability scores and priority ordering of source proposals."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from draftdesk.domain.model import SourceProposal


@dataclass(frozen=True, slots=True)
class AgentPriorityRule:
    pattern: str
    score: int

    def matches(self, agent_name: str) -> bool:
        return self.pattern.lower() in agent_name.lower()


@dataclass(frozen=True, slots=True)
class AgentPriorityTable:
    """Ordered rule table; the first rule whose pattern occurs in the name wins.

    Unmatched or anonymous agents get ``default_score``, which must lie strictly
    between the highest and lowest rule scores.
    """

    rules: tuple[AgentPriorityRule, ...]
    default_score: int = 50

    def __post_init__(self) -> None:
        if len(self.rules) < 2:
            raise ValueError("A priority table needs at least two rules")
        scores = [rule.score for rule in self.rules]
        if not min(scores) < self.default_score < max(scores):
            raise ValueError(
                f"Default score {self.default_score} must lie strictly between "
                f"{min(scores)} and {max(scores)}"
            )

    def score(self, agent_name: str | None) -> int:
        if not agent_name:
            return self.default_score
        for rule in self.rules:
            if rule.matches(agent_name):
                return rule.score
        return self.default_score

    def sort(self, proposals: Iterable[SourceProposal]) -> list[SourceProposal]:
        # sorted() is stable, so ties keep their incoming order
        return sorted(proposals, key=lambda proposal: -self.score(proposal.agent_name))


DEFAULT_PRIORITY_TABLE = AgentPriorityTable(
    rules=(
        AgentPriorityRule("ffa", 100),
        AgentPriorityRule("slack", 90),
        AgentPriorityRule("google", 30),
    ),
    default_score=50,
)


def agent_priority(agent_name: str | None, table: AgentPriorityTable | None = None) -> int:
    return (table or DEFAULT_PRIORITY_TABLE).score(agent_name)


def sort_by_priority(
    proposals: Iterable[SourceProposal],
    table: AgentPriorityTable | None = None,
) -> list[SourceProposal]:
    """Sort proposals by descending agent priority, keeping ties in input order."""
    return (table or DEFAULT_PRIORITY_TABLE).sort(proposals)
