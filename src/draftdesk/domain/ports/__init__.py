"""Ports for the draft engine's external collaborators."""

from __future__ import annotations

from .classifier import BlockClassifier
from .persistence import ProposalStore

__all__ = ["BlockClassifier", "ProposalStore"]
