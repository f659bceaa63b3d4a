"""Domain enums."""

from __future__ import annotations

from enum import StrEnum


class ProposalStatus(StrEnum):
    PENDING = "PENDING"
    PARTIALLY_APPROVED = "PARTIALLY_APPROVED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    ARCHIVED = "ARCHIVED"

    @property
    def is_editable(self) -> bool:
        return self in {ProposalStatus.PENDING, ProposalStatus.PARTIALLY_APPROVED}


class BlockKey(StrEnum):
    """Named field groups approved and persisted as a unit."""

    EVENT = "event"
    EDITION = "edition"
    ORGANIZER = "organizer"
    RACES = "races"


class ConsolidationMode(StrEnum):
    SINGLE = "single"
    PRIMARY_ONLY = "primary_only"
    # Legacy strategy: fuse every source into one draft, first writer wins.
    MERGE_ALL = "merge_all"


class EditorState(StrEnum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class ChangeKind(StrEnum):
    """Shapes a proposed change record can take on the wire."""

    OLD_NEW = "old_new"
    CONFIDENCE = "confidence"
    PROPOSED = "proposed"
    BASELINE = "baseline"
