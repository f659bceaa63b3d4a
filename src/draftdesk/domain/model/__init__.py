"""Domain model for proposals and the working draft."""

from __future__ import annotations

from .changes import (
    UNSET,
    BaselineChange,
    ChangeRecord,
    ConfidenceChange,
    Maybe,
    OldNewChange,
    ProposedChange,
    Unset,
    parse_change,
)
from .diffs import FieldDiff, RaceDiff
from .draft import (
    ConsolidatedField,
    FieldOption,
    RaceArena,
    RaceEntity,
    ResolvedRace,
    WorkingDraft,
)
from .enums import BlockKey, ChangeKind, ConsolidationMode, EditorState, ProposalStatus
from .proposal import Provenance, RaceAddition, RaceUnchanged, RaceUpdate, SourceProposal

__all__ = [
    "UNSET",
    "BaselineChange",
    "BlockKey",
    "ChangeKind",
    "ChangeRecord",
    "ConfidenceChange",
    "ConsolidatedField",
    "ConsolidationMode",
    "EditorState",
    "FieldDiff",
    "FieldOption",
    "Maybe",
    "OldNewChange",
    "ProposalStatus",
    "ProposedChange",
    "Provenance",
    "RaceAddition",
    "RaceArena",
    "RaceDiff",
    "RaceEntity",
    "RaceUnchanged",
    "RaceUpdate",
    "ResolvedRace",
    "SourceProposal",
    "Unset",
    "WorkingDraft",
    "parse_change",
]
