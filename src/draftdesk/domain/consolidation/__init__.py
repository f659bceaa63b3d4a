"""Proposal consolidation, race reconciliation, diffs and two-pane copy."""

from __future__ import annotations

from .assemble import ProposalPartition, build_working_draft, partition_by_status
from .blocks import DEFAULT_BLOCK_CLASSIFIER, TableBlockClassifier
from .compare import (
    TwoPaneState,
    copy_all,
    copy_field,
    copy_race,
    field_differences,
    race_differences,
    source_field_value,
    source_field_values,
    source_races,
)
from .diff import (
    blocks_with_changes,
    build_autosave_diff,
    build_block_payload,
    build_full_payload,
)
from .fields import consolidate_fields, flatten_changes
from .normalize import extract_new, extract_old, values_equal
from .priority import (
    DEFAULT_PRIORITY_TABLE,
    AgentPriorityRule,
    AgentPriorityTable,
    agent_priority,
    sort_by_priority,
)
from .races import new_race_id, reconcile_races, resolved_races, toggle_race_deleted

__all__ = [
    "DEFAULT_BLOCK_CLASSIFIER",
    "DEFAULT_PRIORITY_TABLE",
    "AgentPriorityRule",
    "AgentPriorityTable",
    "ProposalPartition",
    "TableBlockClassifier",
    "TwoPaneState",
    "agent_priority",
    "blocks_with_changes",
    "build_autosave_diff",
    "build_block_payload",
    "build_full_payload",
    "build_working_draft",
    "consolidate_fields",
    "copy_all",
    "copy_field",
    "copy_race",
    "extract_new",
    "extract_old",
    "field_differences",
    "flatten_changes",
    "new_race_id",
    "partition_by_status",
    "race_differences",
    "reconcile_races",
    "resolved_races",
    "sort_by_priority",
    "source_field_value",
    "source_field_values",
    "source_races",
    "toggle_race_deleted",
    "values_equal",
]
