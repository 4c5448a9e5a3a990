"""Decision tree sub-package: models, induction, pruning, queries, and explanations."""

from __future__ import annotations

from expertkit.tree.explaining import (
    extract_rule_models,
    extract_rules,
    format_attributes,
    format_report,
    format_tree,
    how,
    why,
)
from expertkit.tree.models import (
    WILDCARD,
    AttributeDef,
    AttributeKind,
    Condition,
    LeafReason,
    NodeKind,
    Rule,
    TrainingExample,
    TreeNode,
)
from expertkit.tree.querying import (
    PathStep,
    PathTrace,
    attribute_used_in_tree,
    classify,
    classify_with_unknowns,
    path_trace,
)
from expertkit.tree.training import train

__all__ = [
    "WILDCARD",
    "AttributeDef",
    "AttributeKind",
    "Condition",
    "LeafReason",
    "NodeKind",
    "PathStep",
    "PathTrace",
    "Rule",
    "TrainingExample",
    "TreeNode",
    "attribute_used_in_tree",
    "classify",
    "classify_with_unknowns",
    "extract_rule_models",
    "extract_rules",
    "format_attributes",
    "format_report",
    "format_tree",
    "how",
    "path_trace",
    "train",
    "why",
]
