"""expertkit: A decision-tree expert system that explains its own conclusions."""

from loguru import logger

from expertkit.config import ExpertKitSettings
from expertkit.consultation import (
    Conclusion,
    ConsultationSession,
    InvalidAnswer,
    Question,
    answer,
    current_prompt,
    explain_how,
    explain_why,
    start_consultation,
)
from expertkit.frame import TrainingSet, training_set_from_frame
from expertkit.logging import PACKAGE_NAME, enable_logging
from expertkit.store import ConsultationStore
from expertkit.tree import (
    AttributeDef,
    TrainingExample,
    TreeNode,
    classify,
    classify_with_unknowns,
    extract_rules,
    format_report,
    format_tree,
    how,
    path_trace,
    train,
    why,
)

logger.disable(PACKAGE_NAME)  # noqa: RUF067 - Disable logging for the expertkit module by default

__all__ = [
    "AttributeDef",
    "Conclusion",
    "ConsultationSession",
    "ConsultationStore",
    "ExpertKitSettings",
    "InvalidAnswer",
    "Question",
    "TrainingExample",
    "TrainingSet",
    "TreeNode",
    "answer",
    "classify",
    "classify_with_unknowns",
    "current_prompt",
    "enable_logging",
    "explain_how",
    "explain_why",
    "extract_rules",
    "format_report",
    "format_tree",
    "how",
    "path_trace",
    "start_consultation",
    "train",
    "training_set_from_frame",
    "why",
]
