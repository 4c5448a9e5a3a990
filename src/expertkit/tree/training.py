"""Training entry point: build a tree from examples, then prune it."""

from __future__ import annotations

from collections.abc import Sequence

from loguru import logger

from expertkit.config import ExpertKitSettings
from expertkit.exceptions import DuplicateAttributeError
from expertkit.tree.building import build_tree
from expertkit.tree.models import AttributeDef, TrainingExample, TreeNode
from expertkit.tree.pruning import prune


def train(
    examples: Sequence[TrainingExample],
    attributes: Sequence[AttributeDef],
    *,
    settings: ExpertKitSettings | None = None,
) -> TreeNode:
    """Induce a decision tree and prune it with pessimistic error estimates.

    Args:
        examples (Sequence[TrainingExample]): Labeled training cases.
        attributes (Sequence[AttributeDef]): Attributes available for
            splitting. Their order breaks ties between equally good splits.
        settings (ExpertKitSettings | None): Pruning settings. Defaults to
            `ExpertKitSettings()`, which reads `EXPERTKIT_*` environment variables.

    Returns:
        TreeNode: Root of the trained tree. An empty training set yields a
            single `"(no examples)"` leaf.

    Raises:
        DuplicateAttributeError: If two attributes share a name.

    Examples:
        >>> from expertkit.tree.models import AttributeDef, TrainingExample
        >>> car = AttributeDef.categorical("Car", ["yes", "no"])
        >>> examples = [
        ...     TrainingExample(attributes={"Car": "yes"}, label="museum"),
        ...     TrainingExample(attributes={"Car": "no"}, label="home"),
        ... ]
        >>> train(examples, [car]).tested_attribute()
        'Car'
    """
    names = [attribute.name for attribute in attributes]
    if len(set(names)) != len(names):
        raise DuplicateAttributeError(names)

    settings = settings or ExpertKitSettings()

    tree = build_tree(examples, attributes)
    collapsed = prune(tree, z=settings.pruning_z) if settings.prune else 0

    logger.info(
        "Tree trained",
        examples=len(examples),
        attributes=len(attributes),
        leaves=tree.leaf_count,
        depth=tree.depth,
        pruned=collapsed,
    )
    return tree
