"""Recursive tree induction: attribute selection and partitioning."""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from typing import NamedTuple

from loguru import logger

from expertkit.tree.models import (
    NO_EXAMPLES_LABEL,
    WILDCARD,
    AttributeDef,
    LeafReason,
    TrainingExample,
    TreeNode,
    format_number,
    parse_numeric,
)
from expertkit.tree.scoring import GAIN_TOLERANCE, best_numeric_split, score_categorical

# ---------------------------------------------------------------------------
# Public interface
# ---------------------------------------------------------------------------


class SplitCandidate(NamedTuple):
    """An attribute that produced positive information gain at a node.

    Attributes:
        attribute (AttributeDef): The scored attribute.
        info_gain (float): Its information gain.
        gain_ratio (float): Its gain ratio.
        threshold (float | None): Winning threshold for numeric attributes;
            `None` for categorical attributes.
    """

    attribute: AttributeDef
    info_gain: float
    gain_ratio: float
    threshold: float | None


def majority_label(examples: Sequence[TrainingExample]) -> str:
    """Return the most frequent label among the examples.

    Ties go to the label that occurs first in example order, so the result
    does not depend on hashing or grouping order.

    Args:
        examples (Sequence[TrainingExample]): A non-empty set of examples.

    Returns:
        str: The majority label.

    Raises:
        ValueError: If `examples` is empty.

    Examples:
        >>> from expertkit.tree.models import TrainingExample
        >>> rows = ["beach", "museum", "museum", "beach"]
        >>> majority_label([TrainingExample(attributes={}, label=r) for r in rows])
        'beach'
    """
    if not examples:
        raise ValueError("Cannot compute the majority label of zero examples")
    # Counter keeps first-insertion order and max() returns the first maximal key.
    counts = Counter(example.label for example in examples)
    return max(counts, key=lambda label: counts[label])


def select_split(
    examples: Sequence[TrainingExample],
    attributes: Sequence[AttributeDef],
) -> SplitCandidate | None:
    """Pick the attribute (and threshold) to split on with C4.5's two-pass rule.

    Every attribute with positive information gain is a candidate. With more
    than one candidate, those whose gain falls below the mean gain are
    dropped, and the survivor with the highest gain ratio wins. Ties go to the
    attribute listed first.

    Args:
        examples (Sequence[TrainingExample]): Examples at the current node.
        attributes (Sequence[AttributeDef]): Attributes still available.

    Returns:
        SplitCandidate | None: The winning candidate, or `None` when no
            attribute yields a positive gain ratio.
    """
    candidates = [
        candidate for attribute in attributes if (candidate := _score_attribute(examples, attribute)) is not None
    ]

    if len(candidates) > 1:
        mean_gain = sum(candidate.info_gain for candidate in candidates) / len(candidates)
        candidates = [candidate for candidate in candidates if candidate.info_gain >= mean_gain - GAIN_TOLERANCE]

    best: SplitCandidate | None = None
    for candidate in candidates:
        if best is None or candidate.gain_ratio > best.gain_ratio:
            best = candidate

    if best is None or best.gain_ratio <= 0.0:
        return None
    return best


def build_tree(
    examples: Sequence[TrainingExample],
    attributes: Sequence[AttributeDef],
) -> TreeNode:
    """Induce an unpruned decision tree.

    The first matching rule decides the node:

    1. No examples: a `"(no examples)"` leaf with zero counts.
    2. All examples share a label: a pure leaf.
    3. No attributes left: a majority leaf.
    4. No attribute gives a useful split: a majority leaf.
    5. Otherwise a split node on the attribute chosen by `select_split`.

    Categorical splits create one child per domain value; examples with a
    wildcard value join every child, and the attribute is not offered again
    below the split. Numeric splits create a `<=` and a `>` child; examples
    with a wildcard or unparseable value join both, and the attribute stays
    available for another threshold further down.

    Args:
        examples (Sequence[TrainingExample]): Training examples at this node.
        attributes (Sequence[AttributeDef]): Attributes available for splitting.

    Returns:
        TreeNode: Root of the induced subtree.
    """
    if not examples:
        return TreeNode.leaf(NO_EXAMPLES_LABEL, LeafReason.NO_USEFUL_SPLIT)

    majority = majority_label(examples)
    error_count = sum(1 for example in examples if example.label != majority)
    metadata = {"example_count": len(examples), "error_count": error_count, "majority_label": majority}

    if error_count == 0:
        return TreeNode.leaf(majority, LeafReason.PURE, **metadata)

    if not attributes:
        return TreeNode.leaf(majority, LeafReason.NO_ATTRIBUTES_LEFT, **metadata)

    split = select_split(examples, attributes)
    if split is None:
        return TreeNode.leaf(majority, LeafReason.NO_USEFUL_SPLIT, **metadata)

    if split.threshold is not None:
        logger.debug(
            "Numeric split selected",
            attribute=split.attribute.name,
            threshold=format_number(split.threshold),
            gain_ratio=round(split.gain_ratio, 4),
            examples=len(examples),
        )
        return _build_numeric_split(examples, attributes, split.attribute, split.threshold, metadata)

    logger.debug(
        "Categorical split selected",
        attribute=split.attribute.name,
        gain_ratio=round(split.gain_ratio, 4),
        examples=len(examples),
    )
    return _build_categorical_split(examples, attributes, split.attribute, metadata)


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def _score_attribute(examples: Sequence[TrainingExample], attribute: AttributeDef) -> SplitCandidate | None:
    """Score one attribute and return it as a candidate when its gain is positive.

    Args:
        examples (Sequence[TrainingExample]): Examples at the current node.
        attribute (AttributeDef): The attribute to score.

    Returns:
        SplitCandidate | None: The candidate, or `None` if the attribute has no
            positive gain (or, for numeric attributes, no usable threshold).
    """
    if attribute.is_numeric:
        numeric = best_numeric_split(examples, attribute)
        if numeric is None or numeric.info_gain <= 0.0:
            return None
        return SplitCandidate(attribute, numeric.info_gain, numeric.gain_ratio, numeric.threshold)

    categorical = score_categorical(examples, attribute)
    if categorical.info_gain <= 0.0:
        return None
    return SplitCandidate(attribute, categorical.info_gain, categorical.gain_ratio, None)


def _build_categorical_split(
    examples: Sequence[TrainingExample],
    attributes: Sequence[AttributeDef],
    attribute: AttributeDef,
    metadata: dict,
) -> TreeNode:
    """Build a categorical split node and recurse into one child per domain value.

    Args:
        examples (Sequence[TrainingExample]): Examples at the node.
        attributes (Sequence[AttributeDef]): Attributes available at the node.
        attribute (AttributeDef): The categorical attribute to split on.
        metadata (dict): `example_count`, `error_count`, and `majority_label`
            of the node.

    Returns:
        TreeNode: The categorical split node.
    """
    remaining = [candidate for candidate in attributes if candidate.name != attribute.name]
    children: dict[str, TreeNode] = {}
    for value in attribute.domain:
        subset = [example for example in examples if example.value_of(attribute.name) in {value, WILDCARD}]
        if not subset:
            children[value] = TreeNode.leaf(
                metadata["majority_label"],
                LeafReason.MAJORITY_OF_NODE_FOR_MISSING_BRANCH,
            )
            continue
        children[value] = build_tree(subset, remaining)

    return TreeNode.categorical_split(attribute.name, children, **metadata)


def _build_numeric_split(
    examples: Sequence[TrainingExample],
    attributes: Sequence[AttributeDef],
    attribute: AttributeDef,
    threshold: float,
    metadata: dict,
) -> TreeNode:
    """Build a numeric split node and recurse into its two children.

    Args:
        examples (Sequence[TrainingExample]): Examples at the node.
        attributes (Sequence[AttributeDef]): Attributes available at the node;
            all of them stay available to the children.
        attribute (AttributeDef): The numeric attribute to split on.
        threshold (float): Values `<= threshold` go to the left child.
        metadata (dict): `example_count`, `error_count`, and `majority_label`
            of the node.

    Returns:
        TreeNode: The numeric split node.
    """
    left: list[TrainingExample] = []
    right: list[TrainingExample] = []
    for example in examples:
        number = parse_numeric(example.value_of(attribute.name))
        if number is None:
            left.append(example)
            right.append(example)
        elif number <= threshold:
            left.append(example)
        else:
            right.append(example)

    return TreeNode.numeric_split(
        attribute.name,
        threshold,
        build_tree(left, attributes),
        build_tree(right, attributes),
        **metadata,
    )
