"""Tree queries: full classification, partial classification, and path tracing."""

from __future__ import annotations

from collections.abc import Mapping

from pydantic import BaseModel, Field

from expertkit.exceptions import InvalidNumericValueError, MissingAttributeError, UnknownCategoryError
from expertkit.tree.models import Condition, LeafReason, NodeKind, TreeNode, parse_numeric

# ---------------------------------------------------------------------------
# Public models
# ---------------------------------------------------------------------------


class PathStep(BaseModel):
    """One internal node visited while classifying a case.

    Attributes:
        attribute (str): The attribute tested at the node.
        value (str): The answer supplied for that attribute.
        condition (Condition): The edge that was followed, e.g. `Car = yes`
            or `Mileage > 25`.
    """

    attribute: str = Field(description="Attribute tested at the node.")
    value: str = Field(description="Answer supplied for the attribute.")
    condition: Condition = Field(description="Edge followed out of the node.")


class PathTrace(BaseModel):
    """The root-to-leaf path taken by one fully answered case.

    Attributes:
        steps (list[PathStep]): Visited internal nodes, root first.
        label (str): Label of the leaf reached.
        reason (LeafReason | None): Why that leaf stopped splitting, if recorded.
        tested_attributes (frozenset[str]): Names of the attributes tested
            along the path.
    """

    steps: list[PathStep] = Field(description="Visited internal nodes, root first.")
    label: str = Field(description="Label of the leaf reached.")
    reason: LeafReason | None = Field(default=None, description="Why the leaf stopped splitting.")
    tested_attributes: frozenset[str] = Field(description="Attributes tested along the path.")


# ---------------------------------------------------------------------------
# Public interface
# ---------------------------------------------------------------------------


def classify(tree: TreeNode, answers: Mapping[str, str]) -> str:
    """Classify a fully answered case.

    Args:
        tree (TreeNode): Root of a trained tree.
        answers (Mapping[str, str]): Attribute name to raw answer. Names are
            matched exactly first, then case-insensitively.

    Returns:
        str: The label of the leaf reached.

    Raises:
        MissingAttributeError: If an attribute tested on the path is unanswered.
        InvalidNumericValueError: If a numeric attribute's answer does not parse.
        UnknownCategoryError: If a categorical answer is not one of the node's values.
        StructuralError: If the tree contains a malformed node.

    Examples:
        >>> from expertkit.tree.models import LeafReason, TreeNode
        >>> tree = TreeNode.numeric_split(
        ...     "x",
        ...     25.0,
        ...     TreeNode.leaf("A", LeafReason.PURE),
        ...     TreeNode.leaf("B", LeafReason.PURE),
        ...     example_count=4,
        ...     error_count=2,
        ...     majority_label="A",
        ... )
        >>> classify(tree, {"x": "30"})
        'B'
    """
    return path_trace(tree, answers).label


def path_trace(tree: TreeNode, answers: Mapping[str, str]) -> PathTrace:
    """Classify a fully answered case and record every decision on the way.

    Args:
        tree (TreeNode): Root of a trained tree.
        answers (Mapping[str, str]): Attribute name to raw answer.

    Returns:
        PathTrace: The steps taken, the leaf reached, and the attributes tested.

    Raises:
        MissingAttributeError: If an attribute tested on the path is unanswered.
        InvalidNumericValueError: If a numeric attribute's answer does not parse.
        UnknownCategoryError: If a categorical answer is not one of the node's values.
        StructuralError: If the tree contains a malformed node.
    """
    steps: list[PathStep] = []
    node = tree
    while not node.is_leaf:
        attribute = node.tested_attribute()
        raw = lookup_answer(answers, attribute)
        if raw is None:
            raise MissingAttributeError(attribute, provided=list(answers))
        node, condition = _follow_edge(node, attribute, raw)
        steps.append(PathStep(attribute=attribute, value=raw, condition=condition))

    return PathTrace(
        steps=steps,
        label=node.leaf_label(),
        reason=node.reason,
        tested_attributes=frozenset(step.attribute for step in steps),
    )


def classify_with_unknowns(tree: TreeNode, partial_answers: Mapping[str, str]) -> frozenset[str]:
    """Collect every label still reachable given a partial set of answers.

    Where the attribute tested at a node is unanswered (or its answer cannot
    be used there, e.g. non-numeric text for a numeric split), every child is
    explored. Intended for explanations only, never for a final decision.

    Args:
        tree (TreeNode): Root of a trained tree.
        partial_answers (Mapping[str, str]): Answers known so far.

    Returns:
        frozenset[str]: Labels of all reachable leaves.

    Raises:
        StructuralError: If the tree contains a malformed node.
    """
    labels: set[str] = set()
    pending = [tree]
    while pending:
        node = pending.pop()
        if node.is_leaf:
            labels.add(node.leaf_label())
            continue

        raw = lookup_answer(partial_answers, node.tested_attribute())
        if node.kind == NodeKind.NUMERIC:
            threshold, left, right = node.numeric_branches()
            number = parse_numeric(raw)
            if number is None:
                pending.extend((left, right))
            else:
                pending.append(left if number <= threshold else right)
            continue

        children = node.categorical_branches()
        if raw is not None and raw in children:
            pending.append(children[raw])
        else:
            pending.extend(children.values())

    return frozenset(labels)


def attribute_used_in_tree(tree: TreeNode, attribute_name: str) -> bool:
    """Check whether any split in the tree tests an attribute.

    Args:
        tree (TreeNode): Root of the tree.
        attribute_name (str): Attribute to search for (case-insensitive).

    Returns:
        bool: `True` if some split node tests the attribute.
    """
    wanted = attribute_name.casefold()
    return any(
        node.attribute_name is not None and node.attribute_name.casefold() == wanted
        for node in tree.iter_nodes()
        if not node.is_leaf
    )


def lookup_answer(answers: Mapping[str, str], attribute_name: str) -> str | None:
    """Look up an answer by attribute name, exactly first, then case-insensitively.

    Args:
        answers (Mapping[str, str]): Attribute name to raw answer.
        attribute_name (str): The attribute to look up.

    Returns:
        str | None: The answer, or `None` when the attribute is unanswered.
    """
    if attribute_name in answers:
        return answers[attribute_name]
    wanted = attribute_name.casefold()
    for name, value in answers.items():
        if name.casefold() == wanted:
            return value
    return None


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def _follow_edge(node: TreeNode, attribute: str, raw: str) -> tuple[TreeNode, Condition]:
    """Choose the child of a split node for a given answer.

    Args:
        node (TreeNode): A split node.
        attribute (str): The attribute tested by the node.
        raw (str): The answer supplied for the attribute.

    Returns:
        tuple[TreeNode, Condition]: The child to descend into and the edge condition followed.

    Raises:
        InvalidNumericValueError: If the node is numeric and `raw` does not parse.
        UnknownCategoryError: If the node is categorical and `raw` is not one of its values.
    """
    if node.kind == NodeKind.NUMERIC:
        threshold, left, right = node.numeric_branches()
        number = parse_numeric(raw)
        if number is None:
            raise InvalidNumericValueError(attribute, raw)
        if number <= threshold:
            return left, Condition(attribute=attribute, operator="<=", value=threshold)
        return right, Condition(attribute=attribute, operator=">", value=threshold)

    children = node.categorical_branches()
    if raw not in children:
        raise UnknownCategoryError(attribute, raw, options=list(children))
    return children[raw], Condition(attribute=attribute, operator="=", value=raw)
