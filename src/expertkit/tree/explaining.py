"""Explanations of a trained tree: IF-THEN rules, HOW and WHY narratives, and diagrams."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

from expertkit.tree.models import AttributeDef, Condition, LeafReason, NodeKind, Rule, TreeNode, format_number
from expertkit.tree.querying import attribute_used_in_tree, classify_with_unknowns, path_trace

# ---------------------------------------------------------------------------
# Module-level constants
# ---------------------------------------------------------------------------

_LEAF_REASON_SENTENCES: dict[LeafReason, str] = {
    LeafReason.PURE: (
        "This corresponds to a pure leaf: all training examples that reached this point had this same conclusion."
    ),
    LeafReason.NO_ATTRIBUTES_LEFT: (
        "This leaf exists because there were no more attributes to test, "
        "so I used the majority conclusion at this node."
    ),
    LeafReason.NO_USEFUL_SPLIT: (
        "This leaf exists because no attribute could further reduce the uncertainty, "
        "so I used the majority conclusion at this node."
    ),
    LeafReason.MAJORITY_OF_NODE_FOR_MISSING_BRANCH: (
        "This leaf exists because there were no training examples for this branch, "
        "so I used the majority conclusion from the parent node."
    ),
}
_FALLBACK_REASON_SENTENCE = "This leaf exists based on the training examples that reached this point."

_BRANCH = "├─ "
_LAST_BRANCH = "└─ "
_ARROW = " -> "


# ---------------------------------------------------------------------------
# Public interface -- Rules
# ---------------------------------------------------------------------------


def extract_rule_models(tree: TreeNode) -> list[Rule]:
    """Extract one IF-THEN rule per leaf of the tree.

    Walks the tree depth first. Categorical children are visited in domain
    order and the `<=` branch of a numeric split before the `>` branch, so the
    rules come out in the same order as the leaves of `format_tree`.

    Args:
        tree (TreeNode): Root of a trained tree.

    Returns:
        list[Rule]: One rule per leaf. A single-leaf tree yields one rule
            without conditions.

    Raises:
        StructuralError: If the tree contains a malformed node.
    """
    rules: list[Rule] = []
    _walk_tree(tree, path_conditions=[], rules=rules)
    return rules


def extract_rules(tree: TreeNode) -> list[str]:
    """Extract the tree's rules rendered as text.

    Args:
        tree (TreeNode): Root of a trained tree.

    Returns:
        list[str]: e.g. `["IF Car = no THEN home", ...]`.

    Examples:
        >>> from expertkit.tree.models import LeafReason, TreeNode
        >>> extract_rules(TreeNode.leaf("beach", LeafReason.PURE))
        ['IF <always> THEN beach']
    """
    return [str(rule) for rule in extract_rule_models(tree)]


# ---------------------------------------------------------------------------
# Public interface -- HOW and WHY
# ---------------------------------------------------------------------------


def how(tree: TreeNode, answers: Mapping[str, str]) -> str:
    """Explain how a fully answered case was classified.

    The narrative lists every test on the path with the answer given and the
    branch followed, then why the final leaf exists, then any answered
    attributes that played no part in this particular decision.

    Args:
        tree (TreeNode): Root of a trained tree.
        answers (Mapping[str, str]): Attribute name to raw answer.

    Returns:
        str: The multi-line explanation.

    Raises:
        MissingAttributeError: If an attribute tested on the path is unanswered.
        InvalidNumericValueError: If a numeric attribute's answer does not parse.
        UnknownCategoryError: If a categorical answer is not one of the node's values.
    """
    trace = path_trace(tree, answers)

    lines = ["Classification path:"]
    for step in trace.steps:
        condition = step.condition
        if condition.operator == "=":
            lines.append(
                f"- Tested {step.attribute}, your answer was '{step.value}', "
                f"so I followed the branch {condition}."
            )
        else:
            threshold = format_number(float(condition.value))
            lines.append(
                f"- Tested {step.attribute}, your value was {step.value}, threshold is {threshold}, "
                f"so I followed the branch {condition}."
            )

    lines.append("")
    lines.append(f"I reached a leaf with the conclusion: {trace.label}.")
    lines.append(_LEAF_REASON_SENTENCES.get(trace.reason, _FALLBACK_REASON_SENTENCE))

    tested = {name.casefold() for name in trace.tested_attributes}
    unused = sorted(name for name in answers if name.casefold() not in tested)
    if unused:
        lines.append("")
        lines.append("Attributes you provided that did not affect this particular decision:")
        for name in unused:
            if attribute_used_in_tree(tree, name):
                lines.append(
                    f"- {name}: this attribute can matter in other situations, but for your answers it was "
                    "not needed because other attributes already determined the conclusion."
                )
            else:
                lines.append(
                    f"- {name}: the learned tree never tests this attribute at all, "
                    "given the current training examples."
                )

    return "\n".join(lines)


def why(tree: TreeNode, attribute: AttributeDef, known_answers: Mapping[str, str]) -> str:
    """Explain why an attribute is being asked about, given the answers so far.

    When the answers so far already pin down a single conclusion, the text
    says so. Otherwise it lists the conclusions still possible and, for a
    categorical attribute, how each of its values would narrow them. Numeric
    attributes cannot be enumerated and the text says that instead.

    Args:
        tree (TreeNode): Root of a trained tree.
        attribute (AttributeDef): The attribute about to be asked.
        known_answers (Mapping[str, str]): Answers collected so far.

    Returns:
        str: The multi-line explanation.

    Examples:
        >>> from expertkit.tree.models import AttributeDef, LeafReason, TreeNode
        >>> text = why(TreeNode.leaf("beach", LeafReason.PURE), AttributeDef.numeric("Age"), {})
        >>> "already determined: { beach }" in text
        True
    """
    known_text = ", ".join(f"{name}={value}" for name, value in known_answers.items()) or "nothing yet"
    possible = classify_with_unknowns(tree, known_answers)

    lines = [f"I'm asking about '{attribute.name}' because, given what I know so far ({known_text}),"]
    if len(possible) == 1:
        lines.append(f"the conclusion is already determined: {_format_label_set(possible)}.")
        lines.append(
            "I'm still asking due to the fixed question order, but this answer will not change the conclusion."
        )
        return "\n".join(lines)

    lines.append(f"the conclusion could still be one of: {_format_label_set(possible)}.")
    lines.append("")
    if attribute.is_numeric:
        lines.append("This attribute is numeric. Different ranges of values may lead to different conclusions,")
        lines.append(
            "but I can't enumerate all possibilities here. "
            "Try different numeric values to see how the conclusion changes."
        )
        return "\n".join(lines)

    lines.append("Depending on your answer to this question, the possible conclusions become:")
    for value in attribute.domain:
        extended = {**known_answers, attribute.name: value}
        narrowed = classify_with_unknowns(tree, extended)
        lines.append(f"- If {attribute.name} = {value}, possible conclusions: {_format_label_set(narrowed)}")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Public interface -- Diagrams and reports
# ---------------------------------------------------------------------------


def format_tree(tree: TreeNode) -> str:
    """Render the tree as an ASCII diagram.

    Each split is shown as `<attribute>?`, and each edge on its own line as
    `├─ <edge> -> <child>`, with `└─` for the last edge of a node. The
    children of a split are indented to line up under the split's name.

    Args:
        tree (TreeNode): Root of a trained tree.

    Returns:
        str: The diagram; a single-leaf tree renders as its label.

    Examples:
        >>> from expertkit.tree.models import LeafReason, TreeNode
        >>> tree = TreeNode.categorical_split(
        ...     "Car",
        ...     {"yes": TreeNode.leaf("museum", LeafReason.PURE), "no": TreeNode.leaf("home", LeafReason.PURE)},
        ...     example_count=2,
        ...     error_count=1,
        ...     majority_label="museum",
        ... )
        >>> print(format_tree(tree))
        Car?
        │
        ├─ yes -> museum
        └─ no -> home
    """
    if tree.is_leaf:
        return tree.leaf_label()

    lines = [f"{tree.tested_attribute()}?", "│"]
    _render_children(tree, indent=0, lines=lines)
    return "\n".join(lines)


def format_attributes(attributes: Iterable[AttributeDef]) -> str:
    """Render attribute definitions, one per line.

    Args:
        attributes (Iterable[AttributeDef]): The attributes to list.

    Returns:
        str: Lines such as `- Weather (categorical): raining, sunny` and
            `- Mileage (numeric)`.
    """
    lines = []
    for attribute in attributes:
        if attribute.is_numeric:
            lines.append(f"- {attribute.name} (numeric)")
        else:
            lines.append(f"- {attribute.name} (categorical): {', '.join(attribute.domain)}")
    return "\n".join(lines)


def format_report(tree: TreeNode, attributes: Sequence[AttributeDef]) -> str:
    """Render the rules, the diagram, and the attributes of a trained tree.

    Args:
        tree (TreeNode): Root of a trained tree.
        attributes (Sequence[AttributeDef]): Attributes the tree was trained on.

    Returns:
        str: Three sections headed `=== IF-THEN Rules ===`,
            `=== Decision Tree ===`, and `=== Attributes ===`.
    """
    sections = [
        "=== IF-THEN Rules ===\n" + "\n".join(extract_rules(tree)),
        "=== Decision Tree ===\n" + format_tree(tree),
        "=== Attributes ===\n" + format_attributes(attributes),
    ]
    return "\n\n".join(sections)


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def _walk_tree(node: TreeNode, *, path_conditions: list[Condition], rules: list[Rule]) -> None:
    """Recursively walk a node and accumulate one rule per leaf.

    Args:
        node (TreeNode): The current node.
        path_conditions (list[Condition]): Edge conditions from the root to `node`.
        rules (list[Rule]): Accumulator list; leaf rules are appended in place.
    """
    if node.is_leaf:
        rules.append(
            Rule(
                conditions=path_conditions,
                label=node.leaf_label(),
                reason=node.reason,
                samples=node.example_count,
            )
        )
        return

    attribute = node.tested_attribute()
    for condition, child in _edges(node, attribute):
        _walk_tree(child, path_conditions=[*path_conditions, condition], rules=rules)


def _edges(node: TreeNode, attribute: str) -> list[tuple[Condition, TreeNode]]:
    """Return the outgoing edges of a split node in display order.

    Args:
        node (TreeNode): A split node.
        attribute (str): The attribute tested by the node.

    Returns:
        list[tuple[Condition, TreeNode]]: Edge condition and child, `<=` before
            `>` for numeric splits, domain order for categorical splits.
    """
    if node.kind == NodeKind.NUMERIC:
        threshold, left, right = node.numeric_branches()
        return [
            (Condition(attribute=attribute, operator="<=", value=threshold), left),
            (Condition(attribute=attribute, operator=">", value=threshold), right),
        ]
    return [
        (Condition(attribute=attribute, operator="=", value=value), child)
        for value, child in node.categorical_branches().items()
    ]


def _render_children(node: TreeNode, *, indent: int, lines: list[str]) -> None:
    """Append one line per edge of a split node, recursing into split children.

    Args:
        node (TreeNode): A split node.
        indent (int): Column at which this node's edges start.
        lines (list[str]): Accumulator list of diagram lines.
    """
    attribute = node.tested_attribute()
    edges = _edges(node, attribute)
    for position, (condition, child) in enumerate(edges):
        connector = _LAST_BRANCH if position == len(edges) - 1 else _BRANCH
        edge_label = _edge_label(condition)
        target = child.leaf_label() if child.is_leaf else f"{child.tested_attribute()}?"
        lines.append(f"{' ' * indent}{connector}{edge_label}{_ARROW}{target}")
        if child.is_leaf:
            continue

        child_indent = indent + len(connector) + len(edge_label) + len(_ARROW)
        lines.append(f"{' ' * child_indent}│")
        _render_children(child, indent=child_indent, lines=lines)


def _edge_label(condition: Condition) -> str:
    """Return the short edge text used in diagrams: the value, `<= t`, or `> t`."""
    if condition.operator == "=":
        return str(condition.value)
    return f"{condition.operator} {format_number(float(condition.value))}"


def _format_label_set(labels: Iterable[str]) -> str:
    """Render labels as a sorted brace set, e.g. `{ beach, museum }`."""
    return "{ " + ", ".join(sorted(labels)) + " }"
