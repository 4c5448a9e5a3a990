"""Domain models for decision tree induction: attributes, examples, tree nodes, and rules."""

from __future__ import annotations

import math
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Literal, Self

from pydantic import BaseModel, Field, field_validator, model_validator

from expertkit.exceptions import StructuralError

# ---------------------------------------------------------------------------
# Public constants and type aliases
# ---------------------------------------------------------------------------

WILDCARD: str = "*"  # Value token meaning "unknown / don't care" for one attribute in one example.
NO_EXAMPLES_LABEL: str = "(no examples)"

type AttributeKind = Literal["categorical", "numeric"]

type ConditionOp = Literal["=", "<=", ">"]


class LeafReason(StrEnum):
    """Why a leaf node has no further split."""

    PURE = "pure"
    NO_ATTRIBUTES_LEFT = "no_attributes_left"
    NO_USEFUL_SPLIT = "no_useful_split"
    MAJORITY_OF_NODE_FOR_MISSING_BRANCH = "majority_of_node_for_missing_branch"


class NodeKind(StrEnum):
    """Discriminant for the three shapes a `TreeNode` can take."""

    LEAF = "leaf"
    CATEGORICAL = "categorical"
    NUMERIC = "numeric"


# ---------------------------------------------------------------------------
# Public models -- training inputs
# ---------------------------------------------------------------------------


class AttributeDef(BaseModel):
    """Definition of one attribute that examples and answers refer to.

    Attributes:
        name (str): Unique attribute name, e.g. `"Weather"`.
        kind (AttributeKind): Either `"categorical"` or `"numeric"`.
        domain (tuple[str, ...]): Ordered category values for categorical
            attributes. The order fixes the display index of each value and the
            order of a split node's children. Numeric attributes carry an empty
            domain.

    Examples:
        >>> weather = AttributeDef.categorical("Weather", ["raining", "sunny", "cloudy"])
        >>> weather.domain
        ('raining', 'sunny', 'cloudy')
        >>> AttributeDef.numeric("Mileage").is_numeric
        True
    """

    model_config = {"frozen": True}

    name: str = Field(min_length=1, description="Unique attribute name.")
    kind: AttributeKind = Field(description='Attribute kind: "categorical" or "numeric".')
    domain: tuple[str, ...] = Field(
        default=(),
        description="Ordered category values for categorical attributes; empty for numeric attributes.",
    )

    @classmethod
    def categorical(cls, name: str, domain: list[str] | tuple[str, ...]) -> AttributeDef:
        """Create a categorical attribute definition.

        Args:
            name (str): The attribute name.
            domain (list[str] | tuple[str, ...]): Category values in display order.

        Returns:
            AttributeDef: The categorical attribute.
        """
        return cls(name=name, kind="categorical", domain=tuple(domain))

    @classmethod
    def numeric(cls, name: str) -> AttributeDef:
        """Create a numeric attribute definition.

        Args:
            name (str): The attribute name.

        Returns:
            AttributeDef: The numeric attribute.
        """
        return cls(name=name, kind="numeric")

    @property
    def is_numeric(self) -> bool:
        """bool: Whether this attribute is numeric."""
        return self.kind == "numeric"

    @model_validator(mode="after")
    def _validate_domain_matches_kind(self) -> Self:
        """Validate the domain against the attribute kind.

        Returns:
            Self: The validated model instance.

        Raises:
            ValueError: If a numeric attribute has a domain, or a categorical
                domain repeats a value or contains the wildcard token.
        """
        if self.kind == "numeric" and self.domain:
            raise ValueError(f"Numeric attribute '{self.name}' must not define a domain")
        if len(set(self.domain)) != len(self.domain):
            raise ValueError(f"Domain of attribute '{self.name}' contains duplicate values")
        if WILDCARD in self.domain:
            raise ValueError(f"Domain of attribute '{self.name}' must not contain the wildcard '{WILDCARD}'")
        return self


class TrainingExample(BaseModel):
    """One labeled training case.

    Attributes:
        attributes (dict[str, str]): Mapping of attribute name to a raw value
            token. Numeric values are kept as text and parsed when needed;
            the wildcard `"*"` marks an unknown value.
        label (str): The target class of this example.

    Examples:
        >>> example = TrainingExample(attributes={"Weather": "*", "Car": "no"}, label="home")
        >>> example.value_of("Weather")
        '*'
        >>> example.value_of("Family")
        '*'
    """

    attributes: dict[str, str] = Field(description="Attribute name to raw value token.")
    label: str = Field(min_length=1, description="Target class of the example.")

    @field_validator("attributes", mode="before")
    @classmethod
    def _stringify_values(cls, value: object) -> object:
        """Convert numeric attribute values to their text form.

        Args:
            value (object): The raw `attributes` input.

        Returns:
            object: The mapping with int and float values rendered as text,
                or the input unchanged when it is not a mapping.
        """
        if not isinstance(value, Mapping):
            return value
        return {
            key: str(raw) if isinstance(raw, (int, float)) and not isinstance(raw, bool) else raw
            for key, raw in value.items()
        }

    def value_of(self, attribute_name: str) -> str:
        """Return the raw token for an attribute, treating absence as the wildcard.

        Args:
            attribute_name (str): The attribute to look up.

        Returns:
            str: The raw value token, or `WILDCARD` when the attribute is absent.
        """
        return self.attributes.get(attribute_name, WILDCARD)


# ---------------------------------------------------------------------------
# Public models -- the induced tree
# ---------------------------------------------------------------------------


@dataclass(eq=False)
class TreeNode:
    """A node of the induced decision tree.

    One struct covers all three node shapes; `kind` says which fields are
    meaningful. Leaves use `label` and `reason`. Categorical splits use
    `attribute_name` and `children` (one child per domain value, in domain
    order). Numeric splits use `attribute_name`, `threshold`,
    `less_or_equal_child`, and `greater_child`.

    Every node also carries the build-time metadata the pruner relies on:
    `example_count`, `error_count`, and `majority_label`. Collapsing a node
    into a leaf keeps that metadata unchanged.

    Attributes:
        kind (NodeKind): Shape of this node.
        example_count (int): Number of training examples that reached the node.
        error_count (int): Examples at the node whose label differs from
            `majority_label`.
        majority_label (str): Most frequent label at the node.
        label (str | None): Predicted label (leaves only).
        reason (LeafReason | None): Why the leaf stopped splitting (leaves only).
        attribute_name (str | None): Attribute tested (splits only).
        children (dict[str, TreeNode] | None): Children by category value
            (categorical splits only).
        threshold (float | None): Split point; values `<= threshold` go left
            (numeric splits only).
        less_or_equal_child (TreeNode | None): Left child (numeric splits only).
        greater_child (TreeNode | None): Right child (numeric splits only).
    """

    kind: NodeKind
    example_count: int = 0
    error_count: int = 0
    majority_label: str = NO_EXAMPLES_LABEL
    label: str | None = None
    reason: LeafReason | None = None
    attribute_name: str | None = None
    children: dict[str, TreeNode] | None = None
    threshold: float | None = None
    less_or_equal_child: TreeNode | None = None
    greater_child: TreeNode | None = None

    @classmethod
    def leaf(
        cls,
        label: str,
        reason: LeafReason,
        *,
        example_count: int = 0,
        error_count: int = 0,
        majority_label: str | None = None,
    ) -> TreeNode:
        """Create a leaf node.

        Args:
            label (str): Predicted label.
            reason (LeafReason): Why the node is a leaf.
            example_count (int): Examples that reached the node.
            error_count (int): Examples whose label differs from the majority.
            majority_label (str | None): Majority label; defaults to `label`.

        Returns:
            TreeNode: The leaf.
        """
        return cls(
            kind=NodeKind.LEAF,
            label=label,
            reason=reason,
            example_count=example_count,
            error_count=error_count,
            majority_label=majority_label if majority_label is not None else label,
        )

    @classmethod
    def categorical_split(
        cls,
        attribute_name: str,
        children: dict[str, TreeNode],
        *,
        example_count: int,
        error_count: int,
        majority_label: str,
    ) -> TreeNode:
        """Create a categorical split node.

        Args:
            attribute_name (str): Attribute tested at the node.
            children (dict[str, TreeNode]): Child per domain value, in domain order.
            example_count (int): Examples that reached the node.
            error_count (int): Examples whose label differs from the majority.
            majority_label (str): Majority label at the node.

        Returns:
            TreeNode: The split node.
        """
        return cls(
            kind=NodeKind.CATEGORICAL,
            attribute_name=attribute_name,
            children=children,
            example_count=example_count,
            error_count=error_count,
            majority_label=majority_label,
        )

    @classmethod
    def numeric_split(
        cls,
        attribute_name: str,
        threshold: float,
        less_or_equal_child: TreeNode,
        greater_child: TreeNode,
        *,
        example_count: int,
        error_count: int,
        majority_label: str,
    ) -> TreeNode:
        """Create a numeric split node.

        Args:
            attribute_name (str): Attribute tested at the node.
            threshold (float): Values `<= threshold` follow the left child.
            less_or_equal_child (TreeNode): Left child.
            greater_child (TreeNode): Right child.
            example_count (int): Examples that reached the node.
            error_count (int): Examples whose label differs from the majority.
            majority_label (str): Majority label at the node.

        Returns:
            TreeNode: The split node.
        """
        return cls(
            kind=NodeKind.NUMERIC,
            attribute_name=attribute_name,
            threshold=threshold,
            less_or_equal_child=less_or_equal_child,
            greater_child=greater_child,
            example_count=example_count,
            error_count=error_count,
            majority_label=majority_label,
        )

    @property
    def is_leaf(self) -> bool:
        """bool: Whether this node is a leaf."""
        return self.kind == NodeKind.LEAF

    def leaf_label(self) -> str:
        """Return the label of a leaf node.

        Returns:
            str: The leaf label.

        Raises:
            StructuralError: If the node is not a leaf or has no label.
        """
        if self.kind != NodeKind.LEAF or self.label is None:
            raise StructuralError("Leaf node without a label", node_kind=self.kind)
        return self.label

    def tested_attribute(self) -> str:
        """Return the attribute tested by a split node.

        Returns:
            str: The attribute name.

        Raises:
            StructuralError: If the node is a leaf or lacks an attribute name.
        """
        if self.kind == NodeKind.LEAF or self.attribute_name is None:
            raise StructuralError("Split node without an attribute name", node_kind=self.kind)
        return self.attribute_name

    def numeric_branches(self) -> tuple[float, TreeNode, TreeNode]:
        """Return the split fields of a numeric node.

        Returns:
            tuple[float, TreeNode, TreeNode]: `(threshold, less_or_equal_child, greater_child)`.

        Raises:
            StructuralError: If the node is not a fully initialized numeric split.
        """
        if (
            self.kind != NodeKind.NUMERIC
            or self.threshold is None
            or self.less_or_equal_child is None
            or self.greater_child is None
        ):
            raise StructuralError("Numeric split node not fully initialized", node_kind=self.kind)
        return self.threshold, self.less_or_equal_child, self.greater_child

    def categorical_branches(self) -> dict[str, TreeNode]:
        """Return the children of a categorical node.

        Returns:
            dict[str, TreeNode]: Children keyed by category value, in domain order.

        Raises:
            StructuralError: If the node is not a categorical split with children.
        """
        if self.kind != NodeKind.CATEGORICAL or not self.children:
            raise StructuralError("Categorical split node without children", node_kind=self.kind)
        return self.children

    def child_nodes(self) -> list[TreeNode]:
        """Return the direct children of this node, left to right.

        Returns:
            list[TreeNode]: Children in display order; empty for a leaf.
        """
        if self.kind == NodeKind.NUMERIC:
            _, left, right = self.numeric_branches()
            return [left, right]
        if self.kind == NodeKind.CATEGORICAL:
            return list(self.categorical_branches().values())
        return []

    def collapse(self) -> None:
        """Replace this split node with a leaf predicting its majority label.

        The build-time metadata is kept as is. The leaf reason is `PURE` when
        the node had no errors and `NO_USEFUL_SPLIT` otherwise.
        """
        self.kind = NodeKind.LEAF
        self.label = self.majority_label
        self.reason = LeafReason.PURE if self.error_count == 0 else LeafReason.NO_USEFUL_SPLIT
        self.attribute_name = None
        self.children = None
        self.threshold = None
        self.less_or_equal_child = None
        self.greater_child = None

    def iter_nodes(self) -> Iterator[TreeNode]:
        """Yield this node and every descendant, depth first.

        Yields:
            TreeNode: Nodes in pre-order.
        """
        yield self
        for child in self.child_nodes():
            yield from child.iter_nodes()

    def leaves(self) -> list[TreeNode]:
        """Return the leaves of this subtree, left to right.

        Returns:
            list[TreeNode]: Leaf nodes in depth-first order.
        """
        return [node for node in self.iter_nodes() if node.is_leaf]

    @property
    def leaf_count(self) -> int:
        """int: Number of leaves in this subtree."""
        return len(self.leaves())

    @property
    def depth(self) -> int:
        """int: Length of the longest root-to-leaf path (0 for a single leaf)."""
        children = self.child_nodes()
        if not children:
            return 0
        return 1 + max(child.depth for child in children)


# ---------------------------------------------------------------------------
# Public models -- explanations
# ---------------------------------------------------------------------------


class Condition(BaseModel):
    """One edge condition on the path from the root to a node.

    Attributes:
        attribute (str): The attribute tested.
        operator (ConditionOp): `"="` for a categorical edge, `"<="` or `">"`
            for a numeric edge.
        value (str | float): Category value for `"="`, threshold otherwise.

    Examples:
        >>> str(Condition(attribute="Car", operator="=", value="yes"))
        'Car = yes'
        >>> Condition(attribute="Mileage", operator="<=", value=25.0).holds("20")
        True
    """

    attribute: str = Field(description="Attribute tested by this edge.")
    operator: ConditionOp = Field(description='"=" for categorical edges, "<=" or ">" for numeric edges.')
    value: str | float = Field(description="Category value for '=' edges, threshold for numeric edges.")

    @model_validator(mode="after")
    def _validate_operator_value_compatibility(self) -> Self:
        """Validate that numeric operators carry a numeric threshold.

        Returns:
            Self: The validated model instance.

        Raises:
            ValueError: If a `"<="`/`">"` condition has a non-numeric value, or
                an `"="` condition has a non-string value.
        """
        if self.operator == "=" and not isinstance(self.value, str):
            raise ValueError("Operator '=' requires a category value")
        if self.operator != "=" and isinstance(self.value, str):
            raise ValueError(f"Operator '{self.operator}' requires a numeric threshold")
        return self

    def __str__(self) -> str:
        """Return the condition as `"<attribute> <operator> <value>"`.

        Returns:
            str: e.g. `"Car = yes"` or `"Mileage > 25"`.
        """
        if isinstance(self.value, str):
            return f"{self.attribute} = {self.value}"
        return f"{self.attribute} {self.operator} {format_number(self.value)}"

    def holds(self, raw: str) -> bool:
        """Evaluate this condition against a raw answer token.

        Args:
            raw (str): The answer given for `attribute`.

        Returns:
            bool: `True` if the answer satisfies the condition. Numeric
                conditions are `False` for unparseable answers.
        """
        if isinstance(self.value, str):
            return raw == self.value
        number = parse_numeric(raw)
        if number is None:
            return False
        return number <= self.value if self.operator == "<=" else number > self.value


class Rule(BaseModel):
    """An IF-THEN rule read off one leaf of the tree.

    Attributes:
        conditions (list[Condition]): Edge conditions from the root to the
            leaf. Empty when the tree is a single leaf.
        label (str): Label predicted by the leaf.
        reason (LeafReason | None): Why the leaf stopped splitting, if recorded.
        samples (int): Training examples that reached the leaf.

    Examples:
        >>> rule = Rule(
        ...     conditions=[Condition(attribute="Car", operator="=", value="no")],
        ...     label="home",
        ...     reason=LeafReason.PURE,
        ...     samples=1,
        ... )
        >>> str(rule)
        'IF Car = no THEN home'
    """

    conditions: list[Condition] = Field(description="Edge conditions from the root to the leaf.")
    label: str = Field(description="Label predicted by the leaf.")
    reason: LeafReason | None = Field(default=None, description="Why the leaf stopped splitting.")
    samples: int = Field(ge=0, description="Training examples that reached the leaf.")

    def __str__(self) -> str:
        """Return the rule as `"IF <conditions> THEN <label>"`.

        Returns:
            str: The rendered rule; `"IF <always> THEN <label>"` for a rule
                without conditions.
        """
        if not self.conditions:
            return f"IF <always> THEN {self.label}"
        joined = " AND ".join(str(condition) for condition in self.conditions)
        return f"IF {joined} THEN {self.label}"


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def format_number(value: float) -> str:
    """Render a number without a trailing `.0` for whole values.

    Args:
        value (float): The number to render.

    Returns:
        str: `"25"` for `25.0`, `"12.5"` for `12.5`.
    """
    if value.is_integer():
        return str(int(value))
    return repr(value)


def parse_numeric(raw: str | None) -> float | None:
    """Parse a raw value token as a finite number.

    Args:
        raw (str | None): The token to parse.

    Returns:
        float | None: The parsed number, or `None` for a missing token, the
            wildcard, non-numeric text, NaN, or an infinity.

    Examples:
        >>> parse_numeric(" 12.5 ")
        12.5
        >>> parse_numeric("*") is None
        True
    """
    if raw is None:
        return None
    token = raw.strip()
    if not token or token == WILDCARD:
        return None
    try:
        number = float(token)
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return number
