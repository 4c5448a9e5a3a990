"""Tests for the tree domain models: AttributeDef, TrainingExample, TreeNode, Condition, Rule."""

from __future__ import annotations

import math

import pytest
from pydantic import ValidationError
from pytest_check import check

from expertkit.exceptions import StructuralError
from expertkit.tree.models import (
    WILDCARD,
    AttributeDef,
    Condition,
    LeafReason,
    NodeKind,
    Rule,
    TrainingExample,
    TreeNode,
    format_number,
    parse_numeric,
)


@pytest.fixture
def numeric_tree() -> TreeNode:
    """A numeric split on Mileage at 25 with two pure leaves.

    Returns:
        TreeNode: The split node.
    """
    return TreeNode.numeric_split(
        "Mileage",
        25.0,
        TreeNode.leaf("expensive", LeafReason.PURE, example_count=2),
        TreeNode.leaf("cheap", LeafReason.PURE, example_count=2),
        example_count=4,
        error_count=2,
        majority_label="expensive",
    )


class TestAttributeDef:
    """Tests for AttributeDef construction and validation."""

    def test_categorical_constructor_keeps_domain_order(self) -> None:
        """The domain should be stored as a tuple in the order given."""
        # Arrange / Act
        weather = AttributeDef.categorical("Weather", ["raining", "sunny", "cloudy"])

        # Assert
        with check:
            assert weather.kind == "categorical"
        with check:
            assert weather.domain == ("raining", "sunny", "cloudy")
        with check:
            assert not weather.is_numeric

    def test_numeric_constructor_has_empty_domain(self) -> None:
        """A numeric attribute should carry no domain."""
        # Arrange / Act
        mileage = AttributeDef.numeric("Mileage")

        # Assert
        with check:
            assert mileage.is_numeric
        with check:
            assert mileage.domain == ()

    def test_numeric_attribute_with_domain_rejected(self) -> None:
        """A numeric attribute must not define category values."""
        # Arrange / Act / Assert
        with pytest.raises(ValidationError, match="must not define a domain"):
            AttributeDef(name="Mileage", kind="numeric", domain=("low", "high"))

    def test_duplicate_domain_values_rejected(self) -> None:
        """Repeated category values should be rejected."""
        # Arrange / Act / Assert
        with pytest.raises(ValidationError, match="duplicate"):
            AttributeDef.categorical("Car", ["yes", "no", "yes"])

    def test_wildcard_in_domain_rejected(self) -> None:
        """The wildcard token is not a category value."""
        # Arrange / Act / Assert
        with pytest.raises(ValidationError, match="wildcard"):
            AttributeDef.categorical("Car", ["yes", WILDCARD])

    def test_empty_name_rejected(self) -> None:
        """Attribute names must be non-empty."""
        # Arrange / Act / Assert
        with pytest.raises(ValidationError):
            AttributeDef.numeric("")

    def test_attribute_is_frozen(self) -> None:
        """Attribute definitions are immutable once created."""
        # Arrange
        car = AttributeDef.categorical("Car", ["yes", "no"])

        # Act / Assert
        with pytest.raises(ValidationError):
            car.name = "Vehicle"  # type: ignore[misc]


class TestTrainingExample:
    """Tests for TrainingExample value handling."""

    def test_absent_attribute_reads_as_wildcard(self) -> None:
        """An attribute missing from the mapping should read as the wildcard."""
        # Arrange
        example = TrainingExample(attributes={"Car": "no"}, label="home")

        # Act / Assert
        with check:
            assert example.value_of("Car") == "no"
        with check:
            assert example.value_of("Weather") == WILDCARD

    def test_numeric_values_are_stringified(self) -> None:
        """Int and float values should be stored as text."""
        # Arrange / Act
        example = TrainingExample(attributes={"Mileage": 12, "Price": 9.5}, label="cheap")

        # Assert
        assert example.attributes == {"Mileage": "12", "Price": "9.5"}

    def test_empty_label_rejected(self) -> None:
        """Labels must be non-empty."""
        # Arrange / Act / Assert
        with pytest.raises(ValidationError):
            TrainingExample(attributes={}, label="")


class TestTreeNode:
    """Tests for TreeNode factories, accessors, and traversal helpers."""

    def test_leaf_defaults_majority_to_label(self) -> None:
        """A leaf without an explicit majority label should use its own label."""
        # Arrange / Act
        leaf = TreeNode.leaf("home", LeafReason.PURE, example_count=3)

        # Assert
        with check:
            assert leaf.is_leaf
        with check:
            assert leaf.leaf_label() == "home"
        with check:
            assert leaf.majority_label == "home"
        with check:
            assert leaf.example_count == 3

    def test_numeric_branches_returns_split_fields(self, numeric_tree: TreeNode) -> None:
        """numeric_branches should return the threshold and both children.

        Args:
            numeric_tree (TreeNode): Fixture with a numeric split.
        """
        # Arrange / Act
        threshold, left, right = numeric_tree.numeric_branches()

        # Assert
        with check:
            assert threshold == 25.0
        with check:
            assert left.leaf_label() == "expensive"
        with check:
            assert right.leaf_label() == "cheap"

    def test_malformed_numeric_node_raises_structural_error(self) -> None:
        """A numeric node without children is a structural defect."""
        # Arrange
        node = TreeNode(kind=NodeKind.NUMERIC, attribute_name="Mileage", threshold=25.0)

        # Act / Assert
        with pytest.raises(StructuralError):
            node.numeric_branches()

    def test_categorical_node_without_children_raises_structural_error(self) -> None:
        """A categorical node with no children is a structural defect."""
        # Arrange
        node = TreeNode(kind=NodeKind.CATEGORICAL, attribute_name="Car", children={})

        # Act / Assert
        with pytest.raises(StructuralError) as exc_info:
            node.categorical_branches()

        assert exc_info.value.node_kind == NodeKind.CATEGORICAL

    def test_leaf_label_on_split_raises_structural_error(self, numeric_tree: TreeNode) -> None:
        """Asking a split node for its leaf label is a structural defect.

        Args:
            numeric_tree (TreeNode): Fixture with a numeric split.
        """
        # Arrange / Act / Assert
        with pytest.raises(StructuralError):
            numeric_tree.leaf_label()

    def test_tested_attribute_on_leaf_raises_structural_error(self) -> None:
        """Leaves test no attribute."""
        # Arrange / Act / Assert
        with pytest.raises(StructuralError):
            TreeNode.leaf("home", LeafReason.PURE).tested_attribute()

    def test_leaf_count_and_depth(self, numeric_tree: TreeNode) -> None:
        """A single split over two leaves has two leaves and depth one.

        Args:
            numeric_tree (TreeNode): Fixture with a numeric split.
        """
        # Arrange / Act / Assert
        with check:
            assert numeric_tree.leaf_count == 2
        with check:
            assert numeric_tree.depth == 1
        with check:
            assert len(list(numeric_tree.iter_nodes())) == 3

    def test_collapse_keeps_metadata_and_uses_majority(self, numeric_tree: TreeNode) -> None:
        """Collapsing should predict the majority label and keep the build counts.

        Args:
            numeric_tree (TreeNode): Fixture with a numeric split.
        """
        # Arrange / Act
        numeric_tree.collapse()

        # Assert
        with check:
            assert numeric_tree.is_leaf
        with check:
            assert numeric_tree.leaf_label() == "expensive"
        with check:
            assert numeric_tree.reason == LeafReason.NO_USEFUL_SPLIT
        with check:
            assert (numeric_tree.example_count, numeric_tree.error_count) == (4, 2)
        with check:
            assert numeric_tree.threshold is None
        with check:
            assert numeric_tree.child_nodes() == []

    def test_collapse_without_errors_is_pure(self) -> None:
        """A collapsed node with no errors should be marked pure."""
        # Arrange
        node = TreeNode.categorical_split(
            "Car",
            {"yes": TreeNode.leaf("home", LeafReason.PURE), "no": TreeNode.leaf("home", LeafReason.PURE)},
            example_count=2,
            error_count=0,
            majority_label="home",
        )

        # Act
        node.collapse()

        # Assert
        assert node.reason == LeafReason.PURE


class TestCondition:
    """Tests for Condition rendering, validation, and evaluation."""

    @pytest.mark.parametrize(
        ("condition", "expected"),
        [
            (Condition(attribute="Car", operator="=", value="yes"), "Car = yes"),
            (Condition(attribute="Mileage", operator="<=", value=25.0), "Mileage <= 25"),
            (Condition(attribute="Mileage", operator=">", value=12.5), "Mileage > 12.5"),
        ],
        ids=["categorical", "numeric-whole", "numeric-fraction"],
    )
    def test_str_rendering(self, condition: Condition, expected: str) -> None:
        """Conditions should render as `attribute operator value`.

        Args:
            condition (Condition): The condition to render.
            expected (str): The expected text.
        """
        # Arrange / Act / Assert
        assert str(condition) == expected

    def test_numeric_operator_with_text_value_rejected(self) -> None:
        """`<=` and `>` require a numeric threshold."""
        # Arrange / Act / Assert
        with pytest.raises(ValidationError, match="numeric threshold"):
            Condition(attribute="Mileage", operator="<=", value="low")

    def test_equality_with_number_rejected(self) -> None:
        """`=` requires a category value."""
        # Arrange / Act / Assert
        with pytest.raises(ValidationError, match="category value"):
            Condition(attribute="Car", operator="=", value=1.0)

    def test_holds_evaluates_numeric_and_categorical_answers(self) -> None:
        """holds should compare parsed numbers and exact category text."""
        # Arrange
        at_most = Condition(attribute="Mileage", operator="<=", value=25.0)
        above = Condition(attribute="Mileage", operator=">", value=25.0)
        car = Condition(attribute="Car", operator="=", value="yes")

        # Act / Assert
        with check:
            assert at_most.holds("25")
        with check:
            assert not above.holds("25")
        with check:
            assert above.holds("25.5")
        with check:
            assert not at_most.holds("unknown")
        with check:
            assert car.holds("yes")
        with check:
            assert not car.holds("Yes")


class TestRule:
    """Tests for Rule rendering."""

    def test_rule_without_conditions_renders_always(self) -> None:
        """A single-leaf tree yields an unconditional rule."""
        # Arrange
        rule = Rule(conditions=[], label="beach", reason=LeafReason.PURE, samples=4)

        # Act / Assert
        assert str(rule) == "IF <always> THEN beach"

    def test_rule_joins_conditions_with_and(self) -> None:
        """Conditions should be joined with AND in path order."""
        # Arrange
        rule = Rule(
            conditions=[
                Condition(attribute="Car", operator="=", value="yes"),
                Condition(attribute="Family", operator="=", value="no"),
            ],
            label="fishing",
            reason=LeafReason.PURE,
            samples=1,
        )

        # Act / Assert
        assert str(rule) == "IF Car = yes AND Family = no THEN fishing"

    def test_negative_samples_rejected(self) -> None:
        """Sample counts cannot be negative."""
        # Arrange / Act / Assert
        with pytest.raises(ValidationError):
            Rule(conditions=[], label="beach", samples=-1)


class TestNumberHelpers:
    """Tests for format_number and parse_numeric."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(25.0, "25"), (12.5, "12.5"), (-3.0, "-3"), (0.1, "0.1")],
    )
    def test_format_number(self, value: float, expected: str) -> None:
        """Whole numbers should render without a trailing `.0`.

        Args:
            value (float): The number to render.
            expected (str): The expected text.
        """
        # Arrange / Act / Assert
        assert format_number(value) == expected

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [(" 42 ", 42.0), ("-1.5", -1.5), ("1e3", 1000.0)],
    )
    def test_parse_numeric_accepts_numbers(self, raw: str, expected: float) -> None:
        """Finite numbers should parse, ignoring surrounding whitespace.

        Args:
            raw (str): The token to parse.
            expected (float): The parsed value.
        """
        # Arrange / Act
        result = parse_numeric(raw)

        # Assert
        assert result is not None and math.isclose(result, expected)

    @pytest.mark.parametrize("raw", [None, "", "   ", WILDCARD, "abc", "nan", "inf", "-Infinity"])
    def test_parse_numeric_rejects_non_numbers(self, raw: str | None) -> None:
        """Missing, wildcard, non-numeric, and non-finite tokens should yield None.

        Args:
            raw (str | None): The token to parse.
        """
        # Arrange / Act / Assert
        assert parse_numeric(raw) is None
