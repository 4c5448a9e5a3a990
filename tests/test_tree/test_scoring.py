"""Tests for attribute scoring: entropy, categorical gain ratio, and numeric thresholds."""

from __future__ import annotations

import math

import pytest
from pytest_check import check

from expertkit.tree.models import AttributeDef, TrainingExample
from expertkit.tree.scoring import best_numeric_split, entropy, label_entropy, score_categorical

WEATHER = AttributeDef.categorical("Weather", ["raining", "sunny", "cloudy"])
FAMILY = AttributeDef.categorical("Family", ["yes", "no"])
CAR = AttributeDef.categorical("Car", ["yes", "no"])
MILEAGE = AttributeDef.numeric("Mileage")


@pytest.fixture
def sunday_examples() -> list[TrainingExample]:
    """The four Sunday-activity examples, with wildcards for irrelevant answers.

    Returns:
        list[TrainingExample]: The training examples.
    """
    rows = [
        ({"Weather": "raining", "Family": "yes", "Car": "yes"}, "museum"),
        ({"Weather": "sunny", "Family": "yes", "Car": "yes"}, "beach"),
        ({"Weather": "*", "Family": "no", "Car": "yes"}, "fishing"),
        ({"Weather": "*", "Family": "*", "Car": "no"}, "home"),
    ]
    return [TrainingExample(attributes=attributes, label=label) for attributes, label in rows]


def _mileage_examples(rows: list[tuple[str, str]]) -> list[TrainingExample]:
    """Build examples with a single Mileage attribute.

    Args:
        rows (list[tuple[str, str]]): `(mileage, label)` pairs.

    Returns:
        list[TrainingExample]: The examples.
    """
    return [TrainingExample(attributes={"Mileage": value}, label=label) for value, label in rows]


class TestEntropy:
    """Tests for label_entropy and entropy."""

    @pytest.mark.parametrize(
        ("labels", "expected"),
        [
            ([], 0.0),
            (["a", "a", "a"], 0.0),
            (["a", "b"], 1.0),
            (["a", "b", "c", "d"], 2.0),
            (["a", "b", "c"], math.log2(3)),
        ],
        ids=["empty", "pure", "two-even", "four-even", "three-even"],
    )
    def test_label_entropy(self, labels: list[str], expected: float) -> None:
        """Entropy should be measured in bits.

        Args:
            labels (list[str]): The labels.
            expected (float): The expected entropy.
        """
        # Arrange / Act / Assert
        assert math.isclose(label_entropy(labels), expected, abs_tol=1e-12)

    def test_pure_entropy_is_positive_zero(self) -> None:
        """A pure distribution should not report negative zero."""
        # Arrange / Act
        result = label_entropy(["a", "a"])

        # Assert
        assert math.copysign(1.0, result) == 1.0

    def test_entropy_of_examples_uses_labels(self, sunday_examples: list[TrainingExample]) -> None:
        """Four distinct labels carry two bits.

        Args:
            sunday_examples (list[TrainingExample]): Fixture examples.
        """
        # Arrange / Act / Assert
        assert math.isclose(entropy(sunday_examples), 2.0)


class TestScoreCategorical:
    """Tests for score_categorical."""

    def test_fully_known_attribute(self, sunday_examples: list[TrainingExample]) -> None:
        """Car is known everywhere and isolates `home`.

        Args:
            sunday_examples (list[TrainingExample]): Fixture examples.
        """
        # Arrange
        expected_gain = 2.0 - 0.75 * math.log2(3)

        # Act
        score = score_categorical(sunday_examples, CAR)

        # Assert
        with check:
            assert math.isclose(score.info_gain, expected_gain)
        with check:
            assert math.isclose(score.split_info, expected_gain)
        with check:
            assert math.isclose(score.gain_ratio, 1.0)

    def test_gain_is_weighted_by_known_fraction(self, sunday_examples: list[TrainingExample]) -> None:
        """Weather is known for half the examples, so its gain is halved.

        Args:
            sunday_examples (list[TrainingExample]): Fixture examples.
        """
        # Arrange / Act
        score = score_categorical(sunday_examples, WEATHER)

        # Assert
        with check:
            assert math.isclose(score.info_gain, 0.5)
        with check:
            assert math.isclose(score.split_info, 1.0)
        with check:
            assert math.isclose(score.gain_ratio, 0.5)

    def test_all_unknown_scores_zero(self) -> None:
        """An attribute with no known values carries no information."""
        # Arrange
        examples = [
            TrainingExample(attributes={"Car": "*"}, label="home"),
            TrainingExample(attributes={}, label="museum"),
        ]

        # Act
        score = score_categorical(examples, CAR)

        # Assert
        assert tuple(score) == (0.0, 0.0, 0.0)

    def test_uninformative_attribute_has_zero_ratio(self) -> None:
        """An attribute whose values do not separate labels has zero gain and ratio."""
        # Arrange
        examples = [
            TrainingExample(attributes={"Car": "yes"}, label="home"),
            TrainingExample(attributes={"Car": "yes"}, label="museum"),
            TrainingExample(attributes={"Car": "no"}, label="home"),
            TrainingExample(attributes={"Car": "no"}, label="museum"),
        ]

        # Act
        score = score_categorical(examples, CAR)

        # Assert
        with check:
            assert score.info_gain == 0.0
        with check:
            assert score.gain_ratio == 0.0

    def test_numeric_attribute_rejected(self, sunday_examples: list[TrainingExample]) -> None:
        """Numeric attributes are scored with best_numeric_split.

        Args:
            sunday_examples (list[TrainingExample]): Fixture examples.
        """
        # Arrange / Act / Assert
        with pytest.raises(ValueError, match="numeric"):
            score_categorical(sunday_examples, MILEAGE)


class TestBestNumericSplit:
    """Tests for best_numeric_split."""

    def test_threshold_is_midpoint_between_classes(self) -> None:
        """Two clean groups split at the midpoint between them, after the penalty."""
        # Arrange
        examples = _mileage_examples([("10", "A"), ("20", "A"), ("30", "B"), ("40", "B")])
        expected_gain = 1.0 - math.log2(3) / 4

        # Act
        score = best_numeric_split(examples, MILEAGE)

        # Assert
        assert score is not None
        with check:
            assert score.threshold == 25.0
        with check:
            assert math.isclose(score.info_gain, expected_gain)
        with check:
            assert math.isclose(score.split_info, 1.0)
        with check:
            assert math.isclose(score.gain_ratio, expected_gain)

    def test_single_candidate_has_no_penalty(self) -> None:
        """With one candidate threshold the gain is not reduced."""
        # Arrange
        examples = _mileage_examples([("10", "A"), ("10", "A"), ("30", "B"), ("30", "B")])

        # Act
        score = best_numeric_split(examples, MILEAGE)

        # Assert
        assert score is not None
        with check:
            assert score.threshold == 20.0
        with check:
            assert math.isclose(score.info_gain, 1.0)

    def test_unknown_values_reduce_gain(self) -> None:
        """Wildcard and unparseable values are skipped and scale down the gain."""
        # Arrange
        examples = _mileage_examples([("10", "A"), ("30", "B"), ("*", "A"), ("n/a", "B")])

        # Act
        score = best_numeric_split(examples, MILEAGE)

        # Assert
        assert score is not None
        with check:
            assert score.threshold == 20.0
        with check:
            assert math.isclose(score.info_gain, 0.5)

    @pytest.mark.parametrize(
        "rows",
        [
            [("10", "A"), ("*", "B")],
            [("10", "A"), ("10", "B"), ("10", "A")],
            [],
        ],
        ids=["one-known", "single-value", "empty"],
    )
    def test_no_candidate_returns_none(self, rows: list[tuple[str, str]]) -> None:
        """Without two distinct known values there is no threshold.

        Args:
            rows (list[tuple[str, str]]): `(mileage, label)` pairs.
        """
        # Arrange / Act / Assert
        assert best_numeric_split(_mileage_examples(rows), MILEAGE) is None

    def test_penalty_can_eliminate_every_threshold(self) -> None:
        """A weak split loses all its gain to the multi-threshold penalty."""
        # Arrange
        examples = _mileage_examples([("1", "A"), ("2", "B"), ("3", "A"), ("4", "B")])

        # Act / Assert
        assert best_numeric_split(examples, MILEAGE) is None

    def test_categorical_attribute_rejected(self, sunday_examples: list[TrainingExample]) -> None:
        """Categorical attributes are scored with score_categorical.

        Args:
            sunday_examples (list[TrainingExample]): Fixture examples.
        """
        # Arrange / Act / Assert
        with pytest.raises(ValueError, match="categorical"):
            best_numeric_split(sunday_examples, CAR)
