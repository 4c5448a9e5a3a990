"""Attribute scoring: entropy, information gain, split information, and gain ratio."""

from __future__ import annotations

import math
from collections import Counter
from collections.abc import Iterable, Sequence
from typing import NamedTuple

import numpy as np

from expertkit.tree.models import WILDCARD, AttributeDef, TrainingExample, parse_numeric

# ---------------------------------------------------------------------------
# Module-level constants
# ---------------------------------------------------------------------------

GAIN_TOLERANCE: float = 1e-12  # Gains this close to zero are rounding noise, not information.
_DISTINCT_VALUE_EPSILON: float = 1e-9  # Sorted numeric values closer than this form no candidate threshold.


# ---------------------------------------------------------------------------
# Public result types
# ---------------------------------------------------------------------------


class CategoricalScore(NamedTuple):
    """Selection quantities for one categorical attribute.

    Attributes:
        info_gain (float): Information gain, down-weighted by the fraction of
            examples with a known value.
        split_info (float): Entropy of the known examples across domain values.
        gain_ratio (float): `info_gain / split_info`, or 0 when either is 0.
    """

    info_gain: float
    split_info: float
    gain_ratio: float


class NumericScore(NamedTuple):
    """Best binary split found for one numeric attribute.

    Attributes:
        threshold (float): Split point; values `<= threshold` go left.
        info_gain (float): Weighted information gain minus the multi-threshold penalty.
        split_info (float): Entropy of the known examples across the two sides.
        gain_ratio (float): `info_gain / split_info`.
    """

    threshold: float
    info_gain: float
    split_info: float
    gain_ratio: float


# ---------------------------------------------------------------------------
# Public interface -- Entropy
# ---------------------------------------------------------------------------


def label_entropy(labels: Iterable[str]) -> float:
    """Compute the base-2 Shannon entropy of a label distribution.

    Args:
        labels (Iterable[str]): Class labels, one per example.

    Returns:
        float: Entropy in bits; 0.0 for an empty input.

    Examples:
        >>> label_entropy(["a", "a", "b", "b"])
        1.0
        >>> label_entropy([])
        0.0
    """
    counts = np.fromiter(Counter(labels).values(), dtype=float)
    if counts.size == 0:
        return 0.0
    probabilities = counts / counts.sum()
    return float(-(probabilities * np.log2(probabilities)).sum()) + 0.0


def entropy(examples: Sequence[TrainingExample]) -> float:
    """Compute the entropy of the label distribution of a set of examples.

    Args:
        examples (Sequence[TrainingExample]): The examples.

    Returns:
        float: Entropy in bits; 0.0 for an empty set.
    """
    return label_entropy(example.label for example in examples)


# ---------------------------------------------------------------------------
# Public interface -- Categorical attributes
# ---------------------------------------------------------------------------


def score_categorical(examples: Sequence[TrainingExample], attribute: AttributeDef) -> CategoricalScore:
    """Score a categorical attribute by gain ratio.

    Only examples with a known (non-wildcard) value take part in the entropy
    terms. The resulting gain is scaled by `|known| / |examples|`, so an
    attribute that is often unknown scores lower than an equally informative
    attribute that is always known.

    Args:
        examples (Sequence[TrainingExample]): Examples at the current node.
        attribute (AttributeDef): A categorical attribute.

    Returns:
        CategoricalScore: Information gain, split information, and gain ratio.
            All zero when no example has a known value.

    Raises:
        ValueError: If `attribute` is numeric.
    """
    if attribute.is_numeric:
        raise ValueError(f"Attribute '{attribute.name}' is numeric; use best_numeric_split")

    known = [example for example in examples if example.value_of(attribute.name) != WILDCARD]
    if not known:
        return CategoricalScore(0.0, 0.0, 0.0)

    known_count = len(known)
    entropy_after = 0.0
    split_info = 0.0
    for value in attribute.domain:
        subset = [example for example in known if example.value_of(attribute.name) == value]
        if not subset:
            continue
        weight = len(subset) / known_count
        entropy_after += weight * entropy(subset)
        split_info -= weight * math.log2(weight)

    info_gain_known = entropy(known) - entropy_after
    info_gain = _clamp_gain(info_gain_known * (known_count / len(examples)))
    split_info = _clamp_gain(split_info)
    gain_ratio = info_gain / split_info if info_gain > 0.0 and split_info > 0.0 else 0.0
    return CategoricalScore(info_gain, split_info, gain_ratio)


# ---------------------------------------------------------------------------
# Public interface -- Numeric attributes
# ---------------------------------------------------------------------------


def best_numeric_split(examples: Sequence[TrainingExample], attribute: AttributeDef) -> NumericScore | None:
    """Find the threshold that maximizes gain ratio for a numeric attribute.

    Candidate thresholds are the midpoints between adjacent distinct values
    among the examples with a parseable value. Because testing many
    thresholds favours numeric attributes, every candidate's gain is reduced
    by `log2(number_of_candidates) / |examples|` when there is more than one
    candidate.

    Args:
        examples (Sequence[TrainingExample]): Examples at the current node.
        attribute (AttributeDef): A numeric attribute.

    Returns:
        NumericScore | None: The best split, or `None` when fewer than two
            examples have a parseable value or no threshold keeps a positive
            gain after the penalty. Ties on gain ratio keep the lowest threshold.

    Raises:
        ValueError: If `attribute` is categorical.

    Examples:
        >>> from expertkit.tree.models import TrainingExample, AttributeDef
        >>> rows = [("10", "A"), ("20", "A"), ("30", "B"), ("40", "B")]
        >>> examples = [TrainingExample(attributes={"x": v}, label=lbl) for v, lbl in rows]
        >>> best_numeric_split(examples, AttributeDef.numeric("x")).threshold
        25.0
    """
    if not attribute.is_numeric:
        raise ValueError(f"Attribute '{attribute.name}' is categorical; use score_categorical")

    samples: list[tuple[float, str]] = []
    for example in examples:
        number = parse_numeric(example.value_of(attribute.name))
        if number is not None:
            samples.append((number, example.label))

    known_count = len(samples)
    if known_count < 2:
        return None

    samples.sort(key=lambda sample: sample[0])
    thresholds = _candidate_thresholds([value for value, _ in samples])
    penalty = math.log2(len(thresholds)) / len(examples) if len(thresholds) > 1 else 0.0
    known_fraction = known_count / len(examples)
    entropy_before = label_entropy(label for _, label in samples)

    best: NumericScore | None = None
    for threshold in thresholds:
        left = [label for value, label in samples if value <= threshold]
        right = [label for value, label in samples if value > threshold]
        if not left or not right:
            continue

        left_weight = len(left) / known_count
        right_weight = len(right) / known_count
        entropy_after = left_weight * label_entropy(left) + right_weight * label_entropy(right)
        info_gain = _clamp_gain(known_fraction * (entropy_before - entropy_after) - penalty)
        if info_gain <= 0.0:
            continue

        split_info = -left_weight * math.log2(left_weight) - right_weight * math.log2(right_weight)
        if split_info <= 0.0:
            continue

        gain_ratio = info_gain / split_info
        if best is None or gain_ratio > best.gain_ratio:
            best = NumericScore(threshold, info_gain, split_info, gain_ratio)

    return best


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def _candidate_thresholds(sorted_values: list[float]) -> list[float]:
    """Return the midpoints between adjacent distinct sorted values.

    Args:
        sorted_values (list[float]): Values in ascending order, duplicates allowed.

    Returns:
        list[float]: One midpoint per pair of adjacent distinct values, ascending.
    """
    return [
        (lower + upper) / 2.0
        for lower, upper in zip(sorted_values, sorted_values[1:], strict=False)
        if abs(upper - lower) >= _DISTINCT_VALUE_EPSILON
    ]


def _clamp_gain(value: float) -> float:
    """Snap values within `GAIN_TOLERANCE` of zero to exactly zero.

    Args:
        value (float): A gain or split-information value.

    Returns:
        float: `0.0` for near-zero input, otherwise `value` unchanged.
    """
    return 0.0 if abs(value) < GAIN_TOLERANCE else value
