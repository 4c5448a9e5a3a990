"""Pessimistic error pruning by subtree replacement."""

from __future__ import annotations

import math

from expertkit.config import DEFAULT_PRUNING_Z
from expertkit.tree.models import TreeNode


def pessimistic_error(example_count: int, error_count: int, *, z: float = DEFAULT_PRUNING_Z) -> float:
    """Estimate the number of errors a node would make on unseen cases.

    Uses the normal approximation to the upper confidence bound of the
    binomial error rate, scaled back to a count of errors.

    Args:
        example_count (int): Training examples at the node (`n`).
        error_count (int): Of those, examples the node misclassifies (`e`).
        z (float): Normal quantile; 0.6745 matches a 25% confidence factor.

    Returns:
        float: The estimated error count; 0.0 when `example_count` is 0.

    Examples:
        >>> pessimistic_error(0, 0)
        0.0
        >>> round(pessimistic_error(4, 2), 2)
        2.64
    """
    if example_count == 0:
        return 0.0

    n = float(example_count)
    f = error_count / n
    z2 = z * z
    numerator = f + z2 / (2.0 * n) + z * math.sqrt(f / n - f * f / n + z2 / (4.0 * n * n))
    denominator = 1.0 + z2 / n
    return n * numerator / denominator


def subtree_error(node: TreeNode, *, z: float = DEFAULT_PRUNING_Z) -> float:
    """Sum the pessimistic error estimates of every leaf below a node.

    Args:
        node (TreeNode): Root of the subtree.
        z (float): Normal quantile passed to `pessimistic_error`.

    Returns:
        float: The summed estimate.
    """
    return sum(pessimistic_error(leaf.example_count, leaf.error_count, z=z) for leaf in node.leaves())


def prune(node: TreeNode, *, z: float = DEFAULT_PRUNING_Z) -> int:
    """Prune a tree in place, bottom-up.

    Children are pruned first. A split node is then collapsed into a leaf
    predicting its majority label when its own estimated error is no larger
    than the summed estimate of the leaves below it. Collapsed leaves keep the
    node's build-time metadata. Only subtree replacement is performed.

    Args:
        node (TreeNode): Root of the tree to prune.
        z (float): Normal quantile passed to `pessimistic_error`.

    Returns:
        int: The number of split nodes collapsed.
    """
    if node.is_leaf:
        return 0

    collapsed = sum(prune(child, z=z) for child in node.child_nodes())

    own_error = pessimistic_error(node.example_count, node.error_count, z=z)
    if own_error <= subtree_error(node, z=z):
        node.collapse()
        collapsed += 1
    return collapsed
