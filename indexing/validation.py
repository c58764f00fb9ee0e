"""
MiniDB B-Tree Validation
========================
Diagnostic invariant checker. Walks the whole tree (pre-order, left to
right) and raises InvariantViolation for the first broken rule. Never
repairs anything and is never called on a hot path.

Rules checked per node:
  NODE_SHAPE     values parallel to keys; leaves have no children
  KEY_COUNT      T-1 <= n <= 2T-1 (root: n <= 2T-1, internal root n >= 1)
  CHILD_COUNT    internal node has n + 1 children
  KEY_ORDER      keys strictly ascending inside the node
  SUBTREE_ORDER  every key lies strictly between its bounding separators
Rules checked per tree:
  LEAF_DEPTH     all leaves at the same depth
  ENTRY_COUNT    number of stored entries equals the tree's count
"""

import logging
from enum import Enum
from typing import Any, List, Optional

from indexing.node import BTreeNode, Comparator

logger = logging.getLogger(__name__)


class Invariant(Enum):
    NODE_SHAPE = "NODE_SHAPE"
    KEY_COUNT = "KEY_COUNT"
    CHILD_COUNT = "CHILD_COUNT"
    KEY_ORDER = "KEY_ORDER"
    SUBTREE_ORDER = "SUBTREE_ORDER"
    LEAF_DEPTH = "LEAF_DEPTH"
    ENTRY_COUNT = "ENTRY_COUNT"


class InvariantViolation(Exception):
    """Raised by validate() when the tree breaks a structural rule."""

    def __init__(self, rule: Invariant, message: str,
                 path: Optional[List[int]] = None):
        self.rule = rule
        self.path = list(path) if path is not None else []
        super().__init__(f"{rule.value} at {_describe(self.path)}: {message}")


def _describe(path: List[int]) -> str:
    if not path:
        return "root"
    return "root/" + "/".join(str(i) for i in path)


# ─── Validator ──────────────────────────────────────────────────────────────

class _Validator:

    def __init__(self, min_degree: int, comparator: Comparator):
        self.min_keys = min_degree - 1
        self.max_keys = 2 * min_degree - 1
        self.cmp = comparator
        self.leaf_depth: Optional[int] = None
        self.entries = 0

    def fail(self, rule: Invariant, message: str, path: List[int]) -> None:
        error = InvariantViolation(rule, message, path)
        logger.warning("B-Tree validation failed: %s", error)
        raise error

    def check(self, node: BTreeNode, lo: Any, hi: Any, has_lo: bool,
              has_hi: bool, path: List[int]) -> None:
        n = len(node.keys)
        is_root = not path

        # Shape
        if len(node.values) != n:
            self.fail(Invariant.NODE_SHAPE,
                      f"{n} keys but {len(node.values)} values", path)
        if node.is_leaf and node.children:
            self.fail(Invariant.NODE_SHAPE,
                      f"leaf holds {len(node.children)} children", path)

        # Key count bounds
        if n > self.max_keys:
            self.fail(Invariant.KEY_COUNT,
                      f"{n} keys exceeds maximum {self.max_keys}", path)
        if is_root:
            if not node.is_leaf and n == 0:
                self.fail(Invariant.KEY_COUNT, "internal root has no keys", path)
        elif n < self.min_keys:
            self.fail(Invariant.KEY_COUNT,
                      f"{n} keys below minimum {self.min_keys}", path)

        if not node.is_leaf and len(node.children) != n + 1:
            self.fail(Invariant.CHILD_COUNT,
                      f"{n} keys but {len(node.children)} children", path)

        # Intra-node ordering
        for i in range(1, n):
            if self.cmp(node.keys[i - 1], node.keys[i]) >= 0:
                self.fail(Invariant.KEY_ORDER,
                          f"keys[{i - 1}]={node.keys[i - 1]!r} is not below "
                          f"keys[{i}]={node.keys[i]!r}", path)

        # Inter-node ordering: keys must sit inside the parent's separators
        if n:
            if has_lo and self.cmp(node.keys[0], lo) <= 0:
                self.fail(Invariant.SUBTREE_ORDER,
                          f"key {node.keys[0]!r} not above separator {lo!r}", path)
            if has_hi and self.cmp(node.keys[-1], hi) >= 0:
                self.fail(Invariant.SUBTREE_ORDER,
                          f"key {node.keys[-1]!r} not below separator {hi!r}", path)

        self.entries += n

        if node.is_leaf:
            depth = len(path)
            if self.leaf_depth is None:
                self.leaf_depth = depth
            elif depth != self.leaf_depth:
                self.fail(Invariant.LEAF_DEPTH,
                          f"leaf at depth {depth}, expected {self.leaf_depth}", path)
            return

        for i, child in enumerate(node.children):
            child_has_lo = i > 0 or has_lo
            child_lo = node.keys[i - 1] if i > 0 else lo
            child_has_hi = i < n or has_hi
            child_hi = node.keys[i] if i < n else hi
            self.check(child, child_lo, child_hi, child_has_lo, child_has_hi,
                       path + [i])


def validate_tree(root: BTreeNode, min_degree: int, comparator: Comparator,
                  expected_count: int) -> None:
    """
    Verify every structural invariant of the tree rooted at `root`.
    Returns None when healthy; raises InvariantViolation otherwise.
    """
    validator = _Validator(min_degree, comparator)
    validator.check(root, None, None, False, False, [])
    if validator.entries != expected_count:
        validator.fail(Invariant.ENTRY_COUNT,
                       f"tree stores {validator.entries} entries but count is "
                       f"{expected_count}", [])
