"""
MiniDB B-Tree Node
==================
In-memory node shared by leaves and internal nodes.

Layout:
  - keys:     strictly ascending, no duplicates
  - values:   parallel to keys (values[i] belongs to keys[i])
  - children: empty for a leaf, len(keys) + 1 for an internal node

Leaf vs internal is a flag, not a subclass. The node enforces no capacity
limit; the tree splits before a node could exceed 2T-1 keys.
"""

from typing import Any, Callable, List

Comparator = Callable[[Any, Any], int]


class BTreeNode:
    """Single node of a B-Tree (values live in internal nodes too)."""
    __slots__ = ('keys', 'values', 'children', 'is_leaf')

    def __init__(self, is_leaf: bool):
        self.keys: List[Any] = []
        self.values: List[Any] = []
        self.children: List['BTreeNode'] = []   # internal only
        self.is_leaf = is_leaf

    @property
    def key_count(self) -> int:
        return len(self.keys)

    def lower_bound(self, target: Any, comparator: Comparator) -> int:
        """
        Binary search for the first index i with keys[i] >= target.
        Returns len(keys) when every key is smaller.
        """
        lo, hi = 0, len(self.keys)
        while lo < hi:
            mid = (lo + hi) >> 1
            if comparator(self.keys[mid], target) < 0:
                lo = mid + 1
            else:
                hi = mid
        return lo

    def __repr__(self) -> str:
        kind = "leaf" if self.is_leaf else "internal"
        return f"BTreeNode({kind}, keys={self.keys!r})"
