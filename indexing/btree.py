"""
MiniDB B-Tree
=============
In-memory ordered map backed by a B-Tree (not a B+ Tree: values are kept
in internal nodes as well as leaves). Intended as the indexing core of a
storage engine or ordered cache.

Parameters:
  - min_degree (T): every non-root node holds T-1 .. 2T-1 keys.
  - comparator: cmp(a, b) -> int total order over keys (see comparators.py).

Algorithms:
  - Insert: single top-down pass. Full nodes are split before descending,
    so a split never propagates upward. Splitting a full root is the only
    way the tree grows taller.
  - Delete: single top-down pass. Before descending into a child it is
    topped up to at least T keys (borrow from a sibling, or merge with
    one), so removal from a leaf never underflows. An internal root left
    with no keys is replaced by its only child (height shrinks by one).

Concurrency: single-threaded, no locking. Mutating the tree invalidates
open cursors (they raise RuntimeError on the next step).
Persistence: none. A storage layer on top owns durability.
"""

import logging
from typing import Any, Iterator, Optional, Tuple

from indexing.comparators import natural_order
from indexing.cursor import InOrderCursor, RangeCursor
from indexing.node import BTreeNode, Comparator
from indexing.validation import validate_tree

logger = logging.getLogger(__name__)

# ─── Constants ──────────────────────────────────────────────────────────────

DEFAULT_MIN_DEGREE = 32
MIN_DEGREE_FLOOR = 2


# ─── B-Tree ────────────────────────────────────────────────────────────────

class BTree:
    """
    Ordered key/value map.

    Usage:
        bt = BTree(min_degree=4)
        bt.add_or_update(10, "ten")          # True  (added)
        bt.add_or_update(10, "TEN")          # False (updated)
        found, value = bt.try_get(10)        # (True, "TEN")
        list(bt.range(5, 15))                # [(10, "TEN")]
        bt.delete(10)                        # True
    """

    def __init__(self, min_degree: int = DEFAULT_MIN_DEGREE,
                 comparator: Optional[Comparator] = None):
        if isinstance(min_degree, bool) or not isinstance(min_degree, int):
            raise ValueError(f"Minimum degree must be an int, got {min_degree!r}")
        if min_degree < MIN_DEGREE_FLOOR:
            raise ValueError(
                f"Minimum degree T must be >= {MIN_DEGREE_FLOOR}, got {min_degree}")

        self._t = min_degree
        self._comparator: Comparator = comparator if comparator is not None else natural_order
        self._root = BTreeNode(is_leaf=True)
        self._count = 0
        self._mod_count = 0
        logger.debug("Created B-Tree with min_degree=%d", min_degree)

    @property
    def min_degree(self) -> int:
        return self._t

    @property
    def max_keys(self) -> int:
        """Maximum keys per node (2T-1)."""
        return 2 * self._t - 1

    @property
    def min_keys(self) -> int:
        """Minimum keys per non-root node (T-1)."""
        return self._t - 1

    @property
    def comparator(self) -> Comparator:
        return self._comparator

    @property
    def count(self) -> int:
        """Number of distinct keys stored."""
        return self._count

    @property
    def is_empty(self) -> bool:
        return self._count == 0

    @property
    def mod_count(self) -> int:
        """Bumped by every mutating call; cursors use it to detect changes."""
        return self._mod_count

    def __len__(self) -> int:
        return self._count

    def height(self) -> int:
        """Number of levels; a lone root counts as 1."""
        levels = 1
        node = self._root
        while not node.is_leaf:
            node = node.children[0]
            levels += 1
        return levels

    # ─── Lookup ─────────────────────────────────────────────────────

    def try_get(self, key: Any) -> Tuple[bool, Any]:
        """Return (True, value) if key is present, else (False, None)."""
        cmp = self._comparator
        node = self._root
        while True:
            i = node.lower_bound(key, cmp)
            if i < len(node.keys) and cmp(node.keys[i], key) == 0:
                return True, node.values[i]
            if node.is_leaf:
                return False, None
            node = node.children[i]

    def get(self, key: Any, default: Any = None) -> Any:
        found, value = self.try_get(key)
        return value if found else default

    def contains_key(self, key: Any) -> bool:
        return self.try_get(key)[0]

    def __contains__(self, key: Any) -> bool:
        return self.try_get(key)[0]

    # ─── Insert ─────────────────────────────────────────────────────

    def add_or_update(self, key: Any, value: Any) -> bool:
        """
        Insert key → value, or replace the value of an existing key.
        Returns True if a new key was added, False if an existing one was updated.
        """
        self._mod_count += 1

        if len(self._root.keys) == self.max_keys:
            # Root split: the only way height grows
            new_root = BTreeNode(is_leaf=False)
            new_root.children.append(self._root)
            self._split_child(new_root, 0)
            self._root = new_root
            logger.debug("Root split, height now %d", self.height())

        added = self._insert_non_full(self._root, key, value)
        if added:
            self._count += 1
        return added

    def _insert_non_full(self, node: BTreeNode, key: Any, value: Any) -> bool:
        """Insert into a node known to have fewer than 2T-1 keys."""
        cmp = self._comparator
        while True:
            i = node.lower_bound(key, cmp)
            if i < len(node.keys) and cmp(node.keys[i], key) == 0:
                node.values[i] = value
                return False

            if node.is_leaf:
                node.keys.insert(i, key)
                node.values.insert(i, value)
                return True

            if len(node.children[i].keys) == self.max_keys:
                self._split_child(node, i)
                # Median now sits at node.keys[i]
                c = cmp(key, node.keys[i])
                if c == 0:
                    node.values[i] = value
                    return False
                if c > 0:
                    i += 1
            node = node.children[i]

    def _split_child(self, parent: BTreeNode, i: int) -> None:
        """
        Split the full child parent.children[i] around its median (index T-1).
        Median is PUSHED UP into parent at index i; the right half becomes
        a new sibling at parent.children[i + 1].

        Before (T=3): child keys=[k0,k1,k2,k3,k4]
        After:        child=[k0,k1]  parent gets k2  sibling=[k3,k4]
        """
        t = self._t
        child = parent.children[i]
        sibling = BTreeNode(is_leaf=child.is_leaf)

        sibling.keys = child.keys[t:]
        sibling.values = child.values[t:]
        if not child.is_leaf:
            sibling.children = child.children[t:]
            del child.children[t:]

        parent.keys.insert(i, child.keys[t - 1])
        parent.values.insert(i, child.values[t - 1])
        parent.children.insert(i + 1, sibling)

        del child.keys[t - 1:]
        del child.values[t - 1:]

    # ─── Delete ─────────────────────────────────────────────────────

    def delete(self, key: Any) -> bool:
        """Remove key. Returns True if it was present."""
        return self.remove(key)[0]

    def remove(self, key: Any) -> Tuple[bool, Any]:
        """Remove key. Returns (True, old_value) if present, else (False, None)."""
        self._mod_count += 1
        removed, value = self._delete_from(self._root, key)

        root = self._root
        if not root.is_leaf and not root.keys:
            # Root shrink: the only way height drops
            self._root = root.children[0]
            logger.debug("Root shrink, height now %d", self.height())

        if removed:
            self._count -= 1
        return removed, value

    def _delete_from(self, node: BTreeNode, key: Any) -> Tuple[bool, Any]:
        """
        Delete key from the subtree at node. Caller guarantees node has at
        least T keys unless it is the root.
        """
        cmp = self._comparator
        i = node.lower_bound(key, cmp)

        if i < len(node.keys) and cmp(node.keys[i], key) == 0:
            if node.is_leaf:
                del node.keys[i]
                return True, node.values.pop(i)
            return self._delete_internal_key(node, i)

        if node.is_leaf:
            return False, None

        i = self._ensure_child_has_spare(node, i)
        return self._delete_from(node.children[i], key)

    def _delete_internal_key(self, node: BTreeNode, i: int) -> Tuple[bool, Any]:
        """Remove node.keys[i] from an internal node."""
        t = self._t
        key = node.keys[i]
        old_value = node.values[i]
        left = node.children[i]
        right = node.children[i + 1]

        if len(left.keys) >= t:
            pred_key, pred_value = self._max_entry(left)
            node.keys[i] = pred_key
            node.values[i] = pred_value
            self._delete_from(left, pred_key)
            return True, old_value

        if len(right.keys) >= t:
            succ_key, succ_value = self._min_entry(right)
            node.keys[i] = succ_key
            node.values[i] = succ_value
            self._delete_from(right, succ_key)
            return True, old_value

        # Both neighbours at T-1: fold separator and right into left
        self._merge_children(node, i)
        return self._delete_from(left, key)

    def _ensure_child_has_spare(self, node: BTreeNode, i: int) -> int:
        """
        Make node.children[i] hold at least T keys before descending.
        Returns the (possibly shifted) index of the child to descend into.
        """
        t = self._t
        if len(node.children[i].keys) >= t:
            return i

        if i > 0 and len(node.children[i - 1].keys) >= t:
            self._borrow_from_prev(node, i)
            return i

        if i < len(node.keys) and len(node.children[i + 1].keys) >= t:
            self._borrow_from_next(node, i)
            return i

        if i < len(node.keys):
            self._merge_children(node, i)
            return i

        # Rightmost child: merge into the left sibling instead
        self._merge_children(node, i - 1)
        return i - 1

    def _borrow_from_prev(self, node: BTreeNode, i: int) -> None:
        """Rotate right: separator moves down into child, sibling's last key moves up."""
        child = node.children[i]
        sibling = node.children[i - 1]

        child.keys.insert(0, node.keys[i - 1])
        child.values.insert(0, node.values[i - 1])
        node.keys[i - 1] = sibling.keys.pop()
        node.values[i - 1] = sibling.values.pop()
        if not child.is_leaf:
            child.children.insert(0, sibling.children.pop())

    def _borrow_from_next(self, node: BTreeNode, i: int) -> None:
        """Rotate left: separator moves down into child, sibling's first key moves up."""
        child = node.children[i]
        sibling = node.children[i + 1]

        child.keys.append(node.keys[i])
        child.values.append(node.values[i])
        node.keys[i] = sibling.keys.pop(0)
        node.values[i] = sibling.values.pop(0)
        if not child.is_leaf:
            child.children.append(sibling.children.pop(0))

    def _merge_children(self, node: BTreeNode, i: int) -> None:
        """
        Merge children[i], separator keys[i], and children[i + 1] into
        children[i]. The right node is dropped from the parent.

        Before: parent=[.., s, ..]  left=[a, b]  right=[c, d]
        After:  parent=[.., ..]     left=[a, b, s, c, d]
        """
        left = node.children[i]
        right = node.children.pop(i + 1)

        left.keys.append(node.keys.pop(i))
        left.values.append(node.values.pop(i))
        left.keys.extend(right.keys)
        left.values.extend(right.values)
        if not left.is_leaf:
            left.children.extend(right.children)

    @staticmethod
    def _max_entry(node: BTreeNode) -> Tuple[Any, Any]:
        while not node.is_leaf:
            node = node.children[-1]
        return node.keys[-1], node.values[-1]

    @staticmethod
    def _min_entry(node: BTreeNode) -> Tuple[Any, Any]:
        while not node.is_leaf:
            node = node.children[0]
        return node.keys[0], node.values[0]

    # ─── Iteration ──────────────────────────────────────────────────

    def items(self) -> Iterator[Tuple[Any, Any]]:
        """All (key, value) pairs in ascending key order."""
        return InOrderCursor(self, self._root)

    def __iter__(self) -> Iterator[Tuple[Any, Any]]:
        return self.items()

    def keys(self) -> Iterator[Any]:
        return (k for k, _ in self.items())

    def range(self, from_key: Any, to_key: Any) -> Iterator[Tuple[Any, Any]]:
        """
        (key, value) pairs with from_key <= key <= to_key, ascending.
        Empty when from_key > to_key.
        """
        return RangeCursor(self, self._root, self._comparator, from_key, to_key)

    # ─── Debug / Verification ───────────────────────────────────────

    def validate(self) -> None:
        """
        Verify structural integrity. Raises InvariantViolation naming the
        first broken rule; returns None when the tree is healthy.
        """
        validate_tree(self._root, self._t, self._comparator, self._count)

    def __repr__(self) -> str:
        return (f"BTree(min_degree={self._t}, count={self._count}, "
                f"height={self.height()})")
