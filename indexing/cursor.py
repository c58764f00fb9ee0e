"""
MiniDB B-Tree Cursors
=====================
Lazy ascending traversal over a BTree, driven by an explicit stack.

Each stack frame is [node, i]: every entry of node before keys[i] (and the
subtree children[i]) has already been produced; keys[i] is the next entry
of this node to emit. Emitting keys[i] pushes the leftmost path of
children[i + 1] on internal nodes.

  InOrderCursor  → every (key, value) pair, ascending
  RangeCursor    → pairs with from_key <= key <= to_key, ascending

Range pruning:
  On the initial descent each node is entered at lower_bound(from_key).
  Keys [0, i) and children [0, i) of that node are all < from_key, so they
  are never visited. Everything pushed afterwards lies to the right of an
  emitted key and is therefore >= from_key. The scan stops at the first
  key > to_key and drops the remaining stack.

Mutation: a cursor snapshots the tree's modification counter. Mutating
the tree and then advancing the cursor raises RuntimeError.
"""

from typing import Any, List, Optional, Tuple

from indexing.node import BTreeNode, Comparator


class InOrderCursor:
    """Full ascending iteration. Single pass; ask the tree for a new one to restart."""

    def __init__(self, tree: Any, root: BTreeNode):
        self._tree = tree
        self._expected_mod_count = tree.mod_count
        self._stack: List[list] = []
        self._start(root)

    def _start(self, root: BTreeNode) -> None:
        self._push_leftmost(root)

    def __iter__(self) -> 'InOrderCursor':
        return self

    def __next__(self) -> Tuple[Any, Any]:
        self._check_unchanged()
        entry = self._advance()
        if entry is None:
            raise StopIteration
        return entry

    def _advance(self) -> Optional[Tuple[Any, Any]]:
        """Pop exhausted frames and emit the next entry, or None when done."""
        stack = self._stack
        while stack:
            frame = stack[-1]
            node, i = frame
            if i < len(node.keys):
                frame[1] = i + 1
                if not node.is_leaf:
                    self._push_leftmost(node.children[i + 1])
                return node.keys[i], node.values[i]
            stack.pop()
        return None

    def _push_leftmost(self, node: BTreeNode) -> None:
        while True:
            self._stack.append([node, 0])
            if node.is_leaf:
                return
            node = node.children[0]

    def _check_unchanged(self) -> None:
        if self._tree.mod_count != self._expected_mod_count:
            self._stack.clear()
            raise RuntimeError("BTree mutated during iteration")


class RangeCursor(InOrderCursor):
    """Inclusive [from_key, to_key] scan with subtree pruning."""

    def __init__(self, tree: Any, root: BTreeNode, comparator: Comparator,
                 from_key: Any, to_key: Any):
        self._comparator = comparator
        self._from_key = from_key
        self._to_key = to_key
        super().__init__(tree, root)

    def _start(self, root: BTreeNode) -> None:
        if self._comparator(self._from_key, self._to_key) > 0:
            return
        self._push_lower_bound(root)

    def _push_lower_bound(self, node: BTreeNode) -> None:
        """Descend to the first entry >= from_key, skipping lesser subtrees."""
        while True:
            i = node.lower_bound(self._from_key, self._comparator)
            self._stack.append([node, i])
            if node.is_leaf:
                return
            node = node.children[i]

    def _advance(self) -> Optional[Tuple[Any, Any]]:
        entry = super()._advance()
        if entry is None:
            return None
        if self._comparator(entry[0], self._to_key) > 0:
            # Every later key is larger too
            self._stack.clear()
            return None
        return entry
