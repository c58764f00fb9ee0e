"""
MiniDB B-Tree Delete Tests
==========================
Covers every rebalancing path of delete:
  ✔ leaf removal
  ✔ internal key replaced by predecessor / successor
  ✔ internal key removed via merge
  ✔ borrow from previous / next sibling (leaf and internal children)
  ✔ merge with right sibling / left sibling (rightmost child)
  ✔ root shrink
  ✔ randomized delete against a reference map
"""

import os
import random
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from indexing import BTree
from indexing.node import BTreeNode


# ═══════════════════════════════════════════════════════════════════
# Helpers
# ═══════════════════════════════════════════════════════════════════

def _node(keys, children=None):
    node = BTreeNode(is_leaf=not children)
    node.keys = list(keys)
    node.values = [k * 10 for k in keys]
    node.children = list(children or [])
    return node


def _tree_with_root(t, root):
    bt = BTree(min_degree=t)
    bt._root = root
    bt._count = len(list(bt.items()))
    bt.validate()
    return bt


def _keys(bt):
    return [k for k, _ in bt]


def _shape(node):
    """Nested (keys, [children...]) snapshot of a subtree."""
    if node.is_leaf:
        return node.keys
    return (node.keys, [_shape(c) for c in node.children])


@pytest.fixture
def two_leaves():
    """T=2: [20] over [10] and [30], every node at the minimum."""
    return _tree_with_root(2, _node([20], [_node([10]), _node([30])]))


# ═══════════════════════════════════════════════════════════════════
# Basic Delete
# ═══════════════════════════════════════════════════════════════════

class TestDeleteBasics:

    def test_delete_from_leaf_drops_count(self):
        bt = BTree(min_degree=3)
        for k in [1, 2, 3]:
            bt.add_or_update(k, k)

        assert bt.delete(2) is True
        assert bt.count == 2
        assert not bt.contains_key(2)
        assert _keys(bt) == [1, 3]

    def test_delete_absent_key(self):
        bt = BTree(min_degree=3)
        bt.add_or_update(1, 1)
        assert bt.delete(99) is False
        assert bt.count == 1

    def test_delete_from_empty_tree(self):
        bt = BTree(min_degree=2)
        assert bt.delete(1) is False
        assert bt.remove(1) == (False, None)
        assert bt.is_empty
        bt.validate()

    def test_remove_returns_old_value(self):
        bt = BTree(min_degree=2)
        for k in range(20):
            bt.add_or_update(k, f"v{k}")

        assert bt.remove(7) == (True, "v7")
        assert bt.remove(7) == (False, None)
        assert bt.count == 19

    def test_remove_internal_key_returns_its_value(self):
        bt = BTree(min_degree=2)
        for k in range(30):
            bt.add_or_update(k, f"v{k}")
        separator = bt._root.keys[0]

        assert bt.remove(separator) == (True, f"v{separator}")
        assert separator not in bt
        bt.validate()

    def test_delete_everything_leaves_empty_leaf_root(self):
        bt = BTree(min_degree=2)
        for k in range(100):
            bt.add_or_update(k, k)
        for k in range(100):
            assert bt.delete(k)

        assert bt.is_empty
        assert bt.height() == 1
        assert bt._root.is_leaf
        assert bt._root.keys == []
        bt.validate()

    def test_insert_then_delete_restores_state(self):
        bt = BTree(min_degree=3)
        for k in range(0, 200, 2):
            bt.add_or_update(k, k)
        before_items = list(bt.items())
        before_count = bt.count

        assert bt.add_or_update(101, "x") is True
        assert bt.delete(101) is True

        assert bt.count == before_count
        assert list(bt.items()) == before_items
        bt.validate()


# ═══════════════════════════════════════════════════════════════════
# Key Found in an Internal Node
# ═══════════════════════════════════════════════════════════════════

class TestDeleteInternalKey:

    def test_replaced_by_predecessor(self):
        bt = _tree_with_root(2, _node([20], [_node([5, 10]), _node([30])]))
        assert bt.remove(20) == (True, 200)
        assert _shape(bt._root) == ([10], [[5], [30]])
        assert bt.get(10) == 100
        bt.validate()

    def test_replaced_by_successor(self):
        bt = _tree_with_root(2, _node([20], [_node([10]), _node([30, 40])]))
        assert bt.remove(20) == (True, 200)
        assert _shape(bt._root) == ([30], [[10], [40]])
        assert bt.get(30) == 300
        bt.validate()

    def test_merge_when_both_children_minimal(self, two_leaves):
        bt = two_leaves
        assert bt.height() == 2
        assert bt.remove(20) == (True, 200)
        # Root emptied by the merge, so height shrinks
        assert bt.height() == 1
        assert _shape(bt._root) == [10, 30]
        assert bt.count == 2
        bt.validate()

    def test_predecessor_from_deep_subtree(self):
        left = _node([15, 25], [_node([10]), _node([20]), _node([30, 35])])
        right = _node([60], [_node([50]), _node([70])])
        bt = _tree_with_root(2, _node([40], [left, right]))

        assert bt.remove(40) == (True, 400)
        assert bt._root.keys == [35]
        assert bt.get(35) == 350
        assert _shape(bt._root.children[0]) == ([15, 25], [[10], [20], [30]])
        assert _keys(bt) == [10, 15, 20, 25, 30, 35, 50, 60, 70]
        bt.validate()


# ═══════════════════════════════════════════════════════════════════
# Key Absent from Node: Fix Child Before Descent
# ═══════════════════════════════════════════════════════════════════

class TestDeleteRebalance:

    def test_borrow_from_previous(self):
        bt = _tree_with_root(2, _node([20], [_node([5, 10]), _node([30])]))
        assert bt.delete(30) is True
        assert _shape(bt._root) == ([10], [[5], [20]])
        assert bt.get(20) == 200
        bt.validate()

    def test_borrow_from_next(self):
        bt = _tree_with_root(2, _node([20], [_node([10]), _node([30, 40])]))
        assert bt.delete(10) is True
        assert _shape(bt._root) == ([30], [[20], [40]])
        bt.validate()

    def test_merge_with_right_sibling(self):
        bt = _tree_with_root(2, _node([20, 40], [_node([10]), _node([30]), _node([50])]))
        assert bt.delete(10) is True
        assert _shape(bt._root) == ([40], [[20, 30], [50]])
        bt.validate()

    def test_merge_rightmost_child_with_left_sibling(self):
        bt = _tree_with_root(2, _node([20, 40], [_node([10]), _node([30]), _node([50])]))
        assert bt.delete(50) is True
        assert _shape(bt._root) == ([20], [[10], [30, 40]])
        bt.validate()

    def test_borrow_moves_child_pointer_between_internal_nodes(self):
        left = _node([20], [_node([10]), _node([30])])
        right = _node([60, 80], [_node([50]), _node([70]), _node([90])])
        bt = _tree_with_root(2, _node([40], [left, right]))

        assert bt.delete(10) is True
        assert _shape(bt._root) == (
            [60], [([40], [[20, 30], [50]]), ([80], [[70], [90]])])
        bt.validate()

    def test_borrow_from_previous_internal(self):
        left = _node([20, 40], [_node([10]), _node([30]), _node([50])])
        right = _node([80], [_node([70]), _node([90])])
        bt = _tree_with_root(2, _node([60], [left, right]))

        assert bt.delete(90) is True
        assert _shape(bt._root) == (
            [40], [([20], [[10], [30]]), ([60], [[50], [70, 80]])])
        bt.validate()

    def test_absent_key_still_rebalances(self, two_leaves):
        bt = two_leaves
        assert bt.delete(15) is False
        assert bt.count == 3
        assert bt.height() == 1
        assert _keys(bt) == [10, 20, 30]
        bt.validate()


# ═══════════════════════════════════════════════════════════════════
# Scenarios and Fuzzing
# ═══════════════════════════════════════════════════════════════════

class TestDeleteScenarios:

    def test_delete_first_150_of_200(self):
        bt = BTree(min_degree=4)
        for k in range(1, 201):
            bt.add_or_update(k, k * 2)

        for k in range(1, 151):
            assert bt.delete(k) is True
            bt.validate()

        assert bt.count == 50
        assert list(bt.items()) == [(k, k * 2) for k in range(151, 201)]

    def test_height_shrinks_only_by_one_per_delete(self):
        bt = BTree(min_degree=2)
        for k in range(300):
            bt.add_or_update(k, k)

        previous = bt.height()
        for k in random.Random(11).sample(range(300), 300):
            bt.delete(k)
            assert 1 <= bt.height() <= previous
            assert previous - bt.height() <= 1
            previous = bt.height()

    @pytest.mark.parametrize("t,seed", [(2, 21), (3, 22), (4, 23), (7, 24)])
    def test_random_ops_match_reference_map(self, t, seed):
        rng = random.Random(seed)
        bt = BTree(min_degree=t)
        reference = {}

        for step in range(3000):
            k = rng.randrange(300)
            if rng.random() < 0.55:
                v = rng.randrange(10 ** 6)
                assert bt.add_or_update(k, v) is (k not in reference)
                reference[k] = v
            else:
                expected = (k in reference, reference.pop(k, None))
                assert bt.remove(k) == expected
                assert k not in bt

            assert bt.count == len(reference)
            if step % 50 == 0:
                bt.validate()

        bt.validate()
        assert list(bt.items()) == sorted(reference.items())
