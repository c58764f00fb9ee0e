"""
MiniDB Indexing Module
======================
In-memory B-Tree ordered map used as an indexing core.

Components:
  - node: BTreeNode storage and lower-bound search
  - btree: BTree with lookup, insert/split, delete/rebalance
  - cursor: stack-driven ascending iteration and pruned range scans
  - validation: structural invariant checker
  - comparators: pluggable key orderings
"""

from indexing.btree import BTree, DEFAULT_MIN_DEGREE
from indexing.comparators import case_insensitive, key_order, natural_order, reverse_order
from indexing.validation import Invariant, InvariantViolation

__all__ = [
    "BTree",
    "DEFAULT_MIN_DEGREE",
    "Invariant",
    "InvariantViolation",
    "case_insensitive",
    "key_order",
    "natural_order",
    "reverse_order",
]
