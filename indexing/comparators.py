"""
MiniDB Key Comparators
======================
Total orderings over index keys, passed to BTree as a capability.

A comparator is a callable cmp(a, b) -> int:
  negative → a sorts before b
  zero     → a and b are the same key
  positive → a sorts after b

The tree assumes the ordering is consistent for its whole lifetime.
Exceptions raised by a comparator (e.g. comparing int to str) propagate
to the caller unchanged.
"""

from typing import Any, Callable

from indexing.node import Comparator


def natural_order(a: Any, b: Any) -> int:
    """Default ordering: the key type's own < and >."""
    if a < b:
        return -1
    if a > b:
        return 1
    return 0


def case_insensitive(a: str, b: str) -> int:
    """String ordering that ignores case ("Key" == "KEY")."""
    return natural_order(a.casefold(), b.casefold())


def reverse_order(comparator: Comparator = natural_order) -> Comparator:
    """Return a comparator that sorts descending under `comparator`."""
    def _reversed(a: Any, b: Any) -> int:
        return comparator(b, a)
    return _reversed


def key_order(func: Callable[[Any], Any]) -> Comparator:
    """
    Return a comparator ordering keys by func(key).
    Keys mapping to equal func() results are treated as the same key.
    """
    def _by_key(a: Any, b: Any) -> int:
        return natural_order(func(a), func(b))
    return _by_key
