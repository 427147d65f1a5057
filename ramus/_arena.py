"""
_arena.py
=========
Slot storage for the nodes of one Tree, held as a set of parallel numpy
arrays indexed by an integer *slot*.

Structure arrays
----------------
parent           : int32   [capacity]   Parent slot; -1 if absent.
first_child      : int32   [capacity]   First child slot; -1 for terminals.
last_child       : int32   [capacity]   Last child slot; -1 for terminals.
next_sibling     : int32   [capacity]   Next sibling slot; -1 if last.
previous_sibling : int32   [capacity]   Previous sibling slot; -1 if first.

Attribute arrays
----------------
branch_length    : float64 [capacity]   NaN when absent.
score            : float64 [capacity]   NaN when absent.
node_id          : int64   [capacity]   Process-unique identifier.
generation       : int64   [capacity]   Bumped every time the slot is freed.
live             : bool    [capacity]   Slot currently holds a node.
member           : bool    [capacity]   Node is a member of the owning tree.

Names, descriptions, annotation dicts and taxon references are kept in
Python lists of the same length.

Non-finite values are rejected before they are written, so NaN in the
float arrays is an unambiguous "absent" marker.  A ``Node`` handle records
the generation of its slot when it is created; once the slot is released
the generation moves on and the handle is detectably stale.
"""

import itertools

import numpy as np


ABSENT = -1

# Identifiers are never reused within a process.
_node_ids = itertools.count(1)

_LINK_ARRAYS = (
    "parent",
    "first_child",
    "last_child",
    "next_sibling",
    "previous_sibling",
)


def _extend(array: np.ndarray, n: int, fill) -> np.ndarray:
    return np.concatenate([array, np.full(n, fill, dtype=array.dtype)])


class NodeArena:
    """Growable parallel-array storage for tree nodes."""

    def __init__(self, capacity: int = 16) -> None:
        capacity = max(int(capacity), 1)
        self.capacity = capacity

        for field in _LINK_ARRAYS:
            setattr(self, field, np.full(capacity, ABSENT, dtype=np.int32))

        self.branch_length = np.full(capacity, np.nan, dtype=np.float64)
        self.score = np.full(capacity, np.nan, dtype=np.float64)
        self.node_id = np.zeros(capacity, dtype=np.int64)
        self.generation = np.zeros(capacity, dtype=np.int64)
        self.live = np.zeros(capacity, dtype=bool)
        self.member = np.zeros(capacity, dtype=bool)

        self.name = [None] * capacity
        self.description = [None] * capacity
        self.annotations = [None] * capacity
        self.taxon = [None] * capacity

        self._free = []
        self._high_water = 0
        self.n_live = 0

    # ---- allocation ---- #

    def allocate(self) -> int:
        """Claim a slot for a new, unattached node and return it."""
        if self._free:
            slot = self._free.pop()
        else:
            if self._high_water == self.capacity:
                self._grow(self.capacity)
            slot = self._high_water
            self._high_water += 1

        self.live[slot] = True
        self.member[slot] = False
        self.node_id[slot] = next(_node_ids)
        self.annotations[slot] = {}
        self.n_live += 1
        return slot

    def release(self, slot: int) -> None:
        """
        Free *slot*.  Links and attributes are cleared and the slot's
        generation is bumped so outstanding handles become stale.
        """
        for field in _LINK_ARRAYS:
            getattr(self, field)[slot] = ABSENT
        self.branch_length[slot] = np.nan
        self.score[slot] = np.nan
        self.live[slot] = False
        self.member[slot] = False
        self.generation[slot] += 1
        self.name[slot] = None
        self.description[slot] = None
        self.annotations[slot] = None
        self.taxon[slot] = None
        self._free.append(slot)
        self.n_live -= 1

    def _grow(self, extra: int) -> None:
        for field in _LINK_ARRAYS:
            setattr(self, field, _extend(getattr(self, field), extra, ABSENT))
        self.branch_length = _extend(self.branch_length, extra, np.nan)
        self.score = _extend(self.score, extra, np.nan)
        self.node_id = _extend(self.node_id, extra, 0)
        self.generation = _extend(self.generation, extra, 0)
        self.live = _extend(self.live, extra, False)
        self.member = _extend(self.member, extra, False)
        for field in ("name", "description", "annotations", "taxon"):
            getattr(self, field).extend([None] * extra)
        self.capacity += extra

    # ---- slot-level reads ---- #

    def is_current(self, slot: int, generation: int) -> bool:
        """True when *slot* is live and still at *generation*."""
        return (
            0 <= slot < self._high_water
            and bool(self.live[slot])
            and int(self.generation[slot]) == generation
        )

    def children(self, slot: int) -> list:
        """Child slots of *slot*, left to right."""
        out = []
        c = int(self.first_child[slot])
        while c != ABSENT:
            out.append(c)
            c = int(self.next_sibling[c])
        return out

    def n_children(self, slot: int) -> int:
        n = 0
        c = int(self.first_child[slot])
        while c != ABSENT:
            n += 1
            c = int(self.next_sibling[c])
        return n

    def subtree(self, slot: int) -> list:
        """*slot* and every slot below it, parents before children."""
        out = [slot]
        i = 0
        while i < len(out):
            c = int(self.first_child[out[i]])
            while c != ABSENT:
                out.append(c)
                c = int(self.next_sibling[c])
            i += 1
        return out

    def length(self, slot: int):
        """Branch length of *slot* as a float, or None when absent."""
        value = float(self.branch_length[slot])
        return None if np.isnan(value) else value
