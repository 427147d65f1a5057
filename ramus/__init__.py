"""
ramus
=====

In-memory rooted phylogenetic trees: navigation, topology editing,
distance and shape statistics, and Newick/NHX text.

*Ramus* is Latin for "branch".

Main Classes
------------
Tree : A rooted tree of Node handles with editing, queries and statistics
Node : Handle onto one node of a Tree
Forest : Ordered collection of trees sharing a taxon namespace

Newick
------
to_newick : Serialize the subtree below a node
parse_newick : Build a tree from Newick text

Traversal
---------
visit_depth_first : Depth-first walk with pre/in/post and child/sibling hooks
visit_breadth_first : Same hooks, siblings before children
visit_level_order : One callback per node, level by level

Context Managers
----------------
quiet : Suppress ramus logging during operations
suppress_logger : Suppress a specific logger
suppress_warnings : Suppress specific warnings
use_rng : Fix the random source for polytomy resolution

Examples
--------
Basic usage:

>>> from ramus import Tree
>>> t = Tree('((A:1,B:2):3,C:4);')
>>> a, c = t.get_by_name('A'), t.get_by_name('C')
>>> a.patristic_distance(c)
8.0
>>> t.reroot_below(a)
Node(id=..., name='root')
>>> a.patristic_distance(c)
8.0

With context managers:

>>> from ramus import Tree, quiet, use_rng
>>> t = Tree('(A:1,B:1,C:1,D:1);')
>>> with quiet(), use_rng(42):
...     t.resolve_polytomies()
2
>>> t.is_binary()
True
"""

__version__ = "0.1.0"
__license__ = "MIT"

# Main classes
from ._tree import Tree
from ._node import Node
from ._forest import Forest

# Errors
from ._exceptions import (
    RamusError,
    BadNumber,
    LinkTypeError,
    StaleNodeError,
    StructuralPrecondition,
    Disconnected,
    NewickSyntaxError,
)

# Newick text
from ._newick import to_newick, parse_newick

# Traversal
from ._traversal import (
    visit_depth_first,
    visit_breadth_first,
    visit_level_order,
)

# Context managers (user-facing utilities)
from ._context import (
    suppress_logger,
    quiet,
    suppress_warnings,
    use_rng,
)

# Public API
__all__ = [
    # Main classes
    "Tree",
    "Node",
    "Forest",
    # Errors
    "RamusError",
    "BadNumber",
    "LinkTypeError",
    "StaleNodeError",
    "StructuralPrecondition",
    "Disconnected",
    "NewickSyntaxError",
    # Newick
    "to_newick",
    "parse_newick",
    # Traversal
    "visit_depth_first",
    "visit_breadth_first",
    "visit_level_order",
    # Context managers
    "suppress_logger",
    "quiet",
    "suppress_warnings",
    "use_rng",
    # Version info
    "__version__",
]
