"""
_forest.py
==========
An ordered collection of ``Tree`` objects that share one taxon namespace.

Public API
----------
  Forest(trees)
      Accepts an iterable of Newick strings and/or ``Tree`` objects.

  .branch_distance(taxon_a, taxon_b)  float64 [n_trees], NaN where absent
  .symdiff_matrix()                   int64 [n_trees, n_trees]
  .set_default(index), .default_tree, .to_newick(**options)

Taxon namespace
---------------
The terminal names of all trees are pooled, sorted and numbered
0..G-1 (the *taxon index*).  ``taxa_present[ti, k]`` records whether tree
``ti`` has a terminal called ``taxon_names[k]``.

Logging
-------
Construction writes a one-line summary to the ``ramus`` loggers; trees with
polytomies trigger a single WARNING.  Per-tree parse messages are silenced
while Newick input is read.
"""

from typing import List, Optional, Union

import numpy as np

from ramus._context import suppress_logger
from ramus._logging import log_forest_statistics
from ramus._tree import Tree


class Forest:
    """
    Several phylogenetic trees in a fixed order.

    Parameters
    ----------
    trees : iterable of str or Tree
        Newick strings are parsed; ``Tree`` objects are kept as given
        (not copied).

    Attributes
    ----------
    n_trees       : int
    taxon_names   : list[str]               sorted terminal names
    n_taxa        : int
    taxa_present  : bool [n_trees, n_taxa]

    Examples
    --------
    >>> f = Forest(['((A:1,B:1):1,C:2);', '((A:1,C:1):1,B:2);'])
    >>> f.branch_distance('A', 'B')
    array([2., 4.])
    >>> f.taxon_names
    ['A', 'B', 'C']
    """

    def __init__(self, trees) -> None:
        if isinstance(trees, (str, Tree)):
            raise TypeError(
                f"Expected an iterable of Newick strings or Trees, got a single "
                f"{type(trees).__name__}."
            )

        self._trees: List[Tree] = []
        with suppress_logger("ramus._newick"):
            for item in trees:
                if isinstance(item, Tree):
                    self._trees.append(item)
                elif isinstance(item, str):
                    self._trees.append(Tree(item))
                else:
                    raise TypeError(
                        f"Forest members must be Newick strings or Trees, "
                        f"got {type(item).__name__}."
                    )
        self.n_trees = len(self._trees)

        self._index_taxa()
        log_forest_statistics(
            self.n_trees,
            self.n_taxa,
            sum(len(t) for t in self._trees),
            sum(1 for t in self._trees if len(t) and not t.is_binary()),
            sum(1 for t in self._trees if len(t) and t.is_ultrametric(0.01)),
        )

    def _index_taxa(self) -> None:
        tree_taxa = [{n.name for n in t.terminals() if n.name} for t in self._trees]
        self.taxon_names = sorted(set().union(*tree_taxa))
        self.n_taxa = len(self.taxon_names)
        self._taxon_index = {name: k for k, name in enumerate(self.taxon_names)}

        self.taxa_present = np.zeros((self.n_trees, self.n_taxa), dtype=bool)
        for ti, names in enumerate(tree_taxa):
            self.taxa_present[ti, [self._taxon_index[n] for n in names]] = True

    # ---- sequence protocol ---- #

    def __len__(self) -> int:
        return self.n_trees

    def __iter__(self):
        return iter(self._trees)

    def __getitem__(self, index: int) -> Tree:
        return self._trees[index]

    def __repr__(self) -> str:
        return f"Forest(n_trees={self.n_trees}, n_taxa={self.n_taxa})"

    # ---- default tree ---- #

    def set_default(self, index: int) -> Tree:
        """Flag tree *index* as the default; every other tree loses the flag."""
        chosen = self._trees[index]
        for t in self._trees:
            t.set_not_default()
        return chosen.set_as_default()

    @property
    def default_tree(self) -> Optional[Tree]:
        return next((t for t in self._trees if t.is_default()), None)

    # ---- comparisons ---- #

    def taxon_index(self, taxon: Union[str, int]) -> int:
        """
        Position of *taxon* in ``taxon_names``; integers pass through.

        Raises
        ------
        KeyError   for a name that no tree contains.
        """
        if not isinstance(taxon, str):
            return int(taxon)
        try:
            return self._taxon_index[taxon]
        except KeyError:
            raise KeyError(
                f"Taxon '{taxon}' does not occur in any tree "
                f"(known: {', '.join(self.taxon_names)})."
            ) from None

    def branch_distance(self, taxon_a, taxon_b) -> np.ndarray:
        """
        Patristic distance between two taxa in each tree.

        Parameters
        ----------
        taxon_a, taxon_b : str or int
            Names, or positions in ``taxon_names``.

        Returns
        -------
        np.ndarray
            float64 of length ``n_trees``; NaN for trees lacking either taxon.
        """
        ka = self.taxon_index(taxon_a)
        kb = self.taxon_index(taxon_b)
        a, b = self.taxon_names[ka], self.taxon_names[kb]

        out = np.full(self.n_trees, np.nan, dtype=np.float64)
        for ti in np.flatnonzero(self.taxa_present[:, ka] & self.taxa_present[:, kb]):
            tree = self._trees[ti]
            out[ti] = tree.get_by_name(a).patristic_distance(tree.get_by_name(b))
        return out

    def symdiff_matrix(self) -> np.ndarray:
        """Symmetric, zero-diagonal matrix of pairwise ``Tree.symdiff``."""
        out = np.zeros((self.n_trees, self.n_trees), dtype=np.int64)
        for i in range(self.n_trees):
            for j in range(i + 1, self.n_trees):
                out[i, j] = out[j, i] = self._trees[i].symdiff(self._trees[j])
        return out

    def to_newick(self, **options) -> List[str]:
        """One Newick string per tree, in collection order."""
        return [t.to_newick(**options) for t in self._trees]
