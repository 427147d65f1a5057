"""
_logging.py
===========
Message formatting for ramus.

Each function here receives numbers already computed by the caller and
turns them into records on the ``ramus`` loggers.  None of them reads or
changes a tree.
"""

import logging
from typing import Iterable


logger = logging.getLogger(__name__)


# ============================================================================ #
# Tree editing
# ============================================================================ #


def log_polytomy_resolution(n_polytomies: int, n_created: int) -> None:
    """
    Report a random polytomy resolution.

    Parameters
    ----------
    n_polytomies : int
        Number of nodes that had more than two children.
    n_created : int
        Number of zero-length internal nodes added.
    """
    if n_polytomies == 0:
        logger.debug("Polytomy resolution: tree is already binary")
        return
    logger.info(
        "Resolved %d polytom%s by adding %d zero-length internal node%s.",
        n_polytomies,
        "y" if n_polytomies == 1 else "ies",
        n_created,
        "" if n_created == 1 else "s",
    )


def log_missing_tips(missing: Iterable[str]) -> None:
    """
    Warn about tip names that were requested but not found.

    Parameters
    ----------
    missing : Iterable[str]
        Requested names with no matching terminal.
    """
    missing = sorted(missing)
    if not missing:
        return
    if len(missing) <= 5:
        logger.warning(
            "%d requested tip name%s not found in tree: %s",
            len(missing),
            "" if len(missing) == 1 else "s",
            ", ".join(missing),
        )
    else:
        logger.warning(
            "%d requested tip names not found in tree (first five: %s)",
            len(missing),
            ", ".join(missing[:5]),
        )


def log_prune_summary(n_pruned: int, n_spliced: int, n_remaining: int) -> None:
    """
    Report the outcome of a prune.

    Parameters
    ----------
    n_pruned : int
        Terminals removed.
    n_spliced : int
        Unbranched internal nodes spliced out afterwards.
    n_remaining : int
        Nodes left in the tree.
    """
    logger.info(
        "Pruned %d tip%s, spliced %d unbranched node%s; %d nodes remain.",
        n_pruned,
        "" if n_pruned == 1 else "s",
        n_spliced,
        "" if n_spliced == 1 else "s",
        n_remaining,
    )


def log_reroot(node_label: str, path_length: int, old_root_fate: str) -> None:
    """
    Report a reroot at DEBUG level.

    Parameters
    ----------
    node_label : str
        Label of the node the new root was placed above.
    path_length : int
        Number of edges reversed.
    old_root_fate : str
        'spliced', 'deleted' or 'kept'.
    """
    logger.debug(
        "Rerooted below %s: %d edge%s reversed, old root %s.",
        node_label,
        path_length,
        "" if path_length == 1 else "s",
        old_root_fate,
    )


# ============================================================================ #
# Forest construction
# ============================================================================ #


def log_forest_statistics(
    n_trees: int,
    n_taxa: int,
    total_nodes: int,
    n_polytomous: int,
    n_ultrametric: int,
) -> None:
    """
    Summarise a freshly built forest.

    Parameters
    ----------
    n_trees : int
    n_taxa : int
        Distinct terminal names over all trees.
    total_nodes : int
    n_polytomous : int
        Trees having a node with more than two children.
    n_ultrametric : int
        Trees ultrametric within a 1% margin.
    """
    logger.info(
        "Forest built: %d trees, %d distinct taxa, %d nodes in total",
        n_trees,
        n_taxa,
        total_nodes,
    )
    logger.info(
        "  %d/%d trees ultrametric (1%% margin), %d with polytomies",
        n_ultrametric,
        n_trees,
        n_polytomous,
    )
    if n_polytomous:
        logger.warning(
            "%d tree%s contain%s polytomies; imbalance statistics will fail "
            "on them until resolve_polytomies() is applied.",
            n_polytomous,
            "" if n_polytomous == 1 else "s",
            "s" if n_polytomous == 1 else "",
        )
