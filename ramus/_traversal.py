"""
_traversal.py
=============
Callback-driven walks over the subtree below a start node.

Hook points
-----------
For a node N, depth-first visiting proceeds as::

    pre(N)
    if N has a child:   pre_child(N)   -> visit child ->   post_child(N)
    else:               no_child(N)
    in_order(N)
    if N has a sibling: pre_sibling(N) -> visit sibling -> post_sibling(N)
    else:               no_sibling(N)
    post(N)

"child" and "sibling" follow ``first_child`` / ``next_sibling`` for
``order='ltr'`` and ``last_child`` / ``previous_sibling`` for
``order='rtl'``.  Breadth-first visiting uses the same hook points with the
sibling branch taken before the child branch.  The walk never leaves the
subtree: siblings of the start node are not followed (``no_sibling`` fires
for it).

Both walks run on an explicit phase-coded stack, no recursion:

  phase 0  First arrival: ``pre``, then enter the first branch.
  phase 1  Back from the first branch: its post hook, ``in_order``, then
           enter the second branch.
  phase 2  Back from the second branch: its post hook, then ``post``.

Precondition: callbacks must not add, remove or move nodes of the subtree
being walked.  This is not checked.
"""

from collections import deque
from typing import Callable, Optional

Hook = Optional[Callable]


def _steps(order: str):
    """(child step, sibling step) for the requested direction."""
    if order == "ltr":
        return (lambda n: n.first_child), (lambda n: n.next_sibling)
    if order == "rtl":
        return (lambda n: n.last_child), (lambda n: n.previous_sibling)
    raise ValueError(f"order must be 'ltr' or 'rtl', got {order!r}.")


def _walk(start, branches, pre: Hook, in_order: Hook, post: Hook) -> None:
    """
    Run the hook sequence over the subtree of *start*.

    *branches* holds two ``(step, is_sibling, pre_hook, post_hook,
    none_hook)`` tuples, visited in that order.  ``step(node)`` returns the
    next node along the branch or None.
    """
    stack = [(start, 0)]

    def enter(node, which) -> bool:
        step, is_sibling, pre_hook, _, none_hook = branches[which]
        nxt = None if (is_sibling and node == start) else step(node)
        if nxt is None:
            if none_hook is not None:
                none_hook(node)
            return False
        if pre_hook is not None:
            pre_hook(node)
        stack.append((node, which + 1))
        stack.append((nxt, 0))
        return True

    while stack:
        node, phase = stack.pop()

        if phase == 0:
            if pre is not None:
                pre(node)
            if enter(node, 0):
                continue
        elif branches[phase - 1][3] is not None:
            branches[phase - 1][3](node)

        if phase < 2:
            if in_order is not None:
                in_order(node)
            if enter(node, 1):
                continue

        if post is not None:
            post(node)


def visit_depth_first(
    start,
    *,
    order: str = "ltr",
    pre: Hook = None,
    pre_child: Hook = None,
    post_child: Hook = None,
    no_child: Hook = None,
    in_order: Hook = None,
    pre_sibling: Hook = None,
    post_sibling: Hook = None,
    no_sibling: Hook = None,
    post: Hook = None,
) -> None:
    """
    Depth-first walk of the subtree rooted at *start*.

    Every hook is optional and receives the ``Node`` it fires for.

    Parameters
    ----------
    start : Node
    order : {'ltr', 'rtl'}, default 'ltr'
        Left-to-right or right-to-left child order.
    pre, pre_child, post_child, no_child, in_order,
    pre_sibling, post_sibling, no_sibling, post : callable, optional
        See the module docstring for when each fires.

    Examples
    --------
    >>> names = []
    >>> visit_depth_first(tree.root, pre=lambda n: names.append(n.name))
    """
    child, sibling = _steps(order)
    _walk(
        start,
        (
            (child, False, pre_child, post_child, no_child),
            (sibling, True, pre_sibling, post_sibling, no_sibling),
        ),
        pre,
        in_order,
        post,
    )


def visit_breadth_first(
    start,
    *,
    order: str = "ltr",
    pre: Hook = None,
    pre_child: Hook = None,
    post_child: Hook = None,
    no_child: Hook = None,
    in_order: Hook = None,
    pre_sibling: Hook = None,
    post_sibling: Hook = None,
    no_sibling: Hook = None,
    post: Hook = None,
) -> None:
    """
    Same hooks as ``visit_depth_first``, with each node's sibling branch
    visited before its child branch.
    """
    child, sibling = _steps(order)
    _walk(
        start,
        (
            (sibling, True, pre_sibling, post_sibling, no_sibling),
            (child, False, pre_child, post_child, no_child),
        ),
        pre,
        in_order,
        post,
    )


def visit_level_order(start, callback: Callable) -> None:
    """
    Call *callback* once per node of the subtree, level by level.

    A FIFO queue is seeded with *start*; each dequeued node is passed to
    *callback* and its children are enqueued left to right.
    """
    queue = deque([start])
    while queue:
        node = queue.popleft()
        callback(node)
        c = node.first_child
        while c is not None:
            queue.append(c)
            c = c.next_sibling
