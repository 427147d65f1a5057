"""
_newick.py
==========
Newick / NHX text for ramus trees.

Writer
------
``to_newick(node, ...)`` emits the subtree rooted at *node*.  Per node, in
order:

    '(' + children joined by ',' + ')'    only if the node has children
    label                                  see ``label`` / ``internal_labels``
    ':' + formatted branch length          only if the length is defined
    NHX block                              '[&&NHX:k=v:k=v]' or '[%k=v,k=v]'

and ';' once, after the start node.  Siblings of the start node are never
written.  Fragments are assembled bottom-up from an explicit stack, so
output depth is not limited by the interpreter's recursion limit.

Reader
------
``parse_newick(text, tree)`` reads the grammar the writer produces, plus
single-quoted labels and comment blocks, and builds the nodes through the
tree's public mutation API (``create_node`` / ``attach_child``).  Internal
labels become node names, NHX and mesquite-style comment blocks become
annotations (values kept as strings), other comments are skipped.
Polytomies are preserved.
"""

import logging
from typing import Iterable, Mapping, Optional

from ramus._exceptions import BadNumber, NewickSyntaxError

logger = logging.getLogger(__name__)

_DELIMITERS = "(),:;["
_WHITESPACE = " \t\r\n"


# ======================================================================== #
# Writer                                                                    #
# ======================================================================== #


def _label(node, label: str, internal_labels: bool, translate) -> str:
    if node.first_child is not None and not internal_labels:
        return ""

    if label == "name":
        text = node.name
    elif label == "internal":
        text = node.internal_name
    elif label in ("taxon", "taxon_internal"):
        taxon = node.taxon
        if taxon is None:
            text = None
        elif label == "taxon_internal":
            text = getattr(taxon, "internal_name", None) or getattr(
                taxon, "name", None
            )
        else:
            text = getattr(taxon, "name", None)
    else:
        text = node.annotations.get(label)

    if text is None:
        return ""
    text = str(text)
    if translate is not None and text in translate:
        text = str(translate[text])
    return text


def _nhx(node, keys, style: str) -> str:
    annotations = node.annotations
    pairs = [
        f"{key}={annotations[key]}"
        for key in keys
        if annotations.get(key) is not None
    ]
    if not pairs:
        return ""
    if style == "mesquite":
        return "[%" + ",".join(pairs) + "]"
    return "[&&NHX:" + ":".join(pairs) + "]"


def to_newick(
    node,
    *,
    internal_labels: bool = False,
    label: str = "name",
    translate: Optional[Mapping[str, str]] = None,
    length_format: str = "{:.6f}",
    nhx_keys: Optional[Iterable[str]] = None,
    nhx_style: str = "nhx",
) -> str:
    """
    Serialize the subtree rooted at *node* as a Newick string.

    Parameters
    ----------
    node : Node
        Start of the emission; ';' is appended after it.
    internal_labels : bool, default False
        Also label internal nodes (terminals are always labelled).
    label : str, default 'name'
        Which value becomes the label: ``'name'``, ``'internal'`` (name, or
        an id-derived fallback), ``'taxon'`` (``taxon.name``),
        ``'taxon_internal'`` (``taxon.internal_name``), or any other string,
        read as an annotation key.
    translate : Mapping[str, str], optional
        Remaps the chosen label when it is a key of the mapping.
    length_format : str, default '{:.6f}'
        ``str.format`` pattern applied to defined branch lengths.
    nhx_keys : iterable of str, optional
        Annotation keys to write in an NHX block, in this order.  Keys whose
        value is missing or None are skipped; the block is omitted when no
        key applies.
    nhx_style : {'nhx', 'mesquite'}, default 'nhx'

    Returns
    -------
    str
    """
    if nhx_style not in ("nhx", "mesquite"):
        raise ValueError(f"nhx_style must be 'nhx' or 'mesquite', got {nhx_style!r}.")
    keys = list(nhx_keys) if nhx_keys is not None else []

    fragments = {}
    stack = [(node, False)]
    while stack:
        current, expanded = stack.pop()
        kids = current.children()
        if kids and not expanded:
            stack.append((current, True))
            for child in reversed(kids):
                stack.append((child, False))
            continue

        parts = []
        if kids:
            parts.append("(" + ",".join(fragments.pop(c) for c in kids) + ")")
        parts.append(_label(current, label, internal_labels, translate))
        bl = current.branch_length
        if bl is not None:
            parts.append(":" + length_format.format(bl))
        if keys:
            parts.append(_nhx(current, keys, nhx_style))
        fragments[current] = "".join(parts)

    return fragments[node] + ";"


# ======================================================================== #
# Reader                                                                    #
# ======================================================================== #


def _skip_ws(s: str, i: int) -> int:
    n = len(s)
    while i < n and s[i] in _WHITESPACE:
        i += 1
    return i


def _read_label(s: str, i: int):
    """Return (label or None, next index)."""
    n = len(s)
    if i < n and s[i] == "'":
        chars = []
        i += 1
        while True:
            if i >= n:
                raise NewickSyntaxError("Unterminated quoted label.")
            if s[i] == "'":
                if i + 1 < n and s[i + 1] == "'":
                    chars.append("'")
                    i += 2
                    continue
                return "".join(chars), i + 1
            chars.append(s[i])
            i += 1
    j = i
    while j < n and s[j] not in _DELIMITERS and s[j] not in _WHITESPACE:
        j += 1
    return (s[i:j] or None), j


def _parse_comment(body: str) -> dict:
    """Annotations from the text between '[' and ']'."""
    if body.startswith("&&NHX"):
        fields = body[5:].lstrip(":").split(":")
    elif body.startswith("%"):
        fields = body[1:].split(",")
    else:
        return {}
    out = {}
    for field in fields:
        if "=" not in field:
            continue
        key, value = field.split("=", 1)
        out[key.strip()] = value.strip()
    return out


def _expect_delimiter(s: str, i: int) -> None:
    if i < len(s) and s[i] not in ",);":
        raise NewickSyntaxError(
            f"Expected ',', ')' or ';' at position {i}, found {s[i]!r}."
        )


def _read_suffix(s: str, i: int, node) -> int:
    """Read ':length' and '[comment]' blocks following a node's label."""
    n = len(s)
    i = _skip_ws(s, i)
    if i < n and s[i] == ":":
        i = _skip_ws(s, i + 1)
        j = i
        while j < n and s[j] not in ",);[" and s[j] not in _WHITESPACE:
            j += 1
        text = s[i:j]
        try:
            node.branch_length = float(text)
        except (ValueError, BadNumber) as exc:
            raise NewickSyntaxError(
                f"Invalid branch length {text!r} at position {i}."
            ) from exc
        i = _skip_ws(s, j)
    while i < n and s[i] == "[":
        j = s.find("]", i)
        if j < 0:
            raise NewickSyntaxError(f"Unterminated comment at position {i}.")
        node.annotations.update(_parse_comment(s[i + 1 : j]))
        i = _skip_ws(s, j + 1)
    return i


def parse_newick(text: str, tree):
    """
    Build the tree described by *text* inside the empty *tree*.

    Parameters
    ----------
    text : str
        Newick string; the trailing ';' is optional.
    tree : Tree
        Destination; must contain no nodes.

    Returns
    -------
    Node or None
        The root, or None for an empty string.

    Raises
    ------
    NewickSyntaxError
        Malformed input.  Nodes created before the error are removed again,
        leaving *tree* empty.
    """
    if len(tree):
        raise ValueError("parse_newick needs an empty tree.")

    s = text.strip()
    n = len(s)
    root = None
    stack = []
    expect_child = False

    def new_node(parent):
        nonlocal root
        node = tree.create_node()
        if parent is None:
            if root is not None:
                raise NewickSyntaxError(
                    "More than one top-level node; missing parentheses?"
                )
            root = node
            tree.insert(node)
        else:
            tree.attach_child(parent, node)
        return node

    try:
        i = _skip_ws(s, 0)
        while i < n:
            c = s[i]

            if c == "(":
                stack.append(new_node(stack[-1] if stack else None))
                expect_child = True
                i += 1

            elif c in ",)":
                if not stack:
                    raise NewickSyntaxError(f"Unbalanced '{c}' at position {i}.")
                if expect_child:
                    new_node(stack[-1])
                if c == ",":
                    expect_child = True
                    i += 1
                else:
                    node = stack.pop()
                    expect_child = False
                    name, i = _read_label(s, i + 1)
                    if name is not None:
                        node.name = name
                    i = _read_suffix(s, i, node)
                    _expect_delimiter(s, i)
                    continue

            elif c == ";":
                if stack:
                    raise NewickSyntaxError("Unbalanced '(' before ';'.")
                i = _skip_ws(s, i + 1)
                if i < n:
                    raise NewickSyntaxError(
                        f"Unexpected text after ';' at position {i}."
                    )
                break

            else:
                node = new_node(stack[-1] if stack else None)
                expect_child = False
                name, i = _read_label(s, i)
                if name is not None:
                    node.name = name
                i = _read_suffix(s, i, node)
                _expect_delimiter(s, i)
                continue

            i = _skip_ws(s, i)

        if stack:
            raise NewickSyntaxError("Unbalanced '(' at end of input.")
    except NewickSyntaxError:
        if root is not None:
            tree.delete(root, recursive=True)
        raise

    if root is not None:
        logger.debug(
            "Parsed Newick: %d nodes, %d terminals",
            len(tree),
            len(tree.terminals()),
        )
    return root
