"""
Flatten Reddit-style nested comment listings into a flat comment list.

Uses an explicit stack so untrusted, arbitrarily deep threads cannot
exhaust the interpreter's recursion limit.
"""

from typing import Any

from .models import RawComment

COMMENT_KIND = "t1"
DELETED_AUTHORS = {"[deleted]"}
DELETED_BODIES = {"[deleted]", "[removed]"}


def _children_of(listing: Any) -> list[Any]:
    """Return listing.data.children if the listing has that shape."""
    if not isinstance(listing, dict):
        return []
    data = listing.get("data")
    if not isinstance(data, dict):
        return []
    children = data.get("children")
    return children if isinstance(children, list) else []


def _to_comment(data: dict[str, Any]) -> RawComment | None:
    """Build a RawComment from node data, or None if deleted/empty."""
    author = data.get("author")
    body = data.get("body")
    if not isinstance(author, str) or not author or author in DELETED_AUTHORS:
        return None
    if not isinstance(body, str) or not body.strip() or body in DELETED_BODIES:
        return None

    return RawComment(
        username=author,
        text=body,
        platform_user_id=data.get("author_fullname") or data.get("name"),
    )


def flatten_comment_tree(nodes: list[Any]) -> list[RawComment]:
    """
    Flatten a list of comment nodes depth-first, parent before children.

    Non-comment nodes ("more" placeholders) are skipped with their subtree.
    Deleted or removed comments are left out, but their replies are kept.
    """
    comments: list[RawComment] = []
    # Reversed so that popping yields nodes in source order
    stack: list[Any] = list(reversed(nodes))
    seen: set[int] = set()

    while stack:
        node = stack.pop()
        if id(node) in seen:
            continue
        seen.add(id(node))

        if not isinstance(node, dict) or node.get("kind") != COMMENT_KIND:
            continue
        data = node.get("data")
        if not isinstance(data, dict):
            continue

        comment = _to_comment(data)
        if comment is not None:
            comments.append(comment)

        stack.extend(reversed(_children_of(data.get("replies"))))

    return comments
