"""Small helpers for walking tree-sitter syntax trees."""

from typing import Iterator, List, Optional

from tree_sitter import Node


def node_text(node: Optional[Node]) -> str:
    """Get the source text of a node, or an empty string."""
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8", errors="replace")


def start_line(node: Node) -> int:
    """1-based line on which a node starts."""
    return node.start_point[0] + 1


def end_line(node: Node) -> int:
    """1-based line on which a node ends, ignoring a trailing newline."""
    row, column = node.end_point[0], node.end_point[1]
    if column == 0 and row > node.start_point[0]:
        return row
    return row + 1


def children_of_type(node: Node, *types: str) -> List[Node]:
    return [child for child in node.children if child.type in types]


def first_child_of_type(node: Node, *types: str) -> Optional[Node]:
    for child in node.children:
        if child.type in types:
            return child
    return None


def iter_descendants(node: Node, *types: str) -> Iterator[Node]:
    """Yield descendants of the given types in document order."""
    stack = list(reversed(node.children))
    while stack:
        current = stack.pop()
        if current.type in types:
            yield current
        stack.extend(reversed(current.children))


def preceding_comments(node: Node) -> List[Node]:
    """Collect the comment nodes directly above a node.

    Comments count as attached when no blank line separates them from the
    node or from each other.

    Args:
        node: Declaration node

    Returns:
        Comment nodes in source order
    """
    comments: List[Node] = []
    expected_row = node.start_point[0]
    sibling = node.prev_named_sibling
    while sibling is not None and sibling.type == "comment":
        if sibling.end_point[0] < expected_row - 1:
            break
        before = sibling.prev_named_sibling
        if before is not None and before.type != "comment" and before.end_point[0] == sibling.start_point[0]:
            # trailing comment of the previous statement
            break
        comments.append(sibling)
        expected_row = sibling.start_point[0]
        sibling = sibling.prev_named_sibling
    comments.reverse()
    return comments


def source_excerpt(lines: List[str], first: int, last: int, max_lines: int = 0) -> str:
    """Slice 1-based inclusive line range out of a file.

    Args:
        lines: File content split into lines
        first: First line, 1-based
        last: Last line, 1-based, inclusive
        max_lines: Cap on the number of lines returned, 0 for no cap

    Returns:
        The excerpt joined with newlines
    """
    excerpt = lines[max(first - 1, 0):last]
    if max_lines and len(excerpt) > max_lines:
        excerpt = excerpt[:max_lines]
    return "\n".join(excerpt)
