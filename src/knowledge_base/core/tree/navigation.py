"""Tree navigation: nested views, breadcrumbs, siblings."""

from collections.abc import Iterable

from knowledge_base.core.tree.store import TreeStore
from knowledge_base.models.node import Node, TreeNode


def build_tree(nodes: Iterable[Node]) -> list[TreeNode]:
    """Nest a flat list of nodes by parent.

    Nodes whose parent is not in the list become roots. Children are sorted by
    position at every level.
    """
    by_id: dict[str, TreeNode] = {}
    ordered: list[TreeNode] = []
    for node in nodes:
        tree_node = TreeNode(node=node)
        by_id[node.id] = tree_node
        ordered.append(tree_node)

    roots: list[TreeNode] = []
    for tree_node in ordered:
        parent = by_id.get(tree_node.node.parent_id) if tree_node.node.parent_id else None
        if parent is not None:
            parent.children.append(tree_node)
        else:
            roots.append(tree_node)

    def sort_children(level: list[TreeNode]) -> None:
        level.sort(key=lambda t: t.node.position)
        for t in level:
            sort_children(t.children)

    sort_children(roots)
    return roots


def flatten_tree(tree: Iterable[TreeNode]) -> list[Node]:
    """Pre-order flatten of a nested tree."""
    result: list[Node] = []
    for tree_node in tree:
        result.append(tree_node.node)
        result.extend(flatten_tree(tree_node.children))
    return result


def find_in_tree(tree: Iterable[TreeNode], node_id: str) -> TreeNode | None:
    for tree_node in tree:
        if tree_node.node.id == node_id:
            return tree_node
        found = find_in_tree(tree_node.children, node_id)
        if found is not None:
            return found
    return None


def full_path(tree: TreeStore, node_id: str) -> str:
    """Ancestor titles from the root down to the node, joined with ' / '."""
    return " / ".join(n.title for n in tree.ancestor_chain(node_id))


def breadcrumbs(tree: TreeStore, node_id: str) -> str:
    """Ancestor titles from the root down to the node, joined with ' > '."""
    return " > ".join(n.title for n in tree.ancestor_chain(node_id))


def get_siblings(
    tree: TreeStore,
    node: Node,
    *,
    count: int = 3,
) -> tuple[tuple[Node, ...], tuple[Node, ...]]:
    """Get up to ``count`` siblings before and after a node.

    Returns (siblings_before, siblings_after) tuples, both in position order.
    """
    siblings = [s for s in tree.list_children(node.parent_id) if s.id != node.id]
    before = [s for s in siblings if s.position < node.position][-count:] if count else []
    after = [s for s in siblings if s.position > node.position][:count]
    return tuple(before), tuple(after)
