"""Depth-first traversal of a scene-graph node tree.

The traversal state is an explicit stack of `[node, sibling index]` frames,
so that a consumer can pause between nodes. Walkers are single use: once
exhausted, they stay exhausted.
"""

from typing import Iterable, List, Optional

__all__ = [
    "NodeWalker",
    "NodeNameMatcher",
    "collect_nodes_by_name",
    "collect_paths_by_name",
    "find_first_volume",
]


class NodeWalker:
    """Pre-order, depth-first walker over a node tree.

    Each node is visited before its daughters, and daughters are visited in
    their stored order.

    Attributes
    ----------
    current : GeoNode, optional
        Node the walker currently points to, `None` when exhausted
    """

    def __init__(self, root):
        """Initialize the walker.

        Parameters
        ----------
        root : GeoNode, optional
            Top node of the tree. If `None`, the walker is exhausted from the
            start.
        """
        self._frames = []
        if root is not None:
            self._frames.append([root, 0])

    @property
    def current(self):
        """Current node, or `None` if the traversal is over."""
        return self._frames[-1][0] if self._frames else None

    @property
    def exhausted(self) -> bool:
        """Whether the traversal is over."""
        return not self._frames

    def advance(self):
        """Moves to the next node in pre-order.

        Returns
        -------
        GeoNode, optional
            New current node, `None` if the traversal is over
        """
        if not self._frames:
            return None

        # Go down to the first daughter, if any
        node = self._frames[-1][0]
        if node.num_daughters > 0:
            self._frames.append([node.daughter(0), 0])
            return self.current

        # Otherwise move to the next sibling, climbing up as needed
        while len(self._frames) > 1:
            frame = self._frames[-1]
            parent = self._frames[-2][0]
            frame[1] += 1
            if frame[1] < parent.num_daughters:
                frame[0] = parent.daughter(frame[1])
                return self.current

            self._frames.pop()

        # Only the root is left and all its descendants were visited
        self._frames.pop()

        return None

    def path(self) -> list:
        """Full path of the current node.

        Returns
        -------
        List[GeoNode]
            Nodes from the root down to the current node (empty if exhausted)
        """
        return [frame[0] for frame in self._frames]

    def __iter__(self):
        return self

    def __next__(self):
        """Returns the current node and advances the walker."""
        node = self.current
        if node is None:
            raise StopIteration

        self.advance()

        return node


class NodeNameMatcher:
    """Matches nodes whose volume name is in a set of names.

    An empty set of names matches every node.
    """

    def __init__(self, names: Optional[Iterable[str]] = None):
        """Initialize the matcher.

        Parameters
        ----------
        names : Iterable[str], optional
            Volume names to match
        """
        self.names = set(names) if names else None

    def __call__(self, node) -> bool:
        if not self.names:
            return True

        return node.volume.name in self.names


def collect_nodes_by_name(root, names: Optional[Iterable[str]] = None) -> list:
    """Collects all the nodes of a tree whose volume matches a set of names.

    Parameters
    ----------
    root : GeoNode, optional
        Top node of the tree
    names : Iterable[str], optional
        Volume names to look for. If empty, all nodes are collected.

    Returns
    -------
    List[GeoNode]
        Matching nodes, in pre-order
    """
    matcher = NodeNameMatcher(names)

    return [node for node in NodeWalker(root) if matcher(node)]


def collect_paths_by_name(root, names: Optional[Iterable[str]] = None) -> list:
    """Collects the full paths of all nodes whose volume matches a set of names.

    Parameters
    ----------
    root : GeoNode, optional
        Top node of the tree
    names : Iterable[str], optional
        Volume names to look for. If empty, all nodes are collected.

    Returns
    -------
    List[List[GeoNode]]
        Path from the root to each matching node, in pre-order
    """
    matcher = NodeNameMatcher(names)
    walker = NodeWalker(root)
    paths = []
    while not walker.exhausted:
        if matcher(walker.current):
            paths.append(walker.path())
        walker.advance()

    return paths


def find_first_volume(name: str, path: List) -> bool:
    """Looks for the first node whose name starts with a given name.

    The search is depth-first, starting from (and including) the last node
    of `path`. Names are compared by prefix, so that `volTPC` matches the
    node `volTPC_0` (and also `volTPCActive_0`).

    Parameters
    ----------
    name : str
        Name (prefix) of the node to look for
    path : List[GeoNode]
        Path to the node to start from. On success, the path to the matching
        node is appended to it; on failure it is left unchanged.

    Returns
    -------
    bool
        `True` if a matching node was found
    """
    assert len(path) > 0, "Need a starting node to look for a volume."

    # First check the current layer
    current = path[-1]
    if current.name.startswith(name):
        return True

    # Explore the next layer down
    for i in range(current.num_daughters):
        path.append(current.daughter(i))
        if find_first_volume(name, path):
            return True
        path.pop()

    return False
