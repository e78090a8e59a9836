"""Directed blocked-by graph helpers.

Edges point from a task to the tasks blocking it (``task_id -> [blocked_by_id]``).
All traversals are iterative so long dependency chains never grow the call
stack.
"""

from typing import Dict, Iterable, List, Mapping, Optional, Set


# Visit state for the three-colour cycle check
_WHITE = 0
_GRAY = 1
_BLACK = 2


class DependencyGraph:
    """Adjacency map keyed by task identifiers."""

    def __init__(self, edges: Optional[Mapping[str, Iterable[str]]] = None):
        # Copy so callers cannot mutate our view.
        self._adjacency: Dict[str, List[str]] = {}
        for node, targets in (edges or {}).items():
            self._adjacency[node] = list(targets)

    @property
    def node_count(self) -> int:
        nodes: Set[str] = set(self._adjacency)
        for targets in self._adjacency.values():
            nodes.update(targets)
        return len(nodes)

    def blockers_of(self, node: str) -> List[str]:
        return list(self._adjacency.get(node, []))

    def add_edge(self, task_id: str, blocked_by_id: str) -> None:
        self._adjacency.setdefault(task_id, []).append(blocked_by_id)

    def find_path(self, start: str, target: str, max_nodes: Optional[int] = None) -> Optional[List[str]]:
        """Return a path ``start -> ... -> target`` following edges, or None.

        Args:
            start: Node to start from
            target: Node to look for
            max_nodes: Visit budget (defaults to the number of nodes in the graph)

        Returns:
            The list of nodes on the path (both ends included), or None if
            ``target`` is unreachable within the budget
        """
        if start == target:
            return [start]

        budget = max_nodes if max_nodes is not None else self.node_count
        parents: Dict[str, Optional[str]] = {start: None}
        stack: List[str] = [start]
        visited = 0

        while stack:
            node = stack.pop()
            visited += 1
            if visited > budget + 1:
                break
            for neighbor in self._adjacency.get(node, []):
                if neighbor in parents:
                    continue
                parents[neighbor] = node
                if neighbor == target:
                    return _unwind(parents, neighbor)
                stack.append(neighbor)
        return None

    def would_create_cycle(self, task_id: str, blocked_by_id: str) -> bool:
        """True if adding ``task_id -> blocked_by_id`` closes a cycle."""
        if task_id == blocked_by_id:
            return True
        return self.find_path(blocked_by_id, task_id) is not None

    def reachable_from(self, start: str) -> List[str]:
        """All transitive blockers of ``start`` in discovery order."""
        seen: Set[str] = {start}
        order: List[str] = []
        stack = [start]
        while stack:
            node = stack.pop()
            for neighbor in self._adjacency.get(node, []):
                if neighbor not in seen:
                    seen.add(neighbor)
                    order.append(neighbor)
                    stack.append(neighbor)
        return order

    def has_cycle(self) -> bool:
        """Three-colour DFS over every component using an explicit stack."""
        colors: Dict[str, int] = {}
        for root in list(self._adjacency):
            if colors.get(root, _WHITE) != _WHITE:
                continue
            colors[root] = _GRAY
            stack = [(root, iter(self._adjacency.get(root, [])))]
            while stack:
                node, neighbors = stack[-1]
                advanced = False
                for neighbor in neighbors:
                    state = colors.get(neighbor, _WHITE)
                    if state == _GRAY:
                        return True
                    if state == _WHITE:
                        colors[neighbor] = _GRAY
                        stack.append((neighbor, iter(self._adjacency.get(neighbor, []))))
                        advanced = True
                        break
                if not advanced:
                    colors[node] = _BLACK
                    stack.pop()
        return False


def _unwind(parents: Dict[str, Optional[str]], node: str) -> List[str]:
    path = [node]
    while parents[node] is not None:
        node = parents[node]
        path.append(node)
    path.reverse()
    return path
