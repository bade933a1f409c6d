"""
Circular dependency detection over graph edges.
"""
from typing import Dict, List, Set

from ..errors import GraphConstructionError
from ..models import DependencyGraph, GraphEdge
from ..types import Cycle
from ..utils.logger import app_logger


def build_adjacency_list(edges: List[GraphEdge]) -> Dict[str, List[str]]:
    adjacency: Dict[str, List[str]] = {}
    for edge in edges:
        adjacency.setdefault(edge.source, []).append(edge.target)
    return adjacency


def make_cycle(nodes: List[str]) -> Cycle:
    return Cycle(
        nodes=nodes,
        severity="error" if len(nodes) > 3 else "warning",
        description=f"Circular dependency detected: {' -> '.join(nodes)}",
    )


class CycleDetector:
    """Depth-first search with a recursion stack; every back edge is a cycle."""

    def __init__(self):
        self.logger = app_logger.bind(component="cycle_detector")

    def detect(self, graph: DependencyGraph) -> List[Cycle]:
        try:
            cycles = self.detect_cycles([node.id for node in graph.nodes], graph.edges)
        except Exception as e:
            self.logger.error(f"Failed to detect circular dependencies: {e}")
            raise GraphConstructionError.from_exception("Failed to detect circular dependencies", e)

        self.logger.info(
            f"Circular dependency detection completed: {len(cycles)} cycles "
            f"({len([c for c in cycles if c.severity == 'error'])} errors, "
            f"{len([c for c in cycles if c.severity == 'warning'])} warnings)"
        )
        return cycles

    def detect_cycles(self, node_ids: List[str], edges: List[GraphEdge]) -> List[Cycle]:
        adjacency = build_adjacency_list(edges)
        visited: Set[str] = set()
        cycles: List[Cycle] = []

        for start in node_ids:
            if start in visited:
                continue
            cycles.extend(self._search_from(start, adjacency, visited))

        return cycles

    def _search_from(self, start: str, adjacency: Dict[str, List[str]], visited: Set[str]) -> List[Cycle]:
        """Iterative DFS; ``path`` is the current recursion stack."""
        cycles: List[Cycle] = []
        path: List[str] = [start]
        on_stack: Set[str] = {start}
        iterators = [iter(adjacency.get(start, []))]
        visited.add(start)

        while iterators:
            neighbor = next(iterators[-1], None)
            if neighbor is None:
                on_stack.discard(path.pop())
                iterators.pop()
                continue

            if neighbor not in visited:
                visited.add(neighbor)
                on_stack.add(neighbor)
                path.append(neighbor)
                iterators.append(iter(adjacency.get(neighbor, [])))
            elif neighbor in on_stack:
                index = path.index(neighbor)
                cycles.append(make_cycle(path[index:] + [neighbor]))

        return cycles
