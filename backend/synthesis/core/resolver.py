"""
Dependency Resolver - Orders units and groups

Responsibilities:
- Produce a total order where every dependency precedes its dependent
- Break ties by ascending identifier so runs are byte-identical
- Treat unknown dependency ids as already satisfied (earlier phase)
- Degrade gracefully on cycles: append the remainder, warn once

Never fails the run.
"""
import heapq
import logging
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class Resolution(BaseModel):
    """Result of ordering one node set"""
    order: List[str] = Field(default_factory=list, description="Total order of node ids")
    cyclic: List[str] = Field(default_factory=list, description="Nodes appended past a cycle, ascending")
    warnings: List[str] = Field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return bool(self.cyclic)


class DependencyResolver:
    """
    Dependency Resolver - Kahn's algorithm with a sorted ready queue

    `sort_key` controls what "ascending identifier" means; group ids use the
    phase-major key so "1.2" comes before "1.10".
    """

    def __init__(self, sort_key: Optional[Callable[[str], Any]] = None):
        self.sort_key = sort_key or (lambda node_id: node_id)

    def resolve(self, nodes: Dict[str, Iterable[str]], label: str = "nodes") -> Resolution:
        """
        Order nodes by their dependencies

        Args:
            nodes: node id → dependency ids
            label: What is being ordered (for the warning message)

        Returns:
            Resolution with the order and any cyclic remainder
        """
        deps: Dict[str, set] = {
            node_id: {d for d in dependencies if d in nodes}
            for node_id, dependencies in nodes.items()
        }
        dependents: Dict[str, List[str]] = {node_id: [] for node_id in nodes}
        for node_id, node_deps in deps.items():
            for dep in node_deps:
                dependents[dep].append(node_id)

        remaining = {node_id: len(node_deps) for node_id, node_deps in deps.items()}
        ready: List[Tuple[Any, str]] = [
            (self.sort_key(node_id), node_id) for node_id, count in remaining.items() if count == 0
        ]
        heapq.heapify(ready)

        order: List[str] = []
        while ready:
            _, node_id = heapq.heappop(ready)
            order.append(node_id)
            for dependent in dependents[node_id]:
                remaining[dependent] -= 1
                if remaining[dependent] == 0:
                    heapq.heappush(ready, (self.sort_key(dependent), dependent))

        released = set(order)
        cyclic = sorted((n for n in nodes if n not in released), key=self.sort_key)
        warnings = []
        if cyclic:
            message = f"Dependency cycle among {label}: {', '.join(cyclic)}; appended in ascending order"
            logger.warning(f"[Resolver] ⚠ {message}")
            warnings.append(message)
            order.extend(cyclic)

        return Resolution(order=order, cyclic=cyclic, warnings=warnings)


__all__ = ["DependencyResolver", "Resolution"]
