"""
Dependency Graph for timeline calculations.

Holds task instances and the typed edges between them, with cycle-safe
edge insertion, path search, template-order repair and an integrity check.
"""

import logging
from collections import defaultdict
from copy import copy
from typing import Optional

from .models import Task, Dependency, DEPENDENCY_TYPES, FINISH_TO_START

logger = logging.getLogger(__name__)


class CycleError(ValueError):
    """Raised when an edge would make the predecessor reachable from itself."""

    def __init__(self, pred_task_id: str, succ_task_id: str, path: list[str]):
        self.pred_task_id = pred_task_id
        self.succ_task_id = succ_task_id
        self.path = path
        super().__init__(
            f"Dependency {pred_task_id} -> {succ_task_id} would create a cycle: "
            f"{' -> '.join(path)}"
        )


class CrossAssetDependencyError(ValueError):
    """Raised when an edge would link tasks from two different assets."""

    def __init__(self, pred: Task, succ: Task):
        self.pred_task_id = pred.task_id
        self.succ_task_id = succ.task_id
        super().__init__(
            f"Cannot link {pred.task_id} ({pred.asset_id}) to "
            f"{succ.task_id} ({succ.asset_id}): tasks belong to different assets"
        )


class DependencyGraph:
    """
    Typed dependency graph over task instances.

    Maintains, per successor, its inbound edges and, per predecessor, its
    outbound edges. The graph is kept acyclic and never links two assets.
    """

    def __init__(self):
        self.tasks: dict[str, Task] = {}
        # successor -> {predecessor: edge} and predecessor -> {successor: edge}
        self._predecessors: dict[str, dict[str, Dependency]] = defaultdict(dict)
        self._successors: dict[str, dict[str, Dependency]] = defaultdict(dict)

    def add_task(self, task: Task) -> None:
        """Add a task to the graph."""
        self.tasks[task.task_id] = task

    def remove_task(self, task_id: str) -> list[Dependency]:
        """
        Remove a task and every edge touching it.

        Returns the removed edges.
        """
        removed = self.get_edges_for(task_id)
        for dep in removed:
            self.remove_edge(dep.pred_task_id, dep.succ_task_id)
        self.tasks.pop(task_id, None)
        self._predecessors.pop(task_id, None)
        self._successors.pop(task_id, None)
        return removed

    def get_task(self, task_id: str) -> Optional[Task]:
        """Get a task by ID."""
        return self.tasks.get(task_id)

    def add_edge(self, pred_task_id: str, succ_task_id: str,
                 dep_type: str = FINISH_TO_START, lag: int = 0) -> Dependency:
        """
        Add a typed edge, replacing any existing edge between the same pair.

        Raises:
            ValueError: Unknown task, self edge, unknown type or negative lag
            CrossAssetDependencyError: Tasks belong to different assets
            CycleError: Predecessor is reachable from the successor
        """
        pred = self.tasks.get(pred_task_id)
        succ = self.tasks.get(succ_task_id)
        if pred is None:
            raise ValueError(f"Predecessor task {pred_task_id} not in graph")
        if succ is None:
            raise ValueError(f"Successor task {succ_task_id} not in graph")
        if pred_task_id == succ_task_id:
            raise ValueError(f"Task {pred_task_id} cannot depend on itself")
        if dep_type not in DEPENDENCY_TYPES:
            raise ValueError(f"Unknown dependency type {dep_type!r}")
        if lag < 0:
            raise ValueError(f"Lag must be non-negative, got {lag}")
        if pred.asset_id != succ.asset_id:
            raise CrossAssetDependencyError(pred, succ)
        if pred.is_live():
            raise ValueError(f"Live task {pred_task_id} is terminal and cannot have successors")

        path = self.find_path(succ_task_id, pred_task_id)
        if path:
            raise CycleError(pred_task_id, succ_task_id, path + [succ_task_id])

        dep = Dependency(pred_task_id, succ_task_id, dep_type, lag)
        self._predecessors[succ_task_id][pred_task_id] = dep
        self._successors[pred_task_id][succ_task_id] = dep
        return dep

    def remove_edge(self, pred_task_id: str, succ_task_id: str) -> Optional[Dependency]:
        """Remove an edge. No-op if absent; returns the removed edge."""
        dep = self._predecessors.get(succ_task_id, {}).pop(pred_task_id, None)
        self._successors.get(pred_task_id, {}).pop(succ_task_id, None)
        return dep

    def get_edge(self, pred_task_id: str, succ_task_id: str) -> Optional[Dependency]:
        return self._predecessors.get(succ_task_id, {}).get(pred_task_id)

    def get_predecessors(self, task_id: str) -> list[Dependency]:
        """Get inbound edges of a task."""
        return list(self._predecessors.get(task_id, {}).values())

    def get_successors(self, task_id: str) -> list[Dependency]:
        """Get outbound edges of a task."""
        return list(self._successors.get(task_id, {}).values())

    def get_edges_for(self, task_id: str) -> list[Dependency]:
        """Inbound then outbound edges of a task."""
        return self.get_predecessors(task_id) + self.get_successors(task_id)

    @property
    def dependencies(self) -> list[Dependency]:
        """All edges, grouped by successor in task insertion order."""
        deps = []
        for task_id in self.tasks:
            deps.extend(self._predecessors.get(task_id, {}).values())
        return deps

    def find_path(self, from_task_id: str, to_task_id: str) -> list[str]:
        """
        Find a successor path between two tasks.

        Returns the task IDs along the path (empty if unreachable).
        """
        if from_task_id == to_task_id:
            return [from_task_id]

        parents = {from_task_id: None}
        queue = [from_task_id]

        while queue:
            current = queue.pop(0)
            for succ_id in self._successors.get(current, {}):
                if succ_id in parents:
                    continue
                parents[succ_id] = current
                if succ_id == to_task_id:
                    path = [succ_id]
                    while parents[path[-1]] is not None:
                        path.append(parents[path[-1]])
                    return list(reversed(path))
                queue.append(succ_id)

        return []

    @staticmethod
    def default_template_edges(sequence: list[str]) -> list[Dependency]:
        """FS(0) edges chaining a task sequence in order."""
        return [
            Dependency(pred_id, succ_id, FINISH_TO_START, 0)
            for pred_id, succ_id in zip(sequence, sequence[1:])
        ]

    def template_order_gaps(self, sequence: list[str]) -> list[Dependency]:
        """
        Find FS(0) edges needed to restore template order.

        A consecutive pair is a gap when the earlier task has no outbound edge
        and the later task has no inbound edge. Gaps whose edge would close a
        cycle are skipped.
        """
        gaps = []
        for pred_id, succ_id in zip(sequence, sequence[1:]):
            if self._successors.get(pred_id) or self._predecessors.get(succ_id):
                continue
            if self.tasks[pred_id].is_live() or self.find_path(succ_id, pred_id):
                logger.warning(f"Cannot restore template edge {pred_id} -> {succ_id}")
                continue
            gaps.append(Dependency(pred_id, succ_id, FINISH_TO_START, 0))
        return gaps

    def clone(self) -> 'DependencyGraph':
        """
        Create a copy of the graph for a new snapshot.

        Tasks and edges are shallow-copied so modifications don't affect original.
        """
        new_graph = DependencyGraph()

        for tid, task in self.tasks.items():
            new_graph.tasks[tid] = copy(task)

        for succ_id, inbound in self._predecessors.items():
            for pred_id, dep in inbound.items():
                dep_copy = copy(dep)
                new_graph._predecessors[succ_id][pred_id] = dep_copy
                new_graph._successors[pred_id][succ_id] = dep_copy

        return new_graph

    def validate(self) -> list[str]:
        """
        Validate graph integrity.

        Checks for dangling or cross-asset edges, live tasks with successors
        and cycles. Returns list of issues found (empty if valid).
        """
        issues = []

        for dep in self.dependencies:
            pred = self.tasks.get(dep.pred_task_id)
            succ = self.tasks.get(dep.succ_task_id)
            if pred is None:
                issues.append(f"Dependency references missing predecessor: {dep.pred_task_id}")
                continue
            if succ is None:
                issues.append(f"Dependency references missing successor: {dep.succ_task_id}")
                continue
            if pred.asset_id != succ.asset_id:
                issues.append(f"Cross-asset dependency: {dep.pred_task_id} -> {dep.succ_task_id}")
            if pred.is_live():
                issues.append(f"Live task {dep.pred_task_id} has successor {dep.succ_task_id}")

        # Kahn's algorithm over all tasks
        in_degree = {tid: len(self._predecessors.get(tid, {})) for tid in self.tasks}
        queue = [tid for tid, deg in in_degree.items() if deg == 0]
        visited = 0
        while queue:
            task_id = queue.pop(0)
            visited += 1
            for succ_id in self._successors.get(task_id, {}):
                if succ_id in in_degree:
                    in_degree[succ_id] -= 1
                    if in_degree[succ_id] == 0:
                        queue.append(succ_id)
        if visited != len(self.tasks):
            issues.append(f"Circular dependency detected involving {len(self.tasks) - visited} tasks")

        return issues

    def __len__(self) -> int:
        return len(self.tasks)

    def __contains__(self, task_id: str) -> bool:
        return task_id in self.tasks

    def __repr__(self) -> str:
        return f"DependencyGraph({len(self.tasks)} tasks, {len(self.dependencies)} dependencies)"
