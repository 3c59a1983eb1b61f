"""
Schedule Calculation Engine.

Computes task dates backward from an asset's pinned go-live anchor. Two
interchangeable strategies implement the ScheduleCalculator interface:

- SequentialCalculator: contiguous chain in sequence order with signed-lag overlap
- TypedEdgeCalculator: backward pass along typed FS/SS/FF edges
"""

import logging
from abc import ABC, abstractmethod
from datetime import date
from typing import Optional, Union

from src.config.settings import settings
from .models import (
    Task,
    Dependency,
    TaskDates,
    AssetSchedule,
    CalculationStrategy,
    FINISH_TO_START,
)
from .calendar import WorkCalendar
from .network import DependencyGraph

logger = logging.getLogger(__name__)


class ScheduleCalculator(ABC):
    """
    Base class for schedule strategies.

    Subclasses map an ordered task list, the dependency graph and an anchor
    date to per-task dates. Output depends only on the inputs and their order.
    """

    strategy: CalculationStrategy

    def __init__(self, calendar: WorkCalendar = None):
        self.calendar = calendar or WorkCalendar()

    def calculate(self, tasks: list[Task], graph: DependencyGraph, anchor: date,
                  asset_id: str = None) -> AssetSchedule:
        """
        Schedule one asset.

        Args:
            tasks: The asset's tasks in sequence order
            graph: Dependency graph containing the tasks' edges
            anchor: Go-live date of the asset's live task (any calendar day)
            asset_id: Asset being scheduled (default: taken from the tasks)

        Returns:
            AssetSchedule with dates in sequence order
        """
        if asset_id is None and tasks:
            asset_id = tasks[0].asset_id
        if not tasks:
            return AssetSchedule(asset_id, anchor, self.strategy, {})
        if anchor is None:
            raise ValueError(f"Asset {asset_id} has no anchor date")

        live_tasks = [t for t in tasks if t.is_live()]
        if len(live_tasks) != 1:
            raise ValueError(
                f"Asset {asset_id} must have exactly one live task, found {len(live_tasks)}"
            )

        logger.debug(f"Scheduling {asset_id}: {len(tasks)} tasks, "
                     f"strategy={self.strategy.value}, anchor={anchor}")
        dates = self._schedule(tasks, live_tasks[0], graph, anchor)
        ordered = {t.task_id: dates[t.task_id] for t in tasks}
        return AssetSchedule(asset_id, anchor, self.strategy, ordered)

    @abstractmethod
    def _schedule(self, tasks: list[Task], live: Task, graph: DependencyGraph,
                  anchor: date) -> dict[str, TaskDates]:
        """Compute dates for every task."""

    @abstractmethod
    def schedule_edges(self, tasks: list[Task], graph: DependencyGraph) -> list[Dependency]:
        """Edges the strategy actually schedules along, including implicit ones."""

    def _no_later_than(self, dates: TaskDates, duration: int, anchor: date) -> TaskDates:
        """Pull a task back so it ends on or before the go-live anchor."""
        if dates.end <= anchor:
            return dates
        return self._from_end(anchor, duration)

    def _from_end(self, end: date, duration: int) -> TaskDates:
        """Place a task by its end date, snapping off non-working days."""
        end = self.calendar.previous_working_day(end)
        return TaskDates(self.calendar.subtract_working_days(end, duration - 1), end)

    def _from_start(self, start: date, duration: int) -> TaskDates:
        """Place a task by its start date, snapping off non-working days."""
        start = self.calendar.previous_working_day(start)
        return TaskDates(start, self.calendar.add_working_days(start, duration - 1))

    def _finish_before(self, succ_start: date, lag: int, duration: int) -> TaskDates:
        """Place a predecessor so it ends `lag + 1` working days before succ_start."""
        end = self.calendar.shift_working_days(succ_start, -(lag + 1))
        return self._from_end(end, duration)


class SequentialCalculator(ScheduleCalculator):
    """
    Legacy sequential strategy.

    The live task sits on the anchor; every other task ends the working day
    before its sequence successor starts, less any overlap expressed by the
    signed lag of the edge between them. No task ends after the anchor.
    """

    strategy = CalculationStrategy.LEGACY

    def _schedule(self, tasks: list[Task], live: Task, graph: DependencyGraph,
                  anchor: date) -> dict[str, TaskDates]:
        chain = self._chain(tasks)
        by_id = {t.task_id: t for t in chain}
        dates = {live.task_id: TaskDates(anchor, anchor)}

        for dep in reversed(self.schedule_edges(tasks, graph)):
            pred = by_id[dep.pred_task_id]
            placed = self._finish_before(dates[dep.succ_task_id].start, dep.lag, pred.duration)
            dates[pred.task_id] = self._no_later_than(placed, pred.duration, anchor)

        adjacent = set(zip((t.task_id for t in chain), (t.task_id for t in chain[1:])))
        for task in chain:
            for dep in graph.get_predecessors(task.task_id):
                if (dep.pred_task_id, dep.succ_task_id) not in adjacent:
                    logger.warning(f"Sequential schedule ignores non-adjacent link "
                                   f"{dep.pred_task_id} -> {dep.succ_task_id}")

        return dates

    def schedule_edges(self, tasks: list[Task], graph: DependencyGraph) -> list[Dependency]:
        """Signed-lag FS edges between sequence neighbours, in sequence order."""
        chain = self._chain(tasks)
        edges = []
        for pred, succ in zip(chain, chain[1:]):
            dep = graph.get_edge(pred.task_id, succ.task_id)
            lag = dep.to_legacy_lag(pred.duration, succ.duration) if dep else 0
            edges.append(Dependency(pred.task_id, succ.task_id, FINISH_TO_START, lag))
        return edges

    @staticmethod
    def _chain(tasks: list[Task]) -> list[Task]:
        return [t for t in tasks if not t.is_live()] + [t for t in tasks if t.is_live()]


class TypedEdgeCalculator(ScheduleCalculator):
    """
    Typed-edge (DAG) strategy.

    Single backward pass from the live task. Each predecessor is positioned
    from its successor through the edge type:
    - FS(lag): end = the working day lag+1 steps before successor start
    - SS(lag): start = successor start - lag working days
    - FF(lag): end = successor end - lag working days
    A task with several outbound edges takes the earliest placement.
    Tasks without outbound edges chain FS(0) to the nearest following task.
    No task ends after the anchor, whatever its edges into the live task say.
    """

    strategy = CalculationStrategy.TYPED

    def _schedule(self, tasks: list[Task], live: Task, graph: DependencyGraph,
                  anchor: date) -> dict[str, TaskDates]:
        by_id = {t.task_id: t for t in tasks}
        sequence = [t.task_id for t in tasks]
        outgoing = self._outgoing(tasks, graph)

        dates = {}
        for tid in self._successors_first(sequence, outgoing):
            task = by_id[tid]
            if tid == live.task_id:
                dates[tid] = TaskDates(anchor, anchor)
                continue

            candidates = [
                self._place_predecessor(task, dep, dates[dep.succ_task_id])
                for dep in outgoing[tid]
            ]
            earliest = min(candidates, key=lambda d: d.start)
            dates[tid] = self._no_later_than(earliest, task.duration, anchor)

        return dates

    def schedule_edges(self, tasks: list[Task], graph: DependencyGraph) -> list[Dependency]:
        """Stored edges within the asset plus the implicit FS(0) island edges."""
        outgoing = self._outgoing(tasks, graph)
        return [dep for t in tasks for dep in outgoing[t.task_id]]

    def _outgoing(self, tasks: list[Task], graph: DependencyGraph) -> dict[str, list[Dependency]]:
        """Outbound edges per task, with islands already linked."""
        live_id = next(t.task_id for t in tasks if t.is_live())
        task_ids = {t.task_id for t in tasks}
        sequence = [t.task_id for t in tasks]

        outgoing: dict[str, list[Dependency]] = {}
        for tid in sequence:
            if tid == live_id:
                outgoing[tid] = []
                continue
            outgoing[tid] = [d for d in graph.get_successors(tid) if d.succ_task_id in task_ids]

        self._link_islands(sequence, live_id, outgoing)
        return outgoing

    def _place_predecessor(self, pred: Task, dep: Dependency, succ_dates: TaskDates) -> TaskDates:
        """Dates of a predecessor driven by one outbound edge."""
        if dep.is_start_to_start():
            start = self.calendar.subtract_working_days(succ_dates.start, dep.lag)
            return self._from_start(start, pred.duration)

        if dep.is_finish_to_finish():
            end = self.calendar.subtract_working_days(succ_dates.end, dep.lag)
            return self._from_end(end, pred.duration)

        return self._finish_before(succ_dates.start, dep.lag, pred.duration)

    def _link_islands(self, sequence: list[str], live_id: str,
                      outgoing: dict[str, list[Dependency]]) -> None:
        """
        Give every task without outbound edges an implicit FS(0) edge.

        The target is the nearest following task that is not an ancestor,
        falling back to the live task. Islands are linked from the end of the
        sequence so earlier islands see the implicit edges of later ones.
        """
        for index in range(len(sequence) - 1, -1, -1):
            tid = sequence[index]
            if tid == live_id or outgoing[tid]:
                continue

            ancestors = self._ancestors(tid, outgoing)
            target = next(
                (c for c in sequence[index + 1:] if c not in ancestors),
                live_id,
            )
            outgoing[tid].append(Dependency(tid, target, FINISH_TO_START, 0))

    @staticmethod
    def _ancestors(task_id: str, outgoing: dict[str, list[Dependency]]) -> set[str]:
        incoming: dict[str, list[str]] = {}
        for deps in outgoing.values():
            for dep in deps:
                incoming.setdefault(dep.succ_task_id, []).append(dep.pred_task_id)

        result = set()
        queue = [task_id]
        while queue:
            current = queue.pop(0)
            for pred_id in incoming.get(current, []):
                if pred_id not in result:
                    result.add(pred_id)
                    queue.append(pred_id)
        return result

    @staticmethod
    def _successors_first(sequence: list[str], outgoing: dict[str, list[Dependency]]) -> list[str]:
        """
        Order tasks so every successor precedes its predecessors.

        Kahn's algorithm on out-degree. Raises ValueError on a cycle.
        """
        out_degree = {tid: len(outgoing[tid]) for tid in sequence}
        incoming: dict[str, list[str]] = {tid: [] for tid in sequence}
        for tid in sequence:
            for dep in outgoing[tid]:
                incoming[dep.succ_task_id].append(tid)

        queue = [tid for tid in reversed(sequence) if out_degree[tid] == 0]
        result = []

        while queue:
            task_id = queue.pop(0)
            result.append(task_id)
            for pred_id in incoming[task_id]:
                out_degree[pred_id] -= 1
                if out_degree[pred_id] == 0:
                    queue.append(pred_id)

        if len(result) != len(sequence):
            remaining = [tid for tid in sequence if tid not in result]
            raise ValueError(f"Circular dependency detected involving {len(remaining)} tasks: "
                             f"{remaining[:5]}...")

        return result


def create_calculator(strategy: Union[CalculationStrategy, str, None] = None,
                      calendar: Optional[WorkCalendar] = None) -> ScheduleCalculator:
    """
    Build the configured ScheduleCalculator.

    Args:
        strategy: Strategy or its name (default: settings.SCHEDULE_STRATEGY)
        calendar: Working-day calendar (default: no holidays)
    """
    if strategy is None:
        strategy = settings.SCHEDULE_STRATEGY
    if isinstance(strategy, str):
        try:
            strategy = CalculationStrategy(strategy.lower())
        except ValueError:
            raise ValueError(f"Unknown schedule strategy {strategy!r}")

    if strategy is CalculationStrategy.LEGACY:
        return SequentialCalculator(calendar)
    return TypedEdgeCalculator(calendar)
