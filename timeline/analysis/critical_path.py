"""
Critical Path Analysis.

The computed schedule already holds every task's latest dates: each asset is
planned backward from its go-live. A forward pass over the same edges the
calculator schedules along gives the earliest dates, and the working days
between the two are the task's float. Tasks without float are critical.
"""

import logging
from collections import defaultdict
from datetime import date

from ..cpm.models import Task, Dependency, TaskFloat, CriticalPathResult
from ..cpm.engine import ScheduleCalculator
from ..cpm.state import ProjectState

logger = logging.getLogger(__name__)


def analyze_critical_path(
    state: ProjectState,
    calculator: ScheduleCalculator,
    near_critical_threshold_days: int = 2,
) -> CriticalPathResult:
    """
    Analyze critical path and near-critical tasks.

    Each asset is measured against its own span, from its earliest task start
    to its go-live. Unscheduled assets are skipped.

    Args:
        state: Computed project snapshot
        calculator: Strategy the snapshot was scheduled with
        near_critical_threshold_days: Float threshold for near-critical classification

    Returns:
        CriticalPathResult with critical path, near-critical tasks, and statistics
    """
    floats: dict[str, TaskFloat] = {}
    starts = []
    finishes = []

    for asset_id in state.assets:
        tasks = state.asset_tasks(asset_id)
        if not tasks or any(t.start is None for t in tasks):
            logger.debug(f"Asset {asset_id} is unscheduled; skipping float analysis")
            continue
        floats.update(_asset_floats(tasks, calculator.schedule_edges(tasks, state.graph), calculator))
        starts.append(min(t.start for t in tasks))
        finishes.append(max(t.end for t in tasks))

    critical = []
    near_critical = []
    float_buckets = defaultdict(int)

    for item in floats.values():
        if item.total_float <= 0:
            critical.append(item)
            float_buckets['0 (critical)'] += 1
        elif item.total_float <= 2:
            float_buckets['1-2 days'] += 1
        elif item.total_float <= 5:
            float_buckets['3-5 days'] += 1
        elif item.total_float <= 10:
            float_buckets['6-10 days'] += 1
        else:
            float_buckets['>10 days'] += 1

        if 0 < item.total_float <= near_critical_threshold_days:
            near_critical.append(item)

    critical.sort(key=lambda t: (t.early_start, state.sequence_index(t.task_id)))
    near_critical.sort(key=lambda t: (t.total_float, t.early_start))

    return CriticalPathResult(
        critical_path=critical,
        near_critical_tasks=near_critical,
        float_distribution=dict(float_buckets),
        floats=floats,
        project_start=min(starts) if starts else None,
        project_finish=max(finishes) if finishes else None,
        near_critical_threshold_days=near_critical_threshold_days,
        total_tasks=len(floats),
    )


def _asset_floats(tasks: list[Task], edges: list[Dependency],
                  calculator: ScheduleCalculator) -> dict[str, TaskFloat]:
    """Forward pass over one asset's scheduled edges."""
    calendar = calculator.calendar
    by_id = {t.task_id: t for t in tasks}
    project_start = min(t.start for t in tasks)

    incoming: dict[str, list[Dependency]] = {t.task_id: [] for t in tasks}
    for dep in edges:
        incoming[dep.succ_task_id].append(dep)

    early: dict[str, tuple[date, date]] = {}
    for tid in _predecessors_first([t.task_id for t in tasks], edges):
        task = by_id[tid]
        if task.is_live():
            early[tid] = (task.start, task.end)
            continue

        start = project_start
        for dep in incoming[tid]:
            pred_start, pred_end = early[dep.pred_task_id]
            if dep.is_start_to_start():
                candidate = calendar.add_working_days(pred_start, dep.lag)
            elif dep.is_finish_to_finish():
                finish = calendar.add_working_days(pred_end, dep.lag)
                candidate = calendar.subtract_working_days(finish, task.duration - 1)
            else:
                candidate = calendar.shift_working_days(pred_end, dep.lag + 1)
            start = max(start, candidate)

        early[tid] = (start, calendar.add_working_days(start, task.duration - 1))

    return {
        t.task_id: TaskFloat(
            task_id=t.task_id,
            asset_id=t.asset_id,
            early_start=early[t.task_id][0],
            early_end=early[t.task_id][1],
            late_start=t.start,
            late_end=t.end,
            total_float=calendar.working_days_between(early[t.task_id][0], t.start),
        )
        for t in tasks
    }


def _predecessors_first(sequence: list[str], edges: list[Dependency]) -> list[str]:
    """Kahn's algorithm on in-degree. Raises ValueError on a cycle."""
    in_degree = {tid: 0 for tid in sequence}
    outgoing: dict[str, list[str]] = {tid: [] for tid in sequence}
    for dep in edges:
        in_degree[dep.succ_task_id] += 1
        outgoing[dep.pred_task_id].append(dep.succ_task_id)

    queue = [tid for tid in sequence if in_degree[tid] == 0]
    result = []
    while queue:
        task_id = queue.pop(0)
        result.append(task_id)
        for succ_id in outgoing[task_id]:
            in_degree[succ_id] -= 1
            if in_degree[succ_id] == 0:
                queue.append(succ_id)

    if len(result) != len(sequence):
        raise ValueError(f"Circular dependency detected involving {len(sequence) - len(result)} tasks")
    return result
