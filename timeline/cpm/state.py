"""
Project snapshot.

A ProjectState bundles the selected assets, their ordered task sequences, the
dependency graph and the anchor settings. Mutations are applied to a clone so
every change yields a new snapshot.
"""

from copy import copy
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from .models import Asset, Task, TaskDates, ScheduleMode
from .network import DependencyGraph


@dataclass
class ProjectState:
    """One logical project snapshot."""

    assets: dict[str, Asset] = field(default_factory=dict)        # selection order
    sequences: dict[str, list[str]] = field(default_factory=dict)  # asset_id -> task_ids
    graph: DependencyGraph = field(default_factory=DependencyGraph)
    global_live_date: Optional[date] = None
    use_global_date: bool = True
    mode: ScheduleMode = ScheduleMode.DERIVED

    @property
    def tasks(self) -> dict[str, Task]:
        return self.graph.tasks

    def get_asset(self, asset_id: str) -> Asset:
        """Get an asset by ID, raising ValueError if unknown."""
        if asset_id not in self.assets:
            raise ValueError(f"Asset {asset_id} not in project")
        return self.assets[asset_id]

    def get_task(self, task_id: str) -> Task:
        """Get a task by ID, raising ValueError if unknown."""
        task = self.graph.get_task(task_id)
        if task is None:
            raise ValueError(f"Task {task_id} not in project")
        return task

    def asset_tasks(self, asset_id: str) -> list[Task]:
        """Tasks of one asset in sequence order."""
        return [self.graph.tasks[tid] for tid in self.sequences.get(asset_id, [])]

    def live_task(self, asset_id: str) -> Optional[Task]:
        for task in self.asset_tasks(asset_id):
            if task.is_live():
                return task
        return None

    def sequence_index(self, task_id: str) -> int:
        """Position of a task within its asset's sequence."""
        task = self.get_task(task_id)
        return self.sequences[task.asset_id].index(task_id)

    def anchor_for(self, asset_id: str) -> Optional[date]:
        """Go-live date that pins an asset's terminal task."""
        asset = self.get_asset(asset_id)
        if self.use_global_date or asset.anchor_date is None:
            return self.global_live_date
        return asset.anchor_date

    def assets_on_global_date(self) -> list[str]:
        """Assets whose anchor follows the global live date."""
        return [
            aid for aid, asset in self.assets.items()
            if self.use_global_date or asset.anchor_date is None
        ]

    def custom_task_count(self, asset_id: str) -> int:
        return sum(1 for t in self.asset_tasks(asset_id) if t.is_custom)

    def get_dates(self, task_id: str) -> Optional[TaskDates]:
        task = self.get_task(task_id)
        if task.start is None or task.end is None:
            return None
        return TaskDates(task.start, task.end)

    def date_map(self) -> dict[str, tuple[str, str]]:
        """Get {task_id: (start, end)} as ISO strings for every scheduled task."""
        result = {}
        for asset_id in self.assets:
            for task in self.asset_tasks(asset_id):
                if task.start is not None and task.end is not None:
                    result[task.task_id] = (task.start.isoformat(), task.end.isoformat())
        return result

    def clone(self) -> 'ProjectState':
        """Copy the snapshot so a mutation can be applied without touching this one."""
        return ProjectState(
            assets={aid: copy(asset) for aid, asset in self.assets.items()},
            sequences={aid: list(seq) for aid, seq in self.sequences.items()},
            graph=self.graph.clone(),
            global_live_date=self.global_live_date,
            use_global_date=self.use_global_date,
            mode=self.mode,
        )

    def __repr__(self) -> str:
        return (f"ProjectState({len(self.assets)} assets, {len(self.graph)} tasks, "
                f"mode={self.mode.value})")
