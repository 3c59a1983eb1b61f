"""
Project Mutations.

Primitive mutations change one thing on a ProjectState and can compute their
own inverse against the snapshot they are about to change. Builders compile
user-level events (add an asset, insert a custom task, confirm a link...) into
a Batch of primitives so that undo replays exact inverses.
"""

from abc import ABC, abstractmethod
from copy import copy
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from src.config.settings import settings
from ..cpm.models import (
    Task,
    Asset,
    Dependency,
    Catalog,
    OWNER_AGENCY,
    OWNER_LIVE,
    OWNERS,
    FINISH_TO_START,
)
from ..cpm.calendar import parse_iso_date
from ..cpm.state import ProjectState


class Mutation(ABC):
    """A reversible change to a project snapshot."""

    label = 'mutation'

    @abstractmethod
    def apply(self, state: ProjectState) -> set[str]:
        """Apply in place. Returns the IDs of assets whose schedule is affected."""

    @abstractmethod
    def inverse(self, state: ProjectState) -> 'Mutation':
        """Build the mutation that undoes this one, given the pre-apply state."""

    def apply_with_inverse(self, state: ProjectState) -> tuple['Mutation', set[str]]:
        inverse = self.inverse(state)
        affected = self.apply(state)
        return inverse, affected


@dataclass
class SetDuration(Mutation):
    task_id: str
    duration: int
    label = 'edit duration'

    def apply(self, state):
        task = state.get_task(self.task_id)
        validate_duration(self.duration)
        if task.is_live() and self.duration != 1:
            raise ValueError(f"Live task {self.task_id} must keep a duration of 1")
        task.duration = self.duration
        return {task.asset_id}

    def inverse(self, state):
        return SetDuration(self.task_id, state.get_task(self.task_id).duration)


@dataclass
class InsertTask(Mutation):
    task: Task
    position: int
    label = 'insert task'

    def apply(self, state):
        state.get_asset(self.task.asset_id)
        if self.task.task_id in state.graph:
            raise ValueError(f"Task {self.task.task_id} already exists")

        new_task = copy(self.task)
        new_task.start = None
        new_task.end = None
        state.graph.add_task(new_task)
        state.sequences[new_task.asset_id].insert(self.position, new_task.task_id)
        return {new_task.asset_id}

    def inverse(self, state):
        return DeleteTask(self.task.task_id)


@dataclass
class DeleteTask(Mutation):
    task_id: str
    label = 'delete task'

    def apply(self, state):
        task = state.get_task(self.task_id)
        if state.graph.get_edges_for(self.task_id):
            raise ValueError(f"Task {self.task_id} still has dependencies")
        state.sequences[task.asset_id].remove(self.task_id)
        state.graph.remove_task(self.task_id)
        return {task.asset_id}

    def inverse(self, state):
        return InsertTask(copy(state.get_task(self.task_id)), state.sequence_index(self.task_id))


@dataclass
class LinkTasks(Mutation):
    dependency: Dependency
    label = 'link tasks'

    def apply(self, state):
        dep = self.dependency
        state.graph.add_edge(dep.pred_task_id, dep.succ_task_id, dep.dep_type, dep.lag)
        return {state.get_task(dep.pred_task_id).asset_id}

    def inverse(self, state):
        dep = self.dependency
        existing = state.graph.get_edge(dep.pred_task_id, dep.succ_task_id)
        if existing is not None:
            return LinkTasks(copy(existing))
        return UnlinkTasks(dep.pred_task_id, dep.succ_task_id)


@dataclass
class UnlinkTasks(Mutation):
    pred_task_id: str
    succ_task_id: str
    label = 'unlink tasks'

    def apply(self, state):
        removed = state.graph.remove_edge(self.pred_task_id, self.succ_task_id)
        if removed is None:
            return set()
        return {state.get_task(self.succ_task_id).asset_id}

    def inverse(self, state):
        existing = state.graph.get_edge(self.pred_task_id, self.succ_task_id)
        if existing is not None:
            return LinkTasks(copy(existing))
        return Batch([], label='no-op')


@dataclass
class AddAssetRecord(Mutation):
    asset: Asset
    position: Optional[int] = None     # selection order; None appends
    label = 'add asset'

    def apply(self, state):
        if self.asset.asset_id in state.assets:
            raise ValueError(f"Asset {self.asset.asset_id} already exists")

        items = list(state.assets.items())
        position = len(items) if self.position is None else self.position
        items.insert(position, (self.asset.asset_id, copy(self.asset)))
        state.assets = dict(items)
        state.sequences[self.asset.asset_id] = []
        return {self.asset.asset_id}

    def inverse(self, state):
        return DeleteAssetRecord(self.asset.asset_id)


@dataclass
class DeleteAssetRecord(Mutation):
    asset_id: str
    label = 'delete asset'

    def apply(self, state):
        state.get_asset(self.asset_id)
        if state.sequences.get(self.asset_id):
            raise ValueError(f"Asset {self.asset_id} still has tasks")
        del state.assets[self.asset_id]
        state.sequences.pop(self.asset_id, None)
        return set()

    def inverse(self, state):
        asset = state.get_asset(self.asset_id)
        return AddAssetRecord(copy(asset), list(state.assets).index(self.asset_id))


@dataclass
class SetAnchorDate(Mutation):
    asset_id: Optional[str]            # None targets the global live date
    anchor_date: Optional[date]
    label = 'set anchor date'

    def apply(self, state):
        if self.asset_id is None:
            state.global_live_date = self.anchor_date
            return set(state.assets_on_global_date())
        state.get_asset(self.asset_id).anchor_date = self.anchor_date
        return {self.asset_id}

    def inverse(self, state):
        if self.asset_id is None:
            return SetAnchorDate(None, state.global_live_date)
        return SetAnchorDate(self.asset_id, state.get_asset(self.asset_id).anchor_date)


@dataclass
class SetGlobalDateMode(Mutation):
    enabled: bool
    label = 'set global date mode'

    def apply(self, state):
        state.use_global_date = self.enabled
        return set(state.assets)

    def inverse(self, state):
        return SetGlobalDateMode(state.use_global_date)


@dataclass
class Batch(Mutation):
    steps: list[Mutation] = field(default_factory=list)
    label: str = 'batch'

    def apply(self, state):
        affected = set()
        for step in self.steps:
            affected |= step.apply(state)
        return affected

    def apply_with_inverse(self, state):
        inverses = []
        affected = set()
        for step in self.steps:
            inverse, step_affected = step.apply_with_inverse(state)
            inverses.append(inverse)
            affected |= step_affected
        return Batch(list(reversed(inverses)), label=f'undo {self.label}'), affected

    def inverse(self, state):
        # Later steps see the effect of earlier ones, so simulate on a copy
        inverse, _ = self.apply_with_inverse(state.clone())
        return inverse


# ============================================================================
# Validation helpers
# ============================================================================

def validate_duration(duration: int) -> None:
    """Raise ValueError unless duration is a whole number of days in range."""
    if isinstance(duration, bool) or not isinstance(duration, int):
        raise ValueError(f"Duration must be an integer, got {duration!r}")
    if not settings.MIN_DURATION <= duration <= settings.MAX_DURATION:
        raise ValueError(
            f"Duration must be between {settings.MIN_DURATION} and "
            f"{settings.MAX_DURATION} days, got {duration}"
        )


def validate_task_name(name: str) -> str:
    name = (name or '').strip()
    if not name:
        raise ValueError("Task name is required")
    if len(name) > settings.MAX_TASK_NAME_LENGTH:
        raise ValueError(f"Task name exceeds {settings.MAX_TASK_NAME_LENGTH} characters")
    return name


# ============================================================================
# Builders
# ============================================================================

def build_asset_tasks(asset: Asset, catalog: Catalog) -> list[Task]:
    """Instantiate an asset's tasks from its catalog template sequence."""
    return [
        Task(
            task_id=f"{asset.asset_id}-task-{index}",
            name=template.name,
            duration=1 if template.is_live() else template.duration,
            owner=template.owner,
            asset_id=asset.asset_id,
            asset_type=asset.asset_type,
        )
        for index, template in enumerate(catalog.get_templates(asset.asset_type))
    ]


def add_asset(state: ProjectState, catalog: Catalog, asset: Asset) -> Batch:
    """Add an asset with its template tasks and default FS(0) chain."""
    if len(state.assets) >= settings.MAX_ASSETS:
        raise ValueError(f"Cannot add more than {settings.MAX_ASSETS} assets")

    tasks = build_asset_tasks(asset, catalog)
    steps: list[Mutation] = [AddAssetRecord(asset)]
    steps.extend(InsertTask(task, index) for index, task in enumerate(tasks))
    steps.extend(
        LinkTasks(dep)
        for dep in state.graph.default_template_edges([t.task_id for t in tasks])
    )
    return Batch(steps, label=f'add asset {asset.name}')


def remove_asset(state: ProjectState, asset_id: str) -> Batch:
    """Remove an asset, cascading to its tasks and edges."""
    state.get_asset(asset_id)
    sequence = state.sequences[asset_id]

    steps: list[Mutation] = []
    for task_id in sequence:
        steps.extend(
            UnlinkTasks(dep.pred_task_id, dep.succ_task_id)
            for dep in state.graph.get_predecessors(task_id)
        )
    steps.extend(DeleteTask(task_id) for task_id in reversed(sequence))
    steps.append(DeleteAssetRecord(asset_id))
    return Batch(steps, label=f'remove asset {asset_id}')


def edit_duration(state: ProjectState, task_id: str, duration: int) -> Batch:
    """Change one task's duration."""
    task = state.get_task(task_id)
    validate_duration(duration)
    if task.is_live() and duration != 1:
        raise ValueError(f"Live task {task_id} must keep a duration of 1")
    return Batch([SetDuration(task_id, duration)], label=f'edit duration of {task.name}')


def next_custom_task_id(state: ProjectState, asset_id: str) -> str:
    prefix = f"{asset_id}-custom-"
    numbers = [
        int(tid[len(prefix):]) for tid in state.sequences.get(asset_id, [])
        if tid.startswith(prefix) and tid[len(prefix):].isdigit()
    ]
    return f"{prefix}{max(numbers, default=0) + 1}"


def insert_custom_task(state: ProjectState, asset_id: str, name: str, duration: int,
                       owner: str = OWNER_AGENCY, after_task_id: Optional[str] = None,
                       task_id: Optional[str] = None) -> Batch:
    """
    Splice a custom task into an asset's sequence after `after_task_id`.

    The edge after -> next is replaced by after -> new -> next, both FS(0).
    With no `after_task_id` the task is placed first.
    """
    asset = state.get_asset(asset_id)
    name = validate_task_name(name)
    validate_duration(duration)
    if owner not in OWNERS or owner == OWNER_LIVE:
        raise ValueError(f"Custom task owner must be one of c, m, a; got {owner!r}")
    if state.custom_task_count(asset_id) >= settings.MAX_CUSTOM_TASKS_PER_ASSET:
        raise ValueError(
            f"Asset {asset_id} already has {settings.MAX_CUSTOM_TASKS_PER_ASSET} custom tasks"
        )

    sequence = state.sequences[asset_id]
    if after_task_id is None:
        position = 0
    else:
        after = state.get_task(after_task_id)
        if after.asset_id != asset_id:
            raise ValueError(f"Task {after_task_id} does not belong to asset {asset_id}")
        if after.is_live():
            raise ValueError("Cannot insert a task after the live task")
        position = sequence.index(after_task_id) + 1
    next_id = sequence[position] if position < len(sequence) else None

    new_task = Task(
        task_id=task_id or next_custom_task_id(state, asset_id),
        name=name,
        duration=duration,
        owner=owner,
        asset_id=asset_id,
        asset_type=asset.asset_type,
        is_custom=True,
    )

    steps: list[Mutation] = []
    if after_task_id and next_id and state.graph.get_edge(after_task_id, next_id):
        steps.append(UnlinkTasks(after_task_id, next_id))
    steps.append(InsertTask(new_task, position))
    if after_task_id:
        steps.append(LinkTasks(Dependency(after_task_id, new_task.task_id, FINISH_TO_START, 0)))
    if next_id:
        other_inbound = [
            d for d in state.graph.get_predecessors(next_id) if d.pred_task_id != after_task_id
        ]
        if not other_inbound:
            steps.append(LinkTasks(Dependency(new_task.task_id, next_id, FINISH_TO_START, 0)))

    return Batch(steps, label=f'insert {name}')


def _with_template_order(state: ProjectState, asset_id: str, steps: list[Mutation]) -> list[Mutation]:
    """Append FS(0) links that restore template order once `steps` have run."""
    preview = state.clone()
    Batch(list(steps)).apply(preview)
    gaps = preview.graph.template_order_gaps(preview.sequences[asset_id])
    return steps + [LinkTasks(dep) for dep in gaps]


def remove_custom_task(state: ProjectState, task_id: str) -> Batch:
    """Remove a custom task and close the gap it leaves in the chain."""
    task = state.get_task(task_id)
    if not task.is_custom:
        raise ValueError(f"Task {task_id} is not a custom task")

    steps: list[Mutation] = [
        UnlinkTasks(dep.pred_task_id, dep.succ_task_id)
        for dep in state.graph.get_edges_for(task_id)
    ]
    steps.append(DeleteTask(task_id))
    return Batch(_with_template_order(state, task.asset_id, steps), label=f'remove {task.name}')


def link_tasks(state: ProjectState, pred_task_id: str, succ_task_id: str,
               dep_type: str, lag: int = 0) -> Batch:
    """
    Commit a confirmed link between two tasks of one asset.

    Any other inbound edge of the successor and the reverse edge are removed
    first, so the successor keeps a single driving edge and no 2-cycle can
    form. The predecessor's other outbound edges stay; the backward pass
    places it by the earliest of them.
    """
    pred = state.get_task(pred_task_id)
    succ = state.get_task(succ_task_id)
    if pred_task_id == succ_task_id:
        raise ValueError(f"Task {pred_task_id} cannot depend on itself")
    if pred.asset_id != succ.asset_id:
        raise ValueError(f"Tasks {pred_task_id} and {succ_task_id} belong to different assets")

    steps: list[Mutation] = []
    for dep in state.graph.get_predecessors(succ_task_id):
        if dep.pred_task_id != pred_task_id:
            steps.append(UnlinkTasks(dep.pred_task_id, succ_task_id))
    if state.graph.get_edge(succ_task_id, pred_task_id):
        steps.append(UnlinkTasks(succ_task_id, pred_task_id))
    steps.append(LinkTasks(Dependency(pred_task_id, succ_task_id, dep_type, lag)))

    return Batch(steps, label=f'link {pred.name} {dep_type} {succ.name}')


def unlink_tasks(state: ProjectState, pred_task_id: str, succ_task_id: str) -> Batch:
    """Remove a link and reassert template order where the chain broke."""
    succ = state.get_task(succ_task_id)
    steps = [UnlinkTasks(pred_task_id, succ_task_id)]
    return Batch(_with_template_order(state, succ.asset_id, steps), label='unlink')


def free_move(state: ProjectState, task_id: str) -> Batch:
    """Clear every inbound edge of a task."""
    state.get_task(task_id)
    steps = [
        UnlinkTasks(dep.pred_task_id, task_id)
        for dep in state.graph.get_predecessors(task_id)
    ]
    return Batch(steps, label=f'free move {task_id}')


def set_anchor_date(state: ProjectState, value, asset_id: Optional[str] = None) -> Batch:
    """Move the global live date, or one asset's own anchor."""
    anchor = parse_iso_date(value)
    if asset_id is not None:
        state.get_asset(asset_id)
    return Batch([SetAnchorDate(asset_id, anchor)], label='set anchor date')


def set_global_date_mode(state: ProjectState, enabled: bool) -> Batch:
    return Batch([SetGlobalDateMode(bool(enabled))], label='set global date mode')
