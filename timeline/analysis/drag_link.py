"""
Drag-to-Link Resolution.

Turns a proposed relocation date for a task into one of:
- SnapSuggestion: target is a non-working day; confirm the previous working day
- AnchorMove: the live task was moved, so the go-live date changes
- LinkProposal: target overlaps a sibling task; suggested typed edge
- DisambiguationRequest: more than one zero-lag edge fits; caller picks
- FreeMove: no overlap; the task's inbound edges are cleared

Nothing is changed until the caller commits a resolution.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional, Union

from src.config.settings import settings
from ..cpm.models import (
    Task,
    Dependency,
    TaskDates,
    CalculationStrategy,
    FINISH_TO_START,
    START_TO_START,
    FINISH_TO_FINISH,
)
from ..cpm.calendar import WorkCalendar, parse_iso_date
from ..cpm.state import ProjectState
from .mutations import Mutation, link_tasks, free_move, set_anchor_date

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SnapSuggestion:
    task_id: str
    proposed_date: date
    snapped_date: date


@dataclass(frozen=True)
class AnchorMove:
    task_id: str
    asset_id: Optional[str]        # None moves the global live date
    new_date: date


@dataclass(frozen=True)
class LinkProposal:
    pred_task_id: str
    succ_task_id: str
    dep_type: str
    lag: int
    moved_task_id: str

    def describe(self) -> str:
        return f"{self.pred_task_id} {self.dep_type}({self.lag}) {self.succ_task_id}"


@dataclass(frozen=True)
class DisambiguationRequest:
    pred_task_id: str
    succ_task_id: str
    moved_task_id: str
    options: tuple[LinkProposal, ...]

    def get_option(self, dep_type: str) -> LinkProposal:
        for option in self.options:
            if option.dep_type == dep_type:
                return option
        allowed = ', '.join(o.dep_type for o in self.options)
        raise ValueError(f"Dependency type {dep_type!r} not offered; choose one of {allowed}")


@dataclass(frozen=True)
class FreeMove:
    task_id: str
    proposed_date: date
    cleared_predecessors: tuple[str, ...]


Resolution = Union[SnapSuggestion, AnchorMove, LinkProposal, DisambiguationRequest, FreeMove]


class DragLinkResolver:
    """
    Resolves drag gestures into mutations.

    Typed strategy proposes SS/FF edges; the legacy strategy proposes a
    finish-to-start edge with a negative lag equal to the overlap, and only
    between sequence neighbours. A drop onto the live task never proposes a
    link that would end the dragged task after go-live.
    """

    def __init__(self, calendar: WorkCalendar = None,
                 strategy: Union[CalculationStrategy, str, None] = None,
                 strict_overlap: Optional[bool] = None):
        self.calendar = calendar or WorkCalendar()
        if strategy is None:
            strategy = settings.SCHEDULE_STRATEGY
        if isinstance(strategy, str):
            strategy = CalculationStrategy(strategy.lower())
        self.strategy = strategy
        self.strict_overlap = settings.STRICT_OVERLAP_CALC if strict_overlap is None else strict_overlap

    @classmethod
    def for_calculator(cls, calculator, strict_overlap: Optional[bool] = None) -> 'DragLinkResolver':
        """Resolver matching a calculator's calendar and strategy."""
        return cls(calculator.calendar, calculator.strategy, strict_overlap)

    def resolve(self, state: ProjectState, task_id: str, proposed) -> Resolution:
        """
        Classify a proposed new start date for a task.

        Args:
            state: Computed project snapshot
            task_id: Task being dragged
            proposed: Proposed start date (ISO string or date)

        Returns:
            One of the resolution records; commit it with `commit`

        Raises:
            ValueError: Legacy strategy and the overlapped task is not a
                        sequence neighbour of the dragged task
        """
        proposed = parse_iso_date(proposed)
        task = state.get_task(task_id)

        if task.is_live():
            asset_id = None if state.use_global_date else task.asset_id
            return AnchorMove(task_id, asset_id, proposed)

        if not self.calendar.is_working_day(proposed):
            return SnapSuggestion(task_id, proposed, self.calendar.previous_working_day(proposed))

        if task.start is None:
            raise ValueError(f"Task {task_id} has not been scheduled")

        other = self._find_overlapped_task(state, task, proposed)
        if other is None:
            cleared = tuple(d.pred_task_id for d in state.graph.get_predecessors(task_id))
            return FreeMove(task_id, proposed, cleared)

        moved = TaskDates(proposed, self.calendar.add_working_days(proposed, task.duration - 1))
        pred, succ = self._order_pair(state, task, other)
        pred_dates = moved if pred is task else TaskDates(pred.start, pred.end)
        succ_dates = moved if succ is task else TaskDates(succ.start, succ.end)

        if self.strategy is CalculationStrategy.LEGACY:
            if state.sequence_index(succ.task_id) - state.sequence_index(pred.task_id) != 1:
                raise ValueError(
                    f"Sequential schedule only links neighbouring tasks; "
                    f"{pred.task_id} and {succ.task_id} are not adjacent"
                )
            overlap = min(self.overlap_days(succ_dates.start, pred_dates.end), pred.duration)
            if succ.is_live():
                # Overlapping go-live by one day ends the task on the anchor
                overlap = min(overlap, 1)
            return LinkProposal(pred.task_id, succ.task_id, FINISH_TO_START, -overlap, task_id)

        if succ.is_live():
            return LinkProposal(pred.task_id, succ.task_id, FINISH_TO_FINISH, 0, task_id)

        return self._typed_proposal(pred, succ, pred_dates, succ_dates, task_id)

    def confirm_snap(self, state: ProjectState, snap: SnapSuggestion) -> Resolution:
        """Resolve again at the snapped working day the caller accepted."""
        return self.resolve(state, snap.task_id, snap.snapped_date)

    def commit(self, state: ProjectState, resolution: Resolution,
               dep_type: Optional[str] = None) -> Mutation:
        """
        Build the mutation for a confirmed resolution.

        Args:
            state: Snapshot the resolution was produced from
            resolution: Result of `resolve`
            dep_type: Caller's chosen type; required for DisambiguationRequest

        Returns:
            Mutation to hand to the propagator or history manager
        """
        if isinstance(resolution, SnapSuggestion):
            raise ValueError("Snap suggestions must be confirmed with confirm_snap before commit")

        if isinstance(resolution, AnchorMove):
            return set_anchor_date(state, resolution.new_date, resolution.asset_id)

        if isinstance(resolution, FreeMove):
            return free_move(state, resolution.task_id)

        if isinstance(resolution, DisambiguationRequest):
            if dep_type is None:
                raise ValueError("A dependency type must be chosen for this link")
            proposal = resolution.get_option(dep_type)
        else:
            proposal = resolution
            if dep_type is not None and dep_type != proposal.dep_type:
                raise ValueError(
                    f"Confirmed type {dep_type!r} does not match proposed {proposal.dep_type!r}"
                )

        dep = Dependency(proposal.pred_task_id, proposal.succ_task_id, proposal.dep_type, proposal.lag)
        if dep.lag < 0:
            pred = state.get_task(dep.pred_task_id)
            dep = Dependency.from_legacy(dep.pred_task_id, dep.succ_task_id, dep.lag, pred.duration)

        return link_tasks(state, dep.pred_task_id, dep.succ_task_id, dep.dep_type, dep.lag)

    def overlap_days(self, succ_start: date, pred_end: date) -> int:
        """
        Working days the successor overlaps its predecessor.

        Counts the successor's start day itself unless strict overlap is on.
        """
        days = self.calendar.working_days_between(succ_start, pred_end)
        return max(0, days if self.strict_overlap else days + 1)

    def _typed_proposal(self, pred: Task, succ: Task, pred_dates: TaskDates,
                        succ_dates: TaskDates, moved_task_id: str) -> Resolution:
        same_start = pred_dates.start == succ_dates.start
        same_end = pred_dates.end == succ_dates.end

        def proposal(dep_type: str, lag: int) -> LinkProposal:
            return LinkProposal(pred.task_id, succ.task_id, dep_type, lag, moved_task_id)

        if same_start and same_end:
            return self._disambiguate(pred, succ, moved_task_id)
        if same_start:
            return proposal(START_TO_START, 0)
        if same_end:
            return proposal(FINISH_TO_FINISH, 0)
        if succ_dates.start >= pred_dates.start:
            return proposal(START_TO_START,
                            self.calendar.working_days_between(pred_dates.start, succ_dates.start))
        if succ_dates.end >= pred_dates.end:
            return proposal(FINISH_TO_FINISH,
                            self.calendar.working_days_between(pred_dates.end, succ_dates.end))

        logger.debug(f"No non-negative lag links {pred.task_id} -> {succ.task_id}")
        return self._disambiguate(pred, succ, moved_task_id)

    @staticmethod
    def _disambiguate(pred: Task, succ: Task, moved_task_id: str) -> DisambiguationRequest:
        return DisambiguationRequest(
            pred.task_id,
            succ.task_id,
            moved_task_id,
            (
                LinkProposal(pred.task_id, succ.task_id, START_TO_START, 0, moved_task_id),
                LinkProposal(pred.task_id, succ.task_id, FINISH_TO_FINISH, 0, moved_task_id),
            ),
        )

    @staticmethod
    def _find_overlapped_task(state: ProjectState, task: Task, proposed: date) -> Optional[Task]:
        """First other task of the same asset whose span contains the proposed start."""
        for other in state.asset_tasks(task.asset_id):
            if other.task_id == task.task_id or other.start is None:
                continue
            if other.start <= proposed <= other.end:
                return other
        return None

    @staticmethod
    def _order_pair(state: ProjectState, first: Task, second: Task) -> tuple[Task, Task]:
        """Predecessor and successor by sequence position, then start date."""
        def key(t: Task):
            return (state.sequence_index(t.task_id), t.start or date.min, t.task_id)
        pred, succ = sorted([first, second], key=key)
        return pred, succ
