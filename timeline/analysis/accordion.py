"""
Accordion Propagation.

Every mutation is applied to a fresh copy of the project snapshot and the
affected assets are rescheduled from scratch, so dates shift exactly with
each duration or structural change.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from ..cpm.models import Catalog, AssetSchedule, ScheduleMode
from ..cpm.engine import ScheduleCalculator, create_calculator
from ..cpm.state import ProjectState
from .mutations import Mutation, add_asset

logger = logging.getLogger(__name__)


@dataclass
class PropagationResult:
    """Outcome of applying one mutation."""

    state: ProjectState
    inverse: Mutation
    affected_assets: list[str]
    schedules: dict[str, AssetSchedule] = field(default_factory=dict)

    def get_shifted_tasks(self, previous: ProjectState) -> list[str]:
        """Task IDs whose dates differ from the previous snapshot."""
        before = previous.date_map()
        after = self.state.date_map()
        return [tid for tid, dates in after.items() if before.get(tid) != dates]


class AccordionPropagator:
    """
    Applies mutations and recomputes schedules.

    The caller's snapshot is never modified: a rejected mutation raises and
    leaves it as it was.
    """

    def __init__(self, calculator: ScheduleCalculator = None, catalog: Catalog = None,
                 mode: ScheduleMode = ScheduleMode.DERIVED):
        """
        Initialize propagator.

        Args:
            calculator: Strategy used for every recompute (default: from settings)
            catalog: Asset catalog used when assets are added
            mode: DERIVED regenerates task lists from the catalog when a project
                  is hydrated, FROZEN trusts persisted task lists verbatim
        """
        self.calculator = calculator or create_calculator()
        self.catalog = catalog or Catalog()
        self.mode = mode

    @property
    def calendar(self):
        return self.calculator.calendar

    def recompute(self, state: ProjectState,
                  asset_ids: Optional[Iterable[str]] = None) -> dict[str, AssetSchedule]:
        """
        Reschedule assets in place and write dates onto their tasks.

        Args:
            state: Snapshot to update (callers pass a copy)
            asset_ids: Assets to reschedule (default: all)

        Returns:
            Dict mapping asset_id to its new AssetSchedule
        """
        if asset_ids is None:
            targets = list(state.assets)
        else:
            wanted = set(asset_ids)
            targets = [aid for aid in state.assets if aid in wanted]

        schedules = {}
        for asset_id in targets:
            tasks = state.asset_tasks(asset_id)
            anchor = state.anchor_for(asset_id)
            if anchor is None:
                logger.debug(f"Asset {asset_id} has no anchor date; leaving it unscheduled")
                for task in tasks:
                    task.start = None
                    task.end = None
                continue

            schedule = self.calculator.calculate(tasks, state.graph, anchor, asset_id)
            for task in tasks:
                dates = schedule.dates[task.task_id]
                task.start = dates.start
                task.end = dates.end
            schedules[asset_id] = schedule

        return schedules

    def refresh(self, state: ProjectState) -> ProjectState:
        """Return a copy of the snapshot with every asset rescheduled."""
        new_state = state.clone()
        self.recompute(new_state)
        return new_state

    def apply(self, state: ProjectState, mutation: Mutation) -> PropagationResult:
        """
        Apply a mutation to a copy of the snapshot and reschedule affected assets.

        Only the assets the mutation touches are recomputed, so other assets keep
        their dates unless the shared global anchor moved.
        """
        new_state = state.clone()
        inverse, affected = mutation.apply_with_inverse(new_state)
        affected_assets = [aid for aid in new_state.assets if aid in affected]

        schedules = self.recompute(new_state, affected_assets)
        logger.debug(f"Applied {mutation.label}: recomputed {len(affected_assets)} assets")
        return PropagationResult(new_state, inverse, affected_assets, schedules)

    def add_asset(self, state: ProjectState, asset) -> PropagationResult:
        """Add an asset from the propagator's catalog."""
        return self.apply(state, add_asset(state, self.catalog, asset))
