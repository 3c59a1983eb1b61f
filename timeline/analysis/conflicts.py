"""
Conflict Detection.

Flags assets whose computed schedule starts before today and assets whose
go-live date falls on the wrong day of the week. Detection is advisory: the
schedule is always fully computed, even when it carries past dates.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Callable, Optional

from ..cpm.calendar import WorkCalendar, SUNDAY
from ..cpm.state import ProjectState

logger = logging.getLogger(__name__)


# Asset types whose go-live date must fall on one weekday (date.weekday() value)
WEEKDAY_CONSTRAINED_ASSET_TYPES = {
    'Print - Supplements Full Page': SUNDAY,
    'Weekend Sunday Supplement Full Page': SUNDAY,
    'You Sunday Supplement Full Page': SUNDAY,
}

WEEKDAY_NAMES = ('Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday')


@dataclass
class AssetFeasibility:
    """Feasibility of one asset's schedule against today."""

    asset_id: str
    asset_name: str
    live_date: date
    required_start: date
    total_duration: int            # working days before the live date
    is_feasible: bool
    deficit_days: int              # working days already lost, 0 when feasible

    def get_summary(self) -> str:
        if self.is_feasible:
            return f"{self.asset_name}: starts {self.required_start}"
        return (f"{self.asset_name}: needed to start {self.required_start}, "
                f"{self.deficit_days} working days short")


@dataclass
class WeekdayViolation:
    """An asset whose live date is on a disallowed day of the week."""

    asset_id: str
    asset_name: str
    asset_type: str
    live_date: date
    required_weekday: int

    def get_summary(self) -> str:
        return (f"{self.asset_name} must go live on a {WEEKDAY_NAMES[self.required_weekday]}, "
                f"not a {WEEKDAY_NAMES[self.live_date.weekday()]}")


@dataclass
class ConflictReport:
    """Results from conflict detection across a project."""

    today: date
    assets: list[AssetFeasibility] = field(default_factory=list)
    alerts: list[AssetFeasibility] = field(default_factory=list)    # infeasible, worst first
    weekday_violations: list[WeekdayViolation] = field(default_factory=list)
    working_days_needed: int = 0

    @property
    def infeasible_asset_ids(self) -> list[str]:
        return [a.asset_id for a in self.alerts]

    def has_conflicts(self) -> bool:
        return bool(self.alerts or self.weekday_violations)

    def get_feasibility(self, asset_id: str) -> Optional[AssetFeasibility]:
        for item in self.assets:
            if item.asset_id == asset_id:
                return item
        return None


class ConflictDetector:
    """
    Feasibility and day-of-week analysis for a computed snapshot.

    The only component that reads the wall clock; pass `today` to pin it.
    """

    def __init__(self, calendar: WorkCalendar = None, today: Optional[date] = None,
                 clock: Callable[[], date] = date.today,
                 weekday_rules: Optional[dict[str, int]] = None):
        self.calendar = calendar or WorkCalendar()
        self._today = today
        self._clock = clock
        self.weekday_rules = (
            WEEKDAY_CONSTRAINED_ASSET_TYPES if weekday_rules is None else weekday_rules
        )

    def get_today(self) -> date:
        return self._today if self._today is not None else self._clock()

    def required_start(self, anchor: date, total_duration: int) -> date:
        """Latest start that still meets the anchor for a plain FS(0) chain."""
        return self.calendar.subtract_working_days(anchor, total_duration)

    def deficit(self, required_start: date, today: date) -> int:
        """Working days in [required_start, today)."""
        if required_start >= today:
            return 0
        return self.calendar.count_working_days(required_start, today - timedelta(days=1))

    def check_asset(self, state: ProjectState, asset_id: str,
                    today: date = None) -> Optional[AssetFeasibility]:
        """Feasibility of one asset, or None if it is not scheduled."""
        today = today or self.get_today()
        asset = state.get_asset(asset_id)
        tasks = state.asset_tasks(asset_id)
        starts = [t.start for t in tasks if t.start is not None]
        live_date = state.anchor_for(asset_id)
        if not starts or live_date is None:
            return None

        required_start = min(starts)
        deficit = self.deficit(required_start, today)
        return AssetFeasibility(
            asset_id=asset_id,
            asset_name=asset.name,
            live_date=live_date,
            required_start=required_start,
            total_duration=sum(t.duration for t in tasks if not t.is_live()),
            is_feasible=required_start >= today,
            deficit_days=deficit,
        )

    def check_weekday(self, state: ProjectState, asset_id: str) -> Optional[WeekdayViolation]:
        """Day-of-week violation for one asset, or None."""
        asset = state.get_asset(asset_id)
        required = self.weekday_rules.get(asset.asset_type)
        live_date = state.anchor_for(asset_id)
        if required is None or live_date is None or live_date.weekday() == required:
            return None
        return WeekdayViolation(asset_id, asset.name, asset.asset_type, live_date, required)

    def analyze(self, state: ProjectState) -> ConflictReport:
        """
        Analyze every asset in a computed snapshot.

        Returns:
            ConflictReport with per-asset feasibility, alerts sorted by deficit
            (largest first), weekday violations and total working days needed
        """
        today = self.get_today()
        report = ConflictReport(today=today)

        for asset_id in state.assets:
            feasibility = self.check_asset(state, asset_id, today)
            if feasibility is not None:
                report.assets.append(feasibility)
                if not feasibility.is_feasible:
                    report.alerts.append(feasibility)

            violation = self.check_weekday(state, asset_id)
            if violation is not None:
                report.weekday_violations.append(violation)

        report.alerts.sort(key=lambda a: a.deficit_days, reverse=True)
        report.working_days_needed = sum(a.deficit_days for a in report.alerts)

        for alert in report.alerts:
            logger.info(alert.get_summary())

        return report
