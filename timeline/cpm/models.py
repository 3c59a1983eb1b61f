"""
Data models for timeline calculations.

Defines dataclasses for tasks, assets, dependencies, the task catalog and
schedule results.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional


# Owner codes
OWNER_CLIENT = 'c'
OWNER_MUTUAL = 'm'
OWNER_AGENCY = 'a'
OWNER_LIVE = 'l'
OWNERS = (OWNER_CLIENT, OWNER_MUTUAL, OWNER_AGENCY, OWNER_LIVE)

# Dependency types
FINISH_TO_START = 'FS'
START_TO_START = 'SS'
FINISH_TO_FINISH = 'FF'
DEPENDENCY_TYPES = (FINISH_TO_START, START_TO_START, FINISH_TO_FINISH)


class ScheduleMode(Enum):
    """How a persisted task list is trusted when a project is hydrated."""
    DERIVED = 'derived'     # regenerate task lists from the catalog
    FROZEN = 'frozen'       # use the persisted per-instance task list verbatim


class CalculationStrategy(Enum):
    """Selectable ScheduleCalculator implementations."""
    TYPED = 'typed'
    LEGACY = 'legacy'


@dataclass
class Task:
    """A single task instance belonging to one asset."""

    task_id: str
    name: str
    duration: int                  # working days
    owner: str                     # c, m, a, l
    asset_id: str
    asset_type: str
    is_custom: bool = False

    # Computed by the calculator
    start: Optional[date] = None
    end: Optional[date] = None

    def is_live(self) -> bool:
        """Check if task is the asset's terminal go-live task."""
        return self.owner == OWNER_LIVE


@dataclass
class Asset:
    """A selected deliverable with its own task chain."""

    asset_id: str
    asset_type: str
    name: str
    anchor_date: Optional[date] = None      # used when global date mode is off


@dataclass
class Dependency:
    """Represents a predecessor-successor relationship."""

    pred_task_id: str
    succ_task_id: str
    dep_type: str = FINISH_TO_START     # FS, SS, FF
    lag: int = 0                        # working days

    def is_finish_to_start(self) -> bool:
        return self.dep_type == FINISH_TO_START

    def is_start_to_start(self) -> bool:
        return self.dep_type == START_TO_START

    def is_finish_to_finish(self) -> bool:
        return self.dep_type == FINISH_TO_FINISH

    def is_same_day_link(self) -> bool:
        """Zero-lag SS or FF forcing two tasks to share a start or end."""
        return self.lag == 0 and self.dep_type in (START_TO_START, FINISH_TO_FINISH)

    def to_legacy_lag(self, pred_duration: int, succ_duration: int) -> int:
        """
        Express this edge as a signed finish-to-start lag.

        Negative values are overlaps: FS(-k) means the successor starts on the
        k-th last working day of the predecessor.
        """
        if self.is_start_to_start():
            return self.lag - pred_duration
        if self.is_finish_to_finish():
            return self.lag - succ_duration
        return self.lag

    @classmethod
    def from_legacy(cls, pred_task_id: str, succ_task_id: str, lag: int,
                    pred_duration: int) -> 'Dependency':
        """
        Convert a legacy signed-lag FS edge into a typed edge.

        Non-negative lags stay finish-to-start. An overlap FS(-k) becomes
        SS(pred_duration - k), which pins the successor start to the same
        working day.
        """
        if lag >= 0:
            return cls(pred_task_id, succ_task_id, FINISH_TO_START, lag)

        overlap = -lag
        if overlap > pred_duration:
            raise ValueError(
                f"Overlap of {overlap} days exceeds predecessor duration "
                f"{pred_duration} ({pred_task_id} -> {succ_task_id})"
            )
        return cls(pred_task_id, succ_task_id, START_TO_START, pred_duration - overlap)


@dataclass(frozen=True)
class TemplateTask:
    """One entry of an asset type's default task sequence."""

    name: str
    duration: int
    owner: str = OWNER_AGENCY

    def is_live(self) -> bool:
        return self.owner == OWNER_LIVE


@dataclass(frozen=True)
class Catalog:
    """Read-only mapping of asset type to its ordered task templates."""

    templates: Mapping[str, tuple[TemplateTask, ...]] = field(default_factory=dict)

    def __post_init__(self):
        frozen = {k: tuple(v) for k, v in self.templates.items()}
        object.__setattr__(self, 'templates', MappingProxyType(frozen))

    def get_templates(self, asset_type: str) -> tuple[TemplateTask, ...]:
        """Get the template sequence for an asset type."""
        if asset_type not in self.templates:
            raise ValueError(f"Asset type {asset_type!r} not in catalog")
        return self.templates[asset_type]

    @property
    def asset_types(self) -> list[str]:
        return list(self.templates.keys())

    def __contains__(self, asset_type: str) -> bool:
        return asset_type in self.templates

    def __len__(self) -> int:
        return len(self.templates)


@dataclass(frozen=True)
class TaskDates:
    """Computed start and end of one task."""

    start: date
    end: date


@dataclass
class AssetSchedule:
    """Results from scheduling one asset."""

    asset_id: str
    anchor: date
    strategy: CalculationStrategy
    dates: dict[str, TaskDates]        # task_id -> dates, in sequence order

    def get_required_start(self) -> Optional[date]:
        """Earliest start across the asset's tasks."""
        if not self.dates:
            return None
        return min(d.start for d in self.dates.values())

    def to_date_map(self) -> dict[str, tuple[str, str]]:
        """Get {task_id: (start, end)} as ISO strings."""
        return {
            tid: (d.start.isoformat(), d.end.isoformat())
            for tid, d in self.dates.items()
        }


@dataclass
class TaskFloat:
    """Early and late dates of one task and the working days between them."""

    task_id: str
    asset_id: str
    early_start: date
    early_end: date
    late_start: date
    late_end: date
    total_float: int               # working days

    @property
    def is_critical(self) -> bool:
        return self.total_float <= 0


@dataclass
class CriticalPathResult:
    """Results from critical path analysis."""

    critical_path: list[TaskFloat]
    near_critical_tasks: list[TaskFloat]
    float_distribution: dict[str, int]
    floats: dict[str, TaskFloat] = field(default_factory=dict)
    project_start: Optional[date] = None
    project_finish: Optional[date] = None
    near_critical_threshold_days: int = 2
    total_tasks: int = 0

    def get_float(self, task_id: str) -> Optional[int]:
        item = self.floats.get(task_id)
        return item.total_float if item else None

    def critical_task_ids(self) -> list[str]:
        return [t.task_id for t in self.critical_path]
