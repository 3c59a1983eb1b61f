"""
Scheduling core for campaign timelines.

This module provides:
- Working-day calendar arithmetic over a bank holiday set
- Typed dependency graph with cycle and cross-asset protection
- Interchangeable schedule strategies (sequential and typed-edge)
- Project snapshots that mutations are applied to
"""

from .models import (
    Task,
    Asset,
    Dependency,
    TemplateTask,
    Catalog,
    TaskDates,
    AssetSchedule,
    TaskFloat,
    CriticalPathResult,
    ScheduleMode,
    CalculationStrategy,
)
from .calendar import WorkCalendar, InvalidDateError, parse_iso_date
from .network import DependencyGraph, CycleError, CrossAssetDependencyError
from .engine import ScheduleCalculator, SequentialCalculator, TypedEdgeCalculator, create_calculator
from .state import ProjectState

__all__ = [
    'Task',
    'Asset',
    'Dependency',
    'TemplateTask',
    'Catalog',
    'TaskDates',
    'AssetSchedule',
    'TaskFloat',
    'CriticalPathResult',
    'ScheduleMode',
    'CalculationStrategy',
    'WorkCalendar',
    'InvalidDateError',
    'parse_iso_date',
    'DependencyGraph',
    'CycleError',
    'CrossAssetDependencyError',
    'ScheduleCalculator',
    'SequentialCalculator',
    'TypedEdgeCalculator',
    'create_calculator',
    'ProjectState',
]
