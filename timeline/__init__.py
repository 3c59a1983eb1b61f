"""
Campaign Timeline Engine.

Plans marketing-campaign task timelines backward from a pinned go-live date,
recomputing every affected date whenever durations, tasks or links change.

Persisted-state loading lives in `timeline.data_loader`.
"""

from .cpm import (
    Task,
    Asset,
    Dependency,
    TemplateTask,
    Catalog,
    TaskDates,
    AssetSchedule,
    CriticalPathResult,
    ScheduleMode,
    CalculationStrategy,
    WorkCalendar,
    InvalidDateError,
    parse_iso_date,
    DependencyGraph,
    CycleError,
    CrossAssetDependencyError,
    ScheduleCalculator,
    SequentialCalculator,
    TypedEdgeCalculator,
    create_calculator,
    ProjectState,
)
from .analysis import (
    AccordionPropagator,
    ConflictDetector,
    DragLinkResolver,
    HistoryManager,
    analyze_critical_path,
)

__all__ = [
    # Models
    'Task',
    'Asset',
    'Dependency',
    'TemplateTask',
    'Catalog',
    'TaskDates',
    'AssetSchedule',
    'CriticalPathResult',
    'ScheduleMode',
    'CalculationStrategy',
    # Core
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
    # Analysis
    'AccordionPropagator',
    'ConflictDetector',
    'DragLinkResolver',
    'HistoryManager',
    'analyze_critical_path',
]
