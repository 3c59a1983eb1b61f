"""
Timeline analysis: mutations, accordion propagation, conflicts, drag-to-link
resolution, undo history and critical path analysis.
"""

from .mutations import (
    Mutation,
    Batch,
    add_asset,
    remove_asset,
    edit_duration,
    insert_custom_task,
    remove_custom_task,
    link_tasks,
    unlink_tasks,
    free_move,
    set_anchor_date,
    set_global_date_mode,
)
from .accordion import AccordionPropagator, PropagationResult
from .conflicts import ConflictDetector, ConflictReport, AssetFeasibility, WeekdayViolation
from .drag_link import (
    DragLinkResolver,
    SnapSuggestion,
    AnchorMove,
    LinkProposal,
    DisambiguationRequest,
    FreeMove,
)
from .history import HistoryManager
from .critical_path import analyze_critical_path

__all__ = [
    'Mutation',
    'Batch',
    'add_asset',
    'remove_asset',
    'edit_duration',
    'insert_custom_task',
    'remove_custom_task',
    'link_tasks',
    'unlink_tasks',
    'free_move',
    'set_anchor_date',
    'set_global_date_mode',
    'AccordionPropagator',
    'PropagationResult',
    'ConflictDetector',
    'ConflictReport',
    'AssetFeasibility',
    'WeekdayViolation',
    'DragLinkResolver',
    'SnapSuggestion',
    'AnchorMove',
    'LinkProposal',
    'DisambiguationRequest',
    'FreeMove',
    'HistoryManager',
    'analyze_critical_path',
]
