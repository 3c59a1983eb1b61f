"""
Unit tests for undo/redo history.
"""

import pytest

from timeline.cpm.models import Asset, START_TO_START
from timeline.analysis.history import HistoryManager
from timeline.analysis.mutations import (
    edit_duration,
    insert_custom_task,
    remove_asset,
    link_tasks,
    set_anchor_date,
)


def edge_set(state):
    return sorted((d.pred_task_id, d.succ_task_id, d.dep_type, d.lag) for d in state.graph.dependencies)


class TestUndoRedo:
    """Tests for exact restoration of snapshots."""

    def test_undo_insert(self, propagator, project):
        history = HistoryManager(propagator)
        inserted = history.execute(
            project, insert_custom_task(project, 'a1', 'Legal check', 2, after_task_id='a1-task-1')
        ).state

        restored = history.undo(inserted).state
        assert restored.date_map() == project.date_map()
        assert restored.sequences == project.sequences
        assert edge_set(restored) == edge_set(project)

    def test_redo_reapplies(self, propagator, project):
        history = HistoryManager(propagator)
        mutation = insert_custom_task(project, 'a1', 'Legal check', 2, after_task_id='a1-task-1')
        inserted = history.execute(project, mutation).state

        restored = history.undo(inserted).state
        assert history.can_redo()
        redone = history.redo(restored).state
        assert redone.date_map() == inserted.date_map()
        assert history.can_undo()
        assert not history.can_redo()

    def test_undo_redo_undo(self, propagator, project):
        """A redone entry can be undone again."""
        history = HistoryManager(propagator)
        state = history.execute(project, edit_duration(project, 'a1-task-0', 5)).state
        state = history.undo(state).state
        state = history.redo(state).state
        state = history.undo(state).state
        assert state.get_task('a1-task-0').duration == 3
        assert state.date_map() == project.date_map()

    def test_undo_remove_asset(self, propagator, make_project):
        history = HistoryManager(propagator)
        state = make_project([
            Asset('a1', 'Standard', 'Banner'),
            Asset('a2', 'Example', 'Newsletter'),
        ])
        state = propagator.apply(state, link_tasks(state, 'a1-task-1', 'a1-task-2', START_TO_START, 0)).state

        removed = history.execute(state, remove_asset(state, 'a1')).state
        assert list(removed.assets) == ['a2']

        restored = history.undo(removed).state
        assert list(restored.assets) == ['a1', 'a2']
        assert restored.sequences == state.sequences
        assert restored.date_map() == state.date_map()
        assert edge_set(restored) == edge_set(state)

    def test_undo_link(self, propagator, project):
        history = HistoryManager(propagator)
        linked = history.execute(
            project, link_tasks(project, 'a1-task-0', 'a1-task-2', START_TO_START, 1)
        ).state
        restored = history.undo(linked).state
        assert edge_set(restored) == edge_set(project)
        assert restored.date_map() == project.date_map()

    def test_undo_anchor_change(self, propagator, project):
        history = HistoryManager(propagator)
        moved = history.execute(project, set_anchor_date(project, '2025-12-03')).state
        restored = history.undo(moved).state
        assert restored.global_live_date == project.global_live_date
        assert restored.date_map() == project.date_map()


class TestStacks:
    """Tests for stack bookkeeping."""

    def test_empty_history(self, propagator, project):
        history = HistoryManager(propagator)
        assert history.undo(project) is None
        assert history.redo(project) is None
        assert not history.can_undo()

    def test_execute_clears_redo(self, propagator, project):
        history = HistoryManager(propagator)
        state = history.execute(project, edit_duration(project, 'a1-task-0', 5)).state
        state = history.undo(state).state
        history.execute(state, edit_duration(state, 'a1-task-1', 4))
        assert not history.can_redo()

    def test_limit_drops_oldest(self, propagator, project):
        history = HistoryManager(propagator, limit=2)
        state = project
        for duration in (2, 3, 4):
            state = history.execute(state, edit_duration(state, 'a1-task-1', duration)).state

        assert len(history) == 2
        state = history.undo(state).state
        state = history.undo(state).state
        assert history.undo(state) is None
        # The oldest change (2 days) was dropped, so it cannot be undone
        assert state.get_task('a1-task-1').duration == 2

    def test_rejected_mutation_not_recorded(self, propagator, project):
        history = HistoryManager(propagator)
        mutation = link_tasks(project, 'a1-task-2', 'a1-task-0', START_TO_START, 0)
        with pytest.raises(ValueError):
            history.execute(project, mutation)
        assert len(history) == 0

    def test_labels(self, propagator, project):
        history = HistoryManager(propagator)
        history.execute(project, edit_duration(project, 'a1-task-1', 4))
        assert history.undo_labels == ['edit duration of Design']
        history.clear()
        assert history.undo_labels == []
