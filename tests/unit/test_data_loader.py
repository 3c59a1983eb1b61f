"""
Unit tests for catalog loading, persisted state hydration and export.
"""

import json
import pytest
import pandas as pd
from datetime import date

from schemas.validator import CatalogValidationError, StateValidationError, HolidayValidationError
from timeline.cpm.models import Asset, Catalog, ScheduleMode, START_TO_START, FINISH_TO_FINISH
from timeline.cpm.network import DependencyGraph
from timeline.cpm.engine import TypedEdgeCalculator
from timeline.analysis.accordion import AccordionPropagator
from timeline.analysis.mutations import insert_custom_task, link_tasks, edit_duration
from timeline.data_loader import (
    catalog_from_dataframe,
    load_catalog,
    load_bank_holidays,
    hydrate_state,
    export_state,
    save_state,
    schedule_to_dataframe,
)


CATALOG_CSV = """Asset Type,Task,Duration (Days),owner
Standard,Brief,3,c
Standard,Design,2,a
Standard,Review,1,m
Standard,Go Live,1,l
Email,Copy,2,c
Email,Build,3,
Email,Send Date,1,
"""


def edge_set(state):
    return sorted((d.pred_task_id, d.succ_task_id, d.dep_type, d.lag) for d in state.graph.dependencies)


def catalog_frame(rows):
    return pd.DataFrame(rows, columns=['Asset Type', 'Task', 'Duration (Days)', 'owner'])


class TestCatalogLoading:
    """Tests for building the catalog from tabular input."""

    def test_load_catalog_csv(self, tmp_path):
        path = tmp_path / 'catalog.csv'
        path.write_text(CATALOG_CSV, encoding='utf-8')
        catalog = load_catalog(path)

        assert catalog.asset_types == ['Standard', 'Email']
        email = catalog.get_templates('Email')
        assert [t.owner for t in email] == ['c', 'a', 'l']
        assert email[-1].duration == 1

    def test_live_task_duration_forced_to_one(self):
        catalog = catalog_from_dataframe(catalog_frame([
            ['Email', 'Copy', 2, 'c'],
            ['Email', 'Go Live', 3, 'l'],
        ]))
        assert catalog.get_templates('Email')[-1].duration == 1

    def test_missing_column(self):
        df = pd.DataFrame({'Asset Type': ['Email'], 'Task': ['Copy']})
        with pytest.raises(CatalogValidationError) as exc_info:
            catalog_from_dataframe(df)
        assert exc_info.value.missing_columns == ['Duration (Days)']

    def test_invalid_rows_report_line_numbers(self):
        df = catalog_frame([
            ['Email', 'Copy', 2, 'c'],
            ['Email', 'Build', 0, 'a'],
            ['Email', 'Go Live', 1, 'x'],
        ])
        with pytest.raises(CatalogValidationError) as exc_info:
            catalog_from_dataframe(df)
        errors = exc_info.value.errors
        assert any(e.startswith('row 3') for e in errors)
        assert any(e.startswith('row 4') for e in errors)

    @pytest.mark.parametrize("rows,match", [
        ([['Email', 'Copy', 2, 'c'], ['Email', 'Build', 1, 'a']], "found 0"),
        ([['Email', 'Go Live', 1, 'l'], ['Email', 'Copy', 2, 'c']], "must be the last task"),
        ([['Email', 'Go Live', 1, 'l'], ['Email', 'Send', 1, 'l']], "found 2"),
    ])
    def test_live_task_rules(self, rows, match):
        with pytest.raises(CatalogValidationError, match=match):
            catalog_from_dataframe(catalog_frame(rows))

    def test_load_bank_holidays(self, tmp_path):
        path = tmp_path / 'bank_holidays.csv'
        path.write_text("date,title\n2025-12-25,Christmas Day\n2025-12-26,\n", encoding='utf-8')
        assert load_bank_holidays(path) == frozenset({date(2025, 12, 25), date(2025, 12, 26)})

    def test_bank_holiday_bad_date(self, tmp_path):
        path = tmp_path / 'bank_holidays.csv'
        path.write_text("date\n2025-12-25\n25/12/2025\n", encoding='utf-8')
        with pytest.raises(HolidayValidationError) as exc_info:
            load_bank_holidays(path)
        assert [e.split(':')[0] for e in exc_info.value.errors] == ['row 3.date']

    def test_bank_holidays_need_date_column(self, tmp_path):
        path = tmp_path / 'bank_holidays.csv'
        path.write_text("day\n2025-12-25\n", encoding='utf-8')
        with pytest.raises(HolidayValidationError) as exc_info:
            load_bank_holidays(path)
        assert exc_info.value.missing_columns == ['date']


class TestHydrateDerived:
    """Tests for regenerating tasks from the catalog."""

    def test_overrides_and_custom_tasks(self, propagator):
        state = hydrate_state({
            'assets': [{'id': 'a1', 'type': 'Standard', 'name': 'Banner'}],
            'global_live_date': '2025-11-12',
            'duration_overrides': {'a1-task-1': 4},
            'custom_tasks': [{
                'id': 'a1-custom-1', 'asset_id': 'a1', 'name': 'Legal check',
                'duration': 2, 'insert_after_task_id': 'a1-task-1',
            }],
        }, propagator)

        assert state.mode is ScheduleMode.DERIVED
        assert state.sequences['a1'] == [
            'a1-task-0', 'a1-task-1', 'a1-custom-1', 'a1-task-2', 'a1-task-3',
        ]
        assert state.get_task('a1-task-1').duration == 4
        assert state.get_task('a1-custom-1').is_custom
        assert (state.get_task('a1-custom-1').start, state.get_task('a1-custom-1').end) == (
            date(2025, 11, 7), date(2025, 11, 10),
        )

    def test_legacy_overlap_converted(self, propagator):
        """FS(-1) after a 3-day task is stored as SS(2) and keeps its dates."""
        state = hydrate_state({
            'assets': [{'id': 'a1', 'type': 'Standard', 'name': 'Banner'}],
            'global_live_date': '2025-11-12',
            'dependencies': {'a1-task-1': [{'predecessor_id': 'a1-task-0', 'type': 'FS', 'lag': -1}]},
        }, propagator)

        edge = state.graph.get_edge('a1-task-0', 'a1-task-1')
        assert (edge.dep_type, edge.lag) == (START_TO_START, 2)
        assert state.get_task('a1-task-0').end == state.get_task('a1-task-1').start

    def test_legacy_overlap_too_long(self, propagator):
        with pytest.raises(StateValidationError, match="exceeds predecessor duration"):
            hydrate_state({
                'assets': [{'id': 'a1', 'type': 'Standard', 'name': 'Banner'}],
                'dependencies': {'a1-task-1': [{'predecessor_id': 'a1-task-0', 'type': 'FS', 'lag': -4}]},
            }, propagator)

    def test_dangling_reference_dropped(self, propagator):
        state = hydrate_state({
            'assets': [{'id': 'a1', 'type': 'Standard', 'name': 'Banner'}],
            'global_live_date': '2025-11-12',
            'dependencies': {
                'a1-task-1': [{'predecessor_id': 'ghost'}],
                'ghost-2': [{'predecessor_id': 'a1-task-0'}],
            },
        }, propagator)
        assert state.graph.get_predecessors('a1-task-1') == []
        assert state.get_task('a1-task-0').end == date(2025, 11, 6)

    def test_cycle_rejected(self, propagator):
        with pytest.raises(StateValidationError, match="cycle"):
            hydrate_state({
                'assets': [{'id': 'a1', 'type': 'Standard', 'name': 'Banner'}],
                'dependencies': {'a1-task-0': [{'predecessor_id': 'a1-task-1'}]},
            }, propagator)

    def test_graph_integrity_checked_before_scheduling(self, propagator, monkeypatch):
        monkeypatch.setattr(DependencyGraph, 'validate',
                            lambda self: ["Live task a1-task-3 has successor a1-task-0"])
        with pytest.raises(StateValidationError, match="Dependency graph is invalid") as exc_info:
            hydrate_state({
                'assets': [{'id': 'a1', 'type': 'Standard', 'name': 'Banner'}],
                'global_live_date': '2025-11-12',
            }, propagator)
        assert exc_info.value.errors == ["Live task a1-task-3 has successor a1-task-0"]

    def test_unknown_asset_type(self, propagator):
        with pytest.raises(StateValidationError, match="not in the catalog"):
            hydrate_state({'assets': [{'id': 'a1', 'type': 'Billboard', 'name': 'Roadside'}]}, propagator)

    def test_no_anchor_leaves_tasks_unscheduled(self, propagator):
        state = hydrate_state({'assets': [{'id': 'a1', 'type': 'Standard', 'name': 'Banner'}]}, propagator)
        assert len(state.tasks) == 4
        assert state.date_map() == {}


class TestRoundTrip:
    """Tests for export followed by import."""

    @pytest.fixture
    def edited_project(self, propagator, make_project):
        state = make_project([
            Asset('a1', 'Standard', 'Banner'),
            Asset('a2', 'Example', 'Newsletter', anchor_date=date(2025, 11, 19)),
        ], use_global_date=False)
        state = propagator.apply(
            state, insert_custom_task(state, 'a1', 'Legal check', 2, after_task_id='a1-task-1')
        ).state
        state = propagator.apply(
            state, link_tasks(state, 'a1-task-0', 'a1-task-1', FINISH_TO_FINISH, 1)
        ).state
        state = propagator.apply(state, edit_duration(state, 'a2-task-0', 6)).state
        return state

    @pytest.mark.parametrize("freeze", [True, False])
    def test_export_import_is_exact(self, propagator, edited_project, freeze):
        text = export_state(edited_project, freeze=freeze).model_dump_json()
        restored = hydrate_state(text, propagator)

        assert restored.mode is (ScheduleMode.FROZEN if freeze else ScheduleMode.DERIVED)
        assert restored.sequences == edited_project.sequences
        assert restored.date_map() == edited_project.date_map()
        assert edge_set(restored) == edge_set(edited_project)
        assert restored.use_global_date is False
        assert restored.get_asset('a2').anchor_date == date(2025, 11, 19)

    def test_frozen_ignores_catalog_changes(self, propagator, edited_project, calendar):
        """A frozen project keeps its task list even if the catalog no longer has the type."""
        empty = AccordionPropagator(TypedEdgeCalculator(calendar), Catalog())
        text = export_state(edited_project, freeze=True).model_dump_json()
        assert hydrate_state(text, empty).date_map() == edited_project.date_map()

    def test_frozen_dangling_reference_rejected(self, propagator, edited_project):
        data = export_state(edited_project, freeze=True).model_dump(mode='json')
        data['dependencies']['a1-task-1'] = [{'predecessor_id': 'ghost', 'type': 'FS', 'lag': 0}]
        with pytest.raises(StateValidationError, match="unknown predecessor"):
            hydrate_state(data, propagator)

    def test_save_state(self, propagator, edited_project, tmp_path):
        path = save_state(edited_project, tmp_path / 'project.json')
        data = json.loads(path.read_text(encoding='utf-8'))
        assert data['freeze'] is True
        assert data['use_global_date'] is False
        assert hydrate_state(data, propagator).date_map() == edited_project.date_map()


class TestScheduleFrame:
    """Tests for the tabular schedule export."""

    def test_schedule_to_dataframe(self, project):
        df = schedule_to_dataframe(project)
        assert list(df.columns) == [
            'asset_id', 'asset_name', 'asset_type', 'task_id', 'task_name',
            'owner', 'duration', 'start', 'end', 'is_custom',
        ]
        assert len(df) == 4
        assert df.iloc[0]['start'] == '2025-11-04'
        assert df.iloc[-1]['end'] == '2025-11-12'
