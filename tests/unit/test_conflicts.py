"""
Unit tests for feasibility and weekday conflict detection.
"""

import pytest
from datetime import date

from timeline.cpm.models import Asset
from timeline.analysis.conflicts import ConflictDetector


class TestFeasibility:
    """Tests for required start and deficit."""

    def test_feasible_project(self, project, calendar, today):
        report = ConflictDetector(calendar, today=today).analyze(project)
        feasibility = report.get_feasibility('a1')

        assert feasibility.is_feasible
        assert feasibility.required_start == date(2025, 11, 4)
        assert feasibility.total_duration == 6
        assert feasibility.deficit_days == 0
        assert feasibility.get_summary() == "Homepage Banner: starts 2025-11-04"
        assert not report.has_conflicts()

    @pytest.mark.parametrize("today,feasible,deficit", [
        (date(2025, 11, 3), True, 0),
        (date(2025, 11, 4), True, 0),
        (date(2025, 11, 5), False, 1),
        (date(2025, 11, 8), False, 4),
    ])
    def test_deficit_boundaries(self, project, calendar, today, feasible, deficit):
        """Deficit counts working days from the required start up to, not including, today."""
        feasibility = ConflictDetector(calendar, today=today).check_asset(project, 'a1')
        assert feasibility.is_feasible is feasible
        assert feasibility.deficit_days == deficit

    def test_required_start_matches_chain(self, calendar):
        """For a plain chain the required start is the anchor minus the total duration."""
        detector = ConflictDetector(calendar)
        assert detector.required_start(date(2025, 11, 5), 6) == date(2025, 10, 28)

    def test_alerts_sorted_by_deficit(self, make_project, calendar, today):
        state = make_project([
            Asset('a1', 'Example', 'Newsletter', anchor_date=date(2025, 11, 4)),
            Asset('a2', 'Standard', 'Banner', anchor_date=date(2025, 11, 5)),
        ], use_global_date=False)
        report = ConflictDetector(calendar, today=today).analyze(state)

        assert report.infeasible_asset_ids == ['a2', 'a1']
        assert [a.deficit_days for a in report.alerts] == [4, 3]
        assert report.working_days_needed == 7
        assert report.alerts[0].required_start == date(2025, 10, 28)
        assert report.alerts[0].get_summary() == (
            "Banner: needed to start 2025-10-28, 4 working days short"
        )

    def test_infeasible_schedule_is_still_computed(self, make_project, calendar, today):
        """A schedule that starts in the past keeps its computed dates."""
        state = make_project([Asset('a1', 'Standard', 'Banner')], live_date=date(2025, 11, 5))
        assert state.get_task('a1-task-0').start == date(2025, 10, 28)
        assert ConflictDetector(calendar, today=today).analyze(state).has_conflicts()

    def test_unscheduled_asset_skipped(self, make_project, calendar, today):
        state = make_project([Asset('a1', 'Standard', 'Banner')], live_date=None)
        report = ConflictDetector(calendar, today=today).analyze(state)
        assert report.assets == []
        assert not report.has_conflicts()

    def test_clock_is_injectable(self):
        detector = ConflictDetector(clock=lambda: date(2025, 11, 5))
        assert detector.get_today() == date(2025, 11, 5)
        assert ConflictDetector(today=date(2025, 1, 2)).get_today() == date(2025, 1, 2)


class TestWeekdayRules:
    """Tests for Sunday-only asset types."""

    def test_sunday_type_on_saturday(self, make_project, calendar, today):
        state = make_project(
            [Asset('s1', 'Weekend Sunday Supplement Full Page', 'Supplement')],
            live_date=date(2025, 11, 15),
        )
        report = ConflictDetector(calendar, today=today).analyze(state)

        assert len(report.weekday_violations) == 1
        violation = report.weekday_violations[0]
        assert violation.asset_id == 's1'
        assert violation.get_summary() == "Supplement must go live on a Sunday, not a Saturday"
        assert report.has_conflicts()

    def test_sunday_type_on_sunday(self, make_project, calendar, today):
        state = make_project(
            [Asset('s1', 'Weekend Sunday Supplement Full Page', 'Supplement')],
            live_date=date(2025, 11, 16),
        )
        assert ConflictDetector(calendar, today=today).analyze(state).weekday_violations == []

    def test_unconstrained_type(self, project, calendar, today):
        assert ConflictDetector(calendar, today=today).check_weekday(project, 'a1') is None

    def test_custom_rules(self, project, calendar):
        """Rules can be replaced, e.g. Monday-only for a standard asset."""
        detector = ConflictDetector(calendar, weekday_rules={'Standard': 0})
        violation = detector.check_weekday(project, 'a1')
        assert violation.get_summary() == "Homepage Banner must go live on a Monday, not a Wednesday"
