"""Pytest configuration and fixtures."""
import pytest
from datetime import date

from timeline.cpm.models import Asset, Catalog, TemplateTask
from timeline.cpm.calendar import WorkCalendar
from timeline.cpm.engine import TypedEdgeCalculator, SequentialCalculator
from timeline.cpm.state import ProjectState
from timeline.analysis.accordion import AccordionPropagator


# Wednesday; the worked examples anchor here
ANCHOR = date(2025, 11, 12)
# Saturday before the anchor week
TODAY = date(2025, 11, 1)


@pytest.fixture
def anchor() -> date:
    return ANCHOR


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def calendar() -> WorkCalendar:
    """Calendar without bank holidays."""
    return WorkCalendar()


@pytest.fixture
def sample_catalog() -> Catalog:
    """Small catalog covering a standard, an example and a Sunday-only type."""
    return Catalog({
        'Standard': (
            TemplateTask('Brief', 3, 'c'),
            TemplateTask('Design', 2, 'a'),
            TemplateTask('Review', 1, 'm'),
            TemplateTask('Go Live', 1, 'l'),
        ),
        'Example': (
            TemplateTask('Task 1', 3, 'a'),
            TemplateTask('Task 2', 1, 'a'),
            TemplateTask('Go Live', 1, 'l'),
        ),
        'Weekend Sunday Supplement Full Page': (
            TemplateTask('Copy', 2, 'c'),
            TemplateTask('Artwork', 3, 'a'),
            TemplateTask('Publish', 1, 'l'),
        ),
    })


@pytest.fixture
def propagator(sample_catalog, calendar) -> AccordionPropagator:
    """Propagator using the typed-edge strategy."""
    return AccordionPropagator(TypedEdgeCalculator(calendar), sample_catalog)


@pytest.fixture
def legacy_propagator(sample_catalog, calendar) -> AccordionPropagator:
    """Propagator using the sequential strategy."""
    return AccordionPropagator(SequentialCalculator(calendar), sample_catalog)


@pytest.fixture
def make_project(propagator):
    """Factory building a computed project from a list of assets."""
    def _make(assets, live_date=ANCHOR, use_global_date=True, using=None):
        prop = using or propagator
        state = ProjectState(global_live_date=live_date, use_global_date=use_global_date)
        for asset in assets:
            state = prop.add_asset(state, asset).state
        return state
    return _make


@pytest.fixture
def project(make_project) -> ProjectState:
    """One 'Standard' asset anchored on the Wednesday anchor.

    Computed dates (typed strategy, no holidays):
        a1-task-0 Brief   2025-11-04 .. 2025-11-06
        a1-task-1 Design  2025-11-07 .. 2025-11-10
        a1-task-2 Review  2025-11-11
        a1-task-3 Go Live 2025-11-12
    """
    return make_project([Asset('a1', 'Standard', 'Homepage Banner')])
