"""
Unit tests for the dependency graph.
"""

import pytest

from timeline.cpm.models import Task, Dependency, START_TO_START, FINISH_TO_START
from timeline.cpm.network import DependencyGraph, CycleError, CrossAssetDependencyError


def make_graph():
    """Graph with tasks a, b, c, live on asset a1 and x on asset a2."""
    graph = DependencyGraph()
    graph.add_task(Task('a', 'A', 2, 'a', 'a1', 'Standard'))
    graph.add_task(Task('b', 'B', 1, 'c', 'a1', 'Standard'))
    graph.add_task(Task('c', 'C', 3, 'm', 'a1', 'Standard'))
    graph.add_task(Task('live', 'Go Live', 1, 'l', 'a1', 'Standard'))
    graph.add_task(Task('x', 'X', 1, 'a', 'a2', 'Standard'))
    return graph


def seed(graph, sequence):
    """Chain a sequence with the default FS(0) template edges."""
    for dep in DependencyGraph.default_template_edges(sequence):
        graph.add_edge(dep.pred_task_id, dep.succ_task_id, dep.dep_type, dep.lag)


class TestEdges:
    """Tests for adding and removing edges."""

    def test_add_edge(self):
        graph = make_graph()
        dep = graph.add_edge('a', 'b', START_TO_START, 1)
        assert dep == Dependency('a', 'b', START_TO_START, 1)
        assert graph.get_predecessors('b') == [dep]
        assert graph.get_successors('a') == [dep]

    def test_add_edge_replaces_same_pair(self):
        """At most one edge exists per ordered pair."""
        graph = make_graph()
        graph.add_edge('a', 'b')
        graph.add_edge('a', 'b', START_TO_START, 0)
        assert len(graph.dependencies) == 1
        assert graph.get_edge('a', 'b').dep_type == START_TO_START

    def test_remove_edge_is_idempotent(self):
        graph = make_graph()
        graph.add_edge('a', 'b')
        assert graph.remove_edge('a', 'b') is not None
        assert graph.remove_edge('a', 'b') is None
        assert graph.get_predecessors('b') == []

    @pytest.mark.parametrize("pred,succ,dep_type,lag,match", [
        ('a', 'a', FINISH_TO_START, 0, "cannot depend on itself"),
        ('a', 'missing', FINISH_TO_START, 0, "not in graph"),
        ('a', 'b', 'SF', 0, "Unknown dependency type"),
        ('a', 'b', FINISH_TO_START, -1, "non-negative"),
        ('live', 'a', FINISH_TO_START, 0, "terminal"),
    ])
    def test_invalid_edges(self, pred, succ, dep_type, lag, match):
        graph = make_graph()
        with pytest.raises(ValueError, match=match):
            graph.add_edge(pred, succ, dep_type, lag)

    def test_cross_asset_edge_rejected(self):
        graph = make_graph()
        with pytest.raises(CrossAssetDependencyError):
            graph.add_edge('a', 'x')

    def test_cycle_rejected(self):
        """An edge closing a cycle is rejected and the graph is unchanged."""
        graph = make_graph()
        graph.add_edge('a', 'b')
        graph.add_edge('b', 'c')
        with pytest.raises(CycleError) as exc_info:
            graph.add_edge('c', 'a')
        assert exc_info.value.path == ['a', 'b', 'c', 'a']
        assert graph.get_edge('c', 'a') is None
        assert graph.validate() == []

    def test_remove_task_drops_edges(self):
        graph = make_graph()
        graph.add_edge('a', 'b')
        graph.add_edge('b', 'c')
        removed = graph.remove_task('b')
        assert len(removed) == 2
        assert 'b' not in graph
        assert graph.get_successors('a') == []
        assert graph.get_predecessors('c') == []


class TestTraversal:
    """Tests for path queries."""

    def test_find_path(self):
        graph = make_graph()
        graph.add_edge('a', 'b')
        graph.add_edge('b', 'c')
        assert graph.find_path('a', 'c') == ['a', 'b', 'c']
        assert graph.find_path('c', 'a') == []


class TestValidate:
    """Tests for the integrity check run after loading."""

    def test_seeded_graph_is_valid(self):
        graph = make_graph()
        seed(graph, ['a', 'b', 'c', 'live'])
        assert graph.validate() == []

    def test_reports_edges_broken_by_task_changes(self):
        graph = make_graph()
        graph.add_edge('a', 'b')
        graph.add_edge('b', 'c')
        graph.tasks['b'].owner = 'l'
        graph.tasks['c'].asset_id = 'a2'

        assert graph.validate() == [
            "Cross-asset dependency: b -> c",
            "Live task b has successor c",
        ]


class TestTemplateOrder:
    """Tests for default template edges."""

    def test_default_template_edges(self):
        deps = DependencyGraph.default_template_edges(['a', 'b', 'c'])
        assert deps == [Dependency('a', 'b'), Dependency('b', 'c')]

    def test_template_order_gaps(self):
        """A broken pair with free ends is reported as a gap."""
        graph = make_graph()
        seed(graph, ['a', 'b', 'c', 'live'])
        graph.remove_edge('b', 'c')
        assert graph.template_order_gaps(['a', 'b', 'c', 'live']) == [Dependency('b', 'c')]

    def test_no_gap_when_successor_has_other_inbound(self):
        graph = make_graph()
        seed(graph, ['a', 'b', 'c', 'live'])
        graph.remove_edge('b', 'c')
        graph.add_edge('a', 'c', START_TO_START, 0)
        assert graph.template_order_gaps(['a', 'b', 'c', 'live']) == []


class TestClone:
    """Tests for snapshot copies."""

    def test_clone_is_independent(self):
        graph = make_graph()
        graph.add_edge('a', 'b')
        copy = graph.clone()
        copy.remove_edge('a', 'b')
        copy.tasks['a'].duration = 9

        assert graph.get_edge('a', 'b') is not None
        assert graph.tasks['a'].duration == 2
        assert len(copy) == len(graph)
