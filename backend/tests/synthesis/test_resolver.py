"""
Tests for Dependency Resolver

The resolver orders groups and units so every dependency comes first, with
ties broken by ascending identifier.
"""
import logging

import pytest

from synthesis.core.resolver import DependencyResolver
from synthesis.schemas import group_sort_key


def assert_topological(order, nodes):
    position = {node_id: i for i, node_id in enumerate(order)}
    for node_id, deps in nodes.items():
        for dep in deps:
            if dep in nodes:
                assert position[dep] < position[node_id], f"{dep} must precede {node_id}"


class TestDependencyResolver:
    """Test suite for DependencyResolver"""

    @pytest.fixture
    def resolver(self):
        return DependencyResolver()

    def test_linear_chain(self, resolver):
        """Dependencies come before dependents"""
        resolution = resolver.resolve({"c": ["b"], "b": ["a"], "a": []})
        assert resolution.order == ["a", "b", "c"]
        assert resolution.cyclic == []
        assert not resolution.degraded

    def test_ties_break_by_ascending_id(self, resolver):
        resolution = resolver.resolve({"c": [], "a": [], "b": []})
        assert resolution.order == ["a", "b", "c"]

    def test_unknown_dependencies_are_satisfied(self, resolver):
        """Ids outside the node set belong to earlier phases"""
        resolution = resolver.resolve({"x": ["from-phase-1"], "w": []})
        assert resolution.order == ["w", "x"]
        assert resolution.warnings == []

    def test_diamond_is_valid_and_deterministic(self, resolver):
        """Acyclic graphs give a valid order that is identical across runs"""
        nodes = {
            "mod-4": ["mod-2", "mod-3"],
            "mod-3": ["mod-1"],
            "mod-2": ["mod-1"],
            "mod-1": [],
            "mod-5": [],
        }
        first = resolver.resolve(nodes)
        assert_topological(first.order, nodes)
        assert sorted(first.order) == sorted(nodes)

        for _ in range(5):
            assert resolver.resolve(dict(reversed(list(nodes.items())))).order == first.order

    def test_two_unit_cycle_appended_with_one_warning(self, resolver, caplog):
        """A cycle among otherwise resolvable units is appended in ascending order"""
        nodes = {"a": [], "c": ["b"], "b": ["c"], "d": ["a"]}

        with caplog.at_level(logging.WARNING, logger="synthesis.core.resolver"):
            resolution = resolver.resolve(nodes, label="units of group 1.1")

        assert resolution.order == ["a", "d", "b", "c"]
        assert resolution.cyclic == ["b", "c"]
        assert resolution.degraded
        assert len(resolution.warnings) == 1
        assert "b, c" in resolution.warnings[0]
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1

    def test_dependents_of_cycle_join_remainder(self, resolver):
        resolution = resolver.resolve({"a": ["b"], "b": ["a"], "c": ["a"]})
        assert resolution.order == ["a", "b", "c"]
        assert resolution.cyclic == ["a", "b", "c"]

    def test_self_dependency_is_a_cycle(self, resolver):
        resolution = resolver.resolve({"a": ["a"], "b": []})
        assert resolution.order == ["b", "a"]
        assert resolution.cyclic == ["a"]

    def test_empty(self, resolver):
        resolution = resolver.resolve({})
        assert resolution.order == []
        assert resolution.warnings == []


class TestGroupOrdering:
    """Group ids use the phase-major ordering key"""

    def test_numeric_suborder(self):
        resolver = DependencyResolver(sort_key=group_sort_key)
        resolution = resolver.resolve({"1.10": [], "1.2": [], "1.1": []})
        assert resolution.order == ["1.1", "1.2", "1.10"]

    def test_group_dependencies_override_suborder(self):
        resolver = DependencyResolver(sort_key=group_sort_key)
        resolution = resolver.resolve({"2.1": ["2.3"], "2.2": [], "2.3": []})
        assert resolution.order == ["2.2", "2.3", "2.1"]
