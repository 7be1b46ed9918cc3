"""依存グラフの循環検出とロード順序のテスト。"""

from __future__ import annotations

from hugsy.compiler._graph import (
    DependencyCycle,
    detect_cycles,
    extends_of,
    format_cycle_error,
    get_load_order,
)


class TestDetectCycles:
    """detect_cycles の循環検出を検証する。"""

    def test_two_node_cycle(self) -> None:
        cycle = detect_cycles({"A": "B", "B": "A"})
        assert cycle is not None
        assert cycle.cycle == ("A", "B", "A")
        assert cycle.path == "A -> B -> A"
        assert cycle.message == "Circular dependency detected: A -> B -> A"

    def test_self_loop(self) -> None:
        cycle = detect_cycles({"A": "A"})
        assert cycle is not None
        assert cycle.cycle == ("A", "A")

    def test_cycle_in_second_component(self) -> None:
        """循環の無い連結成分の後ろにある循環も検出する。"""
        cycle = detect_cycles({"A": "B", "B": "C", "D": "E", "E": "F", "F": "D"})
        assert cycle is not None
        assert cycle.cycle == ("D", "E", "F", "D")

    def test_diamond_is_not_a_cycle(self) -> None:
        assert detect_cycles({"A": ["B", "C"], "B": "D", "C": "D"}) is None

    def test_empty_graph(self) -> None:
        assert detect_cycles({}) is None


class TestGetLoadOrder:
    """get_load_order のトポロジカル順序を検証する。"""

    def test_dependencies_come_first(self) -> None:
        assert get_load_order({"A": ["B", "C"], "B": "C"}) == ["C", "B", "A"]

    def test_dependency_only_nodes_included(self) -> None:
        order = get_load_order({"app": ["base"]})
        assert order == ["base", "app"]

    def test_every_edge_respected(self) -> None:
        dependencies = {"A": ["B", "C"], "B": "D", "C": "D", "E": []}
        order = get_load_order(dependencies)
        assert order is not None
        assert sorted(order) == ["A", "B", "C", "D", "E"]
        for node, deps in dependencies.items():
            for dep in [deps] if isinstance(deps, str) else deps:
                assert order.index(dep) < order.index(node)

    def test_cycle_returns_none(self) -> None:
        assert get_load_order({"A": "B", "B": "A"}) is None


class TestExtendsOf:
    """extends_of の正規化を検証する。"""

    def test_string(self) -> None:
        assert extends_of({"extends": "base"}) == ("base",)

    def test_list_ignores_non_strings(self) -> None:
        assert extends_of({"extends": ["a", 1, "b"]}) == ("a", "b")

    def test_missing(self) -> None:
        assert extends_of({}) == ()


class TestFormatCycleError:
    """format_cycle_error の整形を検証する。"""

    def test_lists_chain_and_fix(self) -> None:
        message = format_cycle_error(DependencyCycle.from_path(["A", "B", "A"]))
        lines = message.splitlines()
        assert lines[0] == "Circular dependency detected!"
        assert "  1. A -> B" in lines
        assert "  2. B -> A" in lines
        assert '  - Remove the extends reference from "B" to "A"' in lines
