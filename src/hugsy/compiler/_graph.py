"""DependencyGraph: 依存グラフの循環検出とトポロジカル順序。

依存関係は「ノード → 依存先（単一または複数）」のマッピングで表す。
依存先としてのみ現れるノードもグラフの一部として扱う。
"""

from __future__ import annotations

from collections import deque
from collections.abc import Mapping, Sequence
from enum import Enum, auto
from typing import Any, Final

from hugsy.models._base import HugsyBaseModel

_ARROW: Final[str] = " -> "

Dependencies = Mapping[str, str | Sequence[str]]
"""ノード名から依存先ノード名（単一または複数）へのマッピング。"""


class _Mark(Enum):
    """DFS の訪問状態。"""

    UNVISITED = auto()
    VISITING = auto()
    VISITED = auto()


class DependencyCycle(HugsyBaseModel):
    """検出された循環依存。

    Attributes:
        cycle: 循環を構成するノード列。先頭ノードが末尾に再度現れる。
        path: cycle を " -> " で連結した文字列。
        message: ユーザー向けの 1 行メッセージ。
    """

    cycle: tuple[str, ...]
    path: str
    message: str

    @classmethod
    def from_path(cls, cycle: Sequence[str]) -> DependencyCycle:
        """閉じたノード列から DependencyCycle を構築する。"""
        path = _ARROW.join(cycle)
        return cls(
            cycle=tuple(cycle),
            path=path,
            message=f"Circular dependency detected: {path}",
        )


def _build_graph(dependencies: Dependencies) -> dict[str, list[str]]:
    """依存マッピングを隣接リストに変換する。

    単一の文字列はリストとして扱い、重複した辺は 1 本にまとめる。
    挿入順はマッピングの走査順（依存先のみのノードは初出位置）に従う。
    """
    graph: dict[str, list[str]] = {}
    for node, deps in dependencies.items():
        edges = graph.setdefault(node, [])
        targets = (deps,) if isinstance(deps, str) else tuple(deps)
        for target in targets:
            if target not in edges:
                edges.append(target)
            graph.setdefault(target, [])
    return graph


def detect_cycles(dependencies: Dependencies) -> DependencyCycle | None:
    """3 状態の深さ優先探索で最初に見つかった循環を返す。

    訪問中のノードに到達した時点で、現在の探索パス上の当該ノード以降に
    当該ノードを付け足したものを循環とする。自己ループは [A, A] になる。

    Args:
        dependencies: ノード名から依存先へのマッピング。

    Returns:
        最初に検出された循環。循環が無ければ None。
    """
    graph = _build_graph(dependencies)
    marks = dict.fromkeys(graph, _Mark.UNVISITED)
    path: list[str] = []

    def visit(node: str) -> DependencyCycle | None:
        marks[node] = _Mark.VISITING
        path.append(node)
        for dep in graph[node]:
            if marks[dep] is _Mark.VISITING:
                return DependencyCycle.from_path([*path[path.index(dep) :], dep])
            if marks[dep] is _Mark.UNVISITED:
                found = visit(dep)
                if found is not None:
                    return found
        path.pop()
        marks[node] = _Mark.VISITED
        return None

    for node in graph:
        if marks[node] is _Mark.UNVISITED:
            found = visit(node)
            if found is not None:
                return found
    return None


def get_load_order(dependencies: Dependencies) -> list[str] | None:
    """依存先が依存元より先に来るロード順序を返す。

    Kahn のアルゴリズムで入次数（異なる依存先の数）が 0 のノードから順に取り出す。
    同時に準備完了になったノード同士の順序は挿入順だが、呼び出し側は
    この順序に依存してはならない。

    Args:
        dependencies: ノード名から依存先へのマッピング。

    Returns:
        ロード順のノード名リスト。循環がある場合は None。
    """
    if detect_cycles(dependencies) is not None:
        return None
    graph = _build_graph(dependencies)
    in_degree = {node: len(edges) for node, edges in graph.items()}
    dependents: dict[str, list[str]] = {node: [] for node in graph}
    for node, edges in graph.items():
        for dep in edges:
            dependents[dep].append(node)

    ready = deque(node for node, degree in in_degree.items() if degree == 0)
    order: list[str] = []
    while ready:
        node = ready.popleft()
        order.append(node)
        for dependent in dependents[node]:
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                ready.append(dependent)
    return order


def extends_of(config: Mapping[str, Any]) -> tuple[str, ...]:
    """設定ドキュメントの extends を名前のタプルとして返す。

    文字列は 1 要素のタプルになり、文字列以外の要素は無視する。
    """
    value = config.get("extends")
    if isinstance(value, str):
        return (value,)
    if isinstance(value, list | tuple):
        return tuple(item for item in value if isinstance(item, str))
    return ()


def format_cycle_error(cycle: DependencyCycle) -> str:
    """循環依存をユーザー向けの複数行メッセージに整形する。

    Args:
        cycle: 整形対象の循環。

    Returns:
        依存チェーンの番号付き一覧と解決方法を含むメッセージ。
    """
    lines = ["Circular dependency detected!", "", "Dependency chain:"]
    for index, (source, target) in enumerate(
        zip(cycle.cycle, cycle.cycle[1:]), start=1
    ):
        lines.append(f"  {index}. {source}{_ARROW}{target}")
    lines.extend(["", "To fix this issue:"])
    if len(cycle.cycle) >= 2:
        lines.append(
            f'  - Remove the extends reference from "{cycle.cycle[-2]}" '
            f'to "{cycle.cycle[-1]}"'
        )
    lines.append("  - Or restructure your presets to avoid circular dependencies")
    return "\n".join(lines)
