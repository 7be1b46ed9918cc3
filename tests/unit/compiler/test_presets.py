"""PresetResolver のテスト。"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from hugsy.compiler._errors import CircularDependencyError
from hugsy.compiler._modules import ModuleKind, ModuleLoadError
from hugsy.compiler._presets import PresetResolver
from hugsy.compiler._session import CompilationSession


class TestPresetResolution:
    """プリセットチェーンの解決順序を検証する。"""

    def test_ancestors_first(
        self, make_loader: Callable[..., Any], session: CompilationSession
    ) -> None:
        loader = make_loader(
            presets={
                "child": {"extends": "parent", "model": "opus"},
                "parent": {"env": {"A": "1"}},
            }
        )
        presets = PresetResolver(loader, session).resolve("child")
        assert list(presets) == ["parent", "child"]
        assert presets["child"] == {"extends": "parent", "model": "opus"}

    def test_diamond_loaded_once(
        self, make_loader: Callable[..., Any], session: CompilationSession
    ) -> None:
        loader = make_loader(
            presets={
                "B": {"extends": "A", "env": {"B": "1"}},
                "C": {"extends": "A", "env": {"C": "1"}},
                "A": {"env": {"A": "1"}},
            }
        )
        presets = PresetResolver(loader, session).resolve(["B", "C"])
        assert list(presets) == ["A", "B", "C"]
        assert loader.calls.count(("A", ModuleKind.PRESET)) == 1

    def test_documents_normalized(
        self, make_loader: Callable[..., Any], session: CompilationSession
    ) -> None:
        loader = make_loader(presets={"p": {"Permissions": {"Deny": ["Bash"]}}})
        presets = PresetResolver(loader, session).resolve("p")
        assert presets["p"] == {"permissions": {"deny": ["Bash"]}}

    def test_empty_preset_skipped(
        self, make_loader: Callable[..., Any], session: CompilationSession
    ) -> None:
        loader = make_loader(presets={"empty": {}})
        assert PresetResolver(loader, session).resolve("empty") == {}


class TestPresetCycles:
    """循環参照が常に致命的であることを検証する。"""

    def test_two_node_cycle(
        self, make_loader: Callable[..., Any], session: CompilationSession
    ) -> None:
        loader = make_loader(
            presets={"A": {"extends": "B"}, "B": {"extends": "A"}}
        )
        with pytest.raises(CircularDependencyError) as exc_info:
            PresetResolver(loader, session).resolve("A")
        assert exc_info.value.cycle.cycle == ("A", "B", "A")
        assert exc_info.value.details == {"cycle": ["A", "B", "A"]}

    def test_self_reference(
        self, make_loader: Callable[..., Any], session: CompilationSession
    ) -> None:
        loader = make_loader(presets={"A": {"extends": ["A"]}})
        with pytest.raises(CircularDependencyError, match="A -> A"):
            PresetResolver(loader, session).resolve("A")

    def test_cycle_below_entry_reports_full_chain(
        self, make_loader: Callable[..., Any], session: CompilationSession
    ) -> None:
        loader = make_loader(
            presets={
                "root": {"extends": "X"},
                "X": {"extends": "Y"},
                "Y": {"extends": "X"},
            }
        )
        with pytest.raises(CircularDependencyError) as exc_info:
            PresetResolver(loader, session).resolve("root")
        assert exc_info.value.cycle.cycle == ("root", "X", "Y", "X")


class TestPresetFailures:
    """見つからない・壊れたプリセットの扱いを検証する。"""

    def test_missing_preset_warns(
        self, make_loader: Callable[..., Any], session: CompilationSession
    ) -> None:
        loader = make_loader(presets={"child": {"extends": "ghost", "model": "x"}})
        presets = PresetResolver(loader, session).resolve("child")
        assert list(presets) == ["child"]
        assert session.warnings == ["Preset 'ghost' not found; treating it as empty"]

    def test_missing_preset_not_fatal_in_strict(
        self, make_loader: Callable[..., Any], strict_session: CompilationSession
    ) -> None:
        loader = make_loader()
        assert PresetResolver(loader, strict_session).resolve("ghost") == {}

    def test_load_error_warns(
        self, make_loader: Callable[..., Any], session: CompilationSession
    ) -> None:
        loader = make_loader(presets={"bad": ModuleLoadError("Failed to parse 'bad'")})
        assert PresetResolver(loader, session).resolve("bad") == {}
        assert session.warnings == ["Failed to parse 'bad'"]

    def test_load_error_not_fatal_in_strict(
        self, make_loader: Callable[..., Any], strict_session: CompilationSession
    ) -> None:
        loader = make_loader(presets={"bad": ModuleLoadError("Failed to parse 'bad'")})
        assert PresetResolver(loader, strict_session).resolve("bad") == {}
        assert strict_session.warnings == ["Failed to parse 'bad'"]

    def test_non_mapping_preset(
        self, make_loader: Callable[..., Any], session: CompilationSession
    ) -> None:
        loader = make_loader(presets={"list": ["Read"]})
        assert PresetResolver(loader, session).resolve("list") == {}
        assert session.warnings == ["Preset 'list' must be an object, got list"]
