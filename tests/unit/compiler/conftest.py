"""コンパイラテスト共通フィクスチャ。"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

import pytest

from hugsy.compiler._modules import ModuleKind
from hugsy.compiler._session import CompilationSession


class DictModuleLoader:
    """種別ごとの辞書からユニットを返す ModuleLoader。

    値が例外インスタンスの場合はそれを送出する。
    """

    def __init__(
        self,
        presets: Mapping[str, Any] | None = None,
        plugins: Mapping[str, Any] | None = None,
        command_presets: Mapping[str, Any] | None = None,
    ) -> None:
        self._units: dict[ModuleKind, Mapping[str, Any]] = {
            ModuleKind.PRESET: presets or {},
            ModuleKind.PLUGIN: plugins or {},
            ModuleKind.COMMAND_PRESET: command_presets or {},
        }
        self.calls: list[tuple[str, ModuleKind]] = []

    def load(self, name: str, kind: ModuleKind) -> Any:
        self.calls.append((name, kind))
        unit = self._units[kind].get(name)
        if isinstance(unit, Exception):
            raise unit
        return unit


@pytest.fixture
def session() -> CompilationSession:
    return CompilationSession()


@pytest.fixture
def strict_session() -> CompilationSession:
    return CompilationSession(strict=True)


@pytest.fixture
def make_loader() -> Callable[..., DictModuleLoader]:
    """DictModuleLoader を構築するファクトリ。"""
    return DictModuleLoader
