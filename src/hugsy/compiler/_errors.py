"""コンパイラ例外。"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from hugsy.compiler._graph import DependencyCycle


class CompilerError(Exception):
    """コンパイルの継続が不可能なエラー。

    Attributes:
        details: エラーの補足情報（検証エラー一覧など）。
    """

    def __init__(self, message: str, details: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details: dict[str, Any] = dict(details) if details is not None else {}


class CircularDependencyError(CompilerError):
    """プリセットの extends に循環参照がある。strict 設定に関わらず常に致命的。"""

    def __init__(self, cycle: DependencyCycle) -> None:
        super().__init__(cycle.message, {"cycle": list(cycle.cycle)})
        self.cycle = cycle
