"""CompilationSession: 1 回のコンパイルに閉じた可変状態。

プリセットキャッシュ・解決済みプリセット・プラグインレジストリ・
コンパイル済みコマンド・警告を保持し、strict モードに応じて
エラーを例外または警告に振り分ける。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from hugsy.compiler._errors import CompilerError
from hugsy.models.command import SlashCommand
from hugsy.models.plugin import Plugin

logger = logging.getLogger(__name__)


@dataclass
class CompilationSession:
    """コンパイル 1 回分の状態。Compiler.compile() ごとに新規作成される。

    Attributes:
        strict: True の場合、回復可能なエラーも CompilerError として送出する。
        presets: 解決済みプリセット（名前→正規化済みドキュメント、祖先が先）。
        module_cache: (種別, 名前) をキーとするロード済みモジュールのキャッシュ。
        plugins: ロード済みプラグイン（参照名→Plugin、宣言順）。
        commands: コンパイル済みスラッシュコマンド。
        warnings: 記録された回復可能な問題。
    """

    strict: bool = False
    presets: dict[str, dict[str, Any]] = field(default_factory=dict)
    module_cache: dict[tuple[str, str], Any] = field(default_factory=dict)
    plugins: dict[str, Plugin] = field(default_factory=dict)
    commands: dict[str, SlashCommand] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    def warn(self, message: str) -> None:
        """回復可能な問題をログに出力し記録する。strict モードでも送出しない。"""
        logger.warning("%s", message)
        self.warnings.append(message)

    def report(self, message: str, **details: Any) -> None:
        """エラーを報告する。

        strict モードでは CompilerError を送出し、それ以外では警告として記録する。

        Args:
            message: エラーメッセージ。
            details: CompilerError.details に格納する補足情報。

        Raises:
            CompilerError: strict モードの場合。
        """
        if self.strict:
            raise CompilerError(message, details)
        self.warn(message)
