"""環境変数のマージとプリセットのスカラー継承。"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from hugsy.compiler._session import CompilationSession
from hugsy.models.settings import PASSTHROUGH_FIELDS


def compile_environment(
    presets: Iterable[Mapping[str, Any]],
    plugin_envs: Iterable[Mapping[str, Any] | None],
    config: Mapping[str, Any],
    session: CompilationSession,
) -> dict[str, str]:
    """プリセット < プラグイン < ユーザー設定 の優先度で env をマージする。

    文字列以外の値はセッションへ報告し（strict モードでは送出）、出力から除外する。

    Raises:
        CompilerError: strict モードで文字列以外の値がある場合。
    """
    sources = [
        *(preset.get("env") for preset in presets),
        *plugin_envs,
        config.get("env"),
    ]
    env: dict[str, str] = {}
    for source in sources:
        if not isinstance(source, Mapping):
            continue
        for name, value in source.items():
            if not isinstance(value, str):
                session.report(
                    f"Invalid env value for '{name}': expected string, "
                    f"got {type(value).__name__}"
                )
                continue
            env[str(name)] = value
    return env


def inherit_preset_scalars(
    presets: Iterable[Mapping[str, Any]], config: Mapping[str, Any]
) -> dict[str, Any]:
    """プリセットのスカラー系フィールドを作業中の設定ドキュメントに引き継ぐ。

    後に解決されたプリセットの値が優先され、ユーザー設定に存在する
    フィールドはプリセットで上書きしない。

    Args:
        presets: 解決順のプリセットドキュメント。
        config: ユーザー設定ドキュメント。

    Returns:
        スカラー系フィールドを補完した新しい辞書。
    """
    merged = dict(config)
    for preset in presets:
        for field in PASSTHROUGH_FIELDS:
            if field in preset and field not in config:
                merged[field] = preset[field]
    return merged
