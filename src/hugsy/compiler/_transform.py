"""TransformPipeline: プラグインによる設定ドキュメントの変換と検査。

変換は宣言順に逐次適用し、同期関数と非同期関数を同じ経路で扱う。
失敗した変換は直前の状態に戻して続行する（strict モードでも致命的にしない）。
"""

from __future__ import annotations

import copy
import inspect
import logging
from collections.abc import Iterable, Mapping
from typing import Any

from hugsy.compiler._errors import CompilerError
from hugsy.compiler._session import CompilationSession
from hugsy.models.plugin import Plugin
from hugsy.models.settings import PERMISSION_TYPES

logger = logging.getLogger(__name__)


# =============================================================================
# transform
# =============================================================================


async def apply_transforms(
    plugins: Iterable[Plugin],
    config: dict[str, Any],
    session: CompilationSession,
    *,
    verbose: bool = False,
) -> dict[str, Any]:
    """各プラグインの transform を宣言順に適用する。

    transform には作業中ドキュメントのディープコピーを渡すため、
    失敗した変換が途中で加えた変更は作業中ドキュメントに残らない。
    戻り値が awaitable の場合は await する。並行実行はしない。

    例外の送出・None の返却・マッピング以外の返却はいずれも no-op として扱い、
    警告を記録して次のプラグインに進む。

    Args:
        plugins: 宣言順のプラグイン。
        config: 作業中の設定ドキュメント。
        session: 警告の記録先セッション。
        verbose: True の場合、env と permissions の変更を DEBUG ログに出力する。

    Returns:
        全プラグイン適用後の設定ドキュメント。
    """
    current = config
    for plugin in plugins:
        if plugin.transform is None:
            continue
        try:
            result = plugin.transform(copy.deepcopy(current))
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            session.warn(f"Plugin '{plugin.name}' transform failed: {e}")
            continue
        if result is None:
            session.warn(
                f"Plugin '{plugin.name}' transform failed: returned no configuration"
            )
            continue
        if not isinstance(result, Mapping):
            session.warn(
                f"Plugin '{plugin.name}' transform failed: expected a configuration "
                f"object, got {type(result).__name__}"
            )
            continue
        transformed = dict(result)
        if verbose:
            _log_changes(plugin.name, current, transformed)
        current = transformed
    return current


def _as_mapping(value: object) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _log_changes(
    plugin_name: str, before: Mapping[str, Any], after: Mapping[str, Any]
) -> None:
    """プラグイン適用前後の env と permissions の差分を DEBUG ログに出力する。"""
    env_before = _as_mapping(before.get("env"))
    env_after = _as_mapping(after.get("env"))
    for key in env_after.keys() - env_before.keys():
        logger.debug("[%s] env added: %s=%s", plugin_name, key, env_after[key])
    for key in env_before.keys() & env_after.keys():
        if env_before[key] != env_after[key]:
            logger.debug(
                "[%s] env changed: %s=%s (was %s)",
                plugin_name,
                key,
                env_after[key],
                env_before[key],
            )
    for key in env_before.keys() - env_after.keys():
        logger.debug("[%s] env removed: %s", plugin_name, key)

    permissions_before = _as_mapping(before.get("permissions"))
    permissions_after = _as_mapping(after.get("permissions"))
    for permission_type in PERMISSION_TYPES:
        old = permissions_before.get(permission_type) or []
        new = permissions_after.get(permission_type) or []
        for pattern in new:
            if pattern not in old:
                logger.debug("[%s] %s added: %s", plugin_name, permission_type, pattern)
        for pattern in old:
            if pattern not in new:
                logger.debug(
                    "[%s] %s removed: %s", plugin_name, permission_type, pattern
                )


# =============================================================================
# validate
# =============================================================================


async def run_plugin_validations(
    plugins: Iterable[Plugin],
    config: Mapping[str, Any],
    session: CompilationSession,
) -> list[str]:
    """各プラグインの validate を呼び出し、エラーメッセージを収集する。

    メッセージには "[プラグイン名]" の接頭辞を付ける。validate 自体が例外を
    送出した場合は警告を記録してスキップする。
    リスト・タプル以外の戻り値も警告してスキップし、文字列以外の要素は無視する。

    Args:
        plugins: 宣言順のプラグイン。
        config: 変換済みの設定ドキュメント。
        session: エラーの報告先セッション。

    Returns:
        収集したエラーメッセージ（非 strict モードでは警告として記録済み）。

    Raises:
        CompilerError: strict モードでエラーが 1 件以上ある場合。
    """
    errors: list[str] = []
    for plugin in plugins:
        if plugin.validate is None:
            continue
        try:
            messages = plugin.validate(copy.deepcopy(dict(config)))
            if inspect.isawaitable(messages):
                messages = await messages
        except Exception as e:
            session.warn(f"Plugin '{plugin.name}' validation failed: {e}")
            continue
        if messages is None:
            continue
        if not isinstance(messages, list | tuple):
            session.warn(
                f"Plugin '{plugin.name}' validate returned "
                f"{type(messages).__name__}; ignoring"
            )
            continue
        errors.extend(
            f"[{plugin.name}] {message}"
            for message in messages
            if isinstance(message, str)
        )

    if errors:
        if session.strict:
            raise CompilerError("Configuration validation failed", {"errors": errors})
        for error in errors:
            session.warn(f"Validation warning: {error}")
    return errors
