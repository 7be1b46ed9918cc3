"""HookMerger / HookNormalizer: フック宣言の 2 段階マージ。

1. 収集: プリセット → プラグイン → ユーザー設定の順にイベントごとに連結し、
   完全に同一の宣言を取り除く。
2. 正規化: {matcher, hooks: [{type, command, timeout}]} 形式に揃え、
   正規化後のマッチャーが等しいエントリを 1 グループにまとめる。
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any, Final

from hugsy.compiler._session import CompilationSession
from hugsy.models.settings import (
    DEFAULT_HOOK_TIMEOUT_MS,
    HOOK_EVENTS,
    HookCommand,
    HookMatcherGroup,
)

logger = logging.getLogger(__name__)

WILDCARD_MATCHER: Final[str] = "*"
_WILDCARD_ALIASES: Final[frozenset[str]] = frozenset({"", ".*", WILDCARD_MATCHER})
_ARGUMENT_SUFFIX_RE: Final[re.Pattern[str]] = re.compile(r"^([^(]+)\(")


def normalize_matcher(matcher: object) -> str:
    """マッチャーを Claude Code が解釈できるツール名形式に揃える。

    "Bash(git *)" のような引数付きの指定はツール名 "Bash" に、
    未指定・空文字・".*" はワイルドカード "*" に変換する。
    """
    if not isinstance(matcher, str):
        return WILDCARD_MATCHER
    stripped = matcher.strip()
    if stripped in _WILDCARD_ALIASES:
        return WILDCARD_MATCHER
    match = _ARGUMENT_SUFFIX_RE.match(stripped)
    if match:
        return match.group(1).strip()
    return stripped


def _dedup_key(entry: object) -> str:
    """収集時の重複判定キーを返す。

    {matcher, hooks} 形式は "マッチャー:ソート済みコマンド"、
    {command} 形式はコマンド文字列そのものをキーとする。
    """
    if isinstance(entry, Mapping):
        matcher = entry.get("matcher")
        hooks = entry.get("hooks")
        if matcher and isinstance(hooks, list):
            commands = sorted(
                str(hook.get("command", ""))
                for hook in hooks
                if isinstance(hook, Mapping)
            )
            return f"{matcher}:{','.join(commands)}"
        command = entry.get("command")
        if isinstance(command, str):
            return command
    if isinstance(entry, str):
        return entry
    return json.dumps(entry, sort_keys=True, default=str)


def collect_hooks(
    sources: Iterable[Mapping[str, Any] | None],
) -> dict[str, list[Any]]:
    """フック宣言をイベントごとに連結し、同一の宣言を取り除く。

    単一の宣言（マッピング）は 1 要素のリストとして扱う。

    Args:
        sources: 優先度の低い順に並んだ hooks セクション。

    Returns:
        イベント名から宣言リストへのマッピング（初出順）。
    """
    collected: dict[str, list[Any]] = {}
    seen: dict[str, set[str]] = {}
    for source in sources:
        if not isinstance(source, Mapping):
            continue
        for event, declarations in source.items():
            if isinstance(declarations, Mapping):
                entries: list[Any] = [declarations]
            elif isinstance(declarations, list | tuple):
                entries = list(declarations)
            else:
                continue
            bucket = collected.setdefault(event, [])
            keys = seen.setdefault(event, set())
            for entry in entries:
                key = _dedup_key(entry)
                if key in keys:
                    continue
                keys.add(key)
                bucket.append(entry)
    return collected


def _make_command(
    hook: Mapping[str, Any], event: str, session: CompilationSession
) -> HookCommand | None:
    """単一のフックコマンド宣言を HookCommand に変換する。不正なら None。"""
    command = hook.get("command")
    if not isinstance(command, str) or not command.strip():
        session.warn(f"Skipping hook in {event}: missing command")
        return None
    hook_type = hook.get("type", "command")
    if hook_type != "command":
        session.warn(
            f"Skipping hook '{command}' in {event}: unsupported type '{hook_type}'"
        )
        return None

    timeout = hook.get("timeout")
    if timeout is None:
        timeout = DEFAULT_HOOK_TIMEOUT_MS
    elif (
        isinstance(timeout, bool)
        or not isinstance(timeout, int | float)
        or timeout < 1
    ):
        session.report(
            f"Invalid timeout for hook '{command}' in {event}: "
            f"expected a positive number, got {timeout!r}"
        )
        timeout = DEFAULT_HOOK_TIMEOUT_MS
    return HookCommand(command=command, timeout=int(timeout))


def _commands_of(
    entry: Mapping[str, Any], event: str, session: CompilationSession
) -> list[HookCommand]:
    hooks = entry.get("hooks")
    if isinstance(hooks, list):
        declarations = [hook for hook in hooks if isinstance(hook, Mapping)]
        if len(declarations) != len(hooks):
            session.warn(f"Skipping malformed hook commands in {event}")
    elif "command" in entry:
        declarations = [entry]
    else:
        session.warn(f"Skipping hook in {event}: neither 'hooks' nor 'command' given")
        return []
    commands = (_make_command(hook, event, session) for hook in declarations)
    return [command for command in commands if command is not None]


def normalize_hooks(
    collected: Mapping[str, Iterable[Any]], session: CompilationSession
) -> dict[str, tuple[HookMatcherGroup, ...]]:
    """収集済みのフック宣言を正規形に変換し、マッチャーごとにまとめる。

    同じ正規化済みマッチャーを持つエントリのコマンドは収集順に連結される。
    有効なコマンドが 1 つも無いイベントは出力しない。

    Args:
        collected: collect_hooks の結果。
        session: 警告の記録先セッション。

    Returns:
        イベント名から HookMatcherGroup のタプルへのマッピング。
    """
    result: dict[str, tuple[HookMatcherGroup, ...]] = {}
    for event, entries in collected.items():
        if event not in HOOK_EVENTS:
            logger.warning("Unknown hook event '%s'", event)
        groups: dict[str, list[HookCommand]] = {}
        for entry in entries:
            if not isinstance(entry, Mapping):
                session.warn(f"Skipping malformed hook in {event}: expected an object")
                continue
            commands = _commands_of(entry, event, session)
            if commands:
                matcher = normalize_matcher(entry.get("matcher"))
                groups.setdefault(matcher, []).extend(commands)
        if groups:
            result[event] = tuple(
                HookMatcherGroup(matcher=matcher, hooks=tuple(commands))
                for matcher, commands in groups.items()
            )
    return result


def compile_hooks(
    presets: Iterable[Mapping[str, Any]],
    plugin_hooks: Iterable[Mapping[str, Any] | None],
    config: Mapping[str, Any],
    session: CompilationSession,
) -> dict[str, tuple[HookMatcherGroup, ...]]:
    """プリセット・プラグイン・ユーザー設定のフックを収集し正規化する。"""
    sources = [
        *(preset.get("hooks") for preset in presets),
        *plugin_hooks,
        config.get("hooks"),
    ]
    return normalize_hooks(collect_hooks(sources), session)
