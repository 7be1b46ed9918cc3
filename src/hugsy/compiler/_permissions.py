"""PermissionMerger: allow / ask / deny の収集・重複排除・競合解決。

プリセット（解決順）→ プラグイン（宣言順）→ ユーザー設定の順に連結し、
deny > ask > allow の優先度で競合を解決する。
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Final

from hugsy.compiler._session import CompilationSession
from hugsy.models.settings import (
    PERMISSION_PATTERN,
    PERMISSION_TYPES,
    PermissionSettings,
)

logger = logging.getLogger(__name__)

_PERMISSION_RE: Final[re.Pattern[str]] = re.compile(PERMISSION_PATTERN)


def collect_permissions(
    sources: Iterable[Mapping[str, Any] | None],
) -> dict[str, list[str]]:
    """パーミッション定義を連結し、種別ごとに初出順で重複を排除する。

    マッピングでないソースや文字列でない要素は無視する。

    Args:
        sources: 優先度の低い順に並んだ permissions セクション。

    Returns:
        種別（allow / ask / deny）ごとのパーミッションリスト。
    """
    collected: dict[str, list[str]] = {t: [] for t in PERMISSION_TYPES}
    for source in sources:
        if not isinstance(source, Mapping):
            continue
        for permission_type in PERMISSION_TYPES:
            patterns = source.get(permission_type)
            if not isinstance(patterns, list | tuple):
                continue
            collected[permission_type].extend(p for p in patterns if isinstance(p, str))
    return {t: list(dict.fromkeys(patterns)) for t, patterns in collected.items()}


def resolve_conflicts(
    permissions: Mapping[str, Sequence[str]],
) -> tuple[dict[str, list[str]], int]:
    """deny > ask > allow の優先度で競合を解決する。

    deny にあるパターンは ask と allow から、ask にあるパターンは allow から取り除く。

    Args:
        permissions: 重複排除済みのパーミッションリスト。

    Returns:
        競合解決後のリストと、取り除いたパターンの数。
    """
    deny = list(permissions.get("deny", ()))
    ask_source = list(permissions.get("ask", ()))
    allow_source = list(permissions.get("allow", ()))
    deny_set = set(deny)
    ask_set = set(ask_source)

    conflicts = 0
    ask: list[str] = []
    for pattern in ask_source:
        if pattern in deny_set:
            logger.debug("Permission '%s' removed from ask (denied)", pattern)
            conflicts += 1
        else:
            ask.append(pattern)
    allow: list[str] = []
    for pattern in allow_source:
        if pattern in deny_set:
            logger.debug("Permission '%s' removed from allow (denied)", pattern)
            conflicts += 1
        elif pattern in ask_set:
            logger.debug("Permission '%s' removed from allow (requires ask)", pattern)
            conflicts += 1
        else:
            allow.append(pattern)
    return {"allow": allow, "ask": ask, "deny": deny}, conflicts


def validate_permission_format(
    permissions: Mapping[str, Sequence[str]], session: CompilationSession
) -> None:
    """パーミッション文字列が "Tool" / "Tool(pattern)" の書式か検査する。

    違反は種別ごとにセッションへ報告する（strict モードでは送出）。
    非 strict モードでは違反パターンもそのまま出力に残る。

    Raises:
        CompilerError: strict モードで書式違反がある場合。
    """
    for permission_type in PERMISSION_TYPES:
        patterns = permissions.get(permission_type, ())
        invalid = [p for p in patterns if not _PERMISSION_RE.match(p)]
        if invalid:
            session.report(
                f"Invalid permission format in {permission_type}: "
                f"{', '.join(invalid)}. "
                "Permissions must match pattern: Tool or Tool(pattern)",
                permission_type=permission_type,
                invalid=invalid,
            )


def merge_permissions(
    presets: Iterable[Mapping[str, Any]],
    plugin_permissions: Iterable[Mapping[str, Any] | None],
    config: Mapping[str, Any],
    session: CompilationSession,
) -> PermissionSettings:
    """プリセット・プラグイン・ユーザー設定のパーミッションをマージする。

    Args:
        presets: 解決順のプリセットドキュメント。
        plugin_permissions: 宣言順のプラグインの permissions。
        config: 変換済みのユーザー設定ドキュメント。
        session: エラーの報告先セッション。

    Returns:
        互いに素な allow / ask / deny。

    Raises:
        CompilerError: strict モードで書式違反がある場合。
    """
    sources = [
        *(preset.get("permissions") for preset in presets),
        *plugin_permissions,
        config.get("permissions"),
    ]
    resolved, conflicts = resolve_conflicts(collect_permissions(sources))
    if conflicts:
        logger.info(
            "Resolved %d permission conflict(s) using security-first priority "
            "(deny > ask > allow)",
            conflicts,
        )
    validate_permission_format(resolved, session)
    return PermissionSettings(
        allow=tuple(resolved["allow"]),
        ask=tuple(resolved["ask"]),
        deny=tuple(resolved["deny"]),
    )
