"""生成された settings.json ドキュメントの構造検証。"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any, Final

from hugsy.models.settings import (
    PERMISSION_PATTERN,
    PERMISSION_TYPES,
    SETTINGS_SCHEMA_URL,
    StatusLineType,
)

_PERMISSION_RE: Final[re.Pattern[str]] = re.compile(PERMISSION_PATTERN)
_BOOLEAN_FIELDS: Final[tuple[str, ...]] = (
    "includeCoAuthoredBy",
    "enableAllProjectMcpServers",
)
_STRING_FIELDS: Final[tuple[str, ...]] = ("model", "apiKeyHelper")
_ARRAY_FIELDS: Final[tuple[str, ...]] = (
    "enabledMcpjsonServers",
    "disabledMcpjsonServers",
)


def _is_number(value: object) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _validate_permissions(permissions: object) -> list[str]:
    if not isinstance(permissions, Mapping):
        return ["permissions must be an object"]
    errors: list[str] = []
    for permission_type in PERMISSION_TYPES:
        patterns = permissions.get(permission_type)
        if patterns is None:
            continue
        if not isinstance(patterns, list):
            errors.append(f"permissions.{permission_type} must be an array")
            continue
        invalid = [
            str(p)
            for p in patterns
            if not isinstance(p, str) or not _PERMISSION_RE.match(p)
        ]
        if invalid:
            errors.append(
                f"Invalid permission format in {permission_type}: "
                f"{', '.join(invalid)}. "
                "Permissions must match pattern: Tool or Tool(pattern)"
            )
    return errors


def _validate_hook_group(location: str, group: object) -> list[str]:
    if not isinstance(group, Mapping):
        return [f"{location} must be an object"]
    errors: list[str] = []
    matcher = group.get("matcher")
    if matcher is not None:
        if not isinstance(matcher, str):
            errors.append(f"{location}.matcher must be a string")
        elif "(" in matcher:
            errors.append(
                f'{location}.matcher "{matcher}" should be tool name only '
                '(e.g., "Bash" not "Bash(git *)")'
            )
    hooks = group.get("hooks")
    if not isinstance(hooks, list):
        errors.append(f"{location}.hooks must be an array")
        return errors
    for index, hook in enumerate(hooks):
        hook_location = f"{location}.hooks[{index}]"
        if not isinstance(hook, Mapping):
            errors.append(f"{hook_location} must be an object")
            continue
        if hook.get("type") != "command":
            errors.append(f'{hook_location}.type must be "command"')
        if not isinstance(hook.get("command"), str):
            errors.append(f"{hook_location}.command must be a string")
        if "timeout" in hook and not _is_number(hook["timeout"]):
            errors.append(f"{hook_location}.timeout must be a number")
    return errors


def _validate_hooks(hooks: object) -> list[str]:
    if not isinstance(hooks, Mapping):
        return ["hooks must be an object"]
    errors: list[str] = []
    for event, groups in hooks.items():
        if not isinstance(groups, list):
            errors.append(f"hooks.{event} must be an array")
            continue
        for index, group in enumerate(groups):
            errors.extend(_validate_hook_group(f"hooks.{event}[{index}]", group))
    return errors


def _validate_status_line(status_line: object) -> list[str]:
    if not isinstance(status_line, Mapping):
        return ["statusLine must be an object"]
    line_type = status_line.get("type")
    if line_type == StatusLineType.COMMAND:
        if not isinstance(status_line.get("command"), str):
            return ["statusLine.command is required when type is 'command'"]
    elif line_type == StatusLineType.STATIC:
        if not isinstance(status_line.get("value"), str):
            return ["statusLine.value is required when type is 'static'"]
    else:
        return ["statusLine.type must be 'command' or 'static'"]
    return []


def validate_settings(settings: Mapping[str, Any]) -> list[str]:
    """settings.json ドキュメントの構造を検証する。

    $schema、パーミッションの書式、フックの正規形、env の値、
    ステータスライン、スカラー系フィールドの型を検査する。

    Args:
        settings: camelCase キーの settings.json ドキュメント。

    Returns:
        エラーメッセージのリスト。問題が無ければ空リスト。
    """
    errors: list[str] = []
    schema = settings.get("$schema")
    if schema is None:
        errors.append("Missing $schema field")
    elif schema != SETTINGS_SCHEMA_URL:
        errors.append(f"Invalid $schema: expected {SETTINGS_SCHEMA_URL}, got {schema}")

    if "permissions" in settings:
        errors.extend(_validate_permissions(settings["permissions"]))
    if "hooks" in settings:
        errors.extend(_validate_hooks(settings["hooks"]))
    if "env" in settings:
        env = settings["env"]
        if not isinstance(env, Mapping):
            errors.append("env must be an object")
        else:
            errors.extend(
                f"env.{name} must be a string"
                for name, value in env.items()
                if not isinstance(value, str)
            )
    if "statusLine" in settings:
        errors.extend(_validate_status_line(settings["statusLine"]))

    cleanup = settings.get("cleanupPeriodDays")
    if "cleanupPeriodDays" in settings and not _is_number(cleanup):
        errors.append("cleanupPeriodDays must be a number")
    for field in _BOOLEAN_FIELDS:
        if field in settings and not isinstance(settings[field], bool):
            errors.append(f"{field} must be a boolean")
    for field in _STRING_FIELDS:
        if field in settings and not isinstance(settings[field], str):
            errors.append(f"{field} must be a string")
    for field in _ARRAY_FIELDS:
        if field in settings and not isinstance(settings[field], list):
            errors.append(f"{field} must be an array")
    return errors
