"""hugsy ドメインモデルパッケージ。"""

from hugsy.models._base import CamelCaseModel, HugsyBaseModel
from hugsy.models.command import SlashCommand
from hugsy.models.config import CompilerOptions
from hugsy.models.exit_code import ExitCode
from hugsy.models.plugin import Plugin
from hugsy.models.settings import (
    DEFAULT_HOOK_TIMEOUT_MS,
    HOOK_EVENTS,
    PASSTHROUGH_FIELDS,
    PERMISSION_PATTERN,
    PERMISSION_TYPES,
    SETTINGS_SCHEMA_URL,
    CompiledSettings,
    ForceLoginMethod,
    HookCommand,
    HookMatcherGroup,
    PermissionSettings,
    StatusLineConfig,
    StatusLineType,
)

__all__ = [
    "CamelCaseModel",
    "CompiledSettings",
    "CompilerOptions",
    "DEFAULT_HOOK_TIMEOUT_MS",
    "ExitCode",
    "ForceLoginMethod",
    "HOOK_EVENTS",
    "HookCommand",
    "HookMatcherGroup",
    "HugsyBaseModel",
    "PASSTHROUGH_FIELDS",
    "PERMISSION_PATTERN",
    "PERMISSION_TYPES",
    "PermissionSettings",
    "Plugin",
    "SETTINGS_SCHEMA_URL",
    "SlashCommand",
    "StatusLineConfig",
    "StatusLineType",
]
