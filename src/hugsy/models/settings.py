"""Claude Code settings.json のドメインモデル。

コンパイル結果 CompiledSettings と、その構成要素
（パーミッション・フック・ステータスライン）を定義する。
JSON 上のキーは camelCase、Python 上の属性は snake_case。
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Final, Literal

from pydantic import Field, StrictBool, StrictInt, StrictStr, field_validator

from hugsy.models._base import CamelCaseModel, HugsyBaseModel, normalize_enum_value

SETTINGS_SCHEMA_URL: Final[str] = (
    "https://json.schemastore.org/claude-code-settings.json"
)
"""出力ドキュメントの $schema に固定で設定される URL。"""

DEFAULT_HOOK_TIMEOUT_MS: Final[int] = 3000
"""timeout 未指定のフックコマンドに適用されるタイムアウト（ミリ秒）。"""

PERMISSION_PATTERN: Final[str] = r"^[A-Z][a-zA-Z]*(\(.*\))?$"
"""パーミッション文字列の書式。"Tool" または "Tool(pattern)"。"""

PERMISSION_TYPES: Final[tuple[str, ...]] = ("allow", "ask", "deny")
"""パーミッションリストの種別。"""

HOOK_EVENTS: Final[frozenset[str]] = frozenset(
    {
        "PreToolUse",
        "PostToolUse",
        "UserPromptSubmit",
        "Notification",
        "Stop",
        "SubagentStop",
        "PreCompact",
        "SessionStart",
        "SessionEnd",
    }
)
"""Claude Code が認識するフックイベント名。"""

PASSTHROUGH_FIELDS: Final[tuple[str, ...]] = (
    "model",
    "statusLine",
    "includeCoAuthoredBy",
    "cleanupPeriodDays",
    "apiKeyHelper",
    "forceLoginMethod",
    "forceLoginOrgUUID",
    "awsAuthRefresh",
    "awsCredentialExport",
    "enableAllProjectMcpServers",
    "enabledMcpjsonServers",
    "disabledMcpjsonServers",
)
"""設定時のみ出力にそのまま引き継がれるスカラー系フィールド（出力順）。"""


class StatusLineType(StrEnum):
    """ステータスラインの種別。"""

    COMMAND = "command"
    STATIC = "static"


class ForceLoginMethod(StrEnum):
    """強制ログイン方式。"""

    CLAUDEAI = "claudeai"
    CONSOLE = "console"


class PermissionSettings(HugsyBaseModel):
    """allow / ask / deny のパーミッションリスト。

    3 つのリストは互いに素で、最初に出現した順序を保持する。
    """

    allow: tuple[str, ...] = ()
    ask: tuple[str, ...] = ()
    deny: tuple[str, ...] = ()

    @property
    def total(self) -> int:
        """全リストのパーミッション数の合計。"""
        return len(self.allow) + len(self.ask) + len(self.deny)


class HookCommand(HugsyBaseModel):
    """単一のフックコマンド。"""

    type: Literal["command"] = "command"
    command: StrictStr = Field(min_length=1)
    timeout: StrictInt = Field(default=DEFAULT_HOOK_TIMEOUT_MS, gt=0)


class HookMatcherGroup(HugsyBaseModel):
    """1 つのマッチャーにまとめられたフックコマンド群。"""

    matcher: str
    hooks: tuple[HookCommand, ...]


class StatusLineConfig(HugsyBaseModel):
    """ステータスライン設定。

    type="command" の場合は command、type="static" の場合は value が必須。
    """

    type: StatusLineType
    command: StrictStr | None = None
    value: StrictStr | None = None
    text: StrictStr | None = None
    padding: StrictInt | None = None

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, v: object) -> object:
        return normalize_enum_value(v, StatusLineType)


class CompiledSettings(CamelCaseModel):
    """コンパイル済みの settings.json ドキュメント。

    $schema / permissions / hooks / env は常に出力され、
    それ以外のフィールドは明示的に設定された場合のみ出力される。
    """

    schema_url: str = Field(default=SETTINGS_SCHEMA_URL, alias="$schema")
    permissions: PermissionSettings = Field(default_factory=PermissionSettings)
    hooks: dict[str, tuple[HookMatcherGroup, ...]] = Field(default_factory=dict)
    env: dict[str, StrictStr] = Field(default_factory=dict)
    model: StrictStr | None = None
    status_line: StatusLineConfig | None = None
    include_co_authored_by: StrictBool | None = None
    cleanup_period_days: StrictInt | None = Field(default=None, ge=0)
    api_key_helper: StrictStr | None = None
    force_login_method: ForceLoginMethod | None = None
    force_login_org_uuid: StrictStr | None = Field(
        default=None, alias="forceLoginOrgUUID"
    )
    aws_auth_refresh: StrictStr | None = None
    aws_credential_export: StrictStr | None = None
    enable_all_project_mcp_servers: StrictBool | None = None
    enabled_mcpjson_servers: tuple[str, ...] | None = None
    disabled_mcpjson_servers: tuple[str, ...] | None = None

    @field_validator("force_login_method", mode="before")
    @classmethod
    def _normalize_login_method(cls, v: object) -> object:
        return normalize_enum_value(v, ForceLoginMethod)

    def to_document(self) -> dict[str, Any]:
        """settings.json として書き出せる辞書に変換する。

        未設定（None）のオプションフィールドは出力から除外される。

        Returns:
            camelCase キーの JSON 互換辞書。
        """
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

