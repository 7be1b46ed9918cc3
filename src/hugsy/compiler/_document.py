"""設定ドキュメントの前処理。

sanitize（不可視文字・制御文字の除去）→ フィールド名の正規化 → 構造検証
の順に適用し、以降のマージ処理が前提とする形に整える。
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from types import MappingProxyType
from typing import Annotated, Any, Final

from pydantic import (
    BeforeValidator,
    Field,
    StrictBool,
    StrictInt,
    StrictStr,
    TypeAdapter,
    ValidationError,
)

from hugsy.compiler._errors import CompilerError
from hugsy.compiler._session import CompilationSession
from hugsy.models._base import normalize_enum_value
from hugsy.models.settings import (
    PASSTHROUGH_FIELDS,
    PERMISSION_TYPES,
    ForceLoginMethod,
    StatusLineConfig,
)

logger = logging.getLogger(__name__)

COLLECTION_FIELDS: Final[tuple[str, ...]] = (
    "extends",
    "plugins",
    "env",
    "permissions",
    "hooks",
    "commands",
)
"""マージ対象のコレクション系フィールド。"""

KNOWN_FIELDS: Final[tuple[str, ...]] = COLLECTION_FIELDS + PASSTHROUGH_FIELDS
"""設定ドキュメントが認識するトップレベルフィールド（正規の camelCase 名）。"""

_SCHEMA_KEY: Final[str] = "$schema"

_CANONICAL_FIELDS: Final[Mapping[str, str]] = MappingProxyType(
    {name.lower(): name for name in (*KNOWN_FIELDS, _SCHEMA_KEY)}
)

# \t \n \r は複数行のコマンド本文等で意味を持つため値からは除去しない
_INVISIBLE_VALUE_CHARS: Final[re.Pattern[str]] = re.compile(
    r"[\u200b-\u200d\ufeff\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]"
)
_INVISIBLE_KEY_CHARS: Final[re.Pattern[str]] = re.compile(
    r"[\u200b-\u200d\ufeff\x00-\x1f\x7f-\x9f]"
)

_STRING_LIST: Final[TypeAdapter[list[str]]] = TypeAdapter(list[StrictStr])
_STRING: Final[TypeAdapter[str]] = TypeAdapter(StrictStr)
_BOOLEAN: Final[TypeAdapter[bool]] = TypeAdapter(StrictBool)
_LOGIN_METHOD: Final[TypeAdapter[ForceLoginMethod]] = TypeAdapter(
    Annotated[
        ForceLoginMethod,
        BeforeValidator(lambda v: normalize_enum_value(v, ForceLoginMethod)),
    ]
)

_FIELD_TYPES: Final[Mapping[str, tuple[TypeAdapter[Any], str]]] = MappingProxyType(
    {
        "plugins": (_STRING_LIST, "an array of strings"),
        "model": (_STRING, "a string"),
        "apiKeyHelper": (_STRING, "a string"),
        "forceLoginOrgUUID": (_STRING, "a string"),
        "awsAuthRefresh": (_STRING, "a string"),
        "awsCredentialExport": (_STRING, "a string"),
        "includeCoAuthoredBy": (_BOOLEAN, "a boolean"),
        "enableAllProjectMcpServers": (_BOOLEAN, "a boolean"),
        "enabledMcpjsonServers": (_STRING_LIST, "an array of strings"),
        "disabledMcpjsonServers": (_STRING_LIST, "an array of strings"),
        "cleanupPeriodDays": (
            TypeAdapter(Annotated[StrictInt, Field(ge=0)]),
            "a non-negative integer",
        ),
        "forceLoginMethod": (_LOGIN_METHOD, "'claudeai' or 'console'"),
        "statusLine": (
            TypeAdapter(StatusLineConfig),
            "an object with type 'command' or 'static'",
        ),
    }
)
"""スカラー系フィールドの型検証に使う TypeAdapter と期待値の説明。"""


# =============================================================================
# sanitize
# =============================================================================


def sanitize(value: Any) -> Any:
    """文字列値から不可視文字・制御文字を再帰的に除去する。

    辞書のキーは変更しない（キーの検査は validate_structure が行う）。
    """
    if isinstance(value, str):
        return _INVISIBLE_VALUE_CHARS.sub("", value)
    if isinstance(value, Mapping):
        return {key: sanitize(item) for key, item in value.items()}
    if isinstance(value, list | tuple):
        return [sanitize(item) for item in value]
    return value


# =============================================================================
# フィールド名の正規化
# =============================================================================


def _normalize_permission_keys(value: Mapping[Any, Any]) -> dict[Any, Any]:
    """permissions のサブキー（allow / ask / deny）を小文字に正規化する。

    大文字小文字違いの重複はリストを連結する。
    """
    result: dict[Any, Any] = {}
    for key, item in value.items():
        canonical = key.lower() if isinstance(key, str) else key
        if canonical not in PERMISSION_TYPES:
            result[key] = item
            continue
        existing = result.get(canonical)
        if isinstance(existing, list) and isinstance(item, list):
            result[canonical] = [*existing, *item]
        else:
            result[canonical] = item
    return result


def normalize_field_names(config: Mapping[Any, Any]) -> dict[Any, Any]:
    """トップレベルのフィールド名を正規の camelCase 名に揃える。

    既知フィールドは大文字小文字を区別せずに照合し、未知のフィールドはそのまま残す。
    env の大文字小文字違いの重複はマージし、それ以外の重複は後勝ちとする。

    Args:
        config: sanitize 済みの設定ドキュメント。

    Returns:
        フィールド名を正規化した新しい辞書。
    """
    result: dict[Any, Any] = {}
    for key, value in config.items():
        canonical = key
        if isinstance(key, str):
            canonical = _CANONICAL_FIELDS.get(key.lower(), key)
        if canonical == "permissions" and isinstance(value, Mapping):
            value = _normalize_permission_keys(value)
        existing = result.get(canonical)
        if (
            canonical == "env"
            and isinstance(existing, Mapping)
            and isinstance(value, Mapping)
        ):
            result[canonical] = {**existing, **value}
        else:
            result[canonical] = value
    return result


# =============================================================================
# 構造検証
# =============================================================================


def _describe(value: object) -> str:
    return "null" if value is None else type(value).__name__


def _check_key(key: object) -> str | None:
    """フィールド名として不正な場合はエラーメッセージを返す。"""
    if not isinstance(key, str):
        return f"Invalid configuration field {key!r}: field names must be strings"
    if not key.isascii():
        return (
            f"Invalid configuration field '{key}': "
            "field names must contain only ASCII characters"
        )
    if _INVISIBLE_KEY_CHARS.search(key):
        return (
            f"Invalid configuration field '{key}': "
            "contains invisible or control characters"
        )
    return None


def _check_extends(value: object) -> str | None:
    if isinstance(value, str):
        return None
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return None
    return "extends field must be a string or array of strings"


def _check_permissions(value: object) -> str | None:
    if not isinstance(value, Mapping):
        return f"permissions field must be an object, got {_describe(value)}"
    for permission_type in PERMISSION_TYPES:
        patterns = value.get(permission_type)
        if patterns is None:
            continue
        if not isinstance(patterns, list) or not all(
            isinstance(item, str) for item in patterns
        ):
            return f"permissions.{permission_type} must be an array of strings"
    for key in value:
        if key not in PERMISSION_TYPES:
            logger.warning("Unknown permissions property '%s' will be ignored", key)
    return None


def _check_commands(value: object) -> str | None:
    if isinstance(value, Mapping):
        return None
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return None
    return "commands field must be an object or an array of preset names"


def _validate_env(
    env: object, session: CompilationSession, suffix: str
) -> dict[str, str] | None:
    """env を検証し、文字列以外の値を持つエントリを除いた辞書を返す。"""
    if not isinstance(env, Mapping):
        session.report(f"env field must be an object, got {_describe(env)}{suffix}")
        return None
    valid: dict[str, str] = {}
    for name, value in env.items():
        if isinstance(value, str):
            valid[name] = value
            continue
        session.report(
            f"Invalid env value for '{name}': expected string, "
            f"got {_describe(value)}{suffix}"
        )
    return valid


def _validate_hooks(
    hooks: object, session: CompilationSession, suffix: str
) -> dict[str, Any] | None:
    """hooks を検証し、イベントごとの宣言がオブジェクトまたは配列のものだけを返す。"""
    if not isinstance(hooks, Mapping):
        session.report(f"hooks field must be an object, got {_describe(hooks)}{suffix}")
        return None
    valid: dict[str, Any] = {}
    for event, declarations in hooks.items():
        if isinstance(declarations, Mapping | list):
            valid[event] = declarations
            continue
        session.report(
            f"hooks.{event} must be a hook object or an array of hook objects{suffix}"
        )
    return valid


def validate_structure(
    config: Mapping[Any, Any],
    session: CompilationSession,
    source: str | None = None,
) -> dict[str, Any]:
    """正規化済みの設定ドキュメントの構造を検証する。

    不正なフィールド・エントリはセッション経由で報告し（strict モードでは送出）、
    非 strict モードでは結果から取り除いてデフォルト値に委ねる。
    未知のフィールドは警告のみで保持する。

    Args:
        config: フィールド名を正規化済みの設定ドキュメント。
        session: エラーの報告先セッション。
        source: プリセット名など、メッセージに付記する出所。None はユーザー設定。

    Returns:
        不正なフィールドを取り除いた新しい辞書。

    Raises:
        CompilerError: strict モードで不正なフィールドが見つかった場合。
    """
    suffix = f" (in '{source}')" if source is not None else ""
    result: dict[str, Any] = {}
    for key, value in config.items():
        error = _check_key(key)
        if error is not None:
            session.report(f"{error}{suffix}")
            continue
        if key == _SCHEMA_KEY:
            continue
        if key not in KNOWN_FIELDS:
            session.warn(
                f"Unknown configuration property '{key}' will be ignored{suffix}"
            )
            result[key] = value
            continue

        if key == "env":
            value = _validate_env(value, session, suffix)
        elif key == "hooks":
            value = _validate_hooks(value, session, suffix)
        else:
            error = _check_field(key, value)
            if error is not None:
                session.report(f"{error}{suffix}")
                value = None
        if value is not None:
            result[key] = value
    return result


def _check_field(key: str, value: object) -> str | None:
    if key == "extends":
        return _check_extends(value)
    if key == "permissions":
        return _check_permissions(value)
    if key == "commands":
        return _check_commands(value)
    adapter, expected = _FIELD_TYPES[key]
    try:
        adapter.validate_python(value)
    except ValidationError:
        return (
            f"Invalid configuration: {key} must be {expected}, "
            f"got {_describe(value)}"
        )
    return None


def prepare_document(
    raw: object,
    session: CompilationSession,
    source: str | None = None,
) -> dict[str, Any]:
    """sanitize → フィールド名の正規化 → 構造検証を適用する。

    Args:
        raw: 読み込んだままの設定ドキュメント。
        session: エラーの報告先セッション。
        source: プリセット名など、メッセージに付記する出所。

    Returns:
        後続のマージ処理に渡せる設定ドキュメント。

    Raises:
        CompilerError: ルートがオブジェクトでない場合（strict 設定に関わらず）、
            または strict モードで構造エラーが見つかった場合。
    """
    if not isinstance(raw, Mapping):
        message = "Configuration must be an object"
        if source is not None:
            message = f"{message} (in '{source}')"
        raise CompilerError(message, {"type": _describe(raw)})
    return validate_structure(normalize_field_names(sanitize(raw)), session, source)
