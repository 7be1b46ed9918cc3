"""プラグインのドメインモデル。

プラグインは静的な設定断片（permissions / hooks / env / commands）と、
任意の transform / validate コールバックを持つ。
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any, Final

TransformFunction = Callable[
    [dict[str, Any]], "dict[str, Any] | Awaitable[dict[str, Any] | None] | None"
]
"""設定ドキュメントを受け取り、変換後のドキュメント（または awaitable）を返す関数。"""

ValidateFunction = Callable[[dict[str, Any]], "list[str] | None"]
"""設定ドキュメントを検査し、エラーメッセージのリストを返す関数。"""

_CALLABLE_FIELDS: Final[tuple[str, ...]] = ("transform", "validate")
_MAPPING_FIELDS: Final[tuple[str, ...]] = ("permissions", "hooks", "env", "commands")
_TEXT_FIELDS: Final[tuple[str, ...]] = ("name", "version", "description")

_FieldCheck = tuple[tuple[str, ...], Callable[[object], bool], str]

_FIELD_CHECKS: Final[tuple[_FieldCheck, ...]] = (
    (_TEXT_FIELDS, lambda value: isinstance(value, str), "a string"),
    (_MAPPING_FIELDS, lambda value: isinstance(value, Mapping), "a mapping"),
    (_CALLABLE_FIELDS, callable, "callable"),
)


@dataclass(frozen=True)
class Plugin:
    """ロード済みのプラグイン。

    Attributes:
        name: プラグイン名。ログやエラーメッセージの接頭辞に使われる。
        version: プラグインのバージョン。
        description: プラグインの説明。
        permissions: allow / ask / deny の追加パーミッション。
        hooks: イベント名をキーとする追加フック宣言。
        env: 追加の環境変数。
        commands: コマンド名をキーとする追加スラッシュコマンド。
        transform: 設定ドキュメントの変換関数（同期・非同期いずれも可）。
        validate: 最終的な設定ドキュメントの検査関数。
    """

    name: str
    version: str | None = None
    description: str | None = None
    permissions: Mapping[str, Any] | None = None
    hooks: Mapping[str, Any] | None = None
    env: Mapping[str, Any] | None = None
    commands: Mapping[str, Any] | None = None
    transform: TransformFunction | None = None
    validate: ValidateFunction | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], default_name: str) -> Plugin:
        """辞書形式のプラグイン定義から Plugin を構築する。

        認識しないキーは無視する。name が無い場合は default_name を使う。

        Args:
            data: プラグイン定義の辞書。
            default_name: name 未指定時に使う名前（通常はプラグイン参照名）。

        Returns:
            構築された Plugin。

        Raises:
            TypeError: フィールドの型が不正な場合。
        """
        kwargs: dict[str, Any] = {}
        for fields, is_valid, expected in _FIELD_CHECKS:
            for key in fields:
                value = data.get(key)
                if value is None:
                    continue
                if not is_valid(value):
                    msg = (
                        f"Plugin field '{key}' must be {expected}, "
                        f"got {type(value).__name__}"
                    )
                    raise TypeError(msg)
                kwargs[key] = value
        kwargs.setdefault("name", default_name)
        return cls(**kwargs)


PLUGIN_FIELDS: Final[tuple[str, ...]] = (
    _TEXT_FIELDS + _MAPPING_FIELDS + _CALLABLE_FIELDS
)
"""Plugin を構成するフィールド名。モジュール属性からの構築に使われる。"""
