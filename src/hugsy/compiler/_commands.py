"""CommandResolver: スラッシュコマンドの解決。

優先度の低い順に プリセット → プラグイン → ユーザー設定
（コマンドプリセット → Markdown ファイル → インライン定義）を適用し、
同名のコマンドは後のソースで丸ごと置き換える。
"""

from __future__ import annotations

import glob
import logging
import re
from collections.abc import Iterable, Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any, Final

from pydantic import ValidationError

from hugsy.compiler._document import sanitize
from hugsy.compiler._modules import ModuleKind, ModuleLoader, ModuleLoadError
from hugsy.compiler._session import CompilationSession
from hugsy.models.command import SlashCommand
from hugsy.models.plugin import Plugin

logger = logging.getLogger(__name__)

MARKDOWN_SUFFIXES: Final[frozenset[str]] = frozenset({".md", ".markdown"})
"""コマンドファイルとして扱う拡張子（大文字小文字は区別しない）。"""

CONFIG_FORM_KEYS: Final[frozenset[str]] = frozenset({"presets", "files", "commands"})
"""commands を設定形式（presets / files / commands）と判定するキー集合。"""

_FRONTMATTER_RE: Final[re.Pattern[str]] = re.compile(
    r"^---\r?\n(.*?)\r?\n---(?:\r?\n(.*))?$", re.DOTALL
)
_FRONTMATTER_LINE_RE: Final[re.Pattern[str]] = re.compile(r"^(\w[-\w]*)\s*:\s*(.*)$")
_QUOTES: Final[tuple[str, ...]] = ('"', "'")

_FIELD_ALIASES: Final[Mapping[str, str]] = MappingProxyType(
    {
        "argument-hint": "argumentHint",
        "allowed-tools": "allowedTools",
    }
)


# =============================================================================
# frontmatter
# =============================================================================


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in _QUOTES:
        return value[1:-1]
    return value


def _parse_value(raw: str) -> str | list[str]:
    """frontmatter の値をパースする。"[a, b]" 形式はリストになる。"""
    if raw.startswith("[") and raw.endswith("]"):
        items = (_unquote(item.strip()) for item in raw[1:-1].split(","))
        return [item for item in items if item]
    return _unquote(raw)


def parse_frontmatter(text: str) -> tuple[dict[str, str | list[str]], str]:
    """Markdown 先頭の frontmatter と本文を分離する。

    frontmatter は 2 つの "---" 行に挟まれた平坦な "key: value" 行の並びで、
    ネストした構造は扱わない。frontmatter が無い場合はファイル全体を本文とする。

    Args:
        text: Markdown ファイルの内容。

    Returns:
        frontmatter の辞書と、前後の空白を取り除いた本文。
    """
    match = _FRONTMATTER_RE.match(text)
    if match is None:
        return {}, text.strip()
    metadata: dict[str, str | list[str]] = {}
    for line in match.group(1).splitlines():
        line_match = _FRONTMATTER_LINE_RE.match(line.strip())
        if line_match is None:
            continue
        key, raw = line_match.groups()
        metadata[key] = _parse_value(raw.strip())
    return metadata, (match.group(2) or "").strip()


def command_from_markdown(name: str, text: str) -> SlashCommand:
    """Markdown ファイルの内容から SlashCommand を構築する。

    argument-hint の "[x]" 形式はリストとしてパースされるため、
    角括弧付きの文字列に戻す。allowed-tools はリストまたはカンマ区切り文字列を受け付ける。

    Args:
        name: コマンド名（ファイル名から拡張子を除いたもの）。
        text: Markdown ファイルの内容。

    Returns:
        構築された SlashCommand。
    """
    metadata, body = parse_frontmatter(text)
    data: dict[str, Any] = {"name": name, "content": body}
    for key in ("description", "category", "model"):
        value = metadata.get(key)
        if isinstance(value, str) and value:
            data[key] = value

    hint = metadata.get("argument-hint", metadata.get("argumentHint"))
    if isinstance(hint, list):
        hint = f"[{', '.join(hint)}]"
    if hint:
        data["argumentHint"] = hint

    tools = metadata.get("allowed-tools", metadata.get("allowedTools"))
    if isinstance(tools, str):
        tools = [tool.strip() for tool in tools.split(",") if tool.strip()]
    if tools:
        data["allowedTools"] = tools
    return SlashCommand.model_validate(data)


def _format_validation_error(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in detail['loc'])}: {detail['msg']}"
        for detail in error.errors()
    )


def command_from_value(name: str, value: object) -> SlashCommand:
    """インライン定義から SlashCommand を構築する。

    文字列はそのまま本文として扱う。マッピングのキーは camelCase と
    ハイフン区切り（argument-hint 等）の両方を受け付ける。

    Raises:
        TypeError: 値が文字列でもマッピングでもない場合。
        pydantic.ValidationError: フィールドの値が不正な場合。
    """
    if isinstance(value, str):
        return SlashCommand(name=name, content=value)
    if not isinstance(value, Mapping):
        msg = f"expected a string or an object, got {type(value).__name__}"
        raise TypeError(msg)
    data = {_FIELD_ALIASES.get(key, key): item for key, item in value.items()}
    data["name"] = name
    return SlashCommand.model_validate(data)


def _preset_commands(value: object) -> Mapping[str, Any] | None:
    """プリセット側の commands からコマンド定義のマッピングを取り出す。

    リスト形式はコマンドプリセットへの参照なので対象外。
    ネストした "commands" があればそちらを優先する。
    """
    if not isinstance(value, Mapping):
        return None
    nested = value.get("commands")
    if isinstance(nested, Mapping):
        return nested
    return value


def is_config_form(value: Mapping[str, Any]) -> bool:
    """commands が設定形式（presets / files / commands のみを持つ）か判定する。"""
    return bool(value) and set(value) <= CONFIG_FORM_KEYS


# =============================================================================
# CommandResolver
# =============================================================================


class CommandResolver:
    """全ソースからスラッシュコマンドを解決し、セッションに格納する。

    Args:
        loader: コマンドプリセットのロードに使う ModuleLoader。
        session: コンパイル済みコマンドの格納先セッション。
        project_root: コマンドファイルの glob パターンの基準ディレクトリ。
    """

    def __init__(
        self, loader: ModuleLoader, session: CompilationSession, project_root: Path
    ) -> None:
        self._loader = loader
        self._session = session
        self._project_root = project_root

    def resolve(
        self,
        presets: Iterable[Mapping[str, Any]],
        plugins: Iterable[Plugin],
        config: Mapping[str, Any],
    ) -> dict[str, SlashCommand]:
        """プリセット → プラグイン → ユーザー設定の順にコマンドを適用する。

        Args:
            presets: 解決順のプリセットドキュメント。
            plugins: 宣言順のプラグイン。
            config: 変換済みのユーザー設定ドキュメント。

        Returns:
            コマンド名から SlashCommand へのマッピング（セッションの commands）。

        Raises:
            CompilerError: strict モードでコマンド定義が不正な場合。
        """
        for preset in presets:
            self._merge(_preset_commands(preset.get("commands")), "preset")
        for plugin in plugins:
            self._merge(plugin.commands, f"plugin '{plugin.name}'")

        user_commands = config.get("commands")
        if isinstance(user_commands, list):
            self._load_presets(user_commands)
        elif isinstance(user_commands, Mapping):
            if is_config_form(user_commands):
                self._load_presets(user_commands.get("presets"))
                self._load_files(user_commands.get("files"))
                self._merge(user_commands.get("commands"), "configuration")
            else:
                self._merge(user_commands, "configuration")
        return self._session.commands

    def _set(self, command: SlashCommand, source: str) -> None:
        if command.name in self._session.commands:
            logger.debug("Command '%s' overridden by %s", command.name, source)
        self._session.commands[command.name] = command

    def _merge(self, commands: object, source: str) -> None:
        """コマンド名→定義のマッピングを適用する。"""
        if commands is None:
            return
        if not isinstance(commands, Mapping):
            self._session.report(f"Commands from {source} must be an object")
            return
        for name, value in commands.items():
            try:
                command = command_from_value(str(name), value)
            except ValidationError as e:
                self._session.report(
                    f"Invalid command '{name}' from {source}: "
                    f"{_format_validation_error(e)}"
                )
                continue
            except TypeError as e:
                self._session.report(f"Invalid command '{name}' from {source}: {e}")
                continue
            self._set(command, source)

    def _load_presets(self, names: object) -> None:
        """名前で指定されたコマンドプリセットを宣言順に適用する。"""
        if names is None:
            return
        if isinstance(names, str):
            names = [names]
        if not isinstance(names, list):
            self._session.report("commands.presets must be an array of preset names")
            return
        for name in names:
            if not isinstance(name, str):
                self._session.report(f"Invalid command preset reference: {name!r}")
                continue
            preset = self._load_preset(name)
            if preset is not None:
                self._merge(_preset_commands(preset), f"command preset '{name}'")

    def _load_preset(self, name: str) -> Mapping[str, Any] | None:
        key = (ModuleKind.COMMAND_PRESET.value, name)
        cache = self._session.module_cache
        if key in cache:
            return cache[key]
        preset: Mapping[str, Any] | None = None
        try:
            raw = self._loader.load(name, ModuleKind.COMMAND_PRESET)
        except ModuleLoadError as e:
            self._session.warn(str(e))
        else:
            if raw is None:
                self._session.warn(f"Command preset '{name}' not found")
            elif not isinstance(raw, Mapping):
                self._session.warn(f"Command preset '{name}' must be an object")
            else:
                preset = sanitize(raw)
        cache[key] = preset
        return preset

    def _load_files(self, patterns: object) -> None:
        """glob パターンに一致する Markdown ファイルをコマンドとして読み込む。

        パターンはプロジェクトルートからの相対パスとして解釈し、
        各パターンの一致結果はパス順に適用する。
        """
        if patterns is None:
            return
        if isinstance(patterns, str):
            patterns = [patterns]
        if not isinstance(patterns, list):
            self._session.report("commands.files must be a glob pattern or an array")
            return
        for pattern in patterns:
            if not isinstance(pattern, str):
                self._session.report(f"Invalid command file pattern: {pattern!r}")
                continue
            matches = sorted(
                glob.glob(pattern, root_dir=self._project_root, recursive=True)
            )
            if not matches:
                logger.debug("No command files matched '%s'", pattern)
            for relative in matches:
                path = self._project_root / relative
                if path.suffix.lower() not in MARKDOWN_SUFFIXES or not path.is_file():
                    continue
                try:
                    text = path.read_text(encoding="utf-8")
                except (OSError, UnicodeDecodeError) as e:
                    self._session.warn(f"Failed to read command file {relative}: {e}")
                    continue
                self._set(command_from_markdown(path.stem, text), relative)
