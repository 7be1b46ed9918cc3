"""設定ファイルローダー。

TOML のオプション設定（~/.config/hugsy/config.toml, pyproject.toml の
[tool.hugsy]）と、JSON / YAML の設定ドキュメントを読み込む。
パース結果のバリデーションは呼び出し側が担当する。
"""

from __future__ import annotations

import json
import tomllib
from pathlib import Path
from typing import Any, Final

import yaml

_TOOL_SECTION_KEY: Final[str] = "tool"
_HUGSY_SECTION_KEY: Final[str] = "hugsy"
_YAML_SUFFIXES: Final[frozenset[str]] = frozenset({".yml", ".yaml"})


class DocumentLoadError(Exception):
    """設定ドキュメントの読み込み・パースに失敗した。"""


def load_toml_config(path: Path) -> dict[str, object]:
    """TOML 設定ファイルを読み込み辞書として返す。

    Raises:
        tomllib.TOMLDecodeError: TOML 構文エラーの場合。
        PermissionError: 読み取り権限がない場合。
        FileNotFoundError: ファイルが存在しない場合。
    """
    with path.open("rb") as f:
        return tomllib.load(f)


def load_pyproject_config(path: Path) -> dict[str, object] | None:
    """pyproject.toml から [tool.hugsy] セクションを読み込む。

    Args:
        path: pyproject.toml のパス。

    Returns:
        [tool.hugsy] セクションの辞書。セクションが存在しなければ None。

    Raises:
        tomllib.TOMLDecodeError: TOML 構文エラーの場合。
        FileNotFoundError: ファイルが存在しない場合。
        PermissionError: 読み取り権限がない場合。
    """
    with path.open("rb") as f:
        data = tomllib.load(f)
    tool = data.get(_TOOL_SECTION_KEY)
    if not isinstance(tool, dict):
        return None
    hugsy = tool.get(_HUGSY_SECTION_KEY)
    if not isinstance(hugsy, dict):
        return None
    return hugsy


def parse_document(text: str, suffix: str) -> Any:
    """設定ドキュメントのテキストを拡張子に応じてパースする。

    .yml / .yaml は YAML、それ以外は JSON として扱う。空の YAML は空辞書になる。
    ルートがマッピングかどうかの検査は行わない。

    Args:
        text: ドキュメントのテキスト。
        suffix: 拡張子（例: ".json"）。

    Returns:
        パース結果。

    Raises:
        DocumentLoadError: 構文エラーの場合。
    """
    if suffix.lower() in _YAML_SUFFIXES:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise DocumentLoadError(f"Invalid YAML: {e}") from e
        return {} if data is None else data
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise DocumentLoadError(f"Invalid JSON: {e}") from e


def load_document(path: Path) -> Any:
    """JSON / YAML の設定ドキュメントを読み込む。

    Args:
        path: ドキュメントのパス。

    Returns:
        パース結果。

    Raises:
        DocumentLoadError: 構文エラーの場合。
        OSError: ファイルが存在しない場合やアクセスエラーの場合。
    """
    text = path.read_text(encoding="utf-8")
    try:
        return parse_document(text, path.suffix)
    except DocumentLoadError as e:
        raise DocumentLoadError(f"{path}: {e}") from e
