"""設定ファイル探索。

.hugsyrc.* ドキュメントと pyproject.toml をカレント→親方向に探索する。
"""

from __future__ import annotations

import stat as stat_module
from collections.abc import Callable
from pathlib import Path
from typing import Final

CONFIG_DOCUMENT_NAMES: Final[tuple[str, ...]] = (
    ".hugsyrc.json",
    ".hugsyrc.yml",
    ".hugsyrc.yaml",
)
"""探索対象の設定ドキュメント名（同一ディレクトリ内での優先順）。"""

_OPTIONS_FILE_NAME: Final[str] = "config.toml"
_PYPROJECT_FILE_NAME: Final[str] = "pyproject.toml"


def _find_ancestor(
    start: Path,
    target_names: tuple[str, ...],
    check: Callable[[int], bool],
) -> Path | None:
    """start から親方向に target_names を探索し、最初にマッチした候補パスを返す。

    各ディレクトリでは target_names の順に候補を確認する。

    Args:
        start: 探索開始ディレクトリ。
        target_names: 探索対象の名前（例: (".hugsyrc.json",)）。
        check: stat.st_mode に適用する種別チェック関数（例: stat.S_ISREG）。

    Returns:
        最初にマッチした候補パス（start/…/target_name）。見つからなければ None。

    Raises:
        OSError: 探索パス上のアクセス権限エラー等。
    """
    current = start.resolve()
    while True:
        for target_name in target_names:
            candidate = current / target_name
            try:
                st = candidate.stat()
            except FileNotFoundError:
                continue
            if check(st.st_mode):
                return candidate
        parent = current.parent
        if parent == current:
            return None
        current = parent


def find_config_document(start: Path) -> Path | None:
    """start ディレクトリから親方向に .hugsyrc ドキュメントを探索する。

    Args:
        start: 探索開始ディレクトリ。

    Returns:
        最初に見つかった設定ドキュメントのパス。見つからなければ None。

    Raises:
        OSError: 探索パス上のアクセス権限エラー等。
    """
    return _find_ancestor(start, CONFIG_DOCUMENT_NAMES, stat_module.S_ISREG)


def find_project_root(start: Path) -> Path | None:
    """設定ドキュメントを含むディレクトリをプロジェクトルートとして返す。

    Args:
        start: 探索開始ディレクトリ。

    Returns:
        .hugsyrc ドキュメントを含むディレクトリ。見つからなければ None。

    Raises:
        OSError: 探索パス上のアクセス権限エラー等。
    """
    document = find_config_document(start)
    return document.parent if document is not None else None


def find_pyproject_toml(start: Path) -> Path | None:
    """start ディレクトリから親方向に pyproject.toml を探索する。

    Args:
        start: 探索開始ディレクトリ。

    Returns:
        最初に見つかった pyproject.toml のフルパス。見つからなければ None。

    Raises:
        OSError: 探索パス上のアクセス権限エラー等。
    """
    return _find_ancestor(start, (_PYPROJECT_FILE_NAME,), stat_module.S_ISREG)


def get_user_config_path() -> Path:
    """ユーザーグローバル設定ファイルのパスを返す。

    ~/.config/hugsy/config.toml を固定パスとして返す（存在チェックは行わない）。

    Raises:
        RuntimeError: ホームディレクトリを特定できない場合。
    """
    return Path.home() / ".config" / "hugsy" / _OPTIONS_FILE_NAME
