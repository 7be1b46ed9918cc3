"""CLI テスト共通フィクスチャ。"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path
from unittest.mock import patch

import pytest

PATCH_USER_CONFIG_PATH = "hugsy.config._resolver.get_user_config_path"


@pytest.fixture(autouse=True)
def _isolate_user_config(tmp_path: Path) -> Iterator[None]:
    """ユーザーグローバル設定を読み込まないようにする。"""
    with patch(PATCH_USER_CONFIG_PATH, return_value=tmp_path / "no-user-config.toml"):
        yield


@pytest.fixture(autouse=True)
def _restore_root_logger() -> Iterator[None]:
    """CLI が差し替えたルートロガーのハンドラーとレベルを元に戻す。"""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """.hugsyrc を置くプロジェクトディレクトリを作成し、カレントにする。"""
    root = tmp_path / "project"
    root.mkdir()
    monkeypatch.chdir(root)
    return root
