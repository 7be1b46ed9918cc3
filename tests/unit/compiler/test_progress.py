"""進捗表示と概要ログのテスト。"""

from __future__ import annotations

import io
import logging

import pytest
from rich.console import Console

from hugsy.compiler._progress import loading_status, log_compilation_summary
from hugsy.models.settings import CompiledSettings, PermissionSettings


class TestLoadingStatus:
    """loading_status が本体を実行することを検証する。"""

    def test_body_runs_with_console(self) -> None:
        console = Console(file=io.StringIO(), force_terminal=True)
        executed = []
        with loading_status("Loading presets...", 3, console=console):
            executed.append(True)
        assert executed == [True]

    def test_single_item_shows_nothing(self) -> None:
        buffer = io.StringIO()
        with loading_status("Loading presets...", 1, console=Console(file=buffer)):
            pass
        assert buffer.getvalue() == ""

    def test_verbose_shows_nothing(self) -> None:
        buffer = io.StringIO()
        console = Console(file=buffer, force_terminal=True)
        with loading_status("Loading presets...", 5, verbose=True, console=console):
            pass
        assert buffer.getvalue() == ""


class TestLogCompilationSummary:
    """log_compilation_summary の出力を検証する。"""

    def test_summary_in_load_order(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.DEBUG, logger="hugsy.compiler._progress")
        settings = CompiledSettings(
            permissions=PermissionSettings(allow=("Read",), deny=("Bash",)),
            env={"A": "1"},
        )
        log_compilation_summary(
            settings, {"child": {"extends": "base"}, "base": {}}, ["git"], 2
        )
        assert "Presets (load order): base, child" in caplog.text
        assert "Plugins: git" in caplog.text
        assert "Permissions: 1 allow, 0 ask, 1 deny" in caplog.text
        assert "Slash commands: 2" in caplog.text

    def test_silent_below_debug(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.INFO, logger="hugsy.compiler._progress")
        log_compilation_summary(CompiledSettings(), {}, [], 0)
        assert caplog.text == ""
