"""コンパイル進捗の stderr 表示と概要ログ。

TTY の場合はプリセット・プラグインのロード中に Rich のスピナーを表示する。
verbose モードでは DEBUG ログと重ならないようスピナーを出さない。
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from typing import Any

from rich.console import Console

from hugsy.compiler._graph import extends_of, get_load_order
from hugsy.models.settings import CompiledSettings

logger = logging.getLogger(__name__)


@contextmanager
def loading_status(
    message: str,
    count: int,
    *,
    verbose: bool = False,
    console: Console | None = None,
) -> Iterator[None]:
    """ロード対象が複数ある場合にスピナーを表示するコンテキストマネージャ。

    Args:
        message: スピナーの横に表示するメッセージ。
        count: ロード対象の数。1 以下ならスピナーを表示しない。
        verbose: True の場合はスピナーを表示しない。
        console: 出力先の Console。None の場合は stderr が TTY のときのみ表示する。
    """
    if verbose or count <= 1 or (console is None and not sys.stderr.isatty()):
        yield
        return
    active_console = console or Console(file=sys.stderr)
    with active_console.status(message, spinner="dots"):
        yield


def log_compilation_summary(
    settings: CompiledSettings,
    presets: Mapping[str, Mapping[str, Any]],
    plugins: Sequence[str],
    command_count: int,
) -> None:
    """コンパイル結果の概要を DEBUG ログに出力する。"""
    if not logger.isEnabledFor(logging.DEBUG):
        return
    order = get_load_order(
        {name: extends_of(preset) for name, preset in presets.items()}
    )
    logger.debug("Compilation summary:")
    logger.debug("  Presets (load order): %s", ", ".join(order or presets) or "(none)")
    logger.debug("  Plugins: %s", ", ".join(plugins) or "(none)")
    permissions = settings.permissions
    logger.debug(
        "  Permissions: %d allow, %d ask, %d deny",
        len(permissions.allow),
        len(permissions.ask),
        len(permissions.deny),
    )
    logger.debug("  Environment variables: %d", len(settings.env))
    logger.debug("  Hook events: %s", ", ".join(settings.hooks) or "(none)")
    logger.debug("  Slash commands: %d", command_count)
