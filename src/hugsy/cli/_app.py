"""CliApp: Typer アプリケーション定義。

compile: 設定ドキュメントをコンパイルし settings.json を stdout に出力する。
commands: 解決されたスラッシュコマンドを一覧表示する。
validate: 既存の settings.json を検証する。

進捗・ログ・エラーは stderr、結果は stdout に出力する。
エラーメッセージには解決方法を含める。
"""

from __future__ import annotations

import asyncio
import importlib.metadata
import json
import logging
import sys
import tomllib
from pathlib import Path
from typing import Annotated

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler

from hugsy.compiler import (
    CircularDependencyError,
    CompilationResult,
    CompilerError,
    compile_config,
    format_cycle_error,
    validate_settings,
)
from hugsy.config import (
    CONFIG_DOCUMENT_NAMES,
    DocumentLoadError,
    find_config_document,
    load_document,
    resolve_options,
)
from hugsy.models.exit_code import ExitCode

app = typer.Typer(
    name="hugsy",
    help="Compile layered Hugsy configuration into Claude Code settings.",
    add_completion=False,
)

_LIST_NAME_WIDTH = 24
_LIST_CATEGORY_WIDTH = 16


def _version_callback(value: bool) -> None:
    """--version 指定時にバージョン番号を出力して終了する。"""
    if value:
        print(importlib.metadata.version("hugsy"))
        raise typer.Exit()


def main() -> None:
    """CLI エントリポイント。pyproject.toml の [project.scripts] から呼び出される。"""
    app()


@app.callback()
def main_callback(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=_version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """Compile layered Hugsy configuration into Claude Code settings."""


# =============================================================================
# 共通ヘルパー
# =============================================================================


def _configure_logging(verbose: bool) -> None:
    """ルートロガーに stderr 向けの RichHandler を設定する。"""
    handler = RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=False,
    )
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[handler],
        force=True,
    )


def _locate_document(config_path: Path | None) -> Path:
    """指定されたパス、またはカレントから探索した設定ドキュメントのパスを返す。"""
    if config_path is not None:
        if not config_path.is_file():
            print(
                f"Error: Configuration file not found: {config_path}\n"
                "Check the path, or omit it to search for .hugsyrc files.",
                file=sys.stderr,
            )
            raise typer.Exit(code=ExitCode.INPUT_ERROR)
        return config_path

    document = find_config_document(Path.cwd())
    if document is None:
        print(
            "Error: No configuration file found.\n"
            f"Create one of {', '.join(CONFIG_DOCUMENT_NAMES)} in your project, "
            "or pass the path explicitly.",
            file=sys.stderr,
        )
        raise typer.Exit(code=ExitCode.INPUT_ERROR)
    return document


def _run_compile(
    config_path: Path | None,
    strict: bool | None,
    verbose: bool | None,
) -> CompilationResult:
    """設定ドキュメントを探索・読み込みし、コンパイルする。

    失敗時はエラーを stderr に出力し、対応する終了コードで終了する。
    """
    document_path = _locate_document(config_path).resolve()
    project_root = document_path.parent

    try:
        options = resolve_options(
            project_root, cli_overrides={"strict": strict, "verbose": verbose}
        )
    except (ValidationError, tomllib.TOMLDecodeError) as e:
        print(
            f"Error: Invalid hugsy options: {e}\n"
            "Check [tool.hugsy] in pyproject.toml and ~/.config/hugsy/config.toml.",
            file=sys.stderr,
        )
        raise typer.Exit(code=ExitCode.INPUT_ERROR) from None
    _configure_logging(options.verbose)

    try:
        raw = load_document(document_path)
    except (DocumentLoadError, OSError) as e:
        print(
            f"Error: Cannot read configuration: {e}\n"
            f"Check {document_path.name} for syntax errors.",
            file=sys.stderr,
        )
        raise typer.Exit(code=ExitCode.INPUT_ERROR) from None

    try:
        return asyncio.run(
            compile_config(raw, options=options, project_root=project_root)
        )
    except CircularDependencyError as e:
        print(format_cycle_error(e.cycle), file=sys.stderr)
        raise typer.Exit(code=ExitCode.COMPILATION_ERROR) from None
    except CompilerError as e:
        print(f"Error: {e}", file=sys.stderr)
        for error in e.details.get("errors", ()):
            print(f"  - {error}", file=sys.stderr)
        print(
            "Fix the reported problems, or run without --strict to treat them "
            "as warnings.",
            file=sys.stderr,
        )
        raise typer.Exit(code=ExitCode.COMPILATION_ERROR) from None


_ConfigArgument = Annotated[
    Path | None,
    typer.Argument(help="Configuration file. Searched upward from cwd if omitted."),
]
_StrictOption = Annotated[
    bool | None,
    typer.Option("--strict/--no-strict", help="Treat recoverable problems as errors."),
]
_VerboseOption = Annotated[
    bool | None,
    typer.Option(
        "--verbose/--no-verbose", "-v", help="Show detailed compilation logs."
    ),
]


# =============================================================================
# サブコマンド
# =============================================================================


@app.command()
def compile(
    config_path: _ConfigArgument = None,
    strict: _StrictOption = None,
    verbose: _VerboseOption = None,
) -> None:
    """Compile the configuration and print settings.json to stdout."""
    result = _run_compile(config_path, strict, verbose)
    print(json.dumps(result.settings.to_document(), indent=2, ensure_ascii=False))


@app.command()
def commands(
    config_path: _ConfigArgument = None,
    strict: _StrictOption = None,
    verbose: _VerboseOption = None,
) -> None:
    """List the slash commands resolved from the configuration."""
    result = _run_compile(config_path, strict, verbose)
    if not result.commands:
        print("No slash commands defined.", file=sys.stderr)
        return

    header = (
        f"{'NAME':<{_LIST_NAME_WIDTH}}"
        f"{'CATEGORY':<{_LIST_CATEGORY_WIDTH}}"
        "DESCRIPTION"
    )
    print(header)
    print("-" * len(header))
    for name in sorted(result.commands):
        command = result.commands[name]
        print(
            f"/{name:<{_LIST_NAME_WIDTH - 1}}"
            f"{command.category or '-':<{_LIST_CATEGORY_WIDTH}}"
            f"{command.description or ''}"
        )


@app.command()
def validate(
    settings_path: Annotated[
        Path, typer.Argument(help="Path to an existing settings.json.")
    ],
) -> None:
    """Validate an existing Claude Code settings.json."""
    try:
        settings = json.loads(settings_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        print(
            f"Error: Cannot read settings: {e}\n"
            "Check that the file exists and contains valid JSON.",
            file=sys.stderr,
        )
        raise typer.Exit(code=ExitCode.INPUT_ERROR) from None
    if not isinstance(settings, dict):
        print("Error: Settings must be a JSON object.", file=sys.stderr)
        raise typer.Exit(code=ExitCode.INVALID_SETTINGS)

    errors = validate_settings(settings)
    if errors:
        print(f"{settings_path}: {len(errors)} problem(s) found", file=sys.stderr)
        for error in errors:
            print(f"  - {error}", file=sys.stderr)
        raise typer.Exit(code=ExitCode.INVALID_SETTINGS)
    print(f"{settings_path}: valid")
