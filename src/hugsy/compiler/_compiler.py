"""Compiler: 設定ドキュメントから settings.json を生成するパイプライン。

前処理 → プリセット解決 → スカラー継承 → プラグインロード → 変換 →
プラグイン検査 → パーミッション / フック / env / コマンドのマージ →
出力の組み立てと検証、の順に実行する。
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from hugsy.compiler._commands import CommandResolver
from hugsy.compiler._document import prepare_document
from hugsy.compiler._errors import CompilerError
from hugsy.compiler._hooks import compile_hooks
from hugsy.compiler._merge import compile_environment, inherit_preset_scalars
from hugsy.compiler._modules import (
    FileSystemModuleLoader,
    ModuleKind,
    ModuleLoader,
    ModuleLoadError,
)
from hugsy.compiler._permissions import merge_permissions
from hugsy.compiler._presets import PresetResolver
from hugsy.compiler._progress import loading_status, log_compilation_summary
from hugsy.compiler._session import CompilationSession
from hugsy.compiler._transform import apply_transforms, run_plugin_validations
from hugsy.compiler._validate import validate_settings
from hugsy.models._base import HugsyBaseModel
from hugsy.models.command import SlashCommand
from hugsy.models.config import CompilerOptions
from hugsy.models.plugin import Plugin
from hugsy.models.settings import (
    PASSTHROUGH_FIELDS,
    CompiledSettings,
    HookMatcherGroup,
    PermissionSettings,
)

logger = logging.getLogger(__name__)


class CompilationResult(HugsyBaseModel):
    """compile_config の結果。

    Attributes:
        settings: コンパイル済みの settings.json。
        commands: コマンド名から SlashCommand へのマッピング。
        warnings: コンパイル中に記録された回復可能な問題。
    """

    settings: CompiledSettings
    commands: dict[str, SlashCommand]
    warnings: tuple[str, ...] = ()


class Compiler:
    """設定ドキュメントのコンパイラ。

    compile() の呼び出しごとに新しい CompilationSession を作成するため、
    同一インスタンスで複数回コンパイルしても状態は持ち越されない。

    Args:
        options: コンパイラの動作オプション。None の場合はデフォルト値。
        project_root: 相対パス参照とコマンドファイル探索の基準ディレクトリ。
            None の場合はカレントディレクトリ。
        loader: プリセット・プラグインのローダー。None の場合は
            project_root を基準とする FileSystemModuleLoader。
    """

    def __init__(
        self,
        options: CompilerOptions | None = None,
        *,
        project_root: Path | None = None,
        loader: ModuleLoader | None = None,
    ) -> None:
        self._options = options if options is not None else CompilerOptions()
        self._project_root = project_root if project_root is not None else Path.cwd()
        self._loader: ModuleLoader = (
            loader if loader is not None else FileSystemModuleLoader(self._project_root)
        )
        self._session = CompilationSession(strict=self._options.strict)

    @property
    def compiled_commands(self) -> dict[str, SlashCommand]:
        """直近の compile() で解決されたスラッシュコマンド。"""
        return dict(self._session.commands)

    @property
    def warnings(self) -> tuple[str, ...]:
        """直近の compile() で記録された回復可能な問題。"""
        return tuple(self._session.warnings)

    async def compile(self, config: object) -> CompiledSettings:
        """設定ドキュメントをコンパイルする。

        Args:
            config: ユーザーの設定ドキュメント（マッピング）。

        Returns:
            コンパイル済みの settings.json。

        Raises:
            CircularDependencyError: プリセットの extends が循環している場合。
            CompilerError: ルートがオブジェクトでない場合、または strict モードで
                回復可能なエラーが見つかった場合。
        """
        session = CompilationSession(strict=self._options.strict)
        self._session = session
        verbose = self._options.verbose

        working = prepare_document(config, session)

        extends = working.get("extends")
        with loading_status(
            "Loading presets...", len(_names(extends)), verbose=verbose
        ):
            presets = PresetResolver(self._loader, session).resolve(extends)
        preset_documents = list(presets.values())
        logger.debug("Resolved %d preset(s): %s", len(presets), ", ".join(presets))
        working = inherit_preset_scalars(preset_documents, working)

        plugin_names = _names(working.get("plugins"))
        with loading_status(
            "Loading plugins...", len(plugin_names), verbose=verbose
        ):
            plugins = self._load_plugins(plugin_names, session)
        working = await apply_transforms(plugins, working, session, verbose=verbose)
        await run_plugin_validations(plugins, working, session)

        permissions = merge_permissions(
            preset_documents, (p.permissions for p in plugins), working, session
        )
        hooks = compile_hooks(
            preset_documents, (p.hooks for p in plugins), working, session
        )
        env = compile_environment(
            preset_documents, (p.env for p in plugins), working, session
        )
        commands = CommandResolver(self._loader, session, self._project_root).resolve(
            preset_documents, plugins, working
        )

        settings = _assemble(permissions, hooks, env, working, session)
        # マージ段階で報告済みの問題（パーミッション形式など）は重ねて報告しない
        errors = [
            error
            for error in validate_settings(settings.to_document())
            if error not in session.warnings
        ]
        if errors:
            if session.strict:
                raise CompilerError(
                    "Generated settings failed validation", {"errors": errors}
                )
            for error in errors:
                session.warn(f"Settings validation: {error}")

        log_compilation_summary(settings, presets, list(session.plugins), len(commands))
        return settings

    def _load_plugins(
        self, names: list[str], session: CompilationSession
    ) -> list[Plugin]:
        """プラグインを宣言順にロードし、セッションのレジストリに登録する。

        見つからないプラグインは警告してスキップする。同名の重複宣言は最初の 1 つのみ。
        """
        for name in names:
            if name in session.plugins:
                continue
            try:
                raw = self._loader.load(name, ModuleKind.PLUGIN)
            except ModuleLoadError as e:
                session.warn(str(e))
                continue
            if raw is None:
                session.warn(f"Plugin '{name}' not found; skipping")
                continue
            try:
                plugin = _to_plugin(raw, name)
            except TypeError as e:
                session.warn(f"Invalid plugin '{name}': {e}")
                continue
            session.plugins[name] = plugin
            logger.debug("Loaded plugin '%s' (%s)", name, plugin.name)
        return list(session.plugins.values())


def _names(value: object) -> list[str]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [item for item in value if isinstance(item, str)]
    return []


def _to_plugin(raw: object, name: str) -> Plugin:
    if isinstance(raw, Plugin):
        return raw
    if isinstance(raw, Mapping):
        return Plugin.from_mapping(raw, default_name=name)
    msg = f"expected a plugin object, got {type(raw).__name__}"
    raise TypeError(msg)


def _assemble(
    permissions: PermissionSettings,
    hooks: dict[str, tuple[HookMatcherGroup, ...]],
    env: dict[str, str],
    working: Mapping[str, Any],
    session: CompilationSession,
) -> CompiledSettings:
    """マージ結果と設定済みのスカラー系フィールドから出力を組み立てる。

    プラグインの変換で不正になったフィールドは報告して出力から除外する。
    """
    data: dict[str, Any] = {"permissions": permissions, "hooks": hooks, "env": env}
    for field in PASSTHROUGH_FIELDS:
        if working.get(field) is not None:
            data[field] = working[field]
    try:
        return CompiledSettings.model_validate(data)
    except ValidationError as e:
        invalid = sorted({str(detail["loc"][0]) for detail in e.errors()})
        session.report(
            f"Dropping invalid settings field(s): {', '.join(invalid)}",
            fields=invalid,
        )
        return CompiledSettings.model_validate(
            {key: value for key, value in data.items() if key not in invalid}
        )


async def compile_config(
    config: object,
    *,
    options: CompilerOptions | None = None,
    project_root: Path | None = None,
    loader: ModuleLoader | None = None,
) -> CompilationResult:
    """設定ドキュメントをコンパイルし、設定・コマンド・警告をまとめて返す。

    Args:
        config: ユーザーの設定ドキュメント。
        options: コンパイラの動作オプション。
        project_root: 相対パス参照の基準ディレクトリ。
        loader: プリセット・プラグインのローダー。

    Returns:
        CompilationResult。

    Raises:
        CircularDependencyError: プリセットの extends が循環している場合。
        CompilerError: コンパイルを継続できない場合。
    """
    compiler = Compiler(options, project_root=project_root, loader=loader)
    settings = await compiler.compile(config)
    return CompilationResult(
        settings=settings,
        commands=compiler.compiled_commands,
        warnings=compiler.warnings,
    )
