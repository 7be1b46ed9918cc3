"""設定コンパイラ。

公開 API:
    Compiler: 設定ドキュメントを settings.json にコンパイルする。
    compile_config: Compiler を使ったコンパイルの簡易関数。
    CompilerError / CircularDependencyError: コンパイルエラー。
"""

from hugsy.compiler._commands import (
    CommandResolver,
    command_from_markdown,
    parse_frontmatter,
)
from hugsy.compiler._compiler import CompilationResult, Compiler, compile_config
from hugsy.compiler._document import prepare_document, sanitize
from hugsy.compiler._errors import CircularDependencyError, CompilerError
from hugsy.compiler._graph import (
    DependencyCycle,
    detect_cycles,
    format_cycle_error,
    get_load_order,
)
from hugsy.compiler._hooks import compile_hooks, normalize_matcher
from hugsy.compiler._modules import (
    FileSystemModuleLoader,
    ModuleKind,
    ModuleLoader,
    ModuleLoadError,
)
from hugsy.compiler._permissions import merge_permissions
from hugsy.compiler._presets import PresetResolver
from hugsy.compiler._session import CompilationSession
from hugsy.compiler._transform import apply_transforms, run_plugin_validations
from hugsy.compiler._validate import validate_settings

__all__ = [
    "CircularDependencyError",
    "CommandResolver",
    "CompilationResult",
    "CompilationSession",
    "Compiler",
    "CompilerError",
    "DependencyCycle",
    "FileSystemModuleLoader",
    "ModuleKind",
    "ModuleLoadError",
    "ModuleLoader",
    "PresetResolver",
    "apply_transforms",
    "command_from_markdown",
    "compile_config",
    "compile_hooks",
    "detect_cycles",
    "format_cycle_error",
    "get_load_order",
    "merge_permissions",
    "normalize_matcher",
    "parse_frontmatter",
    "prepare_document",
    "run_plugin_validations",
    "sanitize",
    "validate_settings",
]
