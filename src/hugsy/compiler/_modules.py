"""ModuleLoader: プリセット・プラグイン・コマンドプリセットの解決とロード。

参照名の形式によって解決方法を切り替える:

- ビルトイン（"@hugsy/<name>"）: パッケージリソース → プロジェクト内 presets/ の順
- ローカルパス（"./", "../", 絶対パス）: 拡張子を補完しながら探索
- パッケージ名: エントリポイント → importlib による import
"""

from __future__ import annotations

import importlib
import importlib.util
import logging
from collections.abc import Iterator, Mapping
from enum import StrEnum
from importlib.metadata import entry_points
from importlib.resources import files
from pathlib import Path
from types import MappingProxyType, ModuleType
from typing import Any, Final, Protocol, runtime_checkable

from hugsy.compiler._document import KNOWN_FIELDS
from hugsy.config import DocumentLoadError, parse_document
from hugsy.models.plugin import PLUGIN_FIELDS

logger = logging.getLogger(__name__)

BUILTIN_PREFIXES: Final[tuple[str, ...]] = (
    "@hugsy/",
    "@hugsylabs/hugsy-compiler/presets/",
)
"""ビルトインプリセットを示す参照名の接頭辞。"""

BUILTIN_PACKAGE: Final[str] = "hugsy.presets"
"""ビルトインプリセットを収めたパッケージ。"""

_LOCAL_PREFIXES: Final[tuple[str, ...]] = ("./", "../", "/")
_DATA_SUFFIXES: Final[frozenset[str]] = frozenset({".json", ".yaml", ".yml"})
_SOURCE_SUFFIX: Final[str] = ".py"
_PACKAGE_INIT: Final[str] = "__init__.py"


class ModuleKind(StrEnum):
    """ロード対象の種別。"""

    PRESET = "preset"
    PLUGIN = "plugin"
    COMMAND_PRESET = "command-preset"


ENTRY_POINT_GROUPS: Final[Mapping[ModuleKind, str]] = MappingProxyType(
    {
        ModuleKind.PRESET: "hugsy.presets",
        ModuleKind.PLUGIN: "hugsy.plugins",
        ModuleKind.COMMAND_PRESET: "hugsy.command_presets",
    }
)
"""種別ごとのエントリポイントグループ名。"""

_MODULE_ATTRIBUTES: Final[Mapping[ModuleKind, str]] = MappingProxyType(
    {
        ModuleKind.PRESET: "preset",
        ModuleKind.PLUGIN: "plugin",
        ModuleKind.COMMAND_PRESET: "preset",
    }
)


class ModuleLoadError(Exception):
    """モジュールは存在するが、パースまたは import に失敗した。"""


@runtime_checkable
class ModuleLoader(Protocol):
    """参照名からプリセット・プラグインをロードするプロトコル。

    コンパイラは解決の優先順位だけを知り、実際の探索方法はこの実装に委ねる。
    """

    def load(self, name: str, kind: ModuleKind) -> Any:
        """参照名に対応するユニットをロードする。

        Args:
            name: プリセット・プラグインの参照名。
            kind: ロード対象の種別。

        Returns:
            設定ドキュメント（プリセット）、Plugin または辞書（プラグイン）。
            見つからない場合は None。

        Raises:
            ModuleLoadError: 見つかったがパース・import に失敗した場合。
        """
        ...


# =============================================================================
# FileSystemModuleLoader
# =============================================================================


class FileSystemModuleLoader:
    """ファイルシステムとインストール済みパッケージからユニットをロードする。

    Args:
        project_root: 相対パス参照の基準ディレクトリ。
    """

    def __init__(self, project_root: Path) -> None:
        self._project_root = project_root

    def load(self, name: str, kind: ModuleKind) -> Any:
        if name.startswith(BUILTIN_PREFIXES):
            return self._load_builtin(name)
        if name.startswith(_LOCAL_PREFIXES) or Path(name).is_absolute():
            return self._load_local(name, kind)
        return self._load_package(name, kind)

    # -------------------------------------------------------------------------
    # ビルトイン
    # -------------------------------------------------------------------------

    def _load_builtin(self, name: str) -> Any:
        """ビルトインプリセットを候補パスの順に探索する。見つからなければ None。"""
        preset_name = next(
            name.removeprefix(prefix)
            for prefix in BUILTIN_PREFIXES
            if name.startswith(prefix)
        )
        filename = f"{preset_name}.json"

        resource = files(BUILTIN_PACKAGE).joinpath(filename)
        if resource.is_file():
            return _parse_text(name, resource.read_text(encoding="utf-8"), ".json")

        local_path = self._project_root / "presets" / filename
        if local_path.is_file():
            return _read_data_file(name, local_path)

        logger.debug("Builtin preset '%s' not found", name)
        return None

    # -------------------------------------------------------------------------
    # ローカルパス
    # -------------------------------------------------------------------------

    def _local_candidates(self, name: str) -> Iterator[Path]:
        path = Path(name)
        if not path.is_absolute():
            path = self._project_root / path
        if path.suffix in _DATA_SUFFIXES or path.suffix == _SOURCE_SUFFIX:
            yield path
            return
        yield path.with_name(path.name + _SOURCE_SUFFIX)
        yield path / _PACKAGE_INIT
        for suffix in sorted(_DATA_SUFFIXES):
            yield path.with_name(path.name + suffix)

    def _load_local(self, name: str, kind: ModuleKind) -> Any:
        """ローカルパスのユニットをロードする。見つからなければ None。"""
        for candidate in self._local_candidates(name):
            if not candidate.is_file():
                continue
            if candidate.suffix == _SOURCE_SUFFIX:
                return unit_from_module(_import_file(name, candidate), kind)
            return _read_data_file(name, candidate)
        logger.debug(
            "Local %s '%s' not found under %s", kind, name, self._project_root
        )
        return None

    # -------------------------------------------------------------------------
    # パッケージ
    # -------------------------------------------------------------------------

    def _load_package(self, name: str, kind: ModuleKind) -> Any:
        """エントリポイント、次に import でユニットをロードする。見つからなければ None。"""
        group = ENTRY_POINT_GROUPS[kind]
        for entry_point in entry_points(group=group, name=name):
            try:
                loaded = entry_point.load()
            except Exception as e:
                raise ModuleLoadError(
                    f"Failed to load entry point '{name}' from group '{group}': {e}"
                ) from e
            if isinstance(loaded, ModuleType):
                return unit_from_module(loaded, kind)
            return loaded

        module_name = name.replace("-", "_")
        if not all(part.isidentifier() for part in module_name.split(".")):
            logger.debug("'%s' is not an importable module name", name)
            return None
        try:
            found = importlib.util.find_spec(module_name) is not None
        except ModuleNotFoundError:
            found = False
        if not found:
            logger.debug("Package %s '%s' not found", kind, name)
            return None
        try:
            module = importlib.import_module(module_name)
        except Exception as e:
            raise ModuleLoadError(f"Failed to import '{name}': {e}") from e
        return unit_from_module(module, kind)


# =============================================================================
# 内部ヘルパー
# =============================================================================


def _parse_text(name: str, text: str, suffix: str) -> Any:
    try:
        return parse_document(text, suffix)
    except DocumentLoadError as e:
        raise ModuleLoadError(f"Failed to parse '{name}': {e}") from e


def _read_data_file(name: str, path: Path) -> Any:
    """JSON / YAML ファイルを読み込む。"""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ModuleLoadError(f"Failed to read '{name}' ({path}): {e}") from e
    return _parse_text(name, text, path.suffix)


def _import_file(name: str, path: Path) -> ModuleType:
    """Python ソースファイルをモジュールとして import する。

    sys.modules には登録しない。
    """
    module_name = f"_hugsy_local_{path.parent.name}_{path.stem}".replace("-", "_")
    search_locations = [str(path.parent)] if path.name == _PACKAGE_INIT else None
    spec = importlib.util.spec_from_file_location(
        module_name, path, submodule_search_locations=search_locations
    )
    if spec is None or spec.loader is None:
        raise ModuleLoadError(f"Failed to import '{name}': cannot load {path}")
    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        raise ModuleLoadError(f"Failed to import '{name}': {e}") from e
    return module


def unit_from_module(module: ModuleType, kind: ModuleKind) -> Any:
    """import したモジュールからプリセット・プラグインを取り出す。

    "preset" / "plugin" 属性があればそれを返し、無ければ設定フィールド・
    プラグインフィールドと同名のモジュール属性から辞書を組み立てる。

    Args:
        module: import 済みのモジュール。
        kind: ロード対象の種別。

    Returns:
        属性値、または組み立てた辞書。
    """
    exported = getattr(module, _MODULE_ATTRIBUTES[kind], None)
    if exported is not None:
        return exported
    fields = PLUGIN_FIELDS if kind is ModuleKind.PLUGIN else KNOWN_FIELDS
    return {field: getattr(module, field) for field in fields if hasattr(module, field)}
