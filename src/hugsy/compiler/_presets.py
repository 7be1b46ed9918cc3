"""PresetResolver: extends による再帰的なプリセット継承の解決。

分岐ごとの訪問チェーン（循環検出用）と、セッション全体の解決済みメモ
（重複ロード防止用）を分けて管理する。菱形継承は許容し、真の循環のみを
CircularDependencyError とする。
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from hugsy.compiler._document import prepare_document
from hugsy.compiler._errors import CircularDependencyError
from hugsy.compiler._graph import DependencyCycle, extends_of
from hugsy.compiler._modules import ModuleKind, ModuleLoader, ModuleLoadError
from hugsy.compiler._session import CompilationSession

logger = logging.getLogger(__name__)


class PresetResolver:
    """プリセットチェーンを深さ優先で解決し、祖先を先にセッションへ登録する。

    Args:
        loader: プリセットのロードに使う ModuleLoader。
        session: 解決済みプリセットとキャッシュを保持するセッション。
    """

    def __init__(self, loader: ModuleLoader, session: CompilationSession) -> None:
        self._loader = loader
        self._session = session

    def resolve(
        self, extends: str | Sequence[str] | None
    ) -> dict[str, dict[str, Any]]:
        """extends に列挙されたプリセットとその祖先をすべて解決する。

        兄弟プリセットは宣言順、各プリセットの祖先はそのプリセットより先に並ぶ。

        Args:
            extends: プリセット名、またはプリセット名のリスト。

        Returns:
            解決済みプリセット（名前→正規化済みドキュメント）。セッションの
            presets と同一オブジェクト。

        Raises:
            CircularDependencyError: extends に循環がある場合（常に致命的）。
            CompilerError: strict モードでプリセットの構造検証に失敗した場合。
        """
        for name in extends_of({"extends": extends}):
            self._resolve_one(name, ())
        return self._session.presets

    def _resolve_one(self, name: str, branch: tuple[str, ...]) -> None:
        """1 つのプリセットを再帰的に解決する。

        branch は現在の分岐で訪問中のプリセット名の列で、再帰呼び出しごとに
        新しいタプルとして渡される。
        """
        if name in branch:
            raise CircularDependencyError(DependencyCycle.from_path([*branch, name]))
        if name in self._session.presets:
            return

        preset = self._load(name)
        if preset is None:
            return
        for parent in extends_of(preset):
            self._resolve_one(parent, (*branch, name))

        if preset:
            self._session.presets[name] = preset
            logger.debug("Resolved preset '%s'", name)

    def _load(self, name: str) -> dict[str, Any] | None:
        """プリセットをロードし、前処理済みのドキュメントを返す。

        ロード結果はセッションのキャッシュに保持する。見つからない場合と
        パースに失敗した場合は警告を記録して None を返す。
        """
        key = (ModuleKind.PRESET.value, name)
        cache = self._session.module_cache
        if key not in cache:
            cache[key] = self._load_uncached(name)
        return cache[key]

    def _load_uncached(self, name: str) -> dict[str, Any] | None:
        try:
            raw = self._loader.load(name, ModuleKind.PRESET)
        except ModuleLoadError as e:
            self._session.warn(str(e))
            return None
        if raw is None:
            self._session.warn(f"Preset '{name}' not found; treating it as empty")
            return None
        if not isinstance(raw, Mapping):
            self._session.warn(
                f"Preset '{name}' must be an object, got {type(raw).__name__}"
            )
            return None
        return prepare_document(raw, self._session, source=name)
