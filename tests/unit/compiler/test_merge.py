"""env のマージとスカラー継承のテスト。"""

from __future__ import annotations

import pytest

from hugsy.compiler._errors import CompilerError
from hugsy.compiler._merge import compile_environment, inherit_preset_scalars
from hugsy.compiler._session import CompilationSession


class TestCompileEnvironment:
    """プリセット < プラグイン < ユーザー設定 の優先度を検証する。"""

    def test_precedence(self, session: CompilationSession) -> None:
        env = compile_environment(
            [{"env": {"A": "preset", "B": "preset"}}],
            [{"B": "plugin", "C": "plugin"}],
            {"env": {"C": "user"}},
            session,
        )
        assert env == {"A": "preset", "B": "plugin", "C": "user"}

    def test_later_preset_wins(self, session: CompilationSession) -> None:
        env = compile_environment(
            [{"env": {"A": "first"}}, {"env": {"A": "second"}}], [], {}, session
        )
        assert env == {"A": "second"}

    def test_non_string_from_plugin_dropped(self, session: CompilationSession) -> None:
        env = compile_environment([], [{"PORT": 8080}], {}, session)
        assert env == {}
        assert session.warnings == [
            "Invalid env value for 'PORT': expected string, got int"
        ]

    def test_non_string_raises_in_strict(
        self, strict_session: CompilationSession
    ) -> None:
        with pytest.raises(CompilerError, match="Invalid env value for 'PORT'"):
            compile_environment([], [{"PORT": 8080}], {}, strict_session)


class TestInheritPresetScalars:
    """スカラー系フィールドの継承を検証する。"""

    def test_later_preset_wins(self) -> None:
        merged = inherit_preset_scalars(
            [{"model": "haiku"}, {"model": "sonnet", "includeCoAuthoredBy": True}], {}
        )
        assert merged == {"model": "sonnet", "includeCoAuthoredBy": True}

    def test_user_value_wins(self) -> None:
        merged = inherit_preset_scalars([{"model": "sonnet"}], {"model": "opus"})
        assert merged == {"model": "opus"}

    def test_collection_fields_not_inherited(self) -> None:
        merged = inherit_preset_scalars([{"env": {"A": "1"}}], {})
        assert merged == {}
