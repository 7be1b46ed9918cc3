"""CompilationSession のテスト。"""

from __future__ import annotations

import pytest

from hugsy.compiler._errors import CompilerError
from hugsy.compiler._session import CompilationSession


class TestReport:
    """report の strict / 非 strict の振り分けを検証する。"""

    def test_records_warning(self, session: CompilationSession) -> None:
        session.report("something odd", field="model")
        assert session.warnings == ["something odd"]

    def test_raises_in_strict(self, strict_session: CompilationSession) -> None:
        with pytest.raises(CompilerError, match="something odd") as exc_info:
            strict_session.report("something odd", field="model")
        assert exc_info.value.details == {"field": "model"}
        assert strict_session.warnings == []

    def test_warn_never_raises(self, strict_session: CompilationSession) -> None:
        strict_session.warn("just a warning")
        assert strict_session.warnings == ["just a warning"]
