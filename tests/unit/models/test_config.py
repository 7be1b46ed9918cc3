"""CompilerOptions モデルのテスト。"""

import pytest
from pydantic import ValidationError

from hugsy.models.config import CompilerOptions


class TestCompilerOptions:
    """CompilerOptions のデフォルト値と厳格な型検証を検証する。"""

    def test_defaults(self) -> None:
        options = CompilerOptions()
        assert options.strict is False
        assert options.verbose is False

    def test_string_bool_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CompilerOptions.model_validate({"strict": "true"})

    def test_unknown_option_rejected(self) -> None:
        with pytest.raises(ValidationError, match="extra_forbidden"):
            CompilerOptions.model_validate({"parallel": True})
