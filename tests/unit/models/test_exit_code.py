"""ExitCode IntEnum のテスト。"""

from enum import IntEnum

import pytest

from hugsy.models.exit_code import ExitCode


class TestExitCodeValues:
    """ExitCode IntEnum の値を検証する。"""

    def test_success_is_zero(self) -> None:
        assert ExitCode.SUCCESS == 0

    def test_compilation_error_is_one(self) -> None:
        assert ExitCode.COMPILATION_ERROR == 1

    def test_invalid_settings_is_two(self) -> None:
        assert ExitCode.INVALID_SETTINGS == 2

    def test_input_error_is_four(self) -> None:
        assert ExitCode.INPUT_ERROR == 4

    def test_has_four_members(self) -> None:
        assert len(ExitCode) == 4


class TestExitCodeIsIntEnum:
    """ExitCode が IntEnum であることを検証する。"""

    def test_is_int_enum_subclass(self) -> None:
        assert issubclass(ExitCode, IntEnum)

    def test_can_be_used_as_process_exit_code(self) -> None:
        """int() で変換可能である（sys.exit() に渡せる）。"""
        assert int(ExitCode.INPUT_ERROR) == 4

    def test_unused_value_raises_value_error(self) -> None:
        with pytest.raises(ValueError):
            ExitCode(3)
