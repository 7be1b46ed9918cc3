"""HugsyBaseModel / CamelCaseModel と共通ユーティリティのテスト。"""

from enum import StrEnum

import pytest
from pydantic import ValidationError

from hugsy.models._base import CamelCaseModel, HugsyBaseModel, normalize_enum_value


class SampleModel(HugsyBaseModel):
    """テスト用のサブクラス。"""

    name: str
    value: int


class SampleCamelModel(CamelCaseModel):
    """テスト用の camelCase モデル。"""

    argument_hint: str | None = None


class Color(StrEnum):
    """テスト用の StrEnum。"""

    RED = "red"
    DARK_BLUE = "darkBlue"


class TestHugsyBaseModelExtraForbid:
    """extra="forbid" により未定義フィールドが拒否されることを検証。"""

    def test_valid_fields_accepted(self) -> None:
        model = SampleModel(name="test", value=42)
        assert model.name == "test"
        assert model.value == 42

    def test_extra_field_rejected(self) -> None:
        """未定義フィールドを渡すと ValidationError が発生する。"""
        with pytest.raises(ValidationError, match="extra_forbidden"):
            SampleModel(name="test", value=42, unknown_field="x")  # type: ignore[call-arg]


class TestHugsyBaseModelFrozen:
    """frozen=True により構築後のフィールド変更が禁止されることを検証。"""

    def test_field_assignment_rejected(self) -> None:
        model = SampleModel(name="test", value=42)
        with pytest.raises(ValidationError, match="frozen"):
            model.name = "changed"


class TestCamelCaseModel:
    """エイリアス名・フィールド名の両方で構築できることを検証。"""

    def test_accepts_alias(self) -> None:
        model = SampleCamelModel.model_validate({"argumentHint": "[x]"})
        assert model.argument_hint == "[x]"

    def test_accepts_field_name(self) -> None:
        model = SampleCamelModel.model_validate({"argument_hint": "[x]"})
        assert model.argument_hint == "[x]"

    def test_dumps_by_alias(self) -> None:
        model = SampleCamelModel(argument_hint="[x]")
        assert model.model_dump(by_alias=True) == {"argumentHint": "[x]"}

    def test_inherits_extra_forbid(self) -> None:
        with pytest.raises(ValidationError, match="extra_forbidden"):
            SampleCamelModel.model_validate({"other": 1})


class TestNormalizeEnumValue:
    """normalize_enum_value のケース非依存正規化を検証。"""

    def test_upper_case_matches(self) -> None:
        assert normalize_enum_value("RED", Color) == "red"

    def test_camel_case_value_restored(self) -> None:
        assert normalize_enum_value("DARKBLUE", Color) == "darkBlue"

    def test_unknown_string_passes_through(self) -> None:
        assert normalize_enum_value("green", Color) == "green"

    def test_non_string_passes_through(self) -> None:
        assert normalize_enum_value(1, Color) == 1
