"""スラッシュコマンドのドメインモデル。"""

from __future__ import annotations

from pydantic import ConfigDict, Field, StrictStr

from hugsy.models._base import CamelCaseModel


class SlashCommand(CamelCaseModel):
    """コンパイル済みのスラッシュコマンド。

    name が識別子。優先度の高いソースのコマンドは同名のコマンドを丸ごと置き換える。
    frontmatter に任意のキーが含まれ得るため、未知のフィールドは無視する。
    """

    model_config = ConfigDict(extra="ignore")

    name: StrictStr = Field(min_length=1)
    content: StrictStr
    description: StrictStr | None = None
    category: StrictStr | None = None
    argument_hint: StrictStr | None = None
    model: StrictStr | None = None
    allowed_tools: tuple[str, ...] | None = None
