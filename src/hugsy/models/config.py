"""コンパイラ実行オプションのモデル。"""

from __future__ import annotations

from pydantic import StrictBool

from hugsy.models._base import HugsyBaseModel


class CompilerOptions(HugsyBaseModel):
    """コンパイラの動作オプション。

    strict: エラーを警告に格下げせず例外として送出する。
    verbose: プラグイン変換の差分やコンパイル概要を DEBUG ログに出力する。
    """

    strict: StrictBool = False
    verbose: StrictBool = False
