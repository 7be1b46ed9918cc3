"""ExitCode: 終了コードの定義。"""

from enum import IntEnum


class ExitCode(IntEnum):
    """プロセス終了コード。

    1-2 はコンパイル・検証の結果に対応し、4 は CLI 層固有の入力エラー。
    """

    SUCCESS = 0
    COMPILATION_ERROR = 1
    INVALID_SETTINGS = 2
    INPUT_ERROR = 4
