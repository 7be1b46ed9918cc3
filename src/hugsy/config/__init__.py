"""設定管理モジュール。"""

from hugsy.config._loader import DocumentLoadError, load_document, parse_document
from hugsy.config._locator import (
    CONFIG_DOCUMENT_NAMES,
    find_config_document,
    find_project_root,
)
from hugsy.config._resolver import resolve_options

__all__ = [
    "CONFIG_DOCUMENT_NAMES",
    "DocumentLoadError",
    "find_config_document",
    "find_project_root",
    "load_document",
    "parse_document",
    "resolve_options",
]
