from __future__ import annotations

import codecs
import logging
import os
from pathlib import Path
from typing import Optional

LOG_LEVEL_ENV = "EPUBMETA_LOG_LEVEL"
TEXT_ENCODING_ENV = "EPUBMETA_TEXT_ENCODING"
DEFAULT_LOG_LEVEL = logging.WARNING
DEFAULT_TEXT_ENCODING = "utf-8"


def read_env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value not in {None, ""}:
        return value

    file_var = os.getenv(f"{name}_FILE")
    if not file_var:
        return default

    try:
        content = Path(file_var).read_text(encoding="utf-8")
    except OSError:
        return default
    return content.rstrip("\r\n")


def parse_log_level(raw: Optional[str], default: int = DEFAULT_LOG_LEVEL) -> int:
    cleaned = (raw or "").strip()
    if not cleaned:
        return default
    if cleaned.isdigit():
        return int(cleaned)
    level = logging.getLevelName(cleaned.upper())
    return level if isinstance(level, int) else default


def log_level() -> int:
    return parse_log_level(read_env(LOG_LEVEL_ENV))


def text_encoding() -> str:
    name = (read_env(TEXT_ENCODING_ENV) or "").strip()
    if not name:
        return DEFAULT_TEXT_ENCODING
    try:
        return codecs.lookup(name).name
    except LookupError:
        return DEFAULT_TEXT_ENCODING
