"""Structured logging configuration built on top of loguru."""

from __future__ import annotations

import os
import re
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

_SECRET_PATTERNS = (
    re.compile(r"(Bearer\s+)[A-Za-z0-9._~+/=-]+"),
    re.compile(r"((?:api_key|apikey|token)\s*[=:]\s*)[^\s,;]+", re.IGNORECASE),
)


def _default_log_dir() -> Path:
    if sys.platform == "win32":
        base = os.environ.get("LOCALAPPDATA")
        if base:
            return Path(base) / "ragchat" / "logs"
        return Path.home() / "AppData" / "Local" / "ragchat" / "logs"
    state_home = os.environ.get("XDG_STATE_HOME")
    if state_home:
        return Path(state_home) / "ragchat" / "logs"
    return Path.home() / ".local" / "state" / "ragchat" / "logs"


def redact(text: str) -> str:
    for pattern in _SECRET_PATTERNS:
        text = pattern.sub(r"\1[REDACTED]", text)
    return text


def _redact_record(record) -> None:
    record["message"] = redact(record["message"])


def configure_logging(log_dir: Path | str | None = None, level: str = "INFO") -> None:
    """Configure Loguru sinks for console and optional file output."""

    logger.remove()
    logger.configure(extra={"component": "app"}, patcher=_redact_record)

    log_format = (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{extra[component]}</cyan> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
        "<level>{message}</level>"
    )

    logger.add(
        sys.stdout,
        format=log_format,
        colorize=True,
        level=level,
    )

    if log_dir is None:
        return

    path = Path(log_dir)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.warning("File logging disabled; cannot create {}: {}", path, exc)
        return
    logger.add(
        path / "ragchat.log",
        rotation="1 day",
        retention="14 days",
        compression="gz",
        level=level,
        backtrace=False,
        diagnose=False,
        format=log_format,
    )


def get_logger(name: Optional[str] = None):
    """Return a child logger with contextualized name."""

    if name:
        return logger.bind(component=name)
    return logger
