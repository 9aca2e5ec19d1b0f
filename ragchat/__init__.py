"""Conversational client for a retrieval-augmented question-answering service."""

from __future__ import annotations

from .config import AppConfig, load_config
from .logging_utils import configure_logging
from .runtime import ChatRuntime
from .session import ChatSession, SessionState, SessionView

__all__ = [
    "AppConfig",
    "ChatRuntime",
    "ChatSession",
    "SessionState",
    "SessionView",
    "configure_logging",
    "load_config",
]
