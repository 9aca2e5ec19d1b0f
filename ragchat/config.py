"""Configuration loading and validation using Pydantic models."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from .catalog import DEFAULT_GREETING

DEFAULT_BASE_URL = "https://rag-based-chatbot-96uz.onrender.com"
CONFIG_ENV = "RAGCHAT_CONFIG"
BASE_URL_ENV = "RAGCHAT_BASE_URL"


def _default_data_dir() -> Path:
    base = os.environ.get("LOCALAPPDATA") if os.name == "nt" else os.environ.get("XDG_DATA_HOME")
    if base:
        return Path(base) / "ragchat"
    if os.name == "nt":
        return Path.home() / "AppData" / "Local" / "ragchat"
    return Path.home() / ".local" / "share" / "ragchat"


class ServiceConfig(BaseModel):
    base_url: str = Field(
        DEFAULT_BASE_URL, description="Root URL of the question-answering service."
    )
    timeout_s: float = Field(30.0, gt=0, description="Per-request timeout.")
    api_key: Optional[str] = Field(None, description="Optional bearer token.")

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if not value:
            raise ValueError("base_url must not be empty")
        return value


class ProberConfig(BaseModel):
    enabled: bool = Field(True, description="Poll the health endpoint until it reports ready.")
    interval_s: float = Field(3.0, gt=0, description="Delay between health probes.")


class SessionConfig(BaseModel):
    auto_open_delay_s: float = Field(
        3.0, ge=0, description="Delay before the chat auto-opens on the landing view."
    )
    greeting: str = Field(DEFAULT_GREETING, description="Canned first assistant message.")


class StorageConfig(BaseModel):
    data_dir: Path = Field(default_factory=_default_data_dir)
    durable_file: str = Field("durable.json", description="Store surviving across sessions.")
    sessions_dir: str = Field("sessions", description="Directory holding named session stores.")

    @property
    def durable_path(self) -> Path:
        return Path(self.data_dir) / self.durable_file

    def session_path(self, name: str) -> Path:
        safe = "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in name) or "default"
        return Path(self.data_dir) / self.sessions_dir / f"{safe}.json"


class LoggingConfig(BaseModel):
    level: str = Field("INFO")
    log_dir: Optional[Path] = None


class AppConfig(BaseModel):
    service: ServiceConfig = ServiceConfig()
    prober: ProberConfig = ProberConfig()
    session: SessionConfig = SessionConfig()
    storage: StorageConfig = StorageConfig()
    logging: LoggingConfig = LoggingConfig()


def default_config_path() -> Path:
    return Path(os.environ.get(CONFIG_ENV, "ragchat.yml"))


def load_config(path: Path | str | None = None) -> AppConfig:
    """Load YAML configuration from disk, falling back to defaults."""

    config_path = Path(path) if path is not None else default_config_path()
    data: dict = {}
    if config_path.exists():
        with config_path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config root must be a mapping: {config_path}")
    base_url = os.environ.get(BASE_URL_ENV)
    if base_url:
        data.setdefault("service", {})["base_url"] = base_url
    return AppConfig.model_validate(data)
