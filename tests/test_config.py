from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from ragchat.config import DEFAULT_BASE_URL, load_config


def test_missing_file_yields_defaults(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("RAGCHAT_BASE_URL", raising=False)
    config = load_config(tmp_path / "absent.yml")
    assert config.service.base_url == DEFAULT_BASE_URL
    assert config.prober.interval_s == 3.0
    assert config.session.auto_open_delay_s == 3.0


def test_yaml_values_and_env_override(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "ragchat.yml"
    path.write_text(
        "service:\n  base_url: http://localhost:8000/\n  timeout_s: 5\n"
        f"storage:\n  data_dir: {tmp_path}\n"
        "prober:\n  interval_s: 1.5\n",
        encoding="utf-8",
    )
    monkeypatch.delenv("RAGCHAT_BASE_URL", raising=False)
    config = load_config(path)
    assert config.service.base_url == "http://localhost:8000"
    assert config.service.timeout_s == 5
    assert config.prober.interval_s == 1.5
    assert config.storage.durable_path == tmp_path / "durable.json"

    monkeypatch.setenv("RAGCHAT_BASE_URL", "http://override:9000")
    assert load_config(path).service.base_url == "http://override:9000"


def test_invalid_values_are_rejected(tmp_path: Path) -> None:
    path = tmp_path / "ragchat.yml"
    path.write_text("prober:\n  interval_s: 0\n", encoding="utf-8")
    with pytest.raises(ValidationError):
        load_config(path)
