"""Shared fixtures: temp PathConfig, fake storage backends."""

import pytest

from config.paths import PathConfig
from helpers import CONFIG_KEYS, FakeBackend
from memory.schema import SystemMessage
from storage.base import StorageError


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in CONFIG_KEYS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def tmp_paths(tmp_path, clean_env) -> PathConfig:
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    (config_dir / "apertureai.env").write_text(
        "OPENAI_API_KEY=sk-test\nOPENAI_MODEL=gpt-test\n",
        encoding="utf-8",
    )
    paths = PathConfig(root=tmp_path)
    paths.load_config()
    return paths


@pytest.fixture
def system_message() -> SystemMessage:
    return SystemMessage("You are ApertureAI, a helpful AI assistant.")


@pytest.fixture
def drive_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def onedrive_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def failing_backend() -> FakeBackend:
    return FakeBackend(error=StorageError("HTTP 404: not found"))
