"""Tests for settings loading."""

from pathlib import Path

import pytest

from kw_interchange.config import load_settings
from kw_interchange.errors import ConfigurationError


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Drop any KWI_* variables inherited from the shell."""
    for name in ("BATCH_DIR", "DOCUMENT_TYPE_GROUP", "DOWNLOAD_DIR",
                 "REPOSITORY_SNAPSHOT", "LOG_LEVEL", "SHOW_PROGRESS"):
        monkeypatch.delenv(f"KWI_{name}", raising=False)


def test_defaults():
    """Test settings without any environment."""
    settings = load_settings()

    assert settings.batch_dir == Path("./batch")
    assert settings.document_type_group is None
    assert settings.resolved_download_dir == Path("./batch") / "downloads"
    assert settings.log_level == "INFO"
    assert settings.show_progress is True


def test_environment_values(monkeypatch):
    """Test KWI_* variables are read and converted."""
    monkeypatch.setenv("KWI_BATCH_DIR", "/data/batch")
    monkeypatch.setenv("KWI_DOCUMENT_TYPE_GROUP", "TAX")
    monkeypatch.setenv("KWI_DOWNLOAD_DIR", "/data/out")
    monkeypatch.setenv("KWI_LOG_LEVEL", "debug")
    monkeypatch.setenv("KWI_SHOW_PROGRESS", "false")
    monkeypatch.setenv("UNRELATED", "x")

    settings = load_settings()

    assert settings.batch_dir == Path("/data/batch")
    assert settings.document_type_group == "TAX"
    assert settings.resolved_download_dir == Path("/data/out")
    assert settings.log_level == "DEBUG"
    assert settings.show_progress is False


def test_empty_variable_falls_back_to_default(monkeypatch):
    """Test an empty KWI_* variable counts as unset."""
    monkeypatch.setenv("KWI_BATCH_DIR", "")

    assert load_settings().batch_dir == Path("./batch")


def test_overrides_win_and_none_is_ignored(monkeypatch):
    """Test explicit overrides beat the environment."""
    monkeypatch.setenv("KWI_DOCUMENT_TYPE_GROUP", "TAX")
    monkeypatch.setenv("KWI_BATCH_DIR", "/env")

    settings = load_settings(document_type_group="HR", batch_dir=None)

    assert settings.document_type_group == "HR"
    assert settings.batch_dir == Path("/env")


@pytest.mark.parametrize("name,value", [("KWI_LOG_LEVEL", "LOUD"), ("KWI_SHOW_PROGRESS", "maybe")])
def test_invalid_values(monkeypatch, name, value):
    """Test invalid settings raise ConfigurationError."""
    monkeypatch.setenv(name, value)
    with pytest.raises(ConfigurationError):
        load_settings()
