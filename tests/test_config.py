"""Tests for env-driven settings"""

from __future__ import annotations

from pathlib import Path

from api.responders import DefaultResponder
from core.config import Settings


def test_settings_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("STORAGE_PATH", str(tmp_path))
    monkeypatch.setenv("ALLOWED_EXTENSIONS", '[".jpg", ".png"]')
    monkeypatch.setenv("COPY_CHUNK_SIZE", "8192")

    s = Settings(_env_file=None)
    assert s.STORAGE_PATH == str(tmp_path)
    assert s.ALLOWED_EXTENSIONS == [".jpg", ".png"]
    assert s.ALLOWED_METHODS == ["POST"]
    assert s.COPY_CHUNK_SIZE == 8192


def test_upload_configuration(tmp_path):
    responder = DefaultResponder()
    s = Settings(_env_file=None, STORAGE_PATH=str(tmp_path), ALLOWED_EXTENSIONS=[".txt"])
    config = s.upload_configuration(responder)

    assert config.storage_path == Path(tmp_path)
    assert config.allowed_extensions == frozenset({".txt"})
    assert config.temp_dir is None
    assert config.chunk_size == 4096
    assert config.responder is responder
