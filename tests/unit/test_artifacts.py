"""Tests for runtime artifact loading."""

import pytest

from cudabind.artifacts import artifact_path, load_artifact
from cudabind.errors import ConfigurationError


def test_load_from_explicit_directory(tmp_path):
    """Test loading an artifact from a given directory."""
    (tmp_path / "attention.ptx").write_text(".version 8.0\n", encoding="utf-8")
    assert load_artifact("attention.ptx", tmp_path) == ".version 8.0\n"


def test_load_uses_out_dir_env(tmp_path, monkeypatch):
    """Test that artifacts are found via CUDABIND_OUT_DIR."""
    (tmp_path / "softmax.ptx").write_text("ptx", encoding="utf-8")
    monkeypatch.setenv("CUDABIND_OUT_DIR", str(tmp_path))
    assert load_artifact("softmax.ptx") == "ptx"
    assert artifact_path("softmax.ptx") == tmp_path / "softmax.ptx"


def test_missing_directory_configuration():
    """Test loading with no artifact directory configured."""
    with pytest.raises(ConfigurationError, match="CUDABIND_OUT_DIR is not set"):
        load_artifact("attention.ptx")


def test_missing_artifact(tmp_path):
    """Test that a missing artifact raises FileNotFoundError."""
    with pytest.raises(FileNotFoundError):
        load_artifact("nope.ptx", tmp_path)
