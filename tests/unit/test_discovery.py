"""Tests for default path discovery."""

from pathlib import Path
from unittest.mock import patch

import pytest

from cudabind.discovery import default_includes, default_kernels, find_cuda_root, glob_paths
from cudabind.errors import ConfigurationError


def test_default_kernels_are_sorted_and_recursive(kernel_tree):
    """Test default kernel discovery under src/."""
    project, kernels, _ = kernel_tree
    assert default_kernels(project) == sorted(kernels)


def test_default_includes(kernel_tree):
    """Test default header discovery under src/."""
    project, _, _ = kernel_tree
    assert default_includes(project) == [project / "src" / "common.cuh"]


def test_glob_relative_to_root(kernel_tree):
    """Test that relative patterns resolve against the root."""
    project, _, _ = kernel_tree
    assert glob_paths("src/ops/*.cu", project) == [project / "src" / "ops" / "softmax.cu"]


def test_glob_ignores_directories(tmp_path):
    """Test that directories matching a pattern are skipped."""
    (tmp_path / "dir.cu").mkdir()
    (tmp_path / "real.cu").write_text("", encoding="utf-8")
    assert glob_paths("*.cu", tmp_path) == [tmp_path / "real.cu"]


def test_glob_no_matches_is_empty(tmp_path):
    """Test that a pattern with no matches yields nothing."""
    assert glob_paths("src/**/*.cu", tmp_path) == []


@pytest.mark.parametrize("pattern", ["", "   "])
def test_empty_pattern_raises(pattern):
    """Test that an empty glob pattern is a configuration error."""
    with pytest.raises(ConfigurationError, match="Invalid glob pattern"):
        glob_paths(pattern)


class TestFindCudaRoot:
    def _make_root(self, path: Path) -> Path:
        (path / "include").mkdir(parents=True)
        (path / "include" / "cuda.h").write_text("", encoding="utf-8")
        return path

    def test_env_candidate_wins(self, tmp_path, monkeypatch):
        """Test that CUDA_PATH is preferred when it holds cuda.h."""
        root = self._make_root(tmp_path / "cuda")
        monkeypatch.setenv("CUDA_PATH", str(root))
        assert find_cuda_root() == root

    def test_skips_candidates_without_header(self, tmp_path, monkeypatch):
        """Test that candidates without cuda.h are skipped."""
        (tmp_path / "empty").mkdir()
        root = self._make_root(tmp_path / "toolkit")
        monkeypatch.setenv("CUDA_PATH", str(tmp_path / "empty"))
        monkeypatch.setenv("CUDA_TOOLKIT_ROOT_DIR", str(root))
        assert find_cuda_root() == root

    def test_none_when_nothing_found(self, tmp_path):
        """Test that no CUDA root yields None."""
        with patch("cudabind.discovery.STANDARD_CUDA_ROOTS", (tmp_path / "missing",)):
            assert find_cuda_root() is None
