"""Tests for the cudabind exception hierarchy."""

from pathlib import Path

from cudabind.errors import (
    CompileError,
    ConfigurationError,
    CudaBindError,
    KernelPathError,
    LinkError,
    ProcessLaunchError,
    UnsupportedArchitectureError,
)


def test_hierarchy():
    """Test that every error derives from CudaBindError."""
    assert issubclass(UnsupportedArchitectureError, ConfigurationError)
    for cls in (ConfigurationError, KernelPathError, ProcessLaunchError, CompileError, LinkError):
        assert issubclass(cls, CudaBindError)


def test_compile_error_carries_full_diagnostics():
    """Test that CompileError includes command, exit code and both streams."""
    err = CompileError(
        ["nvcc", "--ptx", "src/bad.cu"],
        1,
        "some stdout",
        "src/bad.cu(3): error: syntax error",
        source=Path("src/bad.cu"),
    )
    message = str(err)
    assert message.startswith("nvcc error while compiling src")
    assert "(exit code 1): nvcc --ptx src/bad.cu" in message
    assert "# stdout\nsome stdout" in message
    assert "# stderr\nsrc/bad.cu(3): error: syntax error" in message
    assert err.returncode == 1


def test_link_error_without_source():
    """Test the LinkError message when no source is involved."""
    err = LinkError(["/usr/local/cuda/bin/nvcc", "--lib", "-o", "libk.a"], 2, "", "ar failed")
    assert str(err).startswith("nvcc error while linking (exit code 2)")


def test_process_launch_error_includes_command():
    """Test that ProcessLaunchError includes the attempted command."""
    err = ProcessLaunchError(["nvcc", "-IC:/Program Files/x"], "nvcc failed to start.")
    assert str(err) == 'nvcc failed to start.\nCommand: nvcc "-IC:/Program Files/x"'


def test_kernel_path_error_lists_every_missing_path():
    """Test that KernelPathError names every missing path."""
    err = KernelPathError([Path("a.cu"), Path("b.cu")])
    assert err.missing == [Path("a.cu"), Path("b.cu")]
    assert "a.cu" in str(err) and "b.cu" in str(err)
