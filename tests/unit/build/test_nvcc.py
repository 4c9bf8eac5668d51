"""Tests for nvcc command construction."""

from pathlib import Path

from cudabind.build.nvcc import NvccCommandBuilder
from cudabind.build.units import KernelUnit

OUT = Path("out")


def _unit(ext="ptx"):
    return KernelUnit.for_source(Path("src/attention.cu"), OUT, ext)


def test_ptx_command_minimal():
    """Test the minimal PTX command line."""
    cmd = NvccCommandBuilder(86).ptx_command(_unit())
    assert cmd == [
        "nvcc",
        "--gpu-architecture=sm_86",
        "--ptx",
        "--default-stream",
        "per-thread",
        "--output-directory",
        "out",
        str(Path("src/attention.cu")),
    ]


def test_ptx_command_full():
    """Test PTX flag order with extra args, includes and ccbin."""
    builder = NvccCommandBuilder(
        80,
        extra_args=["-O3", "--use_fast_math"],
        include_dirs=[Path("inc/b"), Path("inc/a"), Path("inc/b")],
        ccbin="/usr/bin/g++-12",
    )
    cmd = builder.ptx_command(_unit())
    tail = cmd[7:]
    assert tail == [
        "-O3",
        "--use_fast_math",
        f"-I{Path('inc/a')}",
        f"-I{Path('inc/b')}",
        "-allow-unsupported-compiler",
        "-ccbin",
        "/usr/bin/g++-12",
        str(Path("src/attention.cu")),
    ]


def test_object_command():
    """Test the object compile command line."""
    cmd = NvccCommandBuilder(75, extra_args=["-lineinfo"]).object_command(_unit("o"))
    assert cmd == [
        "nvcc",
        "--gpu-architecture=sm_75",
        "-c",
        "-o",
        str(OUT / "attention.o"),
        "--default-stream",
        "per-thread",
        "-lineinfo",
        str(Path("src/attention.cu")),
    ]


def test_source_is_always_last():
    """Test that the source path ends every compile command."""
    builder = NvccCommandBuilder(86, extra_args=["-G"], include_dirs=[Path("inc")], ccbin="clang")
    assert builder.ptx_command(_unit())[-1] == str(Path("src/attention.cu"))
    assert builder.object_command(_unit("o"))[-1] == str(Path("src/attention.cu"))


def test_archive_command():
    """Test the nvcc --lib command line."""
    cmd = NvccCommandBuilder(86).archive_command(Path("libk.a"), [OUT / "a.o", OUT / "b.o"])
    assert cmd == ["nvcc", "--lib", "-o", "libk.a", str(OUT / "a.o"), str(OUT / "b.o")]
