"""
Command-line interface for cudabind.

This module provides the `cudabind` CLI tool for building CUDA kernels
outside of a Python build script.
"""

import argparse
import logging
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

from cudabind import __version__
from cudabind.build import Builder, BuildSettings
from cudabind.discovery import glob_paths
from cudabind.env import get_log_level
from cudabind.errors import CudaBindError
from cudabind.output import init_timer, log_header, set_verbose

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Used when neither --out-dir nor CUDABIND_OUT_DIR is given
DEFAULT_OUT_SUBDIR = Path("build") / "kernels"

_console_handler: Optional[logging.Handler] = None


@dataclass
class BuildArgs:
    """Arguments shared by the ptx and lib commands."""

    project_dir: Path
    out_dir: Optional[Path] = None
    kernels: Optional[str] = None
    includes: Optional[str] = None
    extra_args: list[str] = field(default_factory=list)
    compute_cap: Optional[str] = None
    ccbin: Optional[str] = None
    cuda_root: Optional[Path] = None
    jobs: Optional[int] = None
    verbose: bool = False


@dataclass
class PtxArgs(BuildArgs):
    """Arguments for the ptx command."""

    bindings: Optional[Path] = None


@dataclass
class LibArgs(BuildArgs):
    """Arguments for the lib command."""

    out_file: Optional[Path] = None


def setup_logging(verbose: bool = False) -> None:
    """Configure the root logger from --verbose and CUDABIND_LOG_LEVEL."""
    global _console_handler
    level = get_log_level(verbose)

    logger = logging.getLogger()
    logger.setLevel(level)

    # Replace rather than stack handlers when main() runs more than once
    if _console_handler is not None:
        logger.removeHandler(_console_handler)
    _console_handler = logging.StreamHandler(sys.stderr)
    _console_handler.setLevel(level)
    _console_handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT))
    logger.addHandler(_console_handler)


def settings_from_args(args: BuildArgs) -> BuildSettings:
    """Build settings from environment defaults overlaid with CLI options."""
    settings = BuildSettings.from_env(args.project_dir)

    if args.out_dir is not None:
        settings.out_dir = args.out_dir
    elif settings.out_dir is None:
        settings.out_dir = args.project_dir / DEFAULT_OUT_SUBDIR

    if args.kernels:
        settings.kernel_paths = glob_paths(args.kernels, args.project_dir)
    if args.includes:
        settings.include_paths = glob_paths(args.includes, args.project_dir)
    if args.extra_args:
        settings.extra_args = list(args.extra_args)
    if args.compute_cap is not None:
        settings.compute_cap = args.compute_cap
    if args.ccbin is not None:
        settings.ccbin = args.ccbin
    if args.cuda_root is not None:
        settings.cuda_root = args.cuda_root
    if args.jobs is not None:
        settings.num_jobs = args.jobs

    return settings


def _run(args: BuildArgs, build) -> None:
    """Run a build callable with the CLI's error reporting and exit codes."""
    init_timer()
    set_verbose(args.verbose)
    log_header("cudabind", __version__)

    try:
        start_time = time.time()
        config = settings_from_args(args).resolve()
        builder = Builder(config, verbose=args.verbose, show_progress=not args.verbose)
        summary = build(builder)
        build_time = time.time() - start_time

        print()
        print("\033[1;32m✓ Build successful!\033[0m")
        print()
        print(summary)
        print(f"Build time: {build_time:.2f}s")
        sys.exit(0)

    except CudaBindError as e:
        print()
        print("\033[1;31m✗ Build failed!\033[0m")
        print()
        print(str(e))
        sys.exit(1)

    except PermissionError as e:
        print()
        print("\033[1;31m✗ Error: Permission denied\033[0m")
        print()
        print(str(e))
        sys.exit(1)

    except KeyboardInterrupt:
        print()
        print("\033[1;33m✗ Build interrupted\033[0m")
        sys.exit(130)

    except Exception as e:
        print()
        print("\033[1;31m✗ Unexpected error\033[0m")
        print()
        print(f"{type(e).__name__}: {e}")

        if args.verbose:
            import traceback

            print()
            print("Traceback:")
            print(traceback.format_exc())

        sys.exit(1)


def ptx_command(args: PtxArgs) -> None:
    """Compile kernels to PTX and optionally write the bindings module.

    Examples:
        cudabind ptx                              # Build src/**/*.cu
        cudabind ptx --bindings mypkg/kernels.py  # Also write bindings
        cudabind ptx --compute-cap 8.6 -j 4       # Fixed target, 4 jobs
    """

    def build(builder: Builder) -> str:
        bindings = builder.build_ptx()
        report = builder.last_report
        lines = [f"Kernels: {report.unit_count} ({len(report.compiled)} compiled)"]
        if args.bindings is not None:
            written = bindings.write(args.bindings)
            lines.append(f"Bindings: {args.bindings}" + ("" if written else " (unchanged)"))
        return "\n".join(lines)

    _run(args, build)


def lib_command(args: LibArgs) -> None:
    """Compile kernels to objects and archive them into one library.

    Examples:
        cudabind lib build/libkernels.a
        cudabind lib build/libkernels.a --arg=-O3 --arg=--use_fast_math
    """

    def build(builder: Builder) -> str:
        report = builder.build_lib(args.out_file)
        state = "rebuilt" if report.compiled else "up to date"
        return f"Library: {args.out_file} ({state}, {report.unit_count} kernels)"

    _run(args, build)


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-C",
        "--project-dir",
        type=Path,
        default=Path.cwd(),
        help="Project directory (default: current directory)",
    )
    parser.add_argument(
        "-o",
        "--out-dir",
        type=Path,
        default=None,
        help="Output directory (default: $CUDABIND_OUT_DIR or build/kernels)",
    )
    parser.add_argument(
        "--kernels",
        default=None,
        help="Glob of kernel sources, relative to the project (default: src/**/*.cu)",
    )
    parser.add_argument(
        "--includes",
        default=None,
        help="Glob of headers to stage, relative to the project (default: src/**/*.cuh)",
    )
    parser.add_argument(
        "--arg",
        dest="extra_args",
        action="append",
        default=[],
        help="Extra nvcc argument (repeatable, order preserved; use --arg=-O3 for dashed values)",
    )
    parser.add_argument(
        "--compute-cap",
        default=None,
        help="Target compute capability, e.g. 86 or 8.6 (default: $CUDA_COMPUTE_CAP or detected GPU)",
    )
    parser.add_argument(
        "--ccbin",
        default=None,
        help="Host compiler for nvcc (default: $NVCC_CCBIN)",
    )
    parser.add_argument(
        "--cuda-root",
        type=Path,
        default=None,
        help="CUDA installation root (default: auto-detect)",
    )
    parser.add_argument(
        "-j",
        "--jobs",
        type=int,
        default=None,
        help="Maximum parallel nvcc processes (default: $CUDABIND_NUM_JOBS or physical cores)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show verbose build output",
    )


def _common_kwargs(parsed_args: argparse.Namespace) -> dict:
    return dict(
        project_dir=parsed_args.project_dir,
        out_dir=parsed_args.out_dir,
        kernels=parsed_args.kernels,
        includes=parsed_args.includes,
        extra_args=list(parsed_args.extra_args),
        compute_cap=parsed_args.compute_cap,
        ccbin=parsed_args.ccbin,
        cuda_root=parsed_args.cuda_root,
        jobs=parsed_args.jobs,
        verbose=parsed_args.verbose,
    )


def main(argv: Optional[Sequence[str]] = None) -> None:
    """cudabind - Incremental CUDA kernel builds."""
    parser = argparse.ArgumentParser(
        prog="cudabind",
        description="cudabind - Incremental CUDA kernel builds",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"cudabind {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # PTX command
    ptx_parser = subparsers.add_parser(
        "ptx",
        help="Compile kernels to PTX and generate bindings",
    )
    ptx_parser.add_argument(
        "--bindings",
        type=Path,
        default=None,
        help="Write the bindings module to this file",
    )
    _add_common_arguments(ptx_parser)

    # Library command
    lib_parser = subparsers.add_parser(
        "lib",
        help="Compile kernels into a static library",
    )
    lib_parser.add_argument(
        "out_file",
        type=Path,
        help="Library file to produce (e.g. build/libkernels.a)",
    )
    _add_common_arguments(lib_parser)

    parsed_args = parser.parse_args(argv)

    # If no command specified, show help
    if not parsed_args.command:
        parser.print_help()
        sys.exit(0)

    # Validate project directory exists
    if not parsed_args.project_dir.exists():
        print(f"\033[1;31m✗ Error: Path does not exist: {parsed_args.project_dir}\033[0m")
        sys.exit(2)
    if not parsed_args.project_dir.is_dir():
        print(f"\033[1;31m✗ Error: Path is not a directory: {parsed_args.project_dir}\033[0m")
        sys.exit(2)

    setup_logging(parsed_args.verbose)

    if parsed_args.command == "ptx":
        ptx_command(PtxArgs(bindings=parsed_args.bindings, **_common_kwargs(parsed_args)))
    elif parsed_args.command == "lib":
        lib_command(LibArgs(out_file=parsed_args.out_file, **_common_kwargs(parsed_args)))


if __name__ == "__main__":
    main()
