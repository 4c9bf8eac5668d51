"""Flake8 plugin to enforce safe process launching.

Every nvcc and nvidia-smi invocation must go through
cudabind.subprocess_utils so that no console window flashes up on Windows
and no child process inherits the build's stdin.

Error Codes:
    SUB001: subprocess.run() - use safe_run() instead
    SUB002: subprocess.Popen() - use safe_run() instead
    SUB003: subprocess.call() - use safe_run() instead
    SUB004: subprocess.check_call() - use safe_run() instead
    SUB005: subprocess.check_output() - use safe_run() instead
    SUB006: os.system() - use safe_run() instead

Both ``import subprocess as sp`` and ``from subprocess import run`` forms
are tracked.

Usage:
    flake8 --select=SUB src/
"""

import ast
from typing import Any, Generator, Optional, Tuple, Type

_WRAPPERS = "cudabind.subprocess_utils"


class SubprocessSafetyChecker:
    """Flake8 plugin to check for unsafe process launching."""

    name = "cudabind-subprocess-safety"
    version = "0.1.0"

    ERRORS = {
        "SUB001": f"SUB001 Direct subprocess.run() call - use safe_run() from {_WRAPPERS}",
        "SUB002": f"SUB002 Direct subprocess.Popen() call - use safe_run() from {_WRAPPERS}",
        "SUB003": f"SUB003 Direct subprocess.call() call - use safe_run() from {_WRAPPERS}",
        "SUB004": f"SUB004 Direct subprocess.check_call() call - use safe_run() from {_WRAPPERS}",
        "SUB005": f"SUB005 Direct subprocess.check_output() call - use safe_run() from {_WRAPPERS}",
        "SUB006": f"SUB006 os.system() call - use safe_run() from {_WRAPPERS}",
    }

    UNSAFE_METHODS = {
        "run": "SUB001",
        "Popen": "SUB002",
        "call": "SUB003",
        "check_call": "SUB004",
        "check_output": "SUB005",
    }

    # The wrappers themselves and their tests
    EXCLUDED_FILES = ("subprocess_utils.py", "test_subprocess_utils.py")

    def __init__(self, tree: ast.AST, filename: str = "(none)") -> None:
        self._tree = tree
        self._filename = filename

    def run(self) -> Generator[Tuple[int, int, str, Type[Any]], None, None]:
        """Yield (line, column, message, checker_class) for each violation."""
        if self._filename.replace("\\", "/").rsplit("/", 1)[-1] in self.EXCLUDED_FILES:
            return

        visitor = SubprocessCallVisitor()
        visitor.visit(self._tree)

        for line, col, msg in visitor.errors:
            yield (line, col, msg, type(self))


class SubprocessCallVisitor(ast.NodeVisitor):
    """Collects unsafe calls, following module aliases and direct imports."""

    def __init__(self) -> None:
        self.errors: list[Tuple[int, int, str]] = []
        self._subprocess_names = {"subprocess"}
        self._os_names = {"os"}
        # Local name -> subprocess attribute, for "from subprocess import ..."
        self._imported_functions: dict[str, str] = {}

    def visit_Import(self, node: ast.Import) -> None:
        for alias in node.names:
            if alias.name == "subprocess":
                self._subprocess_names.add(alias.asname or alias.name)
            elif alias.name == "os":
                self._os_names.add(alias.asname or alias.name)
        self.generic_visit(node)

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:
        if node.module == "subprocess":
            for alias in node.names:
                if alias.name in SubprocessSafetyChecker.UNSAFE_METHODS:
                    self._imported_functions[alias.asname or alias.name] = alias.name
        self.generic_visit(node)

    def _error_code(self, func: ast.expr) -> Optional[str]:
        if isinstance(func, ast.Attribute) and isinstance(func.value, ast.Name):
            owner = func.value.id
            if owner in self._subprocess_names:
                return SubprocessSafetyChecker.UNSAFE_METHODS.get(func.attr)
            if owner in self._os_names and func.attr == "system":
                return "SUB006"
        elif isinstance(func, ast.Name) and func.id in self._imported_functions:
            return SubprocessSafetyChecker.UNSAFE_METHODS[self._imported_functions[func.id]]
        return None

    def visit_Call(self, node: ast.Call) -> None:
        error_code = self._error_code(node.func)
        if error_code is not None:
            self.errors.append((node.lineno, node.col_offset, SubprocessSafetyChecker.ERRORS[error_code]))
        self.generic_visit(node)
