#!/usr/bin/env python3
"""Check that cudabind launches processes only through its safe wrappers.

Scans every Python file under src/ (or the paths given on the command line)
and reports direct subprocess/os.system calls.

Usage:
    python scripts/check_subprocess_safety.py [PATH ...]
"""

import ast
import sys
from pathlib import Path

# cudabind_lint is not distributed with the package
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from cudabind_lint.ruff_plugins.subprocess_safety_checker import SubprocessSafetyChecker  # noqa: E402


def check_file(file_path: Path) -> list[str]:
    """Return formatted violations for one file."""
    with open(file_path, encoding="utf-8") as f:
        tree = ast.parse(f.read(), filename=str(file_path))

    checker = SubprocessSafetyChecker(tree, filename=str(file_path))
    return [f"  Line {line}: {msg}" for line, _col, msg, _ in checker.run()]


def main(argv: list[str]) -> int:
    roots = [Path(p) for p in argv] or [project_root / "src"]

    total_errors = 0
    for root in roots:
        files = [root] if root.is_file() else sorted(root.rglob("*.py"))
        for file_path in files:
            errors = check_file(file_path)
            if errors:
                print(f"{file_path}:")
                print("\n".join(errors))
                total_errors += len(errors)

    if total_errors > 0:
        print(f"\nTotal errors: {total_errors}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
