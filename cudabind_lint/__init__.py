"""Project-specific lint checks for cudabind (not distributed with the package)."""
