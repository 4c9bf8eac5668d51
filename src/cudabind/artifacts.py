"""Runtime access to compiled kernel artifacts.

Generated bindings modules call load_artifact() at import time. Artifacts
are looked up in the directory named by CUDABIND_OUT_DIR, the same variable
the builder uses as its default output directory.
"""

from pathlib import Path
from typing import Optional

from .env import ENV_OUT_DIR, get_out_dir
from .errors import ConfigurationError


def artifact_path(name: str, out_dir: Optional[Path] = None) -> Path:
    """Return the path of a compiled artifact.

    Args:
        name: Artifact file name, e.g. "attention.ptx"
        out_dir: Directory to look in (default: CUDABIND_OUT_DIR)

    Raises:
        ConfigurationError: If no directory is given and CUDABIND_OUT_DIR is unset
    """
    directory = out_dir if out_dir is not None else get_out_dir()
    if directory is None:
        raise ConfigurationError(
            f"Cannot locate kernel artifact {name!r}: {ENV_OUT_DIR} is not set"
        )
    return Path(directory) / name


def load_artifact(name: str, out_dir: Optional[Path] = None) -> str:
    """Read a compiled artifact (PTX text) by file name.

    Raises:
        ConfigurationError: If the artifact directory is unknown
        FileNotFoundError: If the artifact does not exist
    """
    return artifact_path(name, out_dir).read_text(encoding="utf-8")
