"""
Small filesystem helpers shared by the pipelines.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

from .exceptions import StorageException
from .logger import get_utils_logger

logger = get_utils_logger()


def ensure_dir_exists(path) -> Path:
    """
    Create a directory (and parents) if needed.

    Raises:
        StorageException: if the directory cannot be created or is not a directory
    """
    path = Path(path)
    if path.is_dir():
        return path

    logger.info(f"Creating directory: {path}")
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise StorageException(f"Failed to create directory: {e}", path=str(path)) from e
    return path


def read_json_file(path) -> Optional[Any]:
    """Read a JSON file, returning None if it is missing or unparseable."""
    path = Path(path)
    if not path.exists():
        logger.debug(f"File not found: {path}")
        return None

    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        logger.error(f"Error reading or parsing JSON file {path}: {e}")
        return None


def write_json_atomic(path, data: Any) -> None:
    """
    Write JSON (or pre-rendered JSON text) to a temporary file beside ``path``
    and move it into place, so readers never see a half-written file.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    text = data if isinstance(data, str) else json.dumps(data, indent=2, ensure_ascii=False) + "\n"

    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise
