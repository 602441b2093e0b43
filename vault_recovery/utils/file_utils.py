import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Union

from vault_recovery.shared.exceptions import InputFileException


def load_json(file_path: Union[str, Path]) -> Dict[str, Any]:
    """Load and parse a JSON file"""
    try:
        with open(file_path, "r") as file:
            return json.load(file)
    except FileNotFoundError:
        raise InputFileException(f"File not found: {file_path}")
    except (OSError, json.JSONDecodeError) as e:
        raise InputFileException(f"Cannot read {file_path}: {e}")


def write_json_atomic(file_path: Union[str, Path], data: Any) -> Path:
    """
    Write ``data`` as indented JSON so that ``file_path`` is either the
    complete new document or untouched.

    The temp file lives in the destination directory so ``os.replace``
    stays a same-filesystem rename.
    """
    path = Path(file_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent)
    )
    try:
        with os.fdopen(fd, "w") as f:
            json.dump(data, f, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise
    return path
