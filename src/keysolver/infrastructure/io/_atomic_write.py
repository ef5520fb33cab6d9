"""
Atomic JSON file writes.

Snapshots are written to a temporary file in the destination directory and
moved into place with `os.replace`, so a reader either sees the previous
complete file or the new complete file, never a partial write.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Union

PathLike = Union[str, os.PathLike]


def write_json_atomic(data: Dict[str, Any], path: PathLike) -> Path:
    """
    Write ``data`` as JSON to ``path`` atomically.

    Parent directories are created when missing.

    Returns
    -------
    Path
        The destination path.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    # same directory so the final replace never crosses filesystems
    fd, tmp_path = tempfile.mkstemp(
        dir=path.parent, prefix=f".{path.name}.tmp.", suffix=".json"
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise
    return path


def read_json(path: PathLike) -> Dict[str, Any]:
    """Read a JSON document written by `write_json_atomic`."""
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)
