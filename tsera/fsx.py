"""Small file-system helpers shared by the applier and the state store."""

from __future__ import annotations

import os
from pathlib import Path


def safe_write(path: Path, content: str | bytes) -> tuple[bool, int]:
    """
    Atomically write content to path (write to temp, then rename).

    Parent directories are created as needed. When the file already holds
    identical bytes nothing is written.

    Returns:
        (changed, bytes_written)
    """
    data = content.encode("utf-8") if isinstance(content, str) else bytes(content)

    if path.is_file() and path.read_bytes() == data:
        return False, 0

    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = path.with_name(f".{path.name}.tmp")
    try:
        temp_path.write_bytes(data)
        os.replace(temp_path, path)
    finally:
        if temp_path.exists():
            temp_path.unlink()

    return True, len(data)


def remove_file_if_exists(path: Path) -> int:
    """Remove a file, returning the number of bytes erased (0 if absent)."""
    try:
        size = path.stat().st_size
    except FileNotFoundError:
        return 0
    path.unlink(missing_ok=True)
    return size


def prune_empty_dirs(start: Path, stop: Path) -> None:
    """Remove empty directories from ``start`` upwards, never touching ``stop``."""
    stop = stop.resolve()
    current = start.resolve()
    while current != stop and stop in current.parents:
        try:
            current.rmdir()
        except OSError:
            return  # not empty (or not removable)
        current = current.parent
