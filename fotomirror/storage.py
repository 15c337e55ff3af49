"""Backup file layout and file writing."""

import os
import tempfile
from pathlib import Path

MIME_EXTENSIONS = {"image/jpeg": "jpg", "image/png": "png", "image/gif": "gif"}

# Owner read/write only
FILE_MODE = 0o600


def extension_for_mime(mime: str | None) -> str:
    """File extension for a picture MIME type; empty string when unrecognized."""
    return MIME_EXTENSIONS.get((mime or "").strip().lower(), "")


def backup_path(dest: Path, kind: str, key: str, ext: str) -> Path:
    """Return <dest>/<kind>-<key>.<ext>. An empty ext still keeps the trailing dot."""
    return Path(dest) / f"{kind}-{key}.{ext}"


def existing_size(path: Path) -> int | None:
    """Size of the file at path, or None if it does not exist."""
    try:
        return path.stat().st_size
    except FileNotFoundError:
        return None


def is_complete(path: Path, expected_size: int | None) -> bool:
    """
    True if path already holds the resource. Unknown size: any non-empty file counts.
    A file truncated by an earlier crash is only caught when the size is known.
    """
    size = existing_size(path)
    if size is None:
        return False
    if expected_size is None:
        return size > 0
    return size == expected_size


def write_binary(path: Path, data: bytes) -> None:
    """Write data atomically (temp file + rename) with owner-only permissions."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".part", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.chmod(tmp, FILE_MODE)
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise
