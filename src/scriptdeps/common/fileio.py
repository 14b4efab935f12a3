"""File helpers: atomic writes visible to concurrent readers only when complete."""
from __future__ import annotations

import logging
import os
import tempfile
from typing import Optional

logger = logging.getLogger(__name__)


def atomic_write_bytes(path: str, data: bytes) -> None:
    """Write ``data`` to ``path`` through a temp file in the same directory.

    ``os.replace`` is atomic on POSIX and Windows when source and target
    live on the same volume, so readers see either the old or the new file.
    """
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(prefix=".scriptdeps-", suffix=".tmp", dir=directory)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            logger.debug("Failed to remove temp file: %s", tmp_path)
        raise


def atomic_write_text(path: str, text: str) -> None:
    """Atomically write UTF-8 text."""
    atomic_write_bytes(path, text.encode("utf-8"))


def read_bytes(path: str) -> Optional[bytes]:
    """Return file contents, or None when the file does not exist."""
    try:
        with open(path, "rb") as f:
            return f.read()
    except FileNotFoundError:
        return None


def canonical_path(path: str) -> str:
    """Absolute, symlink-resolved, case-normalized form used as identity."""
    return os.path.normcase(os.path.realpath(os.path.abspath(path)))
