"""
Atomic file-write utilities.

Prevents corrupted cache files when a download is interrupted mid-write by
writing to a temporary file in the same directory and then performing an
atomic ``os.replace()`` (POSIX rename guarantee).
"""

from __future__ import annotations

import os
import shutil
import tempfile
from typing import BinaryIO


def atomic_write_stream(
    path: str | os.PathLike,
    stream: BinaryIO,
    *,
    chunk_size: int = 1 << 16,
) -> int:
    """Copy a binary *stream* to *path* atomically via temp-file + rename.

    Readers of *path* see either the previous file (or nothing) or the
    complete new file, never a partially written one.

    Parameters
    ----------
    path:
        Destination file path.
    stream:
        Readable binary file-like object (e.g. an HTTP response).
    chunk_size:
        Bytes per read.

    Returns
    -------
    int
        Number of bytes written.
    """
    path = str(path)
    dir_path = os.path.dirname(path) or "."
    tmp_path: str | None = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="wb", dir=dir_path, suffix=".tmp", delete=False
        ) as tmp:
            tmp_path = tmp.name
            shutil.copyfileobj(stream, tmp, chunk_size)
            n_bytes = tmp.tell()
        os.replace(tmp_path, path)
    except BaseException:
        # Clean up the temp file on any failure
        if tmp_path is not None and os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise
    return n_bytes
