"""Low-level file operations used while materializing entries."""

import os
from pathlib import Path
from typing import IO

from ..errors import FilesystemError, StreamIOError


def remove_existing(path: Path):
    """Unlink a file, symlink or other non-directory at path if there is one.

    Raises:
        FilesystemError: Something exists at path and cannot be removed
    """
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        raise FilesystemError(f"cannot remove existing {path}", cause=e) from e


def ensure_parent(path: Path):
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FilesystemError(f"cannot create directory {path.parent}", cause=e) from e


def open_destination(path: Path, mode: int) -> IO[bytes]:
    """Create a fresh destination file for writing.

    Any existing file is unlinked first, so that a destination which is still a hardlink
    into the reference tree is never truncated in place.
    """
    remove_existing(path)
    try:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode & 0o7777)
    except OSError as e:
        raise FilesystemError(f"cannot create {path}", cause=e) from e
    return os.fdopen(fd, 'wb')


def write_all(destination: IO[bytes], data: bytes, path: Path):
    try:
        destination.write(data)
    except OSError as e:
        raise StreamIOError(f"error writing {path}", cause=e) from e


def copy_range(source: IO[bytes], destination: IO[bytes], size: int, chunk_size: int, path: Path):
    """Copy exactly size bytes from the current position of source to destination.

    A zero size copies nothing.

    Raises:
        StreamIOError: Reading or writing fails, or the source ends before size bytes were copied
    """
    pending = size
    while pending > 0:
        try:
            data = source.read(min(chunk_size, pending))
        except OSError as e:
            raise StreamIOError(f"error re-reading reference data for {path}", cause=e) from e
        if not data:
            raise StreamIOError(f"reference data ended {pending} bytes early while writing {path}")
        write_all(destination, data, path)
        pending -= len(data)


def flush(destination: IO[bytes], path: Path):
    try:
        destination.flush()
    except OSError as e:
        raise StreamIOError(f"error writing {path}", cause=e) from e
