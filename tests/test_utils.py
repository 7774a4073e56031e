"""Shared test utilities: building tar archives on the fly."""
import io
import tarfile
from pathlib import Path

DEFAULT_MTIME = 1_600_000_000


def file_entry(name: str, data: bytes, mode: int = 0o644, mtime: int = DEFAULT_MTIME):
    info = tarfile.TarInfo(name)
    info.size = len(data)
    info.mode = mode
    info.mtime = mtime
    return info, data


def directory_entry(name: str, mode: int = 0o755, mtime: int = DEFAULT_MTIME):
    info = tarfile.TarInfo(name)
    info.type = tarfile.DIRTYPE
    info.mode = mode
    info.mtime = mtime
    return info, None


def symlink_entry(name: str, target: str, mtime: int = DEFAULT_MTIME):
    info = tarfile.TarInfo(name)
    info.type = tarfile.SYMTYPE
    info.linkname = target
    info.mode = 0o777
    info.mtime = mtime
    return info, None


def hardlink_entry(name: str, target: str, mtime: int = DEFAULT_MTIME):
    info = tarfile.TarInfo(name)
    info.type = tarfile.LNKTYPE
    info.linkname = target
    info.mode = 0o644
    info.mtime = mtime
    return info, None


def fifo_entry(name: str, mode: int = 0o644, mtime: int = DEFAULT_MTIME):
    info = tarfile.TarInfo(name)
    info.type = tarfile.FIFOTYPE
    info.mode = mode
    info.mtime = mtime
    return info, None


def archive_bytes(*entries, compression: str = '') -> bytes:
    """Build a tar archive from (TarInfo, data) pairs as produced by the *_entry helpers."""
    buffer = io.BytesIO()
    mode = f'w:{compression}' if compression else 'w'
    with tarfile.open(fileobj=buffer, mode=mode, format=tarfile.PAX_FORMAT) as tar:
        for info, data in entries:
            tar.addfile(info, None if data is None else io.BytesIO(data))
    return buffer.getvalue()


def archive_stream(*entries, compression: str = '') -> io.BytesIO:
    return io.BytesIO(archive_bytes(*entries, compression=compression))


def write_archive(path: Path, *entries, compression: str = '') -> Path:
    path.write_bytes(archive_bytes(*entries, compression=compression))
    return path


def same_inode(a: Path, b: Path) -> bool:
    sta = a.stat()
    stb = b.stat()
    return (sta.st_dev, sta.st_ino) == (stb.st_dev, stb.st_ino)
