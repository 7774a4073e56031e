import stat
import tarfile
from enum import StrEnum
from typing import IO

from ..errors import ContainerDecodeError, StreamIOError


class EntryType(StrEnum):
    REGULAR = 'regular'
    DIRECTORY = 'directory'
    SYMLINK = 'symlink'
    HARDLINK = 'hardlink'
    FIFO = 'fifo'
    CHARACTER_DEVICE = 'chardev'
    BLOCK_DEVICE = 'blockdev'


class ArchiveEntry:
    """One record drawn from the archive stream, together with its forward-only data.

    The data can only be consumed once through read(). An entry is valid only until the
    reader advances to the next one.
    """

    def __init__(
            self,
            path: str,
            type: EntryType,
            size: int = 0,
            mode: int = 0o644,
            mtime: float = 0,
            *,
            linkname: str = '',
            uid: int = 0,
            gid: int = 0,
            devmajor: int = 0,
            devminor: int = 0,
            pax_headers: dict[str, str] | None = None,
            data: IO[bytes] | None = None):
        self.path = path
        self.type = EntryType(type)
        self.size = size
        self.mode = mode
        self.mtime = mtime
        self.linkname = linkname
        self.uid = uid
        self.gid = gid
        self.devmajor = devmajor
        self.devminor = devminor
        self.pax_headers: dict[str, str] = pax_headers or {}
        self._data = data

    @classmethod
    def from_tarinfo(cls, member: tarfile.TarInfo, data: IO[bytes] | None) -> 'ArchiveEntry':
        if member.isreg():
            entry_type = EntryType.REGULAR
        elif member.isdir():
            entry_type = EntryType.DIRECTORY
        elif member.issym():
            entry_type = EntryType.SYMLINK
        elif member.islnk():
            entry_type = EntryType.HARDLINK
        elif member.isfifo():
            entry_type = EntryType.FIFO
        elif member.ischr():
            entry_type = EntryType.CHARACTER_DEVICE
        elif member.isblk():
            entry_type = EntryType.BLOCK_DEVICE
        else:
            raise ContainerDecodeError(f"unsupported entry type {member.type!r}", member.name)

        return cls(
            member.name,
            entry_type,
            member.size if entry_type == EntryType.REGULAR else 0,
            stat.S_IMODE(member.mode),
            member.mtime,
            linkname=member.linkname,
            uid=member.uid,
            gid=member.gid,
            devmajor=member.devmajor,
            devminor=member.devminor,
            pax_headers=dict(member.pax_headers),
            data=data)

    def is_regular(self) -> bool:
        return self.type == EntryType.REGULAR

    def read(self, size: int) -> bytes:
        """Read up to size bytes of entry data. Returns b'' at end of entry."""
        if self._data is None:
            return b''
        try:
            return self._data.read(size)
        except tarfile.TarError as e:
            raise ContainerDecodeError("cannot decode entry data", self.path, e) from e
        except OSError as e:
            raise StreamIOError("error reading entry data", self.path, e) from e

    def __repr__(self):
        return f"ArchiveEntry({self.path!r}, {self.type.value}, size={self.size})"
