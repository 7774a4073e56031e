"""Forward-only access to a tar stream.

Container decoding is delegated to the standard library tarfile module opened in
stream mode ('r|*'), which also detects gzip, bzip2 and xz compression. Entries are
handed out one at a time and must be consumed before the next one is requested.
"""

import logging
import os
import sys
import tarfile
from typing import IO, Iterator

from .entry import ArchiveEntry
from ..errors import ContainerDecodeError, FilesystemError

logger = logging.getLogger(__name__)

# Record size used when reading the stream, matching the classic tar blocking factor of 20
READ_BUFFER_SIZE = 10240


class ArchiveReader:
    """Sequential reader producing ArchiveEntry objects from a tar stream.

    Example:
        with ArchiveReader('backup.tar.gz') as reader:
            for entry in reader.entries():
                process(entry)
    """

    def __init__(self, source: str | os.PathLike | IO[bytes] | None = None):
        """Open the archive.

        Args:
            source: Path of the archive file, '-' or None for standard input, or an already opened binary stream

        Raises:
            FilesystemError: The archive file cannot be opened
            ContainerDecodeError: The stream is not a readable tar archive
        """
        if source is None or source == '-':
            fileobj = sys.stdin.buffer
            self.name = '-'
        elif isinstance(source, (str, os.PathLike)):
            fileobj = None
            self.name = os.fspath(source)
        else:
            fileobj = source
            self.name = getattr(source, 'name', '<stream>')

        try:
            self._tar = tarfile.open(
                name=None if fileobj is not None else self.name,
                mode='r|*',
                fileobj=fileobj,
                bufsize=READ_BUFFER_SIZE)
        except tarfile.TarError as e:
            raise ContainerDecodeError("cannot open archive", self.name, e) from e
        except OSError as e:
            raise FilesystemError("cannot open archive", self.name, e) from e

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        if hasattr(self, '_tar'):
            self._tar.close()

    def entries(self) -> Iterator[ArchiveEntry]:
        """Yield entries in stream order.

        The data of each entry is readable only until the next entry is requested; unread data
        is skipped by the decoder.

        Raises:
            ContainerDecodeError: A header is malformed or the stream ends prematurely
        """
        while True:
            try:
                member = self._tar.next()
            except tarfile.TarError as e:
                raise ContainerDecodeError("cannot decode archive header", self.name, e) from e
            except EOFError as e:
                raise ContainerDecodeError("unexpected end of archive", self.name, e) from e

            if member is None:
                return

            data = self._tar.extractfile(member) if member.isreg() else None
            logger.debug(f"Read header: {member.name} ({member.size} bytes)")
            yield ArchiveEntry.from_tarinfo(member, data)
            # TarFile keeps every header it has read; entries are not revisited
            self._tar.members.clear()
