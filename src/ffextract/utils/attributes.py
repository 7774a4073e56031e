"""Apply archive metadata to extracted paths.

Modification time is always restored. Permission bits, ownership and file flags are only
restored when attribute preservation is requested.
"""

import logging
import os
import stat
from pathlib import Path

from ..archive.entry import ArchiveEntry, EntryType
from ..errors import FilesystemError

logger = logging.getLogger(__name__)

# BSD file flag names as written by libarchive into SCHILY.fflags pax headers
_FILE_FLAGS = {
    'nodump': 'UF_NODUMP',
    'uchg': 'UF_IMMUTABLE',
    'uappnd': 'UF_APPEND',
    'opaque': 'UF_OPAQUE',
    'hidden': 'UF_HIDDEN',
    'arch': 'SF_ARCHIVED',
    'schg': 'SF_IMMUTABLE',
    'sappnd': 'SF_APPEND',
}


def parse_file_flags(text: str) -> int:
    flags = 0
    for name in text.replace(',', ' ').split():
        constant = _FILE_FLAGS.get(name)
        if constant is None or not hasattr(stat, constant):
            logger.debug(f"Ignoring unsupported file flag: {name}")
            continue
        flags |= getattr(stat, constant)
    return flags


def apply_attributes(path: Path, entry: ArchiveEntry, preserve: bool):
    """Restore entry metadata on an already written path.

    Raises:
        FilesystemError: The metadata cannot be applied
    """
    is_symlink = entry.type == EntryType.SYMLINK
    try:
        if preserve:
            if os.geteuid() == 0:
                os.chown(path, entry.uid, entry.gid, follow_symlinks=not is_symlink)
            if not is_symlink:
                os.chmod(path, entry.mode)

        if not is_symlink:
            os.utime(path, (entry.mtime, entry.mtime))
        elif os.utime in os.supports_follow_symlinks:
            os.utime(path, (entry.mtime, entry.mtime), follow_symlinks=False)

        # Flags go last: immutable flags would block the calls above
        fflags = entry.pax_headers.get('SCHILY.fflags')
        if preserve and fflags and hasattr(os, 'chflags'):
            os.chflags(path, parse_file_flags(fflags), follow_symlinks=not is_symlink)
    except OSError as e:
        raise FilesystemError(f"cannot set attributes of {path}", entry.path, e) from e
