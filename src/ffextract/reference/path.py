"""Path utilities for locating reference files and extraction destinations."""

import os
from pathlib import Path

from ..errors import FilesystemError


def strip_prefix(path: str, levels: int) -> str:
    """Remove up to `levels` leading segments from an archive path.

    A segment is the text up to and including the next '/'. When the path has fewer
    separators than `levels`, stripping stops early and the final segment is kept.

    Args:
        path: Archive-relative path of an entry
        levels: Number of leading segments to remove (0 returns the path unchanged)

    Returns:
        The remaining path

    Examples:
        >>> strip_prefix('top/dir/file.txt', 1)
        'dir/file.txt'
        >>> strip_prefix('a/b.txt', 5)
        'b.txt'
    """
    start = 0
    for _ in range(levels):
        separator = path.find('/', start)
        if separator < 0:
            break
        start = separator + 1
    return path[start:]


def _relative_path(entry_path: str, where: str) -> str:
    # normpath removes '.' and '..' lexically without consulting the filesystem
    relative = os.path.normpath(entry_path.lstrip('/'))
    if relative == '..' or relative.startswith('../') or os.path.isabs(relative):
        raise FilesystemError(f"refusing to leave the {where} directory", entry_path)
    return relative


def resolve_candidate(stripped_path: str, reference_directory: Path) -> Path:
    """Join a stripped entry path onto the reference directory.

    The path is normalized like a destination path, so an absolute entry path is looked up
    below the reference directory rather than at its absolute location. No existence check
    is performed; callers find out by opening the result.

    Raises:
        FilesystemError: The path leaves the reference directory through '..' components
    """
    relative = _relative_path(stripped_path, 'reference')
    if relative == '.':
        return reference_directory.absolute()
    return reference_directory.absolute() / relative


def destination_path(root: Path, entry_path: str) -> Path:
    """Compute where an entry is materialized below the extraction root.

    Leading '/' characters are dropped, as tar does when extracting. Paths that would
    leave the root through '..' components are rejected.

    Raises:
        FilesystemError: The entry path escapes the extraction root
    """
    relative = _relative_path(entry_path, 'destination')
    if relative == '.':
        return root
    return root / relative


def check_contained(root: Path, path: Path, entry_path: str):
    """Refuse paths whose existing parent directories lead outside the root through symlinks.

    Raises:
        FilesystemError: The resolved parent of `path` is not below the resolved root
    """
    resolved_root = root.resolve()
    resolved_parent = path.parent.resolve()
    if path != root and not resolved_parent.is_relative_to(resolved_root):
        raise FilesystemError(
            f"refusing to extract through a symbolic link leading to {resolved_parent}", entry_path)
