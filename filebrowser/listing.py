"""Paginated directory listings inside the sandbox."""

import logging
import os
import posixpath
import stat
from pathlib import Path
from typing import NamedTuple

from . import utils
from .errors import DirectoryNotFound, IOFailure, NotADirectory
from .models import FileEntry, PageRequest, PageResult
from .sandbox import PathResolver, ResolvedPath

log = logging.getLogger(__name__)


class _Child(NamedTuple):
    is_dir: bool
    name: str
    size: int
    mtime: float

    def sort_key(self):
        # Directories first, then case-insensitive name; the raw name breaks ties.
        return (not self.is_dir, self.name.casefold(), self.name)


class DirectoryLister:
    """List the immediate children of one sandboxed directory.

    Only the requested page is materialized as ``FileEntry`` objects; the
    rest of the directory is kept as lightweight stat tuples so large
    directories stay cheap to sort and count.
    """

    def __init__(self, resolver: PathResolver):
        self.resolver = resolver

    def list_directory(self, request: PageRequest) -> PageResult:
        self.resolver.ensure_root()
        target = self.resolver.resolve(request.path)
        children = self.scan(target, request.search)
        children.sort(key=_Child.sort_key)

        total = len(children)
        end = request.offset + request.limit
        page = children[request.offset:end]
        return PageResult(
            files=[self._to_entry(target, child) for child in page],
            total=total,
            page=request.page,
            limit=request.limit,
            has_more=end < total,
        )

    def scan(self, target: ResolvedPath, search: str = "") -> list[_Child]:
        """Stat every visible child of *target* whose name contains *search*."""
        try:
            target_stat = target.absolute.stat()
        except FileNotFoundError:
            raise DirectoryNotFound(f"Directory not found: {target.relative}")
        except OSError as e:
            log.error("Failed to stat %s: %s", target.relative, e)
            raise IOFailure(f"Directory not accessible: {target.relative}") from e
        if not stat.S_ISDIR(target_stat.st_mode):
            raise NotADirectory(f"Path is not a directory: {target.relative}")

        needle = search.casefold()
        children = []
        try:
            with os.scandir(target.absolute) as it:
                for entry in it:
                    if entry.name.startswith("."):
                        continue
                    if needle and needle not in entry.name.casefold():
                        continue
                    if entry.is_symlink() and not self._link_inside(entry.path):
                        log.warning("Skipping %s: link leads outside the sandbox",
                                    posixpath.join(target.relative, entry.name))
                        continue
                    try:
                        entry_stat = entry.stat()
                    except OSError as e:
                        # Broken symlinks and races with deletion land here.
                        log.warning("Skipping %s: %s", posixpath.join(target.relative, entry.name), e)
                        continue
                    is_dir = stat.S_ISDIR(entry_stat.st_mode)
                    children.append(_Child(
                        is_dir=is_dir,
                        name=entry.name,
                        size=0 if is_dir else entry_stat.st_size,
                        mtime=entry_stat.st_mtime,
                    ))
        except OSError as e:
            log.error("Failed to read directory %s: %s", target.relative, e)
            raise IOFailure(f"Directory not accessible: {target.relative}") from e
        return children

    def _link_inside(self, link_path: str) -> bool:
        try:
            return self.resolver.contains(Path(link_path).resolve())
        except (OSError, RuntimeError):
            return False

    @staticmethod
    def _to_entry(parent: ResolvedPath, child: _Child) -> FileEntry:
        extension = None if child.is_dir else (utils.file_extension(child.name) or None)
        return FileEntry(
            name=child.name,
            type="directory" if child.is_dir else "file",
            size=child.size,
            last_modified=utils.isoformat_mtime(child.mtime),
            path=posixpath.join(parent.relative, child.name),
            extension=extension,
        )
