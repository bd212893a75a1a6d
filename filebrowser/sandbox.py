"""Sandbox path resolution: the single place user paths are turned into filesystem paths."""

import logging
import posixpath
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from .errors import PathEscape, RootNotConfigured

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedPath:
    """A user path after canonicalization inside the sandbox."""
    absolute: Path
    relative: str
    requested_name: str = ""

    @property
    def name(self) -> str:
        """Final segment as the user wrote it, else the canonical one."""
        return self.requested_name or PurePosixPath(self.relative).name

    @property
    def is_root(self) -> bool:
        return self.relative == "/"


class PathResolver:
    """Confine untrusted paths to the sandbox root.

    Paths are canonicalized first (``..`` collapsed, symlinks followed) and
    only then compared with the canonical root.  Leading separators mean
    "relative to the root", so absolute overrides stay inside the sandbox.
    """

    def __init__(self, root: Path):
        self.root = Path(root).resolve()

    def ensure_root(self):
        """Fail with RootNotConfigured unless the sandbox root is an existing directory."""
        if not self.root.is_dir():
            raise RootNotConfigured()

    def resolve(self, user_path: str | None) -> ResolvedPath:
        user_path = user_path or "/"
        if "\x00" in user_path:
            raise PathEscape()

        relative_part = user_path.replace("\\", "/").lstrip("/")
        try:
            target = (self.root / relative_part).resolve()
        except (OSError, RuntimeError, ValueError) as e:
            log.warning("Rejected unresolvable path %r: %s", user_path, e)
            raise PathEscape() from e

        if not self.contains(target):
            log.warning("Rejected path escaping the sandbox: %r", user_path)
            raise PathEscape()

        # A symlink keeps the name it was requested by; an empty name falls back to the canonical one.
        requested_name = posixpath.basename(posixpath.normpath("/" + relative_part))
        return ResolvedPath(
            absolute=target,
            relative=self.relative_to_root(target),
            requested_name=requested_name,
        )

    def contains(self, target: Path) -> bool:
        return target == self.root or self.root in target.parents

    def relative_to_root(self, target: Path) -> str:
        if target == self.root:
            return "/"
        return "/" + target.relative_to(self.root).as_posix()
