"""
Streaming ZIP export of sandboxed files and directories.

The archive is written by a worker thread into a bounded chunk queue and
drained by the HTTP response.  When the queue is full the writer blocks,
so neither the source files nor the finished archive are ever held in
memory.  Closing the consumer (client disconnect) sets a cancel flag
that makes the writer's next write fail, which unwinds the compressor
and closes every open source file.
"""

import asyncio
import logging
import os
import queue
import stat
import threading
import zipfile
from collections.abc import AsyncIterator, Iterator
from dataclasses import dataclass
from pathlib import Path

from .errors import FileBrowserError
from .sandbox import PathResolver, ResolvedPath

log = logging.getLogger(__name__)

COMPRESS_LEVEL = 9  # bulk export, ratio over speed
_POLL_INTERVAL = 0.1
_EOF = object()


class ArchiveCancelled(Exception):
    """Raised inside the producer once the consumer went away."""


@dataclass(frozen=True)
class ArchiveMember:
    source: Path
    arcname: str


class _ChunkChannel:
    """Write-only file object handing fixed-size chunks to a bounded queue.

    It deliberately has no ``tell``/``seek``: ``zipfile`` then switches to
    streaming mode and writes data descriptors instead of seeking back.
    """

    def __init__(self, chunk_size: int, max_chunks: int):
        self.chunk_size = chunk_size
        self.chunks: queue.Queue = queue.Queue(maxsize=max_chunks)
        self.cancelled = threading.Event()
        self._buffer = bytearray()
        self.bytes_written = 0

    def write(self, data) -> int:
        if self.cancelled.is_set():
            raise ArchiveCancelled()
        self._buffer += data
        self.bytes_written += len(data)
        while len(self._buffer) >= self.chunk_size:
            self._put(bytes(self._buffer[:self.chunk_size]))
            del self._buffer[:self.chunk_size]
        return len(data)

    def flush(self):
        pass

    def finish(self, error: BaseException | None = None):
        """Push buffered bytes and the end marker (or *error*) to the consumer."""
        if error is None and self._buffer:
            self._put(bytes(self._buffer))
        self._buffer.clear()
        self._put(error if error is not None else _EOF)

    def release(self):
        """Wake a consumer still waiting on the queue; never blocks."""
        try:
            self.chunks.put_nowait(_EOF)
        except queue.Full:
            pass

    def _put(self, item):
        while True:
            if self.cancelled.is_set():
                raise ArchiveCancelled()
            try:
                self.chunks.put(item, timeout=_POLL_INTERVAL)
                return
            except queue.Full:
                continue


class ArchiveStreamer:
    """Build ZIP archives of sandboxed paths as an async byte stream."""

    def __init__(self, resolver: PathResolver, chunk_size: int = 64 * 1024, queue_size: int = 16):
        self.resolver = resolver
        self.chunk_size = chunk_size
        self.queue_size = queue_size

    def resolve_all(self, paths: list[str]) -> tuple[list[ResolvedPath], list[str]]:
        """Resolve top-level request paths, returning (resolved, skipped)."""
        resolved, skipped = [], []
        for user_path in paths:
            try:
                target = self.resolver.resolve(user_path)
            except FileBrowserError as e:
                log.warning("Skipping archive path %r: %s", user_path, e.kind.value)
                skipped.append(user_path)
                continue
            if target.is_root or not target.absolute.exists():
                log.warning("Skipping archive path %s: not found", target.relative)
                skipped.append(user_path)
                continue
            resolved.append(target)
        return resolved, skipped

    def iter_members(self, targets: list[ResolvedPath]) -> Iterator[ArchiveMember]:
        """Yield the files to archive, walking directories lazily."""
        seen = set()
        for target in targets:
            for member in self._expand(target):
                if member.arcname in seen:
                    log.warning("Skipping duplicate archive entry %s", member.arcname)
                    continue
                seen.add(member.arcname)
                yield member

    def _expand(self, target: ResolvedPath) -> Iterator[ArchiveMember]:
        if target.absolute.is_file():
            yield ArchiveMember(target.absolute, target.name)
            return
        try:
            top = target.absolute.stat()
        except OSError:
            top = None
        if top is None or not stat.S_ISDIR(top.st_mode):
            log.warning("Skipping archive path %s: no longer exists", target.relative)
            return

        # Symlinked directories are followed; each real directory is entered once.
        visited = {(top.st_dev, top.st_ino)}
        for dirpath, dirnames, filenames in os.walk(target.absolute, onerror=self._walk_error, followlinks=True):
            dirnames[:] = [name for name in sorted(dirnames) if self._enter(Path(dirpath) / name, visited)]
            for filename in sorted(filenames):
                source = Path(dirpath) / filename
                try:
                    canonical = source.resolve()
                except (OSError, RuntimeError):
                    log.warning("Skipping unresolvable file %s", self._display(source))
                    continue
                # Symlinks pointing out of the sandbox are dropped.
                if not self.resolver.contains(canonical) or not canonical.is_file():
                    log.warning("Skipping %s: outside the sandbox or not a regular file", self._display(source))
                    continue
                relative = source.relative_to(target.absolute).as_posix()
                yield ArchiveMember(canonical, f"{target.name}/{relative}")

    def _enter(self, directory: Path, visited: set) -> bool:
        try:
            canonical = directory.resolve()
            st = canonical.stat()
        except (OSError, RuntimeError):
            log.warning("Skipping unresolvable directory %s", self._display(directory))
            return False
        if not self.resolver.contains(canonical):
            log.warning("Skipping directory %s: outside the sandbox", self._display(directory))
            return False
        key = (st.st_dev, st.st_ino)
        if key in visited:
            log.warning("Skipping directory %s: already included (symlink loop?)", self._display(directory))
            return False
        visited.add(key)
        return True

    def open_channel(self) -> _ChunkChannel:
        return _ChunkChannel(self.chunk_size, self.queue_size)

    def write_archive(self, targets: list[ResolvedPath], fileobj) -> int:
        """Write the whole archive into *fileobj*. Blocking; returns the member count."""
        count = 0
        archive = zipfile.ZipFile(
            fileobj, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=COMPRESS_LEVEL, strict_timestamps=False
        )
        try:
            for member in self.iter_members(targets):
                try:
                    # Fails before the member's local header is written, so skipping is safe.
                    with open(member.source, "rb"):
                        pass
                except OSError as e:
                    log.warning("Skipping %s: %s", member.arcname, e.strerror or type(e).__name__)
                    continue
                try:
                    archive.write(member.source, member.arcname)
                except FileNotFoundError:
                    # Vanished after the check; ZipFile.write opens the source before any header.
                    log.warning("Skipping %s: removed before it could be archived", member.arcname)
                    continue
                count += 1
        except BaseException:
            # CPython's ZipFile.close() returns early once ``fp`` is None, so no
            # central directory is written for a failed archive.
            archive.fp = None
            raise
        archive.close()
        return count

    async def stream(self, targets: list[ResolvedPath]) -> AsyncIterator[bytes]:
        """Yield compressed chunks while a worker thread writes the archive."""
        channel = self.open_channel()
        worker = threading.Thread(
            target=self._produce, args=(targets, channel), name="archive-writer", daemon=True
        )
        worker.start()
        try:
            while True:
                item = await asyncio.to_thread(channel.chunks.get)
                if item is _EOF:
                    break
                if isinstance(item, BaseException):
                    raise item
                yield item
        finally:
            # Normal end, error or client disconnect: the writer stops at its next write.
            channel.cancelled.set()

    def _produce(self, targets: list[ResolvedPath], channel: _ChunkChannel):
        try:
            count = self.write_archive(targets, channel)
            channel.finish()
        except ArchiveCancelled:
            log.info("Archive stream cancelled by the client")
        except Exception as e:
            log.error("Archive stream aborted: %s", getattr(e, "strerror", None) or type(e).__name__)
            try:
                channel.finish(e)
            except ArchiveCancelled:
                pass
        else:
            log.info("Archive stream completed with %d file(s)", count)
        finally:
            channel.release()

    def _walk_error(self, error: OSError):
        log.warning("Skipping unreadable directory %s", self._display(Path(error.filename or "")))

    def _display(self, path: Path) -> str:
        try:
            return self.resolver.relative_to_root(path)
        except ValueError:
            return path.name
