"""
Upload placement: validate incoming files and store them without ever
overwriting an existing name.

Each file in a batch is handled on its own; a rejected or failed file is
reported in its outcome while its siblings carry on.  Names are claimed
with exclusive-create opens, so two requests racing for the same name
cannot both win it.
"""

import asyncio
import logging
import posixpath
import stat
from pathlib import Path

import aiofiles
from fastapi import UploadFile

from . import utils
from .errors import (
    DisallowedType,
    ErrorKind,
    FileBrowserError,
    FileTooLarge,
    IOFailure,
    NotADirectory,
)
from .models import UploadOutcome, UploadState, UploadSummary
from .sandbox import PathResolver, ResolvedPath

log = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024  # 1MB
MAX_NAME_ATTEMPTS = 10000


def candidate_name(safe_name: str, attempt: int) -> str:
    """Return the name to try on *attempt*: ``report.pdf``, ``report_(1).pdf``, ..."""
    if attempt == 0:
        return safe_name
    stem, dot, ext = safe_name.rpartition(".")
    if not dot or not stem:
        return f"{safe_name}_({attempt})"
    return f"{stem}_({attempt}).{ext}"


class UploadPlacer:
    def __init__(self, resolver: PathResolver, max_size: int, allowed_extensions: frozenset[str], chunk_size: int = CHUNK_SIZE):
        self.resolver = resolver
        self.max_size = max_size
        self.allowed_extensions = allowed_extensions
        self.chunk_size = chunk_size

    async def place(self, target_path: str, files: list[UploadFile]) -> UploadSummary:
        """Store *files* under *target_path*, returning one outcome per file."""
        target = await asyncio.to_thread(self._resolve_target, target_path)

        outcomes = []
        for upload in files:
            outcomes.append(await self.place_one(target, upload))

        success_count = sum(1 for outcome in outcomes if outcome.success)
        fail_count = len(outcomes) - success_count
        return UploadSummary(
            message=f"Upload complete: {success_count} succeeded, {fail_count} failed",
            outcomes=outcomes,
            success_count=success_count,
            fail_count=fail_count,
            error=ErrorKind.PARTIAL_BATCH_FAILURE if success_count and fail_count else None,
        )

    async def place_one(self, target: ResolvedPath, upload: UploadFile) -> UploadOutcome:
        original = upload.filename or ""
        outcome = UploadOutcome(name=original)

        outcome.state = UploadState.VALIDATING
        try:
            self.validate(original, getattr(upload, "size", None))
        except FileBrowserError as e:
            log.warning("Rejected upload %r into %s: %s", original, target.relative, e.kind.value)
            return self._finish(outcome, UploadState.REJECTED, e)

        outcome.state = UploadState.WRITING
        safe_name = utils.sanitize_filename(original)
        try:
            await asyncio.to_thread(target.absolute.mkdir, parents=True, exist_ok=True)
            stored_name, written = await self._store(target.absolute, safe_name, upload)
        except FileBrowserError as e:
            log.warning("Upload %r into %s failed: %s", original, target.relative, e.kind.value)
            return self._finish(outcome, UploadState.FAILED, e)
        except OSError as e:
            log.error("Upload %r into %s failed: %s", original, target.relative, e.strerror or e)
            return self._finish(outcome, UploadState.FAILED, IOFailure("Failed to store file"))

        outcome.state = UploadState.STORED
        outcome.success = True
        outcome.saved_as = stored_name
        outcome.size = written
        log.info("Stored upload %r as %s", original, posixpath.join(target.relative, stored_name))
        return outcome

    def validate(self, name: str, declared_size: int | None):
        """Raise FileTooLarge or DisallowedType for a file that must not be stored."""
        if declared_size is not None and declared_size > self.max_size:
            raise FileTooLarge(f"File is too large (max {utils.format_bytes(self.max_size)})")
        extension = utils.file_extension(name)
        if extension not in self.allowed_extensions:
            allowed = ", ".join(sorted(self.allowed_extensions))
            raise DisallowedType(f"File type is not allowed. Allowed: {allowed}")

    async def _store(self, directory: Path, safe_name: str, upload: UploadFile) -> tuple[str, int]:
        for attempt in range(MAX_NAME_ATTEMPTS):
            candidate = directory / candidate_name(safe_name, attempt)
            try:
                out = await aiofiles.open(candidate, "xb")
            except FileExistsError:
                continue

            stored = False
            try:
                written = await self._copy(upload, out)
                stored = True
            finally:
                await out.close()
                if not stored:
                    candidate.unlink(missing_ok=True)
            return candidate.name, written

        raise IOFailure(f"No free name left for {safe_name}")

    async def _copy(self, upload: UploadFile, out) -> int:
        written = 0
        while True:
            chunk = await upload.read(self.chunk_size)
            if not chunk:
                break
            written += len(chunk)
            if written > self.max_size:
                raise FileTooLarge(f"File is too large (max {utils.format_bytes(self.max_size)})")
            await out.write(chunk)
        return written

    def _resolve_target(self, target_path: str) -> ResolvedPath:
        self.resolver.ensure_root()
        target = self.resolver.resolve(target_path)
        try:
            mode = target.absolute.stat().st_mode
        except FileNotFoundError:
            return target  # created on first write
        except OSError as e:
            log.error("Failed to stat upload target %s: %s", target.relative, e.strerror or e)
            raise IOFailure(f"Upload target not accessible: {target.relative}") from e
        if not stat.S_ISDIR(mode):
            raise NotADirectory(f"Upload target is not a directory: {target.relative}")
        return target

    @staticmethod
    def _finish(outcome: UploadOutcome, state: UploadState, error: FileBrowserError) -> UploadOutcome:
        outcome.state = state
        outcome.success = False
        outcome.error = error.kind
        outcome.message = error.message
        return outcome
