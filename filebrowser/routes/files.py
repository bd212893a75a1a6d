import asyncio
import mimetypes
import stat
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import FileResponse, StreamingResponse

from ..archive import ArchiveStreamer
from ..config import Settings
from ..errors import IOFailure, IsADirectory, NotFound
from ..listing import DirectoryLister
from ..models import ArchiveRequest, PageRequest, PageResult, UploadPolicy, UploadSummary
from ..sandbox import PathResolver, ResolvedPath
from ..uploads import UploadPlacer
from .access import CookieGate


class FilesRouter:
    def __init__(self, version: str, settings: Settings):
        self.VERSION = version
        self.settings = settings

        self.resolver = PathResolver(settings.root)
        self.lister = DirectoryLister(self.resolver)
        self.placer = UploadPlacer(self.resolver, settings.max_upload_size, settings.allowed_extensions)
        self.streamer = ArchiveStreamer(self.resolver, settings.archive_chunk_size, settings.archive_queue_size)

        gate = [Depends(CookieGate(settings.auth_cookie))]
        self.router = APIRouter(tags=["Files"])
        self.router.add_api_route("/", self.root, methods=["GET"])
        self.router.add_api_route("/files", self.list_files, methods=["GET"], response_model=PageResult, dependencies=gate)
        self.router.add_api_route("/download", self.download, methods=["GET"], dependencies=gate)
        self.router.add_api_route("/download/zip", self.download_zip, methods=["POST"], dependencies=gate)
        self.router.add_api_route("/upload", self.upload_policy, methods=["GET"], response_model=UploadPolicy, dependencies=gate)
        self.router.add_api_route("/upload", self.upload, methods=["POST"], response_model=UploadSummary, dependencies=gate)

    def get_upload_policy(self) -> UploadPolicy:
        return UploadPolicy(
            max_file_size=self.settings.max_upload_size,
            max_file_size_mb=round(self.settings.max_upload_size / 1024 / 1024),
            allowed_extensions=sorted(self.settings.allowed_extensions),
        )

    async def root(self):
        return {
            "status": "ok",
            "message": "File Browser API is running",
            "version": self.VERSION,
            "config": {
                "max_upload_size": self.settings.max_upload_size,
                "allowed_extensions": sorted(self.settings.allowed_extensions),
                "default_page_size": self.settings.default_page_size,
                "max_page_size": self.settings.max_page_size,
            }
        }

    async def list_files(
        self,
        path: str = Query("/"),
        page: int = Query(1),
        limit: int | None = Query(None),
        search: str = Query(""),
    ):
        """List one page of a directory, directories first."""
        request = PageRequest.clamped(
            path, page, limit, search,
            default_limit=self.settings.default_page_size,
            max_limit=self.settings.max_page_size,
        )
        return await asyncio.to_thread(self.lister.list_directory, request)

    async def download(self, path: str | None = Query(None)):
        """Serve a single file as an attachment."""
        if not path:
            raise HTTPException(400, "Path parameter is required")

        target = await asyncio.to_thread(self._resolve_download, path)

        media_type = mimetypes.guess_type(target.name)[0] or "application/octet-stream"
        return FileResponse(path=target.absolute, media_type=media_type, filename=target.name)

    async def download_zip(self, request: ArchiveRequest):
        """Stream a ZIP of the requested files and directories.

        Paths that cannot be resolved are left out; their count is reported
        in the ``X-Archive-Skipped`` header.  Once streaming has started a
        filesystem error can only abort the transfer.
        """
        if not request.paths:
            raise HTTPException(400, "At least one path is required")

        targets, skipped = await asyncio.to_thread(self._resolve_archive, request.paths)

        filename = f"files_{datetime.now(timezone.utc).date().isoformat()}.zip"
        headers = {
            "Content-Disposition": f'attachment; filename="{filename}"',
            "X-Archive-Skipped": str(len(skipped)),
        }
        return StreamingResponse(self.streamer.stream(targets), media_type="application/zip", headers=headers)

    async def upload_policy(self):
        return self.get_upload_policy()

    async def upload(
        self,
        path: str = Form("/"),
        files: list[UploadFile] = File(default=[]),
    ):
        """Store uploaded files; each file gets its own outcome."""
        if not files:
            raise HTTPException(400, "No files to upload")
        return await self.placer.place(path, files)

    def _resolve_archive(self, paths: list[str]) -> tuple[list[ResolvedPath], list[str]]:
        self.resolver.ensure_root()
        return self.streamer.resolve_all(paths)

    def _resolve_download(self, path: str) -> ResolvedPath:
        self.resolver.ensure_root()
        target = self.resolver.resolve(path)
        try:
            mode = target.absolute.stat().st_mode
        except FileNotFoundError:
            raise NotFound(f"File not found: {target.relative}")
        except OSError as e:
            raise IOFailure(f"File not accessible: {target.relative}") from e
        if stat.S_ISDIR(mode):
            raise IsADirectory(f"Cannot download directory: {target.relative}")
        return target
