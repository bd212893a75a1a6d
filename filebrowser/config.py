"""
Process-wide configuration for the file browser service.

Everything here is read once from the environment at startup and then
handed, frozen, to each component.  Nothing mutates it afterwards.
"""

import logging
import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from . import utils

DEFAULT_ROOT = "/app/public/files"
DEFAULT_MAX_UPLOAD_SIZE = "10mb"
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
DEFAULT_ALLOWED_EXTENSIONS = (
    "txt,md,json,pdf,jpg,jpeg,png,gif,webp,doc,docx,xls,xlsx,ppt,pptx,zip,csv"
)


class Settings(BaseModel):
    """Immutable service configuration."""
    model_config = ConfigDict(frozen=True)

    root: Path = Field(..., description="Sandbox root every user path is confined to")
    max_upload_size: int = Field(10 * 1024 * 1024, gt=0, description="Maximum upload size in bytes")
    allowed_extensions: frozenset[str] = Field(
        default_factory=lambda: utils.parse_extensions(DEFAULT_ALLOWED_EXTENSIONS),
        description="Lower-cased upload extensions without the leading dot",
    )
    default_page_size: int = Field(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)
    max_page_size: int = Field(MAX_PAGE_SIZE, ge=1)
    auth_cookie: str | None = Field(None, description="Cookie set by the upstream auth gate; None disables the check")
    archive_chunk_size: int = Field(64 * 1024, gt=0)
    archive_queue_size: int = Field(16, gt=0)
    log_level: str = "INFO"
    root_path: str = Field("", description="ASGI root path the API is mounted under")


def load_settings() -> Settings:
    """Build settings from environment variables."""
    return Settings(
        root=Path(os.getenv("STATIC_FILES_ROOT") or DEFAULT_ROOT),
        max_upload_size=utils.parse_file_size(os.getenv("MAX_UPLOAD_SIZE", DEFAULT_MAX_UPLOAD_SIZE)),
        allowed_extensions=utils.parse_extensions(
            os.getenv("ALLOWED_UPLOAD_EXTENSIONS", DEFAULT_ALLOWED_EXTENSIONS)
        ),
        default_page_size=int(os.getenv("DEFAULT_PAGE_SIZE", str(DEFAULT_PAGE_SIZE))),
        auth_cookie=os.getenv("AUTH_COOKIE") or None,
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        root_path=os.getenv("ROOT_PATH", "/api"),
    )


def configure_logging(settings: Settings):
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
