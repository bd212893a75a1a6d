from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class FileEntry(BaseModel):
    """Snapshot of one directory child."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    type: Literal["file", "directory"]
    size: int = Field(0, description="Size in bytes, 0 for directories")
    last_modified: str = Field(..., alias="lastModified", description="ISO-8601 UTC modification time")
    path: str = Field(..., description="Root-relative path, always starting with '/'")
    extension: str | None = Field(None, description="Lower-cased suffix, files only")

    @property
    def is_dir(self) -> bool:
        return self.type == "directory"


class PageRequest(BaseModel):
    """A listing request after parameter clamping."""
    model_config = ConfigDict(frozen=True)

    path: str = "/"
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1)
    search: str = ""

    @classmethod
    def clamped(
        cls,
        path: str | None,
        page: int | None,
        limit: int | None,
        search: str | None,
        default_limit: int = 20,
        max_limit: int = 100,
    ) -> "PageRequest":
        """Build a request, replacing out-of-range values instead of rejecting them."""
        safe_page = page if page is not None and page >= 1 else 1
        if limit is None or limit < 1:
            safe_limit = default_limit
        else:
            safe_limit = min(limit, max_limit)
        return cls(path=path or "/", page=safe_page, limit=safe_limit, search=(search or "").strip())

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class PageResult(BaseModel):
    """One page of a sorted, filtered directory listing."""
    model_config = ConfigDict(populate_by_name=True)

    files: list[FileEntry] = Field(default=[], description="Entries on this page")
    total: int = Field(0, description="Number of entries matching the filter")
    page: int = 1
    limit: int = 20
    has_more: bool = Field(False, alias="hasMore")
