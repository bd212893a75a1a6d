from pydantic import BaseModel, Field


class ArchiveRequest(BaseModel):
    """Request model for a bulk archive download."""
    paths: list[str] = Field(default=[], description="Root-relative paths of files and directories")
