from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from ..errors import ErrorKind


class UploadState(str, Enum):
    PENDING = "pending"
    VALIDATING = "validating"
    REJECTED = "rejected"
    WRITING = "writing"
    STORED = "stored"
    FAILED = "failed"


class UploadOutcome(BaseModel):
    """Result for a single file of an upload batch."""
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., description="Original filename as sent by the client")
    saved_as: str | None = Field(None, alias="savedAs", description="Final stored name")
    success: bool = False
    state: UploadState = UploadState.PENDING
    size: int = 0
    error: ErrorKind | None = None
    message: str | None = None


class UploadSummary(BaseModel):
    """Aggregate result of an upload batch."""
    model_config = ConfigDict(populate_by_name=True)

    message: str
    outcomes: list[UploadOutcome] = []
    success_count: int = Field(0, alias="successCount")
    fail_count: int = Field(0, alias="failCount")
    error: ErrorKind | None = Field(None, description="PartialBatchFailure when only some files were stored")


class UploadPolicy(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    max_file_size: int = Field(..., alias="maxFileSize")
    max_file_size_mb: int = Field(..., alias="maxFileSizeMB")
    allowed_extensions: list[str] = Field(..., alias="allowedExtensions")
