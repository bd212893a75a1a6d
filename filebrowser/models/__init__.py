from .listing import FileEntry, PageRequest, PageResult
from .upload import UploadOutcome, UploadPolicy, UploadState, UploadSummary
from .archive import ArchiveRequest

__all__ = [
    # Listing
    "FileEntry",
    "PageRequest",
    "PageResult",
    # Upload
    "UploadOutcome",
    "UploadPolicy",
    "UploadState",
    "UploadSummary",
    # Archive
    "ArchiveRequest",
]
