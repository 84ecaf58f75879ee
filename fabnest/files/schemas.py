from datetime import datetime
from fabnest.shared.schemas import ApiModel

class UploadedFileOut(ApiModel):
    """Shape returned by POST /upload."""
    id: str
    url: str
    filename: str
    size: int
    file_type: str

class FileSummary(ApiModel):
    id: str
    filename: str
    url: str
    size: int
    mime_type: str
    download_url: str | None = None

class FileOut(ApiModel):
    id: str
    filename: str
    url: str
    mime_type: str
    file_type: str
    size: int
    width: int | None = None
    height: int | None = None
    uploaded_by: str | None = None
    created_at: datetime
