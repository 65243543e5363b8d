from pydantic import BaseModel


class UploadRequest(BaseModel):
    """One uploaded file bound for ``folder_path/ticket_number``."""
    ticket_number: str
    folder_path: str
    file_name: str
    mime_type: str
    content: bytes
    size: int
    description: str


class UploadResult(BaseModel):
    file: str
    path: str
    folder_created: bool
    status: str  # "uploaded" or "exists"
