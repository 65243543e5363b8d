"""Ticket upload orchestration: ensure the ticket folder, then upload into it."""

import logging
import mimetypes
from typing import Protocol

from alfresco_bridge.core.errors import UploadError
from alfresco_bridge.schemas.upload import UploadRequest, UploadResult
from alfresco_bridge.services.repository_gateway import RepositoryGateway, join_path

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"


class UploadedFile(Protocol):
    """The parts of ``fastapi.UploadFile`` the service reads."""
    filename: str | None
    content_type: str | None

    async def read(self, size: int = -1) -> bytes:
        ...


class UploadService:
    """Uploads files under ``folder_path/ticket_number``."""

    def __init__(self, gateway: RepositoryGateway, description: str):
        self.gateway = gateway
        self.description = description

    async def build_request(self, file: UploadedFile, ticket_number: str, folder_path: str) -> UploadRequest:
        if not file.filename:
            raise UploadError(None, "No filename provided")
        try:
            content = await file.read()
        except (OSError, ValueError) as e:
            raise UploadError(file.filename, f"could not read uploaded content: {e}") from e

        mime_type = file.content_type or mimetypes.guess_type(file.filename)[0] or DEFAULT_MIME_TYPE
        return UploadRequest(
            ticket_number=ticket_number,
            folder_path=folder_path,
            file_name=file.filename,
            mime_type=mime_type,
            content=content,
            size=len(content),
            description=self.description,
        )

    async def upload(self, file: UploadedFile, ticket_number: str, folder_path: str) -> UploadResult:
        """Create the ticket folder if needed and upload ``file`` beneath it."""
        request = await self.build_request(file, ticket_number, folder_path)
        logger.info(
            "Uploading file to Alfresco: filename=%s size=%d ticket=%s folder=%s",
            request.file_name,
            request.size,
            ticket_number,
            folder_path,
        )

        folder_created = False
        if not await self.gateway.folder_exists(folder_path, ticket_number):
            folder_created = await self.gateway.create_folder(folder_path, ticket_number)

        ticket_folder = join_path(folder_path, ticket_number)
        document = await self.gateway.upload_document(
            ticket_folder,
            request.file_name,
            request.mime_type,
            request.content,
            request.size,
            request.description,
        )
        status = "uploaded" if document is not None else "exists"
        logger.info("Document %s: %s", status, join_path(ticket_folder, request.file_name))
        return UploadResult(
            file=request.file_name,
            path=join_path(ticket_folder, request.file_name),
            folder_created=folder_created,
            status=status,
        )
