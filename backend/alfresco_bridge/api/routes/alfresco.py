import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile
from fastapi.responses import PlainTextResponse

from alfresco_bridge.api.deps import get_settings, get_upload_service
from alfresco_bridge.core.config import Settings
from alfresco_bridge.core.limiter import limiter, upload_rate_limit
from alfresco_bridge.services.upload_service import UploadService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["alfresco"])

# Mounted only when ENABLE_TEST_ROUTE is set
test_router = APIRouter(tags=["alfresco-test"])

WELCOME_MESSAGE = "Welcome to the Alfresco Microservice"


@router.get("/", response_class=PlainTextResponse)
async def welcome():
    return WELCOME_MESSAGE


@router.post("/processData")
@limiter.limit(upload_rate_limit)
async def process_data(
    request: Request,
    ticket_number: str = Form(..., alias="ticketNumber"),
    folder_path: str = Form(..., alias="folderPath"),
    files: List[UploadFile] = File(...),
    uploads: UploadService = Depends(get_upload_service),
):
    """Upload every file part into ``folderPath/ticketNumber``."""
    for file in files:
        await uploads.upload(file, ticket_number, folder_path)
    logger.info("Processed %d file(s) for ticket %s", len(files), ticket_number)
    return Response(status_code=200)


@test_router.post("/test")
async def process_test_data(
    files: Optional[List[UploadFile]] = File(None),
    uploads: UploadService = Depends(get_upload_service),
    current_settings: Settings = Depends(get_settings),
):
    """Same flow as /processData with the configured test ticket and folder."""
    ticket_number = current_settings.test_ticket_number
    folder_path = current_settings.test_folder_path
    for file in files or []:
        await uploads.upload(file, ticket_number, folder_path)
    return Response(status_code=200)
