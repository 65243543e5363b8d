from fastapi import APIRouter, Depends
from pydantic import BaseModel

from alfresco_bridge.api.deps import get_settings
from alfresco_bridge.core.config import Settings

router = APIRouter(prefix="/settings", tags=["settings"])


class SettingsResponse(BaseModel):
    alfresco_url: str
    alfresco_username: str
    alfresco_password: str  # masked
    alfresco_connection_name: str
    alfresco_file_description: str
    notification_email_recipient: str
    notification_email_sender: str
    notification_email_subject: str
    mail_utility_url: str
    enable_test_route: bool


# TODO: [SECURITY] Add authentication middleware before production deployment
# See: https://fastapi.tiangolo.com/tutorial/security/
@router.get("", response_model=SettingsResponse)
async def read_settings(current: Settings = Depends(get_settings)):
    """Retrieve current settings with masked sensitive values."""
    return current.get_effective_settings()
