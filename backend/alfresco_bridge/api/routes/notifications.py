from fastapi import APIRouter, Depends
from pydantic import BaseModel

from alfresco_bridge.api.deps import get_email_builder, get_email_sender
from alfresco_bridge.services.notification import EmailBuilder, EmailSender

router = APIRouter(tags=["notifications"])


class NotifyResponse(BaseModel):
    status: str
    recipients: int


@router.post("/notify", response_model=NotifyResponse)
async def notify(
    builder: EmailBuilder = Depends(get_email_builder),
    sender: EmailSender = Depends(get_email_sender),
):
    """Send the configured notification email through the mail utility."""
    email = builder.build()
    await sender.send(email)
    return NotifyResponse(status="sent", recipients=len(email.to))
