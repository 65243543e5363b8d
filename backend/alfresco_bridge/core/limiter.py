from slowapi import Limiter
from slowapi.util import get_remote_address

from alfresco_bridge.core.config import settings

# Rate limiter shared by the app and the upload routes
limiter = Limiter(key_func=get_remote_address)

_upload_rate_limit = settings.upload_rate_limit


def set_upload_rate_limit(value: str) -> None:
    """Applied by create_app from the settings the app is built with."""
    global _upload_rate_limit
    _upload_rate_limit = value


def upload_rate_limit() -> str:
    # slowapi calls this on every request, so the limit follows the active app
    return _upload_rate_limit
