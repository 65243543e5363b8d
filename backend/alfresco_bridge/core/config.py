from pydantic_settings import BaseSettings
from typing import List
from pathlib import Path
import json
import os


SETTINGS_FILE = Path(__file__).parent.parent.parent / "settings.json"


def load_settings_from_file() -> dict:
    """Load settings from JSON file if exists."""
    if SETTINGS_FILE.exists():
        try:
            with open(SETTINGS_FILE) as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError):
            pass
    return {}


class Settings(BaseSettings):
    # Alfresco repository (CMIS Browser binding)
    alfresco_url: str = "http://localhost:8080/alfresco/api/-default-/public/cmis/versions/1.1/browser"
    alfresco_username: str = "admin"
    alfresco_password: str = ""
    alfresco_connection_name: str = "alfresco"
    alfresco_file_description: str = "Uploaded by the Alfresco microservice"
    alfresco_timeout: float = 60.0

    # Notification email
    notification_email_recipient: str = ""  # Comma-separated
    notification_email_sender: str = ""
    notification_email_subject: str = ""
    notification_email_message: str = ""

    # Mail utility
    mail_utility_url: str = "http://localhost:8090/mail/send"
    mail_utility_timeout: float = 30.0

    # Test route with hardcoded values, never on in production
    enable_test_route: bool = False
    test_ticket_number: str = "454444"
    test_folder_path: str = "/CI/Test"

    # Server
    upload_rate_limit: str = "60/minute"
    cors_origins: List[str] = ["http://localhost:5173"]
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"
        populate_by_name = True

    def __init__(self, **kwargs):
        # Load from settings file first
        file_settings = load_settings_from_file()

        # Merge: kwargs > file_settings > env vars (handled by pydantic)
        merged = {**file_settings, **kwargs}

        super().__init__(**merged)

        # Handle CORS_ORIGINS as JSON string from env
        cors_env = os.getenv("CORS_ORIGINS")
        if cors_env:
            try:
                self.cors_origins = json.loads(cors_env)
            except json.JSONDecodeError:
                pass

    def get_effective_settings(self) -> dict:
        """Get current effective settings (for API response)."""
        return {
            "alfresco_url": self.alfresco_url,
            "alfresco_username": self.alfresco_username,
            "alfresco_password": self._mask_key(self.alfresco_password),
            "alfresco_connection_name": self.alfresco_connection_name,
            "alfresco_file_description": self.alfresco_file_description,
            "notification_email_recipient": self.notification_email_recipient,
            "notification_email_sender": self.notification_email_sender,
            "notification_email_subject": self.notification_email_subject,
            "mail_utility_url": self.mail_utility_url,
            "enable_test_route": self.enable_test_route,
        }

    def _mask_key(self, key: str) -> str:
        """Mask a secret key for display."""
        if not key:
            return ""
        if len(key) <= 8:
            return "*" * len(key)
        return key[:4] + "*" * (len(key) - 8) + key[-4:]


settings = Settings()
