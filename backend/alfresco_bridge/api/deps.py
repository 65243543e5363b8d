"""Dependency injection for API routes."""
from fastapi import Depends, Request

from alfresco_bridge.core.config import Settings, settings
from alfresco_bridge.services.connection_pool import ConnectionPool
from alfresco_bridge.services.notification import EmailBuilder, EmailSender
from alfresco_bridge.services.repository_gateway import RepositoryGateway
from alfresco_bridge.services.upload_service import UploadService


def get_settings(request: Request) -> Settings:
    """Get application settings (the ones the app was created with)."""
    return getattr(request.app.state, "settings", settings)


def get_connection_pool(request: Request) -> ConnectionPool:
    """The pool created at startup and closed at shutdown."""
    return request.app.state.connection_pool


async def get_gateway(
    pool: ConnectionPool = Depends(get_connection_pool),
    app_settings: Settings = Depends(get_settings),
) -> RepositoryGateway:
    session = await pool.get_session(
        app_settings.alfresco_connection_name,
        app_settings.alfresco_username,
        app_settings.alfresco_password,
    )
    return RepositoryGateway(session)


def get_upload_service(
    gateway: RepositoryGateway = Depends(get_gateway),
    app_settings: Settings = Depends(get_settings),
) -> UploadService:
    return UploadService(gateway, app_settings.alfresco_file_description)


def get_email_builder(app_settings: Settings = Depends(get_settings)) -> EmailBuilder:
    return EmailBuilder.from_settings(app_settings)


def get_email_sender(app_settings: Settings = Depends(get_settings)) -> EmailSender:
    return EmailSender(app_settings.mail_utility_url, timeout=app_settings.mail_utility_timeout)
