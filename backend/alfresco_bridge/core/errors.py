"""Error taxonomy shared by the CMIS binding, the gateway and the HTTP layer."""

from typing import Optional


class RepositoryError(Exception):
    """Any failure reported by, or while talking to, the CMIS repository."""

    def __init__(self, message: str, *, status_code: Optional[int] = None, cmis_exception: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.cmis_exception = cmis_exception


class RepositoryConnectionError(RepositoryError, ConnectionError):
    """Repository unreachable or misconfigured (e.g. no repository advertised)."""


class RepositoryPermissionError(RepositoryError, PermissionError):
    """Caller lacks the allowable action an operation requires."""


class ObjectNotFoundError(RepositoryError):
    """No object at the requested path or id."""


class ContentAlreadyExistsError(RepositoryError):
    """An object with the same name already exists in the target folder."""


class UploadError(Exception):
    """An uploaded file could not be read or handed to the repository."""

    def __init__(self, filename: Optional[str], message: str):
        super().__init__(f"Upload of {filename or '<unnamed>'} failed: {message}")
        self.filename = filename


class NotificationConfigError(ValueError):
    """Notification settings are missing or have the wrong shape."""
