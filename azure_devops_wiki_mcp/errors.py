"""Error taxonomy for Azure DevOps wiki operations."""

from typing import Optional


class AzureDevOpsError(Exception):
    """Error from Azure DevOps API."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ResourceNotFoundError(AzureDevOpsError):
    """The project, wiki or page does not exist (HTTP 404)."""


class AzureDevOpsPermissionError(AzureDevOpsError):
    """The caller may not access the resource (HTTP 401/403)."""


class ValidationError(AzureDevOpsError):
    """The request was rejected as invalid (HTTP 400) or conflicted (HTTP 412)."""


class AuthenticationError(AzureDevOpsError):
    """Raised when authentication fails or no valid credentials are configured."""
