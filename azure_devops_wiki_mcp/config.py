"""Configuration for the Azure DevOps wiki server.

Values come from environment variables (optionally loaded from a ``.env``
file) with Arcade secrets as a fallback:

- AZURE_DEVOPS_ORG_URL: organization URL, cloud or on-premises collection
- AZURE_DEVOPS_DEFAULT_PROJECT: project used when a tool omits one
- AZURE_DEVOPS_AUTH_METHOD: ``pat``, ``azure-cli`` or ``azure-identity``
- AZURE_DEVOPS_PAT: Personal Access Token
"""

import os
import re
from dataclasses import dataclass
from typing import Any, Optional

DEFAULT_PROJECT = "no default project"
UNKNOWN_ORGANIZATION = "unknown-organization"

_CLOUD_URL_RE = re.compile(r"https?://dev\.azure\.com/([^/]+)")
_TFS_URL_RE = re.compile(r"https?://([^/]+)/tfs/([^/]+)")
_FIRST_SEGMENT_RE = re.compile(r"https?://[^/]+/([^/]+)")


def get_org_name_from_url(url: Optional[str]) -> str:
    """Extract the organization name from an Azure DevOps URL.

    TFS on-premises URLs (``https://tfs.example.com/tfs/Collection``) yield
    ``host-collection``.
    """
    if not url:
        return UNKNOWN_ORGANIZATION

    match = _CLOUD_URL_RE.match(url)
    if match:
        return match.group(1)

    match = _TFS_URL_RE.match(url)
    if match:
        return f"{match.group(1)}-{match.group(2)}"

    if "azure" in url:
        match = _FIRST_SEGMENT_RE.match(url)
        return match.group(1) if match else UNKNOWN_ORGANIZATION

    return UNKNOWN_ORGANIZATION


def get_base_url(url: Optional[str]) -> str:
    """Get the base URL for API calls.

    Cloud URLs are reduced to ``https://dev.azure.com/{org}``; on-premises
    collection URLs are used as-is.
    """
    if not url:
        return f"https://dev.azure.com/{UNKNOWN_ORGANIZATION}"

    match = _CLOUD_URL_RE.match(url)
    if match:
        return f"https://dev.azure.com/{match.group(1)}"

    return url.rstrip("/")


def _secret(context: Optional[Any], name: str) -> Optional[str]:
    value = os.environ.get(name)
    if value or context is None:
        return value
    try:
        return context.get_secret(name)
    except Exception:
        # Arcade raises when a secret is not configured for the tool
        return None


@dataclass
class WikiConfig:
    """Settings shared by every wiki tool invocation."""

    org_url: Optional[str] = None
    default_project: str = DEFAULT_PROJECT
    auth_method: Optional[str] = None
    pat: Optional[str] = None

    @property
    def base_url(self) -> str:
        return get_base_url(self.org_url)

    @property
    def organization(self) -> str:
        return get_org_name_from_url(self.org_url)

    @property
    def is_cloud(self) -> bool:
        return bool(self.org_url and _CLOUD_URL_RE.match(self.org_url))

    @classmethod
    def from_env_or_context(cls, context: Optional[Any] = None) -> "WikiConfig":
        """Create WikiConfig from environment variables, falling back to Arcade context.

        Args:
            context: Optional Arcade MCP context with get_secret method
        """
        auth_method = _secret(context, "AZURE_DEVOPS_AUTH_METHOD")
        return cls(
            org_url=_secret(context, "AZURE_DEVOPS_ORG_URL"),
            default_project=os.environ.get("AZURE_DEVOPS_DEFAULT_PROJECT") or DEFAULT_PROJECT,
            auth_method=auth_method.lower() if auth_method else None,
            pat=_secret(context, "AZURE_DEVOPS_PAT"),
        )
