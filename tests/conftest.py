"""Shared fixtures for wiki client tests."""

from typing import Callable

import httpx
import pytest

from azure_devops_wiki_mcp.auth.manager import AuthManager
from azure_devops_wiki_mcp.client import WikiClient
from azure_devops_wiki_mcp.config import WikiConfig


@pytest.fixture
def config() -> WikiConfig:
    """PAT-authenticated config for the contoso organization."""
    return WikiConfig(
        org_url="https://dev.azure.com/contoso",
        default_project="Fabrikam",
        auth_method="pat",
        pat="token",
    )


@pytest.fixture
def make_client(config: WikiConfig) -> Callable[..., WikiClient]:
    """Build a WikiClient whose requests are answered by ``handler``."""

    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> WikiClient:
        return WikiClient(config, AuthManager(config), transport=httpx.MockTransport(handler))

    return factory
