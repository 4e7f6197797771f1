"""Azure Identity token provider for Azure DevOps."""

import asyncio
from typing import Any, Optional

from azure.identity import AzureCliCredential, DefaultAzureCredential

from ..errors import AuthenticationError


class CredentialTokenProvider:
    """Acquires bearer tokens for Azure DevOps from an Azure credential."""

    # Azure DevOps resource scope
    AZURE_DEVOPS_SCOPE = "499b84ac-1321-427f-aa17-267ca6975798/.default"

    def __init__(self, use_cli: bool = False, credential: Optional[Any] = None):
        """Initialize the token provider.

        Args:
            use_cli: Use the Azure CLI login instead of the default credential chain.
            credential: Pre-built credential, mainly for tests.
        """
        self.use_cli = use_cli
        self._credential = credential

    def _get_credential(self) -> Any:
        """Get or create the Azure credential."""
        if self._credential is None:
            self._credential = AzureCliCredential() if self.use_cli else DefaultAzureCredential()
        return self._credential

    async def get_access_token(self) -> str:
        """Get an access token for Azure DevOps.

        Returns:
            Access token string.

        Raises:
            AuthenticationError: If no token could be acquired.
        """
        credential = self._get_credential()

        # Run token acquisition in thread pool to avoid blocking
        loop = asyncio.get_running_loop()
        try:
            access_token = await loop.run_in_executor(
                None,
                lambda: credential.get_token(self.AZURE_DEVOPS_SCOPE),
            )
        except Exception as e:
            raise AuthenticationError(f"Failed to get authorization header: {e}") from e

        if not access_token or not access_token.token:
            raise AuthenticationError(
                "Failed to get authorization header: no token acquired for Azure DevOps"
            )
        return access_token.token
