"""Authentication manager for Azure DevOps with PAT and Azure Identity support."""

import base64
from typing import Optional

from ..config import WikiConfig
from ..errors import AuthenticationError
from .credential import CredentialTokenProvider

PAT_METHOD = "pat"
AZURE_CLI_METHOD = "azure-cli"
AZURE_IDENTITY_METHOD = "azure-identity"


class AuthManager:
    """Manages authentication for Azure DevOps API requests.

    Personal Access Token (PAT) and Azure Identity bearer tokens are mutually
    exclusive. AZURE_DEVOPS_AUTH_METHOD picks one; when it is unset a
    configured PAT wins and the default Azure credential chain is used otherwise.
    """

    def __init__(
        self,
        config: WikiConfig,
        token_provider: Optional[CredentialTokenProvider] = None,
    ):
        """Initialize AuthManager.

        Args:
            config: Server configuration carrying the auth method and PAT.
            token_provider: Bearer token source, created on demand if omitted.
        """
        self.config = config
        self._token_provider = token_provider

    @property
    def uses_pat(self) -> bool:
        if self.config.auth_method:
            return self.config.auth_method == PAT_METHOD
        return bool(self.config.pat)

    def _get_token_provider(self) -> CredentialTokenProvider:
        if self._token_provider is None:
            self._token_provider = CredentialTokenProvider(
                use_cli=self.config.auth_method == AZURE_CLI_METHOD
            )
        return self._token_provider

    def _basic_headers(self) -> dict[str, str]:
        if not self.config.pat:
            raise AuthenticationError(
                "No valid credentials configured. Set AZURE_DEVOPS_PAT when AZURE_DEVOPS_AUTH_METHOD is 'pat'."
            )
        encoded = base64.b64encode(f":{self.config.pat}".encode()).decode()
        return {"Authorization": f"Basic {encoded}"}

    async def get_headers_async(self) -> dict[str, str]:
        """Get authorization headers, fetching a bearer token if needed.

        Returns:
            Dictionary containing Authorization header.

        Raises:
            AuthenticationError: If no valid credentials are available.
        """
        if self.uses_pat:
            return self._basic_headers()

        token = await self._get_token_provider().get_access_token()
        return {"Authorization": f"Bearer {token}"}
