"""Azure DevOps Wiki REST API client."""

import sys
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import quote

import httpx
from loguru import logger

from .auth.manager import AuthManager
from .config import WikiConfig
from .errors import (
    AzureDevOpsError,
    AzureDevOpsPermissionError,
    ResourceNotFoundError,
    ValidationError,
)
from .models import (
    UserProfile,
    WikiCreateParameters,
    WikiPageContent,
    WikiPageSummary,
)
from .paths import encode_wiki_path, normalize_wiki_path

# Branch of a project wiki's backing repository
WIKI_MASTER = "wikiMaster"


@dataclass
class ErrorMessages:
    """Messages used when a request for one operation fails."""

    action: str
    activity: str
    not_found: str
    permission_denied: str
    invalid: Optional[str] = None
    conflict: Optional[str] = None


def _api_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and body.get("message"):
        return body["message"]
    return response.reason_phrase


def map_http_error(response: httpx.Response, errors: ErrorMessages) -> AzureDevOpsError:
    """Translate a non-2xx response into the matching AzureDevOpsError."""
    status = response.status_code
    message = _api_message(response)

    if status == 404:
        return ResourceNotFoundError(errors.not_found, status)
    if status in (401, 403):
        return AzureDevOpsPermissionError(errors.permission_denied, status)
    if status == 412 and errors.conflict:
        return ValidationError(errors.conflict, status)
    if status == 400:
        prefix = errors.invalid or f"Invalid request when trying to {errors.action}"
        return ValidationError(f"{prefix}: {message}", status)
    return AzureDevOpsError(f"Failed to {errors.action}: {message}", status)


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return encode_wiki_path(str(value))


def _strip_quotes(etag: Optional[str]) -> Optional[str]:
    return etag.replace('"', "") if etag else None


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def path_hash_id(path: str) -> int:
    """Stable numeric id for TFS pages that come back without one."""
    encoded = path.encode("utf-16-le")
    digest = 0
    for i in range(0, len(encoded), 2):
        unit = int.from_bytes(encoded[i : i + 2], "little")
        digest = _to_int32((digest << 5) - digest + unit)
    return abs(digest)


def _map_page(page: dict[str, Any]) -> WikiPageSummary:
    if page.get("id") is None and page.get("path"):
        page = {**page, "id": path_hash_id(page["path"])}
    return WikiPageSummary.model_validate(page)


def _flatten_subpages(page: dict[str, Any]) -> list[WikiPageSummary]:
    """Flatten a TFS on-premises page hierarchy, skipping the root page."""
    pages: list[WikiPageSummary] = []
    path = page.get("path")
    sub_pages = page.get("subPages")

    if path and path != "/":
        pages.append(
            WikiPageSummary(
                id=page.get("id") or path_hash_id(path),
                path=path,
                url=page.get("url"),
                order=page.get("order"),
                remote_url=page.get("remoteUrl"),
                git_item_path=page.get("gitItemPath"),
                is_parent_page=bool(page.get("isParentPage") or sub_pages),
                content=page.get("content"),
            )
        )

    if isinstance(sub_pages, list):
        for sub_page in sub_pages:
            pages.extend(_flatten_subpages(sub_page))
    return pages


def extract_pages(data: Any) -> list[WikiPageSummary]:
    """Pull page summaries out of any of the listing response formats.

    Cloud returns a flat array or a ``{"value": [...]}`` page, TFS
    on-premises returns the root page with nested ``subPages``.
    """
    if isinstance(data, list):
        pages = [_map_page(page) for page in data]
    elif isinstance(data, dict) and isinstance(data.get("value"), list):
        pages = [_map_page(page) for page in data["value"]]
    elif isinstance(data, dict) and data.get("subPages") is not None:
        pages = _flatten_subpages(data)
    else:
        pages = []

    return sorted(
        pages,
        key=lambda page: (page.order if page.order is not None else sys.maxsize, page.path),
    )


class WikiClient:
    """Async HTTP client for the Azure DevOps Wiki REST API."""

    VSSPS_URL = "https://vssps.dev.azure.com/{organization}"
    API_VERSION = "7.1"
    # Page writes use the 5.0 contract
    PAGES_WRITE_API_VERSION = "5.0"

    def __init__(
        self,
        config: WikiConfig,
        auth_manager: AuthManager,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            config: Server configuration (base URL, default project).
            auth_manager: AuthManager instance for authentication.
            transport: Optional httpx transport, used by tests.
        """
        self.config = config
        self.auth = auth_manager
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def base_url(self) -> str:
        """Get the base URL for the organization or collection."""
        return self.config.base_url

    @property
    def profile_url(self) -> str:
        """Get the URL hosting the profile API."""
        if self.config.is_cloud:
            return self.VSSPS_URL.format(organization=self.config.organization)
        return self.base_url

    def _project(self, project: Optional[str]) -> str:
        return project or self.config.default_project

    def _wikis_url(self, project: str) -> str:
        return f"{self.base_url}/{quote(project)}/_apis/wiki/wikis"

    def _pages_url(self, project: str, wiki_id: str) -> str:
        return f"{self._wikis_url(project)}/{quote(wiki_id)}/pages"

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=30.0, transport=self._transport)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _request(
        self,
        method: str,
        url: str,
        errors: ErrorMessages,
        params: Optional[dict[str, Any]] = None,
        json: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> httpx.Response:
        """Make an authenticated request to Azure DevOps API.

        Query values are percent-encoded with ``/`` preserved so page paths
        reach the API as ``/Folder/My%20Page``.

        Raises:
            AzureDevOpsError: If the request fails, mapped by status code.
        """
        client = await self._get_client()
        auth_headers = await self.auth.get_headers_async()

        request_headers = {
            **auth_headers,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if headers:
            request_headers.update(headers)

        params = dict(params or {})
        params.setdefault("api-version", self.API_VERSION)
        query = "&".join(
            f"{key}={_query_value(value)}" for key, value in params.items() if value is not None
        )
        full_url = f"{url}?{query}"

        logger.debug(f"{method} {full_url}")
        try:
            response = await client.request(
                method=method,
                url=full_url,
                json=json,
                headers=request_headers,
            )
        except httpx.RequestError as e:
            raise AzureDevOpsError(f"Network error when {errors.activity}: {e}") from e

        if response.is_error:
            error = map_http_error(response, errors)
            logger.warning(f"{method} {url} returned {response.status_code}: {error}")
            raise error
        return response

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # ==================== Core API ====================

    async def get_project_id(self, project: str) -> str:
        """Resolve a project name or ID to the project ID."""
        errors = ErrorMessages(
            action="get project details",
            activity="getting project details",
            not_found=f"Project not found: {project}",
            permission_denied=f"Permission denied to access project: {project}",
        )
        url = f"{self.base_url}/_apis/projects/{quote(project)}"
        response = await self._request("GET", url, errors)
        return self._json(response)["id"]

    async def get_me(self) -> UserProfile:
        """Get the profile of the authenticated user."""
        errors = ErrorMessages(
            action="get user information",
            activity="getting user information",
            not_found="User profile not found",
            permission_denied="Permission denied to read the user profile",
        )
        url = f"{self.profile_url}/_apis/profile/profiles/me"
        response = await self._request("GET", url, errors, params={"details": True})
        profile = self._json(response)

        core = profile.get("coreAttributes") or {}

        def attribute(name: str) -> Optional[str]:
            for key, entry in core.items():
                if key.lower() == name.lower() and isinstance(entry, dict):
                    return entry.get("value")
            return None

        return UserProfile(
            id=profile["id"],
            display_name=profile.get("displayName") or attribute("DisplayName") or "",
            email=profile.get("emailAddress")
            or attribute("EmailAddress")
            or attribute("Mail")
            or "",
        )

    # ==================== Wiki API ====================

    async def list_wikis(self, project: Optional[str] = None) -> list[dict[str, Any]]:
        """List all wikis in a project."""
        project = self._project(project)
        errors = ErrorMessages(
            action="list wikis",
            activity="listing wikis",
            not_found=f"Project not found or no wiki access: {project}",
            permission_denied=f"Permission denied to list wikis in project: {project}",
        )
        response = await self._request("GET", self._wikis_url(project), errors)
        data = self._json(response) or {}
        return data.get("value") or []

    async def create_wiki(
        self, project: Optional[str], params: WikiCreateParameters
    ) -> dict[str, Any]:
        """Create a new wiki.

        ``params.project_id`` may be a project name; it is resolved to the
        project ID before the wiki is created.
        """
        project = self._project(project)
        project_id = await self.get_project_id(project)
        params = params.model_copy(update={"project_id": project_id})

        errors = ErrorMessages(
            action="create wiki",
            activity="creating wiki",
            not_found=f"Project not found: {project}",
            permission_denied=f"Permission denied to create wiki in project: {project}",
            invalid="Invalid wiki creation parameters",
        )
        response = await self._request("POST", self._wikis_url(project), errors, json=params.to_api())
        wiki = self._json(response)
        logger.info(f"Created {params.type.value} '{params.name}' in project {project}")
        return wiki

    async def get_page(
        self,
        project: Optional[str],
        wiki_id: str,
        page_path: str,
        include_content: bool = True,
    ) -> WikiPageContent:
        """Get a wiki page and its ETag.

        Args:
            project: Project ID or name
            wiki_id: Wiki ID or name
            page_path: Path of the wiki page, normalized before the request
            include_content: Whether to include page content
        """
        project = self._project(project)
        normalized_path = normalize_wiki_path(page_path)
        errors = ErrorMessages(
            action="get wiki page",
            activity="getting wiki page",
            not_found=(
                f"Wiki page not found: {page_path} (normalized to: {normalized_path}) in wiki {wiki_id}. "
                "Make sure the path follows wiki path rules: no .md extension, spaces instead of hyphens in filenames."
            ),
            permission_denied=f"Permission denied to access wiki page: {page_path}",
        )
        params = {
            "api-version": self.API_VERSION,
            "path": normalized_path,
            "includeContent": include_content,
            "versionDescriptor.version": WIKI_MASTER,
        }
        response = await self._request("GET", self._pages_url(project, wiki_id), errors, params=params)
        page = self._json(response) or {}

        return WikiPageContent(
            content=page.get("content") or "",
            e_tag=_strip_quotes(response.headers.get("etag")),
            path=page.get("path"),
            git_item_path=page.get("gitItemPath"),
            id=page.get("id"),
        )

    async def create_page(
        self,
        content: str,
        project: Optional[str],
        wiki_id: str,
        page_path: str,
        comment: Optional[str] = None,
    ) -> dict[str, Any]:
        """Create a new wiki page with the provided content."""
        project = self._project(project)
        if not page_path.startswith("/"):
            page_path = f"/{page_path}"

        errors = ErrorMessages(
            action="create wiki page",
            activity="creating wiki page",
            not_found=f"Cannot create wiki page: parent path for {page_path} does not exist",
            permission_denied=f"Permission denied to create wiki page: {page_path}",
            invalid="Invalid request when creating wiki page",
            conflict=f"Wiki page already exists: {page_path}",
        )
        body: dict[str, Any] = {"content": content}
        if comment:
            body["comment"] = comment

        params = {"api-version": self.PAGES_WRITE_API_VERSION, "path": page_path}
        response = await self._request(
            "PUT", self._pages_url(project, wiki_id), errors, params=params, json=body
        )
        logger.info(f"Created wiki page {page_path} in wiki {wiki_id}")
        return {
            **(self._json(response) or {}),
            "version": _strip_quotes(response.headers.get("etag")),
        }

    async def update_page(
        self,
        content: str,
        project: Optional[str],
        wiki_id: str,
        page_path: str,
        comment: Optional[str] = None,
    ) -> dict[str, Any]:
        """Update a wiki page, creating it when it does not exist yet.

        The current ETag is fetched first and sent back as ``If-Match`` so a
        concurrent edit fails with a version conflict instead of being
        overwritten. A missing page is written without ``If-Match``.
        """
        project = self._project(project)
        normalized_path = normalize_wiki_path(page_path)

        current_etag: Optional[str]
        try:
            current_page = await self.get_page(project, wiki_id, normalized_path, include_content=False)
            current_etag = current_page.e_tag
        except ResourceNotFoundError:
            logger.debug(f"Wiki page {normalized_path} not found in wiki {wiki_id}, creating it")
            current_etag = None

        errors = ErrorMessages(
            action="update wiki page",
            activity="updating wiki page",
            not_found=f"Wiki page not found: {normalized_path} in wiki {wiki_id}",
            permission_denied=f"Permission denied to update wiki page: {normalized_path}",
            conflict=(
                "Version conflict: The wiki page has been modified since you retrieved it. "
                "Please get the latest version and try again."
            ),
        )
        headers: dict[str, str] = {}
        if current_etag:
            headers["If-Match"] = f'"{current_etag}"'

        params = {
            "api-version": self.PAGES_WRITE_API_VERSION,
            "path": normalized_path,
            "comment": comment or None,
        }
        response = await self._request(
            "PUT",
            self._pages_url(project, wiki_id),
            errors,
            params=params,
            json={"content": content},
            headers=headers,
        )

        created = response.status_code == 201
        logger.info(f"{'Created' if created else 'Updated'} wiki page {normalized_path} in wiki {wiki_id}")
        return {
            **(self._json(response) or {}),
            "version": _strip_quotes(response.headers.get("etag")),
            "message": "Page created successfully" if created else "Page updated successfully",
        }

    async def list_wiki_pages(
        self,
        project: Optional[str],
        wiki_id: str,
        path: Optional[str] = None,
        recursion_level: Optional[str] = None,
        include_content: Optional[bool] = None,
        version_descriptor: Optional[str] = None,
    ) -> list[WikiPageSummary]:
        """List wiki pages sorted by order, then path."""
        project = self._project(project)
        errors = ErrorMessages(
            action="list wiki pages",
            activity="listing wiki pages",
            not_found=f"Wiki not found: {wiki_id} in project {project}",
            permission_denied=f"Permission denied to list wiki pages in wiki: {wiki_id}",
        )
        params: dict[str, Any] = {
            "api-version": self.API_VERSION,
            "recursionLevel": recursion_level or "oneLevel",
            "path": path or None,
            "includeContent": include_content,
            "versionDescriptor.version": version_descriptor or None,
        }
        response = await self._request("GET", self._pages_url(project, wiki_id), errors, params=params)
        return extract_pages(self._json(response))
