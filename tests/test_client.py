"""Tests for the wiki REST client."""

import json

import httpx
import pytest

from azure_devops_wiki_mcp.client import extract_pages, path_hash_id
from azure_devops_wiki_mcp.errors import (
    AzureDevOpsError,
    AzureDevOpsPermissionError,
    ResourceNotFoundError,
    ValidationError,
)
from azure_devops_wiki_mcp.models import WikiCreateParameters, WikiType

PAGES_URL = "https://dev.azure.com/contoso/Fabrikam/_apis/wiki/wikis/Fabrikam.wiki/pages"


class TestGetPage:
    """Tests for WikiClient.get_page."""

    @pytest.mark.asyncio
    async def test_normalizes_path_and_strips_etag_quotes(self, make_client):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(
                200,
                json={"id": 7, "path": "/Folder/My Page", "gitItemPath": "/Folder/My-Page.md", "content": "# Hi"},
                headers={"ETag": '"abc123"'},
            )

        client = make_client(handler)
        page = await client.get_page(None, "Fabrikam.wiki", "/Folder/My-Page.md")
        await client.close()

        assert page.content == "# Hi"
        assert page.e_tag == "abc123"
        assert page.id == 7
        assert page.git_item_path == "/Folder/My-Page.md"

        request = requests[0]
        assert str(request.url).startswith(PAGES_URL)
        assert b"path=/Folder/My%20Page" in request.url.query
        assert request.url.params["includeContent"] == "true"
        assert request.url.params["versionDescriptor.version"] == "wikiMaster"
        assert request.url.params["api-version"] == "7.1"
        assert request.headers["Authorization"] == "Basic OnRva2Vu"

    @pytest.mark.asyncio
    async def test_missing_content_defaults_to_empty(self, make_client):
        client = make_client(lambda request: httpx.Response(200, json={"id": 1, "path": "/Home"}))

        page = await client.get_page("Fabrikam", "Fabrikam.wiki", "/Home", include_content=False)

        assert page.content == ""
        assert page.e_tag is None

    @pytest.mark.asyncio
    async def test_not_found_names_the_page(self, make_client):
        client = make_client(lambda request: httpx.Response(404, json={"message": "not here"}))

        with pytest.raises(ResourceNotFoundError) as exc_info:
            await client.get_page("Fabrikam", "Fabrikam.wiki", "/Missing-Page.md")

        message = str(exc_info.value)
        assert "/Missing-Page.md" in message
        assert "/Missing Page" in message
        assert "Fabrikam.wiki" in message
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [401, 403])
    async def test_permission_denied(self, make_client, status):
        client = make_client(lambda request: httpx.Response(status))

        with pytest.raises(AzureDevOpsPermissionError, match="/Secret"):
            await client.get_page("Fabrikam", "Fabrikam.wiki", "/Secret")

    @pytest.mark.asyncio
    async def test_bad_request_is_validation_error(self, make_client):
        client = make_client(lambda request: httpx.Response(400, json={"message": "bad path"}))

        with pytest.raises(ValidationError, match="bad path"):
            await client.get_page("Fabrikam", "Fabrikam.wiki", "/Home")

    @pytest.mark.asyncio
    async def test_other_status_keeps_upstream_message(self, make_client):
        client = make_client(lambda request: httpx.Response(500, json={"message": "server exploded"}))

        with pytest.raises(AzureDevOpsError, match="Failed to get wiki page: server exploded") as exc_info:
            await client.get_page("Fabrikam", "Fabrikam.wiki", "/Home")

        assert type(exc_info.value) is AzureDevOpsError
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_network_error(self, make_client):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(handler)

        with pytest.raises(AzureDevOpsError, match="Network error when getting wiki page"):
            await client.get_page("Fabrikam", "Fabrikam.wiki", "/Home")


class TestUpdatePage:
    """Tests for the fetch-then-conditional-write update sequence."""

    @pytest.mark.asyncio
    async def test_existing_page_sends_if_match(self, make_client):
        requests = []

        def handler(request):
            requests.append(request)
            if request.method == "GET":
                return httpx.Response(200, json={"id": 3, "path": "/Home"}, headers={"ETag": '"v1"'})
            return httpx.Response(200, json={"id": 3, "path": "/Home", "content": "new"}, headers={"ETag": '"v2"'})

        client = make_client(handler)
        result = await client.update_page("new", "Fabrikam", "Fabrikam.wiki", "/Home", comment="typo fix")

        get_request, put_request = requests
        assert get_request.url.params["includeContent"] == "false"
        assert put_request.method == "PUT"
        assert put_request.headers["If-Match"] == '"v1"'
        assert put_request.url.params["api-version"] == "5.0"
        assert put_request.url.params["comment"] == "typo fix"
        assert json.loads(put_request.content) == {"content": "new"}
        assert result["version"] == "v2"
        assert result["message"] == "Page updated successfully"

    @pytest.mark.asyncio
    async def test_stale_etag_is_version_conflict(self, make_client):
        def handler(request):
            if request.method == "GET":
                return httpx.Response(200, json={"id": 3, "path": "/Home"}, headers={"ETag": '"stale"'})
            return httpx.Response(412, json={"message": "precondition failed"})

        client = make_client(handler)

        with pytest.raises(ValidationError, match="Version conflict") as exc_info:
            await client.update_page("new", "Fabrikam", "Fabrikam.wiki", "/Home")

        assert exc_info.value.status_code == 412

    @pytest.mark.asyncio
    async def test_missing_page_is_created_without_if_match(self, make_client):
        requests = []

        def handler(request):
            requests.append(request)
            if request.method == "GET":
                return httpx.Response(404, json={"message": "page not found"})
            return httpx.Response(201, json={"id": 9, "path": "/New Page"}, headers={"ETag": '"v1"'})

        client = make_client(handler)
        result = await client.update_page("body", "Fabrikam", "Fabrikam.wiki", "/New-Page.md")

        put_request = requests[-1]
        assert "If-Match" not in put_request.headers
        assert "comment" not in put_request.url.params
        assert put_request.url.params["path"] == "/New Page"
        assert result["message"] == "Page created successfully"
        assert result["id"] == 9

    @pytest.mark.asyncio
    async def test_fetch_failure_other_than_not_found_propagates(self, make_client):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(403)

        client = make_client(handler)

        with pytest.raises(AzureDevOpsPermissionError):
            await client.update_page("body", "Fabrikam", "Fabrikam.wiki", "/Home")

        assert [request.method for request in requests] == ["GET"]


class TestCreatePage:
    """Tests for WikiClient.create_page."""

    @pytest.mark.asyncio
    async def test_create_page(self, make_client):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(201, json={"id": 4, "path": "/Parent/Child"}, headers={"ETag": '"e1"'})

        client = make_client(handler)
        result = await client.create_page("text", None, "Fabrikam.wiki", "Parent/Child", comment="init")

        request = requests[0]
        assert request.method == "PUT"
        assert request.url.params["path"] == "/Parent/Child"
        assert request.url.params["api-version"] == "5.0"
        assert json.loads(request.content) == {"content": "text", "comment": "init"}
        assert result == {"id": 4, "path": "/Parent/Child", "version": "e1"}

    @pytest.mark.asyncio
    async def test_existing_page_conflict(self, make_client):
        client = make_client(lambda request: httpx.Response(412))

        with pytest.raises(ValidationError, match="Wiki page already exists: /Home"):
            await client.create_page("text", "Fabrikam", "Fabrikam.wiki", "/Home")

    @pytest.mark.asyncio
    async def test_missing_parent(self, make_client):
        client = make_client(lambda request: httpx.Response(404))

        with pytest.raises(ResourceNotFoundError, match="parent path for /A/B does not exist"):
            await client.create_page("text", "Fabrikam", "Fabrikam.wiki", "/A/B")


class TestListWikiPages:
    """Tests for page listing and response format detection."""

    @pytest.mark.asyncio
    async def test_sorted_by_order_then_path(self, make_client):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(
                200,
                json={
                    "value": [
                        {"id": 1, "path": "/Zeta"},
                        {"id": 2, "path": "/Beta", "order": 1},
                        {"id": 3, "path": "/Alpha", "order": 1},
                        {"id": 4, "path": "/Gamma", "order": 0},
                        {"id": 5, "path": "/Eta"},
                    ]
                },
            )

        client = make_client(handler)
        pages = await client.list_wiki_pages("Fabrikam", "Fabrikam.wiki", path="/Docs", recursion_level="full")

        assert [page.path for page in pages] == ["/Gamma", "/Alpha", "/Beta", "/Eta", "/Zeta"]
        params = requests[0].url.params
        assert params["recursionLevel"] == "full"
        assert params["path"] == "/Docs"
        assert "includeContent" not in params
        assert "versionDescriptor.version" not in params

    @pytest.mark.asyncio
    async def test_defaults_to_one_level(self, make_client):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json=[{"id": 1, "path": "/Home", "gitItemPath": "/Home.md"}])

        client = make_client(handler)
        pages = await client.list_wiki_pages(None, "Fabrikam.wiki", include_content=False, version_descriptor="main")

        assert requests[0].url.params["recursionLevel"] == "oneLevel"
        assert requests[0].url.params["includeContent"] == "false"
        assert requests[0].url.params["versionDescriptor.version"] == "main"
        assert pages[0].git_item_path == "/Home.md"

    @pytest.mark.asyncio
    async def test_wiki_not_found(self, make_client):
        client = make_client(lambda request: httpx.Response(404))

        with pytest.raises(ResourceNotFoundError, match="Wiki not found: Nope in project Fabrikam"):
            await client.list_wiki_pages("Fabrikam", "Nope")

    def test_tfs_hierarchy_is_flattened(self):
        tree = {
            "path": "/",
            "subPages": [
                {
                    "path": "/Guide",
                    "order": 2,
                    "subPages": [{"id": 12, "path": "/Guide/Setup", "order": 0, "subPages": []}],
                },
                {"id": 11, "path": "/Intro", "order": 1},
            ],
        }

        pages = extract_pages(tree)

        assert [page.path for page in pages] == ["/Guide/Setup", "/Intro", "/Guide"]
        guide = pages[2]
        assert guide.id == path_hash_id("/Guide")
        assert guide.is_parent_page is True
        assert pages[0].is_parent_page is False

    def test_cloud_page_without_id_gets_path_hash(self):
        pages = extract_pages([{"path": "/Home", "order": 0}, {"id": 7, "path": "/Docs", "order": 1}])

        assert [(page.id, page.path) for page in pages] == [(path_hash_id("/Home"), "/Home"), (7, "/Docs")]

    def test_unknown_shape_yields_no_pages(self):
        assert extract_pages({"count": 0}) == []

    def test_path_hash_matches_string_hash(self):
        assert path_hash_id("/a") == 1554
        assert path_hash_id("/") == 47


class TestWikis:
    """Tests for listing and creating wikis."""

    @pytest.mark.asyncio
    async def test_list_wikis(self, make_client):
        client = make_client(lambda request: httpx.Response(200, json={"count": 1, "value": [{"id": "w1", "name": "Wiki"}]}))

        assert await client.list_wikis("Fabrikam") == [{"id": "w1", "name": "Wiki"}]

    @pytest.mark.asyncio
    async def test_list_wikis_project_not_found(self, make_client):
        client = make_client(lambda request: httpx.Response(404))

        with pytest.raises(ResourceNotFoundError, match="Ghost"):
            await client.list_wikis("Ghost")

    @pytest.mark.asyncio
    async def test_create_code_wiki_resolves_project_id(self, make_client):
        requests = []

        def handler(request):
            requests.append(request)
            if request.url.path.endswith("/_apis/projects/Fabrikam"):
                return httpx.Response(200, json={"id": "proj-guid", "name": "Fabrikam"})
            return httpx.Response(201, json={"id": "wiki-guid", "name": "Docs"})

        client = make_client(handler)
        params = WikiCreateParameters(
            name="Docs",
            project_id="Fabrikam",
            type=WikiType.CODE_WIKI,
            repository_id="repo-guid",
            mapped_path="/docs",
        )
        wiki = await client.create_wiki("Fabrikam", params)

        assert wiki["id"] == "wiki-guid"
        create_request = requests[1]
        assert create_request.method == "POST"
        assert json.loads(create_request.content) == {
            "name": "Docs",
            "type": "codeWiki",
            "projectId": "proj-guid",
            "repositoryId": "repo-guid",
            "mappedPath": "/docs",
            "version": None,
        }

    @pytest.mark.asyncio
    async def test_project_wiki_body_omits_repository(self, make_client):
        bodies = []

        def handler(request):
            if request.method == "POST":
                bodies.append(json.loads(request.content))
                return httpx.Response(400, json={"message": "only one project wiki allowed"})
            return httpx.Response(200, json={"id": "proj-guid"})

        client = make_client(handler)
        params = WikiCreateParameters(name="Fabrikam.wiki", project_id="Fabrikam")

        with pytest.raises(ValidationError, match="Invalid wiki creation parameters: only one project wiki allowed"):
            await client.create_wiki("Fabrikam", params)

        assert bodies == [{"name": "Fabrikam.wiki", "type": "projectWiki", "projectId": "proj-guid"}]


class TestGetMe:
    """Tests for the profile lookup."""

    @pytest.mark.asyncio
    async def test_profile_from_core_attributes(self, make_client):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(
                200,
                json={
                    "id": "user-1",
                    "coreAttributes": {
                        "DisplayName": {"value": "Ada Lovelace"},
                        "mail": {"value": "ada@example.com"},
                    },
                },
            )

        client = make_client(handler)
        profile = await client.get_me()

        assert str(requests[0].url).startswith("https://vssps.dev.azure.com/contoso/_apis/profile/profiles/me")
        assert profile.to_api() == {"id": "user-1", "displayName": "Ada Lovelace", "email": "ada@example.com"}
