"""Wiki tool operations.

Each operation takes validated options, calls the wiki client and returns
the result as a JSON string for the MCP text response.
"""

import functools
import json
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

import pydantic

from .client import WikiClient
from .config import WikiConfig
from .errors import AzureDevOpsError
from .models import (
    CreateWikiOptions,
    CreateWikiPageOptions,
    GetWikiPageOptions,
    GetWikisOptions,
    ListWikiPagesOptions,
    UpdateWikiPageOptions,
    WikiCreateParameters,
)


def _dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _with_metadata(operation: str, data: Any) -> str:
    return _dumps(
        {
            "data": data,
            "metadata": {"operation": operation, "timestamp": _timestamp()},
        }
    )


def wraps_errors(message: str) -> Callable:
    """Re-raise unexpected exceptions as AzureDevOpsError(message)."""

    def decorator(func: Callable[..., Awaitable[str]]) -> Callable[..., Awaitable[str]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> str:
            try:
                return await func(*args, **kwargs)
            except AzureDevOpsError:
                raise
            except Exception as e:
                raise AzureDevOpsError(f"{message}: {e}") from e

        return wrapper

    return decorator


@wraps_errors("Failed to get wikis")
async def get_wikis(client: WikiClient, options: GetWikisOptions) -> str:
    """Get wikis in a project as ``{"count", "value"}`` JSON."""
    wikis = await client.list_wikis(options.project_id)
    return _dumps({"count": len(wikis), "value": wikis})


@wraps_errors("Failed to get wiki page")
async def get_wiki_page(client: WikiClient, options: GetWikiPageOptions) -> str:
    """Get a wiki page with its content and ETag.

    The path is normalized, so ``/Folder/My-Page.md`` finds ``/Folder/My Page``.
    """
    page = await client.get_page(
        options.project_id,
        options.wiki_id,
        options.page_path,
        include_content=options.include_content,
    )
    return _dumps(page.to_api())


@wraps_errors("Failed to create wiki")
async def create_wiki(client: WikiClient, options: CreateWikiOptions) -> str:
    """Create a project or code wiki."""
    project = options.project_id or client.config.default_project
    params = WikiCreateParameters(
        name=options.name,
        project_id=project,
        type=options.type,
        repository_id=options.repository_id,
        mapped_path=options.mapped_path,
    )
    wiki = await client.create_wiki(project, params)
    return _with_metadata("create_wiki", wiki)


@wraps_errors("Failed to update wiki page")
async def update_wiki_page(client: WikiClient, options: UpdateWikiPageOptions) -> str:
    """Update a wiki page, or create it when the path does not exist yet."""
    page = await client.update_page(
        options.content,
        options.project_id,
        options.wiki_id,
        options.page_path,
        comment=options.comment,
    )
    return _with_metadata("update_wiki_page", page)


@wraps_errors("Failed to list wiki pages")
async def list_wiki_pages(client: WikiClient, options: ListWikiPagesOptions) -> str:
    """List wiki pages as ``{"count", "value"}`` JSON, sorted by order then path."""
    pages = await client.list_wiki_pages(
        options.project_id,
        options.wiki_id,
        path=options.path,
        recursion_level=options.recursion_level.value if options.recursion_level else None,
        include_content=options.include_content,
        version_descriptor=options.version_descriptor,
    )
    return _dumps({"count": len(pages), "value": [page.to_api() for page in pages]})


@wraps_errors("Failed to create wiki page")
async def create_wiki_page(client: WikiClient, options: CreateWikiPageOptions) -> str:
    """Create a new wiki page."""
    page = await client.create_page(
        options.content,
        options.project_id,
        options.wiki_id,
        options.page_path,
        comment=options.comment,
    )
    return _with_metadata("create_wiki_page", page)


@wraps_errors("Failed to get user information")
async def get_me(client: WikiClient) -> str:
    """Get the id, display name and email of the authenticated user."""
    profile = await client.get_me()
    return _dumps(profile.to_api())


def get_wiki_page_usage(error: pydantic.ValidationError, config: WikiConfig) -> str:
    """Explain how to call get_wiki_page after its arguments failed validation."""
    issues = "\n".join(
        f"- {'.'.join(str(part) for part in issue['loc']) or '(root)'}: {issue['msg']}"
        for issue in error.errors()
    )
    help_text = "\n".join(
        [
            "Usage: get_wiki_page requires: wikiId (string), pagePath (string)",
            f"Defaults applied when omitted: projectId -> {config.default_project}",
            "Try:",
            "- Call get_wikis to list available wikis and obtain wikiId",
            '- Call list_wiki_pages with {"wikiId":"<id>"} to discover valid pagePath values',
            'Example payload: {"wikiId":"<your-wiki-id>","pagePath":"/Home"}',
        ]
    )
    return f"Invalid arguments for get_wiki_page:\n{issues}\n\n{help_text}"
