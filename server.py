#!/usr/bin/env python3
"""Azure DevOps Wiki MCP Server - Read and edit Azure DevOps wikis from AI assistants.

Configure via environment variables or a .env file, with Arcade secrets as
fallback:
- AZURE_DEVOPS_ORG_URL: Organization URL (https://dev.azure.com/org or a TFS collection URL)
- AZURE_DEVOPS_DEFAULT_PROJECT: Project used when a tool omits projectId
- AZURE_DEVOPS_AUTH_METHOD: pat, azure-cli or azure-identity
- AZURE_DEVOPS_PAT: Personal Access Token
"""

import sys
from typing import Annotated, Optional

import pydantic
from arcade_mcp_server import Context, MCPApp
from dotenv import load_dotenv
from loguru import logger

from azure_devops_wiki_mcp import wiki
from azure_devops_wiki_mcp.auth.manager import AuthManager
from azure_devops_wiki_mcp.client import WikiClient
from azure_devops_wiki_mcp.config import WikiConfig
from azure_devops_wiki_mcp.errors import AzureDevOpsError
from azure_devops_wiki_mcp.models import (
    CreateWikiOptions,
    CreateWikiPageOptions,
    GetWikiPageOptions,
    GetWikisOptions,
    ListWikiPagesOptions,
    RecursionLevel,
    UpdateWikiPageOptions,
    WikiType,
)

load_dotenv()

VERSION = "0.1.0"

# Create the MCP App
app = MCPApp(name="azure_devops_wiki", version=VERSION, log_level="INFO")

# PAT is optional: azure-cli and azure-identity auth acquire bearer tokens instead
AZURE_SECRETS = ["AZURE_DEVOPS_ORG_URL"]


def _get_client(context: Optional[Context] = None) -> WikiClient:
    """Get an authenticated Azure DevOps wiki client.

    Args:
        context: Optional Arcade context for secrets fallback
    """
    config = WikiConfig.from_env_or_context(context)
    return WikiClient(config, AuthManager(config))


# ==================== Wiki Tools ====================
# Argument names are camelCase to match the published MCP tool schema.


@app.tool(requires_secrets=AZURE_SECRETS)
async def get_wikis(
    context: Context,
    projectId: Annotated[Optional[str], "The ID or name of the project (defaults to AZURE_DEVOPS_DEFAULT_PROJECT)"] = None,
) -> Annotated[str, "JSON with count and value (list of wikis)"]:
    """List the wikis in a project."""
    client = _get_client(context)
    try:
        return await wiki.get_wikis(client, GetWikisOptions(projectId=projectId))
    except AzureDevOpsError as e:
        raise RuntimeError(f"Failed to list wikis: {e}") from e
    finally:
        await client.close()


@app.tool(requires_secrets=AZURE_SECRETS)
async def get_wiki_page(
    context: Context,
    wikiId: Annotated[Optional[str], "The ID or name of the wiki"] = None,
    pagePath: Annotated[
        Optional[str],
        "The path of the page within the wiki. Path will be automatically normalized "
        "(removes .md extension, converts hyphens to spaces in filenames)",
    ] = None,
    includeContent: Annotated[bool, "Whether to include the page content in the response"] = True,
    projectId: Annotated[Optional[str], "The ID or name of the project (defaults to AZURE_DEVOPS_DEFAULT_PROJECT)"] = None,
) -> Annotated[str, "JSON with the page content, eTag, path, gitItemPath and id"]:
    """Get a wiki page's content and metadata."""
    client = _get_client(context)
    try:
        try:
            options = GetWikiPageOptions(
                projectId=projectId,
                wikiId=wikiId,
                pagePath=pagePath,
                includeContent=includeContent,
            )
        except pydantic.ValidationError as e:
            return wiki.get_wiki_page_usage(e, client.config)
        return await wiki.get_wiki_page(client, options)
    except AzureDevOpsError as e:
        raise RuntimeError(f"Failed to get wiki page: {e}") from e
    finally:
        await client.close()


@app.tool(requires_secrets=AZURE_SECRETS)
async def create_wiki(
    context: Context,
    name: Annotated[str, "The name of the new wiki"],
    type: Annotated[WikiType, "Type of wiki to create: projectWiki or codeWiki"] = WikiType.PROJECT_WIKI,
    projectId: Annotated[Optional[str], "The ID or name of the project (defaults to AZURE_DEVOPS_DEFAULT_PROJECT)"] = None,
    repositoryId: Annotated[Optional[str], "The ID of the repository backing a codeWiki"] = None,
    mappedPath: Annotated[Optional[str], "Folder in the repository published as a codeWiki"] = None,
) -> Annotated[str, "JSON with the created wiki and operation metadata"]:
    """Create a new project wiki or code wiki."""
    options = CreateWikiOptions(
        projectId=projectId,
        name=name,
        type=type,
        repositoryId=repositoryId,
        mappedPath=mappedPath,
    )
    client = _get_client(context)
    try:
        return await wiki.create_wiki(client, options)
    except AzureDevOpsError as e:
        raise RuntimeError(f"Failed to create wiki '{name}': {e}") from e
    finally:
        await client.close()


@app.tool(requires_secrets=AZURE_SECRETS)
async def update_wiki_page(
    context: Context,
    wikiId: Annotated[str, "The ID or name of the wiki"],
    pagePath: Annotated[str, "The path of the page within the wiki"],
    content: Annotated[str, "The new markdown content of the page"],
    comment: Annotated[Optional[str], "Optional comment for the update"] = None,
    projectId: Annotated[Optional[str], "The ID or name of the project (defaults to AZURE_DEVOPS_DEFAULT_PROJECT)"] = None,
) -> Annotated[str, "JSON with the updated page and operation metadata"]:
    """Update a wiki page, creating it if it does not exist."""
    options = UpdateWikiPageOptions(
        projectId=projectId,
        wikiId=wikiId,
        pagePath=pagePath,
        content=content,
        comment=comment,
    )
    client = _get_client(context)
    try:
        return await wiki.update_wiki_page(client, options)
    except AzureDevOpsError as e:
        raise RuntimeError(f"Failed to update wiki page: {e}") from e
    finally:
        await client.close()


@app.tool(requires_secrets=AZURE_SECRETS)
async def list_wiki_pages(
    context: Context,
    wikiId: Annotated[str, "The ID or name of the wiki"],
    path: Annotated[Optional[str], "The folder or page path to list from (default: / for root)"] = None,
    recursionLevel: Annotated[
        Optional[RecursionLevel],
        "oneLevel lists only immediate children, full lists entire subtree (default: oneLevel)",
    ] = None,
    includeContent: Annotated[Optional[bool], "Whether to include the markdown content in each result"] = None,
    versionDescriptor: Annotated[Optional[str], "Branch to query, e.g. wikiMaster (default: the wiki's main branch)"] = None,
    projectId: Annotated[Optional[str], "The ID or name of the project (defaults to AZURE_DEVOPS_DEFAULT_PROJECT)"] = None,
) -> Annotated[str, "JSON with count and value (pages sorted by order, then path)"]:
    """List the pages of a wiki."""
    options = ListWikiPagesOptions(
        projectId=projectId,
        wikiId=wikiId,
        path=path,
        recursionLevel=recursionLevel,
        includeContent=includeContent,
        versionDescriptor=versionDescriptor,
    )
    client = _get_client(context)
    try:
        return await wiki.list_wiki_pages(client, options)
    except AzureDevOpsError as e:
        raise RuntimeError(f"Failed to list wiki pages: {e}") from e
    finally:
        await client.close()


@app.tool(requires_secrets=AZURE_SECRETS)
async def create_wiki_page(
    context: Context,
    wikiId: Annotated[str, "The ID or name of the wiki"],
    pagePath: Annotated[str, "The path of the new page, e.g. /Parent/New Page"],
    content: Annotated[str, "The markdown content of the page"],
    comment: Annotated[Optional[str], "Optional comment for the creation"] = None,
    projectId: Annotated[Optional[str], "The ID or name of the project (defaults to AZURE_DEVOPS_DEFAULT_PROJECT)"] = None,
) -> Annotated[str, "JSON with the created page and operation metadata"]:
    """Create a new wiki page. The parent path must already exist."""
    options = CreateWikiPageOptions(
        projectId=projectId,
        wikiId=wikiId,
        pagePath=pagePath,
        content=content,
        comment=comment,
    )
    client = _get_client(context)
    try:
        return await wiki.create_wiki_page(client, options)
    except AzureDevOpsError as e:
        raise RuntimeError(f"Failed to create wiki page: {e}") from e
    finally:
        await client.close()


# ==================== User Tools ====================


@app.tool(requires_secrets=AZURE_SECRETS)
async def get_me(
    context: Context,
) -> Annotated[str, "JSON with id, displayName and email"]:
    """Get details of the currently authenticated user."""
    client = _get_client(context)
    try:
        return await wiki.get_me(client)
    except AzureDevOpsError as e:
        raise RuntimeError(f"Failed to get user information: {e}") from e
    finally:
        await client.close()


# ==================== Entry Point ====================

if __name__ == "__main__":
    # - "stdio" (default): Standard I/O for Claude Desktop, CLI tools, etc.
    # - "http": streamable HTTP for Cursor, VS Code, etc.
    transport = sys.argv[1] if len(sys.argv) > 1 else "stdio"

    logger.info(f"Starting azure_devops_wiki v{VERSION} over {transport}")
    app.run(transport=transport, host="127.0.0.1", port=8000)
