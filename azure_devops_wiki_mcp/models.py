"""Pydantic models for Azure DevOps wiki requests and responses."""

from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class WikiType(str, Enum):
    """Kind of wiki: provisioned project wiki or code wiki published from a repo."""

    PROJECT_WIKI = "projectWiki"
    CODE_WIKI = "codeWiki"


class RecursionLevel(str, Enum):
    """How deep page listing descends below the requested path."""

    ONE_LEVEL = "oneLevel"
    FULL = "full"


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_api(self) -> dict[str, Any]:
        """Dump using the API's camelCase names, omitting unset values."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


# Wiki Models
class GitVersionDescriptor(_CamelModel):
    """Branch, tag or commit a code wiki is published from."""

    version: str
    version_type: Optional[Literal["branch", "tag", "commit"]] = Field(None, alias="versionType")


class WikiCreateParameters(_CamelModel):
    """Body of a create wiki request."""

    name: str
    project_id: str = Field(alias="projectId")
    type: WikiType = WikiType.PROJECT_WIKI
    repository_id: Optional[str] = Field(None, alias="repositoryId")
    mapped_path: Optional[str] = Field(None, alias="mappedPath")
    version: Optional[GitVersionDescriptor] = None

    def to_api(self) -> dict[str, Any]:
        body: dict[str, Any] = {"name": self.name, "type": self.type.value, "projectId": self.project_id}
        if self.type is WikiType.CODE_WIKI:
            body["repositoryId"] = self.repository_id
            body["mappedPath"] = self.mapped_path
            body["version"] = self.version.to_api() if self.version else None
        return body


class WikiPageSummary(_CamelModel):
    """Wiki page entry produced by page listing."""

    id: int
    path: str
    url: Optional[str] = None
    order: Optional[int] = None
    remote_url: Optional[str] = Field(None, alias="remoteUrl")
    git_item_path: Optional[str] = Field(None, alias="gitItemPath")
    is_parent_page: Optional[bool] = Field(None, alias="isParentPage")
    content: Optional[str] = None


class WikiPageContent(_CamelModel):
    """A single wiki page with the ETag needed to update it."""

    content: str = ""
    e_tag: Optional[str] = Field(None, alias="eTag")
    path: Optional[str] = None
    git_item_path: Optional[str] = Field(None, alias="gitItemPath")
    id: Optional[int] = None


class UserProfile(_CamelModel):
    """Authenticated user."""

    id: str
    display_name: str = Field("", alias="displayName")
    email: str = ""


# Tool Options
class _ToolOptions(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    project_id: Optional[str] = Field(None, alias="projectId")


class GetWikisOptions(_ToolOptions):
    pass


class GetWikiPageOptions(_ToolOptions):
    wiki_id: str = Field(alias="wikiId", min_length=1)
    page_path: str = Field(alias="pagePath", min_length=1)
    include_content: bool = Field(True, alias="includeContent")


class CreateWikiOptions(_ToolOptions):
    name: str = Field(min_length=1)
    type: WikiType = WikiType.PROJECT_WIKI
    repository_id: Optional[str] = Field(None, alias="repositoryId")
    mapped_path: Optional[str] = Field(None, alias="mappedPath")

    @model_validator(mode="after")
    def _code_wiki_source(self) -> "CreateWikiOptions":
        if self.type is WikiType.CODE_WIKI and not (self.repository_id and self.mapped_path):
            raise ValueError("repositoryId and mappedPath are required for a codeWiki")
        return self


class UpdateWikiPageOptions(_ToolOptions):
    wiki_id: str = Field(alias="wikiId", min_length=1)
    page_path: str = Field(alias="pagePath", min_length=1)
    content: str
    comment: Optional[str] = None


class CreateWikiPageOptions(_ToolOptions):
    wiki_id: str = Field(alias="wikiId", min_length=1)
    page_path: str = Field(alias="pagePath", min_length=1)
    content: str
    comment: Optional[str] = None


class ListWikiPagesOptions(_ToolOptions):
    wiki_id: str = Field(alias="wikiId", min_length=1)
    path: Optional[str] = None
    recursion_level: Optional[RecursionLevel] = Field(None, alias="recursionLevel")
    include_content: Optional[bool] = Field(None, alias="includeContent")
    version_descriptor: Optional[str] = Field(None, alias="versionDescriptor")
