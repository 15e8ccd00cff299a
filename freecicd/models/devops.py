"""Pydantic models for Azure DevOps REST API responses."""

from datetime import datetime

from pydantic import Field

from freecicd.models.base import ApiModel


class WebLink(ApiModel):
    """Web link in _links."""

    href: str


class ResourceLinks(ApiModel):
    """Links bag attached to most resources."""

    web: WebLink | None = None


class LinkedResource(ApiModel):
    """Resource carrying a `_links` bag with an optional browser link."""

    links: ResourceLinks | None = Field(default=None, alias="_links")

    @property
    def web_url(self) -> str:
        """Browser URL of the resource, empty when the service omits it."""
        if self.links and self.links.web:
            return self.links.web.href
        return ""


class Project(LinkedResource):
    """A team project."""

    id: str
    name: str
    description: str = ""
    last_update_time: datetime | None = Field(default=None, alias="lastUpdateTime")


class Repository(LinkedResource):
    """A git repository."""

    id: str
    name: str
    default_branch: str | None = Field(default=None, alias="defaultBranch")
    remote_web_url: str | None = Field(default=None, alias="webUrl")

    @property
    def web_url(self) -> str:
        """Browser URL, preferring `_links.web` over the `webUrl` field."""
        return super().web_url or self.remote_web_url or ""


class Committer(ApiModel):
    """Author or committer stamp on a commit."""

    name: str = ""
    date: datetime | None = None


class CommitRef(ApiModel):
    """Commit reference embedded in branch stats."""

    commit_id: str = Field(alias="commitId")
    committer: Committer | None = None


class BranchStats(ApiModel):
    """Branch statistics entry."""

    name: str
    commit: CommitRef | None = None


class GitRef(ApiModel):
    """A git ref and the object it points at."""

    name: str
    object_id: str = Field(alias="objectId")


class GitItem(ApiModel):
    """A file or folder in a repository."""

    path: str
    object_id: str = Field(default="", alias="objectId")
    commit_id: str = Field(default="", alias="commitId")
    is_folder: bool = Field(default=False, alias="isFolder")
    url: str = ""
    content: str | None = None


class GitPush(ApiModel):
    """Result of a push."""

    push_id: int = Field(alias="pushId")


class AgentQueue(ApiModel):
    """An agent queue available to a project."""

    id: int
    name: str


class VariableValue(ApiModel):
    """A variable inside a variable group. Secret values come back as null."""

    value: str | None = None
    is_secret: bool = Field(default=False, alias="isSecret")
    is_read_only: bool = Field(default=False, alias="isReadOnly")


class VariableGroup(ApiModel):
    """A library variable group."""

    id: int
    name: str
    description: str | None = None
    variables: dict[str, VariableValue] = Field(default_factory=dict)


class YamlProcess(ApiModel):
    """Process section of a YAML build definition."""

    type: int = 2
    yaml_filename: str = Field(default="", alias="yamlFilename")


class BuildRepository(ApiModel):
    """Repository binding of a build definition."""

    id: str = ""
    name: str = ""
    type: str = ""
    default_branch: str = Field(default="", alias="defaultBranch")


class BuildDefinition(LinkedResource):
    """A build definition, either a reference or the full definition."""

    id: int
    name: str = ""
    path: str = ""
    queue_status: str = Field(default="", alias="queueStatus")
    revision: int | None = None
    process: YamlProcess | None = None
    repository: BuildRepository | None = None


class Build(LinkedResource):
    """A single run of a build definition."""

    id: int
    status: str = ""
    result: str | None = None
    queue_time: datetime | None = Field(default=None, alias="queueTime")
