"""Normalized records returned to callers of the lookup and pipeline APIs."""

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True, kw_only=True)
class ProjectInfo:
    """Snapshot of a team project."""

    project_id: str
    project_name: str
    resource_url: str = ""
    creation_date: datetime | None = None


@dataclass(frozen=True, kw_only=True)
class RepoInfo:
    """Snapshot of a git repository."""

    repo_id: str
    repo_name: str
    resource_url: str = ""
    default_branch: str = ""


@dataclass(frozen=True, kw_only=True)
class BranchInfo:
    """Snapshot of a branch and its head commit."""

    branch_name: str
    commit_id: str = ""
    last_commit_date: datetime | None = None
    resource_url: str = ""


@dataclass(frozen=True, kw_only=True)
class FileItem:
    """A file found in a branch."""

    path: str
    file_type: str
    resource_url: str = ""


@dataclass(frozen=True, kw_only=True)
class PipelineDefinitionInfo:
    """Snapshot of a build definition."""

    id: int
    name: str
    queue_status: str = ""
    yaml_file_name: str = ""
    path: str = ""
    repo_guid: str = ""
    repository_name: str = ""
    default_branch: str = ""
    resource_url: str = ""


@dataclass(frozen=True, kw_only=True)
class Variable:
    """A name/value entry of a variable group."""

    name: str
    value: str | None = None
    is_secret: bool = False
    is_read_only: bool = False


@dataclass(frozen=True, kw_only=True)
class VariableGroup:
    """A named set of pipeline variables."""

    id: int = 0
    name: str
    description: str = ""
    resource_url: str = ""
    variables: Sequence[Variable] = field(default_factory=tuple)


@dataclass(frozen=True, kw_only=True)
class BuildDefinition(PipelineDefinitionInfo):
    """Build definition summary returned after create or update."""

    yml_file_contents: str = ""


@dataclass(frozen=True, kw_only=True)
class PipelineRun:
    """One historical run of a pipeline."""

    id: int
    status: str
    result: str = ""
    queue_time: datetime | None = None
    resource_url: str = ""


@dataclass(frozen=True, kw_only=True)
class GitUpdateResult:
    """Outcome of writing a file to a repository."""

    success: bool
    message: str
