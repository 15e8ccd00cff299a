"""Read-only lookups translating remote resources into normalized records.

Failure policy: single-item lookups raise, list lookups return an empty list
and log a warning. `get_variable_groups` and `get_pipeline_runs` are lists
that raise instead, because their callers act on the result.
"""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from urllib.parse import quote

import aiohttp

from freecicd.client import DevOpsClient
from freecicd.config import PipelineSettings
from freecicd.errors import DevOpsApiError
from freecicd.models import devops
from freecicd.models.info import (
    BranchInfo,
    FileItem,
    PipelineDefinitionInfo,
    PipelineRun,
    ProjectInfo,
    RepoInfo,
    Variable,
    VariableGroup,
)
from freecicd.progress import NullProgressSink, ProgressSink, ProgressUpdate

log = logging.getLogger(__name__)

REMOTE_ERRORS = (DevOpsApiError, aiohttp.ClientError, TimeoutError)

BRANCH_REF_PREFIX = "refs/heads/"

NO_PIPELINE_NAME = "No pipeline yet"

NOTIFY_FILE_TYPES = frozenset([".csproj", ".yml"])


def short_branch_name(branch_name: str) -> str:
    """Strip the `refs/heads/` prefix from a branch name."""
    return branch_name.removeprefix(BRANCH_REF_PREFIX)


def to_project_info(project: devops.Project) -> ProjectInfo:
    """Map a project response."""
    return ProjectInfo(
        project_id=project.id,
        project_name=project.name,
        resource_url=project.web_url,
        creation_date=project.last_update_time,
    )


def to_repo_info(repo: devops.Repository) -> RepoInfo:
    """Map a repository response."""
    return RepoInfo(
        repo_id=repo.id,
        repo_name=repo.name,
        resource_url=repo.web_url,
        default_branch=repo.default_branch or "",
    )


def to_branch_info(branch: devops.BranchStats, repo_url: str) -> BranchInfo:
    """Map branch stats, linking the branch view of the repository."""
    display_name = short_branch_name(branch.name)
    commit = branch.commit
    return BranchInfo(
        branch_name=branch.name,
        commit_id=commit.commit_id if commit else "",
        last_commit_date=commit.committer.date if commit and commit.committer else None,
        resource_url=f"{repo_url}?version=GB{quote(display_name, safe='')}",
    )


def to_pipeline_info(definition: devops.BuildDefinition) -> PipelineDefinitionInfo:
    """Map a build definition response."""
    repository = definition.repository
    return PipelineDefinitionInfo(
        id=definition.id,
        name=definition.name,
        queue_status=definition.queue_status,
        yaml_file_name=definition.process.yaml_filename if definition.process else "",
        path=definition.path,
        repo_guid=repository.id if repository else "",
        repository_name=repository.name if repository else "",
        default_branch=repository.default_branch if repository else "",
        resource_url=definition.web_url,
    )


def to_variable_group(group: devops.VariableGroup, project_url: str = "") -> VariableGroup:
    """Map a variable group, linking its library page when a project URL is known."""
    resource_url = ""
    if project_url:
        resource_url = (
            f"{project_url}/_library?itemType=VariableGroups"
            f"&view=VariableGroupView&variableGroupId={group.id}"
        )
    return VariableGroup(
        id=group.id,
        name=group.name,
        description=group.description or "",
        resource_url=resource_url,
        variables=tuple(
            Variable(
                name=name,
                value=value.value,
                is_secret=value.is_secret,
                is_read_only=value.is_read_only,
            )
            for name, value in group.variables.items()
        ),
    )


def to_pipeline_run(build: devops.Build) -> PipelineRun:
    """Map a build response."""
    return PipelineRun(
        id=build.id,
        status=build.status,
        result=build.result or "",
        queue_time=build.queue_time,
        resource_url=build.web_url,
    )


@dataclass(frozen=True, kw_only=True)
class ResourceLookup:
    """Queries projects, repositories, branches, files and pipelines."""

    client: DevOpsClient
    settings: PipelineSettings
    progress: ProgressSink = field(default_factory=NullProgressSink)

    async def _notify(self, correlation_id: str | None, message: str) -> None:
        """Publish a progress message when the caller asked for updates.

        Failures to publish are logged and do not interrupt the lookup.
        """
        if not correlation_id:
            return
        try:
            await self.progress.publish(
                ProgressUpdate(correlation_id=correlation_id, message=message)
            )
        except Exception as exc:
            log.warning("Failed to publish progress update: %s", exc)

    async def get_project(
        self, project_id: str, correlation_id: str | None = None
    ) -> ProjectInfo:
        """Get a single project."""
        await self._notify(correlation_id, "Start of lookup project")
        project = await self.client.get_project(project_id)
        await self._notify(correlation_id, f"Found project {project.name}")
        return to_project_info(project)

    async def get_projects(
        self, correlation_id: str | None = None
    ) -> Sequence[ProjectInfo]:
        """List projects not matching an ignored name prefix.

        Project links are only returned by the single-project endpoint, so
        each project is fetched again concurrently for its web URL.
        """
        await self._notify(correlation_id, "Start of lookup")
        try:
            projects = await self.client.get_projects()
        except REMOTE_ERRORS as exc:
            log.warning("Failed to list projects: %s", exc)
            return []

        visible = [p for p in projects if not self.settings.is_ignored_project(p.name)]

        async def detail(project: devops.Project) -> ProjectInfo:
            await self._notify(correlation_id, f"Found project {project.name}")
            try:
                return to_project_info(await self.client.get_project(project.id))
            except REMOTE_ERRORS as exc:
                log.warning("Failed to get details of project %s: %s", project.name, exc)
                return to_project_info(project)

        return await asyncio.gather(*(detail(p) for p in visible))

    async def get_repo(
        self, project_id: str, repo_id: str, correlation_id: str | None = None
    ) -> RepoInfo:
        """Get a single repository."""
        await self._notify(correlation_id, "Start of lookup")
        repo = await self.client.get_repository(project_id, repo_id)
        await self._notify(correlation_id, f"Found {repo.name}")
        return to_repo_info(repo)

    async def get_repos(
        self, project_id: str, correlation_id: str | None = None
    ) -> Sequence[RepoInfo]:
        """List repositories of a project, fetching details concurrently."""
        await self._notify(correlation_id, "Start of lookup")
        try:
            repos = await self.client.get_repositories(project_id)
        except REMOTE_ERRORS as exc:
            log.warning("Failed to list repositories of %s: %s", project_id, exc)
            return []

        async def detail(repo: devops.Repository) -> RepoInfo:
            try:
                info = to_repo_info(await self.client.get_repository(project_id, repo.id))
            except REMOTE_ERRORS as exc:
                log.warning("Failed to get details of repository %s: %s", repo.name, exc)
                info = to_repo_info(repo)
            await self._notify(correlation_id, f"Found {repo.name}")
            return info

        return await asyncio.gather(*(detail(r) for r in repos))

    async def get_branch(
        self,
        project_id: str,
        repo_id: str,
        branch_name: str,
        correlation_id: str | None = None,
    ) -> BranchInfo:
        """Get a single branch of a repository."""
        await self._notify(correlation_id, "Start of lookup of branch")
        repo = await self.client.get_repository(project_id, repo_id)
        branch = await self.client.get_branch(
            project_id, repo_id, short_branch_name(branch_name)
        )
        await self._notify(
            correlation_id, f"Found branch {branch.name} in repo {repo.name}"
        )
        return to_branch_info(branch, repo.web_url)

    async def get_branches(
        self, project_id: str, repo_id: str, correlation_id: str | None = None
    ) -> Sequence[BranchInfo]:
        """List branches of a repository."""
        await self._notify(correlation_id, "Start of lookup")
        try:
            repo = await self.client.get_repository(project_id, repo_id)
            branches = await self.client.get_branches(project_id, repo_id)
        except REMOTE_ERRORS as exc:
            log.warning("Failed to list branches of %s: %s", repo_id, exc)
            return []

        output: list[BranchInfo] = []
        for branch in branches:
            await self._notify(
                correlation_id, f"Found branch {branch.name} in repo {repo.name}"
            )
            output.append(to_branch_info(branch, repo.web_url))
        return output

    async def list_files(
        self,
        project_id: str,
        repo_id: str,
        branch_name: str,
        correlation_id: str | None = None,
    ) -> Sequence[FileItem]:
        """List every file (not folder) of a branch."""
        await self._notify(correlation_id, "Start of lookup")
        try:
            repo = await self.client.get_repository(project_id, repo_id)
            items = await self.client.get_items(
                project_id, repo_id, short_branch_name(branch_name)
            )
        except REMOTE_ERRORS as exc:
            log.warning("Failed to list files of %s@%s: %s", repo_id, branch_name, exc)
            return []

        display_name = quote(short_branch_name(branch_name), safe="")
        branch_url = f"{repo.web_url}?version=GB{display_name}"

        output: list[FileItem] = []
        for item in items:
            if item.is_folder:
                continue
            file_item = FileItem(
                path=item.path,
                file_type=PurePosixPath(item.path).suffix,
                resource_url=f"{branch_url}&path={item.path}",
            )
            if file_item.file_type in NOTIFY_FILE_TYPES:
                await self._notify(
                    correlation_id,
                    f"Found file {item.path} in branch {branch_name} in repo {repo.name}",
                )
            output.append(file_item)
        return output

    async def get_pipeline(
        self, project_id: str, pipeline_id: int, correlation_id: str | None = None
    ) -> PipelineDefinitionInfo:
        """Get a single pipeline, or a placeholder when `pipeline_id` is 0."""
        await self._notify(correlation_id, "Start of lookup of pipeline")
        if pipeline_id == 0:
            return PipelineDefinitionInfo(id=0, name=NO_PIPELINE_NAME)

        definition = await self.client.get_definition(project_id, pipeline_id)
        await self._notify(correlation_id, f"Found pipeline {definition.name}")
        return to_pipeline_info(definition)

    async def get_pipelines(
        self, project_id: str, correlation_id: str | None = None
    ) -> Sequence[PipelineDefinitionInfo]:
        """List pipelines of a project with their full definitions."""
        await self._notify(correlation_id, "Start of lookup")
        try:
            references = await self.client.get_definitions(project_id)
        except REMOTE_ERRORS as exc:
            log.warning("Failed to list pipelines of %s: %s", project_id, exc)
            return []

        output: list[PipelineDefinitionInfo] = []
        for reference in references:
            try:
                definition = await self.client.get_definition(project_id, reference.id)
            except REMOTE_ERRORS as exc:
                log.warning("Failed to get pipeline %s: %s", reference.id, exc)
                definition = reference
            pipeline = to_pipeline_info(definition)
            await self._notify(correlation_id, f"Found pipeline {pipeline.name}")
            output.append(pipeline)
        return output

    async def get_variable_groups(self, project_id: str) -> Sequence[VariableGroup]:
        """List variable groups of a project with links to their library pages."""
        project = await self.client.get_project(project_id)
        groups = await self.client.get_variable_groups(project.id)
        return [to_variable_group(group, project.web_url) for group in groups]

    async def get_pipeline_runs(
        self, project_id: str, pipeline_id: int, skip: int = 0, top: int = 10
    ) -> Sequence[PipelineRun]:
        """Return `top` runs after skipping `skip`, in the service's order."""
        builds = await self.client.get_builds(project_id, pipeline_id)
        return [to_pipeline_run(build) for build in builds[skip : skip + top]]
