"""Creation and update of YAML build pipelines."""

import copy
import logging
from collections.abc import Mapping
from dataclasses import asdict, dataclass, replace
from typing import Any

from pydantic import Field

from freecicd.client import DevOpsClient
from freecicd.config import PipelineSettings
from freecicd.errors import AgentPoolNotFoundError, PipelineSetupError
from freecicd.git_files import GitFileStore
from freecicd.lookup import (
    BRANCH_REF_PREFIX,
    ResourceLookup,
    short_branch_name,
    to_pipeline_info,
)
from freecicd.models.base import Model
from freecicd.models.devops import AgentQueue
from freecicd.models.devops import BuildDefinition as RemoteBuildDefinition
from freecicd.models.environment import EnvironmentType, EnvSetting
from freecicd.models.info import (
    BranchInfo,
    BuildDefinition,
    ProjectInfo,
    RepoInfo,
)
from freecicd.progress import NullProgressSink, ProgressSink
from freecicd.variable_groups import VariableGroupManager
from freecicd.yaml_renderer import render_pipeline_yaml

log = logging.getLogger(__name__)

REPOSITORY_TYPE = "TfsGit"

# RepositoryCleanOptions.AllBuildDir
CLEAN_ALL_BUILD_DIRECTORY = "3"

FETCH_DEPTH = "1"

# Use the trigger settings from the YAML file
SETTINGS_SOURCE_YAML = 2


class PipelineRequest(Model):
    """Everything needed to generate and register a pipeline."""

    devops_project_id: str = Field(..., description="Project holding the pipeline")
    devops_repo_id: str = Field(..., description="Repository holding the YAML file")
    devops_branch: str = Field(..., description="Branch holding the YAML file")
    devops_pipeline_id: int | None = Field(
        default=None, description="Existing pipeline to update, None or 0 to create"
    )
    devops_pipeline_name: str | None = Field(default=None, description="Pipeline name")
    devops_yml_file_path: str | None = Field(
        default=None, description="YAML path, defaults to Projects/<code project>/<name>.yml"
    )
    code_project_id: str = Field(..., description="Project of the code to build")
    code_repo_id: str = Field(..., description="Repository of the code to build")
    code_branch: str = Field(..., description="Branch of the code to build")
    code_cs_project_file: str = Field(default="", description="Path to the .csproj")
    environment_settings: Mapping[EnvironmentType, EnvSetting] = Field(
        default_factory=dict, description="Deployment settings per environment"
    )

    @property
    def is_update(self) -> bool:
        """Whether an existing pipeline is targeted."""
        return bool(self.devops_pipeline_id and self.devops_pipeline_id > 0)


def continuous_integration_trigger() -> dict[str, Any]:
    """Batched CI trigger allowing one concurrent build per branch."""
    return {
        "triggerType": "continuousIntegration",
        "settingsSourceType": SETTINGS_SOURCE_YAML,
        "batchChanges": True,
        "maxConcurrentBuildsPerBranch": 1,
        "branchFilters": [],
        "pathFilters": [],
    }


def repository_binding(
    repo: RepoInfo, branch_name: str, current: Mapping[str, Any] | None = None
) -> dict[str, Any]:
    """Repository section pointing at the YAML branch with a shallow clean fetch."""
    binding = dict(current or {})
    binding.update(
        {
            "id": repo.repo_id,
            "name": repo.repo_name,
            "type": REPOSITORY_TYPE,
            "defaultBranch": f"{BRANCH_REF_PREFIX}{short_branch_name(branch_name)}",
        }
    )
    binding["properties"] = {
        **(binding.get("properties") or {}),
        "cleanOptions": CLEAN_ALL_BUILD_DIRECTORY,
        "fetchDepth": FETCH_DEPTH,
    }
    return binding


def queue_reference(queue: AgentQueue) -> dict[str, Any]:
    """Queue section of a definition."""
    return {"id": queue.id, "name": queue.name}


def new_definition(
    *,
    name: str,
    path: str,
    project_id: str,
    repo: RepoInfo,
    branch_name: str,
    queue: AgentQueue,
    yaml_filename: str,
) -> dict[str, Any]:
    """Build a new YAML definition."""
    return {
        "name": name,
        "path": path,
        "project": {"id": project_id},
        "queue": queue_reference(queue),
        "queueStatus": "enabled",
        "repository": repository_binding(repo, branch_name),
        "process": {"type": 2, "yamlFilename": yaml_filename},
        "triggers": [continuous_integration_trigger()],
    }


def updated_definition(
    current: Mapping[str, Any],
    *,
    repo: RepoInfo,
    branch_name: str,
    queue: AgentQueue,
    yaml_filename: str | None = None,
) -> dict[str, Any]:
    """Copy of an existing definition with triggers, repository and queue reset.

    When `yaml_filename` is given the definition is pointed at that file.
    """
    definition = copy.deepcopy(dict(current))
    definition["triggers"] = [continuous_integration_trigger()]
    if yaml_filename:
        definition["process"] = {
            **(definition.get("process") or {"type": 2}),
            "yamlFilename": yaml_filename,
        }
    definition["repository"] = repository_binding(
        repo, branch_name, definition.get("repository")
    )
    definition["queue"] = queue_reference(queue)
    definition["queueStatus"] = "enabled"
    return definition


def to_build_definition(definition: RemoteBuildDefinition) -> BuildDefinition:
    """Map a remote definition into the returned summary."""
    info = to_pipeline_info(definition)
    return BuildDefinition(**asdict(info))


@dataclass(frozen=True, kw_only=True)
class PipelineManager:
    """Generates pipeline YAML and registers the build definition."""

    client: DevOpsClient
    settings: PipelineSettings
    lookup: ResourceLookup
    variable_groups: VariableGroupManager
    git_files: GitFileStore

    @classmethod
    def from_client(
        cls,
        client: DevOpsClient,
        settings: PipelineSettings,
        progress: ProgressSink | None = None,
    ) -> "PipelineManager":
        """Wire the manager and its collaborators around one client."""
        return cls(
            client=client,
            settings=settings,
            lookup=ResourceLookup(
                client=client,
                settings=settings,
                progress=progress or NullProgressSink(),
            ),
            variable_groups=VariableGroupManager(client=client, settings=settings),
            git_files=GitFileStore(client=client),
        )

    async def generate_yaml(
        self, request: PipelineRequest, correlation_id: str | None = None
    ) -> str:
        """Render the pipeline YAML without changing anything remotely."""
        devops_project = await self.lookup.get_project(
            request.devops_project_id, correlation_id
        )
        code_project = await self.lookup.get_project(request.code_project_id, correlation_id)
        code_repo = await self.lookup.get_repo(
            request.code_project_id, request.code_repo_id, correlation_id
        )
        code_branch = await self.lookup.get_branch(
            request.code_project_id,
            request.code_repo_id,
            request.code_branch,
            correlation_id,
        )
        return self._render(request, devops_project, code_project, code_repo, code_branch)

    def _render(
        self,
        request: PipelineRequest,
        devops_project: ProjectInfo,
        code_project: ProjectInfo,
        code_repo: RepoInfo,
        code_branch: BranchInfo,
    ) -> str:
        return render_pipeline_yaml(
            self.settings,
            devops_project_name=devops_project.project_name,
            devops_branch=short_branch_name(request.devops_branch),
            code_project_name=code_project.project_name,
            code_repo_name=code_repo.repo_name,
            code_branch=short_branch_name(code_branch.branch_name),
            cs_project_file=request.code_cs_project_file,
            environment_settings=request.environment_settings,
        )

    async def find_agent_queue(self, project_id: str) -> AgentQueue:
        """Find the configured build pool among the project's queues."""
        wanted = self.settings.build_pipeline_pool
        queues = await self.client.get_agent_queues(project_id)
        for queue in queues:
            if queue.name.lower() == wanted.lower():
                return queue
        raise AgentPoolNotFoundError(
            f"Agent pool '{wanted}' not found in project {project_id}"
        )

    async def create_or_update_pipeline(
        self, request: PipelineRequest, correlation_id: str | None = None
    ) -> BuildDefinition:
        """Generate the YAML, commit it and create or update the definition.

        Steps run in order: resolve, render, variable_groups, commit_yaml,
        agent_pool, definition, read_back. A missing environment option fails
        before any variable group is created. Nothing is rolled back on
        failure.

        Raises:
            PipelineSetupError: With the failing step and the steps that had
                already changed remote state

        """
        completed: list[str] = []
        step = "resolve"
        try:
            devops_project = await self.lookup.get_project(
                request.devops_project_id, correlation_id
            )
            devops_pipeline = await self.lookup.get_pipeline(
                request.devops_project_id, request.devops_pipeline_id or 0, correlation_id
            )
            devops_repo = await self.lookup.get_repo(
                request.devops_project_id, request.devops_repo_id, correlation_id
            )
            devops_branch = await self.lookup.get_branch(
                request.devops_project_id,
                request.devops_repo_id,
                request.devops_branch,
                correlation_id,
            )
            code_project = await self.lookup.get_project(
                request.code_project_id, correlation_id
            )
            code_repo = await self.lookup.get_repo(
                request.code_project_id, request.code_repo_id, correlation_id
            )
            code_branch = await self.lookup.get_branch(
                request.code_project_id,
                request.code_repo_id,
                request.code_branch,
                correlation_id,
            )
            existing_groups = await self.lookup.get_variable_groups(
                request.devops_project_id
            )

            pipeline_name = (request.devops_pipeline_name or "").strip()
            if not pipeline_name and request.is_update:
                pipeline_name = devops_pipeline.name
            if not pipeline_name:
                raise ValueError("A pipeline name is required to create a pipeline")

            step = "render"
            yaml_contents = self._render(
                request, devops_project, code_project, code_repo, code_branch
            )

            step = "variable_groups"
            reconciled = await self.variable_groups.reconcile(
                devops_project,
                request.environment_settings,
                existing_groups,
                code_project.project_name,
            )
            if reconciled.created:
                completed.append(step)

            step = "commit_yaml"
            yaml_path = request.devops_yml_file_path or ""
            if not yaml_path.strip():
                yaml_path = f"Projects/{code_project.project_name}/{pipeline_name}.yml"
            branch_name = short_branch_name(devops_branch.branch_name)
            written = await self.git_files.write(
                devops_project.project_id,
                devops_repo.repo_id,
                branch_name,
                yaml_path,
                yaml_contents,
            )
            if not written.success:
                raise RuntimeError(written.message)
            completed.append(step)

            step = "agent_pool"
            queue = await self.find_agent_queue(devops_project.project_id)

            step = "definition"
            yaml_filename = yaml_path.lstrip("/\\")
            pipeline_id = request.devops_pipeline_id or 0
            if pipeline_id > 0:
                current = await self.client.get_definition_payload(
                    devops_project.project_id, pipeline_id
                )
                remote = await self.client.update_definition(
                    devops_project.project_id,
                    pipeline_id,
                    updated_definition(
                        current,
                        repo=devops_repo,
                        branch_name=branch_name,
                        queue=queue,
                        yaml_filename=yaml_filename,
                    ),
                )
            else:
                remote = await self.client.create_definition(
                    devops_project.project_id,
                    new_definition(
                        name=pipeline_name,
                        path=f"Projects/{code_project.project_name}",
                        project_id=devops_project.project_id,
                        repo=devops_repo,
                        branch_name=branch_name,
                        queue=queue,
                        yaml_filename=yaml_filename,
                    ),
                )
            completed.append(step)

            step = "read_back"
            contents = await self.git_files.read(
                devops_project.project_id, devops_repo.repo_id, branch_name, yaml_path
            )
        except Exception as exc:
            log.error("Pipeline setup failed at %s: %s", step, exc, exc_info=exc)
            raise PipelineSetupError(step, completed, exc) from exc

        return replace(to_build_definition(remote), yml_file_contents=contents)
