"""Async client for the Azure DevOps REST API."""

import base64
import logging
from collections.abc import AsyncGenerator, Mapping, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

import aiohttp

from freecicd.config import DevOpsConfig
from freecicd.errors import DevOpsApiError, ResourceNotFoundError
from freecicd.models.devops import (
    AgentQueue,
    BranchStats,
    Build,
    BuildDefinition,
    GitItem,
    GitPush,
    GitRef,
    Project,
    Repository,
    VariableGroup,
)

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class DevOpsClient:
    """Thin typed wrapper over the REST endpoints used for pipeline setup.

    Every path is scoped to the configured organization. Instances are only
    valid inside the `from_config` context, which owns the HTTP session.
    """

    config: DevOpsConfig
    session: aiohttp.ClientSession = field(repr=False)

    @classmethod
    @asynccontextmanager
    async def from_config(
        cls, config: DevOpsConfig
    ) -> AsyncGenerator["DevOpsClient", None]:
        """Create client with managed session lifecycle."""
        # Azure DevOps uses Basic Auth with empty username and PAT as password
        auth_string = f":{config.token.get_secret_value()}"
        auth_bytes = base64.b64encode(auth_string.encode("ascii")).decode("ascii")
        headers = {
            "Authorization": f"Basic {auth_bytes}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        async with aiohttp.ClientSession(
            base_url=config.api_base_url,
            headers=headers,
            timeout=aiohttp.ClientTimeout(total=config.request_timeout),
        ) as session:
            yield cls(config=config, session=session)

    async def _send(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        params: Mapping[str, str] | None = None,
        payload: Mapping[str, Any] | None = None,
    ) -> Any:
        """Send a request and return the decoded JSON body."""
        url = f"/{self.config.organization}{path}"
        query = {"api-version": self.config.api_version, **(params or {})}

        async with self.session.request(
            method, url, params=query, json=payload
        ) as response:
            if response.status == 404:
                text = await response.text()
                raise ResourceNotFoundError(operation, response.status, text)
            if not 200 <= response.status < 300:
                text = await response.text()
                raise DevOpsApiError(operation, response.status, text)
            return await response.json()

    async def _list(
        self,
        path: str,
        *,
        operation: str,
        params: Mapping[str, str] | None = None,
    ) -> Sequence[Any]:
        """Send a GET for a collection and return its `value` items."""
        data = await self._send("GET", path, operation=operation, params=params)
        return data.get("value", [])

    # Projects

    async def get_projects(self) -> Sequence[Project]:
        """List all projects in the organization."""
        items = await self._list("/_apis/projects", operation="list projects")
        return [Project.model_validate(item) for item in items]

    async def get_project(self, project_id: str) -> Project:
        """Get a project by ID or name."""
        data = await self._send(
            "GET", f"/_apis/projects/{project_id}", operation="get project"
        )
        return Project.model_validate(data)

    # Git

    async def get_repositories(self, project_id: str) -> Sequence[Repository]:
        """List git repositories of a project."""
        items = await self._list(
            f"/{project_id}/_apis/git/repositories", operation="list repositories"
        )
        return [Repository.model_validate(item) for item in items]

    async def get_repository(self, project_id: str, repo_id: str) -> Repository:
        """Get a git repository by ID or name."""
        data = await self._send(
            "GET",
            f"/{project_id}/_apis/git/repositories/{repo_id}",
            operation="get repository",
        )
        return Repository.model_validate(data)

    async def get_branch(
        self, project_id: str, repo_id: str, branch_name: str
    ) -> BranchStats:
        """Get statistics for a single branch."""
        data = await self._send(
            "GET",
            f"/{project_id}/_apis/git/repositories/{repo_id}/stats/branches",
            operation="get branch",
            params={"name": branch_name},
        )
        return BranchStats.model_validate(data)

    async def get_branches(self, project_id: str, repo_id: str) -> Sequence[BranchStats]:
        """List statistics for all branches of a repository."""
        items = await self._list(
            f"/{project_id}/_apis/git/repositories/{repo_id}/stats/branches",
            operation="list branches",
        )
        return [BranchStats.model_validate(item) for item in items]

    async def get_branch_refs(
        self, project_id: str, repo_id: str, branch_name: str
    ) -> Sequence[GitRef]:
        """List refs under `heads/<branch_name>`."""
        items = await self._list(
            f"/{project_id}/_apis/git/repositories/{repo_id}/refs",
            operation="list refs",
            params={"filter": f"heads/{branch_name}"},
        )
        return [GitRef.model_validate(item) for item in items]

    async def get_item(
        self,
        project_id: str,
        repo_id: str,
        path: str,
        branch_name: str,
        *,
        include_content: bool = False,
    ) -> GitItem:
        """Get a single item at the tip of a branch.

        Raises:
            ResourceNotFoundError: If no item exists at the path

        """
        data = await self._send(
            "GET",
            f"/{project_id}/_apis/git/repositories/{repo_id}/items",
            operation="get item",
            params={
                "path": path,
                "includeContent": "true" if include_content else "false",
                "versionDescriptor.version": branch_name,
                "versionDescriptor.versionType": "branch",
                "$format": "json",
            },
        )
        return GitItem.model_validate(data)

    async def get_items(
        self, project_id: str, repo_id: str, branch_name: str
    ) -> Sequence[GitItem]:
        """List every item of a branch recursively."""
        items = await self._list(
            f"/{project_id}/_apis/git/repositories/{repo_id}/items",
            operation="list items",
            params={
                "recursionLevel": "Full",
                "versionDescriptor.version": branch_name,
                "versionDescriptor.versionType": "branch",
            },
        )
        return [GitItem.model_validate(item) for item in items]

    async def create_push(
        self, project_id: str, repo_id: str, push: Mapping[str, Any]
    ) -> GitPush:
        """Push commits to a repository."""
        data = await self._send(
            "POST",
            f"/{project_id}/_apis/git/repositories/{repo_id}/pushes",
            operation="push changes",
            payload=push,
        )
        log.info("Created push %s in repository %s", data.get("pushId"), repo_id)
        return GitPush.model_validate(data)

    # Build

    async def get_definitions(self, project_id: str) -> Sequence[BuildDefinition]:
        """List build definition references of a project."""
        items = await self._list(
            f"/{project_id}/_apis/build/definitions",
            operation="list build definitions",
        )
        return [BuildDefinition.model_validate(item) for item in items]

    async def get_definition_payload(
        self, project_id: str, definition_id: int
    ) -> dict[str, Any]:
        """Get the full raw definition, suitable for modifying and sending back."""
        data: dict[str, Any] = await self._send(
            "GET",
            f"/{project_id}/_apis/build/definitions/{definition_id}",
            operation="get build definition",
        )
        return data

    async def get_definition(self, project_id: str, definition_id: int) -> BuildDefinition:
        """Get a full build definition."""
        data = await self.get_definition_payload(project_id, definition_id)
        return BuildDefinition.model_validate(data)

    async def create_definition(
        self, project_id: str, definition: Mapping[str, Any]
    ) -> BuildDefinition:
        """Create a build definition."""
        data = await self._send(
            "POST",
            f"/{project_id}/_apis/build/definitions",
            operation="create build definition",
            payload=definition,
        )
        log.info("Created build definition %s (%s)", data.get("id"), data.get("name"))
        return BuildDefinition.model_validate(data)

    async def update_definition(
        self, project_id: str, definition_id: int, definition: Mapping[str, Any]
    ) -> BuildDefinition:
        """Replace a build definition."""
        data = await self._send(
            "PUT",
            f"/{project_id}/_apis/build/definitions/{definition_id}",
            operation="update build definition",
            payload=definition,
        )
        log.info("Updated build definition %s (%s)", definition_id, data.get("name"))
        return BuildDefinition.model_validate(data)

    async def get_builds(self, project_id: str, definition_id: int) -> Sequence[Build]:
        """List builds of a definition in the order the service returns them."""
        items = await self._list(
            f"/{project_id}/_apis/build/builds",
            operation="list builds",
            params={"definitions": str(definition_id)},
        )
        return [Build.model_validate(item) for item in items]

    # Distributed task

    async def get_agent_queues(self, project_id: str) -> Sequence[AgentQueue]:
        """List agent queues available to a project."""
        items = await self._list(
            f"/{project_id}/_apis/distributedtask/queues",
            operation="list agent queues",
        )
        return [AgentQueue.model_validate(item) for item in items]

    async def get_variable_groups(self, project_id: str) -> Sequence[VariableGroup]:
        """List variable groups of a project."""
        items = await self._list(
            f"/{project_id}/_apis/distributedtask/variablegroups",
            operation="list variable groups",
        )
        return [VariableGroup.model_validate(item) for item in items]

    async def add_variable_group(self, group: Mapping[str, Any]) -> VariableGroup:
        """Create a variable group and share it with the referenced projects."""
        data = await self._send(
            "POST",
            "/_apis/distributedtask/variablegroups",
            operation="create variable group",
            payload=group,
        )
        log.info("Created variable group %s (%s)", data.get("id"), data.get("name"))
        return VariableGroup.model_validate(data)

    async def update_variable_group(
        self, group_id: int, group: Mapping[str, Any]
    ) -> VariableGroup:
        """Replace a variable group."""
        data = await self._send(
            "PUT",
            f"/_apis/distributedtask/variablegroups/{group_id}",
            operation="update variable group",
            payload=group,
        )
        log.info("Updated variable group %s (%s)", group_id, data.get("name"))
        return VariableGroup.model_validate(data)
