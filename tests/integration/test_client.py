"""Integration tests for the DevOps client."""

import base64

import pytest
from aioresponses import aioresponses as aioresponses_cls

from freecicd.client import DevOpsClient
from freecicd.errors import DevOpsApiError, ResourceNotFoundError
from freecicd.testing import payloads
from freecicd.testing.http import api_url, sent_requests


class TestRequests:
    """Tests for request construction and error mapping."""

    async def test_sends_basic_auth_with_pat(
        self, client: DevOpsClient, aioresponses: aioresponses_cls
    ) -> None:
        """Authenticates with an empty user name and the PAT as password."""
        aioresponses.get(
            api_url("/_apis/projects"),
            payload=payloads.list_response([payloads.project()]),
        )

        projects = await client.get_projects()

        assert [p.name for p in projects] == ["Web Apps"]
        expected = base64.b64encode(b":test-pat-token").decode("ascii")
        assert client.session.headers["Authorization"] == f"Basic {expected}"

    async def test_raises_not_found(
        self, client: DevOpsClient, aioresponses: aioresponses_cls
    ) -> None:
        """Raises ResourceNotFoundError for 404 responses."""
        aioresponses.get(
            api_url("/_apis/projects/missing"), status=404, body="Project not found"
        )

        with pytest.raises(
            ResourceNotFoundError, match="Failed to get project: 404 Project not found"
        ):
            await client.get_project("missing")

    async def test_raises_api_error(
        self, client: DevOpsClient, aioresponses: aioresponses_cls
    ) -> None:
        """Raises DevOpsApiError for other failures."""
        aioresponses.get(
            api_url("/proj-1/_apis/distributedtask/queues"),
            status=401,
            body="Unauthorized",
        )

        with pytest.raises(DevOpsApiError, match="401 Unauthorized") as exc_info:
            await client.get_agent_queues("proj-1")

        assert not isinstance(exc_info.value, ResourceNotFoundError)

    async def test_get_item_requests_branch_version(
        self, client: DevOpsClient, aioresponses: aioresponses_cls
    ) -> None:
        """Reads the item at the tip of the given branch."""
        aioresponses.get(
            api_url(
                "/proj-1/_apis/git/repositories/repo-1/items",
                **{
                    "path": "/a.yml",
                    "includeContent": "true",
                    "versionDescriptor.version": "develop",
                    "versionDescriptor.versionType": "branch",
                    "$format": "json",
                },
            ),
            payload=payloads.git_item(path="/a.yml", content="trigger: none\n"),
        )

        item = await client.get_item(
            "proj-1", "repo-1", "/a.yml", "develop", include_content=True
        )

        assert item.content == "trigger: none\n"

    async def test_get_branch_by_name(
        self, client: DevOpsClient, aioresponses: aioresponses_cls
    ) -> None:
        """Requests the statistics of one branch."""
        aioresponses.get(
            api_url(
                "/proj-1/_apis/git/repositories/repo-1/stats/branches", name="develop"
            ),
            payload=payloads.branch_stats(name="develop", commit_id="abc"),
        )

        branch = await client.get_branch("proj-1", "repo-1", "develop")

        assert branch.commit is not None
        assert branch.commit.commit_id == "abc"


class TestMutations:
    """Tests for create and update calls."""

    async def test_creates_variable_group_at_organization_level(
        self, client: DevOpsClient, aioresponses: aioresponses_cls
    ) -> None:
        """Posts new groups to the organization scoped endpoint."""
        aioresponses.post(
            api_url("/_apis/distributedtask/variablegroups"),
            payload=payloads.variable_group(group_id=9, name="App-DEV"),
        )

        group = await client.add_variable_group({"name": "App-DEV"})

        assert group.id == 9
        [call] = sent_requests(aioresponses, "POST", "/_apis/distributedtask/variablegroups")
        assert call.kwargs["json"] == {"name": "App-DEV"}

    async def test_updates_definition_with_put(
        self, client: DevOpsClient, aioresponses: aioresponses_cls
    ) -> None:
        """Replaces a definition by ID."""
        aioresponses.put(
            api_url("/proj-1/_apis/build/definitions/42"),
            payload=payloads.build_definition(definition_id=42, name="Web.App"),
        )

        definition = await client.update_definition("proj-1", 42, {"id": 42})

        assert definition.name == "Web.App"
        assert definition.process is not None
        assert definition.process.yaml_filename == "Projects/Web Apps/Web.App.yml"
        assert len(sent_requests(aioresponses, "PUT", "/proj-1/_apis/build/definitions/42")) == 1
