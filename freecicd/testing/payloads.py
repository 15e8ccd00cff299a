"""Payload helpers for Azure DevOps API responses in tests."""

from collections.abc import Mapping, Sequence
from typing import Any

WEB_BASE_URL = "https://dev.azure.com/test-org"


def _links(web_url: str | None) -> dict[str, Any]:
    if web_url is None:
        return {}
    return {"_links": {"web": {"href": web_url}}}


def list_response(items: Sequence[Mapping[str, Any]]) -> dict[str, Any]:
    """Wrap items the way collection endpoints return them."""
    return {"count": len(items), "value": list(items)}


def project(
    *,
    project_id: str = "proj-1",
    name: str = "Web Apps",
    description: str = "",
    last_update_time: str = "2099-01-01T12:00:00Z",
    web_url: str | None = None,
) -> dict[str, Any]:
    """Create a project payload.

    The list endpoint omits `_links`; pass `web_url` for single-project
    responses.
    """
    return {
        "id": project_id,
        "name": name,
        "description": description,
        "state": "wellFormed",
        "visibility": "private",
        "lastUpdateTime": last_update_time,
        **_links(web_url),
    }


def repository(
    *,
    repo_id: str = "repo-1",
    name: str = "Web.App",
    project_id: str = "proj-1",
    default_branch: str | None = "refs/heads/main",
    web_url: str | None = None,
) -> dict[str, Any]:
    """Create a git repository payload."""
    payload: dict[str, Any] = {
        "id": repo_id,
        "name": name,
        "project": {"id": project_id},
        "webUrl": web_url or f"{WEB_BASE_URL}/_git/{name}",
    }
    if default_branch is not None:
        payload["defaultBranch"] = default_branch
    return payload


def branch_stats(
    *,
    name: str = "main",
    commit_id: str = "c0ffee00",
    date: str = "2099-01-01T12:00:00Z",
) -> dict[str, Any]:
    """Create a branch statistics payload."""
    return {
        "name": name,
        "aheadCount": 0,
        "behindCount": 0,
        "isBaseVersion": True,
        "commit": {
            "commitId": commit_id,
            "committer": {"name": "Build Agent", "date": date},
        },
    }


def git_ref(*, name: str = "refs/heads/main", object_id: str = "ref00001") -> dict[str, Any]:
    """Create a git ref payload."""
    return {"name": name, "objectId": object_id}


def git_item(
    *,
    path: str = "/Projects/Web Apps/web.yml",
    object_id: str = "obj00001",
    commit_id: str = "c0ffee00",
    is_folder: bool = False,
    content: str | None = None,
) -> dict[str, Any]:
    """Create a git item payload."""
    payload: dict[str, Any] = {
        "path": path,
        "objectId": object_id,
        "commitId": commit_id,
        "gitObjectType": "tree" if is_folder else "blob",
        "url": f"{WEB_BASE_URL}/_apis/git/items?path={path}",
    }
    if is_folder:
        payload["isFolder"] = True
    if content is not None:
        payload["content"] = content
    return payload


def push(*, push_id: int = 7) -> dict[str, Any]:
    """Create a push creation response payload."""
    return {"pushId": push_id, "date": "2099-01-01T12:00:00Z"}


def agent_queue(*, queue_id: int = 11, name: str = "Default") -> dict[str, Any]:
    """Create an agent queue payload."""
    return {"id": queue_id, "name": name, "pool": {"id": queue_id, "name": name}}


def variable_group(
    *,
    group_id: int = 21,
    name: str = "WebApp-DEV",
    description: str = "",
    variables: Mapping[str, str | None] | None = None,
) -> dict[str, Any]:
    """Create a variable group payload. A None value marks a secret."""
    return {
        "id": group_id,
        "name": name,
        "description": description,
        "type": "Vsts",
        "variables": {
            key: (
                {"value": value}
                if value is not None
                else {"value": None, "isSecret": True}
            )
            for key, value in (variables or {}).items()
        },
    }


def build_definition(
    *,
    definition_id: int = 42,
    name: str = "Web.App",
    path: str = "\\Projects\\Web Apps",
    yaml_filename: str = "Projects/Web Apps/Web.App.yml",
    repo_id: str = "repo-1",
    repo_name: str = "DevOps",
    default_branch: str = "refs/heads/main",
    web_url: str | None = None,
) -> dict[str, Any]:
    """Create a full build definition payload."""
    return {
        "id": definition_id,
        "name": name,
        "path": path,
        "revision": 3,
        "queueStatus": "enabled",
        "process": {"type": 2, "yamlFilename": yaml_filename},
        "repository": {
            "id": repo_id,
            "name": repo_name,
            "type": "TfsGit",
            "defaultBranch": default_branch,
            "properties": {"cleanOptions": "0", "fetchDepth": "0"},
        },
        "queue": {"id": 1, "name": "Azure Pipelines"},
        "triggers": [],
        **_links(
            web_url
            or f"{WEB_BASE_URL}/_build/definition?definitionId={definition_id}"
        ),
    }


def build(
    *,
    build_id: int = 100,
    status: str = "completed",
    result: str | None = "succeeded",
    queue_time: str = "2099-01-01T12:00:00Z",
) -> dict[str, Any]:
    """Create a build payload."""
    payload: dict[str, Any] = {
        "id": build_id,
        "buildNumber": f"20990101.{build_id}",
        "status": status,
        "queueTime": queue_time,
        **_links(f"{WEB_BASE_URL}/_build/results?buildId={build_id}"),
    }
    if result is not None:
        payload["result"] = result
    return payload
