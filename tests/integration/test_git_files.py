"""Integration tests for committing files to a branch."""

import pytest
from aioresponses import aioresponses as aioresponses_cls

from freecicd.client import DevOpsClient
from freecicd.errors import ResourceNotFoundError
from freecicd.git_files import GitFileStore
from freecicd.testing import payloads
from freecicd.testing.http import api_url, sent_requests

ITEMS_PATH = "/proj-1/_apis/git/repositories/repo-1/items"
PUSHES_PATH = "/proj-1/_apis/git/repositories/repo-1/pushes"
FILE_PATH = "/Projects/Web Apps/Web.App.yml"


def item_url(branch: str = "main", include_content: bool = False) -> str:
    """URL of the item lookup for the test file."""
    return api_url(
        ITEMS_PATH,
        **{
            "path": FILE_PATH,
            "includeContent": "true" if include_content else "false",
            "versionDescriptor.version": branch,
            "versionDescriptor.versionType": "branch",
            "$format": "json",
        },
    )


def refs_url(branch: str = "main") -> str:
    """URL of the ref lookup for a branch."""
    return api_url(
        "/proj-1/_apis/git/repositories/repo-1/refs", filter=f"heads/{branch}"
    )


@pytest.fixture
def store(client: DevOpsClient) -> GitFileStore:
    """Create file store."""
    return GitFileStore(client=client)


class TestWrite:
    """Tests for GitFileStore.write."""

    async def test_adds_missing_file(
        self, store: GitFileStore, aioresponses: aioresponses_cls
    ) -> None:
        """Pushes an add against the branch head when the file is missing."""
        aioresponses.get(item_url(), status=404, body="not found")
        aioresponses.get(
            refs_url(),
            payload=payloads.list_response(
                [
                    payloads.git_ref(name="refs/heads/main-old", object_id="wrong"),
                    payloads.git_ref(name="refs/heads/main", object_id="head1"),
                ]
            ),
        )
        aioresponses.post(api_url(PUSHES_PATH), payload=payloads.push())

        result = await store.write("proj-1", "repo-1", "main", FILE_PATH, "trigger: none\n")

        assert result.success
        assert result.message == "File created successfully."
        [call] = sent_requests(aioresponses, "POST", PUSHES_PATH)
        push = call.kwargs["json"]
        assert push["refUpdates"] == [{"name": "refs/heads/main", "oldObjectId": "head1"}]
        change = push["commits"][0]["changes"][0]
        assert change["changeType"] == "add"
        assert change["item"] == {"path": FILE_PATH}
        assert change["newContent"]["content"] == "trigger: none\n"

    async def test_edits_existing_file(
        self, store: GitFileStore, aioresponses: aioresponses_cls
    ) -> None:
        """Pushes an edit against the file's commit on the target branch."""
        aioresponses.get(
            item_url(branch="develop"),
            payload=payloads.git_item(path=FILE_PATH, commit_id="commit9"),
        )
        aioresponses.post(api_url(PUSHES_PATH), payload=payloads.push())

        result = await store.write(
            "proj-1", "repo-1", "refs/heads/develop", FILE_PATH, "trigger: none\n"
        )

        assert result.success
        assert result.message == "File edited successfully."
        [call] = sent_requests(aioresponses, "POST", PUSHES_PATH)
        push = call.kwargs["json"]
        assert push["refUpdates"] == [
            {"name": "refs/heads/develop", "oldObjectId": "commit9"}
        ]
        assert push["commits"][0]["comment"] == "Editing file"
        assert push["commits"][0]["changes"][0]["changeType"] == "edit"

    async def test_reports_missing_branch(
        self, store: GitFileStore, aioresponses: aioresponses_cls
    ) -> None:
        """Fails without pushing when the branch does not exist."""
        aioresponses.get(item_url(branch="gone"), status=404, body="not found")
        aioresponses.get(refs_url(branch="gone"), payload=payloads.list_response([]))

        result = await store.write("proj-1", "repo-1", "gone", FILE_PATH, "x")

        assert not result.success
        assert result.message == "Error creating file: Branch 'gone' not found."
        assert sent_requests(aioresponses, "POST", PUSHES_PATH) == []

    async def test_reports_failed_check(
        self, store: GitFileStore, aioresponses: aioresponses_cls
    ) -> None:
        """Reports errors other than not found from the existence check."""
        aioresponses.get(item_url(), status=500, body="boom")

        result = await store.write("proj-1", "repo-1", "main", FILE_PATH, "x")

        assert not result.success
        assert result.message.startswith("Error checking file:")

    async def test_reports_rejected_push(
        self, store: GitFileStore, aioresponses: aioresponses_cls
    ) -> None:
        """Reports a push rejected by the service."""
        aioresponses.get(item_url(), payload=payloads.git_item(path=FILE_PATH))
        aioresponses.post(api_url(PUSHES_PATH), status=409, body="stale")

        result = await store.write("proj-1", "repo-1", "main", FILE_PATH, "x")

        assert not result.success
        assert "409 stale" in result.message


class TestRead:
    """Tests for GitFileStore.read."""

    async def test_returns_content(
        self, store: GitFileStore, aioresponses: aioresponses_cls
    ) -> None:
        """Returns the raw file text."""
        aioresponses.get(
            item_url(include_content=True),
            payload=payloads.git_item(path=FILE_PATH, content="stages: []\n"),
        )

        assert await store.read("proj-1", "repo-1", "main", FILE_PATH) == "stages: []\n"

    async def test_raises_when_missing(
        self, store: GitFileStore, aioresponses: aioresponses_cls
    ) -> None:
        """Propagates not found errors."""
        aioresponses.get(item_url(include_content=True), status=404, body="missing")

        with pytest.raises(ResourceNotFoundError):
            await store.read("proj-1", "repo-1", "main", FILE_PATH)
