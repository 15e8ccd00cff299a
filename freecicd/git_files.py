"""Committing generated files to a repository and reading them back."""

import logging
from dataclasses import dataclass
from typing import Any, Literal

from freecicd.client import DevOpsClient
from freecicd.errors import ResourceNotFoundError
from freecicd.lookup import BRANCH_REF_PREFIX, REMOTE_ERRORS, short_branch_name
from freecicd.models.devops import GitItem
from freecicd.models.info import GitUpdateResult

log = logging.getLogger(__name__)


def build_push(
    *,
    branch_name: str,
    old_object_id: str,
    path: str,
    content: str,
    change_type: Literal["add", "edit"],
) -> dict[str, Any]:
    """Build a push with one commit holding one change."""
    comment = "Creating file" if change_type == "add" else "Editing file"
    return {
        "refUpdates": [
            {
                "name": f"{BRANCH_REF_PREFIX}{short_branch_name(branch_name)}",
                "oldObjectId": old_object_id,
            }
        ],
        "commits": [
            {
                "comment": comment,
                "changes": [
                    {
                        "changeType": change_type,
                        "item": {"path": path},
                        "newContent": {"content": content, "contentType": "rawtext"},
                    }
                ],
            }
        ],
    }


@dataclass(frozen=True, kw_only=True)
class GitFileStore:
    """Writes and reads text files on a branch."""

    client: DevOpsClient

    async def _find_item(
        self, project_id: str, repo_id: str, branch_name: str, path: str
    ) -> GitItem | None:
        try:
            return await self.client.get_item(
                project_id, repo_id, path, short_branch_name(branch_name)
            )
        except ResourceNotFoundError:
            return None

    async def write(
        self,
        project_id: str,
        repo_id: str,
        branch_name: str,
        path: str,
        content: str,
    ) -> GitUpdateResult:
        """Create the file, or edit it when it already exists.

        Remote failures are reported in the result rather than raised.
        """
        try:
            existing = await self._find_item(project_id, repo_id, branch_name, path)
        except REMOTE_ERRORS as exc:
            log.warning("Failed to check for %s: %s", path, exc)
            return GitUpdateResult(success=False, message=f"Error checking file: {exc}")

        if existing is None:
            return await self._add(project_id, repo_id, branch_name, path, content)
        return await self._edit(
            project_id, repo_id, branch_name, path, content, existing.commit_id
        )

    async def _add(
        self,
        project_id: str,
        repo_id: str,
        branch_name: str,
        path: str,
        content: str,
    ) -> GitUpdateResult:
        try:
            refs = await self.client.get_branch_refs(
                project_id, repo_id, short_branch_name(branch_name)
            )
            ref_name = f"{BRANCH_REF_PREFIX}{short_branch_name(branch_name)}"
            branch_ref = next((r for r in refs if r.name == ref_name), None)
            if branch_ref is None:
                return GitUpdateResult(
                    success=False,
                    message=f"Error creating file: Branch '{branch_name}' not found.",
                )

            push = build_push(
                branch_name=branch_name,
                old_object_id=branch_ref.object_id,
                path=path,
                content=content,
                change_type="add",
            )
            await self.client.create_push(project_id, repo_id, push)
        except REMOTE_ERRORS as exc:
            log.warning("Failed to create %s: %s", path, exc)
            return GitUpdateResult(success=False, message=f"Error creating file: {exc}")

        log.info("Created %s on %s", path, branch_name)
        return GitUpdateResult(success=True, message="File created successfully.")

    async def _edit(
        self,
        project_id: str,
        repo_id: str,
        branch_name: str,
        path: str,
        content: str,
        commit_id: str,
    ) -> GitUpdateResult:
        push = build_push(
            branch_name=branch_name,
            old_object_id=commit_id,
            path=path,
            content=content,
            change_type="edit",
        )
        try:
            await self.client.create_push(project_id, repo_id, push)
        except REMOTE_ERRORS as exc:
            log.warning("Failed to edit %s: %s", path, exc)
            return GitUpdateResult(success=False, message=f"Error editing file: {exc}")

        log.info("Edited %s on %s", path, branch_name)
        return GitUpdateResult(success=True, message="File edited successfully.")

    async def read(
        self, project_id: str, repo_id: str, branch_name: str, path: str
    ) -> str:
        """Return the raw text of a file at the tip of a branch."""
        item = await self.client.get_item(
            project_id,
            repo_id,
            path,
            short_branch_name(branch_name),
            include_content=True,
        )
        return item.content or ""
