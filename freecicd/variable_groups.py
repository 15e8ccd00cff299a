"""Creation and reconciliation of per-environment variable groups."""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from freecicd.client import DevOpsClient
from freecicd.config import PipelineSettings
from freecicd.lookup import to_variable_group
from freecicd.models.environment import EnvironmentType, EnvSetting
from freecicd.models.info import ProjectInfo, Variable, VariableGroup

log = logging.getLogger(__name__)

VARIABLE_GROUP_TYPE = "Vsts"

CONNECTION_STRING_TEMPLATE = (
    "Data Source=localhost;Initial Catalog={database};TrustServerCertificate=True;"
    "Integrated Security=true;MultipleActiveResultSets=True;"
)


def normalize_group_name(name: str | None) -> str:
    """Key used to match variable group names."""
    return (name or "").strip().lower()


def find_variable_group(
    groups: Sequence[VariableGroup], name: str
) -> VariableGroup | None:
    """Find a group by name, ignoring case and surrounding whitespace."""
    wanted = normalize_group_name(name)
    return next((g for g in groups if normalize_group_name(g.name) == wanted), None)


def default_variables(env: EnvSetting, database_name: str) -> Sequence[Variable]:
    """Variables seeded into a newly created group."""
    return (
        Variable(name="BasePath", value=env.virtual_path),
        Variable(
            name="ConnectionStrings.AppData",
            value=CONNECTION_STRING_TEMPLATE.format(database=database_name),
        ),
        Variable(name="LocalModelUrl", value=""),
    )


@dataclass(frozen=True, kw_only=True)
class ReconcileResult:
    """Groups bound to each configured environment, in environment order."""

    groups: Mapping[EnvironmentType, VariableGroup]
    created: Sequence[VariableGroup] = field(default_factory=tuple)


@dataclass(frozen=True, kw_only=True)
class VariableGroupManager:
    """Creates, updates and reconciles variable groups of a project."""

    client: DevOpsClient
    settings: PipelineSettings

    async def _group_parameters(
        self, project_id: str, group: VariableGroup
    ) -> dict[str, Any]:
        project = await self.client.get_project(project_id)
        return {
            "name": group.name,
            "description": group.description,
            "type": VARIABLE_GROUP_TYPE,
            "variables": {
                variable.name: {
                    "value": variable.value,
                    "isSecret": variable.is_secret,
                    "isReadOnly": variable.is_read_only,
                }
                for variable in group.variables
            },
            "variableGroupProjectReferences": [
                {
                    "name": group.name,
                    "description": project.description,
                    "projectReference": {"id": project.id, "name": project.name},
                }
            ],
        }

    async def create(self, project_id: str, group: VariableGroup) -> VariableGroup:
        """Create a variable group in a project."""
        parameters = await self._group_parameters(project_id, group)
        created = await self.client.add_variable_group(parameters)
        return to_variable_group(created)

    async def update(self, project_id: str, group: VariableGroup) -> VariableGroup:
        """Replace the name, description and variables of an existing group."""
        parameters = await self._group_parameters(project_id, group)
        updated = await self.client.update_variable_group(group.id, parameters)
        return to_variable_group(updated)

    async def reconcile(
        self,
        project: ProjectInfo,
        environment_settings: Mapping[EnvironmentType, EnvSetting],
        existing: Sequence[VariableGroup],
        code_project_name: str,
    ) -> ReconcileResult:
        """Ensure every configured environment has its variable group.

        Existing groups are reused as they are; only missing groups are
        created, seeded with the default variables. A group created for one
        environment is reused by later environments naming the same group.
        """
        known = list(existing)
        groups: dict[EnvironmentType, VariableGroup] = {}
        created: list[VariableGroup] = []

        for env_key in self.settings.environment_order:
            if env_key not in environment_settings:
                continue
            env = environment_settings[env_key]

            if (group := find_variable_group(known, env.variable_group_name)) is None:
                log.info(
                    "Creating variable group %s for %s in project %s",
                    env.variable_group_name,
                    env_key,
                    project.project_name,
                )
                group = await self.create(
                    project.project_id,
                    VariableGroup(
                        name=env.variable_group_name,
                        description=f"Variable group for project {code_project_name}",
                        variables=default_variables(env, project.project_name),
                    ),
                )
                known.append(group)
                created.append(group)

            groups[env_key] = group

        return ReconcileResult(groups=groups, created=created)
