"""Configuration for the DevOps connection and pipeline generation."""

from collections.abc import Mapping, Sequence
from importlib.resources import files

from pydantic import BaseModel, Field, SecretStr, field_validator

from freecicd.errors import MissingEnvironmentOptionError
from freecicd.models.environment import EnvironmentType

DEFAULT_TEMPLATE_RESOURCE = "build-pipeline.yml"


def default_build_pipeline_template() -> str:
    """Return the packaged build pipeline template."""
    return (
        files("freecicd.templates")
        .joinpath(DEFAULT_TEMPLATE_RESOURCE)
        .read_text(encoding="utf-8")
    )


class DevOpsConfig(BaseModel):
    """Connection settings for an Azure DevOps organization."""

    token: SecretStr
    organization: str
    api_base_url: str = "https://dev.azure.com"
    api_version: str = "7.1"
    request_timeout: float = 60

    @field_validator("token")
    @classmethod
    def _token_not_blank(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value().strip():
            raise ValueError("token must not be empty")
        return value

    @field_validator("organization")
    @classmethod
    def _organization_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("organization must not be empty")
        return value.strip()


class EnvironmentOption(BaseModel):
    """Static per-environment deployment settings."""

    agent_pool: str
    dotnet_version: str = ""
    app_pool_identity: str = ""


class PipelineSettings(BaseModel):
    """Settings shared by every generated pipeline.

    `environment_order` decides the order of variable entries and deploy
    stages, and which environment wins when several supply an auth user.
    """

    environment_order: Sequence[EnvironmentType] = Field(
        default=(EnvironmentType.DEV, EnvironmentType.PROD, EnvironmentType.CMS)
    )
    environment_options: Mapping[EnvironmentType, EnvironmentOption] = Field(
        default_factory=dict
    )
    build_pipeline_pool: str = "Default"
    project_name_ignore_prefixes: Sequence[str] = Field(default_factory=list)
    build_pipeline_template: str = Field(
        default_factory=default_build_pipeline_template
    )

    def option_for(self, env: EnvironmentType) -> EnvironmentOption:
        """Return the static options for an environment."""
        try:
            return self.environment_options[env]
        except KeyError:
            raise MissingEnvironmentOptionError(
                f"No environment options configured for {env}"
            ) from None

    def is_ignored_project(self, project_name: str) -> bool:
        """Check the project name against the ignore prefixes, ignoring case."""
        name = project_name.lower()
        return any(
            name.startswith(prefix.lower())
            for prefix in self.project_name_ignore_prefixes
        )
