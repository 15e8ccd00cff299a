"""Deployment environment types and per-environment settings."""

from enum import StrEnum

from pydantic import Field

from freecicd.models.base import Model


class EnvironmentType(StrEnum):
    """Deployment environment keys used in variable and stage names."""

    DEV = "DEV"
    PROD = "PROD"
    CMS = "CMS"


class IISDeploymentType(StrEnum):
    """How the build is published to IIS."""

    WEBSITE = "IISWebsite"
    APPLICATION = "IISApplication"


class EnvSetting(Model):
    """Caller supplied deployment settings for one environment."""

    display_name: str = Field(default="", description="Human readable name")
    website_name: str = Field(..., description="IIS website name")
    app_pool_name: str = Field(..., description="IIS application pool name")
    virtual_path: str = Field(default="", description="IIS virtual path")
    iis_deployment_type: IISDeploymentType = Field(
        default=IISDeploymentType.WEBSITE, description="IIS deployment type"
    )
    variable_group_name: str = Field(..., description="Variable group to bind")
    binding_info: str | None = Field(
        default=None, description="Literal IIS binding block, emitted verbatim"
    )
    auth_user: str | None = Field(
        default=None, description="Username for app pool and folder permissions"
    )

    def label(self, key: EnvironmentType) -> str:
        """Return the display name, falling back to the environment key."""
        return self.display_name.strip() or key.value

    @property
    def has_binding_info(self) -> bool:
        """Whether a non-blank binding block was supplied."""
        return bool(self.binding_info and self.binding_info.strip())
