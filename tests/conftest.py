"""Shared fixtures."""

import pytest
from pydantic import SecretStr

from freecicd.config import DevOpsConfig, EnvironmentOption, PipelineSettings
from freecicd.models.environment import EnvironmentType
from freecicd.testing.http import API_BASE_URL, ORGANIZATION


@pytest.fixture
def devops_config() -> DevOpsConfig:
    """Create test connection configuration."""
    return DevOpsConfig(
        token=SecretStr("test-pat-token"),
        organization=ORGANIZATION,
        api_base_url=API_BASE_URL,
    )


@pytest.fixture
def settings() -> PipelineSettings:
    """Create pipeline settings using the packaged template."""
    return PipelineSettings(
        environment_options={
            EnvironmentType.DEV: EnvironmentOption(
                agent_pool="DEV-Servers",
                dotnet_version="8.0",
                app_pool_identity="ApplicationPoolIdentity",
            ),
            EnvironmentType.PROD: EnvironmentOption(
                agent_pool="PROD-Servers",
                dotnet_version="8.0",
                app_pool_identity="ApplicationPoolIdentity",
            ),
            EnvironmentType.CMS: EnvironmentOption(
                agent_pool="CMS-Servers",
                dotnet_version="8.0",
                app_pool_identity="NetworkService",
            ),
        },
        build_pipeline_pool="Default",
        project_name_ignore_prefixes=["Archive"],
    )
