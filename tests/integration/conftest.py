"""Fixtures for integration tests against mocked HTTP responses."""

from collections.abc import AsyncGenerator

import pytest
from aioresponses import aioresponses as aioresponses_cls

from freecicd.client import DevOpsClient
from freecicd.config import DevOpsConfig


@pytest.fixture
async def client(
    devops_config: DevOpsConfig, aioresponses: aioresponses_cls
) -> AsyncGenerator[DevOpsClient, None]:
    """Create client with managed session."""
    async with DevOpsClient.from_config(devops_config) as impl:
        yield impl
