"""Loading of pipeline settings from YAML files."""

import asyncio
from pathlib import Path
from typing import Any

import yaml

from freecicd.config import PipelineSettings


def _read_settings(path: Path) -> dict[str, Any]:
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Settings file {path} must contain a mapping")

    if template_file := data.pop("template_file", None):
        data["build_pipeline_template"] = (path.parent / template_file).read_text(
            encoding="utf-8"
        )
    return data


async def load_pipeline_settings(path: Path) -> PipelineSettings:
    """Load pipeline settings from a YAML file.

    A `template_file` entry is read relative to the settings file and
    replaces the packaged build pipeline template.

    Raises:
        FileNotFoundError: If the settings or template file does not exist

    """
    if not path.exists():
        raise FileNotFoundError(f"Settings file not found: {path}")

    data = await asyncio.to_thread(_read_settings, path)
    return PipelineSettings.model_validate(data)
