"""CLI entry point for pipeline generation and DevOps lookups."""

import argparse
import asyncio
import json
import logging
import os
import sys
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import Any, TypeAlias

from pydantic import ValidationError

from freecicd.client import DevOpsClient
from freecicd.config import DevOpsConfig, PipelineSettings
from freecicd.errors import (
    MissingEnvironmentOptionError,
    PipelineSetupError,
    TemplateRenderError,
)
from freecicd.lookup import REMOTE_ERRORS, ResourceLookup
from freecicd.pipelines import PipelineManager, PipelineRequest
from freecicd.progress import LoggingProgressSink
from freecicd.settings_loader import load_pipeline_settings

CLI_CORRELATION_ID = "cli"

Command: TypeAlias = Callable[[PipelineManager, argparse.Namespace], Awaitable[Any]]


def load_devops_config(config_json: str | None) -> DevOpsConfig:
    """Build the connection config from JSON or the environment."""
    if config_json:
        return DevOpsConfig(**json.loads(config_json))
    return DevOpsConfig(
        token=os.environ.get("AZURE_DEVOPS_PAT", ""),
        organization=os.environ.get("AZURE_DEVOPS_ORG", ""),
        api_base_url=os.environ.get("AZURE_DEVOPS_URL", "https://dev.azure.com"),
    )


def load_request(value: str) -> PipelineRequest:
    """Parse a pipeline request given inline or as `@path/to/request.json`."""
    if value.startswith("@"):
        value = Path(value[1:]).read_text(encoding="utf-8")
    return PipelineRequest.model_validate_json(value)


def format_output(value: Any) -> Any:
    """Convert results into JSON serializable structures."""
    if isinstance(value, (list, tuple)):
        return [format_output(item) for item in value]
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    return value


def _lookup(manager: PipelineManager) -> ResourceLookup:
    return manager.lookup


async def _projects(manager: PipelineManager, args: argparse.Namespace) -> Any:
    return await _lookup(manager).get_projects(CLI_CORRELATION_ID)


async def _repos(manager: PipelineManager, args: argparse.Namespace) -> Any:
    return await _lookup(manager).get_repos(args.project, CLI_CORRELATION_ID)


async def _branches(manager: PipelineManager, args: argparse.Namespace) -> Any:
    return await _lookup(manager).get_branches(
        args.project, args.repo, CLI_CORRELATION_ID
    )


async def _files(manager: PipelineManager, args: argparse.Namespace) -> Any:
    return await _lookup(manager).list_files(
        args.project, args.repo, args.branch, CLI_CORRELATION_ID
    )


async def _pipelines(manager: PipelineManager, args: argparse.Namespace) -> Any:
    return await _lookup(manager).get_pipelines(args.project, CLI_CORRELATION_ID)


async def _runs(manager: PipelineManager, args: argparse.Namespace) -> Any:
    return await _lookup(manager).get_pipeline_runs(
        args.project, args.pipeline_id, skip=args.skip, top=args.top
    )


async def _variable_groups(manager: PipelineManager, args: argparse.Namespace) -> Any:
    return await _lookup(manager).get_variable_groups(args.project)


async def _generate_yaml(manager: PipelineManager, args: argparse.Namespace) -> Any:
    return await manager.generate_yaml(load_request(args.request), CLI_CORRELATION_ID)


async def _create_pipeline(manager: PipelineManager, args: argparse.Namespace) -> Any:
    return await manager.create_or_update_pipeline(
        load_request(args.request), CLI_CORRELATION_ID
    )


COMMANDS: dict[str, Command] = {
    "projects": _projects,
    "repos": _repos,
    "branches": _branches,
    "files": _files,
    "pipelines": _pipelines,
    "runs": _runs,
    "variable-groups": _variable_groups,
    "generate-yaml": _generate_yaml,
    "create-pipeline": _create_pipeline,
}


async def run(
    command: Command,
    args: argparse.Namespace,
    config: DevOpsConfig,
    settings: PipelineSettings,
) -> int:
    """Run a command against a fresh session and return the exit code."""
    log = logging.getLogger("freecicd")

    try:
        async with DevOpsClient.from_config(config) as client:
            manager = PipelineManager.from_client(
                client, settings, progress=LoggingProgressSink()
            )
            result = await command(manager, args)
    except PipelineSetupError as exc:
        log.error(
            "%s (already applied: %s)",
            exc,
            ", ".join(exc.completed_steps) or "nothing",
        )
        return 1
    except (*REMOTE_ERRORS, MissingEnvironmentOptionError, TemplateRenderError) as exc:
        log.error("%s", exc)
        return 1

    if isinstance(result, str):
        print(result)
    else:
        print(json.dumps(format_output(result), indent=2, default=str))
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        description="Generate Azure DevOps pipelines and inspect DevOps resources"
    )
    parser.add_argument(
        "--config",
        default=None,
        help="JSON connection config (token, organization); "
        "defaults to AZURE_DEVOPS_PAT and AZURE_DEVOPS_ORG",
    )
    parser.add_argument(
        "--settings",
        type=Path,
        default=None,
        help="YAML file with pipeline settings",
    )
    parser.add_argument(
        "--verbose", action="store_true", help="Log progress messages"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("projects", help="List projects")

    repos = subparsers.add_parser("repos", help="List repositories of a project")
    repos.add_argument("--project", required=True)

    for name, help_text in (
        ("branches", "List branches of a repository"),
        ("files", "List files of a branch"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--project", required=True)
        sub.add_argument("--repo", required=True)
        if name == "files":
            sub.add_argument("--branch", required=True)

    pipelines = subparsers.add_parser("pipelines", help="List pipelines of a project")
    pipelines.add_argument("--project", required=True)

    groups = subparsers.add_parser(
        "variable-groups", help="List variable groups of a project"
    )
    groups.add_argument("--project", required=True)

    runs = subparsers.add_parser("runs", help="List runs of a pipeline")
    runs.add_argument("--project", required=True)
    runs.add_argument("--pipeline-id", type=int, required=True)
    runs.add_argument("--skip", type=int, default=0)
    runs.add_argument("--top", type=int, default=10)

    for name, help_text in (
        ("generate-yaml", "Render pipeline YAML without committing it"),
        ("create-pipeline", "Create or update a pipeline"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument(
            "--request",
            required=True,
            help="Pipeline request as JSON, or @path to a JSON file",
        )

    return parser


def main(argv: Sequence[str] | None = None) -> None:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    log = logging.getLogger("freecicd")

    try:
        config = load_devops_config(args.config)
        settings = (
            asyncio.run(load_pipeline_settings(args.settings))
            if args.settings
            else PipelineSettings()
        )
    except (ValidationError, ValueError, FileNotFoundError) as exc:
        log.error("Invalid configuration: %s", exc)
        sys.exit(2)

    exit_code = asyncio.run(run(COMMANDS[args.command], args, config, settings))
    sys.exit(exit_code)


if __name__ == "__main__":  # pragma: no cover
    main()
