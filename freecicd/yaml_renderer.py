"""Rendering of the build pipeline YAML from the static template."""

import re
from collections.abc import Mapping, Sequence

from freecicd.config import PipelineSettings
from freecicd.errors import TemplateRenderError
from freecicd.models.environment import EnvironmentType, EnvSetting

TOKEN_PATTERN = re.compile(r"\{\{([A-Z0-9_]+)\}\}")

TEMPLATE_REPOSITORY = "TemplateRepo"


def ordered_environments(
    environment_order: Sequence[EnvironmentType],
    environment_settings: Mapping[EnvironmentType, EnvSetting],
) -> list[tuple[EnvironmentType, EnvSetting]]:
    """Configured environments in the fixed order, skipping unconfigured ones."""
    return [
        (env_key, environment_settings[env_key])
        for env_key in environment_order
        if env_key in environment_settings
    ]


def _variable(name: str, value: str) -> list[str]:
    return [f"  - name: {name}", f'    value: "{value}"']


def render_variables_block(
    project_name: str,
    cs_project_file: str,
    environment_settings: Mapping[EnvironmentType, EnvSetting],
    environment_order: Sequence[EnvironmentType],
) -> str:
    """Render the entries of the pipeline `variables` section.

    The shared `CI_AuthUsername` takes the first non-blank auth user in
    environment order; later ones are ignored.
    """
    lines = [
        *_variable("CI_ProjectName", project_name),
        *_variable("CI_BUILD_CsProjectPath", cs_project_file),
        *_variable("CI_BUILD_Namespace", ""),
    ]
    auth_username = ""

    for env_key, env in ordered_environments(environment_order, environment_settings):
        lines.append("")
        lines.append(f"# Environment: {env.label(env_key)}")
        lines.extend(_variable(f"CI_{env_key}_IISDeploymentType", env.iis_deployment_type))
        lines.extend(_variable(f"CI_{env_key}_WebsiteName", env.website_name))
        lines.extend(_variable(f"CI_{env_key}_VirtualPath", env.virtual_path))
        lines.extend(_variable(f"CI_{env_key}_AppPoolName", env.app_pool_name))
        lines.extend(_variable(f"CI_{env_key}_VariableGroup", env.variable_group_name))
        if env.has_binding_info and env.binding_info:
            lines.append(f"  - name: CI_{env_key}_BindingInfo")
            lines.append("    value: >")
            lines.extend(
                f"      {line.strip()}"
                for line in env.binding_info.strip().splitlines()
                if line.strip()
            )

        if not auth_username and env.auth_user and env.auth_user.strip():
            auth_username = env.auth_user.strip()

    if auth_username:
        lines.append("")
        lines.append(
            "# username used for app pool configuration and/or to set file "
            "and folder permissions."
        )
        lines.extend(_variable("CI_AuthUsername", auth_username))

    return "\n".join(lines) + "\n"


def render_deploy_stages_block(
    environment_settings: Mapping[EnvironmentType, EnvSetting],
    settings: PipelineSettings,
) -> str:
    """Render one deploy stage per configured environment."""
    lines: list[str] = []

    for env_key, env in ordered_environments(
        settings.environment_order, environment_settings
    ):
        option = settings.option_for(env_key)
        label = env.label(env_key)
        base_path = f"$(CI_PIPELINE_COMMON_ApplicationFolder_{env_key})"
        dotnet_version = f"$(CI_PIPELINE_COMMON_DotNetVersion_{env_key})"
        app_pool_identity = f"$(CI_PIPELINE_COMMON_AppPoolIdentity_{env_key})"

        lines.extend(
            [
                f"  - stage: Deploy{env_key}Stage",
                f'    displayName: "Deploy to {label}"',
                "    dependsOn: InfoStage",
                "    variables:",
                "      - group: ${{ variables.CI_" + env_key + "_VariableGroup }}",
                "    jobs:",
                f"      - deployment: Deploy{env_key}",
                "        workspace:",
                "          clean: all",
                f'        displayName: "Deploy to {label} (Environment-based)"',
                "        environment:",
                f'          name: "{option.agent_pool}"',
                '          resourceType: "VirtualMachine"',
                "        strategy:",
                "          runOnce:",
                "            deploy:",
                "              steps:",
                "                - checkout: none",
                "                - template: Templates/dump-env-variables-template.yml"
                f"@{TEMPLATE_REPOSITORY}",
                "                - template: Templates/deploy-template.yml"
                f"@{TEMPLATE_REPOSITORY}",
                "                  parameters:",
                f'                    envFolderName: "{env_key}"',
                f'                    basePath: "{base_path}"',
                '                    projectName: "$(CI_ProjectName)"',
                '                    releaseRetention: "$(CI_PIPELINE_COMMON_ReleaseRetention)"',
                f'                    IISDeploymentType: "$(CI_{env_key}_IISDeploymentType)"',
                f'                    WebsiteName: "$(CI_{env_key}_WebsiteName)"',
                f'                    VirtualPath: "$(CI_{env_key}_VirtualPath)"',
                f'                    AppPoolName: "$(CI_{env_key}_AppPoolName)"',
                f'                    DotNetVersion: "{dotnet_version}"',
                f'                    AppPoolIdentity: "{app_pool_identity}"',
            ]
        )
        if env.has_binding_info:
            lines.append(
                f'                    CustomBindings: "$(CI_{env_key}_BindingInfo)"'
            )
        lines.append(
            "                - template: Templates/clean-workspace-template.yml"
            f"@{TEMPLATE_REPOSITORY}"
        )
        lines.append("")

    return "\n".join(lines) + "\n" if lines else ""


def render_template(template: str, values: Mapping[str, str]) -> str:
    """Replace every `{{TOKEN}}` placeholder in a single pass.

    Substituted values are not scanned again, so the order of tokens does not
    matter and values may safely contain braces.

    Raises:
        TemplateRenderError: If the template uses a token with no value

    """
    missing = sorted(
        {m.group(1) for m in TOKEN_PATTERN.finditer(template)} - set(values)
    )
    if missing:
        raise TemplateRenderError(
            f"No value for template token(s): {', '.join(missing)}"
        )
    return TOKEN_PATTERN.sub(lambda m: values[m.group(1)], template)


def render_pipeline_yaml(
    settings: PipelineSettings,
    *,
    devops_project_name: str,
    devops_branch: str,
    code_project_name: str,
    code_repo_name: str,
    code_branch: str,
    cs_project_file: str,
    environment_settings: Mapping[EnvironmentType, EnvSetting],
) -> str:
    """Render the full pipeline definition for a code project."""
    variables = render_variables_block(
        code_project_name,
        cs_project_file,
        environment_settings,
        settings.environment_order,
    )
    deploy_stages = render_deploy_stages_block(environment_settings, settings)

    return render_template(
        settings.build_pipeline_template,
        {
            "DEVOPS_PROJECTNAME": devops_project_name,
            "DEVOPS_REPO_BRANCH": devops_branch,
            "CODE_PROJECT_NAME": code_project_name,
            "CODE_REPO_NAME": code_repo_name,
            "CODE_REPO_BRANCH": code_branch,
            "PIPELINE_VARIABLES": variables,
            "PIPELINE_POOL": settings.build_pipeline_pool,
            "DEPLOY_STAGES": deploy_stages,
        },
    )
