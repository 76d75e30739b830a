"""Click CLI interface for the autobump tool."""

import asyncio
import os
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console

from autobump import __version__
from autobump.config import ConfigError, load_config
from autobump.integrations.git import CollisionError, PreflightError
from autobump.integrations.github import GitHubPublishError
from autobump.integrations.manifest import ManifestError, list_workspace_packages, read_package
from autobump.integrations.npm import BumpError
from autobump.interactive import PromptCancelled, prompt_release_intent
from autobump.utils.flavor import pick
from autobump.utils.logger import enable_verbose_logging, get_logger
from autobump.utils.shell import CommandError, CommandRunner
from autobump.workflows.action import (
    ActionInputError,
    ActionWorkflow,
    parse_action_inputs,
    write_action_outputs,
)
from autobump.workflows.bump import BumpWorkflow, BumpWorkflowError

logger = get_logger(__name__)
console = Console()

RELEASE_ERRORS = (
    ConfigError,
    ManifestError,
    PreflightError,
    CollisionError,
    BumpError,
    BumpWorkflowError,
    GitHubPublishError,
    CommandError,
    ActionInputError,
)


@click.command()
@click.argument(
    "workdir",
    required=False,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.version_option(__version__, prog_name="autobump")
def cli(workdir: Optional[Path], verbose: bool) -> None:
    """Bump a package version and open a pull request for it.

    WORKDIR: Repository root (defaults to the current directory)
    """
    if verbose:
        enable_verbose_logging()

    root = (workdir or Path.cwd()).resolve()
    if workdir:
        console.print(f"Using working directory: {root}")

    try:
        config = load_config(root)
        root_package = read_package(root, is_root=True)
        packages = asyncio.run(list_workspace_packages(root_package))
        intent = prompt_release_intent(packages, config, console)
        workflow = BumpWorkflow(intent, config, CommandRunner(root))
        outcome = asyncio.run(workflow.run())
    except PromptCancelled:
        console.print("[yellow]Cancelled; nothing was changed.[/yellow]")
        sys.exit(1)
    except RELEASE_ERRORS as e:
        console.print(f"[red]✖ ERROR[/red] {e}")
        sys.exit(1)

    console.print(
        f"[green]✓[/green] Pushed [cyan]{outcome.branch}[/cyan] "
        f"({outcome.previous_version} → {outcome.next_version})"
    )
    if outcome.pr_published:
        console.print("[green]✓[/green] Pull request opened")
    console.print(pick())


@click.command()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.version_option(__version__, prog_name="autobump-action")
def action(verbose: bool) -> None:
    """Bump, tag and push a package from a GitHub Actions step.

    Inputs are read from the step environment: INPUT_RELEASE,
    INPUT_WORKSPACE, GITHUB_WORKSPACE, GITHUB_SHA, GITHUB_REF,
    GITHUB_ACTOR, GITHUB_TOKEN and GITHUB_REPOSITORY.
    """
    if verbose:
        enable_verbose_logging()

    try:
        inputs = parse_action_inputs(os.environ)
        config = load_config(inputs.workspace_root)
        outcome = asyncio.run(ActionWorkflow(inputs, config).run())
        write_action_outputs(outcome, os.environ.get("GITHUB_OUTPUT"))
    except RELEASE_ERRORS as e:
        # Workflow command understood by the Actions runner
        click.echo(f"::error::{e}")
        sys.exit(1)

    console.print(f"[green]✓[/green] Released {outcome.package} as [cyan]{outcome.tag}[/cyan]")
