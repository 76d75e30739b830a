"""Interactive prompts for the local bump command."""

from typing import Dict, List, Optional

from rich.console import Console
from rich.prompt import Prompt
from rich.table import Table

from autobump.models import Config, PackageEntry, ReleaseIntent, ReleaseType


class PromptCancelled(Exception):
    """Operator cancelled a prompt."""
    pass


def package_choices(packages: List[PackageEntry]) -> Dict[str, PackageEntry]:
    """Map prompt choices to packages.

    Short names are used unless two packages share one, in which case the
    full names disambiguate.
    """
    short_names = [package.name_no_scope for package in packages]
    if len(set(short_names)) == len(short_names):
        return {package.name_no_scope: package for package in packages}
    return {package.name: package for package in packages}


def _ask(console: Console, message: str, **kwargs) -> str:
    try:
        return Prompt.ask(message, console=console, **kwargs)
    except (KeyboardInterrupt, EOFError) as e:
        raise PromptCancelled("Cancelled by operator") from e


def prompt_release_intent(
    packages: List[PackageEntry],
    config: Config,
    console: Optional[Console] = None,
) -> ReleaseIntent:
    """Ask the operator what to release.

    Args:
        packages: Root and workspace packages to choose from
        config: Configuration providing prompt defaults
        console: Console to prompt on

    Returns:
        Release intent

    Raises:
        PromptCancelled: If the operator aborts any prompt
    """
    console = console or Console()

    branch = _ask(console, "Main branch name", default=config.git.main_branch)
    remote = _ask(console, "Remote name", default=config.git.remote)

    choices = package_choices(packages)
    table = Table(title="Packages")
    table.add_column("Choice", style="cyan")
    table.add_column("Name")
    table.add_column("Version", style="green")
    for choice, package in choices.items():
        table.add_row(choice, package.name, package.version)
    console.print(table)

    package_kwargs = {"default": next(iter(choices))} if len(choices) == 1 else {}
    package_key = _ask(
        console,
        "Choose a package to bump",
        choices=list(choices),
        **package_kwargs,
    )

    for release in ReleaseType:
        console.print(f"  [cyan]{release.value}[/cyan]  {release.description}")
    release_type = _ask(
        console,
        "Choose a release type",
        choices=[release.value for release in ReleaseType],
        default=ReleaseType.PATCH.value,
    )

    return ReleaseIntent(
        main_branch=branch.strip(),
        remote=remote.strip(),
        target_package=choices[package_key],
        release_type=ReleaseType(release_type),
    )
