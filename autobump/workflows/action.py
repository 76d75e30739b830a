"""GitHub Actions bump-and-tag workflow.

Runs on a CI checkout: bumps the requested workspace package, commits the
change on the triggering branch, tags it ``<name>/v<version>`` and pushes
both. Inputs come from the step environment (see ``ActionInputs``).
"""

from pathlib import Path
from typing import List, Mapping, Optional

from pydantic import ValidationError

from autobump.integrations.git import CollisionError, GitRepository, ensure_tools
from autobump.integrations.manifest import read_package, resolve_workspace_directory
from autobump.integrations.npm import VersionBumper
from autobump.models import ActionInputs, ActionOutcome, Config, PackageEntry
from autobump.utils.logger import get_logger, mask_credentials
from autobump.utils.shell import CommandRunner

logger = get_logger(__name__)


class ActionInputError(Exception):
    """CI inputs are missing or invalid."""
    pass


def parse_action_inputs(environ: Mapping[str, str]) -> ActionInputs:
    """Build validated inputs from the step environment.

    Raises:
        ActionInputError: If an input is invalid
    """
    try:
        return ActionInputs.from_env(environ)
    except ValidationError as e:
        messages = "; ".join(error["msg"] for error in e.errors())
        raise ActionInputError(messages) from e


def files_in_directory(files: List[str], directory: Path, root: Path) -> List[str]:
    """Filter repository-relative paths down to those under ``directory``."""
    directory = directory.resolve()
    root = root.resolve()
    if directory == root:
        return list(files)
    try:
        prefix = directory.relative_to(root).as_posix() + "/"
    except ValueError:
        return []
    return [path for path in files if path.startswith(prefix)]


class ActionWorkflow:
    """Bump, commit, tag and push from a CI checkout."""

    def __init__(
        self,
        inputs: ActionInputs,
        config: Config,
        runner: Optional[CommandRunner] = None,
        git: Optional[GitRepository] = None,
        bumper: Optional[VersionBumper] = None,
    ):
        self.inputs = inputs
        self.config = config
        self.runner = runner or CommandRunner(inputs.workspace_root)
        self.git = git or GitRepository(self.runner)
        self.bumper = bumper or VersionBumper(self.runner)

    def tag_name(self, package: PackageEntry, version: str) -> str:
        return self.config.release.tag_pattern.format(name=package.name_no_scope, version=version)

    @property
    def push_target(self) -> str:
        return self.inputs.push_url or self.config.git.remote

    async def run(self) -> ActionOutcome:
        """Run the CI release.

        Returns:
            Outcome with the new version and tag

        Raises:
            ManifestError: If the package manifest is invalid
            PreflightError: If git or npm are missing
            CollisionError: If the release tag already exists
            CommandError: If any command fails
        """
        ensure_tools("git", "npm")

        package_directory = resolve_workspace_directory(
            self.inputs.workspace_root, self.inputs.workspace
        )
        package = read_package(
            package_directory,
            is_root=package_directory == self.inputs.workspace_root.resolve(),
        )
        current_version = package.version
        actor = self.inputs.actor or self.config.git.user_name

        logger.info(f"Creating \"{self.inputs.release_type.value}\" release...")
        logger.info(f"Package name = {package.name}")
        logger.info(f"Package name no scope = {package.name_no_scope}")
        logger.info(f"Current version = {current_version}")
        logger.info(f"Branch = {self.inputs.branch or '(detached)'}")
        logger.info(f"Username = {actor}")

        await self.git.configure_identity(actor, self.config.git.user_email)

        changed_files: List[str] = []
        if self.inputs.sha:
            changed_files = await self.git.changed_files(self.inputs.sha)
            touched = files_in_directory(changed_files, package_directory, self.inputs.workspace_root)
            if not touched:
                logger.warning(
                    f"Commit {self.inputs.sha[:12]} does not change anything in {package.name}; releasing anyway"
                )

        await self.git.fetch(tags=True)
        if self.inputs.branch:
            await self.git.checkout(self.inputs.branch)

        await self.bumper.set_version(package.directory, current_version)
        next_version = await self.bumper.bump(package.directory, self.inputs.release_type)

        tag = self.tag_name(package, next_version)
        if await self.git.ref_exists(f"refs/tags/{tag}"):
            rollback_error = await self.git.rollback()
            raise CollisionError(f"Tag \"{tag}\" already exists", tag, rollback_error)

        message = self.config.release.commit_message.format(
            name=package.name_no_scope, version=next_version
        )
        await self.git.add_all()
        await self.git.commit(message)

        logger.info(f"Creating tag \"{tag}\"")
        await self.git.tag(tag, message=message)

        logger.info(f"Pushing to {mask_credentials(self.push_target)}")
        if self.inputs.branch:
            await self.git.push(self.push_target, self.inputs.branch)
        await self.git.push_tags(self.push_target)

        return ActionOutcome(
            package=package.name,
            previous_version=current_version,
            next_version=next_version,
            tag=tag,
            commit_message=message,
            changed_files=changed_files,
        )


def write_action_outputs(outcome: ActionOutcome, output_path: Optional[str]) -> None:
    """Append step outputs to the $GITHUB_OUTPUT file, when there is one."""
    if not output_path:
        return
    with open(output_path, "a", encoding="utf-8") as f:
        f.write(f"version={outcome.next_version}\n")
        f.write(f"previous-version={outcome.previous_version}\n")
        f.write(f"tag={outcome.tag}\n")
