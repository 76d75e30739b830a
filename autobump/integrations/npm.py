"""Version bumping via ``npm version``."""

from pathlib import Path
from typing import Union

from autobump.integrations.manifest import MANIFEST_FILE, read_manifest_version
from autobump.models import ReleaseType
from autobump.utils.logger import get_logger
from autobump.utils.shell import CommandRunner

logger = get_logger(__name__)


class BumpError(Exception):
    """Version bump did not produce a new version."""
    pass


class VersionBumper:
    """Increments manifest versions without touching git.

    Tagging and committing belong to the lifecycle manager, so every
    invocation passes ``--git-tag-version=false``.
    """

    def __init__(self, runner: CommandRunner):
        """Initialize version bumper.

        Args:
            runner: Runner whose environment is reused for npm calls
        """
        self.runner = runner

    async def bump(self, package_directory: Union[str, Path], release_type: ReleaseType) -> str:
        """Bump the manifest version in a package directory.

        The next version is re-read from the manifest instead of parsed from
        npm's output, which differs between npm releases.

        Args:
            package_directory: Directory holding package.json
            release_type: Version increment to apply

        Returns:
            The version now stored in the manifest

        Raises:
            BumpError: If the manifest version did not change
            CommandError: If npm fails
        """
        manifest_path = Path(package_directory) / MANIFEST_FILE
        release_type = ReleaseType(release_type)
        previous_version = read_manifest_version(manifest_path)

        logger.info(f"Running 'npm version' with \"{release_type.value}\"")
        await self.runner.with_cwd(package_directory).run(
            "npm", ["version", "--git-tag-version=false", release_type.value]
        )

        next_version = read_manifest_version(manifest_path)
        if next_version == previous_version:
            raise BumpError(
                f"npm version {release_type.value} left {manifest_path} at {previous_version}"
            )

        logger.info(f"Next version: {next_version}")
        return next_version

    async def set_version(self, package_directory: Union[str, Path], version: str) -> str:
        """Write an explicit version, allowing it to equal the current one.

        Args:
            package_directory: Directory holding package.json
            version: Version to write

        Returns:
            The version now stored in the manifest
        """
        await self.runner.with_cwd(package_directory).run(
            "npm",
            ["version", "--allow-same-version=true", "--git-tag-version=false", version],
        )
        return read_manifest_version(Path(package_directory) / MANIFEST_FILE)
