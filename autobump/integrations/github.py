"""Pull request publishing via the gh CLI."""

from autobump.models import GitHubConfig, ReleaseMetadata
from autobump.utils.logger import get_logger
from autobump.utils.shell import CommandError, CommandRunner

logger = get_logger(__name__)

PR_BODY_TEMPLATE = """\
## Version bump

| Package | Release | Version | Previous |
| --- | --- | --- | --- |
| `{name}` | `{release_type}` | `{next_version}` | `{previous_version}` |

Merging this pull request releases `{name}` at `{next_version}`.
"""


class GitHubPublishError(Exception):
    """Label or pull request creation failed."""
    pass


def render_pr_title(metadata: ReleaseMetadata) -> str:
    """Render the pull request title for a bump."""
    return (
        f"bump! {metadata.package.name_no_scope}-v{metadata.next_version} "
        f"({metadata.release_type.value})"
    )


def render_pr_body(metadata: ReleaseMetadata) -> str:
    """Render the pull request body for a bump."""
    return PR_BODY_TEMPLATE.format(
        name=metadata.package.name,
        release_type=metadata.release_type.value,
        next_version=metadata.next_version,
        previous_version=metadata.previous_version,
    )


class GitHubPublisher:
    """Opens the review pull request for a pushed bump branch."""

    def __init__(self, runner: CommandRunner, config: GitHubConfig):
        """Initialize GitHub publisher.

        Args:
            runner: Runner pinned to the repository root
            config: GitHub settings
        """
        self.runner = runner
        self.config = config

    async def ensure_label(self) -> None:
        """Create or update the bump label."""
        await self.runner.run(
            "gh",
            [
                "label", "create", self.config.label,
                "--description", self.config.label_description,
                "--color", self.config.label_color,
                "--force",
            ],
        )

    async def create_pull_request(self, branch: str, metadata: ReleaseMetadata) -> str:
        """Open the pull request and return gh's output (the PR URL)."""
        result = await self.runner.run(
            "gh",
            [
                "pr", "create",
                "--head", branch,
                "--base", metadata.main_branch,
                "--title", render_pr_title(metadata),
                "--label", self.config.label,
                "--body", render_pr_body(metadata),
            ],
        )
        return result.stdout

    async def publish(self, branch: str, metadata: ReleaseMetadata) -> str:
        """Ensure the label exists and open the pull request.

        The pushed branch is never touched here; it stays a valid release
        artifact whatever happens to the pull request.

        Args:
            branch: Pushed bump branch
            metadata: Release description

        Returns:
            Pull request URL as reported by gh

        Raises:
            GitHubPublishError: If label or pull request creation fails
        """
        try:
            await self.ensure_label()
        except CommandError as e:
            raise GitHubPublishError(f"Failed to create label '{self.config.label}': {e}") from e

        logger.info(f"Creating pull request for {branch}")
        try:
            url = await self.create_pull_request(branch, metadata)
        except CommandError as e:
            raise GitHubPublishError(f"Failed to create pull request for {branch}: {e}") from e

        logger.info(f"PR URL: {url}")
        return url
