"""Interactive bump workflow.

Sequences the git, npm and gh calls that turn a release intent into a
pushed bump branch and an open pull request:

    idle -> syncing -> bumping -> collision_check -> committing -> pushing
         -> cleaning_up -> publishing_pr -> done

Any failure moves the workflow to ``failed`` and stops it. Only a
collision rolls anything back (the manifest edit made while bumping);
once the bump commit exists, later failures are left for the operator.
"""

from typing import List, Optional

from autobump.integrations.git import CollisionError, GitRepository, PreflightError, ensure_tools
from autobump.integrations.github import GitHubPublisher
from autobump.integrations.npm import VersionBumper
from autobump.models import (
    BumpOutcome,
    BumpState,
    Config,
    ReleaseIntent,
    ReleaseMetadata,
    bump_branch_name,
)
from autobump.utils.logger import get_logger
from autobump.utils.shell import CommandError, CommandRunner, CommandSpawnError

logger = get_logger(__name__)


class BumpWorkflowError(Exception):
    """A step of the bump workflow failed."""

    def __init__(self, message: str, state: BumpState):
        """Initialize workflow error.

        Args:
            message: Error message
            state: Lifecycle state the failure happened in
        """
        super().__init__(message)
        self.state = state


class BumpWorkflow:
    """Lifecycle manager for one bump of one package."""

    def __init__(
        self,
        intent: ReleaseIntent,
        config: Config,
        runner: CommandRunner,
        git: Optional[GitRepository] = None,
        bumper: Optional[VersionBumper] = None,
        publisher: Optional[GitHubPublisher] = None,
    ):
        """Initialize bump workflow.

        Args:
            intent: What to release
            config: Loaded configuration
            runner: Runner pinned to the repository root
            git: Git wrapper (built from runner if omitted)
            bumper: Version bumper (built from runner if omitted)
            publisher: PR publisher (built from runner if omitted)
        """
        self.intent = intent
        self.config = config
        self.runner = runner
        self.git = git or GitRepository(runner)
        self.bumper = bumper or VersionBumper(runner)
        self.publisher = publisher or GitHubPublisher(runner, config.github)
        self.state = BumpState.IDLE
        self.history: List[BumpState] = [BumpState.IDLE]
        self.previous_version = intent.target_package.version

    def _transition(self, state: BumpState) -> None:
        logger.debug(f"Bump workflow: {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    def _fail(self, error: Exception) -> None:
        """Record the failure and surface the failing step's output."""
        failed_state = self.state
        logger.error(f"Bump failed while {failed_state.value.replace('_', ' ')}: {error}")
        if isinstance(error, CommandError):
            if error.stdout:
                logger.error(f"stdout:\n{error.stdout}")
            if error.stderr:
                logger.error(f"stderr:\n{error.stderr}")
        self._transition(BumpState.FAILED)

    @property
    def package(self):
        return self.intent.target_package

    def branch_name(self, version: str) -> str:
        return bump_branch_name(
            self.package.name_no_scope, version, self.config.release.branch_pattern
        )

    def commit_message(self, version: str) -> str:
        return self.config.release.commit_message.format(
            name=self.package.name_no_scope, version=version
        )

    async def run(self) -> BumpOutcome:
        """Run every step in order.

        Returns:
            Outcome of the bump

        Raises:
            PreflightError: If the repository cannot be released from
            CollisionError: If the bump branch already exists
            BumpWorkflowError: If an external command fails
            BumpError: If npm did not change the version
            GitHubPublishError: If the pull request could not be opened
        """
        logger.info(
            f"Bumping {self.package.name} ({self.intent.release_type.value}) "
            f"from {self.previous_version}"
        )

        try:
            await self.sync()
            next_version = await self.bump()
            branch = await self.check_collision(next_version)
            message = await self.commit(branch, next_version)
            await self.push(branch)
            await self.clean_up(branch)
            published = await self.publish(branch, next_version)
        except CommandError as e:
            failed_state = self.state
            self._fail(e)
            raise BumpWorkflowError(
                f"Bump failed while {failed_state.value.replace('_', ' ')}: {e}", failed_state
            ) from e
        except Exception as e:
            self._fail(e)
            raise

        self._transition(BumpState.DONE)
        return BumpOutcome(
            branch=branch,
            commit_message=message,
            previous_version=self.previous_version,
            next_version=next_version,
            state=self.state,
            pr_published=published,
        )

    def required_tools(self) -> List[str]:
        tools = ["git", "npm"]
        if self.config.github.create_pr:
            tools.append("gh")
        return tools

    async def sync(self) -> None:
        """Pre-flight checks, then fast-forward the main branch.

        Raises:
            PreflightError: If tools are missing, the tree is dirty, or main
                cannot be fast-forwarded
        """
        self._transition(BumpState.SYNCING)
        branch, remote = self.intent.main_branch, self.intent.remote

        ensure_tools(*self.required_tools())
        await self.git.ensure_clean()

        logger.info(f"Getting latest from \"{branch}\"...")
        await self.git.fetch(remote)
        await self.git.checkout(branch)
        try:
            await self.git.pull(remote, branch)
        except CommandSpawnError:
            raise
        except CommandError as e:
            raise PreflightError(
                f"Could not fast-forward \"{branch}\" from \"{remote}\"; "
                f"the branch is dirty or has diverged:\n{e.stderr or e}"
            ) from e
        await self.git.ensure_synced(branch, remote)

    async def bump(self) -> str:
        self._transition(BumpState.BUMPING)
        return await self.bumper.bump(self.package.directory, self.intent.release_type)

    async def check_collision(self, next_version: str) -> str:
        """Make sure the bump branch is free locally and on the remote.

        On a collision the manifest edit from the bump is rolled back
        before the error is raised. A failed rollback is logged and
        attached to the error, never hidden.

        Note: the check is not atomic with the later branch creation; a
        branch pushed by someone else in between is only caught by the push.

        Raises:
            CollisionError: If the branch name is taken
        """
        self._transition(BumpState.COLLISION_CHECK)
        branch = self.branch_name(next_version)

        existing = await self.git.find_existing_branch(branch, self.intent.remote)
        if existing is None:
            return branch

        logger.warning(f"Branch \"{branch}\" already exists ({existing}); rolling back the bump")
        rollback_error = await self.git.rollback()
        raise CollisionError(
            f"Cannot create \"{branch}\": {existing} already exists", existing, rollback_error
        )

    async def commit(self, branch: str, next_version: str) -> str:
        self._transition(BumpState.COMMITTING)
        message = self.commit_message(next_version)

        logger.info(f"Creating bump branch: {branch}")
        await self.git.create_branch(branch)
        await self.git.add_all()
        await self.git.commit(message)
        return message

    async def push(self, branch: str) -> None:
        self._transition(BumpState.PUSHING)
        remote, main = self.intent.remote, self.intent.main_branch

        logger.info(f"Pushing {branch} to {remote}")
        await self.git.push(
            remote,
            branch,
            set_upstream=True,
            inherit_stdio=self.config.git.inherit_push_stdio,
        )
        await self.git.checkout(main)
        await self.git.pull(remote, main)

    async def clean_up(self, branch: str) -> None:
        self._transition(BumpState.CLEANING_UP)
        await self.git.delete_branch(branch)

    async def publish(self, branch: str, next_version: str) -> bool:
        self._transition(BumpState.PUBLISHING_PR)
        if not self.config.github.create_pr:
            logger.info("Pull request creation disabled; skipping")
            return False

        metadata = ReleaseMetadata(
            package=self.package,
            release_type=self.intent.release_type,
            previous_version=self.previous_version,
            next_version=next_version,
            main_branch=self.intent.main_branch,
        )
        await self.publisher.publish(branch, metadata)
        return True


async def run_bump(intent: ReleaseIntent, config: Config, runner: CommandRunner) -> BumpOutcome:
    """Run a bump workflow for an intent.

    Args:
        intent: What to release
        config: Loaded configuration
        runner: Runner pinned to the repository root

    Returns:
        Outcome of the bump
    """
    return await BumpWorkflow(intent, config, runner).run()
