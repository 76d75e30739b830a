"""Git operations used by the release workflows."""

from typing import List, Optional

from autobump.utils.logger import get_logger
from autobump.utils.shell import CommandError, CommandRunner, CommandSpawnError, check_command_exists

logger = get_logger(__name__)


class PreflightError(Exception):
    """Repository is not in a state a release can start from."""
    pass


class CollisionError(Exception):
    """A release branch or tag name is already taken."""

    def __init__(self, message: str, ref: str, rollback_error: Optional[Exception] = None):
        """Initialize collision error.

        Args:
            message: Error message
            ref: The ref that blocks the release
            rollback_error: Failure raised while undoing the local bump, if any
        """
        super().__init__(message)
        self.ref = ref
        self.rollback_error = rollback_error

    def __str__(self) -> str:
        message = super().__str__()
        if self.rollback_error is not None:
            message = f"{message} (rollback failed: {self.rollback_error})"
        return message


def ensure_tools(*commands: str) -> None:
    """Make sure every required executable is on PATH.

    Raises:
        PreflightError: If any tool is missing
    """
    missing = [command for command in commands if not check_command_exists(command)]
    if missing:
        raise PreflightError(f"Required tool(s) not found on PATH: {', '.join(missing)}")


class GitRepository:
    """Thin async wrapper over the git CLI for a single checkout."""

    def __init__(self, runner: CommandRunner):
        """Initialize git repository wrapper.

        Args:
            runner: Runner pinned to the repository root
        """
        self.runner = runner

    async def git(self, *args: str, inherit_stdio: bool = False) -> str:
        """Run a git subcommand and return its stdout."""
        result = await self.runner.run("git", args, inherit_stdio=inherit_stdio)
        return result.stdout

    async def fetch(self, remote: Optional[str] = None, tags: bool = False) -> None:
        args = ["fetch"]
        if remote:
            args.append(remote)
        if tags:
            args.append("--tags")
        await self.git(*args)

    async def checkout(self, branch: str) -> None:
        await self.git("checkout", branch)

    async def create_branch(self, branch: str) -> None:
        """Create a branch at HEAD and switch to it."""
        await self.git("checkout", "-b", branch)

    async def branch(self, name: str) -> None:
        """Create a branch at HEAD without switching to it."""
        await self.git("branch", name)

    async def delete_branch(self, name: str) -> None:
        await self.git("branch", "-d", name)

    async def pull(self, remote: Optional[str] = None, branch: Optional[str] = None) -> None:
        """Fast-forward the current branch; diverged history fails."""
        args = ["pull", "--ff-only"]
        if remote:
            args.append(remote)
            if branch:
                args.append(branch)
        await self.git(*args)

    async def add_all(self) -> None:
        await self.git("add", "--all")

    async def commit(self, message: str) -> None:
        await self.git("commit", "-m", message)

    async def push(
        self,
        remote: str,
        branch: str,
        set_upstream: bool = False,
        inherit_stdio: bool = False,
    ) -> None:
        args = ["push"]
        if set_upstream:
            args.append("-u")
        args.extend([remote, branch])
        await self.git(*args, inherit_stdio=inherit_stdio)

    async def push_tags(self, remote: str) -> None:
        await self.git("push", remote, "--tags")

    async def tag(self, name: str, commit: Optional[str] = None, message: Optional[str] = None) -> None:
        """Create a tag, annotated when a message is given."""
        args = ["tag"]
        if message is not None:
            args.append("-a")
        args.append(name)
        if commit:
            args.append(commit)
        if message is not None:
            args.extend(["-m", message])
        await self.git(*args)

    async def ref_exists(self, ref: str) -> bool:
        """Check whether a ref resolves.

        A non-zero exit from ``rev-parse`` means the ref is absent; a
        missing git executable is still an error.
        """
        try:
            await self.git("rev-parse", "--verify", "--quiet", ref)
        except CommandSpawnError:
            raise
        except CommandError:
            return False
        return True

    async def rev_parse(self, ref: str) -> str:
        return await self.git("rev-parse", "--verify", ref)

    async def status_short(self) -> List[str]:
        """List uncommitted changes, one ``status -s`` line per entry."""
        output = await self.git("status", "-s")
        return [line for line in output.splitlines() if line.strip()]

    async def current_branch(self) -> str:
        return await self.git("rev-parse", "--abbrev-ref", "HEAD")

    async def changed_files_between(self, base: str, head: str) -> List[str]:
        output = await self.git("diff", "--name-only", f"{base}..{head}")
        return [line for line in output.splitlines() if line.strip()]

    async def changed_files(self, sha: str) -> List[str]:
        """List files touched by a single commit (merge commits included)."""
        output = await self.git("log", "-m", "-1", "--name-only", "--pretty=format:", sha)
        return sorted({line.strip() for line in output.splitlines() if line.strip()})

    async def configure_identity(self, name: str, email: str) -> None:
        await self.git("config", "user.name", name)
        await self.git("config", "user.email", email)

    async def hard_reset(self, ref: str = "HEAD") -> None:
        await self.git("reset", "--hard", ref)

    async def ensure_clean(self) -> None:
        """Refuse to continue with uncommitted changes.

        Raises:
            PreflightError: If the working tree is dirty
        """
        changes = await self.status_short()
        if changes:
            preview = "\n".join(changes[:10])
            raise PreflightError(
                f"Working tree has uncommitted changes; commit or stash them first:\n{preview}"
            )

    async def ensure_synced(self, branch: str, remote: str) -> None:
        """Check HEAD, the local branch and its remote counterpart agree.

        Raises:
            PreflightError: If HEAD is elsewhere or the branch diverged
        """
        try:
            head = await self.rev_parse("HEAD")
            local = await self.rev_parse(branch)
            upstream = await self.rev_parse(f"{remote}/{branch}")
        except CommandSpawnError:
            raise
        except CommandError as e:
            raise PreflightError(
                f"Git couldn't find the branch \"{branch}\" on {remote}; please ensure it exists"
            ) from e

        if head != local:
            raise PreflightError(f"You need to be on the \"{branch}\" branch to run this")
        if local != upstream:
            raise PreflightError(
                f"Local \"{branch}\" differs from \"{remote}/{branch}\"; push or reconcile your changes first"
            )

    async def find_existing_branch(self, branch: str, remote: str) -> Optional[str]:
        """Return the first ref (local, then remote) already named ``branch``."""
        for ref in (f"refs/heads/{branch}", f"refs/remotes/{remote}/{branch}"):
            if await self.ref_exists(ref):
                return ref
        return None

    async def rollback(self) -> Optional[Exception]:
        """Best-effort hard reset of working-tree changes.

        Returns:
            The failure, if the reset itself failed
        """
        try:
            await self.hard_reset()
        except CommandError as e:
            logger.error(f"Failed to roll back local changes: {e}")
            return e
        logger.info("Rolled back local changes")
        return None
