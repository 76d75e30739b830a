"""Shell command execution utilities."""

import asyncio
import os
import shlex
import shutil
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from autobump.models import CommandResult
from autobump.utils.logger import get_logger, mask_credentials

logger = get_logger(__name__)

# Read size for draining process pipes
CHUNK_SIZE = 4096


class CommandError(Exception):
    """External command failed with a non-zero exit code."""

    def __init__(
        self,
        message: str,
        exit_code: int,
        stdout: str = "",
        stderr: str = "",
        command: str = "",
    ):
        """Initialize command error.

        Args:
            message: Error message
            exit_code: Process exit code (-1 when the process never started)
            stdout: Captured standard output
            stderr: Captured standard error
            command: Rendered command line
        """
        super().__init__(message)
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr
        self.command = command


class CommandSpawnError(CommandError):
    """External command could not be launched at all."""

    def __init__(self, message: str, command: str = ""):
        super().__init__(message, -1, "", "", command)


def render_command(command: str, args: Sequence[str]) -> str:
    """Render a command line for logs and error messages."""
    return mask_credentials(shlex.join([command, *args]))


async def _drain(stream: Optional[asyncio.StreamReader], chunks: List[bytes]) -> None:
    """Collect everything a pipe produces until EOF."""
    if stream is None:
        return
    while True:
        chunk = await stream.read(CHUNK_SIZE)
        if not chunk:
            break
        chunks.append(chunk)


class CommandRunner:
    """Runs external processes pinned to a working directory.

    Every invocation spawns exactly one process and is awaited to
    completion. Output is drained incrementally from both pipes so a
    chatty process can never block on a full pipe buffer.
    """

    def __init__(self, cwd: Union[str, Path], env: Optional[Dict[str, str]] = None):
        """Initialize command runner.

        Args:
            cwd: Working directory for every command
            env: Extra environment variables layered over os.environ
        """
        self.cwd = Path(cwd)
        self.env = dict(env) if env else {}

    def with_cwd(self, cwd: Union[str, Path]) -> "CommandRunner":
        """Return a runner with the same environment pinned to another directory."""
        return CommandRunner(cwd, self.env)

    def _process_env(self) -> Optional[Dict[str, str]]:
        if not self.env:
            return None
        return {**os.environ, **self.env}

    async def run(
        self,
        command: str,
        args: Sequence[str] = (),
        *,
        inherit_stdio: bool = False,
    ) -> CommandResult:
        """Run a command and wait for it to exit.

        Args:
            command: Executable to launch
            args: Arguments passed to the executable
            inherit_stdio: Attach stdout/stderr to the controlling terminal
                instead of capturing them

        Returns:
            Command result

        Raises:
            CommandSpawnError: If the executable cannot be launched
            CommandError: If the command exits with a non-zero code
        """
        args = [str(arg) for arg in args]
        command_str = render_command(command, args)
        pipe = None if inherit_stdio else asyncio.subprocess.PIPE

        logger.debug(f"Running command: {command_str} (cwd: {self.cwd})")

        try:
            process = await asyncio.create_subprocess_exec(
                command,
                *args,
                cwd=self.cwd,
                env=self._process_env(),
                stdout=pipe,
                stderr=pipe,
            )
        except FileNotFoundError as e:
            logger.error(f"Command not found: {command}")
            raise CommandSpawnError(f"Command not found: {command_str}", command_str) from e
        except OSError as e:
            logger.error(f"Failed to launch {command}: {e}")
            raise CommandSpawnError(f"Failed to launch {command_str}: {e}", command_str) from e

        stdout_chunks: List[bytes] = []
        stderr_chunks: List[bytes] = []
        await asyncio.gather(
            _drain(process.stdout, stdout_chunks),
            _drain(process.stderr, stderr_chunks),
        )
        exit_code = await process.wait()

        stdout = b"".join(stdout_chunks).decode(errors="replace").strip()
        stderr = b"".join(stderr_chunks).decode(errors="replace").strip()

        result = CommandResult(
            exit_code=exit_code,
            stdout=stdout,
            stderr=stderr,
            command=command_str,
        )

        if exit_code != 0:
            logger.warning(f"Command failed with code {exit_code}: {command_str}")
            if stderr:
                logger.debug(f"stderr: {stderr}")
            message = f"{command_str} exited with code {exit_code}"
            if stderr:
                message = f"{message}:\n{mask_credentials(stderr)}"
            raise CommandError(message, exit_code, stdout, stderr, command_str)

        logger.debug(f"Command succeeded: {command_str}")
        return result


def check_command_exists(command: str) -> bool:
    """Check if a command exists in PATH.

    Args:
        command: Command name to check

    Returns:
        True if command exists, False otherwise
    """
    return shutil.which(command) is not None
