"""Shared test configuration and fixtures."""

import json
import os
from pathlib import Path
from typing import Callable, List, Optional

import pytest

from autobump.models import CommandResult, Config, PackageEntry, ReleaseIntent, ReleaseType
from autobump.utils.shell import CommandError


class FakeRunner:
    """Scripted stand-in for CommandRunner.

    Every call is recorded as ``(cwd, argv)``. Handlers match on an argv
    prefix; the first matching handler wins, unmatched calls succeed with
    empty output.
    """

    def __init__(self, cwd, calls=None, handlers=None):
        self.cwd = Path(cwd)
        self.calls = [] if calls is None else calls
        self.handlers = [] if handlers is None else handlers

    def on(
        self,
        *prefix: str,
        stdout: str = "",
        error: Optional[Exception] = None,
        action: Optional[Callable[[Path, List[str]], None]] = None,
    ) -> "FakeRunner":
        self.handlers.append((list(prefix), stdout, error, action))
        return self

    def with_cwd(self, cwd) -> "FakeRunner":
        return FakeRunner(cwd, self.calls, self.handlers)

    async def run(self, command, args=(), *, inherit_stdio=False) -> CommandResult:
        argv = [command, *[str(arg) for arg in args]]
        self.calls.append((self.cwd, argv))
        for prefix, stdout, error, action in self.handlers:
            if argv[: len(prefix)] == prefix:
                if action is not None:
                    action(self.cwd, argv)
                if error is not None:
                    raise error
                return CommandResult(exit_code=0, stdout=stdout, command=" ".join(argv))
        return CommandResult(exit_code=0, command=" ".join(argv))

    @property
    def commands(self) -> List[str]:
        return [" ".join(argv) for _, argv in self.calls]


def command_error(stderr: str = "error", exit_code: int = 1) -> CommandError:
    return CommandError(f"command failed: {stderr}", exit_code, "", stderr)


def write_manifest(directory: Path, **fields) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    manifest = directory / "package.json"
    manifest.write_text(json.dumps(fields, indent=2) + "\n")
    return manifest


def manifest_version(directory: Path) -> str:
    return json.loads((directory / "package.json").read_text())["version"]


def npm_sets_version(version: str) -> Callable[[Path, List[str]], None]:
    """Handler action imitating ``npm version`` rewriting the manifest."""

    def action(cwd: Path, argv: List[str]) -> None:
        manifest = cwd / "package.json"
        data = json.loads(manifest.read_text())
        data["version"] = version
        manifest.write_text(json.dumps(data, indent=2) + "\n")

    return action


@pytest.fixture(autouse=True)
def temp_home(tmp_path, monkeypatch):
    """Keep user-level config lookups away from the real home directory."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setattr(Path, "home", lambda: home)
    for key in list(os.environ):
        if key.startswith("AUTOBUMP_"):
            monkeypatch.delenv(key)
    return home


@pytest.fixture
def tools_available(monkeypatch):
    """Pretend git, npm and gh are installed."""
    monkeypatch.setattr("autobump.integrations.git.check_command_exists", lambda command: True)


@pytest.fixture
def repo_dir(tmp_path):
    """Repository root holding the acme-widgets manifest."""
    root = tmp_path / "repo"
    write_manifest(root, name="acme-widgets", version="1.2.3")
    return root


@pytest.fixture
def package(repo_dir):
    return PackageEntry(
        name="acme-widgets",
        name_no_scope="acme-widgets",
        version="1.2.3",
        directory=repo_dir,
        manifest_path=repo_dir / "package.json",
        is_root=True,
    )


@pytest.fixture
def intent(package):
    return ReleaseIntent(
        main_branch="master",
        remote="origin",
        target_package=package,
        release_type=ReleaseType.MINOR,
    )


@pytest.fixture
def config():
    """Configuration with terminal-attached pushes disabled."""
    return Config.model_validate({"git": {"inherit_push_stdio": False}})


@pytest.fixture
def fake_runner(repo_dir):
    return FakeRunner(repo_dir)


@pytest.fixture
def runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner
    return CliRunner()
