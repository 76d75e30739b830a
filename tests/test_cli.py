"""Tests for CLI interface."""

from unittest.mock import AsyncMock, patch

from autobump.cli import action, cli
from autobump.integrations.git import PreflightError
from autobump.models import ActionOutcome, BumpOutcome, ReleaseType


def bump_outcome():
    return BumpOutcome(
        branch="bump/acme-widgets-v1.3.0",
        commit_message="bump! acme-widgets-v1.3.0",
        previous_version="1.2.3",
        next_version="1.3.0",
        pr_published=True,
    )


class TestBumpCommand:
    """Test the interactive bump command."""

    def test_version_flag(self, runner):
        """Test --version flag."""
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "autobump, version 0.1.0" in result.output

    def test_help_output(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "WORKDIR" in result.output

    @patch("autobump.cli.BumpWorkflow")
    def test_successful_bump(self, mock_workflow, runner, repo_dir):
        """Test prompts feed the workflow and success is reported."""
        mock_workflow.return_value.run = AsyncMock(return_value=bump_outcome())

        result = runner.invoke(cli, [str(repo_dir)], input="\n\n\nminor\n")

        assert result.exit_code == 0, result.output
        assert "Pushed" in result.output
        assert "Pull request opened" in result.output

        intent, config, command_runner = mock_workflow.call_args.args
        assert intent.main_branch == "master"
        assert intent.remote == "origin"
        assert intent.release_type == ReleaseType.MINOR
        assert intent.target_package.name == "acme-widgets"
        assert command_runner.cwd == repo_dir.resolve()

    @patch("autobump.cli.BumpWorkflow")
    def test_custom_branch_and_remote(self, mock_workflow, runner, repo_dir):
        mock_workflow.return_value.run = AsyncMock(return_value=bump_outcome())

        result = runner.invoke(cli, [str(repo_dir)], input="main\nupstream\nacme-widgets\nmajor\n")

        assert result.exit_code == 0, result.output
        intent = mock_workflow.call_args.args[0]
        assert intent.main_branch == "main"
        assert intent.remote == "upstream"
        assert intent.release_type == ReleaseType.MAJOR

    @patch("autobump.cli.BumpWorkflow")
    def test_project_config_sets_prompt_defaults(self, mock_workflow, runner, repo_dir):
        (repo_dir / ".autobump").mkdir()
        (repo_dir / ".autobump" / "config.yaml").write_text("git:\n  main_branch: trunk\n")
        mock_workflow.return_value.run = AsyncMock(return_value=bump_outcome())

        result = runner.invoke(cli, [str(repo_dir)], input="\n\n\npatch\n")

        assert result.exit_code == 0, result.output
        assert mock_workflow.call_args.args[0].main_branch == "trunk"

    @patch("autobump.cli.BumpWorkflow")
    def test_cancelled_prompt(self, mock_workflow, runner, repo_dir):
        """Test end of input cancels without running anything."""
        result = runner.invoke(cli, [str(repo_dir)], input="")

        assert result.exit_code == 1
        assert "Cancelled" in result.output
        mock_workflow.assert_not_called()

    @patch("autobump.cli.BumpWorkflow")
    def test_workflow_error(self, mock_workflow, runner, repo_dir):
        """Test release errors exit with code 1."""
        mock_workflow.return_value.run = AsyncMock(side_effect=PreflightError("Working tree is dirty"))

        result = runner.invoke(cli, [str(repo_dir)], input="\n\n\npatch\n")

        assert result.exit_code == 1
        assert "ERROR" in result.output
        assert "Working tree is dirty" in result.output

    def test_missing_manifest(self, runner, tmp_path):
        """Test a directory without package.json fails before prompting."""
        empty = tmp_path / "empty"
        empty.mkdir()

        result = runner.invoke(cli, [str(empty)])

        assert result.exit_code == 1
        assert "package.json does not exist" in result.output

    def test_missing_workdir(self, runner, tmp_path):
        result = runner.invoke(cli, [str(tmp_path / "nope")])
        assert result.exit_code == 2


class TestActionCommand:
    """Test the GitHub Actions entry point."""

    def test_invalid_release(self, runner, tmp_path):
        """Test invalid inputs become an Actions error annotation."""
        result = runner.invoke(
            action, env={"INPUT_RELEASE": "huge", "GITHUB_WORKSPACE": str(tmp_path)}
        )

        assert result.exit_code == 1
        assert "::error::" in result.output
        assert "Invalid release type" in result.output

    @patch("autobump.cli.ActionWorkflow")
    def test_success_writes_outputs(self, mock_workflow, runner, repo_dir, tmp_path):
        """Test a successful release writes step outputs."""
        mock_workflow.return_value.run = AsyncMock(return_value=ActionOutcome(
            package="acme-widgets",
            previous_version="1.2.3",
            next_version="1.3.0",
            tag="acme-widgets/v1.3.0",
            commit_message="bump! acme-widgets-v1.3.0",
        ))
        output = tmp_path / "github_output"

        result = runner.invoke(
            action,
            env={
                "INPUT_RELEASE": "minor",
                "GITHUB_WORKSPACE": str(repo_dir),
                "GITHUB_OUTPUT": str(output),
            },
        )

        assert result.exit_code == 0, result.output
        assert "version=1.3.0" in output.read_text()
        inputs = mock_workflow.call_args.args[0]
        assert inputs.release_type == ReleaseType.MINOR
        assert inputs.workspace_root == repo_dir

    @patch("autobump.cli.ActionWorkflow")
    def test_workflow_failure(self, mock_workflow, runner, repo_dir):
        mock_workflow.return_value.run = AsyncMock(side_effect=PreflightError("npm missing"))

        result = runner.invoke(
            action, env={"INPUT_RELEASE": "patch", "GITHUB_WORKSPACE": str(repo_dir)}
        )

        assert result.exit_code == 1
        assert "::error::npm missing" in result.output
