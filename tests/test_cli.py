from unittest.mock import patch

import pytest
from click.testing import CliRunner

from circle_gh_tee.cli.main import main as cli_main
from circle_gh_tee.errors import PublishFailure
COMMENT_URL = "https://github.com/octo/widgets/pull/123#issuecomment-1"


@pytest.fixture
def circleci_env(missing_config_path) -> dict:
    return {
        "CIRCLE_PULL_REQUEST": "https://github.com/octo/widgets/pull/123",
        "CIRCLE_PROJECT_USERNAME": "octo",
        "CIRCLE_PROJECT_REPONAME": "widgets",
        "GITHUB_API_TOKEN": "test-token",
        "CIRCLE_GH_TEE_CONFIG_PATH": missing_config_path,
    }


@pytest.fixture
def mock_publisher_class():
    with patch("circle_gh_tee.coordinator.GitHubCommentPublisher") as publisher_class:
        publisher_class.return_value.publish.return_value = COMMENT_URL
        yield publisher_class


class TestCliUnit:
    def test_runs_command_and_posts_comment(self, circleci_env, mock_publisher_class):
        runner = CliRunner()
        result = runner.invoke(cli_main, ["--", "echo", "hello"], env=circleci_env)

        assert result.exit_code == 0, result.output
        assert "hello" in result.output
        publish = mock_publisher_class.return_value.publish
        publish.assert_called_once()
        assert publish.call_args.args[:3] == ("octo", "widgets", 123)
        assert "hello" in publish.call_args.args[3]
        mock_publisher_class.assert_called_once_with(
            token="test-token", base_url="https://api.github.com", retries=2
        )

    def test_exits_with_the_command_exit_status(
        self, circleci_env, mock_publisher_class, python_command
    ):
        runner = CliRunner()
        result = runner.invoke(
            cli_main, ["--", *python_command("import sys; sys.exit(7)")], env=circleci_env
        )

        assert result.exit_code == 7
        mock_publisher_class.return_value.publish.assert_called_once()

    def test_wrapped_command_options_are_not_parsed(self, circleci_env, mock_publisher_class):
        runner = CliRunner()
        result = runner.invoke(
            cli_main, ["--", "echo", "--version", "-v"], env=circleci_env
        )

        assert result.exit_code == 0, result.output
        body = mock_publisher_class.return_value.publish.call_args.args[3]
        assert "`echo --version -v` exited with `0`" in body

    def test_template_overrides(self, circleci_env, mock_publisher_class, python_command):
        runner = CliRunner()
        result = runner.invoke(
            cli_main,
            [
                "--exit-zero-template",
                "passed: {{full_command}}",
                "--exit-non-zero-template",
                "failed with {{exit_status}}: {{result}}",
                "--",
                *python_command("import sys; print('oops'); sys.exit(2)"),
            ],
            env=circleci_env,
        )

        assert result.exit_code == 2
        body = mock_publisher_class.return_value.publish.call_args.args[3]
        assert body == "failed with 2: oops\n"

    def test_malformed_template_fails_before_running(
        self, circleci_env, mock_publisher_class, tmp_path
    ):
        marker = tmp_path / "ran"
        runner = CliRunner()
        result = runner.invoke(
            cli_main,
            ["--exit-zero-template", "{{nope}}", "--", "touch", str(marker)],
            env=circleci_env,
        )

        assert result.exit_code == 1
        assert "Unknown placeholder 'nope'" in result.output
        assert not marker.exists()
        mock_publisher_class.return_value.publish.assert_not_called()

    def test_version(self, mock_publisher_class):
        runner = CliRunner()
        result = runner.invoke(cli_main, ["--version"])

        assert result.exit_code == 0
        assert result.output.startswith("circle-gh-tee v")
        mock_publisher_class.assert_not_called()

    def test_short_version_flag(self, mock_publisher_class):
        runner = CliRunner()
        result = runner.invoke(cli_main, ["-v"])

        assert result.exit_code == 0
        assert "circle-gh-tee v" in result.output

    def test_command_is_required(self):
        runner = CliRunner()
        result = runner.invoke(cli_main, [])

        assert result.exit_code == 2
        assert "Missing argument" in result.output

    def test_spawn_failure_exits_non_zero(self, circleci_env, mock_publisher_class):
        runner = CliRunner()
        result = runner.invoke(
            cli_main, ["--", "circle-gh-tee-no-such-command"], env=circleci_env
        )

        assert result.exit_code == 1
        assert "Failed to start" in result.output
        mock_publisher_class.return_value.publish.assert_not_called()

    def test_unresolved_pull_request_exits_non_zero(
        self, circleci_env, mock_publisher_class
    ):
        circleci_env["CIRCLE_PULL_REQUEST"] = ""
        runner = CliRunner()
        with patch(
            "circle_gh_tee.pull_request.get_last_commit_subject",
            return_value="Update README",
        ):
            result = runner.invoke(cli_main, ["--", "echo", "hello"], env=circleci_env)

        assert result.exit_code == 1
        assert "Failed to get the Pull Request number" in result.output
        mock_publisher_class.return_value.publish.assert_not_called()

    def test_publish_failure_keeps_failing_exit_status(
        self, circleci_env, mock_publisher_class, python_command
    ):
        mock_publisher_class.return_value.publish.side_effect = PublishFailure(
            "Failed to post a comment to octo/widgets#123: HTTP 401: Bad credentials"
        )
        runner = CliRunner()
        result = runner.invoke(
            cli_main, ["--", *python_command("import sys; sys.exit(4)")], env=circleci_env
        )

        assert result.exit_code == 4
        assert "Bad credentials" in result.output

    def test_publish_failure_after_success_is_not_zero(
        self, circleci_env, mock_publisher_class
    ):
        mock_publisher_class.return_value.publish.side_effect = PublishFailure("boom")
        runner = CliRunner()
        result = runner.invoke(cli_main, ["--", "echo", "hello"], env=circleci_env)

        assert result.exit_code == 1
        assert "hello" in result.output

    def test_mistyped_option_is_not_run_as_the_command(
        self, circleci_env, mock_publisher_class
    ):
        runner = CliRunner()
        result = runner.invoke(
            cli_main, ["--exit-zero-templat", "x", "--", "make"], env=circleci_env
        )

        assert result.exit_code == 2
        assert "No such option: --exit-zero-templat" in result.output
        mock_publisher_class.assert_not_called()

    def test_dash_command_is_allowed_after_separator(
        self, circleci_env, mock_publisher_class
    ):
        runner = CliRunner()
        result = runner.invoke(cli_main, ["--", "-not-a-real-command"], env=circleci_env)

        assert result.exit_code == 1
        assert "Failed to start '-not-a-real-command'" in result.output
