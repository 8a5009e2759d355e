"""
This file contains shared fixtures for all tests.
"""

import os
import sys
from typing import Callable, List
from unittest.mock import MagicMock

import pytest

from circle_gh_tee.config import Configuration
from circle_gh_tee.renderer import CommentTemplates

# Every environment variable circle-gh-tee reads. Cleared for each test so a
# real CI environment cannot leak into the results.
CIRCLE_GH_TEE_ENV_VARS = [
    "CIRCLE_PULL_REQUEST",
    "CI_PULL_REQUEST",
    "CIRCLE_PROJECT_USERNAME",
    "CIRCLE_PR_USERNAME",
    "CIRCLE_PROJECT_REPONAME",
    "CIRCLE_PR_REPONAME",
    "GITHUB_API_TOKEN",
    "GITHUB_ACCESS_TOKEN",
    "CIRCLE_GH_TEE_GITHUB_API_URL",
    "CIRCLE_GH_TEE_PUBLISH_RETRIES",
    "CIRCLE_GH_TEE_CONFIG_PATH",
]

TEST_PULL_REQUEST_URL = "https://github.com/octo/widgets/pull/123"


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in CIRCLE_GH_TEE_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def make_configuration() -> Callable[..., Configuration]:
    """Builds a Configuration with valid CircleCI-like defaults."""

    def _make(**overrides) -> Configuration:
        values = {
            "templates": CommentTemplates(),
            "pull_request_url": TEST_PULL_REQUEST_URL,
            "repository_owner": "octo",
            "repository_name": "widgets",
            "github_token": "test-token",
        }
        values.update(overrides)
        return Configuration(**values)

    return _make


@pytest.fixture
def mock_publisher() -> MagicMock:
    publisher = MagicMock()
    publisher.publish.return_value = (
        "https://github.com/octo/widgets/pull/123#issuecomment-1"
    )
    return publisher


@pytest.fixture
def python_command() -> Callable[[str], List[str]]:
    """Returns [interpreter, "-c", code] for running a snippet as the wrapped command."""

    def _command(code: str) -> List[str]:
        return [sys.executable, "-c", code]

    return _command


@pytest.fixture
def missing_config_path(tmp_path) -> str:
    return os.path.join(str(tmp_path), "does-not-exist.yaml")
