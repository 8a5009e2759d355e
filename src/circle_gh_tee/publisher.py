"""
Posting the rendered comment to a GitHub pull request.
"""
import logging
import time
from typing import Callable, Optional

import requests
from github import Auth, Github, GithubException

from .config import DEFAULT_GITHUB_API_URL, DEFAULT_PUBLISH_RETRIES
from .errors import PublishFailure

logger = logging.getLogger(__name__)

DEFAULT_RETRY_BACKOFF_SECONDS = 2.0

# Authentication, permission and not-found failures will not succeed on retry.
NON_RETRYABLE_STATUSES = frozenset({401, 403, 404, 422})


def _is_retryable(exc: Exception) -> bool:
    if isinstance(exc, GithubException):
        if exc.status is None or exc.status in NON_RETRYABLE_STATUSES:
            return False
        return exc.status == 429 or exc.status >= 500
    return isinstance(exc, requests.exceptions.RequestException)


def _describe(exc: Exception) -> str:
    if isinstance(exc, GithubException):
        message = exc.data.get("message") if isinstance(exc.data, dict) else None
        return f"HTTP {exc.status}: {message or exc.data}"
    return str(exc)


class GitHubCommentPublisher:
    """
    Creates issue comments on GitHub through PyGithub.

    Transient failures (HTTP 5xx, 429, connection errors) are retried up to
    `retries` extra times with a linearly growing delay.
    """

    def __init__(
        self,
        token: Optional[str],
        base_url: str = DEFAULT_GITHUB_API_URL,
        retries: int = DEFAULT_PUBLISH_RETRIES,
        backoff_seconds: float = DEFAULT_RETRY_BACKOFF_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.token = token
        self.base_url = base_url
        self.retries = retries
        self.backoff_seconds = backoff_seconds
        self._sleep = sleep

    def _client(self) -> Github:
        # PyGithub's own retry policy is disabled; retries are handled in publish().
        return Github(auth=Auth.Token(self.token), base_url=self.base_url, retry=None)

    def publish(
        self,
        owner: Optional[str],
        repository: Optional[str],
        number: int,
        body: str,
    ) -> str:
        """
        Posts `body` as a comment on issue or pull request `number`.

        Returns:
            The HTML URL of the created comment.

        Raises:
            PublishFailure: If credentials or repository identifiers are
                missing, or the API call fails.
        """
        if not self.token:
            raise PublishFailure(
                "GitHub access token is not set (GITHUB_API_TOKEN or GITHUB_ACCESS_TOKEN)"
            )
        if not owner:
            raise PublishFailure(
                "Repository owner is not set (CIRCLE_PROJECT_USERNAME or CIRCLE_PR_USERNAME)"
            )
        if not repository:
            raise PublishFailure(
                "Repository name is not set (CIRCLE_PROJECT_REPONAME or CIRCLE_PR_REPONAME)"
            )

        full_name = f"{owner}/{repository}"
        try:
            client = self._client()
        except Exception as e:
            raise PublishFailure(
                f"Failed to create a GitHub client for {self.base_url!r}: {e!r}"
            ) from e

        attempt = 0
        while True:
            attempt += 1
            try:
                repo = client.get_repo(full_name, lazy=True)
                comment = repo.get_issue(number).create_comment(body)
                logger.info(f"Posted comment to {full_name}#{number}: {comment.html_url}")
                return comment.html_url
            except (GithubException, requests.exceptions.RequestException) as e:
                if not _is_retryable(e) or attempt > self.retries:
                    raise PublishFailure(
                        f"Failed to post a comment to {full_name}#{number}: {_describe(e)}"
                    ) from e
                delay = self.backoff_seconds * attempt
                logger.warning(
                    f"Posting comment to {full_name}#{number} failed ({_describe(e)}), "
                    f"retrying in {delay:.1f}s (attempt {attempt} of {self.retries + 1})"
                )
                self._sleep(delay)
