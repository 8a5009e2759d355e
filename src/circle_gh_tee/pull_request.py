"""
Resolution of the pull request number a CI run belongs to.

Two signals are consulted in order:
- The pull request URL exported by the CI provider (e.g. CIRCLE_PULL_REQUEST).
- The subject of the latest commit, when it is a GitHub merge commit.

An explicit URL that does not name a pull request is an error; it never falls
through to the commit subject.
"""
import logging
import re
import subprocess
from typing import Callable, Optional

from .errors import InvalidPrReference, PrNumberUnresolved

logger = logging.getLogger(__name__)

# Largest issue number accepted by the GitHub API (signed 32-bit).
MAX_PR_NUMBER = 2**31 - 1

PULL_REQUEST_URL_RE = re.compile(r"/pull/([0-9]+)$")
MERGE_COMMIT_SUBJECT_RE = re.compile(r"^Merge pull request #([0-9]+)")

GIT_LAST_COMMIT_SUBJECT_COMMAND = [
    "git",
    "--no-pager",
    "log",
    "--pretty=format:%s",
    "-1",
]


def _parse_pr_number(digits: str, source: str) -> int:
    number = int(digits)
    if number > MAX_PR_NUMBER:
        raise InvalidPrReference(
            f"Pull Request number {digits} from {source} is out of range"
        )
    return number


def get_pr_number_from_url(pull_request_url: str) -> int:
    """Extracts the trailing `/pull/<number>` from a pull request URL."""
    match = PULL_REQUEST_URL_RE.search(pull_request_url)
    if not match:
        raise InvalidPrReference(
            f"Failed to get Pull Request number from pull request URL: {pull_request_url!r}"
        )
    return _parse_pr_number(match.group(1), "pull request URL")


def get_pr_number_from_commit_subject(subject: str) -> Optional[int]:
    """Returns the PR number of a merge commit subject, or None if it is not one."""
    match = MERGE_COMMIT_SUBJECT_RE.match(subject.strip())
    if not match:
        return None
    return _parse_pr_number(match.group(1), "last commit subject")


def get_last_commit_subject() -> Optional[str]:
    """
    Reads the subject line of the most recent commit with git.

    Returns None when git is unavailable, fails, or prints nothing. None is a
    miss, not an error.
    """
    try:
        completed = subprocess.run(
            GIT_LAST_COMMIT_SUBJECT_COMMAND,
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as e:
        logger.debug(f"Could not run git to read the last commit subject: {e}")
        return None

    if completed.returncode != 0:
        logger.debug(
            f"git log exited with {completed.returncode}: {completed.stderr.strip()}"
        )
        return None

    subject = completed.stdout.strip()
    return subject or None


def resolve_pr_number(
    pull_request_url: Optional[str],
    read_commit_subject: Optional[Callable[[], Optional[str]]] = None,
) -> int:
    """
    Determine the pull request number for the current CI run.

    Args:
        pull_request_url: The pull request URL exported by the CI provider,
            if any.
        read_commit_subject: Callable returning the latest commit subject.
            Defaults to get_last_commit_subject. Only called when the URL is
            absent.

    Returns:
        The pull request number.

    Raises:
        InvalidPrReference: If the URL is present but malformed, or a number
            is out of range.
        PrNumberUnresolved: If neither signal names a pull request.
    """
    if pull_request_url and pull_request_url.strip():
        number = get_pr_number_from_url(pull_request_url.strip())
        logger.debug(f"Resolved Pull Request #{number} from pull request URL")
        return number

    if read_commit_subject is None:
        read_commit_subject = get_last_commit_subject
    last_commit_subject = read_commit_subject()
    if last_commit_subject:
        number = get_pr_number_from_commit_subject(last_commit_subject)
        if number is not None:
            logger.debug(f"Resolved Pull Request #{number} from last commit subject")
            return number
        logger.debug(f"Last commit subject is not a merge commit: {last_commit_subject!r}")

    raise PrNumberUnresolved(
        "Failed to get the Pull Request number: no pull request URL is set "
        "and the last commit is not a pull request merge commit"
    )
