"""
Orchestration of a single circle-gh-tee run.

A run executes the wrapped command, renders the comment, resolves the pull
request and publishes the comment, in that order. The first fatal error
aborts the run; nothing is published after a rendering or resolution error.
"""
import enum
import logging
from typing import BinaryIO, Callable, List, Optional, Sequence

from .config import Configuration
from .errors import CircleGhTeeError
from .executor import CompletedCommand, run_command
from .publisher import GitHubCommentPublisher
from .pull_request import resolve_pr_number
from .renderer import ExecutionResult, render_comment

logger = logging.getLogger(__name__)


class RunState(enum.Enum):
    IDLE = "Idle"
    EXECUTING = "Executing"
    RENDERING = "Rendering"
    RESOLVING = "Resolving"
    PUBLISHING = "Publishing"
    DONE = "Done"
    ABORTED = "Aborted"


class RunCoordinator:
    def __init__(
        self,
        configuration: Configuration,
        publisher: Optional[GitHubCommentPublisher] = None,
        execute: Callable[..., CompletedCommand] = run_command,
        resolve: Callable[[Optional[str]], int] = resolve_pr_number,
        stdout: Optional[BinaryIO] = None,
        stderr: Optional[BinaryIO] = None,
    ) -> None:
        self.configuration = configuration
        self.publisher = publisher or GitHubCommentPublisher(
            token=configuration.github_token,
            base_url=configuration.github_api_url,
            retries=configuration.publish_retries,
        )
        self._execute = execute
        self._resolve = resolve
        self._stdout = stdout
        self._stderr = stderr

        self.state = RunState.IDLE
        self.history: List[RunState] = [RunState.IDLE]
        self.result: Optional[ExecutionResult] = None
        self.comment: Optional[str] = None
        self.pr_number: Optional[int] = None
        self.comment_url: Optional[str] = None

    def _transition(self, state: RunState) -> None:
        logger.debug(f"{self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    def run(self, command: str, arguments: Sequence[str] = ()) -> int:
        """
        Runs `command` and comments its result on the pull request.

        Returns:
            The exit status of the wrapped command, unchanged.

        Raises:
            CircleGhTeeError: On the first fatal error. When the wrapped
                command already ran, the error's `exit_status` is set to its
                exit status.
        """
        if self.state is not RunState.IDLE:
            raise RuntimeError("RunCoordinator.run() can only be called once")

        try:
            self._transition(RunState.EXECUTING)
            completed = self._execute(
                command, arguments, stdout=self._stdout, stderr=self._stderr
            )

            self._transition(RunState.RENDERING)
            self.result = ExecutionResult.from_completed(completed)
            self.comment = render_comment(self.result, self.configuration.templates)

            self._transition(RunState.RESOLVING)
            self.pr_number = self._resolve(self.configuration.pull_request_url)

            self._transition(RunState.PUBLISHING)
            self.comment_url = self.publisher.publish(
                self.configuration.repository_owner,
                self.configuration.repository_name,
                self.pr_number,
                self.comment,
            )
        except BaseException as e:
            failed_in = self.state
            self._transition(RunState.ABORTED)
            logger.debug(f"Run aborted while {failed_in.value}: {e!r}")
            exit_status = self.result.exit_status if self.result is not None else None
            if isinstance(e, CircleGhTeeError):
                if exit_status is not None:
                    e.exit_status = exit_status
                raise
            if isinstance(e, Exception):
                raise CircleGhTeeError(
                    f"Unexpected error while {failed_in.value.lower()}: {e!r}",
                    exit_status=exit_status,
                ) from e
            raise

        self._transition(RunState.DONE)
        return self.result.exit_status
