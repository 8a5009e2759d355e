import logging
import sys
from typing import Optional, Sequence

from rich.console import Console
from rich.markup import escape

from ...config import Configuration
from ...coordinator import RunCoordinator
from ...errors import CircleGhTeeError

logger = logging.getLogger(__name__)


def run_and_comment(
    command: Sequence[str],
    config_path: Optional[str] = None,
    exit_zero_template: Optional[str] = None,
    exit_non_zero_template: Optional[str] = None,
) -> None:
    """Runs the wrapped command, comments its result and exits with its status."""
    console = Console(stderr=True)

    try:
        configuration = Configuration.load(
            config_path=config_path,
            exit_zero_template=exit_zero_template,
            exit_non_zero_template=exit_non_zero_template,
        )
        coordinator = RunCoordinator(configuration)
        exit_status = coordinator.run(command[0], command[1:])
    except CircleGhTeeError as e:
        logger.debug("circle-gh-tee run failed", exc_info=True)
        console.print(f"[red]Error: {escape(str(e))}[/red]", soft_wrap=True)
        # Never report success for a failed run, and never hide a failing command.
        sys.exit(e.exit_status or 1)

    console.print(
        f"[green]Posted result to Pull Request #{coordinator.pr_number}.[/green]"
    )
    sys.exit(exit_status)
