import logging
from pathlib import Path
from typing import List, Optional

import click
from rich.console import Console
from rich.logging import RichHandler

from . import handlers

APP_NAME = "circle-gh-tee"


class WrapperCommand(click.Command):
    """A command whose trailing arguments are another command line.

    Unknown options are passed through to the wrapped command, so a leading
    token that looks like an option is only accepted after `--`.
    """

    def parse_args(self, ctx: click.Context, args: List[str]) -> List[str]:
        raw_args = list(args)
        rest = super().parse_args(ctx, args)
        command = ctx.params.get("command") or ()
        if command and command[0].startswith("-"):
            start = len(raw_args) - len(command)
            if start == 0 or raw_args[start - 1] != "--":
                raise click.NoSuchOption(command[0], ctx=ctx)
        return rest


def configure_logging(verbose: bool) -> None:
    # stdout carries the wrapped command's output, so logs go to stderr.
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@click.command(
    cls=WrapperCommand,
    context_settings={
        "ignore_unknown_options": True,
        "allow_interspersed_args": False,
    },
)
@click.option(
    "--exit-zero-template",
    type=str,
    default=None,
    help="Comment template used when exit code is zero.",
)
@click.option(
    "--exit-non-zero-template",
    type=str,
    default=None,
    help="Comment template used when exit code is non-zero.",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to the circle-gh-tee config file.",
)
@click.option("--verbose", is_flag=True, help="Log debug information to stderr.")
@click.version_option(
    None,
    "-v",
    "--version",
    package_name=APP_NAME,
    prog_name=APP_NAME,
    message="%(prog)s v%(version)s",
    help="Show version.",
)
@click.argument("command", nargs=-1, required=True, type=click.UNPROCESSED)
def main(
    exit_zero_template: Optional[str],
    exit_non_zero_template: Optional[str],
    config_path: Optional[Path],
    verbose: bool,
    command: tuple[str, ...],
) -> None:
    """Execute COMMAND and post its result to the GitHub Pull Request.

    Separate the command from circle-gh-tee options with `--`.
    """
    configure_logging(verbose)
    handlers.run_and_comment(
        command=command,
        config_path=str(config_path) if config_path else None,
        exit_zero_template=exit_zero_template,
        exit_non_zero_template=exit_non_zero_template,
    )


if __name__ == "__main__":
    main()
