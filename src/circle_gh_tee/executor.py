"""
Runs the wrapped command while streaming its output live and capturing it.
"""
import io
import logging
import os
import select
import subprocess
import sys
from dataclasses import dataclass
from typing import BinaryIO, Dict, Optional, Sequence

from .errors import SpawnFailure
from .utils.tee import TeeWriter

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 4096


@dataclass(frozen=True)
class CompletedCommand:
    """
    CompletedCommand holds the outcome of a wrapped command.

    `output` contains stdout and stderr interleaved in the order the chunks
    arrived, exactly as they were written to the live streams.
    """

    command: str
    arguments: tuple
    exit_status: int
    output: bytes


def _exit_status_from_returncode(returncode: int) -> int:
    # Popen reports death by signal N as -N; report it the way a shell does.
    if returncode < 0:
        return 128 - returncode
    return returncode


def _default_stream(stream) -> BinaryIO:
    return getattr(stream, "buffer", stream)


def run_command(
    command: str,
    arguments: Sequence[str] = (),
    stdout: Optional[BinaryIO] = None,
    stderr: Optional[BinaryIO] = None,
    stdin: Optional[int] = None,
) -> CompletedCommand:
    """
    Run `command` with `arguments` until it exits.

    The child's stdout is copied to `stdout` and its stderr to `stderr` as the
    data arrives, and both are copied into one capture buffer.

    Args:
        command: The program to run.
        arguments: Arguments passed to the program.
        stdout: Binary stream receiving the child's stdout. Defaults to the
            process stdout.
        stderr: Binary stream receiving the child's stderr. Defaults to the
            process stderr.
        stdin: Passed to Popen as-is. None inherits the process stdin.

    Returns:
        The exit status and captured output of the command.

    Raises:
        SpawnFailure: If the command could not be started.
    """
    live_stdout = stdout if stdout is not None else _default_stream(sys.stdout)
    live_stderr = stderr if stderr is not None else _default_stream(sys.stderr)
    capture = io.BytesIO()

    argv = [command, *arguments]
    logger.debug("Running %s", argv)
    try:
        process = subprocess.Popen(
            argv,
            stdin=stdin,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
    except OSError as exc:
        raise SpawnFailure(f"Failed to start '{command}': {exc}") from exc

    assert process.stdout is not None
    assert process.stderr is not None

    writers: Dict[int, TeeWriter] = {
        process.stdout.fileno(): TeeWriter(live_stdout, capture),
        process.stderr.fileno(): TeeWriter(live_stderr, capture),
    }
    try:
        open_fds = list(writers)
        while open_fds:
            readable, _, _ = select.select(open_fds, [], [])
            for fd in readable:
                data = os.read(fd, READ_CHUNK_SIZE)
                if not data:
                    open_fds.remove(fd)
                    continue
                writers[fd].write(data)
    except BaseException:
        process.kill()
        process.wait()
        raise
    finally:
        process.stdout.close()
        process.stderr.close()

    returncode = process.wait()
    exit_status = _exit_status_from_returncode(returncode)
    logger.debug("Command %s exited with %d", argv, exit_status)

    return CompletedCommand(
        command=command,
        arguments=tuple(arguments),
        exit_status=exit_status,
        output=capture.getvalue(),
    )
