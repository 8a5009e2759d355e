import re

_ANSI_COLOR_RE = re.compile(r"\x1b\[[0-9;]*[mK]")


def remove_ansi_color(text: str) -> str:
    """Strips SGR color codes and erase-in-line sequences from captured output."""
    # Removing one sequence can join its neighbours into another, so repeat
    # until nothing matches.
    count = 1
    while count:
        text, count = _ANSI_COLOR_RE.subn("", text)
    return text
