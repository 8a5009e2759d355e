"""
Rendering of the pull request comment from a finished command.

Templates use `{{name}}` placeholders. The recognized names are `command`,
`full_command`, `exit_status` and `result`; the spellings `.Cmd`, `.FullCmd`,
`.ExitStatus` and `.Result` are accepted for templates written for the older
Go implementation of this tool.
"""
from dataclasses import dataclass
from typing import Dict, List, Tuple, Union

from .errors import TemplateSyntaxError
from .executor import CompletedCommand
from .utils.ansi import remove_ansi_color

DEFAULT_EXIT_ZERO_TEMPLATE = (
    ":white_check_mark: `{{full_command}}` exited with `{{exit_status}}`.\n\n"
    "```\n"
    "{{result}}\n"
    "```"
)

DEFAULT_EXIT_NON_ZERO_TEMPLATE = (
    ":no_entry_sign: `{{full_command}}` exited with `{{exit_status}}`.\n"
    "```\n"
    "{{result}}\n"
    "```"
)

PLACEHOLDER_ALIASES: Dict[str, str] = {
    "command": "command",
    "full_command": "full_command",
    "exit_status": "exit_status",
    "result": "result",
    ".Cmd": "command",
    ".FullCmd": "full_command",
    ".ExitStatus": "exit_status",
    ".Result": "result",
}


@dataclass(frozen=True)
class ExecutionResult:
    command: str
    arguments: Tuple[str, ...]
    exit_status: int
    captured_output: str

    @classmethod
    def from_completed(cls, completed: CompletedCommand) -> "ExecutionResult":
        """Decodes the captured bytes and strips terminal colors from them."""
        output = completed.output.decode("utf-8", errors="replace")
        return cls(
            command=completed.command,
            arguments=tuple(completed.arguments),
            exit_status=completed.exit_status,
            captured_output=remove_ansi_color(output),
        )


@dataclass(frozen=True)
class RenderContext:
    result: ExecutionResult

    @property
    def full_command(self) -> str:
        return " ".join([self.result.command, *self.result.arguments])

    def values(self) -> Dict[str, str]:
        return {
            "command": self.result.command,
            "full_command": self.full_command,
            "exit_status": str(self.result.exit_status),
            "result": self.result.captured_output,
        }


@dataclass(frozen=True)
class CommentTemplates:
    exit_zero: str = DEFAULT_EXIT_ZERO_TEMPLATE
    exit_non_zero: str = DEFAULT_EXIT_NON_ZERO_TEMPLATE

    def select(self, exit_status: int) -> Tuple[str, str]:
        """Returns the (name, template) pair to use for `exit_status`."""
        if exit_status == 0:
            return "exit-zero", self.exit_zero
        return "exit-non-zero", self.exit_non_zero


class _Placeholder(str):
    """A parsed placeholder name, distinguished from literal text."""


def _parse_template(template: str, name: str = "template") -> List[Union[str, _Placeholder]]:
    parts: List[Union[str, _Placeholder]] = []
    position = 0
    while True:
        start = template.find("{{", position)
        if start == -1:
            parts.append(template[position:])
            return parts

        end = template.find("}}", start + 2)
        if end == -1:
            raise TemplateSyntaxError(
                f"Unclosed '{{{{' at offset {start} in {name}"
            )

        placeholder = template[start + 2:end].strip()
        if not placeholder:
            raise TemplateSyntaxError(f"Empty placeholder at offset {start} in {name}")
        if placeholder not in PLACEHOLDER_ALIASES:
            known = ", ".join(sorted(k for k in PLACEHOLDER_ALIASES if not k.startswith(".")))
            raise TemplateSyntaxError(
                f"Unknown placeholder '{placeholder}' in {name} (expected one of: {known})"
            )

        parts.append(template[position:start])
        parts.append(_Placeholder(PLACEHOLDER_ALIASES[placeholder]))
        position = end + 2


def validate_template(template: str, name: str = "template") -> None:
    """Raises TemplateSyntaxError if `template` cannot be rendered."""
    _parse_template(template, name)


def render_template(template: str, context: RenderContext, name: str = "template") -> str:
    """
    Substitutes every placeholder in `template` in a single pass.

    Substituted values are inserted verbatim and never rescanned, so command
    output containing `{{...}}` is left alone.
    """
    values = context.values()
    return "".join(
        values[part] if isinstance(part, _Placeholder) else part
        for part in _parse_template(template, name)
    )


def render_comment(result: ExecutionResult, templates: CommentTemplates) -> str:
    """Renders the comment for `result` with the template matching its exit status."""
    name, template = templates.select(result.exit_status)
    return render_template(template, RenderContext(result), name=f"{name} template")
