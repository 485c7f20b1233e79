"""Rich console factory and the confix style theme.

Renderers draw into a console backed by a string buffer and hand back
plain text (``format_result() -> str``).  Rich drops colour codes on its
own when the buffer is not a terminal, which keeps CliRunner output and
pipes clean.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

DEFAULT_WIDTH = 120

# Short style names; the theme registers them as ``confix.<name>``.
STYLES: dict[str, str] = {
    "ok": "bold green",
    "error": "bold red",
    "warning": "bold yellow",
    "op": "bold cyan",
    "key": "dim",
    "path": "bold blue",
    "type": "magenta",
    "origin": "dim",
    "value": "green",
    "deprecated": "yellow",
}

CONFIX_THEME = Theme({f"confix.{name}": style for name, style in STYLES.items()})


def create_console(*, width: int | None = None, no_color: bool = False) -> Console:
    """A themed console that renders into an in-memory buffer."""
    return Console(
        file=StringIO(),
        theme=CONFIX_THEME,
        width=width or DEFAULT_WIDTH,
        no_color=no_color,
        highlight=False,
    )


def get_output(console: Console) -> str:
    """Everything rendered so far into a console from :func:`create_console`."""
    buffer = console.file
    if not isinstance(buffer, StringIO):
        msg = "console was not created by create_console()"
        raise TypeError(msg)
    return buffer.getvalue()
