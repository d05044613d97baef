"""Page/entry progress on stderr."""

from __future__ import annotations

import click

_ERASE_LINE = "\x1b[K"
_CURSOR_HOME = "\x1b[G"
_PROGRESS_COLOR = 249


class ProgressReporter:
    def __init__(self, *, enabled: bool = True, live: bool | None = None):
        self.enabled = enabled
        # The self-overwriting line only makes sense on a terminal.
        if live is None:
            live = click.get_text_stream("stderr").isatty()
        self.live = live

    def update(self, page: int, entries: int) -> None:
        if not (self.enabled and self.live):
            return
        line = click.style(f"(Page {page}: {entries} entries)", fg=_PROGRESS_COLOR)
        click.echo(f"{_ERASE_LINE}{line}{_CURSOR_HOME}", err=True, nl=False)

    def clear(self) -> None:
        if self.enabled and self.live:
            click.echo(_ERASE_LINE, err=True, nl=False)

    def finish(self, pages: int, entries: int) -> None:
        if self.enabled:
            click.echo(f"(Pages: {pages}, Entries: {entries})", err=True)
