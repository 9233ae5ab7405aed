"""
WaveLens Console Interface
===========================

Rich-powered presentation layer shared by the WaveLens CLI commands.

:class:`WaveLensConsole` owns one :class:`rich.console.Console` with the
WaveLens theme and offers the building blocks the output module composes:
the banner, section rules, levelled messages, themed tables and panels,
and a spinner for long-running scans and captures.

References:
    - Rich library: https://github.com/Textualize/rich
"""

from __future__ import annotations

import datetime as _dt
from contextlib import contextmanager
from typing import Any, Iterator, Sequence

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.status import Status
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

_WAVELENS_THEME = Theme(
    {
        "wavelens.border": "bright_cyan",
        "wavelens.header": "bold bright_magenta",
        "wavelens.section": "bold bright_magenta",
        "wavelens.success": "bold green",
        "wavelens.warning": "bold yellow",
        "wavelens.error": "bold red",
        "wavelens.info": "bold bright_blue",
        "wavelens.dim": "dim white",
        "wavelens.highlight": "bold bright_white",
    }
)

_BANNER_ART = r"""
[bright_cyan]
 __        __              _
 \ \      / /_ ___   _____| |    ___ _ __  ___
  \ \ /\ / / _` \ \ / / _ \ |   / _ \ '_ \/ __|
   \ V  V / (_| |\ V /  __/ |__|  __/ | | \__ \
    \_/\_/ \__,_| \_/ \___|_____\___|_| |_|___/
[/bright_cyan]"""

_TAGLINE = "WiFi Analysis Console"

# level -> (theme style, marker, label)
_LEVELS: dict[str, tuple[str, str, str]] = {
    "success": ("wavelens.success", "✔", "SUCCESS"),
    "warning": ("wavelens.warning", "⚠", "WARNING"),
    "error": ("wavelens.error", "✘", "ERROR"),
    "info": ("wavelens.info", "ℹ", "INFO"),
}


class WaveLensConsole:
    """Themed console shared by the WaveLens commands.

    Usage::

        con = WaveLensConsole()
        con.banner("1.0.0")
        table = con.make_table("Networks", ["SSID", "Channel"])
        table.add_row("HomeNet", "6")
        con.print(table)
        con.message("success", "Scan complete")
    """

    def __init__(self, *, quiet: bool = False) -> None:
        """
        Args:
            quiet: Discard all output (tests, scripted use).
        """
        self._console = Console(theme=_WAVELENS_THEME, quiet=quiet, highlight=False)

    @property
    def rich(self) -> Console:
        return self._console

    @property
    def quiet(self) -> bool:
        return self._console.quiet

    # ------------------------------------------------------------------ #
    #  Framing
    # ------------------------------------------------------------------ #

    def banner(self, version: str) -> None:
        stamp = _dt.datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        body = Text.from_markup(
            f"{_BANNER_ART}\n"
            f"[wavelens.highlight]{_TAGLINE}[/wavelens.highlight]\n"
            f"[wavelens.dim]v{version}  |  {stamp}[/wavelens.dim]"
        )
        self._console.print(
            Panel(Align.center(body), border_style="wavelens.border", padding=(1, 2))
        )

    def section(self, title: str) -> None:
        self._console.rule(f"  {title}  ", style="wavelens.section", characters="─")
        self._console.print()

    # ------------------------------------------------------------------ #
    #  Messages
    # ------------------------------------------------------------------ #

    def message(self, level: str, text: str) -> None:
        """Print *text* prefixed with the marker and label of *level*."""
        style, marker, label = _LEVELS[level]
        self._console.print(f"[{style}][{marker}] {label}:[/{style}] {text}")

    def success(self, text: str) -> None:
        self.message("success", text)

    def warning(self, text: str) -> None:
        self.message("warning", text)

    def error(self, text: str) -> None:
        self.message("error", text)

    def info(self, text: str) -> None:
        self.message("info", text)

    # ------------------------------------------------------------------ #
    #  Tables and panels
    # ------------------------------------------------------------------ #

    def make_table(
        self,
        title: str,
        columns: Sequence[str] = (),
        *,
        caption: str | None = None,
    ) -> Table:
        """Create an empty table in the WaveLens style.

        Columns named here get default settings; callers needing widths or
        justification add their own columns instead.
        """
        table = Table(
            title=title,
            caption=caption,
            border_style="wavelens.border",
            header_style="wavelens.header",
            padding=(0, 1),
        )
        for name in columns:
            table.add_column(name)
        return table

    def table(
        self,
        title: str,
        columns: Sequence[str],
        rows: Sequence[Sequence[Any]],
        *,
        caption: str | None = None,
    ) -> None:
        """Print a table whose cells are rendered with ``str()``."""
        table = self.make_table(title, columns, caption=caption)
        for row in rows:
            table.add_row(*map(str, row))
        self._console.print(table)

    def key_values(self, title: str, pairs: Sequence[tuple[str, str]]) -> None:
        """Print aligned ``label: value`` lines inside a titled panel."""
        width = max((len(label) for label, _ in pairs), default=0) + 1
        lines = "\n".join(
            f"[bold]{(label + ':').ljust(width)}[/bold] {value}" for label, value in pairs
        )
        self._console.print(
            Panel(
                Text.from_markup(lines),
                title=title,
                border_style="wavelens.border",
                padding=(0, 2),
            )
        )

    # ------------------------------------------------------------------ #
    #  Progress
    # ------------------------------------------------------------------ #

    @contextmanager
    def status(self, text: str) -> Iterator[Status]:
        """Spinner shown while the body runs; update it via the yielded object::

            with con.status("Scanning...") as spinner:
                spinner.update("Scanning... 4 network(s)")
        """
        with self._console.status(
            f"[wavelens.info]{text}[/wavelens.info]",
            spinner="dots",
            spinner_style="wavelens.border",
        ) as spinner:
            yield spinner

    def print(self, *args: Any, **kwargs: Any) -> None:
        self._console.print(*args, **kwargs)

    def blank(self, count: int = 1) -> None:
        for _ in range(count):
            self._console.print()
