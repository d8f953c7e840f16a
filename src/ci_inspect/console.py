"""User-facing output sink."""

from __future__ import annotations

from collections.abc import Sequence

import rich_click as click

SEPARATOR_WIDTH = 80


class Console:
    """Writes status lines for the operator.

    ``error`` lines go to stderr; everything else to stdout.
    """

    def __init__(self, *, color: bool | None = None) -> None:
        self._color = color

    def log(self, message: str = "") -> None:
        click.echo(message, color=self._color)

    def info(self, message: str) -> None:
        self._emit("i", "blue", message)

    def ok(self, message: str) -> None:
        self._emit("✔", "green", message)

    def warn(self, message: str) -> None:
        self._emit("⚠", "yellow", message)

    def error(self, message: str) -> None:
        self._emit("✘", "red", message, err=True)

    def separator(self, title: str = "") -> None:
        if not title:
            self.log("-" * SEPARATOR_WIDTH)
            return
        padding = max(SEPARATOR_WIDTH - len(title) - 2, 0)
        left = padding // 2
        self.log(f"{'-' * left} {title} {'-' * (padding - left)}")

    def table(self, headers: Sequence[str], rows: Sequence[Sequence[object]]) -> None:
        self.log(markdown_table(headers, rows))

    def _emit(self, symbol: str, fg: str, message: str, *, err: bool = False) -> None:
        click.echo(
            f"{click.style(symbol, fg=fg)}  {message}",
            err=err,
            color=self._color,
        )


def markdown_table(headers: Sequence[str], rows: Sequence[Sequence[object]]) -> str:
    """Render rows as a GitHub-flavored Markdown table."""

    cells = [[_cell(value) for value in row] for row in rows]
    widths = [len(header) for header in headers]
    for row in cells:
        for index, value in enumerate(row):
            widths[index] = max(widths[index], len(value))

    def _line(values: Sequence[str]) -> str:
        return "| " + " | ".join(value.ljust(widths[i]) for i, value in enumerate(values)) + " |"

    lines = [_line(list(headers)), "| " + " | ".join("-" * w for w in widths) + " |"]
    lines.extend(_line(row) for row in cells)
    return "\n".join(lines)


def _cell(value: object) -> str:
    if value is None:
        return "-"
    return str(value).replace("|", "\\|").replace("\n", " ")
