"""Output targets for serialized results."""

from __future__ import annotations

import json
import shutil
import subprocess
import sys
from pathlib import Path
from typing import Any

from ci_inspect.errors import ClipboardUnavailableError

CLIPBOARD_TIMEOUT_SECONDS = 10
_CLIPBOARD_COMMANDS: tuple[tuple[str, ...], ...] = (
    ("wl-copy",),
    ("xclip", "-selection", "clipboard"),
    ("xsel", "--clipboard", "--input"),
)


def write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, "utf-8")


def write_json(path: Path, data: Any) -> None:
    write_text(path, json.dumps(data, ensure_ascii=False, indent=2) + "\n")


def copy_to_clipboard(text: str) -> None:
    """Copy text with the first clipboard command found in PATH."""

    command = _clipboard_command()
    try:
        subprocess.run(  # noqa: S603
            list(command),
            input=text,
            check=True,
            capture_output=True,
            text=True,
            encoding="utf-16le" if command[0] == "clip" else "utf-8",
            timeout=CLIPBOARD_TIMEOUT_SECONDS,
        )
    except (subprocess.CalledProcessError, subprocess.TimeoutExpired, OSError) as error:
        raise ClipboardUnavailableError(
            f"Clipboard command {command[0]!r} failed: {error}",
            code="clipboard_failed",
        ) from error


def _clipboard_command() -> tuple[str, ...]:
    candidates = _CLIPBOARD_COMMANDS
    if sys.platform == "darwin":
        candidates = (("pbcopy",),)
    elif sys.platform == "win32":
        candidates = (("clip",),)
    for command in candidates:
        if shutil.which(command[0]) is not None:
            return command
    raise ClipboardUnavailableError("No clipboard command found. Install wl-copy, xclip or xsel.")
