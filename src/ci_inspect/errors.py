"""Error types raised by CI inspection components."""

from __future__ import annotations


class CiInspectError(Exception):
    """Base error for CI inspection failures."""

    default_code = "ci_inspect_error"

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code


class CiRequestError(CiInspectError):
    """HTTP request to the CI server or GitHub failed."""

    default_code = "http_error"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        url: str = "",
        status_code: int = 0,
    ) -> None:
        super().__init__(message, code=code)
        self.url = url
        self.status_code = status_code


class UnknownJobKindError(CiInspectError):
    """Job descriptor kind has no registered build handler."""

    default_code = "unknown_job_kind"

    def __init__(self, message: str, *, kind: str, code: str | None = None) -> None:
        super().__init__(message, code=code)
        self.kind = kind


class ClipboardUnavailableError(CiInspectError):
    """No clipboard command is available on this platform."""

    default_code = "clipboard_unavailable"
