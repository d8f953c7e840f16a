from __future__ import annotations

import allure
import pytest

from ci_inspect.errors import (
    CiInspectError,
    CiRequestError,
    ClipboardUnavailableError,
    UnknownJobKindError,
)

pytestmark = [
    allure.epic("Errors"),
    allure.feature("Error Types"),
]


def test_request_error_carries_message_and_response_details() -> None:
    error = CiRequestError("Request to https://ci.example.org failed: HTTP 500", status_code=500)

    assert error.args == ("Request to https://ci.example.org failed: HTTP 500",)
    assert str(error) == error.message
    assert error.code == "http_error"
    assert error.status_code == 500
    assert isinstance(error, CiInspectError)


def test_errors_are_hashable_and_compared_by_identity() -> None:
    first = ClipboardUnavailableError("No clipboard command found.")
    second = ClipboardUnavailableError("No clipboard command found.")

    assert first != second
    assert len({first, second}) == 2


def test_explicit_code_overrides_default() -> None:
    error = ClipboardUnavailableError("Clipboard command 'xclip' failed", code="clipboard_failed")

    assert error.code == "clipboard_failed"
    assert UnknownJobKindError("Unknown job kind: 'nightly'", kind="nightly").code == (
        "unknown_job_kind"
    )


def test_errors_reraise_with_message() -> None:
    with pytest.raises(CiInspectError, match="Unknown job kind") as excinfo:
        raise UnknownJobKindError("Unknown job kind: 'nightly'", kind="nightly")

    assert excinfo.value.kind == "nightly"
