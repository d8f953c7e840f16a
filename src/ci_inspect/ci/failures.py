"""Deterministic console-log failure classification for CI builds."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

CONSOLE_TAIL_LINES = 10
HIGHLIGHT_MAX_LINES = 15


class FailureType(StrEnum):
    """Kind of failure found in one build's console output."""

    JS_TEST_FAILURE = "JSTestFailure"
    CC_TEST_FAILURE = "CCTestFailure"
    BUILD_FAILURE = "BuildFailure"
    GIT_FAILURE = "GitFailure"
    JENKINS_FAILURE = "JenkinsFailure"
    RESUME_FAILURE = "ResumeFailure"
    INFRA_FAILURE = "InfraFailure"
    UNKNOWN_FAILURE = "UnknownFailure"


@dataclass(slots=True)
class FailureRecord:
    """One failure found in a build."""

    type: FailureType
    reason: str
    url: str
    built_on: str | None = None
    highlight: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "reason": self.reason,
            "url": self.url,
            "builtOn": self.built_on,
            "highlight": self.highlight,
        }


_TAP_NOT_OK_RE = re.compile(r"^not ok \d+ (?P<name>.+?)(?:\s+#.*)?$", re.MULTILINE)
_GTEST_FAILED_RE = re.compile(r"^\[  FAILED  \] (?P<name>[\w./]+)(?: \(\d+ ms\))?$", re.MULTILINE)
_LINE_RULES: tuple[tuple[FailureType, re.Pattern[str]], ...] = (
    (
        FailureType.RESUME_FAILURE,
        re.compile(r"^.*(?:Resume disabled|Could not resume|Resuming build .* failed).*$"),
    ),
    (
        FailureType.GIT_FAILURE,
        re.compile(
            r"^(?:fatal: .+|ERROR: Error fetching remote repo.*|"
            r"hudson\.plugins\.git\.GitException.*)$",
        ),
    ),
    (
        FailureType.INFRA_FAILURE,
        re.compile(
            r"^.*(?:No space left on device|ECONNRESET|Cannot contact .+: java\.|"
            r"Agent went offline during the build|Connection timed out).*$",
        ),
    ),
    (
        FailureType.BUILD_FAILURE,
        re.compile(
            r"^(?:.*: (?:fatal )?error: .+|make(?:\[\d+\])?: \*\*\* .+ Error \d+.*|"
            r"error: .+|ninja: build stopped: .+)$",
        ),
    ),
    (
        FailureType.JENKINS_FAILURE,
        re.compile(
            r"^(?:FATAL: .+|java\.io\.IOException.*|Build timed out .+|"
            r"ERROR: Step .+ failed.*)$",
        ),
    ),
)


def classify_console(text: str, *, url: str, built_on: str | None = None) -> list[FailureRecord]:
    """Classify failures in console output.

    Test failures (TAP and gtest) are reported individually; otherwise the
    first line matching a rule decides the failure, and output with no match
    yields one unknown failure carrying the console tail.
    """

    failures = _test_failures(text, url=url, built_on=built_on)
    if failures:
        return failures

    lines = text.splitlines()
    for failure_type, pattern in _LINE_RULES:
        for index, line in enumerate(lines):
            if pattern.match(line.rstrip()):
                return [
                    FailureRecord(
                        type=failure_type,
                        reason=line.strip(),
                        url=url,
                        built_on=built_on,
                        highlight=_context(lines, index),
                    ),
                ]

    tail = "\n".join(lines[-CONSOLE_TAIL_LINES:])
    return [
        FailureRecord(
            type=FailureType.UNKNOWN_FAILURE,
            reason="Unknown failure",
            url=url,
            built_on=built_on,
            highlight=tail,
        ),
    ]


def _test_failures(text: str, *, url: str, built_on: str | None) -> list[FailureRecord]:
    failures: list[FailureRecord] = []
    for match in _TAP_NOT_OK_RE.finditer(text):
        failures.append(
            FailureRecord(
                type=FailureType.JS_TEST_FAILURE,
                reason=match.group("name").strip(),
                url=url,
                built_on=built_on,
                highlight=_tap_block(text, match.end()),
            ),
        )
    seen_gtest: set[str] = set()
    for match in _GTEST_FAILED_RE.finditer(text):
        name = match.group("name")
        if name in seen_gtest:
            continue
        seen_gtest.add(name)
        failures.append(
            FailureRecord(
                type=FailureType.CC_TEST_FAILURE,
                reason=name,
                url=url,
                built_on=built_on,
                highlight=match.group(0),
            ),
        )
    return failures


def _tap_block(text: str, offset: int) -> str:
    """Return the YAML diagnostic block following a TAP ``not ok`` line."""

    block: list[str] = []
    started = False
    for line in text[offset:].splitlines()[1:]:
        stripped = line.strip()
        if not started:
            if stripped != "---":
                break
            started = True
            continue
        if stripped == "...":
            break
        block.append(line)
        if len(block) >= HIGHLIGHT_MAX_LINES:
            break
    return "\n".join(block)


def _context(lines: list[str], index: int, before: int = 2, after: int = 4) -> str:
    start = max(index - before, 0)
    return "\n".join(lines[start : index + after + 1])
