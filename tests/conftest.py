"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import httpx
import pytest

from ci_inspect.ci.jenkins import JenkinsClient
from ci_inspect.console import Console
from ci_inspect.http.fetcher import HttpFetcher

JENKINS_URL = "https://ci.example.org"


class RecordingConsole(Console):
    """Console that keeps emitted lines instead of printing them."""

    def __init__(self) -> None:
        super().__init__(color=False)
        self.lines: list[tuple[str, str]] = []

    def log(self, message: str = "") -> None:
        self.lines.append(("log", message))

    def info(self, message: str) -> None:
        self.lines.append(("info", message))

    def ok(self, message: str) -> None:
        self.lines.append(("ok", message))

    def warn(self, message: str) -> None:
        self.lines.append(("warn", message))

    def error(self, message: str) -> None:
        self.lines.append(("error", message))

    def messages(self, level: str) -> list[str]:
        return [message for kind, message in self.lines if kind == level]


class FakeServer:
    """Serves canned responses by URL path through ``httpx.MockTransport``."""

    def __init__(self, routes: dict[str, Any] | None = None) -> None:
        self.routes: dict[str, Any] = dict(routes or {})
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        body = self.routes.get(request.url.path)
        if body is None:
            return httpx.Response(404, text="Not Found")
        if isinstance(body, httpx.Response):
            return body
        if isinstance(body, str):
            return httpx.Response(200, text=body)
        return httpx.Response(200, json=body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    @property
    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]


@pytest.fixture()
def console() -> RecordingConsole:
    return RecordingConsole()


@pytest.fixture()
def server() -> FakeServer:
    return FakeServer()


@pytest.fixture()
def jenkins(server: FakeServer) -> Iterator[JenkinsClient]:
    fetcher = HttpFetcher(transport=server.transport)
    yield JenkinsClient(fetcher, base_url=JENKINS_URL)
    fetcher.close()
