"""Construction of the CI and GitHub clients used by one invocation."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass

import httpx

from ci_inspect.ci.jenkins import JenkinsClient
from ci_inspect.config import Settings
from ci_inspect.github import GitHubClient, PullRequestLinks
from ci_inspect.http.cache import ResponseCache
from ci_inspect.http.fetcher import HttpFetcher


@dataclass(slots=True)
class CiClients:
    """Results-fetching collaborators shared by job sources and build handlers."""

    jenkins: JenkinsClient
    pull_requests: PullRequestLinks
    cache: ResponseCache
    health_build_count: int = 100


@contextmanager
def open_clients(
    settings: Settings,
    *,
    transport: httpx.BaseTransport | None = None,
) -> Iterator[CiClients]:
    """Yield clients whose HTTP connections are closed on exit."""

    cache = ResponseCache(settings.cache_dir)
    jenkins_auth = None
    if settings.jenkins.user and settings.jenkins.token:
        jenkins_auth = (settings.jenkins.user, settings.jenkins.token)
    github_headers = {"Accept": "application/vnd.github+json"}
    if settings.github.token:
        github_headers["Authorization"] = f"Bearer {settings.github.token}"

    with ExitStack() as stack:
        jenkins_fetcher = stack.enter_context(
            HttpFetcher(
                timeout_seconds=settings.http.request_timeout_seconds,
                max_retries=settings.http.max_retries,
                auth=jenkins_auth,
                transport=transport,
            ),
        )
        github_fetcher = stack.enter_context(
            HttpFetcher(
                timeout_seconds=settings.http.request_timeout_seconds,
                max_retries=settings.http.max_retries,
                headers=github_headers,
                transport=transport,
            ),
        )
        yield CiClients(
            jenkins=JenkinsClient(jenkins_fetcher, base_url=settings.jenkins.base_url, cache=cache),
            pull_requests=PullRequestLinks(
                GitHubClient(github_fetcher, api_url=settings.github.api_url),
            ),
            cache=cache,
            health_build_count=settings.jenkins.health_build_count,
        )
