"""Runtime configuration for CI and GitHub clients."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlparse

DEFAULT_JENKINS_URL = "https://ci.nodejs.org"
DEFAULT_GITHUB_API_URL = "https://api.github.com"


@dataclass(slots=True)
class JenkinsSettings:
    """Jenkins server settings."""

    base_url: str = DEFAULT_JENKINS_URL
    user: str | None = None
    token: str | None = None
    health_build_count: int = 100


@dataclass(slots=True)
class GitHubSettings:
    """GitHub REST API settings."""

    api_url: str = DEFAULT_GITHUB_API_URL
    token: str | None = None


@dataclass(slots=True)
class HttpSettings:
    """Shared HTTP client settings."""

    request_timeout_seconds: float = 30.0
    max_retries: int = 3


@dataclass(slots=True)
class Settings:
    """Application settings grouped by domain concerns."""

    cache_dir: Path = Path(".ci_inspect_cache")
    jenkins: JenkinsSettings = field(default_factory=JenkinsSettings)
    github: GitHubSettings = field(default_factory=GitHubSettings)
    http: HttpSettings = field(default_factory=HttpSettings)

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment with defaults for ci.nodejs.org."""

        return cls(
            cache_dir=Path(os.getenv("CI_INSPECT_CACHE_DIR", ".ci_inspect_cache")),
            jenkins=JenkinsSettings(
                base_url=os.getenv("CI_INSPECT_JENKINS_URL", DEFAULT_JENKINS_URL).rstrip("/"),
                user=_env_optional("CI_INSPECT_JENKINS_USER"),
                token=_env_optional("CI_INSPECT_JENKINS_TOKEN"),
                health_build_count=int(os.getenv("CI_INSPECT_HEALTH_BUILD_COUNT", "100")),
            ),
            github=GitHubSettings(
                api_url=os.getenv("CI_INSPECT_GITHUB_API_URL", DEFAULT_GITHUB_API_URL).rstrip(
                    "/",
                ),
                token=_env_optional("CI_INSPECT_GITHUB_TOKEN"),
            ),
            http=HttpSettings(
                request_timeout_seconds=float(
                    os.getenv("CI_INSPECT_REQUEST_TIMEOUT_SECONDS", "30.0"),
                ),
                max_retries=int(os.getenv("CI_INSPECT_MAX_RETRIES", "3")),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error if server URLs or limits are invalid."""

        _validate_http_url("CI_INSPECT_JENKINS_URL", self.jenkins.base_url)
        _validate_http_url("CI_INSPECT_GITHUB_API_URL", self.github.api_url)
        if self.jenkins.health_build_count <= 0:
            raise ValueError("CI_INSPECT_HEALTH_BUILD_COUNT must be > 0.")
        if self.http.request_timeout_seconds <= 0:
            raise ValueError("CI_INSPECT_REQUEST_TIMEOUT_SECONDS must be > 0.")
        if self.http.max_retries < 0:
            raise ValueError("CI_INSPECT_MAX_RETRIES must be >= 0.")
        if (self.jenkins.user is None) != (self.jenkins.token is None):
            raise ValueError(
                "CI_INSPECT_JENKINS_USER and CI_INSPECT_JENKINS_TOKEN must be set together.",
            )


def _env_optional(name: str) -> str | None:
    value = os.getenv(name, "").strip()
    return value or None


def _validate_http_url(name: str, value: str) -> None:
    parsed = urlparse(value)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError(
            f"Invalid {name}: {value!r}. Expected an absolute URL with http:// or https:// scheme.",
        )
