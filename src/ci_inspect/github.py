"""GitHub pull-request lookup for CI links posted in PR threads."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any

from ci_inspect.ci.jobs import JobDescriptor, extract_job_links
from ci_inspect.http.fetcher import HttpFetcher

logger = logging.getLogger(__name__)

COMMENTS_PER_PAGE = 100
MAX_COMMENT_PAGES = 30
_PR_URL_RE = re.compile(
    r"^https?://(?:www\.)?github\.com/(?P<owner>[\w.-]+)/(?P<repo>[\w.-]+)/pull/(?P<number>\d+)"
    r"(?:[/?#].*)?$",
)


@dataclass(frozen=True, slots=True)
class PullRequestRef:
    """Owner, repository and number of one pull request."""

    owner: str
    repo: str
    number: int

    @property
    def url(self) -> str:
        return f"https://github.com/{self.owner}/{self.repo}/pull/{self.number}"


def parse_pr_url(url: str) -> PullRequestRef | None:
    match = _PR_URL_RE.match(url.strip())
    if match is None:
        return None
    return PullRequestRef(
        owner=match.group("owner"),
        repo=match.group("repo"),
        number=int(match.group("number")),
    )


class GitHubClient:
    """Minimal GitHub REST client for pull-request threads."""

    def __init__(self, fetcher: HttpFetcher, *, api_url: str) -> None:
        self._fetcher = fetcher
        self.api_url = api_url.rstrip("/")

    def get_pull_request(self, ref: PullRequestRef) -> dict[str, Any]:
        return self._fetcher.get_json(
            f"{self.api_url}/repos/{ref.owner}/{ref.repo}/pulls/{ref.number}",
        )

    def list_comments(self, ref: PullRequestRef) -> list[dict[str, Any]]:
        """Return all issue comments of a pull request, oldest first."""

        url = f"{self.api_url}/repos/{ref.owner}/{ref.repo}/issues/{ref.number}/comments"
        comments: list[dict[str, Any]] = []
        for page in range(1, MAX_COMMENT_PAGES + 1):
            batch = self._fetcher.get_json(
                url,
                params={"per_page": str(COMMENTS_PER_PAGE), "page": str(page)},
            )
            comments.extend(batch)
            if len(batch) < COMMENTS_PER_PAGE:
                break
        else:
            logger.warning("Stopped reading comments of %s after %d pages", ref.url, page)
        return comments


class PullRequestLinks:
    """Finds CI job links in a pull request's description and comments."""

    def __init__(self, github: GitHubClient) -> None:
        self._github = github

    def collect(self, ref: PullRequestRef) -> list[JobDescriptor]:
        """Return CI jobs in the order they appear in the PR thread."""

        pull_request = self._github.get_pull_request(ref)
        texts = [pull_request.get("body") or ""]
        texts.extend(comment.get("body") or "" for comment in self._github.list_comments(ref))
        jobs = extract_job_links("\n".join(texts))
        logger.info("Found %d CI links in %s", len(jobs), ref.url)
        return jobs
