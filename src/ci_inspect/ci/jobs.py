"""Job descriptors and Jenkins job URL parsing."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ci_inspect.ci.jenkins import BuildSummary


class JobKind(StrEnum):
    """What a queued job inspects."""

    HEALTH = "health"
    PR = "PR"
    COMMIT = "COMMIT"
    BENCHMARK = "BENCHMARK"


class CiKind(StrEnum):
    """Continuous-integration pipeline category."""

    PR = "pr"
    COMMIT = "commit"
    BENCHMARK = "benchmark"

    @property
    def job_name(self) -> str:
        return _CI_JOB_NAMES[self]

    @property
    def job_kind(self) -> JobKind:
        return _CI_JOB_KINDS[self]


_CI_JOB_NAMES: dict[CiKind, str] = {
    CiKind.PR: "node-test-pull-request",
    CiKind.COMMIT: "node-test-commit",
    CiKind.BENCHMARK: "benchmark-node-micro-benchmarks",
}
_CI_JOB_KINDS: dict[CiKind, JobKind] = {
    CiKind.PR: JobKind.PR,
    CiKind.COMMIT: JobKind.COMMIT,
    CiKind.BENCHMARK: JobKind.BENCHMARK,
}
_JOB_NAME_TO_CI_KIND: dict[str, CiKind] = {name: kind for kind, name in _CI_JOB_NAMES.items()}

_JOB_PATH_RE = re.compile(r"/job/(?P<name>[\w.-]+)/(?P<id>\d+)(?:[/?#]|$)")
_BLUE_OCEAN_PATH_RE = re.compile(
    r"/blue/organizations/jenkins/(?P<name>[\w.-]+)/detail/[\w.-]+/(?P<id>\d+)(?:[/?#]|$)",
)
CI_LINK_RE = re.compile(r"https?://[\w.-]+(?::\d+)?/(?:job|blue)/[^\s)\]>\"']+")


@dataclass(frozen=True, slots=True)
class JobDescriptor:
    """One unit of CI work to inspect."""

    kind: JobKind
    job_id: int | None = None
    ci_kind: CiKind | None = None
    builds: tuple[BuildSummary, ...] | None = None
    link: str | None = None

    @classmethod
    def health(
        cls,
        ci_kind: CiKind,
        builds: tuple[BuildSummary, ...] | None = None,
    ) -> JobDescriptor:
        return cls(kind=JobKind.HEALTH, ci_kind=ci_kind, builds=builds)

    @classmethod
    def build(cls, kind: JobKind, job_id: int, link: str | None = None) -> JobDescriptor:
        if kind is JobKind.HEALTH:
            raise ValueError("Health descriptors are created with JobDescriptor.health().")
        return cls(kind=kind, job_id=job_id, link=link)

    @property
    def label(self) -> str:
        """Human-readable progress label."""

        if self.link:
            return self.link
        if self.job_id is not None:
            return f"{self.kind}: {self.job_id}"
        return str(self.kind)


def parse_job_from_url(url: str) -> JobDescriptor | None:
    """Parse a Jenkins job link into a descriptor, or ``None`` if it is not one.

    Both classic (``/job/<name>/<id>/``) and Blue Ocean links are recognized,
    for the jobs listed in ``CiKind``.
    """

    candidate = url.strip()
    match = _JOB_PATH_RE.search(candidate) or _BLUE_OCEAN_PATH_RE.search(candidate)
    if match is None:
        return None
    ci_kind = _JOB_NAME_TO_CI_KIND.get(match.group("name"))
    if ci_kind is None:
        return None
    return JobDescriptor.build(ci_kind.job_kind, int(match.group("id")), link=candidate)


def extract_job_links(text: str) -> list[JobDescriptor]:
    """Return job descriptors for CI links found in free text, in order."""

    jobs: list[JobDescriptor] = []
    seen: set[tuple[JobKind, int | None]] = set()
    for match in CI_LINK_RE.finditer(text):
        job = parse_job_from_url(match.group(0).rstrip(".,;:"))
        if job is None:
            continue
        identity = (job.kind, job.job_id)
        if identity in seen:
            continue
        seen.add(identity)
        jobs.append(job)
    return jobs
