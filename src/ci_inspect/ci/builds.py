"""Build handlers: fetch, display and format the results of one job."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, Protocol

from ci_inspect.ci.failures import FailureRecord, classify_console
from ci_inspect.ci.jenkins import BuildSummary, JenkinsClient, build_parameters
from ci_inspect.ci.jobs import CiKind, JobDescriptor, JobKind
from ci_inspect.console import Console, markdown_table
from ci_inspect.errors import UnknownJobKindError

logger = logging.getLogger(__name__)

FAILED_RESULTS = frozenset({"FAILURE", "UNSTABLE"})
MAX_SUB_BUILD_DEPTH = 5


class BuildHandler(Protocol):
    """Contract implemented by every per-kind build handler."""

    def fetch_results(self) -> None:
        """Fetch everything needed to display and format the build."""

    def display(self, console: Console) -> None:
        """Print the fetched results."""

    def format_as_json(self) -> dict[str, Any] | None:
        """Return a JSON-serializable record, or ``None`` if there is nothing to report."""

    def format_as_markdown(self) -> str:
        """Return the Markdown rendering of the fetched results."""


class HealthBuild:
    """Success/failure summary over the recent builds of one CI pipeline."""

    def __init__(
        self,
        jenkins: JenkinsClient,
        ci_kind: CiKind,
        builds: tuple[BuildSummary, ...] | None = None,
        *,
        count: int = 100,
    ) -> None:
        self._jenkins = jenkins
        self.ci_kind = ci_kind
        self.builds = builds
        self.count = count
        self.stats: dict[str, int] = {}
        self.fetched_at: datetime | None = None

    def fetch_results(self) -> None:
        if self.builds is None:
            self.builds = tuple(self._jenkins.list_builds(self.ci_kind, self.count))
        self.fetched_at = datetime.now(tz=UTC)
        stats = {"running": 0, "success": 0, "unstable": 0, "aborted": 0, "failure": 0}
        for build in self.builds:
            if build.building:
                stats["running"] += 1
                continue
            key = (build.result or "").lower()
            if key in stats:
                stats[key] += 1
        self.stats = stats

    @property
    def green_rate(self) -> float:
        finished = self.stats.get("success", 0) + self.stats.get("unstable", 0)
        finished += self.stats.get("failure", 0)
        if finished == 0:
            return 0.0
        return self.stats.get("success", 0) / finished * 100

    def display(self, console: Console) -> None:
        console.separator(f"Health of {self.ci_kind.job_name}")
        headers, row = self._table()
        console.table(headers, [row])

    def format_as_json(self) -> dict[str, Any] | None:
        return {
            "kind": JobKind.HEALTH.value,
            "ciKind": self.ci_kind.value,
            "job": self.ci_kind.job_name,
            "time": self.fetched_at.isoformat() if self.fetched_at else None,
            **self.stats,
            "greenRate": round(self.green_rate, 2),
            "builds": [build.to_dict() for build in self.builds or ()],
        }

    def format_as_markdown(self) -> str:
        headers, row = self._table()
        return f"# CI Health of {self.ci_kind.job_name}\n\n{markdown_table(headers, [row])}\n\n"

    def _table(self) -> tuple[list[str], list[object]]:
        time = self.fetched_at.strftime("%Y-%m-%d %H:%M") if self.fetched_at else None
        headers = ["UTC Time", "RUNNING", "SUCCESS", "UNSTABLE", "ABORTED", "FAILURE", "Green Rate"]
        row: list[object] = [
            time,
            self.stats.get("running", 0),
            self.stats.get("success", 0),
            self.stats.get("unstable", 0),
            self.stats.get("aborted", 0),
            self.stats.get("failure", 0),
            f"{self.green_rate:.2f}%",
        ]
        return headers, row


class SuiteBuild:
    """Common handling of test pipelines that fan out into sub builds."""

    kind: JobKind
    ci_kind: CiKind

    def __init__(self, jenkins: JenkinsClient, job_id: int) -> None:
        self._jenkins = jenkins
        self.job_id = job_id
        self.url = jenkins.job_url(self.ci_kind.job_name, job_id)
        self.build: dict[str, Any] = {}
        self.parameters: dict[str, str] = {}
        self.failures: list[FailureRecord] = []

    @property
    def result(self) -> str | None:
        return self.build.get("result")

    @property
    def building(self) -> bool:
        return bool(self.build.get("building"))

    @property
    def started_at(self) -> datetime | None:
        timestamp = self.build.get("timestamp")
        if timestamp is None:
            return None
        return datetime.fromtimestamp(timestamp / 1000, tz=UTC)

    def fetch_results(self) -> None:
        self.build = self._jenkins.get_build(self.ci_kind.job_name, self.job_id)
        self.parameters = build_parameters(self.build)
        if self.building:
            logger.info("%s is still running", self.url)
            return
        if self.result in FAILED_RESULTS:
            self.failures = self._collect_failures(self.build, self.url, depth=0)
        logger.info("%s: result=%s failures=%d", self.url, self.result, len(self.failures))

    def source(self) -> str | None:
        """What the build tested: a PR link or a commit reference."""
        return None

    def display(self, console: Console) -> None:
        console.separator(f"Results of {self.url}")
        console.log(f"Result:     {self.result or 'RUNNING'}")
        started = self.started_at
        console.log(f"Started at: {started.isoformat() if started else '-'}")
        source = self.source()
        if source:
            console.log(f"Source:     {source}")
        if self.building:
            console.info("Build is still running")
            return
        if not self.failures:
            console.ok("Build succeeded" if self.result == "SUCCESS" else "No failures found")
            return
        for failure in self.failures:
            console.warn(f"[{failure.type}] {failure.reason} on {failure.built_on or 'unknown'}")
            console.log(f"  {failure.url}")
            for line in failure.highlight.splitlines():
                console.log(f"    {line}")

    def format_as_json(self) -> dict[str, Any] | None:
        if not self.failures:
            return None
        started = self.started_at
        return {
            "kind": self.kind.value,
            "jobId": self.job_id,
            "url": self.url,
            "result": self.result,
            "source": self.source(),
            "builtAt": started.isoformat() if started else None,
            "failures": [failure.to_dict() for failure in self.failures],
        }

    def format_as_markdown(self) -> str:
        if self.building:
            return f"## Job {self.url}\n\nBuild is still running.\n\n"
        if not self.failures:
            return f"## Job {self.url}\n\nResult: {self.result}\n\n"
        parts = [f"## Failures in job {self.url}\n\n"]
        source = self.source()
        if source:
            parts.append(f"Source: {source}\n\n")
        for failure in self.failures:
            parts.append(
                f"#### [{failure.type}]({failure.url}) on {failure.built_on or 'unknown'}\n\n",
            )
            body = failure.highlight or failure.reason
            parts.append(f"```\n{body}\n```\n\n")
        return "".join(parts)

    def _collect_failures(
        self,
        build: dict[str, Any],
        build_url: str,
        *,
        depth: int,
    ) -> list[FailureRecord]:
        sub_builds = [
            sub for sub in build.get("subBuilds") or [] if sub.get("result") in FAILED_RESULTS
        ]
        if sub_builds and depth < MAX_SUB_BUILD_DEPTH:
            failures: list[FailureRecord] = []
            for sub in sub_builds:
                sub_url = self._absolute_url(sub.get("url") or "")
                sub_build = self._jenkins.get_build_by_url(sub_url)
                failures.extend(self._collect_failures(sub_build, sub_url, depth=depth + 1))
            return failures

        runs = [
            run
            for run in build.get("runs") or []
            if run.get("result") in FAILED_RESULTS and run.get("number") == build.get("number")
        ]
        if runs:
            failures = []
            for run in runs:
                run_url = self._absolute_url(run.get("url") or "")
                console = self._jenkins.get_console_text(run_url)
                failures.extend(classify_console(console, url=run_url, built_on=run.get("builtOn")))
            return failures

        console = self._jenkins.get_console_text(build_url)
        return classify_console(console, url=build_url, built_on=build.get("builtOn"))

    def _absolute_url(self, url: str) -> str:
        if url.startswith(("http://", "https://")):
            return url
        return f"{self._jenkins.base_url}/{url.lstrip('/')}"


class PRBuild(SuiteBuild):
    """Results of one ``node-test-pull-request`` run."""

    kind = JobKind.PR
    ci_kind = CiKind.PR

    def source(self) -> str | None:
        pr_id = self.parameters.get("PR_ID")
        if not pr_id:
            return None
        params = self.parameters
        org = params.get("TARGET_GITHUB_ORG") or params.get("GITHUB_ORG") or "nodejs"
        repo = params.get("TARGET_REPO_NAME") or params.get("REPO_NAME") or "node"
        return f"https://github.com/{org}/{repo}/pull/{pr_id}"


class CommitBuild(SuiteBuild):
    """Results of one ``node-test-commit`` run."""

    kind = JobKind.COMMIT
    ci_kind = CiKind.COMMIT

    def source(self) -> str | None:
        return self.parameters.get("COMMIT_SHA_CHECK") or self.parameters.get("GIT_REMOTE_REF")


_BENCHMARK_HEADER_RE = re.compile(r"^\s*confidence\s+improvement\s+accuracy\b")


class BenchmarkRun:
    """Comparison table printed by one micro-benchmark run."""

    kind = JobKind.BENCHMARK
    ci_kind = CiKind.BENCHMARK

    def __init__(self, jenkins: JenkinsClient, job_id: int) -> None:
        self._jenkins = jenkins
        self.job_id = job_id
        self.url = jenkins.job_url(self.ci_kind.job_name, job_id)
        self.build: dict[str, Any] = {}
        self.results: str | None = None
        self.notes: str = ""

    def fetch_results(self) -> None:
        self.build = self._jenkins.get_build(self.ci_kind.job_name, self.job_id)
        finished = not self.build.get("building")
        console = self._jenkins.get_console_text(self.url, finished=finished)
        self.results, self.notes = parse_benchmark_results(console)

    def display(self, console: Console) -> None:
        console.separator(f"Benchmark results of {self.url}")
        if self.results is None:
            console.warn("No benchmark results found")
            return
        console.log(self.results)
        if self.notes:
            console.log()
            console.log(self.notes)

    def format_as_json(self) -> dict[str, Any] | None:
        if self.results is None:
            return None
        return {
            "kind": self.kind.value,
            "jobId": self.job_id,
            "url": self.url,
            "result": self.build.get("result"),
            "results": self.results,
            "notes": self.notes,
        }

    def format_as_markdown(self) -> str:
        if self.results is None:
            return f"## Benchmark {self.url}\n\nNo benchmark results found.\n\n"
        notes = f"{self.notes}\n\n" if self.notes else ""
        return f"## Benchmark results of {self.url}\n\n```\n{self.results}\n```\n\n{notes}"


def parse_benchmark_results(console: str) -> tuple[str | None, str]:
    """Extract the comparison table and its trailing notes from console output."""

    lines = console.splitlines()
    start = next((i for i, line in enumerate(lines) if _BENCHMARK_HEADER_RE.match(line)), None)
    if start is None:
        return None, ""

    table: list[str] = []
    index = start
    while index < len(lines) and lines[index].strip():
        table.append(lines[index].rstrip())
        index += 1

    notes: list[str] = []
    while index < len(lines) and not lines[index].strip():
        index += 1
    if index < len(lines) and lines[index].startswith("Be aware"):
        while index < len(lines) and lines[index].strip():
            notes.append(lines[index].rstrip())
            index += 1
    return "\n".join(table), "\n".join(notes)


HandlerFactory = Callable[[JobDescriptor, JenkinsClient, int], BuildHandler]

BUILD_HANDLER_FACTORIES: dict[JobKind, HandlerFactory] = {
    JobKind.HEALTH: lambda job, jenkins, count: HealthBuild(
        jenkins,
        _require_ci_kind(job),
        job.builds,
        count=count,
    ),
    JobKind.PR: lambda job, jenkins, _count: PRBuild(jenkins, _require_job_id(job)),
    JobKind.COMMIT: lambda job, jenkins, _count: CommitBuild(jenkins, _require_job_id(job)),
    JobKind.BENCHMARK: lambda job, jenkins, _count: BenchmarkRun(jenkins, _require_job_id(job)),
}


def create_build_handler(
    job: JobDescriptor,
    jenkins: JenkinsClient,
    *,
    health_build_count: int = 100,
    factories: dict[JobKind, HandlerFactory] | None = None,
) -> BuildHandler:
    """Instantiate the build handler registered for ``job.kind``."""

    factory = (factories or BUILD_HANDLER_FACTORIES).get(job.kind)
    if factory is None:
        raise UnknownJobKindError(
            f"Unknown job kind: {job.kind!r}",
            kind=str(job.kind),
        )
    return factory(job, jenkins, health_build_count)


def _require_ci_kind(job: JobDescriptor) -> CiKind:
    if job.ci_kind is None:
        raise ValueError("Health job requires a CI kind.")
    return job.ci_kind


def _require_job_id(job: JobDescriptor) -> int:
    if job.job_id is None:
        raise ValueError(f"{job.kind} job requires a job id.")
    return job.job_id
