"""Command lifecycle: initialize, drain, aggregate and serialize a job queue."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from ci_inspect import writers
from ci_inspect.ci.aggregator import FailureAggregator
from ci_inspect.ci.builds import BuildHandler, create_build_handler
from ci_inspect.ci.jobs import CiKind, JobDescriptor, JobKind, parse_job_from_url
from ci_inspect.clients import CiClients
from ci_inspect.console import Console
from ci_inspect.errors import ClipboardUnavailableError
from ci_inspect.github import parse_pr_url

logger = logging.getLogger(__name__)

DEFAULT_WALK_LIMIT = 99


@dataclass(slots=True)
class OutputOptions:
    """Requested export targets."""

    copy: bool = False
    json_path: Path | None = None
    markdown_path: Path | None = None

    @property
    def wants_markdown(self) -> bool:
        return self.copy or self.markdown_path is not None


@dataclass(slots=True)
class CommandOptions:
    """Parsed invocation options shared by all commands."""

    output: OutputOptions = field(default_factory=OutputOptions)
    stats: bool = False
    cache: bool = False
    limit: int = DEFAULT_WALK_LIMIT


@dataclass(slots=True)
class OutputWriters:
    """Side-effecting sinks used by ``serialize``."""

    copy: Callable[[str], None] = writers.copy_to_clipboard
    write_text: Callable[[Path, str], None] = writers.write_text
    write_json: Callable[[Path, Any], None] = writers.write_json


@dataclass(slots=True)
class AggregateOutput:
    """Replacement accumulators produced by an aggregation step."""

    json_results: list[dict[str, Any]]
    markdown: str | None = None


class JobSource(Protocol):
    """Populates the queue during ``initialize``."""

    def __call__(self, clients: CiClients, console: Console) -> list[JobDescriptor]:
        """Return descriptors in processing order."""


class Aggregation(Protocol):
    """Post-processes accumulated results after ``drain``."""

    def __call__(
        self,
        json_results: list[dict[str, Any]],
        *,
        console: Console,
        wants_markdown: bool,
    ) -> AggregateOutput:
        """Return accumulators that replace the drained ones."""


@dataclass(slots=True)
class RateJobs:
    """One health summary; the handler lists builds itself."""

    ci_kind: CiKind

    def __call__(self, clients: CiClients, console: Console) -> list[JobDescriptor]:
        return [JobDescriptor.health(self.ci_kind)]


@dataclass(slots=True)
class WalkJobs:
    """Health summary of recent builds followed by the failed ones."""

    ci_kind: CiKind
    limit: int = DEFAULT_WALK_LIMIT

    def __call__(self, clients: CiClients, console: Console) -> list[JobDescriptor]:
        builds = clients.jenkins.list_builds(self.ci_kind, clients.health_build_count)
        failed = [build for build in builds if build.failed][: self.limit]
        logger.info(
            "Walking %d of %d failed %s builds",
            len(failed),
            sum(1 for build in builds if build.failed),
            self.ci_kind.job_name,
        )
        jobs = [JobDescriptor.health(self.ci_kind, tuple(builds))]
        jobs.extend(JobDescriptor.build(self.ci_kind.job_kind, build.number) for build in failed)
        return jobs


@dataclass(slots=True)
class SingleJob:
    """One numbered PR, commit or benchmark job."""

    kind: JobKind
    job_id: int

    def __call__(self, clients: CiClients, console: Console) -> list[JobDescriptor]:
        return [JobDescriptor.build(self.kind, self.job_id)]


@dataclass(slots=True)
class UrlJobs:
    """A direct CI job link, or every CI link posted on a pull request."""

    url: str

    def __call__(self, clients: CiClients, console: Console) -> list[JobDescriptor]:
        job = parse_job_from_url(self.url)
        if job is not None:
            return [job]

        pull_request = parse_pr_url(self.url)
        if pull_request is None:
            console.error(f"{self.url} is not a valid CI job or pull request URL")
            return []

        jobs = clients.pull_requests.collect(pull_request)
        if not jobs:
            console.info(f"No CI runs detected in {pull_request.url}")
            return []
        return jobs


class FailureStatistics:
    """Replaces per-build failure records with grouped statistics."""

    def __call__(
        self,
        json_results: list[dict[str, Any]],
        *,
        console: Console,
        wants_markdown: bool,
    ) -> AggregateOutput:
        aggregator = FailureAggregator(json_results)
        summary = aggregator.aggregate()
        console.log()
        console.separator("Stats")
        console.log()
        aggregator.display(console)
        markdown = aggregator.format_as_markdown() if wants_markdown else None
        return AggregateOutput(json_results=summary, markdown=markdown)


def run_sequentially(
    jobs: Sequence[JobDescriptor],
    handler_factory: Callable[[JobDescriptor], BuildHandler],
    on_result: Callable[[JobDescriptor, BuildHandler], None],
    *,
    on_start: Callable[[int, int, JobDescriptor], None] | None = None,
) -> int:
    """Run one handler at a time in queue order and return how many completed.

    The first exception propagates unchanged; results already passed to
    ``on_result`` stay with the caller.
    """

    total = len(jobs)
    for index, job in enumerate(jobs, start=1):
        if on_start is not None:
            on_start(index, total, job)
        handler = handler_factory(job)
        handler.fetch_results()
        on_result(job, handler)
    return total


class CiCommand:
    """One invocation's job queue, result accumulators and lifecycle."""

    def __init__(  # noqa: PLR0913
        self,
        job_source: JobSource,
        *,
        console: Console,
        clients: CiClients,
        options: CommandOptions,
        aggregation: Aggregation | None = None,
        handler_factory: Callable[[JobDescriptor], BuildHandler] | None = None,
        output_writers: OutputWriters | None = None,
    ) -> None:
        self.job_source = job_source
        self.console = console
        self.clients = clients
        self.options = options
        self.aggregation = aggregation
        self.queue: list[JobDescriptor] = []
        self.json_results: list[dict[str, Any]] = []
        self.markdown = ""
        self._handler_factory = handler_factory or self._default_handler
        self._writers = output_writers or OutputWriters()

    def run(self) -> None:
        self.initialize()
        self.drain()
        self.aggregate()
        self.serialize()

    def initialize(self) -> None:
        if self.options.cache:
            self.clients.cache.enable()
        self.queue.extend(self.job_source(self.clients, self.console))

    def drain(self) -> None:
        if not self.queue:
            return
        run_sequentially(
            self.queue,
            self._handler_factory,
            self._accumulate,
            on_start=self._report_progress,
        )

    def aggregate(self) -> None:
        if self.aggregation is None:
            return
        output = self.aggregation(
            self.json_results,
            console=self.console,
            wants_markdown=self.options.output.wants_markdown,
        )
        self.json_results = output.json_results
        if output.markdown is not None:
            self.markdown = output.markdown

    def serialize(self) -> None:
        output = self.options.output
        if output.copy:
            self._copy_markdown()
        if output.markdown_path is not None:
            if self.markdown:
                self._writers.write_text(output.markdown_path, self.markdown)
                self.console.ok(f"Written markdown to {output.markdown_path}")
            else:
                self.console.error("No markdown generated")
        if output.json_path is not None:
            if self.json_results:
                self._writers.write_json(output.json_path, self.json_results)
                self.console.ok(f"Written JSON to {output.json_path}")
            else:
                self.console.error("No JSON generated")

    def _copy_markdown(self) -> None:
        if not self.markdown:
            self.console.error("No markdown generated")
            return
        try:
            self._writers.copy(self.markdown)
        except ClipboardUnavailableError as error:
            self.console.error(str(error))
            return
        self.console.ok("Written markdown to clipboard")

    def _report_progress(self, index: int, total: int, job: JobDescriptor) -> None:
        self.console.separator()
        self.console.log(f"[{index}/{total}] Running {job.label}")

    def _accumulate(self, job: JobDescriptor, handler: BuildHandler) -> None:
        handler.display(self.console)
        record = handler.format_as_json()
        if record is not None:
            self.json_results.append(record)
        if self.options.output.wants_markdown and not self.options.stats:
            self.markdown += handler.format_as_markdown()

    def _default_handler(self, job: JobDescriptor) -> BuildHandler:
        return create_build_handler(
            job,
            self.clients.jenkins,
            health_build_count=self.clients.health_build_count,
        )
