"""Controllers for CI inspection CLI commands."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from ci_inspect.ci.jobs import CiKind, JobKind
from ci_inspect.clients import open_clients
from ci_inspect.commands import (
    Aggregation,
    CiCommand,
    CommandOptions,
    FailureStatistics,
    JobSource,
    OutputOptions,
    RateJobs,
    SingleJob,
    UrlJobs,
    WalkJobs,
)
from ci_inspect.config import Settings
from ci_inspect.console import Console

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RateCommand:
    """CLI inputs for rate command."""

    ci_kind: CiKind
    output: OutputOptions


@dataclass(slots=True)
class WalkCommand:
    """CLI inputs for walk command."""

    ci_kind: CiKind
    output: OutputOptions
    stats: bool
    cache: bool
    limit: int


@dataclass(slots=True)
class JobCommand:
    """CLI inputs for pr, commit and benchmark commands."""

    kind: JobKind
    job_id: int
    output: OutputOptions


@dataclass(slots=True)
class UrlCommand:
    """CLI inputs for url command."""

    url: str
    output: OutputOptions


class CiCliController:
    """Builds one ``CiCommand`` per invocation and runs its lifecycle."""

    def __init__(
        self,
        *,
        console: Console | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._console = console
        self._transport = transport

    def rate(self, command: RateCommand) -> CiCommand:
        return self._run(RateJobs(command.ci_kind), CommandOptions(output=command.output))

    def walk(self, command: WalkCommand) -> CiCommand:
        options = CommandOptions(
            output=command.output,
            stats=command.stats,
            cache=command.cache,
            limit=command.limit,
        )
        return self._run(
            WalkJobs(command.ci_kind, limit=command.limit),
            options,
            aggregation=FailureStatistics() if command.stats else None,
        )

    def job(self, command: JobCommand) -> CiCommand:
        return self._run(
            SingleJob(command.kind, command.job_id),
            CommandOptions(output=command.output),
        )

    def url(self, command: UrlCommand) -> CiCommand:
        return self._run(UrlJobs(command.url), CommandOptions(output=command.output))

    def _run(
        self,
        job_source: JobSource,
        options: CommandOptions,
        *,
        aggregation: Aggregation | None = None,
    ) -> CiCommand:
        settings = Settings.from_env()
        settings.validate()
        console = self._console or Console()
        with open_clients(settings, transport=self._transport) as clients:
            ci_command = CiCommand(
                job_source,
                console=console,
                clients=clients,
                options=options,
                aggregation=aggregation,
            )
            try:
                ci_command.run()
            except Exception:
                logger.debug(
                    "Aborted after %d JSON results from %d queued jobs",
                    len(ci_command.json_results),
                    len(ci_command.queue),
                )
                raise
        return ci_command
