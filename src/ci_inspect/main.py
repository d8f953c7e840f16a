"""CLI entrypoint for ci-inspect."""

import logging
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import rich_click as click

from ci_inspect import __version__
from ci_inspect.ci.jobs import CiKind, JobKind
from ci_inspect.commands import DEFAULT_WALK_LIMIT, OutputOptions
from ci_inspect.controllers import (
    CiCliController,
    JobCommand,
    RateCommand,
    UrlCommand,
    WalkCommand,
)
from ci_inspect.errors import CiInspectError

click.rich_click.USE_MARKDOWN = True
CONTROLLER = CiCliController()

_CI_KIND_CHOICE = click.Choice([kind.value for kind in CiKind], case_sensitive=False)


def _output_options(func: Callable[..., Any]) -> Callable[..., Any]:
    func = click.option(
        "--markdown",
        "markdown_path",
        type=click.Path(dir_okay=False, path_type=Path),
        default=None,
        help="Write the results as Markdown to this file.",
    )(func)
    func = click.option(
        "--json",
        "json_path",
        type=click.Path(dir_okay=False, path_type=Path),
        default=None,
        help="Write the results as JSON to this file.",
    )(func)
    return click.option(
        "--copy/--no-copy",
        default=False,
        show_default=True,
        help="Copy the results as Markdown to the clipboard.",
    )(func)


@click.group()
@click.version_option(version=__version__, prog_name="ci-inspect")
@click.option("--debug/--no-debug", default=False, help="Log HTTP and parsing details to stderr.")
def ci_inspect(debug: bool) -> None:
    """Inspect Jenkins CI results of pull requests, commits and benchmarks."""

    if debug:
        logging.basicConfig(
            stream=sys.stderr,
            level=logging.DEBUG,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        )


@ci_inspect.command("rate")
@click.argument("ci_kind", type=_CI_KIND_CHOICE)
@_output_options
def rate(ci_kind: str, copy: bool, json_path: Path | None, markdown_path: Path | None) -> None:
    """Show the success rate of recent builds of a CI pipeline."""

    _execute(
        lambda: CONTROLLER.rate(
            RateCommand(
                ci_kind=CiKind(ci_kind.lower()),
                output=OutputOptions(copy=copy, json_path=json_path, markdown_path=markdown_path),
            ),
        ),
    )


@ci_inspect.command("walk")
@click.argument("ci_kind", type=_CI_KIND_CHOICE)
@click.option(
    "--stats/--no-stats",
    default=False,
    show_default=True,
    help="Aggregate failure statistics across the walked builds.",
)
@click.option(
    "--cache/--no-cache",
    default=False,
    show_default=True,
    help="Reuse cached responses for finished builds.",
)
@click.option(
    "--limit",
    type=click.IntRange(min=0),
    default=DEFAULT_WALK_LIMIT,
    show_default=True,
    help="Maximum number of failed builds to inspect.",
)
@_output_options
def walk(  # noqa: PLR0913
    ci_kind: str,
    stats: bool,
    cache: bool,
    limit: int,
    copy: bool,
    json_path: Path | None,
    markdown_path: Path | None,
) -> None:
    """Inspect every recently failed build of a CI pipeline."""

    _execute(
        lambda: CONTROLLER.walk(
            WalkCommand(
                ci_kind=CiKind(ci_kind.lower()),
                output=OutputOptions(copy=copy, json_path=json_path, markdown_path=markdown_path),
                stats=stats,
                cache=cache,
                limit=limit,
            ),
        ),
    )


@ci_inspect.command("url")
@click.argument("url")
@_output_options
def url(url: str, copy: bool, json_path: Path | None, markdown_path: Path | None) -> None:
    """Inspect a CI job link, or every CI job linked from a pull request."""

    _execute(
        lambda: CONTROLLER.url(
            UrlCommand(
                url=url,
                output=OutputOptions(copy=copy, json_path=json_path, markdown_path=markdown_path),
            ),
        ),
    )


def _job_command(name: str, kind: JobKind, help_text: str) -> None:
    @ci_inspect.command(name, help=help_text)
    @click.argument("job_id", type=click.IntRange(min=1))
    @_output_options
    def _command(
        job_id: int,
        copy: bool,
        json_path: Path | None,
        markdown_path: Path | None,
    ) -> None:
        _execute(
            lambda: CONTROLLER.job(
                JobCommand(
                    kind=kind,
                    job_id=job_id,
                    output=OutputOptions(
                        copy=copy,
                        json_path=json_path,
                        markdown_path=markdown_path,
                    ),
                ),
            ),
        )


_job_command("pr", JobKind.PR, "Inspect one node-test-pull-request job.")
_job_command("commit", JobKind.COMMIT, "Inspect one node-test-commit job.")
_job_command("benchmark", JobKind.BENCHMARK, "Inspect one micro-benchmark job.")


def _execute(action: Callable[[], object]) -> None:
    try:
        action()
    except (CiInspectError, httpx.HTTPError, ValueError, OSError) as error:
        raise click.ClickException(str(error)) from error


if __name__ == "__main__":  # pragma: no cover
    ci_inspect()
