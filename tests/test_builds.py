from __future__ import annotations

import allure
import pytest
from conftest import JENKINS_URL

from ci_inspect.ci.builds import (
    BenchmarkRun,
    CommitBuild,
    HealthBuild,
    PRBuild,
    SuiteBuild,
    create_build_handler,
    parse_benchmark_results,
)
from ci_inspect.ci.failures import FailureType
from ci_inspect.ci.jenkins import BuildSummary
from ci_inspect.ci.jobs import CiKind, JobDescriptor, JobKind

pytestmark = [
    allure.epic("Build Handlers"),
    allure.feature("Fetch, Display & Format"),
]

_TAP_CONSOLE = """\
Running tests
ok 1 parallel/test-ok
not ok 2 parallel/test-broken
  ---
  duration_ms: 120.5
  severity: fail
  stack: |-
    AssertionError: expected 1 to equal 2
  ...
ok 3 parallel/test-fine
make: *** [Makefile:300: test-ci] Error 1
"""

_BENCHMARK_CONSOLE = """\
Started by user someone
                                            confidence improvement accuracy (*)   (**)  (***)
buffers/buffer-compare.js n=1 size=16                0.52 %       ±1.23% ±1.64% ±2.13%
buffers/buffer-compare.js n=1 size=512       ***    12.10 %       ±2.01% ±2.70% ±3.55%

Be aware that when doing many comparisons the risk of a false-positive
result increases. In this case, there are 2 comparisons.

Finished: SUCCESS
"""


def _pr_routes() -> dict[str, object]:
    return {
        "/job/node-test-pull-request/100/api/json": {
            "result": "FAILURE",
            "number": 100,
            "building": False,
            "timestamp": 1_700_000_000_000,
            "actions": [{"parameters": [{"name": "PR_ID", "value": "123"}]}, {}],
            "subBuilds": [
                {
                    "jobName": "node-test-commit",
                    "buildNumber": 200,
                    "result": "FAILURE",
                    "url": "job/node-test-commit/200/",
                },
            ],
        },
        "/job/node-test-commit/200/api/json": {
            "result": "FAILURE",
            "number": 200,
            "building": False,
            "subBuilds": [
                {
                    "jobName": "node-test-commit-linux",
                    "buildNumber": 300,
                    "result": "FAILURE",
                    "url": "job/node-test-commit-linux/300/",
                },
                {
                    "jobName": "node-test-linter",
                    "buildNumber": 301,
                    "result": "SUCCESS",
                    "url": "job/node-test-linter/301/",
                },
            ],
        },
        "/job/node-test-commit-linux/300/api/json": {
            "result": "FAILURE",
            "number": 300,
            "building": False,
            "runs": [
                {
                    "number": 300,
                    "url": f"{JENKINS_URL}/job/node-test-commit-linux/nodes=ubuntu/300/",
                    "result": "FAILURE",
                    "builtOn": "test-ubuntu-1",
                },
                {
                    "number": 300,
                    "url": f"{JENKINS_URL}/job/node-test-commit-linux/nodes=alpine/300/",
                    "result": "SUCCESS",
                    "builtOn": "test-alpine-1",
                },
            ],
        },
        "/job/node-test-commit-linux/nodes=ubuntu/300/consoleText": _TAP_CONSOLE,
    }


def test_pr_build_collects_failures_from_failed_sub_builds(server, jenkins, console) -> None:
    server.routes.update(_pr_routes())
    build = PRBuild(jenkins, 100)

    build.fetch_results()

    assert [(f.type, f.reason, f.built_on) for f in build.failures] == [
        (FailureType.JS_TEST_FAILURE, "parallel/test-broken", "test-ubuntu-1"),
    ]
    assert "/job/node-test-linter/301/api/json" not in server.paths
    assert "/job/node-test-commit-linux/nodes=alpine/300/consoleText" not in server.paths
    assert build.source() == "https://github.com/nodejs/node/pull/123"

    record = build.format_as_json()
    assert record is not None
    assert record["kind"] == "PR"
    assert record["jobId"] == 100
    assert record["url"] == f"{JENKINS_URL}/job/node-test-pull-request/100/"
    assert record["failures"][0]["builtOn"] == "test-ubuntu-1"

    build.display(console)
    assert console.messages("warn") == [
        "[JSTestFailure] parallel/test-broken on test-ubuntu-1",
    ]

    markdown = build.format_as_markdown()
    assert markdown.startswith(f"## Failures in job {JENKINS_URL}/job/node-test-pull-request/100/")
    assert "AssertionError: expected 1 to equal 2" in markdown


def test_successful_commit_build_has_no_json(server, jenkins, console) -> None:
    server.routes["/job/node-test-commit/7/api/json"] = {
        "result": "SUCCESS",
        "number": 7,
        "building": False,
        "actions": [{"parameters": [{"name": "COMMIT_SHA_CHECK", "value": "abc123"}]}],
    }
    build = CommitBuild(jenkins, 7)

    build.fetch_results()
    build.display(console)

    assert build.failures == []
    assert build.format_as_json() is None
    assert build.source() == "abc123"
    assert console.messages("ok") == ["Build succeeded"]
    assert "Result: SUCCESS" in build.format_as_markdown()
    assert not any(path.endswith("consoleText") for path in server.paths)


def test_running_build_is_not_inspected(server, jenkins, console) -> None:
    server.routes["/job/node-test-pull-request/8/api/json"] = {
        "result": None,
        "number": 8,
        "building": True,
    }
    build = PRBuild(jenkins, 8)

    build.fetch_results()
    build.display(console)

    assert build.format_as_json() is None
    assert console.messages("info") == ["Build is still running"]


def test_failed_leaf_build_classifies_its_own_console(server, jenkins) -> None:
    server.routes["/job/node-test-commit/9/api/json"] = {
        "result": "FAILURE",
        "number": 9,
        "building": False,
        "builtOn": "jenkins-workspace-1",
    }
    server.routes["/job/node-test-commit/9/consoleText"] = (
        "Cloning repository\nfatal: could not read Username for 'https://github.com'\n"
    )
    build = CommitBuild(jenkins, 9)

    build.fetch_results()

    assert [(f.type, f.built_on) for f in build.failures] == [
        (FailureType.GIT_FAILURE, "jenkins-workspace-1"),
    ]


def test_health_build_summarizes_given_builds(jenkins, console) -> None:
    builds = (
        BuildSummary(
            number=5,
            url="u5",
            result="SUCCESS",
            building=False,
            timestamp=1_700_000_000_000,
        ),
        BuildSummary(number=4, url="u4", result="FAILURE", building=False),
        BuildSummary(number=3, url="u3", result="SUCCESS", building=False),
        BuildSummary(number=2, url="u2", result="ABORTED", building=False),
        BuildSummary(number=1, url="u1", result=None, building=True),
    )
    health = HealthBuild(jenkins, CiKind.PR, builds)

    health.fetch_results()
    health.display(console)
    record = health.format_as_json()

    assert record is not None
    assert record["running"] == 1
    assert record["success"] == 2
    assert record["failure"] == 1
    assert record["aborted"] == 1
    assert record["greenRate"] == pytest.approx(66.67)
    assert [build["number"] for build in record["builds"]] == [5, 4, 3, 2, 1]
    assert record["builds"][0]["startedAt"] == "2023-11-14T22:13:20+00:00"
    assert record["builds"][4] == {
        "number": 1,
        "url": "u1",
        "result": None,
        "building": True,
        "startedAt": None,
    }
    assert "66.67%" in health.format_as_markdown()
    assert any("Health of node-test-pull-request" in line for line in console.messages("log"))


def test_health_build_lists_builds_when_none_given(server, jenkins) -> None:
    server.routes["/job/node-test-commit/api/json"] = {
        "builds": [
            {"number": 2, "url": f"{JENKINS_URL}/job/node-test-commit/2/", "result": "SUCCESS"},
            {"number": 1, "result": "FAILURE", "building": False},
        ],
    }
    health = HealthBuild(jenkins, CiKind.COMMIT, count=2)

    health.fetch_results()

    assert health.builds is not None
    assert [build.number for build in health.builds] == [2, 1]
    assert health.builds[1].url == f"{JENKINS_URL}/job/node-test-commit/1/"
    assert server.requests[0].url.params["tree"].endswith("{0,2}")


def test_benchmark_run_extracts_comparison_table(server, jenkins, console) -> None:
    server.routes["/job/benchmark-node-micro-benchmarks/42/api/json"] = {
        "result": "SUCCESS",
        "number": 42,
        "building": False,
    }
    server.routes["/job/benchmark-node-micro-benchmarks/42/consoleText"] = _BENCHMARK_CONSOLE
    run = BenchmarkRun(jenkins, 42)

    run.fetch_results()
    run.display(console)

    record = run.format_as_json()
    assert record is not None
    assert record["results"].splitlines()[0].strip().startswith("confidence improvement")
    assert len(record["results"].splitlines()) == 3
    assert record["notes"].startswith("Be aware")
    assert "```" in run.format_as_markdown()


def test_benchmark_without_results_has_no_json() -> None:
    assert parse_benchmark_results("Finished: FAILURE\n") == (None, "")


def test_dispatch_creates_handler_for_each_kind(jenkins) -> None:
    assert isinstance(
        create_build_handler(JobDescriptor.health(CiKind.PR), jenkins),
        HealthBuild,
    )
    assert isinstance(create_build_handler(JobDescriptor.build(JobKind.PR, 1), jenkins), PRBuild)
    assert isinstance(
        create_build_handler(JobDescriptor.build(JobKind.COMMIT, 1), jenkins),
        CommitBuild,
    )
    assert isinstance(
        create_build_handler(JobDescriptor.build(JobKind.BENCHMARK, 1), jenkins),
        BenchmarkRun,
    )


def test_pr_and_commit_builds_share_suite_handling() -> None:
    assert issubclass(PRBuild, SuiteBuild)
    assert issubclass(CommitBuild, SuiteBuild)
    assert "__test__" not in vars(SuiteBuild)
