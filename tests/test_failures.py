from __future__ import annotations

import allure

from ci_inspect.ci.failures import FailureType, classify_console

pytestmark = [
    allure.epic("Build Handlers"),
    allure.feature("Console Failure Classification"),
]

URL = "https://ci.example.org/job/node-test-commit-linux/1/"


def test_tap_failures_are_reported_individually() -> None:
    console = "\n".join(
        [
            "not ok 1 parallel/test-a",
            "  ---",
            "  severity: fail",
            "  ...",
            "ok 2 parallel/test-b",
            "not ok 3 sequential/test-c # TODO flaky",
        ],
    )

    failures = classify_console(console, url=URL, built_on="m1")

    assert [(f.type, f.reason) for f in failures] == [
        (FailureType.JS_TEST_FAILURE, "parallel/test-a"),
        (FailureType.JS_TEST_FAILURE, "sequential/test-c"),
    ]
    assert failures[0].highlight == "  severity: fail"
    assert failures[1].highlight == ""
    assert failures[0].to_dict() == {
        "type": "JSTestFailure",
        "reason": "parallel/test-a",
        "url": URL,
        "builtOn": "m1",
        "highlight": "  severity: fail",
    }


def test_gtest_failures_are_deduplicated() -> None:
    console = "\n".join(
        [
            "[  FAILED  ] EnvironmentTest.AtExit (12 ms)",
            "[==========] 10 tests ran.",
            "[  FAILED  ] EnvironmentTest.AtExit",
        ],
    )

    failures = classify_console(console, url=URL)

    assert [(f.type, f.reason) for f in failures] == [
        (FailureType.CC_TEST_FAILURE, "EnvironmentTest.AtExit"),
    ]


def test_compiler_error_is_build_failure() -> None:
    console = "\n".join(
        [
            "  CXX(target) out/Release/obj.target/node/src/node.o",
            "../src/node.cc:42:3: error: 'foo' was not declared in this scope",
            "make[2]: *** [node.target.mk:400: node.o] Error 1",
        ],
    )

    failures = classify_console(console, url=URL)

    assert len(failures) == 1
    assert failures[0].type is FailureType.BUILD_FAILURE
    assert failures[0].reason == "../src/node.cc:42:3: error: 'foo' was not declared in this scope"
    assert "CXX(target)" in failures[0].highlight


def test_infra_failure_wins_over_jenkins_failure() -> None:
    console = "FATAL: command execution failed\nwrite error: No space left on device\n"

    failures = classify_console(console, url=URL)

    assert failures[0].type is FailureType.INFRA_FAILURE


def test_jenkins_failure() -> None:
    failures = classify_console(
        "Build timed out (after 60 minutes). Marking the build as failed.",
        url=URL,
    )

    assert failures[0].type is FailureType.JENKINS_FAILURE


def test_unrecognized_output_falls_back_to_console_tail() -> None:
    console = "\n".join(f"line {index}" for index in range(30))

    failures = classify_console(console, url=URL)

    assert len(failures) == 1
    assert failures[0].type is FailureType.UNKNOWN_FAILURE
    assert failures[0].highlight.splitlines() == [f"line {index}" for index in range(20, 30)]
