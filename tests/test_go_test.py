from __future__ import annotations

import json
import time
from pathlib import Path

import pytest

from gotestgate.deadline import Deadline
from gotestgate.exceptions import ExecError, ProtocolError
from gotestgate.tooling.go_test import (
    CoverageResult,
    EventAggregator,
    run_tests,
    summarize_run,
)
from tests.go_fakes import events, process_alive, requires_proc


def _feed(aggregator: EventAggregator, stream: str) -> None:
    for line in stream.splitlines(keepends=True):
        aggregator.feed_line(line)


def _passing_package(package: str, coverage: str) -> str:
    return events(
        {"Action": "start", "Package": package},
        {"Action": "run", "Package": package, "Test": "TestSum"},
        {"Action": "output", "Package": package, "Test": "TestSum", "Output": "=== RUN   TestSum\n"},
        {"Action": "pass", "Package": package, "Test": "TestSum", "Elapsed": 0},
        {"Action": "output", "Package": package, "Output": "PASS\n"},
        {"Action": "output", "Package": package, "Output": f"coverage: {coverage} of statements\n"},
        {"Action": "output", "Package": package, "Output": f"ok  \t{package}\t0.002s\tcoverage: {coverage} of statements\n"},
        {"Action": "pass", "Package": package, "Elapsed": 0.002},
    )


def test_coverage_result_requires_exactly_full_coverage() -> None:
    assert CoverageResult(100.0).ok
    assert CoverageResult(None).ok
    assert not CoverageResult(99.9).ok
    assert not CoverageResult(0.0).ok


def test_failed_test_is_reported_by_name() -> None:
    aggregator = EventAggregator({"testfail"})
    _feed(
        aggregator,
        events(
            {"Action": "run", "Package": "testfail", "Test": "TestSum"},
            {"Action": "output", "Package": "testfail", "Test": "TestSum", "Output": "    tf_test.go:6: got 2, want 3\n"},
            {"Action": "fail", "Package": "testfail", "Test": "TestSum", "Elapsed": 0},
            {"Action": "output", "Package": "testfail", "Output": "FAIL\n"},
            {"Action": "output", "Package": "testfail", "Output": "FAIL\ttestfail\t0.002s\n"},
            {"Action": "fail", "Package": "testfail", "Elapsed": 0.002},
        ),
    )
    run = summarize_run(aggregator.reports, exit_code=1)
    assert not run.ok
    assert run.report_lines() == ["testfail: TestSum failed"]
    assert aggregator.reports["testfail"].test_output["TestSum"] == [
        "    tf_test.go:6: got 2, want 3\n"
    ]


def test_build_failure_without_failing_test_reports_diagnostics() -> None:
    aggregator = EventAggregator()
    _feed(
        aggregator,
        events(
            {"Action": "build-output", "ImportPath": "broken [broken.test]", "Output": "# broken\n"},
            {"Action": "build-output", "ImportPath": "broken [broken.test]", "Output": "./b.go:3:1: undefined: nope\n"},
            {"Action": "build-fail", "ImportPath": "broken [broken.test]"},
            {"Action": "output", "Package": "broken", "Output": "FAIL\tbroken [build failed]\n"},
            {"Action": "fail", "Package": "broken", "Elapsed": 0},
        ),
    )
    run = summarize_run(aggregator.reports, exit_code=1)
    assert run.report_lines() == [
        "broken: # broken",
        "broken: ./b.go:3:1: undefined: nope",
    ]


def test_plain_text_build_failure_marks_package_failed() -> None:
    aggregator = EventAggregator({"printfvet", "testok"})
    _feed(aggregator, _passing_package("testok", "100.0%"))
    aggregator.feed_line("FAIL\tprintfvet [build failed]\n")
    aggregator.feed_line("FAIL\tprintfvet [setup failed]\r\n")
    report = aggregator.reports["printfvet"]
    assert report.failed
    run = summarize_run(
        aggregator.reports,
        exit_code=1,
        stderr_lines=("# printfvet", "./pv.go:7:2: fmt.Printf format %d has arg name of wrong type string"),
    )
    assert not run.ok
    assert run.report_lines() == [
        "printfvet: FAIL\tprintfvet [build failed]",
        "printfvet: FAIL\tprintfvet [setup failed]",
        "# printfvet",
        "./pv.go:7:2: fmt.Printf format %d has arg name of wrong type string",
    ]


def test_plain_text_build_failure_for_unknown_package_is_rejected() -> None:
    with pytest.raises(ProtocolError, match="unknown package"):
        EventAggregator({"testok"}).feed_line("FAIL\tstranger [build failed]\n")


def test_coverage_shortfall_uses_lowest_package() -> None:
    aggregator = EventAggregator({"full", "partial"})
    _feed(aggregator, _passing_package("full", "100.0%"))
    _feed(aggregator, _passing_package("partial", "66.7%"))
    run = summarize_run(aggregator.reports, exit_code=0)
    assert not run.ok
    assert run.coverage_pct == pytest.approx(66.7)
    assert not run.coverage.ok
    assert run.report_lines() == ["partial: coverage 66.7% of statements, want 100%"]


def test_full_coverage_and_no_statements_pass() -> None:
    aggregator = EventAggregator()
    _feed(aggregator, _passing_package("testok", "100.0%"))
    _feed(
        aggregator,
        events(
            {"Action": "output", "Package": "types", "Output": "?   \ttypes\t[no test files]\n"},
            {"Action": "output", "Package": "empty", "Output": "ok  \tempty\t0.001s\tcoverage: [no statements]\n"},
            {"Action": "skip", "Package": "types", "Elapsed": 0},
            {"Action": "pass", "Package": "empty", "Elapsed": 0},
        ),
    )
    run = summarize_run(aggregator.reports, exit_code=0)
    assert run.ok
    assert run.coverage_pct == 100.0
    assert run.report_lines() == []
    assert aggregator.reports["types"].no_test_files
    assert aggregator.reports["empty"].coverage == 100.0


def test_interleaved_packages_are_kept_apart() -> None:
    first = _passing_package("a", "100.0%").splitlines(keepends=True)
    second = _passing_package("b", "50.0%").splitlines(keepends=True)
    aggregator = EventAggregator({"a", "b"})
    for left, right in zip(first, second):
        aggregator.feed_line(left)
        aggregator.feed_line(right)
    assert aggregator.reports["a"].coverage == 100.0
    assert aggregator.reports["b"].coverage == 50.0
    assert aggregator.events == len(first) + len(second)


def test_protocol_errors() -> None:
    with pytest.raises(ProtocolError, match="unknown package"):
        EventAggregator({"known"}).feed_line(
            json.dumps({"Action": "run", "Package": "stranger"})
        )
    with pytest.raises(ProtocolError, match="cannot decode"):
        EventAggregator().feed_line("<language>Go<language>\n")
    with pytest.raises(ProtocolError, match="cannot decode"):
        EventAggregator().feed_line(json.dumps({"Package": "noaction"}))


def test_nonzero_exit_without_failures_is_not_ok() -> None:
    aggregator = EventAggregator()
    _feed(aggregator, _passing_package("testok", "100.0%"))
    run = summarize_run(aggregator.reports, exit_code=2, stderr_lines=("go: boom",))
    assert not run.ok
    assert run.report_lines() == ["go: boom"]


def test_run_tests_streams_fake_go(fake_go, tmp_path: Path) -> None:
    go = fake_go({"test": {"stdout": _passing_package("testok", "100.0%")}})
    run = run_tests(
        deadline=Deadline.from_timeout_ms(10_000),
        root=tmp_path,
        go=str(go),
        known_packages={"testok"},
    )
    assert run.ok
    assert run.exit_code == 0
    assert list(run.reports) == ["testok"]


def test_run_tests_reports_stderr_on_failure(fake_go, tmp_path: Path) -> None:
    go = fake_go(
        {
            "test": {
                "stdout": "",
                "stderr": "pattern ./...: directory prefix . does not contain main module\n",
                "exit_code": 1,
            }
        }
    )
    run = run_tests(deadline=Deadline.from_timeout_ms(10_000), root=tmp_path, go=str(go))
    assert not run.ok
    assert run.report_lines() == [
        "pattern ./...: directory prefix . does not contain main module"
    ]


def test_run_tests_rejects_non_json_output(fake_go, tmp_path: Path) -> None:
    go = fake_go({"test": {"stdout": "<language>Go<language>\n"}})
    with pytest.raises(ProtocolError):
        run_tests(deadline=Deadline.from_timeout_ms(10_000), root=tmp_path, go=str(go))


def test_run_tests_missing_binary(tmp_path: Path) -> None:
    with pytest.raises(ExecError):
        run_tests(
            deadline=Deadline.from_timeout_ms(10_000),
            root=tmp_path,
            go=str(tmp_path / "missing-go"),
        )


@requires_proc
def test_run_tests_deadline_kills_process_group(fake_go, tmp_path: Path) -> None:
    pid_file = tmp_path / "pids.json"
    go = fake_go(
        {
            "test": {
                "stdout": events(
                    {"Action": "start", "Package": "slow"},
                    {"Action": "run", "Package": "slow", "Test": "TestSlow"},
                    {"Action": "output", "Package": "slow", "Test": "TestSlow", "Output": "=== RUN   TestSlow\n"},
                ),
                "sleep": 60,
                "pid_file": str(pid_file),
            }
        }
    )
    started = time.monotonic()
    run = run_tests(
        deadline=Deadline.from_timeout_ms(1_000),
        root=tmp_path,
        go=str(go),
        known_packages={"slow"},
    )
    assert time.monotonic() - started < 30
    assert run.timed_out
    assert not run.ok
    assert "slow" in run.reports
    assert run.report_lines()[-1] == "tests exceeded deadline of 1s"

    pids = json.loads(pid_file.read_text(encoding="utf-8"))
    give_up = time.monotonic() + 2.0
    while time.monotonic() < give_up and (
        process_alive(pids["leader"]) or process_alive(pids["child"])
    ):
        time.sleep(0.05)
    assert not process_alive(pids["leader"])
    assert not process_alive(pids["child"])
