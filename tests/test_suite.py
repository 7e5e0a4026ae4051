import itertools

from zenctl.process_types import StopOutcome
from zenctl.suite import SuiteReporter, TestSuite


class RecordingReporter(SuiteReporter):
    def __init__(self):
        self.events = []

    def step_started(self, name, description):
        self.events.append(("start", name))

    def status(self, report):
        self.events.append(("status", report.process_report.state.value))

    def selftest(self, result):
        self.events.append(("selftest", result.failed))

    def terminate(self, result):
        self.events.append(("terminate", [r.outcome for r in result.results]))

    def step_finished(self, step):
        self.events.append(("finish", step.name, step.succeeded))


def _clock(*values):
    it = itertools.chain(values, itertools.repeat(values[-1]))
    return lambda: next(it)


def test_suite_stops_running_server(config, controller, fake_procs):
    fake_procs.add(5, ["python", str(config.entry_point_path)])
    reporter = RecordingReporter()

    result = TestSuite(
        config, controller, reporter=reporter, clock=_clock(100.0, 107.9)
    ).run()

    assert [step.name for step in result.steps] == [
        "status",
        "selftest",
        "terminate",
        "status",
    ]
    assert result.elapsed_seconds == 7
    # The selftest's own stop check reaps the server before the terminate step.
    assert ("status", "running") in reporter.events
    assert reporter.events[-2] == ("status", "not_running")
    assert result.succeeded


def test_suite_records_failures_and_continues(config, controller, fake_procs):
    (config.root / ".env").unlink()
    fake_procs.add(5, ["python", str(config.entry_point_path)])
    fake_procs.kill_errors[5] = PermissionError(1, "Operation not permitted")
    reporter = RecordingReporter()

    result = TestSuite(config, controller, reporter=reporter, grace_period=0.01).run()

    outcomes = {step.description: step for step in result.steps}
    assert not outcomes["Comprehensive Test Suite"].succeeded
    assert not outcomes["Server Shutdown Test"].succeeded
    assert outcomes["Final Status Verification"].succeeded
    assert ("terminate", [StopOutcome.FAILED]) in reporter.events
    assert not result.succeeded


def test_suite_step_exception_is_contained(config, controller, monkeypatch):
    def _explode(*args, **kwargs):
        raise RuntimeError("no process table")

    monkeypatch.setattr(controller, "terminate", _explode)

    result = TestSuite(config, controller).run()

    shutdown = result.steps[2]
    assert not shutdown.succeeded
    assert shutdown.detail == "no process table"
    assert result.steps[3].succeeded
