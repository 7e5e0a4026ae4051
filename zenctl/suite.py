"""The full check sequence: status, self-test, shutdown, status again."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from .config import ServiceConfig
from .process_manager import ProcessLifecycleController
from .process_types import (
    SelfTestResult,
    StatusReport,
    SuiteResult,
    SuiteStep,
    TerminateServiceResult,
)
from .selftest import SelfTest
from .status import StatusChecker

__all__ = ["SuiteReporter", "TestSuite"]

logger = logging.getLogger(__name__)


class SuiteReporter:
    """Receives each step's output as it happens. The default is silent."""

    def step_started(self, name: str, description: str) -> None:
        pass

    def status(self, report: StatusReport) -> None:
        pass

    def selftest(self, result: SelfTestResult) -> None:
        pass

    def terminate(self, result: TerminateServiceResult) -> None:
        pass

    def step_finished(self, step: SuiteStep) -> None:
        pass


class TestSuite:
    __test__ = False  # not a pytest class

    def __init__(
        self,
        config: ServiceConfig,
        controller: ProcessLifecycleController | None = None,
        reporter: SuiteReporter | None = None,
        grace_period: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config
        self.controller = controller or ProcessLifecycleController(config)
        self.reporter = reporter or SuiteReporter()
        self.grace_period = grace_period
        self.clock = clock

    def run(self) -> SuiteResult:
        started = self.clock()
        steps = [
            self._step("status", "Initial Status Check", self._status),
            self._step("selftest", "Comprehensive Test Suite", self._selftest),
            self._step("terminate", "Server Shutdown Test", self._terminate),
            self._step("status", "Final Status Verification", self._status),
        ]
        return SuiteResult(steps=steps, elapsed_seconds=int(self.clock() - started))

    def _step(
        self, name: str, description: str, fn: Callable[[], tuple[bool, str | None]]
    ) -> SuiteStep:
        self.reporter.step_started(name, description)
        try:
            succeeded, detail = fn()
        except Exception as exc:  # noqa: BLE001 – later steps still run
            logger.exception("Step %s failed", name)
            succeeded, detail = False, str(exc)
        step = SuiteStep(name, description, succeeded, detail)
        self.reporter.step_finished(step)
        return step

    def _status(self) -> tuple[bool, str | None]:
        report = StatusChecker(self.config, self.controller).run()
        self.reporter.status(report)
        return True, None

    def _selftest(self) -> tuple[bool, str | None]:
        result = SelfTest(self.config, self.controller).run()
        self.reporter.selftest(result)
        if result.failed:
            return False, f"{result.failed} of {result.run} checks failed"
        return True, None

    def _terminate(self) -> tuple[bool, str | None]:
        result = self.controller.terminate(wait=self.grace_period)
        self.reporter.terminate(result)
        if result.failed:
            return False, "some processes could not be signalled"
        if result.still_running:
            return False, f"still running: {result.still_running}"
        return True, None
