from __future__ import annotations

"""Shared dataclasses used by *zenctl* components.

Having these types in a dedicated module avoids circular imports between
``process_manager``, ``status`` and ``tools``.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import List

__all__ = [
    "ServiceProcess",
    "ServiceState",
    "ProcessReport",
    "StopOutcome",
    "StopResult",
    "ListServiceResult",
    "TerminateServiceResult",
    "StatusLevel",
    "StatusLine",
    "StatusSection",
    "StatusReport",
    "CheckResult",
    "SelfTestResult",
    "SuiteStep",
    "SuiteResult",
]


@dataclass(frozen=True)
class ServiceProcess:
    """Snapshot of one OS process belonging to the service.

    Built fresh on every query; the process may be gone by the time anyone
    looks at it again.
    """

    pid: int
    command_line: str
    elapsed_runtime: timedelta
    create_time: float = 0.0


class ServiceState(str, Enum):
    NOT_RUNNING = "not_running"
    RUNNING = "running"
    AMBIGUOUS = "ambiguous"


@dataclass
class ProcessReport:
    state: ServiceState
    processes: List[ServiceProcess] = field(default_factory=list)
    warning: str | None = None


class StopOutcome(str, Enum):
    STOPPED = "stopped"
    ALREADY_GONE = "already_gone"
    FAILED = "failed"


@dataclass
class StopResult:
    """Outcome of signalling a single process.

    ``error`` is only set for :attr:`StopOutcome.FAILED` and carries the OS
    error text verbatim.
    """

    pid: int
    outcome: StopOutcome
    error: str | None = None


@dataclass
class ListServiceResult:
    state: ServiceState
    processes: List[ServiceProcess]
    warning: str | None = None


@dataclass
class TerminateServiceResult:
    signal: str
    results: List[StopResult]
    still_running: List[int] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return any(r.outcome is StopOutcome.FAILED for r in self.results)


class StatusLevel(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass
class StatusLine:
    level: StatusLevel
    message: str


@dataclass
class StatusSection:
    title: str
    lines: List[StatusLine] = field(default_factory=list)

    def add(self, level: StatusLevel, message: str) -> None:
        self.lines.append(StatusLine(level, message))


@dataclass
class StatusReport:
    version: str | None
    sections: List[StatusSection]
    process_report: ProcessReport


@dataclass
class CheckResult:
    name: str
    passed: bool
    detail: str | None = None
    group: str = ""


@dataclass
class SelfTestResult:
    checks: List[CheckResult] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def run(self) -> int:
        return len(self.checks)

    @property
    def passed(self) -> int:
        return sum(1 for c in self.checks if c.passed)

    @property
    def failed(self) -> int:
        return self.run - self.passed

    @property
    def pass_rate(self) -> int:
        if not self.checks:
            return 0
        return self.passed * 100 // self.run


@dataclass
class SuiteStep:
    name: str
    description: str
    succeeded: bool
    detail: str | None = None


@dataclass
class SuiteResult:
    steps: List[SuiteStep]
    elapsed_seconds: int

    @property
    def succeeded(self) -> bool:
        return all(step.succeeded for step in self.steps)
