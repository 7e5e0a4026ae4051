from __future__ import annotations

import logging
import os
import signal
import time
from collections.abc import Iterable, Sequence
from datetime import timedelta
from pathlib import Path

import psutil

from zenctl.config import ServiceConfig
from zenctl.process_types import (
    ListServiceResult,
    ProcessReport,
    ServiceProcess,
    ServiceState,
    StopOutcome,
    StopResult,
    TerminateServiceResult,
)

__all__ = ["ProcessLifecycleController", "matches_signature", "parse_signal"]

logger = logging.getLogger(__name__)

_ITER_ATTRS = ["pid", "cmdline", "create_time", "status"]


def matches_signature(
    cmdline: Sequence[str] | None, entry_point: Path | str, interpreter: str = "python"
) -> bool:
    """Return True if *cmdline* runs *entry_point* under *interpreter*.

    The entry point must appear as a whole argument spelled as its absolute
    path, and some argument before it must name the interpreter (its basename
    starts with *interpreter*, so ``python3.12`` and ``.venv/bin/python`` both
    count).
    """
    if not cmdline:
        return False

    target = str(entry_point)
    for idx, arg in enumerate(cmdline):
        if arg != target:
            continue
        if any(
            os.path.basename(prev).startswith(interpreter) for prev in cmdline[:idx]
        ):
            return True
    return False


def parse_signal(value: str | int | signal.Signals) -> signal.Signals:
    """Turn ``"TERM"``, ``"SIGTERM"``, ``"15"`` or ``15`` into a signal."""
    if isinstance(value, signal.Signals):
        return value
    text = str(value).strip().upper()
    if text.isdigit():
        return signal.Signals(int(text))
    if not text.startswith("SIG"):
        text = "SIG" + text
    try:
        return signal.Signals[text]
    except KeyError:
        raise ValueError(f"Unknown signal: {value}") from None


class ProcessLifecycleController:
    """Find, report on, and signal the processes of one installed service.

    Stateless: every call re-reads the OS process table.
    """

    def __init__(self, config: ServiceConfig) -> None:
        self.config = config

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find(self) -> list[ServiceProcess]:
        """Return every live process matching the service signature.

        Enumeration trouble is treated the same as "nothing matched".
        """
        own_pid = os.getpid()
        entry_point = self.config.entry_point_path
        found: list[ServiceProcess] = []

        try:
            now = time.time()
            for proc in psutil.process_iter(_ITER_ATTRS):
                info = proc.info
                if info.get("pid") == own_pid:
                    continue
                if info.get("status") == psutil.STATUS_ZOMBIE:
                    continue
                cmdline = info.get("cmdline")
                if not matches_signature(
                    cmdline, entry_point, self.config.interpreter
                ):
                    continue
                # 0.0 when unknown; _is_alive then skips the PID-reuse check.
                create_time = info.get("create_time") or 0.0
                elapsed = max(0.0, now - create_time) if create_time else 0.0
                found.append(
                    ServiceProcess(
                        pid=info["pid"],
                        command_line=" ".join(cmdline),
                        elapsed_runtime=timedelta(seconds=elapsed),
                        create_time=create_time,
                    )
                )
        except (psutil.Error, OSError) as exc:
            logger.debug("event=find_failed error=%s", exc)
            return []

        found.sort(key=lambda p: p.pid)
        logger.debug(
            "event=find entry_point=%s pids=%s", entry_point, [p.pid for p in found]
        )
        return found

    def describe(self, processes: Sequence[ServiceProcess]) -> ProcessReport:
        if not processes:
            return ProcessReport(state=ServiceState.NOT_RUNNING)
        if len(processes) == 1:
            return ProcessReport(state=ServiceState.RUNNING, processes=list(processes))
        return ProcessReport(
            state=ServiceState.AMBIGUOUS,
            processes=list(processes),
            warning=f"{len(processes)} server processes running (expected 1)",
        )

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    def stop(
        self,
        processes: Iterable[ServiceProcess],
        sig: signal.Signals = signal.SIGTERM,
    ) -> list[StopResult]:
        """Send *sig* to every process; one failure never stops the batch."""
        processes = list(processes)
        if len(processes) > 1:
            logger.warning(
                "Signalling %d server processes; expected a single instance",
                len(processes),
            )
        return [self._signal_one(p, sig) for p in processes]

    def wait_for_exit(
        self,
        processes: Iterable[ServiceProcess],
        timeout: float = 5.0,
        poll_interval: float = 0.1,
    ) -> list[ServiceProcess]:
        """Wait up to *timeout* seconds and return the processes still alive."""
        deadline = time.monotonic() + timeout
        remaining = [p for p in processes if self._is_alive(p)]
        while remaining and time.monotonic() < deadline:
            time.sleep(poll_interval)
            remaining = [p for p in remaining if self._is_alive(p)]
        if remaining:
            logger.debug(
                "event=wait_timeout pids=%s timeout=%s",
                [p.pid for p in remaining],
                timeout,
            )
        return remaining

    # ------------------------------------------------------------------
    # Verbs used by the CLI and MCP tools
    # ------------------------------------------------------------------

    def list(self) -> ListServiceResult:
        report = self.describe(self.find())
        return ListServiceResult(
            state=report.state, processes=report.processes, warning=report.warning
        )

    def terminate(
        self,
        sig: signal.Signals = signal.SIGTERM,
        wait: float | None = None,
        processes: Sequence[ServiceProcess] | None = None,
    ) -> TerminateServiceResult:
        """Signal *processes* (default: a fresh find) and optionally wait."""
        if processes is None:
            processes = self.find()
        results = self.stop(processes, sig)
        still_running: list[int] = []
        if wait:
            signalled = [
                p
                for p, r in zip(processes, results)
                if r.outcome is StopOutcome.STOPPED
            ]
            still_running = [p.pid for p in self.wait_for_exit(signalled, wait)]
        return TerminateServiceResult(
            signal=sig.name, results=results, still_running=still_running
        )

    # ------------------ signal helpers ------------------

    def _signal_one(self, proc: ServiceProcess, sig: signal.Signals) -> StopResult:
        try:
            alive = self._is_alive(proc)
        except psutil.Error as exc:
            logger.error("Failed to inspect pid=%s: %s", proc.pid, exc)
            return StopResult(pid=proc.pid, outcome=StopOutcome.FAILED, error=str(exc))

        if not alive:
            logger.debug("event=already_gone pid=%s", proc.pid)
            return StopResult(pid=proc.pid, outcome=StopOutcome.ALREADY_GONE)

        try:
            os.kill(proc.pid, sig)
        except ProcessLookupError:
            # Exited between find() and now.
            logger.debug("event=already_gone pid=%s", proc.pid)
            return StopResult(pid=proc.pid, outcome=StopOutcome.ALREADY_GONE)
        except OSError as exc:
            logger.error("Failed to signal pid=%s: %s", proc.pid, exc)
            return StopResult(pid=proc.pid, outcome=StopOutcome.FAILED, error=str(exc))

        logger.info("Sent %s to pid=%s", sig.name, proc.pid)
        return StopResult(pid=proc.pid, outcome=StopOutcome.STOPPED)

    @staticmethod
    def _is_alive(proc: ServiceProcess) -> bool:
        """True if *proc.pid* still names the same, non-zombie process."""
        try:
            current = psutil.Process(proc.pid)
            if proc.create_time and current.create_time() != proc.create_time:
                return False  # PID reused
            return current.status() != psutil.STATUS_ZOMBIE
        except psutil.NoSuchProcess:
            return False
        except psutil.AccessDenied:
            return True
