from __future__ import annotations

import os
import signal
import time
from pathlib import Path
from types import SimpleNamespace

import psutil

__all__ = ["FakeProcessTable", "write_installation"]


class FakeProcessTable:
    """In-memory stand-in for the OS process table.

    Patched over ``psutil.process_iter``, ``psutil.Process`` and ``os.kill`` so
    controller tests never touch real processes.
    """

    def __init__(self) -> None:
        self.procs: dict[int, dict] = {}
        self.signals: list[tuple[int, signal.Signals]] = []
        self.kill_errors: dict[int, OSError] = {}
        self.exit_on_signal = True
        self.iter_error: Exception | None = None
        self.inspect_errors: dict[int, Exception] = {}

    def add(
        self,
        pid: int,
        cmdline: list[str] | None,
        *,
        age: float = 65.0,
        status: str = psutil.STATUS_RUNNING,
        hide_create_time: bool = False,
    ) -> None:
        started = time.time() - age
        self.procs[pid] = {
            "cmdline": cmdline,
            "create_time": None if hide_create_time else started,
            "status": status,
            "started": started,
        }

    def remove(self, pid: int) -> None:
        self.procs.pop(pid, None)

    # -- psutil / os replacements -------------------------------------

    def process_iter(self, attrs=None):
        if self.iter_error is not None:
            raise self.iter_error
        for pid, entry in sorted(self.procs.items(), reverse=True):
            info = {key: entry[key] for key in ("cmdline", "create_time", "status")}
            yield SimpleNamespace(info={"pid": pid, **info})

    def process(self, pid: int):
        if pid in self.inspect_errors:
            raise self.inspect_errors[pid]
        if pid not in self.procs:
            raise psutil.NoSuchProcess(pid)
        entry = self.procs[pid]
        return SimpleNamespace(
            create_time=lambda: entry["started"],
            status=lambda: entry["status"],
        )

    def kill(self, pid: int, sig) -> None:
        if pid in self.kill_errors:
            raise self.kill_errors[pid]
        if pid not in self.procs:
            raise ProcessLookupError(3, "No such process")
        self.signals.append((pid, sig))
        if self.exit_on_signal:
            self.remove(pid)

    def install(self, monkeypatch) -> "FakeProcessTable":
        monkeypatch.setattr(psutil, "process_iter", self.process_iter)
        monkeypatch.setattr(psutil, "Process", self.process)
        monkeypatch.setattr(os, "kill", self.kill)
        return self


def write_installation(
    root: Path,
    *,
    env: str | None = "GEMINI_API_KEY=abc123\nOPENAI_API_KEY=\n",
    version: str | None = "5.8.2",
    logs: bool = True,
) -> Path:
    """Lay out a minimal server installation under *root*."""
    root.mkdir(parents=True, exist_ok=True)
    (root / "server.py").write_text("print('server')\n", encoding="utf-8")
    (root / "requirements.txt").write_text("mcp\nhttpx\n", encoding="utf-8")
    if env is not None:
        (root / ".env").write_text(env, encoding="utf-8")
    if version is not None:
        (root / "version.txt").write_text(version + "\n", encoding="utf-8")
    if logs:
        (root / "logs").mkdir(exist_ok=True)
    return root
