"""Installation self-test.

Runs a fixed list of pass/fail checks in order. A check that fails or raises
is recorded and the run carries on with the next one.
"""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Callable
from pathlib import Path

from .config import ServiceConfig
from .process_manager import ProcessLifecycleController
from .process_types import CheckResult, SelfTestResult, StopOutcome
from .status import configured_api_keys

__all__ = ["SelfTest"]

logger = logging.getLogger(__name__)

_SUBPROCESS_TIMEOUT = 60.0


class SelfTest:
    def __init__(
        self,
        config: ServiceConfig,
        controller: ProcessLifecycleController | None = None,
    ) -> None:
        self.config = config
        self.controller = controller or ProcessLifecycleController(config)
        self._result = SelfTestResult()
        self._group = ""

    # ------------------------------------------------------------------
    # Harness
    # ------------------------------------------------------------------

    def check(self, name: str, fn: Callable[[], bool]) -> bool:
        try:
            passed = bool(fn())
            detail = None
        except Exception as exc:  # noqa: BLE001 – a crashing check is a failed check
            logger.debug("event=check_raised name=%s error=%r", name, exc)
            passed = False
            detail = str(exc)
        logger.debug("event=check name=%s passed=%s", name, passed)
        self._result.checks.append(
            CheckResult(name=name, passed=passed, detail=detail, group=self._group)
        )
        return passed

    def warn(self, message: str) -> None:
        self._result.warnings.append(message)

    def _run(self, *cmd: str | Path) -> bool:
        proc = subprocess.run(
            [str(c) for c in cmd],
            cwd=self.config.root,
            capture_output=True,
            text=True,
            timeout=_SUBPROCESS_TIMEOUT,
            check=False,
        )
        if proc.returncode != 0:
            logger.debug(
                "event=command_failed cmd=%s rc=%s stderr=%s",
                cmd,
                proc.returncode,
                proc.stderr.strip(),
            )
        return proc.returncode == 0

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def run(self) -> SelfTestResult:
        self._result = SelfTestResult()
        self.check_environment()
        self.check_virtualenv()
        self.check_configuration()
        self.check_server_control()
        self.check_python_environment()
        self.check_integration()
        self.check_code_quality()
        return self._result

    def check_environment(self) -> None:
        cfg = self.config
        self._group = "Environment Tests"
        self.check("Installation directory exists", cfg.root.is_dir)
        self.check(f"{cfg.entry_point} exists", cfg.entry_point_path.is_file)
        self.check(
            f"{cfg.requirements_file} exists",
            (cfg.root / cfg.requirements_file).is_file,
        )

    def check_virtualenv(self) -> None:
        cfg = self.config
        self._group = "Virtual Environment Tests"
        if not cfg.venv_path.is_dir():
            self.warn("Virtual environment not set up - run the setup script first")
            return
        self.check("Virtual environment exists", cfg.venv_path.is_dir)
        self.check("Python executable exists", cfg.venv_python.is_file)
        self.check("pip exists", cfg.venv_pip.is_file)

    def check_configuration(self) -> None:
        cfg = self.config
        self._group = "Configuration Tests"
        env_file = cfg.root / cfg.env_file
        if env_file.is_file():
            self.check(f"{cfg.env_file} file exists", env_file.is_file)
            self.check(f"{cfg.env_file} has content", lambda: env_file.stat().st_size > 0)
            self.check(
                "At least one API key configured",
                lambda: bool(configured_api_keys(env_file, cfg.api_keys)),
            )
        else:
            self.check(f"{cfg.env_file} file exists", lambda: False)

        self.check("Logs directory exists", cfg.log_path.is_dir)
        if cfg.log_path.is_dir():
            self.check(
                "Logs directory is writable", lambda: os.access(cfg.log_path, os.W_OK)
            )

    def check_server_control(self) -> None:
        self._group = "Server Control Tests"

        def _stop_cleanly() -> bool:
            results = self.controller.stop(self.controller.find())
            return all(r.outcome is not StopOutcome.FAILED for r in results)

        self.check("Stop runs without error", _stop_cleanly)
        self.check("Repeated stop runs without error", _stop_cleanly)

    def check_python_environment(self) -> None:
        cfg = self.config
        self._group = "Python Environment Tests"
        if not cfg.venv_python.is_file():
            return
        python = cfg.venv_python
        self.check(
            "Python 3.9+",
            lambda: self._run(
                python,
                "-c",
                "import sys; sys.exit(0 if sys.version_info >= (3, 9) else 1)",
            ),
        )
        for module in ("mcp", "httpx", "asyncio"):
            self.check(
                f"Can import {module} module",
                lambda module=module: self._run(python, "-c", f"import {module}"),
            )
        if cfg.entry_point_path.is_file():
            self.check(
                f"{cfg.entry_point} syntax check",
                lambda: self._run(python, "-m", "py_compile", cfg.entry_point_path),
            )

    def check_integration(self) -> None:
        cfg = self.config
        self._group = "Integration Tests"
        if not (cfg.venv_python.is_file() and cfg.entry_point_path.is_file()):
            return
        module = cfg.entry_point_path.stem
        self.check(
            "Server imports successfully",
            lambda: self._run(cfg.venv_python, "-c", f"import {module}"),
        )

    def check_code_quality(self) -> None:
        ruff = self.config.venv_path / "bin" / "ruff"
        self._group = "Code Quality Tests"
        if not ruff.is_file():
            return
        self.check("Ruff linting", lambda: self._run(ruff, "check", ".", "--quiet"))
