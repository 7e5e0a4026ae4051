"""Read-only health report for a server installation.

Combines the process controller's view with file-system signals: the
virtual environment, ``.env`` API keys, log files, installed dependencies
and the desktop client's configuration.
"""

from __future__ import annotations

import logging
import re
import subprocess
from collections import deque
from importlib import metadata
from pathlib import Path

from .config import ServiceConfig
from .process_manager import ProcessLifecycleController
from .process_types import ProcessReport, StatusLevel, StatusReport, StatusSection
from .text_formatters import format_size, process_report_lines

__all__ = [
    "StatusChecker",
    "canonicalize_name",
    "configured_api_keys",
    "count_lines",
    "installed_packages",
    "recent_error_count",
]

logger = logging.getLogger(__name__)

RECENT_LOG_LINES = 100

QUICK_ACTIONS = [
    ("zenctl status", "Show this report"),
    ("zenctl list", "List server processes"),
    ("zenctl terminate", "Stop server processes"),
    ("zenctl selftest", "Run installation checks"),
    ("zenctl test-all", "Run the full check sequence"),
]


def canonicalize_name(name: str) -> str:
    """Normalise a distribution name the way package indexes do."""
    return re.sub(r"[-_.]+", "-", name).lower()


def configured_api_keys(env_file: Path, keys: tuple[str, ...]) -> list[str]:
    """Return the *keys* that have a non-empty value in *env_file*."""
    try:
        text = env_file.read_text(encoding="utf-8")
    except OSError as exc:
        logger.debug("event=env_unreadable path=%s error=%s", env_file, exc)
        return []

    configured = []
    for key in keys:
        if re.search(rf"^{re.escape(key)}=.+", text, re.MULTILINE):
            configured.append(key)
    return configured


def count_lines(path: Path) -> int:
    with path.open("rb") as fh:
        return sum(1 for _ in fh)


def recent_error_count(path: Path, lines: int = RECENT_LOG_LINES) -> int:
    """Count lines mentioning ``ERROR`` among the last *lines* of *path*."""
    with path.open(encoding="utf-8", errors="replace") as fh:
        tail = deque(fh, maxlen=lines)
    return sum(1 for line in tail if "ERROR" in line)


def installed_packages(site_dirs: list[Path]) -> set[str]:
    """Canonical names of the distributions installed under *site_dirs*."""
    if not site_dirs:
        return set()
    names = set()
    for dist in metadata.distributions(path=[str(d) for d in site_dirs]):
        name = dist.metadata["Name"]
        if name:
            names.add(canonicalize_name(name))
    return names


class StatusChecker:
    def __init__(
        self,
        config: ServiceConfig,
        controller: ProcessLifecycleController | None = None,
    ) -> None:
        self.config = config
        self.controller = controller or ProcessLifecycleController(config)

    def run(self) -> StatusReport:
        process_section, process_report = self.check_processes()
        sections = [
            self.check_environment(),
            process_section,
            self.check_logs(),
            self.check_dependencies(),
            self.check_client_config(),
        ]
        return StatusReport(
            version=self.read_version(),
            sections=sections,
            process_report=process_report,
        )

    def read_version(self) -> str | None:
        path = self.config.root / self.config.version_file
        try:
            return path.read_text(encoding="utf-8").strip() or None
        except OSError:
            return None

    def interpreter_version(self) -> str | None:
        """Ask the venv interpreter for ``--version``; None if that fails."""
        try:
            proc = subprocess.run(
                [str(self.config.venv_python), "--version"],
                capture_output=True,
                text=True,
                timeout=5,
                check=False,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            logger.debug("event=python_version_failed error=%s", exc)
            return None
        out = (proc.stdout or proc.stderr).strip()
        return out or None

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    def check_environment(self) -> StatusSection:
        cfg = self.config
        section = StatusSection("Environment Status")

        if cfg.venv_path.is_dir():
            section.add(StatusLevel.SUCCESS, "Virtual environment exists")
            if cfg.venv_python.is_file():
                version = self.interpreter_version()
                if version:
                    section.add(StatusLevel.INFO, f"Python: {version}")
        else:
            section.add(
                StatusLevel.ERROR,
                "Virtual environment not found - run the setup script to create it",
            )

        env_file = cfg.root / cfg.env_file
        if env_file.is_file():
            section.add(StatusLevel.SUCCESS, f"{cfg.env_file} file exists")
            keys = configured_api_keys(env_file, cfg.api_keys)
            for key in keys:
                section.add(StatusLevel.SUCCESS, f"{key} configured")
            if not keys:
                section.add(StatusLevel.ERROR, f"No API keys configured in {cfg.env_file}")
        else:
            section.add(
                StatusLevel.ERROR,
                f"{cfg.env_file} file not found - run the setup script to create it",
            )
        return section

    def check_processes(self) -> tuple[StatusSection, ProcessReport]:
        report = self.controller.describe(self.controller.find())
        section = StatusSection("Server Process Status", process_report_lines(report))
        return section, report

    def check_logs(self) -> StatusSection:
        cfg = self.config
        section = StatusSection("Log Status")

        if not cfg.log_path.is_dir():
            section.add(StatusLevel.ERROR, "Logs directory not found")
            return section
        section.add(StatusLevel.SUCCESS, "Logs directory exists")

        server_log = cfg.log_path / cfg.server_log
        if server_log.is_file():
            try:
                size = server_log.stat().st_size
                section.add(
                    StatusLevel.INFO,
                    f"Server log: {format_size(size)} ({count_lines(server_log)} lines)",
                )
                errors = recent_error_count(server_log)
            except OSError as exc:
                section.add(StatusLevel.WARNING, f"Cannot read server log: {exc}")
            else:
                if errors:
                    section.add(
                        StatusLevel.WARNING,
                        f"Found {errors} errors in last {RECENT_LOG_LINES} log lines",
                    )
                else:
                    section.add(StatusLevel.SUCCESS, "No recent errors in server log")
        else:
            section.add(StatusLevel.WARNING, "Server log not found")

        activity_log = cfg.log_path / cfg.activity_log
        if activity_log.is_file():
            try:
                size = activity_log.stat().st_size
                section.add(
                    StatusLevel.INFO,
                    f"Activity log: {format_size(size)} ({count_lines(activity_log)} lines)",
                )
            except OSError as exc:
                section.add(StatusLevel.WARNING, f"Cannot read activity log: {exc}")
        return section

    def check_dependencies(self) -> StatusSection:
        cfg = self.config
        section = StatusSection("Dependencies Status")

        requirements = cfg.root / cfg.requirements_file
        if not (requirements.is_file() and cfg.venv_path.is_dir()):
            section.add(
                StatusLevel.WARNING,
                "Cannot check dependencies - environment not set up",
            )
            return section

        installed = installed_packages(cfg.site_packages_dirs())
        for package in cfg.required_packages:
            if canonicalize_name(package) in installed:
                section.add(StatusLevel.SUCCESS, f"{package} installed")
            else:
                section.add(StatusLevel.ERROR, f"{package} not installed")
        return section

    def check_client_config(self) -> StatusSection:
        cfg = self.config
        section = StatusSection("Claude Configuration")

        if not cfg.client_config.is_file():
            section.add(StatusLevel.WARNING, "Claude config file not found")
            return section

        try:
            text = cfg.client_config.read_text(encoding="utf-8")
        except OSError as exc:
            section.add(StatusLevel.WARNING, f"Cannot read Claude config: {exc}")
            return section

        if cfg.client_server_name in text:
            section.add(
                StatusLevel.SUCCESS,
                f"{cfg.client_server_name} configured in Claude",
            )
        else:
            section.add(
                StatusLevel.WARNING,
                f"{cfg.client_server_name} not found in Claude config",
            )
        return section
