import signal
import sys
from pathlib import Path
from typing import Iterable

import pytest

from zenctl.config import ServiceConfig
from zenctl.process_manager import ProcessLifecycleController

from tests.helpers import FakeProcessTable, write_installation

LOG_PATTERN = "zenctl.run.*.log"


def _find_latest_log(dirs: Iterable[Path]) -> Path | None:
    """Return the most recently modified log file among *dirs* (recursive)."""
    latest: Path | None = None
    for base in dirs:
        if not base.exists():
            continue
        for path in base.rglob(LOG_PATTERN):
            if latest is None or path.stat().st_mtime > latest.stat().st_mtime:
                latest = path
    return latest


@pytest.hookimpl(hookwrapper=True, tryfirst=True)
def pytest_runtest_makereport(item, call):  # noqa: D401 – pytest hook
    outcome = yield
    rep = outcome.get_result()

    # Only act after the *call* phase and when the test has failed.
    if rep.when != "call" or rep.passed:
        return

    funcargs = getattr(item, "funcargs", {})
    tmp = funcargs.get("tmp_path")
    if not isinstance(tmp, Path):
        return

    latest_log = _find_latest_log([tmp])
    if latest_log is None:
        return

    try:
        contents = latest_log.read_text(encoding="utf-8")
    except OSError as exc:  # pragma: no cover – best-effort
        contents = f"<error reading log file {latest_log}: {exc}>"

    rep.sections.append(("zenctl-log", contents))


@pytest.fixture(autouse=True)
def _enforce_timeout(request):
    """Fail tests that run longer than the allowed time.

    Default timeout is 30 seconds unless a test is marked with
    ``@pytest.mark.timeout(N)`` specifying a custom limit.
    """

    marker = request.node.get_closest_marker("timeout")
    timeout = int(marker.args[0]) if marker and marker.args else 30

    # Skip if timeout is non-positive or SIGALRM unavailable (e.g. Windows).
    if timeout <= 0 or sys.platform.startswith("win"):
        yield
        return

    def _alarm_handler(signum, frame):  # noqa: D401 – signal handler
        pytest.fail(f"Test timed out after {timeout} seconds", pytrace=False)

    previous = signal.signal(signal.SIGALRM, _alarm_handler)  # type: ignore[arg-type]
    signal.alarm(timeout)

    try:
        yield
    finally:
        signal.alarm(0)
        signal.signal(signal.SIGALRM, previous)  # type: ignore[arg-type]


@pytest.fixture
def install_root(tmp_path) -> Path:
    return write_installation(tmp_path / "zen")


@pytest.fixture
def config(install_root, tmp_path) -> ServiceConfig:
    return ServiceConfig(
        root=install_root, client_config=tmp_path / "claude_desktop_config.json"
    )


@pytest.fixture
def fake_procs(monkeypatch) -> FakeProcessTable:
    return FakeProcessTable().install(monkeypatch)


@pytest.fixture
def controller(config, fake_procs) -> ProcessLifecycleController:
    return ProcessLifecycleController(config)
