"""Plain-text rendering of zenctl results.

Renderers return :class:`StatusLine` lists so the CLI can colour them with
Rich while tests and non-terminal callers use :func:`format_lines`.
"""

from __future__ import annotations

from datetime import timedelta

from .process_types import (
    ProcessReport,
    SelfTestResult,
    ServiceState,
    StatusLevel,
    StatusLine,
    StopOutcome,
    SuiteResult,
    TerminateServiceResult,
)

__all__ = [
    "MARKERS",
    "format_elapsed",
    "format_size",
    "format_line",
    "format_lines",
    "process_report_lines",
    "terminate_result_lines",
    "selftest_summary_lines",
    "suite_summary_lines",
]

SERVICE_LABEL = "Zen MCP server"

MARKERS = {
    StatusLevel.SUCCESS: "✓",
    StatusLevel.ERROR: "✗",
    StatusLevel.WARNING: "⚠",
    StatusLevel.INFO: "ℹ",
}


def format_elapsed(elapsed: timedelta) -> str:
    """Render *elapsed* the way ``ps -o etime`` does: ``[[dd-]hh:]mm:ss``."""
    total = max(0, int(elapsed.total_seconds()))
    days, rem = divmod(total, 86400)
    hours, rem = divmod(rem, 3600)
    minutes, seconds = divmod(rem, 60)
    if days:
        return f"{days}-{hours:02d}:{minutes:02d}:{seconds:02d}"
    if hours:
        return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
    return f"{minutes:02d}:{seconds:02d}"


def format_size(num_bytes: int) -> str:
    """Human-readable size in the style of ``ls -lh`` (``512B``, ``1.5K``, ``12M``)."""
    if num_bytes < 1024:
        return f"{num_bytes}B"
    size = float(num_bytes)
    for unit in ("K", "M", "G", "T"):
        size /= 1024
        if size < 1024:
            break
    return f"{size:.1f}{unit}" if size < 10 else f"{size:.0f}{unit}"


def format_line(line: StatusLine) -> str:
    return f"{MARKERS[line.level]} {line.message}"


def format_lines(lines: list[StatusLine]) -> str:
    return "\n".join(format_line(line) for line in lines)


def process_report_lines(report: ProcessReport) -> list[StatusLine]:
    if report.state is ServiceState.NOT_RUNNING:
        return [StatusLine(StatusLevel.WARNING, f"No {SERVICE_LABEL} processes running")]

    if report.state is ServiceState.RUNNING:
        lines = [StatusLine(StatusLevel.SUCCESS, "1 server process running")]
    else:
        lines = [
            StatusLine(
                StatusLevel.WARNING,
                report.warning
                or f"{len(report.processes)} server processes running (expected 1)",
            )
        ]
    for proc in report.processes:
        lines.append(
            StatusLine(
                StatusLevel.INFO,
                f"  PID {proc.pid} - Running for {format_elapsed(proc.elapsed_runtime)}",
            )
        )
    return lines


def terminate_result_lines(result: TerminateServiceResult) -> list[StatusLine]:
    if not result.results:
        return [StatusLine(StatusLevel.WARNING, f"No {SERVICE_LABEL} processes found running")]

    lines = []
    for res in result.results:
        if res.outcome is StopOutcome.STOPPED:
            lines.append(
                StatusLine(
                    StatusLevel.SUCCESS, f"Sent {result.signal} to process {res.pid}"
                )
            )
        elif res.outcome is StopOutcome.ALREADY_GONE:
            lines.append(
                StatusLine(StatusLevel.INFO, f"Process {res.pid} had already exited")
            )
        else:
            lines.append(
                StatusLine(
                    StatusLevel.ERROR, f"Failed to stop process {res.pid}: {res.error}"
                )
            )
    for pid in result.still_running:
        lines.append(
            StatusLine(StatusLevel.WARNING, f"Process {pid} is still running")
        )
    if result.failed or result.still_running:
        lines.append(StatusLine(StatusLevel.ERROR, "Server shutdown incomplete"))
    else:
        lines.append(StatusLine(StatusLevel.SUCCESS, "Server shutdown complete"))
    return lines


def selftest_summary_lines(result: SelfTestResult) -> list[str]:
    lines = [
        f"Total tests run: {result.run}",
        f"Passed: {result.passed}",
        f"Failed: {result.failed}",
    ]
    if result.run:
        lines.append(f"Pass rate: {result.pass_rate}%")
    return lines


def suite_summary_lines(result: SuiteResult) -> list[StatusLine]:
    lines = [
        StatusLine(
            StatusLevel.SUCCESS if step.succeeded else StatusLevel.ERROR,
            f"{step.name} - {step.description}"
            + ("" if step.succeeded else f" ({step.detail or 'failed'})"),
        )
        for step in result.steps
    ]
    lines.append(
        StatusLine(
            StatusLevel.INFO, f"Total execution time: {result.elapsed_seconds} seconds"
        )
    )
    if result.succeeded:
        lines.append(StatusLine(StatusLevel.SUCCESS, "All steps executed successfully"))
    else:
        lines.append(StatusLine(StatusLevel.ERROR, "Some steps encountered errors"))
    return lines
