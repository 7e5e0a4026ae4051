from __future__ import annotations

import abc
import json
import logging
from argparse import ArgumentParser, ArgumentTypeError, Namespace
from dataclasses import asdict
from datetime import timedelta

from fastmcp import FastMCP
from fastmcp.tools import FunctionTool

from .console import (
    print_header,
    print_info,
    print_json,
    print_rich,
    print_status,
    print_warning,
)
from .logging_utils import CLI_LOGGER
from .process_manager import ProcessLifecycleController, parse_signal
from .process_types import (
    ListServiceResult,
    ServiceProcess,
    StatusReport,
    TerminateServiceResult,
)
from .status import QUICK_ACTIONS, StatusChecker
from .text_formatters import process_report_lines, terminate_result_lines

logger = logging.getLogger(__name__)

__all__ = [
    "ITool",
    "ListServiceTool",
    "TerminateServiceTool",
    "StatusTool",
    "ALL_TOOL_CLASSES",
    "get_tools",
    "to_json",
]


def _json_default(obj):
    if isinstance(obj, timedelta):
        return obj.total_seconds()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def to_json(result) -> dict:
    """Round-trip *result* through JSON so it only holds plain values."""
    return json.loads(json.dumps(asdict(result), default=_json_default))


def _signal_arg(value: str):
    try:
        return parse_signal(value)
    except ValueError as exc:
        raise ArgumentTypeError(str(exc)) from None


def _add_format_arg(parser: ArgumentParser) -> None:
    parser.add_argument(
        "--format",
        choices=["text", "json"],
        default="text",
        help="Output format (default: text).",
    )


class ITool(abc.ABC):
    """Abstract base class for a zenctl tool."""

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """The name of the tool."""
        ...

    @property
    @abc.abstractmethod
    def description(self) -> str:
        """The description of the tool."""
        ...

    @abc.abstractmethod
    def register_tool(
        self, controller: ProcessLifecycleController, mcp: FastMCP
    ) -> None:
        """Register the tool with the MCP server."""
        ...

    @abc.abstractmethod
    def build_subparser(self, parser: ArgumentParser) -> None:
        """Configure the CLI subparser for the tool."""
        ...

    @abc.abstractmethod
    def call_with_args(
        self, args: Namespace, controller: ProcessLifecycleController
    ) -> int:
        """Execute the tool's CLI command and return the exit code."""
        ...


class ListServiceTool(ITool):
    """Tool to list the server's running processes."""

    name = "list"
    description = "List the running server processes with their PID and uptime."

    @staticmethod
    def _apply(controller: ProcessLifecycleController) -> ListServiceResult:
        logger.debug("list called")
        return controller.list()

    def register_tool(
        self, controller: ProcessLifecycleController, mcp: FastMCP
    ) -> None:
        def list() -> ListServiceResult:
            return self._apply(controller)

        mcp.add_tool(
            FunctionTool.from_function(
                list, name=self.name, description=self.description
            )
        )

    def build_subparser(self, parser: ArgumentParser) -> None:
        _add_format_arg(parser)

    def call_with_args(
        self, args: Namespace, controller: ProcessLifecycleController
    ) -> int:
        result = self._apply(controller)
        if args.format == "json":
            print_json(to_json(result))
            return 0

        report = controller.describe(result.processes)
        for line in process_report_lines(report):
            print_status(line.level, line.message)
        return 0


class TerminateServiceTool(ITool):
    """Tool to signal every running server process."""

    name = "terminate"
    description = (
        "Send a termination signal (default SIGTERM) to every running server "
        "process and report a per-process outcome."
    )

    @staticmethod
    def _apply(
        controller: ProcessLifecycleController,
        signal: str = "TERM",
        wait: float | None = None,
        processes: list[ServiceProcess] | None = None,
    ) -> TerminateServiceResult:
        sig = parse_signal(signal)
        logger.info("terminate called – signal=%s wait=%s", sig.name, wait)
        return controller.terminate(sig, wait=wait, processes=processes)

    def register_tool(
        self, controller: ProcessLifecycleController, mcp: FastMCP
    ) -> None:
        def terminate(
            signal: str = "TERM", wait: float | None = None
        ) -> TerminateServiceResult:
            return self._apply(controller, signal, wait)

        mcp.add_tool(
            FunctionTool.from_function(
                terminate, name=self.name, description=self.description
            )
        )

    def build_subparser(self, parser: ArgumentParser) -> None:
        parser.add_argument(
            "--signal",
            type=_signal_arg,
            default="TERM",
            help="Signal name or number to send (default: TERM).",
        )
        parser.add_argument(
            "--wait",
            type=float,
            default=None,
            metavar="SECONDS",
            help="Wait up to SECONDS for the processes to exit.",
        )
        _add_format_arg(parser)

    def call_with_args(
        self, args: Namespace, controller: ProcessLifecycleController
    ) -> int:
        processes = controller.find()
        if args.format == "text" and processes:
            count = len(processes)
            noun = "process" if count == 1 else "processes"
            print_rich(f"Found {count} server {noun}:")
            for line in process_report_lines(controller.describe(processes))[1:]:
                print_status(line.level, line.message)
            print()
            print_rich("Stopping server processes...")

        result = self._apply(controller, args.signal, args.wait, processes)
        if args.format == "json":
            print_json(to_json(result))
        else:
            for line in terminate_result_lines(result):
                print_status(line.level, line.message)
        if result.failed:
            CLI_LOGGER.error("One or more processes could not be signalled")
            return 1
        return 0


class StatusTool(ITool):
    """Tool to report on the whole installation."""

    name = "status"
    description = (
        "Report environment, process, log, dependency and client configuration "
        "status for the server installation."
    )

    @staticmethod
    def _apply(controller: ProcessLifecycleController) -> StatusReport:
        logger.debug("status called")
        return StatusChecker(controller.config, controller).run()

    def register_tool(
        self, controller: ProcessLifecycleController, mcp: FastMCP
    ) -> None:
        def status() -> StatusReport:
            return self._apply(controller)

        mcp.add_tool(
            FunctionTool.from_function(
                status, name=self.name, description=self.description
            )
        )

    def build_subparser(self, parser: ArgumentParser) -> None:
        _add_format_arg(parser)

    def call_with_args(
        self, args: Namespace, controller: ProcessLifecycleController
    ) -> int:
        report = self._apply(controller)
        if args.format == "json":
            print_json(to_json(report))
            return 0
        render_status_report(report)
        return 0


def render_status_report(report: StatusReport) -> None:
    print_header("Zen MCP Server Status Check")
    if report.version:
        print_info(f"Version: {report.version}")
    else:
        print_warning("Version file not found")
    for section in report.sections:
        print()
        print_rich(f"[bold]{section.title}:[/bold]")
        print("-" * (len(section.title) + 1))
        for line in section.lines:
            print_status(line.level, line.message)
    print()
    print_rich("Quick actions:")
    for command, help_text in QUICK_ACTIONS:
        print(f"  {command:<18} - {help_text}")


ALL_TOOL_CLASSES = [ListServiceTool, TerminateServiceTool, StatusTool]


def get_tools() -> list[ITool]:
    return [tool_cls() for tool_cls in ALL_TOOL_CLASSES]
