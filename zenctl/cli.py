import argparse
import logging
import sys
from pathlib import Path

from .config import (
    ServiceConfig,
    get_default_data_dir,
    get_default_entry_point,
    get_default_root,
)
from .console import (
    print_error,
    print_header,
    print_info,
    print_rich,
    print_status,
    print_success,
    print_warning,
)
from .logging_utils import CLI_LOGGER_NAME, setup_logging
from .process_manager import ProcessLifecycleController
from .process_types import (
    SelfTestResult,
    StatusReport,
    SuiteResult,
    SuiteStep,
    TerminateServiceResult,
)
from .selftest import SelfTest
from .serve import serve
from .suite import SuiteReporter, TestSuite
from .text_formatters import (
    selftest_summary_lines,
    suite_summary_lines,
    terminate_result_lines,
)
from .tools import get_tools, render_status_report

logger = logging.getLogger(__name__)
cli_logger = logging.getLogger(CLI_LOGGER_NAME)


def _add_common_args(parser: argparse.ArgumentParser, suppress: bool) -> None:
    """Shared flags, accepted before or after the subcommand.

    Subparsers use SUPPRESS defaults so they don't clobber values given
    before the subcommand.
    """

    def default(value):
        return argparse.SUPPRESS if suppress else value

    parser.add_argument(
        "--root",
        type=Path,
        default=default(get_default_root()),
        help="Installation directory of the server (default: $ZENCTL_ROOT or cwd).",
    )
    parser.add_argument(
        "--entry-point",
        default=default(get_default_entry_point()),
        help="Server entry-point file inside the root (default: server.py).",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=default(get_default_data_dir()),
        help="Directory for zenctl's own log files.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=default(0),
        help="Increase verbosity; you can use -vv for more",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        default=default(False),
        help="Only show warnings and errors.",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="zenctl",
        description="Inspect, test and stop a Zen MCP server installation",
    )
    _add_common_args(parser, suppress=False)

    subparsers = parser.add_subparsers(dest="command")

    for tool in get_tools():
        p_tool = subparsers.add_parser(tool.name, help=tool.description)
        _add_common_args(p_tool, suppress=True)
        tool.build_subparser(p_tool)

    p_selftest = subparsers.add_parser(
        "selftest", help="Run pass/fail checks against the installation"
    )
    _add_common_args(p_selftest, suppress=True)

    p_all = subparsers.add_parser(
        "test-all",
        help="Run status, selftest, terminate and a final status in sequence",
    )
    p_all.add_argument(
        "--grace",
        type=float,
        default=5.0,
        metavar="SECONDS",
        help="How long to wait for the server to exit after terminate.",
    )
    _add_common_args(p_all, suppress=True)

    p_mcp = subparsers.add_parser(
        "mcp", help="Serve the list/terminate/status tools over MCP (stdio)"
    )
    _add_common_args(p_mcp, suppress=True)

    return parser


def parse_cli(argv: list[str] | None = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def build_config(args: argparse.Namespace) -> ServiceConfig:
    return ServiceConfig(root=args.root, entry_point=args.entry_point)


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def render_selftest(result: SelfTestResult) -> None:
    print_header("Zen MCP Server Test Suite")
    group = None
    number = 0
    for check in result.checks:
        if check.group != group:
            group = check.group
            number += 1
            print()
            title = f"{number}. {group}"
            print(title)
            print("-" * len(title))
        if check.passed:
            print_success(f"Testing {check.name}... PASSED")
        else:
            suffix = f" ({check.detail})" if check.detail else ""
            print_error(f"Testing {check.name}... FAILED{suffix}")
    for warning in result.warnings:
        print_warning(warning)

    print_header("Test Summary")
    for line in selftest_summary_lines(result):
        print(line)
    print()
    if result.failed:
        print_error("Some tests failed. Run the setup script to fix setup issues.")
    else:
        print_success("All tests passed!")


def render_terminate(result: TerminateServiceResult) -> None:
    for line in terminate_result_lines(result):
        print_status(line.level, line.message)


def render_suite(result: SuiteResult) -> None:
    print_header("Test Suite Summary")
    for line in suite_summary_lines(result):
        print_status(line.level, line.message)


class ConsoleSuiteReporter(SuiteReporter):
    def step_started(self, name: str, description: str) -> None:
        print_header(f"Running {name} - {description}")

    def status(self, report: StatusReport) -> None:
        render_status_report(report)

    def selftest(self, result: SelfTestResult) -> None:
        render_selftest(result)

    def terminate(self, result: TerminateServiceResult) -> None:
        render_terminate(result)

    def step_finished(self, step: SuiteStep) -> None:
        if step.succeeded:
            print_success(f"{step.name} completed successfully")
        else:
            print_error(f"{step.name} failed: {step.detail}")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def cli(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    verbosity = -1 if args.quiet else args.verbose
    log_path = setup_logging(verbosity, args.data_dir)
    cli_logger.debug("Verbose log written to %s", log_path)

    config = build_config(args)
    controller = ProcessLifecycleController(config)
    logger.debug(
        "event=cli command=%s root=%s entry_point=%s",
        args.command,
        config.root,
        config.entry_point,
    )

    tools_by_name = {tool.name: tool for tool in get_tools()}

    if args.command in tools_by_name:
        return tools_by_name[args.command].call_with_args(args, controller)

    if args.command == "selftest":
        result = SelfTest(config, controller).run()
        render_selftest(result)
        return 1 if result.failed else 0

    if args.command == "test-all":
        print_rich("[bold]Zen MCP Server Complete Test Suite[/bold]")
        print_info("This will run all management checks in sequence")
        suite = TestSuite(
            config,
            controller,
            reporter=ConsoleSuiteReporter(),
            grace_period=args.grace,
        )
        result = suite.run()
        render_suite(result)
        return 0 if result.succeeded else 1

    if args.command == "mcp":
        serve(controller)
        return 0

    parser.print_help()
    return 1


def main() -> None:
    sys.exit(cli())
