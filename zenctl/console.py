import os
import re

from rich import print as rich_print, print_json as rich_print_json
from rich.console import Console
from rich.markup import escape

from .process_types import StatusLevel

# Cross-platform output helpers that use Rich on Unix but plain output on Windows

_MARKERS = {
    StatusLevel.SUCCESS: ("green", "✓"),
    StatusLevel.ERROR: ("red", "✗"),
    StatusLevel.WARNING: ("yellow", "⚠"),
    StatusLevel.INFO: ("blue", "ℹ"),
}


def print_rule(title: str = "") -> None:
    """Print a horizontal rule with optional title."""
    if os.name == "nt":
        if title:
            print(f"--- {title} ---")
        else:
            print("-" * 50)
    else:
        console = Console()
        if title:
            console.rule(f"[bold]{escape(title)}[/bold]")
        else:
            console.rule()


def print_header(title: str) -> None:
    """Print *title* underlined with ``=``, preceded by a blank line."""
    print()
    print_rich(f"[bold]{escape(title)}[/bold]")
    print("=" * len(title))


def print_json(data) -> None:
    """Print JSON data with formatting."""
    if os.name == "nt":
        import json

        print(json.dumps(data, indent=2))
    else:
        rich_print_json(data=data)


def print_rich(*args, **kwargs) -> None:
    """Print with Rich formatting on Unix, plain on Windows."""
    if os.name == "nt":
        plain_args = [
            re.sub(r"\[/?[^\]]*\]", "", arg) if isinstance(arg, str) else arg
            for arg in args
        ]
        print(*plain_args)
    else:
        rich_print(*args, **kwargs)


def print_status(level: StatusLevel, message: str) -> None:
    colour, marker = _MARKERS[level]
    print_rich(f"[{colour}]{marker}[/{colour}] {escape(message)}")


def print_success(message: str) -> None:
    print_status(StatusLevel.SUCCESS, message)


def print_error(message: str) -> None:
    print_status(StatusLevel.ERROR, message)


def print_warning(message: str) -> None:
    print_status(StatusLevel.WARNING, message)


def print_info(message: str) -> None:
    print_status(StatusLevel.INFO, message)
