"""
ZenCtl: inspect, test and stop a Zen MCP server installation.

This package finds the server's OS processes by their command line, reports
on the health of the installation, and signals the server to shut down.
"""

from .config import ServiceConfig
from .process_manager import ProcessLifecycleController, matches_signature
from .process_types import (
    ProcessReport,
    ServiceProcess,
    ServiceState,
    StopOutcome,
    StopResult,
)

# Package metadata
__version__ = "0.1.0"

# Public API
__all__ = [
    "ServiceConfig",
    "ProcessLifecycleController",
    "matches_signature",
    "ProcessReport",
    "ServiceProcess",
    "ServiceState",
    "StopOutcome",
    "StopResult",
]
