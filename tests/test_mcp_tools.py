"""Tests for the MCP tool surface, driven through an in-memory fastmcp client."""

import json
import signal
from datetime import timedelta

import pytest
from fastmcp.client import Client

from zenctl.process_types import (
    ListServiceResult,
    ServiceProcess,
    ServiceState,
    StopOutcome,
)
from zenctl.serve import build_app
from zenctl.tools import (
    ListServiceTool,
    StatusTool,
    TerminateServiceTool,
    get_tools,
    to_json,
)


@pytest.mark.asyncio
async def test_app_exposes_all_tools(controller):
    async with Client(build_app(controller)) as client:
        tools = await client.list_tools()

    assert {tool.name for tool in tools} == {"list", "terminate", "status"}


async def call_json(client: Client, tool: str, args: dict | None = None):
    """Call a tool and return its JSON payload."""
    res = await client.call_tool(tool, args or {})
    # Older fastmcp returns the content list, newer a CallToolResult.
    contents = res if isinstance(res, list) else res.content
    return json.loads(contents[0].text)


@pytest.mark.asyncio
async def test_list_over_mcp(controller, config, fake_procs):
    fake_procs.add(7, ["python", str(config.entry_point_path)])

    async with Client(build_app(controller)) as client:
        data = await call_json(client, "list")

    assert data["state"] == "running"
    assert [p["pid"] for p in data["processes"]] == [7]
    assert data["warning"] is None


@pytest.mark.asyncio
async def test_terminate_over_mcp(controller, config, fake_procs):
    fake_procs.add(7, ["python", str(config.entry_point_path)])

    async with Client(build_app(controller)) as client:
        data = await call_json(client, "terminate", {"signal": "INT"})

    assert data["signal"] == "SIGINT"
    assert data["results"] == [{"pid": 7, "outcome": "stopped", "error": None}]
    assert data["still_running"] == []
    assert fake_procs.signals == [(7, signal.SIGINT)]


def test_tool_names_are_unique():
    names = [tool.name for tool in get_tools()]
    assert len(names) == len(set(names))


def test_list_apply(controller, config, fake_procs):
    fake_procs.add(7, ["python", str(config.entry_point_path)])
    result = ListServiceTool._apply(controller)
    assert result.state is ServiceState.RUNNING
    assert [p.pid for p in result.processes] == [7]


def test_terminate_apply_accepts_signal_names(controller, config, fake_procs):
    fake_procs.add(7, ["python", str(config.entry_point_path)])

    result = TerminateServiceTool._apply(controller, "KILL")

    assert result.signal == "SIGKILL"
    assert [r.outcome for r in result.results] == [StopOutcome.STOPPED]
    assert fake_procs.signals == [(7, signal.SIGKILL)]


def test_terminate_apply_rejects_unknown_signal(controller):
    with pytest.raises(ValueError, match="Unknown signal"):
        TerminateServiceTool._apply(controller, "NOPE")


def test_status_apply(controller, monkeypatch):
    from zenctl.status import StatusChecker

    monkeypatch.setattr(StatusChecker, "interpreter_version", lambda self: None)
    report = StatusTool._apply(controller)
    assert report.version == "5.8.2"
    assert report.process_report.state is ServiceState.NOT_RUNNING


def test_to_json_converts_timedelta():
    result = ListServiceResult(
        ServiceState.RUNNING,
        [ServiceProcess(7, "python server.py", timedelta(seconds=90), 1.5)],
    )
    assert to_json(result) == {
        "state": "running",
        "processes": [
            {
                "pid": 7,
                "command_line": "python server.py",
                "elapsed_runtime": 90.0,
                "create_time": 1.5,
            }
        ],
        "warning": None,
    }
