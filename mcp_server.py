#!/usr/bin/env python3
"""
MCP Server for the Agentic Test Reporter.
Lets an agent read failure reports left by a test run and replay recorded runs.
"""

import io
import json
import logging
import os

from fastmcp import FastMCP

import core
from agentic_reporter.config import options_from_config
from agentic_reporter.events import EventError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# FastMCP server
mcp = FastMCP("agentic-test-reporter")


@mcp.tool(
    name="list_failure_reports",
    description="""List the per-failure detail files left by the last test run.
        Each failing test leaves one <id>-details.xml file; it is removed when the test passes again.
        Args:
            output_dir: Report directory (uses the configured default if not specified)
    """
)
async def list_failure_reports(output_dir: str = None) -> str:
    result = core.list_failure_reports(output_dir)
    return json.dumps(result, indent=2)


@mcp.tool(
    name="read_failure_report",
    description="""Read the full, untruncated report of one failing test.
        Args:
            name: Report file name as returned by list_failure_reports
            output_dir: Report directory (uses the configured default if not specified)
    """
)
async def read_failure_report(name: str, output_dir: str = None) -> str:
    result = core.read_failure_report(name, output_dir)
    return json.dumps(result, indent=2)


@mcp.tool(
    name="read_run_summary",
    description="""Read the Markdown overview of the last run: failures, flaky tests,
        slow tests, skipped tests and console warnings.
        Args:
            output_dir: Report directory (uses the configured default if not specified)
    """
)
async def read_run_summary(output_dir: str = None) -> str:
    result = core.read_run_summary(output_dir)
    return json.dumps(result, indent=2)


@mcp.tool(
    name="replay_event_log",
    description="""Replay a recorded JSON Lines event log and return the streamed report.
        The server keeps running if the failure limit is exceeded; the report then ends
        with an overflow warning.
        Args:
            events: Path to the event log
            max_failures: Failures before the run is cut short (default from config)
    """
)
async def replay_event_log(events: str, max_failures: int = None) -> str:
    overrides = {"max_failures": max_failures} if max_failures is not None else {}
    options = options_from_config(**overrides)
    buffer = io.StringIO()
    try:
        core.replay_events(events, options=options, output_stream=buffer,
                           exit_func=lambda code: None)
    except (OSError, EventError) as e:
        logger.error(f"Error in replay_event_log: {e}")
        return json.dumps({"error": str(e)})
    return buffer.getvalue()


if __name__ == "__main__":
    port = int(os.getenv("FASTMCP_PORT", "8978"))
    mcp.run(transport="sse", host="0.0.0.0", port=port)
