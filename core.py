#!/usr/bin/env python3
"""
Core operations shared between MCP server and CLI.
Contains the logic for replaying recorded runs and inspecting failure reports.
"""

import dataclasses
import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, TextIO

from agentic_reporter.config import ReporterOptions, get_output_dir
from agentic_reporter.detail_files import DETAILS_SUFFIX, SUMMARY_FILE_NAME
from agentic_reporter.events import BeginEvent, EndEvent, OutputEvent, TestEndEvent, read_events
from agentic_reporter.models import RunState
from agentic_reporter.reporter import AgenticReporter

logger = logging.getLogger(__name__)


def _resolve_dir(output_dir: Optional[str]) -> Path:
    return Path(output_dir).expanduser() if output_dir else get_output_dir()


def dispatch(reporter: AgenticReporter, event):
    """Deliver one typed event to the reporter."""
    if isinstance(event, BeginEvent):
        reporter.on_begin(event.total_tests, event.workers, event.output_dir, event.project_names)
    elif isinstance(event, TestEndEvent):
        reporter.on_test_end(event.test, event.result)
    elif isinstance(event, OutputEvent):
        handler = reporter.on_stdout if event.stream == "stdout" else reporter.on_stderr
        handler(event.chunk)
    elif isinstance(event, EndEvent):
        reporter.on_end(event.status)
    else:
        raise TypeError(f"Unsupported event: {event!r}")


def replay_events(
    event_file: str,
    options: Optional[ReporterOptions] = None,
    output_stream: Optional[TextIO] = None,
    output_dir: Optional[str] = None,
    exit_func: Callable[[int], None] = sys.exit,
) -> RunState:
    """
    Feed a recorded event log through a reporter.

    Args:
        event_file: JSON Lines file of lifecycle events
        options: Reporter options (defaults if not specified)
        output_stream: Where the report is written (stdout if not specified)
        output_dir: Overrides the output directory named by the begin event
        exit_func: Called with the exit status when the failure limit is exceeded

    Returns:
        The reporter's final RunState
    """
    options = options or ReporterOptions()
    if output_stream is not None:
        options = dataclasses.replace(options, output_stream=output_stream)
    reporter = AgenticReporter(options, exit_func=exit_func)

    for event in read_events(Path(event_file)):
        if isinstance(event, BeginEvent) and output_dir:
            event.output_dir = output_dir
        dispatch(reporter, event)
        if reporter.state is not None and reporter.state.terminated:
            logger.info("Replay stopped: failure limit exceeded")
            break

    if reporter.state is None:
        logger.warning(f"No begin event found in {event_file}")
    return reporter.state


def list_failure_reports(output_dir: str = None) -> dict:
    """
    List detail files left by failing tests.

    Args:
        output_dir: Report directory (uses configured default if not specified)

    Returns:
        dict with the directory, report entries and whether a run summary exists
    """
    directory = _resolve_dir(output_dir)
    if not directory.exists():
        return {"output_dir": str(directory), "reports": [], "total_reports": 0,
                "has_summary": False}

    reports = []
    for path in sorted(directory.glob(f"*{DETAILS_SUFFIX}")):
        stat = path.stat()
        reports.append({
            "name": path.name,
            "size_bytes": stat.st_size,
            "modified": datetime.fromtimestamp(stat.st_mtime).isoformat(),
        })

    return {
        "output_dir": str(directory),
        "reports": reports,
        "total_reports": len(reports),
        "has_summary": (directory / SUMMARY_FILE_NAME).exists(),
    }


def read_failure_report(name: str, output_dir: str = None) -> dict:
    """
    Read one detail file.

    Args:
        name: File name as returned by list_failure_reports
        output_dir: Report directory (uses configured default if not specified)

    Returns:
        dict with the report content, or an error
    """
    if os.path.basename(name) != name or not name.endswith(DETAILS_SUFFIX):
        return {"error": f"Not a failure report name: {name}"}

    path = _resolve_dir(output_dir) / name
    try:
        content = path.read_text(encoding="utf-8", errors="replace")
    except FileNotFoundError:
        return {"error": f"Report not found: {name}", "output_dir": str(path.parent)}
    except OSError as e:
        logger.error(f"Failed to read {path}: {e}")
        return {"error": str(e)}
    return {"name": name, "path": str(path), "content": content}


def read_run_summary(output_dir: str = None) -> dict:
    """Read the Markdown overview written at the end of the last run."""
    path = _resolve_dir(output_dir) / SUMMARY_FILE_NAME
    try:
        return {"path": str(path), "content": path.read_text(encoding="utf-8", errors="replace")}
    except FileNotFoundError:
        return {"error": f"No run summary found at {path}"}
    except OSError as e:
        logger.error(f"Failed to read {path}: {e}")
        return {"error": str(e)}


def clean_failure_reports(output_dir: str = None, dry_run: bool = False) -> dict:
    """
    Delete all detail files and the run summary.

    Args:
        output_dir: Report directory (uses configured default if not specified)
        dry_run: Only report what would be deleted

    Returns:
        dict with the deleted (or to-be-deleted) file names and any failures
    """
    directory = _resolve_dir(output_dir)
    if not directory.exists():
        return {"output_dir": str(directory), "deleted": [], "failed": [], "dry_run": dry_run}

    targets = sorted(p for p in directory.iterdir()
                     if p.name.endswith(DETAILS_SUFFIX) or p.name == SUMMARY_FILE_NAME)
    deleted, failed = [], []
    for path in targets:
        if dry_run:
            deleted.append(path.name)
            continue
        try:
            path.unlink()
            deleted.append(path.name)
        except OSError as e:
            logger.warning(f"Failed to delete {path}: {e}")
            failed.append({"name": path.name, "error": str(e)})

    logger.info(f"{'Would delete' if dry_run else 'Deleted'} {len(deleted)} report files in {directory}")
    return {"output_dir": str(directory), "deleted": deleted, "failed": failed, "dry_run": dry_run}
