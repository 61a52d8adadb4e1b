"""
Parsing of runner lifecycle events recorded as JSON Lines.

Each line is one event:

    {"event": "begin", "total_tests": 45, "workers": 4, "output_dir": "test-results", "projects": ["chromium"]}
    {"event": "test_end", "test": {...}, "result": {...}}
    {"event": "stdout", "chunk": "..."}
    {"event": "end", "status": "passed"}

Records are validated here so the reporter only ever sees well-formed data.
"""

import base64
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional, Union

from .models import Attachment, Chunk, TestCase, TestError, TestResult, TestStatus

logger = logging.getLogger(__name__)


class EventError(ValueError):
    """A recorded event is malformed."""


@dataclass
class BeginEvent:
    total_tests: int
    workers: int = 1
    output_dir: Optional[str] = None
    project_names: list[str] = field(default_factory=list)


@dataclass
class TestEndEvent:
    test: TestCase
    result: TestResult


@dataclass
class OutputEvent:
    stream: str
    chunk: Chunk


@dataclass
class EndEvent:
    status: str = "passed"


Event = Union[BeginEvent, TestEndEvent, OutputEvent, EndEvent]


def _require(record: dict, key: str, context: str):
    if key not in record:
        raise EventError(f"{context}: missing field '{key}'")
    return record[key]


def _int(value, name: str, minimum: int = 0) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        raise EventError(f"{name} must be an integer >= {minimum}, got {value!r}")
    return value


def _duration(value, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise EventError(f"{name} must be a non-negative number, got {value!r}")
    return value


def _list(record: dict, key: str, context: str) -> list:
    if key not in record:
        return []
    value = record[key]
    if not isinstance(value, list):
        raise EventError(f"{context}.{key} must be a list, got {value!r}")
    return value


def _optional_str(value, name: str) -> Optional[str]:
    if value is not None and not isinstance(value, str):
        raise EventError(f"{name} must be a string, got {value!r}")
    return value


def _chunk(value) -> Chunk:
    """A chunk is text, or {"base64": "..."} for raw bytes."""
    if isinstance(value, str):
        return value
    if isinstance(value, dict) and "base64" in value:
        try:
            return base64.b64decode(value["base64"])
        except (TypeError, ValueError) as e:
            raise EventError(f"Invalid base64 output chunk: {e}")
    raise EventError(f"Output chunks must be strings or {{'base64': ...}}, got {value!r}")


def parse_status(value) -> TestStatus:
    try:
        return TestStatus(value)
    except ValueError:
        valid = ", ".join(s.value for s in TestStatus)
        raise EventError(f"Unknown test status {value!r} (expected one of: {valid})")


def parse_test(record: dict) -> TestCase:
    if not isinstance(record, dict):
        raise EventError(f"test must be an object, got {record!r}")
    title = str(_require(record, "title", "test"))
    title_path = record.get("title_path") or [title]
    if not isinstance(title_path, list):
        raise EventError(f"test.title_path must be a list, got {title_path!r}")
    return TestCase(
        title=title,
        title_path=[str(part) for part in title_path],
        file=str(_require(record, "file", "test")),
        line=_int(record.get("line", 0), "test.line"),
        project=record.get("project") or None,
    )


def parse_result(record: dict) -> TestResult:
    if not isinstance(record, dict):
        raise EventError(f"result must be an object, got {record!r}")
    error = record.get("error")
    if error is not None:
        if not isinstance(error, dict):
            raise EventError(f"result.error must be an object, got {error!r}")
        error = TestError(message=_optional_str(error.get("message"), "result.error.message"),
                          stack=_optional_str(error.get("stack"), "result.error.stack"))
    return TestResult(
        status=parse_status(_require(record, "status", "result")),
        duration_ms=_duration(record.get("duration", 0), "result.duration"),
        retry=_int(record.get("retry", 0), "result.retry"),
        max_retries=_int(record.get("max_retries", 0), "result.max_retries"),
        error=error,
        stdout=[_chunk(c) for c in _list(record, "stdout", "result")],
        stderr=[_chunk(c) for c in _list(record, "stderr", "result")],
        attachments=[
            Attachment(name=str(a.get("name") or "attachment"),
                       path=_optional_str(a.get("path"), "result.attachments.path"))
            for a in _list(record, "attachments", "result")
            if isinstance(a, dict)
        ],
    )


def parse_event(record: dict) -> Event:
    """Convert one decoded JSON record into a typed event."""
    if not isinstance(record, dict):
        raise EventError(f"Event must be an object, got {record!r}")
    kind = _require(record, "event", "event")
    if kind == "begin":
        projects = record.get("projects", [])
        if not isinstance(projects, list):
            raise EventError(f"projects must be a list, got {projects!r}")
        return BeginEvent(
            total_tests=_int(_require(record, "total_tests", "begin"), "total_tests"),
            workers=_int(record.get("workers", 1), "workers", minimum=1),
            output_dir=record.get("output_dir"),
            project_names=[str(p) for p in projects],
        )
    if kind == "test_end":
        return TestEndEvent(test=parse_test(_require(record, "test", "test_end")),
                            result=parse_result(_require(record, "result", "test_end")))
    if kind in ("stdout", "stderr"):
        return OutputEvent(stream=kind, chunk=_chunk(_require(record, "chunk", kind)))
    if kind == "end":
        return EndEvent(status=str(record.get("status", "passed")))
    raise EventError(f"Unknown event type {kind!r}")


def read_events(path: Path) -> Iterator[Event]:
    """Yield typed events from a JSON Lines file, skipping blank lines."""
    with open(path, encoding="utf-8") as f:
        for lineno, line in enumerate(f, 1):
            if not line.strip():
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError as e:
                raise EventError(f"{path}:{lineno}: invalid JSON: {e}")
            try:
                yield parse_event(record)
            except EventError as e:
                raise EventError(f"{path}:{lineno}: {e}")
