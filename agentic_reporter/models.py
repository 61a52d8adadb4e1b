"""
Data models for the reporting engine.
"""

import re
from concurrent.futures import Future
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Pattern, Union

Chunk = Union[str, bytes]


class TestStatus(Enum):
    """Status of a single test attempt, as reported by the runner."""
    PASSED = "passed"
    FAILED = "failed"
    TIMED_OUT = "timedOut"
    SKIPPED = "skipped"
    INTERRUPTED = "interrupted"

    @property
    def is_failure(self) -> bool:
        return self in (TestStatus.FAILED, TestStatus.TIMED_OUT, TestStatus.INTERRUPTED)


class ErrorType(Enum):
    """Built-in failure categories."""
    TIMEOUT = "timeout"
    ASSERTION = "assertion"
    NETWORK = "network"
    INTERRUPTED = "interrupted"
    UNKNOWN = "unknown"


@dataclass
class Attachment:
    name: str
    path: Optional[str] = None


@dataclass
class TestError:
    message: Optional[str] = None
    stack: Optional[str] = None


@dataclass
class TestCase:
    """A test as known to the runner: its title path and source location."""
    title: str
    title_path: list[str]
    file: str
    line: int = 0
    project: Optional[str] = None


@dataclass
class TestResult:
    """The outcome of one attempt of a test."""
    status: TestStatus
    duration_ms: float = 0.0
    retry: int = 0
    max_retries: int = 0
    error: Optional[TestError] = None
    stdout: list[Chunk] = field(default_factory=list)
    stderr: list[Chunk] = field(default_factory=list)
    attachments: list[Attachment] = field(default_factory=list)

    @property
    def is_final_attempt(self) -> bool:
        return self.retry >= self.max_retries


@dataclass(frozen=True)
class HintRule:
    """A classification rule: a case-insensitive pattern, a category and a remediation hint."""
    pattern: Union[str, Pattern]
    category: str
    hint: str

    def __post_init__(self):
        if isinstance(self.pattern, str):
            object.__setattr__(self, "pattern", re.compile(self.pattern, re.IGNORECASE))

    def matches(self, message: str) -> bool:
        return self.pattern.search(message) is not None


@dataclass(frozen=True)
class Classification:
    type: str
    hint: str


@dataclass(frozen=True)
class FailureRecord:
    """Everything reported about one failing attempt."""
    failure_id: str
    error_type: str
    file_name: str
    line: int
    duration_ms: float
    retry: int
    error_message: str
    stack: str
    logs: str
    attachments: str
    hint: str
    title: str
    reproduce_command: str
    max_log_lines: Optional[int] = None
    details_path: Optional[str] = None


@dataclass(frozen=True)
class SlowTestRecord:
    title: str
    file: str
    duration_ms: float
    threshold_ms: float

    @property
    def deviation_ms(self) -> float:
        return self.duration_ms - self.threshold_ms


@dataclass
class RunState:
    """All mutable state of one run. Created at begin, finalized at end."""
    output_directory: str
    project_name: str
    total_tests: int = 0
    workers: int = 1
    passed_count: int = 0
    failure_count: int = 0
    skipped_count: int = 0
    flaky_count: int = 0
    total_duration_ms: float = 0.0
    suppressed_count: int = 0
    existing_report_files: set[str] = field(default_factory=set)
    previous_report_files: list[str] = field(default_factory=list)
    pending_file_operations: list[Future] = field(default_factory=list)
    failed_attempt_counts_by_id: dict[str, int] = field(default_factory=dict)
    # (test, result) pairs kept for the end-of-run summaries
    durations: list[tuple[TestCase, float]] = field(default_factory=list)
    failed_tests: list[tuple[TestCase, str]] = field(default_factory=list)
    flaky_tests: list[tuple[TestCase, int]] = field(default_factory=list)
    skipped_tests: list[TestCase] = field(default_factory=list)
    warnings: list[tuple[TestCase, str]] = field(default_factory=list)
    terminated: bool = False
