import io

import pytest

from agentic_reporter.config import ReporterOptions
from agentic_reporter.models import TestCase, TestError, TestResult, TestStatus
from agentic_reporter.reporter import AgenticReporter


def _make_test(title="should fail", file="tests/example.spec.ts", line=10,
               title_path=None, project=None):
    return TestCase(
        title=title,
        title_path=title_path or ["tests", "example.spec.ts", title],
        file=file,
        line=line,
        project=project,
    )


def _make_result(status="failed", duration=100, retry=0, max_retries=0,
                 message="Test failed", stack="Error: Test failed\n    at tests/example.spec.ts:10:5",
                 stdout=("console log 1\n", "console log 2\n"), stderr=("console error 1\n",),
                 attachments=()):
    status = TestStatus(status)
    error = None
    if status.is_failure and (message is not None or stack is not None):
        error = TestError(message=message, stack=stack)
    return TestResult(
        status=status,
        duration_ms=duration,
        retry=retry,
        max_retries=max_retries,
        error=error,
        stdout=list(stdout),
        stderr=list(stderr),
        attachments=list(attachments),
    )


@pytest.fixture
def make_test():
    return _make_test


@pytest.fixture
def make_result():
    return _make_result


class ExitRecorder:
    """Stands in for sys.exit and records the requested status codes."""

    def __init__(self):
        self.calls = []

    def __call__(self, code):
        self.calls.append(code)


@pytest.fixture
def exit_recorder():
    return ExitRecorder()


@pytest.fixture
def stream():
    return io.StringIO()


@pytest.fixture
def make_reporter(stream, exit_recorder):
    def factory(**overrides):
        options = ReporterOptions(output_stream=stream, **overrides)
        return AgenticReporter(options, exit_func=exit_recorder)
    return factory
