"""
Run aggregation: the stateful core of the reporter.

The runner calls on_begin once, on_test_end for every finished attempt, and
on_end once. Passing tests produce no output; only the final failing attempt
of a test is reported, and a run stops after `max_failures` failures to keep
the report within an agent's context budget.
"""

import dataclasses
import logging
import os
import re
import sys
from typing import Callable, Iterable, Optional, TextIO

from .config import DEFAULT_OUTPUT_DIR, ReporterOptions
from .detail_files import DetailFileManager, details_file_name, scan_report_files
from .failure_builder import UNKNOWN_ERROR, build_failure_views
from .formatter import (
    format_console_warnings,
    format_failure,
    format_flaky_tests,
    format_header,
    format_overflow_warning,
    format_previous_reports_warning,
    format_slow_tests,
    format_summary,
)
from .log_window import extract_lines, render_window
from .models import Chunk, ErrorType, FailureRecord, RunState, TestCase, TestResult, TestStatus
from .outliers import detect_slow_tests
from .sanitizer import identity_for
from .summary import render_run_summary

logger = logging.getLogger(__name__)

DEFAULT_PROJECT = "default"
OVERFLOW_STATUS = "failed"
OVERFLOW_EXIT_CODE = 1

WARNING_PATTERN = re.compile(r"\bwarn(ing)?\b|deprecat", re.IGNORECASE)


class AgenticReporter:
    """Streams a compact XML/Markdown report of a test run."""

    def __init__(self, options: Optional[ReporterOptions] = None,
                 exit_func: Callable[[int], None] = sys.exit, **overrides):
        if options is None:
            options = ReporterOptions.from_mapping(overrides)
        elif overrides:
            options = dataclasses.replace(options, **overrides)
        self.options = options
        self._exit = exit_func
        self.state: Optional[RunState] = None
        self.files: Optional[DetailFileManager] = None

    @property
    def output_stream(self) -> TextIO:
        return self.options.output_stream or sys.stdout

    def on_begin(self, total_tests: int, workers: int = 1,
                 output_dir: Optional[str] = None, project_names: Iterable[str] = ()):
        """Start a run: pre-scan previous reports and emit the header."""
        project = next((name for name in project_names if name), DEFAULT_PROJECT)
        state = RunState(
            output_directory=str(output_dir or DEFAULT_OUTPUT_DIR),
            project_name=project,
            total_tests=total_tests,
            workers=workers,
        )
        state.existing_report_files = scan_report_files(state.output_directory)
        state.previous_report_files = sorted(state.existing_report_files)
        self.state = state
        self.files = DetailFileManager(state)

        self._write(format_header(total_tests, workers, project))
        if self.options.check_previous_reports and state.previous_report_files:
            self._write(format_previous_reports_warning(state.previous_report_files))

    def on_stdout(self, chunk: Chunk, test: Optional[TestCase] = None,
                  result: Optional[TestResult] = None):
        # Output is read from result.stdout when a test fails
        pass

    def on_stderr(self, chunk: Chunk, test: Optional[TestCase] = None,
                  result: Optional[TestResult] = None):
        pass

    def on_test_end(self, test: TestCase, result: TestResult):
        state = self._require_state()
        if state.terminated:
            return
        state.total_duration_ms += result.duration_ms
        identity = identity_for(test.title_path)

        if result.status is TestStatus.SKIPPED:
            state.skipped_count += 1
            state.skipped_tests.append(test)
            return

        if result.status is TestStatus.PASSED:
            state.durations.append((test, result.duration_ms))
            if result.retry == 0:
                state.passed_count += 1
                if self.options.enable_detailed_report:
                    self.files.retract(identity)
            else:
                self._record_flaky(test, result, identity)
            self._collect_warnings(test, result)
            return

        if not result.is_final_attempt:
            logger.debug(f"Attempt {result.retry} of {test.title!r} failed; "
                         f"waiting for retry {result.retry + 1}/{result.max_retries}")
            return

        state.durations.append((test, result.duration_ms))
        self._record_failure(test, result, identity)

    def on_end(self, status="passed"):
        """Wait for pending file operations, then emit the closing summaries."""
        state = self._require_state()
        if state.terminated:
            return
        status = getattr(status, "value", status)
        slow_tests = detect_slow_tests(state.durations, self.options.slow_test_std_devs)

        if self.options.write_summary_file:
            self.files.write_summary(render_run_summary(
                state, slow_tests, self.options.slow_test_std_devs,
                link_details=self.options.enable_detailed_report,
            ))
        self.files.wait_all()

        if state.suppressed_count > 0:
            self._write(format_overflow_warning(self.options.max_failures, state.suppressed_count))
        if state.flaky_tests:
            self._write(format_flaky_tests(state.flaky_tests))
        if slow_tests:
            self._write(format_slow_tests(slow_tests, self.options.slow_test_std_devs))
        if state.warnings:
            self._write(format_console_warnings(state.warnings))
        self._write(format_summary(str(status), state.passed_count, state.failure_count,
                                   state.skipped_count, state.flaky_count, state.total_duration_ms))

    def _record_flaky(self, test: TestCase, result: TestResult, identity: str):
        """A pass on retry. Any failure counted for this test is taken back;
        its detail file stays as evidence of the flakiness."""
        state = self.state
        state.flaky_count += 1
        state.flaky_tests.append((test, result.retry))
        contributed = state.failed_attempt_counts_by_id.pop(identity, 0)
        if contributed:
            state.failure_count -= contributed
            state.failed_tests = [(t, i) for t, i in state.failed_tests if i != identity]

    def _record_failure(self, test: TestCase, result: TestResult, identity: str):
        state = self.state
        limit = self.options.max_failures
        if limit is not None and state.failure_count + 1 > limit:
            state.suppressed_count += 1
            if self.options.exit_on_max_failures:
                self._terminate()
            return

        state.failure_count += 1
        state.failed_attempt_counts_by_id[identity] = state.failed_attempt_counts_by_id.get(identity, 0) + 1
        state.failed_tests.append((test, identity))
        self._emit_failure(test, result, identity)

    def _emit_failure(self, test: TestCase, result: TestResult, identity: str):
        details_path = None
        if self.options.enable_detailed_report:
            details_path = self.files.path_for(details_file_name(identity))
        try:
            views = build_failure_views(test, result, identity, self.options,
                                        self.state.project_name, details_path)
        except Exception:
            logger.exception(f"Failed to build failure report for {test.title!r}")
            self._write(format_failure(self._fallback_record(test, result, identity)))
            return

        if views.full is not None:
            self.files.persist(identity, format_failure(views.full))
        self._write(format_failure(views.bounded))

    @staticmethod
    def _fallback_record(test: TestCase, result: TestResult, identity: str) -> FailureRecord:
        message = (result.error.message if result.error else None) or UNKNOWN_ERROR
        return FailureRecord(
            failure_id=identity,
            error_type=ErrorType.UNKNOWN.value,
            file_name=os.path.basename(test.file),
            line=test.line,
            duration_ms=result.duration_ms,
            retry=result.retry,
            error_message=str(message),
            stack="",
            logs="",
            attachments="",
            hint="The reporter could not build the full context for this failure.",
            title=test.title,
            reproduce_command="",
        )

    def _collect_warnings(self, test: TestCase, result: TestResult):
        lines = extract_lines(result.stdout, result.stderr, self.options.max_log_lines,
                              predicate=WARNING_PATTERN.search)
        if lines:
            self.state.warnings.append(
                (test, render_window(lines, self.options.max_log_lines, self.options.max_log_chars)))

    def _terminate(self):
        """Overflow: close the report and exit right away.

        Queued file operations are cancelled; ones already running finish on
        their own.
        """
        state = self.state
        state.terminated = True
        self._write(format_overflow_warning(self.options.max_failures, state.suppressed_count))
        self._write(format_summary(OVERFLOW_STATUS, state.passed_count, state.failure_count,
                                   state.skipped_count, state.flaky_count, state.total_duration_ms))
        self.files.abandon()
        self._exit(OVERFLOW_EXIT_CODE)

    def _require_state(self) -> RunState:
        if self.state is None:
            raise RuntimeError("on_begin must be called before other reporter events")
        return self.state

    def _write(self, content: str):
        stream = self.output_stream
        stream.write(content + "\n")
        flush = getattr(stream, "flush", None)
        if flush is not None:
            flush()
