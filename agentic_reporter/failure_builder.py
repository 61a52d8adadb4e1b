"""Assembly of failure records from a failing test attempt."""

import logging
import os
from typing import NamedTuple, Optional

from .config import DEFAULT_REPRODUCE_TEMPLATE, ReporterOptions
from .formatter import format_attachments
from .hints import classify_error
from .log_window import extract, extract_lines, render_window
from .models import FailureRecord, TestCase, TestResult
from .sanitizer import clean_stack

logger = logging.getLogger(__name__)

UNKNOWN_ERROR = "Unknown error"


class FailureViews(NamedTuple):
    """The streamed record and, when a detail file is written, its unbounded twin."""
    bounded: FailureRecord
    full: Optional[FailureRecord]


def resolve_project(test: TestCase, default_project: str) -> str:
    return test.project or default_project


def build_reproduce_command(test: TestCase, project: str, options: ReporterOptions) -> str:
    """Command that re-runs just this test.

    A user-supplied callback wins over the template; if it fails, the
    template is used.
    """
    data = {"file": test.file, "line": test.line, "project": project, "title": test.title}
    if options.reproduce_command is not None:
        try:
            return str(options.reproduce_command(data))
        except Exception as e:
            logger.warning(f"reproduce_command callback failed for {test.title!r}: {e}")
    try:
        return options.reproduce_command_template.format(**data)
    except (KeyError, IndexError, ValueError) as e:
        logger.warning(f"Invalid reproduce_command_template: {e}; using default")
        return DEFAULT_REPRODUCE_TEMPLATE.format(**data)


def build_failure_views(test: TestCase, result: TestResult, failure_id: str,
                        options: ReporterOptions, default_project: str,
                        details_path: Optional[str] = None) -> FailureViews:
    """Build the failure record(s) for one failing attempt.

    With details_path set, the captured output and stack are processed once
    without limits and the streamed view is cut from that full view.
    """
    error = result.error
    message = (error.message if error else None) or UNKNOWN_ERROR
    raw_stack = (error.stack if error else None) or ""
    classification = classify_error(message, options.custom_hint_rules)
    attachments = format_attachments(result.attachments) if options.include_attachments else ""

    if details_path:
        full_lines = extract_lines(result.stdout, result.stderr, None)
        full_stack = clean_stack(raw_stack, None)
        logs = render_window(full_lines, options.max_log_lines, options.max_log_chars)
        stack = "\n".join(full_stack.split("\n")[:options.max_stack_frames]) if full_stack else ""
    else:
        full_lines = full_stack = None
        logs = extract(result.stdout, result.stderr, options.max_log_lines, options.max_log_chars)
        stack = clean_stack(raw_stack, options.max_stack_frames)

    common = dict(
        failure_id=failure_id,
        error_type=classification.type,
        file_name=os.path.basename(test.file),
        line=test.line,
        duration_ms=result.duration_ms,
        retry=result.retry,
        error_message=message,
        attachments=attachments,
        hint=classification.hint,
        title=test.title,
        reproduce_command=build_reproduce_command(
            test, resolve_project(test, default_project), options),
    )
    bounded = FailureRecord(stack=stack, logs=logs, max_log_lines=options.max_log_lines,
                            details_path=details_path, **common)
    full = None
    if details_path:
        full = FailureRecord(stack=full_stack, logs="\n".join(full_lines),
                             max_log_lines=None, **common)
    return FailureViews(bounded=bounded, full=full)
