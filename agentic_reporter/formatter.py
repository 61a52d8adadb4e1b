"""
XML/Markdown report formatting.

Every element is rendered as a string; the reporter decides where and when
it is written. Attribute values and short text are XML-escaped, while the
failure context is Markdown inside a CDATA section.
"""

from typing import Iterable, Optional

from .models import FailureRecord, SlowTestRecord, TestCase
from .sanitizer import escape_cdata, escape_xml


def format_ms(value: float) -> str:
    return f"{round(value)}ms"


def build_markdown_context(record: FailureRecord) -> str:
    """Build the Markdown body of a failure block."""
    lines = [
        f"**Test:** {record.title}",
        f"**File:** `{record.file_name}:{record.line}`",
        f"**Duration:** {format_ms(record.duration_ms)}",
        "",
    ]

    if record.stack:
        lines += ["**Error Stack:**", "```text", record.stack, "```", ""]

    if record.logs:
        window = "all" if record.max_log_lines is None else f"last {record.max_log_lines}"
        lines += [f"**Console Logs ({window}):**", "```text", record.logs, "```", ""]

    if record.attachments:
        lines += ["**Attachments:**", record.attachments, ""]

    lines.append(f"**Hint:** {record.hint}")

    if record.details_path:
        lines += ["", f"**Full Details:** {record.details_path}"]

    return "\n".join(lines)


def format_failure(record: FailureRecord) -> str:
    """Format one failure as an XML block with a CDATA-wrapped Markdown context."""
    markdown = escape_cdata(build_markdown_context(record))
    details_tag = (
        f"\n    <details_file>{escape_xml(record.details_path)}</details_file>"
        if record.details_path else ""
    )
    return (
        f'  <failure id="{record.failure_id}" type="{escape_xml(record.error_type)}" '
        f'file="{escape_xml(record.file_name)}" line="{record.line}" '
        f'duration="{format_ms(record.duration_ms)}" retry="{record.retry}">\n'
        f"    <error_summary>{escape_xml(record.error_message)}</error_summary>\n"
        f"    <context_markdown><![CDATA[\n"
        f"{markdown}\n"
        f"    ]]></context_markdown>\n"
        f"    <reproduce_command>{escape_xml(record.reproduce_command)}</reproduce_command>"
        f"{details_tag}\n"
        f"  </failure>"
    )


def format_attachments(attachments) -> str:
    """Markdown list of attachments that have a path on disk."""
    return "\n".join(
        f"- {attachment.name or 'attachment'}: `{attachment.path}`"
        for attachment in attachments
        if attachment.path
    )


def format_header(total_tests: int, workers: int, project: str) -> str:
    return (
        "<test_run>\n"
        f'  <suite_info total="{total_tests}" workers="{workers}" project="{escape_xml(project)}" />'
    )


def format_previous_reports_warning(file_names: Iterable[str]) -> str:
    """Warn that failure reports from an earlier run are still present."""
    file_names = sorted(file_names)
    items = "\n".join(f"    <report>{escape_xml(name)}</report>" for name in file_names)
    return (
        f'  <previous_failures_warning count="{len(file_names)}">\n'
        "    Failure reports from a previous run exist. Fix those failures before a full regression run.\n"
        f"{items}\n"
        "  </previous_failures_warning>"
    )


def format_overflow_warning(max_failures: Optional[int], suppressed_count: int) -> str:
    return (
        f'  <overflow_warning limit="{max_failures}" suppressed="{suppressed_count}">\n'
        f"    Max failure limit ({max_failures}) reached. Execution aborted. Fix the above issues first.\n"
        "  </overflow_warning>"
    )


def format_flaky_tests(flaky_tests: list[tuple[TestCase, int]]) -> str:
    items = "\n".join(
        f'    <test title="{escape_xml(test.title)}" file="{escape_xml(test.file)}" retries="{retry}" />'
        for test, retry in flaky_tests
    )
    return f'  <flaky_tests count="{len(flaky_tests)}">\n{items}\n  </flaky_tests>'


def format_slow_tests(slow_tests: list[SlowTestRecord], std_devs: float) -> str:
    threshold = format_ms(slow_tests[0].threshold_ms)
    items = "\n".join(
        f'    <test title="{escape_xml(r.title)}" file="{escape_xml(r.file)}" '
        f'duration="{format_ms(r.duration_ms)}" deviation="+{format_ms(r.deviation_ms)}" />'
        for r in slow_tests
    )
    return (
        f'  <slow_tests count="{len(slow_tests)}" threshold="{threshold}" std_devs="{std_devs:g}">\n'
        f"{items}\n"
        "  </slow_tests>"
    )


def format_console_warnings(warnings: list[tuple[TestCase, str]]) -> str:
    items = "\n".join(
        f'    <warning title="{escape_xml(test.title)}" file="{escape_xml(test.file)}">'
        f"{escape_xml(text)}</warning>"
        for test, text in warnings
    )
    return f'  <console_warnings count="{len(warnings)}">\n{items}\n  </console_warnings>'


def format_summary(status: str, passed: int, failed: int, skipped: int,
                   flaky: int, duration_ms: float) -> str:
    return (
        f'  <result_summary status="{escape_xml(status)}" passed="{passed}" failed="{failed}" '
        f'skipped="{skipped}" flaky="{flaky}" duration="{format_ms(duration_ms)}" />\n'
        "</test_run>"
    )
