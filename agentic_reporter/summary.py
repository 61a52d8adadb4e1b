"""Markdown run overview written next to the detail files."""

from .detail_files import details_file_name
from .models import RunState, SlowTestRecord
from .formatter import format_ms


def render_run_summary(state: RunState, slow_tests: list[SlowTestRecord],
                       std_devs: float, link_details: bool = True) -> str:
    """Render the ai-start-here.md overview for a finished run."""
    lines = [
        "# AI Test Run Summary",
        "",
        "Overview of the test run: failures, flaky tests and performance issues.",
        "",
        f"Passed: {state.passed_count}, failed: {state.failure_count}, "
        f"skipped: {state.skipped_count}, flaky: {state.flaky_count}, "
        f"duration: {format_ms(state.total_duration_ms)}",
        "",
    ]

    if state.failed_tests:
        lines += ["## Failures", ""]
        for test, identity in state.failed_tests:
            if link_details:
                lines.append(f"- [{test.title}](./{details_file_name(identity)})")
            else:
                lines.append(f"- {test.title} (`{test.file}:{test.line}`)")
        if state.suppressed_count:
            lines.append(f"- ... {state.suppressed_count} more failure(s) suppressed")
        lines.append("")
    else:
        lines += ["## Failures", "No failures detected.", ""]

    if state.flaky_tests:
        lines += [
            "## Flaky Tests",
            "These tests failed initially but passed on retry. Fix the root cause of the first failure.",
            "",
        ]
        for test, retry in state.flaky_tests:
            lines.append(f"- **{test.title}** (passed after {retry} retries)")
        lines.append("")

    if slow_tests:
        lines += [
            "## Slow Tests",
            f"Tests exceeding **{format_ms(slow_tests[0].threshold_ms)}** (mean + {std_devs:g} std dev).",
            "",
            "| Test | Duration | Deviation |",
            "|---|---|---|",
        ]
        for record in slow_tests:
            lines.append(f"| {record.title} | {format_ms(record.duration_ms)} "
                         f"| +{format_ms(record.deviation_ms)} |")
        lines.append("")

    if state.skipped_tests:
        lines += ["## Skipped Tests", ""]
        lines += [f"- {test.title}" for test in state.skipped_tests]
        lines.append("")

    if state.warnings:
        lines += ["## Console Warnings", "Warnings detected in passing tests.", ""]
        for test, text in state.warnings:
            lines += [f"### {test.title}", "```text", text, "```", ""]

    return "\n".join(lines)
