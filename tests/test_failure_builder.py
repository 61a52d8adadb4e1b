"""Tests for failure record assembly."""

from agentic_reporter.config import ReporterOptions
from agentic_reporter.failure_builder import (
    UNKNOWN_ERROR,
    build_failure_views,
    build_reproduce_command,
)
from agentic_reporter.models import Attachment


class TestReproduceCommand:
    """Tests for build_reproduce_command()."""

    def test_default_template(self, make_test):
        command = build_reproduce_command(make_test(), "chromium", ReporterOptions())
        assert command == "npx playwright test tests/example.spec.ts:10 --project=chromium"

    def test_custom_template(self, make_test):
        options = ReporterOptions(reproduce_command_template="pytest {file}::{title}")
        assert build_reproduce_command(make_test(), "p", options) == (
            "pytest tests/example.spec.ts::should fail"
        )

    def test_callback(self, make_test):
        options = ReporterOptions(reproduce_command=lambda t: f"run {t['file']}:{t['line']}")
        assert build_reproduce_command(make_test(), "p", options) == "run tests/example.spec.ts:10"

    def test_failing_callback_uses_template(self, make_test):
        def broken(data):
            raise RuntimeError("nope")
        options = ReporterOptions(reproduce_command=broken)
        assert build_reproduce_command(make_test(), "p", options).startswith("npx playwright test")

    def test_bad_template_uses_default(self, make_test):
        options = ReporterOptions(reproduce_command_template="run {missing}")
        assert build_reproduce_command(make_test(), "p", options).startswith("npx playwright test")


class TestBuildFailureViews:
    """Tests for build_failure_views()."""

    def test_bounded_only(self, make_test, make_result):
        views = build_failure_views(make_test(), make_result(message="Timeout 30000ms exceeded"),
                                    "id", ReporterOptions(), "default")
        assert views.full is None
        record = views.bounded
        assert record.error_type == "timeout"
        assert record.file_name == "example.spec.ts"
        assert record.logs == "console log 1\nconsole log 2\nconsole error 1"
        assert record.reproduce_command.endswith("--project=default")

    def test_project_from_test(self, make_test, make_result):
        views = build_failure_views(make_test(project="firefox"), make_result(), "id",
                                    ReporterOptions(), "default")
        assert views.bounded.reproduce_command.endswith("--project=firefox")

    def test_missing_error(self, make_test, make_result):
        views = build_failure_views(make_test(), make_result(message=None, stack=None), "id",
                                    ReporterOptions(), "default")
        assert views.bounded.error_message == UNKNOWN_ERROR
        assert views.bounded.error_type == "unknown"
        assert views.bounded.stack == ""

    def test_full_view_is_unbounded(self, make_test, make_result):
        stdout = [f"line {i}\n" for i in range(30)]
        stack = "Error: x\n" + "\n".join(f"    at f{i} (a.ts:{i}:1)" for i in range(20))
        result = make_result(stdout=stdout, stderr=(), stack=stack)
        options = ReporterOptions(max_log_lines=3, max_stack_frames=4)
        views = build_failure_views(make_test(), result, "id", options, "default",
                                    details_path="out/id-details.xml")

        assert views.bounded.logs == "line 27\nline 28\nline 29"
        assert len(views.bounded.stack.split("\n")) == 4
        assert views.bounded.details_path == "out/id-details.xml"

        assert len(views.full.logs.split("\n")) == 30
        assert len(views.full.stack.split("\n")) == 21
        assert views.full.max_log_lines is None
        assert views.full.details_path is None

    def test_bounded_view_matches_direct_extraction(self, make_test, make_result):
        result = make_result(stdout=[f"{i}\n" for i in range(10)])
        options = ReporterOptions()
        direct = build_failure_views(make_test(), result, "id", options, "default")
        derived = build_failure_views(make_test(), result, "id", options, "default",
                                      details_path="d")
        assert direct.bounded.logs == derived.bounded.logs
        assert direct.bounded.stack == derived.bounded.stack

    def test_attachments(self, make_test, make_result):
        result = make_result(attachments=[Attachment(name="screenshot", path="/tmp/s.png")])
        views = build_failure_views(make_test(), result, "id", ReporterOptions(), "default")
        assert "screenshot" in views.bounded.attachments

        options = ReporterOptions(include_attachments=False)
        views = build_failure_views(make_test(), result, "id", options, "default")
        assert views.bounded.attachments == ""
