"""Tests for detail-file scheduling."""

import os

import pytest

from agentic_reporter import detail_files
from agentic_reporter.detail_files import (
    SUMMARY_FILE_NAME,
    DetailFileManager,
    details_file_name,
    scan_report_files,
    write_atomic,
)
from agentic_reporter.models import RunState


def _manager(tmp_path):
    state = RunState(output_directory=str(tmp_path), project_name="default")
    state.existing_report_files = scan_report_files(str(tmp_path))
    return DetailFileManager(state), state


@pytest.fixture
def failing_first_write(monkeypatch):
    """Make writes of the content "first" fail like a full disk."""
    real_write = detail_files.write_atomic

    def write(path, content):
        if content == "first":
            raise OSError("disk full")
        real_write(path, content)

    monkeypatch.setattr(detail_files, "write_atomic", write)


class TestScanReportFiles:
    """Tests for scan_report_files()."""

    def test_lists_only_detail_files(self, tmp_path):
        (tmp_path / "a-details.xml").write_text("x")
        (tmp_path / "notes.txt").write_text("x")
        (tmp_path / SUMMARY_FILE_NAME).write_text("x")
        assert scan_report_files(str(tmp_path)) == {"a-details.xml"}

    def test_missing_directory(self, tmp_path):
        assert scan_report_files(str(tmp_path / "nope")) == set()


class TestWriteAtomic:
    """Tests for write_atomic()."""

    def test_creates_directory(self, tmp_path):
        path = tmp_path / "nested" / "out.xml"
        write_atomic(str(path), "<x/>")
        assert path.read_text() == "<x/>"
        assert [p.name for p in path.parent.iterdir()] == ["out.xml"]

    def test_replaces_existing(self, tmp_path):
        path = tmp_path / "out.xml"
        path.write_text("old")
        write_atomic(str(path), "new")
        assert path.read_text() == "new"


class TestDetailFileManager:
    """Tests for DetailFileManager."""

    def test_persist_writes_file(self, tmp_path):
        files, state = _manager(tmp_path)
        files.persist("login", "<failure/>")
        files.wait_all()
        assert (tmp_path / details_file_name("login")).read_text() == "<failure/>"
        assert details_file_name("login") in state.existing_report_files
        assert len(state.pending_file_operations) == 1

    def test_retract_unknown_file_is_noop(self, tmp_path):
        files, state = _manager(tmp_path)
        assert files.retract("never-failed") is None
        files.wait_all()
        assert state.pending_file_operations == []

    def test_retract_removes_previous_report(self, tmp_path):
        (tmp_path / "login-details.xml").write_text("old")
        files, state = _manager(tmp_path)
        files.retract("login")
        files.wait_all()
        assert not (tmp_path / "login-details.xml").exists()
        assert "login-details.xml" not in state.existing_report_files

    def test_persist_then_retract_leaves_no_file(self, tmp_path):
        files, _ = _manager(tmp_path)
        content = "x" * 1_000_000
        files.persist("login", content)
        files.retract("login")
        files.wait_all()
        assert not (tmp_path / "login-details.xml").exists()

    def test_operations_on_one_file_keep_order(self, tmp_path):
        files, _ = _manager(tmp_path)
        for i in range(20):
            files.persist("login", f"version {i}")
        files.wait_all()
        assert (tmp_path / "login-details.xml").read_text() == "version 19"

    def test_other_files_unaffected(self, tmp_path):
        files, _ = _manager(tmp_path)
        files.persist("a", "A")
        files.persist("b", "B")
        files.retract("a")
        files.wait_all()
        assert sorted(os.listdir(tmp_path)) == ["b-details.xml"]

    def test_failed_write_unregisters_name(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        state = RunState(output_directory=str(blocker), project_name="default")
        files = DetailFileManager(state)
        files.persist("login", "x")
        files.wait_all()
        assert state.existing_report_files == set()

    def test_failed_write_keeps_newer_write_registered(self, tmp_path, failing_first_write):
        files, state = _manager(tmp_path)
        files.persist("login", "first")
        files.persist("login", "second")
        files.wait_all()
        assert (tmp_path / "login-details.xml").read_text() == "second"
        assert "login-details.xml" in state.existing_report_files

    def test_pass_after_settled_writes_removes_file(self, tmp_path, failing_first_write):
        files, _ = _manager(tmp_path)
        files.persist("login", "first")
        files.persist("login", "second").result()
        assert files.retract("login") is not None
        files.wait_all()
        assert not (tmp_path / "login-details.xml").exists()

    def test_write_summary(self, tmp_path):
        files, _ = _manager(tmp_path)
        files.write_summary("# AI Test Run Summary")
        files.wait_all()
        assert (tmp_path / SUMMARY_FILE_NAME).read_text() == "# AI Test Run Summary"
