"""
Detail-file lifecycle: one file per failing test, removed once the test passes.

Writes and deletes run on a small thread pool so that streaming the report
is never held up by disk I/O. Operations on the same file are chained, so
they are applied in the order they were scheduled. Every operation is
recorded in RunState.pending_file_operations and the run is only finished
once all of them have settled.
"""

import logging
import os
import tempfile
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Callable, Optional

from .models import RunState

logger = logging.getLogger(__name__)

DETAILS_SUFFIX = "-details.xml"
SUMMARY_FILE_NAME = "ai-start-here.md"
MAX_WORKERS = 4


def details_file_name(identity: str) -> str:
    return f"{identity}{DETAILS_SUFFIX}"


def scan_report_files(output_dir: str) -> set[str]:
    """List the detail files already present in output_dir (one directory listing)."""
    try:
        return {name for name in os.listdir(output_dir) if name.endswith(DETAILS_SUFFIX)}
    except FileNotFoundError:
        return set()
    except OSError as e:
        logger.warning(f"Failed to scan {output_dir} for previous reports: {e}")
        return set()


def write_atomic(path: str, content: str):
    """Write content to path via a temp file and rename, so readers never see a partial file."""
    directory = os.path.dirname(path) or "."
    os.makedirs(directory, exist_ok=True)
    temp_fd, temp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
    try:
        with os.fdopen(temp_fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(temp_path, path)
    except BaseException:
        if os.path.exists(temp_path):
            os.unlink(temp_path)
        raise


class DetailFileManager:
    """Schedules detail-file writes and deletes for one run."""

    def __init__(self, state: RunState, max_workers: int = MAX_WORKERS):
        self.state = state
        self._executor = ThreadPoolExecutor(max_workers=max_workers,
                                            thread_name_prefix="detail-files")
        # last scheduled operation per file name
        self._tails: dict[str, Future] = {}
        # sequence number of the newest write scheduled per file name
        self._latest_write: dict[str, int] = {}
        # guards state.existing_report_files and _latest_write, read by workers on failure
        self._lock = threading.Lock()

    def path_for(self, name: str) -> str:
        return os.path.join(self.state.output_directory, name)

    def known_files(self) -> set[str]:
        with self._lock:
            return set(self.state.existing_report_files)

    def persist(self, identity: str, content: str) -> Future:
        """Schedule writing the detail file for identity.

        The name is registered as existing right away so that a later
        retraction is chained after this write; it is dropped again if the
        write fails and no newer write for the same file is scheduled.
        """
        name = details_file_name(identity)
        with self._lock:
            self.state.existing_report_files.add(name)
            sequence = self._latest_write.get(name, 0) + 1
            self._latest_write[name] = sequence
        return self._schedule(name, self._write_report, name, content, sequence)

    def retract(self, identity: str) -> Optional[Future]:
        """Schedule deleting the detail file for identity, if one is known to exist."""
        name = details_file_name(identity)
        with self._lock:
            if name not in self.state.existing_report_files:
                return None
            self.state.existing_report_files.discard(name)
        return self._schedule(name, self._unlink, name)

    def write_summary(self, content: str) -> Future:
        return self._schedule(SUMMARY_FILE_NAME, self._write_plain, SUMMARY_FILE_NAME, content)

    def wait_all(self):
        """Block until every scheduled operation has settled, then stop the workers."""
        pending = list(self.state.pending_file_operations)
        if pending:
            logger.debug(f"Waiting for {len(pending)} file operations")
            wait(pending)
        self._executor.shutdown(wait=True)

    def abandon(self):
        """Stop without waiting; queued operations are cancelled."""
        self._executor.shutdown(wait=False, cancel_futures=True)

    def _schedule(self, name: str, fn: Callable, *args) -> Future:
        previous = self._tails.get(name)
        future = self._executor.submit(self._run_after, previous, fn, *args)
        self._tails[name] = future
        self.state.pending_file_operations.append(future)
        logger.debug(f"Scheduled {fn.__name__} for {name}")
        return future

    @staticmethod
    def _run_after(previous: Optional[Future], fn: Callable, *args):
        if previous is not None:
            wait([previous])
        fn(*args)

    def _write_report(self, name: str, content: str, sequence: int):
        path = self.path_for(name)
        try:
            write_atomic(path, content)
            logger.debug(f"Wrote {path}")
        except OSError as e:
            logger.warning(f"Failed to write detailed report to {path}: {e}")
            with self._lock:
                if self._latest_write.get(name) == sequence:
                    self.state.existing_report_files.discard(name)

    def _write_plain(self, name: str, content: str):
        path = self.path_for(name)
        try:
            write_atomic(path, content)
        except OSError as e:
            logger.warning(f"Failed to write {path}: {e}")

    def _unlink(self, name: str):
        path = self.path_for(name)
        try:
            os.unlink(path)
            logger.debug(f"Removed {path}")
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to remove stale report {path}: {e}")
