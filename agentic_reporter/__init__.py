"""
Agentic test reporter: a compact, machine-parsable test report for AI coding agents.

Failures stream as XML blocks with a Markdown context, passing tests stay
silent, and a run is cut short once too many failures have been reported.
"""

from .config import ReporterOptions, load_config, options_from_config
from .hints import DEFAULT_HINT_RULES, classify_error
from .log_window import extract
from .models import (
    Attachment,
    HintRule,
    RunState,
    TestCase,
    TestError,
    TestResult,
    TestStatus,
)
from .outliers import detect_slow_tests
from .reporter import AgenticReporter
from .sanitizer import clean_stack, escape_xml, sanitize_id

__version__ = "0.1.0"

__all__ = [
    "AgenticReporter",
    "Attachment",
    "DEFAULT_HINT_RULES",
    "HintRule",
    "ReporterOptions",
    "RunState",
    "TestCase",
    "TestError",
    "TestResult",
    "TestStatus",
    "classify_error",
    "clean_stack",
    "detect_slow_tests",
    "escape_xml",
    "extract",
    "load_config",
    "options_from_config",
    "sanitize_id",
]
