"""Reporter options: defaults, validation, and loading from YAML and the environment."""

import logging
import os
import re
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Sequence, TextIO

import yaml

from .hints import rules_from_config
from .models import HintRule

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_DIR = "test-results"
DEFAULT_CONFIG_FILE = "agentic-reporter.yaml"
ENV_PREFIX = "AGENTIC_REPORTER_"
DEFAULT_REPRODUCE_TEMPLATE = "npx playwright test {file}:{line} --project={project}"

UNBOUNDED = ("unbounded", "none", "false", "infinity", "inf", "")
_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")

# camelCase names used by JavaScript runner configs
_ALIASES = {
    "maxFailures": "max_failures",
    "maxStackFrames": "max_stack_frames",
    "maxLogLines": "max_log_lines",
    "maxLogChars": "max_log_chars",
    "maxSlowTestThreshold": "slow_test_std_devs",
    "slowTestStdDevs": "slow_test_std_devs",
    "includeAttachments": "include_attachments",
    "enableDetailedReport": "enable_detailed_report",
    "checkPreviousReports": "check_previous_reports",
    "exitOnExceedingMaxFailures": "exit_on_max_failures",
    "writeSummaryFile": "write_summary_file",
    "getReproduceCommand": "reproduce_command",
    "reproduceCommandTemplate": "reproduce_command_template",
    "customHintRules": "custom_hint_rules",
    "outputStream": "output_stream",
}


def _is_unbounded(value) -> bool:
    if value is None or value is False:
        return True
    if isinstance(value, float) and value == float("inf"):
        return True
    return isinstance(value, str) and value.strip().lower() in UNBOUNDED


def _as_bool(name: str, value, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    logger.warning(f"{name} must be a boolean, got {value!r}; using default {default}")
    return default


def _as_int(name: str, value, default: Optional[int], minimum: int,
            allow_unbounded: bool) -> Optional[int]:
    if allow_unbounded and _is_unbounded(value):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        logger.warning(f"{name} must be an integer, got {value!r}; using default {default}")
        return default
    if isinstance(value, bool) or number < minimum:
        logger.warning(f"{name} must be >= {minimum}, got {value!r}; using default {default}")
        return default
    return number


@dataclass
class ReporterOptions:
    """Resolved reporter configuration.

    Out-of-range values are replaced by their defaults with a warning.
    None for max_failures, max_log_lines or max_log_chars means unbounded.
    """
    max_failures: Optional[int] = 5
    max_stack_frames: int = 8
    max_log_lines: Optional[int] = 5
    max_log_chars: Optional[int] = 500
    slow_test_std_devs: float = 2.0
    include_attachments: bool = True
    enable_detailed_report: bool = True
    check_previous_reports: bool = False
    exit_on_max_failures: bool = True
    write_summary_file: bool = True
    reproduce_command: Optional[Callable[[dict], str]] = None
    reproduce_command_template: str = DEFAULT_REPRODUCE_TEMPLATE
    custom_hint_rules: Sequence[HintRule] = field(default_factory=tuple)
    output_stream: Optional[TextIO] = None

    def __post_init__(self):
        defaults = ReporterOptions.__dataclass_fields__
        self.max_failures = _as_int("max_failures", self.max_failures,
                                    defaults["max_failures"].default, 1, True)
        self.max_stack_frames = _as_int("max_stack_frames", self.max_stack_frames,
                                        defaults["max_stack_frames"].default, 1, False)
        self.max_log_lines = _as_int("max_log_lines", self.max_log_lines,
                                     defaults["max_log_lines"].default, 0, True)
        self.max_log_chars = _as_int("max_log_chars", self.max_log_chars,
                                     defaults["max_log_chars"].default, 0, True)
        try:
            self.slow_test_std_devs = float(self.slow_test_std_devs)
            if self.slow_test_std_devs < 0:
                raise ValueError(self.slow_test_std_devs)
        except (TypeError, ValueError):
            default = defaults["slow_test_std_devs"].default
            logger.warning(f"slow_test_std_devs must be a non-negative number, "
                           f"got {self.slow_test_std_devs!r}; using default {default}")
            self.slow_test_std_devs = default
        for name in ("include_attachments", "enable_detailed_report", "check_previous_reports",
                     "exit_on_max_failures", "write_summary_file"):
            setattr(self, name, _as_bool(name, getattr(self, name), defaults[name].default))
        if self.reproduce_command is not None and not callable(self.reproduce_command):
            logger.warning("reproduce_command must be callable; using the command template")
            self.reproduce_command = None
        rules = []
        for rule in self.custom_hint_rules:
            if isinstance(rule, HintRule):
                rules.append(rule)
                continue
            try:
                rules.extend(rules_from_config([rule]))
            except (KeyError, TypeError, AttributeError, re.error) as e:
                logger.warning(f"Ignoring invalid custom hint rule {rule!r}: {e}")
        self.custom_hint_rules = tuple(rules)

    @classmethod
    def from_mapping(cls, mapping: Optional[Mapping[str, Any]] = None, **overrides) -> "ReporterOptions":
        """Build options from a plain mapping, accepting snake_case or camelCase keys."""
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in {**(mapping or {}), **overrides}.items():
            name = _ALIASES.get(key, key)
            if name not in known:
                logger.warning(f"Ignoring unknown reporter option: {key}")
                continue
            values[name] = value
        return cls(**values)


def load_config(config_path: Optional[str] = None) -> dict:
    """Load option values from a YAML file and environment variables.

    The YAML file is taken from config_path, AGENTIC_REPORTER_CONFIG, or
    agentic-reporter.yaml in the working directory, in that order.
    Environment variables (AGENTIC_REPORTER_MAX_FAILURES, ...) take
    precedence over values from the file.
    """
    paths = [
        config_path,
        os.environ.get(f"{ENV_PREFIX}CONFIG"),
        Path.cwd() / DEFAULT_CONFIG_FILE,
    ]
    config = {}
    for p in paths:
        if p and Path(p).exists():
            try:
                data = yaml.safe_load(Path(p).read_text()) or {}
                if isinstance(data, dict):
                    config.update(data)
                else:
                    logger.warning(f"Ignoring {p}: expected a mapping at top level")
            except (OSError, yaml.YAMLError) as e:
                logger.warning(f"Failed to load reporter config {p}: {e}")
            break

    for f in fields(ReporterOptions):
        if f.name in ("reproduce_command", "custom_hint_rules", "output_stream"):
            continue
        env_value = os.environ.get(f"{ENV_PREFIX}{f.name.upper()}")
        if env_value is not None:
            config[f.name] = env_value

    output_dir = os.environ.get(f"{ENV_PREFIX}OUTPUT_DIR")
    if output_dir is not None:
        config["output_dir"] = output_dir

    return config


def get_output_dir(config: Optional[dict] = None) -> Path:
    config = load_config() if config is None else config
    return Path(config.get("output_dir", DEFAULT_OUTPUT_DIR)).expanduser()


def options_from_config(config: Optional[dict] = None, **overrides) -> ReporterOptions:
    """Resolve ReporterOptions from load_config() output."""
    config = dict(load_config() if config is None else config)
    config.pop("output_dir", None)
    return ReporterOptions.from_mapping(config, **overrides)
