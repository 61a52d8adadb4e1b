"""
Error classification with debugging hints.

Rules are plain data evaluated in order; custom rules are consulted before
the built-in table and the first match wins.
"""

from typing import Iterable, Mapping

from .models import Classification, ErrorType, HintRule

DEFAULT_HINT_RULES: tuple[HintRule, ...] = (
    # Timeouts
    HintRule(r"timeout", ErrorType.TIMEOUT.value,
             "Selector missing/hidden? Check element visibility, increase timeout, or verify the page loaded."),
    HintRule(r"waitfor.*selector", ErrorType.TIMEOUT.value,
             "Element not found. Verify the selector, check if content is dynamically loaded."),
    HintRule(r"locator\.click", ErrorType.TIMEOUT.value,
             "Click action failed. Element may be detached, obscured, or not clickable."),

    # Assertions
    HintRule(r"expect\(received\)\.to", ErrorType.ASSERTION.value,
             "Assertion mismatch. Check if data needs normalization (trim, lowercase, type coercion)."),
    HintRule(r"expected.*received", ErrorType.ASSERTION.value,
             "Value mismatch. Compare expected vs actual carefully - check for whitespace or encoding."),
    HintRule(r"tobevisible", ErrorType.ASSERTION.value,
             "Element visibility check failed. Check if element exists, is in viewport, or has display:none."),
    HintRule(r"tohaveurl", ErrorType.ASSERTION.value,
             "URL assertion failed. Check routing, redirects, or if navigation completed."),
    HintRule(r"assertionerror", ErrorType.ASSERTION.value,
             "Assertion failed. Compare the asserted values and the state that produced them."),

    # Network
    HintRule(r"\b(500|502|503|504)\b", ErrorType.NETWORK.value,
             "Server error. Check API logs, backend availability, or database connections."),
    HintRule(r"\b(401|403)\b", ErrorType.NETWORK.value,
             "Authentication/Authorization error. Check credentials, tokens, or permissions."),
    HintRule(r"\b404\b", ErrorType.NETWORK.value,
             "Resource not found. Verify the URL, route configuration, or if the resource exists."),
    HintRule(r"econnrefused|enotfound|connection refused|name or service not known|fetch.*failed",
             ErrorType.NETWORK.value,
             "Network connection failed. Is the server running? Check URL and port."),

    # Interrupted
    HintRule(r"interrupted|cancell?ed", ErrorType.INTERRUPTED.value,
             "Test was interrupted (user cancelled or CI timeout)."),
)

DEFAULT_CLASSIFICATION = Classification(
    type=ErrorType.UNKNOWN.value,
    hint="Inspect the stack trace for logic errors or unexpected state.",
)


def classify_error(message: str, custom_rules: Iterable[HintRule] = ()) -> Classification:
    """Classify an error message and return its category and hint.

    Args:
        message: The raw error message
        custom_rules: Rules checked, in order, before the built-in ones

    Returns:
        The first matching rule's category and hint, or the default
    """
    message = message or ""
    for rules in (custom_rules, DEFAULT_HINT_RULES):
        for rule in rules:
            if rule.matches(message):
                return Classification(type=rule.category, hint=rule.hint)
    return DEFAULT_CLASSIFICATION


def rules_from_config(entries: Iterable[Mapping]) -> list[HintRule]:
    """Build custom rules from config entries of the form {pattern, type, hint}."""
    rules = []
    for entry in entries:
        rules.append(HintRule(
            pattern=entry["pattern"],
            category=str(entry.get("type") or entry.get("category") or ErrorType.UNKNOWN.value),
            hint=str(entry.get("hint", "")),
        ))
    return rules
