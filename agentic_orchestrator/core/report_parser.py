"""Parser for the executor's completion report (``.ai/HANDOFF.md``).

The report is hybrid: an optional front matter block between two ``---``
lines, followed by free-form Markdown. The front matter grammar is a small
subset handled by a bespoke parser:

- ``key: value`` split on the first colon only, so values keep their colons
- ``null`` means absent
- ``- item`` lines after a bare ``key:`` accumulate as a list
- ``[a, b]`` is an inline list

A report without front matter (or with an unterminated block) is scanned
for marker phrases instead; no marker means success.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from ..models.report import CompletionReport
from ..models.state import Reason, TaskStatus
from .constants import HANDOFF_FILE, REPORT_DELIMITER

logger = logging.getLogger(__name__)

Value = Union[None, str, List[str]]

# Checked in order; the first marker found decides the reason
FALLBACK_MARKERS: Tuple[Tuple[str, Reason], ...] = (
    ("NEEDS CLARIFICATION", Reason.NEEDS_CLARIFICATION),
    ("CONSTITUTION VIOLATION", Reason.CONSTITUTION_VIOLATION),
    ("SCOPE WARNING", Reason.SCOPE_WARNING),
)

# Report keys accepted as the unit id
UNIT_ID_KEYS = ("story", "unit_id")


def parse_front_matter(lines: List[str]) -> Dict[str, Value]:
    """Parse the lines between the delimiters into a key/value mapping.

    Args:
        lines: Raw lines of the block, without the delimiter lines

    Returns:
        Mapping of key to ``None``, a string, or a list of strings
    """
    result: Dict[str, Value] = {}
    list_key: Optional[str] = None

    for raw in lines:
        stripped = raw.strip()
        if not stripped:
            continue

        if stripped.startswith("- ") or stripped == "-":
            if list_key is None:
                logger.debug(f"Ignoring list item outside a list: {stripped!r}")
                continue
            item = stripped[1:].strip()
            if item:
                result[list_key].append(item)
            continue

        key, sep, value = stripped.partition(":")
        key = key.strip()
        if not sep or not key:
            logger.debug(f"Ignoring malformed front matter line: {stripped!r}")
            list_key = None
            continue

        value = value.strip()
        list_key = None
        if not value:
            # Items (if any) follow on the next lines
            result[key] = []
            list_key = key
        elif value.startswith("[") and value.endswith("]"):
            result[key] = [item.strip() for item in value[1:-1].split(",") if item.strip()]
        elif value == "null":
            result[key] = None
        else:
            result[key] = value

    return result


def _scalar(value: Value) -> Optional[str]:
    if isinstance(value, list):
        return None
    return value or None


def _as_list(value: Value) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return list(value)


def _as_int(key: str, value: Value) -> Optional[int]:
    text = _scalar(value)
    if text is None:
        return None
    try:
        return int(text)
    except ValueError:
        logger.warning(f"Ignoring non-integer report value {key}: {text!r}")
        return None


def _as_status(value: Value) -> Optional[TaskStatus]:
    text = _scalar(value)
    if text is None:
        return None
    try:
        return TaskStatus(text)
    except ValueError:
        logger.warning(f"Ignoring unknown report status {text!r}")
        return None


def _as_reason(value: Value) -> Optional[Reason]:
    text = _scalar(value)
    if text is None:
        return None
    try:
        return Reason(text)
    except ValueError:
        logger.warning(f"Ignoring unknown report reason {text!r}")
        return None


def _report_from_fields(fields: Dict[str, Value], body: str) -> CompletionReport:
    unit_id = None
    for key in UNIT_ID_KEYS:
        unit_id = _scalar(fields.get(key))
        if unit_id:
            break

    return CompletionReport(
        unit_id=unit_id,
        step=_scalar(fields.get("step")),
        attempt=_as_int("attempt", fields.get("attempt")),
        status=_as_status(fields.get("status")),
        reason=_as_reason(fields.get("reason")),
        files_changed=_as_list(fields.get("files_changed")),
        failing_tests=_as_list(fields.get("failing_tests")),
        tests_pass=_as_int("tests_pass", fields.get("tests_pass")),
        tests_fail=_as_int("tests_fail", fields.get("tests_fail")),
        tests_skip=_as_int("tests_skip", fields.get("tests_skip")),
        body=body,
        structured=True,
    )


def parse_fallback(text: str) -> CompletionReport:
    """Scan unstructured text for marker phrases.

    A marker yields ``failing`` with its reason; no marker yields ``pass``.
    """
    for marker, reason in FALLBACK_MARKERS:
        if marker in text:
            return CompletionReport(status=TaskStatus.FAILING, reason=reason, body=text)
    return CompletionReport(status=TaskStatus.PASS, body=text)


def parse_report(text: str) -> CompletionReport:
    """Parse raw report text into a CompletionReport."""
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].strip() != REPORT_DELIMITER:
        return parse_fallback(text)

    for index in range(1, len(lines)):
        if lines[index].strip() == REPORT_DELIMITER:
            fields = parse_front_matter(lines[1:index])
            body = "".join(lines[index + 1:])
            return _report_from_fields(fields, body)

    logger.warning("Report front matter is not terminated; scanning for markers instead")
    return parse_fallback(text)


def read_report(project_root: Path) -> Optional[CompletionReport]:
    """Read and parse the project's report file, or None if it does not exist.

    Bytes that are not valid UTF-8 are replaced, so a damaged report still
    yields a status.
    """
    report_path = Path(project_root) / HANDOFF_FILE
    if not report_path.exists():
        return None
    return parse_report(report_path.read_text(encoding="utf-8", errors="replace"))
