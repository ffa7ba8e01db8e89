"""Tests for the completion report parser."""
import pytest

from agentic_orchestrator.core.report_parser import (
    parse_front_matter,
    parse_report,
    read_report,
)
from agentic_orchestrator.models.state import Reason, TaskStatus


FULL_REPORT = """---
story: US-007
step: impl
attempt: 2
status: failing
reason: needs_clarification
files_changed:
  - src/auth.go
  - src/auth_test.go
tests_pass: 42
tests_fail: 2
tests_skip: 0
failing_tests: [TestLogin, TestLogout]
---
# Summary

Implemented login. Time: 10:30.
"""


class TestParseFrontMatter:
    """Test cases for the front matter grammar."""

    def test_splits_on_first_colon(self):
        """Test that values keep their own colons."""
        assert parse_front_matter(["note: see http://x:80"]) == {"note": "see http://x:80"}

    def test_null_and_empty_list(self):
        """Test null values and a bare key with no items."""
        assert parse_front_matter(["reason: null", "files_changed:"]) == {
            "reason": None,
            "files_changed": [],
        }

    def test_block_list(self):
        """Test that dash items after a bare key form a list."""
        result = parse_front_matter(["items:", "  - a", "  - b", "next: 1"])
        assert result == {"items": ["a", "b"], "next": "1"}

    def test_inline_list(self):
        """Test bracketed inline lists."""
        assert parse_front_matter(["tags: [a, b , c]"]) == {"tags": ["a", "b", "c"]}
        assert parse_front_matter(["tags: []"]) == {"tags": []}

    def test_ignores_malformed_lines(self):
        """Test that lines without a key are skipped."""
        assert parse_front_matter(["just text", "- orphan", "k: v"]) == {"k": "v"}


class TestParseReport:
    """Test cases for parse_report."""

    def test_full_report(self):
        """Test a complete structured report."""
        report = parse_report(FULL_REPORT)

        assert report.structured is True
        assert report.unit_id == "US-007"
        assert report.step == "impl"
        assert report.attempt == 2
        assert report.status == TaskStatus.FAILING
        assert report.reason == Reason.NEEDS_CLARIFICATION
        assert report.files_changed == ["src/auth.go", "src/auth_test.go"]
        assert (report.tests_pass, report.tests_fail, report.tests_skip) == (42, 2, 0)
        assert report.failing_tests == ["TestLogin", "TestLogout"]
        assert report.body == "# Summary\n\nImplemented login. Time: 10:30.\n"

    def test_unit_id_key(self):
        """Test that unit_id is accepted in place of story."""
        report = parse_report("---\nunit_id: CUSTOM-1\n---\n")
        assert report.unit_id == "CUSTOM-1"

    def test_missing_status_inferred_from_failures(self):
        """Test status inference when only counts are reported."""
        assert parse_report("---\ntests_fail: 3\n---\n").effective_status() == TaskStatus.FAILING
        assert parse_report("---\ntests_pass: 3\n---\n").effective_status() == TaskStatus.PASS

    def test_unknown_enum_values_are_ignored(self):
        """Test that out-of-enum status and reason values are dropped."""
        report = parse_report("---\nstatus: great\nreason: flaky\n---\n")

        assert report.status is None
        assert report.reason is None

    def test_non_integer_count_is_ignored(self):
        """Test that non-numeric counts are dropped."""
        assert parse_report("---\ntests_pass: many\n---\n").tests_pass is None

    def test_empty_front_matter(self):
        """Test an empty block: structured, nothing set, passes."""
        report = parse_report("---\n---\nbody\n")

        assert report.structured is True
        assert report.status is None
        assert report.effective_status() == TaskStatus.PASS
        assert report.body == "body\n"

    @pytest.mark.parametrize("text,status,reason", [
        ("All done.", TaskStatus.PASS, None),
        ("", TaskStatus.PASS, None),
        ("Found [NEEDS CLARIFICATION] items", TaskStatus.FAILING, Reason.NEEDS_CLARIFICATION),
        ("CONSTITUTION VIOLATION in module", TaskStatus.FAILING, Reason.CONSTITUTION_VIOLATION),
        ("SCOPE WARNING: export", TaskStatus.FAILING, Reason.SCOPE_WARNING),
        ("SCOPE WARNING and NEEDS CLARIFICATION", TaskStatus.FAILING, Reason.NEEDS_CLARIFICATION),
        ("---\nstatus: pass\nno closing line", TaskStatus.PASS, None),
        ("---\nNEEDS CLARIFICATION\n", TaskStatus.FAILING, Reason.NEEDS_CLARIFICATION),
    ])
    def test_fallback_markers(self, text, status, reason):
        """Test marker scanning for reports without usable front matter."""
        report = parse_report(text)

        assert report.structured is False
        assert report.status == status
        assert report.reason == reason


class TestReadReport:
    """Test cases for read_report."""

    def test_missing_report(self, project_root):
        """Test that a missing report yields None."""
        assert read_report(project_root) is None

    def test_reads_handoff_file(self, project_root, write_report):
        """Test reading the report from the project."""
        write_report(FULL_REPORT)
        assert read_report(project_root).unit_id == "US-007"

    def test_undecodable_bytes_in_body(self, project_root, write_report):
        """Test that invalid UTF-8 does not stop the front matter from being read."""
        path = write_report("")
        path.write_bytes(b"---\nstatus: failing\nreason: nfr_missing\n---\nnotes \xff\xfe\n")

        report = read_report(project_root)

        assert report.status == TaskStatus.FAILING
        assert report.reason == Reason.NFR_MISSING
        assert "\ufffd" in report.body
