"""Tests for the structural feed checks."""

from pathlib import Path

import pytest

from nostrcast.feeds.validator import (
    FeedValidator,
    check_well_formed,
    find_unclosed_tags,
    lint_structure,
    read_feed_file,
)
from nostrcast.utils.errors import FeedError

VALID_FEED = """\
<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Test</title>
    <!-- a comment with <tags> inside -->
    <itunes:image href="https://x.example/a.jpg" />

    <item>
      <title>Ep</title>
    </item>
  </channel>
</rss>
"""


class TestFindUnclosedTags:
    """Tests for find_unclosed_tags."""

    def test_balanced_document(self) -> None:
        """Test a valid feed reports nothing."""
        report = find_unclosed_tags(VALID_FEED)

        assert report.balanced
        assert report.unclosed == []
        assert report.unexpected == []

    def test_unclosed_tag_with_line(self) -> None:
        """Test a missing closing tag is reported with its line."""
        xml = "<rss>\n  <channel>\n    <item>\n  </channel>\n</rss>\n"
        report = find_unclosed_tags(xml)

        assert not report.balanced
        assert [(t.name, t.line) for t in report.unclosed] == [("item", 3)]
        assert report.unexpected == []

    def test_unexpected_closing_tag(self) -> None:
        """Test a closing tag with no opener is reported."""
        xml = "<rss>\n</item>\n</rss>\n"
        report = find_unclosed_tags(xml)

        assert [(t.name, t.line) for t in report.unexpected] == [("item", 2)]
        assert report.unclosed == []

    def test_document_left_open(self) -> None:
        """Test tags still open at the end are listed in order."""
        report = find_unclosed_tags("<rss>\n<channel>\n")
        assert [t.name for t in report.unclosed] == ["rss", "channel"]

    def test_multiline_comment_keeps_line_numbers(self) -> None:
        """Test line numbers after a multi-line comment stay accurate."""
        xml = "<rss>\n<!--\n<b>\n-->\n<item>\n</rss>\n"
        report = find_unclosed_tags(xml)

        assert [(t.name, t.line) for t in report.unclosed] == [("item", 5)]


class TestLintStructure:
    """Tests for lint_structure."""

    def test_valid_feed(self) -> None:
        """Test a valid feed has no errors or warnings."""
        report = lint_structure(VALID_FEED)

        assert report.valid
        assert report.errors == []
        assert report.warnings == []
        assert report.has_items
        assert report.opening_tags == report.closing_tags
        assert report.self_closing_tags == 1
        assert report.processing_instructions == 1

    def test_missing_declaration(self) -> None:
        """Test a missing XML declaration is an error."""
        report = lint_structure(VALID_FEED.split("\n", 1)[1])
        assert "Missing XML declaration" in report.errors

    def test_missing_channel(self) -> None:
        """Test missing rss or channel elements are errors."""
        report = lint_structure('<?xml version="1.0"?>\n<rss>\n</rss>\n')

        assert "Missing channel element" in report.errors
        assert "Missing rss root element" not in report.errors

    def test_tag_count_mismatch(self) -> None:
        """Test unequal opening and closing counts are an error."""
        xml = VALID_FEED.replace("    </item>\n", "")
        report = lint_structure(xml)

        assert not report.valid
        assert any("Tag count mismatch" in error for error in report.errors)

    def test_indentation_warning(self) -> None:
        """Test misindented lines are warnings, not errors."""
        xml = VALID_FEED.replace("    <title>Test</title>", "      <title>Test</title>")
        report = lint_structure(xml)

        assert report.valid
        assert report.warnings == ["Line 4: expected 4 spaces of indentation, got 6"]


class TestCheckWellFormed:
    """Tests for check_well_formed."""

    def test_well_formed(self) -> None:
        """Test a well-formed document yields no errors."""
        xml = VALID_FEED.replace(
            '<rss version="2.0">',
            '<rss version="2.0" xmlns:itunes="http://www.itunes.com/dtds/podcast-1.0.dtd">',
        )
        assert check_well_formed(xml) == []

    def test_mismatched_tags(self) -> None:
        """Test crossed tags are reported by the parser."""
        errors = check_well_formed("<rss><channel></rss></channel>")
        assert errors

    def test_unescaped_ampersand(self) -> None:
        """Test a raw ampersand is not well-formed."""
        errors = check_well_formed("<rss><title>A & B</title></rss>")
        assert errors

    def test_external_entities_not_resolved(self, tmp_path: Path) -> None:
        """Test external entities are never read from disk."""
        secret = tmp_path / "secret.txt"
        secret.write_text("top secret")
        xml = (
            f'<?xml version="1.0"?>\n<!DOCTYPE rss [<!ENTITY x SYSTEM "file://{secret}">]>\n'
            "<rss><title>&x;</title></rss>"
        )

        # Either parses without expansion or reports an error; never leaks
        errors = check_well_formed(xml)
        assert all("top secret" not in error for error in errors)


class TestFeedValidator:
    """Tests for FeedValidator."""

    def test_validate_bundles_reports(self) -> None:
        """Test all three checks are run."""
        xml = VALID_FEED.replace(
            '<rss version="2.0">',
            '<rss version="2.0" xmlns:itunes="http://www.itunes.com/dtds/podcast-1.0.dtd">',
        )
        report = FeedValidator().validate(xml)

        assert report.valid
        assert report.well_formed
        assert report.issue_count == 0

    def test_invalid_document(self) -> None:
        """Test problems from each check are counted."""
        report = FeedValidator().validate("<rss>\n<channel>\n</rss>\n")

        assert not report.valid
        assert not report.well_formed
        assert report.issue_count > 0

    def test_validate_file(self, tmp_path: Path) -> None:
        """Test reading and validating a file."""
        path = tmp_path / "rss.xml"
        path.write_text(VALID_FEED, encoding="utf-8")

        report = FeedValidator().validate_file(path)

        assert report.tag_balance.balanced

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test a missing file raises FeedError with a suggestion."""
        with pytest.raises(FeedError) as exc_info:
            read_feed_file(tmp_path / "missing.xml")

        assert exc_info.value.suggestion is not None
