"""Structural checks for rendered feeds.

These are diagnostics: they report on a document and never change it.
find_unclosed_tags() and lint_structure() are cheap text heuristics that
point at the offending line; check_well_formed() runs a real XML parser and
is the one to trust when they disagree.
"""

import logging
import re
from pathlib import Path

from lxml import etree
from pydantic import BaseModel, Field

from nostrcast.utils.errors import FeedError

logger = logging.getLogger(__name__)

XML_DECLARATION_PREFIX = "<?xml"
INDENT_WIDTH = 2

_COMMENT_RE = re.compile(r"<!--.*?-->", re.DOTALL)
_TAG_RE = re.compile(r"<(/?)([A-Za-z_][\w:.\-]*)[^>]*?(/?)>")
_ANY_TAG_RE = re.compile(r"<[^>]*>")


class TagRef(BaseModel):
    """A tag name and the line it appeared on (1-based)."""

    name: str
    line: int


class TagBalanceReport(BaseModel):
    """Result of find_unclosed_tags()."""

    unclosed: list[TagRef] = Field(default_factory=list)
    unexpected: list[TagRef] = Field(default_factory=list)

    @property
    def balanced(self) -> bool:
        return not self.unclosed and not self.unexpected


class LintReport(BaseModel):
    """Result of lint_structure().

    Errors are structural problems; warnings come from the indentation
    heuristic and only mean the layout is unusual.
    """

    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    opening_tags: int = 0
    closing_tags: int = 0
    self_closing_tags: int = 0
    processing_instructions: int = 0
    line_count: int = 0
    has_items: bool = False

    @property
    def valid(self) -> bool:
        return not self.errors


class ValidationReport(BaseModel):
    """All three checks for one document."""

    tag_balance: TagBalanceReport
    lint: LintReport
    well_formed_errors: list[str] = Field(default_factory=list)

    @property
    def well_formed(self) -> bool:
        return not self.well_formed_errors

    @property
    def valid(self) -> bool:
        return self.tag_balance.balanced and self.lint.valid and self.well_formed

    @property
    def issue_count(self) -> int:
        return (
            len(self.tag_balance.unclosed)
            + len(self.tag_balance.unexpected)
            + len(self.lint.errors)
            + len(self.lint.warnings)
            + len(self.well_formed_errors)
        )


def _blank_comments(xml: str) -> str:
    """Remove comments but keep their newlines so line numbers still match."""
    return _COMMENT_RE.sub(lambda m: "\n" * m.group(0).count("\n"), xml)


def find_unclosed_tags(xml: str) -> TagBalanceReport:
    """Match opening and closing tags with a stack.

    Comments, declarations and self-closing tags are skipped. A closing tag
    that matches something deeper in the stack closes it and reports the
    tags in between as unclosed; one that matches nothing is unexpected.

    Example:
        >>> find_unclosed_tags("<rss>\\n<channel>\\n</rss>").unclosed
        [TagRef(name='channel', line=2)]
    """
    report = TagBalanceReport()
    stack: list[TagRef] = []
    text = _blank_comments(xml)

    line = 1
    position = 0
    for match in _TAG_RE.finditer(text):
        line += text.count("\n", position, match.start())
        position = match.start()

        closing, name, self_closing = match.group(1), match.group(2), match.group(3)
        if self_closing:
            continue

        if not closing:
            stack.append(TagRef(name=name, line=line))
            continue

        if stack and stack[-1].name == name:
            stack.pop()
        elif any(tag.name == name for tag in stack):
            while stack[-1].name != name:
                report.unclosed.append(stack.pop())
            stack.pop()
        else:
            report.unexpected.append(TagRef(name=name, line=line))

    report.unclosed.extend(stack)
    report.unclosed.sort(key=lambda tag: tag.line)
    return report


def _opens_block(stripped: str) -> bool:
    # A line like <title>x</title> opens and closes on the same line
    if not stripped.startswith("<") or stripped.startswith(("</", "<?", "<!")):
        return False
    if stripped.endswith("/>"):
        return False
    match = _TAG_RE.match(stripped)
    return match is not None and f"</{match.group(2)}>" not in stripped


def lint_structure(xml: str) -> LintReport:
    """Heuristic structure check of a rendered feed.

    Checks the declaration, the rss and channel elements, that opening and
    closing tag counts agree, and that markup lines are indented two spaces
    per nesting level.
    """
    report = LintReport(line_count=len(xml.splitlines()))
    text = _COMMENT_RE.sub("", xml)

    if not text.lstrip().startswith(XML_DECLARATION_PREFIX):
        report.errors.append("Missing XML declaration")
    if "<rss" not in text or "</rss>" not in text:
        report.errors.append("Missing rss root element")
    if "<channel>" not in text or "</channel>" not in text:
        report.errors.append("Missing channel element")

    for tag in _ANY_TAG_RE.findall(text):
        if tag.startswith("<?"):
            report.processing_instructions += 1
        elif tag.startswith("</"):
            report.closing_tags += 1
        elif tag.endswith("/>"):
            report.self_closing_tags += 1
        elif not tag.startswith("<!"):
            report.opening_tags += 1

    if report.opening_tags != report.closing_tags:
        report.errors.append(
            f"Tag count mismatch: {report.opening_tags} opening, "
            f"{report.closing_tags} closing"
        )

    report.has_items = "<item>" in text

    depth = 0
    for number, raw_line in enumerate(xml.splitlines(), start=1):
        stripped = raw_line.strip()
        if not stripped.startswith("<"):
            continue
        if stripped.startswith("</"):
            depth = max(depth - 1, 0)

        actual = len(raw_line) - len(raw_line.lstrip(" "))
        expected = depth * INDENT_WIDTH
        if actual != expected:
            report.warnings.append(
                f"Line {number}: expected {expected} spaces of indentation, got {actual}"
            )

        if _opens_block(stripped):
            depth += 1

    return report


def check_well_formed(xml: str) -> list[str]:
    """Parse with lxml and return the parser's errors (empty if well-formed).

    Entities are not resolved and nothing is fetched over the network.
    """
    parser = etree.XMLParser(resolve_entities=False, no_network=True)
    try:
        etree.fromstring(xml.encode("utf-8"), parser)
    except etree.XMLSyntaxError as e:
        errors = [f"Line {entry.line}: {entry.message}" for entry in e.error_log]
        return errors or [str(e)]
    return []


class FeedValidator:
    """Run every structural check over a feed.

    Example:
        >>> report = FeedValidator().validate(xml)
        >>> report.valid
        True
    """

    def validate(self, xml: str) -> ValidationReport:
        report = ValidationReport(
            tag_balance=find_unclosed_tags(xml),
            lint=lint_structure(xml),
            well_formed_errors=check_well_formed(xml),
        )
        logger.debug(f"Validation finished with {report.issue_count} issue(s)")
        return report

    def validate_file(self, path: Path) -> ValidationReport:
        """Read and validate a feed file.

        Raises:
            FeedError: If the file cannot be read
        """
        return self.validate(read_feed_file(path))


def read_feed_file(path: Path) -> str:
    """Read a rendered feed as UTF-8.

    Raises:
        FeedError: If the file cannot be read or decoded
    """
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise FeedError(
            f"Feed file not found: {path}",
            suggestion="Run 'nostrcast generate' first or pass the file path",
        ) from e
    except (OSError, UnicodeDecodeError) as e:
        raise FeedError(f"Could not read feed file {path}: {e}") from e
