"""Split raw LLM report text into a summary and titled sections."""

import re

from focus_reports.core.schemas_reports import FormattedReportContent, ReportSection

SUMMARY_MAX_CHARS = 200
HEADING_MAX_CHARS = 50

_SEPARATOR = re.compile(r"^-{3,}$")
_BOLD_EDGES = re.compile(r"^\*\*|\*\*$")
_HASH_PREFIX = re.compile(r"^#+\s*")


def _truncate(text: str, limit: int = SUMMARY_MAX_CHARS) -> str:
    if len(text) > limit:
        return text[:limit] + "..."
    return text


def is_heading(line: str) -> bool:
    """Bold or markdown-hash lines, or short all-caps lines."""
    if line.startswith("**") or line.startswith("#"):
        return True
    return (
        0 < len(line) < HEADING_MAX_CHARS
        and line == line.upper()
        and line != line.lower()
    )


def clean_heading(line: str) -> str:
    title = _BOLD_EDGES.sub("", line).strip()
    return _HASH_PREFIX.sub("", title).strip()


def format_report_content(raw: str) -> FormattedReportContent:
    """
    Structure raw report text.

    `details` is always the raw text, unchanged. When no headings are found the
    summary is the first 200 characters of the raw text and there are no sections.
    """
    sections: list[tuple[str, list[str]]] = []
    current: tuple[str, list[str]] | None = None

    for line in raw.splitlines():
        stripped = line.strip()
        if _SEPARATOR.match(stripped):
            continue

        if is_heading(stripped):
            if current is not None:
                sections.append(current)
                current = None
            title = clean_heading(stripped)
            if not title or title == "---":
                continue
            current = (title, [])
        elif current is not None and stripped:
            current[1].append(stripped)

    if current is not None:
        sections.append(current)

    if not sections:
        return FormattedReportContent(summary=_truncate(raw), details=raw, sections=[])

    return FormattedReportContent(
        summary=_truncate(" ".join(sections[0][1])),
        details=raw,
        sections=[
            ReportSection(title=title, content="\n".join(body)) for title, body in sections
        ],
    )
