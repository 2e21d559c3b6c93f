"""Direct text extraction for DOCX, TXT, and RTF uploads."""

import io
import re

import docx

_RTF_RULES: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"\\\n"), "\n"),
    (re.compile(r"\\[a-z]+\d*\s?", re.IGNORECASE), ""),
    (re.compile(r"[{}]"), ""),
    (re.compile(r"\\'"), "'"),
    (re.compile(r"\r\n|\r"), "\n"),
    (re.compile(r"\n{3,}"), "\n\n"),
]


def extract_docx(content: bytes) -> str:
    """Extract raw text from a DOCX file.

    Paragraphs come first, followed by the text of any table cells.

    Args:
        content: DOCX file bytes.

    Returns:
        Paragraph and table text separated by newlines.
    """
    document = docx.Document(io.BytesIO(content))
    lines = [paragraph.text for paragraph in document.paragraphs]
    for table in document.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells]
            lines.append(" | ".join(cell for cell in cells if cell))
    return "\n".join(lines).strip()


def extract_txt(content: bytes) -> str:
    """Decode a plain-text upload as UTF-8, replacing invalid bytes."""
    return content.decode("utf-8-sig", errors="replace").strip()


def extract_rtf(content: bytes) -> str:
    """Strip RTF control words, groups, and escapes down to plain text.

    Args:
        content: RTF file bytes.

    Returns:
        Plain text with normalized line endings.
    """
    text = content.decode("utf-8", errors="replace")
    for pattern, replacement in _RTF_RULES:
        text = pattern.sub(replacement, text)
    return text.strip()
