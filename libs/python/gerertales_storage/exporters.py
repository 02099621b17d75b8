"""Plain text, Markdown and PDF renderings of stories."""

from __future__ import annotations

import base64
import binascii
import io
import logging
import re

from fpdf import FPDF
from fpdf.errors import FPDFException

from gerertales_schemas import Chapter, Story

from .exceptions import ExportError

logger = logging.getLogger(__name__)

CHAPTER_SEPARATOR = "***\n\n"
EMPTY_CHAPTER_TEXT = "(No content yet)"
PDF_MARGIN = 20
COVER_WIDTH = 100

_WHITESPACE = re.compile(r"\s+")
_NON_ALNUM = re.compile(r"[^a-z0-9]", re.IGNORECASE)
_DATA_URI = re.compile(r"^data:image/[\w.+-]+;base64,(?P<data>.+)$", re.DOTALL)

# Core PDF fonts only cover latin-1.
_PDF_REPLACEMENTS = {
    "‘": "'",
    "’": "'",
    "“": '"',
    "”": '"',
    "–": "-",
    "—": "--",
    "…": "...",
}


def story_filename(story: Story, extension: str) -> str:
    return f"{_WHITESPACE.sub('_', story.title)}.{extension}"


def chapter_filename(chapter: Chapter, extension: str) -> str:
    return f"{_NON_ALNUM.sub('_', chapter.title).lower()}.{extension}"


def chapter_heading(chapter: Chapter) -> str:
    return f"Chapter {chapter.chapter}: {chapter.title}"


def story_to_text(story: Story) -> str:
    return CHAPTER_SEPARATOR.join(
        f"{chapter_heading(chapter)}\n\n{chapter.content}\n\n" for chapter in story.toc
    )


def chapter_to_text(chapter: Chapter) -> str:
    return f"{chapter_heading(chapter)}\n\n{chapter.content}"


def chapter_to_markdown(chapter: Chapter) -> str:
    return f"# {chapter_heading(chapter)}\n\n{chapter.content}"


def story_to_markdown(story: Story) -> str:
    parts = [f"# {story.title}", f"*A {story.format.value} by GérerTales*"]
    parts.extend(f"## {chapter_heading(chapter)}\n\n{chapter.content}" for chapter in story.toc)
    return "\n\n".join(parts) + "\n"


def _pdf_text(text: str) -> str:
    for original, replacement in _PDF_REPLACEMENTS.items():
        text = text.replace(original, replacement)
    return text.encode("latin-1", "replace").decode("latin-1")


def _cover_bytes(cover_image: str | None) -> bytes | None:
    if not cover_image:
        return None
    match = _DATA_URI.match(cover_image)
    if match is None:
        return None
    try:
        return base64.b64decode(match.group("data"), validate=True)
    except binascii.Error:
        return None


def story_to_pdf(story: Story) -> bytes:
    """Render a title page (with the cover when embedded) and one page per chapter.

    Raises:
        ExportError: If fpdf2 cannot render the document.
    """

    pdf = FPDF()
    pdf.set_auto_page_break(auto=True, margin=PDF_MARGIN)
    pdf.set_margins(PDF_MARGIN, PDF_MARGIN, PDF_MARGIN)
    width = pdf.w - pdf.l_margin - pdf.r_margin

    try:
        pdf.add_page()
        pdf.set_y(40)
        pdf.set_font("Times", "B", 24)
        pdf.multi_cell(width, 12, _pdf_text(story.title), align="C")
        pdf.ln(4)
        pdf.set_font("Times", "I", 14)
        pdf.multi_cell(width, 8, _pdf_text(f"A {story.format.value} by GérerTales"), align="C")

        cover = _cover_bytes(story.cover_image)
        if cover is not None:
            pdf.ln(10)
            try:
                pdf.image(io.BytesIO(cover), x=(pdf.w - COVER_WIDTH) / 2, w=COVER_WIDTH)
            except Exception as exc:  # unreadable covers are left out of the document
                logger.warning("Could not add cover image to PDF", extra={"story_id": story.id, "error": str(exc)})

        for chapter in story.toc:
            pdf.add_page()
            pdf.set_font("Times", "B", 18)
            pdf.multi_cell(width, 10, _pdf_text(chapter_heading(chapter)), align="C")
            pdf.ln(10)
            pdf.set_font("Times", "", 12)
            content = chapter.content.strip() or EMPTY_CHAPTER_TEXT
            for paragraph in content.split("\n"):
                if not paragraph.strip():
                    pdf.ln(4)
                    continue
                pdf.multi_cell(width, 7, _pdf_text(paragraph.strip()))
        return bytes(pdf.output())
    except FPDFException as exc:
        raise ExportError(f"Unable to export PDF: {exc}") from exc
