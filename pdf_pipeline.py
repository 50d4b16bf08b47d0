from __future__ import annotations

import logging

from pdf_errors import DocumentExtractionError
from pdf_extract import ROW_TOLERANCE, fragments_to_lines
from pdf_models import LogicalLine

logger = logging.getLogger(__name__)

PREVIEW_LIMIT = 160


def preview(text: str, limit: int = PREVIEW_LIMIT) -> str:
    """Return *text* cut down to *limit* characters for display."""
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "…"


async def extract_page_lines(document, page_number: int, row_tolerance: float = ROW_TOLERANCE) -> list[LogicalLine]:
    try:
        page = await document.get_page(page_number)
        fragments = await page.get_text_content()
    except DocumentExtractionError:
        raise
    except Exception as exc:
        raise DocumentExtractionError(page_number, f"could not extract text from page {page_number}: {exc}") from exc
    return fragments_to_lines(fragments, page_number, row_tolerance=row_tolerance)


async def build_corpus(document, row_tolerance: float = ROW_TOLERANCE) -> list[LogicalLine]:
    """Extract every page of *document*, in page order, into one flat list of lines.

    Any page that cannot be read aborts the whole build; callers never see
    a partial corpus.
    """
    corpus: list[LogicalLine] = []
    for page_number in range(1, document.num_pages + 1):
        lines = await extract_page_lines(document, page_number, row_tolerance)
        logger.debug("page %d: %d lines", page_number, len(lines))
        corpus.extend(lines)
    return corpus
