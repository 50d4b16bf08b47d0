from __future__ import annotations


class PdfFindError(Exception):
    """Base class for every failure reported to the user."""


class InvalidInputError(PdfFindError):
    """The supplied file is not a PDF; nothing was changed."""


class InvalidQueryError(InvalidInputError):
    """The search request itself is unusable (blank query, bad threshold, no document)."""


class DocumentDecodeError(PdfFindError):
    """The decoder could not parse the document bytes."""


class DocumentExtractionError(PdfFindError):
    """A page's text content could not be retrieved."""

    def __init__(self, page_number: int, message: str = "") -> None:
        self.page_number = page_number
        super().__init__(message or f"could not extract text from page {page_number}")


class RenderError(PdfFindError):
    """A single page failed to materialize."""

    def __init__(self, page_number: int, message: str = "") -> None:
        self.page_number = page_number
        super().__init__(message or f"could not render page {page_number}")


class HighlightGeometryError(ValueError, PdfFindError):
    """A box or viewport could not be mapped to surface pixels."""
