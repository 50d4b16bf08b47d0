from __future__ import annotations

import io
import logging
import mimetypes
import warnings
from pathlib import Path

import pdfplumber
from PIL import Image

from pdf_errors import DocumentDecodeError, DocumentExtractionError, InvalidInputError, RenderError
from pdf_extract import page_fragments
from pdf_geometry import Viewport
from pdf_models import TextFragment

logging.getLogger("pdfminer").setLevel(logging.ERROR)
warnings.filterwarnings("ignore", module="pdfminer")

logger = logging.getLogger(__name__)

PDF_MEDIA_TYPE = "application/pdf"


def validate_pdf_path(path: str | Path) -> Path:
    """Return *path* as a Path if it names an existing PDF file."""
    path = Path(path)
    media_type, _ = mimetypes.guess_type(path.name)
    if media_type != PDF_MEDIA_TYPE:
        raise InvalidInputError(f"Please provide a PDF file (got {path.name!r}).")
    if not path.is_file():
        raise InvalidInputError(f"File not found: {path}")
    return path


class PlumberPage:
    """One page of a PlumberDocument."""

    def __init__(self, page: pdfplumber.page.Page) -> None:
        self._page = page
        self.page_number: int = page.page_number

    @property
    def width(self) -> float:
        return float(self._page.width)

    @property
    def height(self) -> float:
        return float(self._page.height)

    async def get_text_content(self) -> list[TextFragment]:
        try:
            return page_fragments(self._page)
        except Exception as exc:
            raise DocumentExtractionError(self.page_number, str(exc)) from exc

    def get_viewport(self, scale: float = 1.0) -> Viewport:
        return Viewport.for_page(self.width, self.height, scale)

    async def render(self, scale: float = 1.0) -> Image.Image:
        """Rasterize the page at *scale* (1.0 = 72 dpi)."""
        try:
            page_image = self._page.to_image(resolution=72 * scale)
            return page_image.original.convert("RGB")
        except Exception as exc:
            raise RenderError(self.page_number, f"could not render page {self.page_number}: {exc}") from exc


class PlumberDocument:
    """Decoder for one immutable PDF, opened from bytes."""

    def __init__(self, pdf: pdfplumber.PDF, name: str = "") -> None:
        self._pdf = pdf
        self.name = name
        self.num_pages: int = len(pdf.pages)

    @classmethod
    def open(cls, data: bytes, name: str = "") -> PlumberDocument:
        try:
            pdf = pdfplumber.open(io.BytesIO(data))
        except Exception as exc:
            raise DocumentDecodeError(f"could not parse {name or 'document'}: {exc}") from exc
        try:
            return cls(pdf, name)
        except Exception as exc:
            pdf.close()
            raise DocumentDecodeError(f"could not parse {name or 'document'}: {exc}") from exc

    async def get_page(self, page_number: int) -> PlumberPage:
        if not 1 <= page_number <= self.num_pages:
            raise IndexError(f"page {page_number} out of range 1-{self.num_pages}")
        return PlumberPage(self._pdf.pages[page_number - 1])

    def close(self) -> None:
        self._pdf.close()
