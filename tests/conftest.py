from __future__ import annotations

import asyncio

import pytest
from PIL import Image

from pdf_geometry import Viewport
from pdf_models import LogicalLine, TextFragment


def frag(text: str, x: float, y: float, width: float = 10.0, height: float | None = 12.0, size: float = 12.0) -> TextFragment:
    return TextFragment(text=text, transform=(size, 0.0, 0.0, size, x, y), width=width, height=height)


def line(text: str, page_number: int = 1, x: float = 72.0, y: float = 700.0, width: float = 100.0, height: float = 12.0) -> LogicalLine:
    return LogicalLine(text=text, page_number=page_number, x=x, y=y, width=width, height=height)


class FakePage:
    def __init__(self, page_number: int, fragments: list[TextFragment], tracker: dict | None = None,
                 fail_text: bool = False, fail_render: bool = False,
                 width: float = 612.0, height: float = 792.0) -> None:
        self.page_number = page_number
        self.fragments = fragments
        self.tracker = tracker if tracker is not None else {"active": 0, "max_active": 0, "order": []}
        self.fail_text = fail_text
        self.fail_render = fail_render
        self.width = width
        self.height = height
        self.render_calls = 0

    async def get_text_content(self) -> list[TextFragment]:
        await asyncio.sleep(0)
        if self.fail_text:
            raise RuntimeError("broken content stream")
        return list(self.fragments)

    def get_viewport(self, scale: float = 1.0) -> Viewport:
        return Viewport.for_page(self.width, self.height, scale)

    async def render(self, scale: float = 1.0) -> Image.Image:
        self.render_calls += 1
        self.tracker["active"] += 1
        self.tracker["max_active"] = max(self.tracker["max_active"], self.tracker["active"])
        self.tracker["order"].append(self.page_number)
        try:
            await asyncio.sleep(0.01)
            if self.fail_render:
                raise RuntimeError("rasterizer crashed")
            return Image.new("RGB", (int(self.width * scale), int(self.height * scale)), "white")
        finally:
            self.tracker["active"] -= 1


class FakeDocument:
    def __init__(self, pages: list[FakePage]) -> None:
        self.pages = pages
        self.num_pages = len(pages)
        self.closed = False

    async def get_page(self, page_number: int) -> FakePage:
        return self.pages[page_number - 1]

    def close(self) -> None:
        self.closed = True


def fake_document(*page_texts: list[str], **page_kwargs) -> FakeDocument:
    """One FakePage per argument, each string a line placed 20 units below the last."""
    tracker = {"active": 0, "max_active": 0, "order": []}
    pages = []
    for number, texts in enumerate(page_texts, 1):
        fragments = [frag(text, 72.0, 720.0 - 20.0 * i, width=8.0 * len(text)) for i, text in enumerate(texts)]
        pages.append(FakePage(number, fragments, tracker=tracker, **page_kwargs))
    return FakeDocument(pages)


def _pdf_string(text: str) -> str:
    return text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def build_pdf(pages: list[list[tuple[float, float, str]]], width: int = 612, height: int = 792) -> bytes:
    """A minimal PDF with Helvetica text placed at (x, baseline y) on each page."""
    objects: list[bytes] = []
    font_id = 3
    page_ids = [4 + 2 * i for i in range(len(pages))]

    objects.append(b"<< /Type /Catalog /Pages 2 0 R >>")
    kids = " ".join(f"{pid} 0 R" for pid in page_ids)
    objects.append(f"<< /Type /Pages /Kids [{kids}] /Count {len(pages)} >>".encode())
    objects.append(b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica /Encoding /WinAnsiEncoding >>")

    for pid, items in zip(page_ids, pages):
        ops = "".join(f"BT /F1 12 Tf {x} {y} Td ({_pdf_string(t)}) Tj ET\n" for x, y, t in items).encode()
        objects.append(
            f"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 {width} {height}] "
            f"/Resources << /Font << /F1 {font_id} 0 R >> >> /Contents {pid + 1} 0 R >>".encode()
        )
        objects.append(b"<< /Length %d >>\nstream\n" % len(ops) + ops + b"endstream")

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, 1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"
    xref_at = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (len(objects) + 1, xref_at)
    return bytes(out)


@pytest.fixture
def two_page_pdf() -> bytes:
    return build_pdf([
        [(72, 720, "Alpha Beta"), (72, 690, "Quarterly Revenue Report")],
        [(72, 720, "Alpha Gamma")],
    ])


@pytest.fixture
def two_page_pdf_path(tmp_path, two_page_pdf):
    path = tmp_path / "report.pdf"
    path.write_bytes(two_page_pdf)
    return path
