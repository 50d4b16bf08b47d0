from __future__ import annotations

import re
from collections.abc import Iterable

import pdfplumber

from pdf_models import LogicalLine, TextFragment

ROW_TOLERANCE = 3.0
MIN_FRAGMENT_HEIGHT = 10.0

_WHITESPACE_RE = re.compile(r"\s+")


def page_fragments(page: pdfplumber.page.Page) -> list[TextFragment]:
    """Return the words on *page* as fragments in content-stream order.

    pdfplumber measures ``top``/``bottom`` down from the top of the page; the
    fragment origin is moved back to the bottom-up PDF user space so that a
    viewport has to flip the y axis, as it would for any other decoder.
    """
    fragments: list[TextFragment] = []
    words = page.extract_words(use_text_flow=True, keep_blank_chars=False, extra_attrs=["size"])
    for w in words:
        size = float(w.get("size") or 0.0)
        baseline = page.height - w["bottom"]
        fragments.append(
            TextFragment(
                text=w["text"],
                transform=(size, 0.0, 0.0, size, float(w["x0"]), float(baseline)),
                width=float(w["x1"] - w["x0"]),
                height=float(w["bottom"] - w["top"]),
            )
        )
    return fragments


def _fragment_height(fragment: TextFragment, min_height: float) -> float:
    if fragment.height is not None:
        return fragment.height
    return max(abs(fragment.transform[3]), min_height)


def normalize_text(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def fragments_to_lines(
    fragments: Iterable[TextFragment],
    page_number: int,
    row_tolerance: float = ROW_TOLERANCE,
    min_height: float = MIN_FRAGMENT_HEIGHT,
) -> list[LogicalLine]:
    """Merge *fragments* into logical lines, keeping the decoder's order.

    A fragment joins the current line when its baseline is within
    *row_tolerance* of the line's baseline; otherwise it starts a new one.
    The line keeps the anchor of its first fragment and grows its right edge
    to the furthest fragment seen. Lines that are blank after whitespace
    normalization are dropped.
    """
    raw: list[dict] = []
    current: dict | None = None

    for frag in fragments:
        x, y = frag.x, frag.y
        w = frag.width or 0.0
        h = _fragment_height(frag, min_height)

        if current is not None and abs(current["y"] - y) <= row_tolerance:
            right_edge = max(current["x"] + current["width"], x + w)
            current["width"] = right_edge - current["x"]
            current["text"] += " " + frag.text
            current["height"] = max(current["height"], h)
            continue

        if current is not None:
            raw.append(current)
        current = {"text": frag.text, "x": x, "y": y, "width": w, "height": h}

    if current is not None:
        raw.append(current)

    lines: list[LogicalLine] = []
    for entry in raw:
        text = normalize_text(entry["text"])
        if not text:
            continue
        lines.append(
            LogicalLine(
                text=text,
                page_number=page_number,
                x=entry["x"],
                y=entry["y"],
                width=entry["width"],
                height=entry["height"],
            )
        )
    return lines
