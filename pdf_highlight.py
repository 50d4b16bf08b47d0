"""Transient highlight rectangles on rendered page surfaces.

plan_highlight decides what a surface should look like after a jump to a
line; HighlightPresenter applies that decision and expires it later. Each
surface holds at most one highlight at a time.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from PIL import Image, ImageDraw

from pdf_errors import HighlightGeometryError
from pdf_geometry import Viewport, map_to_surface
from pdf_models import Box, LogicalLine, SurfaceRect

logger = logging.getLogger(__name__)

HIGHLIGHT_EXPIRY = 6.0
DEFAULT_BOX_WIDTH = 50.0
DEFAULT_BOX_HEIGHT = 12.0
HIGHLIGHT_FILL = (255, 214, 0, 96)
HIGHLIGHT_OUTLINE = (230, 160, 0, 255)


@dataclass(eq=False)
class HighlightElement:
    rect: SurfaceRect
    expiry: asyncio.TimerHandle | None = None


@dataclass(eq=False)
class PageSurface:
    """A materialized page: its raster plus the highlights placed on it."""

    page_number: int
    image: Image.Image
    viewport: Viewport
    highlights: list[HighlightElement] = field(default_factory=list)

    def add_highlight(self, element: HighlightElement) -> None:
        self.highlights.append(element)

    def remove_highlight(self, element: HighlightElement) -> None:
        if element.expiry is not None:
            element.expiry.cancel()
            element.expiry = None
        if element in self.highlights:
            self.highlights.remove(element)

    def clear_highlights(self) -> None:
        for element in list(self.highlights):
            self.remove_highlight(element)

    def snapshot(self) -> Image.Image:
        """Return the page image with the active highlights drawn over it."""
        base = self.image.convert("RGBA")
        if not self.highlights:
            return base.convert("RGB")
        overlay = Image.new("RGBA", base.size, (0, 0, 0, 0))
        draw = ImageDraw.Draw(overlay)
        for element in self.highlights:
            draw.rectangle(element.rect.bbox, fill=HIGHLIGHT_FILL, outline=HIGHLIGHT_OUTLINE, width=2)
        return Image.alpha_composite(base, overlay).convert("RGB")


@dataclass(frozen=True)
class HighlightPlan:
    page_number: int
    remove: tuple[HighlightElement, ...]
    rect: SurfaceRect | None
    error: str | None = None


def line_box(line: LogicalLine) -> Box:
    """The document-space box of *line*, with a small default box for missing geometry."""
    x = getattr(line, "x", None)
    y = getattr(line, "y", None)
    width = getattr(line, "width", None)
    height = getattr(line, "height", None)
    return Box(
        x=0.0 if x is None else x,
        y=0.0 if y is None else y,
        width=DEFAULT_BOX_WIDTH if width is None else width,
        height=DEFAULT_BOX_HEIGHT if height is None else height,
    )


def plan_highlight(surface: PageSurface, viewport: Viewport, line: LogicalLine) -> HighlightPlan:
    remove = tuple(surface.highlights)
    try:
        rect = map_to_surface(line_box(line), viewport)
    except HighlightGeometryError as exc:
        return HighlightPlan(surface.page_number, remove, None, str(exc))
    return HighlightPlan(surface.page_number, remove, rect)


class HighlightPresenter:
    def __init__(self, expiry: float = HIGHLIGHT_EXPIRY) -> None:
        self.expiry = expiry

    def apply(self, surface: PageSurface, plan: HighlightPlan) -> HighlightElement | None:
        for element in plan.remove:
            surface.remove_highlight(element)
        if plan.rect is None:
            logger.warning("Highlight failed on page %d: %s", plan.page_number, plan.error)
            return None

        element = HighlightElement(rect=plan.rect)
        surface.add_highlight(element)
        loop = asyncio.get_running_loop()
        element.expiry = loop.call_later(self.expiry, surface.remove_highlight, element)
        return element

    def present(self, surface: PageSurface, viewport: Viewport, line: LogicalLine) -> HighlightElement | None:
        """Replace any highlight on *surface* with one over *line*.

        Must be called from a running event loop, which owns the expiry timer.
        Geometry problems are logged and leave the surface without a highlight.
        """
        return self.apply(surface, plan_highlight(surface, viewport, line))
