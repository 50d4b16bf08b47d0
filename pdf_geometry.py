"""Document-space to surface-pixel conversion.

PDF user space has its origin at the bottom-left with y growing upward; a
rendered surface has its origin at the top-left with y growing downward. A
Viewport carries the affine transform between the two for one scale.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from pdf_errors import HighlightGeometryError
from pdf_models import Box, SurfaceRect

Matrix = tuple[float, float, float, float, float, float]


@dataclass(frozen=True)
class Viewport:
    width: float
    height: float
    scale: float
    transform: Matrix

    @classmethod
    def for_page(cls, page_width: float, page_height: float, scale: float = 1.0) -> Viewport:
        transform = (scale, 0.0, 0.0, -scale, 0.0, page_height * scale)
        return cls(
            width=page_width * scale,
            height=page_height * scale,
            scale=scale,
            transform=transform,
        )

    def convert_point(self, x: float, y: float) -> tuple[float, float]:
        a, b, c, d, e, f = self.transform
        return a * x + c * y + e, b * x + d * y + f

    def invert_point(self, px: float, py: float) -> tuple[float, float]:
        a, b, c, d, e, f = self.transform
        det = a * d - b * c
        if det == 0:
            raise HighlightGeometryError("viewport transform is not invertible")
        px, py = px - e, py - f
        return (d * px - c * py) / det, (a * py - b * px) / det


def _check_finite(label: str, values) -> None:
    for v in values:
        if not isinstance(v, (int, float)) or not math.isfinite(v):
            raise HighlightGeometryError(f"{label} has a non-finite value: {v!r}")


def _validate(viewport: Viewport) -> Matrix:
    transform = getattr(viewport, "transform", None)
    scale = getattr(viewport, "scale", None)
    try:
        a, b, c, d, e, f = transform
    except (TypeError, ValueError) as exc:
        raise HighlightGeometryError(f"malformed viewport: {viewport!r}") from exc
    transform = (a, b, c, d, e, f)
    _check_finite("viewport", transform)
    _check_finite("viewport", (scale,))
    if scale <= 0:
        raise HighlightGeometryError(f"viewport scale must be positive, got {scale}")
    return transform


def map_to_surface(box: Box, viewport: Viewport) -> SurfaceRect:
    """Map *box* onto the surface described by *viewport*.

    Both corners are transformed and the result normalized per axis, so the
    rectangle is correct whichever way the viewport points its y axis.
    """
    a, b, c, d, e, f = _validate(viewport)
    _check_finite("box", (box.x, box.y, box.width, box.height))

    x0, y0 = a * box.x + c * box.y + e, b * box.x + d * box.y + f
    xr, yt = box.x + box.width, box.y + box.height
    x1, y1 = a * xr + c * yt + e, b * xr + d * yt + f
    return SurfaceRect(
        left=min(x0, x1),
        top=min(y0, y1),
        width=abs(x0 - x1),
        height=abs(y0 - y1),
    )


def map_from_surface(rect: SurfaceRect, viewport: Viewport) -> Box:
    """Inverse of map_to_surface for boxes with non-negative size."""
    _validate(viewport)
    _check_finite("rect", (rect.left, rect.top, rect.width, rect.height))

    x0, y0 = viewport.invert_point(rect.left, rect.top)
    x1, y1 = viewport.invert_point(rect.left + rect.width, rect.top + rect.height)
    return Box(x=min(x0, x1), y=min(y0, y1), width=abs(x0 - x1), height=abs(y0 - y1))
