from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class TextFragment:
    """A positioned run of text as emitted by the decoder for one page."""

    text: str
    transform: tuple[float, float, float, float, float, float]
    width: float
    height: float | None = None

    @property
    def x(self) -> float:
        return self.transform[4]

    @property
    def y(self) -> float:
        return self.transform[5]


@dataclass(frozen=True)
class LogicalLine:
    """One reconstructed row of text on one page, in document coordinates."""

    text: str
    page_number: int
    x: float
    y: float       # baseline of the first fragment merged into the line
    width: float
    height: float


@dataclass(frozen=True)
class Box:
    """A rectangle in document space anchored at its (x, y) corner."""

    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class SurfaceRect:
    """A rectangle in rendered-surface pixels, top-left anchored."""

    left: float
    top: float
    width: float
    height: float

    @property
    def bbox(self) -> tuple[float, float, float, float]:
        return (self.left, self.top, self.left + self.width, self.top + self.height)


@dataclass(frozen=True)
class MatchResult:
    """A corpus line that matched a query; score is None for substring fallback hits."""

    line: LogicalLine
    score: float | None


@dataclass
class SearchOutcome:
    """What one search hands to the presentation layer."""

    query: str
    matches: list[MatchResult] = field(default_factory=list)
    total: int = 0
    fallback: bool = False
