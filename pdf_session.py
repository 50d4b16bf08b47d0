from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path

from pdf_document import PlumberDocument, validate_pdf_path
from pdf_errors import DocumentDecodeError, DocumentExtractionError, InvalidQueryError, RenderError
from pdf_extract import ROW_TOLERANCE
from pdf_highlight import HIGHLIGHT_EXPIRY, HighlightPresenter, PageSurface
from pdf_models import LogicalLine, MatchResult, SearchOutcome
from pdf_pipeline import build_corpus
from pdf_search import DEFAULT_THRESHOLD, MAX_RESULTS, run_search

logger = logging.getLogger(__name__)

RENDER_SCALE = 1.5


class RenderQueue:
    """FIFO of page jobs run one at a time by a single worker task."""

    def __init__(self) -> None:
        self._jobs: asyncio.Queue = asyncio.Queue()
        self._worker: asyncio.Task | None = None
        self._current: tuple[int, asyncio.Future] | None = None
        self._closed = False

    def submit(self, page_number: int, job: Callable[[], Awaitable[PageSurface]]) -> asyncio.Future:
        if self._closed:
            raise RenderError(page_number, "render queue is closed")
        loop = asyncio.get_running_loop()
        future = loop.create_future()
        self._jobs.put_nowait((page_number, job, future))
        if self._worker is None:
            self._worker = loop.create_task(self._run())
        return future

    async def _run(self) -> None:
        while True:
            page_number, job, future = await self._jobs.get()
            self._current = (page_number, future)
            try:
                result = await job()
            except Exception as exc:
                if not future.done():
                    future.set_exception(exc)
            else:
                if not future.done():
                    future.set_result(result)
            finally:
                self._current = None
                self._jobs.task_done()

    def close(self) -> None:
        """Stop the worker and fail every job that has not finished."""
        self._closed = True
        pending = [self._current] if self._current is not None else []
        while not self._jobs.empty():
            page_number, _, future = self._jobs.get_nowait()
            pending.append((page_number, future))
        for page_number, future in pending:
            if not future.done():
                future.set_exception(RenderError(page_number, "render queue was closed"))
        if self._worker is not None:
            self._worker.cancel()
            self._worker = None


class Session:
    """Everything tied to the currently loaded document.

    ``reset()`` drops the document, its corpus, the rendered surfaces and
    their highlights in one step. Work started for an earlier document
    notices the reset and leaves the new state alone.
    """

    def __init__(
        self,
        scale: float = RENDER_SCALE,
        row_tolerance: float = ROW_TOLERANCE,
        highlight_expiry: float = HIGHLIGHT_EXPIRY,
        opener: Callable = PlumberDocument.open,
    ) -> None:
        self.scale = scale
        self.row_tolerance = row_tolerance
        self.presenter = HighlightPresenter(highlight_expiry)
        self._open = opener
        self._generation = 0
        self.status = ""
        self.document = None
        self.corpus: list[LogicalLine] = []
        self.surfaces: dict[int, PageSurface] = {}
        self._queue = RenderQueue()
        self.reset()

    @property
    def rendered_pages(self) -> set[int]:
        return set(self.surfaces)

    def set_status(self, message: str) -> None:
        self.status = message
        logger.info(message)

    def reset(self) -> None:
        self._generation += 1
        self._queue.close()
        for surface in self.surfaces.values():
            surface.clear_highlights()
        if self.document is not None:
            self.document.close()
        self.document = None
        self.corpus = []
        self.surfaces = {}
        self._queue = RenderQueue()
        self.set_status("No PDF loaded.")

    clear = reset

    async def load_path(self, path: str | Path) -> list[LogicalLine]:
        path = validate_pdf_path(path)
        return await self.load_bytes(path.read_bytes(), path.name)

    async def load_bytes(self, data: bytes, name: str = "document.pdf") -> list[LogicalLine]:
        """Replace the current document with *data* and build its corpus.

        On a decode or extraction failure the session is left empty and the
        error is re-raised.
        """
        self.reset()
        generation = self._generation
        self.set_status(f"Reading {name}...")

        try:
            document = self._open(data, name)
        except DocumentDecodeError:
            logger.exception("Failed to load PDF %s", name)
            self.reset()
            self.set_status("Error loading PDF. See log.")
            raise
        self.document = document
        self.set_status(
            f"PDF loaded — {document.num_pages} pages. Extracting text (this may take a few seconds)..."
        )

        try:
            corpus = await build_corpus(document, self.row_tolerance)
        except DocumentExtractionError:
            if generation != self._generation:
                logger.debug("load of %s superseded during extraction", name)
                return []
            logger.exception("Failed to extract text from %s", name)
            self.reset()
            self.set_status("Error extracting text from PDF. See log.")
            raise
        if generation != self._generation:
            logger.debug("load of %s superseded during extraction", name)
            return []

        self.corpus = corpus
        self.set_status(f"Extracted {len(corpus)} lines. Ready to search.")
        await self.ensure_page_rendered(1)
        if generation != self._generation:
            logger.debug("load of %s superseded during first render", name)
            return []
        return self.corpus

    async def _materialize(self, page_number: int, generation: int) -> PageSurface:
        if generation != self._generation:
            raise RenderError(page_number, "session was reset")
        existing = self.surfaces.get(page_number)
        if existing is not None:
            return existing

        try:
            page = await self.document.get_page(page_number)
            viewport = page.get_viewport(self.scale)
            image = await page.render(self.scale)
        except RenderError:
            raise
        except Exception as exc:
            raise RenderError(page_number, f"could not render page {page_number}: {exc}") from exc

        if generation != self._generation:
            raise RenderError(page_number, "session was reset")
        surface = PageSurface(page_number=page_number, image=image, viewport=viewport)
        self.surfaces[page_number] = surface
        return surface

    async def ensure_page_rendered(self, page_number: int) -> PageSurface | None:
        """Render *page_number* once; returns None if it could not be rendered."""
        if self.document is None:
            return None
        if page_number in self.surfaces:
            return self.surfaces[page_number]

        generation = self._generation
        try:
            return await self._queue.submit(page_number, lambda: self._materialize(page_number, generation))
        except RenderError as exc:
            if generation == self._generation:
                logger.error("Render error: %s", exc)
                self.set_status(f"Could not render page {page_number}.")
            return None

    def search(self, query: str, threshold: float = DEFAULT_THRESHOLD, cap: int = MAX_RESULTS) -> SearchOutcome:
        if self.document is None:
            raise InvalidQueryError("Please load a PDF first.")
        self.set_status(f'Searching for: "{query.strip()}" ...')
        outcome = run_search(self.corpus, query, threshold, cap)
        if outcome.total == 0:
            self.set_status("No matches found.")
        else:
            self.set_status(f"Found {outcome.total} matches. Showing top {len(outcome.matches)}.")
        return outcome

    async def goto(self, match: MatchResult) -> PageSurface | None:
        """Materialize the page holding *match* and highlight its line there."""
        line = match.line
        surface = await self.ensure_page_rendered(line.page_number)
        if surface is None:
            return None
        self.presenter.present(surface, surface.viewport, line)
        self.set_status(f"Page {line.page_number}: {line.text}")
        return surface
