"""Fuzzy-find text in a PDF and highlight where it is.

Pipeline:
  1. build_corpus   – words from every page are merged into logical lines,
                      each carrying its page number and bounding box
  2. search         – lines are ranked against the query with rapidfuzz;
                      if nothing clears the threshold, plain substring hits
                      are listed instead
  3. goto           – the page holding a chosen match is rendered once and a
                      highlight is drawn over the line; the page is written
                      out as a PNG

Run with a QUERY for a one-shot search, or without one for a prompt that
accepts queries, ``#N`` to jump to result N, ``:open FILE``, ``:clear``
and ``:q``.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from pdf_errors import InvalidInputError, PdfFindError
from pdf_models import SearchOutcome
from pdf_pipeline import preview
from pdf_search import DEFAULT_THRESHOLD, MAX_RESULTS, format_score
from pdf_session import RENDER_SCALE, Session


def _print_results(outcome: SearchOutcome) -> None:
    if not outcome.matches:
        print("No matches found.")
        return
    note = " (substring fallback)" if outcome.fallback else ""
    print(f"Matches for {outcome.query!r}{note}:\n")
    for i, match in enumerate(outcome.matches, 1):
        line = match.line
        score = format_score(match)
        score = f" {score}" if score else ""
        print(f"  #{i} Page {line.page_number}{score} — {preview(line.text)}")
    print(f"\nFound {outcome.total} matches. Showing top {len(outcome.matches)}.")


def _output_path(source: Path | None, page_number: int, output: str | None) -> Path:
    if output:
        return Path(output)
    stem = source.stem if source is not None else "page"
    return Path(f"{stem}-page{page_number}.png")


async def _goto(session: Session, outcome: SearchOutcome, rank: int, source: Path | None, output: str | None) -> bool:
    if not 1 <= rank <= len(outcome.matches):
        print(f"No result #{rank}; there are {len(outcome.matches)}.", file=sys.stderr)
        return False
    match = outcome.matches[rank - 1]
    surface = await session.goto(match)
    if surface is None:
        print(session.status, file=sys.stderr)
        return False
    path = _output_path(source, surface.page_number, output)
    surface.snapshot().save(path)
    print(f"Page {surface.page_number} written to {path}")
    return True


async def _interactive(session: Session, source: Path, args: argparse.Namespace) -> None:
    outcome: SearchOutcome | None = None
    print(session.status)
    while True:
        try:
            raw = await asyncio.to_thread(input, "search> ")
        except EOFError:
            print()
            break
        command = raw.strip()
        if not command:
            continue
        if command in (":q", ":quit"):
            break

        if command == ":clear":
            session.clear()
            outcome = None
            print(session.status)
            continue

        if command.startswith(":open "):
            outcome = None
            path = Path(command[len(":open "):].strip())
            try:
                await session.load_path(path)
                source = path
            except PdfFindError as exc:
                print(f"Error: {exc}", file=sys.stderr)
            print(session.status)
            continue

        if command.startswith("#"):
            if outcome is None:
                print("Search first.", file=sys.stderr)
                continue
            try:
                rank = int(command[1:])
            except ValueError:
                print(f"Not a result number: {command!r}", file=sys.stderr)
                continue
            await _goto(session, outcome, rank, source, args.output)
            continue

        try:
            outcome = session.search(command, args.threshold, args.top_n)
        except InvalidInputError as exc:
            print(exc, file=sys.stderr)
            continue
        _print_results(outcome)


async def run(args: argparse.Namespace) -> int:
    session = Session(scale=args.scale)
    source = Path(args.pdf)
    try:
        await session.load_path(source)
    except PdfFindError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    print(session.status)

    try:
        if args.query is None:
            await _interactive(session, source, args)
            return 0

        try:
            outcome = session.search(args.query, args.threshold, args.top_n)
        except InvalidInputError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return 1
        _print_results(outcome)
        if args.goto is not None:
            return 0 if await _goto(session, outcome, args.goto, source, args.output) else 1
        return 0
    finally:
        session.reset()


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Fuzzy-find text in a PDF and highlight the matching line.",
    )
    parser.add_argument("pdf", help="Path to the PDF file")
    parser.add_argument("query", nargs="?", help="Text to look for (omit for an interactive prompt)")
    parser.add_argument(
        "-t", "--threshold",
        type=float, default=DEFAULT_THRESHOLD, metavar="T",
        help=f"Match threshold from 0 (exact) to 1 (anything) (default: {DEFAULT_THRESHOLD})",
    )
    parser.add_argument(
        "-n", "--top-n",
        type=_positive_int, default=MAX_RESULTS, metavar="N",
        help=f"Show at most N matches (default: {MAX_RESULTS})",
    )
    parser.add_argument(
        "--goto",
        type=int, metavar="N",
        help="Highlight result N and write its page as a PNG",
    )
    parser.add_argument(
        "-o", "--output",
        metavar="PNG",
        help="Where to write the highlighted page (default: <pdf>-page<N>.png)",
    )
    parser.add_argument(
        "--scale",
        type=float, default=RENDER_SCALE,
        help=f"Render scale for pages, 1.0 = 72 dpi (default: {RENDER_SCALE})",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log progress and diagnostics to stderr",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
