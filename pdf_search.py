from __future__ import annotations

import logging

from rapidfuzz import fuzz
from rapidfuzz.distance import Indel
from rapidfuzz.utils import default_process

from pdf_errors import InvalidQueryError
from pdf_models import LogicalLine, MatchResult, SearchOutcome

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.4
MAX_RESULTS = 30
MIN_MATCH_RUN = 3


def _longest_common_run(a: str, b: str) -> int:
    """Length of the longest block *a* and *b* share in their Indel alignment."""
    return max(
        (op.src_end - op.src_start for op in Indel.opcodes(a, b) if op.tag == "equal"),
        default=0,
    )


def _score_line(query: str, text: str) -> tuple[float, int]:
    """Return (score, longest matched run) of *query* against one processed line.

    Score is 0 for a perfect hit and 1 for no resemblance. The query is
    aligned against its best window anywhere in the line, so position in the
    line does not matter. A query longer than the line is compared whole.
    """
    if len(query) <= len(text):
        alignment = fuzz.partial_ratio_alignment(query, text)
        window = text[alignment.dest_start:alignment.dest_end]
        similarity = alignment.score
    else:
        window = text
        similarity = fuzz.ratio(query, text)
    # round off float noise: 1 - 70/100 must compare equal to 0.3
    return round(1.0 - similarity / 100.0, 9), _longest_common_run(query, window)


def _validate(query: str, threshold: float) -> str:
    q = (query or "").strip()
    if not q:
        raise InvalidQueryError("Type a search phrase.")
    if not 0.0 <= threshold <= 1.0:
        raise InvalidQueryError(f"threshold must be between 0 and 1, got {threshold}")
    return q


def fuzzy_matches(corpus: list[LogicalLine], query: str, threshold: float) -> list[MatchResult]:
    """Every line whose score is within *threshold*, best first, ties in corpus order."""
    q = default_process(query)
    if not q:
        return []
    min_run = min(MIN_MATCH_RUN, len(q))

    scored: list[tuple[float, int, LogicalLine]] = []
    for index, line in enumerate(corpus):
        text = default_process(line.text)
        if not text:
            continue
        score, run = _score_line(q, text)
        if score <= threshold and run >= min_run:
            scored.append((score, index, line))

    scored.sort(key=lambda t: (t[0], t[1]))
    return [MatchResult(line=line, score=score) for score, _, line in scored]


def substring_matches(corpus: list[LogicalLine], query: str) -> list[MatchResult]:
    """Case-insensitive containment scan in corpus order, unranked."""
    needle = query.lower()
    return [MatchResult(line=line, score=None) for line in corpus if needle in line.text.lower()]


def search(corpus: list[LogicalLine], query: str, threshold: float = DEFAULT_THRESHOLD) -> list[MatchResult]:
    """Rank *corpus* against *query*, falling back to plain substring hits.

    The fallback runs only when the fuzzy pass finds nothing, so a phrase
    typed exactly is still found under a threshold that is too strict.
    """
    q = _validate(query, threshold)
    results = fuzzy_matches(corpus, q, threshold)
    if results:
        logger.debug("fuzzy pass for %r matched %d lines", q, len(results))
        return results
    results = substring_matches(corpus, q)
    logger.debug("fuzzy pass for %r was empty; substring fallback matched %d lines", q, len(results))
    return results


def top_matches(results: list[MatchResult], cap: int = MAX_RESULTS) -> list[MatchResult]:
    return results[:cap]


def run_search(
    corpus: list[LogicalLine],
    query: str,
    threshold: float = DEFAULT_THRESHOLD,
    cap: int = MAX_RESULTS,
) -> SearchOutcome:
    """Search and cap; ``total`` keeps the count from before the cap."""
    results = search(corpus, query, threshold)
    return SearchOutcome(
        query=query.strip(),
        matches=top_matches(results, cap),
        total=len(results),
        fallback=bool(results) and results[0].score is None,
    )


def format_score(result: MatchResult) -> str:
    if result.score is None:
        return ""
    return f"(score {result.score:.3f})"
