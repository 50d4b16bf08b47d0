from __future__ import annotations

import asyncio

import pytest

from conftest import fake_document, frag
from pdf_errors import DocumentExtractionError
from pdf_pipeline import build_corpus, preview


def test_corpus_keeps_page_then_line_order():
    doc = fake_document(["p1 first", "p1 second"], ["p2 only"], ["p3 first", "p3 second"])
    corpus = asyncio.run(build_corpus(doc))
    assert [(l.page_number, l.text) for l in corpus] == [
        (1, "p1 first"),
        (1, "p1 second"),
        (2, "p2 only"),
        (3, "p3 first"),
        (3, "p3 second"),
    ]


def test_empty_pages_contribute_nothing():
    doc = fake_document([], ["text"], [])
    corpus = asyncio.run(build_corpus(doc))
    assert [(l.page_number, l.text) for l in corpus] == [(2, "text")]


def test_row_tolerance_is_passed_through():
    doc = fake_document(["x"])
    doc.pages[0].fragments = [frag("a", 0, 700), frag("b", 20, 705)]
    assert len(asyncio.run(build_corpus(doc))) == 2
    assert len(asyncio.run(build_corpus(doc, row_tolerance=6))) == 1


def test_unreadable_page_aborts_the_build():
    doc = fake_document(["fine"], ["also fine"])
    doc.pages[1].fail_text = True
    with pytest.raises(DocumentExtractionError) as excinfo:
        asyncio.run(build_corpus(doc))
    assert excinfo.value.page_number == 2
    assert isinstance(excinfo.value.__cause__, RuntimeError)


def test_preview_truncates_long_text():
    assert preview("short") == "short"
    long_text = "x" * 200
    cut = preview(long_text)
    assert cut.endswith("…")
    assert len(cut) == 158
