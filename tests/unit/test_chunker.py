"""Unit tests for the markdown section chunker."""

import pytest

from policy_rag.rag.chunking import MarkdownSectionChunker, chunk_text, get_chunker
from tests.fakes import make_text


def test_empty_and_whitespace_input_yield_no_chunks() -> None:
    assert chunk_text("") == []
    assert chunk_text("   \n\n\t  ") == []


def test_short_document_without_headers_is_one_chunk() -> None:
    text = make_text(150)
    chunks = chunk_text(f"\n  {text}  \n")
    assert chunks == [text]


def test_chunks_below_minimum_are_dropped() -> None:
    assert chunk_text(make_text(99)) == []
    assert chunk_text(make_text(100)) == [make_text(100)]


def test_section_at_exact_limit_is_not_split() -> None:
    section = "# Title\n" + make_text(992)
    assert len(section) == 1000
    assert chunk_text(section) == [section]


def test_sections_are_split_on_h1_to_h3_headers_in_order() -> None:
    doc = "\n".join(
        [
            "# 1. Purpose",
            make_text(150, "purpose"),
            "## 2. Scope",
            make_text(150, "scope"),
            "### 2.1 Exclusions",
            make_text(150, "exclusion"),
        ]
    )
    chunks = chunk_text(doc)
    assert [c.split("\n")[0] for c in chunks] == ["# 1. Purpose", "## 2. Scope", "### 2.1 Exclusions"]


def test_deeper_headers_and_hash_without_space_do_not_split() -> None:
    doc = "\n".join(
        [
            "## Access Control",
            make_text(120, "access"),
            "#### Detail",
            make_text(120, "detail"),
            "#hashtag",
            make_text(120, "tag"),
        ]
    )
    chunks = chunk_text(doc)
    assert len(chunks) == 1
    assert "#### Detail" in chunks[0]
    assert "#hashtag" in chunks[0]


def test_leading_prose_forms_its_own_section() -> None:
    doc = make_text(130, "preamble") + "\n# Policy\n" + make_text(130, "body")
    chunks = chunk_text(doc)
    assert len(chunks) == 2
    assert chunks[0].startswith("preamble")
    assert chunks[1].startswith("# Policy")


def test_oversized_section_keeps_header_on_every_chunk() -> None:
    header = "## 3.2 Access Control"
    paragraphs = [make_text(300, f"clause{i}") for i in range(6)]
    section = header + "\n" + "\n\n".join(paragraphs)
    assert len(section) > 1000

    chunks = chunk_text(section)

    assert len(chunks) == 2
    for chunk in chunks:
        assert chunk.startswith(header + "\n\n")
        assert 100 <= len(chunk) <= 1000
    # Paragraphs stay in document order across chunks
    joined = "\n\n".join(chunks)
    positions = [joined.index(p) for p in paragraphs]
    assert positions == sorted(positions)


def test_oversized_section_packs_paragraphs_up_to_limit() -> None:
    header = "# Retention"
    paragraphs = [make_text(300, "keep") for _ in range(4)]
    chunks = chunk_text(header + "\n" + "\n\n".join(paragraphs))

    # 11 + 3 * (300 + 2) = 917 fits; the fourth paragraph starts a new chunk
    assert chunks[0] == header + "\n\n" + "\n\n".join(paragraphs[:3])
    assert chunks[1] == header + "\n\n" + paragraphs[3]


def test_single_paragraph_longer_than_limit_is_emitted_whole() -> None:
    header = "# Glossary"
    long_para = make_text(1500, "term")
    chunks = chunk_text(header + "\n" + long_para)
    assert chunks == [header + "\n\n" + long_para]


def test_blank_line_runs_and_whitespace_paragraphs_are_ignored() -> None:
    header = "# Incidents"
    body = "\n\n\n\n".join([make_text(600, "report"), "   ", make_text(600, "escalate")])
    chunks = chunk_text(header + "\n" + body)
    assert len(chunks) == 2
    assert all(c.startswith(header) for c in chunks)


def test_custom_limits() -> None:
    chunker = MarkdownSectionChunker(max_chars=200, min_chars=20)
    body = "\n\n".join(make_text(90, w) for w in ("one", "two", "three"))
    chunks = chunker.chunk("# A\n" + body)
    assert len(chunks) == 2
    assert all(len(c) <= 200 for c in chunks)


def test_chunking_is_deterministic() -> None:
    doc = "# H\n" + "\n\n".join(make_text(400, f"p{i}") for i in range(5))
    assert chunk_text(doc) == chunk_text(doc)


def test_get_chunker_rejects_unknown_strategy() -> None:
    assert isinstance(get_chunker("markdown"), MarkdownSectionChunker)
    with pytest.raises(ValueError, match="Unknown chunking strategy"):
        get_chunker("fixed")
