"""Document chunking strategies.

Splits markdown policy text into bounded chunks that keep their section
header, so each chunk stays self-describing for retrieval.
"""

import re
from abc import ABC, abstractmethod

# Newline followed by an H1-H3 marker; the header stays with its section
SECTION_BOUNDARY = re.compile(r"\n(?=#{1,3} )")
PARAGRAPH_BOUNDARY = re.compile(r"\n\n+")

DEFAULT_MAX_CHARS = 1000
DEFAULT_MIN_CHARS = 100


class ChunkingStrategy(ABC):
    """Base class for chunking strategies."""

    @abstractmethod
    def chunk(self, text: str) -> list[str]:
        """Split text into chunks, in document order."""


class MarkdownSectionChunker(ChunkingStrategy):
    """Header-anchored chunking for markdown documents.

    Sections up to ``max_chars`` are kept whole. Larger sections are split
    on paragraph boundaries and every piece is prefixed with the section's
    first line. Chunks shorter than ``min_chars`` are dropped as noise.
    """

    def __init__(
        self,
        max_chars: int = DEFAULT_MAX_CHARS,
        min_chars: int = DEFAULT_MIN_CHARS,
    ):
        self.max_chars = max_chars
        self.min_chars = min_chars

    def chunk(self, text: str) -> list[str]:
        """Split text by markdown sections."""
        if not text.strip():
            return []

        chunks: list[str] = []
        for section in SECTION_BOUNDARY.split(text):
            section = section.strip()
            if not section:
                continue

            if len(section) <= self.max_chars:
                chunks.append(section)
            else:
                chunks.extend(self._split_section(section))

        # Filter out noise (very short chunks)
        return [c for c in chunks if len(c) >= self.min_chars]

    def _split_section(self, section: str) -> list[str]:
        header, _, body = section.partition("\n")
        pieces: list[str] = []
        current = header

        for para in PARAGRAPH_BOUNDARY.split(body):
            para = para.strip()
            if not para:
                continue

            # +2 for the blank-line separator
            if len(current) + len(para) + 2 > self.max_chars:
                if len(current) > self.min_chars:
                    pieces.append(current.strip())
                current = f"{header}\n\n{para}"
            else:
                current = f"{current}\n\n{para}"

        if len(current) > self.min_chars:
            pieces.append(current.strip())

        return pieces


def get_chunker(strategy: str = "markdown", **kwargs) -> ChunkingStrategy:
    """Get a chunking strategy by name.

    Args:
        strategy: "markdown"
        **kwargs: Strategy-specific parameters

    Returns:
        Configured chunking strategy
    """
    if strategy == "markdown":
        return MarkdownSectionChunker(**kwargs)
    raise ValueError(f"Unknown chunking strategy: {strategy}")


def chunk_text(text: str) -> list[str]:
    """Chunk *text* with the default markdown strategy."""
    return MarkdownSectionChunker().chunk(text)


__all__ = [
    "ChunkingStrategy",
    "MarkdownSectionChunker",
    "chunk_text",
    "get_chunker",
]
