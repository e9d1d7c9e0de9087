"""Document text extraction for uploaded files.

Supports: PDF (via LlamaParse), TXT, Markdown
"""

from abc import ABC, abstractmethod
from pathlib import PurePath

from policy_rag.core.errors import ErrorKind, ExtractionError, NoContentExtractedError
from policy_rag.rag.parser import LlamaParseClient


class TextExtractor(ABC):
    """Base class for text extractors."""

    @abstractmethod
    async def extract(self, content: bytes, filename: str) -> str:
        """Extract text from document content."""

    @abstractmethod
    def supported_extensions(self) -> list[str]:
        """Return list of supported file extensions."""


class PlainTextExtractor(TextExtractor):
    """Extract text from plain text and markdown files."""

    async def extract(self, content: bytes, filename: str) -> str:
        """Decode bytes to text, falling back to latin-1 for legacy exports."""
        try:
            return content.decode("utf-8")
        except UnicodeDecodeError:
            return content.decode("latin-1")

    def supported_extensions(self) -> list[str]:
        return ["txt", "md"]


class PDFExtractor(TextExtractor):
    """Extract markdown from PDF files using the LlamaParse service."""

    def __init__(self, parser: LlamaParseClient):
        self.parser = parser

    async def extract(self, content: bytes, filename: str) -> str:
        return await self.parser.parse(content, filename)

    def supported_extensions(self) -> list[str]:
        return ["pdf"]


class DocumentExtractor:
    """Unified document extractor that delegates by file extension."""

    def __init__(self, extractors: list[TextExtractor]):
        self.extractors = extractors

        self._extension_map: dict[str, TextExtractor] = {}
        for extractor in self.extractors:
            for extension in extractor.supported_extensions():
                self._extension_map[extension] = extractor

    @classmethod
    def with_parser(cls, parser: LlamaParseClient) -> "DocumentExtractor":
        """Build the standard extractor set around a LlamaParse client."""
        return cls([PlainTextExtractor(), PDFExtractor(parser)])

    @staticmethod
    def extension_of(filename: str) -> str:
        return PurePath(filename).suffix.lstrip(".").lower()

    def supports(self, filename: str) -> bool:
        """Check if a file name has a supported extension."""
        return self.extension_of(filename) in self._extension_map

    def supported_extensions(self) -> list[str]:
        """Get all supported extensions."""
        return list(self._extension_map.keys())

    async def extract(self, content: bytes, filename: str) -> str:
        """Extract text from a document based on its file extension.

        Args:
            content: Raw document bytes
            filename: Original file name

        Returns:
            Extracted text

        Raises:
            ExtractionError: If extraction fails or type not supported
            NoContentExtractedError: If the document yields no text
        """
        extractor = self._extension_map.get(self.extension_of(filename))

        if not extractor:
            raise ExtractionError(
                "Unsupported file type. Please upload PDF, TXT, or MD files.",
                kind=ErrorKind.VALIDATION,
            )

        text = self._normalize_line_endings(await extractor.extract(content, filename))

        if not text.strip():
            raise NoContentExtractedError(f"{filename} appears to be empty or unreadable")

        return text

    def _normalize_line_endings(self, text: str) -> str:
        """Convert CRLF and bare CR line endings to LF, leaving content as-is."""
        return text.replace("\r\n", "\n").replace("\r", "\n")
