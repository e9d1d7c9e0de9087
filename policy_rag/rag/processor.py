"""Document processor for RAG ingestion.

Handles validation, chunking, embedding, and storage of new resources.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, field_validator
from pydantic import ValidationError as SchemaError

from policy_rag.core.config import Settings, get_settings
from policy_rag.core.errors import (
    ErrorKind,
    NoContentExtractedError,
    PolicyRAGError,
    ValidationError,
)
from policy_rag.db.database import get_session_maker
from policy_rag.db.repository import EmbeddingRecord, ResourceStore
from policy_rag.rag.chunking import ChunkingStrategy, get_chunker
from policy_rag.rag.embedder import BaseEmbedder, create_embedder
from policy_rag.rag.extractors import DocumentExtractor
from policy_rag.rag.parser import LlamaParseClient
from policy_rag.rag.policy import extract_policy_number

logger = logging.getLogger(__name__)


class NewResourceParams(BaseModel):
    """Validated input for a new resource."""

    content: str
    source_file: str | None = None
    policy_number: str | None = None

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Content must not be empty")
        return v


@dataclass
class ProcessingResult:
    """Outcome of an ingestion call.

    On success ``chunk_count`` is set; on failure ``error_kind`` and
    ``error`` are. ``resource_id`` is set whenever a resource row was
    written, including failures after that point.
    """

    success: bool
    chunk_count: int = 0
    resource_id: str | None = None
    error_kind: ErrorKind | None = None
    error: str | None = None
    processing_time_ms: int = 0

    @property
    def message(self) -> str:
        if self.success:
            return f"Resource successfully created and embedded. ({self.chunk_count} chunks created)"
        return self.error or "Error, please try again."


@dataclass
class IngestionStats:
    """Summary of a batch ingestion run."""

    total_files: int = 0
    successful: int = 0
    failed: int = 0
    errors: list[tuple[str, str]] = field(default_factory=list)

    @property
    def success_rate(self) -> int:
        """Success percentage, rounded."""
        if not self.total_files:
            return 0
        return round(self.successful / self.total_files * 100)


class DocumentProcessor:
    """Processes documents for RAG ingestion.

    Pipeline:
    1. Validate input
    2. Split into chunks
    3. Generate embeddings (one batch call)
    4. Store the resource, then its embeddings
    """

    def __init__(
        self,
        store: ResourceStore,
        embedder: BaseEmbedder,
        chunker: ChunkingStrategy | None = None,
        extractor: DocumentExtractor | None = None,
        default_timeout: float | None = None,
    ):
        self.store = store
        self.embedder = embedder
        self.chunker = chunker or get_chunker("markdown")
        self.extractor = extractor
        self.default_timeout = default_timeout

    async def ingest(
        self,
        content: str,
        source_file: str | None = None,
        policy_number: str | None = None,
        timeout: float | None = None,
    ) -> ProcessingResult:
        """Chunk, embed and store a new resource.

        Args:
            content: Full resource text
            source_file: Origin file name (None for inline facts)
            policy_number: Policy identifier, e.g. "P-018"
            timeout: Seconds before the call is aborted (defaults to processor setting)

        Returns:
            ProcessingResult with status and chunk count
        """
        result = ProcessingResult(success=False)
        return await self._guarded(
            self._ingest(content, source_file, policy_number, result),
            result,
            timeout,
        )

    async def ingest_file(
        self,
        content: bytes,
        filename: str,
        timeout: float | None = None,
    ) -> ProcessingResult:
        """Extract text from an uploaded file and ingest it.

        The policy number is taken from the file name.
        """
        result = ProcessingResult(success=False)
        return await self._guarded(self._ingest_file(content, filename, result), result, timeout)

    async def _ingest_file(self, content: bytes, filename: str, result: ProcessingResult) -> None:
        if self.extractor is None:
            raise PolicyRAGError("No document extractor configured")

        text = await self.extractor.extract(content, filename)
        logger.info(f"[Processor] Extracted {len(text)} characters from {filename}")

        await self._ingest(text, filename, extract_policy_number(filename), result)

    async def _ingest(
        self,
        content: str,
        source_file: str | None,
        policy_number: str | None,
        result: ProcessingResult,
    ) -> None:
        try:
            params = NewResourceParams(
                content=content, source_file=source_file, policy_number=policy_number
            )
        except SchemaError as e:
            raise ValidationError(e.errors()[0]["msg"]) from e

        logger.info(
            f"[Processor] Starting ingestion: source={params.source_file}, length={len(params.content)}"
        )

        # 1. Chunk the document
        chunks = self.chunker.chunk(params.content)
        if not chunks:
            logger.warning(f"[Processor] No chunks generated for {params.source_file or 'inline content'}")
            raise NoContentExtractedError("No embeddings generated - content may be too short")

        logger.info(f"[Processor] Generated {len(chunks)} chunks")

        # 2. Generate embeddings for all chunks in one batch
        vectors = await self.embedder.embed_texts(chunks)

        # 3. Store the resource, then its embeddings
        result.resource_id = await self.store.insert_resource(
            content=params.content,
            source_file=params.source_file,
            policy_number=params.policy_number,
        )
        await self.store.insert_embeddings(
            [
                EmbeddingRecord(resource_id=result.resource_id, content=chunk, vector=vector)
                for chunk, vector in zip(chunks, vectors, strict=True)
            ]
        )
        result.chunk_count = len(chunks)
        result.success = True

    async def _guarded(self, operation, result: ProcessingResult, timeout: float | None) -> ProcessingResult:
        """Run *operation* under a timeout and convert failures into *result*."""
        start_time = datetime.now(UTC)
        timeout = timeout if timeout is not None else self.default_timeout

        try:
            async with asyncio.timeout(timeout):
                await operation
        except PolicyRAGError as e:
            logger.error(f"[Processor] Ingestion failed ({e.kind.value}): {e.message}")
            result.error_kind = e.kind
            result.error = e.message
        except TimeoutError:
            logger.error(f"[Processor] Ingestion timed out after {timeout}s")
            result.error_kind = ErrorKind.TIMEOUT
            result.error = f"Ingestion timed out after {timeout} seconds"
        except Exception as e:
            logger.error(f"[Processor] Ingestion failed: {e}", exc_info=True)
            result.error_kind = ErrorKind.INTERNAL
            result.error = str(e) or None

        result.processing_time_ms = int((datetime.now(UTC) - start_time).total_seconds() * 1000)
        if not result.success and result.resource_id:
            logger.warning(
                f"[Processor] Resource {result.resource_id} was stored without complete embeddings"
            )
        elif result.success:
            logger.info(
                f"[Processor] Resource {result.resource_id} ingested in {result.processing_time_ms}ms: "
                f"{result.chunk_count} chunks"
            )
        return result


async def ingest_directory(
    processor: DocumentProcessor,
    directory: str | Path,
    pattern: str = "*.pdf",
) -> IngestionStats:
    """Ingest every file in *directory* matching *pattern*, one at a time."""
    stats = IngestionStats()
    files = sorted(p for p in Path(directory).glob(pattern) if p.is_file())
    stats.total_files = len(files)
    logger.info(f"[Processor] Found {len(files)} file(s) in {directory}")

    for path in files:
        content = await asyncio.to_thread(path.read_bytes)
        result = await processor.ingest_file(content, path.name)
        if result.success:
            stats.successful += 1
            logger.info(f"[Processor] Ingested {path.name}: {result.message}")
        else:
            stats.failed += 1
            stats.errors.append((path.name, result.message))
            logger.warning(f"[Processor] Failed {path.name}: {result.message}")

    return stats


def create_processor(settings: Settings | None = None) -> DocumentProcessor:
    """Build a DocumentProcessor wired to the configured database, OpenAI and LlamaParse."""
    settings = settings or get_settings()
    parser = LlamaParseClient(
        api_key=settings.llama_cloud_api_key,
        base_url=settings.llama_parse_base_url,
        poll_interval=settings.parse_poll_interval_seconds,
        max_attempts=settings.parse_max_attempts,
    )
    return DocumentProcessor(
        store=ResourceStore(get_session_maker(), dimensions=settings.embedding_dimensions),
        embedder=create_embedder(settings.embedding_config()),
        chunker=get_chunker(
            "markdown", max_chars=settings.chunk_max_chars, min_chars=settings.chunk_min_chars
        ),
        extractor=DocumentExtractor.with_parser(parser),
        default_timeout=settings.operation_timeout_seconds,
    )
