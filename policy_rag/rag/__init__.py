"""RAG (Retrieval-Augmented Generation) package.

Components:
- Chunker: header-anchored markdown chunking
- Embedder: OpenAI embedding service
- Parser: LlamaParse PDF-to-markdown client
- Extractor: Text extraction from PDF, TXT, MD
- Processor: Resource ingestion pipeline
- Retriever: Similarity search with citation metadata
"""

from policy_rag.rag.chunking import ChunkingStrategy, MarkdownSectionChunker, chunk_text, get_chunker
from policy_rag.rag.embedder import BaseEmbedder, EmbeddingConfig, OpenAIEmbedder, create_embedder
from policy_rag.rag.extractors import DocumentExtractor
from policy_rag.rag.parser import LlamaParseClient, ParseJob, ParseJobState
from policy_rag.rag.policy import extract_policy_number
from policy_rag.rag.processor import (
    DocumentProcessor,
    IngestionStats,
    ProcessingResult,
    create_processor,
    ingest_directory,
)
from policy_rag.rag.retriever import RetrievedChunk, Retriever, create_retriever

__all__ = [
    "BaseEmbedder",
    "ChunkingStrategy",
    "DocumentExtractor",
    "DocumentProcessor",
    "EmbeddingConfig",
    "IngestionStats",
    "LlamaParseClient",
    "MarkdownSectionChunker",
    "OpenAIEmbedder",
    "ParseJob",
    "ParseJobState",
    "ProcessingResult",
    "RetrievedChunk",
    "Retriever",
    "chunk_text",
    "create_embedder",
    "create_processor",
    "create_retriever",
    "extract_policy_number",
    "get_chunker",
    "ingest_directory",
]
