"""Policy RAG - retrieval-augmented answers over compliance policy documents."""

__version__ = "0.1.0"
