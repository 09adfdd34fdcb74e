"""Vector indexing and retrieval."""

from contextpack.retrieval.retriever import VectorRetriever

__all__ = ["VectorRetriever"]
