"""Chunking strategies for splitting document text."""

from contextpack.chunkers.paragraph_chunker import ParagraphChunker

__all__ = ["ParagraphChunker"]
