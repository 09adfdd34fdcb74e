"""Embedding providers for vector generation."""

from contextpack.config import Settings
from contextpack.embedders.gemini import GeminiEmbedder
from contextpack.protocols import EmbeddingProvider


def get_embedder(settings: Settings) -> EmbeddingProvider:
    """Build the configured embedding provider.

    sentence-transformers is imported only when selected so API-only
    deployments do not load torch.
    """
    if settings.embedding_backend == "gemini":
        key = settings.gemini_api_key.get_secret_value() if settings.gemini_api_key else None
        return GeminiEmbedder(key, settings.embedding_model)

    from contextpack.embedders.sentence_transformer import SentenceTransformerEmbedder

    return SentenceTransformerEmbedder(settings.embedding_model)


__all__ = ["get_embedder", "GeminiEmbedder"]
