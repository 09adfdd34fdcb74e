"""Protocol for embedding model providers."""

from typing import Protocol, runtime_checkable

import numpy as np


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Protocol for embedding model providers.

    Allows swapping between local models (sentence-transformers) and
    API-based models (Gemini).
    """

    @property
    def model_name(self) -> str:
        """Return identifier for the model used."""
        ...

    async def embed_query(self, text: str) -> np.ndarray:
        """Embed a single query string. Returns a 1-D vector."""
        ...

    async def embed_documents(self, texts: list[str]) -> np.ndarray:
        """Embed a batch of texts.

        Returns: numpy array of shape (len(texts), embedding_dim)
        """
        ...
