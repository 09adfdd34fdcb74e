"""SentenceTransformer-based embedding provider."""

import asyncio

import numpy as np
from sentence_transformers import SentenceTransformer


class SentenceTransformerEmbedder:
    """Embedding provider using the sentence-transformers library.

    Uses all-MiniLM-L6-v2 by default. Encoding runs in a worker thread so
    the event loop stays responsive during index syncs.
    """

    DEFAULT_MODEL = "all-MiniLM-L6-v2"

    def __init__(self, model_name: str | None = None):
        self._model_name = model_name or self.DEFAULT_MODEL
        self._model: SentenceTransformer | None = None

    @property
    def model(self) -> SentenceTransformer:
        """Lazy-load the model on first access."""
        if self._model is None:
            self._model = SentenceTransformer(self._model_name)
        return self._model

    @property
    def model_name(self) -> str:
        return self._model_name

    def _encode(self, texts: list[str]) -> np.ndarray:
        return self.model.encode(
            texts,
            convert_to_numpy=True,
            normalize_embeddings=True,  # For cosine similarity
        )

    async def embed_query(self, text: str) -> np.ndarray:
        embeddings = await asyncio.to_thread(self._encode, [text])
        return embeddings[0]

    async def embed_documents(self, texts: list[str]) -> np.ndarray:
        """Generate embeddings for a batch of texts.

        Returns:
            numpy array of shape (len(texts), embedding_dim)
        """
        if not texts:
            return np.array([])
        return await asyncio.to_thread(self._encode, texts)
