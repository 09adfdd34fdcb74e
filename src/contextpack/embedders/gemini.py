"""Gemini embedding provider over the Generative Language REST API."""

from typing import Optional

import httpx
import numpy as np

from contextpack.errors import ConfigurationError, TransientFetchError
from contextpack.parsers import parse_embedding, parse_embeddings

GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta"


class GeminiEmbedder:
    """Embeds with ``gemini-embedding-001`` at 768 dimensions.

    Documents and queries use the matching retrieval task types; batches
    are split at the API limit of 100 texts.
    """

    DEFAULT_MODEL = "gemini-embedding-001"
    OUTPUT_DIMENSIONALITY = 768
    MAX_BATCH_SIZE = 100

    def __init__(
        self,
        api_key: Optional[str],
        model_name: str | None = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._api_key = api_key
        self._model_name = model_name or self.DEFAULT_MODEL
        self._timeout = timeout
        self._transport = transport

    @property
    def model_name(self) -> str:
        return self._model_name

    def _request(self, text: str, task_type: str) -> dict:
        return {
            "model": f"models/{self._model_name}",
            "content": {"parts": [{"text": text}]},
            "taskType": task_type,
            "outputDimensionality": self.OUTPUT_DIMENSIONALITY,
        }

    async def _post(self, method: str, body: dict) -> dict:
        if not self._api_key:
            raise ConfigurationError("Gemini API key is not configured")
        async with httpx.AsyncClient(
            base_url=GEMINI_API_URL, timeout=self._timeout, transport=self._transport
        ) as client:
            try:
                response = await client.post(
                    f"/models/{self._model_name}:{method}",
                    params={"key": self._api_key},
                    json=body,
                )
                response.raise_for_status()
                return response.json()
            except httpx.HTTPError as exc:
                raise TransientFetchError(f"Embedding request failed: {exc}") from exc
            except ValueError as exc:
                raise TransientFetchError("Embedding response was not JSON") from exc

    async def embed_query(self, text: str) -> np.ndarray:
        payload = await self._post("embedContent", self._request(text, "RETRIEVAL_QUERY"))
        values = parse_embedding(payload)
        if not values:
            raise TransientFetchError("Embedding response contained no values")
        return np.asarray(values, dtype=np.float32)

    async def embed_documents(self, texts: list[str]) -> np.ndarray:
        if not texts:
            return np.array([])

        vectors: list[list[float]] = []
        for i in range(0, len(texts), self.MAX_BATCH_SIZE):
            batch = texts[i : i + self.MAX_BATCH_SIZE]
            payload = await self._post(
                "batchEmbedContents",
                {"requests": [self._request(t, "RETRIEVAL_DOCUMENT") for t in batch]},
            )
            batch_vectors = parse_embeddings(payload)
            if len(batch_vectors) != len(batch):
                raise TransientFetchError(
                    f"Expected {len(batch)} embeddings, got {len(batch_vectors)}"
                )
            vectors.extend(batch_vectors)
        return np.asarray(vectors, dtype=np.float32)
