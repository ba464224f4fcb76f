"""
Embedding model abstraction layer for AlignAI.

Provides an abstract EmbeddingProvider interface so the embedding backend can
be swapped without modifying callers.  Two implementations:

- OpenAIEmbeddingProvider — hosted /v1/embeddings endpoint over httpx (default,
  text-embedding-3-small, 1536 dimensions)
- SentenceTransformerProvider — local sentence-transformers model, installed
  with the ``local`` extra

Design decisions:
- Every failure mode (missing key, transport error, HTTP error status, empty
  input, wrong vector size) surfaces as EmbeddingProviderError so the
  submission path can treat all of them as "store without embedding"
- Returned vectors are checked against ``dimensions`` so a model change can't
  silently mix incompatible vectors in one section
- get_embedder() returns a process-wide instance for the API dependency layer;
  core functions always take the provider as an argument

Exports: EmbeddingProvider, OpenAIEmbeddingProvider, SentenceTransformerProvider, get_embedder
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod

import httpx

from alignai.errors import EmbeddingProviderError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Abstract interface
# ---------------------------------------------------------------------------


class EmbeddingProvider(ABC):
    """Abstract interface for embedding providers.

    Implementors must:
    - Embed a single text string to a list of floats
    - Embed a batch of texts
    - Expose model_id and dimensions
    """

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """Embed a single text and return a float vector of length ``dimensions``."""
        ...

    @abstractmethod
    async def embed_many(self, texts: list[str]) -> list[list[float]]:
        """Embed a list of texts, returning one vector per input in input order."""
        ...

    @property
    @abstractmethod
    def model_id(self) -> str:
        ...

    @property
    @abstractmethod
    def dimensions(self) -> int:
        ...

    def _check_inputs(self, texts: list[str]) -> None:
        for text in texts:
            if not text or not text.strip():
                raise EmbeddingProviderError("Cannot embed empty text")

    def _check_vectors(self, vectors: list[list[float]]) -> list[list[float]]:
        for vector in vectors:
            if len(vector) != self.dimensions:
                raise EmbeddingProviderError(
                    f"{self.model_id} returned a {len(vector)}-dim vector, expected {self.dimensions}"
                )
        return vectors


# ---------------------------------------------------------------------------
# Hosted implementation
# ---------------------------------------------------------------------------


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """EmbeddingProvider backed by the OpenAI embeddings REST API.

    Args:
        api_key:    OpenAI API key.  Empty → every call raises EmbeddingProviderError.
        model:      Embedding model identifier.
        dimensions: Expected vector length.
        base_url:   API root, without trailing slash.
        timeout:    Per-request timeout in seconds.
        transport:  Optional httpx transport (tests inject httpx.MockTransport).
    """

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        dimensions: int = 1536,
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._dimensions = dimensions
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    async def embed(self, text: str) -> list[float]:
        return (await self.embed_many([text]))[0]

    async def embed_many(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        self._check_inputs(texts)
        if not self._api_key:
            raise EmbeddingProviderError("No embedding API key configured")

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(
                    f"{self._base_url}/embeddings",
                    headers={
                        "authorization": f"Bearer {self._api_key}",
                        "content-type": "application/json",
                    },
                    json={"model": self._model, "input": texts},
                )
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as exc:
            raise EmbeddingProviderError(
                f"Embedding request timed out after {self._timeout}s"
            ) from exc
        except httpx.HTTPError as exc:
            raise EmbeddingProviderError(f"Embedding request failed: {exc}") from exc

        try:
            # The API may return items out of order; "index" is authoritative
            items = sorted(data["data"], key=lambda item: item["index"])
            vectors = [[float(x) for x in item["embedding"]] for item in items]
        except (KeyError, TypeError, ValueError) as exc:
            raise EmbeddingProviderError(f"Malformed embedding response: {exc}") from exc

        if len(vectors) != len(texts):
            raise EmbeddingProviderError(
                f"Embedding response had {len(vectors)} vectors for {len(texts)} inputs"
            )
        return self._check_vectors(vectors)

    @property
    def model_id(self) -> str:
        return self._model

    @property
    def dimensions(self) -> int:
        return self._dimensions


# ---------------------------------------------------------------------------
# Local SentenceTransformer implementation
# ---------------------------------------------------------------------------


class SentenceTransformerProvider(EmbeddingProvider):
    """EmbeddingProvider backed by a local sentence-transformers model.

    The model is loaded once at construction.  Encoding runs in a worker
    thread so it does not block the event loop.  Normalization is applied so
    vectors are unit-length.
    """

    def __init__(self, model_name: str = "sentence-transformers/all-MiniLM-L6-v2") -> None:
        from sentence_transformers import SentenceTransformer  # noqa: PLC0415: optional extra

        self._model_name = model_name
        self._model = SentenceTransformer(model_name)
        self._dimensions: int = self._model.get_sentence_embedding_dimension()

    async def embed(self, text: str) -> list[float]:
        return (await self.embed_many([text]))[0]

    async def embed_many(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        self._check_inputs(texts)
        try:
            encoded = await asyncio.to_thread(self._model.encode, texts, normalize_embeddings=True)
        except Exception as exc:
            raise EmbeddingProviderError(f"Local embedding failed: {exc}") from exc
        return self._check_vectors([row.tolist() for row in encoded])

    @property
    def model_id(self) -> str:
        return self._model_name

    @property
    def dimensions(self) -> int:
        return self._dimensions


# ---------------------------------------------------------------------------
# Module-level singleton accessor
# ---------------------------------------------------------------------------


class _EmbedderSingleton:
    """Internal singleton holder that prevents repeated client/model construction."""

    _instance: EmbeddingProvider | None = None


def get_embedder() -> EmbeddingProvider:
    """Return the process-wide embedding provider, built from settings on first call."""
    if _EmbedderSingleton._instance is None:
        from alignai.config import settings  # lazy import: avoid circular deps

        if settings.embedding_provider == "sentence-transformers":
            _EmbedderSingleton._instance = SentenceTransformerProvider(settings.embedding_model)
        else:
            _EmbedderSingleton._instance = OpenAIEmbeddingProvider(
                api_key=settings.openai_api_key,
                model=settings.embedding_model,
                dimensions=settings.embedding_dimensions,
                base_url=settings.openai_base_url,
                timeout=settings.embedding_timeout_seconds,
            )
        logger.info(
            "Embedding provider ready: %s (dims=%d)",
            _EmbedderSingleton._instance.model_id,
            _EmbedderSingleton._instance.dimensions,
        )
    return _EmbedderSingleton._instance
