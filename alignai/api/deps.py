"""Provider dependencies for the REST API.

Routes receive the embedding and completion providers through these
functions so tests can swap in deterministic fakes with
``app.dependency_overrides``.
"""

from __future__ import annotations

from alignai.pipeline.completion import CompletionProvider, get_completion_provider
from alignai.pipeline.embedder import EmbeddingProvider, get_embedder


def embedding_provider() -> EmbeddingProvider:
    return get_embedder()


def completion_provider() -> CompletionProvider:
    return get_completion_provider()
