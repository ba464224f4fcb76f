"""Deterministic providers and payload builders shared by the tests."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field

from alignai.api.auth import create_token
from alignai.errors import EmbeddingProviderError, LLMProviderError
from alignai.pipeline.completion import CompletionProvider
from alignai.pipeline.embedder import EmbeddingProvider

OWNER = "user-owner"
MEMBER = "user-member"
VIEWER = "user-viewer"
OUTSIDER = "user-outsider"


class FakeEmbedder(EmbeddingProvider):
    """Known texts map to fixed vectors, everything else to e1."""

    def __init__(self, dimensions: int = 3) -> None:
        self.vectors: dict[str, list[float]] = {}
        self.fail = False
        self.calls: list[str] = []
        self._dimensions = dimensions

    async def embed(self, text: str) -> list[float]:
        return (await self.embed_many([text]))[0]

    async def embed_many(self, texts: list[str]) -> list[list[float]]:
        self.calls.extend(texts)
        if self.fail:
            raise EmbeddingProviderError("embedding service unavailable")
        default = [1.0] + [0.0] * (self._dimensions - 1)
        return [list(self.vectors.get(text, default)) for text in texts]

    @property
    def model_id(self) -> str:
        return "fake-embedder"

    @property
    def dimensions(self) -> int:
        return self._dimensions


@dataclass
class CompletionCall:
    system_prompt: str
    user_prompt: str
    options: dict = field(default_factory=dict)


class FakeCompletion(CompletionProvider):
    """Returns scripted replies in order.

    Set ``error`` to make every call raise it.  ``chunks`` feeds stream().
    """

    def __init__(self) -> None:
        self.replies: list[str] = []
        self.chunks: list[str] = []
        self.error: Exception | None = None
        self.calls: list[CompletionCall] = []

    async def complete(self, system_prompt, user_prompt, **options) -> str:
        self.calls.append(CompletionCall(system_prompt, user_prompt, options))
        if self.error is not None:
            raise self.error
        if not self.replies:
            raise LLMProviderError("no scripted reply left")
        return self.replies.pop(0)

    async def stream(self, system_prompt, user_prompt, **options):
        self.calls.append(CompletionCall(system_prompt, user_prompt, options))
        for chunk in self.chunks:
            yield chunk
        if self.error is not None:
            raise self.error


def conflict_reply(**overrides) -> str:
    """A well-formed conflict analysis wrapped in prose and a code fence."""
    payload = {
        "has_conflict": True,
        "conflict_severity": "high",
        "differences": ["Who the primary user is"],
        "areas_of_agreement": ["The product is for small teams"],
        "suggested_merge": "Freelancers first, agencies next.",
        "reasoning": "The answers name different primary users.",
    }
    payload.update(overrides)
    return f"Here is my analysis:\n```json\n{json.dumps(payload)}\n```"


def consensus_reply(**overrides) -> str:
    payload = {
        "merged_content": "Freelancers who invoice monthly are the first users.",
        "reasoning": "Both answers centre on freelancers.",
        "confidence": 0.8,
    }
    payload.update(overrides)
    return json.dumps(payload)


def gram_vectors(g01: float, g02: float, g12: float) -> list[list[float]]:
    """Three unit vectors whose pairwise cosines are g01, g02 and g12.

    Rows of the Cholesky factor of the Gram matrix; the matrix must be
    positive definite.
    """
    l11 = math.sqrt(1 - g01 * g01)
    l21 = (g12 - g02 * g01) / l11
    l22 = math.sqrt(1 - g02 * g02 - l21 * l21)
    return [[1.0, 0.0, 0.0], [g01, l11, 0.0], [g02, l21, l22]]


def auth_headers(user_id: str, name: str = "") -> dict[str, str]:
    token = create_token(user_id, f"{user_id}@example.com", name)
    return {"Authorization": f"Bearer {token}"}
