"""Error taxonomy for the alignment pipeline.

Provider errors (embedding / completion transport) are recoverable at the
call site: submissions store a NULL embedding, alignment checks report a
provider_error state.  Parse errors are fatal for the single analysis call and
carry the raw model text for diagnostics.  UnknownCategoryError is a
programming/config error with no fallback.
"""

from __future__ import annotations


class AlignAIError(Exception):
    """Base class for all AlignAI errors."""


class EmbeddingProviderError(AlignAIError):
    """The embedding service was unreachable or rejected the input."""


class DimensionMismatchError(AlignAIError, ValueError):
    """Two vectors of different length were compared."""

    def __init__(self, left: int, right: int) -> None:
        super().__init__(f"Vector dimensions differ: {left} != {right}")
        self.left = left
        self.right = right


class LLMProviderError(AlignAIError):
    """The completion service was unreachable, timed out, or returned no text."""


class AnalysisParseError(AlignAIError):
    """Model output did not contain a JSON object matching the expected shape.

    Attributes:
        raw_text: The unmodified provider response, attached for diagnostics.
    """

    def __init__(self, message: str, raw_text: str) -> None:
        super().__init__(message)
        self.raw_text = raw_text


class UnknownCategoryError(AlignAIError, KeyError):
    """A section category outside the fixed enumerated set."""

    def __init__(self, category: object) -> None:
        super().__init__(f"Unknown section category: {category!r}")
        self.category = category

    def __str__(self) -> str:
        return self.args[0]


class InsufficientDataError(AlignAIError):
    """Fewer than two usable responses. A valid terminal state, not a failure."""

    def __init__(self, usable: int, required: int = 2) -> None:
        super().__init__(f"Need at least {required} responses, have {usable}")
        self.usable = usable
        self.required = required


class ConsensusStateError(AlignAIError):
    """An approval transition is not allowed from the consensus's current status."""


class NotFoundError(AlignAIError, LookupError):
    """A section, project, or consensus record does not exist."""
