"""
Request and response messages exchanged with the pipeline.
Responses are a tagged variant: partial, complete, or error.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

ColorTriple = tuple[int, int, int]


@dataclass(frozen=True)
class PipelineRequest:
    """One (model, text) request. Empty text only pre-warms the tokenizer."""
    model_id: str
    text: Optional[str] = None

    @property
    def is_prewarm(self) -> bool:
        return not self.text

    @classmethod
    def from_message(cls, message: dict[str, Any]) -> "PipelineRequest":
        """
        Build a request from a caller message.

        Args:
            message: Dict with "model_id" and optional "text"

        Returns:
            PipelineRequest

        Raises:
            ValueError: If model_id is missing
        """
        model_id = message.get("model_id")
        if not model_id:
            raise ValueError(f"Request message missing 'model_id': {message}")
        return cls(model_id=model_id, text=message.get("text"))


@dataclass(frozen=True)
class TokenSequence:
    """Normalized tokens of one request, positionally aligned."""
    ids: tuple[int, ...]
    decoded: tuple[str, ...]
    margins: tuple[int, ...]  # empty means "apply default layout"

    def __len__(self) -> int:
        return len(self.ids)


@dataclass(frozen=True)
class PipelineResponse(ABC):
    model_id: str

    @abstractmethod
    def to_message(self) -> dict[str, Any]:
        """Plain dict form of the response, as sent to clients."""
        pass


@dataclass(frozen=True)
class ErrorResponse(PipelineResponse):
    error: str

    def to_message(self) -> dict[str, Any]:
        return {"model_id": self.model_id, "error": self.error}


@dataclass(frozen=True)
class PartialResponse(PipelineResponse):
    """Tokenization-only stage."""
    tokens: TokenSequence

    def to_message(self) -> dict[str, Any]:
        return {
            "model_id": self.model_id,
            "decoded": list(self.tokens.decoded),
            "margins": list(self.tokens.margins),
            "ids": list(self.tokens.ids),
            "partial": True,
        }


@dataclass(frozen=True)
class CompleteResponse(PipelineResponse):
    """Tokenization plus embeddings and per-token colors."""
    tokens: TokenSequence
    embeddings: Optional[list[list[float]]]
    token_colors: tuple[ColorTriple, ...]

    def to_message(self) -> dict[str, Any]:
        return {
            "model_id": self.model_id,
            "decoded": list(self.tokens.decoded),
            "margins": list(self.tokens.margins),
            "ids": list(self.tokens.ids),
            "embeddings": self.embeddings,
            "token_colors": [list(color) for color in self.token_colors],
            "complete": True,
        }
