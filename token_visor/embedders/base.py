"""
Base classes for feature-extraction backends.
Defines the interface all embedding backends must implement.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class FeatureOutput:
    """Flattened hidden states of one forward pass."""
    buffer: np.ndarray   # 1-D, token_count * hidden_size values (may include leading padding)
    token_count: int
    hidden_size: int


class FeatureExtractor(ABC):
    """
    Loaded feature-extraction state for one model identifier.

    Shared read-only by every request for the model.
    """

    @property
    @abstractmethod
    def model_id(self) -> str:
        pass

    @property
    @abstractmethod
    def hidden_size(self) -> int:
        pass

    @abstractmethod
    def extract_features(self, text: str) -> FeatureOutput:
        """
        Run a forward pass and return per-token hidden states.

        Args:
            text: Input text (tokenized the same way as the tokenizer handle)

        Returns:
            FeatureOutput with the flattened last hidden state
        """
        pass


class BaseEmbedder(ABC):
    """
    Abstract base class for embedding model backends.

    All embedders must:
    - Load a feature extractor for a model identifier
    - Provide a unique name for registry lookup
    """

    @abstractmethod
    def load(self, model_id: str) -> FeatureExtractor:
        """
        Load the embedding model for a model identifier.

        Args:
            model_id: Model identifier

        Returns:
            FeatureExtractor ready for inference

        Raises:
            ResourceLoadError: If the model cannot be loaded
        """
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        pass


# Registry for available embedders
_EMBEDDER_REGISTRY: dict[str, type[BaseEmbedder]] = {}


def register_embedder(name: str):
    """
    Decorator to register an embedder class.

    Usage:
        @register_embedder("hf")
        class HFEmbedder(BaseEmbedder):
            ...
    """
    def decorator(cls: type[BaseEmbedder]):
        _EMBEDDER_REGISTRY[name] = cls
        return cls
    return decorator


def get_embedder(name: str, **kwargs) -> BaseEmbedder:
    """
    Get an embedder instance by name.

    Args:
        name: Registered embedder name
        **kwargs: Arguments passed to embedder constructor

    Returns:
        Embedder instance

    Raises:
        ValueError: If embedder name not found
    """
    if name not in _EMBEDDER_REGISTRY:
        available = list(_EMBEDDER_REGISTRY.keys())
        raise ValueError(f"Unknown embedder '{name}'. Available: {available}")

    return _EMBEDDER_REGISTRY[name](**kwargs)


def list_embedders() -> list[str]:
    """Return list of registered embedder names."""
    return list(_EMBEDDER_REGISTRY.keys())
