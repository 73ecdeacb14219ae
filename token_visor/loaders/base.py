"""
Base classes for tokenizer loaders.
Defines the handle interface the pipeline tokenizes through.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum

import config

logger = logging.getLogger(__name__)


class TokenizerFamily(str, Enum):
    """Segmentation scheme and surface-form conventions of a tokenizer."""
    WORDPIECE = config.FAMILY_WORDPIECE
    LEADING_MARKER = config.FAMILY_LEADING_MARKER
    T5 = config.FAMILY_T5
    OTHER = config.FAMILY_OTHER

    @property
    def supports_embeddings(self) -> bool:
        return self.value not in config.EMBEDDING_OPT_OUT_FAMILIES


def family_for(class_name: str) -> TokenizerFamily:
    """
    Map a tokenizer class name to its family tag.

    Args:
        class_name: Name reported by the loaded tokenizer (e.g. "BertTokenizerFast")

    Returns:
        The matching TokenizerFamily, or TokenizerFamily.OTHER if unknown
    """
    tag = config.TOKENIZER_FAMILIES.get(class_name)
    if tag is None:
        logger.debug(f"No family registered for {class_name}, using '{TokenizerFamily.OTHER.value}'")
        return TokenizerFamily.OTHER
    return TokenizerFamily(tag)


class TokenizerHandle(ABC):
    """
    Loaded tokenizer state for one model identifier.

    Handles are read-only after construction and shared by every request
    for the same model.
    """

    @property
    @abstractmethod
    def model_id(self) -> str:
        pass

    @property
    @abstractmethod
    def family(self) -> TokenizerFamily:
        pass

    @abstractmethod
    def encode(self, text: str) -> list[int]:
        """
        Encode text into token ids (special tokens included).

        Args:
            text: Input text

        Returns:
            List of integer token ids
        """
        pass

    @abstractmethod
    def decode_token(self, token_id: int) -> str:
        """
        Decode a single token id to its raw surface text.

        Args:
            token_id: Token id from encode()

        Returns:
            Raw decoded text, markers included
        """
        pass

    def decode_each(self, token_ids: list[int]) -> list[str]:
        """Decode every id individually, in order."""
        return [self.decode_token(token_id) for token_id in token_ids]


class BaseTokenizerLoader(ABC):
    """
    Abstract base class for tokenizer loading backends.

    All loaders must:
    - Load a tokenizer for a model identifier (network or disk)
    - Report the tokenizer family through the returned handle
    - Provide a unique name for registry lookup
    """

    @abstractmethod
    def load(self, model_id: str) -> TokenizerHandle:
        """
        Load the tokenizer for a model.

        Args:
            model_id: Model identifier (e.g. "distilbert-base-uncased")

        Returns:
            TokenizerHandle for the model

        Raises:
            ResourceLoadError: If the tokenizer cannot be loaded
        """
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        pass


# Registry for available loaders
_LOADER_REGISTRY: dict[str, type[BaseTokenizerLoader]] = {}


def register_loader(name: str):
    """
    Decorator to register a tokenizer loader class.

    Usage:
        @register_loader("hf")
        class HFTokenizerLoader(BaseTokenizerLoader):
            ...

    Raises:
        TypeError: If class doesn't inherit from BaseTokenizerLoader
        ValueError: If name is already registered
    """
    def decorator(cls: type[BaseTokenizerLoader]):
        if not issubclass(cls, BaseTokenizerLoader):
            raise TypeError(f"{cls.__name__} must inherit from BaseTokenizerLoader")
        if name in _LOADER_REGISTRY:
            raise ValueError(
                f"Loader '{name}' already registered by {_LOADER_REGISTRY[name].__name__}"
            )
        _LOADER_REGISTRY[name] = cls
        return cls
    return decorator


def get_loader(name: str, **kwargs) -> BaseTokenizerLoader:
    """
    Get a tokenizer loader instance by name.

    Args:
        name: Registered loader name
        **kwargs: Arguments passed to loader constructor

    Returns:
        Loader instance

    Raises:
        ValueError: If loader name not found
    """
    if name not in _LOADER_REGISTRY:
        available = list(_LOADER_REGISTRY.keys())
        raise ValueError(f"Unknown loader '{name}'. Available: {available}")

    return _LOADER_REGISTRY[name](**kwargs)


def list_loaders() -> list[str]:
    """Return list of registered loader names."""
    return list(_LOADER_REGISTRY.keys())
