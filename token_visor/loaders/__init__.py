"""
Tokenizer loaders for TokenVisor.
"""

from .base import (
    BaseTokenizerLoader,
    TokenizerFamily,
    TokenizerHandle,
    family_for,
    get_loader,
    list_loaders,
    register_loader,
)
from .hf_tokenizer import HFTokenizerHandle, HFTokenizerLoader

__all__ = [
    "BaseTokenizerLoader",
    "TokenizerFamily",
    "TokenizerHandle",
    "family_for",
    "get_loader",
    "list_loaders",
    "register_loader",
    "HFTokenizerHandle",
    "HFTokenizerLoader",
]
