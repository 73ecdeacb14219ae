"""
Embedding backends for TokenVisor.
"""

from .base import BaseEmbedder, FeatureExtractor, FeatureOutput, get_embedder, list_embedders, register_embedder
from .hf_embedder import HFEmbedder, HFFeatureExtractor

__all__ = [
    "BaseEmbedder",
    "FeatureExtractor",
    "FeatureOutput",
    "get_embedder",
    "list_embedders",
    "register_embedder",
    "HFEmbedder",
    "HFFeatureExtractor",
]
