"""
Core components for TokenVisor.
"""

from .resource_cache import ResourceCache, ResourceKind
from .normalizer import normalize
from .extractor import EmbeddingExtractor
from .projector import ColorProjector
from .messages import (
    CompleteResponse,
    ErrorResponse,
    PartialResponse,
    PipelineRequest,
    PipelineResponse,
    TokenSequence,
)
from .pipeline import RequestPipeline

__all__ = [
    "ResourceCache",
    "ResourceKind",
    "normalize",
    "EmbeddingExtractor",
    "ColorProjector",
    "CompleteResponse",
    "ErrorResponse",
    "PartialResponse",
    "PipelineRequest",
    "PipelineResponse",
    "TokenSequence",
    "RequestPipeline",
]
