"""
Hugging Face feature-extraction backend.
Runs an encoder model and returns its last hidden state per token.
"""

import logging
from typing import Any, Optional

import numpy as np
import torch
from transformers import AutoModel, AutoTokenizer

from .base import BaseEmbedder, FeatureExtractor, FeatureOutput, register_embedder
from token_visor.exceptions import ExtractionError, ResourceLoadError
import config

logger = logging.getLogger(__name__)


class HFFeatureExtractor(FeatureExtractor):
    """FeatureExtractor over a transformers model in eval mode."""

    def __init__(self, model_id: str, tokenizer: Any, model: Any, device: str = config.DEVICE):
        self._model_id = model_id
        self._tokenizer = tokenizer
        self._model = model
        self._device = device

    @property
    def model_id(self) -> str:
        return self._model_id

    @property
    def hidden_size(self) -> int:
        return int(self._model.config.hidden_size)

    @torch.no_grad()
    def extract_features(self, text: str) -> FeatureOutput:
        try:
            inputs = self._tokenizer(text, return_tensors="pt").to(self._device)
            outputs = self._model(**inputs)
        except Exception as e:
            raise ExtractionError(f"Forward pass failed for {self._model_id}: {e}") from e

        hidden = outputs.last_hidden_state  # (batch, seq_len, hidden_size)
        token_count = int(hidden.shape[1])
        buffer = hidden.detach().cpu().numpy().astype(np.float32).reshape(-1)

        return FeatureOutput(
            buffer=buffer,
            token_count=token_count,
            hidden_size=int(hidden.shape[-1])
        )


@register_embedder("hf")
class HFEmbedder(BaseEmbedder):
    """
    Embedding backend using transformers.AutoModel.

    Features:
    - Works with any encoder exposing last_hidden_state (BERT, DistilBERT, GPT-2, ...)
    - Inference only: model is put in eval mode and run under torch.no_grad()
    - Configurable device and cache directory
    """

    def __init__(
        self,
        device: str = config.DEVICE,
        cache_dir: Optional[str] = config.MODEL_CACHE_DIR,
        local_files_only: bool = config.ALLOW_LOCAL_MODELS
    ):
        """
        Initialize the embedder.

        Args:
            device: Torch device to run the model on (default: "cpu")
            cache_dir: Directory for downloaded files (defaults to the hub cache)
            local_files_only: Only use files already present on disk
        """
        self.device = device
        self.cache_dir = cache_dir
        self.local_files_only = local_files_only

    @property
    def name(self) -> str:
        return "hf"

    def load(self, model_id: str) -> HFFeatureExtractor:
        logger.info(f"Loading embedding model for {model_id} on {self.device}...")
        try:
            tokenizer = AutoTokenizer.from_pretrained(
                model_id,
                cache_dir=self.cache_dir,
                local_files_only=self.local_files_only
            )
            model = AutoModel.from_pretrained(
                model_id,
                cache_dir=self.cache_dir,
                local_files_only=self.local_files_only
            )
            model.to(self.device)
            model.eval()
        except Exception as e:
            raise ResourceLoadError(f"Failed to load embedding model '{model_id}': {e}") from e

        logger.info(f"Embedding model loaded: {type(model).__name__} (hidden size {model.config.hidden_size})")
        return HFFeatureExtractor(model_id, tokenizer, model, device=self.device)
