"""
Hugging Face tokenizer backend.
Loads tokenizers through transformers.AutoTokenizer.
"""

import logging
from typing import Any, Optional

from tokenizers import decoders
from transformers import AutoTokenizer

from .base import BaseTokenizerLoader, TokenizerFamily, TokenizerHandle, family_for, register_loader
from token_visor.exceptions import ResourceLoadError, TokenizationError
import config

logger = logging.getLogger(__name__)


class HFTokenizerHandle(TokenizerHandle):
    """TokenizerHandle over a transformers tokenizer instance."""

    def __init__(self, model_id: str, tokenizer: Any):
        self._model_id = model_id
        self._tokenizer = tokenizer
        self._family = family_for(type(tokenizer).__name__)

    @property
    def model_id(self) -> str:
        return self._model_id

    @property
    def family(self) -> TokenizerFamily:
        return self._family

    @property
    def class_name(self) -> str:
        return type(self._tokenizer).__name__

    def encode(self, text: str) -> list[int]:
        try:
            return list(self._tokenizer.encode(text))
        except Exception as e:
            raise TokenizationError(f"Failed to encode text with {self._model_id}: {e}") from e

    def decode_token(self, token_id: int) -> str:
        try:
            # decode() drops the leading "▁" of SentencePiece pieces, the raw piece keeps it
            if self._family is TokenizerFamily.LEADING_MARKER:
                return self._tokenizer.convert_ids_to_tokens(token_id)
            return self._tokenizer.decode([token_id])
        except Exception as e:
            raise TokenizationError(f"Failed to decode token {token_id} with {self._model_id}: {e}") from e


@register_loader("hf")
class HFTokenizerLoader(BaseTokenizerLoader):
    """
    Tokenizer loader backed by the Hugging Face hub.

    Features:
    - Any tokenizer AutoTokenizer can resolve (fast variants preferred)
    - Family tag derived from the tokenizer class name
    - Optional local-only resolution and custom cache directory
    """

    def __init__(
        self,
        cache_dir: Optional[str] = config.MODEL_CACHE_DIR,
        local_files_only: bool = config.ALLOW_LOCAL_MODELS
    ):
        """
        Initialize the loader.

        Args:
            cache_dir: Directory for downloaded files (defaults to the hub cache)
            local_files_only: Only use files already present on disk
        """
        self.cache_dir = cache_dir
        self.local_files_only = local_files_only

    @property
    def name(self) -> str:
        return "hf"

    def load(self, model_id: str) -> HFTokenizerHandle:
        logger.info(f"Loading tokenizer for {model_id}...")
        try:
            tokenizer = AutoTokenizer.from_pretrained(
                model_id,
                cache_dir=self.cache_dir,
                local_files_only=self.local_files_only
            )
        except Exception as e:
            raise ResourceLoadError(f"Failed to load tokenizer '{model_id}': {e}") from e

        handle = HFTokenizerHandle(model_id, tokenizer)
        if handle.family is TokenizerFamily.T5:
            keep_word_spaces(tokenizer)
        logger.info(f"Tokenizer loaded: {handle.class_name} (family: {handle.family.value})")
        return handle


def keep_word_spaces(tokenizer: Any) -> None:
    """
    Stop a Metaspace decoder from dropping the leading space of a decode.

    With the default prepend scheme, decoding the single piece "▁world" gives
    "world", so word boundaries are lost when tokens are decoded one at a time.
    With "never" it gives " world". Only the first token's space is trimmed later.

    Args:
        tokenizer: Loaded tokenizer; slow tokenizers without a backend are left as is
    """
    backend = getattr(tokenizer, "backend_tokenizer", None)
    if backend is None or not isinstance(backend.decoder, decoders.Metaspace):
        logger.debug(f"{type(tokenizer).__name__} has no Metaspace decoder to reconfigure")
        return

    decoder = backend.decoder
    backend.decoder = decoders.Metaspace(replacement=decoder.replacement, prepend_scheme="never")
