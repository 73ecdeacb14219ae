"""
EmbeddingExtractor: one contextual embedding vector per token.
"""

import logging

import numpy as np

from token_visor.embedders.base import FeatureExtractor, FeatureOutput
from token_visor.exceptions import ExtractionError

logger = logging.getLogger(__name__)


class EmbeddingExtractor:
    """
    Turns a feature extractor's flat hidden-state buffer into per-token vectors.

    The buffer may carry extra leading values (padding or special-token
    positions); only the trailing token_count * hidden_size values are kept.
    """

    def extract(self, handle: FeatureExtractor, text: str, token_count: int) -> np.ndarray:
        """
        Compute embedding vectors for the tokens of a text.

        Args:
            handle: Loaded feature extractor for the model
            text: Input text of the request
            token_count: Number of tokens produced by the tokenizer

        Returns:
            Array of shape (token_count, hidden_size), in token order

        Raises:
            ExtractionError: If the forward pass fails or the buffer is too short
        """
        try:
            output = handle.extract_features(text)
        except ExtractionError:
            raise
        except Exception as e:
            raise ExtractionError(f"Feature extraction failed for {handle.model_id}: {e}") from e

        return self.split(output, token_count)

    @staticmethod
    def split(output: FeatureOutput, token_count: int) -> np.ndarray:
        """
        Partition the trailing token_count * hidden_size values into vectors.

        Args:
            output: Raw feature-extraction output
            token_count: Number of vectors to produce

        Returns:
            Array of shape (token_count, hidden_size)

        Raises:
            ExtractionError: If the buffer is malformed or shorter than required
        """
        hidden_size = int(output.hidden_size)
        if hidden_size <= 0:
            raise ExtractionError(f"Invalid hidden size: {hidden_size}")
        if token_count < 0:
            raise ExtractionError(f"Invalid token count: {token_count}")

        try:
            buffer = np.asarray(output.buffer, dtype=np.float32).reshape(-1)
        except (TypeError, ValueError) as e:
            raise ExtractionError(f"Malformed feature buffer: {e}") from e

        required = token_count * hidden_size
        if buffer.size < required:
            raise ExtractionError(
                f"Feature buffer has {buffer.size} values, expected at least "
                f"{required} ({token_count} tokens x {hidden_size})"
            )

        if buffer.size > required:
            logger.debug(f"Dropping {buffer.size - required} leading feature values")

        return buffer[buffer.size - required:].reshape(token_count, hidden_size)
