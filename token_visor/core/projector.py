"""
PCA color projection for token embeddings.
Reduces per-token vectors to 3 components and rescales them to RGB.
"""

import logging
import warnings
from typing import Sequence

import numpy as np
from sklearn.decomposition import PCA

from token_visor.exceptions import ProjectionError
import config

logger = logging.getLogger(__name__)

ColorTriple = tuple[int, int, int]


class ColorProjector:
    """
    PCA-based color mapping for embedding visualization.

    Features:
    - Fits PCA on the tokens of a single request
    - One global min/max across all tokens and components for scaling
    - Fallback gray for degenerate input (empty, too few tokens, PCA failure)
    """

    def __init__(
        self,
        n_components: int = config.PCA_N_COMPONENTS,
        min_samples: int = config.PCA_MIN_SAMPLES,
        fallback_color: ColorTriple = config.FALLBACK_COLOR,
        random_state: int = config.PCA_RANDOM_STATE
    ):
        """
        Initialize the projector.

        Args:
            n_components: Output dimensions, one per color channel (default: 3)
            min_samples: Fewest vectors PCA is attempted on (default: 3)
            fallback_color: Color used when no projection is possible
            random_state: Random seed for reproducibility
        """
        self.n_components = n_components
        self.min_samples = min_samples
        self.fallback_color = tuple(fallback_color)
        self.random_state = random_state

    def project(self, vectors: Sequence[Sequence[float]]) -> list[ColorTriple]:
        """
        Map each vector to an (r, g, b) triple.

        Args:
            vectors: One embedding vector per token

        Returns:
            List of color triples, same length as vectors
        """
        n_vectors = len(vectors)

        if n_vectors == 0 or any(len(vector) == 0 for vector in vectors):
            return self.fallback(n_vectors)

        if n_vectors < self.min_samples:
            logger.debug(f"Only {n_vectors} vectors, skipping PCA")
            return self.fallback(n_vectors)

        try:
            projected = self.fit_project(vectors)
        except ProjectionError as e:
            logger.warning(f"Color projection failed, using fallback color: {e}")
            return self.fallback(n_vectors)

        return [tuple(int(c) for c in row) for row in self.scale_to_rgb(projected)]

    def fit_project(self, vectors: Sequence[Sequence[float]]) -> np.ndarray:
        """
        Fit PCA on the vectors and project them onto the top components.

        Args:
            vectors: Array-like of shape (n, dim)

        Returns:
            Array of shape (n, n_components)

        Raises:
            ProjectionError: On ragged input or any numerical failure
        """
        try:
            data = np.asarray(vectors, dtype=np.float64)
            if data.ndim != 2:
                raise ValueError(f"Expected a 2-D array of vectors, got shape {data.shape}")

            model = PCA(
                n_components=self.n_components,
                svd_solver="full",
                random_state=self.random_state
            )
            # Zero-variance input warns on explained variance ratio
            with warnings.catch_warnings():
                warnings.simplefilter("ignore", RuntimeWarning)
                projected = model.fit_transform(data)
        except (ValueError, np.linalg.LinAlgError, FloatingPointError) as e:
            raise ProjectionError(f"PCA failed: {e}") from e

        if not np.all(np.isfinite(projected)):
            raise ProjectionError("PCA produced non-finite values")

        return projected

    @staticmethod
    def scale_to_rgb(projected: np.ndarray) -> np.ndarray:
        """
        Rescale projected values to 0-255 using a single global min/max.

        Args:
            projected: Array of shape (n, 3)

        Returns:
            Integer array of shape (n, 3) clamped to [0, 255]; all zeros when
            every value is equal
        """
        lo = float(projected.min())
        hi = float(projected.max())

        if hi == lo:
            return np.zeros(projected.shape, dtype=int)

        scaled = np.round((projected - lo) / (hi - lo) * 255)
        return np.clip(scaled, 0, 255).astype(int)

    def fallback(self, n_tokens: int) -> list[ColorTriple]:
        """Fallback color for every token."""
        return [self.fallback_color] * n_tokens
