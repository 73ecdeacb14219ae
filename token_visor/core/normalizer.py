"""
Family-specific surface normalization of decoded tokens.

Maps the raw per-token decode of a tokenizer to display text plus a layout
margin per token (0 = attach to the previous token, WORD_MARGIN = gap before).
"""

from typing import Sequence

from token_visor.exceptions import TokenizationError
from token_visor.loaders.base import TokenizerFamily
import config


def normalize(
    family: TokenizerFamily,
    raw_tokens: Sequence[str],
    raw_ids: Sequence[int]
) -> tuple[list[str], list[int]]:
    """
    Normalize raw decoded tokens for display.

    Args:
        family: Tokenizer family of the handle that produced the tokens
        raw_tokens: Per-token decode, in order
        raw_ids: Token ids, aligned with raw_tokens

    Returns:
        Tuple of (display_tokens, margins). margins is either aligned with the
        tokens or empty, meaning the caller should use its default layout.

    Raises:
        TokenizationError: If tokens and ids are not aligned
    """
    if len(raw_tokens) != len(raw_ids):
        raise TokenizationError(
            f"Decoded {len(raw_tokens)} tokens for {len(raw_ids)} ids"
        )

    tokens = list(raw_tokens)

    if family is TokenizerFamily.WORDPIECE:
        marker = config.WORDPIECE_MARKER
        margins = [
            0 if i == 0 or token.startswith(marker) else config.WORD_MARGIN
            for i, token in enumerate(tokens)
        ]
        tokens = [token.replace(marker, "", 1) for token in tokens]

    elif family is TokenizerFamily.LEADING_MARKER:
        marker = config.LEADING_WORD_MARKER
        tokens = [token[len(marker):] if token.startswith(marker) else token for token in tokens]
        # Absence test on the stripped text
        margins = [
            0 if i == 0 or not token.startswith(marker) else config.WORD_MARGIN
            for i, token in enumerate(tokens)
        ]

    elif family is TokenizerFamily.T5:
        margins = []
        if tokens and tokens[0] != " " and tokens[0].startswith(" "):
            tokens[0] = tokens[0][1:]

    else:
        margins = []

    return tokens, margins
