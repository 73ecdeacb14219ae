"""
Tabular views of pipeline responses.
"""

from typing import Union

import pandas as pd

from token_visor.core.messages import CompleteResponse, PartialResponse

TABLE_COLUMNS = ["id", "token", "margin", "r", "g", "b"]


def token_table(response: Union[PartialResponse, CompleteResponse]) -> pd.DataFrame:
    """
    One row per token with its id, display text, margin and color.

    Args:
        response: Partial or complete response

    Returns:
        DataFrame with columns: id, token, margin, r, g, b.
        margin is NA when the family uses the default layout; colors are NA
        for partial responses.
    """
    tokens = response.tokens
    n_tokens = len(tokens)

    df = pd.DataFrame({
        "id": list(tokens.ids),
        "token": list(tokens.decoded),
        "margin": pd.array(list(tokens.margins) if tokens.margins else [None] * n_tokens, dtype="Int64"),
    })

    if isinstance(response, CompleteResponse):
        colors = list(response.token_colors)
        for channel, column in enumerate(("r", "g", "b")):
            df[column] = pd.array([color[channel] for color in colors], dtype="Int64")
    else:
        for column in ("r", "g", "b"):
            df[column] = pd.array([None] * n_tokens, dtype="Int64")

    return df[TABLE_COLUMNS]
