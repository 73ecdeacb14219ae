"""
TokenVisor Configuration
Central configuration for models, tokenizer families, and projection settings.
"""

import os

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Model resolution settings
# Remote hub resolution by default; set to true to only use files already on disk
ALLOW_LOCAL_MODELS = os.getenv("TOKEN_VISOR_ALLOW_LOCAL_MODELS", "false").lower() in ("1", "true", "yes")
MODEL_CACHE_DIR = os.getenv("TOKEN_VISOR_CACHE_DIR") or None
DEVICE = os.getenv("TOKEN_VISOR_DEVICE", "cpu")

DEFAULT_TOKENIZER_LOADER = "hf"
DEFAULT_EMBEDDER = "hf"

# Showcased models
DEFAULT_MODELS = {
    "distilbert-base-uncased": {
        "label": "DistilBERT Base Uncased",
    },
    "gpt2": {
        "label": "GPT-2",
    },
    "t5-small": {
        "label": "T5-Small",
    },
}

# Family tags (values of token_visor.loaders.base.TokenizerFamily)
FAMILY_WORDPIECE = "wordpiece"
FAMILY_LEADING_MARKER = "leading_marker"
FAMILY_T5 = "t5"
FAMILY_OTHER = "other"

# Tokenizer class name -> family tag
TOKENIZER_FAMILIES = {
    "BertTokenizer": FAMILY_WORDPIECE,
    "BertTokenizerFast": FAMILY_WORDPIECE,
    "DistilBertTokenizer": FAMILY_WORDPIECE,
    "DistilBertTokenizerFast": FAMILY_WORDPIECE,
    "DebertaTokenizer": FAMILY_WORDPIECE,
    "DebertaTokenizerFast": FAMILY_WORDPIECE,
    "LlamaTokenizer": FAMILY_LEADING_MARKER,
    "LlamaTokenizerFast": FAMILY_LEADING_MARKER,
    "CodeLlamaTokenizer": FAMILY_LEADING_MARKER,
    "CodeLlamaTokenizerFast": FAMILY_LEADING_MARKER,
    "T5Tokenizer": FAMILY_T5,
    "T5TokenizerFast": FAMILY_T5,
}

# Families whose requests finish without an embedding pass
EMBEDDING_OPT_OUT_FAMILIES = {FAMILY_T5}

# Normalization settings
WORDPIECE_MARKER = "##"
LEADING_WORD_MARKER = "\u2581"  # SentencePiece lower one eighth block
WORD_MARGIN = 8

# PCA color projection settings
PCA_N_COMPONENTS = 3
PCA_MIN_SAMPLES = 3
PCA_RANDOM_STATE = 42
FALLBACK_COLOR = (128, 128, 128)
