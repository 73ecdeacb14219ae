"""
TokenVisor: tokenizer segmentation and contextual-embedding color visualizer.
"""

__version__ = "0.1.0"
