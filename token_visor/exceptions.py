"""
Exceptions shared across the TokenVisor pipeline.

- ResourceLoadError : tokenizer or embedding model failed to load
- TokenizationError : encode/decode failed for the given text
- ExtractionError   : feature-extraction buffer shorter than expected or malformed
- ProjectionError   : numerical failure while projecting embeddings to colors
                      (recovered locally, never sent to the caller)
"""


class TokenVisorError(Exception):
    """Base class for pipeline errors."""
    pass


class ResourceLoadError(TokenVisorError, IOError):
    """Tokenizer or embedding model could not be loaded."""
    pass


class TokenizationError(TokenVisorError, ValueError):
    """Encoding or decoding of the input text failed."""
    pass


class ExtractionError(TokenVisorError, RuntimeError):
    """Feature extraction produced an unusable hidden-state buffer."""
    pass


class ProjectionError(TokenVisorError, ArithmeticError):
    """PCA projection failed; callers fall back to gray."""
    pass
