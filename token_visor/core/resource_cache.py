"""
ResourceCache: memoized asynchronous loads of tokenizers and embedding models.
At most one load runs per (kind, model_id) key, however many callers ask for it.
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Any, Callable

from token_visor.exceptions import ResourceLoadError

logger = logging.getLogger(__name__)


class ResourceKind(str, Enum):
    TOKENIZER = "tokenizer"
    EMBEDDING_MODEL = "embedding_model"


CacheKey = tuple[ResourceKind, str]


class ResourceCache:
    """
    Keyed cache of in-flight and completed resource loads.

    Features:
    - The pending future is stored before the load starts, so concurrent
      callers for the same key await the same load
    - Blocking loaders run in a worker thread; a slow key never blocks others
    - Loaded handles are kept for the lifetime of the cache
    - A failed load is evicted: its awaiters see the error, the next call retries
    """

    def __init__(self, loaders: dict[ResourceKind, Callable[[str], Any]]):
        """
        Initialize the cache.

        Args:
            loaders: Blocking loader callable per resource kind,
                e.g. {ResourceKind.TOKENIZER: tokenizer_loader.load}
        """
        self._loaders = dict(loaders)
        self._entries: dict[CacheKey, asyncio.Future] = {}

    @classmethod
    def from_backends(cls, tokenizer_loader, embedder) -> "ResourceCache":
        """Build a cache over a tokenizer loader and an embedder backend."""
        return cls({
            ResourceKind.TOKENIZER: tokenizer_loader.load,
            ResourceKind.EMBEDDING_MODEL: embedder.load,
        })

    async def resolve(self, kind: ResourceKind, model_id: str) -> Any:
        """
        Return the handle for (kind, model_id), loading it on first use.

        Args:
            kind: Resource kind to resolve
            model_id: Model identifier

        Returns:
            Loaded handle (TokenizerHandle or FeatureExtractor)

        Raises:
            ResourceLoadError: If the load fails (the entry is evicted first)
            ValueError: If no loader is configured for kind
        """
        key = (kind, model_id)
        future = self._entries.get(key)
        if future is None:
            if kind not in self._loaders:
                raise ValueError(f"No loader configured for resource kind '{kind.value}'")
            # No await between lookup and insert: first caller wins
            future = asyncio.ensure_future(self._load(key))
            self._entries[key] = future
        else:
            logger.debug(f"Awaiting cached {kind.value} for {model_id}")

        return await asyncio.shield(future)

    async def _load(self, key: CacheKey) -> Any:
        kind, model_id = key
        loader = self._loaders[kind]
        start = time.perf_counter()

        try:
            handle = await asyncio.to_thread(loader, model_id)
        except Exception as e:
            if self._entries.get(key) is asyncio.current_task():
                del self._entries[key]
            logger.error(f"Failed to load {kind.value} for {model_id}: {e}")
            if isinstance(e, ResourceLoadError):
                raise
            raise ResourceLoadError(f"Failed to load {kind.value} '{model_id}': {e}") from e

        elapsed = time.perf_counter() - start
        logger.info(f"Loaded {kind.value} for {model_id} in {elapsed:.2f}s")
        return handle

    def is_loaded(self, kind: ResourceKind, model_id: str) -> bool:
        """Check if a handle has finished loading successfully."""
        future = self._entries.get((kind, model_id))
        return future is not None and future.done() and not future.cancelled() and future.exception() is None

    def is_pending(self, kind: ResourceKind, model_id: str) -> bool:
        """Check if a load for the key is in flight."""
        future = self._entries.get((kind, model_id))
        return future is not None and not future.done()

    def loaded_models(self, kind: ResourceKind) -> list[str]:
        """Model identifiers with a completed load of the given kind."""
        return [model_id for k, model_id in self._entries if k is kind and self.is_loaded(k, model_id)]

    def __len__(self) -> int:
        return len(self._entries)
