"""
RequestPipeline: central orchestrator for TokenVisor.
Tokenizes a request, emits the partial stage, then embeds and colors the tokens.
"""

import asyncio
import logging
import time
from typing import AsyncIterator, Iterable, Optional, Union

from token_visor.core.extractor import EmbeddingExtractor
from token_visor.core.messages import (
    CompleteResponse,
    ErrorResponse,
    PartialResponse,
    PipelineRequest,
    PipelineResponse,
    TokenSequence,
)
from token_visor.core.normalizer import normalize
from token_visor.core.projector import ColorProjector
from token_visor.core.resource_cache import ResourceCache, ResourceKind
from token_visor.embedders.base import get_embedder
from token_visor.exceptions import TokenVisorError
from token_visor.loaders.base import TokenizerHandle, get_loader
import config

logger = logging.getLogger(__name__)

# Sentinel that stops RequestPipeline.run()
STOP = None


class RequestPipeline:
    """
    Two-stage tokenization and embedding-color pipeline.

    Responsibilities:
    - Resolve tokenizers and embedding models through a shared ResourceCache
    - Emit a PartialResponse as soon as tokens are normalized
    - Emit a CompleteResponse with embeddings and colors (or an ErrorResponse)

    Per request: Start -> TokenizerReady -> PartialEmitted ->
    (EmbeddingSkipped | EmbeddingModelReady) -> Complete, or Errored.
    """

    def __init__(
        self,
        cache: ResourceCache,
        extractor: Optional[EmbeddingExtractor] = None,
        projector: Optional[ColorProjector] = None
    ):
        """
        Initialize the pipeline.

        Args:
            cache: Resource cache shared by all requests
            extractor: Embedding extractor (defaults to EmbeddingExtractor)
            projector: Color projector (defaults to ColorProjector)
        """
        self.cache = cache
        self.extractor = extractor or EmbeddingExtractor()
        self.projector = projector or ColorProjector()

        # Keeps request tasks of run() alive until they finish
        self._tasks: set[asyncio.Task] = set()

    @classmethod
    def from_config(cls) -> "RequestPipeline":
        """Build a pipeline with the configured tokenizer loader and embedder."""
        # Importing the packages registers their backends
        import token_visor.embedders  # noqa: F401
        import token_visor.loaders  # noqa: F401

        tokenizer_loader = get_loader(config.DEFAULT_TOKENIZER_LOADER)
        embedder = get_embedder(config.DEFAULT_EMBEDDER)
        return cls(ResourceCache.from_backends(tokenizer_loader, embedder))

    # -------------------------------------------------------------------------
    # Request processing
    # -------------------------------------------------------------------------

    async def stream(self, request: PipelineRequest) -> AsyncIterator[PipelineResponse]:
        """
        Process one request, yielding its responses in order.

        Args:
            request: Model identifier and text

        Yields:
            PartialResponse then CompleteResponse, or an ErrorResponse at the
            failing step. Nothing is yielded for an empty-text request.
        """
        model_id = request.model_id

        try:
            tokenizer = await self.cache.resolve(ResourceKind.TOKENIZER, model_id)
            if request.is_prewarm:
                logger.info(f"No text provided for {model_id}, tokenizer pre-warmed")
                return
            tokens = self._tokenize(tokenizer, request.text)
        except Exception as e:
            if request.is_prewarm:
                logger.warning(f"Pre-warm of {model_id} failed: {e}")
                return
            yield self._error(model_id, e)
            return

        yield PartialResponse(model_id=model_id, tokens=tokens)

        if not tokenizer.family.supports_embeddings:
            logger.debug(f"{tokenizer.family.value} tokenizer opts out of embeddings for {model_id}")
            yield CompleteResponse(
                model_id=model_id,
                tokens=tokens,
                embeddings=None,
                token_colors=tuple(self.projector.fallback(len(tokens)))
            )
            return

        try:
            handle = await self.cache.resolve(ResourceKind.EMBEDDING_MODEL, model_id)
            start = time.perf_counter()
            vectors = await asyncio.to_thread(self.extractor.extract, handle, request.text, len(tokens))
            logger.info(
                f"Extracted {len(vectors)} embeddings for {model_id} "
                f"in {(time.perf_counter() - start) * 1000:.2f}ms"
            )
            complete = CompleteResponse(
                model_id=model_id,
                tokens=tokens,
                embeddings=vectors.tolist(),
                token_colors=tuple(self.projector.project(vectors))
            )
        except Exception as e:
            yield self._error(model_id, e)
            return

        yield complete

    async def handle(self, request: Union[PipelineRequest, dict]) -> list[PipelineResponse]:
        """Process one request and collect all of its responses."""
        request = self._coerce(request)
        return [response async for response in self.stream(request)]

    async def prewarm(self, model_ids: Iterable[str]) -> None:
        """Load tokenizers for the given models concurrently."""
        await asyncio.gather(*(self.handle(PipelineRequest(model_id)) for model_id in model_ids))

    async def run(self, requests: asyncio.Queue, responses: asyncio.Queue) -> None:
        """
        Serve requests from a queue until the STOP sentinel arrives.

        Each request runs as its own task, so resource loads and forward passes
        of different requests overlap. Responses of one request are put in
        order; responses of different requests may interleave.

        Args:
            requests: Queue of PipelineRequest (or request dicts), STOP to finish
            responses: Queue receiving PipelineResponse objects
        """
        while True:
            item = await requests.get()
            if item is STOP:
                break

            try:
                request = self._coerce(item)
            except ValueError as e:
                logger.error(f"Rejected request: {e}")
                model_id = item.get("model_id") if isinstance(item, dict) else None
                await responses.put(ErrorResponse(model_id=model_id or "", error=str(e)))
                continue

            task = asyncio.create_task(self._forward(request, responses))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        if self._tasks:
            await asyncio.gather(*self._tasks)

    async def _forward(self, request: PipelineRequest, responses: asyncio.Queue) -> None:
        async for response in self.stream(request):
            logger.debug(f"Emitting {type(response).__name__} for {request.model_id}")
            await responses.put(response)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _tokenize(self, tokenizer: TokenizerHandle, text: str) -> TokenSequence:
        start = time.perf_counter()
        ids = tokenizer.encode(text)
        elapsed = (time.perf_counter() - start) * 1000
        logger.info(f"Tokenized {len(text)} characters in {elapsed:.2f}ms ({tokenizer.model_id})")

        raw_tokens = tokenizer.decode_each(ids)
        decoded, margins = normalize(tokenizer.family, raw_tokens, ids)

        return TokenSequence(
            ids=tuple(int(token_id) for token_id in ids),
            decoded=tuple(decoded),
            margins=tuple(margins)
        )

    @staticmethod
    def _coerce(request: Union[PipelineRequest, dict]) -> PipelineRequest:
        if isinstance(request, PipelineRequest):
            return request
        if isinstance(request, dict):
            return PipelineRequest.from_message(request)
        raise ValueError(f"Unsupported request type: {type(request).__name__}")

    @staticmethod
    def _error(model_id: str, error: Exception) -> ErrorResponse:
        if isinstance(error, TokenVisorError):
            logger.error(f"Request for {model_id} failed: {error}")
        else:
            logger.exception(f"Unexpected error processing request for {model_id}")
        return ErrorResponse(model_id=model_id, error=str(error) or type(error).__name__)
