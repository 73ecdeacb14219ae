"""Tests for the two-stage request pipeline."""

import asyncio
import unittest
from unittest import mock

from token_visor.core.messages import CompleteResponse, ErrorResponse, PartialResponse, PipelineRequest
from token_visor.core.pipeline import STOP, RequestPipeline
from token_visor.core.projector import ColorProjector
from token_visor.core.resource_cache import ResourceKind

from tests.stubs import CountingLoader, StubFeatureExtractor, make_cache, make_tokenizer

GRAY = (128, 128, 128)


class TestEmbeddingFamilies(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.embedding_loader = CountingLoader(lambda model_id: StubFeatureExtractor(model_id, hidden_size=8, padding=1))
        self.cache = make_cache(embedding_loader=self.embedding_loader)
        self.pipeline = RequestPipeline(self.cache)

    async def test_partial_then_complete(self):
        responses = await self.pipeline.handle(PipelineRequest("bert-stub", "[CLS] run ##ing fast [SEP]"))

        self.assertEqual([type(r) for r in responses], [PartialResponse, CompleteResponse])
        partial, complete = responses
        self.assertEqual(partial.tokens, complete.tokens)
        self.assertEqual(list(partial.tokens.decoded), ["[CLS]", "run", "ing", "fast", "[SEP]"])
        self.assertEqual(list(partial.tokens.margins), [0, 8, 0, 8, 8])
        self.assertEqual(list(partial.tokens.ids), [0, 2, 3, 4, 1])

    async def test_complete_carries_embeddings_and_colors(self):
        _, complete = await self.pipeline.handle(PipelineRequest("bert-stub", "[CLS] the dog run ##ing [SEP]"))

        self.assertEqual(len(complete.embeddings), 6)
        self.assertTrue(all(len(vector) == 8 for vector in complete.embeddings))
        self.assertEqual(len(complete.token_colors), 6)
        for color in complete.token_colors:
            self.assertTrue(all(0 <= c <= 255 for c in color))
        self.assertNotEqual(set(complete.token_colors), {GRAY})

    async def test_short_sequence_gets_gray(self):
        _, complete = await self.pipeline.handle(PipelineRequest("bert-stub", "[CLS] [SEP]"))

        self.assertEqual(len(complete.embeddings), 2)
        self.assertEqual(list(complete.token_colors), [GRAY, GRAY])

    async def test_byte_level_family_embeds_without_margins(self):
        partial, complete = await self.pipeline.handle(PipelineRequest("gpt2-stub", "Hello Ġworld !"))

        self.assertEqual(list(partial.tokens.margins), [])
        self.assertEqual(list(partial.tokens.decoded), ["Hello", "Ġworld", "!"])
        self.assertIsNotNone(complete.embeddings)

    async def test_leading_marker_family(self):
        partial, _ = await self.pipeline.handle(PipelineRequest("llama-stub", "<s> ▁Hello ▁world !"))

        self.assertEqual(list(partial.tokens.decoded), ["<s>", "Hello", "world", "!"])
        self.assertEqual(list(partial.tokens.margins), [0, 0, 0, 0])

    async def test_embedding_model_loaded_once(self):
        await self.pipeline.handle(PipelineRequest("bert-stub", "run"))
        await self.pipeline.handle(PipelineRequest("bert-stub", "the dog"))
        self.assertEqual(self.embedding_loader.calls, 1)

    async def test_accepts_request_dicts(self):
        responses = await self.pipeline.handle({"model_id": "bert-stub", "text": "run"})
        self.assertEqual(len(responses), 2)


class TestOptOutFamily(unittest.IsolatedAsyncioTestCase):

    async def test_t5_completes_without_embeddings(self):
        embedding_loader = CountingLoader(StubFeatureExtractor)
        pipeline = RequestPipeline(make_cache(embedding_loader=embedding_loader))

        partial, complete = await pipeline.handle(PipelineRequest("t5-stub", "Hello world </s>"))

        self.assertIsInstance(partial, PartialResponse)
        self.assertIsInstance(complete, CompleteResponse)
        self.assertEqual(list(partial.tokens.margins), [])
        self.assertEqual(list(complete.tokens.decoded), ["Hello", "world", "</s>"])
        self.assertIsNone(complete.embeddings)
        self.assertEqual(list(complete.token_colors), [GRAY] * 3)
        self.assertEqual(embedding_loader.calls, 0)


class TestPrewarm(unittest.IsolatedAsyncioTestCase):

    async def test_empty_text_emits_nothing(self):
        cache = make_cache()
        pipeline = RequestPipeline(cache)

        self.assertEqual(await pipeline.handle(PipelineRequest("bert-stub", "")), [])
        self.assertEqual(await pipeline.handle(PipelineRequest("t5-stub")), [])
        self.assertTrue(cache.is_loaded(ResourceKind.TOKENIZER, "bert-stub"))
        self.assertFalse(cache.is_loaded(ResourceKind.EMBEDDING_MODEL, "bert-stub"))

    async def test_prewarm_loads_every_tokenizer(self):
        cache = make_cache()
        await RequestPipeline(cache).prewarm(["bert-stub", "t5-stub", "gpt2-stub"])
        self.assertEqual(
            sorted(cache.loaded_models(ResourceKind.TOKENIZER)),
            ["bert-stub", "gpt2-stub", "t5-stub"]
        )

    async def test_prewarm_failure_emits_nothing(self):
        loader = CountingLoader(make_tokenizer, fail_times=1)
        pipeline = RequestPipeline(make_cache(tokenizer_loader=loader))

        self.assertEqual(await pipeline.handle(PipelineRequest("bert-stub")), [])

        responses = await pipeline.handle(PipelineRequest("bert-stub", "run"))
        self.assertEqual([type(r) for r in responses], [PartialResponse, CompleteResponse])
        self.assertEqual(loader.calls, 2)


class TestErrors(unittest.IsolatedAsyncioTestCase):

    async def test_tokenizer_load_failure(self):
        pipeline = RequestPipeline(make_cache(tokenizer_loader=CountingLoader(make_tokenizer, fail_times=1)))

        responses = await pipeline.handle(PipelineRequest("bert-stub", "run"))

        self.assertEqual(len(responses), 1)
        self.assertIsInstance(responses[0], ErrorResponse)
        self.assertEqual(responses[0].model_id, "bert-stub")
        self.assertIn("connection reset", responses[0].error)

    async def test_retry_after_transient_load_failure(self):
        loader = CountingLoader(make_tokenizer, fail_times=1)
        pipeline = RequestPipeline(make_cache(tokenizer_loader=loader))

        first = await pipeline.handle(PipelineRequest("bert-stub", "run"))
        second = await pipeline.handle(PipelineRequest("bert-stub", "run"))

        self.assertIsInstance(first[0], ErrorResponse)
        self.assertEqual([type(r) for r in second], [PartialResponse, CompleteResponse])
        self.assertEqual(loader.calls, 2)

    async def test_tokenization_failure(self):
        pipeline = RequestPipeline(make_cache())

        responses = await pipeline.handle(PipelineRequest("bert-stub", "unknownword"))

        self.assertEqual(len(responses), 1)
        self.assertIsInstance(responses[0], ErrorResponse)

    async def test_extraction_failure_after_partial(self):
        short = CountingLoader(lambda model_id: StubFeatureExtractor(model_id, shortfall=3))
        pipeline = RequestPipeline(make_cache(embedding_loader=short))

        responses = await pipeline.handle(PipelineRequest("bert-stub", "[CLS] run [SEP]"))

        self.assertEqual([type(r) for r in responses], [PartialResponse, ErrorResponse])

    async def test_embedding_model_load_failure(self):
        failing = CountingLoader(StubFeatureExtractor, fail_times=1)
        pipeline = RequestPipeline(make_cache(embedding_loader=failing))

        responses = await pipeline.handle(PipelineRequest("bert-stub", "run"))

        self.assertEqual([type(r) for r in responses], [PartialResponse, ErrorResponse])

    async def test_unexpected_error_reported(self):
        pipeline = RequestPipeline(make_cache(tokenizer_loader=CountingLoader(lambda model_id: None)))

        responses = await pipeline.handle(PipelineRequest("bert-stub", "run"))

        self.assertEqual(len(responses), 1)
        self.assertIsInstance(responses[0], ErrorResponse)

    async def test_color_projection_error_after_partial(self):
        projector = mock.Mock(spec=ColorProjector)
        projector.project.side_effect = RuntimeError("projection exploded")
        pipeline = RequestPipeline(make_cache(), projector=projector)

        responses = await pipeline.handle(PipelineRequest("bert-stub", "[CLS] run fast ##er [SEP]"))

        self.assertEqual([type(r) for r in responses], [PartialResponse, ErrorResponse])
        self.assertIn("projection exploded", responses[1].error)

    async def test_run_survives_projection_error(self):
        projector = mock.Mock(spec=ColorProjector)
        projector.project.side_effect = RuntimeError("projection exploded")
        pipeline = RequestPipeline(make_cache(), projector=projector)
        requests, responses = asyncio.Queue(), asyncio.Queue()
        for item in (PipelineRequest("bert-stub", "run"), PipelineRequest("t5-stub", "Hello world"), STOP):
            requests.put_nowait(item)

        await asyncio.wait_for(pipeline.run(requests, responses), timeout=5)

        received = []
        while not responses.empty():
            received.append(responses.get_nowait())
        finals = {r.model_id: type(r) for r in received if isinstance(r, (CompleteResponse, ErrorResponse))}
        self.assertEqual(finals, {"bert-stub": ErrorResponse, "t5-stub": CompleteResponse})


class TestRun(unittest.IsolatedAsyncioTestCase):

    async def test_serves_queue_until_stop(self):
        pipeline = RequestPipeline(make_cache())
        requests: asyncio.Queue = asyncio.Queue()
        responses: asyncio.Queue = asyncio.Queue()

        for request in (
            PipelineRequest("bert-stub", "[CLS] run [SEP]"),
            {"model_id": "t5-stub", "text": "Hello world"},
            PipelineRequest("gpt2-stub", ""),
            PipelineRequest("llama-stub", "▁Hello nope"),
        ):
            requests.put_nowait(request)
        requests.put_nowait(STOP)

        await asyncio.wait_for(pipeline.run(requests, responses), timeout=5)

        received = []
        while not responses.empty():
            received.append(responses.get_nowait())

        by_model = {}
        for response in received:
            by_model.setdefault(response.model_id, []).append(type(response))

        self.assertEqual(by_model["bert-stub"], [PartialResponse, CompleteResponse])
        self.assertEqual(by_model["t5-stub"], [PartialResponse, CompleteResponse])
        self.assertEqual(by_model["llama-stub"], [ErrorResponse])
        self.assertNotIn("gpt2-stub", by_model)

    async def test_invalid_request_reported(self):
        pipeline = RequestPipeline(make_cache())
        requests: asyncio.Queue = asyncio.Queue()
        responses: asyncio.Queue = asyncio.Queue()
        requests.put_nowait({"text": "no model"})
        requests.put_nowait(STOP)

        await pipeline.run(requests, responses)

        response = responses.get_nowait()
        self.assertIsInstance(response, ErrorResponse)
        self.assertEqual(response.model_id, "")


if __name__ == "__main__":
    unittest.main()
