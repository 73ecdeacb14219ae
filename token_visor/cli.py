"""
Command-line entry point.

Run with: python -m token_visor "Some text" [--model gpt2 ...] [--json]
"""

import argparse
import asyncio
import json
import sys
from typing import Iterable, Optional, TextIO

from token_visor.core.messages import CompleteResponse, ErrorResponse, PartialResponse, PipelineRequest
from token_visor.core.pipeline import STOP, RequestPipeline
from token_visor.core.resource_cache import ResourceKind
from token_visor.logging_ import setup_logging
from token_visor.report import token_table
import config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="token-visor",
        description="Show how different tokenizers segment text, colored by embedding PCA."
    )
    parser.add_argument("text", nargs="?", default="", help="Text to tokenize (omit to only pre-load tokenizers)")
    parser.add_argument(
        "--model", "-m",
        action="append",
        dest="models",
        help="Model identifier (repeatable, defaults to the showcased models)"
    )
    parser.add_argument("--json", action="store_true", help="Print one JSON message per response")
    parser.add_argument("--log-level", default=config.LOG_LEVEL, help="Logging level (default: %(default)s)")
    return parser


async def run(
    pipeline: RequestPipeline,
    text: str,
    model_ids: Iterable[str],
    as_json: bool = False,
    out: TextIO = sys.stdout
) -> int:
    """
    Send the text to every model and print responses as they arrive.

    Args:
        pipeline: Pipeline to process the requests
        text: Input text (empty pre-loads the tokenizers only)
        model_ids: Models to compare
        as_json: Print raw messages instead of tables
        out: Output stream

    Returns:
        Number of error responses (failed tokenizer loads when pre-loading)
    """
    model_ids = list(model_ids)
    if not text:
        await pipeline.prewarm(model_ids)
        loaded = [m for m in model_ids if pipeline.cache.is_loaded(ResourceKind.TOKENIZER, m)]
        failed = [m for m in model_ids if m not in loaded]
        if loaded:
            print(f"Pre-loaded tokenizers: {', '.join(loaded)}", file=out)
        if failed:
            print(f"Failed to pre-load tokenizers: {', '.join(failed)}", file=out)
        return len(failed)

    requests: asyncio.Queue = asyncio.Queue()
    responses: asyncio.Queue = asyncio.Queue()
    for model_id in model_ids:
        requests.put_nowait(PipelineRequest(model_id=model_id, text=text))
    requests.put_nowait(STOP)

    worker = asyncio.create_task(pipeline.run(requests, responses))

    errors = 0
    pending = set(model_ids)
    while pending:
        response = await responses.get()
        if isinstance(response, (CompleteResponse, ErrorResponse)):
            pending.discard(response.model_id)
        if isinstance(response, ErrorResponse):
            errors += 1
        _print_response(response, as_json, out)

    await worker
    return errors


def _print_response(response, as_json: bool, out: TextIO) -> None:
    if as_json:
        print(json.dumps(response.to_message(), ensure_ascii=False), file=out)
        return

    label = config.DEFAULT_MODELS.get(response.model_id, {}).get("label", response.model_id)
    if isinstance(response, ErrorResponse):
        print(f"[{label}] error: {response.error}", file=out)
    elif isinstance(response, PartialResponse):
        print(f"[{label}] {len(response.tokens)} tokens", file=out)
    else:
        colored = "with embedding colors" if response.embeddings is not None else "without embeddings"
        print(f"[{label}] complete, {colored}", file=out)
        print(token_table(response).to_string(index=False), file=out)


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    model_ids = args.models or list(config.DEFAULT_MODELS)
    pipeline = RequestPipeline.from_config()

    errors = asyncio.run(run(pipeline, args.text, model_ids, as_json=args.json))
    return 1 if errors else 0
