"""Command line entry point: answer one question about a text file.

Usage:
    docqa                                  # Ask the default question about data.txt
    docqa notes.txt -q "What is this about?"
    docqa --chunk-size 400 --top-k 4       # Override RAG parameters
"""
import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional
import structlog

from docqa import config
from docqa.errors import DocQAError
from docqa.llm_client import GenerationParams, get_client
from docqa.pipeline import Answer, RAGPipeline
from docqa.rag.loader import TextLoader

logger = structlog.get_logger()


def configure_logging(level: str = None) -> None:
    """Configure structured JSON logging on stderr."""
    logging.basicConfig(
        level=(level or config.LOG_LEVEL).upper(),
        stream=sys.stderr,
        format="%(message)s",
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docqa",
        description="Answer a question about text files with retrieval-augmented generation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment:
  OPENAI_API_KEY     API key for the OpenAI provider
  LLM_PROVIDER       openai (default) or ollama
        """,
    )

    parser.add_argument(
        "files",
        nargs="*",
        type=Path,
        default=[config.DATA_FILE],
        help=f"Text files to search (default: {config.DATA_FILE})",
    )
    parser.add_argument(
        "--question",
        "-q",
        default=config.QUESTION,
        help="Question to answer",
    )
    parser.add_argument("--chunk-size", type=int, default=config.CHUNK_SIZE)
    parser.add_argument("--chunk-overlap", type=int, default=config.CHUNK_OVERLAP)
    parser.add_argument("--top-k", "-k", type=int, default=config.RETRIEVAL_TOP_K)
    parser.add_argument("--model", default=config.CHAT_MODEL)
    parser.add_argument("--temperature", type=float, default=config.TEMPERATURE)
    parser.add_argument(
        "--provider",
        choices=["openai", "ollama"],
        default=config.LLM_PROVIDER,
    )
    parser.add_argument("--encoding", default="utf-8")
    parser.add_argument("--log-level", default=config.LOG_LEVEL)

    return parser


def print_answer(answer: Answer, stream=None) -> None:
    """Print the answer with its retrieved context."""
    stream = stream or sys.stdout

    print(f"\n{'=' * 60}", file=stream)
    print(f"  Question: {answer.input}", file=stream)
    print(f"{'=' * 60}\n", file=stream)

    print(f"Context ({len(answer.context)} segments):", file=stream)
    for i, segment in enumerate(answer.context, 1):
        print(
            f"\n  [{i}] {segment.source} (chars {segment.start_index}-{segment.end_index})",
            file=stream,
        )
        for line in segment.content.strip().splitlines():
            print(f"      {line}", file=stream)

    print(f"\n{'-' * 60}", file=stream)
    print("Answer:\n", file=stream)
    print(answer.answer.strip(), file=stream)
    print(f"{'-' * 60}", file=stream)

    print(f"Model: {answer.model}", file=stream)
    if answer.usage:
        usage = ", ".join(f"{key}={value}" for key, value in answer.usage.items())
        print(f"Usage: {usage}", file=stream)
    print(file=stream)


async def ask(args: argparse.Namespace) -> int:
    """Build the pipeline from parsed arguments and run it once."""
    client = get_client(args.provider)

    pipeline = RAGPipeline(
        embedder=client,
        generator=client,
        chunk_size=args.chunk_size,
        chunk_overlap=args.chunk_overlap,
        top_k=args.top_k,
        params=GenerationParams(model=args.model, temperature=args.temperature),
        loader=TextLoader(encoding=args.encoding),
    )

    result = await pipeline.run(args.files, args.question)

    if not result.ok:
        print(f"Error ({result.error.kind}): {result.error}", file=sys.stderr)
        return 1

    print_answer(result.answer)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point; returns the process exit code."""
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    try:
        return asyncio.run(ask(args))

    except KeyboardInterrupt:
        print("\nCancelled by user.", file=sys.stderr)
        return 130

    except DocQAError as e:
        # Configuration problems detected before the pipeline starts
        print(f"Error ({e.kind}): {e}", file=sys.stderr)
        logger.error("docqa_failed", error=str(e), error_type=e.kind)
        return 1


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
