"""
Command-line entry point for the memory bank.

    memorybank add "I live in Paris and I love hiking."
    memorybank search "where do I live?"
    memorybank list --limit 20

SETUP REQUIRED:
1. Copy .env.example to .env and fill in API keys
2. Copy config.yaml.example to config.yaml and pick providers/store
3. Install dependencies:
   pip install -e .
"""

import argparse
import asyncio
import json
import logging
import sys

from .config import config
from .errors import MemoryBankError
from .llm import create_llm_provider
from .memory import MemoryEngine, MemoryRecord, create_memory_engine
from .reasoning import LLMDecisionService, LLMExtractionService

logger = logging.getLogger("memorybank.main")


async def build_engine() -> MemoryEngine:
    """Wire an initialized engine from the global configuration."""
    llm = create_llm_provider(
        provider=config.llm.provider,
        openai_api_key=config.openai.api_key,
        openai_model=config.openai.model,
        google_api_key=config.google.api_key,
        google_model=config.google.model,
    )

    embedding_keys = {
        "openai": config.openai.api_key,
        "google": config.google.api_key,
        "local": "",
    }
    embedding_models = {
        "openai": config.memory.openai_embedding_model,
        "google": config.memory.google_embedding_model,
        "local": config.memory.local_embedding_model,
    }
    provider = config.memory.embedding_provider

    return await create_memory_engine(
        extraction_service=LLMExtractionService(
            llm, temperature=config.llm.temperature, max_tokens=config.llm.max_tokens
        ),
        decision_service=LLMDecisionService(
            llm, temperature=config.llm.temperature, max_tokens=config.llm.max_tokens
        ),
        store_type=config.memory.store_type,
        embedding_provider=provider,
        embedding_api_key=embedding_keys.get(provider, ""),
        embedding_model=embedding_models.get(provider, ""),
        embedding_dimensions=config.memory.embedding_dimensions,
        postgres_url=config.memory.postgres_url,
        chroma_path=config.memory.chroma_path,
        collection_name=config.memory.collection_name,
        top_k=config.memory.top_k,
        threshold=config.memory.threshold,
        concurrent_retrieval=config.engine.concurrent_retrieval,
        collaborator_timeout=config.engine.collaborator_timeout,
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="memorybank", description="Deduplicated fact memory")
    commands = parser.add_subparsers(dest="command", required=True)

    add = commands.add_parser("add", help="Extract facts from text and merge them in")
    add.add_argument("content")

    search = commands.add_parser("search", help="Find memories similar to text")
    search.add_argument("content")
    search.add_argument("--top-k", type=int, default=None)
    search.add_argument("--threshold", type=float, default=None)

    listing = commands.add_parser("list", help="Page through stored memories")
    listing.add_argument("--cursor", default=None)
    listing.add_argument("--offset", type=int, default=0)
    listing.add_argument("--limit", type=int, default=None)

    return parser.parse_args(argv)


async def run_command(engine: MemoryEngine, args: argparse.Namespace) -> list[MemoryRecord]:
    """Dispatch one parsed command against the engine."""
    if args.command == "add":
        return await engine.add(args.content)
    if args.command == "search":
        return await engine.search(args.content, top_k=args.top_k, threshold=args.threshold)
    if args.command == "list":
        return await engine.list(cursor=args.cursor, offset=args.offset, limit=args.limit)
    raise ValueError(f"Unknown command: {args.command}")


async def run(argv: list[str] | None = None) -> bool:
    """Parse arguments, run one command and print the records as JSON."""
    args = parse_args(argv)
    config.setup_logging()

    errors = config.validate()
    if errors:
        for error in errors:
            logger.error(f"Config: {error}")
        return False

    engine = await build_engine()
    try:
        records = await run_command(engine, args)
    except MemoryBankError as e:
        logger.error(f"{args.command} failed: {e}")
        if e.applied:
            logger.error(f"Committed before failure: {[r.id for r in e.applied]}")
        return False
    finally:
        await engine.close()

    print(json.dumps([record.to_dict() for record in records], ensure_ascii=False, indent=2))
    return True


def main(argv: list[str] | None = None):
    """Entry point for the application."""
    try:
        success = asyncio.run(run(argv))
        sys.exit(0 if success else 1)
    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        sys.exit(130)
    except Exception as e:
        print(f"\nFatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
