"""
CLI entry point for the search service.
"""

import argparse
import asyncio
import json
import sys
from typing import Optional

from .search.config import SearchSettings
from .search.search_service import SearchFailed, SearchRateLimited, SearchService
from .utils.logging import setup_logging


async def health_check(settings: SearchSettings) -> bool:
    """Perform health check on all required services."""
    print("Performing health checks...")

    service = SearchService.from_settings(settings)
    try:
        components = await service.health_check()
    finally:
        await service.close()

    if components["store"]:
        print("✅ Index store accessible")
    else:
        print("❌ Index store not accessible")
        return False

    if not settings.enable_semantic_search:
        print("⚠️  Semantic search disabled")
    elif components["embeddings"]:
        print("✅ Embedding provider accessible")
    else:
        # Search still works without embeddings
        print("⚠️  Embedding provider not accessible, searches will use keyword + fuzzy only")

    print("🎉 Health checks passed!")
    return True


async def run_query(settings: SearchSettings, query: str) -> int:
    """Run a single search and print the response envelope."""
    service = SearchService.from_settings(settings)
    try:
        outcome = await service.search(query, client_key="cli")
    finally:
        await service.close()

    if isinstance(outcome, SearchRateLimited):
        print(f"Rate limited, retry after {outcome.decision.retry_after}s", file=sys.stderr)
        return 1

    print(json.dumps(outcome.response.model_dump(mode="json", by_alias=True), indent=2, ensure_ascii=False))
    return 1 if isinstance(outcome, SearchFailed) else 0


def serve(settings: SearchSettings) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    from .backend.server import create_app

    uvicorn.run(create_app(settings=settings), host=settings.host, port=settings.port, log_config=None)


def main(argv: Optional[list] = None) -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(description="Portal hybrid search service")

    parser.add_argument("command", choices=["serve", "query", "health", "config"], help="Command to execute")
    parser.add_argument("text", nargs="?", default="", help="Query text for the 'query' command")

    parser.add_argument(
        "--log-level", default=None, choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Logging level"
    )

    parser.add_argument("--json-logs", action="store_true", default=None, help="Output logs in JSON format")

    args = parser.parse_args(argv)

    try:
        settings = SearchSettings()
    except Exception as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(
        args.log_level or settings.log_level,
        settings.json_logs if args.json_logs is None else args.json_logs,
    )

    if args.command == "config":
        # Show configuration (without sensitive data)
        print("Search Configuration:")
        print(f"  Embedding provider: {settings.embedding_base_url}")
        print(f"  Embedding model: {settings.embedding_model}")
        print(f"  Semantic search enabled: {settings.enable_semantic_search}")
        print(f"  Embedding timeout: {settings.embedding_timeout_seconds}s")
        print(
            f"  Embedding cache: {settings.embedding_cache_max_entries} entries, "
            f"{settings.embedding_cache_ttl_seconds}s TTL"
        )
        print(
            f"  Weights: keyword={settings.keyword_weight} fuzzy={settings.fuzzy_weight} "
            f"semantic={settings.semantic_weight}"
        )
        print(f"  Rate limit: {settings.rate_limit_requests} per {settings.rate_limit_window_seconds}s")

    elif args.command == "health":
        success = asyncio.run(health_check(settings))
        sys.exit(0 if success else 1)

    elif args.command == "query":
        if not args.text:
            parser.error("the 'query' command requires query text")
        sys.exit(asyncio.run(run_query(settings, args.text)))

    elif args.command == "serve":
        serve(settings)


if __name__ == "__main__":
    main()
