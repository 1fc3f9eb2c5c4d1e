#!/usr/bin/env python3
"""
Warm the edge cache for frequently requested countries.

Composes responses through the same path as the advisory endpoint and writes
them into Redis, so the first visitor after a deploy or a flush gets a hit.
Can be executed manually from a developer workstation or a CI job.
"""

import argparse
import asyncio
import json
from pathlib import Path
from typing import Any, Dict, List, Optional
import sys

from service_advisory.app.caching.cache_store import RedisCacheStore
from service_advisory.app.domain.composition import parse_identifier
from service_advisory.app.domain.models import Provenance
from service_advisory.app.main import SERVICE_NAME, SERVICE_PORT, AdvisoryGatewayService
from shared.config import ServiceConfig, get_config
from shared.errors import AdvisoryGatewayException


async def _warm_one(service: AdvisoryGatewayService, identifier: str, dry_run: bool) -> Dict[str, Any]:
    request = parse_identifier(None, identifier, service.config.max_identifier_length)
    response = await service.composer.compose_fresh(request)

    written = False
    if not dry_run:
        written = await service.cache.put(request.cache_key, response, response.ttl_class)

    return {
        "identifier": request.cache_key,
        "source": response.source,
        "written": written,
    }


async def warm(
    identifiers: List[str],
    *,
    config: Optional[ServiceConfig] = None,
    concurrency: int = 3,
    dry_run: bool = False,
    cache_store: Optional[RedisCacheStore] = None,
) -> Dict[str, Any]:
    """Execute cache warming and return the summary."""
    service = AdvisoryGatewayService(config, cache_store=cache_store)
    semaphore = asyncio.Semaphore(max(1, concurrency))
    summary: Dict[str, Any] = {
        "planned": len(identifiers),
        "warmed": 0,
        "fallback": 0,
        "errors": [],
    }

    async def _bounded(identifier: str) -> Dict[str, Any]:
        async with semaphore:
            return await _warm_one(service, identifier, dry_run)

    try:
        results = await asyncio.gather(
            *(_bounded(identifier) for identifier in identifiers),
            return_exceptions=True,
        )
    finally:
        await service.cache_store.close()

    for identifier, outcome in zip(identifiers, results):
        if isinstance(outcome, Exception):
            reason = outcome.message if isinstance(outcome, AdvisoryGatewayException) else str(outcome)
            service.logger.error("Cache warm task failed", identifier=identifier, error=reason)
            summary["errors"].append(f"{identifier}: {reason}")
            continue

        if outcome["source"] is Provenance.FALLBACK:
            summary["fallback"] += 1
        if outcome["written"]:
            summary["warmed"] += 1

    service.logger.info(
        "Cache warm completed",
        planned=summary["planned"],
        warmed=summary["warmed"],
        fallback=summary["fallback"],
        errors=len(summary["errors"]),
        dry_run=dry_run,
    )
    return summary


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Warm the edge cache for popular countries.")
    parser.add_argument("--country", action="append", required=True, help="Country name or ISO code (repeatable)")
    parser.add_argument("--concurrency", type=int, default=3, help="Concurrent warm operations")
    parser.add_argument("--dry-run", action="store_true", help="Compose responses but do not write to Redis")
    parser.add_argument("--output", type=Path, default=None, help="Optional path to write JSON summary")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    try:
        summary = asyncio.run(
            warm(
                args.country,
                config=get_config(SERVICE_NAME, SERVICE_PORT),
                concurrency=args.concurrency,
                dry_run=args.dry_run,
            )
        )
    except KeyboardInterrupt:
        return 130
    except Exception as exc:
        print(f"[cache-warm] failed: {exc}", file=sys.stderr)
        return 1

    if args.dry_run:
        print("[cache-warm] DRY RUN - no Redis writes executed")

    print(json.dumps(summary, indent=2))

    if args.output:
        args.output.write_text(json.dumps(summary, indent=2))

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
