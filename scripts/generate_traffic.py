"""Simulate several agents reporting token usage to a running collector.

Usage:
    python scripts/generate_traffic.py --secret sk_airank_... --handle ada
    python scripts/generate_traffic.py --secret ... --reports 50 --concurrency 8
"""

from __future__ import annotations

import argparse
import asyncio
import random
import sys
from pathlib import Path

# Ensure project root is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from airank.client import MetricsReporter
from airank.services.extractor import TokenDelta


def _token_event(scale: float) -> TokenDelta:
    input_tokens = int(random.randint(900, 4200) * scale)
    cache_read = int(input_tokens * random.uniform(0.5, 3.0))
    return TokenDelta(
        input=input_tokens,
        output=int(random.randint(300, 2600) * scale),
        cache_read=cache_read,
        cache_write=int(cache_read * random.uniform(0.05, 0.2)),
    )


async def main(args: argparse.Namespace) -> None:
    semaphore = asyncio.Semaphore(args.concurrency)
    processed = 0

    async with MetricsReporter(args.secret, handle=args.handle, base_url=args.base_url) as reporter:

        async def send_one(i: int) -> None:
            nonlocal processed
            async with semaphore:
                result = await reporter.report(_token_event(args.scale))
                processed += result.get("processed", 0)
                print(f"  report {i:>4}: {result['status']:<9} processed={result['processed']}")

        await asyncio.gather(*(send_one(i) for i in range(args.reports)))

    print(f"Done. {processed} ranking tokens recorded.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Send simulated usage reports")
    parser.add_argument("--secret", required=True)
    parser.add_argument("--handle", default=None)
    parser.add_argument("--base-url", default=None)
    parser.add_argument("--reports", type=int, default=20)
    parser.add_argument("--concurrency", type=int, default=4)
    parser.add_argument("--scale", type=float, default=1.0)
    asyncio.run(main(parser.parse_args()))
