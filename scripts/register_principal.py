"""Register a principal and print its bearer secret (shown once).

Usage:
    python scripts/register_principal.py HANDLE [--display-name NAME] [--provider github]
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

# Ensure project root is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from airank.database import async_session, init_db
from airank.services.registration import HandleTaken, register_principal


async def main(handle: str, display_name: str | None, provider: str | None) -> int:
    await init_db()
    async with async_session() as db:
        try:
            principal, secret = await register_principal(
                db, handle, display_name=display_name, provider=provider
            )
        except HandleTaken:
            print(f"Handle {handle!r} is already registered", file=sys.stderr)
            return 1

    print(f"Registered @{principal.handle} ({principal.id})")
    print(f"Secret: {secret}")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Register a reporting principal")
    parser.add_argument("handle")
    parser.add_argument("--display-name", default=None)
    parser.add_argument("--provider", default=None)
    args = parser.parse_args()
    sys.exit(asyncio.run(main(args.handle, args.display_name, args.provider)))
