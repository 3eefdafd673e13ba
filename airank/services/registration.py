"""Issue secrets for new principals.

Sign-in flows live elsewhere; this is the one place a raw secret exists,
and only its hash is stored.
"""

from __future__ import annotations

import logging
import secrets

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from airank.config import settings
from airank.entities.principal import Principal
from airank.services.credentials import hash_secret, normalize_handle

logger = logging.getLogger(__name__)


class HandleTaken(Exception):
    pass


def generate_secret() -> str:
    return settings.secret_prefix + secrets.token_hex(16)


async def register_principal(
    db: AsyncSession,
    handle: str,
    display_name: str | None = None,
    avatar_url: str | None = None,
    provider: str | None = None,
) -> tuple[Principal, str]:
    """Create a Principal with zeroed counters and return it with its raw secret."""
    handle = normalize_handle(handle)
    if not handle:
        raise ValueError("handle must not be empty")

    existing = await db.execute(select(Principal.id).where(Principal.handle == handle))
    if existing.scalar_one_or_none() is not None:
        raise HandleTaken(handle)

    raw_secret = generate_secret()
    principal = Principal(
        handle=handle,
        display_name=display_name or handle,
        avatar_url=avatar_url,
        provider=provider,
        secret_hash=hash_secret(raw_secret),
        input_tokens=0,
        output_tokens=0,
        cache_read_tokens=0,
        cache_write_tokens=0,
    )
    db.add(principal)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise HandleTaken(handle) from e
    await db.refresh(principal)
    logger.info("Registered principal %s (%s)", handle, principal.id)
    return principal, raw_secret
