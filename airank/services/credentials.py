"""Bearer-secret verification for reporting principals."""

from __future__ import annotations

import hashlib
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from airank.entities.principal import Principal

logger = logging.getLogger(__name__)


class AuthError(Exception):
    """Base class for every credential failure."""


class MissingCredential(AuthError):
    pass


class UnknownPrincipal(AuthError):
    pass


class HandleMismatch(AuthError):
    pass


def hash_secret(secret: str) -> str:
    """Return a SHA-256 hash of the provided secret.

    Registration and verification must share this function; changing it
    invalidates every issued secret.
    """
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()


def normalize_handle(handle: str) -> str:
    return handle.strip().removeprefix("@").lower()


def parse_bearer(authorization: str | None) -> str | None:
    """Extract the secret from an ``Authorization: Bearer ...`` header value."""
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


async def verify(
    db: AsyncSession,
    secret: str | None,
    claimed_handle: str | None = None,
) -> Principal:
    """Resolve a bearer secret to its Principal.

    Raises MissingCredential, UnknownPrincipal or HandleMismatch. When
    ``claimed_handle`` is given the resolved principal must own it, so a
    leaked secret cannot be replayed under someone else's handle.
    """
    if not secret:
        raise MissingCredential("no secret supplied")

    result = await db.execute(
        select(Principal).where(Principal.secret_hash == hash_secret(secret))
    )
    principal = result.scalar_one_or_none()
    if principal is None:
        logger.info("Rejected secret with no matching principal")
        raise UnknownPrincipal("no principal for secret")

    claimed = normalize_handle(claimed_handle or "")
    if claimed and claimed != principal.handle:
        logger.warning(
            "Secret for %s presented with claimed handle %r", principal.handle, claimed_handle
        )
        raise HandleMismatch("claimed handle does not match secret")

    return principal
