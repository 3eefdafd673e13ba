"""Tests for secret hashing, handle matching and credential verification."""

import pytest

from airank.services.credentials import (
    HandleMismatch,
    MissingCredential,
    UnknownPrincipal,
    hash_secret,
    normalize_handle,
    parse_bearer,
    verify,
)
from airank.services.registration import HandleTaken, generate_secret, register_principal


class TestHelpers:
    def test_hash_is_deterministic_sha256(self):
        assert hash_secret("sk_test") == hash_secret("sk_test")
        assert len(hash_secret("sk_test")) == 64
        assert hash_secret("sk_test") != hash_secret("sk_test2")

    @pytest.mark.parametrize("raw", ["alice", "@alice", "  @Alice ", "ALICE"])
    def test_normalize_handle(self, raw):
        assert normalize_handle(raw) == "alice"

    @pytest.mark.parametrize("header,expected", [
        ("Bearer abc", "abc"),
        ("bearer   abc ", "abc"),
        ("Basic abc", None),
        ("Bearer", None),
        ("", None),
        (None, None),
    ])
    def test_parse_bearer(self, header, expected):
        assert parse_bearer(header) == expected

    def test_generated_secret_has_prefix(self):
        secret = generate_secret()
        assert secret.startswith("sk_airank_")
        assert len(secret) == len("sk_airank_") + 32


class TestVerify:
    @pytest.mark.asyncio
    async def test_valid_secret_resolves_principal(self, db, principal):
        registered, secret = principal
        resolved = await verify(db, secret)
        assert resolved.id == registered.id
        assert resolved.handle == "alice"

    @pytest.mark.asyncio
    async def test_raw_secret_is_never_stored(self, db, principal):
        registered, secret = principal
        assert registered.secret_hash == hash_secret(secret)
        assert registered.secret_hash != secret

    @pytest.mark.asyncio
    @pytest.mark.parametrize("claimed", ["alice", "@alice", "@ALICE"])
    async def test_matching_claimed_handle(self, db, principal, claimed):
        _, secret = principal
        resolved = await verify(db, secret, claimed_handle=claimed)
        assert resolved.handle == "alice"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("claimed", ["", "  ", "@"])
    async def test_blank_claimed_handle_is_no_claim(self, db, principal, claimed):
        _, secret = principal
        resolved = await verify(db, secret, claimed_handle=claimed)
        assert resolved.handle == "alice"

    @pytest.mark.asyncio
    async def test_missing_secret(self, db, principal):
        with pytest.raises(MissingCredential):
            await verify(db, None)
        with pytest.raises(MissingCredential):
            await verify(db, "")

    @pytest.mark.asyncio
    async def test_unknown_secret(self, db, principal):
        with pytest.raises(UnknownPrincipal):
            await verify(db, "sk_airank_" + "0" * 32)

    @pytest.mark.asyncio
    async def test_secret_reused_under_other_handle(self, db, principal):
        await register_principal(db, "bob")
        _, alice_secret = principal
        with pytest.raises(HandleMismatch):
            await verify(db, alice_secret, claimed_handle="bob")


class TestRegistration:
    @pytest.mark.asyncio
    async def test_new_principal_has_zero_counters(self, principal):
        registered, _ = principal
        assert registered.handle == "alice"
        assert registered.display_name == "Alice"
        assert registered.input_tokens == 0
        assert registered.output_tokens == 0
        assert registered.cache_read_tokens == 0
        assert registered.cache_write_tokens == 0
        assert registered.total_tokens == 0
        assert registered.last_active is None

    @pytest.mark.asyncio
    async def test_duplicate_handle_rejected(self, db, principal):
        with pytest.raises(HandleTaken):
            await register_principal(db, "ALICE")

    @pytest.mark.asyncio
    async def test_empty_handle_rejected(self, db):
        with pytest.raises(ValueError):
            await register_principal(db, " @ ")
