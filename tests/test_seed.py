"""Tests for demo data seeding."""

import pytest
from sqlalchemy import func, select

from airank.entities import HourlyBucket, Principal
from airank.seed import PRINCIPALS, seed_data
from airank.services.credentials import verify


class TestSeed:
    @pytest.mark.asyncio
    async def test_seeds_principals_with_usable_secrets(self, db):
        secrets_by_handle = await seed_data(db, hours=6)
        assert sorted(secrets_by_handle) == sorted(p["handle"] for p in PRINCIPALS)

        count = await db.execute(select(func.count(Principal.id)))
        assert count.scalar() == len(PRINCIPALS)

        principal = await verify(db, secrets_by_handle["ada"], claimed_handle="@ada")
        assert principal.handle == "ada"

    @pytest.mark.asyncio
    async def test_bucket_totals_match_principal_totals(self, db):
        await seed_data(db, hours=6)
        rows = await db.execute(
            select(
                Principal.input_tokens,
                Principal.output_tokens,
                func.coalesce(func.sum(HourlyBucket.input_tokens), 0),
                func.coalesce(func.sum(HourlyBucket.output_tokens), 0),
            )
            .outerjoin(HourlyBucket, HourlyBucket.principal_id == Principal.id)
            .group_by(Principal.id)
        )
        for input_tokens, output_tokens, bucket_input, bucket_output in rows.all():
            assert input_tokens == bucket_input
            assert output_tokens == bucket_output
