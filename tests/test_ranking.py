"""Tests for rank computation, positional pages, savings score and stats."""

from datetime import timedelta

import pytest

from airank.entities import Principal
from airank.services.aggregate_store import AggregateStore
from airank.services.extractor import TokenDelta
from airank.services.ranking import PrincipalNotFound, RankingService, savings_score
from airank.services.registration import register_principal


async def _population(session, clock, totals):
    """Register one principal per total, each reporting that many input tokens."""
    store = AggregateStore(session, clock)
    principals = []
    for i, total in enumerate(totals):
        p, _ = await register_principal(session, f"user{i}")
        clock.now += timedelta(seconds=1)
        await store.apply_delta(p.id, TokenDelta(input=total))
        principals.append(p)
    return principals


class TestSavingsScore:
    def test_zero_denominator(self):
        assert savings_score(Principal(input_tokens=0, cache_read_tokens=0)) == 0.0

    def test_fraction_served_from_cache(self):
        p = Principal(input_tokens=25, cache_read_tokens=75, output_tokens=1000)
        assert savings_score(p) == pytest.approx(75.0)

    @pytest.mark.parametrize("input_tokens,cache_read", [(1, 0), (0, 1), (3, 7), (10**12, 1)])
    def test_bounded(self, input_tokens, cache_read):
        score = savings_score(Principal(input_tokens=input_tokens, cache_read_tokens=cache_read))
        assert 0.0 <= score <= 100.0


class TestRank:
    @pytest.mark.asyncio
    async def test_ties_share_rank(self, db, clock):
        principals = await _population(db, clock, [100, 80, 80, 50])
        ranking = RankingService(db, clock)
        assert [await ranking.rank(p.id) for p in principals] == [1, 2, 2, 4]

    @pytest.mark.asyncio
    async def test_rank_ignores_cache_tokens(self, db, clock):
        a, b = await _population(db, clock, [10, 20])
        await AggregateStore(db, clock).apply_delta(a.id, TokenDelta(cache_read=1000))
        ranking = RankingService(db, clock)
        assert await ranking.rank(b.id) == 1
        assert await ranking.rank(a.id) == 2

    @pytest.mark.asyncio
    async def test_unknown_principal(self, db, clock):
        with pytest.raises(PrincipalNotFound):
            await RankingService(db, clock).rank("nobody")


class TestPage:
    @pytest.mark.asyncio
    async def test_orders_by_total_descending(self, db, clock):
        await _population(db, clock, [50, 100, 80])
        rows = await RankingService(db, clock).page(1, 10)
        assert [r.principal.total_tokens for r in rows] == [100, 80, 50]
        assert [r.rank for r in rows] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_positional_rank_across_pages(self, db, clock):
        principals = await _population(db, clock, [100, 80, 80, 50])
        ranking = RankingService(db, clock)

        first = await ranking.page(1, 2)
        second = await ranking.page(2, 2)
        assert [r.rank for r in first] == [1, 2]
        assert [r.rank for r in second] == [3, 4]

        # The tied principal on page 2 shows a positional rank of 3 while rank() says 2
        tied_on_second = second[0].principal
        assert tied_on_second.total_tokens == 80
        assert await ranking.rank(tied_on_second.id) == 2
        # Earlier registration wins the tie-break
        assert first[1].principal.id == principals[1].id

    @pytest.mark.asyncio
    async def test_page_past_end_is_empty(self, db, clock):
        await _population(db, clock, [1, 2])
        assert await RankingService(db, clock).page(3, 2) == []


class TestStats:
    @pytest.mark.asyncio
    async def test_window_and_peak(self, db, clock):
        alice, _ = await register_principal(db, "alice")
        bob, _ = await register_principal(db, "bob")
        store = AggregateStore(db, clock)
        start = clock.now

        # 30 hours ago: the all-time peak hour, outside the 24h window
        clock.now = start - timedelta(hours=30)
        await store.apply_delta(alice.id, TokenDelta(input=7200, output=3600))
        await store.apply_delta(bob.id, TokenDelta(input=3600))

        # Within the window
        clock.now = start - timedelta(hours=2)
        await store.apply_delta(alice.id, TokenDelta(input=100, cache_read=20))
        clock.now = start
        await store.apply_delta(alice.id, TokenDelta(output=30))
        await store.apply_delta(bob.id, TokenDelta(cache_write=50))

        stats = await RankingService(db, clock).stats()
        assert stats.last_24h_tokens == 120 + 30 + 50
        assert stats.active_users_24h == 2
        assert stats.peak_throughput == 4  # (7200 + 3600 + 3600) / 3600
        assert [(p.tokens, p.active_users) for p in stats.graph_data] == [(120, 1), (80, 2)]

    @pytest.mark.asyncio
    async def test_empty_history(self, db, clock):
        stats = await RankingService(db, clock).stats()
        assert stats.last_24h_tokens == 0
        assert stats.active_users_24h == 0
        assert stats.peak_throughput == 0
        assert stats.graph_data == []


class TestHistory:
    @pytest.mark.asyncio
    async def test_returns_recent_buckets_oldest_first(self, db, clock):
        alice, _ = await register_principal(db, "alice")
        store = AggregateStore(db, clock)
        start = clock.now
        for hours_ago in (60, 5, 1):
            clock.now = start - timedelta(hours=hours_ago)
            await store.apply_delta(alice.id, TokenDelta(input=hours_ago))
        clock.now = start

        buckets = await RankingService(db, clock).history(alice.id, hours=48)
        assert [b.input_tokens for b in buckets] == [5, 1]

    @pytest.mark.asyncio
    async def test_find_by_handle_normalizes(self, db, clock):
        await register_principal(db, "alice")
        ranking = RankingService(db, clock)
        assert (await ranking.find_by_handle("@ALICE")).handle == "alice"
        assert await ranking.find_by_handle("nobody") is None
