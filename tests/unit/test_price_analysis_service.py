"""Unit tests for the price analysis cache and deduplicating lookups."""

import asyncio

import pytest
from unittest.mock import AsyncMock

from tests.fixtures.common import MINT_A, MINT_B, NOW, price_history_source
from wallet_trades.models.trades import PriceLookupRequest, PricePoint
from wallet_trades.services.price_analysis_service import (
    PriceAnalysisCache,
    compute_price_analysis,
    make_cache_key,
)
from wallet_trades.utils.errors import ExternalServiceError


def test_make_cache_key_buckets_by_hour():
    assert make_cache_key(MINT_A, 7200) == f"{MINT_A}-7200"
    assert make_cache_key(MINT_A, 10799) == f"{MINT_A}-7200"
    assert make_cache_key(MINT_A, 10800) == f"{MINT_A}-10800"


class TestComputePriceAnalysis:
    """Test suite for compute_price_analysis."""

    def test_empty_history(self):
        assert compute_price_analysis([]) is None

    def test_purchase_current_and_ath(self):
        analysis = compute_price_analysis([
            PricePoint(100, 1.0),
            PricePoint(200, 3.0),
            PricePoint(300, 2.0),
        ])

        assert analysis.purchase_price == 1.0
        assert analysis.current_price == 2.0
        assert analysis.ath_price == 3.0
        assert analysis.ath_timestamp == 200
        assert analysis.price_history_points == 3

    def test_ath_ties_keep_first_occurrence(self):
        analysis = compute_price_analysis([
            PricePoint(100, 2.0),
            PricePoint(200, 1.0),
            PricePoint(300, 2.0),
        ])

        assert analysis.ath_price == 2.0
        assert analysis.ath_timestamp == 100


class TestPriceAnalysisCache:
    """Test suite for PriceAnalysisCache."""

    def test_eviction_removes_oldest_half(self):
        cache = PriceAnalysisCache(max_entries=1000, evict_count=500)
        analysis = compute_price_analysis([PricePoint(0, 1.0)])

        for i in range(1001):
            cache.set(f"k{i}", analysis)

        assert len(cache) == 501
        assert "k0" not in cache
        assert "k499" not in cache
        assert "k500" in cache
        assert "k1000" in cache
        assert cache.stats()["evictions"] == 500

    def test_overwriting_existing_key_does_not_evict(self):
        cache = PriceAnalysisCache(max_entries=2, evict_count=1)
        analysis = compute_price_analysis([PricePoint(0, 1.0)])
        cache.set("a", analysis)
        cache.set("b", analysis)

        cache.set("a", analysis)

        assert cache.keys() == ["a", "b"]

    def test_absent_results_are_not_stored(self):
        cache = PriceAnalysisCache()
        cache.set("a", None)

        assert len(cache) == 0
        assert cache.get("a") is None
        assert cache.stats()["misses"] == 1

    def test_invalid_bounds(self):
        with pytest.raises(ValueError):
            PriceAnalysisCache(max_entries=0)
        with pytest.raises(ValueError):
            PriceAnalysisCache(max_entries=10, evict_count=11)


class TestPriceAnalysisService:
    """Test suite for PriceAnalysisService."""

    @pytest.mark.asyncio
    async def test_same_bucket_triggers_one_lookup(self, price_service, mock_price_client):
        requests = [
            PriceLookupRequest(mint=MINT_A, timestamp=7300),
            PriceLookupRequest(mint=MINT_A, timestamp=7250),
        ]

        analyses = await price_service.analyze_trades(requests)

        assert price_service.lookups_submitted == 1
        assert list(analyses) == [f"{MINT_A}-7200"]
        # the group looks up from its earliest timestamp
        first_call = mock_price_client.get_historical_prices.call_args_list[0]
        assert first_call.args == (MINT_A, 7250, NOW, "30m")

        analysis = analyses[f"{MINT_A}-7200"]
        assert analysis.purchase_price == 3.0
        assert analysis.current_price == 2.0
        assert analysis.ath_price == 3.0

    @pytest.mark.asyncio
    async def test_crossing_hour_boundary_triggers_two_lookups(self, price_service):
        requests = [
            PriceLookupRequest(mint=MINT_A, timestamp=7199),
            PriceLookupRequest(mint=MINT_A, timestamp=7200),
        ]

        analyses = await price_service.analyze_trades(requests)

        assert price_service.lookups_submitted == 2
        assert set(analyses) == {f"{MINT_A}-3600", f"{MINT_A}-7200"}

    @pytest.mark.asyncio
    async def test_different_mints_are_looked_up_separately(self, price_service):
        requests = [
            PriceLookupRequest(mint=MINT_A, timestamp=7250),
            PriceLookupRequest(mint=MINT_B, timestamp=7250),
        ]

        await price_service.analyze_trades(requests)

        assert price_service.lookups_submitted == 2

    @pytest.mark.asyncio
    async def test_concurrent_lookups_share_in_flight_future(self, price_service):
        first, second = await asyncio.gather(
            price_service.get_price_analysis(MINT_A, 7250),
            price_service.get_price_analysis(MINT_A, 7300),
        )

        assert price_service.lookups_submitted == 1
        assert first is second
        assert price_service.get_stats()["inFlight"] == 0

    @pytest.mark.asyncio
    async def test_earlier_timestamp_does_not_join_later_lookup(self, price_service, mock_price_client):
        mock_price_client.get_historical_prices.side_effect = price_history_source([
            PricePoint(7260, 1.0),
            PricePoint(7400, 4.0),
            PricePoint(9000, 2.0),
        ])

        later, earlier = await asyncio.gather(
            price_service.get_price_analysis(MINT_A, 7300),
            price_service.get_price_analysis(MINT_A, 7250),
        )

        assert price_service.lookups_submitted == 2
        assert later.purchase_price == 4.0
        assert earlier.purchase_price == 1.0
        assert price_service.cache.get(f"{MINT_A}-7200").purchase_price == 1.0
        assert price_service.get_stats()["inFlight"] == 0

    @pytest.mark.asyncio
    async def test_cached_analysis_is_served_without_lookup(self, price_service, mock_price_client):
        await price_service.get_price_analysis(MINT_A, 7250)
        calls = mock_price_client.get_historical_prices.call_count

        analysis = await price_service.get_price_analysis(MINT_A, 7999)

        assert analysis is not None
        assert mock_price_client.get_historical_prices.call_count == calls
        assert price_service.cache.stats()["hits"] == 1

    @pytest.mark.asyncio
    async def test_failed_lookup_yields_none_and_is_retried(self, price_service, mock_price_client):
        mock_price_client.get_historical_prices.side_effect = ExternalServiceError(
            "Birdeye unavailable", service_name="birdeye"
        )
        request = PriceLookupRequest(mint=MINT_A, timestamp=7250)

        analyses = await price_service.analyze_trades([request])

        assert analyses == {f"{MINT_A}-7200": None}
        assert len(price_service.cache) == 0

        mock_price_client.get_historical_prices.side_effect = price_history_source([
            PricePoint(8000, 1.0),
        ])
        analyses = await price_service.analyze_trades([request])

        assert analyses[f"{MINT_A}-7200"].purchase_price == 1.0
        assert price_service.lookups_submitted == 2

    @pytest.mark.asyncio
    async def test_empty_history_is_not_cached(self, price_service, mock_price_client):
        mock_price_client.get_historical_prices.side_effect = price_history_source([])

        analysis = await price_service.get_price_analysis(MINT_A, 7250)

        assert analysis is None
        assert len(price_service.cache) == 0

    @pytest.mark.asyncio
    async def test_no_requests(self, price_service, mock_price_client):
        assert await price_service.analyze_trades([]) == {}
        mock_price_client.get_historical_prices.assert_not_called()

    @pytest.mark.asyncio
    async def test_full_history_paginates_and_dedupes(self, price_service, mock_price_client):
        mock_price_client.get_historical_prices = AsyncMock(side_effect=[
            [PricePoint(100, 1.0), PricePoint(200, 2.0)],
            [PricePoint(200, 9.0), PricePoint(300, 3.0)],
            [],
        ])

        history = await price_service.get_full_price_history(MINT_A, 100, 1000)

        assert [(p.timestamp, p.value) for p in history] == [(100, 1.0), (200, 2.0), (300, 3.0)]
        starts = [call.args[1] for call in mock_price_client.get_historical_prices.call_args_list]
        assert starts == [100, 201, 301]

    @pytest.mark.asyncio
    async def test_full_history_stops_when_page_stalls(self, price_service, mock_price_client):
        mock_price_client.get_historical_prices = AsyncMock(side_effect=[
            [PricePoint(100, 1.0), PricePoint(150, 1.5)],
            [PricePoint(150, 1.5)],
        ])

        history = await price_service.get_full_price_history(MINT_A, 100, 1000)

        assert [p.timestamp for p in history] == [100, 150]
        assert mock_price_client.get_historical_prices.call_count == 2
