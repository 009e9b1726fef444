"""Common test fixtures for Wallet Trades tests.

This module provides fixtures and builders that can be reused across
different test modules.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple

import pytest
from unittest.mock import AsyncMock, MagicMock

from wallet_trades.config import SchedulerConfig
from wallet_trades.models.trades import (
    ChangeType,
    ParsedTransaction,
    PriceAnalysis,
    PricePoint,
    StatusOutcome,
    TokenTrade,
    TradeRecord,
    TransactionPage,
)
from wallet_trades.services.price_analysis_service import PriceAnalysisCache, PriceAnalysisService
from wallet_trades.utils.rate_limiter import RateLimiter

WALLET = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"
MINT_A = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
MINT_B = "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB"

# Fixed "now" used by price lookups in tests
NOW = 20000


def make_raw_transaction(
    signature: str,
    block_time: int,
    token_changes: Sequence[Tuple[str, int, int, int]] = (),
    sol_change_lamports: int = -5000,
    err: Any = None,
    signer: str = WALLET
) -> Dict[str, Any]:
    """Build a ``getTransaction`` result.

    Args:
        token_changes: (mint, raw amount before, raw amount after, decimals)
    """
    pre_token_balances = []
    post_token_balances = []
    for index, (mint, before, after, decimals) in enumerate(token_changes, start=1):
        pre_token_balances.append({
            "accountIndex": index,
            "mint": mint,
            "owner": signer,
            "uiTokenAmount": {"amount": str(before), "decimals": decimals},
        })
        post_token_balances.append({
            "accountIndex": index,
            "mint": mint,
            "owner": signer,
            "uiTokenAmount": {"amount": str(after), "decimals": decimals},
        })

    return {
        "slot": 12345,
        "blockTime": block_time,
        "meta": {
            "err": err,
            "fee": 5000,
            "preBalances": [2_000_000_000, 0],
            "postBalances": [2_000_000_000 + sol_change_lamports, 0],
            "preTokenBalances": pre_token_balances,
            "postTokenBalances": post_token_balances,
        },
        "transaction": {
            "signatures": [signature],
            "message": {
                "accountKeys": [signer, "11111111111111111111111111111111"],
            },
        },
    }


def make_analysis(purchase: float, current: float, ath: Optional[float] = None) -> PriceAnalysis:
    """Build a price analysis from its three prices."""
    ath = max(purchase, current) if ath is None else ath
    return PriceAnalysis(
        purchase_price=purchase,
        current_price=current,
        ath_price=ath,
        ath_timestamp=0,
        price_history=[PricePoint(0, purchase), PricePoint(1, current)]
    )


def make_parsed_transaction(
    signature: str,
    trades: Sequence[Tuple[str, float, Optional[PriceAnalysis]]],
    block_time: int = 1_700_000_000,
    sol_change: float = 0.0
) -> ParsedTransaction:
    """Build a parsed transaction from (mint, ui change, analysis) triples."""
    records: List[TradeRecord] = []
    for mint, ui_change, analysis in trades:
        change_type = ChangeType.from_change(ui_change)
        records.append(TradeRecord(
            mint=mint,
            token_balance=TokenTrade(mint=mint, change_type=change_type, ui_change=ui_change),
            trade_type=change_type,
            price_analysis=analysis
        ))
    return ParsedTransaction(
        signature=signature,
        block_time=block_time,
        fee=5000,
        status_outcome=StatusOutcome.SUCCESS,
        signer_address=WALLET,
        signer_sol_balance_change=sol_change,
        trades=records
    )


def price_history_source(points: Sequence[PricePoint]):
    """Fake price history endpoint serving ``points`` inside the requested window."""
    async def get_historical_prices(mint, from_timestamp, to_timestamp, timeframe=None):
        return [p for p in points if from_timestamp <= p.timestamp <= to_timestamp]
    return get_historical_prices


@pytest.fixture
def scheduler_config():
    """Create a fast scheduler configuration (1ms base delay)."""
    return SchedulerConfig(requests_per_second=1000, burst_capacity=50)


@pytest.fixture
def rate_limiter(scheduler_config):
    """Create a rate limiter."""
    return RateLimiter(scheduler_config, name="test")


@pytest.fixture
def mock_price_client():
    """Create a mock price history client."""
    client = MagicMock()
    client.get_historical_prices = AsyncMock(side_effect=price_history_source([
        PricePoint(7000, 1.0),
        PricePoint(9000, 3.0),
        PricePoint(12000, 2.0),
    ]))
    return client


@pytest.fixture
def price_cache():
    """Create a price analysis cache."""
    return PriceAnalysisCache(max_entries=1000, evict_count=500)


@pytest.fixture
def price_service(mock_price_client, rate_limiter, price_cache):
    """Create a PriceAnalysisService with a mock client and a fixed clock."""
    return PriceAnalysisService(
        mock_price_client,
        rate_limiter,
        cache=price_cache,
        clock=lambda: NOW
    )


@pytest.fixture
def mock_transaction_source():
    """Create a mock transaction source."""
    source = MagicMock()
    source.get_transactions_for_address = AsyncMock(return_value=TransactionPage(
        transactions=[
            make_raw_transaction("sig1", 7200, [(MINT_A, 0, 5_000_000, 6)]),
            make_raw_transaction("sig2", 7300, [(MINT_A, 5_000_000, 2_000_000, 6)]),
        ],
        signatures=["sig1", "sig2"],
        has_more=True,
        next_cursor="sig2"
    ))
    return source


@pytest.fixture
def sample_raw_transaction():
    """Create a successful swap: SOL out, MINT_A in."""
    return make_raw_transaction(
        "5h6xBEauJ3PK6SWCZ1PGjBvj8vDdWG3KpwATGy1ARAXFSDwt8GFXM7W5Ncn16wmqokgpiKRLuS83KUxyZyv2sUYv",
        1_700_000_000,
        [(MINT_A, 1_000_000, 3_500_000, 6)],
        sol_change_lamports=-250_000_000
    )
