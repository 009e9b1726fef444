"""Response models for the API.

This module defines Pydantic models for the trade summary and the
trade history responses. Fields are exposed under camelCase aliases.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CamelModel(BaseModel):
    """Base model accepting both field names and camelCase aliases."""

    model_config = ConfigDict(populate_by_name=True)


class SummaryOverview(CamelModel):
    """Trade counts and win rate."""

    total_transactions: int = Field(..., alias="totalTransactions")
    total_trades: int = Field(..., alias="totalTrades", description="Trades with a non-zero balance change")
    unique_tokens: int = Field(..., alias="uniqueTokens")
    profitable_trades: int = Field(..., alias="profitableTrades")
    losing_trades: int = Field(..., alias="losingTrades")
    unpriced_trades: int = Field(0, alias="unpricedTrades", description="Trades without usable price data")
    win_rate: str = Field(..., alias="winRate")
    purchases: int
    sales: int
    no_change: int = Field(..., alias="noChange")


class SummaryVolume(CamelModel):
    """Formatted volume totals."""

    total_tokens_traded: str = Field(..., alias="totalTokensTraded")
    total_volume_usd: str = Field(..., alias="totalVolumeUSD")
    total_volume_sol: str = Field(..., alias="totalVolumeSOL")
    average_trade_size_usd: str = Field(..., alias="averageTradeSizeUSD")


class SummaryPerformance(CamelModel):
    """Formatted gain/loss and missed-ATH percentages."""

    total_gain_loss: str = Field(..., alias="totalGainLoss")
    average_gain_loss: str = Field(..., alias="averageGainLoss")
    total_missed_ath: str = Field(..., alias="totalMissedATH")
    average_missed_ath: str = Field(..., alias="averageMissedATH")


class TradeHighlight(CamelModel):
    """Best or worst trade of the analyzed history."""

    mint: str
    gain_loss: str = Field(..., alias="gainLoss")
    gain_loss_usd: str = Field(..., alias="gainLossUSD")
    gain_loss_sol: str = Field(..., alias="gainLossSOL")
    signature: str
    block_time: int = Field(..., alias="blockTime")


class TokenSummary(CamelModel):
    """Per-token rolling sums and averages."""

    mint: str
    trades: int
    total_tokens_traded: float = Field(..., alias="totalTokensTraded")
    total_volume_usd: float = Field(..., alias="totalVolumeUSD")
    total_gain_loss: float = Field(..., alias="totalGainLoss")
    total_missed_ath: float = Field(..., alias="totalMissedATH")
    best_gain_loss: float = Field(..., alias="bestGainLoss")
    worst_gain_loss: float = Field(..., alias="worstGainLoss")
    total_purchase_price: float = Field(..., alias="totalPurchasePrice")
    total_ath_price: float = Field(..., alias="totalAthPrice")
    average_gain_loss: float = Field(..., alias="averageGainLoss")
    average_missed_ath: float = Field(..., alias="averageMissedATH")
    average_volume_usd: float = Field(..., alias="averageVolumeUSD")
    average_purchase_price: float = Field(..., alias="averagePurchasePrice")
    average_ath_price: float = Field(..., alias="averageAthPrice")


class GlobalSummary(CamelModel):
    """Aggregated performance summary of a wallet's trades."""

    overview: SummaryOverview
    volume: SummaryVolume
    performance: SummaryPerformance
    best_trade: Optional[TradeHighlight] = Field(None, alias="bestTrade")
    worst_trade: Optional[TradeHighlight] = Field(None, alias="worstTrade")
    tokens: List[TokenSummary] = Field(default_factory=list)


class PaginationInfo(CamelModel):
    """Cursor pagination over a wallet's signatures."""

    limit: int
    has_more: bool = Field(..., alias="hasMore")
    next_cursor: Optional[str] = Field(None, alias="nextCursor")


class TradesResponse(CamelModel):
    """Response of the trade history endpoint."""

    message: str
    version: str
    address: str
    transactions: List[Dict[str, Any]] = Field(default_factory=list)
    summary: GlobalSummary
    pagination: PaginationInfo


class SummaryResponse(CamelModel):
    """Response of the summary-only endpoint."""

    message: str
    version: str
    address: str
    summary: GlobalSummary
    pagination: PaginationInfo


class ErrorResponse(CamelModel):
    """Standard error response model."""

    message: str
    version: str
    error: Dict[str, Any]
