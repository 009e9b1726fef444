"""Aggregation of parsed transactions into a global trade summary.

``calculate_global_summary`` is a pure fold: no I/O, no shared state, and
the same input always yields the same summary. Best/worst trades depend on
the iteration order of transactions and trades, which callers keep equal
to decode order.
"""

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Dict, List, Optional, Sequence, Set

from wallet_trades.models.responses import (
    GlobalSummary,
    SummaryOverview,
    SummaryPerformance,
    SummaryVolume,
    TokenSummary,
    TradeHighlight,
)
from wallet_trades.models.trades import ChangeType, ParsedTransaction, PriceAnalysis

# Approximate SOL price used to express P&L in SOL
APPROX_SOL_PRICE_USD = 150.0


def _round_half_up(value: Decimal, digits: int) -> Decimal:
    with localcontext() as ctx:
        # keep every integer digit at the requested scale
        ctx.prec = max(ctx.prec, value.adjusted() + digits + 2)
        return value.quantize(Decimal(1).scaleb(-digits), rounding=ROUND_HALF_UP)


def _non_finite(value: float) -> Optional[str]:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    return None


def to_fixed(value: float, digits: int) -> str:
    """Format with exactly ``digits`` decimals, rounding halves away from zero.

    Rounds the exact binary value. Magnitudes of 1e21 and above fall back to
    exponential notation, as ``Number.prototype.toFixed`` does.
    """
    special = _non_finite(value)
    if special is not None:
        return special
    if abs(value) >= 1e21:
        return repr(value)
    # adding 0.0 turns -0.0 into 0.0
    return f"{_round_half_up(Decimal(value + 0.0), digits):f}"


def to_grouped(value: float, max_digits: int) -> str:
    """Format with thousands separators and at most ``max_digits`` decimals.

    Rounds the shortest decimal form of the float, so ``1.005`` with two
    digits gives ``1.01``. Trailing zeros are dropped: ``1234.5`` with two
    digits gives ``1,234.5``.
    """
    special = _non_finite(value)
    if special is not None:
        return special
    text = f"{_round_half_up(Decimal(repr(value + 0.0)), max_digits):,f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def format_percent(value: float) -> str:
    return f"{to_fixed(value, 2)}%"


def format_usd(value: float) -> str:
    return f"${to_grouped(value, 2)}"


def format_sol(value: float) -> str:
    return f"{to_fixed(value, 4)} SOL"


def is_priced(analysis: Optional[PriceAnalysis]) -> bool:
    """Whether an analysis can be used for gain/loss math."""
    return analysis is not None and analysis.purchase_price > 0 and analysis.ath_price > 0


@dataclass
class _TradeResult:
    mint: str
    gain_loss: float
    gain_loss_usd: float
    gain_loss_sol: float
    signature: str
    block_time: int

    def to_highlight(self) -> TradeHighlight:
        return TradeHighlight(
            mint=self.mint,
            gain_loss=format_percent(self.gain_loss),
            gain_loss_usd=f"${to_fixed(self.gain_loss_usd, 2)}",
            gain_loss_sol=format_sol(self.gain_loss_sol),
            signature=self.signature,
            block_time=self.block_time,
        )


@dataclass
class _TokenAccumulator:
    mint: str
    trades: int = 0
    total_tokens_traded: float = 0.0
    total_volume_usd: float = 0.0
    total_gain_loss: float = 0.0
    total_missed_ath: float = 0.0
    total_purchase_price: float = 0.0
    total_ath_price: float = 0.0
    best_gain_loss: Optional[float] = None
    worst_gain_loss: Optional[float] = None

    def add(self, token_amount: float, volume_usd: float, gain_loss: float,
            missed_ath: float, analysis: PriceAnalysis) -> None:
        self.trades += 1
        self.total_tokens_traded += token_amount
        self.total_volume_usd += volume_usd
        self.total_gain_loss += gain_loss
        self.total_missed_ath += missed_ath
        self.total_purchase_price += analysis.purchase_price
        self.total_ath_price += analysis.ath_price
        if self.best_gain_loss is None or gain_loss > self.best_gain_loss:
            self.best_gain_loss = gain_loss
        if self.worst_gain_loss is None or gain_loss < self.worst_gain_loss:
            self.worst_gain_loss = gain_loss

    def to_summary(self) -> TokenSummary:
        return TokenSummary(
            mint=self.mint,
            trades=self.trades,
            total_tokens_traded=self.total_tokens_traded,
            total_volume_usd=self.total_volume_usd,
            total_gain_loss=self.total_gain_loss,
            total_missed_ath=self.total_missed_ath,
            best_gain_loss=self.best_gain_loss or 0.0,
            worst_gain_loss=self.worst_gain_loss or 0.0,
            total_purchase_price=self.total_purchase_price,
            total_ath_price=self.total_ath_price,
            average_gain_loss=self.total_gain_loss / self.trades,
            average_missed_ath=self.total_missed_ath / self.trades,
            average_volume_usd=self.total_volume_usd / self.trades,
            average_purchase_price=self.total_purchase_price / self.trades,
            average_ath_price=self.total_ath_price / self.trades,
        )


def calculate_global_summary(
    transactions: Sequence[ParsedTransaction],
    sol_price_usd: float = APPROX_SOL_PRICE_USD
) -> GlobalSummary:
    """Fold parsed transactions into a global summary.

    Every trade counts towards ``purchases``/``sales``/``noChange``. Trades
    with a zero balance change stop there. The others count towards
    ``totalTrades`` and ``uniqueTokens``; only those with a usable price
    analysis feed the volume, performance, best/worst and per-token figures.

    Args:
        transactions: Parsed transactions in decode order
        sol_price_usd: SOL/USD rate used for the SOL-denominated P&L

    Returns:
        The global summary
    """
    total_trades = 0
    unique_tokens: Set[str] = set()
    total_volume_usd = 0.0
    total_volume_sol = 0.0
    total_tokens_traded = 0.0
    total_gain_loss = 0.0
    total_missed_ath = 0.0
    profitable_trades = 0
    losing_trades = 0
    unpriced_trades = 0
    purchases = sales = no_change = 0
    best_trade: Optional[_TradeResult] = None
    worst_trade: Optional[_TradeResult] = None
    tokens: Dict[str, _TokenAccumulator] = {}

    for transaction in transactions:
        total_volume_sol += abs(transaction.signer_sol_balance_change)

        for trade in transaction.trades:
            if trade.trade_type == ChangeType.INCREASE:
                purchases += 1
            elif trade.trade_type == ChangeType.DECREASE:
                sales += 1
            elif trade.trade_type == ChangeType.NO_CHANGE:
                no_change += 1

            token_amount = abs(trade.token_balance.ui_change)
            if token_amount == 0:
                continue

            total_trades += 1
            unique_tokens.add(trade.mint)

            analysis = trade.price_analysis
            if not is_priced(analysis):
                unpriced_trades += 1
                continue

            purchase_price = analysis.purchase_price
            current_price = analysis.current_price
            gain_loss = (current_price - purchase_price) / purchase_price * 100
            missed_ath = (analysis.ath_price - current_price) / analysis.ath_price * 100
            volume_usd = token_amount * purchase_price
            gain_loss_usd = (current_price - purchase_price) * token_amount

            total_tokens_traded += token_amount
            total_volume_usd += volume_usd
            total_gain_loss += gain_loss
            total_missed_ath += missed_ath

            if gain_loss > 0:
                profitable_trades += 1
            else:
                losing_trades += 1

            result = _TradeResult(
                mint=trade.mint,
                gain_loss=gain_loss,
                gain_loss_usd=gain_loss_usd,
                gain_loss_sol=gain_loss_usd / sol_price_usd,
                signature=transaction.signature,
                block_time=transaction.block_time,
            )
            if best_trade is None or gain_loss > best_trade.gain_loss:
                best_trade = result
            if worst_trade is None or gain_loss < worst_trade.gain_loss:
                worst_trade = result

            accumulator = tokens.get(trade.mint)
            if accumulator is None:
                accumulator = tokens[trade.mint] = _TokenAccumulator(mint=trade.mint)
            accumulator.add(token_amount, volume_usd, gain_loss, missed_ath, analysis)

    average_gain_loss = total_gain_loss / total_trades if total_trades else 0.0
    average_missed_ath = total_missed_ath / total_trades if total_trades else 0.0

    token_summaries: List[TokenSummary] = sorted(
        (accumulator.to_summary() for accumulator in tokens.values()),
        key=lambda token: token.total_volume_usd,
        reverse=True
    )

    return GlobalSummary(
        overview=SummaryOverview(
            total_transactions=len(transactions),
            total_trades=total_trades,
            unique_tokens=len(unique_tokens),
            profitable_trades=profitable_trades,
            losing_trades=losing_trades,
            unpriced_trades=unpriced_trades,
            win_rate=format_percent(profitable_trades / total_trades * 100) if total_trades else "0%",
            purchases=purchases,
            sales=sales,
            no_change=no_change,
        ),
        volume=SummaryVolume(
            total_tokens_traded=to_grouped(total_tokens_traded, 0),
            total_volume_usd=format_usd(total_volume_usd),
            total_volume_sol=format_sol(total_volume_sol),
            average_trade_size_usd=format_usd(total_volume_usd / total_trades) if total_trades else "$0.00",
        ),
        performance=SummaryPerformance(
            total_gain_loss=format_percent(total_gain_loss),
            average_gain_loss=format_percent(average_gain_loss),
            total_missed_ath=format_percent(total_missed_ath),
            average_missed_ath=format_percent(average_missed_ath),
        ),
        best_trade=best_trade.to_highlight() if best_trade else None,
        worst_trade=worst_trade.to_highlight() if worst_trade else None,
        tokens=token_summaries,
    )
