"""Data models for wallet trades and price analysis."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ChangeType(str, Enum):
    """Direction of a token balance change."""

    INCREASE = "increase"
    DECREASE = "decrease"
    NO_CHANGE = "no_change"

    @classmethod
    def from_change(cls, ui_change: float) -> "ChangeType":
        """Classify a balance delta by its sign."""
        if ui_change > 0:
            return cls.INCREASE
        if ui_change < 0:
            return cls.DECREASE
        return cls.NO_CHANGE


class StatusOutcome(str, Enum):
    """Execution outcome of a transaction."""

    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"


@dataclass(frozen=True)
class PricePoint:
    """A single price observation."""

    timestamp: int
    value: float


@dataclass(frozen=True)
class PriceAnalysis:
    """Price evolution of a token from a purchase time until now."""

    purchase_price: float
    current_price: float
    ath_price: float
    ath_timestamp: int
    price_history: List[PricePoint] = field(default_factory=list)

    @property
    def price_history_points(self) -> int:
        return len(self.price_history)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "purchasePrice": self.purchase_price,
            "currentPrice": self.current_price,
            "athPrice": self.ath_price,
            "athTimestamp": self.ath_timestamp,
            "priceHistoryPoints": self.price_history_points,
        }


@dataclass
class TokenTrade:
    """Balance delta of one token for the transaction signer."""

    mint: str
    change_type: ChangeType
    ui_change: float
    raw_balance_before: int = 0
    raw_balance_after: int = 0
    decimals: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mint": self.mint,
            "changeType": self.change_type.value,
            "uiChange": self.ui_change,
            "rawBalanceBefore": str(self.raw_balance_before),
            "rawBalanceAfter": str(self.raw_balance_after),
            "decimals": self.decimals,
        }


@dataclass
class SolBalanceChange:
    """Native SOL balance change of the signer, in lamports and SOL."""

    pre_balance: int = 0
    post_balance: int = 0
    ui_change: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "preBalance": str(self.pre_balance),
            "postBalance": str(self.post_balance),
            "uiChange": self.ui_change,
        }


@dataclass
class SignerBalances:
    """Balances of the transaction signer before and after execution."""

    signer_address: str
    signer_sol_balance: SolBalanceChange
    signer_token_balances: List[TokenTrade] = field(default_factory=list)


@dataclass
class DecodedTransaction:
    """Normalized view of a raw transaction."""

    signature: str
    block_time: int
    fee: int
    error: str
    accounts: List[str]
    balances: SignerBalances
    slot: Optional[int] = None

    @property
    def is_success(self) -> bool:
        return self.error == StatusOutcome.SUCCESS.value


@dataclass
class TradeRecord:
    """A token trade enriched with its price analysis, if any."""

    mint: str
    token_balance: TokenTrade
    trade_type: ChangeType
    price_analysis: Optional[PriceAnalysis] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mint": self.mint,
            "tokenBalance": self.token_balance.to_dict(),
            "tradeType": self.trade_type.value,
            "priceAnalysis": self.price_analysis.to_dict() if self.price_analysis else None,
        }


@dataclass
class ParsedTransaction:
    """A successful transaction with the signer's trades."""

    signature: str
    block_time: int
    fee: int
    status_outcome: StatusOutcome
    signer_address: str
    signer_sol_balance_change: float
    trades: List[TradeRecord] = field(default_factory=list)
    accounts: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "signature": self.signature,
            "blockTime": self.block_time,
            "fee": self.fee,
            "status": self.status_outcome.value,
            "signerAddress": self.signer_address,
            "signerSolBalanceChange": self.signer_sol_balance_change,
            "accounts": list(self.accounts),
            "trades": [trade.to_dict() for trade in self.trades],
        }


@dataclass
class PriceLookupRequest:
    """One trade that needs a price analysis."""

    mint: str
    timestamp: int
    transaction: Any = None
    trade: Optional[TokenTrade] = None


@dataclass
class TransactionPage:
    """One page of raw transactions for an address."""

    transactions: List[Dict[str, Any]]
    signatures: List[str]
    has_more: bool
    next_cursor: Optional[str] = None
