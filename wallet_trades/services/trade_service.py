"""Trade service for the Wallet Trades Analyzer.

This module wires the pipeline together: fetch a page of transactions,
decode them, extract the signer's trades, enrich the trades with price
analyses and fold everything into a summary.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from wallet_trades.models.responses import GlobalSummary
from wallet_trades.models.trades import (
    DecodedTransaction,
    ParsedTransaction,
    PriceLookupRequest,
    StatusOutcome,
    TokenTrade,
    TradeRecord,
    TransactionPage,
)
from wallet_trades.services.base_service import BaseService
from wallet_trades.services.decoder import (
    TradeExtractor,
    TransactionDecoder,
    decode_transaction,
    extract_signer_trades,
)
from wallet_trades.services.price_analysis_service import PriceAnalysisService, make_cache_key
from wallet_trades.services.summary_service import APPROX_SOL_PRICE_USD, calculate_global_summary
from wallet_trades.utils.errors import ValidationError
from wallet_trades.utils.validation import (
    validate_limit,
    validate_solana_address,
    validate_transaction_signature,
)


class TransactionSource(Protocol):
    """Source of raw transactions for an address."""

    async def get_transactions_for_address(
        self,
        address: str,
        limit: int,
        cursor: Optional[str] = None
    ) -> TransactionPage:
        ...


@dataclass
class TradesResult:
    """Parsed trades of one page of a wallet's history, with its summary."""

    address: str
    transactions: List[ParsedTransaction]
    summary: GlobalSummary
    limit: int
    has_more: bool
    next_cursor: Optional[str] = None

    @property
    def pagination(self) -> Dict[str, Any]:
        return {"limit": self.limit, "has_more": self.has_more, "next_cursor": self.next_cursor}


class TradeService(BaseService):
    """Service producing trade histories and summaries for wallets."""

    def __init__(
        self,
        transaction_source: TransactionSource,
        price_service: PriceAnalysisService,
        decoder: TransactionDecoder = decode_transaction,
        extractor: TradeExtractor = extract_signer_trades,
        default_limit: int = 5,
        max_limit: int = 100,
        sol_price_usd: float = APPROX_SOL_PRICE_USD
    ):
        """Initialize the trade service.

        Args:
            transaction_source: Transaction source collaborator
            price_service: Deduplicating price analysis service
            decoder: Raw transaction decoder
            extractor: Signer trade extractor
            default_limit: Page size used when none is given
            max_limit: Largest accepted page size
            sol_price_usd: SOL/USD rate used for SOL-denominated P&L
        """
        super().__init__()
        self.transaction_source = transaction_source
        self.price_service = price_service
        self.decoder = decoder
        self.extractor = extractor
        self.default_limit = default_limit
        self.max_limit = max_limit
        self.sol_price_usd = sol_price_usd

    def _decode(self, raw_transaction: Dict[str, Any]) -> Optional[Tuple[DecodedTransaction, List[TokenTrade]]]:
        """Decode one transaction; failures only skip this transaction."""
        try:
            tx = self.decoder(raw_transaction)
            if not tx.is_success:
                return None
            trades = self.extractor(tx.balances)
        except Exception as e:
            self.logger.warning(f"Skipping undecodable transaction: {str(e)}")
            return None

        if not trades:
            return None
        return tx, trades

    async def parse_transactions_with_price_analysis(
        self,
        raw_transactions: Sequence[Dict[str, Any]]
    ) -> List[ParsedTransaction]:
        """Turn raw transactions into parsed transactions with price analyses.

        Only successful transactions with at least one signer trade are
        kept, in input order. Trades with a zero balance change never get a
        price analysis.
        """
        decoded = [
            result for result in (self._decode(raw) for raw in raw_transactions)
            if result is not None
        ]

        requests = [
            PriceLookupRequest(mint=trade.mint, timestamp=tx.block_time, transaction=tx, trade=trade)
            for tx, trades in decoded
            for trade in trades
            if trade.ui_change != 0
        ]
        analyses = await self.price_service.analyze_trades(requests)

        parsed_transactions = []
        for tx, trades in decoded:
            records = []
            for trade in trades:
                analysis = None
                if trade.ui_change != 0:
                    analysis = analyses.get(make_cache_key(trade.mint, tx.block_time))
                records.append(TradeRecord(
                    mint=trade.mint,
                    token_balance=trade,
                    trade_type=trade.change_type,
                    price_analysis=analysis
                ))

            parsed_transactions.append(ParsedTransaction(
                signature=tx.signature,
                block_time=tx.block_time,
                fee=tx.fee,
                status_outcome=StatusOutcome.SUCCESS,
                signer_address=tx.balances.signer_address,
                signer_sol_balance_change=tx.balances.signer_sol_balance.ui_change,
                trades=records,
                accounts=tx.accounts
            ))

        return parsed_transactions

    async def get_trades_for_address(
        self,
        address: str,
        limit: Optional[int] = None,
        cursor: Optional[str] = None
    ) -> TradesResult:
        """Get one page of a wallet's trades with a summary of that page.

        Args:
            address: Wallet address
            limit: Number of signatures to fetch
            cursor: Signature to continue from

        Raises:
            InvalidPublicKeyError: If the address is not a valid public key
            ValidationError: If the limit or the cursor is invalid
        """
        validate_solana_address(address)
        limit = validate_limit(self.default_limit if limit is None else limit, self.max_limit)
        if cursor is not None and not validate_transaction_signature(cursor):
            raise ValidationError("cursor must be a transaction signature", details={"cursor": cursor})

        async with self.log_timing(f"Trade analysis for {address}"):
            page = await self.transaction_source.get_transactions_for_address(address, limit, cursor)
            transactions = await self.parse_transactions_with_price_analysis(page.transactions)
            summary = calculate_global_summary(transactions, sol_price_usd=self.sol_price_usd)

        self.log_with_context(
            "info",
            "Trades analyzed",
            address=address,
            fetched=len(page.transactions),
            kept=len(transactions),
            has_more=page.has_more
        )

        return TradesResult(
            address=address,
            transactions=transactions,
            summary=summary,
            limit=limit,
            has_more=page.has_more,
            next_cursor=page.next_cursor if page.has_more else None
        )
