"""Helius Solana RPC client.

Every JSON-RPC call is scheduled through the Helius ``RateLimiter``.
"""

# Standard library imports
import asyncio
from typing import Any, Dict, List, Optional

# Third-party library imports
import httpx
from cachetools import TTLCache

# Internal imports
from wallet_trades.clients.base_client import BaseHttpClient
from wallet_trades.config import HeliusConfig, get_helius_config
from wallet_trades.logging_config import get_logger
from wallet_trades.models.trades import TransactionPage
from wallet_trades.utils.errors import ErrorCode, ExternalServiceError, RateLimitError
from wallet_trades.utils.rate_limiter import RateLimiter

# Get logger
logger = get_logger(__name__)

# JSON-RPC error code returned by Solana nodes when a request is throttled
RPC_RATE_LIMIT_CODE = -32005


class HeliusClient(BaseHttpClient):
    """Client for the Solana JSON-RPC methods used by the trade pipeline."""

    service_name = "helius"

    def __init__(
        self,
        scheduler: RateLimiter,
        config: Optional[HeliusConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        cache_size: int = 2048,
        cache_ttl: int = 3600,
        commitment: str = "confirmed"
    ):
        """Initialize the client.

        Args:
            scheduler: Rate limiter for the Helius API family
            config: Helius configuration. Defaults to environment-based config.
            http_client: Optional pre-built httpx client
            cache_size: Maximum number of cached transactions
            cache_ttl: Transaction cache TTL in seconds
            commitment: Commitment level for RPC reads
        """
        self.config = config or get_helius_config()
        self.scheduler = scheduler
        self.commitment = commitment
        self._transaction_cache: TTLCache = TTLCache(maxsize=cache_size, ttl=cache_ttl)
        self._request_id = 0
        super().__init__(
            timeout=self.config.timeout,
            headers={"Content-Type": "application/json"},
            http_client=http_client
        )

    async def _rpc(self, method: str, params: List[Any]) -> Any:
        """Make one JSON-RPC request.

        Raises:
            RateLimitError: If the node throttles the request
            ExternalServiceError: If the node returns an error
        """
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params
        }
        result = await self._request("POST", self.config.endpoint, json=payload)
        if not isinstance(result, dict):
            raise ExternalServiceError(
                f"Unexpected JSON-RPC response for {method}",
                service_name=self.service_name
            )

        if "error" in result:
            error = result["error"] or {}
            message = f"Solana RPC error: {error.get('message', 'Unknown error')}"
            if error.get("code") == RPC_RATE_LIMIT_CODE or "rate limit" in message.lower():
                raise RateLimitError(message, service_name=self.service_name, details={"rpc_error": error})
            raise ExternalServiceError(
                message,
                service_name=self.service_name,
                details={"rpc_error": error, "method": method},
                code=ErrorCode.RPC_ERROR
            )

        return result.get("result")

    async def _scheduled_rpc(self, method: str, params: List[Any]) -> Any:
        return await self.scheduler.schedule(lambda: self._rpc(method, params))

    async def get_signatures_for_address(
        self,
        address: str,
        limit: int,
        before: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Get the most recent signatures for an address, newest first.

        Args:
            address: Account address
            limit: Maximum number of signatures
            before: Signature to search backwards from
        """
        options: Dict[str, Any] = {"limit": limit, "commitment": self.commitment}
        if before:
            options["before"] = before
        return await self._scheduled_rpc("getSignaturesForAddress", [address, options]) or []

    async def get_transaction(self, signature: str) -> Optional[Dict[str, Any]]:
        """Get a raw transaction by signature.

        Transactions are immutable once confirmed, so results are cached.
        """
        cached_tx = self._transaction_cache.get(signature)
        if cached_tx is not None:
            return cached_tx

        tx = await self._scheduled_rpc(
            "getTransaction",
            [
                signature,
                {
                    "encoding": "json",
                    "maxSupportedTransactionVersion": 0,
                    "commitment": self.commitment,
                },
            ]
        )
        if tx is not None:
            self._transaction_cache[signature] = tx
        return tx

    async def get_transactions_for_address(
        self,
        address: str,
        limit: int,
        cursor: Optional[str] = None
    ) -> TransactionPage:
        """Get one page of raw transactions for an address.

        ``has_more`` is true exactly when the number of returned signatures
        equals ``limit``; ``next_cursor`` is the last signature of the page.

        Args:
            address: Account address
            limit: Page size
            cursor: Signature to continue from (exclusive)
        """
        signature_infos = await self.get_signatures_for_address(address, limit, before=cursor)
        signatures = [info["signature"] for info in signature_infos if info.get("signature")]

        results = await asyncio.gather(
            *(self.get_transaction(signature) for signature in signatures),
            return_exceptions=True
        )

        transactions = []
        for signature, result in zip(signatures, results):
            if isinstance(result, Exception):
                logger.warning(f"Failed to fetch transaction {signature}: {result}")
                continue
            if result:
                transactions.append(result)

        return TransactionPage(
            transactions=transactions,
            signatures=signatures,
            has_more=len(signatures) == limit,
            next_cursor=signatures[-1] if signatures else None
        )
