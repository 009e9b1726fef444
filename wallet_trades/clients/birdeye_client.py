"""Birdeye price history client."""

from typing import List, Optional

import httpx

from wallet_trades.clients.base_client import BaseHttpClient
from wallet_trades.config import BirdeyeConfig, get_birdeye_config
from wallet_trades.logging_config import get_logger
from wallet_trades.models.trades import PricePoint

logger = get_logger(__name__)

# Candle sizes accepted by the history_price endpoint
TIMEFRAMES = (
    "1m", "3m", "5m", "15m", "30m", "1H", "2H", "4H", "6H", "8H", "12H", "1D", "3D", "1W", "1M"
)


class BirdeyeClient(BaseHttpClient):
    """Client for the Birdeye ``history_price`` endpoint.

    Calls are not throttled here; callers route them through the price
    family's ``RateLimiter`` so that one scheduled task may page through
    a full history.
    """

    service_name = "birdeye"

    def __init__(
        self,
        config: Optional[BirdeyeConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        self.config = config or get_birdeye_config()
        headers = {"accept": "application/json", "x-chain": "solana"}
        if self.config.api_key:
            headers["X-API-KEY"] = self.config.api_key
        super().__init__(timeout=self.config.timeout, headers=headers, http_client=http_client)

    async def get_historical_prices(
        self,
        mint: str,
        from_timestamp: int,
        to_timestamp: int,
        timeframe: Optional[str] = None
    ) -> List[PricePoint]:
        """Fetch price points for a token between two timestamps.

        Args:
            mint: Token mint address
            from_timestamp: Start of the interval (unix seconds)
            to_timestamp: End of the interval (unix seconds)
            timeframe: Candle size, defaults to the configured timeframe

        Returns:
            Price points ordered by time, possibly empty or partial

        Raises:
            RateLimitError: If Birdeye throttles the request
            ExternalServiceError: On other provider failures
        """
        timeframe = timeframe or self.config.timeframe
        if timeframe not in TIMEFRAMES:
            raise ValueError(f"Unsupported timeframe: {timeframe}")

        data = await self._request(
            "GET",
            f"{self.config.api_base}/history_price",
            params={
                "address": mint,
                "address_type": "token",
                "type": timeframe,
                "time_from": from_timestamp,
                "time_to": to_timestamp,
                "ui_amount_mode": "raw",
            }
        )

        if not isinstance(data, dict) or not data.get("success"):
            logger.debug(f"Birdeye returned no data for {mint}")
            return []

        items = (data.get("data") or {}).get("items") or []
        points = []
        for item in items:
            try:
                points.append(PricePoint(timestamp=int(item["unixTime"]), value=float(item["value"])))
            except (KeyError, TypeError, ValueError):
                logger.debug(f"Skipping malformed price point for {mint}: {item!r}")
        return points
