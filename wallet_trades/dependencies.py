"""
Service container and FastAPI dependency providers.

The container owns the process-scoped singletons: one rate limiter per
outbound API family, the price analysis cache and the HTTP clients.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from wallet_trades.clients.birdeye_client import BirdeyeClient
from wallet_trades.clients.helius_client import HeliusClient
from wallet_trades.config import (
    BirdeyeConfig,
    CacheConfig,
    HeliusConfig,
    ServerConfig,
    get_birdeye_config,
    get_cache_config,
    get_helius_config,
    get_server_config,
)
from wallet_trades.services.price_analysis_service import PriceAnalysisCache, PriceAnalysisService
from wallet_trades.services.trade_service import TradeService
from wallet_trades.utils.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Process-scoped services shared by all requests."""

    helius_scheduler: RateLimiter
    birdeye_scheduler: RateLimiter
    helius_client: HeliusClient
    birdeye_client: BirdeyeClient
    price_service: PriceAnalysisService
    trade_service: TradeService

    @classmethod
    def build(
        cls,
        helius_config: Optional[HeliusConfig] = None,
        birdeye_config: Optional[BirdeyeConfig] = None,
        cache_config: Optional[CacheConfig] = None,
        server_config: Optional[ServerConfig] = None
    ) -> "ServiceContainer":
        """Build the container from configuration.

        Missing configuration is read from the environment.
        """
        helius_config = helius_config or get_helius_config()
        birdeye_config = birdeye_config or get_birdeye_config()
        cache_config = cache_config or get_cache_config()
        server_config = server_config or get_server_config()

        helius_scheduler = RateLimiter(helius_config.scheduler, name="helius")
        birdeye_scheduler = RateLimiter(birdeye_config.scheduler, name="birdeye")

        helius_client = HeliusClient(
            helius_scheduler,
            config=helius_config,
            cache_size=cache_config.transaction_cache_size,
            cache_ttl=cache_config.transaction_cache_ttl
        )
        birdeye_client = BirdeyeClient(config=birdeye_config)

        price_service = PriceAnalysisService(
            birdeye_client,
            birdeye_scheduler,
            cache=PriceAnalysisCache(
                max_entries=cache_config.price_cache_max_entries,
                evict_count=cache_config.price_cache_evict_count
            ),
            timeframe=birdeye_config.timeframe
        )
        trade_service = TradeService(
            helius_client,
            price_service,
            default_limit=server_config.default_trade_limit,
            max_limit=server_config.max_trade_limit
        )

        logger.info("Service container initialized")
        return cls(
            helius_scheduler=helius_scheduler,
            birdeye_scheduler=birdeye_scheduler,
            helius_client=helius_client,
            birdeye_client=birdeye_client,
            price_service=price_service,
            trade_service=trade_service
        )

    def get_stats(self):
        return {
            "transactions": self.helius_scheduler.get_stats(),
            "prices": self.price_service.get_stats(),
        }

    async def aclose(self) -> None:
        """Close the HTTP clients."""
        await self.helius_client.close()
        await self.birdeye_client.close()


def get_container(request: Request) -> ServiceContainer:
    """Dependency returning the application's service container."""
    return request.app.state.container


def get_trade_service(request: Request) -> TradeService:
    """Dependency returning the trade service."""
    return get_container(request).trade_service
