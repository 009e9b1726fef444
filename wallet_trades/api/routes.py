"""Trade-related API routes.

This module defines the routes for analyzing a wallet's trades.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Path, Query

from wallet_trades.__version__ import __version__
from wallet_trades.dependencies import ServiceContainer, get_container, get_trade_service
from wallet_trades.models.responses import ErrorResponse, PaginationInfo, SummaryResponse, TradesResponse
from wallet_trades.services.trade_service import TradeService

# Create routers
router = APIRouter(
    prefix="/api",
    tags=["trades"],
    responses={
        400: {"model": ErrorResponse, "description": "Invalid address, limit or cursor"},
        429: {"model": ErrorResponse, "description": "Provider rate limit exceeded"},
        502: {"model": ErrorResponse, "description": "Provider failure"},
    }
)
health_router = APIRouter(tags=["system"])


@router.get(
    "/trades/{address}",
    response_model=TradesResponse,
    summary="Get wallet trades",
    description="Retrieves a page of a wallet's trades with price analyses and a summary."
)
async def get_trades(
    address: str = Path(..., description="Wallet address"),
    limit: Optional[int] = Query(None, description="Number of signatures to analyze"),
    cursor: Optional[str] = Query(None, description="Signature to continue from"),
    service: TradeService = Depends(get_trade_service)
) -> TradesResponse:
    """Get the trades of a wallet.

    Args:
        address: The wallet address
        limit: Number of signatures to analyze
        cursor: Signature to continue from
        service: The trade service

    Returns:
        Parsed transactions, summary and pagination
    """
    result = await service.get_trades_for_address(address, limit, cursor)

    return TradesResponse(
        message="Trades retrieved successfully",
        version=__version__,
        address=address,
        transactions=[transaction.to_dict() for transaction in result.transactions],
        summary=result.summary,
        pagination=PaginationInfo(**result.pagination)
    )


@router.get(
    "/trades/{address}/summary",
    response_model=SummaryResponse,
    summary="Get wallet trade summary",
    description="Retrieves only the summary of a page of a wallet's trades."
)
async def get_trade_summary(
    address: str = Path(..., description="Wallet address"),
    limit: Optional[int] = Query(None, description="Number of signatures to analyze"),
    cursor: Optional[str] = Query(None, description="Signature to continue from"),
    service: TradeService = Depends(get_trade_service)
) -> SummaryResponse:
    result = await service.get_trades_for_address(address, limit, cursor)

    return SummaryResponse(
        message="Trade summary retrieved successfully",
        version=__version__,
        address=address,
        summary=result.summary,
        pagination=PaginationInfo(**result.pagination)
    )


@router.get("/stats", summary="Get scheduler and cache statistics")
async def get_stats(container: ServiceContainer = Depends(get_container)) -> Dict[str, Any]:
    return {"version": __version__, "stats": container.get_stats()}


@health_router.get("/health", summary="Health check")
async def health_check() -> Dict[str, str]:
    return {"status": "healthy"}
