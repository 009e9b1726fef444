"""Command-line entry point for the Wallet Trades Analyzer."""

import asyncio
import json
import sys
from typing import Any, Dict, Optional

import click
import uvicorn

from wallet_trades.__version__ import __version__
from wallet_trades.config import get_server_config
from wallet_trades.dependencies import ServiceContainer
from wallet_trades.logging_config import configure_logging, configure_structlog, get_logger
from wallet_trades.utils.errors import WalletTradesError

logger = get_logger(__name__)


@click.group()
@click.version_option(__version__, prog_name="wallet-trades")
def cli() -> None:
    """Analyze the token trades of Solana wallets."""


@cli.command()
@click.option("--host", type=str, help="Host to bind to")
@click.option("--port", type=int, help="Port to listen on")
def serve(host: Optional[str] = None, port: Optional[int] = None) -> None:
    """Run the HTTP API server.

    Host and port default to the HOST and PORT environment settings.
    """
    server_config = get_server_config()
    configure_logging(server_config.log_level)
    configure_structlog()

    host = host or server_config.host
    port = port or server_config.port
    logger.info(f"Starting Wallet Trades API on {host}:{port} (default {server_config.bind_address})")

    uvicorn.run(
        "wallet_trades.app:get_application",
        factory=True,
        host=host,
        port=port,
        log_level=server_config.log_level.lower()
    )


async def _analyze(address: str, limit: Optional[int], cursor: Optional[str]) -> Dict[str, Any]:
    container = ServiceContainer.build()
    try:
        result = await container.trade_service.get_trades_for_address(address, limit, cursor)
    finally:
        await container.aclose()

    return {
        "address": result.address,
        "transactions": [transaction.to_dict() for transaction in result.transactions],
        "summary": result.summary.model_dump(by_alias=True),
        "pagination": {
            "limit": result.limit,
            "hasMore": result.has_more,
            "nextCursor": result.next_cursor,
        },
    }


@cli.command()
@click.argument("address")
@click.option("--limit", type=int, help="Number of signatures to analyze")
@click.option("--cursor", type=str, help="Signature to continue from")
def analyze(address: str, limit: Optional[int] = None, cursor: Optional[str] = None) -> None:
    """Analyze the trades of ADDRESS and print the result as JSON."""
    configure_logging(get_server_config().log_level)

    try:
        output = asyncio.run(_analyze(address, limit, cursor))
    except WalletTradesError as e:
        click.echo(json.dumps({"version": __version__, "error": e.to_dict()}, indent=2), err=True)
        sys.exit(1)

    click.echo(json.dumps(output, indent=2))


def main() -> None:
    """Run the command-line interface."""
    cli()


if __name__ == "__main__":
    main()
