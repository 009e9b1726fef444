"""Wallet Trades Analyzer Package.

This package fetches a wallet's Solana transactions, enriches the signer's
token trades with historical price data and summarizes trading performance.
"""

from wallet_trades.__version__ import __version__

__all__ = ["__version__"]
