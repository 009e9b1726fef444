"""Version information for the Wallet Trades Analyzer."""

__version__ = "1.0.0"
__author__ = "Wallet Trades Analyzer Contributors"
__email__ = "dev@wallet-trades.local"
