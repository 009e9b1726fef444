"""HTTP API for the Wallet Trades Analyzer."""
