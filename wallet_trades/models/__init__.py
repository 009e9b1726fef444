"""Data models for trades and API responses."""
