"""Clients for the outbound provider APIs."""
