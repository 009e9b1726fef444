"""Validation utilities for Solana addresses and signatures."""

import re

from wallet_trades.utils.errors import InvalidPublicKeyError, ValidationError

# Solana public key validation pattern (base58 format)
PUBKEY_PATTERN = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")

# Transaction signatures are also base58 encoded but longer than public keys
SIGNATURE_PATTERN = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{43,128}$")


def validate_public_key(pubkey: str) -> bool:
    """Validate a Solana public key.

    Args:
        pubkey: The public key to validate

    Returns:
        True if the public key is valid, False otherwise
    """
    if not pubkey or not isinstance(pubkey, str):
        return False
    return bool(PUBKEY_PATTERN.match(pubkey))


def validate_solana_address(address: str) -> str:
    """Validate a Solana address and raise if invalid.

    Raises:
        InvalidPublicKeyError: If the address is invalid
    """
    if not validate_public_key(address):
        raise InvalidPublicKeyError(address)
    return address


def validate_transaction_signature(signature: str) -> bool:
    """Validate a Solana transaction signature."""
    if not signature or not isinstance(signature, str):
        return False
    return bool(SIGNATURE_PATTERN.match(signature))


def validate_limit(limit: int, maximum: int) -> int:
    """Validate a page size.

    Raises:
        ValidationError: If the limit is outside ``1..maximum``
    """
    if not isinstance(limit, int) or limit < 1 or limit > maximum:
        raise ValidationError(
            f"limit must be between 1 and {maximum}",
            details={"limit": limit, "maximum": maximum}
        )
    return limit
