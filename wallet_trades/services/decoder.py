"""Transaction decoding and trade extraction.

The trade pipeline treats both steps as pluggable collaborators. The
defaults below only read the generic balance arrays of a ``getTransaction``
JSON-RPC result; no program instructions are interpreted.
"""

import json
from typing import Any, Dict, List, Protocol, Tuple

from wallet_trades.models.trades import (
    ChangeType,
    DecodedTransaction,
    SignerBalances,
    SolBalanceChange,
    StatusOutcome,
    TokenTrade,
)
from wallet_trades.utils.errors import DataParsingError

LAMPORTS_PER_SOL = 1_000_000_000


class TransactionDecoder(Protocol):
    """Turns a raw transaction into a normalized ``DecodedTransaction``."""

    def __call__(self, raw_transaction: Dict[str, Any]) -> DecodedTransaction:
        ...


class TradeExtractor(Protocol):
    """Yields the signer's token deltas for one decoded transaction."""

    def __call__(self, balances: SignerBalances) -> List[TokenTrade]:
        ...


def _account_keys(raw_transaction: Dict[str, Any]) -> List[str]:
    message = raw_transaction["transaction"]["message"]
    keys = []
    for key in message.get("accountKeys", []):
        # jsonParsed encoding returns objects, json encoding returns strings
        keys.append(key["pubkey"] if isinstance(key, dict) else key)

    loaded = (raw_transaction.get("meta") or {}).get("loadedAddresses") or {}
    keys.extend(loaded.get("writable", []))
    keys.extend(loaded.get("readonly", []))
    return keys


def _signer_token_amounts(
    token_balances: List[Dict[str, Any]],
    signer: str,
    accounts: List[str]
) -> Dict[str, Tuple[int, int]]:
    """Sum raw token amounts held by the signer, per mint.

    Returns:
        Mapping of mint to (raw amount, decimals), in first-seen order
    """
    amounts: Dict[str, Tuple[int, int]] = {}
    for balance in token_balances or []:
        owner = balance.get("owner")
        if owner is None:
            index = balance.get("accountIndex")
            owner = accounts[index] if isinstance(index, int) and index < len(accounts) else None
        if owner != signer:
            continue

        ui_amount = balance.get("uiTokenAmount") or {}
        raw_amount = int(ui_amount.get("amount", 0))
        decimals = int(ui_amount.get("decimals", 0))
        previous, _ = amounts.get(balance["mint"], (0, decimals))
        amounts[balance["mint"]] = (previous + raw_amount, decimals)
    return amounts


def decode_transaction(raw_transaction: Dict[str, Any]) -> DecodedTransaction:
    """Decode a ``getTransaction`` result into signer balances.

    Args:
        raw_transaction: Raw JSON-RPC transaction result

    Returns:
        The decoded transaction

    Raises:
        DataParsingError: If the payload misses required fields
    """
    try:
        meta = raw_transaction["meta"] or {}
        signatures = raw_transaction["transaction"]["signatures"]
        accounts = _account_keys(raw_transaction)
        signer = accounts[0]

        pre_balances = meta.get("preBalances") or [0]
        post_balances = meta.get("postBalances") or [0]
        pre_sol, post_sol = int(pre_balances[0]), int(post_balances[0])

        pre_tokens = _signer_token_amounts(meta.get("preTokenBalances"), signer, accounts)
        post_tokens = _signer_token_amounts(meta.get("postTokenBalances"), signer, accounts)
    except (KeyError, IndexError, TypeError, ValueError) as e:
        raise DataParsingError(
            f"Malformed transaction payload: {str(e)}",
            data_type="transaction"
        ) from e

    token_trades = []
    for mint in list(pre_tokens) + [m for m in post_tokens if m not in pre_tokens]:
        before, pre_decimals = pre_tokens.get(mint, (0, None))
        after, post_decimals = post_tokens.get(mint, (0, None))
        decimals = post_decimals if post_decimals is not None else pre_decimals
        ui_change = (after - before) / (10 ** decimals)
        token_trades.append(TokenTrade(
            mint=mint,
            change_type=ChangeType.from_change(ui_change),
            ui_change=ui_change,
            raw_balance_before=before,
            raw_balance_after=after,
            decimals=decimals
        ))

    error = meta.get("err")
    if error is None:
        status = StatusOutcome.SUCCESS.value
    else:
        status = error if isinstance(error, str) else json.dumps(error)

    return DecodedTransaction(
        signature=signatures[0],
        block_time=int(raw_transaction.get("blockTime") or 0),
        fee=int(meta.get("fee", 0)),
        error=status,
        accounts=accounts,
        slot=raw_transaction.get("slot"),
        balances=SignerBalances(
            signer_address=signer,
            signer_sol_balance=SolBalanceChange(
                pre_balance=pre_sol,
                post_balance=post_sol,
                ui_change=(post_sol - pre_sol) / LAMPORTS_PER_SOL
            ),
            signer_token_balances=token_trades
        )
    )


def extract_signer_trades(balances: SignerBalances) -> List[TokenTrade]:
    """Return the signer's token deltas with a sign-consistent change type."""
    trades = []
    for token_balance in balances.signer_token_balances:
        change_type = ChangeType.from_change(token_balance.ui_change)
        if change_type != token_balance.change_type:
            token_balance.change_type = change_type
        trades.append(token_balance)
    return trades
