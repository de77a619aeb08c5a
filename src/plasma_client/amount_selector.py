#!/usr/bin/env python3
"""UTXO selection for child chain transfers.

Bounded greedy search: the largest UTXOs of the requested currency are taken
in descending order, at most DEFAULT_MAX_INPUTS of them, until they cover the
amount. No I/O.
"""

import logging
from collections.abc import Sequence

from .errors import NoFeeUtxoAvailable, NoUtxoLargeEnough
from .models import ETH_CURRENCY, Utxo, same_currency

logger = logging.getLogger(__name__)

DEFAULT_MAX_INPUTS = 4


def select_utxos(
    utxos: Sequence[Utxo],
    amount: int,
    currency: str,
    include_fee: bool = False,
    max_inputs: int = DEFAULT_MAX_INPUTS
) -> list[Utxo]:
    """Choose the UTXOs to spend for a transfer.

    Args:
        utxos: Every UTXO owned by the sender
        amount: Amount to cover, in the currency's base unit
        currency: Currency of the transfer
        include_fee: Append an ETH UTXO to pay the fee (token transfers)
        max_inputs: Total number of inputs the transaction may have

    Returns:
        The selected UTXOs, largest first, with the fee UTXO (if any) last

    Raises:
        NoUtxoLargeEnough: If the largest candidates do not cover the amount
        NoFeeUtxoAvailable: If a fee UTXO is needed and none is left
    """
    # Stable sort keeps the input order for equal amounts
    candidates = sorted(
        (u for u in utxos if same_currency(u.currency, currency)),
        key=lambda u: u.amount,
        reverse=True
    )
    # One slot is reserved for the fee input
    limit = max_inputs - 1 if include_fee else max_inputs

    selected: list[Utxo] = []
    total = 0
    for utxo in candidates[:limit]:
        selected.append(utxo)
        total += utxo.amount
        if total >= amount:
            break

    if not selected or total < amount:
        raise NoUtxoLargeEnough(f"No utxo big enough to cover the amount {amount}")

    if include_fee:
        fee_utxo = next(
            (
                u for u in utxos
                if same_currency(u.currency, ETH_CURRENCY) and u not in selected
            ),
            None
        )
        if fee_utxo is None:
            raise NoFeeUtxoAvailable("Can't find a fee utxo for transaction")
        selected.append(fee_utxo)

    logger.debug(f"Selected {len(selected)} utxos totalling {total} for amount {amount}")
    return selected
