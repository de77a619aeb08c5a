#!/usr/bin/env python3
"""Transaction assembly for the child chain.

Turns selected UTXOs into an unsigned TransactionBody and renders bodies as
the EIP-712 typed data the signer expects. Pure functions, no I/O.
"""

import logging
from collections.abc import Sequence
from typing import Any

from web3 import Web3

from .models import (
    ETH_CURRENCY,
    MAX_INPUTS,
    MAX_OUTPUTS,
    Output,
    TransactionBody,
    Utxo,
    same_currency,
)
from .utils.tx_encoder import PAYMENT_OUTPUT_TYPE, PAYMENT_TX_TYPE, PlasmaTxEncoder

logger = logging.getLogger(__name__)

DOMAIN_NAME = "OMG Network"
DOMAIN_VERSION = "1"
DOMAIN_SALT = "0xfad5c7f626d80f9256ef01929f3beb96e058b8b4b0e3fe52d84f054c0e2a7a83"

NULL_ADDRESS = ETH_CURRENCY
NULL_METADATA_HEX = "0x" + "00" * 32

TYPED_DATA_TYPES: dict[str, list[dict[str, str]]] = {
    "EIP712Domain": [
        {"name": "name", "type": "string"},
        {"name": "version", "type": "string"},
        {"name": "verifyingContract", "type": "address"},
        {"name": "salt", "type": "bytes32"},
    ],
    "Transaction": [
        {"name": "txType", "type": "uint256"},
        {"name": "input0", "type": "Input"},
        {"name": "input1", "type": "Input"},
        {"name": "input2", "type": "Input"},
        {"name": "input3", "type": "Input"},
        {"name": "output0", "type": "Output"},
        {"name": "output1", "type": "Output"},
        {"name": "output2", "type": "Output"},
        {"name": "output3", "type": "Output"},
        {"name": "txData", "type": "uint256"},
        {"name": "metadata", "type": "bytes32"},
    ],
    "Input": [
        {"name": "blknum", "type": "uint256"},
        {"name": "txindex", "type": "uint256"},
        {"name": "oindex", "type": "uint256"},
    ],
    "Output": [
        {"name": "outputType", "type": "uint256"},
        {"name": "outputGuard", "type": "bytes20"},
        {"name": "currency", "type": "address"},
        {"name": "amount", "type": "uint256"},
    ],
}


def build_transaction(
    utxos: Sequence[Utxo],
    destination: str,
    amount: int,
    currency: str,
    sender: str
) -> TransactionBody:
    """Assemble an unsigned transfer from selected UTXOs.

    Outputs are, in order: the payment to destination, the change of the
    transfer currency back to sender, and the full amount of every input in
    another currency (the fee UTXO) back to sender.

    Args:
        utxos: Selected inputs, in selection order
        destination: Recipient address
        amount: Amount to send
        currency: Currency of the transfer
        sender: Address receiving change and fee-return outputs

    Returns:
        TransactionBody whose per-currency input and output totals match

    Raises:
        ValueError: If the inputs do not cover the amount
    """
    available = sum(u.amount for u in utxos if same_currency(u.currency, currency))
    if available < amount:
        raise ValueError(f"Inputs total {available} does not cover amount {amount}")

    outputs = [Output(owner=destination, currency=currency, amount=amount)]

    change = available - amount
    if change > 0:
        outputs.append(Output(owner=sender, currency=currency, amount=change))

    for utxo in utxos:
        if not same_currency(utxo.currency, currency):
            outputs.append(Output(owner=sender, currency=utxo.currency, amount=utxo.amount))

    body = TransactionBody(inputs=tuple(utxos), outputs=tuple(outputs))
    logger.debug(
        f"Built transaction with {len(body.inputs)} inputs and {len(body.outputs)} outputs "
        f"(change {change})"
    )
    return body


def build_deposit(owner: str, amount: int, currency: str = ETH_CURRENCY) -> bytes:
    """Encode a deposit transaction: no inputs, one output to owner."""
    body = TransactionBody(
        inputs=(),
        outputs=(Output(owner=owner, currency=currency, amount=amount),)
    )
    return PlasmaTxEncoder.encode(body)


def _typed_input(utxo: Utxo | None) -> dict[str, int]:
    if utxo is None:
        return {"blknum": 0, "txindex": 0, "oindex": 0}
    return {"blknum": utxo.blknum, "txindex": utxo.txindex, "oindex": utxo.oindex}


def _typed_output(output: Output | None) -> dict[str, Any]:
    if output is None:
        return {
            "outputType": 0,
            "outputGuard": NULL_ADDRESS,
            "currency": NULL_ADDRESS,
            "amount": 0,
        }
    return {
        "outputType": PAYMENT_OUTPUT_TYPE,
        "outputGuard": Web3.to_checksum_address(output.owner),
        "currency": Web3.to_checksum_address(output.currency),
        "amount": output.amount,
    }


def build_typed_data(body: TransactionBody, verifying_contract: str) -> dict[str, Any]:
    """Render a body as the EIP-712 payload signed for every input.

    Unused input and output slots are zero-filled up to four.
    """
    inputs: list[Utxo | None] = list(body.inputs) + [None] * (MAX_INPUTS - len(body.inputs))
    outputs: list[Output | None] = list(body.outputs) + [None] * (MAX_OUTPUTS - len(body.outputs))

    message: dict[str, Any] = {"txType": PAYMENT_TX_TYPE}
    for i, utxo in enumerate(inputs):
        message[f"input{i}"] = _typed_input(utxo)
    for i, output in enumerate(outputs):
        message[f"output{i}"] = _typed_output(output)
    message["txData"] = 0
    message["metadata"] = NULL_METADATA_HEX

    return {
        "types": TYPED_DATA_TYPES,
        "domain": {
            "name": DOMAIN_NAME,
            "version": DOMAIN_VERSION,
            "verifyingContract": Web3.to_checksum_address(verifying_contract),
            "salt": DOMAIN_SALT,
        },
        "primaryType": "Transaction",
        "message": message,
    }
