"""
Plasma transaction encoding utilities.

This module provides the RLP encoding of child chain transactions as the
plasma framework and the child chain expect them:

    unsigned: [tx_type, [input...], [[output_type, [owner, currency, amount]]...], tx_data, metadata]
    signed:   [[signature...], tx_type, inputs, outputs, tx_data, metadata]

Inputs are utxo positions as 32-byte big-endian words.
"""

import logging
from typing import Union

import rlp
from hexbytes import HexBytes
from web3 import Web3

from ..models import SignedTransaction, TransactionBody

logger = logging.getLogger(__name__)

PAYMENT_TX_TYPE = 1
PAYMENT_OUTPUT_TYPE = 1
EMPTY_TX_DATA = 0
NULL_METADATA = b"\x00" * 32


class PlasmaTxEncoder:
    """Utilities for encoding plasma transactions."""

    @staticmethod
    def to_bytes_safe(value: Union[HexBytes, bytes, str]) -> bytes:
        """
        Safely convert value to bytes, handling HexBytes, bytes, and hex strings.

        Args:
            value: Value to convert (HexBytes, bytes, or hex string)

        Returns:
            Bytes representation
        """
        if isinstance(value, HexBytes):
            return bytes(value)
        elif isinstance(value, bytes):
            return value
        else:
            return Web3.to_bytes(hexstr=value)

    @staticmethod
    def encode_input(position: int) -> bytes:
        """Encode a utxo position as a 32-byte word."""
        return position.to_bytes(32, "big")

    @staticmethod
    def encode_fields(body: TransactionBody) -> list:
        """
        Build the RLP field list of an unsigned transaction.

        Args:
            body: Transaction body

        Returns:
            Nested field list ready for rlp.encode
        """
        inputs = [PlasmaTxEncoder.encode_input(u.position) for u in body.inputs]
        outputs = [
            [
                PAYMENT_OUTPUT_TYPE,
                [
                    PlasmaTxEncoder.to_bytes_safe(o.owner),
                    PlasmaTxEncoder.to_bytes_safe(o.currency),
                    o.amount
                ]
            ]
            for o in body.outputs
        ]
        return [PAYMENT_TX_TYPE, inputs, outputs, EMPTY_TX_DATA, NULL_METADATA]

    @staticmethod
    def encode(body: TransactionBody) -> bytes:
        """RLP encode an unsigned transaction (deposits included)."""
        return rlp.encode(PlasmaTxEncoder.encode_fields(body))

    @staticmethod
    def encode_signed(signed_tx: SignedTransaction) -> str:
        """
        RLP encode a signed transaction for submission to the child chain.

        Args:
            signed_tx: Body with one signature per input

        Returns:
            0x-prefixed hex string of the encoded transaction
        """
        fields = PlasmaTxEncoder.encode_fields(signed_tx.body)
        encoded = rlp.encode([list(signed_tx.signatures), *fields])
        logger.debug(f"Encoded signed transaction ({len(encoded)} bytes)")
        return Web3.to_hex(encoded)
