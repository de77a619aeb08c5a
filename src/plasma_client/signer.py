#!/usr/bin/env python3
"""Signing capabilities for child chain transactions.

A signer takes an EIP-712 payload and a signer address and returns the
signature. Two implementations: a local eth_account key, and a web3 provider
that exposes eth_signTypedData_v3 (browser or node-managed wallets).
"""

import asyncio
import json
import logging
from typing import Any, Protocol

from eth_account import Account
from eth_account.messages import encode_typed_data
from eth_account.signers.local import LocalAccount
from hexbytes import HexBytes
from web3 import Web3

logger = logging.getLogger(__name__)


class TypedDataSigner(Protocol):
    """Anything able to sign structured data for an address."""

    async def sign_typed_data(self, payload: dict[str, Any], signer_address: str) -> bytes:
        ...


class LocalKeySigner:
    """Signs typed data with a private key held in memory."""

    def __init__(self, private_key: str) -> None:
        self.account: LocalAccount = Account.from_key(private_key)

    @property
    def address(self) -> str:
        return self.account.address

    async def sign_typed_data(self, payload: dict[str, Any], signer_address: str) -> bytes:
        """
        Sign an EIP-712 payload.

        Args:
            payload: Full typed data message (types, domain, primaryType, message)
            signer_address: Address expected to sign; must match the key

        Returns:
            65-byte signature

        Raises:
            ValueError: If signer_address is not the key's address
        """
        signer = Web3.to_checksum_address(signer_address)
        if signer != self.account.address:
            raise ValueError(
                f"Cannot sign for {signer}: key belongs to {self.account.address}"
            )

        signable = encode_typed_data(full_message=payload)
        signed = self.account.sign_message(signable)
        logger.debug(f"Signed typed data for {signer}")
        return bytes(signed.signature)


class ProviderSigner:
    """Delegates signing to the wallet behind a web3 provider."""

    METHOD = "eth_signTypedData_v3"

    def __init__(self, w3: Web3) -> None:
        self.w3 = w3

    async def sign_typed_data(self, payload: dict[str, Any], signer_address: str) -> bytes:
        signer = Web3.to_checksum_address(signer_address)
        response: dict[str, Any] = await asyncio.to_thread(
            self.w3.provider.make_request,
            self.METHOD,
            [signer, json.dumps(payload)]
        )

        match response:
            case {"result": signature} if signature:
                return bytes(HexBytes(signature))
            case {"error": error}:
                message = error.get("message", error) if isinstance(error, dict) else error
                raise ValueError(f"Provider refused to sign: {message}")
            case _:
                raise ValueError(f"Unexpected {self.METHOD} response: {response}")
