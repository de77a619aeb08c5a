#!/usr/bin/env python3
"""Root chain contract interaction for the plasma client.

Wraps the plasma framework contract (deposits, standard exits) and the ERC20
calls needed for token deposits. Web3 calls block, so they run in a worker
thread to keep concurrent operations (exit batches) from serializing.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from hexbytes import HexBytes
from web3 import Web3
from web3.contract import Contract
from web3.types import TxParams, TxReceipt

from .errors import PlasmaError, SubmissionFailure

if TYPE_CHECKING:
    from .utils.contract_utility import ContractUtility

logger = logging.getLogger(__name__)

DEFAULT_EXIT_BOND = 31415926535


class RootChainClient:
    """Handles transactions against the plasma framework contract."""

    def __init__(
        self,
        contract_util: "ContractUtility",
        plasma_contract_address: str,
        exit_bond: int = DEFAULT_EXIT_BOND,
        receipt_timeout: int = 120
    ) -> None:
        """
        Initialize the RootChainClient.

        Args:
            contract_util: Utility holding the root chain Web3 instance and ABIs
            plasma_contract_address: Address of the plasma framework contract
            exit_bond: Wei attached to every standard exit
            receipt_timeout: Seconds to wait for a transaction receipt
        """
        self.contract_util: ContractUtility = contract_util
        self.w3: Web3 = contract_util.w3
        self.plasma_contract_address: str = Web3.to_checksum_address(plasma_contract_address)
        self.exit_bond: int = exit_bond
        self.receipt_timeout: int = receipt_timeout

        self.contract: Contract = contract_util.get_contract("PlasmaFramework", self.plasma_contract_address)

        logger.info(f"RootChainClient initialized for plasma contract {self.plasma_contract_address}")

    def _token(self, token: str) -> Contract:
        return self.contract_util.get_contract("ERC20", token)

    def _transact_and_wait(self, call: Any, tx_params: TxParams, label: str) -> TxReceipt:
        try:
            tx_hash: HexBytes = call.transact(tx_params)
            logger.info(f"{label} transaction sent: {Web3.to_hex(tx_hash)}")
            receipt: TxReceipt = self.w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self.receipt_timeout
            )
        except Exception as e:
            raise SubmissionFailure(f"{label} failed: {e}", cause=e) from e

        if (status := receipt.get('status', 1)) != 1:
            raise SubmissionFailure(
                f"{label} transaction {Web3.to_hex(receipt['transactionHash'])} "
                f"reverted with status={status}"
            )
        logger.info(f"{label} confirmed in block {receipt['blockNumber']}")
        return receipt

    async def deposit_eth(self, deposit_tx: bytes, amount: int, from_address: str) -> TxReceipt:
        """
        Deposit ETH into the child chain.

        Args:
            deposit_tx: Encoded deposit transaction
            amount: Wei to deposit; must match the deposit output
            from_address: Sending account

        Returns:
            Receipt of the deposit transaction

        Raises:
            SubmissionFailure: If the transaction fails or reverts
        """
        call = self.contract.functions.deposit(deposit_tx)
        tx_params: TxParams = {'from': Web3.to_checksum_address(from_address), 'value': amount}
        return await asyncio.to_thread(self._transact_and_wait, call, tx_params, "ETH deposit")

    async def deposit_token(self, deposit_tx: bytes, from_address: str) -> TxReceipt:
        """Deposit ERC20 tokens; the contract must already be approved."""
        call = self.contract.functions.depositFrom(deposit_tx)
        tx_params: TxParams = {'from': Web3.to_checksum_address(from_address)}
        return await asyncio.to_thread(self._transact_and_wait, call, tx_params, "Token deposit")

    async def approve_token(self, token: str, amount: int, from_address: str) -> str:
        """
        Approve the plasma contract to pull amount of token.

        Returns without waiting; confirm the returned hash with the
        ConfirmationPoller before depositing.

        Returns:
            Hex hash of the approve transaction
        """
        call = self._token(token).functions.approve(self.plasma_contract_address, amount)
        tx_params: TxParams = {'from': Web3.to_checksum_address(from_address)}
        try:
            tx_hash: HexBytes = await asyncio.to_thread(call.transact, tx_params)
        except Exception as e:
            raise SubmissionFailure(f"Token approval failed: {e}", cause=e) from e
        logger.info(f"Approve transaction sent: {Web3.to_hex(tx_hash)}")
        return Web3.to_hex(tx_hash)

    async def start_standard_exit(
        self,
        utxo_position: int,
        txbytes: bytes,
        proof: bytes,
        from_address: str
    ) -> TxReceipt:
        """
        Start a standard exit of a UTXO, attaching the exit bond.

        Args:
            utxo_position: Position of the UTXO being exited
            txbytes: Encoded transaction that created the UTXO
            proof: Inclusion proof of that transaction
            from_address: Owner of the UTXO

        Returns:
            Receipt of the exit transaction
        """
        call = self.contract.functions.startStandardExit(utxo_position, txbytes, proof)
        tx_params: TxParams = {
            'from': Web3.to_checksum_address(from_address),
            'value': self.exit_bond
        }
        return await asyncio.to_thread(
            self._transact_and_wait, call, tx_params, f"Standard exit of {utxo_position}"
        )

    async def get_balance(self, address: str) -> int:
        """ETH balance of address in wei.

        Raises:
            PlasmaError: If the node cannot be queried
        """
        try:
            return await asyncio.to_thread(self.w3.eth.get_balance, Web3.to_checksum_address(address))
        except Exception as e:
            raise PlasmaError(f"Reading root chain balance of {address} failed: {e}") from e

    async def get_token_balance(self, token: str, address: str) -> int:
        """ERC20 balance of address."""
        call = self._token(token).functions.balanceOf(Web3.to_checksum_address(address))
        try:
            return await asyncio.to_thread(call.call)
        except Exception as e:
            raise PlasmaError(f"Reading {token} balance of {address} failed: {e}") from e

    async def client_version(self) -> str:
        """Version string of the root chain node."""
        try:
            return await asyncio.to_thread(lambda: self.w3.client_version)
        except Exception as e:
            raise PlasmaError(f"Root chain node unreachable: {e}") from e
