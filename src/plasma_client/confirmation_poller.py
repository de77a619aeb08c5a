#!/usr/bin/env python3
"""Root chain confirmation polling.

Waits until a transaction has a receipt and is buried under the configured
number of blocks, and detects transactions that were reorganized out of their
block ("uncled") on the way. Web3 calls block, so each check runs in a worker
thread and the event loop stays free while several transactions are polled.
"""

import asyncio
import logging
from collections.abc import Sequence
from typing import Any

from web3 import Web3
from web3.exceptions import TransactionNotFound
from web3.types import TxReceipt

from .errors import ConfirmationStopped, UncledTransaction

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_MS = 1000
DEFAULT_BLOCKS_TO_WAIT = 1


class ConfirmationPoller:
    """Polls the root chain until transactions reach a confirmation depth.

    There is no timeout: a transaction that never gets a receipt is polled
    forever. Use stop() or wrap confirm() in asyncio.wait_for to bound it.
    """

    def __init__(
        self,
        w3: Web3,
        poll_interval_ms: int = DEFAULT_INTERVAL_MS,
        blocks_to_wait: int = DEFAULT_BLOCKS_TO_WAIT
    ) -> None:
        """
        Initialize the poller.

        Args:
            w3: Root chain Web3 instance
            poll_interval_ms: Delay between checks in milliseconds
            blocks_to_wait: Blocks required on top of the receipt's block;
                0 accepts the first receipt
        """
        self.w3 = w3
        self.poll_interval_ms = poll_interval_ms
        self.blocks_to_wait = blocks_to_wait
        self._stopped = asyncio.Event()

    def stop(self) -> None:
        """Make every pending confirm() give up at its next wake-up."""
        logger.info("Stopping confirmation polling")
        self._stopped.set()

    def reset(self) -> None:
        """Allow the poller to be used again after stop()."""
        self._stopped.clear()

    async def _wait(self, tx_hash: str) -> None:
        try:
            await asyncio.wait_for(self._stopped.wait(), timeout=self.poll_interval_ms / 1000)
        except asyncio.TimeoutError:
            return
        raise ConfirmationStopped(f"Stopped waiting for transaction {tx_hash}")

    def _get_receipt(self, tx_hash: str) -> TxReceipt | None:
        try:
            return self.w3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            return None

    def _check_depth(self, tx_hash: str, receipt_block: int) -> bool:
        """Return True once the transaction is deep enough.

        Raises:
            UncledTransaction: If the depth is reached but the transaction is
                no longer in its recorded block
        """
        current = self.w3.eth.block_number
        if current - receipt_block < self.blocks_to_wait:
            return False

        try:
            txn: Any = self.w3.eth.get_transaction(tx_hash)
        except TransactionNotFound:
            txn = None

        if txn is None or txn.get("blockNumber") != receipt_block:
            raise UncledTransaction(tx_hash)
        return True

    async def confirm(self, tx_hash: str) -> TxReceipt:
        """
        Wait for a single transaction to be confirmed.

        Args:
            tx_hash: Hash of the root chain transaction

        Returns:
            The transaction receipt

        Raises:
            UncledTransaction: If the transaction left its block
            ConfirmationStopped: If stop() was called first
        """
        if isinstance(tx_hash, (bytes, bytearray)):
            tx_hash = Web3.to_hex(tx_hash)
        logger.debug(f"Waiting for {tx_hash} ({self.blocks_to_wait} blocks)")

        while True:
            if self._stopped.is_set():
                raise ConfirmationStopped(f"Stopped waiting for transaction {tx_hash}")

            receipt = await asyncio.to_thread(self._get_receipt, tx_hash)
            if receipt is None or (self.blocks_to_wait > 0 and receipt.get("blockNumber") is None):
                await self._wait(tx_hash)
                continue

            if self.blocks_to_wait == 0:
                return receipt

            try:
                if await asyncio.to_thread(self._check_depth, tx_hash, receipt["blockNumber"]):
                    logger.info(f"Transaction {tx_hash} confirmed in block {receipt['blockNumber']}")
                    return receipt
            except UncledTransaction:
                logger.error(f"Transaction {tx_hash} ended up in an uncle block")
                raise
            except Exception as e:
                # RPC hiccups while checking depth are retried
                logger.warning(f"Error checking depth of {tx_hash}: {e}")

            await self._wait(tx_hash)

    async def confirm_all(self, tx_hashes: Sequence[str]) -> list[TxReceipt]:
        """
        Confirm several transactions independently.

        Succeeds only if every transaction is confirmed. The first failure
        cancels the remaining polls and is raised. Cancelling the caller
        (e.g. through asyncio.wait_for) cancels every poll as well.

        Args:
            tx_hashes: Hashes to confirm

        Returns:
            Receipts in the order of tx_hashes
        """
        tasks = [asyncio.create_task(self.confirm(h)) for h in tx_hashes]
        if not tasks:
            return []

        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
            for task in done:
                if (error := task.exception()) is not None:
                    raise error
            return [t.result() for t in tasks]
        finally:
            unfinished = [t for t in tasks if not t.done()]
            for task in unfinished:
                task.cancel()
            if unfinished:
                await asyncio.gather(*unfinished, return_exceptions=True)
