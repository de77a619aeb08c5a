#!/usr/bin/env python3
"""Account orchestration for the plasma client.

PlasmaAccount owns the lifecycle state of one account and composes the chain
clients, UTXO selection, transaction building and signing into the public
operations: deposit, transfer and exit.
"""

import asyncio
import logging
from typing import Any

from web3 import Web3
from web3.types import TxReceipt

from .amount_selector import select_utxos
from .child_chain import ChildChainClient
from .config import PlasmaConfig
from .confirmation_poller import ConfirmationPoller
from .errors import (
    AlreadyInitializing,
    ExitFailure,
    InsufficientFunds,
    InvalidAmount,
    NotInitialized,
    PlasmaError,
    SubmissionFailure,
)
from .models import ETH_CURRENCY, AccountState, InitPhase, SignedTransaction, Utxo, same_currency
from .root_chain import RootChainClient
from .signer import LocalKeySigner, ProviderSigner, TypedDataSigner
from .transaction_builder import build_deposit, build_transaction, build_typed_data
from .utils.contract_utility import ContractUtility

logger = logging.getLogger(__name__)

ACCOUNT_CONFIG_ERROR = (
    "Account configuration is missing. To use the plasma client, configure a "
    "private key (PRIVATE_KEY) or a provider with an unlocked account."
)
ACCOUNT_BALANCE_ERROR = (
    "The configured account does not have enough funds. "
    "Please make sure this account has root chain ETH."
)

SERVICE_CHECK_ON = "on"
SERVICE_CHECK_OFF = "off"


def _parse_amount(amount: Any, action: str) -> int:
    """Turn amount into a positive int; floats are rejected outright."""
    if isinstance(amount, bool) or not isinstance(amount, (int, str)):
        raise InvalidAmount(f"Amount must be an integer number of base units, got {amount!r}")
    if isinstance(amount, str):
        digits = amount.strip()
        if not (digits.isascii() and digits.isdecimal()):
            raise InvalidAmount(f"Amount must be an integer number of base units, got {amount!r}")
        amount = int(amount)
    if amount <= 0:
        raise InvalidAmount(f"You must {action} more than 0 wei.")
    return amount


class PlasmaAccount:
    """
    Drives deposits, transfers and exits for a single account.

    Lifecycle: uninitialized -> initializing -> ready. Every operation
    requires ready. The UTXO set is never cached across operations; each
    operation re-reads it from the watcher.
    """

    def __init__(
        self,
        config: PlasmaConfig,
        signer: TypedDataSigner | None = None,
        address: str | None = None,
        root_chain: RootChainClient | None = None,
        child_chain: ChildChainClient | None = None,
        poller: ConfirmationPoller | None = None
    ) -> None:
        """
        Initialize the PlasmaAccount.

        Clients not passed in are built from config during initialize().

        Args:
            config: Client configuration
            signer: Typed data signer; defaults to the configured private key,
                else the root chain provider
            address: Account address; defaults to the signer's or the
                provider's first account
            root_chain: Root chain contract client
            child_chain: Child chain services client
            poller: Confirmation poller for root chain transactions
        """
        self.config = config
        self.signer = signer
        self.root_chain = root_chain
        self.child_chain = child_chain
        self.poller = poller
        self._address_override = address
        self.state = AccountState()

    @property
    def phase(self) -> InitPhase:
        return self.state.phase

    @property
    def address(self) -> str:
        return self.state.address

    def _require_ready(self) -> None:
        if self.state.phase is not InitPhase.READY:
            error = NotInitialized()
            logger.error(str(error))
            raise error

    def _build_clients(self) -> None:
        key = self.config.private_key
        if self.root_chain is None:
            contract_util = ContractUtility(self.config.root_chain.rpc_url, secret=key or "")
            self.root_chain = RootChainClient(
                contract_util=contract_util,
                plasma_contract_address=self.config.root_chain.plasma_contract_address,
                exit_bond=self.config.exit_bond
            )
        if self.child_chain is None:
            self.child_chain = ChildChainClient(
                watcher_url=self.config.child_chain.watcher_url,
                child_chain_url=self.config.child_chain.child_chain_url
            )
        if self.poller is None:
            self.poller = ConfirmationPoller(
                self.root_chain.w3,
                poll_interval_ms=self.config.confirmation.poll_interval_ms,
                blocks_to_wait=self.config.confirmation.blocks_to_wait
            )
        if self.signer is None:
            self.signer = LocalKeySigner(key) if key else ProviderSigner(self.root_chain.w3)

    async def _resolve_address(self) -> str:
        if self._address_override:
            return Web3.to_checksum_address(self._address_override)
        if isinstance(self.signer, LocalKeySigner):
            return self.signer.address
        accounts = await asyncio.to_thread(lambda: self.root_chain.w3.eth.accounts)
        if not accounts:
            raise PlasmaError(ACCOUNT_CONFIG_ERROR)
        return Web3.to_checksum_address(accounts[0])

    async def initialize(self, force: bool = False) -> str:
        """
        Initialize the account used for the root and child chains.

        Args:
            force: Re-initialize an account that is already ready

        Returns:
            Status message

        Raises:
            AlreadyInitializing: If an initialization is already running
            PlasmaError: If initialization fails; the account is left uninitialized
        """
        # No await between the check and the set
        if self.state.phase is InitPhase.INITIALIZING:
            error = AlreadyInitializing()
            logger.error(str(error))
            raise error
        if self.state.phase is InitPhase.READY and not force:
            raise PlasmaError(
                "The Plasma chain is already initialized. "
                "Use force to reinitialize it."
            )
        self.state = AccountState(phase=InitPhase.INITIALIZING)

        try:
            self._build_clients()
            self.state.address = await self._resolve_address()

            # A missing balance does not block initialization
            try:
                self.state.root_balance = await self.root_chain.get_balance(self.state.address)
                if self.state.root_balance <= 0:
                    logger.error(ACCOUNT_BALANCE_ERROR)
            except Exception as e:
                logger.error(f"Error getting balance for account {self.state.address}: {e}")

            self.state.child_balances = await self.child_chain.get_balance(self.state.address)
            self.state.phase = InitPhase.READY
        except Exception as e:
            self.state = AccountState()
            message = f"Error initializing Plasma chain: {e}"
            logger.error(message)
            raise PlasmaError(message) from e

        message = f"Plasma chain initialized for account {self.state.address}"
        logger.info(message)
        return message

    async def refresh_balances(self) -> AccountState:
        """Re-read root and child chain balances of the account."""
        self._require_ready()
        self.state.root_balance = await self.root_chain.get_balance(self.state.address)
        self.state.child_balances = await self.child_chain.get_balance(self.state.address)
        return self.state

    async def deposit(self, amount: int | str, currency: str = ETH_CURRENCY, approve: bool = True) -> str:
        """
        Deposit root chain funds into the child chain.

        ETH is sent straight to the plasma contract. Tokens are first approved
        (unless approve is False), the approval is confirmed on the root
        chain, and then deposited.

        Args:
            amount: Amount in base units
            currency: ETH_CURRENCY or an ERC20 token address
            approve: Send the ERC20 approval before a token deposit

        Returns:
            Status message with a root chain explorer link

        Raises:
            NotInitialized, InvalidAmount, InsufficientFunds,
            SubmissionFailure, UncledTransaction
        """
        self._require_ready()
        try:
            amount = _parse_amount(amount, "deposit")
        except InvalidAmount as e:
            logger.error(str(e))
            raise

        is_eth = same_currency(currency, ETH_CURRENCY)
        unit = "wei" if is_eth else f"of token {currency}"
        address = self.state.address

        try:
            if is_eth:
                if amount > self.state.root_balance:
                    # Recheck in case the balance changed since initialization
                    self.state.root_balance = await self.root_chain.get_balance(address)
                available = self.state.root_balance
            else:
                available = await self.root_chain.get_token_balance(currency, address)
        except PlasmaError as e:
            logger.error(f"Error reading balance before deposit: {e}")
            raise
        if amount > available:
            message = (
                f"You do not have enough funds for this deposit. Please deposit more funds "
                f"in to {address} and then try again."
            )
            logger.error(message)
            raise InsufficientFunds(message)

        logger.info(f"Depositing {amount} {unit}...")
        deposit_tx = build_deposit(address, amount, currency)
        try:
            receipt: TxReceipt
            if is_eth:
                receipt = await self.root_chain.deposit_eth(deposit_tx, amount, address)
                self.state.root_balance = max(self.state.root_balance - amount, 0)
            else:
                if approve:
                    approve_hash = await self.root_chain.approve_token(currency, amount, address)
                    await self.poller.confirm(approve_hash)
                receipt = await self.root_chain.deposit_token(deposit_tx, address)
        except PlasmaError as e:
            logger.error(f"Error depositing {amount} {unit}: {e}")
            raise
        except Exception as e:
            message = f"Error depositing {amount} {unit}: {e}"
            logger.error(message)
            raise SubmissionFailure(message, cause=e) from e

        tx_hash = Web3.to_hex(receipt["transactionHash"])
        message = (
            f"Successfully deposited {amount} {unit} in to the Plasma chain.\n"
            f"View the transaction: {self.config.explorer.root_tx_link(tx_hash)}."
        )
        logger.info(message)
        return message

    async def transfer(self, to_address: str, amount: int | str, currency: str = ETH_CURRENCY) -> str:
        """
        Send funds to another account on the child chain.

        Args:
            to_address: Recipient address
            amount: Amount in base units
            currency: Currency to send

        Returns:
            Status message with a child chain explorer link

        Raises:
            NotInitialized, InvalidAmount, ChildChainError, NoUtxoLargeEnough,
            NoFeeUtxoAvailable, SubmissionFailure
        """
        self._require_ready()
        try:
            amount = _parse_amount(amount, "send")
            if not Web3.is_address(to_address):
                raise PlasmaError(f"Invalid destination address: {to_address}")
        except PlasmaError as e:
            logger.error(str(e))
            raise
        to_address = Web3.to_checksum_address(to_address)
        sender = self.state.address

        try:
            utxos = await self.child_chain.get_utxos(sender)
            selected = select_utxos(
                utxos,
                amount,
                currency,
                include_fee=not same_currency(currency, ETH_CURRENCY),
                max_inputs=self.config.max_inputs
            )
        except PlasmaError as e:
            logger.error(str(e))
            raise

        body = build_transaction(selected, to_address, amount, currency, sender)
        typed_data = build_typed_data(body, self.root_chain.plasma_contract_address)

        try:
            # Every input belongs to the sender, so one signature covers them all
            signature = await self.signer.sign_typed_data(typed_data, sender)
            signed_tx = SignedTransaction(body=body, signatures=(signature,) * len(body.inputs))
            result = await self.child_chain.submit_transaction(signed_tx)
        except Exception as e:
            message = f"Error submitting transaction on the child chain: {e}"
            logger.error(message)
            raise SubmissionFailure(message, cause=e) from e

        message = (
            f"Successfully submitted tx on the child chain: {result}\n"
            f"View the transaction: {self.config.explorer.child_tx_link(result.txhash)}"
        )
        logger.info(message)
        return message

    async def _exit_utxo(self, utxo: Utxo) -> str:
        exit_data = await self.child_chain.get_exit_data(utxo)
        receipt = await self.root_chain.start_standard_exit(
            exit_data.utxo_position,
            exit_data.txbytes,
            exit_data.proof,
            self.state.address
        )
        tx_hash = Web3.to_hex(receipt["transactionHash"])
        return (
            f"Started standard exit of UTXO {utxo.position} ({utxo.amount} of {utxo.currency}).\n"
            f"View the transaction: {self.config.explorer.root_tx_link(tx_hash)}."
        )

    async def exit(self, address: str | None = None) -> list[str]:
        """
        Start a standard exit for every UTXO of an address.

        All exits are launched together and joined; one failing exit does not
        stop the others.

        Args:
            address: Owner of the UTXOs; defaults to the account

        Returns:
            One status message per exited UTXO

        Raises:
            NotInitialized: If the account is not ready
            ChildChainError: If the UTXOs cannot be fetched
            ExitFailure: If any exit failed; lists the failed UTXOs and carries
                the messages of the exits that succeeded
        """
        self._require_ready()
        owner = Web3.to_checksum_address(address) if address else self.state.address

        try:
            utxos = await self.child_chain.get_utxos(owner)
        except PlasmaError as e:
            logger.error(f"Error fetching UTXOs of {owner}: {e}")
            raise
        if not utxos:
            logger.info(f"No UTXOs to exit for {owner}")
            return []

        logger.info(f"Starting exits for {len(utxos)} UTXOs of {owner}")
        results = await asyncio.gather(
            *(self._exit_utxo(utxo) for utxo in utxos),
            return_exceptions=True
        )

        messages: list[str] = []
        failures: list[tuple[Utxo, Exception]] = []
        for utxo, result in zip(utxos, results):
            if isinstance(result, Exception):
                failures.append((utxo, result))
            elif isinstance(result, BaseException):
                raise result
            else:
                messages.append(result)

        if failures:
            error = ExitFailure(failures, succeeded=messages)
            logger.error(f"{len(failures)} of {len(utxos)} exits failed:\n{error}")
            raise error

        for message in messages:
            logger.info(message)
        return messages

    async def service_check(self) -> dict[str, str]:
        """Report the root chain node name and whether it is reachable."""
        if self.root_chain is None:
            return {"name": "Plasma chain not found", "status": SERVICE_CHECK_OFF}
        try:
            version = await self.root_chain.client_version()
        except Exception as e:
            logger.warning(f"Service check failed: {e}")
            version = ""
        if not version:
            return {"name": "Plasma chain not found", "status": SERVICE_CHECK_OFF}
        if "/" not in version:
            return {"name": version, "status": SERVICE_CHECK_ON}

        node_name, rest = version.split("/", 1)
        version_number = rest.split("/")[0].split("-")[0]
        return {"name": f"{node_name} {version_number} (Plasma)", "status": SERVICE_CHECK_ON}

    def status(self) -> dict[str, Any]:
        """
        Get current status of the account.

        Returns:
            Dictionary with status information
        """
        return {
            "phase": self.state.phase.value,
            "address": self.state.address,
            "root_balance": self.state.root_balance,
            "child_balances": dict(self.state.child_balances),
            "plasma_contract": self.config.root_chain.plasma_contract_address,
            "watcher_url": self.config.child_chain.watcher_url,
        }
