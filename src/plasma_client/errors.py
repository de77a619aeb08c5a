#!/usr/bin/env python3
"""Exception types raised by the plasma client.

Every failure surfaced to a caller carries a human-readable message; the
subclasses let callers tell the failure kinds apart without parsing text.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import Utxo


class PlasmaError(Exception):
    """Base class for all plasma client failures."""


class NotInitialized(PlasmaError):
    """An operation was attempted before the account finished initializing."""

    def __init__(self, message: str = "Please wait for the Plasma chain to initialize...") -> None:
        super().__init__(message)


class AlreadyInitializing(PlasmaError):
    """initialize() was called while a previous initialization is running."""

    def __init__(self, message: str = "Already initializing the Plasma chain, please wait...") -> None:
        super().__init__(message)


class InvalidAmount(PlasmaError):
    """Amount was zero, negative or not an integer."""


class InsufficientFunds(PlasmaError):
    """The account balance is below the requested amount."""


class NoUtxoLargeEnough(PlasmaError):
    """The bounded UTXO scan could not cover the requested amount."""


class NoFeeUtxoAvailable(PlasmaError):
    """No ETH UTXO is left over to pay the fee of a token transfer."""


class SubmissionFailure(PlasmaError):
    """A signed transaction or contract call was rejected."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class ChildChainError(PlasmaError):
    """The watcher or child chain service answered with an error envelope."""

    def __init__(self, code: str, description: str = "") -> None:
        self.code = code
        self.description = description
        super().__init__(f"{code}: {description}" if description else code)


class UncledTransaction(PlasmaError):
    """A root chain transaction was reorganized out of its block."""

    def __init__(self, tx_hash: str) -> None:
        self.tx_hash = tx_hash
        super().__init__(f"Transaction with hash: {tx_hash} ended up in an uncle block.")


class ConfirmationStopped(PlasmaError):
    """The poller was stopped before the transaction was confirmed."""


class ExitFailure(PlasmaError):
    """One or more UTXOs failed to exit.

    Attributes:
        failures: (utxo, error) pairs for every UTXO whose exit failed
        succeeded: Status messages of the exits that did go through
    """

    def __init__(
        self,
        failures: list[tuple["Utxo", Exception]],
        succeeded: list[str] | None = None
    ) -> None:
        self.failures = failures
        self.succeeded = succeeded or []
        lines = [
            f"Error exiting UTXO {utxo.position}: {error}"
            for utxo, error in failures
        ]
        super().__init__("\n".join(lines))

    @property
    def failed_positions(self) -> list[int]:
        """Positions of the UTXOs that failed to exit."""
        return [utxo.position for utxo, _ in self.failures]
