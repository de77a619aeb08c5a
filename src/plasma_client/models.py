#!/usr/bin/env python3
"""Data models for the plasma client.

Immutable data classes for UTXOs, transaction bodies and exit data, plus the
mutable account state owned by PlasmaAccount.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from web3 import Web3

ETH_CURRENCY = "0x0000000000000000000000000000000000000000"

MAX_INPUTS = 4
MAX_OUTPUTS = 4

# utxo_pos = blknum * BLOCK_OFFSET + txindex * TX_OFFSET + oindex
BLOCK_OFFSET = 1_000_000_000
TX_OFFSET = 10_000


def same_currency(a: str, b: str) -> bool:
    """Compare two currency addresses ignoring checksum case."""
    return a.lower() == b.lower()


class InitPhase(Enum):
    """Lifecycle phase of a PlasmaAccount."""
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"


@dataclass(frozen=True, slots=True)
class Utxo:
    """An unspent output on the child chain.

    Attributes:
        position: Chain-assigned utxo_pos
        owner: Address that owns the output
        currency: Token address (ETH_CURRENCY for ETH)
        amount: Amount in the currency's base unit
    """

    position: int
    owner: str
    currency: str
    amount: int

    @property
    def blknum(self) -> int:
        return self.position // BLOCK_OFFSET

    @property
    def txindex(self) -> int:
        return (self.position % BLOCK_OFFSET) // TX_OFFSET

    @property
    def oindex(self) -> int:
        return self.position % TX_OFFSET

    @classmethod
    def from_watcher(cls, data: dict[str, Any]) -> "Utxo":
        """Build a Utxo from an account.get_utxos entry."""
        position = data.get("utxo_pos")
        if position is None:
            position = (
                int(data["blknum"]) * BLOCK_OFFSET
                + int(data["txindex"]) * TX_OFFSET
                + int(data["oindex"])
            )
        return cls(
            position=int(position),
            owner=Web3.to_checksum_address(data["owner"]),
            currency=data["currency"],
            amount=int(data["amount"])
        )

    def __str__(self) -> str:
        return f"Utxo(pos={self.position}, amount={self.amount}, currency={self.currency[:10]}...)"


@dataclass(frozen=True, slots=True)
class Output:
    """A transaction output: who receives how much of which currency."""
    owner: str
    currency: str
    amount: int


@dataclass(frozen=True, slots=True)
class TransactionBody:
    """An unsigned child chain transaction.

    Inputs and outputs are ordered; the order is part of the signed payload.
    A body with no inputs is a deposit.
    """

    inputs: tuple[Utxo, ...]
    outputs: tuple[Output, ...]

    def __post_init__(self) -> None:
        if len(self.inputs) > MAX_INPUTS:
            raise ValueError(f"Too many inputs: {len(self.inputs)} (max {MAX_INPUTS})")
        if not self.outputs:
            raise ValueError("Transaction needs at least one output")
        if len(self.outputs) > MAX_OUTPUTS:
            raise ValueError(f"Too many outputs: {len(self.outputs)} (max {MAX_OUTPUTS})")
        for output in self.outputs:
            if output.amount < 0:
                raise ValueError(f"Negative output amount: {output.amount}")

    @property
    def is_deposit(self) -> bool:
        return not self.inputs

    def input_total(self, currency: str) -> int:
        return sum(u.amount for u in self.inputs if same_currency(u.currency, currency))

    def output_total(self, currency: str) -> int:
        return sum(o.amount for o in self.outputs if same_currency(o.currency, currency))


@dataclass(frozen=True, slots=True)
class SignedTransaction:
    """A transaction body with one signature per input."""
    body: TransactionBody
    signatures: tuple[bytes, ...]

    def __post_init__(self) -> None:
        if len(self.signatures) != len(self.body.inputs):
            raise ValueError(
                f"Expected {len(self.body.inputs)} signatures, got {len(self.signatures)}"
            )


@dataclass(frozen=True, slots=True)
class ExitData:
    """Everything the root chain needs to start a standard exit for a UTXO."""
    utxo_position: int
    proof: bytes
    txbytes: bytes


@dataclass(frozen=True, slots=True)
class SubmitResult:
    """Child chain response to transaction.submit."""
    blknum: int
    txindex: int
    txhash: str


@dataclass(slots=True)
class AccountState:
    """State of the account driving the client.

    Mutated only by PlasmaAccount; replaced wholesale on re-initialization.
    """
    address: str = ""
    root_balance: int = 0
    child_balances: dict[str, int] = field(default_factory=dict)
    phase: InitPhase = InitPhase.UNINITIALIZED
