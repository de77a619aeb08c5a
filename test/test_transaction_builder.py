#!/usr/bin/env python3
"""Unit tests for transaction assembly and typed data rendering."""

import pytest
import rlp

from src.plasma_client.models import ETH_CURRENCY, Output, TransactionBody, Utxo
from src.plasma_client.transaction_builder import (
    DOMAIN_NAME,
    DOMAIN_SALT,
    TYPED_DATA_TYPES,
    build_deposit,
    build_transaction,
    build_typed_data,
)

SENDER = "0x1111111111111111111111111111111111111111"
DEST = "0x3333333333333333333333333333333333333333"
TOKEN = "0x2222222222222222222222222222222222222222"
CONTRACT = "0x85BfE05492aFC3D04Ff3B2ca6771ACF6f853d90d"


def make_utxo(position: int, amount: int, currency: str = TOKEN) -> Utxo:
    return Utxo(position=position, owner=SENDER, currency=currency, amount=amount)


class TestBuildTransaction:
    """Tests for build_transaction."""

    def test_payment_then_change(self):
        utxos = [make_utxo(1_000_000_000, 100), make_utxo(2_000_000_000, 50)]

        body = build_transaction(utxos, DEST, 120, TOKEN, SENDER)

        assert body.inputs == tuple(utxos)
        assert body.outputs == (
            Output(owner=DEST, currency=TOKEN, amount=120),
            Output(owner=SENDER, currency=TOKEN, amount=30),
        )

    def test_exact_amount_has_no_change(self):
        body = build_transaction([make_utxo(1, 100)], DEST, 100, TOKEN, SENDER)

        assert body.outputs == (Output(owner=DEST, currency=TOKEN, amount=100),)

    def test_fee_utxo_returned_in_full(self):
        utxos = [make_utxo(1, 100), make_utxo(2, 7, ETH_CURRENCY)]

        body = build_transaction(utxos, DEST, 60, TOKEN, SENDER)

        assert body.outputs == (
            Output(owner=DEST, currency=TOKEN, amount=60),
            Output(owner=SENDER, currency=TOKEN, amount=40),
            Output(owner=SENDER, currency=ETH_CURRENCY, amount=7),
        )

    def test_per_currency_totals_are_conserved(self):
        utxos = [make_utxo(1, 80), make_utxo(2, 45), make_utxo(3, 9, ETH_CURRENCY)]

        body = build_transaction(utxos, DEST, 100, TOKEN, SENDER)

        for currency in (TOKEN, ETH_CURRENCY):
            assert body.input_total(currency) == body.output_total(currency)

    def test_change_uses_every_input(self):
        utxos = [make_utxo(1, 30), make_utxo(2, 30), make_utxo(3, 30)]

        body = build_transaction(utxos, DEST, 70, TOKEN, SENDER)

        assert body.outputs[1] == Output(owner=SENDER, currency=TOKEN, amount=20)

    def test_inputs_short_of_amount(self):
        with pytest.raises(ValueError, match="does not cover amount"):
            build_transaction([make_utxo(1, 10)], DEST, 50, TOKEN, SENDER)

    def test_too_many_inputs_rejected(self):
        utxos = [make_utxo(i, 10) for i in range(5)]

        with pytest.raises(ValueError, match="Too many inputs"):
            build_transaction(utxos, DEST, 50, TOKEN, SENDER)


class TestBuildDeposit:
    """Tests for build_deposit."""

    def test_deposit_encoding(self):
        encoded = build_deposit(SENDER, 1000)

        tx_type, inputs, outputs, tx_data, metadata = rlp.decode(encoded)
        assert tx_type == b"\x01"
        assert len(inputs) == 0
        assert len(outputs) == 1
        output_type, (owner, currency, amount) = outputs[0]
        assert output_type == b"\x01"
        assert owner == bytes.fromhex(SENDER[2:])
        assert currency == b"\x00" * 20
        assert int.from_bytes(amount, "big") == 1000
        assert tx_data == b""
        assert metadata == b"\x00" * 32

    def test_token_deposit_currency(self):
        _, _, outputs, _, _ = rlp.decode(build_deposit(SENDER, 5, TOKEN))

        assert outputs[0][1][1] == bytes.fromhex(TOKEN[2:])


class TestBuildTypedData:
    """Tests for build_typed_data."""

    def test_structure(self):
        utxo = make_utxo(3 * 1_000_000_000 + 2 * 10_000 + 1, 100)
        body = build_transaction([utxo], DEST, 60, TOKEN, SENDER)

        typed = build_typed_data(body, CONTRACT.lower())

        assert typed["primaryType"] == "Transaction"
        assert typed["types"] == TYPED_DATA_TYPES
        assert typed["domain"] == {
            "name": DOMAIN_NAME,
            "version": "1",
            "verifyingContract": CONTRACT,
            "salt": DOMAIN_SALT,
        }
        message = typed["message"]
        assert message["txType"] == 1
        assert message["input0"] == {"blknum": 3, "txindex": 2, "oindex": 1}
        assert message["txData"] == 0
        assert message["metadata"] == "0x" + "00" * 32

    def test_slots_padded_to_four(self):
        body = build_transaction([make_utxo(1, 100)], DEST, 60, TOKEN, SENDER)

        message = build_typed_data(body, CONTRACT)["message"]

        for i in range(1, 4):
            assert message[f"input{i}"] == {"blknum": 0, "txindex": 0, "oindex": 0}
        assert message["output0"] == {
            "outputType": 1,
            "outputGuard": DEST,
            "currency": TOKEN,
            "amount": 60,
        }
        assert message["output1"]["amount"] == 40
        for i in range(2, 4):
            assert message[f"output{i}"] == {
                "outputType": 0,
                "outputGuard": ETH_CURRENCY,
                "currency": ETH_CURRENCY,
                "amount": 0,
            }

    def test_body_with_four_outputs(self):
        body = TransactionBody(
            inputs=(make_utxo(1, 100),),
            outputs=tuple(Output(owner=DEST, currency=TOKEN, amount=25) for _ in range(4))
        )

        message = build_typed_data(body, CONTRACT)["message"]

        assert [message[f"output{i}"]["amount"] for i in range(4)] == [25, 25, 25, 25]
