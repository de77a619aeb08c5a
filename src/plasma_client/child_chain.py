#!/usr/bin/env python3
"""
Child chain client.

Talks to the watcher (UTXOs, balances, history, transaction creation and exit
data) and to the child chain (transaction submission) over JSON POST.
"""

import json
import logging
from typing import Any

import httpx

from .config import normalize_url
from .errors import ChildChainError
from .models import ExitData, SignedTransaction, SubmitResult, Utxo
from .utils.tx_encoder import PlasmaTxEncoder

logger = logging.getLogger(__name__)


class ChildChainClient:
    """Client for the child chain watcher and transaction services.

    Every endpoint is a JSON POST answering with the envelope
    {"success": bool, "data": ...}; failures carry {"code", "description"}
    in data.
    """

    REQUEST_TIMEOUT: float = 30.0

    def __init__(self, watcher_url: str, child_chain_url: str | None = None) -> None:
        """Initialize the client.

        Args:
            watcher_url: Base URL of the watcher
            child_chain_url: Base URL for transaction submission (defaults to the watcher)
        """
        self.watcher_url: str = normalize_url(watcher_url)
        self.child_chain_url: str = normalize_url(child_chain_url or watcher_url)

    async def _post(self, base_url: str, path: str, payload: Any) -> Any:
        """Post a request and unwrap the response envelope.

        Args:
            base_url: Normalized service URL
            path: Endpoint name, e.g. 'account.get_utxos'
            payload: JSON payload to send

        Returns:
            The envelope's data field

        Raises:
            ChildChainError: If the service cannot be reached, answers with a
                non-2xx status or reports an error in the envelope
        """
        full_url: str = base_url + path
        try:
            async with httpx.AsyncClient() as client:
                logger.debug(f"Posting to {full_url}: {json.dumps(payload)}")
                response: httpx.Response = await client.post(
                    full_url, json=payload, timeout=self.REQUEST_TIMEOUT
                )
                response.raise_for_status()
                body: dict[str, Any] = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Request to {full_url} failed: {e}")
            raise ChildChainError("http_error", f"{path}: {e}") from e
        except ValueError as e:
            raise ChildChainError("invalid_response", f"Malformed JSON from {path}: {e}") from e

        match body:
            case {"success": True, "data": data}:
                return data
            case {"success": False, "data": {"code": code, **rest}}:
                description = rest.get("description", "")
                logger.error(f"{path} failed: {code} {description}")
                raise ChildChainError(code, description)
            case _:
                raise ChildChainError("invalid_response", f"Unexpected response from {path}: {body}")

    async def get_utxos(self, address: str) -> list[Utxo]:
        """Fetch every UTXO owned by address."""
        data = await self._post(self.watcher_url, "account.get_utxos", {"address": address})
        return [Utxo.from_watcher(entry) for entry in data]

    async def get_balance(self, address: str) -> dict[str, int]:
        """Fetch the child chain balance of address, per currency."""
        data = await self._post(self.watcher_url, "account.get_balance", {"address": address})
        return {entry["currency"]: int(entry["amount"]) for entry in data}

    async def get_transactions(self, address: str, limit: int = 100) -> list[dict[str, Any]]:
        """Fetch the most recent transactions involving address."""
        return await self._post(
            self.watcher_url,
            "account.get_transactions",
            {"address": address, "limit": limit}
        )

    async def create_transaction(
        self,
        owner: str,
        payments: list[dict[str, Any]],
        fee_currency: str
    ) -> dict[str, Any]:
        """Ask the watcher to pick inputs and encode a transaction.

        Optional: PlasmaAccount builds transactions locally.
        """
        payload = {
            "owner": owner,
            "payments": payments,
            "fee": {"currency": fee_currency},
        }
        return await self._post(self.watcher_url, "transaction.create", payload)

    async def submit_transaction(self, signed_tx: SignedTransaction) -> SubmitResult:
        """Submit a signed transaction to the child chain.

        Returns:
            Block number, transaction index and hash of the accepted transaction
        """
        encoded = PlasmaTxEncoder.encode_signed(signed_tx)
        data = await self._post(
            self.child_chain_url, "transaction.submit", {"transaction": encoded}
        )
        return SubmitResult(
            blknum=int(data["blknum"]),
            txindex=int(data["txindex"]),
            txhash=data["txhash"]
        )

    async def get_exit_data(self, utxo: Utxo) -> ExitData:
        """Fetch the inclusion proof and transaction bytes needed to exit utxo."""
        data = await self._post(
            self.watcher_url, "utxo.get_exit_data", {"utxo_pos": utxo.position}
        )
        return ExitData(
            utxo_position=int(data["utxo_pos"]),
            proof=PlasmaTxEncoder.to_bytes_safe(data["proof"]),
            txbytes=PlasmaTxEncoder.to_bytes_safe(data["txbytes"])
        )
