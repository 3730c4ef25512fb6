"""Ethereum-style JSON-RPC ledger verifier."""

from __future__ import annotations

import itertools
import logging
from typing import Any

import httpx

from claimledger.modules.references.models import LedgerVerification

logger = logging.getLogger(__name__)


class LedgerRpcError(RuntimeError):
    """The node returned a JSON-RPC error object."""


def _hex_to_int(value: str | None) -> int | None:
    if value is None:
        return None
    return int(value, 16)


class JsonRpcLedgerVerifier:
    """Confirm a transaction against a node before it may pay for anything.

    A reference is valid when its receipt exists with status 1, it was sent
    to ``target_address`` (when configured) and it sits at least
    ``confirmations`` blocks deep.
    """

    def __init__(
        self,
        rpc_url: str,
        *,
        target_address: str | None = None,
        confirmations: int = 0,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.rpc_url = rpc_url
        self.target_address = target_address.lower() if target_address else None
        self.confirmations = confirmations
        self.timeout = timeout
        self._transport = transport
        self._ids = itertools.count(1)

    async def verify_reference(self, tx_hash: str) -> LedgerVerification:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                receipt = await self._call(client, "eth_getTransactionReceipt", [tx_hash])
                if receipt is None:
                    return LedgerVerification(valid=False, reason="transaction receipt not found")
                if _hex_to_int(receipt.get("status")) != 1:
                    return LedgerVerification(valid=False, reason="transaction failed on the ledger")

                to_address = (receipt.get("to") or "").lower()
                if self.target_address and to_address != self.target_address:
                    return LedgerVerification(valid=False, reason="transaction was not sent to the target address")

                block_number = _hex_to_int(receipt.get("blockNumber"))
                if self.confirmations > 0:
                    latest = _hex_to_int(await self._call(client, "eth_blockNumber", []))
                    depth = (latest or 0) - (block_number or 0) + 1
                    if depth < self.confirmations:
                        return LedgerVerification(
                            valid=False,
                            reason=f"insufficient confirmations: {depth}/{self.confirmations}",
                        )

                tx = await self._call(client, "eth_getTransactionByHash", [tx_hash]) or {}
                value = _hex_to_int(tx.get("value"))
        except (httpx.HTTPError, LedgerRpcError, ValueError) as exc:
            logger.warning("Ledger lookup for %s failed: %s", tx_hash, exc)
            return LedgerVerification(valid=False, reason=f"ledger unavailable: {exc}")

        sender = receipt.get("from") or tx.get("from")
        return LedgerVerification(
            valid=True,
            subject=sender.lower() if sender else None,
            metadata={
                "block_number": block_number,
                "to": to_address or None,
                "value": str(value) if value is not None else None,
            },
        )

    async def _call(self, client: httpx.AsyncClient, method: str, params: list[Any]) -> Any:
        response = await client.post(
            self.rpc_url,
            json={"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params},
        )
        response.raise_for_status()
        body = response.json()
        if body.get("error"):
            raise LedgerRpcError(f"{method}: {body['error']}")
        return body.get("result")
