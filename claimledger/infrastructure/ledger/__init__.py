"""External ledger adapters."""

from .jsonrpc import JsonRpcLedgerVerifier

__all__ = ["JsonRpcLedgerVerifier"]
