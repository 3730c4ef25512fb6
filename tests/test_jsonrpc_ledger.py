import json

import httpx
import pytest

from claimledger.infrastructure.ledger import JsonRpcLedgerVerifier

TARGET = "0x00000000000000000000000000000000000000aa"
SENDER = "0xAbC0000000000000000000000000000000000001"


def make_node(receipt, *, latest_block="0x20", value="0x3e8", fail_with=None):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        seen.append(body["method"])
        if fail_with is not None:
            return httpx.Response(fail_with)
        if body["method"] == "eth_getTransactionReceipt":
            result = receipt
        elif body["method"] == "eth_blockNumber":
            result = latest_block
        elif body["method"] == "eth_getTransactionByHash":
            result = {"from": SENDER, "value": value}
        else:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": {"code": -32601}})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})

    return httpx.MockTransport(handler), seen


def receipt(status="0x1", to=TARGET, block="0x10"):
    return {"status": status, "from": SENDER, "to": to, "blockNumber": block}


@pytest.mark.asyncio
async def test_confirmed_transaction_is_valid():
    transport, seen = make_node(receipt())
    verifier = JsonRpcLedgerVerifier("http://node", target_address=TARGET.upper(), confirmations=6, transport=transport)

    result = await verifier.verify_reference("0xdead")

    assert result.valid is True
    assert result.subject == SENDER.lower()
    assert result.metadata == {"block_number": 16, "to": TARGET, "value": "1000"}
    assert seen == ["eth_getTransactionReceipt", "eth_blockNumber", "eth_getTransactionByHash"]


@pytest.mark.asyncio
async def test_reverted_transaction_is_invalid():
    transport, _ = make_node(receipt(status="0x0"))
    result = await JsonRpcLedgerVerifier("http://node", transport=transport).verify_reference("0xdead")

    assert result.valid is False
    assert "failed" in result.reason


@pytest.mark.asyncio
async def test_transaction_to_another_address_is_invalid():
    transport, _ = make_node(receipt(to="0x00000000000000000000000000000000000000bb"))
    verifier = JsonRpcLedgerVerifier("http://node", target_address=TARGET, transport=transport)

    result = await verifier.verify_reference("0xdead")
    assert result.valid is False
    assert "target address" in result.reason


@pytest.mark.asyncio
async def test_shallow_transaction_is_invalid():
    transport, _ = make_node(receipt(block="0x1e"), latest_block="0x20")
    verifier = JsonRpcLedgerVerifier("http://node", confirmations=6, transport=transport)

    result = await verifier.verify_reference("0xdead")
    assert result.valid is False
    assert result.reason == "insufficient confirmations: 3/6"


@pytest.mark.asyncio
async def test_unknown_transaction_is_invalid():
    transport, seen = make_node(None)
    result = await JsonRpcLedgerVerifier("http://node", transport=transport).verify_reference("0xdead")

    assert result.valid is False
    assert result.reason == "transaction receipt not found"
    assert seen == ["eth_getTransactionReceipt"]


@pytest.mark.asyncio
async def test_unreachable_node_never_confirms():
    transport, _ = make_node(receipt(), fail_with=500)
    result = await JsonRpcLedgerVerifier("http://node", transport=transport).verify_reference("0xdead")

    assert result.valid is False
    assert result.reason.startswith("ledger unavailable")
