"""
Tests for the PXE JSON-RPC client
"""
import json

import httpx
import pytest

from profile_sharing.core.errors import LedgerTimeout, NodeUnavailable
from profile_sharing.core.pxe_client import PXEClient, RpcError, serialize_arg
from profile_sharing.models.contract import Identity, TxStatus
from profile_sharing.models.field import FieldValue

ADDRESS = "0x" + "12" * 32
TX_HASH = "0x" + "aa" * 32


def _client(handler) -> PXEClient:
    return PXEClient(url="http://pxe.test", timeout=5.0, transport=httpx.MockTransport(handler))


def _result(request: httpx.Request, result) -> httpx.Response:
    body = json.loads(request.content)
    return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})


@pytest.mark.asyncio
async def test_call_sends_jsonrpc_envelope():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return _result(request, {"nodeVersion": "0.87.0", "l1ChainId": 31337})

    client = _client(handler)
    info = await client.get_node_info()
    await client.close()

    assert info.node_version == "0.87.0"
    assert info.l1_chain_id == 31337
    assert seen[0]["jsonrpc"] == "2.0"
    assert seen[0]["method"] == "pxe_getNodeInfo"
    assert seen[0]["params"] == []


@pytest.mark.asyncio
async def test_request_ids_increase():
    ids = []

    def handler(request):
        ids.append(json.loads(request.content)["id"])
        return _result(request, {})

    client = _client(handler)
    await client.call("pxe_getNodeInfo")
    await client.call("pxe_getNodeInfo")
    await client.close()
    assert ids == [1, 2]


@pytest.mark.asyncio
async def test_jsonrpc_error_becomes_rpc_error():
    def handler(request):
        body = json.loads(request.content)
        return httpx.Response(200, json={
            "jsonrpc": "2.0",
            "id": body["id"],
            "error": {"code": -32000, "message": "Assertion failed: profile not found"},
        })

    client = _client(handler)
    with pytest.raises(RpcError) as exc_info:
        await client.call("pxe_simulateUtility", [{}])
    await client.close()

    assert exc_info.value.code == -32000
    assert "profile not found" in str(exc_info.value)


@pytest.mark.asyncio
async def test_http_status_error_becomes_rpc_error():
    client = _client(lambda request: httpx.Response(503, text="starting"))
    with pytest.raises(RpcError) as exc_info:
        await client.call("pxe_getNodeInfo")
    await client.close()
    assert exc_info.value.code == 503


@pytest.mark.asyncio
async def test_invalid_json_becomes_rpc_error():
    client = _client(lambda request: httpx.Response(200, text="<html>"))
    with pytest.raises(RpcError, match="Invalid JSON"):
        await client.call("pxe_getNodeInfo")
    await client.close()


@pytest.mark.asyncio
async def test_connection_error_becomes_rpc_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(handler)
    with pytest.raises(RpcError, match="connection refused"):
        await client.call("pxe_getNodeInfo")
    await client.close()


@pytest.mark.asyncio
async def test_timeout_becomes_ledger_timeout():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    client = _client(handler)
    with pytest.raises(LedgerTimeout) as exc_info:
        await client.call("pxe_sendTx", [{}])
    await client.close()
    assert exc_info.value.operation == "pxe_sendTx"


@pytest.mark.asyncio
async def test_unexpected_result_shape_becomes_rpc_error():
    client = _client(lambda request: _result(request, {"txHash": TX_HASH, "status": "exploded"}))
    with pytest.raises(RpcError, match="pxe_getTxReceipt"):
        await client.get_tx_receipt(TX_HASH)
    await client.close()


@pytest.mark.asyncio
async def test_send_tx_payload_and_hash():
    seen = []

    def handler(request):
        seen.append(json.loads(request.content))
        return _result(request, {"txHash": TX_HASH})

    sender = Identity(address=ADDRESS)
    client = _client(handler)
    tx_hash = await client.send_tx(ADDRESS, "create_profile", [FieldValue(1), 25], sender)
    await client.close()

    assert tx_hash == TX_HASH
    assert seen[0]["method"] == "pxe_sendTx"
    assert seen[0]["params"] == [{
        "contractAddress": ADDRESS,
        "method": "create_profile",
        "args": [FieldValue(1).to_hex(), 25],
        "from": ADDRESS,
    }]


@pytest.mark.asyncio
async def test_test_accounts_get_positional_aliases():
    other = "0x" + "34" * 32
    client = _client(lambda request: _result(request, [{"address": ADDRESS}, other]))
    accounts = await client.get_test_accounts()
    await client.close()

    assert [a.address for a in accounts] == [ADDRESS, other]
    assert [a.alias for a in accounts] == ["account0", "account1"]


@pytest.mark.asyncio
async def test_wait_until_ready_retries_then_succeeds():
    attempts = {"n": 0}

    def handler(request):
        attempts["n"] += 1
        if attempts["n"] < 3:
            raise httpx.ConnectError("refused", request=request)
        return _result(request, {"nodeVersion": "0.87.0"})

    client = _client(handler)
    info = await client.wait_until_ready(timeout=5.0, interval=0.001)
    await client.close()

    assert info.node_version == "0.87.0"
    assert attempts["n"] == 3


@pytest.mark.asyncio
async def test_wait_until_ready_gives_up():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    client = _client(handler)
    with pytest.raises(NodeUnavailable) as exc_info:
        await client.wait_until_ready(timeout=0.01, interval=0.005)
    await client.close()
    assert exc_info.value.metadata["attempts"] >= 1


@pytest.mark.asyncio
async def test_wait_for_tx_returns_terminal_receipt():
    statuses = iter(["pending", "pending", "app_logic_reverted"])

    def handler(request):
        return _result(request, {"txHash": TX_HASH, "status": next(statuses), "error": "assert"})

    client = _client(handler)
    receipt = await client.wait_for_tx(TX_HASH, timeout=5.0, interval=0.001)
    await client.close()

    assert receipt.status == TxStatus.APP_LOGIC_REVERTED
    assert receipt.error == "assert"


@pytest.mark.asyncio
async def test_wait_for_tx_times_out():
    client = _client(lambda request: _result(request, {"txHash": TX_HASH, "status": "pending"}))
    with pytest.raises(LedgerTimeout) as exc_info:
        await client.wait_for_tx(TX_HASH, timeout=0.01, interval=0.005)
    await client.close()
    assert exc_info.value.metadata["tx_hash"] == TX_HASH


def test_serialize_arg():
    identity = Identity(address=ADDRESS)
    assert serialize_arg(FieldValue(255)) == "0x" + "0" * 62 + "ff"
    assert serialize_arg(identity) == ADDRESS
    assert serialize_arg([FieldValue(1), 2]) == [FieldValue(1).to_hex(), 2]
    with pytest.raises(TypeError):
        serialize_arg(object())
