import json

import httpx
import pytest
import respx

from solmev.client import (
    STAKE_PROGRAM_ID,
    VOTE_PROGRAM_ID,
    RpcError,
    SolanaClient,
)
from solmev.models import transaction_from_json

URL = "https://rpc.example.com/"
SYSTEM = "11111111111111111111111111111111"


def _tx_data(signature, keys=None):
    return {
        "signatures": [signature],
        "message": {
            "accountKeys": keys or ["payer", "dest", SYSTEM],
            "instructions": [
                {"programIdIndex": 2, "accounts": [0, 1], "data": "3Bxs4h24hBtQy9rw"}
            ],
        },
    }


def _tx_result(signature, slot=77):
    return {"slot": slot, "blockTime": 1234, "transaction": _tx_data(signature)}


def _block(signatures, block_time=1234):
    return {
        "blockTime": block_time,
        "transactions": [{"transaction": _tx_data(sig)} for sig in signatures],
    }


def _rpc_router(target, slot, block):
    def handler(request):
        body = json.loads(request.content)
        if body["method"] == "getTransaction":
            return httpx.Response(200, json={"result": _tx_result(target, slot)})
        return httpx.Response(200, json={"result": block})

    return handler


@pytest.mark.asyncio
async def test_get_transaction_sets_signature_and_sends_request():
    with respx.mock:
        route = respx.post(URL).mock(
            return_value=httpx.Response(200, json={"result": _tx_result("sigX")})
        )
        async with SolanaClient(URL) as client:
            tx = await client.get_transaction("sigX")
        body = json.loads(route.calls.last.request.content)
    assert tx.signature == "sigX"
    assert tx.slot == 77
    assert body["method"] == "getTransaction"
    assert body["params"][0] == "sigX"
    assert body["params"][1] == {"encoding": "json", "maxSupportedTransactionVersion": 0}


@pytest.mark.asyncio
async def test_get_transaction_without_result_raises():
    with respx.mock:
        respx.post(URL).mock(
            return_value=httpx.Response(200, json={"error": {"code": -32000}})
        )
        async with SolanaClient(URL) as client:
            with pytest.raises(RpcError, match="Transaction not found"):
                await client.get_transaction("sigX")


@pytest.mark.asyncio
async def test_get_transaction_null_result_raises():
    with respx.mock:
        respx.post(URL).mock(return_value=httpx.Response(200, json={"result": None}))
        async with SolanaClient(URL) as client:
            with pytest.raises(RpcError):
                await client.get_transaction("sigX")


@pytest.mark.asyncio
async def test_network_error_becomes_rpc_error():
    with respx.mock:
        respx.post(URL).mock(side_effect=httpx.ConnectTimeout("timed out"))
        async with SolanaClient(URL) as client:
            with pytest.raises(RpcError):
                await client.get_transaction("sigX")


@pytest.mark.asyncio
async def test_invalid_json_becomes_rpc_error():
    with respx.mock:
        respx.post(URL).mock(return_value=httpx.Response(200, content=b"not json"))
        async with SolanaClient(URL) as client:
            with pytest.raises(RpcError):
                await client.get_full_block(5)


@pytest.mark.asyncio
async def test_get_full_block_parses_and_skips_bad_entries():
    block = _block(["s0", "s1"])
    block["transactions"].append({"meta": {}})
    block["transactions"].append({"transaction": {"signatures": []}})
    with respx.mock:
        route = respx.post(URL).mock(
            return_value=httpx.Response(200, json={"result": block})
        )
        async with SolanaClient(URL) as client:
            txs = await client.get_full_block(42)
        body = json.loads(route.calls.last.request.content)
    assert [tx.signature for tx in txs] == ["s0", "s1"]
    assert all(tx.slot == 42 and tx.block_time == 1234 for tx in txs)
    assert body["method"] == "getBlock"
    assert body["params"][1]["transactionDetails"] == "full"


@pytest.mark.asyncio
async def test_get_full_block_missing_transactions_raises():
    with respx.mock:
        respx.post(URL).mock(
            return_value=httpx.Response(200, json={"result": {"blockTime": 1}})
        )
        async with SolanaClient(URL) as client:
            with pytest.raises(RpcError, match="Failed to parse full block"):
                await client.get_full_block(1)


@pytest.mark.asyncio
async def test_get_full_block_non_integer_block_time_is_none():
    with respx.mock:
        respx.post(URL).mock(
            return_value=httpx.Response(
                200, json={"result": _block(["s0"], block_time=1.5)}
            )
        )
        async with SolanaClient(URL) as client:
            txs = await client.get_full_block(3)
    assert txs[0].block_time is None


@pytest.mark.asyncio
async def test_nearby_transactions_window_in_middle():
    signatures = [f"s{i}" for i in range(10)]
    with respx.mock:
        respx.post(URL).mock(side_effect=_rpc_router("s5", 9, _block(signatures)))
        async with SolanaClient(URL) as client:
            nearby, index = await client.get_nearby_transactions("s5")
    assert [tx.signature for tx in nearby] == signatures[1:]
    assert nearby[index].signature == "s5"
    assert index == 4


@pytest.mark.asyncio
async def test_nearby_transactions_near_start_and_end():
    signatures = ["s0", "s1", "s2"]
    with respx.mock:
        respx.post(URL).mock(side_effect=_rpc_router("s1", 9, _block(signatures)))
        async with SolanaClient(URL) as client:
            nearby, index = await client.get_nearby_transactions("s1")
    assert [tx.signature for tx in nearby] == signatures
    assert nearby[index].signature == "s1"


@pytest.mark.asyncio
async def test_nearby_transactions_target_missing_from_block():
    with respx.mock:
        respx.post(URL).mock(side_effect=_rpc_router("zz", 9, _block(["s0", "s1"])))
        async with SolanaClient(URL) as client:
            with pytest.raises(RpcError):
                await client.get_nearby_transactions("zz")


@pytest.mark.asyncio
async def test_vote_transaction_detection():
    plain = transaction_from_json(_tx_result("a"))
    vote = transaction_from_json(
        {"slot": 1, "transaction": _tx_data("b", ["payer", VOTE_PROGRAM_ID])}
    )
    stake = transaction_from_json(
        {"slot": 1, "transaction": _tx_data("c", ["payer", "x", STAKE_PROGRAM_ID])}
    )
    async with SolanaClient(URL) as client:
        assert not client.is_vote_transaction(plain)
        assert client.is_vote_transaction(vote)
        assert client.is_vote_transaction(stake)


@pytest.mark.asyncio
async def test_is_account_writable_delegates_to_message():
    message = transaction_from_json(_tx_result("a")).transaction.message
    async with SolanaClient(URL) as client:
        results = [client.is_account_writable(i, message) for i in range(3)]
    assert results == [message.is_account_writable(i) for i in range(3)]