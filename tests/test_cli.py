import io
import json

import httpx
import pytest
import respx

from solmev.base58 import b58encode
from solmev.cli import (
    Settings,
    analyze_transaction,
    interactive_loop,
    load_settings,
    main,
)
from solmev.client import RpcError, SolanaClient
from solmev.detector import MevDetector
from solmev.programs import JITO_TIP_ACCOUNTS, JUPITER, SYSTEM

RPC_URL = "http://localhost:8899"


def _transfer_data(lamports):
    return b58encode(bytes([2, 0, 0, 0]) + lamports.to_bytes(8, "little"))


def _tx(signature, account_keys, instructions, header=(1, 0, 1)):
    return {
        "signatures": [signature],
        "message": {
            "accountKeys": account_keys,
            "header": {
                "numRequiredSignatures": header[0],
                "numReadonlySignedAccounts": header[1],
                "numReadonlyUnsignedAccounts": header[2],
            },
            "instructions": instructions,
            "recentBlockhash": "Hash111",
        },
    }


def _ix(program_index, accounts, data=""):
    return {"programIdIndex": program_index, "accounts": accounts, "data": data}


def _simple_transfer(signature):
    return _tx(
        signature,
        ["Payer111", "Dest111", SYSTEM],
        [_ix(2, [0, 1], _transfer_data(5_000_000))],
    )


def _swap(signature, signer):
    return _tx(signature, [signer, "PoxStateAccount", JUPITER], [_ix(2, [0, 1])])


def _tip(signature):
    return _tx(
        signature,
        ["Payer111", JITO_TIP_ACCOUNTS[0], SYSTEM],
        [_ix(2, [0, 1], _transfer_data(1_000_000))],
    )


def _handler(block, block_available=True):
    by_signature = {tx["signatures"][0]: tx for tx in block}

    def handle(request):
        body = json.loads(request.content)
        if body["method"] == "getTransaction":
            data = by_signature.get(body["params"][0])
            if data is None:
                return httpx.Response(
                    200,
                    json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32000}},
                )
            return httpx.Response(
                200,
                json={
                    "jsonrpc": "2.0",
                    "id": 1,
                    "result": {"slot": 7, "blockTime": None, "transaction": data},
                },
            )
        if not block_available:
            return httpx.Response(
                200, json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32004}}
            )
        return httpx.Response(
            200,
            json={
                "jsonrpc": "2.0",
                "id": 1,
                "result": {
                    "blockTime": 1,
                    "transactions": [{"transaction": tx} for tx in block],
                },
            },
        )

    return handle


def _write_config(tmp_path, text):
    path = tmp_path / "config.toml"
    path.write_text(text, encoding="utf-8")
    return path


def test_load_settings_reads_all_fields(tmp_path):
    path = _write_config(
        tmp_path,
        f'rpc_url = "{RPC_URL}"\nlog_level = "debug"\nauto_detect_hashes = ["a", "b"]\n',
    )
    assert load_settings(path) == Settings(RPC_URL, "debug", ["a", "b"])


def test_load_settings_defaults_hashes_to_empty(tmp_path):
    path = _write_config(tmp_path, f'rpc_url = "{RPC_URL}"\nlog_level = "info"\n')
    assert load_settings(path).auto_detect_hashes == []


def test_load_settings_missing_field(tmp_path):
    path = _write_config(tmp_path, 'log_level = "info"\n')
    with pytest.raises(ValueError, match="rpc_url"):
        load_settings(path)


def test_load_settings_bad_hash_list(tmp_path):
    path = _write_config(
        tmp_path,
        f'rpc_url = "{RPC_URL}"\nlog_level = "info"\nauto_detect_hashes = [1]\n',
    )
    with pytest.raises(ValueError):
        load_settings(path)


def test_load_settings_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_settings(tmp_path / "absent.toml")


@pytest.mark.asyncio
async def test_analyze_simple_transfer(capsys):
    block = [_simple_transfer("transfersig")]
    with respx.mock(assert_all_called=False) as mock:
        mock.post(RPC_URL).mock(side_effect=_handler(block))
        async with SolanaClient(RPC_URL) as client:
            await analyze_transaction(client, MevDetector(), "transfersig")
    out = capsys.readouterr().out
    assert "简单转账" in out
    assert "Swap/DEX" not in out


@pytest.mark.asyncio
async def test_analyze_missing_transaction_raises():
    with respx.mock(assert_all_called=False) as mock:
        mock.post(RPC_URL).mock(side_effect=_handler([]))
        async with SolanaClient(RPC_URL) as client:
            with pytest.raises(RpcError):
                await analyze_transaction(client, MevDetector(), "unknownsig")


@pytest.mark.asyncio
async def test_analyze_block_failure_prints_hint(capsys):
    block = [_swap("targetsig", "Victim111")]
    with respx.mock(assert_all_called=False) as mock:
        mock.post(RPC_URL).mock(side_effect=_handler(block, block_available=False))
        async with SolanaClient(RPC_URL) as client:
            with pytest.raises(RpcError):
                await analyze_transaction(client, MevDetector(), "targetsig")
    assert "修改config.toml中的rpc_url" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_analyze_swap_without_tip(capsys):
    block = [_swap("targetsig", "Victim111")]
    with respx.mock(assert_all_called=False) as mock:
        mock.post(RPC_URL).mock(side_effect=_handler(block))
        async with SolanaClient(RPC_URL) as client:
            await analyze_transaction(client, MevDetector(), "targetsig")
    out = capsys.readouterr().out
    assert "涉及Swap/DEX" in out
    assert "未发现Jito小费交易" in out


@pytest.mark.asyncio
async def test_analyze_reports_sandwich(capsys):
    block = [
        _tip("tipsig"),
        _swap("frontsig", "Attacker111"),
        _swap("targetsig", "Victim111"),
        _swap("backsig", "Attacker111"),
    ]
    with respx.mock(assert_all_called=False) as mock:
        mock.post(RPC_URL).mock(side_effect=_handler(block))
        async with SolanaClient(RPC_URL) as client:
            await analyze_transaction(client, MevDetector(), "targetsig")
    out = capsys.readouterr().out
    assert "目标交易前方" in out
    assert "0.001000 SOL" in out
    assert "1. Jito小费交易 ⭐" in out
    assert "3. 目标交易 🎯" in out
    assert "检测到三明治攻击" in out
    assert "https://solscan.io/tx/frontsig" in out
    assert "https://solscan.io/tx/backsig" in out
    assert "价格影响分析法" in out
    assert "检测到抢跑攻击" not in out


@pytest.mark.asyncio
async def test_analyze_reports_frontrun(capsys):
    block = [
        _tip("tipsig"),
        _swap("frontsig", "Attacker111"),
        _swap("targetsig", "Victim111"),
    ]
    with respx.mock(assert_all_called=False) as mock:
        mock.post(RPC_URL).mock(side_effect=_handler(block))
        async with SolanaClient(RPC_URL) as client:
            await analyze_transaction(client, MevDetector(), "targetsig")
    out = capsys.readouterr().out
    assert "检测到三明治攻击" not in out
    assert "检测到抢跑攻击" in out
    assert "https://solscan.io/tx/frontsig" in out


@pytest.mark.asyncio
@pytest.mark.parametrize("command", ["quit\n", "EXIT\n", "Quit"])
async def test_interactive_loop_exit_commands(capsys, command):
    with respx.mock(assert_all_called=False) as mock:
        route = mock.post(RPC_URL).mock(side_effect=_handler([]))
        async with SolanaClient(RPC_URL) as client:
            await interactive_loop(client, MevDetector(), ["", "  \n", command])
        assert route.call_count == 0
    assert "程序退出" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_interactive_loop_survives_failed_analysis(capsys):
    with respx.mock(assert_all_called=False) as mock:
        mock.post(RPC_URL).mock(side_effect=_handler([]))
        async with SolanaClient(RPC_URL) as client:
            await interactive_loop(client, MevDetector(), ["badsig\n", "exit\n"])
    out = capsys.readouterr().out
    assert "正在分析交易: badsig" in out
    assert "分析完成" not in out
    assert "程序退出" in out


@pytest.mark.asyncio
async def test_interactive_loop_analyses_then_stops_at_end_of_input(capsys):
    block = [_simple_transfer("transfersig")]
    with respx.mock(assert_all_called=False) as mock:
        mock.post(RPC_URL).mock(side_effect=_handler(block))
        async with SolanaClient(RPC_URL) as client:
            await interactive_loop(client, MevDetector(), ["transfersig\n"])
    out = capsys.readouterr().out
    assert "分析完成" in out
    assert "程序退出" not in out


def test_main_runs_auto_detection(tmp_path, capsys, monkeypatch):
    path = _write_config(
        tmp_path,
        f'rpc_url = "{RPC_URL}"\nlog_level = "error"\n'
        'auto_detect_hashes = ["transfersig"]\n',
    )
    monkeypatch.setattr("sys.stdin", io.StringIO("quit\n"))
    with respx.mock(assert_all_called=False) as mock:
        mock.post(RPC_URL).mock(side_effect=_handler([_simple_transfer("transfersig")]))
        assert main(["--config", str(path)]) == 0
    out = capsys.readouterr().out
    assert "v0.2.0" in out
    assert "自动检测 [1/1]: transfersig" in out
    assert "自动检测完成" in out
    assert "所有预设交易哈希检测完成" in out
    assert "程序退出" in out


def test_main_without_config_fails(tmp_path, capsys):
    assert main(["--config", str(tmp_path / "absent.toml")]) == 1
    assert "Error" in capsys.readouterr().err