"""Command-line front end: analyse Solana transactions for MEV attacks."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import tomllib
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from solmev.client import RpcError, SolanaClient
from solmev.detector import MevDetector

log = logging.getLogger(__name__)

VERSION = "0.2.0"
DEFAULT_CONFIG = "config.toml"
LAMPORTS_PER_SOL = 1_000_000_000
EXIT_COMMANDS = frozenset({"exit", "quit"})

_LOG_LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "off": logging.CRITICAL + 1,
}


@dataclass(frozen=True)
class Settings:
    """Settings read from the configuration file."""

    rpc_url: str
    log_level: str
    auto_detect_hashes: list[str] = field(default_factory=list)


def _require_str(data: dict[str, Any], key: str) -> str:
    if key not in data:
        raise ValueError(f"missing field {key!r}")
    value = data[key]
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string")
    return value


def load_settings(path: str | Path) -> Settings:
    """Read settings from a TOML file; raise ValueError if they are malformed."""
    with open(path, "rb") as handle:
        data = tomllib.load(handle)

    hashes = data.get("auto_detect_hashes", [])
    if not isinstance(hashes, list) or not all(isinstance(h, str) for h in hashes):
        raise ValueError("auto_detect_hashes must be a list of strings")

    return Settings(
        rpc_url=_require_str(data, "rpc_url"),
        log_level=_require_str(data, "log_level"),
        auto_detect_hashes=list(hashes),
    )


def _sol(lamports: int) -> str:
    return f"{lamports / LAMPORTS_PER_SOL:.6f}"


async def analyze_transaction(
    client: SolanaClient, detector: MevDetector, target_signature: str
) -> None:
    """Analyse one transaction and print the findings.

    Raises RpcError when the transaction or its neighbours cannot be fetched.
    """
    try:
        target_tx = await client.get_transaction(target_signature)
    except RpcError as exc:
        log.error("获取目标交易失败: %s", exc)
        raise

    log.info("获取目标交易信息成功，区块: %d", target_tx.slot)

    if detector.is_simple_transfer(target_tx):
        print("✅ 该交易为简单转账，不涉及Swap，无MEV风险。")
        return

    print("🔍 该交易涉及Swap/DEX，开始MEV风险分析...")

    try:
        nearby, target_index = await client.get_nearby_transactions(target_signature)
    except RpcError as exc:
        log.error("获取周围交易信息失败: %s", exc)
        print("💡 修改config.toml中的rpc_url或许可以解决问题")
        raise

    print(f"📊 获取到周围{len(nearby)}笔交易，开始分析...")

    tip = detector.check_jito_tip_in_nearby_transactions(nearby, target_index)
    if tip is None:
        print("✅ 未发现Jito小费交易")
        print("💡 这可能意味着:")
        print("   • 确实没有被MEV攻击")
        print("   • MEV攻击不是通过Jito捆绑包进行的")
        return

    print("🎯 检测到Jito捆绑包交易，正在分析MEV攻击...")
    position = "前" if tip.before_target else "后"
    print(f"📍 Jito小费位置: 目标交易{position}方")
    print(f"💰 小费金额: {_sol(tip.amount)} SOL")

    print(f"📦 捆绑包包含{len(tip.bundle)}笔交易:")
    tip_signature = nearby[tip.index].signature
    for number, tx in enumerate(tip.bundle, start=1):
        if tx.signature == tip_signature:
            print(f"  {number}. Jito小费交易 ⭐")
        elif tx.signature == target_signature:
            print(f"  {number}. 目标交易 🎯")
        else:
            print(f"  {number}. 其他交易")

    sandwich = detector.detect_sandwich_attack(tip.bundle, target_signature)
    if sandwich is not None:
        print("\n🚨 检测到三明治攻击!")
        print(f"  前置交易: https://solscan.io/tx/{sandwich.front_tx}")
        print(f"  后置交易: https://solscan.io/tx/{sandwich.back_tx}")
        print(f"  共享账户数: {len(sandwich.account_intersection)}")

        loss = sandwich.user_loss
        if loss is not None:
            print("\n💸 用户损失估算:")
            print(f"  损失金额: {_sol(loss.estimated_loss_lamports)} SOL")
            print(f"  损失百分比: {loss.loss_percentage:.2f}%")
            print(f"  MEV利润: {_sol(loss.mev_profit_lamports)} SOL")
            print(f"  计算方法: {loss.calculation_method}")
        else:
            print("  ⚠️ 无法计算具体损失金额")

        print("  ℹ️ 已跳过抢跑检测（避免重复报告）")
    else:
        frontrun = detector.detect_frontrun_attack(tip.bundle, target_signature)
        if frontrun is not None:
            print("\n🚨 检测到抢跑攻击!")
            print(f"  抢跑交易: https://solscan.io/tx/{frontrun.front_tx}")
            print(f"  共享账户数: {len(frontrun.account_intersection)}")
        else:
            print("\n✅ 未检测到MEV攻击")

    print("\n⚠️ 注意: 检测结果仅供参考，建议结合实际交易数据验证")


async def interactive_loop(
    client: SolanaClient, detector: MevDetector, lines: Iterable[str]
) -> None:
    """Prompt for signatures read from ``lines`` until exit, quit or end of input."""
    stream = iter(lines)
    while True:
        print("\n请输入Solana交易哈希 (输入 'exit' 或 'quit' 退出):")
        print("> ", end="", flush=True)
        try:
            line = next(stream)
        except StopIteration:
            break
        except OSError as exc:
            log.error("读取输入失败: %s", exc)
            break

        signature = line.strip()
        if not signature:
            continue
        if signature.lower() in EXIT_COMMANDS:
            print("\n👋 程序退出，感谢使用！")
            break

        print(f"\n🔄 正在分析交易: {signature}")
        print("-" * 50)
        try:
            await analyze_transaction(client, detector, signature)
        except RpcError as exc:
            print("-" * 50)
            log.error("❌ 分析失败: %s", exc)
        else:
            print("-" * 50)
            print("✅ 分析完成！")


async def _auto_detect(
    client: SolanaClient, detector: MevDetector, hashes: list[str]
) -> None:
    print(f"\n🤖 检测到配置中有 {len(hashes)} 个预设的交易哈希，开始自动检测...")
    for number, signature in enumerate(hashes, start=1):
        print("\n" + "=" * 80)
        print(f"🔄 自动检测 [{number}/{len(hashes)}]: {signature}")
        print("=" * 80)
        try:
            await analyze_transaction(client, detector, signature)
        except RpcError as exc:
            log.error("❌ 自动检测失败: %s", exc)
        else:
            print("✅ 自动检测完成！")

    print("\n" + "=" * 80)
    print("🎉 所有预设交易哈希检测完成！")
    print("=" * 80)


async def _run(settings: Settings, lines: Iterable[str]) -> None:
    log.info("Solana MEV 检测器启动...")
    print("=" * 60)
    print(f"🔍 Solana MEV 检测器 v{VERSION}")
    print("=" * 60)

    detector = MevDetector()
    async with SolanaClient(settings.rpc_url) as client:
        if settings.auto_detect_hashes:
            await _auto_detect(client, detector, settings.auto_detect_hashes)
        await interactive_loop(client, detector, lines)


def _configure_logging(level_name: str) -> None:
    level = _LOG_LEVELS.get(level_name.strip().lower(), logging.ERROR)
    logging.basicConfig(
        level=level,
        format="[%(asctime)s %(levelname)s %(name)s] %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


def main(argv: list[str] | None = None) -> int:
    """Run the detector: analyse preset signatures, then prompt for more."""
    parser = argparse.ArgumentParser(
        prog="solmev", description="Detect MEV attacks around a Solana transaction."
    )
    parser.add_argument(
        "-c",
        "--config",
        default=DEFAULT_CONFIG,
        help=f"path of the TOML configuration file (default: {DEFAULT_CONFIG})",
    )
    args = parser.parse_args(argv)

    try:
        settings = load_settings(args.config)
    except (OSError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    _configure_logging(settings.log_level)
    asyncio.run(_run(settings, sys.stdin))
    return 0


if __name__ == "__main__":
    sys.exit(main())