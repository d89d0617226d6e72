"""Transfer amount decoding and estimates of what a sandwich attack costs its victim."""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

from solmev.base58 import b58decode
from solmev.models import Instruction, Transaction
from solmev.programs import SMALL_TRANSFER_THRESHOLD, SYSTEM

log = logging.getLogger(__name__)

PRICE_IMPACT_METHOD = "价格影响分析法"
TOKEN_BALANCE_METHOD = "Token余额变化分析法"
SOL_BALANCE_METHOD = "SOL余额变化分析法(改进版)"
SLIPPAGE_METHOD = "滑点估算法"

# Lamports counted per instruction and per account when estimating trade size.
_LAMPORTS_PER_INSTRUCTION = 100_000_000
_LAMPORTS_PER_ACCOUNT = 50_000_000
_MIN_TRADE_SIZE = 100_000_000

_TRANSFER_PREFIX = bytes([2, 0, 0, 0])
_U64_MAX = 2**64 - 1


@dataclass
class UserLoss:
    """Estimated loss of a sandwiched user and profit of the attacker."""

    estimated_loss_lamports: int
    loss_percentage: float
    calculation_method: str
    mev_profit_lamports: int


def _to_u64(value: float) -> int:
    """Convert a float to an unsigned 64-bit integer, truncating and saturating."""
    if math.isnan(value) or value <= 0:
        return 0
    if value >= _U64_MAX:
        return _U64_MAX
    return int(value)


def _le_u64(data: bytes) -> int:
    return int.from_bytes(data, "little")


def decode_transfer_amount(data: bytes) -> int:
    """Read a lamport amount from raw system-transfer instruction data.

    Twelve or more bytes hold the amount at offset 4, exactly eight bytes
    are the amount alone; anything else yields 0.
    """
    if len(data) >= 12:
        return _le_u64(data[4:12])
    if len(data) == 8:
        return _le_u64(data)
    return 0


def parse_transfer_amount(instruction_data: str) -> int | None:
    """Parse the amount of a base58 transfer instruction; None if absent or zero."""
    try:
        data = b58decode(instruction_data)
    except ValueError:
        return None

    if len(data) == 12 and data[:4] == _TRANSFER_PREFIX:
        amount = _le_u64(data[4:12])
    elif len(data) == 8:
        amount = _le_u64(data)
    elif len(data) >= 12:
        amount = _le_u64(data[4:12])
    elif len(data) >= 8:
        amount = _le_u64(data[:8])
    else:
        return None

    return amount if amount > 0 else None


def is_small_transfer_instruction(
    instruction: Instruction, account_keys: Sequence[str]
) -> bool:
    """Return True for a system transfer of more than 0 and under 0.001 SOL."""
    index = instruction.program_id_index
    if not 0 <= index < len(account_keys) or account_keys[index] != SYSTEM:
        return False
    try:
        data = b58decode(instruction.data)
    except ValueError:
        return False
    amount = decode_transfer_amount(data)
    return 0 < amount < SMALL_TRANSFER_THRESHOLD


def extract_sol_transfer_amount(tx: Transaction) -> int:
    """Sum the system transfers in a transaction that exceed the small threshold."""
    message = tx.transaction.message
    total = 0
    for instruction in message.instructions:
        if message.program_id(instruction) != SYSTEM:
            continue
        try:
            data = b58decode(instruction.data)
        except ValueError:
            continue
        amount = decode_transfer_amount(data)
        if amount > SMALL_TRANSFER_THRESHOLD:
            total += amount
    return total


def estimate_trade_size(tx: Transaction) -> int:
    """Estimate a trade's size in lamports from transfers, instructions and accounts."""
    message = tx.transaction.message
    total = 0
    sol_amount = extract_sol_transfer_amount(tx)
    if sol_amount > SMALL_TRANSFER_THRESHOLD:
        total += sol_amount
    total += len(message.instructions) * _LAMPORTS_PER_INSTRUCTION
    total += len(message.account_keys) * _LAMPORTS_PER_ACCOUNT
    return max(total, _MIN_TRADE_SIZE)


def analyze_price_impact_loss(
    front_tx: Transaction,
    target_tx: Transaction,
    back_tx: Transaction,
    shared_accounts: Sequence[str],
) -> UserLoss | None:
    """Estimate the loss from the price impact of the front-running trade."""
    if not shared_accounts:
        return None

    user_size = estimate_trade_size(target_tx)
    if user_size == 0:
        return None

    front_impact = estimate_trade_size(front_tx)
    back_impact = estimate_trade_size(back_tx)
    if front_impact <= 0 or back_impact <= 0:
        return None

    ratio = (float(front_impact) / float(front_impact + user_size)) * 0.01
    loss = _to_u64(float(user_size) * ratio)
    profit = max(back_impact - front_impact, 0)
    if loss == 0:
        return None

    percentage = (float(loss) / float(user_size)) * 100.0
    return UserLoss(
        estimated_loss_lamports=loss,
        loss_percentage=min(percentage, 10.0),
        calculation_method=PRICE_IMPACT_METHOD,
        mev_profit_lamports=profit,
    )


def analyze_token_balance_changes(
    front_tx: Transaction,
    target_tx: Transaction,
    back_tx: Transaction,
    shared_accounts: Sequence[str],
) -> UserLoss | None:
    """Estimate the loss from relative trade sizes and the number of shared accounts."""
    user_size = estimate_trade_size(target_tx)
    if user_size == 0:
        return None

    impact_factor = math.sqrt(float(len(shared_accounts)))
    front_size = estimate_trade_size(front_tx)
    back_size = estimate_trade_size(back_tx)
    if front_size <= 0 or back_size <= 0:
        return None

    relative = float(front_size) / float(front_size + user_size)
    loss = _to_u64(float(user_size) * relative * impact_factor * 0.005)
    profit = _to_u64(float(back_size) * 0.8)
    if loss == 0:
        return None

    percentage = (float(loss) / float(user_size)) * 100.0
    return UserLoss(
        estimated_loss_lamports=loss,
        loss_percentage=min(percentage, 5.0),
        calculation_method=TOKEN_BALANCE_METHOD,
        mev_profit_lamports=profit,
    )


def _signers(tx: Transaction) -> set[str] | None:
    message = tx.transaction.message
    if message.header is None:
        return None
    return set(message.account_keys[: message.header.num_required_signatures])


def analyze_sol_balance_changes(
    front_tx: Transaction, target_tx: Transaction, back_tx: Transaction
) -> UserLoss | None:
    """Estimate the loss from SOL moved by an attacker signing both outer trades."""
    front_signers = _signers(front_tx)
    if front_signers is None:
        return None
    back_signers = _signers(back_tx)
    if back_signers is None:
        return None
    if not front_signers & back_signers:
        return None

    front_sol = extract_sol_transfer_amount(front_tx)
    back_sol = extract_sol_transfer_amount(back_tx)
    target_sol = extract_sol_transfer_amount(target_tx)
    log.debug("front transfer: %d lamports", front_sol)
    log.debug("target transfer: %d lamports", target_sol)
    log.debug("back transfer: %d lamports", back_sol)

    profit = max(back_sol - front_sol, 0)
    if profit == 0:
        return None

    user_size = max(target_sol, estimate_trade_size(target_tx))
    if user_size > 0:
        total_volume = front_sol + user_size + back_sol
        user_ratio = float(user_size) / float(total_volume)
        loss = _to_u64(float(profit) * user_ratio * 0.6)
        percentage = (float(loss) / float(user_size)) * 100.0
    else:
        loss = _to_u64(float(profit) * 0.3)
        percentage = 1.0

    return UserLoss(
        estimated_loss_lamports=loss,
        loss_percentage=min(percentage, 8.0),
        calculation_method=SOL_BALANCE_METHOD,
        mev_profit_lamports=profit,
    )


def estimate_slippage_loss(
    target_tx: Transaction, shared_accounts: Sequence[str]
) -> UserLoss:
    """Estimate the loss as slippage scaled by transaction complexity."""
    user_size = estimate_trade_size(target_tx)
    instruction_count = len(target_tx.transaction.message.instructions)

    base_slippage = 0.001
    complexity = 1.0 + float(len(shared_accounts)) * 0.2
    instruction_factor = 1.0 + float(instruction_count) * 0.1
    slippage = base_slippage * complexity * instruction_factor
    loss = _to_u64(float(user_size) * slippage)

    return UserLoss(
        estimated_loss_lamports=loss,
        loss_percentage=min(slippage * 100.0, 3.0),
        calculation_method=SLIPPAGE_METHOD,
        mev_profit_lamports=loss,
    )


def calculate_sandwich_loss(
    transactions: Sequence[Transaction],
    target_index: int,
    front_tx_sig: str,
    back_tx_sig: str,
    shared_accounts: Sequence[str],
) -> UserLoss | None:
    """Estimate a sandwiched user's loss, trying each method in turn.

    Returns None only when the front or back transaction is not in the list.
    """
    target_tx = transactions[target_index]
    front_tx = next((tx for tx in transactions if tx.signature == front_tx_sig), None)
    if front_tx is None:
        return None
    back_tx = next((tx for tx in transactions if tx.signature == back_tx_sig), None)
    if back_tx is None:
        return None

    loss = analyze_price_impact_loss(front_tx, target_tx, back_tx, shared_accounts)
    if loss is not None:
        log.debug("loss computed from price impact")
        return loss

    loss = analyze_token_balance_changes(front_tx, target_tx, back_tx, shared_accounts)
    if loss is not None:
        log.debug("loss computed from token balance changes")
        return loss

    loss = analyze_sol_balance_changes(front_tx, target_tx, back_tx)
    if loss is not None:
        log.debug("loss computed from SOL balance changes")
        return loss

    log.debug("loss computed from slippage estimate")
    return estimate_slippage_loss(target_tx, shared_accounts)