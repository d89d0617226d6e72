"""Transaction data as returned by the Solana JSON-RPC interface."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

_U8_MAX = 0xFF
_U64_MAX = 2**64 - 1
_I64_MIN = -(2**63)
_I64_MAX = 2**63 - 1


def _get(data: Mapping[str, Any], key: str) -> Any:
    try:
        return data[key]
    except KeyError:
        raise ValueError(f"missing field {key!r}") from None


def _as_mapping(value: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValueError(f"{what} must be a JSON object")
    return value


def _as_int(value: Any, name: str, low: int, high: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer")
    if not low <= value <= high:
        raise ValueError(f"{name} out of range: {value}")
    return value


def _as_str(value: Any, name: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{name} must be a string")
    return value


def _as_list(value: Any, name: str) -> list[Any]:
    if not isinstance(value, list):
        raise ValueError(f"{name} must be a list")
    return value


@dataclass
class MessageHeader:
    """Counts that describe how the account keys of a message are ordered."""

    num_required_signatures: int
    num_readonly_signed_accounts: int
    num_readonly_unsigned_accounts: int


@dataclass
class Instruction:
    """One instruction: a program index, account indices and base58 data."""

    program_id_index: int
    accounts: list[int]
    data: str


@dataclass
class Message:
    """The message part of a transaction."""

    account_keys: list[str]
    instructions: list[Instruction]
    recent_blockhash: str | None = None
    header: MessageHeader | None = None

    def is_account_writable(self, account_index: int) -> bool:
        """Return whether the account at the given index is writable.

        Accounts are ordered as writable signers, read-only signers,
        writable non-signers and read-only non-signers. Without a header
        every account is treated as writable.
        """
        header = self.header
        if header is None:
            return True
        required = header.num_required_signatures
        if account_index < required:
            return account_index < required - header.num_readonly_signed_accounts
        readonly_unsigned_start = (
            len(self.account_keys) - header.num_readonly_unsigned_accounts
        )
        return required <= account_index < readonly_unsigned_start

    def program_id(self, instruction: Instruction) -> str | None:
        """Return the program id an instruction calls, or None if out of range."""
        index = instruction.program_id_index
        if 0 <= index < len(self.account_keys):
            return self.account_keys[index]
        return None


@dataclass
class TransactionData:
    """A signed message."""

    message: Message
    signatures: list[str] = field(default_factory=list)


@dataclass
class Transaction:
    """A confirmed transaction together with its slot and block time."""

    signature: str
    slot: int
    block_time: int | None
    transaction: TransactionData


def _header_from_json(data: Any) -> MessageHeader:
    data = _as_mapping(data, "header")
    return MessageHeader(
        num_required_signatures=_as_int(
            _get(data, "numRequiredSignatures"), "numRequiredSignatures", 0, _U8_MAX
        ),
        num_readonly_signed_accounts=_as_int(
            _get(data, "numReadonlySignedAccounts"),
            "numReadonlySignedAccounts",
            0,
            _U8_MAX,
        ),
        num_readonly_unsigned_accounts=_as_int(
            _get(data, "numReadonlyUnsignedAccounts"),
            "numReadonlyUnsignedAccounts",
            0,
            _U8_MAX,
        ),
    )


def _instruction_from_json(data: Any) -> Instruction:
    data = _as_mapping(data, "instruction")
    return Instruction(
        program_id_index=_as_int(
            _get(data, "programIdIndex"), "programIdIndex", 0, _U8_MAX
        ),
        accounts=[
            _as_int(index, "accounts", 0, _U8_MAX)
            for index in _as_list(_get(data, "accounts"), "accounts")
        ],
        data=_as_str(_get(data, "data"), "data"),
    )


def _message_from_json(data: Any) -> Message:
    data = _as_mapping(data, "message")
    blockhash = data.get("recentBlockhash")
    header = data.get("header")
    return Message(
        account_keys=[
            _as_str(key, "accountKeys")
            for key in _as_list(_get(data, "accountKeys"), "accountKeys")
        ],
        instructions=[
            _instruction_from_json(item)
            for item in _as_list(_get(data, "instructions"), "instructions")
        ],
        recent_blockhash=None
        if blockhash is None
        else _as_str(blockhash, "recentBlockhash"),
        header=None if header is None else _header_from_json(header),
    )


def transaction_data_from_json(data: Any) -> TransactionData:
    """Build a TransactionData from its JSON form; raise ValueError if malformed."""
    data = _as_mapping(data, "transaction")
    return TransactionData(
        message=_message_from_json(_get(data, "message")),
        signatures=[
            _as_str(sig, "signatures")
            for sig in _as_list(_get(data, "signatures"), "signatures")
        ],
    )


def transaction_from_json(data: Any) -> Transaction:
    """Build a Transaction from its JSON form; raise ValueError if malformed."""
    data = _as_mapping(data, "result")
    block_time = data.get("blockTime")
    return Transaction(
        signature=_as_str(data.get("signature", ""), "signature"),
        slot=_as_int(_get(data, "slot"), "slot", 0, _U64_MAX),
        block_time=None
        if block_time is None
        else _as_int(block_time, "blockTime", _I64_MIN, _I64_MAX),
        transaction=transaction_data_from_json(_get(data, "transaction")),
    )