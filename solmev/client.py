"""Asynchronous JSON-RPC client for fetching Solana transactions and blocks."""

from __future__ import annotations

import dataclasses
import json
import logging
from typing import Any

import httpx

from solmev.models import (
    Message,
    Transaction,
    transaction_data_from_json,
    transaction_from_json,
)

log = logging.getLogger(__name__)

VOTE_PROGRAM_ID = "Vote111111111111111111111111111111111111111"
STAKE_PROGRAM_ID = "Stake11111111111111111111111111111111111111"

# How many transactions to collect on each side of the target.
NEARBY_WINDOW = 4

_I64_MIN = -(2**63)
_I64_MAX = 2**63 - 1


class RpcError(Exception):
    """Raised when an RPC request fails or its answer cannot be used."""


class SolanaClient:
    """Client for a Solana RPC node."""

    def __init__(self, rpc_url: str, timeout: float = 30.0) -> None:
        self.rpc_url = rpc_url
        self._http = httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> SolanaClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._http.aclose()

    def is_account_writable(self, account_index: int, message: Message) -> bool:
        """Return whether the account at the given index of the message is writable."""
        return message.is_account_writable(account_index)

    def is_vote_transaction(self, tx: Transaction) -> bool:
        """Return True if the transaction involves the vote or stake program."""
        vote_ids = {VOTE_PROGRAM_ID, STAKE_PROGRAM_ID}
        message = tx.transaction.message
        if any(account in vote_ids for account in message.account_keys):
            return True
        return any(
            message.program_id(instruction) in vote_ids
            for instruction in message.instructions
        )

    async def _call(self, method: str, params: list[Any]) -> Any:
        body = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
        try:
            response = await self._http.post(self.rpc_url, json=body)
            return response.json()
        except httpx.HTTPError as exc:
            raise RpcError(f"request to {self.rpc_url} failed: {exc}") from exc
        except ValueError as exc:
            raise RpcError(f"invalid JSON in response: {exc}") from exc

    async def get_transaction(self, signature: str) -> Transaction:
        """Fetch the transaction with the given signature."""
        payload = await self._call(
            "getTransaction",
            [signature, {"encoding": "json", "maxSupportedTransactionVersion": 0}],
        )
        if not isinstance(payload, dict) or "result" not in payload:
            raise RpcError(
                f"Transaction not found or error in response: {json.dumps(payload)}"
            )
        try:
            tx = transaction_from_json(payload["result"])
        except ValueError as exc:
            raise RpcError(f"could not parse transaction: {exc}") from exc
        if tx.transaction.signatures:
            tx = dataclasses.replace(tx, signature=tx.transaction.signatures[0])
        return tx

    async def get_nearby_transactions(
        self, target_signature: str
    ) -> tuple[list[Transaction], int]:
        """Return the target with up to four transactions on each side of it.

        The second item is the target's index in the returned list.
        """
        target_tx = await self.get_transaction(target_signature)
        block = await self.get_full_block(target_tx.slot)

        target_index = next(
            (i for i, tx in enumerate(block) if tx.signature == target_signature),
            None,
        )
        if target_index is None:
            raise RpcError("could not find the target transaction in its block")

        previous = block[max(target_index - NEARBY_WINDOW, 0) : target_index]
        following = block[target_index + 1 : target_index + 1 + NEARBY_WINDOW]
        nearby = [*previous, target_tx, *following]

        log.info(
            "fetched %d preceding and %d following transactions",
            len(previous),
            len(following),
        )
        return nearby, len(previous)

    async def get_full_block(self, slot: int) -> list[Transaction]:
        """Fetch every transaction of a block; unparsable entries are skipped."""
        payload = await self._call(
            "getBlock",
            [
                slot,
                {
                    "encoding": "json",
                    "transactionDetails": "full",
                    "maxSupportedTransactionVersion": 0,
                },
            ],
        )
        result = payload.get("result") if isinstance(payload, dict) else None
        if not isinstance(result, dict) or "transactions" not in result:
            raise RpcError(
                f"Failed to parse full block or block not found: {json.dumps(payload)}"
            )

        raw_time = result.get("blockTime")
        block_time = (
            raw_time
            if isinstance(raw_time, int)
            and not isinstance(raw_time, bool)
            and _I64_MIN <= raw_time <= _I64_MAX
            else None
        )

        entries = result["transactions"]
        if not isinstance(entries, list):
            return []

        transactions = []
        for entry in entries:
            if not isinstance(entry, dict) or "transaction" not in entry:
                continue
            try:
                data = transaction_data_from_json(entry["transaction"])
            except ValueError:
                continue
            transactions.append(
                Transaction(
                    signature=data.signatures[0] if data.signatures else "",
                    slot=slot,
                    block_time=block_time,
                    transaction=data,
                )
            )
        return transactions