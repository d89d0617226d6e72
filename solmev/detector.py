"""Detection of Jito bundles, sandwich attacks and front-running around a transaction."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from solmev.loss import (
    UserLoss,
    calculate_sandwich_loss,
    is_small_transfer_instruction,
    parse_transfer_amount,
)
from solmev.models import Transaction
from solmev.programs import (
    ALLOWED_PROGRAMS_FOR_SIMPLE_TRANSFER,
    MEMO,
    SYSTEM,
    is_base58_address,
    is_dex_program,
    is_jito_tip_account,
)

log = logging.getLogger(__name__)

# Transactions on each side of a tip that make up its bundle, besides the tip itself.
BUNDLE_SPAN = 4
# Neighbours on each side of the target examined for a sandwich.
SANDWICH_WINDOW = 2
# Minimum Jaccard similarity for two intersections to be the same pool.
SANDWICH_SIMILARITY = 0.7
# Account count and 44-character key count that mark a likely swap.
MIN_SWAP_ACCOUNTS = 6
MIN_TOKEN_ACCOUNTS = 4
TOKEN_ACCOUNT_LENGTH = 44


@dataclass
class JitoTip:
    """A Jito tip found near a target transaction and the bundle it implies."""

    index: int
    account: str
    amount: int
    before_target: bool
    bundle: list[Transaction] = field(default_factory=list)


@dataclass
class SandwichDetails:
    """A detected sandwich attack."""

    front_tx: str
    back_tx: str
    account_intersection: list[str]
    user_loss: UserLoss | None


@dataclass
class FrontrunDetails:
    """A detected front-running attack."""

    front_tx: str
    victim_tx: str
    account_intersection: list[str]


def _find_signature(transactions: Sequence[Transaction], signature: str) -> int | None:
    return next(
        (i for i, tx in enumerate(transactions) if tx.signature == signature), None
    )


class MevDetector:
    """Heuristic detector of MEV attacks in a list of transactions."""

    def is_simple_transfer(self, tx: Transaction) -> bool:
        """Return True if every instruction calls only the system or memo program."""
        message = tx.transaction.message
        return all(
            message.program_id(instruction) in ALLOWED_PROGRAMS_FOR_SIMPLE_TRANSFER
            for instruction in message.instructions
        )

    def check_single_transaction_for_jito_tip(
        self, tx: Transaction
    ) -> tuple[str, int] | None:
        """Return the tip account and amount of a system transfer to a Jito tip account."""
        message = tx.transaction.message
        tip_indices = {
            index: account
            for index, account in enumerate(message.account_keys)
            if is_jito_tip_account(account)
        }
        if not tip_indices:
            return None

        for instruction in message.instructions:
            program_id = message.program_id(instruction)
            if program_id is None:
                return None
            for account_index in instruction.accounts:
                address = tip_indices.get(account_index)
                if address is None or program_id != SYSTEM:
                    continue
                amount = parse_transfer_amount(instruction.data)
                if amount is not None:
                    log.debug("Jito tip of %d lamports", amount)
                    return address, amount
        return None

    def check_jito_tip_in_nearby_transactions(
        self, block_transactions: Sequence[Transaction], target_index: int
    ) -> JitoTip | None:
        """Find the nearest Jito tip, looking first before the target, then after it.

        A tip before the target bundles itself with the four transactions
        after it; a tip after the target bundles itself with the four before.
        """
        for i in reversed(range(target_index)):
            found = self.check_single_transaction_for_jito_tip(block_transactions[i])
            if found is not None:
                log.info("Jito tip found before the target transaction")
                account, amount = found
                bundle = list(block_transactions[i : i + BUNDLE_SPAN + 1])
                return JitoTip(i, account, amount, True, bundle)

        for i in range(target_index + 1, len(block_transactions)):
            found = self.check_single_transaction_for_jito_tip(block_transactions[i])
            if found is not None:
                log.info("Jito tip found after the target transaction")
                account, amount = found
                bundle = list(block_transactions[max(i - BUNDLE_SPAN, 0) : i + 1])
                return JitoTip(i, account, amount, False, bundle)

        return None

    def extract_filtered_accounts(self, tx: Transaction) -> set[str]:
        """Return the writable accounts used by instructions.

        Jito tip accounts, accounts of small system transfers and keys
        that are not base58 addresses are left out.
        """
        message = tx.transaction.message
        keys = message.account_keys
        accounts: set[str] = set()
        for instruction in message.instructions:
            program_id = message.program_id(instruction)
            if program_id is None:
                continue
            if program_id == SYSTEM and is_small_transfer_instruction(instruction, keys):
                continue
            for index in instruction.accounts:
                if index >= len(keys):
                    continue
                if not message.is_account_writable(index):
                    continue
                account = keys[index]
                if is_jito_tip_account(account):
                    continue
                accounts.add(account)
        return {account for account in accounts if is_base58_address(account)}

    def calculate_intersection_similarity(
        self, set1: Iterable[str], set2: Iterable[str]
    ) -> float:
        """Return the Jaccard similarity of two account collections."""
        first, second = set(set1), set(set2)
        if not first and not second:
            return 1.0
        if not first or not second:
            return 0.0
        return len(first & second) / len(first | second)

    def is_dex_transaction(self, tx: Transaction) -> bool:
        """Return True if the transaction calls a known DEX or looks like a swap."""
        message = tx.transaction.message
        if any(
            (program_id := message.program_id(instruction)) is not None
            and is_dex_program(program_id)
            for instruction in message.instructions
        ):
            return True
        return self.is_likely_swap_transaction(tx)

    def is_likely_swap_transaction(self, tx: Transaction) -> bool:
        """Guess from its accounts and programs whether a transaction is a swap."""
        message = tx.transaction.message
        has_many_accounts = len(message.account_keys) >= MIN_SWAP_ACCOUNTS
        has_other_program = any(
            (program_id := message.program_id(instruction)) is not None
            and program_id not in (SYSTEM, MEMO)
            for instruction in message.instructions
        )
        return (
            has_many_accounts
            and has_other_program
            and self.has_token_account_patterns(tx)
        )

    def has_token_account_patterns(self, tx: Transaction) -> bool:
        """Return True if at least four account keys are 44 characters long."""
        count = sum(
            1
            for key in tx.transaction.message.account_keys
            if len(key) == TOKEN_ACCOUNT_LENGTH
        )
        return count >= MIN_TOKEN_ACCOUNTS

    def _intersection(self, target_accounts: set[str], tx: Transaction) -> list[str]:
        return sorted(target_accounts & self.extract_filtered_accounts(tx))

    def detect_sandwich_attack(
        self, transactions: Sequence[Transaction], target_signature: str
    ) -> SandwichDetails | None:
        """Look for DEX trades just before and after the target that hit the same pool."""
        target_index = _find_signature(transactions, target_signature)
        if target_index is None:
            return None
        target_tx = transactions[target_index]
        if not self.is_dex_transaction(target_tx):
            return None

        target_accounts = self.extract_filtered_accounts(target_tx)
        if not target_accounts:
            return None
        log.debug("target has %d filtered accounts", len(target_accounts))

        front_candidates = []
        for offset in range(1, min(target_index, SANDWICH_WINDOW) + 1):
            front_tx = transactions[target_index - offset]
            if not self.is_dex_transaction(front_tx):
                continue
            shared = self._intersection(target_accounts, front_tx)
            if shared:
                front_candidates.append((front_tx, shared))

        back_candidates = []
        after = len(transactions) - target_index - 1
        for offset in range(1, min(SANDWICH_WINDOW, after) + 1):
            back_tx = transactions[target_index + offset]
            if not self.is_dex_transaction(back_tx):
                continue
            shared = self._intersection(target_accounts, back_tx)
            if shared:
                back_candidates.append((back_tx, shared))

        for front_tx, front_shared in front_candidates:
            for back_tx, back_shared in back_candidates:
                similarity = self.calculate_intersection_similarity(
                    front_shared, back_shared
                )
                if similarity < SANDWICH_SIMILARITY:
                    continue
                log.info(
                    "sandwich pattern found, similarity %.1f%%", similarity * 100.0
                )
                combined = list(front_shared)
                combined.extend(a for a in back_shared if a not in front_shared)
                user_loss = calculate_sandwich_loss(
                    transactions,
                    target_index,
                    front_tx.signature,
                    back_tx.signature,
                    combined,
                )
                return SandwichDetails(
                    front_tx=front_tx.signature,
                    back_tx=back_tx.signature,
                    account_intersection=combined,
                    user_loss=user_loss,
                )
        return None

    def detect_frontrun_attack(
        self, transactions: Sequence[Transaction], target_signature: str
    ) -> FrontrunDetails | None:
        """Return the nearest earlier DEX trade that shares accounts with the target."""
        target_index = _find_signature(transactions, target_signature)
        if target_index is None:
            return None
        target_tx = transactions[target_index]
        if not self.is_dex_transaction(target_tx):
            return None

        target_accounts = self.extract_filtered_accounts(target_tx)
        if not target_accounts:
            return None
        log.debug("front-run check: target has %d filtered accounts", len(target_accounts))

        for candidate in reversed(transactions[:target_index]):
            if not self.is_dex_transaction(candidate):
                continue
            shared = self._intersection(target_accounts, candidate)
            if shared:
                log.info("front-run pattern found, %d shared accounts", len(shared))
                return FrontrunDetails(
                    front_tx=candidate.signature,
                    victim_tx=target_tx.signature,
                    account_intersection=shared,
                )
        return None