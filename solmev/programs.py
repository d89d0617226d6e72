"""Well-known Solana program ids, Jito tip accounts and address checks."""

from solmev.base58 import ALPHABET

RAYDIUM_AMM = "675kPX9MHTjS2zt1qfr1NYHuzeLXfQM9H24wFSUt1Mp8"
RAYDIUM_CLMM = "CAMMCzo5YL8w4VFF8KVHrK22GGUQzGdR1qJRXgKhpNzc"
ORCA_WHIRLPOOLS = "whirLbMiicVdio4qvUfM5KAg6Ct8VwpYzGff3uctyCc"
ORCA_V1 = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"
SERUM_DEX = "9xQeWvG816bUx9EPjHmaT23yvVM2ZWbrrpZb9PusVFin"
JUPITER = "JUP6LkbZbjS1jKKwapdHNy74zcZ3tLUZoi5QNyVTaV4"
PUMP_FUN = "6EF8rrecthR5Dkzon8Nwu78hRvfCKubJ14M5uBEwF6P"

SYSTEM = "11111111111111111111111111111111"
MEMO = "Memo1UhkJRfHyvLMcVucJwxXeuD728EqVDgQdddcxFr"

# Transfers below this many lamports (0.001 SOL) count as small.
SMALL_TRANSFER_THRESHOLD = 1_000_000

JITO_TIP_ACCOUNTS = (
    "96gYZGLnJYVFmbjzopPSU6QiEV5fGqZNyN9nmNhvrZU5",
    "HFqU5x63VTqvQss8hp11i4wVV8bD44PvwucfZ2bU7gRe",
    "Cw8CFyM9FkoMi7K7Crf6HNQqf4uEMzpKw6QNghXLvLkY",
    "ADaUMid9yfUytqMBgopwjb2DTLSokTSzL1zt6iAVflbD",
    "DfXygSm4jCyNCybVYYK6DwvWqjKee8pbDmJGcLWNDXjh",
    "ADuUkR4vqLUMWXxW9gh6D6L8pMSawimctcNZ5pGwDcEt",
    "DttWaMuVvTiduZRnguLF7jNxG3tMK1dpv2vZeDbemFDF",
    "GGcvCardiohRDPcsyTuyNzTTBEsszS6b6X9dCg12N66X",
)

ALLOWED_PROGRAMS_FOR_SIMPLE_TRANSFER = frozenset({SYSTEM, MEMO})

DEX_PROGRAMS = (
    RAYDIUM_AMM,
    RAYDIUM_CLMM,
    ORCA_WHIRLPOOLS,
    ORCA_V1,
    SERUM_DEX,
    JUPITER,
    PUMP_FUN,
)

_JITO_TIP_SET = frozenset(JITO_TIP_ACCOUNTS)
_DEX_SET = frozenset(DEX_PROGRAMS)
_ALPHABET_SET = frozenset(ALPHABET)

MAX_ADDRESS_LENGTH = 44


def is_jito_tip_account(account: str) -> bool:
    """Return True if the account is one of the Jito tip accounts."""
    return account in _JITO_TIP_SET


def is_dex_program(program_id: str) -> bool:
    """Return True if the program id belongs to a known DEX."""
    return program_id in _DEX_SET


def is_base58_address(account: str) -> bool:
    """Return True if the account is at most 44 base58 characters long."""
    return len(account) <= MAX_ADDRESS_LENGTH and all(
        char in _ALPHABET_SET for char in account
    )