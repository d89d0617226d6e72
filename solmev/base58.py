"""Base58 encoding with the Bitcoin alphabet, as used for Solana data."""

ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"

_INDEX = {char: value for value, char in enumerate(ALPHABET)}


def b58decode(text: str) -> bytes:
    """Decode a base58 string into bytes.

    Each leading ``1`` becomes a zero byte. Raises ``ValueError`` on a
    character outside the alphabet.
    """
    number = 0
    for char in text:
        try:
            digit = _INDEX[char]
        except KeyError:
            raise ValueError(f"invalid base58 character {char!r}") from None
        number = number * 58 + digit

    leading_zeros = len(text) - len(text.lstrip("1"))
    body = number.to_bytes((number.bit_length() + 7) // 8, "big") if number else b""
    return b"\x00" * leading_zeros + body


def b58encode(data: bytes) -> str:
    """Encode bytes as a base58 string."""
    data = bytes(data)
    leading_zeros = len(data) - len(data.lstrip(b"\x00"))
    number = int.from_bytes(data, "big")

    digits = []
    while number:
        number, remainder = divmod(number, 58)
        digits.append(ALPHABET[remainder])

    return "1" * leading_zeros + "".join(reversed(digits))