"""Base62 rendering of numeric ids as they appear in public URLs."""

BASE62_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"

_DIGITS: dict[str, int] = {char: i for i, char in enumerate(BASE62_ALPHABET)}
_MAX_ID = 2**64 - 1


class InvalidIdError(ValueError):
    """Raised when a public id string cannot be decoded."""


def to_base62(value: int) -> str:
    """Encode a non-negative integer id.

    Args:
        value: Database id.

    Returns:
        Base62 string, "0" for zero.

    Raises:
        ValueError: If the id is negative.
    """
    if value < 0:
        raise ValueError(f"ids are non-negative, got {value}")
    if value == 0:
        return BASE62_ALPHABET[0]

    chars: list[str] = []
    while value:
        value, rem = divmod(value, 62)
        chars.append(BASE62_ALPHABET[rem])
    return "".join(reversed(chars))


def parse_base62(text: str) -> int:
    """Decode a base62 id.

    Args:
        text: Public id string.

    Returns:
        Decoded integer id.

    Raises:
        InvalidIdError: If the string is empty, contains characters outside
            the alphabet, or overflows 64 bits.
    """
    if not text:
        raise InvalidIdError("empty id")

    value = 0
    for char in text:
        digit = _DIGITS.get(char)
        if digit is None:
            raise InvalidIdError(f"invalid character {char!r} in id {text!r}")
        value = value * 62 + digit
        if value > _MAX_ID:
            raise InvalidIdError(f"id {text!r} is out of range")
    return value
