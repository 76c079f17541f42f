"""Public keys and program-derived addresses."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass

PUBKEY_BYTES = 32
MAX_SEED_LEN = 32
MAX_SEEDS = 16
_PDA_MARKER = b"ProgramDerivedAddress"

_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_ALPHABET_INDEX = {char: index for index, char in enumerate(_ALPHABET)}

_P = 2**255 - 19
_D = (-121665 * pow(121666, -1, _P)) % _P


def _b58encode(raw: bytes) -> str:
    number = int.from_bytes(raw, "big")
    chars = []
    while number:
        number, rem = divmod(number, 58)
        chars.append(_ALPHABET[rem])
    leading = len(raw) - len(raw.lstrip(b"\x00"))
    return "1" * leading + "".join(reversed(chars))


def _b58decode(text: str) -> bytes:
    number = 0
    for char in text:
        try:
            number = number * 58 + _ALPHABET_INDEX[char]
        except KeyError:
            raise ValueError(f"invalid base58 character {char!r}") from None
    leading = len(text) - len(text.lstrip("1"))
    body = number.to_bytes((number.bit_length() + 7) // 8, "big") if number else b""
    return b"\x00" * leading + body


def _is_curve_point(raw: bytes) -> bool:
    """Return whether ``raw`` decompresses to a point on the Ed25519 curve."""
    y = (int.from_bytes(raw, "little") & ((1 << 255) - 1)) % _P
    y2 = y * y % _P
    u = (y2 - 1) % _P
    v = (_D * y2 + 1) % _P
    x2 = u * pow(v, _P - 2, _P) % _P
    if x2 == 0:
        return True
    return pow(x2, (_P - 1) // 2, _P) == 1


@dataclass(frozen=True, order=True)
class Pubkey:
    """A 32-byte public key."""

    raw: bytes

    def __post_init__(self) -> None:
        raw = bytes(self.raw)
        if len(raw) != PUBKEY_BYTES:
            raise ValueError(f"a pubkey is {PUBKEY_BYTES} bytes, got {len(raw)}")
        object.__setattr__(self, "raw", raw)

    @classmethod
    def from_base58(cls, text: str) -> Pubkey:
        """Parse a base58 string into a pubkey."""
        return cls(_b58decode(text))

    def __str__(self) -> str:
        return _b58encode(self.raw)

    def __bytes__(self) -> bytes:
        return self.raw

    def __repr__(self) -> str:
        return f"Pubkey({self})"


SYSTEM_PROGRAM_ID = Pubkey(bytes(PUBKEY_BYTES))


class _OnCurveError(ValueError):
    """The derived address lies on the curve and cannot be a PDA."""


def create_program_address(seeds, program_id: Pubkey) -> Pubkey:
    """Derive a program address from ``seeds`` and ``program_id``.

    Raises ``ValueError`` when the seeds are too many or too long, or when
    the derived address lies on the Ed25519 curve.
    """
    seeds = [bytes(seed) for seed in seeds]
    if len(seeds) > MAX_SEEDS:
        raise ValueError(f"at most {MAX_SEEDS} seeds are allowed")
    if any(len(seed) > MAX_SEED_LEN for seed in seeds):
        raise ValueError(f"a seed may be at most {MAX_SEED_LEN} bytes")
    digest = hashlib.sha256(b"".join(seeds) + bytes(program_id) + _PDA_MARKER).digest()
    if _is_curve_point(digest):
        raise _OnCurveError("derived address lies on the curve")
    return Pubkey(digest)


def find_program_address(seeds, program_id: Pubkey) -> tuple[Pubkey, int]:
    """Find the off-curve address with the highest bump seed; return it and the bump."""
    seeds = [bytes(seed) for seed in seeds]
    for bump in range(255, 0, -1):
        try:
            return create_program_address([*seeds, bytes([bump])], program_id), bump
        except _OnCurveError:
            continue
    raise ValueError("unable to find a viable program address bump seed")