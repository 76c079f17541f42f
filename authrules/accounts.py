"""Account keys, account handles and the frequency state account."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from enum import IntEnum

from .errors import RuleSetError, RuleSetErrorKind
from .pubkey import Pubkey
from .utils import assert_owned_by

# The maximum size that can be allocated at one time for a PDA.
CHUNK_SIZE = 10_000

_FREQUENCY_LAYOUT = struct.Struct("<Bqq")


class Key(IntEnum):
    """First byte of a serialized account, identifying its type."""

    UNINITIALIZED = 0
    RULE_SET = 1
    FREQUENCY = 2


@dataclass
class AccountInfo:
    """An account as seen during validation."""

    key: Pubkey
    owner: Pubkey
    data: bytearray = field(default_factory=bytearray)
    is_signer: bool = False
    is_writable: bool = False
    lamports: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.data, bytearray):
            self.data = bytearray(self.data)


@dataclass
class FrequencyAccount:
    """Frequency state: when the counter was last updated and the required period."""

    last_update: int
    period: int
    key: Key = Key.FREQUENCY

    def to_bytes(self) -> bytes:
        """Encode as key byte followed by two little-endian i64 values."""
        try:
            return _FREQUENCY_LAYOUT.pack(self.key, self.last_update, self.period)
        except struct.error as exc:
            raise RuleSetError(RuleSetErrorKind.BORSH_IO_ERROR, str(exc)) from exc

    @classmethod
    def from_bytes(cls, data) -> FrequencyAccount:
        """Decode account data; the first byte must mark a frequency account."""
        data = bytes(data)
        if not data:
            raise RuleSetError(RuleSetErrorKind.DATA_TYPE_MISMATCH)
        try:
            key = Key(data[0])
        except ValueError:
            raise RuleSetError(RuleSetErrorKind.DATA_TYPE_MISMATCH) from None
        if key is not Key.FREQUENCY:
            raise RuleSetError(RuleSetErrorKind.DATA_TYPE_MISMATCH)
        if len(data) != _FREQUENCY_LAYOUT.size:
            raise RuleSetError(
                RuleSetErrorKind.BORSH_IO_ERROR,
                f"expected {_FREQUENCY_LAYOUT.size} bytes, got {len(data)}",
            )
        _, last_update, period = _FREQUENCY_LAYOUT.unpack(data)
        return cls(last_update=last_update, period=period, key=key)

    @classmethod
    def from_account_info(cls, account: AccountInfo, program_id: Pubkey) -> FrequencyAccount:
        """Decode the account's data and check that ``program_id`` owns it."""
        state = cls.from_bytes(account.data)
        assert_owned_by(account, program_id)
        return state

    def to_account_data(self, account: AccountInfo) -> None:
        """Write the encoded state at the start of the account's data."""
        encoded = self.to_bytes()
        if len(account.data) < len(encoded):
            raise RuleSetError(
                RuleSetErrorKind.BORSH_IO_ERROR, "account data too small for frequency state"
            )
        account.data[: len(encoded)] = encoded