"""Layout of the rule set PDA: a fixed header, versioned revisions and a revision map.

| header (9 bytes) | version | revision 0 | version | revision 1 | ... | map version | map |
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field

from .accounts import Key
from .errors import RuleSetError, RuleSetErrorKind

RULE_SET_REV_MAP_VERSION = 1
RULE_SET_LIB_VERSION = 1
RULE_SET_SERIALIZED_HEADER_LEN = 9

_HEADER = struct.Struct("<BQ")
_U32 = struct.Struct("<I")
_U64 = struct.Struct("<Q")


def _decode_error(message: str) -> RuleSetError:
    return RuleSetError(RuleSetErrorKind.BORSH_IO_ERROR, message)


@dataclass
class RuleSetHeader:
    """Fixed-size header holding the location of the revision map version byte."""

    rev_map_version_location: int
    key: Key = Key.RULE_SET

    def to_bytes(self) -> bytes:
        try:
            return _HEADER.pack(self.key, self.rev_map_version_location)
        except struct.error as exc:
            raise _decode_error(str(exc)) from exc

    @classmethod
    def from_bytes(cls, data) -> RuleSetHeader:
        data = bytes(data)
        if len(data) != _HEADER.size:
            raise _decode_error(f"header must be {_HEADER.size} bytes, got {len(data)}")
        raw_key, location = _HEADER.unpack(data)
        try:
            key = Key(raw_key)
        except ValueError:
            raise _decode_error(f"unknown account key {raw_key}") from None
        return cls(rev_map_version_location=location, key=key)


@dataclass
class RuleSetRevisionMapV1:
    """Locations of every stored rule set revision, in revision order."""

    rule_set_revisions: list[int] = field(default_factory=list)

    def to_bytes(self) -> bytes:
        try:
            return _U32.pack(len(self.rule_set_revisions)) + b"".join(
                _U64.pack(location) for location in self.rule_set_revisions
            )
        except struct.error as exc:
            raise _decode_error(str(exc)) from exc

    @classmethod
    def from_bytes(cls, data) -> RuleSetRevisionMapV1:
        data = bytes(data)
        if len(data) < _U32.size:
            raise _decode_error("revision map length prefix is missing")
        (count,) = _U32.unpack_from(data)
        expected = _U32.size + count * _U64.size
        if len(data) != expected:
            raise _decode_error(f"revision map must be {expected} bytes, got {len(data)}")
        locations = [
            location for (location,) in _U64.iter_unpack(data[_U32.size:])
        ]
        return cls(rule_set_revisions=locations)


def get_existing_revision_map(account) -> tuple[RuleSetRevisionMapV1, int]:
    """Read the revision map from a rule set account.

    Returns the map and the location of its version byte.
    """
    data = bytes(account.data)
    if len(data) < RULE_SET_SERIALIZED_HEADER_LEN:
        raise RuleSetError(RuleSetErrorKind.DATA_TYPE_MISMATCH)
    header = RuleSetHeader.from_bytes(data[:RULE_SET_SERIALIZED_HEADER_LEN])
    location = header.rev_map_version_location
    if location >= len(data):
        raise RuleSetError(RuleSetErrorKind.DATA_TYPE_MISMATCH)
    if data[location] != RULE_SET_REV_MAP_VERSION:
        raise RuleSetError(RuleSetErrorKind.UNSUPPORTED_RULE_SET_REV_MAP_VERSION)
    start = location + 1
    if start >= len(data):
        raise RuleSetError(RuleSetErrorKind.DATA_TYPE_MISMATCH)
    return RuleSetRevisionMapV1.from_bytes(data[start:]), location


def get_latest_revision(account) -> int:
    """Return the index of the newest revision stored in a rule set account."""
    revision_map, _ = get_existing_revision_map(account)
    if not revision_map.rule_set_revisions:
        raise RuleSetError(RuleSetErrorKind.RULE_SET_REVISION_NOT_AVAILABLE)
    return len(revision_map.rule_set_revisions) - 1