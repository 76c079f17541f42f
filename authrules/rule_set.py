"""Rule sets: named maps from operations to rule trees, with MessagePack encoding."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

import msgpack
from msgpack.exceptions import UnpackException

from .errors import RuleSetError, RuleSetErrorKind
from .layout import RULE_SET_LIB_VERSION
from .ownership import IsWallet, ProgramOwned, ProgramOwnedList, ProgramOwnedSet, ProgramOwnedTree
from .pubkey import PUBKEY_BYTES, Pubkey
from .rules import (
    AdditionalSigner,
    All,
    Amount,
    Any,
    CompareOp,
    Frequency,
    Namespace,
    Not,
    Pass,
    PDAMatch,
    PubkeyListMatch,
    PubkeyMatch,
    PubkeyTreeMatch,
    Rule,
)

_U64_MAX = 2**64 - 1
_ROOT_LEN = 32


class _Malformed(ValueError):
    """The decoded document does not describe a rule set."""


@dataclass
class RuleSetV1:
    """A named, owned map from operation names to rule trees."""

    name: str
    owner: Pubkey
    operations: dict = field(default_factory=dict)
    lib_version: int = RULE_SET_LIB_VERSION

    def add(self, operation: str, rule: Rule) -> None:
        """Add a rule for ``operation``; an operation already present is an error."""
        if operation in self.operations:
            raise RuleSetError(RuleSetErrorKind.VALUE_OCCUPIED)
        self.operations[operation] = rule

    def get(self, operation: str) -> Optional[Rule]:
        """Return the rule tree for ``operation``, or ``None``."""
        return self.operations.get(operation)

    def to_msgpack(self) -> bytes:
        """Encode as a MessagePack array of version, owner, name and operations."""
        document = [
            self.lib_version,
            bytes(self.owner),
            self.name,
            {operation: _encode_rule(rule) for operation, rule in self.operations.items()},
        ]
        return msgpack.packb(document, use_bin_type=True)

    @classmethod
    def from_msgpack(cls, data) -> RuleSetV1:
        """Decode a rule set; malformed input raises a deserialization error."""
        try:
            document = msgpack.unpackb(bytes(data), raw=False)
            return cls._from_document(document)
        except (UnpackException, ValueError, TypeError) as exc:
            raise RuleSetError(RuleSetErrorKind.MESSAGE_PACK_DESERIALIZATION_ERROR, str(exc)) from exc

    @classmethod
    def _from_document(cls, document) -> RuleSetV1:
        if not isinstance(document, list) or len(document) != 4:
            raise _Malformed("a rule set is an array of four items")
        lib_version, owner, name, operations = document
        if isinstance(lib_version, bool) or not isinstance(lib_version, int) or not 0 <= lib_version <= 255:
            raise _Malformed("lib version must be a byte")
        if not isinstance(operations, dict):
            raise _Malformed("operations must be a map")
        decoded = {}
        for operation, rule in operations.items():
            decoded[_text(operation)] = _decode_rule(rule)
        return cls(name=_text(name), owner=_pubkey(owner), operations=decoded, lib_version=lib_version)


def get_operation(operation: str, rule_set: RuleSetV1) -> Rule:
    """Find the rule for ``operation``, following namespace fallbacks.

    A ``Namespace`` entry for ``"a:b"`` defers to the rule for ``"a"``.
    """
    rule = rule_set.get(operation)
    if rule is None:
        raise RuleSetError(RuleSetErrorKind.OPERATION_NOT_FOUND)
    if isinstance(rule, Namespace):
        namespace, separator, _ = operation.partition(":")
        if not separator:
            raise RuleSetError(RuleSetErrorKind.OPERATION_NOT_FOUND)
        return get_operation(namespace, rule_set)
    return rule


def _keys(pubkeys) -> list:
    return [bytes(pubkey) for pubkey in pubkeys]


def _encode_rule(rule: Rule):
    match rule:
        case Pass():
            return "Pass"
        case Namespace():
            return "Namespace"
        case All(rules=rules):
            return {"All": [[_encode_rule(child) for child in rules]]}
        case Any(rules=rules):
            return {"Any": [[_encode_rule(child) for child in rules]]}
        case Not(rule=child):
            return {"Not": [_encode_rule(child)]}
        case AdditionalSigner(account=account):
            return {"AdditionalSigner": [bytes(account)]}
        case PubkeyMatch(pubkey=pubkey, field=name):
            return {"PubkeyMatch": [bytes(pubkey), name]}
        case PubkeyListMatch(pubkeys=pubkeys, field=name):
            return {"PubkeyListMatch": [_keys(pubkeys), name]}
        case PubkeyTreeMatch(root=root, pubkey_field=pubkey_field, proof_field=proof_field):
            return {"PubkeyTreeMatch": [bytes(root), pubkey_field, proof_field]}
        case PDAMatch(program=program, pda_field=pda_field, seeds_field=seeds_field):
            encoded = None if program is None else bytes(program)
            return {"PDAMatch": [encoded, pda_field, seeds_field]}
        case ProgramOwned(program=program, field=name):
            return {"ProgramOwned": [bytes(program), name]}
        case ProgramOwnedList(programs=programs, field=name):
            return {"ProgramOwnedList": [_keys(programs), name]}
        case ProgramOwnedTree(root=root, pubkey_field=pubkey_field, proof_field=proof_field):
            return {"ProgramOwnedTree": [bytes(root), pubkey_field, proof_field]}
        case Amount(amount=amount, operator=op, field=name):
            return {"Amount": [amount, op.value, name]}
        case Frequency(authority=authority):
            return {"Frequency": [bytes(authority)]}
        case IsWallet(field=name):
            return {"IsWallet": [name]}
        case ProgramOwnedSet(programs=programs, field=name):
            return {"ProgramOwnedSet": [sorted(_keys(programs)), name]}
    raise TypeError(f"cannot encode rule of type {type(rule).__name__}")


def _text(value) -> str:
    if not isinstance(value, str):
        raise _Malformed("expected a string")
    return value


def _pubkey(value) -> Pubkey:
    if not isinstance(value, bytes) or len(value) != PUBKEY_BYTES:
        raise _Malformed("expected a 32-byte pubkey")
    return Pubkey(value)


def _pubkey_list(value) -> list:
    if not isinstance(value, list):
        raise _Malformed("expected a list of pubkeys")
    return [_pubkey(item) for item in value]


def _root(value) -> bytes:
    if not isinstance(value, bytes) or len(value) != _ROOT_LEN:
        raise _Malformed("expected a 32-byte Merkle root")
    return value


def _u64(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= _U64_MAX:
        raise _Malformed("expected an unsigned 64-bit amount")
    return value


def _compare_op(value) -> CompareOp:
    try:
        return CompareOp(_text(value))
    except ValueError:
        raise _Malformed(f"unknown comparison operator {value!r}") from None


def _rule_list(value) -> list:
    if not isinstance(value, list):
        raise _Malformed("expected a list of rules")
    return [_decode_rule(item) for item in value]


def _optional_pubkey(value) -> Optional[Pubkey]:
    return None if value is None else _pubkey(value)


_UNIT_RULES = {"Pass": Pass, "Namespace": Namespace}

_RULE_DECODERS = {
    "All": (1, lambda f: All(rules=_rule_list(f[0]))),
    "Any": (1, lambda f: Any(rules=_rule_list(f[0]))),
    "Not": (1, lambda f: Not(rule=_decode_rule(f[0]))),
    "AdditionalSigner": (1, lambda f: AdditionalSigner(account=_pubkey(f[0]))),
    "PubkeyMatch": (2, lambda f: PubkeyMatch(pubkey=_pubkey(f[0]), field=_text(f[1]))),
    "PubkeyListMatch": (2, lambda f: PubkeyListMatch(pubkeys=_pubkey_list(f[0]), field=_text(f[1]))),
    "PubkeyTreeMatch": (3, lambda f: PubkeyTreeMatch(
        root=_root(f[0]), pubkey_field=_text(f[1]), proof_field=_text(f[2]))),
    "PDAMatch": (3, lambda f: PDAMatch(
        program=_optional_pubkey(f[0]), pda_field=_text(f[1]), seeds_field=_text(f[2]))),
    "ProgramOwned": (2, lambda f: ProgramOwned(program=_pubkey(f[0]), field=_text(f[1]))),
    "ProgramOwnedList": (2, lambda f: ProgramOwnedList(programs=_pubkey_list(f[0]), field=_text(f[1]))),
    "ProgramOwnedTree": (3, lambda f: ProgramOwnedTree(
        root=_root(f[0]), pubkey_field=_text(f[1]), proof_field=_text(f[2]))),
    "Amount": (3, lambda f: Amount(amount=_u64(f[0]), operator=_compare_op(f[1]), field=_text(f[2]))),
    "Frequency": (1, lambda f: Frequency(authority=_pubkey(f[0]))),
    "IsWallet": (1, lambda f: IsWallet(field=_text(f[0]))),
    "ProgramOwnedSet": (2, lambda f: ProgramOwnedSet(
        programs=frozenset(_pubkey_list(f[0])), field=_text(f[1]))),
}


def _decode_rule(value) -> Rule:
    if isinstance(value, str):
        unit = _UNIT_RULES.get(value)
        if unit is None:
            raise _Malformed(f"unknown rule {value!r}")
        return unit()
    if not isinstance(value, dict) or len(value) != 1:
        raise _Malformed("a rule is a unit name or a one-entry map")
    ((name, fields),) = value.items()
    entry = _RULE_DECODERS.get(name)
    if entry is None:
        raise _Malformed(f"unknown rule {name!r}")
    arity, build = entry
    if not isinstance(fields, list) or len(fields) != arity:
        raise _Malformed(f"rule {name!r} takes {arity} fields")
    return build(fields)