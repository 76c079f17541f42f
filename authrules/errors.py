"""Error kinds raised while building, storing and validating rule sets."""

from __future__ import annotations

from enum import Enum


class RuleSetErrorKind(Enum):
    """Every failure a rule set operation can report; the value is its description."""

    NUMERICAL_OVERFLOW = "Numerical overflow"
    DATA_TYPE_MISMATCH = "Data type mismatch"
    INCORRECT_OWNER = "Incorrect account owner"
    DERIVED_KEY_INVALID = "Derived key invalid"
    VALUE_OCCUPIED = "Operation is already present in the rule set"
    OPERATION_NOT_FOUND = "Operation not found in the rule set"
    UNSUPPORTED_RULE_SET_REV_MAP_VERSION = "Unsupported rule set revision map version"
    RULE_SET_REVISION_NOT_AVAILABLE = "Rule set revision not available"
    NOT_IMPLEMENTED = "Rule is not implemented"
    UNEXPECTED_RULE_SET_FAILURE = "Unexpected rule set failure"
    MISSING_ACCOUNT = "Account required by the rule is missing"
    MISSING_PAYLOAD_VALUE = "Payload value required by the rule is missing"
    RULE_AUTHORITY_IS_NOT_SIGNER = "Rule authority is not a signer"
    ADDITIONAL_SIGNER_CHECK_FAILED = "Additional signer check failed"
    PUBKEY_MATCH_CHECK_FAILED = "Pubkey match check failed"
    PUBKEY_LIST_MATCH_CHECK_FAILED = "Pubkey list match check failed"
    PUBKEY_TREE_MATCH_CHECK_FAILED = "Pubkey tree match check failed"
    PDA_MATCH_CHECK_FAILED = "PDA match check failed"
    PROGRAM_OWNED_CHECK_FAILED = "Program owned check failed"
    PROGRAM_OWNED_LIST_CHECK_FAILED = "Program owned list check failed"
    PROGRAM_OWNED_TREE_CHECK_FAILED = "Program owned tree check failed"
    PROGRAM_OWNED_SET_CHECK_FAILED = "Program owned set check failed"
    AMOUNT_CHECK_FAILED = "Amount check failed"
    FREQUENCY_CHECK_FAILED = "Frequency check failed"
    IS_WALLET_CHECK_FAILED = "Is wallet check failed"
    MESSAGE_PACK_DESERIALIZATION_ERROR = "MessagePack deserialization failed"
    ACCOUNT_BORROW_FAILED = "Account data could not be borrowed"
    BORSH_IO_ERROR = "Binary layout could not be decoded or encoded"


class RuleSetError(Exception):
    """An error carrying a :class:`RuleSetErrorKind`.

    Two errors compare equal when they share the same kind.
    """

    def __init__(self, kind: RuleSetErrorKind, message: str | None = None) -> None:
        self.kind = kind
        self.message = message if message is not None else kind.value
        super().__init__(self.message)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RuleSetError):
            return NotImplemented
        return self.kind is other.kind

    def __hash__(self) -> int:
        return hash(self.kind)

    def __repr__(self) -> str:
        return f"RuleSetError({self.kind.name}, {self.message!r})"