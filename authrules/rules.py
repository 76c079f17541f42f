"""Rule trees and their validation against a payload and a set of accounts."""

from __future__ import annotations

import logging
import operator
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Optional

from .accounts import AccountInfo
from .errors import RuleSetError, RuleSetErrorKind
from .payload import Payload
from .pubkey import Pubkey
from .utils import assert_derivation, compute_merkle_root

logger = logging.getLogger(__name__)

Accounts = Mapping[Pubkey, AccountInfo]
Outcome = tuple[bool, RuleSetError]


class CompareOp(Enum):
    """Operators comparing a payload amount (left) against a rule amount (right)."""

    LT = "Lt"
    LT_EQ = "LtEq"
    EQ = "Eq"
    GT_EQ = "GtEq"
    GT = "Gt"


_COMPARATORS = {
    CompareOp.LT: operator.lt,
    CompareOp.LT_EQ: operator.le,
    CompareOp.EQ: operator.eq,
    CompareOp.GT_EQ: operator.ge,
    CompareOp.GT: operator.gt,
}


def _error(kind: RuleSetErrorKind) -> RuleSetError:
    return RuleSetError(kind)


class Rule(ABC):
    """A node in a rule tree."""

    _error_kind: ClassVar[RuleSetErrorKind] = RuleSetErrorKind.UNEXPECTED_RULE_SET_FAILURE

    def validate(
        self,
        accounts: Accounts,
        payload: Payload,
        update_rule_state: bool = False,
        rule_set_state_pda: Optional[AccountInfo] = None,
        rule_authority: Optional[AccountInfo] = None,
    ) -> None:
        """Validate the whole tree; raise the rolled-up error when it fails."""
        passed, error = self.low_level_validate(
            accounts, payload, update_rule_state, rule_set_state_pda, rule_authority
        )
        if not passed:
            raise error

    @abstractmethod
    def low_level_validate(
        self,
        accounts: Accounts,
        payload: Payload,
        update_rule_state: bool = False,
        rule_set_state_pda: Optional[AccountInfo] = None,
        rule_authority: Optional[AccountInfo] = None,
    ) -> Outcome:
        """Evaluate the rule, returning whether it passed and the error it would raise."""

    def to_error(self) -> RuleSetError:
        """The error reported when this rule fails."""
        return RuleSetError(self._error_kind)

    def _result(self, passed: bool) -> Outcome:
        return passed, self.to_error()


@dataclass(frozen=True)
class All(Rule):
    """Passes only when every contained rule passes."""

    rules: list = field(default_factory=list)

    def low_level_validate(self, accounts, payload, update_rule_state=False,
                           rule_set_state_pda=None, rule_authority=None):
        logger.debug("Validating All")
        for rule in self.rules:
            result = rule.low_level_validate(
                accounts, payload, update_rule_state, rule_set_state_pda, rule_authority
            )
            if not result[0]:
                return result
        return self._result(True)


@dataclass(frozen=True)
class Any(Rule):
    """Passes when at least one contained rule passes."""

    rules: list = field(default_factory=list)

    def low_level_validate(self, accounts, payload, update_rule_state=False,
                           rule_set_state_pda=None, rule_authority=None):
        logger.debug("Validating Any")
        last: Optional[RuleSetError] = None
        for rule in self.rules:
            result = rule.low_level_validate(
                accounts, payload, update_rule_state, rule_set_state_pda, rule_authority
            )
            if result[0]:
                return result
            # A "not implemented" failure never hides an earlier, more useful one.
            if last is None or result[1].kind is not RuleSetErrorKind.NOT_IMPLEMENTED:
                last = result[1]
        if last is None:
            return False, _error(RuleSetErrorKind.UNEXPECTED_RULE_SET_FAILURE)
        return False, last


@dataclass(frozen=True)
class Not(Rule):
    """Passes when the contained rule fails."""

    rule: Rule

    def low_level_validate(self, accounts, payload, update_rule_state=False,
                           rule_set_state_pda=None, rule_authority=None):
        passed, error = self.rule.low_level_validate(
            accounts, payload, update_rule_state, rule_set_state_pda, rule_authority
        )
        return not passed, error


@dataclass(frozen=True)
class AdditionalSigner(Rule):
    """The given account must be present among the accounts and have signed."""

    account: Pubkey
    _error_kind = RuleSetErrorKind.ADDITIONAL_SIGNER_CHECK_FAILED

    def low_level_validate(self, accounts, payload, update_rule_state=False,
                           rule_set_state_pda=None, rule_authority=None):
        logger.debug("Validating AdditionalSigner")
        signer = accounts.get(self.account)
        if signer is None:
            return False, _error(RuleSetErrorKind.MISSING_ACCOUNT)
        return self._result(bool(signer.is_signer))


@dataclass(frozen=True)
class PubkeyMatch(Rule):
    """The pubkey in the payload field must equal the rule's pubkey."""

    pubkey: Pubkey
    field: str
    _error_kind = RuleSetErrorKind.PUBKEY_MATCH_CHECK_FAILED

    def low_level_validate(self, accounts, payload, update_rule_state=False,
                           rule_set_state_pda=None, rule_authority=None):
        logger.debug("Validating PubkeyMatch")
        key = payload.get_pubkey(self.field)
        if key is None:
            return False, _error(RuleSetErrorKind.MISSING_PAYLOAD_VALUE)
        return self._result(key == self.pubkey)


@dataclass(frozen=True)
class PubkeyListMatch(Rule):
    """A pubkey in one of the ``|``-separated payload fields must be in the list."""

    pubkeys: list
    field: str
    _error_kind = RuleSetErrorKind.PUBKEY_LIST_MATCH_CHECK_FAILED

    def low_level_validate(self, accounts, payload, update_rule_state=False,
                           rule_set_state_pda=None, rule_authority=None):
        logger.debug("Validating PubkeyListMatch")
        for name in self.field.split("|"):
            key = payload.get_pubkey(name)
            if key is None:
                return False, _error(RuleSetErrorKind.MISSING_PAYLOAD_VALUE)
            if key in self.pubkeys:
                return self._result(True)
        return self._result(False)


@dataclass(frozen=True)
class PubkeyTreeMatch(Rule):
    """The payload pubkey and proof must lead to the rule's Merkle root."""

    root: bytes
    pubkey_field: str
    proof_field: str
    _error_kind = RuleSetErrorKind.PUBKEY_TREE_MATCH_CHECK_FAILED

    def low_level_validate(self, accounts, payload, update_rule_state=False,
                           rule_set_state_pda=None, rule_authority=None):
        logger.debug("Validating PubkeyTreeMatch")
        leaf = payload.get_pubkey(self.pubkey_field)
        if leaf is None:
            return False, _error(RuleSetErrorKind.MISSING_PAYLOAD_VALUE)
        proof = payload.get_merkle_proof(self.proof_field)
        if proof is None:
            return False, _error(RuleSetErrorKind.MISSING_PAYLOAD_VALUE)
        return self._result(compute_merkle_root(leaf, proof) == bytes(self.root))


@dataclass(frozen=True)
class PDAMatch(Rule):
    """The payload seeds must derive the payload address under the program.

    When ``program`` is ``None`` the owner of the address's account is used.
    """

    program: Optional[Pubkey]
    pda_field: str
    seeds_field: str
    _error_kind = RuleSetErrorKind.PDA_MATCH_CHECK_FAILED

    def low_level_validate(self, accounts, payload, update_rule_state=False,
                           rule_set_state_pda=None, rule_authority=None):
        logger.debug("Validating PDAMatch")
        account = payload.get_pubkey(self.pda_field)
        if account is None:
            return False, _error(RuleSetErrorKind.MISSING_PAYLOAD_VALUE)
        seeds = payload.get_seeds(self.seeds_field)
        if seeds is None:
            return False, _error(RuleSetErrorKind.MISSING_PAYLOAD_VALUE)
        program = self.program
        if program is None:
            info = accounts.get(account)
            if info is None:
                return False, _error(RuleSetErrorKind.MISSING_ACCOUNT)
            program = info.owner
        try:
            assert_derivation(program, account, seeds.seeds)
        except (RuleSetError, ValueError):
            return self._result(False)
        return self._result(True)


@dataclass(frozen=True)
class Amount(Rule):
    """The payload amount compared with the rule amount must hold."""

    amount: int
    operator: CompareOp
    field: str
    _error_kind = RuleSetErrorKind.AMOUNT_CHECK_FAILED

    def low_level_validate(self, accounts, payload, update_rule_state=False,
                           rule_set_state_pda=None, rule_authority=None):
        logger.debug("Validating Amount")
        payload_amount = payload.get_amount(self.field)
        if payload_amount is None:
            return False, _error(RuleSetErrorKind.MISSING_PAYLOAD_VALUE)
        return self._result(_COMPARATORS[self.operator](payload_amount, self.amount))


@dataclass(frozen=True)
class Frequency(Rule):
    """Time between operations; requires the signing authority and is not yet enforced."""

    authority: Pubkey
    _error_kind = RuleSetErrorKind.FREQUENCY_CHECK_FAILED

    def low_level_validate(self, accounts, payload, update_rule_state=False,
                           rule_set_state_pda=None, rule_authority=None):
        logger.debug("Validating Frequency")
        if rule_authority is None:
            return False, _error(RuleSetErrorKind.MISSING_ACCOUNT)
        if self.authority != rule_authority.key or not rule_authority.is_signer:
            return False, _error(RuleSetErrorKind.RULE_AUTHORITY_IS_NOT_SIGNER)
        return False, _error(RuleSetErrorKind.NOT_IMPLEMENTED)


@dataclass(frozen=True)
class Pass(Rule):
    """Always passes."""

    def low_level_validate(self, accounts, payload, update_rule_state=False,
                           rule_set_state_pda=None, rule_authority=None):
        logger.debug("Validating Pass")
        return self._result(True)


@dataclass(frozen=True)
class Namespace(Rule):
    """Marks an operation that defers to its namespace's rule; fails if validated."""

    def low_level_validate(self, accounts, payload, update_rule_state=False,
                           rule_set_state_pda=None, rule_authority=None):
        logger.debug("Validating Namespace")
        return self._result(False)