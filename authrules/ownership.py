"""Rules that inspect which program owns an account named in the payload."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .accounts import AccountInfo
from .errors import RuleSetError, RuleSetErrorKind
from .pubkey import SYSTEM_PROGRAM_ID, Pubkey
from .rules import Rule
from .utils import compute_merkle_root, is_zeroed

logger = logging.getLogger(__name__)


class _Missing(Exception):
    """A value the rule needs is absent; carries the kind to report."""

    def __init__(self, kind: RuleSetErrorKind) -> None:
        super().__init__(kind.value)
        self.kind = kind


def _account_for(accounts, payload, field: str) -> AccountInfo:
    key = payload.get_pubkey(field)
    if key is None:
        raise _Missing(RuleSetErrorKind.MISSING_PAYLOAD_VALUE)
    account = accounts.get(key)
    if account is None:
        raise _Missing(RuleSetErrorKind.MISSING_ACCOUNT)
    return account


def _has_data(account: AccountInfo) -> bool:
    """Return whether the account holds any nonzero byte; log why not otherwise."""
    if is_zeroed(account.data):
        logger.debug("Account data is empty" if not account.data else "Account data is zeroed")
        return False
    return True


def _missing(exc: _Missing):
    return False, RuleSetError(exc.kind)


@dataclass(frozen=True)
class ProgramOwned(Rule):
    """The account named in the payload field must hold data and be owned by ``program``."""

    program: Pubkey
    field: str
    _error_kind = RuleSetErrorKind.PROGRAM_OWNED_CHECK_FAILED

    def low_level_validate(self, accounts, payload, update_rule_state=False,
                           rule_set_state_pda=None, rule_authority=None):
        logger.debug("Validating ProgramOwned")
        try:
            account = _account_for(accounts, payload, self.field)
        except _Missing as exc:
            return _missing(exc)
        if not _has_data(account):
            return self._result(False)
        return self._result(account.owner == self.program)


@dataclass(frozen=True)
class ProgramOwnedList(Rule):
    """An account named in one of the ``|``-separated fields must be owned by a listed program."""

    programs: list
    field: str
    _error_kind = RuleSetErrorKind.PROGRAM_OWNED_LIST_CHECK_FAILED

    def low_level_validate(self, accounts, payload, update_rule_state=False,
                           rule_set_state_pda=None, rule_authority=None):
        logger.debug("Validating ProgramOwnedList")
        try:
            for name in self.field.split("|"):
                account = _account_for(accounts, payload, name)
                if _has_data(account) and account.owner in self.programs:
                    return self._result(True)
        except _Missing as exc:
            return _missing(exc)
        return self._result(False)


@dataclass(frozen=True)
class ProgramOwnedTree(Rule):
    """The owner of the named account, with the payload proof, must reach the Merkle root."""

    root: bytes
    pubkey_field: str
    proof_field: str
    _error_kind = RuleSetErrorKind.PROGRAM_OWNED_TREE_CHECK_FAILED

    def low_level_validate(self, accounts, payload, update_rule_state=False,
                           rule_set_state_pda=None, rule_authority=None):
        logger.debug("Validating ProgramOwnedTree")
        try:
            account = _account_for(accounts, payload, self.pubkey_field)
        except _Missing as exc:
            return _missing(exc)
        if not _has_data(account):
            return self._result(False)
        proof = payload.get_merkle_proof(self.proof_field)
        if proof is None:
            return False, RuleSetError(RuleSetErrorKind.MISSING_PAYLOAD_VALUE)
        return self._result(compute_merkle_root(account.owner, proof) == bytes(self.root))


@dataclass(frozen=True)
class ProgramOwnedSet(Rule):
    """An account named in one of the ``|``-separated fields must be owned by a program in the set."""

    programs: frozenset
    field: str
    _error_kind = RuleSetErrorKind.PROGRAM_OWNED_SET_CHECK_FAILED

    def __post_init__(self) -> None:
        object.__setattr__(self, "programs", frozenset(self.programs))

    def low_level_validate(self, accounts, payload, update_rule_state=False,
                           rule_set_state_pda=None, rule_authority=None):
        logger.debug("Validating ProgramOwnedSet")
        try:
            for name in self.field.split("|"):
                account = _account_for(accounts, payload, name)
                if _has_data(account) and account.owner in self.programs:
                    return self._result(True)
        except _Missing as exc:
            return _missing(exc)
        return self._result(False)


@dataclass(frozen=True)
class IsWallet(Rule):
    """The named account must be owned by the system program and lie on the curve.

    The curve check is not available, so this rule reports that it is not implemented.
    """

    field: str
    _error_kind = RuleSetErrorKind.IS_WALLET_CHECK_FAILED

    def low_level_validate(self, accounts, payload, update_rule_state=False,
                           rule_set_state_pda=None, rule_authority=None):
        logger.debug("Validating IsWallet")
        try:
            account = _account_for(accounts, payload, self.field)
        except _Missing as exc:
            return _missing(exc)
        if account.owner != SYSTEM_PROGRAM_ID:
            return False, RuleSetError(RuleSetErrorKind.NOT_IMPLEMENTED)
        # Owned by the system program, but the on-curve check cannot be performed yet.
        return False, RuleSetError(RuleSetErrorKind.NOT_IMPLEMENTED)