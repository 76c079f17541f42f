"""Helpers for derivation checks, ownership checks and Merkle proofs."""

from __future__ import annotations

from Crypto.Hash import keccak

from .errors import RuleSetError, RuleSetErrorKind
from .pubkey import Pubkey, find_program_address


def assert_derivation(program_id: Pubkey, account: Pubkey, seeds) -> int:
    """Check that ``seeds`` derive ``account`` under ``program_id``; return the bump."""
    key, bump = find_program_address(seeds, program_id)
    if key != account:
        raise RuleSetError(RuleSetErrorKind.DERIVED_KEY_INVALID)
    return bump


def assert_owned_by(account, owner: Pubkey) -> None:
    """Raise unless ``account`` is owned by ``owner``."""
    if account.owner != owner:
        raise RuleSetError(RuleSetErrorKind.INCORRECT_OWNER)


def _hash(*parts: bytes) -> bytes:
    digest = keccak.new(digest_bits=256)
    for part in parts:
        digest.update(part)
    return digest.digest()


def compute_merkle_root(leaf, proof) -> bytes:
    """Compute the Merkle root reached from ``leaf`` by ``proof``.

    ``proof`` is either a sequence of 32-byte nodes or an object whose
    ``proof`` attribute holds one. Each step hashes ``0x01`` followed by the
    two nodes in ascending byte order.
    """
    computed = bytes(leaf)
    for element in getattr(proof, "proof", proof):
        element = bytes(element)
        if computed <= element:
            computed = _hash(b"\x01", computed, element)
        else:
            computed = _hash(b"\x01", element, computed)
    return computed


def is_on_curve(pubkey: Pubkey) -> bool:
    """Report whether ``pubkey`` is on the Ed25519 curve for wallet checks.

    Wallet curve checks are not enabled, so this always reports ``False``.
    """
    return False


def is_zeroed(buf) -> bool:
    """Return whether every byte of ``buf`` is zero."""
    return not any(buf)