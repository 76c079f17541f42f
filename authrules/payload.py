"""Values handed to rule validation, keyed by field name."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, MutableMapping
from dataclasses import dataclass
from typing import Union

from .pubkey import Pubkey

_U64_MAX = 2**64 - 1
_NODE_LEN = 32


@dataclass(frozen=True)
class ProofInfo:
    """A Merkle proof: the sibling nodes from leaf to root, each 32 bytes."""

    proof: tuple[bytes, ...] = ()

    def __post_init__(self) -> None:
        nodes = tuple(bytes(node) for node in self.proof)
        for node in nodes:
            if len(node) != _NODE_LEN:
                raise ValueError(f"a proof node is {_NODE_LEN} bytes, got {len(node)}")
        object.__setattr__(self, "proof", nodes)


@dataclass(frozen=True)
class SeedsVec:
    """The seeds used to derive a program address."""

    seeds: tuple[bytes, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "seeds", tuple(bytes(seed) for seed in self.seeds))


PayloadValue = Union[Pubkey, SeedsVec, ProofInfo, int]


def _checked(value: object) -> PayloadValue:
    if isinstance(value, bool):
        raise TypeError("a payload number must be an integer, not a bool")
    if isinstance(value, int):
        if not 0 <= value <= _U64_MAX:
            raise ValueError(f"a payload number must fit in 64 unsigned bits, got {value}")
        return value
    if isinstance(value, (Pubkey, SeedsVec, ProofInfo)):
        return value
    raise TypeError(f"unsupported payload value of type {type(value).__name__}")


class Payload(MutableMapping):
    """A mapping from field names to pubkeys, seeds, Merkle proofs or amounts."""

    def __init__(self, items: Mapping | Iterable = (), /) -> None:
        self._values: dict[str, PayloadValue] = {}
        self.update(items)

    def __getitem__(self, field: str) -> PayloadValue:
        return self._values[field]

    def __setitem__(self, field: str, value: object) -> None:
        if not isinstance(field, str):
            raise TypeError("payload field names must be strings")
        self._values[field] = _checked(value)

    def __delitem__(self, field: str) -> None:
        del self._values[field]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"Payload({self._values!r})"

    def _typed(self, field: str, kind: type):
        value = self._values.get(field)
        if isinstance(value, kind) and not isinstance(value, bool):
            return value
        return None

    def get_pubkey(self, field: str) -> Pubkey | None:
        """Return the pubkey stored under ``field``, or ``None``."""
        return self._typed(field, Pubkey)

    def get_merkle_proof(self, field: str) -> ProofInfo | None:
        """Return the Merkle proof stored under ``field``, or ``None``."""
        return self._typed(field, ProofInfo)

    def get_seeds(self, field: str) -> SeedsVec | None:
        """Return the derivation seeds stored under ``field``, or ``None``."""
        return self._typed(field, SeedsVec)

    def get_amount(self, field: str) -> int | None:
        """Return the amount stored under ``field``, or ``None``."""
        return self._typed(field, int)