# authrules

Composable authorization rules for token operations. You describe what an
operation such as `Transfer:Owner` requires (extra signers, amount limits,
pubkey allow lists, Merkle-tree membership, program ownership of accounts,
PDA derivation) and check a payload plus a set of account views against it.

## Installation

```
pip install authrules
```

To run the test suite, install the `test` extra and run `pytest`.

## Building a rule set

```python
from authrules.pubkey import Pubkey
from authrules.rules import All, AdditionalSigner, Amount, CompareOp
from authrules.rule_set import RuleSetV1, get_operation

owner = Pubkey(bytes(32))
signer = Pubkey(bytes(range(32)))

rule = All([
    AdditionalSigner(signer),
    Amount(5, CompareOp.LT, "Amount"),
])

rule_set = RuleSetV1("my rule_set", owner)
rule_set.add("Transfer:Owner", rule)
```

`RuleSetV1.add` raises `RuleSetError` with kind `VALUE_OCCUPIED` if the
operation is already present. `RuleSetV1.get` returns the rule or `None`.

`get_operation(operation, rule_set)` looks an operation up and raises
`OPERATION_NOT_FOUND` when it is absent. When the operation's rule is
`Namespace`, it uses the rule of the part before the first `:` instead, so
`Transfer:Owner` falls back to `Transfer`.

`RuleSetV1.to_msgpack()` encodes the rule set as a MessagePack array of lib
version, owner bytes, name and the map of operations to rules.
`RuleSetV1.from_msgpack(data)` decodes it and raises
`MESSAGE_PACK_DESERIALIZATION_ERROR` on malformed input.

## Rules

In `authrules.rules`: `All`, `Any`, `Not`, `AdditionalSigner`,
`PubkeyMatch`, `PubkeyListMatch`, `PubkeyTreeMatch`, `PDAMatch`, `Amount`
(with `CompareOp`), `Frequency`, `Pass` and `Namespace`.

In `authrules.ownership`: `ProgramOwned`, `ProgramOwnedList`,
`ProgramOwnedSet`, `ProgramOwnedTree` and `IsWallet`. An account counts as
program-owned only if its data holds at least one nonzero byte.

`PubkeyListMatch`, `ProgramOwnedList` and `ProgramOwnedSet` accept several
payload fields separated by `|` and pass if any of them matches.

`Any` reports the last failure it saw. A `NOT_IMPLEMENTED` failure does not
replace an earlier one.

## Validating

```python
from authrules.accounts import AccountInfo
from authrules.payload import Payload

payload = Payload({"Amount": 4})
accounts = {signer: AccountInfo(key=signer, owner=owner, is_signer=True)}

get_operation("Transfer:Owner", rule_set).validate(accounts, payload)
```

A `Payload` maps field names to a `Pubkey`, a `SeedsVec`, a `ProofInfo`,
or an unsigned 64-bit integer amount.

If the rule fails, `validate` raises `RuleSetError`. Its `kind` is a
`RuleSetErrorKind` that tells you which check failed, for example
`AMOUNT_CHECK_FAILED`. A rule also fails with `MISSING_PAYLOAD_VALUE` or
`MISSING_ACCOUNT` when something it needs is absent.
`low_level_validate` takes the same arguments and returns a
`(passed, error)` pair instead of raising.

## Storage layout

`authrules.layout` describes a rule set account's data:

- a 9-byte header (`RuleSetHeader`: key byte and the location of the
  revision map version byte);
- each revision, preceded by a one-byte version;
- a version byte followed by the revision map (`RuleSetRevisionMapV1`:
  the start location of each revision).

`RuleSetHeader` and `RuleSetRevisionMapV1` each have `to_bytes()` and
`from_bytes(data)`. `get_existing_revision_map(account)` reads the header
and returns the revision map with its version byte's location.
`get_latest_revision(account)` returns the index of the newest revision, or
raises `RULE_SET_REVISION_NOT_AVAILABLE` if the map is empty.

`authrules.accounts` provides `Key`, `AccountInfo` and `FrequencyAccount`.
`FrequencyAccount` reads and writes account data with
`from_account_info` and `to_account_data`.

## Helpers

`authrules.utils` provides:

- `compute_merkle_root`: Keccak-256 over `0x01` and each pair of nodes,
  with the smaller node first;
- `assert_derivation` and `assert_owned_by`;
- `is_zeroed` and `is_on_curve`.

`authrules.pubkey` provides `Pubkey` (with base58 parsing and printing),
`find_program_address` and `create_program_address`.

## What it does not do

- `is_on_curve` always returns `False`.
- `IsWallet` always fails with `NOT_IMPLEMENTED`.
- `Frequency` never passes. If the signing rule authority is present, it
  reports `NOT_IMPLEMENTED`.
- The package does not create, fund or resize accounts.
- It does not append revisions to an account's data. Writing a revision
  and updating the header and revision map is left to the caller.
- It has no command-line interface.