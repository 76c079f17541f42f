import pytest

from authrules.accounts import AccountInfo
from authrules.errors import RuleSetError, RuleSetErrorKind
from authrules.payload import Payload, ProofInfo, SeedsVec
from authrules.pubkey import SYSTEM_PROGRAM_ID, Pubkey, find_program_address
from authrules.rules import (
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
)


def _key(n: int) -> Pubkey:
    return Pubkey(bytes([n]) * 32)


def _account(key, is_signer=True, owner=SYSTEM_PROGRAM_ID, data=b""):
    return AccountInfo(key=key, owner=owner, data=bytearray(data), is_signer=is_signer)


def _accounts(*infos):
    return {info.key: info for info in infos}


def _failure(rule, accounts, payload, **kwargs):
    with pytest.raises(RuleSetError) as exc:
        rule.validate(accounts, payload, **kwargs)
    return exc.value.kind


def test_all_rolls_up_first_failure_and_passes():
    second_signer = _key(2)
    rule = All([
        AdditionalSigner(second_signer),
        Amount(5, CompareOp.LT, "Amount"),
    ])
    accounts = _accounts(_account(second_signer))
    assert _failure(rule, accounts, Payload({"Amount": 5})) is RuleSetErrorKind.AMOUNT_CHECK_FAILED
    assert rule.low_level_validate(accounts, Payload({"Amount": 4}))[0] is True


def test_any_rolls_up_last_failure_and_passes():
    rule = Any([
        AdditionalSigner(_key(9)),
        Amount(5, CompareOp.LT, "Amount"),
    ])
    assert _failure(rule, {}, Payload({"Amount": 5})) is RuleSetErrorKind.AMOUNT_CHECK_FAILED
    assert rule.low_level_validate({}, Payload({"Amount": 4}))[0] is True


def test_composed_rule():
    payer, second = _key(1), _key(2)
    rule = All([
        All([AdditionalSigner(payer), AdditionalSigner(second)]),
        Not(Amount(1, CompareOp.EQ, "Amount")),
    ])
    only_payer = _accounts(_account(payer))
    both = _accounts(_account(payer), _account(second))
    assert _failure(rule, only_payer, Payload({"Amount": 2})) is RuleSetErrorKind.MISSING_ACCOUNT
    assert rule.low_level_validate(both, Payload({"Amount": 2}))[0] is True
    assert _failure(rule, both, Payload({"Amount": 1})) is RuleSetErrorKind.AMOUNT_CHECK_FAILED


def test_pubkey_match():
    target = _key(7)
    rule = PubkeyMatch(target, "Destination")
    wrong = Payload({"Destination": _key(8)})
    assert _failure(rule, {}, wrong) is RuleSetErrorKind.PUBKEY_MATCH_CHECK_FAILED
    assert rule.low_level_validate({}, Payload({"Destination": target}))[0] is True


def test_pubkey_match_missing_payload_value():
    rule = PubkeyMatch(_key(7), "Destination")
    assert _failure(rule, {}, Payload()) is RuleSetErrorKind.MISSING_PAYLOAD_VALUE


def test_additional_signer_present_but_not_signing():
    signer = _key(3)
    rule = AdditionalSigner(signer)
    accounts = _accounts(_account(signer, is_signer=False))
    assert _failure(rule, accounts, Payload()) is RuleSetErrorKind.ADDITIONAL_SIGNER_CHECK_FAILED


def test_pubkey_list_match_over_many_fields():
    targets = [SYSTEM_PROGRAM_ID] * 70
    rule = PubkeyListMatch(targets, "Authority")
    assert _failure(rule, {}, Payload({"Authority": _key(5)})) is (
        RuleSetErrorKind.PUBKEY_LIST_MATCH_CHECK_FAILED
    )
    assert rule.low_level_validate({}, Payload({"Authority": SYSTEM_PROGRAM_ID}))[0] is True

    multi = PubkeyListMatch([_key(2)], "Source|Destination")
    assert multi.low_level_validate({}, Payload({"Source": _key(1), "Destination": _key(2)}))[0]
    assert _failure(multi, {}, Payload({"Source": _key(1)})) is (
        RuleSetErrorKind.MISSING_PAYLOAD_VALUE
    )


@pytest.mark.parametrize(
    "op, amount, expected",
    [
        (CompareOp.LT, 4, True),
        (CompareOp.LT, 5, False),
        (CompareOp.LT_EQ, 5, True),
        (CompareOp.EQ, 5, True),
        (CompareOp.EQ, 6, False),
        (CompareOp.GT_EQ, 5, True),
        (CompareOp.GT, 5, False),
        (CompareOp.GT, 6, True),
    ],
)
def test_amount_operators(op, amount, expected):
    rule = Amount(5, op, "Amount")
    assert rule.low_level_validate({}, Payload({"Amount": amount}))[0] is expected


def test_tree_match_with_good_and_corrupted_proof():
    leaf = _key(4)
    proof = ProofInfo([bytes([n]) * 32 for n in (10, 20, 30, 40)])
    from authrules.utils import compute_merkle_root

    root = compute_merkle_root(leaf, proof)
    rule = PubkeyTreeMatch(root, "Authority", "AuthorityProof")
    assert rule.low_level_validate({}, Payload({"Authority": leaf, "AuthorityProof": proof}))[0]

    nodes = list(proof.proof)
    nodes[1] = b"\x01" * 32
    bad = Payload({"Authority": leaf, "AuthorityProof": ProofInfo(nodes)})
    assert _failure(rule, {}, bad) is RuleSetErrorKind.PUBKEY_TREE_MATCH_CHECK_FAILED
    assert _failure(rule, {}, Payload({"Authority": leaf})) is (
        RuleSetErrorKind.MISSING_PAYLOAD_VALUE
    )


def test_pda_match_with_program_in_rule():
    program = _key(6)
    seeds = [b"rule_set", b"name"]
    pda, _ = find_program_address(seeds, program)
    rule = PDAMatch(program, "Destination", "Seeds")
    good = Payload({"Destination": pda, "Seeds": SeedsVec(seeds)})
    assert rule.low_level_validate({}, good)[0] is True
    bad = Payload({"Destination": pda, "Seeds": SeedsVec([b"other"])})
    assert _failure(rule, {}, bad) is RuleSetErrorKind.PDA_MATCH_CHECK_FAILED


def test_pda_match_uses_account_owner():
    program = _key(6)
    seeds = [b"seed"]
    pda, _ = find_program_address(seeds, program)
    rule = PDAMatch(None, "Destination", "Seeds")
    payload = Payload({"Destination": pda, "Seeds": SeedsVec(seeds)})
    accounts = _accounts(_account(pda, is_signer=False, owner=program))
    assert rule.low_level_validate(accounts, payload)[0] is True
    assert _failure(rule, {}, payload) is RuleSetErrorKind.MISSING_ACCOUNT


def test_frequency_paths():
    authority = _key(11)
    rule = Frequency(authority)
    assert _failure(rule, {}, Payload()) is RuleSetErrorKind.MISSING_ACCOUNT
    wrong = _account(_key(12))
    assert _failure(rule, {}, Payload(), rule_authority=wrong) is (
        RuleSetErrorKind.RULE_AUTHORITY_IS_NOT_SIGNER
    )
    unsigned = _account(authority, is_signer=False)
    assert _failure(rule, {}, Payload(), rule_authority=unsigned) is (
        RuleSetErrorKind.RULE_AUTHORITY_IS_NOT_SIGNER
    )
    signed = _account(authority)
    assert _failure(rule, {}, Payload(), rule_authority=signed) is (
        RuleSetErrorKind.NOT_IMPLEMENTED
    )


def test_any_keeps_earlier_failure_over_not_implemented():
    authority = _account(_key(11))
    rule = Any([Amount(1, CompareOp.EQ, "Amount"), Frequency(_key(11))])
    kind = _failure(rule, {}, Payload({"Amount": 2}), rule_authority=authority)
    assert kind is RuleSetErrorKind.AMOUNT_CHECK_FAILED
    alone = Any([Frequency(_key(11))])
    assert _failure(alone, {}, Payload(), rule_authority=authority) is (
        RuleSetErrorKind.NOT_IMPLEMENTED
    )


def test_empty_groups():
    assert All([]).low_level_validate({}, Payload())[0] is True
    assert _failure(Any([]), {}, Payload()) is RuleSetErrorKind.UNEXPECTED_RULE_SET_FAILURE


def test_pass_and_namespace():
    assert Pass().low_level_validate({}, Payload())[0] is True
    assert _failure(Namespace(), {}, Payload()) is RuleSetErrorKind.UNEXPECTED_RULE_SET_FAILURE
    assert Not(Pass()).low_level_validate({}, Payload())[0] is False


def test_to_error_kinds():
    assert Amount(1, CompareOp.EQ, "Amount").to_error().kind is RuleSetErrorKind.AMOUNT_CHECK_FAILED
    assert PubkeyMatch(_key(1), "x").to_error().kind is RuleSetErrorKind.PUBKEY_MATCH_CHECK_FAILED
    assert Frequency(_key(1)).to_error().kind is RuleSetErrorKind.FREQUENCY_CHECK_FAILED
    assert All([]).to_error().kind is RuleSetErrorKind.UNEXPECTED_RULE_SET_FAILURE
    assert PDAMatch(None, "a", "b").to_error().kind is RuleSetErrorKind.PDA_MATCH_CHECK_FAILED