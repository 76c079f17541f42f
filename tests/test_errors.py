import pytest

from authrules.errors import RuleSetError, RuleSetErrorKind


def test_kind_is_kept():
    err = RuleSetError(RuleSetErrorKind.AMOUNT_CHECK_FAILED)
    assert err.kind is RuleSetErrorKind.AMOUNT_CHECK_FAILED


def test_default_message_is_kind_description():
    err = RuleSetError(RuleSetErrorKind.MISSING_ACCOUNT)
    assert err.message == RuleSetErrorKind.MISSING_ACCOUNT.value
    assert str(err) == RuleSetErrorKind.MISSING_ACCOUNT.value


def test_custom_message():
    err = RuleSetError(RuleSetErrorKind.DATA_TYPE_MISMATCH, "header too short")
    assert str(err) == "header too short"


def test_equality_by_kind():
    a = RuleSetError(RuleSetErrorKind.NOT_IMPLEMENTED, "first")
    b = RuleSetError(RuleSetErrorKind.NOT_IMPLEMENTED, "second")
    c = RuleSetError(RuleSetErrorKind.AMOUNT_CHECK_FAILED)
    assert a == b
    assert not (a == c)
    assert hash(a) == hash(b)


@pytest.mark.parametrize("kind", list(RuleSetErrorKind))
def test_every_kind_builds_error_with_its_description(kind):
    err = RuleSetError(kind)
    assert err.kind is kind
    assert str(err) == kind.value


def test_errors_of_distinct_kinds_are_unequal():
    errors = [RuleSetError(kind) for kind in RuleSetErrorKind]
    for position, first in enumerate(errors):
        for second in errors[position + 1:]:
            assert not (first == second)