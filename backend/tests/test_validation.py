import pytest

import models
from exceptions import AuthorizationError, NotFoundError
from utils.validation import (
    get_group_or_404,
    get_user_or_404,
    is_expense_participant,
    is_friend,
    is_group_member,
    verify_expense_access,
    verify_friendship,
    verify_group_membership,
)
from conftest import create_user, make_friends


def add_expense(db, payer, holders, group_id=None):
    expense = models.Expense(group_id=group_id, paid_by_id=payer.id, amount=10, description="Test")
    db.add(expense)
    db.flush()
    db.add_all([models.ExpenseShare(expense_id=expense.id, user_id=u.id, amount=10) for u in holders])
    db.commit()
    return expense


def test_group_membership(db_session, group, test_user):
    outsider = create_user(db_session, "mallory")

    assert is_group_member(db_session, group.id, test_user.id)
    assert not is_group_member(db_session, group.id, outsider.id)

    verify_group_membership(db_session, group.id, test_user.id)
    with pytest.raises(AuthorizationError) as exc_info:
        verify_group_membership(db_session, group.id, outsider.id)
    assert exc_info.value.status_code == 403


def test_friendship_is_checked_per_direction(db_session, test_user, other_user, third_user):
    make_friends(db_session, test_user, other_user)

    assert is_friend(db_session, test_user.id, other_user.id)
    assert is_friend(db_session, other_user.id, test_user.id)
    assert not is_friend(db_session, test_user.id, third_user.id)

    with pytest.raises(AuthorizationError):
        verify_friendship(db_session, third_user.id, test_user.id)


def test_expense_participation(db_session, test_user, other_user, third_user):
    expense = add_expense(db_session, test_user, [other_user])

    assert is_expense_participant(db_session, expense.id, test_user.id)
    assert is_expense_participant(db_session, expense.id, other_user.id)
    assert not is_expense_participant(db_session, expense.id, third_user.id)


def test_expense_access(db_session, group, test_user, other_user, third_user):
    outsider = create_user(db_session, "mallory")
    group_expense = add_expense(db_session, test_user, [other_user], group.id)
    direct_expense = add_expense(db_session, test_user, [other_user])

    # Group members see group expenses without holding a share
    verify_expense_access(db_session, group_expense, third_user.id)
    with pytest.raises(AuthorizationError):
        verify_expense_access(db_session, group_expense, outsider.id)

    verify_expense_access(db_session, direct_expense, other_user.id)
    with pytest.raises(AuthorizationError):
        verify_expense_access(db_session, direct_expense, third_user.id)


def test_lookups_raise_not_found(db_session, group, test_user):
    assert get_user_or_404(db_session, test_user.id).username == "alice"
    assert get_group_or_404(db_session, group.id).name == "Trip"

    with pytest.raises(NotFoundError) as exc_info:
        get_user_or_404(db_session, 9999)
    assert exc_info.value.status_code == 404

    with pytest.raises(NotFoundError):
        get_group_or_404(db_session, 9999)
