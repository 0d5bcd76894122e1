"""Access checks for group membership, expense participation and friendship.

The ``is_*`` predicates answer yes/no; the ``verify_*`` and ``get_*_or_404``
helpers raise domain errors so callers never fall back to an empty result.
"""

from sqlalchemy.orm import Session

import models
from exceptions import AuthorizationError, NotFoundError


def get_user_by_email(db: Session, email: str):
    """Get a user by their email address."""
    return db.query(models.User).filter(models.User.email == email).first()


def get_user_or_404(db: Session, user_id: int):
    """Get a user by ID or raise NotFoundError."""
    user = db.get(models.User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def get_group_or_404(db: Session, group_id: int):
    """Get a group by ID or raise NotFoundError."""
    group = db.get(models.Group, group_id)
    if not group:
        raise NotFoundError("Group not found")
    return group


def get_expense_or_404(db: Session, expense_id: int):
    """Get an expense by ID or raise NotFoundError."""
    expense = db.get(models.Expense, expense_id)
    if not expense:
        raise NotFoundError("Expense not found")
    return expense


def is_group_member(db: Session, group_id: int, user_id: int) -> bool:
    return db.query(models.GroupMember.id).filter(
        models.GroupMember.group_id == group_id,
        models.GroupMember.user_id == user_id
    ).first() is not None


def is_expense_participant(db: Session, expense_id: int, user_id: int) -> bool:
    """True if the user paid for the expense or holds one of its shares."""
    paid = db.query(models.Expense.id).filter(
        models.Expense.id == expense_id,
        models.Expense.paid_by_id == user_id
    ).first()
    if paid:
        return True

    return db.query(models.ExpenseShare.id).filter(
        models.ExpenseShare.expense_id == expense_id,
        models.ExpenseShare.user_id == user_id
    ).first() is not None


def is_friend(db: Session, user_id: int, other_id: int) -> bool:
    return db.query(models.Friendship.id).filter(
        models.Friendship.user_id == user_id,
        models.Friendship.friend_id == other_id
    ).first() is not None


def verify_group_membership(db: Session, group_id: int, user_id: int):
    """Verify that a user is a member of a group, raise AuthorizationError if not."""
    if not is_group_member(db, group_id, user_id):
        raise AuthorizationError("You are not a member of this group")


def verify_friendship(db: Session, user_id: int, other_id: int):
    """Verify that two users are friends, raise AuthorizationError if not."""
    if not is_friend(db, user_id, other_id):
        raise AuthorizationError("You are not friends with this user")


def verify_expense_access(db: Session, expense: models.Expense, user_id: int):
    """
    Group expenses are visible to every group member; direct expenses only to
    the payer and the users holding a share.
    """
    if expense.group_id is not None:
        allowed = is_group_member(db, expense.group_id, user_id)
    else:
        allowed = is_expense_participant(db, expense.id, user_id)

    if not allowed:
        raise AuthorizationError("Not authorized to view this expense")
