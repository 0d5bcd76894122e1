"""Balance calculation from unsettled expense shares.

Balances are never stored. A user's balance is what others owe them minus
what they owe others, counting only shares that are not settled yet:

    owed  = shares of expenses the user paid, held by someone else
    owes  = the user's own shares of expenses someone else paid

Both sums come out of the same SELECT, so a balance is always read from a
single snapshot of the share table.
"""

from decimal import Decimal
from typing import Optional

from sqlalchemy import and_, case, func, or_
from sqlalchemy.orm import Session

import models
import schemas
from utils.currency import to_money
from utils.friends import list_friends


def _owed_and_owes(user_id: int):
    """Conditional sum expressions for (owed to user, owed by user)."""
    owed = case(
        (and_(models.Expense.paid_by_id == user_id, models.ExpenseShare.user_id != user_id),
         models.ExpenseShare.amount),
        else_=0
    )
    owes = case(
        (and_(models.ExpenseShare.user_id == user_id, models.Expense.paid_by_id != user_id),
         models.ExpenseShare.amount),
        else_=0
    )
    return func.sum(owed), func.sum(owes)


def _between(user_id: int, other_ids):
    """Shares where one side paid and the other side holds the share."""
    return or_(
        and_(models.Expense.paid_by_id == user_id, models.ExpenseShare.user_id.in_(other_ids)),
        and_(models.ExpenseShare.user_id == user_id, models.Expense.paid_by_id.in_(other_ids))
    )


def _unsettled_shares(db: Session, *columns):
    return db.query(*columns).select_from(models.ExpenseShare).join(
        models.Expense, models.Expense.id == models.ExpenseShare.expense_id
    ).filter(models.ExpenseShare.is_settled == False)


def _net(owed, owes) -> Decimal:
    return to_money(owed) - to_money(owes)


def group_balance(
    db: Session,
    group_id: int,
    user_id: int,
    other_user_id: Optional[int] = None
) -> Decimal:
    """
    Net balance of a user inside a group.

    With other_user_id, only shares between the two users count, which gives
    the pairwise balance of user_id relative to other_user_id.
    """
    owed, owes = _owed_and_owes(user_id)
    query = _unsettled_shares(db, owed, owes).filter(models.Expense.group_id == group_id)

    if other_user_id is not None:
        query = query.filter(_between(user_id, [other_user_id]))
    else:
        query = query.filter(or_(
            models.Expense.paid_by_id == user_id,
            models.ExpenseShare.user_id == user_id
        ))

    owed_total, owes_total = query.one()
    return _net(owed_total, owes_total)


def friend_balance(db: Session, user_id: int, friend_id: int) -> Decimal:
    """Net balance between two users over direct (non-group) expenses only."""
    owed, owes = _owed_and_owes(user_id)
    owed_total, owes_total = _unsettled_shares(db, owed, owes).filter(
        models.Expense.group_id.is_(None),
        _between(user_id, [friend_id])
    ).one()
    return _net(owed_total, owes_total)


def list_groups_with_balances(db: Session, user_id: int) -> list[schemas.GroupWithBalance]:
    """Every group the user belongs to, newest first, with member count and balance."""
    member_counts = db.query(
        models.GroupMember.group_id,
        func.count(models.GroupMember.id).label("member_count")
    ).group_by(models.GroupMember.group_id).subquery()

    rows = db.query(models.Group, member_counts.c.member_count).join(
        models.GroupMember,
        and_(models.GroupMember.group_id == models.Group.id, models.GroupMember.user_id == user_id)
    ).join(
        member_counts, member_counts.c.group_id == models.Group.id
    ).order_by(models.Group.created_at.desc(), models.Group.id.desc()).all()

    if not rows:
        return []

    group_ids = [group.id for group, _ in rows]
    owed, owes = _owed_and_owes(user_id)
    balance_rows = _unsettled_shares(db, models.Expense.group_id, owed, owes).filter(
        models.Expense.group_id.in_(group_ids),
        or_(models.Expense.paid_by_id == user_id, models.ExpenseShare.user_id == user_id)
    ).group_by(models.Expense.group_id).all()

    balances = {group_id: _net(owed_total, owes_total) for group_id, owed_total, owes_total in balance_rows}

    return [
        schemas.GroupWithBalance(
            id=group.id,
            name=group.name,
            description=group.description,
            created_by_id=group.created_by_id,
            created_at=group.created_at,
            member_count=member_count,
            balance=balances.get(group.id, to_money(0))
        )
        for group, member_count in rows
    ]


def list_friends_with_balances(db: Session, user_id: int) -> list[schemas.FriendWithBalance]:
    """Every friend of the user, ordered by username, with the direct balance between them."""
    friends = list_friends(db, user_id)
    if not friends:
        return []

    friend_ids = [friend.id for friend in friends]
    counterpart = case(
        (models.Expense.paid_by_id == user_id, models.ExpenseShare.user_id),
        else_=models.Expense.paid_by_id
    )
    owed, owes = _owed_and_owes(user_id)
    balance_rows = _unsettled_shares(db, counterpart, owed, owes).filter(
        models.Expense.group_id.is_(None),
        _between(user_id, friend_ids)
    ).group_by(counterpart).all()

    balances = {friend_id: _net(owed_total, owes_total) for friend_id, owed_total, owes_total in balance_rows}

    return [
        schemas.FriendWithBalance(
            id=friend.id,
            username=friend.username,
            full_name=friend.full_name,
            balance=balances.get(friend.id, to_money(0))
        )
        for friend in friends
    ]
