"""Expense engine: validated create, update, delete and read of expenses and their shares.

Every expense carries one share per participant, and the shares must add up
to the expense amount (within one cent). Writes touching an expense and its
shares always run in a single transaction.
"""

import logging
from collections import defaultdict
from decimal import Decimal
from typing import Optional

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session

import models
import schemas
from database import transaction
from exceptions import AuthorizationError, ValidationError
from utils.currency import format_currency, sum_money, to_money, within_tolerance
from utils.validation import (
    get_expense_or_404,
    get_group_or_404,
    get_user_or_404,
    verify_expense_access,
    verify_friendship,
    verify_group_membership,
)

logger = logging.getLogger(__name__)


def validate_shares(amount: Optional[Decimal], shares: Optional[list[schemas.ShareBase]]) -> None:
    """Check the amount and share list on their own, without touching the database."""
    if amount is None:
        raise ValidationError("Amount is required")
    if to_money(amount) < 0:
        raise ValidationError("Amount must not be negative")
    if not shares:
        raise ValidationError("At least one share is required")

    user_ids = [share.user_id for share in shares]
    if len(set(user_ids)) != len(user_ids):
        raise ValidationError("Each user can only have one share per expense")

    if any(to_money(share.amount) < 0 for share in shares):
        raise ValidationError("Share amounts must not be negative")

    total = sum_money(share.amount for share in shares)
    if not within_tolerance(total, amount):
        raise ValidationError(
            f"Shares must sum to total expense amount. "
            f"Total: {format_currency(amount)}, Sum: {format_currency(total)}"
        )


def validate_participants(
    db: Session,
    group_id: Optional[int],
    payer_id: int,
    shares: list[schemas.ShareBase]
) -> None:
    """
    Check who may take part in an expense.

    Group expenses: the payer and every share holder must be group members.
    Direct expenses: payer and share holders must be exactly two users who
    are friends with each other.
    """
    share_user_ids = {share.user_id for share in shares}

    if group_id is not None:
        get_group_or_404(db, group_id)
        verify_group_membership(db, group_id, payer_id)

    existing_ids = {
        uid for (uid,) in db.query(models.User.id).filter(models.User.id.in_(share_user_ids))
    }
    missing = share_user_ids - existing_ids
    if missing:
        raise ValidationError(f"User with ID {min(missing)} not found in shares")

    if group_id is not None:
        member_ids = {
            uid for (uid,) in db.query(models.GroupMember.user_id).filter(
                models.GroupMember.group_id == group_id,
                models.GroupMember.user_id.in_(share_user_ids)
            )
        }
        outsiders = share_user_ids - member_ids
        if outsiders:
            raise ValidationError(f"User with ID {min(outsiders)} is not a member of this group")
        return

    participants = share_user_ids | {payer_id}
    if len(participants) != 2:
        raise ValidationError("A direct expense must involve exactly two users")
    (other_id,) = participants - {payer_id}
    verify_friendship(db, payer_id, other_id)


def _add_shares(db: Session, expense_id: int, shares: list[schemas.ShareBase]) -> None:
    db.add_all([
        models.ExpenseShare(
            expense_id=expense_id,
            user_id=share.user_id,
            amount=to_money(share.amount),
            is_settled=False
        )
        for share in shares
    ])


def _has_settled_shares(db: Session, expense_id: int) -> bool:
    return db.query(models.ExpenseShare.id).filter(
        models.ExpenseShare.expense_id == expense_id,
        models.ExpenseShare.is_settled == True
    ).first() is not None


def create_expense(
    db: Session,
    payer_id: int,
    amount: Decimal,
    description: str,
    shares: list[schemas.ShareBase],
    group_id: Optional[int] = None
) -> models.Expense:
    if not description or not description.strip():
        raise ValidationError("Description is required")
    validate_shares(amount, shares)
    validate_participants(db, group_id, payer_id, shares)

    with transaction(db):
        db_expense = models.Expense(
            group_id=group_id,
            paid_by_id=payer_id,
            amount=to_money(amount),
            description=description.strip()
        )
        db.add(db_expense)
        db.flush()
        _add_shares(db, db_expense.id, shares)

    db.refresh(db_expense)
    logger.info(
        "Expense %s created by user %s for %s with %d shares",
        db_expense.id, payer_id, format_currency(db_expense.amount), len(shares)
    )
    return db_expense


def update_expense(
    db: Session,
    expense_id: int,
    caller_id: int,
    amount: Optional[Decimal] = None,
    description: Optional[str] = None,
    shares: Optional[list[schemas.ShareBase]] = None
) -> models.Expense:
    """
    Update an expense. Only the payer may do this.

    When shares are given they replace the existing set entirely. Without
    shares, the amount may only change if the current shares still add up to
    it. Once any share has been settled the amount and shares are frozen.
    """
    expense = get_expense_or_404(db, expense_id)
    if expense.paid_by_id != caller_id:
        raise AuthorizationError("Not authorized to update this expense")

    if description is not None and not description.strip():
        raise ValidationError("Description must not be blank")

    new_amount = to_money(amount) if amount is not None else to_money(expense.amount)
    amount_changed = new_amount != to_money(expense.amount)

    if (shares is not None or amount_changed) and _has_settled_shares(db, expense_id):
        raise ValidationError("Cannot change the amount or shares of an expense with settled shares")

    if shares is not None:
        validate_shares(new_amount, shares)
        validate_participants(db, expense.group_id, expense.paid_by_id, shares)
    elif amount_changed:
        current_total = db.query(func.sum(models.ExpenseShare.amount)).filter(
            models.ExpenseShare.expense_id == expense_id
        ).scalar()
        if not within_tolerance(current_total, new_amount):
            raise ValidationError(
                f"Shares must sum to total expense amount. "
                f"Total: {format_currency(new_amount)}, Sum: {format_currency(current_total)}. "
                f"Send updated shares along with the new amount."
            )

    with transaction(db):
        expense.amount = new_amount
        if description is not None:
            expense.description = description.strip()

        if shares is not None:
            db.query(models.ExpenseShare).filter(
                models.ExpenseShare.expense_id == expense_id
            ).delete(synchronize_session=False)
            _add_shares(db, expense_id, shares)

    db.refresh(expense)
    logger.info("Expense %s updated by user %s", expense_id, caller_id)
    return expense


def delete_expense(db: Session, expense_id: int, caller_id: int) -> None:
    expense = get_expense_or_404(db, expense_id)
    if expense.paid_by_id != caller_id:
        raise AuthorizationError("Not authorized to delete this expense")

    with transaction(db):
        db.query(models.ExpenseShare).filter(
            models.ExpenseShare.expense_id == expense_id
        ).delete(synchronize_session=False)
        db.delete(expense)

    logger.info("Expense %s deleted by user %s", expense_id, caller_id)


def attach_shares(db: Session, expenses: list[models.Expense]) -> list[schemas.ExpenseWithShares]:
    """
    Enrich expenses with payer name, group name and their shares.

    Runs a fixed number of queries regardless of how many expenses are passed.
    """
    if not expenses:
        return []

    expense_ids = [e.id for e in expenses]

    # 1. All shares with their usernames in one join
    share_rows = db.query(models.ExpenseShare, models.User.username).join(
        models.User, models.User.id == models.ExpenseShare.user_id
    ).filter(
        models.ExpenseShare.expense_id.in_(expense_ids)
    ).order_by(models.ExpenseShare.id).all()

    shares_by_expense = defaultdict(list)
    for share, username in share_rows:
        shares_by_expense[share.expense_id].append(schemas.ExpenseShareDetail(
            id=share.id,
            expense_id=share.expense_id,
            user_id=share.user_id,
            username=username,
            amount=share.amount,
            is_settled=share.is_settled
        ))

    # 2. Batch fetch payer and group names
    payer_ids = {e.paid_by_id for e in expenses}
    payer_names = dict(
        db.query(models.User.id, models.User.username).filter(models.User.id.in_(payer_ids)).all()
    )

    group_ids = {e.group_id for e in expenses if e.group_id is not None}
    group_names = {}
    if group_ids:
        group_names = dict(
            db.query(models.Group.id, models.Group.name).filter(models.Group.id.in_(group_ids)).all()
        )

    # 3. Assemble the result
    return [
        schemas.ExpenseWithShares(
            id=expense.id,
            group_id=expense.group_id,
            paid_by_id=expense.paid_by_id,
            amount=expense.amount,
            description=expense.description,
            date=expense.date,
            payer_name=payer_names.get(expense.paid_by_id, "Unknown User"),
            group_name=group_names.get(expense.group_id),
            shares=shares_by_expense.get(expense.id, [])
        )
        for expense in expenses
    ]


def get_expense(db: Session, expense_id: int, caller_id: int) -> schemas.ExpenseWithShares:
    expense = get_expense_or_404(db, expense_id)
    verify_expense_access(db, expense, caller_id)
    return attach_shares(db, [expense])[0]


def list_group_expenses(db: Session, group_id: int, caller_id: int) -> list[schemas.ExpenseWithShares]:
    get_group_or_404(db, group_id)
    verify_group_membership(db, group_id, caller_id)

    expenses = db.query(models.Expense).filter(
        models.Expense.group_id == group_id
    ).order_by(models.Expense.date.desc(), models.Expense.id.desc()).all()

    return attach_shares(db, expenses)


def list_direct_expenses(db: Session, user_id: int, other_id: int) -> list[schemas.ExpenseWithShares]:
    """Direct expenses where one of the two users paid and the other holds a share."""
    get_user_or_404(db, other_id)

    expenses = db.query(models.Expense).join(
        models.ExpenseShare, models.ExpenseShare.expense_id == models.Expense.id
    ).filter(
        models.Expense.group_id.is_(None),
        or_(
            and_(models.Expense.paid_by_id == user_id, models.ExpenseShare.user_id == other_id),
            and_(models.Expense.paid_by_id == other_id, models.ExpenseShare.user_id == user_id)
        )
    ).distinct().order_by(models.Expense.date.desc(), models.Expense.id.desc()).all()

    return attach_shares(db, expenses)
