"""Settlement processing: record a payment and mark the debts it covers as settled."""

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

import models
from database import transaction
from exceptions import AuthorizationError, ValidationError
from utils.currency import format_currency, to_money
from utils.validation import (
    get_group_or_404,
    get_user_or_404,
    is_group_member,
    verify_group_membership,
)

logger = logging.getLogger(__name__)


def find_unsettled_share_ids(
    db: Session,
    group_id: Optional[int],
    from_user_id: int,
    to_user_id: int
) -> list[int]:
    """
    IDs of shares from_user_id still owes on expenses paid by to_user_id.

    group_id None selects direct expenses only.
    """
    query = db.query(models.ExpenseShare.id).join(
        models.Expense, models.Expense.id == models.ExpenseShare.expense_id
    ).filter(
        models.ExpenseShare.user_id == from_user_id,
        models.Expense.paid_by_id == to_user_id,
        models.ExpenseShare.is_settled == False
    )
    if group_id is None:
        query = query.filter(models.Expense.group_id.is_(None))
    else:
        query = query.filter(models.Expense.group_id == group_id)

    return [share_id for (share_id,) in query.order_by(models.ExpenseShare.id)]


def settle(
    db: Session,
    group_id: Optional[int],
    from_user_id: int,
    to_user_id: int,
    amount: Decimal
) -> tuple[models.Settlement, int]:
    """
    Record that from_user_id paid to_user_id and settle every matching share.

    All of from_user_id's unsettled shares on expenses paid by to_user_id (in
    the group, or among direct expenses when group_id is None) are marked
    settled at once. The amount is stored for the audit trail only and does
    not limit which shares are marked. A settlement is recorded even when
    there is nothing left to mark.

    Returns the settlement and the number of shares it marked.
    """
    if amount is None or to_money(amount) <= 0:
        raise ValidationError("Settlement amount must be greater than zero")
    if from_user_id == to_user_id:
        raise ValidationError("Cannot settle with yourself")

    get_user_or_404(db, to_user_id)

    if group_id is not None:
        get_group_or_404(db, group_id)
        verify_group_membership(db, group_id, from_user_id)
        if not is_group_member(db, group_id, to_user_id):
            raise AuthorizationError("Both users must be members of the group")

    with transaction(db):
        settlement = models.Settlement(
            group_id=group_id,
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            amount=to_money(amount)
        )
        db.add(settlement)

        share_ids = find_unsettled_share_ids(db, group_id, from_user_id, to_user_id)
        if share_ids:
            db.query(models.ExpenseShare).filter(
                models.ExpenseShare.id.in_(share_ids)
            ).update({models.ExpenseShare.is_settled: True}, synchronize_session=False)

    db.refresh(settlement)
    logger.info(
        "Settlement %s: user %s paid user %s %s (group %s), %d shares marked settled",
        settlement.id, from_user_id, to_user_id, format_currency(settlement.amount),
        group_id, len(share_ids)
    )
    return settlement, len(share_ids)


def list_settlements(db: Session, group_id: int, caller_id: int) -> list[models.Settlement]:
    get_group_or_404(db, group_id)
    verify_group_membership(db, group_id, caller_id)

    return db.query(models.Settlement).filter(
        models.Settlement.group_id == group_id
    ).order_by(models.Settlement.date.desc(), models.Settlement.id.desc()).all()
