"""Expenses router: create, read, update, delete expenses."""

from typing import Annotated
from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

import models
import schemas
from database import get_db
from dependencies import get_current_user
from utils import expenses as expense_engine


router = APIRouter(prefix="/expenses", tags=["expenses"])


@router.post("", response_model=schemas.Expense)
def create_expense(
    expense: schemas.ExpenseCreate,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    return expense_engine.create_expense(
        db,
        payer_id=current_user.id,
        amount=expense.amount,
        description=expense.description,
        shares=expense.shares,
        group_id=expense.group_id
    )


@router.get("", response_model=list[schemas.ExpenseWithShares])
def read_expenses(
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    # Return expenses where user is involved (payer or share holder)
    subquery = select(models.ExpenseShare.expense_id).where(
        models.ExpenseShare.user_id == current_user.id
    )

    expenses = db.query(models.Expense).filter(
        (models.Expense.paid_by_id == current_user.id) |
        (models.Expense.id.in_(subquery))
    ).order_by(models.Expense.date.desc(), models.Expense.id.desc()).all()

    return expense_engine.attach_shares(db, expenses)


@router.get("/user/{user_id}", response_model=list[schemas.ExpenseWithShares])
def get_expenses_between_users(
    user_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    return expense_engine.list_direct_expenses(db, current_user.id, user_id)


@router.get("/{expense_id}", response_model=schemas.ExpenseWithShares)
def get_expense(
    expense_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    return expense_engine.get_expense(db, expense_id, current_user.id)


@router.put("/{expense_id}", response_model=schemas.Expense)
def update_expense(
    expense_id: int,
    expense_update: schemas.ExpenseUpdate,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    return expense_engine.update_expense(
        db,
        expense_id,
        current_user.id,
        amount=expense_update.amount,
        description=expense_update.description,
        shares=expense_update.shares
    )


@router.delete("/{expense_id}", response_model=schemas.Message)
def delete_expense(
    expense_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    expense_engine.delete_expense(db, expense_id, current_user.id)
    return {"message": "Expense deleted successfully"}
