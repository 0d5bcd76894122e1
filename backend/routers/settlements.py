"""Settlements router: record a payment to another user, in a group or directly."""

from typing import Annotated
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

import models
import schemas
from database import get_db
from dependencies import get_current_user
from utils.settlements import settle


router = APIRouter(prefix="/settlements", tags=["settlements"])


@router.post("", response_model=schemas.SettlementResult)
def create_settlement(
    settlement: schemas.SettlementCreate,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    db_settlement, shares_settled = settle(
        db,
        group_id=settlement.group_id,
        from_user_id=current_user.id,
        to_user_id=settlement.to_user_id,
        amount=settlement.amount
    )
    return schemas.SettlementResult(
        settlement=schemas.Settlement.model_validate(db_settlement),
        shares_settled=shares_settled
    )
