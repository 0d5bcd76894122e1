"""Groups router: create groups, manage members, read balances, expenses and settlements."""

import logging
from typing import Annotated, Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

import models
import schemas
from database import get_db, transaction
from dependencies import get_current_user
from exceptions import AuthorizationError, ValidationError
from utils.balances import group_balance, list_groups_with_balances
from utils.expenses import list_group_expenses
from utils.settlements import list_settlements
from utils.validation import (
    get_group_or_404,
    get_user_or_404,
    is_group_member,
    verify_group_membership,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/groups", tags=["groups"])


@router.post("", response_model=schemas.Group)
def create_group(
    group: schemas.GroupCreate,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    # Creator is always a member; skip duplicates in the requested list
    member_ids = [current_user.id]
    for member_id in group.members:
        if member_id not in member_ids:
            member_ids.append(member_id)

    for member_id in member_ids[1:]:
        get_user_or_404(db, member_id)

    with transaction(db):
        db_group = models.Group(
            name=group.name.strip(),
            description=group.description or "",
            created_by_id=current_user.id
        )
        db.add(db_group)
        db.flush()

        db.add_all([
            models.GroupMember(group_id=db_group.id, user_id=member_id)
            for member_id in member_ids
        ])

    db.refresh(db_group)
    logger.info("Group %s created by user %s with %d members", db_group.id, current_user.id, len(member_ids))
    return db_group


@router.get("", response_model=list[schemas.GroupWithBalance])
def read_groups(
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    return list_groups_with_balances(db, current_user.id)


@router.get("/{group_id}", response_model=schemas.Group)
def get_group(
    group_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    group = get_group_or_404(db, group_id)
    verify_group_membership(db, group_id, current_user.id)
    return group


@router.get("/{group_id}/members", response_model=list[schemas.GroupMember])
def get_group_members(
    group_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    get_group_or_404(db, group_id)
    verify_group_membership(db, group_id, current_user.id)

    return db.query(models.User).join(
        models.GroupMember, models.GroupMember.user_id == models.User.id
    ).filter(models.GroupMember.group_id == group_id).order_by(models.User.username).all()


@router.post("/{group_id}/members", response_model=schemas.GroupMember)
def add_group_member(
    group_id: int,
    member_add: schemas.GroupMemberAdd,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    get_group_or_404(db, group_id)
    verify_group_membership(db, group_id, current_user.id)

    user = get_user_or_404(db, member_add.user_id)
    if is_group_member(db, group_id, user.id):
        raise ValidationError("User is already a member of this group")

    with transaction(db):
        db.add(models.GroupMember(group_id=group_id, user_id=user.id))

    logger.info("User %s added to group %s by user %s", user.id, group_id, current_user.id)
    return user


@router.get("/{group_id}/balance", response_model=schemas.Balance)
def get_group_balance(
    group_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    other_user_id: Optional[int] = None,
    db: Session = Depends(get_db)
):
    get_group_or_404(db, group_id)
    verify_group_membership(db, group_id, current_user.id)
    if other_user_id is not None:
        get_user_or_404(db, other_user_id)
        if not is_group_member(db, group_id, other_user_id):
            raise AuthorizationError("Both users must be members of the group")
    return {"balance": group_balance(db, group_id, current_user.id, other_user_id=other_user_id)}


@router.get("/{group_id}/expenses", response_model=list[schemas.ExpenseWithShares])
def get_group_expenses(
    group_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    return list_group_expenses(db, group_id, current_user.id)


@router.get("/{group_id}/settlements", response_model=list[schemas.Settlement])
def get_group_settlements(
    group_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    return list_settlements(db, group_id, current_user.id)
