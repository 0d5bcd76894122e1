"""Friends router: manage friend relationships and direct balances."""

from typing import Annotated
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

import models
import schemas
from database import get_db
from dependencies import get_current_user
from utils.balances import friend_balance, list_friends_with_balances
from utils.friends import add_friend, list_friends, remove_friend
from utils.validation import get_user_or_404, verify_friendship


router = APIRouter(prefix="/friends", tags=["friends"])


@router.post("", response_model=schemas.Friend)
def create_friendship(
    friend_request: schemas.FriendRequest,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    return add_friend(db, current_user.id, friend_request.friend_id)


@router.get("", response_model=list[schemas.Friend])
def read_friends(
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    return list_friends(db, current_user.id)


@router.get("/balances", response_model=list[schemas.FriendWithBalance])
def read_friend_balances(
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    return list_friends_with_balances(db, current_user.id)


@router.get("/{friend_id}/balance", response_model=schemas.Balance)
def read_friend_balance(
    friend_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    get_user_or_404(db, friend_id)
    verify_friendship(db, current_user.id, friend_id)
    return {"balance": friend_balance(db, current_user.id, friend_id)}


@router.delete("/{friend_id}", response_model=schemas.Message)
def delete_friendship(
    friend_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    remove_friend(db, current_user.id, friend_id)
    return {"message": "Friend removed successfully"}
