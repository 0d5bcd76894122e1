"""Users router: profile, search and lookup."""

from typing import Annotated
from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session

import models
import schemas
from database import get_db, transaction
from dependencies import get_current_user
from exceptions import NotFoundError, ValidationError
from utils.validation import get_user_by_email, get_user_or_404


router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=list[schemas.User])
def read_users(
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    return db.query(models.User).order_by(models.User.username).all()


@router.get("/me", response_model=schemas.User)
def read_me(
    current_user: Annotated[models.User, Depends(get_current_user)]
):
    return current_user


@router.put("/me", response_model=schemas.User)
def update_me(
    user_update: schemas.UserUpdate,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    if user_update.email and user_update.email != current_user.email:
        if get_user_by_email(db, user_update.email):
            raise ValidationError("Email already registered")

    with transaction(db):
        if user_update.full_name is not None:
            current_user.full_name = user_update.full_name
        if user_update.email:
            current_user.email = user_update.email

    db.refresh(current_user)
    return current_user


@router.get("/search", response_model=list[schemas.User])
def search_users(
    current_user: Annotated[models.User, Depends(get_current_user)],
    query: str = Query(default=""),
    db: Session = Depends(get_db)
):
    if not query.strip():
        raise ValidationError("Search query is required")

    term = f"%{query.strip()}%"
    return db.query(models.User).filter(
        or_(models.User.username.ilike(term), models.User.email.ilike(term))
    ).order_by(models.User.username).limit(10).all()


@router.get("/find-by-email", response_model=schemas.User)
def find_user_by_email(
    current_user: Annotated[models.User, Depends(get_current_user)],
    email: str = Query(default=""),
    db: Session = Depends(get_db)
):
    if not email:
        raise ValidationError("Email is required")

    user = get_user_by_email(db, email)
    if not user:
        raise NotFoundError("User not found with this email")
    return user


@router.get("/{user_id}", response_model=schemas.User)
def read_user(
    user_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    return get_user_or_404(db, user_id)
