"""Authentication router: register, login, current user."""

import logging
from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy import or_
from sqlalchemy.orm import Session

import models
import schemas
import auth
from database import get_db, transaction
from dependencies import get_current_user
from exceptions import ValidationError
from utils.rate_limiter import auth_rate_limiter
from utils.validation import get_user_by_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=schemas.TokenWithUser, dependencies=[Depends(auth_rate_limiter)])
def register_user(
    user: schemas.UserCreate,
    db: Session = Depends(get_db)
):
    # Check for existing user
    existing = db.query(models.User).filter(
        or_(models.User.email == user.email, models.User.username == user.username)
    ).first()
    if existing:
        raise ValidationError("User already exists")

    with transaction(db):
        db_user = models.User(
            username=user.username.strip(),
            email=user.email,
            hashed_password=auth.get_password_hash(user.password),
            full_name=user.full_name or ""
        )
        db.add(db_user)

    db.refresh(db_user)
    logger.info("Registered user %s (%s)", db_user.id, db_user.username)

    return schemas.TokenWithUser(
        access_token=auth.create_user_token(db_user.id),
        token_type="bearer",
        user=schemas.User.model_validate(db_user)
    )


@router.post("/token", response_model=schemas.Token, dependencies=[Depends(auth_rate_limiter)])
def login_for_access_token(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    db: Session = Depends(get_db)
):
    # The OAuth2 form calls it "username"; we log in by email
    user = get_user_by_email(db, form_data.username)
    if not user or not auth.verify_password(form_data.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return {"access_token": auth.create_user_token(user.id), "token_type": "bearer"}


@router.get("/me", response_model=schemas.User)
def read_current_user(
    current_user: Annotated[models.User, Depends(get_current_user)]
):
    return current_user
