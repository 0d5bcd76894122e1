"""Friendships are stored as two directed rows that are always added and removed together."""

import logging

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

import models
from database import transaction
from exceptions import NotFoundError, ValidationError
from utils.validation import get_user_or_404, is_friend

logger = logging.getLogger(__name__)


def _both_directions(user_id: int, friend_id: int):
    return or_(
        and_(models.Friendship.user_id == user_id, models.Friendship.friend_id == friend_id),
        and_(models.Friendship.user_id == friend_id, models.Friendship.friend_id == user_id)
    )


def add_friend(db: Session, user_id: int, friend_id: int) -> models.User:
    if friend_id == user_id:
        raise ValidationError("Cannot add yourself as a friend")

    friend = get_user_or_404(db, friend_id)

    if is_friend(db, user_id, friend_id):
        raise ValidationError("Already friends with this user")

    with transaction(db):
        db.add_all([
            models.Friendship(user_id=user_id, friend_id=friend_id),
            models.Friendship(user_id=friend_id, friend_id=user_id)
        ])

    logger.info("Users %s and %s are now friends", user_id, friend_id)
    return friend


def remove_friend(db: Session, user_id: int, friend_id: int) -> None:
    with transaction(db):
        removed = db.query(models.Friendship).filter(
            _both_directions(user_id, friend_id)
        ).delete(synchronize_session=False)
        if not removed:
            raise NotFoundError("Friendship not found")

    logger.info("Users %s and %s are no longer friends", user_id, friend_id)


def list_friends(db: Session, user_id: int) -> list[models.User]:
    return db.query(models.User).join(
        models.Friendship, models.Friendship.friend_id == models.User.id
    ).filter(models.Friendship.user_id == user_id).order_by(models.User.username.asc()).all()
