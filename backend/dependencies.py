"""Request dependencies: resolve the bearer token to the calling user."""

from typing import Annotated
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

import models
import schemas
import auth
from database import get_db


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/token")


async def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    db: Session = Depends(get_db)
) -> models.User:
    """Every protected endpoint gets the caller from here; any token problem is a 401."""
    try:
        token_data = schemas.TokenData(user_id=auth.decode_user_id(token))
    except (auth.JWTError, ValueError):
        raise _unauthorized()

    user = db.get(models.User, token_data.user_id)
    if user is None:
        raise _unauthorized()
    return user


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
