import os
from datetime import datetime, timedelta
from typing import Optional
from jose import JWTError, jwt
import bcrypt

SECRET_KEY = os.environ.get("SECRET_KEY", "splitsmart-dev-secret-change-me")
ALGORITHM = "HS256"
# Tokens are the only session state, so they live for a week by default
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.environ.get("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24 * 7))
TOKEN_TYPE = "access"

def verify_password(plain_password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(plain_password.encode('utf-8'), hashed_password.encode('utf-8'))

def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed JWT access token. The subject is the user id as a string."""
    lifetime = expires_delta if expires_delta is not None else timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {**data, "exp": datetime.utcnow() + lifetime, "type": TOKEN_TYPE}
    return jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM)

def create_user_token(user_id: int) -> str:
    return create_access_token(data={"sub": str(user_id)})

def decode_user_id(token: str) -> int:
    """
    Return the user id carried by an access token.

    Raises JWTError for a bad signature, an expired token, a token of another
    type or a missing subject, and ValueError for a non-numeric subject.
    """
    claims = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    subject = claims.get("sub")
    if subject is None or claims.get("type") != TOKEN_TYPE:
        raise JWTError("Invalid access token")
    return int(subject)
