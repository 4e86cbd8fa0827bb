from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pymongo.database import Database

from config import settings
from database import get_db, object_id
from errors import InvalidArgument

pwd_ctx = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

oauth2 = OAuth2PasswordBearer(tokenUrl="/api/users/login")
optional_oauth2 = OAuth2PasswordBearer(tokenUrl="/api/users/login", auto_error=False)


def hash_password(password: str) -> str:
    return pwd_ctx.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_ctx.verify(plain, hashed)


def create_token(subject: str, expires_minutes: Optional[int] = None) -> str:
    expires = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode = {"sub": subject, "exp": expires}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> dict:
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])


def authenticate(db: Database, email: str, password: str) -> Optional[dict]:
    user = db["user"].find_one({"email": email.lower()})
    if not user or not verify_password(password, user["password"]):
        return None
    return user


def _user_from_token(token: str, db: Database) -> dict:
    try:
        payload = decode_token(token)
        uid = object_id(payload.get("sub"))
    except (JWTError, InvalidArgument):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authorized, token failed")
    user = db["user"].find_one({"_id": uid})
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return user


def get_current_user(token: str = Depends(oauth2), db: Database = Depends(get_db)) -> dict:
    return _user_from_token(token, db)


def get_optional_user(token: Optional[str] = Depends(optional_oauth2), db: Database = Depends(get_db)) -> Optional[dict]:
    if not token:
        return None
    return _user_from_token(token, db)


def get_admin_user(user: dict = Depends(get_current_user)) -> dict:
    if not user.get("isAdmin", False):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized as an admin")
    return user
