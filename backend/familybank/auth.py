# familybank/auth.py
from datetime import datetime, timedelta, timezone
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from familybank.database import get_session
from familybank.models import Parent, Child, Family

import os

SECRET_KEY = os.getenv("SECRET_KEY", "super-secret-key")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/login")


def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password):
    return pwd_context.hash(password)


async def authenticate_parent(db: AsyncSession, email: str, password: str):
    result = await db.execute(select(Parent).where(Parent.email == email))
    parent = result.scalar_one_or_none()
    if not parent or not verify_password(password, parent.password_hash):
        return None
    return parent


async def authenticate_child(
    db: AsyncSession, family_slug: str, first_name: str, password: str
):
    result = await db.execute(
        select(Child)
        .join(Family, Family.id == Child.family_id)
        .where(Family.slug == family_slug, Child.first_name == first_name)
    )
    child = result.scalar_one_or_none()
    if not child or not verify_password(password, child.password_hash):
        return None
    return child


def create_access_token(data: dict, expires_delta: timedelta | None = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def token_for(kind: str, obj_id: int) -> str:
    return create_access_token({"sub": f"{kind}:{obj_id}"})


async def get_current_identity(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_session),
) -> tuple[str, Parent | Child]:
    """Return ("parent", Parent) or ("child", Child) based on token subject."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"code": "unauthorized", "message": "Could not validate credentials"},
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        sub: str = payload.get("sub")
        if not sub or ":" not in sub:
            raise credentials_exception
        kind, raw_id = sub.split(":", 1)
        obj_id = int(raw_id)
    except (JWTError, ValueError):
        raise credentials_exception
    if kind == "child":
        result = await db.execute(select(Child).where(Child.id == obj_id))
    elif kind == "parent":
        result = await db.execute(select(Parent).where(Parent.id == obj_id))
    else:
        raise credentials_exception
    obj = result.scalar_one_or_none()
    if obj is None:
        raise credentials_exception
    return kind, obj


async def get_current_parent(
    identity: tuple[str, Parent | Child] = Depends(get_current_identity),
) -> Parent:
    kind, obj = identity
    if kind != "parent":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"code": "forbidden", "message": "Parent access required"},
        )
    return obj
