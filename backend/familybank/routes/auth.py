# familybank/routes/auth.py
import logging
"""Authentication endpoints: registration, parent and child login."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from familybank.auth import authenticate_child, authenticate_parent, token_for
from familybank.crud import create_family_with_parent
from familybank.database import get_session
from familybank.errors import InvalidCredentials, InvalidName
from familybank.schemas import (
    ChildLoginRequest,
    LoginRequest,
    ParentRead,
    RegisterRequest,
    TokenResponse,
)
from familybank.validation import validate_password, validate_slug

logger = logging.getLogger(__name__)
router = APIRouter(tags=["auth"])


@router.post("/register", response_model=ParentRead, status_code=status.HTTP_201_CREATED)
async def register(data: RegisterRequest, db: AsyncSession = Depends(get_session)):
    """Create a family together with its first parent account."""

    validate_slug(data.family_slug)
    validate_password(data.password)
    name = data.name.strip()
    if not name:
        raise InvalidName("Name is required.")
    _, parent = await create_family_with_parent(
        db, data.family_slug, name, data.email, data.password
    )
    return parent


@router.post("/login", response_model=TokenResponse)
async def login(data: LoginRequest, db: AsyncSession = Depends(get_session)):
    """JSON-based parent login."""

    parent = await authenticate_parent(db, data.email, data.password)
    if not parent:
        logger.warning("Failed login for %s", data.email)
        raise InvalidCredentials()
    logger.info("Parent %s logged in", parent.id)
    return TokenResponse(
        access_token=token_for("parent", parent.id),
        user_type="parent",
        user_id=parent.id,
        family_id=parent.family_id,
    )


@router.post("/children/login", response_model=TokenResponse)
async def child_login(data: ChildLoginRequest, db: AsyncSession = Depends(get_session)):
    child = await authenticate_child(db, data.family_slug, data.first_name, data.password)
    if not child:
        logger.warning("Failed child login for %s in %s", data.first_name, data.family_slug)
        raise InvalidCredentials()
    logger.info("Child %s logged in", child.id)
    return TokenResponse(
        access_token=token_for("child", child.id),
        user_type="child",
        user_id=child.id,
        family_id=child.family_id,
        first_name=child.first_name,
    )
