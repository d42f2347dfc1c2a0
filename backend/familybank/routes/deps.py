"""Shared dependencies for route modules."""

from sqlalchemy.ext.asyncio import AsyncSession

from familybank.acl import require_access
from familybank.crud import get_child
from familybank.models import Child


async def load_child(
    db: AsyncSession, identity, child_id: int, mutate: bool = False
) -> Child:
    """Fetch a child the caller may access or raise ``NotFound``/``Forbidden``."""
    return require_access(identity, await get_child(db, child_id), mutate)
