"""Authorization rules for child resources.

An identity is the ``(kind, obj)`` pair returned by
:func:`familybank.auth.get_current_identity`, where ``kind`` is ``"parent"``
or ``"child"``.  The rules are pure and never touch the database:

* a parent of the child's family may read and mutate;
* the child may read its own resources but not mutate them;
* another child of the same family is forbidden;
* anyone outside the family sees the child as missing.
"""

from familybank.errors import Forbidden, NotFound
from familybank.models import Child, Parent

ALLOWED = "allowed"
FORBIDDEN = "forbidden"
NOT_FOUND = "not_found"


def check_access(identity: tuple[str, Parent | Child], child: Child | None, mutate: bool) -> str:
    if child is None:
        return NOT_FOUND
    kind, obj = identity
    if obj.family_id != child.family_id:
        return NOT_FOUND
    if kind == "parent":
        return ALLOWED
    if kind == "child" and obj.id == child.id and not mutate:
        return ALLOWED
    return FORBIDDEN


def can_read(identity, child: Child | None) -> bool:
    return check_access(identity, child, mutate=False) == ALLOWED


def can_mutate(identity, child: Child | None) -> bool:
    return check_access(identity, child, mutate=True) == ALLOWED


def require_access(identity, child: Child | None, mutate: bool = False) -> Child:
    """Return ``child`` or raise the matching :class:`BankError`."""
    decision = check_access(identity, child, mutate)
    if decision == NOT_FOUND:
        raise NotFound("Child not found.")
    if decision == FORBIDDEN:
        raise Forbidden()
    return child
