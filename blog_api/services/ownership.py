"""
Ownership checks shared by every service that mutates an owned resource.

The coordinator loads the target row, confirms it still exists and belongs
to the caller, and only then lets the caller's service apply the change.
It never commits: the ``get_db`` dependency owns the transaction, so an
exception raised here (or after it) rolls the whole request back.
"""
import logging
from typing import Sequence, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.errors import NotFoundError, PermissionDeniedError
from blog_api.guard import CallerIdentity

logger = logging.getLogger(__name__)

M = TypeVar("M")


def ensure_owner(resource, caller: CallerIdentity, resource_name: str = "Resource") -> None:
    """
    Raise ``PermissionDeniedError`` unless *caller* authored *resource*.

    The error body is the generic "Permission denied"; the real owner only
    shows up in the server log.
    """
    if resource.author_id != caller.subject_id:
        logger.info(
            "Denied %s %s to user %s (owner %s)",
            resource_name.lower(),
            resource.id,
            caller.subject_id,
            resource.author_id,
        )
        raise PermissionDeniedError()


async def load_owned(
    db: AsyncSession,
    model: type[M],
    resource_id: int,
    caller: CallerIdentity,
    resource_name: str,
    options: Sequence = (),
) -> M:
    q = select(model).where(model.id == resource_id, model.deleted_at.is_(None))
    if options:
        q = q.options(*options)
    result = await db.execute(q)
    resource = result.unique().scalar_one_or_none()
    if resource is None:
        raise NotFoundError(resource_name)
    ensure_owner(resource, caller, resource_name)
    return resource
