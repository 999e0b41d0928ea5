"""User resolvers (document store)."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from ...datasources import Record
from ...logging import get_logger
from ...passwords import hash_password
from .inputs import NewUser, validate_input

if TYPE_CHECKING:
    from ...context import RequestContext

logger = get_logger(__name__)

USER = "user"

# Attributes present on user records returned by the document store
USER_ATTRIBUTES = frozenset({"userID", "email", "firstName", "lastName", "passwordHash"})


async def users(
    _parent: Any, _args: dict[str, Any], context: RequestContext
) -> list[Record | None]:
    return await context.users.find_many(USER, {})


async def add_user(_parent: Any, args: dict[str, Any], context: RequestContext) -> Record:
    new_user = validate_input(NewUser, args)
    # PBKDF2 is CPU bound; keep it off the event loop
    password_hash = await asyncio.to_thread(hash_password, new_user.password)

    record = await context.users.create(
        USER,
        {
            "firstName": new_user.first_name,
            "lastName": new_user.last_name,
            "email": new_user.email,
            "passwordHash": password_hash,
        },
    )
    logger.info("User created", user_id=record.get("userID"))
    return record


async def user_name(parent: Record, _args: dict[str, Any], _context: RequestContext) -> str | None:
    """Full name: first and last name joined by a single space."""
    first_name = parent.get("firstName")
    last_name = parent.get("lastName")
    if first_name is None or last_name is None:
        return None
    return first_name + " " + last_name
