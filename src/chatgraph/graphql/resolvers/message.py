"""Message resolvers (relational store), including the cross-store sender lookup."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ...datasources import Record
from ...logging import get_logger
from .inputs import NewMessage, validate_input
from .user import USER

if TYPE_CHECKING:
    from ...context import RequestContext

logger = get_logger(__name__)

MESSAGE = "message"

# Attributes present on message records returned by the relational store
MESSAGE_ATTRIBUTES = frozenset({"id", "sentBy", "text", "createdAt", "updatedAt"})


async def messages(
    _parent: Any, _args: dict[str, Any], context: RequestContext
) -> list[Record | None]:
    return await context.messages.find_many(MESSAGE, {})


async def send_message(_parent: Any, args: dict[str, Any], context: RequestContext) -> Record:
    new_message = validate_input(NewMessage, args)
    # sentBy is not checked against the document store; it is a weak reference
    record = await context.messages.create(
        MESSAGE, {"sentBy": new_message.sent_by, "text": new_message.text}
    )
    logger.info("Message stored", message_id=record.get("id"), sent_by=new_message.sent_by)
    return record


async def message_sent_by(
    parent: Record, _args: dict[str, Any], context: RequestContext
) -> Record | None:
    """Look up the sending user; a dangling reference resolves to None."""
    sent_by = parent.get("sentBy")
    if not sent_by:
        return None

    user = await context.users.find_one(USER, {"userID": str(sent_by)})
    if user is None:
        logger.debug("Message sender not found", message_id=parent.get("id"), sent_by=sent_by)
    return user
