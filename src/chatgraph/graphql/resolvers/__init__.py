"""
Field resolvers for the chat schema
"""

from .message import message_sent_by, messages, send_message
from .user import add_user, user_name, users

__all__ = [
    "add_user",
    "message_sent_by",
    "messages",
    "send_message",
    "user_name",
    "users",
]
