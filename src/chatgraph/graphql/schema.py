"""
Chat schema: type definitions and resolver bindings
"""

from ..schema import Registry, ResolverBinding, register, type_defs_from_sdl
from .resolvers import add_user, message_sent_by, messages, send_message, user_name, users
from .resolvers.message import MESSAGE_ATTRIBUTES
from .resolvers.user import USER_ATTRIBUTES

# Sibling query fields run concurrently; sibling mutation fields run in order.
# Users live in the document store, messages in the relational store.
# Updating or deleting either entity is not supported.
TYPE_DEFS = """
scalar Email

type User {
  userID: ID
  email: Email
  name: String
}

type Message {
  id: ID
  sentBy: User
  text: String
}

type Query {
  messages: [Message]!
  users: [User]!
}

type Mutation {
  addUser(
    firstName: String!
    lastName: String!
    email: String!
    password: String!
  ): User

  sendMessage(
    sentBy: ID!
    text: String!
  ): Message
}
"""

SOURCE_ATTRIBUTES = {
    "User": USER_ATTRIBUTES,
    "Message": MESSAGE_ATTRIBUTES,
}

BINDINGS = [
    ResolverBinding("Query", "messages", messages),
    ResolverBinding("Query", "users", users),
    ResolverBinding("Mutation", "addUser", add_user),
    ResolverBinding("Mutation", "sendMessage", send_message),
    ResolverBinding("User", "name", user_name),
    ResolverBinding("Message", "sentBy", message_sent_by),
]


def build_registry() -> Registry:
    """Build the chat schema registry.

    Raises:
        SchemaValidationError: If the type definitions and bindings disagree
    """
    type_defs, scalars = type_defs_from_sdl(TYPE_DEFS, SOURCE_ATTRIBUTES)
    return register(type_defs, BINDINGS, scalars)
