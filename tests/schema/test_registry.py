"""
Tests for schema registry validation and lookups
"""

import pytest

from chatgraph.exceptions import SchemaValidationError
from chatgraph.graphql import BINDINGS
from chatgraph.schema import (
    ArgumentDefinition,
    FieldDefinition,
    ResolverBinding,
    TypeDefinition,
    TypeRef,
    register,
)


async def _noop(parent, args, context):
    return None


def _query(*fields: FieldDefinition) -> TypeDefinition:
    return TypeDefinition("Query", fields)


class TestChatRegistry:
    """Tests against the real chat schema."""

    def test_lookup_field(self, registry):
        field = registry.lookup_field("Mutation", "sendMessage")

        assert field.type == TypeRef("Message")
        assert [a.name for a in field.arguments] == ["sentBy", "text"]
        assert field.argument("sentBy").type == TypeRef("ID", non_null=True)

    def test_lookup_unknown_field_raises_key_error(self, registry):
        with pytest.raises(KeyError):
            registry.lookup_field("User", "password")

    def test_lookup_binding(self, registry):
        binding = registry.lookup_binding("User", "name")

        assert binding is not None
        assert binding.key == ("User", "name")

    def test_passthrough_fields_have_no_binding(self, registry):
        assert registry.lookup_binding("User", "email") is None
        assert registry.lookup_binding("Message", "text") is None

    def test_root_types(self, registry):
        assert registry.root_type("query").name == "Query"
        assert registry.root_type("mutation").name == "Mutation"
        assert registry.root_type("subscription") is None

    def test_custom_scalar_is_leaf(self, registry):
        assert registry.is_scalar("Email")
        assert registry.is_leaf(registry.lookup_field("User", "email").type)
        assert not registry.is_leaf(registry.lookup_field("Message", "sentBy").type)

    def test_registry_is_read_only(self, registry):
        with pytest.raises(TypeError):
            registry.types["Extra"] = TypeDefinition("Extra", ())  # type: ignore[index]


class TestRegisterValidation:
    """Tests for register() failure modes."""

    def test_field_without_binding_or_source_attribute(self):
        user = TypeDefinition(
            "User",
            (
                FieldDefinition("email", TypeRef("String")),
                FieldDefinition("name", TypeRef("String")),
            ),
            source_attributes=frozenset({"email"}),
        )
        query = _query(FieldDefinition("users", TypeRef("User", of_list=True)))

        with pytest.raises(SchemaValidationError) as exc_info:
            register([user, query], [ResolverBinding("Query", "users", _noop)])

        assert exc_info.value.problems == ["Field 'User.name' has no resolver binding"]

    def test_scalar_fields_pass_through_when_source_unknown(self):
        user = TypeDefinition("User", (FieldDefinition("name", TypeRef("String")),))
        query = _query(FieldDefinition("users", TypeRef("User", of_list=True)))

        registry = register([user, query], [ResolverBinding("Query", "users", _noop)])

        assert registry.lookup_binding("User", "name") is None

    def test_object_fields_always_need_binding(self):
        user = TypeDefinition("User", (FieldDefinition("email", TypeRef("String")),))
        message = TypeDefinition("Message", (FieldDefinition("sentBy", TypeRef("User")),))
        query = _query(FieldDefinition("messages", TypeRef("Message", of_list=True)))

        with pytest.raises(SchemaValidationError, match="Message.sentBy"):
            register([user, message, query], [ResolverBinding("Query", "messages", _noop)])

    def test_root_fields_always_need_binding(self):
        query = _query(FieldDefinition("version", TypeRef("String")))

        with pytest.raises(SchemaValidationError, match="Query.version"):
            register([query], [])

    def test_unknown_type_reference(self):
        query = _query(FieldDefinition("users", TypeRef("Person", of_list=True)))

        with pytest.raises(SchemaValidationError, match="unknown type 'Person'"):
            register([query], [ResolverBinding("Query", "users", _noop)])

    def test_unknown_argument_type(self):
        query = _query(
            FieldDefinition(
                "user",
                TypeRef("String"),
                (ArgumentDefinition("id", TypeRef("UUID", non_null=True)),),
            )
        )

        with pytest.raises(SchemaValidationError, match="unknown type 'UUID'"):
            register([query], [ResolverBinding("Query", "user", _noop)])

    def test_custom_scalar_argument_allowed(self):
        query = _query(
            FieldDefinition(
                "user",
                TypeRef("String"),
                (ArgumentDefinition("id", TypeRef("UUID", non_null=True)),),
            )
        )

        registry = register([query], [ResolverBinding("Query", "user", _noop)], scalars=["UUID"])

        assert registry.is_scalar("UUID")

    def test_duplicate_type(self):
        query = _query(FieldDefinition("a", TypeRef("String")))

        with pytest.raises(SchemaValidationError, match="Duplicate type 'Query'"):
            register([query, query], [ResolverBinding("Query", "a", _noop)])

    def test_duplicate_field(self):
        query = _query(
            FieldDefinition("a", TypeRef("String")), FieldDefinition("a", TypeRef("Int"))
        )

        with pytest.raises(SchemaValidationError, match="Duplicate field 'Query.a'"):
            register([query], [ResolverBinding("Query", "a", _noop)])

    def test_duplicate_binding(self):
        query = _query(FieldDefinition("a", TypeRef("String")))

        with pytest.raises(SchemaValidationError, match="Duplicate resolver binding"):
            register(
                [query],
                [ResolverBinding("Query", "a", _noop), ResolverBinding("Query", "a", _noop)],
            )

    def test_binding_for_undeclared_field(self):
        query = _query(FieldDefinition("a", TypeRef("String")))

        with pytest.raises(SchemaValidationError, match="undeclared field 'Query.b'"):
            register(
                [query],
                [ResolverBinding("Query", "a", _noop), ResolverBinding("Query", "b", _noop)],
            )

    def test_missing_query_type(self):
        with pytest.raises(SchemaValidationError, match="no 'Query' type"):
            register([], [])

    def test_every_problem_reported(self):
        query = _query(FieldDefinition("a", TypeRef("Nope")), FieldDefinition("b", TypeRef("Int")))

        with pytest.raises(SchemaValidationError) as exc_info:
            register([query], [ResolverBinding("Query", "a", _noop)])

        assert len(exc_info.value.problems) == 2

    def test_chat_bindings_cover_schema(self, registry):
        assert len(BINDINGS) == 6
        for binding in BINDINGS:
            assert registry.lookup_binding(binding.type_name, binding.field_name) is binding
