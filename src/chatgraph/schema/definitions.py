"""
Type and field definitions for the schema registry.

Definitions are frozen dataclasses. They can be written by hand or derived
from GraphQL SDL with :func:`type_defs_from_sdl`.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from graphql import (
    GraphQLSyntaxError,
    ListTypeNode,
    NamedTypeNode,
    NonNullTypeNode,
    ObjectTypeDefinitionNode,
    ScalarTypeDefinitionNode,
    TypeNode,
    parse,
)

from ..exceptions import SchemaValidationError

BUILTIN_SCALARS = frozenset({"ID", "String", "Int", "Float", "Boolean"})

# (parent value, arguments, request context) -> value
Resolver = Callable[[Any, dict[str, Any], Any], Awaitable[Any]]


@dataclass(frozen=True)
class TypeRef:
    """Reference to a named type, optionally wrapped in list and non-null markers.

    ``[User]!`` is ``TypeRef("User", non_null=True, of_list=True)``; the
    element nullability is kept separately in ``item_non_null``.
    """

    name: str
    non_null: bool = False
    of_list: bool = False
    item_non_null: bool = False

    def __str__(self) -> str:
        inner = self.name
        if self.of_list:
            inner = f"[{inner}{'!' if self.item_non_null else ''}]"
        return f"{inner}{'!' if self.non_null else ''}"


@dataclass(frozen=True)
class ArgumentDefinition:
    name: str
    type: TypeRef

    @property
    def required(self) -> bool:
        return self.type.non_null


@dataclass(frozen=True)
class FieldDefinition:
    name: str
    type: TypeRef
    arguments: tuple[ArgumentDefinition, ...] = ()

    @property
    def nullable(self) -> bool:
        return not self.type.non_null

    def argument(self, name: str) -> ArgumentDefinition | None:
        for argument in self.arguments:
            if argument.name == name:
                return argument
        return None


@dataclass(frozen=True)
class TypeDefinition:
    """An object type.

    ``source_attributes`` names the attributes present on records backing this
    type. ``None`` means the backing shape is unknown, in which case every
    scalar field is assumed to pass through from its parent.
    """

    name: str
    fields: tuple[FieldDefinition, ...]
    source_attributes: frozenset[str] | None = None

    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]


@dataclass(frozen=True)
class ResolverBinding:
    type_name: str
    field_name: str
    resolver: Resolver = field(compare=False)

    @property
    def key(self) -> tuple[str, str]:
        return (self.type_name, self.field_name)


def _type_ref(node: TypeNode) -> TypeRef:
    non_null = False
    if isinstance(node, NonNullTypeNode):
        non_null = True
        node = node.type

    if isinstance(node, ListTypeNode):
        item = node.type
        item_non_null = isinstance(item, NonNullTypeNode)
        if item_non_null:
            item = item.type
        if not isinstance(item, NamedTypeNode):
            raise SchemaValidationError(["Nested list types are not supported"])
        return TypeRef(
            item.name.value, non_null=non_null, of_list=True, item_non_null=item_non_null
        )

    if not isinstance(node, NamedTypeNode):
        raise SchemaValidationError([f"Unsupported type reference: {node.kind}"])
    return TypeRef(node.name.value, non_null=non_null)


def type_defs_from_sdl(
    sdl: str, source_attributes: Mapping[str, Iterable[str]] | None = None
) -> tuple[list[TypeDefinition], list[str]]:
    """Build type definitions from GraphQL SDL.

    Args:
        sdl: Schema definition language text (object types and scalars only)
        source_attributes: Optional backing record attributes per type name

    Returns:
        Tuple of (object type definitions, custom scalar names)

    Raises:
        SchemaValidationError: If the SDL cannot be parsed or uses unsupported
            definitions (interfaces, unions, inputs, enums, directives)
    """
    source_attributes = source_attributes or {}
    try:
        document = parse(sdl)
    except GraphQLSyntaxError as e:
        raise SchemaValidationError([f"Invalid SDL: {e.message}"]) from e

    types: list[TypeDefinition] = []
    scalars: list[str] = []
    problems: list[str] = []

    for definition in document.definitions:
        if isinstance(definition, ScalarTypeDefinitionNode):
            scalars.append(definition.name.value)
        elif isinstance(definition, ObjectTypeDefinitionNode):
            fields = tuple(
                FieldDefinition(
                    name=f.name.value,
                    type=_type_ref(f.type),
                    arguments=tuple(
                        ArgumentDefinition(a.name.value, _type_ref(a.type))
                        for a in f.arguments or ()
                    ),
                )
                for f in definition.fields or ()
            )
            attrs = source_attributes.get(definition.name.value)
            types.append(
                TypeDefinition(
                    name=definition.name.value,
                    fields=fields,
                    source_attributes=frozenset(attrs) if attrs is not None else None,
                )
            )
        else:
            problems.append(f"Unsupported SDL definition: {definition.kind}")

    if problems:
        raise SchemaValidationError(problems)

    return types, scalars
