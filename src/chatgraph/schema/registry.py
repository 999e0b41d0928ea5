"""
Schema registry: validated, read-only lookup tables for the dispatch engine.
"""

from __future__ import annotations

from collections.abc import Iterable
from types import MappingProxyType

from ..exceptions import SchemaValidationError
from ..logging import get_logger
from .definitions import (
    BUILTIN_SCALARS,
    FieldDefinition,
    ResolverBinding,
    TypeDefinition,
    TypeRef,
)

logger = get_logger(__name__)

QUERY = "Query"
MUTATION = "Mutation"
ROOT_TYPES = {"query": QUERY, "mutation": MUTATION}


class Registry:
    """
    Immutable view over type definitions and resolver bindings.

    Use :func:`register` to build one; the constructor performs no validation.
    """

    def __init__(
        self,
        types: dict[str, TypeDefinition],
        fields: dict[tuple[str, str], FieldDefinition],
        bindings: dict[tuple[str, str], ResolverBinding],
        scalars: frozenset[str],
    ):
        self._types = MappingProxyType(types)
        self._fields = MappingProxyType(fields)
        self._bindings = MappingProxyType(bindings)
        self._scalars = scalars

    @property
    def types(self) -> MappingProxyType[str, TypeDefinition]:
        return self._types

    @property
    def scalars(self) -> frozenset[str]:
        return self._scalars

    def get_type(self, type_name: str) -> TypeDefinition | None:
        return self._types.get(type_name)

    def root_type(self, operation_kind: str) -> TypeDefinition | None:
        """Get the root type for an operation kind ('query' or 'mutation')."""
        name = ROOT_TYPES.get(operation_kind)
        return self._types.get(name) if name else None

    def lookup_field(self, type_name: str, field_name: str) -> FieldDefinition:
        """
        Get a field definition.

        Raises:
            KeyError: If the type or field is not declared
        """
        return self._fields[(type_name, field_name)]

    def lookup_binding(self, type_name: str, field_name: str) -> ResolverBinding | None:
        return self._bindings.get((type_name, field_name))

    def is_scalar(self, type_name: str) -> bool:
        return type_name in self._scalars

    def is_leaf(self, type_ref: TypeRef) -> bool:
        """Scalars and lists of scalars resolve without sub-selections."""
        return self.is_scalar(type_ref.name)

    def __contains__(self, type_name: str) -> bool:
        return type_name in self._types


def _needs_binding(
    registry: Registry, type_def: TypeDefinition, field_def: FieldDefinition
) -> bool:
    if type_def.name in ROOT_TYPES.values():
        return True
    if not registry.is_leaf(field_def.type):
        return True
    if type_def.source_attributes is not None:
        return field_def.name not in type_def.source_attributes
    return False


def register(
    type_defs: Iterable[TypeDefinition],
    bindings: Iterable[ResolverBinding],
    scalars: Iterable[str] = (),
) -> Registry:
    """
    Validate type definitions against resolver bindings and build a registry.

    Args:
        type_defs: Object type definitions (including Query / Mutation roots)
        bindings: Resolver bindings, at most one per (type, field)
        scalars: Custom scalar names in addition to the built-in ones

    Returns:
        Read-only Registry

    Raises:
        SchemaValidationError: Listing every problem found
    """
    problems: list[str] = []
    types: dict[str, TypeDefinition] = {}
    fields: dict[tuple[str, str], FieldDefinition] = {}
    scalar_names = frozenset(BUILTIN_SCALARS | set(scalars))

    for type_def in type_defs:
        if type_def.name in types or type_def.name in scalar_names:
            problems.append(f"Duplicate type '{type_def.name}'")
            continue
        types[type_def.name] = type_def
        for field_def in type_def.fields:
            key = (type_def.name, field_def.name)
            if key in fields:
                problems.append(f"Duplicate field '{type_def.name}.{field_def.name}'")
                continue
            fields[key] = field_def

    if QUERY not in types:
        problems.append("Schema has no 'Query' type")

    for (type_name, field_name), field_def in fields.items():
        referenced = [field_def.type.name] + [a.type.name for a in field_def.arguments]
        for name in referenced:
            if name not in types and name not in scalar_names:
                problems.append(
                    f"Field '{type_name}.{field_name}' references unknown type '{name}'"
                )
        for argument in field_def.arguments:
            if argument.type.name in types:
                problems.append(
                    f"Argument '{type_name}.{field_name}({argument.name})' must be a scalar"
                )
        names = [a.name for a in field_def.arguments]
        if len(names) != len(set(names)):
            problems.append(f"Duplicate argument on '{type_name}.{field_name}'")

    bound: dict[tuple[str, str], ResolverBinding] = {}
    for binding in bindings:
        label = f"{binding.type_name}.{binding.field_name}"
        if binding.key in bound:
            problems.append(f"Duplicate resolver binding for '{label}'")
        elif binding.key not in fields:
            problems.append(f"Resolver bound to undeclared field '{label}'")
        else:
            bound[binding.key] = binding

    registry = Registry(types, fields, bound, scalar_names)

    for type_def in types.values():
        for field_def in type_def.fields:
            key = (type_def.name, field_def.name)
            if key in bound or fields.get(key) is not field_def:
                continue
            if _needs_binding(registry, type_def, field_def):
                problems.append(f"Field '{type_def.name}.{field_def.name}' has no resolver binding")

    if problems:
        logger.error("Schema validation failed", problems=problems)
        raise SchemaValidationError(problems)

    logger.info(
        "Schema registry built",
        types=sorted(types),
        bindings=len(bound),
    )
    return registry
