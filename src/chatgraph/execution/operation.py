"""
Operation documents: parse GraphQL text into a flat selection plan.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from graphql import (
    DocumentNode,
    FieldNode,
    FragmentDefinitionNode,
    FragmentSpreadNode,
    GraphQLSyntaxError,
    InlineFragmentNode,
    OperationDefinitionNode,
    OperationType,
    SelectionSetNode,
    Undefined,
    parse,
    value_from_ast_untyped,
)

from ..exceptions import OperationError

SUPPORTED_OPERATIONS = {OperationType.QUERY: "query", OperationType.MUTATION: "mutation"}


@dataclass(frozen=True)
class FieldSelection:
    name: str
    alias: str | None = None
    arguments: dict[str, Any] = field(default_factory=dict)
    selections: tuple[FieldSelection, ...] = ()

    @property
    def response_key(self) -> str:
        return self.alias or self.name


@dataclass(frozen=True)
class Operation:
    kind: str  # 'query' or 'mutation'
    selections: tuple[FieldSelection, ...]
    name: str | None = None


class _SelectionBuilder:
    def __init__(self, fragments: dict[str, FragmentDefinitionNode], variables: Mapping[str, Any]):
        self.fragments = fragments
        self.variables = dict(variables)

    def _included(self, node: FieldNode | FragmentSpreadNode | InlineFragmentNode) -> bool:
        for directive in node.directives or ():
            name = directive.name.value
            if name not in ("skip", "include"):
                continue
            condition = None
            for argument in directive.arguments or ():
                if argument.name.value == "if":
                    condition = value_from_ast_untyped(argument.value, self.variables)
            if not isinstance(condition, bool):
                raise OperationError(f"Directive '@{name}' requires a boolean 'if' argument")
            if (name == "skip" and condition) or (name == "include" and not condition):
                return False
        return True

    def _arguments(self, node: FieldNode) -> dict[str, Any]:
        arguments = {}
        for argument in node.arguments or ():
            value = value_from_ast_untyped(argument.value, self.variables)
            if value is not Undefined:
                arguments[argument.name.value] = value
        return arguments

    def _collect(
        self, selection_set: SelectionSetNode | None, visited: frozenset[str]
    ) -> list[tuple[FieldNode, frozenset[str]]]:
        nodes: list[tuple[FieldNode, frozenset[str]]] = []
        if selection_set is None:
            return nodes
        for node in selection_set.selections:
            if not self._included(node):
                continue
            if isinstance(node, FieldNode):
                nodes.append((node, visited))
            elif isinstance(node, InlineFragmentNode):
                nodes.extend(self._collect(node.selection_set, visited))
            elif isinstance(node, FragmentSpreadNode):
                name = node.name.value
                if name in visited:
                    raise OperationError(f"Fragment '{name}' spreads itself")
                fragment = self.fragments.get(name)
                if fragment is None:
                    raise OperationError(f"Unknown fragment '{name}'")
                nodes.extend(self._collect(fragment.selection_set, visited | {name}))
        return nodes

    def build(
        self, selection_set: SelectionSetNode | None, visited: frozenset[str] = frozenset()
    ) -> tuple[FieldSelection, ...]:
        return _merge(
            FieldSelection(
                name=node.name.value,
                alias=node.alias.value if node.alias else None,
                arguments=self._arguments(node),
                selections=self.build(node.selection_set, seen),
            )
            for node, seen in self._collect(selection_set, visited)
        )


def _merge(selections: Iterable[FieldSelection]) -> tuple[FieldSelection, ...]:
    """Merge selections sharing a response key, at every depth."""
    merged: dict[str, FieldSelection] = {}
    for selection in selections:
        existing = merged.get(selection.response_key)
        if existing is None:
            merged[selection.response_key] = selection
            continue
        if existing.name != selection.name or existing.arguments != selection.arguments:
            raise OperationError(
                f"Fields '{selection.response_key}' conflict; use different aliases"
            )
        merged[selection.response_key] = FieldSelection(
            name=existing.name,
            alias=existing.alias,
            arguments=existing.arguments,
            selections=_merge(existing.selections + selection.selections),
        )
    return tuple(merged.values())


def parse_operation(
    document: str | DocumentNode,
    variables: Mapping[str, Any] | None = None,
    operation_name: str | None = None,
) -> Operation:
    """
    Parse an operation document into an :class:`Operation`.

    Args:
        document: GraphQL query text or an already parsed document
        variables: Variable values referenced by the document
        operation_name: Which operation to run when the document has several

    Returns:
        The selected operation with variables and fragments resolved

    Raises:
        OperationError: Syntax errors, unknown/ambiguous operation names,
            subscriptions and malformed fragments
    """
    if isinstance(document, str):
        try:
            document = parse(document)
        except GraphQLSyntaxError as e:
            raise OperationError(f"Syntax error: {e.message}") from e

    operations: list[OperationDefinitionNode] = []
    fragments: dict[str, FragmentDefinitionNode] = {}
    for definition in document.definitions:
        if isinstance(definition, OperationDefinitionNode):
            operations.append(definition)
        elif isinstance(definition, FragmentDefinitionNode):
            fragments[definition.name.value] = definition
        else:
            raise OperationError("Operation documents may only contain operations and fragments")

    if operation_name is None:
        if len(operations) != 1:
            raise OperationError(
                "Must provide operation name if query contains multiple operations"
            )
        selected = operations[0]
    else:
        matches = [o for o in operations if o.name and o.name.value == operation_name]
        if not matches:
            raise OperationError(f"Unknown operation named '{operation_name}'")
        selected = matches[0]

    kind = SUPPORTED_OPERATIONS.get(selected.operation)
    if kind is None:
        label = selected.operation.value.capitalize()
        raise OperationError(f"{label} operations are not supported")

    values = dict(variables or {})
    for definition in selected.variable_definitions or ():
        name = definition.variable.name.value
        if name not in values and definition.default_value is not None:
            values[name] = value_from_ast_untyped(definition.default_value)

    builder = _SelectionBuilder(fragments, values)
    return Operation(
        kind=kind,
        selections=builder.build(selected.selection_set),
        name=selected.name.value if selected.name else None,
    )
