"""
Resolver dispatch engine.

Executes an :class:`Operation` against a :class:`Registry`:

- query root fields run concurrently, mutation root fields run one after
  another (each including its whole nested tree);
- nested fields run once the parent value is available, receiving the parent
  value, the field arguments and the request context;
- scalar fields without a resolver binding read the same-named key or
  attribute from the parent value;
- a failing field becomes ``null`` and contributes an error entry with its
  path, leaving siblings untouched.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from ..exceptions import ChatGraphError, OperationError
from ..logging import get_logger
from ..schema import FieldDefinition, Registry, TypeDefinition, TypeRef
from .operation import FieldSelection, Operation, parse_operation

logger = get_logger(__name__)

Path = list[str | int]


@dataclass
class FieldError:
    message: str
    path: Path
    code: str = "INTERNAL_SERVER_ERROR"

    @property
    def formatted(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "path": list(self.path),
            "extensions": {"code": self.code},
        }


@dataclass
class ExecutionResult:
    data: dict[str, Any] | None
    errors: list[FieldError] = field(default_factory=list)

    @property
    def formatted(self) -> dict[str, Any]:
        result: dict[str, Any] = {"data": self.data}
        if self.errors:
            result["errors"] = [e.formatted for e in self.errors]
        return result


def _serialize_scalar(type_name: str, value: Any) -> Any:
    if type_name == "ID":
        return str(value)
    if type_name == "String":
        return value if isinstance(value, str) else str(value)
    if type_name == "Int":
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"Int cannot represent {value!r}")
        return value
    if type_name == "Float":
        return float(value)
    if type_name == "Boolean":
        if not isinstance(value, bool):
            raise TypeError(f"Boolean cannot represent {value!r}")
        return value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def _coerce_argument(type_ref: TypeRef, value: Any, label: str) -> Any:
    if type_ref.of_list:
        items = value if isinstance(value, list) else [value]
        return [_coerce_argument(TypeRef(type_ref.name), item, label) for item in items]

    name = type_ref.name
    if name == "ID" and isinstance(value, (str, int)) and not isinstance(value, bool):
        return str(value)
    if name == "String" and isinstance(value, str):
        return value
    if name == "Int" and isinstance(value, int) and not isinstance(value, bool):
        return value
    if name == "Float" and isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    if name == "Boolean" and isinstance(value, bool):
        return value
    if name not in ("ID", "String", "Int", "Float", "Boolean"):
        return value
    raise OperationError(f"Argument '{label}' expects type {name}")


class DispatchEngine:
    """Runs operations against a schema registry."""

    def __init__(self, registry: Registry):
        self.registry = registry

    async def run(
        self,
        document: str,
        context: Any,
        variables: Mapping[str, Any] | None = None,
        operation_name: str | None = None,
    ) -> ExecutionResult:
        """Parse and execute a document; document errors yield ``data: null``."""
        try:
            operation = parse_operation(document, variables, operation_name)
        except OperationError as e:
            logger.info("Rejected operation document", error=e.public_message)
            return ExecutionResult(data=None, errors=[FieldError(e.public_message, [], e.code)])
        return await self.execute(operation, context)

    async def execute(self, operation: Operation, context: Any) -> ExecutionResult:
        root = self.registry.root_type(operation.kind)
        if root is None:
            message = f"Schema does not support {operation.kind} operations"
            return ExecutionResult(
                data=None, errors=[FieldError(message, [], "GRAPHQL_VALIDATION_FAILED")]
            )

        started = time.perf_counter()
        errors: list[FieldError] = []
        keys = [s.response_key for s in operation.selections]

        if operation.kind == "mutation":
            values = []
            for selection in operation.selections:
                values.append(
                    await self._resolve_field(
                        root, None, selection, context, [selection.response_key], errors
                    )
                )
        else:
            values = await asyncio.gather(
                *(
                    self._resolve_field(root, None, s, context, [s.response_key], errors)
                    for s in operation.selections
                )
            )

        logger.debug(
            "Operation executed",
            kind=operation.kind,
            operation=operation.name,
            fields=keys,
            errors=len(errors),
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return ExecutionResult(data=dict(zip(keys, values, strict=True)), errors=errors)

    async def _resolve_field(
        self,
        parent_type: TypeDefinition,
        parent_value: Any,
        selection: FieldSelection,
        context: Any,
        path: Path,
        errors: list[FieldError],
    ) -> Any:
        if selection.name == "__typename":
            return parent_type.name

        try:
            field_def = self.registry.lookup_field(parent_type.name, selection.name)
        except KeyError:
            message = f"Cannot query field '{selection.name}' on type '{parent_type.name}'"
            errors.append(FieldError(message, path, "GRAPHQL_VALIDATION_FAILED"))
            return None

        try:
            self._check_selections(field_def, selection)
            arguments = self._coerce_arguments(parent_type, field_def, selection.arguments)
            value = await self._invoke(parent_type, field_def, parent_value, arguments, context)
            return await self._complete(field_def.type, value, selection, context, path, errors)
        except ChatGraphError as e:
            logger.warning(
                "Field resolution failed",
                field=f"{parent_type.name}.{field_def.name}",
                path=path,
                error=str(e),
                error_type=type(e).__name__,
            )
            errors.append(FieldError(e.public_message, path, e.code))
        except Exception:
            logger.exception(
                "Unexpected error in resolver",
                field=f"{parent_type.name}.{field_def.name}",
                path=path,
            )
            errors.append(FieldError("Internal server error", path))
        return None

    def _check_selections(self, field_def: FieldDefinition, selection: FieldSelection) -> None:
        leaf = self.registry.is_leaf(field_def.type)
        if leaf and selection.selections:
            raise OperationError(
                f"Field '{field_def.name}' of type {field_def.type} has no subfields"
            )
        if not leaf and not selection.selections:
            raise OperationError(
                f"Field '{field_def.name}' of type {field_def.type} "
                "must have a selection of subfields"
            )

    def _coerce_arguments(
        self, parent_type: TypeDefinition, field_def: FieldDefinition, provided: dict[str, Any]
    ) -> dict[str, Any]:
        for name in provided:
            if field_def.argument(name) is None:
                raise OperationError(
                    f"Unknown argument '{name}' on field '{parent_type.name}.{field_def.name}'"
                )

        arguments: dict[str, Any] = {}
        for argument in field_def.arguments:
            value = provided.get(argument.name)
            if value is None:
                if argument.required:
                    raise OperationError(
                        f"Field '{field_def.name}' argument '{argument.name}' "
                        f"of type {argument.type} is required"
                    )
                if argument.name in provided:
                    arguments[argument.name] = None
                continue
            arguments[argument.name] = _coerce_argument(argument.type, value, argument.name)
        return arguments

    async def _invoke(
        self,
        parent_type: TypeDefinition,
        field_def: FieldDefinition,
        parent_value: Any,
        arguments: dict[str, Any],
        context: Any,
    ) -> Any:
        binding = self.registry.lookup_binding(parent_type.name, field_def.name)
        if binding is not None:
            return await binding.resolver(parent_value, arguments, context)

        # Default passthrough: no binding, so read the same-named value off the parent
        if parent_value is None:
            return None
        if isinstance(parent_value, Mapping):
            return parent_value.get(field_def.name)
        return getattr(parent_value, field_def.name, None)

    async def _complete(
        self,
        type_ref: TypeRef,
        value: Any,
        selection: FieldSelection,
        context: Any,
        path: Path,
        errors: list[FieldError],
    ) -> Any:
        if value is None:
            return None

        leaf = self.registry.is_leaf(type_ref)
        if type_ref.of_list:
            if isinstance(value, (str, bytes, Mapping)) or not hasattr(value, "__iter__"):
                raise TypeError(f"Expected a list for {type_ref}, got {type(value).__name__}")
            items = [item for item in value if item is not None]
            if leaf:
                return [_serialize_scalar(type_ref.name, item) for item in items]
            object_type = self.registry.get_type(type_ref.name)
            completed = await asyncio.gather(
                *(
                    self._complete_object(object_type, item, selection, context, path + [i], errors)
                    for i, item in enumerate(items)
                )
            )
            return list(completed)

        if leaf:
            return _serialize_scalar(type_ref.name, value)
        object_type = self.registry.get_type(type_ref.name)
        return await self._complete_object(object_type, value, selection, context, path, errors)

    async def _complete_object(
        self,
        object_type: TypeDefinition | None,
        value: Any,
        selection: FieldSelection,
        context: Any,
        path: Path,
        errors: list[FieldError],
    ) -> dict[str, Any]:
        if object_type is None:
            raise TypeError(f"No object type declared for field '{selection.name}'")
        keys = [s.response_key for s in selection.selections]
        values = await asyncio.gather(
            *(
                self._resolve_field(object_type, value, s, context, path + [s.response_key], errors)
                for s in selection.selections
            )
        )
        return dict(zip(keys, values, strict=True))
