"""
Resolver dispatch engine
"""

from .engine import DispatchEngine, ExecutionResult, FieldError
from .operation import FieldSelection, Operation, parse_operation

__all__ = [
    "DispatchEngine",
    "ExecutionResult",
    "FieldError",
    "FieldSelection",
    "Operation",
    "parse_operation",
]
