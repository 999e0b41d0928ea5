"""
Schema registry: type definitions, resolver bindings and startup validation
"""

from .definitions import (
    BUILTIN_SCALARS,
    ArgumentDefinition,
    FieldDefinition,
    ResolverBinding,
    TypeDefinition,
    TypeRef,
    type_defs_from_sdl,
)
from .registry import MUTATION, QUERY, Registry, register

__all__ = [
    "BUILTIN_SCALARS",
    "ArgumentDefinition",
    "FieldDefinition",
    "MUTATION",
    "QUERY",
    "Registry",
    "ResolverBinding",
    "TypeDefinition",
    "TypeRef",
    "register",
    "type_defs_from_sdl",
]
