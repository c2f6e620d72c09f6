# File: crudgen/type_mapping.py
"""
CrudGen - Type Mapping Table
=============================
One table maps every ``FieldType`` to its storage type, its Pydantic
validation annotation and its OpenAPI fragment. Schema models, DDL and the
API document all resolve fields through this module, so the three views of a
field cannot drift apart.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple

from crudgen.errors import GenerationError, UnsupportedTypeError
from crudgen.models import FieldSpec, FieldType
from crudgen.utils import python_literal

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.type_mapping")

DATE_PATTERN: str = r"^\d{4}-\d{2}-\d{2}$"

# Which family of bounds min/max translate to for a type
BOUND_LENGTH: str = "length"
BOUND_NUMERIC: str = "numeric"


# ---------------------------------------------------------------------------
# Table entries
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TypeEntry:
    """Static facts about one field type."""

    field_type: FieldType
    storage_type: str
    annotation: str
    imports: Tuple[Tuple[str, str], ...] = ()
    bounds: Optional[str] = None
    api_schema: Mapping[str, Any] = field(default_factory=dict)
    pattern: Optional[str] = None


@dataclass(frozen=True, slots=True)
class TypeMapping:
    """A ``TypeEntry`` resolved against one concrete field."""

    field_name: str
    storage_type: str
    annotation: str
    constraints: Dict[str, Any]
    api_schema: Dict[str, Any]
    imports: FrozenSet[Tuple[str, str]]

    def import_dict(self) -> Dict[str, set]:
        """Imports in the ``module -> names`` shape ``build_import_block`` takes."""
        result: Dict[str, set] = {}
        for module, name in self.imports:
            result.setdefault(module, set()).add(name)
        return result

    def field_arguments(self, default: Any = ..., *, with_default: bool = False) -> str:
        """
        Render the keyword arguments of a Pydantic ``Field(...)`` call.

        ``default`` is emitted only when ``with_default`` is true so that
        required attributes stay required.
        """
        parts: List[str] = []
        if with_default:
            parts.append(f"default={python_literal(default)}")
        for key, value in self.constraints.items():
            parts.append(f"{key}={python_literal(value)}")
        return ", ".join(parts)


_TYPE_TABLE: Dict[FieldType, TypeEntry] = {
    FieldType.STRING: TypeEntry(
        FieldType.STRING, "TEXT", "str",
        bounds=BOUND_LENGTH, api_schema={"type": "string"},
    ),
    FieldType.TEXT: TypeEntry(
        FieldType.TEXT, "TEXT", "str",
        bounds=BOUND_LENGTH, api_schema={"type": "string"},
    ),
    FieldType.INTEGER: TypeEntry(
        FieldType.INTEGER, "INTEGER", "int",
        bounds=BOUND_NUMERIC, api_schema={"type": "integer"},
    ),
    FieldType.NUMBER: TypeEntry(
        FieldType.NUMBER, "REAL", "float",
        bounds=BOUND_NUMERIC, api_schema={"type": "number"},
    ),
    FieldType.BOOLEAN: TypeEntry(
        FieldType.BOOLEAN, "INTEGER", "bool", api_schema={"type": "boolean"},
    ),
    FieldType.UUID: TypeEntry(
        FieldType.UUID, "TEXT", "UUID",
        imports=(("uuid", "UUID"),),
        api_schema={"type": "string", "format": "uuid"},
    ),
    FieldType.EMAIL: TypeEntry(
        FieldType.EMAIL, "TEXT", "EmailStr",
        imports=(("pydantic", "EmailStr"),),
        api_schema={"type": "string", "format": "email"},
    ),
    FieldType.URL: TypeEntry(
        FieldType.URL, "TEXT", "AnyUrl",
        imports=(("pydantic", "AnyUrl"),),
        api_schema={"type": "string", "format": "uri"},
    ),
    FieldType.DATETIME: TypeEntry(
        FieldType.DATETIME, "TEXT", "datetime",
        imports=(("datetime", "datetime"),),
        api_schema={"type": "string", "format": "date-time"},
    ),
    FieldType.DATE: TypeEntry(
        FieldType.DATE, "TEXT", "str",
        api_schema={"type": "string", "format": "date"},
        pattern=DATE_PATTERN,
    ),
    FieldType.JSON: TypeEntry(
        FieldType.JSON, "TEXT", "Dict[str, Any]",
        imports=(("typing", "Any"), ("typing", "Dict")),
        api_schema={"type": "object"},
    ),
    FieldType.ENUM: TypeEntry(
        FieldType.ENUM, "TEXT", "Literal",
        imports=(("typing", "Literal"),),
        api_schema={"type": "string"},
    ),
}


# ---------------------------------------------------------------------------
# Public lookups
# ---------------------------------------------------------------------------


def map_type(field_type: Any, field_name: Optional[str] = None) -> TypeEntry:
    """
    Look up the table entry for *field_type*.

    Raises:
        UnsupportedTypeError: for anything outside ``FieldType``.
    """
    try:
        key: FieldType = FieldType(field_type)
    except ValueError:
        raise UnsupportedTypeError(field_type, field_name) from None
    return _TYPE_TABLE[key]


def map_field(spec: FieldSpec) -> TypeMapping:
    """Resolve *spec* into its storage type, validation rule and API fragment."""
    entry: TypeEntry = map_type(spec.type, spec.name)
    annotation: str = entry.annotation
    constraints: Dict[str, Any] = {}
    api_schema: Dict[str, Any] = dict(entry.api_schema)

    if entry.field_type == FieldType.ENUM:
        if not spec.enum_values:
            raise GenerationError(f"Enum field '{spec.name}' must have enum values.")
        annotation = "Literal[{}]".format(
            ", ".join(python_literal(v) for v in spec.enum_values)
        )
        api_schema["enum"] = list(spec.enum_values)

    if entry.bounds == BOUND_LENGTH:
        if spec.min_value is not None:
            constraints["min_length"] = int(spec.min_value)
            api_schema["minLength"] = int(spec.min_value)
        if spec.max_value is not None:
            constraints["max_length"] = int(spec.max_value)
            api_schema["maxLength"] = int(spec.max_value)
    elif entry.bounds == BOUND_NUMERIC:
        if spec.min_value is not None:
            constraints["ge"] = spec.min_value
            api_schema["minimum"] = spec.min_value
        if spec.max_value is not None:
            constraints["le"] = spec.max_value
            api_schema["maximum"] = spec.max_value

    if entry.pattern is not None:
        constraints["pattern"] = entry.pattern

    if spec.has_default:
        api_schema["default"] = spec.default
    if spec.description:
        api_schema["description"] = spec.description

    return TypeMapping(
        field_name=spec.name,
        storage_type=entry.storage_type,
        annotation=annotation,
        constraints=constraints,
        api_schema=api_schema,
        imports=frozenset(entry.imports),
    )


def supported_types() -> List[str]:
    """All accepted ``type`` values, in declaration order."""
    return [t.value for t in FieldType]


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "DATE_PATTERN",
    "TypeEntry",
    "TypeMapping",
    "map_type",
    "map_field",
    "supported_types",
]

logger.debug("crudgen.type_mapping loaded: %d public symbols.", len(__all__))
