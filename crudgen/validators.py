# File: crudgen/validators.py
"""
CrudGen - Configuration Validators
===================================
A pure-function validation pipeline over the models in ``crudgen.models``.

Pydantic handles the *shape* of a configuration (required keys, value
types, allowed field types). This module converts those failures into
path-qualified messages and adds the cross-entity *semantic* checks:
unique names, enum values, relation targets, index fields, bounds and
defaults.

Every check runs independently and every problem is collected; nothing
stops at the first error. Each validator is a single pass over the
resources and their fields.

Usage:
    from crudgen.validators import validate_semantics
    result = validate_semantics(config)
    if result.has_errors:
        ...
"""

from __future__ import annotations

import keyword
import logging
import math
import re
import uuid
from collections import Counter
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Set, Tuple

from pydantic import ValidationError as PydanticValidationError

from crudgen.models import SERVER_MANAGED_FIELDS, ApiConfig, FieldSpec, FieldType
from crudgen.type_mapping import DATE_PATTERN, map_type
from crudgen.utils import index_name

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.validators")

# ---------------------------------------------------------------------------
# Validation result container
# ---------------------------------------------------------------------------


class ValidationIssue:
    """Lightweight issue descriptor (no Pydantic overhead)."""

    __slots__ = ("level", "code", "message", "context")

    def __init__(
        self,
        level: str,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.level: str = level  # "error" | "warning"
        self.code: str = code
        self.message: str = message
        self.context: Dict[str, Any] = context or {}

    @property
    def is_error(self) -> bool:
        return self.level == "error"

    @property
    def is_warning(self) -> bool:
        return self.level == "warning"

    def __repr__(self) -> str:
        return f"[{self.level.upper()}] {self.code}: {self.message}"

    def __str__(self) -> str:
        return self.message


class ValidationResult:
    """Accumulates ``ValidationIssue`` instances produced by the pipeline."""

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: List[ValidationIssue] = []

    # -- Mutation -----------------------------------------------------------

    def add_error(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationIssue("error", code, message, context))

    def add_warning(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationIssue("warning", code, message, context))

    def merge(self, other: "ValidationResult") -> None:
        self._items.extend(other._items)

    # -- Query --------------------------------------------------------------

    @property
    def errors(self) -> List[ValidationIssue]:
        return [e for e in self._items if e.is_error]

    @property
    def warnings(self) -> List[ValidationIssue]:
        return [e for e in self._items if e.is_warning]

    @property
    def error_messages(self) -> List[str]:
        return [e.message for e in self._items if e.is_error]

    @property
    def all_items(self) -> List[ValidationIssue]:
        return list(self._items)

    @property
    def has_errors(self) -> bool:
        return any(e.is_error for e in self._items)

    @property
    def has_warnings(self) -> bool:
        return any(e.is_warning for e in self._items)

    @property
    def error_count(self) -> int:
        return sum(1 for e in self._items if e.is_error)

    @property
    def warning_count(self) -> int:
        return sum(1 for e in self._items if e.is_warning)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    def summary(self) -> str:
        return (
            f"Validation: {self.error_count} error(s), "
            f"{self.warning_count} warning(s), "
            f"{len(self._items)} total item(s)."
        )

    def __repr__(self) -> str:
        return f"<ValidationResult {self.summary()}>"

    def __bool__(self) -> bool:
        """Truthy when there are NO errors (i.e. valid)."""
        return self.is_valid

    def __len__(self) -> int:
        return len(self._items)

    def format_report(self) -> str:
        """Human-readable multi-line report, logged by ``validate_semantics``."""
        lines: List[str] = [self.summary(), ""]
        for item in self._items:
            prefix: str = "❌" if item.is_error else "⚠️"
            lines.append(f"  {prefix} [{item.code}] {item.message}")
            if item.context:
                for k, v in item.context.items():
                    lines.append(f"       {k}: {v}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Lookup tables
# ---------------------------------------------------------------------------

_IDENTIFIER_RE: re.Pattern[str] = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")
_DATE_RE: re.Pattern[str] = re.compile(DATE_PATTERN)

# Subset of SQL keywords; names matching these get quoted in DDL
_SQL_RESERVED_WORDS: FrozenSet[str] = frozenset(
    {
        "select", "insert", "update", "delete", "drop", "create", "alter",
        "table", "column", "index", "from", "where", "join", "inner",
        "outer", "left", "right", "on", "and", "or", "not", "null",
        "true", "false", "in", "between", "like", "is", "as", "order",
        "by", "group", "having", "limit", "offset", "union", "all",
        "distinct", "case", "when", "then", "else", "end", "exists",
        "primary", "foreign", "key", "references", "constraint", "check",
        "default", "unique", "cascade", "set", "values", "into",
        "begin", "commit", "rollback", "transaction", "trigger", "view",
        "with", "recursive",
    }
)

# Fixed parameters of every generated query model
_QUERY_PARAMETERS: FrozenSet[str] = frozenset(
    {"limit", "offset", "orderBy", "orderDirection", "search"}
)

_LENGTH_TYPES: FrozenSet[str] = frozenset({FieldType.STRING.value, FieldType.TEXT.value})
_NUMERIC_TYPES: FrozenSet[str] = frozenset({FieldType.INTEGER.value, FieldType.NUMBER.value})
_TEXT_DEFAULT_TYPES: FrozenSet[str] = frozenset(
    {
        FieldType.STRING.value,
        FieldType.TEXT.value,
        FieldType.EMAIL.value,
        FieldType.URL.value,
        FieldType.DATETIME.value,
    }
)


def _is_identifier(name: str) -> bool:
    return bool(_IDENTIFIER_RE.match(name)) and not keyword.iskeyword(name)


def is_filter_field(field: FieldSpec) -> bool:
    """Fields that get a dedicated filter on list queries."""
    return field.searchable or field.type in (FieldType.BOOLEAN, FieldType.ENUM)


# ---------------------------------------------------------------------------
# Shape validation
# ---------------------------------------------------------------------------


def validate_shape(data: Any) -> Tuple[Optional[ApiConfig], ValidationResult]:
    """
    Validate raw decoded data against ``ApiConfig``.

    Returns the IR when the shape is valid, otherwise ``None`` and one
    path-qualified error per problem (``resources.0.fields.1.type: ...``).
    """
    result: ValidationResult = ValidationResult()

    if not isinstance(data, dict):
        result.add_error(
            "INVALID_ROOT",
            "Invalid YAML: Content must be an object",
            {"received": type(data).__name__},
        )
        return None, result

    try:
        config: ApiConfig = ApiConfig.model_validate(data)
    except PydanticValidationError as exc:
        for err in exc.errors():
            path: str = ".".join(str(part) for part in err["loc"])
            message: str = f"{path}: {err['msg']}" if path else err["msg"]
            result.add_error(
                "INVALID_SHAPE", message, {"path": path, "type": err["type"]}
            )
        logger.debug("Shape validation produced %d error(s).", result.error_count)
        return None, result

    return config, result


# ---------------------------------------------------------------------------
# Individual semantic validators
# ---------------------------------------------------------------------------


def validate_resource_names(config: ApiConfig) -> ValidationResult:
    """
    Validate resource names for:
    - duplicates (one error per extra occurrence)
    - identifier format (names become table, class and module names)
    - two resources mapping onto the same table
    - SQL reserved table names
    """
    result: ValidationResult = ValidationResult()
    seen: Set[str] = set()
    tables: Dict[str, str] = {}

    for resource in config.resources:
        name: str = resource.name
        ctx: Dict[str, Any] = {"resource": name}

        if name in seen:
            result.add_error(
                "DUPLICATE_RESOURCE_NAME", f"Duplicate resource name: {name}", ctx
            )
            continue
        seen.add(name)

        if not _is_identifier(name):
            result.add_error(
                "INVALID_RESOURCE_NAME",
                f"Resource name '{name}' is not a valid identifier.",
                ctx,
            )
            continue

        table: str = resource.table_name
        if table in tables:
            result.add_error(
                "DUPLICATE_TABLE_NAME",
                f"Resources '{tables[table]}' and '{name}' both map to table '{table}'.",
                {"resource": name, "table": table},
            )
        else:
            tables[table] = name

        if table.lower() in _SQL_RESERVED_WORDS:
            result.add_warning(
                "TABLE_NAME_SQL_RESERVED",
                f"Table name '{table}' of resource '{name}' is a SQL reserved word "
                f"and will be quoted.",
                {"resource": name, "table": table},
            )

    logger.debug(
        "validate_resource_names: checked %d resources, %d issue(s).",
        len(config.resources),
        len(result),
    )
    return result


def validate_field_names(config: ApiConfig) -> ValidationResult:
    """Duplicate, malformed, reserved and shadowing field names."""
    result: ValidationResult = ValidationResult()

    for resource in config.resources:
        seen: Set[str] = set()
        for field in resource.fields:
            name: str = field.name
            ctx: Dict[str, Any] = {"resource": resource.name, "field": name}

            if name in seen:
                result.add_error(
                    "DUPLICATE_FIELD_NAME",
                    f"Duplicate field name '{name}' in resource '{resource.name}'",
                    ctx,
                )
                continue
            seen.add(name)

            # Leading underscores are private attributes to Pydantic
            if not _is_identifier(name) or name.startswith("_"):
                result.add_error(
                    "INVALID_FIELD_NAME",
                    f"Field name '{name}' in resource '{resource.name}' "
                    f"is not a valid identifier.",
                    ctx,
                )
                continue

            if name in SERVER_MANAGED_FIELDS:
                result.add_warning(
                    "SERVER_MANAGED_FIELD",
                    f"Field '{name}' in resource '{resource.name}' shadows a "
                    f"server-managed attribute and is left out of create/update rules.",
                    ctx,
                )

            if name.lower() in _SQL_RESERVED_WORDS:
                result.add_warning(
                    "FIELD_NAME_SQL_RESERVED",
                    f"Field name '{name}' in resource '{resource.name}' is a SQL "
                    f"reserved word and will be quoted.",
                    ctx,
                )

            if name in _QUERY_PARAMETERS and is_filter_field(field):
                result.add_warning(
                    "QUERY_PARAMETER_SHADOWED",
                    f"Field '{name}' in resource '{resource.name}' collides with the "
                    f"'{name}' query parameter; no list filter is generated for it.",
                    ctx,
                )

    return result


def validate_enum_fields(config: ApiConfig) -> ValidationResult:
    """Enum fields need values; other types should not declare any."""
    result: ValidationResult = ValidationResult()

    for resource in config.resources:
        for field in resource.fields:
            ctx: Dict[str, Any] = {"resource": resource.name, "field": field.name}

            if field.type == FieldType.ENUM:
                if not field.enum_values:
                    result.add_error(
                        "ENUM_VALUES_MISSING",
                        f"Field '{field.name}' in resource '{resource.name}' "
                        f"must have enum values",
                        ctx,
                    )
                    continue
                dupes: List[str] = sorted(
                    v for v, n in Counter(field.enum_values).items() if n > 1
                )
                if dupes:
                    result.add_warning(
                        "DUPLICATE_ENUM_VALUE",
                        f"Field '{field.name}' in resource '{resource.name}' repeats "
                        f"enum value(s): {', '.join(dupes)}.",
                        ctx,
                    )
            elif field.enum_values:
                result.add_warning(
                    "ENUM_VALUES_IGNORED",
                    f"Field '{field.name}' in resource '{resource.name}' is of type "
                    f"'{field.type}'; its enum values are ignored.",
                    ctx,
                )

    return result


def validate_relations(config: ApiConfig) -> ValidationResult:
    """
    Every relation must be ``resource.field`` and resolve to an existing
    resource and to a declared field on it (or its synthetic ``id``).

    A dangling relation yields exactly one error.
    """
    result: ValidationResult = ValidationResult()

    for resource in config.resources:
        for field in resource.fields:
            if field.relation is None:
                continue
            relation: str = field.relation
            ctx: Dict[str, Any] = {
                "resource": resource.name,
                "field": field.name,
                "relation": relation,
            }

            target: Optional[Tuple[str, str]] = field.relation_target
            if target is None:
                result.add_error(
                    "INVALID_RELATION_FORMAT",
                    f"Invalid relation format '{relation}' in field '{field.name}'",
                    ctx,
                )
                continue

            target_resource_name, target_field_name = target
            target_resource = config.get_resource(target_resource_name)
            if target_resource is None:
                result.add_error(
                    "UNKNOWN_RELATION_RESOURCE",
                    f"Target resource '{target_resource_name}' not found for "
                    f"relation '{relation}'",
                    ctx,
                )
                continue

            if target_field_name == "id":
                target_storage: str = "TEXT"
            else:
                target_field = target_resource.get_field(target_field_name)
                if target_field is None:
                    result.add_error(
                        "UNKNOWN_RELATION_FIELD",
                        f"Target field '{target_field_name}' not found in resource "
                        f"'{target_resource_name}' for relation '{relation}'",
                        ctx,
                    )
                    continue
                target_storage = map_type(target_field.type).storage_type

            if map_type(field.type).storage_type != target_storage:
                result.add_warning(
                    "RELATION_TYPE_MISMATCH",
                    f"Field '{field.name}' in resource '{resource.name}' is stored "
                    f"as {map_type(field.type).storage_type} but references "
                    f"'{relation}' stored as {target_storage}.",
                    ctx,
                )

    return result


def validate_circular_relations(config: ApiConfig) -> ValidationResult:
    """
    Detect relation cycles between resources (self-references excluded).

    Cycles are legal, so they only produce a warning: seed data for such
    tables has to be inserted in more than one step.
    """
    result: ValidationResult = ValidationResult()

    adjacency: Dict[str, List[str]] = {r.name: [] for r in config.resources}
    for resource in config.resources:
        for field in resource.fields:
            target = field.relation_target
            if target is None or target[0] == resource.name:
                continue
            if target[0] in adjacency and target[0] not in adjacency[resource.name]:
                adjacency[resource.name].append(target[0])

    visited: Set[str] = set()
    reported: Set[FrozenSet[str]] = set()

    for start in adjacency:
        if start in visited:
            continue
        # Iterative DFS: (node, index of next neighbour to visit)
        stack: List[Tuple[str, int]] = [(start, 0)]
        path: List[str] = [start]
        visited.add(start)

        while stack:
            node, idx = stack[-1]
            neighbours: List[str] = adjacency[node]
            if idx >= len(neighbours):
                stack.pop()
                path.pop()
                continue
            stack[-1] = (node, idx + 1)
            nxt: str = neighbours[idx]
            if nxt in path:
                cycle: List[str] = path[path.index(nxt):] + [nxt]
                members: FrozenSet[str] = frozenset(cycle)
                if members not in reported:
                    reported.add(members)
                    result.add_warning(
                        "CIRCULAR_RELATION",
                        f"Circular relation chain detected: {' -> '.join(cycle)}.",
                        {"cycle": cycle},
                    )
                continue
            if nxt in visited:
                continue
            visited.add(nxt)
            stack.append((nxt, 0))
            path.append(nxt)

    if not reported:
        logger.debug("No circular relations detected.")
    return result


def validate_indexes(config: ApiConfig) -> ValidationResult:
    """
    Index fields must exist on the owning resource's table, and every
    generated index name must be unique across the whole database.
    """
    result: ValidationResult = ValidationResult()
    # index name -> (resource, fields) of the index that claimed it
    claimed: Dict[str, Tuple[str, Tuple[str, ...]]] = {}

    for resource in config.resources:
        columns: Set[str] = set(resource.field_names)
        columns.add("id")
        columns.update(resource.timestamps.attribute_names)
        seen: Set[Tuple[Tuple[str, ...], bool]] = set()

        for index in resource.indexes:
            for name in index.fields:
                if name not in columns:
                    result.add_error(
                        "UNKNOWN_INDEX_FIELD",
                        f"Index references non-existent field '{name}' in "
                        f"resource '{resource.name}'",
                        {"resource": resource.name, "field": name},
                    )
            key: Tuple[str, ...] = tuple(index.fields)
            if (key, index.unique) in seen:
                result.add_warning(
                    "DUPLICATE_INDEX",
                    f"Resource '{resource.name}' declares the index on "
                    f"({', '.join(key)}) more than once.",
                    {"resource": resource.name, "fields": list(key)},
                )
                continue
            seen.add((key, index.unique))

            generated: str = index_name(resource.table_name, key, unique=index.unique)
            if generated in claimed:
                owner, owner_fields = claimed[generated]
                result.add_error(
                    "INDEX_NAME_CONFLICT",
                    f"Index on ({', '.join(key)}) in resource '{resource.name}' "
                    f"would be named '{generated}', which the index on "
                    f"({', '.join(owner_fields)}) in resource '{owner}' already uses.",
                    {"resource": resource.name, "index": generated},
                )
                continue
            claimed[generated] = (resource.name, key)

    return result


def validate_field_bounds(config: ApiConfig) -> ValidationResult:
    """min/max must be ordered and only apply to string or numeric types."""
    result: ValidationResult = ValidationResult()

    for resource in config.resources:
        for field in resource.fields:
            if field.min_value is None and field.max_value is None:
                continue
            ctx: Dict[str, Any] = {"resource": resource.name, "field": field.name}

            non_finite: List[Any] = [
                bound
                for bound in (field.min_value, field.max_value)
                if bound is not None and not math.isfinite(bound)
            ]
            if non_finite:
                result.add_error(
                    "INVALID_BOUNDS",
                    f"Field '{field.name}' in resource '{resource.name}' needs "
                    f"finite min/max, got {', '.join(str(b) for b in non_finite)}.",
                    ctx,
                )
                continue

            if field.type not in _LENGTH_TYPES and field.type not in _NUMERIC_TYPES:
                result.add_warning(
                    "BOUNDS_IGNORED",
                    f"Field '{field.name}' in resource '{resource.name}' is of type "
                    f"'{field.type}'; min/max are ignored.",
                    ctx,
                )
                continue

            if (
                field.min_value is not None
                and field.max_value is not None
                and field.min_value > field.max_value
            ):
                result.add_error(
                    "INVALID_BOUNDS",
                    f"Field '{field.name}' in resource '{resource.name}' has min "
                    f"({field.min_value}) greater than max ({field.max_value}).",
                    ctx,
                )

            if field.type in _LENGTH_TYPES:
                for bound in (field.min_value, field.max_value):
                    if bound is not None and (bound < 0 or bound != int(bound)):
                        result.add_error(
                            "INVALID_LENGTH_BOUND",
                            f"Field '{field.name}' in resource '{resource.name}' "
                            f"needs non-negative whole-number length bounds, "
                            f"got {bound}.",
                            ctx,
                        )

    return result


def _default_fits(field: FieldSpec) -> bool:
    value: Any = field.default
    if value is None:
        return True
    if field.type in _TEXT_DEFAULT_TYPES:
        return isinstance(value, str)
    if field.type == FieldType.DATE:
        return isinstance(value, str) and bool(_DATE_RE.match(value))
    if field.type == FieldType.UUID:
        if not isinstance(value, str):
            return False
        try:
            uuid.UUID(value)
        except ValueError:
            return False
        return True
    if field.type == FieldType.INTEGER:
        return isinstance(value, int) and not isinstance(value, bool)
    if field.type == FieldType.NUMBER:
        return (
            isinstance(value, (int, float))
            and not isinstance(value, bool)
            and math.isfinite(value)
        )
    if field.type == FieldType.BOOLEAN:
        return isinstance(value, bool)
    if field.type == FieldType.JSON:
        # Only null fits a dict-typed attribute among scalar defaults
        return False
    # enums are checked against their values
    return True


def validate_defaults(config: ApiConfig) -> ValidationResult:
    """Declared defaults must suit the field type (and enum value list)."""
    result: ValidationResult = ValidationResult()

    for resource in config.resources:
        for field in resource.fields:
            if not field.has_default:
                continue
            ctx: Dict[str, Any] = {
                "resource": resource.name,
                "field": field.name,
                "default": field.default,
            }

            if field.type == FieldType.ENUM:
                # Missing values are already reported by validate_enum_fields
                if (
                    field.enum_values
                    and field.default is not None
                    and field.default not in field.enum_values
                ):
                    result.add_error(
                        "INVALID_DEFAULT",
                        f"Default value {field.default!r} of field '{field.name}' in "
                        f"resource '{resource.name}' is not one of its enum values.",
                        ctx,
                    )
                continue

            if not _default_fits(field):
                result.add_error(
                    "INVALID_DEFAULT",
                    f"Default value {field.default!r} of field '{field.name}' in "
                    f"resource '{resource.name}' is not a valid {field.type}.",
                    ctx,
                )

    return result


# ---------------------------------------------------------------------------
# Composite validator
# ---------------------------------------------------------------------------


def validate_semantics(config: ApiConfig) -> ValidationResult:
    """
    Run every semantic validator and merge their results.

    This is the function ``crudgen.parser`` and ``crudgen.router_builder``
    call before any artifact is generated.
    """
    result: ValidationResult = ValidationResult()

    validators: List[Callable[[ApiConfig], ValidationResult]] = [
        validate_resource_names,
        validate_field_names,
        validate_enum_fields,
        validate_relations,
        validate_circular_relations,
        validate_indexes,
        validate_field_bounds,
        validate_defaults,
    ]

    for validator_fn in validators:
        logger.debug("Running validator: %s", validator_fn.__name__)
        result.merge(validator_fn(config))

    if result.has_errors:
        logger.error(
            "Validation FAILED with %d error(s).\n%s",
            result.error_count,
            result.format_report(),
        )
    elif result.has_warnings:
        logger.warning("Validation passed with warnings.\n%s", result.format_report())
    else:
        logger.info("Validation PASSED. %s", result.summary())

    return result


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ValidationIssue",
    "ValidationResult",
    "is_filter_field",
    "validate_shape",
    "validate_resource_names",
    "validate_field_names",
    "validate_enum_fields",
    "validate_relations",
    "validate_circular_relations",
    "validate_indexes",
    "validate_field_bounds",
    "validate_defaults",
    "validate_semantics",
]

logger.debug("crudgen.validators loaded: %d public symbols.", len(__all__))
