# File: crudgen/schema_generator.py
"""
CrudGen - Validation Schema Generator
======================================
Renders one Pydantic V2 module per resource with four rule sets:

- ``<Name>``        full record (synthetic ``id`` + fields + timestamps)
- ``Create<Name>``  creation body (server-managed names removed)
- ``Update<Name>``  update body (every attribute optional)
- ``<Name>Query``   list query (pagination, ordering, search, filters)

Every attribute goes through ``crudgen.type_mapping.map_field`` so that the
rules agree with the DDL and the OpenAPI document.

All string assembly uses the ``List[str]`` + ``"\\n".join()`` pattern and
the generator keeps no state between calls.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Set

from crudgen.models import (
    ApiConfig,
    FieldSpec,
    FieldType,
    ResourceSpec,
    SchemaArtifact,
)
from crudgen.type_mapping import TypeMapping, map_field
from crudgen.utils import (
    build_import_block,
    merge_import_dicts,
    python_literal,
    resource_to_class_name,
    resource_to_module_name,
)
from crudgen.validators import is_filter_field

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.schema_generator")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_INDENT: str = "    "

DEFAULT_PAGE_SIZE: int = 10
MAX_PAGE_SIZE: int = 100

QUERY_PARAMETERS: List[str] = ["limit", "offset", "orderBy", "orderDirection", "search"]


# ---------------------------------------------------------------------------
# Naming helpers shared with the endpoint and router builders
# ---------------------------------------------------------------------------


def schema_names(resource_name: str) -> Dict[str, str]:
    """Names of the four rule sets generated for *resource_name*."""
    base: str = resource_to_class_name(resource_name)
    return {
        "record": base,
        "create": f"Create{base}",
        "update": f"Update{base}",
        "query": f"{base}Query",
    }


def schema_module_path(resource_name: str) -> str:
    return f"schemas/{resource_to_module_name(resource_name)}.py"


def query_filters(resource: ResourceSpec) -> List[FieldSpec]:
    """Fields that get an optional filter attribute on the query model."""
    seen: Set[str] = set()
    filters: List[FieldSpec] = []
    for field in resource.fields:
        if field.name in QUERY_PARAMETERS or field.name in seen:
            continue
        if is_filter_field(field):
            filters.append(field)
            seen.add(field.name)
    return filters


# ---------------------------------------------------------------------------
# Generator
# ---------------------------------------------------------------------------


class SchemaGenerator:
    """
    Stateless schema renderer.

    ``generate(resource)`` returns a ``SchemaArtifact`` whose content is a
    self-contained, importable Python module.
    """

    def generate(self, resource: ResourceSpec) -> SchemaArtifact:
        names: Dict[str, str] = schema_names(resource.name)
        mappings: Dict[str, TypeMapping] = {
            field.name: map_field(field) for field in resource.fields
        }

        imports: Dict[str, Set[str]] = {
            "pydantic": {"BaseModel", "ConfigDict", "Field"},
            "typing": {"Literal", "Optional"},
            "uuid": {"UUID"},
        }
        if resource.timestamps.attribute_names:
            imports.setdefault("datetime", set()).add("datetime")
        for mapping in mappings.values():
            imports = merge_import_dicts(imports, mapping.import_dict())

        lines: List[str] = []

        # --- File header ---
        lines.append('"""')
        lines.append(f"Validation schemas for resource: {resource.name}")
        lines.append("Auto-generated by CrudGen. Do not edit.")
        lines.append('"""')
        lines.append("")
        lines.append("from __future__ import annotations")
        lines.append("")
        lines.append(build_import_block(imports))
        lines.append("")
        lines.append("")

        lines.extend(self._record_model(resource, names["record"], mappings))
        lines.append("")
        lines.append("")
        lines.extend(self._create_model(resource, names["create"], mappings))
        lines.append("")
        lines.append("")
        lines.extend(self._update_model(resource, names["update"], mappings))
        lines.append("")
        lines.append("")
        lines.extend(self._query_model(resource, names["query"], mappings))
        lines.append("")
        lines.append("")

        exports: List[str] = [
            names["record"], names["create"], names["update"], names["query"]
        ]
        lines.append("__all__ = [")
        for export in exports:
            lines.append(f"{_INDENT}{python_literal(export)},")
        lines.append("]")
        lines.append("")

        content: str = "\n".join(lines)
        logger.debug(
            "Generated schemas for '%s': %d lines.",
            resource.name,
            content.count("\n") + 1,
        )
        return SchemaArtifact(
            name=resource_to_module_name(resource.name),
            content=content,
            path=schema_module_path(resource.name),
            resource=resource.name,
            type_exports=exports,
        )

    # -- Rule sets ----------------------------------------------------------

    def _record_model(
        self,
        resource: ResourceSpec,
        class_name: str,
        mappings: Dict[str, TypeMapping],
    ) -> List[str]:
        lines: List[str] = [f"class {class_name}(BaseModel):"]
        lines.append(f'{_INDENT}"""Full record of the {resource.name!r} resource."""')
        lines.append("")
        lines.append(
            f"{_INDENT}model_config = ConfigDict(from_attributes=True, populate_by_name=True)"
        )
        lines.append("")
        lines.append(f"{_INDENT}id: UUID")

        timestamps: List[str] = resource.timestamps.attribute_names
        for field in resource.fields:
            # The synthetic attributes below take precedence
            if field.name == "id" or field.name in timestamps:
                continue
            lines.append(self._attribute(field, mappings[field.name]))

        for name in timestamps:
            lines.append(f"{_INDENT}{name}: datetime")
        return lines

    def _create_model(
        self,
        resource: ResourceSpec,
        class_name: str,
        mappings: Dict[str, TypeMapping],
    ) -> List[str]:
        lines: List[str] = [f"class {class_name}(BaseModel):"]
        lines.append(
            f'{_INDENT}"""Request body for creating a {resource.name!r} record."""'
        )
        lines.append("")
        lines.append(f'{_INDENT}model_config = ConfigDict(extra="forbid")')
        lines.append("")

        fields: List[FieldSpec] = resource.client_fields
        if not fields:
            lines.append(f"{_INDENT}pass")
        for field in fields:
            lines.append(self._attribute(field, mappings[field.name]))
        return lines

    def _update_model(
        self,
        resource: ResourceSpec,
        class_name: str,
        mappings: Dict[str, TypeMapping],
    ) -> List[str]:
        lines: List[str] = [f"class {class_name}(BaseModel):"]
        lines.append(
            f'{_INDENT}"""Request body for updating a {resource.name!r} record. '
            f'All attributes optional."""'
        )
        lines.append("")
        lines.append(f'{_INDENT}model_config = ConfigDict(extra="forbid")')
        lines.append("")

        fields: List[FieldSpec] = resource.client_fields
        if not fields:
            lines.append(f"{_INDENT}pass")
        for field in fields:
            lines.append(
                self._attribute(field, mappings[field.name], force_optional=True)
            )
        return lines

    def _query_model(
        self,
        resource: ResourceSpec,
        class_name: str,
        mappings: Dict[str, TypeMapping],
    ) -> List[str]:
        lines: List[str] = [f"class {class_name}(BaseModel):"]
        lines.append(
            f'{_INDENT}"""Query parameters for listing {resource.name!r} records."""'
        )
        lines.append("")
        lines.append(
            f"{_INDENT}limit: int = Field(default={DEFAULT_PAGE_SIZE}, ge=1, le={MAX_PAGE_SIZE})"
        )
        lines.append(f"{_INDENT}offset: int = Field(default=0, ge=0)")
        lines.append(f"{_INDENT}orderBy: Optional[str] = None")
        lines.append(f'{_INDENT}orderDirection: Literal["asc", "desc"] = "asc"')
        lines.append(f"{_INDENT}search: Optional[str] = None")

        for field in query_filters(resource):
            if field.type == FieldType.BOOLEAN:
                annotation: str = "bool"
            elif field.type == FieldType.ENUM:
                annotation = mappings[field.name].annotation
            else:
                annotation = "str"
            lines.append(f"{_INDENT}{field.name}: Optional[{annotation}] = None")
        return lines

    # -- Attribute rendering ------------------------------------------------

    def _attribute(
        self,
        field: FieldSpec,
        mapping: TypeMapping,
        *,
        force_optional: bool = False,
    ) -> str:
        """
        Render one model attribute.

        Required attributes carry no default (a declared default is a storage
        default only). Optional attributes default to the declared default,
        or ``None``.
        """
        optional: bool = force_optional or not field.required
        annotation: str = mapping.annotation
        extra: List[str] = []
        if field.description:
            extra.append(f"description={python_literal(field.description)}")

        if not optional:
            args: str = ", ".join(
                part for part in [mapping.field_arguments(), *extra] if part
            )
            if args:
                return f"{_INDENT}{field.name}: {annotation} = Field({args})"
            return f"{_INDENT}{field.name}: {annotation}"

        default: Any = None
        if field.has_default and not force_optional:
            default = field.default
        args = ", ".join(
            part
            for part in [mapping.field_arguments(default, with_default=True), *extra]
            if part
        )
        if mapping.constraints or extra:
            return f"{_INDENT}{field.name}: Optional[{annotation}] = Field({args})"
        return f"{_INDENT}{field.name}: Optional[{annotation}] = {python_literal(default)}"


# ---------------------------------------------------------------------------
# Convenience entry point
# ---------------------------------------------------------------------------


def generate_schemas(config: ApiConfig) -> List[SchemaArtifact]:
    """One schema artifact per resource, in declaration order."""
    generator: SchemaGenerator = SchemaGenerator()
    artifacts: List[SchemaArtifact] = [generator.generate(r) for r in config.resources]
    logger.info("Generated %d schema module(s).", len(artifacts))
    return artifacts


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    "QUERY_PARAMETERS",
    "SchemaGenerator",
    "schema_names",
    "schema_module_path",
    "query_filters",
    "generate_schemas",
]

logger.debug("crudgen.schema_generator loaded: %d public symbols.", len(__all__))
