# File: crudgen/endpoints.py
"""
CrudGen - Endpoint Generator
=============================
Produces five request handlers per resource (create, list, get, update,
delete). Each is returned both as a structured ``EndpointSpec`` and as a
rendered FastAPI handler module.

The rendered handlers persist nothing themselves. They delegate to a
host-supplied ``store`` module next to the generated package, which must
provide ``Store`` and the ``get_store`` dependency::

    class Store(Protocol):
        async def create(self, table, record) -> dict: ...
        async def list(self, table, *, filters, search, search_fields,
                       order_by, order_direction, limit, offset)
            -> tuple[list[dict], int]: ...
        async def get(self, table, key, value) -> dict | None: ...
        async def update(self, table, key, value, changes) -> dict | None: ...
        async def delete(self, table, key, value) -> bool: ...
"""

from __future__ import annotations

import logging
from typing import Dict, List, Set

from crudgen.models import (
    ApiConfig,
    EndpointArtifact,
    EndpointSpec,
    FieldType,
    ResourceSpec,
)
from crudgen.schema_generator import query_filters, schema_names
from crudgen.utils import (
    build_import_block,
    format_tuple_literal,
    resource_to_class_name,
    resource_to_module_name,
    resource_to_route_prefix,
    to_plural,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.endpoints")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_INDENT: str = "    "
_DOUBLE_INDENT: str = "        "
_TRIPLE_INDENT: str = "            "

PRIMARY_KEY: str = "id"

OPERATIONS: List[str] = ["create", "list", "get", "update", "delete"]

_ORDERABLE_TYPES: List[str] = [FieldType.DATETIME.value, FieldType.DATE.value]


# ---------------------------------------------------------------------------
# Generator
# ---------------------------------------------------------------------------


class EndpointGenerator:
    """
    Stateless endpoint renderer.

    ``generate(resource)`` returns the five ``EndpointArtifact``s for a
    resource, always in the order create, list, get, update, delete.
    """

    def generate(self, resource: ResourceSpec) -> List[EndpointArtifact]:
        artifacts: List[EndpointArtifact] = [
            self._render(self._describe(resource, op), resource) for op in OPERATIONS
        ]
        logger.debug(
            "Generated %d endpoints for '%s'.", len(artifacts), resource.name
        )
        return artifacts

    # -- Descriptors --------------------------------------------------------

    def _describe(self, resource: ResourceSpec, operation: str) -> EndpointSpec:
        names: Dict[str, str] = schema_names(resource.name)
        snake: str = resource_to_module_name(resource.name)
        collection: str = resource_to_route_prefix(resource.name)
        item: str = f"{collection}/{{{PRIMARY_KEY}}}"

        common: Dict[str, object] = {
            "operation": operation,
            "resource": resource.name,
            "table_name": resource.table_name,
            "primary_key": PRIMARY_KEY,
            "response_schema": names["record"],
        }

        if operation == "create":
            return EndpointSpec(
                method="POST",
                path=collection,
                status_code=201,
                handler_name=f"create_{snake}",
                module_name=f"create_{snake}",
                request_schema=names["create"],
                sets_created_at=resource.timestamps.created_at,
                sets_updated_at=resource.timestamps.updated_at,
                **common,
            )
        if operation == "list":
            return EndpointSpec(
                method="GET",
                path=collection,
                handler_name=f"list_{to_plural(snake)}",
                module_name=f"list_{to_plural(snake)}",
                request_schema=names["query"],
                filter_fields=[
                    f.name
                    for f in query_filters(resource)
                    if f.type in (FieldType.BOOLEAN, FieldType.ENUM)
                ],
                search_fields=[f.name for f in resource.fields if f.searchable],
                order_by_fields=[
                    f.name for f in resource.fields if f.type in _ORDERABLE_TYPES
                ],
                **common,
            )
        if operation == "get":
            return EndpointSpec(
                method="GET",
                path=item,
                handler_name=f"get_{snake}",
                module_name=f"get_{snake}",
                **common,
            )
        if operation == "update":
            return EndpointSpec(
                method="PUT",
                path=item,
                handler_name=f"update_{snake}",
                module_name=f"update_{snake}",
                request_schema=names["update"],
                sets_updated_at=resource.timestamps.updated_at,
                **common,
            )
        return EndpointSpec(
            method="DELETE",
            path=item,
            status_code=204,
            handler_name=f"delete_{snake}",
            module_name=f"delete_{snake}",
            response_schema=None,
            **{k: v for k, v in common.items() if k != "response_schema"},
        )

    # -- Rendering ----------------------------------------------------------

    def _render(self, spec: EndpointSpec, resource: ResourceSpec) -> EndpointArtifact:
        class_name: str = resource_to_class_name(resource.name)
        schema_module: str = f"..schemas.{resource_to_module_name(resource.name)}"

        imports: Dict[str, Set[str]] = {
            "fastapi": {"Depends"},
            "..store": {"Store", "get_store"},
        }
        schema_imports: Set[str] = {
            s for s in (spec.request_schema, spec.response_schema) if s
        }
        if schema_imports:
            imports[schema_module] = schema_imports
        if spec.operation in ("create", "update") and (
            spec.sets_created_at or spec.sets_updated_at
        ):
            imports["datetime"] = {"datetime", "timezone"}
        if spec.operation in ("create", "list", "update"):
            imports["typing"] = {"Any", "Dict"}
        if spec.operation == "create":
            imports["uuid"] = {"uuid4"}
        if spec.operation in ("get", "update", "delete"):
            imports["fastapi"].update({"HTTPException", "Path"})

        builders = {
            "create": self._gen_create_endpoint,
            "list": self._gen_list_endpoint,
            "get": self._gen_get_endpoint,
            "update": self._gen_update_endpoint,
            "delete": self._gen_delete_endpoint,
        }

        import_block: str = _import_block(imports)
        lines: List[str] = []
        lines.append('"""')
        lines.append(f"{_artifact_name(spec, class_name)} endpoint: {spec.method} {spec.path}")
        lines.append("Auto-generated by CrudGen. Do not edit.")
        lines.append('"""')
        lines.append("")
        lines.append("from __future__ import annotations")
        lines.append("")
        lines.append(import_block)
        lines.append("")
        lines.append(f'TABLE_NAME = "{spec.table_name}"')
        lines.append(f'PRIMARY_KEY = "{spec.primary_key}"')
        lines.extend(builders[spec.operation](spec, resource))
        lines.append("")

        content: str = "\n".join(lines)
        spec = spec.model_copy(update={"imports": import_block.splitlines()})
        return EndpointArtifact(
            name=_artifact_name(spec, class_name),
            content=content,
            path=f"endpoints/{spec.module_name}.py",
            spec=spec,
        )

    def _gen_create_endpoint(
        self, spec: EndpointSpec, resource: ResourceSpec
    ) -> List[str]:
        """POST collection: validate, stamp id and timestamps, store."""
        lines: List[str] = ["", ""]
        lines.append(f"async def {spec.handler_name}(")
        lines.append(f"{_INDENT}payload: {spec.request_schema},")
        lines.append(f"{_INDENT}store: Store = Depends(get_store),")
        lines.append(f") -> {spec.response_schema}:")
        lines.append(f'{_INDENT}"""Create a new {resource.name} record."""')
        lines.append(
            f"{_INDENT}record: Dict[str, Any] = "
            f'payload.model_dump(mode="json", exclude_unset=True)'
        )
        lines.append(f"{_INDENT}record[PRIMARY_KEY] = str(uuid4())")
        if spec.sets_created_at or spec.sets_updated_at:
            lines.append(f"{_INDENT}now = datetime.now(timezone.utc).isoformat()")
        if spec.sets_created_at:
            lines.append(f'{_INDENT}record["createdAt"] = now')
        if spec.sets_updated_at:
            lines.append(f'{_INDENT}record["updatedAt"] = now')
        lines.append(f"{_INDENT}created = await store.create(TABLE_NAME, record)")
        lines.append(f"{_INDENT}return {spec.response_schema}.model_validate(created)")
        return lines

    def _gen_list_endpoint(
        self, spec: EndpointSpec, resource: ResourceSpec
    ) -> List[str]:
        """GET collection: paginate, filter, search and order."""
        filters: List[str] = [f.name for f in query_filters(resource)]
        lines: List[str] = []
        lines.append(f"FILTER_FIELDS = {format_tuple_literal(filters)}")
        lines.append(f"SEARCH_FIELDS = {format_tuple_literal(spec.search_fields)}")
        lines.append(f"ORDER_BY_FIELDS = {format_tuple_literal(spec.order_by_fields)}")
        lines.append("")
        lines.append("")
        lines.append(f"async def {spec.handler_name}(")
        lines.append(f"{_INDENT}query: {spec.request_schema} = Depends(),")
        lines.append(f"{_INDENT}store: Store = Depends(get_store),")
        lines.append(") -> Dict[str, Any]:")
        lines.append(
            f'{_INDENT}"""List {resource.name} records with pagination, filters and search."""'
        )
        lines.append(f"{_INDENT}filters: Dict[str, Any] = {{")
        lines.append(f"{_DOUBLE_INDENT}name: getattr(query, name)")
        lines.append(f"{_DOUBLE_INDENT}for name in FILTER_FIELDS")
        lines.append(f"{_DOUBLE_INDENT}if getattr(query, name) is not None")
        lines.append(f"{_INDENT}}}")
        lines.append(
            f"{_INDENT}order_by = query.orderBy if query.orderBy in ORDER_BY_FIELDS else None"
        )
        lines.append(f"{_INDENT}rows, total = await store.list(")
        lines.append(f"{_DOUBLE_INDENT}TABLE_NAME,")
        lines.append(f"{_DOUBLE_INDENT}filters=filters,")
        lines.append(f"{_DOUBLE_INDENT}search=query.search,")
        lines.append(f"{_DOUBLE_INDENT}search_fields=SEARCH_FIELDS,")
        lines.append(f"{_DOUBLE_INDENT}order_by=order_by,")
        lines.append(f"{_DOUBLE_INDENT}order_direction=query.orderDirection,")
        lines.append(f"{_DOUBLE_INDENT}limit=query.limit,")
        lines.append(f"{_DOUBLE_INDENT}offset=query.offset,")
        lines.append(f"{_INDENT})")
        lines.append(f"{_INDENT}return {{")
        lines.append(
            f'{_DOUBLE_INDENT}"data": [{spec.response_schema}.model_validate(row) for row in rows],'
        )
        lines.append(f'{_DOUBLE_INDENT}"total": total,')
        lines.append(f'{_DOUBLE_INDENT}"limit": query.limit,')
        lines.append(f'{_DOUBLE_INDENT}"offset": query.offset,')
        lines.append(f"{_INDENT}}}")
        return lines

    def _gen_get_endpoint(
        self, spec: EndpointSpec, resource: ResourceSpec
    ) -> List[str]:
        """GET item by primary key."""
        lines: List[str] = ["", ""]
        lines.append(f"async def {spec.handler_name}(")
        lines.append(f"{_INDENT}{spec.primary_key}: str = Path(...),")
        lines.append(f"{_INDENT}store: Store = Depends(get_store),")
        lines.append(f") -> {spec.response_schema}:")
        lines.append(f'{_INDENT}"""Retrieve a single {resource.name} record."""')
        lines.append(
            f"{_INDENT}record = await store.get(TABLE_NAME, PRIMARY_KEY, {spec.primary_key})"
        )
        lines.extend(_not_found(resource, "record is None"))
        lines.append(f"{_INDENT}return {spec.response_schema}.model_validate(record)")
        return lines

    def _gen_update_endpoint(
        self, spec: EndpointSpec, resource: ResourceSpec
    ) -> List[str]:
        """PUT item: validate the partial body, stamp updatedAt, store."""
        lines: List[str] = ["", ""]
        lines.append(f"async def {spec.handler_name}(")
        lines.append(f"{_INDENT}payload: {spec.request_schema},")
        lines.append(f"{_INDENT}{spec.primary_key}: str = Path(...),")
        lines.append(f"{_INDENT}store: Store = Depends(get_store),")
        lines.append(f") -> {spec.response_schema}:")
        lines.append(f'{_INDENT}"""Update an existing {resource.name} record."""')
        lines.append(
            f"{_INDENT}changes: Dict[str, Any] = "
            f'payload.model_dump(mode="json", exclude_unset=True)'
        )
        if spec.sets_updated_at:
            lines.append(
                f'{_INDENT}changes["updatedAt"] = datetime.now(timezone.utc).isoformat()'
            )
        lines.append(
            f"{_INDENT}updated = await store.update("
            f"TABLE_NAME, PRIMARY_KEY, {spec.primary_key}, changes)"
        )
        lines.extend(_not_found(resource, "updated is None"))
        lines.append(f"{_INDENT}return {spec.response_schema}.model_validate(updated)")
        return lines

    def _gen_delete_endpoint(
        self, spec: EndpointSpec, resource: ResourceSpec
    ) -> List[str]:
        """DELETE item; 204 on success."""
        lines: List[str] = ["", ""]
        lines.append(f"async def {spec.handler_name}(")
        lines.append(f"{_INDENT}{spec.primary_key}: str = Path(...),")
        lines.append(f"{_INDENT}store: Store = Depends(get_store),")
        lines.append(") -> None:")
        lines.append(f'{_INDENT}"""Delete a {resource.name} record."""')
        lines.append(
            f"{_INDENT}deleted = await store.delete(TABLE_NAME, PRIMARY_KEY, {spec.primary_key})"
        )
        lines.extend(_not_found(resource, "not deleted"))
        return lines


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _artifact_name(spec: EndpointSpec, class_name: str) -> str:
    """``CreatePost``, ``ListPosts``, ``GetPost``, ``UpdatePost``, ``DeletePost``."""
    if spec.operation == "list":
        return f"List{to_plural(class_name)}"
    return f"{spec.operation.capitalize()}{class_name}"


def _not_found(resource: ResourceSpec, condition: str) -> List[str]:
    return [
        f"{_INDENT}if {condition}:",
        f"{_DOUBLE_INDENT}raise HTTPException(",
        f'{_TRIPLE_INDENT}status_code=404, detail="{resource.name} not found."',
        f"{_DOUBLE_INDENT})",
    ]


def _import_block(imports: Dict[str, Set[str]]) -> str:
    """Absolute imports first, then the package-relative ones."""
    absolute: Dict[str, Set[str]] = {
        k: v for k, v in imports.items() if not k.startswith(".")
    }
    relative: Dict[str, Set[str]] = {
        k: v for k, v in imports.items() if k.startswith(".")
    }
    blocks: List[str] = [build_import_block(absolute)]
    if relative:
        blocks.append(build_import_block(relative))
    return "\n\n".join(blocks)


# ---------------------------------------------------------------------------
# Convenience entry point
# ---------------------------------------------------------------------------


def generate_endpoints(config: ApiConfig) -> List[EndpointArtifact]:
    """Five endpoint artifacts per resource, resources in declaration order."""
    generator: EndpointGenerator = EndpointGenerator()
    artifacts: List[EndpointArtifact] = []
    for resource in config.resources:
        artifacts.extend(generator.generate(resource))
    logger.info("Generated %d endpoint(s).", len(artifacts))
    return artifacts


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "PRIMARY_KEY",
    "OPERATIONS",
    "EndpointGenerator",
    "generate_endpoints",
]

logger.debug("crudgen.endpoints loaded: %d public symbols.", len(__all__))
