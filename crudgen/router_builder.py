# File: crudgen/router_builder.py
"""
CrudGen - Router & Assembly Builder (Orchestrator)
===================================================
Connects every phase together::

    ParseResult / ApiConfig → Validation → Schemas + Migrations + Endpoints
        → Route registration + Combined types + OpenAPI → GenerationResult

``build`` is the single entry point external collaborators call. It fails
fast with ``InvalidConfigError`` when the configuration still carries
errors, then runs the generators and assembles the cross-resource
artifacts:

- ``router.py``    FastAPI ``APIRouter`` registering every handler, plus an
                   application factory
- ``types.py``     re-exports of every rule set, a ``Resources`` mapping and
                   the database constants
- ``openapi.json`` OpenAPI 3.0 document derived from the same type table as
                   the validation rules (optional)
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Set, Union

from crudgen.endpoints import generate_endpoints
from crudgen.errors import InvalidConfigError
from crudgen.migrations import MigrationSequence, generate_migrations
from crudgen.models import (
    ApiConfig,
    EndpointArtifact,
    FieldType,
    GeneratedArtifact,
    GenerationResult,
    MigrationArtifact,
    ResourceSpec,
    SchemaArtifact,
)
from crudgen.parser import ParseResult
from crudgen.schema_generator import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    generate_schemas,
    query_filters,
    schema_names,
)
from crudgen.type_mapping import map_field
from crudgen.utils import (
    Timer,
    build_import_block,
    has_content_changed,
    python_literal,
    resource_to_module_name,
    resource_to_route_prefix,
    sha256_hex,
)
from crudgen.validators import ValidationResult, validate_semantics

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.router_builder")

_INDENT: str = "    "

OPENAPI_VERSION: str = "3.0.0"
DEFAULT_API_VERSION: str = "1.0.0"


# ---------------------------------------------------------------------------
# Route registration
# ---------------------------------------------------------------------------


def build_router(config: ApiConfig, endpoints: List[EndpointArtifact]) -> GeneratedArtifact:
    """
    Render ``router.py``: one ``add_api_route`` per endpoint, grouped by
    resource, and a ``create_app`` factory.
    """
    imports: Dict[str, Set[str]] = {"fastapi": {"APIRouter", "FastAPI"}}
    relative: Dict[str, Set[str]] = {}
    for endpoint in endpoints:
        relative.setdefault(f".endpoints.{endpoint.spec.module_name}", set()).add(
            endpoint.spec.handler_name
        )

    lines: List[str] = []
    lines.append('"""')
    lines.append(f"Route registration for API: {config.name}")
    lines.append("Auto-generated by CrudGen. Do not edit.")
    lines.append('"""')
    lines.append("")
    lines.append("from __future__ import annotations")
    lines.append("")
    lines.append(build_import_block(imports))
    lines.append("")
    lines.append(build_import_block(relative))
    lines.append("")
    lines.append("router = APIRouter()")

    current: Optional[str] = None
    for endpoint in endpoints:
        spec = endpoint.spec
        if spec.resource != current:
            current = spec.resource
            lines.append("")
            lines.append(f"# {current}")
        args: List[str] = [
            python_literal(spec.path),
            spec.handler_name,
            f"methods=[{python_literal(spec.method)}]",
        ]
        if spec.status_code != 200:
            args.append(f"status_code={spec.status_code}")
        args.append(f"tags=[{python_literal(spec.resource)}]")
        lines.append(f"router.add_api_route({', '.join(args)})")

    lines.append("")
    lines.append("")
    lines.append("def create_app() -> FastAPI:")
    lines.append(f'{_INDENT}"""Build the application with every generated route."""')
    lines.append(f"{_INDENT}app = FastAPI(")
    lines.append(f"{_INDENT}{_INDENT}title={python_literal(config.name)},")
    lines.append(
        f"{_INDENT}{_INDENT}version={python_literal(config.version or DEFAULT_API_VERSION)},"
    )
    if config.description:
        lines.append(
            f"{_INDENT}{_INDENT}description={python_literal(config.description)},"
        )
    lines.append(f"{_INDENT})")
    lines.append(f"{_INDENT}app.include_router(router)")
    lines.append(f"{_INDENT}return app")
    lines.append("")

    content: str = "\n".join(lines)
    logger.debug("Generated router with %d route(s).", len(endpoints))
    return GeneratedArtifact(name="router", content=content, path="router.py")


# ---------------------------------------------------------------------------
# Combined types
# ---------------------------------------------------------------------------


def build_types(config: ApiConfig, schemas: List[SchemaArtifact]) -> GeneratedArtifact:
    """Render ``types.py`` re-exporting every resource's rule sets."""
    lines: List[str] = []
    lines.append('"""')
    lines.append(f"Combined type exports for API: {config.name}")
    lines.append("Auto-generated by CrudGen. Do not edit.")
    lines.append('"""')
    lines.append("")
    lines.append("from __future__ import annotations")
    lines.append("")
    lines.append("from typing import TypedDict")
    lines.append("")

    exports: List[str] = []
    for schema in schemas:
        module: str = f".schemas.{resource_to_module_name(schema.resource)}"
        lines.append(f"from {module} import {', '.join(sorted(schema.type_exports))}")
        exports.extend(schema.type_exports)

    lines.append("")
    lines.append(f"DATABASE_NAME = {python_literal(config.database_name)}")
    lines.append(f"DATABASE_BINDING = {python_literal(config.database_binding)}")
    lines.append("")
    lines.append("")
    lines.append("class Resources(TypedDict):")
    lines.append(f'{_INDENT}"""Record type of every resource, keyed by resource name."""')
    lines.append("")
    for resource in config.resources:
        lines.append(f"{_INDENT}{resource.name}: {schema_names(resource.name)['record']}")
    lines.append("")
    lines.append("")
    lines.append("__all__ = [")
    for name in ["DATABASE_NAME", "DATABASE_BINDING", "Resources", *exports]:
        lines.append(f"{_INDENT}{python_literal(name)},")
    lines.append("]")
    lines.append("")

    return GeneratedArtifact(name="types", content="\n".join(lines), path="types.py")


# ---------------------------------------------------------------------------
# OpenAPI document
# ---------------------------------------------------------------------------


def _ref(name: str) -> Dict[str, str]:
    return {"$ref": f"#/components/schemas/{name}"}


def _component_schemas(resource: ResourceSpec) -> Dict[str, Any]:
    names: Dict[str, str] = schema_names(resource.name)
    timestamps: List[str] = resource.timestamps.attribute_names

    record_props: Dict[str, Any] = {"id": {"type": "string", "format": "uuid"}}
    record_required: List[str] = ["id"]
    for field in resource.fields:
        if field.name == "id" or field.name in timestamps:
            continue
        record_props[field.name] = map_field(field).api_schema
        if field.required:
            record_required.append(field.name)
    for name in timestamps:
        record_props[name] = {"type": "string", "format": "date-time"}
        record_required.append(name)

    create_props: Dict[str, Any] = {
        f.name: map_field(f).api_schema for f in resource.client_fields
    }
    create_required: List[str] = [f.name for f in resource.client_fields if f.required]

    record: Dict[str, Any] = {
        "type": "object",
        "properties": record_props,
        "required": record_required,
    }
    if resource.description:
        record["description"] = resource.description
    create: Dict[str, Any] = {"type": "object", "properties": create_props}
    if create_required:
        create["required"] = create_required
    update: Dict[str, Any] = {"type": "object", "properties": dict(create_props)}

    return {names["record"]: record, names["create"]: create, names["update"]: update}


def _list_parameters(resource: ResourceSpec) -> List[Dict[str, Any]]:
    params: List[Dict[str, Any]] = [
        {
            "name": "limit",
            "in": "query",
            "schema": {
                "type": "integer",
                "minimum": 1,
                "maximum": MAX_PAGE_SIZE,
                "default": DEFAULT_PAGE_SIZE,
            },
        },
        {
            "name": "offset",
            "in": "query",
            "schema": {"type": "integer", "minimum": 0, "default": 0},
        },
        {"name": "orderBy", "in": "query", "schema": {"type": "string"}},
        {
            "name": "orderDirection",
            "in": "query",
            "schema": {"type": "string", "enum": ["asc", "desc"], "default": "asc"},
        },
        {"name": "search", "in": "query", "schema": {"type": "string"}},
    ]
    for field in query_filters(resource):
        if field.type == FieldType.BOOLEAN:
            schema: Dict[str, Any] = {"type": "boolean"}
        elif field.type == FieldType.ENUM:
            schema = {"type": "string", "enum": list(field.enum_values or [])}
        else:
            schema = {"type": "string"}
        params.append({"name": field.name, "in": "query", "schema": schema})
    return params


def _paths(resource: ResourceSpec) -> Dict[str, Any]:
    names: Dict[str, str] = schema_names(resource.name)
    collection: str = resource_to_route_prefix(resource.name)
    tags: List[str] = [resource.name]
    id_param: Dict[str, Any] = {
        "name": "id",
        "in": "path",
        "required": True,
        "schema": {"type": "string", "format": "uuid"},
    }
    not_found: Dict[str, Any] = {"description": f"{resource.name} not found"}
    invalid: Dict[str, Any] = {"description": "Validation error"}

    def body(name: str) -> Dict[str, Any]:
        return {
            "required": True,
            "content": {"application/json": {"schema": _ref(name)}},
        }

    def record(description: str) -> Dict[str, Any]:
        return {
            "description": description,
            "content": {"application/json": {"schema": _ref(names["record"])}},
        }

    return {
        collection: {
            "get": {
                "tags": tags,
                "summary": f"List {resource.name} records",
                "parameters": _list_parameters(resource),
                "responses": {
                    "200": {
                        "description": "A page of records",
                        "content": {
                            "application/json": {
                                "schema": {
                                    "type": "object",
                                    "properties": {
                                        "data": {
                                            "type": "array",
                                            "items": _ref(names["record"]),
                                        },
                                        "total": {"type": "integer"},
                                        "limit": {"type": "integer"},
                                        "offset": {"type": "integer"},
                                    },
                                }
                            }
                        },
                    }
                },
            },
            "post": {
                "tags": tags,
                "summary": f"Create a {resource.name}",
                "requestBody": body(names["create"]),
                "responses": {"201": record("Created"), "422": invalid},
            },
        },
        f"{collection}/{{id}}": {
            "get": {
                "tags": tags,
                "summary": f"Get a {resource.name} by id",
                "parameters": [id_param],
                "responses": {"200": record("The record"), "404": not_found},
            },
            "put": {
                "tags": tags,
                "summary": f"Update a {resource.name}",
                "parameters": [id_param],
                "requestBody": body(names["update"]),
                "responses": {
                    "200": record("Updated"),
                    "404": not_found,
                    "422": invalid,
                },
            },
            "delete": {
                "tags": tags,
                "summary": f"Delete a {resource.name}",
                "parameters": [id_param],
                "responses": {"204": {"description": "Deleted"}, "404": not_found},
            },
        },
    }


def build_openapi_document(
    config: ApiConfig, *, server_url: Optional[str] = None
) -> Dict[str, Any]:
    """The OpenAPI 3.0 description of the generated API, as a dict."""
    paths: Dict[str, Any] = {}
    components: Dict[str, Any] = {}
    for resource in config.resources:
        paths.update(_paths(resource))
        components.update(_component_schemas(resource))

    document: Dict[str, Any] = {
        "openapi": OPENAPI_VERSION,
        "info": {
            "title": config.name,
            "version": config.version or DEFAULT_API_VERSION,
            "description": config.description or f"CRUD API for {config.name}",
        },
    }
    if server_url:
        document["servers"] = [{"url": server_url}]
    document["paths"] = paths
    document["components"] = {"schemas": components}
    return document


def build_openapi(
    config: ApiConfig, *, server_url: Optional[str] = None
) -> GeneratedArtifact:
    content: str = json.dumps(
        build_openapi_document(config, server_url=server_url), indent=2
    ) + "\n"
    return GeneratedArtifact(name="openapi", content=content, path="openapi.json")


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------


def _usable_config(source: Union[ParseResult, ApiConfig]) -> ApiConfig:
    if isinstance(source, ParseResult):
        return source.raise_for_errors()
    validation: ValidationResult = validate_semantics(source)
    if validation.has_errors:
        raise InvalidConfigError(validation.error_messages)
    return source


def build(
    source: Union[ParseResult, ApiConfig],
    *,
    include_openapi: bool = True,
    sequence: Optional[MigrationSequence] = None,
    started_at: Optional[datetime] = None,
    server_url: Optional[str] = None,
) -> GenerationResult:
    """
    Generate every artifact for a valid configuration.

    Args:
        source: a ``ParseResult`` or an ``ApiConfig`` (re-validated).
        include_openapi: also produce ``openapi.json``.
        sequence: migration token source; a fresh one is created per call.
        started_at: stamp for the fresh sequence (defaults to now, UTC).
        server_url: optional ``servers`` entry for the OpenAPI document.

    Raises:
        ConfigSyntaxError: the ``ParseResult`` text did not parse.
        InvalidConfigError: the configuration has shape or semantic errors.
    """
    config: ApiConfig = _usable_config(source)
    seq: MigrationSequence = sequence or MigrationSequence(started_at)
    logger.info(
        "Building API '%s' (%d resource(s)).", config.name, len(config.resources)
    )

    with Timer("build") as total:
        with Timer("schemas"):
            schemas: List[SchemaArtifact] = generate_schemas(config)
        with Timer("migrations"):
            migrations: List[MigrationArtifact] = generate_migrations(config, sequence=seq)
        with Timer("endpoints"):
            endpoints: List[EndpointArtifact] = generate_endpoints(config)
        router: GeneratedArtifact = build_router(config, endpoints)
        types: GeneratedArtifact = build_types(config, schemas)
        openapi: Optional[GeneratedArtifact] = (
            build_openapi(config, server_url=server_url) if include_openapi else None
        )

    result: GenerationResult = GenerationResult(
        api_name=config.name,
        schemas=schemas,
        endpoints=endpoints,
        migrations=migrations,
        router=router,
        types=types,
        openapi=openapi,
    )
    logger.info(
        "Build complete in %.3fs: %d artifact(s), %d line(s).",
        total.elapsed,
        result.total_artifacts,
        result.total_lines,
    )
    return result


# ---------------------------------------------------------------------------
# Change detection
# ---------------------------------------------------------------------------


def artifact_checksum(artifact: GeneratedArtifact) -> str:
    return artifact.checksum or sha256_hex(artifact.content)


def checksum_map(result: GenerationResult) -> Dict[str, str]:
    """``{artifact key: checksum}``, stable across runs for equal content."""
    return {a.key: artifact_checksum(a) for a in result.artifacts()}


def changed_artifacts(
    result: GenerationResult, previous_checksums: Mapping[str, str]
) -> List[GeneratedArtifact]:
    """Artifacts that are new or whose content differs from the previous run."""
    changed: List[GeneratedArtifact] = [
        a
        for a in result.artifacts()
        if has_content_changed(a.content, previous_checksums.get(a.key))
    ]
    logger.debug("%d artifact(s) changed since the previous run.", len(changed))
    return changed


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "build_router",
    "build_types",
    "build_openapi_document",
    "build_openapi",
    "build",
    "artifact_checksum",
    "checksum_map",
    "changed_artifacts",
]

logger.debug("crudgen.router_builder loaded: %d public symbols.", len(__all__))
