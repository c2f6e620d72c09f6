# File: crudgen/models.py
"""
CrudGen - Core Data Models
===========================
Pydantic V2 models for the resource configuration (the intermediate
representation every generator reads) and for the artifacts the generators
produce. These models are the single source of truth for the pipeline:
Parsing → Validation → Generation → Assembly.

The IR models are frozen: once a configuration has been parsed, no
generator can mutate it.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterator, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from crudgen.utils import (
    count_lines,
    resource_to_class_name,
    resource_to_table_name,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.models")

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class FieldType(str, Enum):
    """Closed set of field types a resource may declare."""

    STRING = "string"
    TEXT = "text"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"
    UUID = "uuid"
    EMAIL = "email"
    URL = "url"
    DATETIME = "datetime"
    DATE = "date"
    JSON = "json"
    ENUM = "enum"


# Names the generated API manages itself; never accepted from clients.
SERVER_MANAGED_FIELDS: FrozenSet[str] = frozenset({"id", "createdAt", "updatedAt"})

# ---------------------------------------------------------------------------
# Shared model configuration
# ---------------------------------------------------------------------------

_SHARED_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    use_enum_values=True,
    frozen=True,
    extra="forbid",
)


# ---------------------------------------------------------------------------
# Resource configuration (IR)
# ---------------------------------------------------------------------------


class FieldSpec(BaseModel):
    """
    A single declared attribute of a resource.

    ``default`` distinguishes "absent" from an explicit ``null``: use
    ``has_default`` rather than comparing against ``None``.
    """

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="Field name.")
    type: FieldType = Field(..., description="Declared field type.")
    required: bool = Field(default=False, description="Must be supplied on create.")
    unique: bool = Field(default=False, description="Has a UNIQUE constraint.")
    searchable: bool = Field(
        default=False, description="Included in free-text search and list filters."
    )
    min_value: Optional[Union[int, float]] = Field(
        default=None,
        alias="min",
        description="Lower bound: length for string/text, value for numbers.",
    )
    max_value: Optional[Union[int, float]] = Field(
        default=None,
        alias="max",
        description="Upper bound: length for string/text, value for numbers.",
    )
    enum_values: Optional[List[str]] = Field(
        default=None, alias="enum", description="Allowed values for enum fields."
    )
    relation: Optional[str] = Field(
        default=None, description="Reference in 'targetResource.targetField' form."
    )
    default: Optional[Union[bool, int, float, str]] = Field(
        default=None, description="Default value (string, number, boolean or null)."
    )
    description: Optional[str] = Field(default=None, description="Free text.")

    @field_validator("default", mode="before")
    @classmethod
    def _scalar_default(cls, v: Any) -> Any:
        # YAML turns unquoted dates into date objects
        if isinstance(v, (date, datetime)):
            return v.isoformat()
        if v is not None and not isinstance(v, (bool, int, float, str)):
            raise ValueError("default must be a string, number, boolean or null")
        return v

    @property
    def has_default(self) -> bool:
        return "default" in self.model_fields_set

    @property
    def relation_target(self) -> Optional[Tuple[str, str]]:
        """``(resource, field)`` for a well-formed relation, else ``None``."""
        if not self.relation:
            return None
        parts: List[str] = self.relation.split(".")
        if len(parts) != 2 or not all(parts):
            return None
        return parts[0], parts[1]

    def __repr__(self) -> str:
        req: str = " required" if self.required else ""
        return f"<Field {self.name} {self.type}{req}>"


class IndexSpec(BaseModel):
    """A secondary index over one or more fields of the owning resource."""

    model_config = _SHARED_CONFIG

    fields: List[str] = Field(..., min_length=1, description="Indexed field names.")
    unique: bool = Field(default=False, description="UNIQUE index?")


class TimestampPolicy(BaseModel):
    """Which server-managed timestamp attributes a resource carries."""

    model_config = _SHARED_CONFIG

    created_at: bool = Field(default=True, alias="createdAt")
    updated_at: bool = Field(default=True, alias="updatedAt")

    @property
    def attribute_names(self) -> List[str]:
        names: List[str] = []
        if self.created_at:
            names.append("createdAt")
        if self.updated_at:
            names.append("updatedAt")
        return names


class ResourceSpec(BaseModel):
    """
    A named entity exposed through the generated API.

    Every resource gets a synthetic ``id`` primary key that is never part of
    ``fields``.
    """

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="Resource name.")
    description: Optional[str] = Field(default=None)
    fields: List[FieldSpec] = Field(..., min_length=1)
    indexes: List[IndexSpec] = Field(default_factory=list)
    timestamps: TimestampPolicy = Field(default_factory=TimestampPolicy)

    @computed_field  # type: ignore[misc]
    @property
    def table_name(self) -> str:
        return resource_to_table_name(self.name)

    @computed_field  # type: ignore[misc]
    @property
    def class_name(self) -> str:
        return resource_to_class_name(self.name)

    @property
    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]

    @property
    def client_fields(self) -> List[FieldSpec]:
        """Declared fields a client may write (server-managed names removed)."""
        return [f for f in self.fields if f.name not in SERVER_MANAGED_FIELDS]

    def get_field(self, name: str) -> Optional[FieldSpec]:
        for field in self.fields:
            if field.name == name:
                return field
        return None

    def __repr__(self) -> str:
        return f"<Resource {self.name} ({len(self.fields)} fields)>"


class DatabaseSpec(BaseModel):
    """Storage binding handed to the host deployment."""

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="Database name.")
    binding: str = Field(default="DB", min_length=1, description="Binding identifier.")


class ApiConfig(BaseModel):
    """Root of the intermediate representation."""

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="API name.")
    version: Optional[str] = Field(default=None)
    description: Optional[str] = Field(default=None)
    database: Optional[DatabaseSpec] = Field(default=None)
    resources: List[ResourceSpec] = Field(..., min_length=1)

    @field_validator("version", mode="before")
    @classmethod
    def _version_as_text(cls, v: Any) -> Any:
        # ``version: 1.0`` arrives from YAML as a float
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @property
    def resource_names(self) -> List[str]:
        return [r.name for r in self.resources]

    @property
    def database_name(self) -> str:
        if self.database is not None:
            return self.database.name
        return f"{self.name}-db"

    @property
    def database_binding(self) -> str:
        if self.database is not None:
            return self.database.binding
        return "DB"

    def get_resource(self, name: str) -> Optional[ResourceSpec]:
        for resource in self.resources:
            if resource.name == name:
                return resource
        return None

    def __repr__(self) -> str:
        return f"<ApiConfig {self.name} ({len(self.resources)} resources)>"


# ---------------------------------------------------------------------------
# Generated artifacts
# ---------------------------------------------------------------------------


class GeneratedArtifact(BaseModel):
    """A named block of generated text handed to external writers."""

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="Artifact name.")
    content: str = Field(..., description="Full generated text.")
    checksum: Optional[str] = Field(
        default=None, description="SHA-256 hex digest of content."
    )
    path: Optional[str] = Field(
        default=None, description="Suggested relative path for writers."
    )

    @computed_field  # type: ignore[misc]
    @property
    def line_count(self) -> int:
        return count_lines(self.content)

    @property
    def key(self) -> str:
        """Identity that stays stable between runs, used for change detection."""
        return self.path or self.name

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name} ({self.line_count} lines)>"


class SchemaArtifact(GeneratedArtifact):
    """Validation rule sets for one resource."""

    resource: str = Field(..., description="Owning resource name.")
    type_exports: List[str] = Field(
        default_factory=list, description="Model names the module exports."
    )


EndpointOperation = Literal["create", "list", "get", "update", "delete"]


class EndpointSpec(BaseModel):
    """Structured description of one generated request handler."""

    model_config = _SHARED_CONFIG

    operation: EndpointOperation
    method: Literal["GET", "POST", "PUT", "DELETE"]
    path: str = Field(..., description="Route path, e.g. '/posts/{id}'.")
    status_code: int = Field(default=200)
    resource: str
    handler_name: str = Field(..., description="Python function name.")
    module_name: str = Field(..., description="Module the handler lives in.")
    table_name: str
    primary_key: str = Field(default="id")
    request_schema: Optional[str] = Field(
        default=None, description="Rule set validating the body or query."
    )
    response_schema: Optional[str] = Field(default=None)
    filter_fields: List[str] = Field(default_factory=list)
    search_fields: List[str] = Field(default_factory=list)
    order_by_fields: List[str] = Field(default_factory=list)
    sets_created_at: bool = Field(default=False)
    sets_updated_at: bool = Field(default=False)
    imports: List[str] = Field(
        default_factory=list, description="Import lines of the rendered module."
    )


class EndpointArtifact(GeneratedArtifact):
    """One rendered handler module plus its descriptor."""

    spec: EndpointSpec


MigrationKind = Literal["create_table", "create_indexes", "rollback", "seed"]


class MigrationArtifact(GeneratedArtifact):
    """A DDL/DML script. Migrations always carry a checksum."""

    checksum: str = Field(..., min_length=64, max_length=64)
    kind: MigrationKind
    resource: Optional[str] = Field(default=None)

    @property
    def key(self) -> str:
        # The name embeds a per-run token; kind + resource do not change
        return f"migrations/{self.resource or '*'}:{self.kind}"


# ---------------------------------------------------------------------------
# Generation Result
# ---------------------------------------------------------------------------


class GenerationResult(BaseModel):
    """
    Everything one ``build`` produced, grouped by generator.

    Consumed by external collaborators that write files or deploy.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    api_name: str
    schemas: List[SchemaArtifact] = Field(default_factory=list)
    endpoints: List[EndpointArtifact] = Field(default_factory=list)
    migrations: List[MigrationArtifact] = Field(default_factory=list)
    router: GeneratedArtifact
    types: GeneratedArtifact
    openapi: Optional[GeneratedArtifact] = Field(default=None)

    def artifacts(self) -> Iterator[GeneratedArtifact]:
        """Yield every artifact in a fixed order."""
        yield from self.schemas
        yield from self.migrations
        yield from self.endpoints
        yield self.router
        yield self.types
        if self.openapi is not None:
            yield self.openapi

    def to_file_map(self) -> Dict[str, str]:
        """Flatten into ``{relative path: content}`` for file writers."""
        return {
            (artifact.path or artifact.name): artifact.content
            for artifact in self.artifacts()
        }

    @computed_field  # type: ignore[misc]
    @property
    def total_artifacts(self) -> int:
        return sum(1 for _ in self.artifacts())

    @computed_field  # type: ignore[misc]
    @property
    def total_lines(self) -> int:
        return sum(a.line_count for a in self.artifacts())

    def __repr__(self) -> str:
        return (
            f"<GenerationResult {self.api_name}: {len(self.schemas)} schemas, "
            f"{len(self.migrations)} migrations, {len(self.endpoints)} endpoints>"
        )


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "FieldType",
    "SERVER_MANAGED_FIELDS",
    "FieldSpec",
    "IndexSpec",
    "TimestampPolicy",
    "ResourceSpec",
    "DatabaseSpec",
    "ApiConfig",
    "GeneratedArtifact",
    "SchemaArtifact",
    "EndpointOperation",
    "EndpointSpec",
    "EndpointArtifact",
    "MigrationKind",
    "MigrationArtifact",
    "GenerationResult",
]

logger.debug("crudgen.models loaded: %d public symbols.", len(__all__))
