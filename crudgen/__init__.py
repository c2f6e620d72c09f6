# File: crudgen/__init__.py
"""
CrudGen - CRUD API Compiler
============================

Compiles a declarative resource configuration (YAML or JSON) into the
source artifacts of a CRUD HTTP API: Pydantic validation schemas, SQLite
migration scripts, FastAPI endpoint handlers, route registration, combined
type exports and an OpenAPI 3.0 document.

Architecture overview::

    ┌──────────┐     ┌────────────┐     ┌──────────────────┐
    │  parser  │────▶│ validators │────▶│  router_builder  │
    │  (.py)   │     │   (.py)    │     │     (build)      │
    └──────────┘     └────────────┘     └────────┬─────────┘
                                                 │
                          ┌──────────────────────┼──────────────┐
                          ▼                      ▼              ▼
                 ┌─────────────────┐     ┌────────────┐  ┌───────────┐
                 │schema_generator │     │ migrations │  │ endpoints │
                 └────────┬────────┘     └─────┬──────┘  └─────┬─────┘
                          └─────────────┬──────┴───────────────┘
                                        ▼
                                 ┌──────────────┐
                                 │ type_mapping │
                                 └──────────────┘

Usage::

    from crudgen import parse_file, build

    result = build(parse_file("api.yaml"))
    for path, content in result.to_file_map().items():
        ...

Nothing here writes files or configures logging; call
``configure_logging`` to see the library's log output.
"""

from __future__ import annotations

__version__: str = "0.1.0"
__license__: str = "MIT"

from crudgen.endpoints import EndpointGenerator, generate_endpoints
from crudgen.errors import (
    ConfigSyntaxError,
    CrudGenError,
    EmptySeedError,
    GenerationError,
    InvalidConfigError,
    MissingIndexesError,
    UnknownColumnError,
    UnsupportedTypeError,
)
from crudgen.migrations import (
    MigrationSequence,
    generate_migrations,
    generate_rollback,
    generate_seed,
)
from crudgen.models import (
    ApiConfig,
    EndpointArtifact,
    EndpointSpec,
    FieldSpec,
    FieldType,
    GeneratedArtifact,
    GenerationResult,
    IndexSpec,
    MigrationArtifact,
    ResourceSpec,
    SchemaArtifact,
    TimestampPolicy,
)
from crudgen.parser import ParseResult, parse_config, parse_file
from crudgen.router_builder import build, changed_artifacts, checksum_map
from crudgen.schema_generator import SchemaGenerator, generate_schemas
from crudgen.type_mapping import map_field, map_type
from crudgen.utils import Timer, configure_logging
from crudgen.validators import ValidationResult, validate_semantics

# ---------------------------------------------------------------------------
# Public API surface
# ---------------------------------------------------------------------------

__all__: list[str] = [
    # Version info
    "__version__",
    "__license__",
    # Entry points
    "parse_config",
    "parse_file",
    "build",
    "ParseResult",
    # Models
    "ApiConfig",
    "ResourceSpec",
    "FieldSpec",
    "FieldType",
    "IndexSpec",
    "TimestampPolicy",
    "GeneratedArtifact",
    "SchemaArtifact",
    "EndpointArtifact",
    "EndpointSpec",
    "MigrationArtifact",
    "GenerationResult",
    # Validation
    "ValidationResult",
    "validate_semantics",
    # Generators
    "SchemaGenerator",
    "generate_schemas",
    "MigrationSequence",
    "generate_migrations",
    "generate_rollback",
    "generate_seed",
    "EndpointGenerator",
    "generate_endpoints",
    "map_field",
    "map_type",
    # Change detection
    "checksum_map",
    "changed_artifacts",
    # Errors
    "CrudGenError",
    "ConfigSyntaxError",
    "InvalidConfigError",
    "GenerationError",
    "UnsupportedTypeError",
    "EmptySeedError",
    "MissingIndexesError",
    "UnknownColumnError",
    # Utilities
    "Timer",
    "configure_logging",
]
