# File: crudgen/migrations.py
"""
CrudGen - Migration / DDL Generator
====================================
Builds SQLAlchemy Core ``Table`` objects from the resource IR and compiles
them against the SQLite dialect into migration scripts:

- one ``CREATE TABLE IF NOT EXISTS`` artifact per resource
- one ``CREATE [UNIQUE] INDEX IF NOT EXISTS`` artifact per indexed resource
- rollback (``DROP TABLE IF EXISTS``) and seed (``INSERT``) scripts

Migration names start with a token from ``MigrationSequence`` so that
artifacts produced in one run sort in generation order and never collide.
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy import (
    REAL,
    Column,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
    insert,
    null,
    text,
)
from sqlalchemy.dialects import sqlite
from sqlalchemy.schema import CreateIndex, CreateTable, DropTable
from sqlalchemy.types import TypeEngine

from crudgen.errors import (
    EmptySeedError,
    MissingIndexesError,
    UnknownColumnError,
)
from crudgen.models import ApiConfig, FieldSpec, MigrationArtifact, ResourceSpec
from crudgen.type_mapping import map_field
from crudgen.utils import Timer, index_name, resource_to_table_name, sha256_hex

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.migrations")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_DIALECT = sqlite.dialect()

_STORAGE_TYPES: Dict[str, type] = {
    "TEXT": Text,
    "INTEGER": Integer,
    "REAL": REAL,
}

STAMP_FORMAT: str = "%Y%m%d%H%M"


# ---------------------------------------------------------------------------
# Name tokens
# ---------------------------------------------------------------------------


class MigrationSequence:
    """
    Issues strictly increasing migration name tokens for one run.

    A token is ``<YYYYMMDDHHMM>_<counter>``: the stamp is taken once when
    the sequence is created and the zero-padded counter orders everything
    generated within the same minute. Safe to share between threads.
    """

    def __init__(
        self,
        started_at: Optional[datetime] = None,
        start: int = 1,
        width: int = 4,
    ) -> None:
        moment: datetime = started_at or datetime.now(timezone.utc)
        self._stamp: str = moment.strftime(STAMP_FORMAT)
        self._next: int = start
        self._width: int = width
        self._lock: threading.Lock = threading.Lock()
        self._issued: List[str] = []

    @property
    def stamp(self) -> str:
        return self._stamp

    @property
    def issued(self) -> Tuple[str, ...]:
        with self._lock:
            return tuple(self._issued)

    def next_token(self) -> str:
        with self._lock:
            token: str = f"{self._stamp}_{self._next:0{self._width}d}"
            self._next += 1
            self._issued.append(token)
        return token

    def __repr__(self) -> str:
        return f"<MigrationSequence {self._stamp} next={self._next}>"


# ---------------------------------------------------------------------------
# Table construction
# ---------------------------------------------------------------------------


def _storage_type(field: FieldSpec) -> TypeEngine:
    return _STORAGE_TYPES[map_field(field).storage_type]()


def _server_default(field: FieldSpec) -> Any:
    """DDL default for a declared default; strings are quoted by SQLAlchemy."""
    value: Any = field.default
    if value is None:
        return text("NULL")
    if isinstance(value, bool):
        return text("1" if value else "0")
    if isinstance(value, (int, float)):
        return text(repr(value))
    return str(value)


def build_table(
    resource: ResourceSpec,
    metadata: MetaData,
    *,
    with_relations: bool = True,
) -> Table:
    """
    Build the ``Table`` for *resource* inside *metadata*.

    Columns: synthetic ``id`` primary key, one per declared field, then the
    timestamp columns enabled by the resource's policy. Relations become
    foreign keys when *with_relations* is set; their targets must already
    be (or later be) defined in the same *metadata*.
    """
    timestamps: List[str] = resource.timestamps.attribute_names
    columns: List[Column] = [Column("id", Text, primary_key=True, nullable=False)]

    for field in resource.fields:
        if field.name == "id" or field.name in timestamps:
            continue
        args: List[Any] = [field.name, _storage_type(field)]
        target = field.relation_target if with_relations else None
        if target is not None:
            target_table: str = resource_to_table_name(target[0])
            args.append(ForeignKey(f"{target_table}.{target[1]}"))
        kwargs: Dict[str, Any] = {
            "nullable": not field.required,
            "unique": field.unique or None,
        }
        if field.has_default:
            kwargs["server_default"] = _server_default(field)
        columns.append(Column(*args, **kwargs))

    for name in timestamps:
        columns.append(Column(name, Text, nullable=False))

    return Table(resource.table_name, metadata, *columns)


def build_metadata(resources: Sequence[ResourceSpec]) -> Tuple[MetaData, Dict[str, Table]]:
    """All tables for *resources* in one ``MetaData`` so foreign keys resolve."""
    metadata: MetaData = MetaData()
    tables: Dict[str, Table] = {}
    for resource in resources:
        tables[resource.name] = build_table(resource, metadata)
    return metadata, tables


# ---------------------------------------------------------------------------
# Compilation helpers
# ---------------------------------------------------------------------------


def _compile(element: Any, **compile_kwargs: Any) -> str:
    """Compile a DDL/DML element for SQLite and tidy the whitespace."""
    sql: str = str(
        element.compile(dialect=_DIALECT, compile_kwargs=compile_kwargs)
    ).strip()
    lines: List[str] = [line.rstrip() for line in sql.splitlines()]
    return "\n".join(lines).replace("\t", "  ")


def _artifact(
    name: str,
    content: str,
    kind: str,
    resource: Optional[str] = None,
) -> MigrationArtifact:
    return MigrationArtifact(
        name=name,
        content=content,
        checksum=sha256_hex(content),
        path=f"migrations/{name}.sql",
        kind=kind,
        resource=resource,
    )


# ---------------------------------------------------------------------------
# Generators
# ---------------------------------------------------------------------------


def generate_table_migration(
    resource: ResourceSpec,
    table: Table,
    sequence: MigrationSequence,
) -> MigrationArtifact:
    """``CREATE TABLE`` artifact for one resource."""
    ddl: str = _compile(CreateTable(table, if_not_exists=True))
    content: str = f"-- Create {table.name} table\n{ddl};\n"
    name: str = f"{sequence.next_token()}_{resource.name}_create_table"
    logger.debug("Generated table migration %s.", name)
    return _artifact(name, content, "create_table", resource.name)


def generate_index_migration(
    resource: ResourceSpec,
    table: Table,
    sequence: MigrationSequence,
) -> MigrationArtifact:
    """
    ``CREATE INDEX`` artifact for one resource.

    Raises:
        MissingIndexesError: when the resource declares no indexes.
    """
    if not resource.indexes:
        raise MissingIndexesError(resource.name)

    statements: List[str] = [f"-- Create indexes for {table.name}"]
    for spec in resource.indexes:
        index: Index = Index(
            index_name(table.name, spec.fields, unique=spec.unique),
            *(table.c[f] for f in spec.fields),
            unique=spec.unique,
        )
        statements.append(f"{_compile(CreateIndex(index, if_not_exists=True))};")
    content: str = "\n".join(statements) + "\n"
    name: str = f"{sequence.next_token()}_{resource.name}_create_indexes"
    logger.debug("Generated index migration %s (%d index(es)).", name, len(resource.indexes))
    return _artifact(name, content, "create_indexes", resource.name)


def generate_migrations(
    config: ApiConfig,
    *,
    sequence: Optional[MigrationSequence] = None,
) -> List[MigrationArtifact]:
    """
    All table artifacts in declaration order, then index artifacts for
    the resources that declare indexes.
    """
    seq: MigrationSequence = sequence or MigrationSequence()
    with Timer("generate migrations"):
        _metadata, tables = build_metadata(config.resources)
        artifacts: List[MigrationArtifact] = [
            generate_table_migration(r, tables[r.name], seq) for r in config.resources
        ]
        artifacts.extend(
            generate_index_migration(r, tables[r.name], seq)
            for r in config.resources
            if r.indexes
        )
    logger.info("Generated %d migration(s) with stamp %s.", len(artifacts), seq.stamp)
    return artifacts


def generate_rollback(
    resources: Sequence[ResourceSpec],
    *,
    sequence: Optional[MigrationSequence] = None,
) -> MigrationArtifact:
    """One ``DROP TABLE IF EXISTS`` per resource, in input order."""
    seq: MigrationSequence = sequence or MigrationSequence()
    metadata: MetaData = MetaData()
    statements: List[str] = ["-- Rollback"]
    for resource in resources:
        table: Table = build_table(resource, metadata, with_relations=False)
        statements.append(f"{_compile(DropTable(table, if_exists=True))};")
    content: str = "\n".join(statements) + "\n"
    return _artifact(f"{seq.next_token()}_rollback", content, "rollback")


def _seed_value(column: Column, value: Any) -> Any:
    if value is None:
        return null()
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(column.type, Text) and not isinstance(value, str):
        return str(value)
    return value


def generate_seed(
    resource: ResourceSpec,
    records: Sequence[Mapping[str, Any]],
    *,
    sequence: Optional[MigrationSequence] = None,
) -> MigrationArtifact:
    """
    One ``INSERT`` with one ``VALUES`` tuple per record.

    The column list is every key used by any record, in first-seen order;
    a record missing one of those keys inserts ``NULL`` for it.

    Raises:
        EmptySeedError: when *records* is empty.
        UnknownColumnError: when a record names a column the table lacks.
    """
    if not records:
        raise EmptySeedError(resource.name)

    seq: MigrationSequence = sequence or MigrationSequence()
    table: Table = build_table(resource, MetaData(), with_relations=False)

    unknown: List[str] = []
    for record in records:
        for key in record:
            if key not in table.c and key not in unknown:
                unknown.append(key)
    if unknown:
        raise UnknownColumnError(resource.name, unknown)

    columns: List[str] = []
    for record in records:
        for key in record:
            if key not in columns:
                columns.append(key)
    head: str = ""
    tuples: List[str] = []
    for record in records:
        row: Dict[str, Any] = {
            col: _seed_value(table.c[col], record.get(col)) for col in columns
        }
        # Values are compiled without tidying so literal whitespace survives
        sql: str = str(
            insert(table)
            .values(row)
            .compile(dialect=_DIALECT, compile_kwargs={"literal_binds": True})
        ).strip()
        # The first " VALUES " is the keyword: only identifiers precede it
        head, _, values = sql.partition(" VALUES ")
        tuples.append(values)

    content: str = (
        f"-- Seed {table.name}\n{head}\nVALUES\n  " + ",\n  ".join(tuples) + ";\n"
    )
    name: str = f"{seq.next_token()}_seed_{table.name}"
    logger.debug("Generated seed %s with %d record(s).", name, len(records))
    return _artifact(name, content, "seed", resource.name)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "MigrationSequence",
    "build_table",
    "build_metadata",
    "generate_table_migration",
    "generate_index_migration",
    "generate_migrations",
    "generate_rollback",
    "generate_seed",
]

logger.debug("crudgen.migrations loaded: %d public symbols.", len(__all__))
