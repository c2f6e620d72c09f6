# File: crudgen/errors.py
"""
CrudGen - Exception Hierarchy
==============================
Parse-time problems are reported as data (see ``crudgen.validators``).
The exceptions below are reserved for callers that misuse an entry point:
building from a configuration that still carries errors, or asking a
generator for an artifact it cannot produce.
"""

from __future__ import annotations

from typing import List, Optional, Sequence


class CrudGenError(Exception):
    """Base exception for all CrudGen errors."""

    def __init__(self, message: str) -> None:
        self.message: str = message
        super().__init__(message)


class ConfigSyntaxError(CrudGenError):
    """Raised by ``ParseResult.raise_for_errors`` when the text did not parse."""


class InvalidConfigError(CrudGenError):
    """
    Raised when generation is requested for a configuration with errors.

    The complete list of error messages is kept on ``errors`` so callers
    can surface every problem at once.
    """

    def __init__(self, errors: Sequence[str]) -> None:
        self.errors: List[str] = list(errors)
        preview: str = "; ".join(self.errors[:3])
        more: str = (
            f" (+{len(self.errors) - 3} more)" if len(self.errors) > 3 else ""
        )
        super().__init__(
            f"Configuration has {len(self.errors)} error(s): {preview}{more}"
        )


class GenerationError(CrudGenError):
    """Raised when a generator cannot produce the requested artifact."""


class UnsupportedTypeError(GenerationError):
    """Raised for a field type outside the supported set."""

    def __init__(self, field_type: object, field_name: Optional[str] = None) -> None:
        self.field_type: object = field_type
        self.field_name: Optional[str] = field_name
        where: str = f" for field '{field_name}'" if field_name else ""
        super().__init__(f"Unsupported field type '{field_type}'{where}.")


class EmptySeedError(GenerationError):
    """Raised when a seed migration is requested without any records."""

    def __init__(self, resource_name: str) -> None:
        self.resource_name: str = resource_name
        super().__init__(
            f"Seed data is required: no records given for resource '{resource_name}'."
        )


class MissingIndexesError(GenerationError):
    """Raised when an index migration is requested for an index-less resource."""

    def __init__(self, resource_name: str) -> None:
        self.resource_name: str = resource_name
        super().__init__(f"No indexes defined for resource '{resource_name}'.")


class UnknownColumnError(GenerationError):
    """Raised when seed records name columns the resource does not have."""

    def __init__(self, resource_name: str, columns: Sequence[str]) -> None:
        self.resource_name: str = resource_name
        self.columns: List[str] = list(columns)
        super().__init__(
            f"Seed records for resource '{resource_name}' reference unknown "
            f"column(s): {', '.join(self.columns)}."
        )


__all__: List[str] = [
    "CrudGenError",
    "ConfigSyntaxError",
    "InvalidConfigError",
    "GenerationError",
    "UnsupportedTypeError",
    "EmptySeedError",
    "MissingIndexesError",
    "UnknownColumnError",
]
