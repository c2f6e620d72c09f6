"""
tests/test_type_mapping.py
Unit tests for crudgen.type_mapping.

Tests cover:
- Table lookups for every supported type
- Resolution of bounds, patterns, enums and defaults against a field
- Rendering of Pydantic Field(...) arguments
"""

from __future__ import annotations

from typing import Any, Dict

import pytest

from crudgen.errors import GenerationError, UnsupportedTypeError
from crudgen.models import FieldSpec, FieldType
from crudgen.type_mapping import DATE_PATTERN, map_field, map_type, supported_types


def _field(**data: Any) -> FieldSpec:
    data.setdefault("name", "value")
    return FieldSpec.model_validate(data)


# ===========================================================================
# Tests for map_type
# ===========================================================================


class TestMapType:
    """Static table lookups."""

    @pytest.mark.parametrize(
        "field_type, storage, annotation",
        [
            ("string", "TEXT", "str"),
            ("text", "TEXT", "str"),
            ("integer", "INTEGER", "int"),
            ("number", "REAL", "float"),
            ("boolean", "INTEGER", "bool"),
            ("uuid", "TEXT", "UUID"),
            ("email", "TEXT", "EmailStr"),
            ("url", "TEXT", "AnyUrl"),
            ("datetime", "TEXT", "datetime"),
            ("date", "TEXT", "str"),
            ("json", "TEXT", "Dict[str, Any]"),
        ],
    )
    def test_known_types(self, field_type: str, storage: str, annotation: str) -> None:
        entry = map_type(field_type)
        assert entry.storage_type == storage
        assert entry.annotation == annotation

    def test_accepts_enum_members(self) -> None:
        assert map_type(FieldType.NUMBER).storage_type == "REAL"

    def test_unknown_type_raises(self) -> None:
        with pytest.raises(UnsupportedTypeError) as exc_info:
            map_type("hyperblob", "payload")
        assert "hyperblob" in str(exc_info.value)
        assert "payload" in str(exc_info.value)
        assert isinstance(exc_info.value, GenerationError)

    def test_every_supported_type_has_an_entry(self) -> None:
        types = supported_types()
        assert len(types) == 12
        for name in types:
            assert map_type(name).field_type == name


# ===========================================================================
# Tests for map_field
# ===========================================================================


class TestMapField:
    """Per-field resolution."""

    def test_string_bounds_are_lengths(self) -> None:
        mapping = map_field(_field(type="string", min=2, max=80))
        assert mapping.constraints == {"min_length": 2, "max_length": 80}
        assert mapping.api_schema["minLength"] == 2
        assert mapping.api_schema["maxLength"] == 80

    def test_numeric_bounds_are_values(self) -> None:
        mapping = map_field(_field(type="number", min=0, max=5.5))
        assert mapping.constraints == {"ge": 0, "le": 5.5}
        assert mapping.api_schema == {"type": "number", "minimum": 0, "maximum": 5.5}

    def test_bounds_ignored_for_boolean(self) -> None:
        mapping = map_field(_field(type="boolean", min=1))
        assert mapping.constraints == {}
        assert "minimum" not in mapping.api_schema

    def test_date_gets_pattern(self) -> None:
        mapping = map_field(_field(type="date"))
        assert mapping.constraints["pattern"] == DATE_PATTERN
        assert mapping.api_schema["format"] == "date"

    def test_enum_literal_annotation(self) -> None:
        mapping = map_field(_field(type="enum", enum=["draft", "published"]))
        assert mapping.annotation == 'Literal["draft", "published"]'
        assert mapping.api_schema["enum"] == ["draft", "published"]
        assert ("typing", "Literal") in mapping.imports

    def test_enum_without_values_raises(self) -> None:
        with pytest.raises(GenerationError):
            map_field(_field(type="enum"))

    def test_default_and_description_in_api_schema(self) -> None:
        mapping = map_field(
            _field(type="boolean", default=False, description="Pinned to top")
        )
        assert mapping.api_schema["default"] is False
        assert mapping.api_schema["description"] == "Pinned to top"

    def test_explicit_null_default_is_kept(self) -> None:
        mapping = map_field(_field(type="string", default=None))
        assert "default" in mapping.api_schema
        assert mapping.api_schema["default"] is None

    def test_api_schema_is_a_copy(self) -> None:
        mapping = map_field(_field(type="uuid"))
        mapping.api_schema["mutated"] = True
        assert "mutated" not in map_type("uuid").api_schema

    def test_import_dict(self) -> None:
        mapping = map_field(_field(type="json"))
        imports: Dict[str, set] = mapping.import_dict()
        assert imports == {"typing": {"Any", "Dict"}}


class TestFieldArguments:
    """Rendering of Field(...) keyword arguments."""

    def test_no_default_unless_requested(self) -> None:
        mapping = map_field(_field(type="string", max=10))
        assert mapping.field_arguments() == "max_length=10"

    def test_with_default(self) -> None:
        mapping = map_field(_field(type="string", max=10))
        rendered = mapping.field_arguments("hi", with_default=True)
        assert rendered == 'default="hi", max_length=10'

    def test_none_default(self) -> None:
        mapping = map_field(_field(type="integer", min=1))
        assert mapping.field_arguments(None, with_default=True) == "default=None, ge=1"
