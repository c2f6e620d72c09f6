"""
tests/test_validators.py
Unit tests for crudgen.validators.

Tests cover:
- ValidationResult bookkeeping
- Duplicate and malformed resource / field names
- Enum value checks
- Relation format and referential integrity
- Circular relation detection
- Index field checks
- Bounds and default checks
- The composite validate_semantics pipeline
"""

from __future__ import annotations

import copy
from typing import Any, Dict, List

import pytest

from crudgen.models import ApiConfig
from crudgen.validators import (
    ValidationResult,
    validate_circular_relations,
    validate_defaults,
    validate_enum_fields,
    validate_field_bounds,
    validate_field_names,
    validate_indexes,
    validate_relations,
    validate_resource_names,
    validate_semantics,
    validate_shape,
)


def _config(raw: Dict[str, Any]) -> ApiConfig:
    return ApiConfig.model_validate(raw)


def _codes(result: ValidationResult, level: str = "error") -> List[str]:
    return [item.code for item in result.all_items if item.level == level]


def _resource(name: str, *fields: Dict[str, Any], **extra: Any) -> Dict[str, Any]:
    data: Dict[str, Any] = {"name": name, "fields": list(fields)}
    data.update(extra)
    return data


# ===========================================================================
# Tests for ValidationResult
# ===========================================================================


class TestValidationResult:
    def test_empty_is_valid(self) -> None:
        result = ValidationResult()
        assert result.is_valid
        assert bool(result)
        assert len(result) == 0

    def test_errors_and_warnings(self) -> None:
        result = ValidationResult()
        result.add_error("E1", "first", {"resource": "post"})
        result.add_warning("W1", "careful")
        assert not result.is_valid
        assert not bool(result)
        assert result.error_messages == ["first"]
        assert result.error_count == 1
        assert result.warning_count == 1
        assert [str(item) for item in result.all_items] == ["first", "careful"]
        assert "1 error(s)" in result.summary()

    def test_merge(self) -> None:
        a, b = ValidationResult(), ValidationResult()
        a.add_error("E1", "one")
        b.add_error("E2", "two")
        a.merge(b)
        assert a.error_messages == ["one", "two"]

    def test_format_report(self) -> None:
        result = ValidationResult()
        result.add_error("E1", "broken", {"field": "title"})
        result.add_warning("W1", "careful")
        report = result.format_report()
        assert report.splitlines()[0] == result.summary()
        assert "[E1] broken" in report
        assert "field: title" in report
        assert "[W1] careful" in report


# ===========================================================================
# Tests for validate_shape
# ===========================================================================


class TestValidateShape:
    def test_valid(self, config_dict: Dict[str, Any]) -> None:
        config, result = validate_shape(config_dict)
        assert config is not None
        assert result.is_valid

    def test_non_object(self) -> None:
        config, result = validate_shape(["not", "a", "dict"])
        assert config is None
        assert _codes(result) == ["INVALID_ROOT"]


# ===========================================================================
# Tests for names
# ===========================================================================


class TestResourceNames:
    def test_unique_names_pass(self, api_config: ApiConfig) -> None:
        assert validate_resource_names(api_config).is_valid

    def test_one_error_per_extra_occurrence(
        self, config_duplicate_resources: Dict[str, Any]
    ) -> None:
        result = validate_resource_names(_config(config_duplicate_resources))
        assert _codes(result) == ["DUPLICATE_RESOURCE_NAME"]
        assert result.error_messages == ["Duplicate resource name: item"]

        raw = copy.deepcopy(config_duplicate_resources)
        raw["resources"].append(copy.deepcopy(raw["resources"][0]))
        assert _codes(validate_resource_names(_config(raw))) == [
            "DUPLICATE_RESOURCE_NAME",
            "DUPLICATE_RESOURCE_NAME",
        ]

    def test_invalid_identifier(self, minimal_config_dict: Dict[str, Any]) -> None:
        minimal_config_dict["resources"][0]["name"] = "blog post"
        result = validate_resource_names(_config(minimal_config_dict))
        assert _codes(result) == ["INVALID_RESOURCE_NAME"]

    def test_same_table_name(self) -> None:
        field = {"name": "title", "type": "string"}
        raw = {
            "name": "api",
            "resources": [_resource("blogPost", field), _resource("blog_post", field)],
        }
        assert _codes(validate_resource_names(_config(raw))) == ["DUPLICATE_TABLE_NAME"]

    def test_reserved_table_name_warns(self) -> None:
        raw = {
            "name": "api",
            "resources": [_resource("value", {"name": "x", "type": "string"})],
        }
        result = validate_resource_names(_config(raw))
        assert result.is_valid
        assert _codes(result, "warning") == ["TABLE_NAME_SQL_RESERVED"]


class TestFieldNames:
    def test_valid(self, api_config: ApiConfig) -> None:
        result = validate_field_names(api_config)
        assert result.is_valid
        assert not result.has_warnings

    def test_duplicate_field(self, minimal_config_dict: Dict[str, Any]) -> None:
        minimal_config_dict["resources"][0]["fields"].append(
            {"name": "title", "type": "text"}
        )
        result = validate_field_names(_config(minimal_config_dict))
        assert result.error_messages == [
            "Duplicate field name 'title' in resource 'item'"
        ]

    @pytest.mark.parametrize("name", ["2fast", "with space", "class", "_private"])
    def test_invalid_field_name(self, minimal_config_dict: Dict[str, Any], name: str) -> None:
        minimal_config_dict["resources"][0]["fields"].append({"name": name, "type": "text"})
        assert _codes(validate_field_names(_config(minimal_config_dict))) == [
            "INVALID_FIELD_NAME"
        ]

    def test_server_managed_name_warns(self, minimal_config_dict: Dict[str, Any]) -> None:
        minimal_config_dict["resources"][0]["fields"].append(
            {"name": "createdAt", "type": "datetime"}
        )
        result = validate_field_names(_config(minimal_config_dict))
        assert result.is_valid
        assert "SERVER_MANAGED_FIELD" in _codes(result, "warning")

    def test_query_parameter_collision_warns(
        self, minimal_config_dict: Dict[str, Any]
    ) -> None:
        minimal_config_dict["resources"][0]["fields"].append(
            {"name": "search", "type": "boolean"}
        )
        result = validate_field_names(_config(minimal_config_dict))
        assert "QUERY_PARAMETER_SHADOWED" in _codes(result, "warning")


# ===========================================================================
# Tests for enum fields
# ===========================================================================


class TestEnumFields:
    def test_exactly_one_error_without_values(
        self, config_enum_without_values: Dict[str, Any]
    ) -> None:
        result = validate_semantics(_config(config_enum_without_values))
        assert result.error_messages == [
            "Field 'status' in resource 'item' must have enum values"
        ]

    def test_empty_list_counts_as_missing(self, minimal_config_dict: Dict[str, Any]) -> None:
        minimal_config_dict["resources"][0]["fields"].append(
            {"name": "status", "type": "enum", "enum": []}
        )
        assert _codes(validate_enum_fields(_config(minimal_config_dict))) == [
            "ENUM_VALUES_MISSING"
        ]

    def test_duplicate_values_warn(self, minimal_config_dict: Dict[str, Any]) -> None:
        minimal_config_dict["resources"][0]["fields"].append(
            {"name": "status", "type": "enum", "enum": ["a", "b", "a"]}
        )
        result = validate_enum_fields(_config(minimal_config_dict))
        assert result.is_valid
        assert _codes(result, "warning") == ["DUPLICATE_ENUM_VALUE"]

    def test_values_on_non_enum_warn(self, minimal_config_dict: Dict[str, Any]) -> None:
        minimal_config_dict["resources"][0]["fields"][0]["enum"] = ["x"]
        result = validate_enum_fields(_config(minimal_config_dict))
        assert _codes(result, "warning") == ["ENUM_VALUES_IGNORED"]


# ===========================================================================
# Tests for relations
# ===========================================================================


class TestRelations:
    def test_valid(self, api_config: ApiConfig) -> None:
        result = validate_relations(api_config)
        assert result.is_valid
        assert not result.has_warnings

    def test_exactly_one_error_for_dangling_resource(
        self, config_dangling_relation: Dict[str, Any]
    ) -> None:
        result = validate_semantics(_config(config_dangling_relation))
        assert result.error_messages == [
            "Target resource 'writer' not found for relation 'writer.id'"
        ]

    def test_unknown_target_field(self, config_dict: Dict[str, Any]) -> None:
        for field in config_dict["resources"][1]["fields"]:
            if field["name"] == "authorId":
                field["relation"] = "author.handle"
        result = validate_relations(_config(config_dict))
        assert result.error_messages == [
            "Target field 'handle' not found in resource 'author' for relation 'author.handle'"
        ]

    def test_declared_target_field(self, config_dict: Dict[str, Any]) -> None:
        for field in config_dict["resources"][1]["fields"]:
            if field["name"] == "authorId":
                field["relation"] = "author.email"
                field["type"] = "email"
        assert validate_relations(_config(config_dict)).is_valid

    @pytest.mark.parametrize("relation", ["author", "author.id.x", ".id", "author."])
    def test_bad_format(self, config_dict: Dict[str, Any], relation: str) -> None:
        for field in config_dict["resources"][1]["fields"]:
            if field["name"] == "authorId":
                field["relation"] = relation
        result = validate_relations(_config(config_dict))
        assert result.error_messages == [
            f"Invalid relation format '{relation}' in field 'authorId'"
        ]

    def test_type_mismatch_warns(self, config_dict: Dict[str, Any]) -> None:
        for field in config_dict["resources"][1]["fields"]:
            if field["name"] == "authorId":
                field["type"] = "integer"
        result = validate_relations(_config(config_dict))
        assert result.is_valid
        assert _codes(result, "warning") == ["RELATION_TYPE_MISMATCH"]


class TestCircularRelations:
    def test_no_cycle(self, api_config: ApiConfig) -> None:
        assert not validate_circular_relations(api_config).has_warnings

    def test_two_resource_cycle(self, config_dict: Dict[str, Any]) -> None:
        config_dict["resources"][0]["fields"].append(
            {"name": "pinnedPostId", "type": "uuid", "relation": "post.id"}
        )
        result = validate_circular_relations(_config(config_dict))
        assert result.is_valid
        assert _codes(result, "warning") == ["CIRCULAR_RELATION"]

    def test_self_reference_is_not_a_cycle(self, minimal_config_dict: Dict[str, Any]) -> None:
        minimal_config_dict["resources"][0]["fields"].append(
            {"name": "parentId", "type": "uuid", "relation": "item.id"}
        )
        assert not validate_circular_relations(_config(minimal_config_dict)).has_warnings


# ===========================================================================
# Tests for indexes, bounds and defaults
# ===========================================================================


class TestIndexes:
    def test_valid(self, api_config: ApiConfig) -> None:
        assert validate_indexes(api_config).is_valid

    def test_unknown_field(self, minimal_config_dict: Dict[str, Any]) -> None:
        minimal_config_dict["resources"][0]["indexes"] = [{"fields": ["title", "ghost"]}]
        result = validate_indexes(_config(minimal_config_dict))
        assert result.error_messages == [
            "Index references non-existent field 'ghost' in resource 'item'"
        ]

    def test_synthetic_columns_allowed(self, minimal_config_dict: Dict[str, Any]) -> None:
        minimal_config_dict["resources"][0]["indexes"] = [
            {"fields": ["id"]},
            {"fields": ["updatedAt"]},
        ]
        assert validate_indexes(_config(minimal_config_dict)).is_valid

    def test_disabled_timestamp_not_allowed(self, minimal_config_dict: Dict[str, Any]) -> None:
        resource = minimal_config_dict["resources"][0]
        resource["timestamps"] = {"createdAt": False}
        resource["indexes"] = [{"fields": ["createdAt"]}]
        assert _codes(validate_indexes(_config(minimal_config_dict))) == [
            "UNKNOWN_INDEX_FIELD"
        ]

    def test_duplicate_index_warns(self, minimal_config_dict: Dict[str, Any]) -> None:
        minimal_config_dict["resources"][0]["indexes"] = [
            {"fields": ["title"], "unique": True},
            {"fields": ["title"], "unique": True},
        ]
        result = validate_indexes(_config(minimal_config_dict))
        assert result.is_valid
        assert _codes(result, "warning") == ["DUPLICATE_INDEX"]

    def test_unique_and_plain_index_on_same_fields(
        self, minimal_config_dict: Dict[str, Any]
    ) -> None:
        minimal_config_dict["resources"][0]["indexes"] = [
            {"fields": ["title"]},
            {"fields": ["title"], "unique": True},
        ]
        result = validate_indexes(_config(minimal_config_dict))
        assert result.is_valid
        assert len(result) == 0

    def test_underscore_name_clash(self, minimal_config_dict: Dict[str, Any]) -> None:
        resource = minimal_config_dict["resources"][0]
        resource["fields"] += [
            {"name": "a", "type": "string"},
            {"name": "b", "type": "string"},
            {"name": "a_b", "type": "string"},
        ]
        resource["indexes"] = [{"fields": ["a", "b"]}, {"fields": ["a_b"]}]
        result = validate_indexes(_config(minimal_config_dict))
        assert _codes(result) == ["INDEX_NAME_CONFLICT"]
        assert "idx_items_a_b" in result.error_messages[0]

    def test_name_clash_across_resources(self) -> None:
        # items.codes_sku and items_codes.sku both become idx_items_codes_sku
        config = _config(
            {
                "name": "clash-api",
                "resources": [
                    _resource(
                        "item",
                        {"name": "codes_sku", "type": "string"},
                        indexes=[{"fields": ["codes_sku"]}],
                    ),
                    _resource(
                        "itemsCode",
                        {"name": "sku", "type": "string"},
                        indexes=[{"fields": ["sku"]}],
                    ),
                ],
            }
        )
        assert _codes(validate_indexes(config)) == ["INDEX_NAME_CONFLICT"]


class TestBoundsAndDefaults:
    def test_min_greater_than_max(self, minimal_config_dict: Dict[str, Any]) -> None:
        minimal_config_dict["resources"][0]["fields"][0].update({"min": 10, "max": 2})
        assert _codes(validate_field_bounds(_config(minimal_config_dict))) == [
            "INVALID_BOUNDS"
        ]

    def test_fractional_length(self, minimal_config_dict: Dict[str, Any]) -> None:
        minimal_config_dict["resources"][0]["fields"][0].update({"max": 2.5})
        assert _codes(validate_field_bounds(_config(minimal_config_dict))) == [
            "INVALID_LENGTH_BOUND"
        ]

    @pytest.mark.parametrize("field_type", ["string", "integer", "number"])
    @pytest.mark.parametrize("bound", [float("inf"), float("-inf"), float("nan")])
    def test_non_finite_bounds(
        self, minimal_config_dict: Dict[str, Any], field_type: str, bound: float
    ) -> None:
        minimal_config_dict["resources"][0]["fields"].append(
            {"name": "size", "type": field_type, "max": bound}
        )
        result = validate_field_bounds(_config(minimal_config_dict))
        assert _codes(result) == ["INVALID_BOUNDS"]
        assert "finite" in result.error_messages[0]

    def test_bounds_on_boolean_warn(self, minimal_config_dict: Dict[str, Any]) -> None:
        minimal_config_dict["resources"][0]["fields"].append(
            {"name": "flag", "type": "boolean", "max": 1}
        )
        result = validate_field_bounds(_config(minimal_config_dict))
        assert result.is_valid
        assert _codes(result, "warning") == ["BOUNDS_IGNORED"]

    @pytest.mark.parametrize(
        "field",
        [
            {"name": "n", "type": "integer", "default": "ten"},
            {"name": "n", "type": "integer", "default": True},
            {"name": "n", "type": "boolean", "default": 1},
            {"name": "n", "type": "date", "default": "31/01/2024"},
            {"name": "n", "type": "uuid", "default": "not-a-uuid"},
            {"name": "n", "type": "enum", "enum": ["a", "b"], "default": "c"},
            {"name": "n", "type": "json", "default": "{}"},
            {"name": "n", "type": "json", "default": 0},
            {"name": "n", "type": "number", "default": float("inf")},
        ],
    )
    def test_invalid_defaults(self, minimal_config_dict: Dict[str, Any], field: Dict[str, Any]) -> None:
        minimal_config_dict["resources"][0]["fields"].append(field)
        assert _codes(validate_defaults(_config(minimal_config_dict))) == [
            "INVALID_DEFAULT"
        ]

    @pytest.mark.parametrize(
        "field",
        [
            {"name": "n", "type": "number", "default": 3},
            {"name": "n", "type": "boolean", "default": False},
            {"name": "n", "type": "date", "default": "2024-01-31"},
            {"name": "n", "type": "string", "default": None},
            {"name": "n", "type": "json", "default": None},
            {"name": "n", "type": "enum", "enum": ["a", "b"], "default": "b"},
        ],
    )
    def test_valid_defaults(self, minimal_config_dict: Dict[str, Any], field: Dict[str, Any]) -> None:
        minimal_config_dict["resources"][0]["fields"].append(field)
        assert validate_defaults(_config(minimal_config_dict)).is_valid


# ===========================================================================
# Tests for validate_semantics
# ===========================================================================


class TestValidateSemantics:
    def test_reference_config_is_clean(self, api_config: ApiConfig) -> None:
        result = validate_semantics(api_config)
        assert result.is_valid, result.format_report()
        assert not result.has_warnings

    def test_collects_every_error(self, config_dict: Dict[str, Any]) -> None:
        post = config_dict["resources"][1]
        post["indexes"].append({"fields": ["ghost"]})
        post["fields"].append({"name": "kind", "type": "enum"})
        for field in post["fields"]:
            if field["name"] == "authorId":
                field["relation"] = "writer.id"
        codes = _codes(validate_semantics(_config(config_dict)))
        assert sorted(codes) == [
            "ENUM_VALUES_MISSING",
            "UNKNOWN_INDEX_FIELD",
            "UNKNOWN_RELATION_RESOURCE",
        ]
