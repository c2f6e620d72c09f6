"""
tests/conftest.py
Shared fixtures for the crudgen test suite.

Configuration fixtures are plain dicts, deep-copied per test so each test
can mutate freely. No external mocking libraries are used; YAML files are
written into pytest's tmp_path.
"""

from __future__ import annotations

import copy
import pathlib
from datetime import datetime, timezone
from typing import Any, Dict

import pytest
import yaml

from crudgen.migrations import MigrationSequence
from crudgen.models import ApiConfig


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

ROOT_DIR: pathlib.Path = pathlib.Path(__file__).resolve().parent.parent
EXAMPLE_CONFIG_PATH: pathlib.Path = ROOT_DIR / "crud_example.yaml"

FIXED_START: datetime = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Reference configuration fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def raw_config_dict() -> Dict[str, Any]:
    """Load crud_example.yaml once per session and return it as a dict."""
    assert EXAMPLE_CONFIG_PATH.exists(), (
        f"Reference config not found at {EXAMPLE_CONFIG_PATH}."
    )
    with open(EXAMPLE_CONFIG_PATH, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    assert isinstance(data, dict), "Top-level YAML must be a mapping."
    return data


@pytest.fixture()
def config_dict(raw_config_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Return a deep copy so each test can mutate freely."""
    return copy.deepcopy(raw_config_dict)


@pytest.fixture()
def config_yaml_text(config_dict: Dict[str, Any]) -> str:
    return yaml.safe_dump(config_dict, sort_keys=False)


@pytest.fixture()
def config_yaml_path(config_dict: Dict[str, Any], tmp_path: pathlib.Path) -> pathlib.Path:
    """Write the config dict to a temporary YAML file and return its path."""
    path = tmp_path / "api.yaml"
    with open(path, "w", encoding="utf-8") as fh:
        yaml.safe_dump(config_dict, fh, default_flow_style=False, sort_keys=False)
    return path


@pytest.fixture()
def api_config(config_dict: Dict[str, Any]) -> ApiConfig:
    return ApiConfig.model_validate(config_dict)


# ---------------------------------------------------------------------------
# Minimal / edge-case configuration fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def minimal_config_dict() -> Dict[str, Any]:
    """Smallest valid config: one resource, one field, no indexes."""
    return {
        "name": "minimal-api",
        "resources": [
            {
                "name": "item",
                "fields": [{"name": "title", "type": "string", "required": True}],
            }
        ],
    }


@pytest.fixture()
def task_config_dict() -> Dict[str, Any]:
    """
    A resource whose generated schema module imports with plain pydantic
    (no email or url fields, which need extra packages).
    """
    return {
        "name": "todo-api",
        "version": 2,
        "resources": [
            {
                "name": "task",
                "description": "Things to do",
                "fields": [
                    {
                        "name": "title",
                        "type": "string",
                        "required": True,
                        "min": 1,
                        "max": 50,
                        "searchable": True,
                    },
                    {"name": "done", "type": "boolean", "default": False},
                    {
                        "name": "priority",
                        "type": "enum",
                        "enum": ["low", "high"],
                        "default": "low",
                    },
                    {"name": "estimate", "type": "integer", "min": 0, "max": 100},
                    {"name": "dueOn", "type": "date"},
                    {"name": "meta", "type": "json"},
                    {"name": "ownerId", "type": "uuid"},
                    {
                        "name": "notes",
                        "type": "text",
                        "description": "Free-form notes",
                    },
                ],
                "indexes": [{"fields": ["title"]}],
            }
        ],
    }


@pytest.fixture()
def task_config(task_config_dict: Dict[str, Any]) -> ApiConfig:
    return ApiConfig.model_validate(task_config_dict)


@pytest.fixture()
def config_dangling_relation(config_dict: Dict[str, Any]) -> Dict[str, Any]:
    """The post's author relation points at a resource that does not exist."""
    for field in config_dict["resources"][1]["fields"]:
        if field["name"] == "authorId":
            field["relation"] = "writer.id"
    return config_dict


@pytest.fixture()
def config_enum_without_values(minimal_config_dict: Dict[str, Any]) -> Dict[str, Any]:
    minimal_config_dict["resources"][0]["fields"].append(
        {"name": "status", "type": "enum"}
    )
    return minimal_config_dict


@pytest.fixture()
def config_duplicate_resources(minimal_config_dict: Dict[str, Any]) -> Dict[str, Any]:
    first = minimal_config_dict["resources"][0]
    minimal_config_dict["resources"].append(copy.deepcopy(first))
    return minimal_config_dict


# ---------------------------------------------------------------------------
# Generation helpers
# ---------------------------------------------------------------------------


@pytest.fixture()
def fixed_start() -> datetime:
    return FIXED_START


@pytest.fixture()
def fixed_sequence(fixed_start: datetime) -> MigrationSequence:
    """A migration sequence with a pinned stamp for reproducible names."""
    return MigrationSequence(fixed_start)
