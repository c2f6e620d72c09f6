# File: crudgen/parser.py
"""
CrudGen - Configuration Parser
===============================
Turns configuration text (YAML, or JSON since YAML is a superset of it)
into the validated intermediate representation.

Three stages, each collecting every problem it finds:

1. syntax  (PyYAML ``safe_load``)
2. shape   (Pydantic model validation, path-qualified messages)
3. meaning (``crudgen.validators.validate_semantics``)

Problems are returned as data on ``ParseResult``; nothing here raises for
bad input.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional, Union

import yaml

from crudgen.errors import ConfigSyntaxError, InvalidConfigError
from crudgen.models import ApiConfig
from crudgen.utils import Timer, sha256_hex
from crudgen.validators import ValidationResult, validate_semantics, validate_shape

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.parser")

SYNTAX_ERROR_CODE: str = "SYNTAX_ERROR"


# ---------------------------------------------------------------------------
# Result container
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class ParseResult:
    """
    Outcome of parsing one configuration text.

    ``config`` may be populated even when ``errors`` is not empty (semantic
    errors); such a configuration must not be used for generation.
    """

    config: Optional[ApiConfig]
    validation: ValidationResult = field(default_factory=ValidationResult)
    source_checksum: str = ""

    @property
    def errors(self) -> List[str]:
        return self.validation.error_messages

    @property
    def warnings(self) -> List[str]:
        return [w.message for w in self.validation.warnings]

    @property
    def is_valid(self) -> bool:
        return self.config is not None and self.validation.is_valid

    def raise_for_errors(self) -> ApiConfig:
        """
        Return the configuration, or raise when it is unusable.

        Raises:
            ConfigSyntaxError: the text could not be parsed at all.
            InvalidConfigError: shape or semantic errors were found.
        """
        if self.is_valid and self.config is not None:
            return self.config
        syntax: List[str] = [
            e.message for e in self.validation.errors if e.code == SYNTAX_ERROR_CODE
        ]
        if syntax:
            raise ConfigSyntaxError(syntax[0])
        raise InvalidConfigError(self.errors)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def load_config_data(text: str) -> Any:
    """Decode configuration text. Raises ``yaml.YAMLError`` on bad syntax."""
    return yaml.safe_load(text)


def parse_config(text: str) -> ParseResult:
    """
    Parse and validate configuration text.

    Args:
        text: YAML or JSON source.

    Returns:
        A ``ParseResult``; check ``is_valid`` / ``errors`` before generating.
    """
    checksum: str = sha256_hex(text)
    result: ValidationResult = ValidationResult()

    with Timer("parse config"):
        try:
            data: Any = load_config_data(text)
        except yaml.YAMLError as exc:
            result.add_error(SYNTAX_ERROR_CODE, f"YAML parsing error: {exc}")
            logger.error("Configuration text is not valid YAML/JSON.")
            return ParseResult(config=None, validation=result, source_checksum=checksum)

        config, shape_result = validate_shape(data)
        result.merge(shape_result)
        if config is None:
            logger.error(
                "Configuration shape is invalid: %d error(s).", result.error_count
            )
            return ParseResult(config=None, validation=result, source_checksum=checksum)

        result.merge(validate_semantics(config))

    logger.info(
        "Parsed configuration '%s': %d resource(s), %s",
        config.name,
        len(config.resources),
        result.summary(),
    )
    return ParseResult(config=config, validation=result, source_checksum=checksum)


def parse_file(path: Union[str, Path]) -> ParseResult:
    """
    Read a configuration file and parse it.

    Raises:
        FileNotFoundError: if *path* does not exist.
    """
    source: Path = Path(path)
    if not source.exists():
        raise FileNotFoundError(f"Configuration file not found: {source}")
    logger.info("Loading configuration from %s", source)
    return parse_config(source.read_text(encoding="utf-8"))


def config_checksum(text: str) -> str:
    """Checksum of configuration text, for "has the config changed?" checks."""
    return sha256_hex(text)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ParseResult",
    "load_config_data",
    "parse_config",
    "parse_file",
    "config_checksum",
]

logger.debug("crudgen.parser loaded: %d public symbols.", len(__all__))
