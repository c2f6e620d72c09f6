# File: crudgen/utils.py
"""
CrudGen - Utility Functions & Helpers
======================================
Naming conversions, literal rendering, checksums and timing helpers used
throughout the generation pipeline.

Performance strategy:
- String-conversion functions are decorated with ``@lru_cache(maxsize=None)``
  because the same resource and field names are converted many times while
  rendering schemas, endpoints, routes and DDL.
- No external dependencies beyond the Python standard library.
"""

from __future__ import annotations

import functools
import hashlib
import json
import logging
import re
import sys
import time
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set, Tuple

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.utils")

# ---------------------------------------------------------------------------
# Pre-compiled regex patterns (compiled once at module load)
# ---------------------------------------------------------------------------

_CAMEL_TO_SNAKE_RE1: re.Pattern[str] = re.compile(r"([A-Z]+)([A-Z][a-z])")
_CAMEL_TO_SNAKE_RE2: re.Pattern[str] = re.compile(r"([a-z0-9])([A-Z])")
_NON_ALPHANUM_RE: re.Pattern[str] = re.compile(r"[^a-zA-Z0-9]")
_MULTI_UNDERSCORE_RE: re.Pattern[str] = re.compile(r"_{2,}")
_LEADING_TRAILING_UNDERSCORE_RE: re.Pattern[str] = re.compile(r"^_+|_+$")
_SPLIT_WORDS_RE: re.Pattern[str] = re.compile(
    r"[A-Z]?[a-z]+|[A-Z]+(?=[A-Z][a-z]|\d|\b)|[A-Z]|\d+"
)

# Irregular plurals common in resource names
_IRREGULAR_PLURALS: Dict[str, str] = {
    "person": "people",
    "child": "children",
    "man": "men",
    "woman": "women",
    "mouse": "mice",
    "datum": "data",
    "index": "indices",
    "matrix": "matrices",
    "vertex": "vertices",
    "axis": "axes",
    "crisis": "crises",
    "analysis": "analyses",
    "status": "statuses",
    "address": "addresses",
}


# ---------------------------------------------------------------------------
# Cached string transformation functions
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def to_snake_case(name: str) -> str:
    """
    Convert any string to snake_case.

    Examples:
        >>> to_snake_case("BlogPost")
        'blog_post'
        >>> to_snake_case("authorId")
        'author_id'
        >>> to_snake_case("already_snake")
        'already_snake'
    """
    if not name:
        return ""
    s: str = _CAMEL_TO_SNAKE_RE1.sub(r"\1_\2", name)
    s = _CAMEL_TO_SNAKE_RE2.sub(r"\1_\2", s)
    s = _NON_ALPHANUM_RE.sub("_", s)
    s = _MULTI_UNDERSCORE_RE.sub("_", s)
    s = _LEADING_TRAILING_UNDERSCORE_RE.sub("", s)
    return s.lower()


@functools.lru_cache(maxsize=None)
def to_pascal_case(name: str) -> str:
    """
    Convert any string to PascalCase.

    Examples:
        >>> to_pascal_case("blog_post")
        'BlogPost'
        >>> to_pascal_case("blogPost")
        'BlogPost'
    """
    if not name:
        return ""
    words: Tuple[str, ...] = _extract_words(name)
    return "".join(word.capitalize() for word in words)


@functools.lru_cache(maxsize=None)
def to_kebab_case(name: str) -> str:
    """Convert any string to kebab-case (used in URL paths)."""
    if not name:
        return ""
    words: Tuple[str, ...] = _extract_words(name)
    return "-".join(w.lower() for w in words)


@functools.lru_cache(maxsize=None)
def to_plural(name: str) -> str:
    """
    Naive English pluralisation sufficient for table and route names.

    Examples:
        >>> to_plural("post")
        'posts'
        >>> to_plural("category")
        'categories'
        >>> to_plural("blogPost")
        'blogPosts'
    """
    if not name:
        return ""

    # Only the trailing word decides the suffix ("blogPost" -> "blogPosts")
    words: Tuple[str, ...] = _extract_words(name)
    last: str = words[-1] if words else name.lower()
    head: str = name[: len(name) - len(last)] if name.lower().endswith(last) else ""
    tail: str = name[len(head):]

    if last in _IRREGULAR_PLURALS:
        plural: str = _IRREGULAR_PLURALS[last]
        if tail[:1].isupper():
            plural = plural[0].upper() + plural[1:]
        return head + plural

    lower: str = tail.lower()

    # Already plural-looking (very naive)
    if lower.endswith("s") and not lower.endswith("ss"):
        return name

    if lower.endswith(("sh", "ch", "x", "z", "ss")):
        return name + "es"
    if lower.endswith("y") and len(lower) > 1 and lower[-2] not in "aeiou":
        return name[:-1] + "ies"
    if lower.endswith("fe"):
        return name[:-2] + "ves"
    if lower.endswith("f"):
        return name[:-1] + "ves"

    return name + "s"


@functools.lru_cache(maxsize=None)
def _extract_words(name: str) -> Tuple[str, ...]:
    """
    Extract individual lowercase words from any casing style.

    Returns a tuple (hashable for LRU cache).
    """
    cleaned: str = _NON_ALPHANUM_RE.sub(" ", name)
    words: List[str] = _SPLIT_WORDS_RE.findall(cleaned)
    return tuple(w.lower() for w in words if w)


# ---------------------------------------------------------------------------
# Resource naming conventions
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def resource_to_class_name(resource_name: str) -> str:
    """PascalCase model name: ``blogPost`` -> ``BlogPost``."""
    return to_pascal_case(resource_name)


@functools.lru_cache(maxsize=None)
def resource_to_table_name(resource_name: str) -> str:
    """Storage table name (snake, plural): ``blogPost`` -> ``blog_posts``."""
    return to_snake_case(to_plural(resource_name))


@functools.lru_cache(maxsize=None)
def resource_to_module_name(resource_name: str) -> str:
    """Python module name for generated files: ``blogPost`` -> ``blog_post``."""
    return to_snake_case(resource_name)


@functools.lru_cache(maxsize=None)
def resource_to_route_prefix(resource_name: str) -> str:
    """URL collection path (kebab, plural): ``blogPost`` -> ``/blog-posts``."""
    return f"/{to_kebab_case(to_plural(resource_name))}"


def index_name(table_name: str, fields: Sequence[str], *, unique: bool = False) -> str:
    """
    Index name: ``idx_posts_status_createdAt``, or ``uidx_...`` when unique.

    Field names may contain underscores, so distinct field lists can map
    to one name; ``crudgen.validators.validate_indexes`` reports clashes.
    """
    prefix: str = "uidx" if unique else "idx"
    return f"{prefix}_{table_name}_{'_'.join(fields)}"


# ---------------------------------------------------------------------------
# Code formatting helpers
# ---------------------------------------------------------------------------


def python_literal(value: Any) -> str:
    """
    Render a scalar configuration value as Python source.

    Strings use double quotes; ``json.dumps`` output is a valid Python
    string literal for every input.
    """
    if value is None:
        return "None"
    if isinstance(value, bool):
        return "True" if value else "False"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    raise TypeError(f"Cannot render {type(value).__name__} as a Python literal.")


def format_tuple_literal(items: Sequence[str]) -> str:
    """Format a tuple-of-strings literal, keeping the one-element comma."""
    if not items:
        return "()"
    inner: str = ", ".join(python_literal(item) for item in items)
    if len(items) == 1:
        return f"({inner},)"
    return f"({inner})"


def build_import_block(imports: Mapping[str, Set[str]]) -> str:
    """
    Build a sorted, de-duplicated import block from a mapping of
    module -> set of names.

    Example:
        >>> build_import_block({"typing": {"Optional", "Any"}, "uuid": {"UUID"}})
        'from typing import Any, Optional\\nfrom uuid import UUID'
    """
    lines: List[str] = []
    for module in sorted(imports.keys()):
        names: List[str] = sorted(imports[module])
        if names:
            lines.append(f"from {module} import {', '.join(names)}")
        else:
            lines.append(f"import {module}")
    return "\n".join(lines)


def merge_import_dicts(*dicts: Mapping[str, Set[str]]) -> Dict[str, Set[str]]:
    """Merge multiple import dictionaries into one, unifying sets."""
    result: Dict[str, Set[str]] = {}
    for d in dicts:
        for module, names in d.items():
            result.setdefault(module, set()).update(names)
    return result


# ---------------------------------------------------------------------------
# Checksum & metrics
# ---------------------------------------------------------------------------


def sha256_hex(content: str) -> str:
    """Return SHA-256 hex digest of a string. Used for change detection only."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def has_content_changed(content: str, previous_checksum: Optional[str]) -> bool:
    """True when *content* differs from what *previous_checksum* was taken of."""
    if not previous_checksum:
        return True
    return sha256_hex(content) != previous_checksum.strip()


def count_lines(content: str) -> int:
    """Count the number of lines in a string."""
    if not content:
        return 0
    return content.count("\n") + (1 if not content.endswith("\n") else 0)


# ---------------------------------------------------------------------------
# Timer context manager
# ---------------------------------------------------------------------------


class Timer:
    """
    Simple context-manager timer for profiling generation steps.

    Usage:
        with Timer("generate schemas") as t:
            ...
        print(t.elapsed)
    """

    __slots__ = ("label", "start_time", "end_time", "elapsed")

    def __init__(self, label: str = "operation") -> None:
        self.label: str = label
        self.start_time: float = 0.0
        self.end_time: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[object],
    ) -> None:
        self.end_time = time.perf_counter()
        self.elapsed = self.end_time - self.start_time
        logger.debug("Timer [%s]: %.4f seconds", self.label, self.elapsed)

    def __repr__(self) -> str:
        return f"<Timer {self.label}: {self.elapsed:.4f}s>"


# ---------------------------------------------------------------------------
# Logging setup (for host applications; the library never calls this itself)
# ---------------------------------------------------------------------------


def configure_logging(verbosity: int = 0) -> logging.Logger:
    """
    Configure the ``crudgen`` logger based on verbosity level.

    Args:
        verbosity: 0 = WARNING, 1 = INFO, 2+ = DEBUG.

    Returns:
        The configured package logger.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    handler: logging.StreamHandler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    formatter: logging.Formatter = logging.Formatter(
        "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
        datefmt="%H:%M:%S",
    )
    handler.setFormatter(formatter)

    root_logger: logging.Logger = logging.getLogger("crudgen")
    root_logger.setLevel(level)

    # Remove existing handlers to prevent duplication
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False
    return root_logger


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "to_snake_case",
    "to_pascal_case",
    "to_kebab_case",
    "to_plural",
    "resource_to_class_name",
    "resource_to_table_name",
    "resource_to_module_name",
    "resource_to_route_prefix",
    "index_name",
    "python_literal",
    "format_tuple_literal",
    "build_import_block",
    "merge_import_dicts",
    "sha256_hex",
    "has_content_changed",
    "count_lines",
    "Timer",
    "configure_logging",
]

logger.debug("crudgen.utils loaded: %d public symbols.", len(__all__))
