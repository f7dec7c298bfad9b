"""Includes file handling and dependency resolution.

An includes file selects a subset of models and queries to generate::

    models:
      - Author
    queries:
      - GetBook
      # - ListBooks

Commented entries are not included. Models reachable from the selection are
added by :func:`resolve_dependencies`.
"""

import json
import logging
from collections.abc import Iterable
from pathlib import Path

import yaml

from .descriptors import IncludesSet, MessageDescriptor, QueryDescriptor
from .output import render, write_artifact
from .walker import base_type_name

log = logging.getLogger(__name__)

# Wire types that never name a generated message
PRIMITIVE_WIRE_TYPES = frozenset(
    {
        "string",
        "bytes",
        "bool",
        "int32",
        "int64",
        "uint32",
        "uint64",
        "sint32",
        "sint64",
        "fixed32",
        "fixed64",
        "sfixed32",
        "sfixed64",
        "float",
        "double",
        "google.protobuf.Timestamp",
    }
)


class IncludesError(RuntimeError):
    """Raised when an includes file cannot be read."""


def _names(data: dict, key: str, path: Path) -> list[str]:
    entries = data.get(key) or []
    if not isinstance(entries, list):
        raise IncludesError(f"{path}: '{key}' must be a list")
    return [str(entry) for entry in entries if entry is not None]


def load_includes(path: Path) -> IncludesSet:
    """Read the active entries of an includes file."""
    path = Path(path)
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise IncludesError(f"Cannot read includes file {path}: {exc}") from exc

    if data is None:
        return IncludesSet()
    if not isinstance(data, dict):
        raise IncludesError(f"{path}: expected a mapping with 'models' and 'queries'")

    return IncludesSet(models=_names(data, "models", path), queries=_names(data, "queries", path))


def _entry(name: str) -> str:
    # Quote names YAML would read as something else, e.g. Yes or Null
    return name if yaml.safe_load(name) == name else json.dumps(name)


def render_includes(models: Iterable[str], queries: Iterable[str], *, active: bool = False) -> str:
    return render(
        "includes.yaml.j2",
        models=[_entry(name) for name in models],
        queries=[_entry(name) for name in queries],
        active=active,
    )


def write_includes(
    path: Path, models: Iterable[str], queries: Iterable[str], *, active: bool = False
) -> None:
    """Write every known name, commented out unless ``active``."""
    write_artifact(Path(path), render_includes(models, queries, active=active))


def resolve_dependencies(
    includes: IncludesSet,
    queries: list[QueryDescriptor],
    messages: list[MessageDescriptor],
) -> IncludesSet:
    """Expand the selection with every message reachable from it.

    Parameter and return types of the selected queries, and the fields of
    the selected models, are followed depth first. An empty query selection
    keeps every query, so every query is followed. Query selection itself is
    never expanded.
    """
    by_name = {message.name: message for message in messages}
    by_query = {query.name: query for query in queries}
    models = list(includes.models)
    seen = set(models)

    def visit(roots: list[str]) -> None:
        stack = list(reversed(roots))
        while stack:
            name = stack.pop()
            if name in PRIMITIVE_WIRE_TYPES or name in seen or name not in by_name:
                continue
            seen.add(name)
            models.append(name)
            stack.extend(reversed([field.wire_type for field in by_name[name].fields]))

    for model in includes.models:
        if model in by_name:
            visit([field.wire_type for field in by_name[model].fields])

    for query_name in includes.queries or list(by_query):
        query = by_query.get(query_name)
        if query is None:
            log.warning("Included query %s does not exist", query_name)
            continue
        roots = [base_type_name(param.type) for param in query.params]
        if query.return_type:
            roots.append(base_type_name(query.return_type))
        visit(roots)

    return IncludesSet(models=models, queries=list(includes.queries))


def dependency_additions(original: IncludesSet, resolved: IncludesSet) -> list[str]:
    """Models present in ``resolved`` only because of dependencies."""
    explicit = set(original.models)
    return [model for model in resolved.models if model not in explicit]


def filter_messages(
    messages: list[MessageDescriptor], includes: IncludesSet
) -> list[MessageDescriptor]:
    """Keep the selected messages. An empty model selection keeps everything."""
    if not includes.models:
        return messages
    selected = set(includes.models)
    return [message for message in messages if message.name in selected]


def filter_queries(queries: list[QueryDescriptor], includes: IncludesSet) -> list[QueryDescriptor]:
    """Keep the selected queries. An empty query selection keeps everything."""
    if not includes.queries:
        return queries
    selected = set(includes.queries)
    return [query for query in queries if query.name in selected]
