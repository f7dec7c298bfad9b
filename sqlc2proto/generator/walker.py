"""Walk an sqlc output directory into message and query descriptors."""

import logging
from dataclasses import dataclass
from pathlib import Path

from .descriptors import MessageDescriptor, QueryDescriptor, QueryKind, QueryParam
from .fields import BYTE_TYPES, FieldStyle, extract_field
from .parser import SourceError, parse
from .typemap import TypeMappingConfig
from .types import GoFile, GoInterface, GoMethod, GoStruct, NamedType, SliceType

log = logging.getLogger(__name__)

# sqlc's query implementations and Querier interface live in these files
SKIPPED_NAME_MARKERS = ("query", "querier")
BOILERPLATE_FILES = frozenset({"db.go"})
QUERIES_STRUCT = "Queries"

QUERIER_INTERFACE = "Querier"
QUERIER_FILES = ("querier.go", "db.go", "interface.go")
CONTEXT_TYPES = frozenset({"context.Context"})

ONE_PREFIXES = ("Get", "Find", "Lookup")
MANY_PREFIXES = ("List", "Search", "Query")


class QuerierNotFoundError(SourceError):
    """Raised when no Querier interface exists in the source directory."""


@dataclass
class SourceFile:
    path: Path
    go_file: GoFile


def is_model_file(path: Path) -> bool:
    name = path.name
    if path.suffix != ".go" or name.endswith("_test.go") or name in BOILERPLATE_FILES:
        return False
    lowered = name.lower()
    return not any(marker in lowered for marker in SKIPPED_NAME_MARKERS)


def read_source(path: Path) -> SourceFile:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SourceError(f"Cannot read {path}: {exc}") from exc
    return SourceFile(path=path, go_file=parse(text, filename=str(path)))


def read_models(directory: Path) -> list[SourceFile]:
    """Parse every model file below ``directory``, in path order."""
    directory = Path(directory)
    if not directory.is_dir():
        raise SourceError(f"Source directory {directory} does not exist")

    return [read_source(path) for path in sorted(directory.rglob("*.go")) if is_model_file(path)]


def extract_messages(
    sources: list[SourceFile],
    style: FieldStyle,
    typemap: TypeMappingConfig,
) -> list[MessageDescriptor]:
    """Build one message per struct. Field numbers count only kept fields."""
    structs = [
        (source, struct)
        for source in sources
        for struct in source.go_file.structs
        if struct.name != QUERIES_STRUCT
    ]
    known = frozenset(struct.name for _, struct in structs)

    return [
        _extract_message(struct, source.go_file.package, style, typemap, known)
        for source, struct in structs
    ]


def _extract_message(
    struct: GoStruct,
    package: str,
    style: FieldStyle,
    typemap: TypeMappingConfig,
    known: frozenset[str],
) -> MessageDescriptor:
    fields = []
    for go_field in struct.fields:
        descriptor = extract_field(go_field, len(fields) + 1, style, typemap, known)
        if descriptor is not None:
            fields.append(descriptor)

    return MessageDescriptor(
        name=struct.name,
        fields=fields,
        source_struct=struct.name,
        package=package,
        comment=struct.comment,
    )


def walk_messages(
    directory: Path,
    style: FieldStyle,
    typemap: TypeMappingConfig,
) -> list[MessageDescriptor]:
    return extract_messages(read_models(directory), style, typemap)


def find_querier(directory: Path) -> GoInterface:
    """Locate the Querier interface sqlc emits with ``emit_interface``."""
    directory = Path(directory)
    if not directory.is_dir():
        raise SourceError(f"Source directory {directory} does not exist")

    candidates = [directory / name for name in QUERIER_FILES]
    candidates += [p for p in sorted(directory.glob("*.go")) if p not in candidates]

    for path in candidates:
        if not path.is_file() or path.name.endswith("_test.go"):
            continue
        if f"type {QUERIER_INTERFACE} interface" not in path.read_text(encoding="utf-8"):
            continue
        for interface in read_source(path).go_file.interfaces:
            if interface.name == QUERIER_INTERFACE:
                log.debug("Found %s interface in %s", QUERIER_INTERFACE, path)
                return interface

    raise QuerierNotFoundError(f"No {QUERIER_INTERFACE} interface found in {directory}")


def extract_query(method: GoMethod) -> QueryDescriptor:
    params = [
        QueryParam(name=param.name or f"arg{i}", type=str(param.type))
        for i, param in enumerate(method.params)
        if str(param.type) not in CONTEXT_TYPES
    ]

    kind = QueryKind.EXEC
    return_type = ""
    results = [r for r in method.results if not (isinstance(r, NamedType) and r.name == "error")]
    if results:
        result = results[0]
        if isinstance(result, SliceType) and result.length is None and not _is_bytes(result):
            kind, return_type = QueryKind.MANY, str(result.elem)
        else:
            kind, return_type = QueryKind.ONE, str(result)
    elif method.name.startswith(ONE_PREFIXES):
        kind = QueryKind.ONE
    elif method.name.startswith(MANY_PREFIXES):
        kind = QueryKind.MANY

    return QueryDescriptor(
        name=method.name,
        kind=kind,
        params=params,
        return_type=return_type,
        comment=method.comment,
    )


def _is_bytes(go_type: SliceType) -> bool:
    return isinstance(go_type.elem, NamedType) and go_type.elem.name in BYTE_TYPES


def walk_queries(directory: Path) -> list[QueryDescriptor]:
    return [extract_query(method) for method in find_querier(directory).methods]


def base_type_name(type_name: str) -> str:
    """Strip pointer and slice markers: ``[]*Author`` becomes ``Author``."""
    return type_name.lstrip("*[]")

