"""Go mapper emitter.

Mappers convert between sqlc model structs and the Go types protoc generates
for ``models.proto``. Only the helper functions and imports referenced by a
field conversion are written.
"""

from .descriptors import MessageDescriptor
from .fields import go_field_name
from .output import render

MAPPERS_DIR = "mappers"
MAPPERS_FILE = "mappers.go"
MAPPERS_PACKAGE = "mappers"


def is_stdlib(import_path: str) -> bool:
    """Standard library paths have no dot in their first element."""
    return "." not in import_path.split("/", 1)[0]


def used_helpers(messages: list[MessageDescriptor]) -> set[str]:
    return {helper for message in messages for field in message.fields for helper in field.helpers}


def used_imports(messages: list[MessageDescriptor]) -> tuple[list[str], list[str]]:
    """Imports referenced by field conversions, split into stdlib and others."""
    paths = {path for message in messages for field in message.fields for path in field.imports}
    std = sorted(path for path in paths if is_stdlib(path))
    other = sorted(path for path in paths if not is_stdlib(path))
    return std, other


def render_mappers(
    messages: list[MessageDescriptor],
    proto_import: str,
    db_import: str,
    package: str = MAPPERS_PACKAGE,
) -> str:
    std_imports, imports = used_imports(messages)
    return render(
        "mappers.go.j2",
        messages=messages,
        package=package,
        proto_import=proto_import,
        db_import=db_import,
        std_imports=std_imports,
        imports=imports,
        helpers=used_helpers(messages),
        go_name=go_field_name,
    )
