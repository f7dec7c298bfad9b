"""Protobuf schema emitter."""

from collections.abc import Iterable

from .descriptors import FieldDescriptor, MessageDescriptor, ServiceDescriptor, ServiceField
from .fields import camel_to_snake
from .output import render

MODELS_FILE = "models.proto"
SERVICE_FILE = "service.proto"

# Well-known message types and the file that declares them
WELL_KNOWN_IMPORTS = {
    "google.protobuf.Timestamp": "google/protobuf/timestamp.proto",
    "google.protobuf.Duration": "google/protobuf/duration.proto",
    "google.protobuf.Empty": "google/protobuf/empty.proto",
    "google.protobuf.Any": "google/protobuf/any.proto",
    "google.protobuf.Struct": "google/protobuf/struct.proto",
    "google.protobuf.Value": "google/protobuf/struct.proto",
    "google.protobuf.ListValue": "google/protobuf/struct.proto",
    "google.protobuf.DoubleValue": "google/protobuf/wrappers.proto",
    "google.protobuf.FloatValue": "google/protobuf/wrappers.proto",
    "google.protobuf.Int64Value": "google/protobuf/wrappers.proto",
    "google.protobuf.UInt64Value": "google/protobuf/wrappers.proto",
    "google.protobuf.Int32Value": "google/protobuf/wrappers.proto",
    "google.protobuf.UInt32Value": "google/protobuf/wrappers.proto",
    "google.protobuf.BoolValue": "google/protobuf/wrappers.proto",
    "google.protobuf.StringValue": "google/protobuf/wrappers.proto",
    "google.protobuf.BytesValue": "google/protobuf/wrappers.proto",
}


def field_line(field: FieldDescriptor | ServiceField) -> str:
    """Render a field declaration, e.g. ``repeated string tags = 3;``.

    Proto3 fields are implicitly optional, so the optional flag is not
    rendered.
    """
    line = f"{field.wire_type} {field.name} = {field.number}"
    if field.repeated:
        line = f"repeated {line}"
    if field.json_name:
        line += f' [json_name = "{field.json_name}"]'
    return line + ";"


def comment_lines(comment: str | None) -> list[str]:
    if not comment:
        return []
    return [f"// {line}".rstrip() for line in comment.splitlines()]


def well_known_imports(wire_types: Iterable[str]) -> list[str]:
    return sorted({WELL_KNOWN_IMPORTS[t] for t in wire_types if t in WELL_KNOWN_IMPORTS})


def _message_fields(messages: list[MessageDescriptor]) -> list[FieldDescriptor]:
    return [field for message in messages for field in message.fields]


def _service_fields(services: list[ServiceDescriptor]) -> list[ServiceField]:
    return [
        field
        for service in services
        for method in service.methods
        for field in (*method.request_fields, *method.response_fields)
    ]


def render_models(messages: list[MessageDescriptor], package: str, go_package: str) -> str:
    """Render ``models.proto`` with one message per descriptor."""
    return render(
        "models.proto.j2",
        messages=messages,
        package=package,
        go_package=go_package,
        imports=well_known_imports(field.wire_type for field in _message_fields(messages)),
        field_line=field_line,
        comment_lines=comment_lines,
    )


def render_services(
    services: list[ServiceDescriptor],
    messages: list[MessageDescriptor],
    package: str,
    go_package: str,
) -> str:
    """Render request and response messages and the services that use them."""
    fields = _service_fields(services)
    known = {message.name for message in messages}
    imports = well_known_imports(field.wire_type for field in fields)
    if any(field.wire_type in known for field in fields):
        imports.insert(0, MODELS_FILE)

    return render(
        "service.proto.j2",
        services=services,
        package=package,
        go_package=go_package,
        imports=imports,
        field_line=field_line,
        comment_lines=comment_lines,
    )


def service_file_name(service: ServiceDescriptor) -> str:
    """File name of a service when each service gets its own file."""
    return f"{camel_to_snake(service.name)}.proto"
