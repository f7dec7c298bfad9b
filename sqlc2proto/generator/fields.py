"""Field naming and field descriptor extraction."""

import re
from collections.abc import Collection
from dataclasses import dataclass
from enum import StrEnum

from .descriptors import FieldDescriptor
from .typemap import (
    Conversion,
    TypeMappingConfig,
    message_conversion,
    pointer_conversion,
    pointer_slice_conversion,
    slice_conversion,
)
from .types import GoField, GoType, NamedType, PointerType, SliceType

# An ID-like acronym that ends a word: "UserID", "UUIDValue", "ItemIDs"
_ID_ACRONYM = re.compile(r"(UUID|ULID|ID)(?=[A-Z][a-z]|[_\d]|s?$)")
_WORD = re.compile(r"[A-Z]+(?=[A-Z][a-z])|[A-Z]?[a-z]+\d*|[A-Z]+\d*|\d+")
_TAG = re.compile(r'(\w+):"((?:[^"\\]|\\.)*)"')

BYTE_TYPES = frozenset({"byte", "uint8"})


class FieldStyle(StrEnum):
    """How wire field names are derived from Go field names."""

    JSON = "json"
    SNAKE_CASE = "snake_case"
    ORIGINAL = "original"


def camel_to_snake(name: str) -> str:
    """Convert a Go identifier to snake_case.

    ID-like acronyms are kept whole, so ``UserID`` becomes ``user_id`` and
    ``UserUUID`` becomes ``user_uuid``.
    Other acronyms end one capital before the next word, so ``OAuthID``
    becomes ``o_auth_id`` and ``HTTPServer`` becomes ``http_server``.
    """
    name = _ID_ACRONYM.sub(lambda m: m.group(1).capitalize(), name)
    return "_".join(word.lower() for word in _WORD.findall(name))


def go_field_name(name: str) -> str:
    """Name protoc-gen-go gives the Go struct field for a proto field."""
    out = []
    i = 0
    while i < len(name):
        c = name[i]
        if c == "_" and i == 0:
            out.append("X")
        elif c == "_" and i + 1 < len(name) and name[i + 1].islower():
            pass
        elif c.isdigit():
            out.append(c)
        else:
            out.append(c.upper() if c.islower() else c)
            while i + 1 < len(name) and name[i + 1].islower():
                i += 1
                out.append(name[i])
        i += 1
    return "".join(out)


def is_exported(name: str) -> bool:
    return name[:1].isupper()


def parse_tag(tag: str | None) -> dict[str, list[str]]:
    """Split a struct tag into its keys and comma-separated options.

    Anything not in ``key:"value"`` form is ignored.
    """
    if not tag:
        return {}
    return {key: value.split(",") for key, value in _TAG.findall(tag)}


def json_alias(tags: dict[str, list[str]]) -> str | None:
    parts = tags.get("json")
    if not parts or parts[0] in ("", "-"):
        return None
    return parts[0]


def has_omitempty(tags: dict[str, list[str]]) -> bool:
    return any("omitempty" in parts[1:] for parts in tags.values())


def wire_name(name: str, alias: str | None, style: FieldStyle) -> str:
    if style == FieldStyle.ORIGINAL:
        return name
    if style == FieldStyle.JSON and alias:
        return alias
    return camel_to_snake(name)


@dataclass(frozen=True)
class FieldType:
    """Wire-level view of a Go type expression."""

    wire_type: str
    repeated: bool
    optional: bool
    conversion: Conversion
    matched: bool
    message: str | None = None


def resolve_type(
    go_type: GoType,
    typemap: TypeMappingConfig,
    messages: Collection[str] = frozenset(),
) -> FieldType:
    """Classify a type expression and resolve it against the mapping table.

    Pointers force ``optional``. Slices are repeated, except byte slices
    which are a single ``bytes`` value (so ``[][]byte`` is repeated bytes).
    Pointer elements of a slice are dereferenced one by one.
    """
    pointer = False
    while isinstance(go_type, PointerType):
        pointer = True
        go_type = go_type.elem

    repeated = False
    elem_pointer = False
    if isinstance(go_type, SliceType):
        if _is_byte(go_type.elem):
            key = "[]byte"
        elif isinstance(go_type.elem, SliceType) and _is_byte(go_type.elem.elem):
            key, repeated = "[]byte", True
        else:
            elem = go_type.elem
            while isinstance(elem, (PointerType, SliceType)):
                elem_pointer = elem_pointer or isinstance(elem, PointerType)
                elem = elem.elem
            key, repeated = str(elem), True
    else:
        key = str(go_type)

    if "." not in key and key in messages and not typemap.is_mapped(key):
        return FieldType(
            wire_type=key,
            repeated=repeated,
            optional=pointer,
            conversion=message_conversion(
                key, pointer=elem_pointer if repeated else pointer, repeated=repeated
            ),
            matched=True,
            message=key,
        )

    resolution = typemap.resolve(key)
    conversion = resolution.conversion
    if repeated and not conversion.is_identity:
        conversion = slice_conversion(conversion)
    if repeated and elem_pointer:
        conversion = pointer_slice_conversion(conversion)
    elif pointer:
        conversion = pointer_conversion(conversion)

    return FieldType(
        wire_type=resolution.wire_type,
        repeated=repeated,
        optional=pointer or resolution.optional,
        conversion=conversion,
        matched=resolution.matched,
    )


def _is_byte(go_type: GoType) -> bool:
    return isinstance(go_type, NamedType) and go_type.name in BYTE_TYPES


def extract_field(
    go_field: GoField,
    number: int,
    style: FieldStyle,
    typemap: TypeMappingConfig,
    messages: Collection[str] = frozenset(),
) -> FieldDescriptor | None:
    """Build the descriptor for one struct field.

    Embedded and unexported fields return None.
    """
    if not go_field.name or not is_exported(go_field.name):
        return None

    tags = parse_tag(go_field.tag)
    alias = json_alias(tags)
    name = wire_name(go_field.name, alias, style)
    field_type = resolve_type(go_field.type, typemap, messages)
    conversion = field_type.conversion

    return FieldDescriptor(
        name=name,
        wire_type=field_type.wire_type,
        number=number,
        source_name=go_field.name,
        source_type=str(go_field.type),
        repeated=field_type.repeated,
        optional=field_type.optional or has_omitempty(tags),
        comment=go_field.comment,
        json_name=alias,
        to_wire=conversion.to_wire(f"in.{go_field.name}"),
        from_wire=conversion.from_wire(f"in.{go_field_name(name)}"),
        helpers=list(conversion.helpers),
        imports=list(conversion.imports),
    )
