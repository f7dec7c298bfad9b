"""Mapping from Go types to protobuf wire types and their Go conversions.

Conversions are strategies rather than format strings: each one renders a
forward (Go to wire) and reverse (wire to Go) expression around an access
expression, and names the helper block and imports it relies on so that the
mapper emitter only writes what is actually referenced.
"""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass

log = logging.getLogger(__name__)

STRING = "string"
BYTES = "bytes"
TIMESTAMP = "google.protobuf.Timestamp"

# Go import paths used by generated conversion code
SQL_IMPORT = "database/sql"
JSON_IMPORT = "encoding/json"
TIME_IMPORT = "time"
UUID_IMPORT = "github.com/google/uuid"
PGTYPE_IMPORT = "github.com/jackc/pgx/v5/pgtype"
TIMESTAMPPB_IMPORT = "google.golang.org/protobuf/types/known/timestamppb"

STANDARD_TYPES: Mapping[str, str] = {
    "string": STRING,
    "int": "int32",
    "int16": "int32",
    "int32": "int32",
    "int64": "int64",
    "float32": "float",
    "float64": "double",
    "bool": "bool",
    "[]byte": BYTES,
    "time.Time": TIMESTAMP,
    "pgtype.Date": TIMESTAMP,
    "pgtype.Timestamptz": TIMESTAMP,
    "pgtype.Text": STRING,
    "pgtype.Numeric": STRING,
    "uuid.UUID": STRING,
    "json.RawMessage": STRING,
    "pgtype.Interval": "int64",
}

NULLABLE_TYPES: Mapping[str, str] = {
    "sql.NullString": STRING,
    "sql.NullInt16": "int32",
    "sql.NullInt32": "int32",
    "sql.NullInt64": "int64",
    "sql.NullFloat64": "double",
    "sql.NullBool": "bool",
    "sql.NullTime": TIMESTAMP,
    "uuid.NullUUID": STRING,
}


def _identity(expr: str) -> str:
    return expr


def _call(function: str) -> Callable[[str], str]:
    def render(expr: str) -> str:
        return f"{function}({expr})"

    return render


@dataclass(frozen=True)
class Conversion:
    """Go code converting a value between its source and wire forms."""

    forward: Callable[[str], str] = _identity
    reverse: Callable[[str], str] = _identity
    helpers: tuple[str, ...] = ()
    imports: tuple[str, ...] = ()
    # Go function values for both directions, used to map slices
    functions: tuple[str, str] | None = None

    @property
    def is_identity(self) -> bool:
        return self.forward is _identity and self.reverse is _identity

    def to_wire(self, expr: str) -> str:
        return self.forward(expr)

    def from_wire(self, expr: str) -> str:
        return self.reverse(expr)


IDENTITY = Conversion()


def helper_pair(to_wire: str, from_wire: str, helper: str, *imports: str) -> Conversion:
    """Conversion through a pair of generated helper functions."""
    return Conversion(
        forward=_call(to_wire),
        reverse=_call(from_wire),
        helpers=(helper,),
        imports=imports,
        functions=(to_wire, from_wire),
    )


def message_conversion(message: str, *, pointer: bool = False, repeated: bool = False) -> Conversion:
    """Conversion of a field holding another generated message."""
    if repeated and pointer:
        return Conversion(
            forward=lambda expr: f"mapSlice({expr}, {message}ToProto)",
            reverse=lambda expr: f"mapSlice({expr}, {message}FromProto)",
            helpers=("slice",),
        )
    if repeated:
        return Conversion(
            forward=_call(f"{message}SliceToProto"), reverse=_call(f"{message}SliceFromProto")
        )
    if pointer:
        return Conversion(forward=_call(f"{message}ToProto"), reverse=_call(f"{message}FromProto"))
    return Conversion(
        forward=lambda expr: f"{message}ToProto(&{expr})",
        reverse=_call(f"{message}ValueFromProto"),
    )


def pointer_conversion(conversion: Conversion) -> Conversion:
    """Wrap a conversion for a pointer field: dereference forward, take the address back."""
    return Conversion(
        forward=lambda expr: conversion.forward(f"deref({expr})"),
        reverse=lambda expr: f"ref({conversion.reverse(expr)})",
        helpers=(*conversion.helpers, "pointer"),
        imports=conversion.imports,
    )


def pointer_slice_conversion(conversion: Conversion) -> Conversion:
    """Wrap a slice conversion for pointer elements.

    Elements are dereferenced before the conversion, nil becoming the zero
    value, and addressed after the reverse conversion.
    """
    return Conversion(
        forward=lambda expr: conversion.forward(f"derefs({expr})"),
        reverse=lambda expr: f"refs({conversion.reverse(expr)})",
        helpers=(*conversion.helpers, "pointer_slice"),
        imports=conversion.imports,
    )


def slice_conversion(conversion: Conversion) -> Conversion:
    """Apply a conversion element-wise. Conversions without function values pass through."""
    if conversion.functions is None:
        return conversion
    to_wire, from_wire = conversion.functions
    return Conversion(
        forward=lambda expr: f"mapSlice({expr}, {to_wire})",
        reverse=lambda expr: f"mapSlice({expr}, {from_wire})",
        helpers=(*conversion.helpers, "slice"),
        imports=conversion.imports,
    )


CONVERTERS: Mapping[str, Conversion] = {
    "time.Time": Conversion(
        forward=_call("timestamppb.New"),
        reverse=lambda expr: f"{expr}.AsTime()",
        imports=(TIMESTAMPPB_IMPORT,),
        functions=("timestamppb.New", "(*timestamppb.Timestamp).AsTime"),
    ),
    "int16": Conversion(
        forward=_call("int32"),
        reverse=_call("int16"),
        functions=(
            "func(v int16) int32 { return int32(v) }",
            "func(v int32) int16 { return int16(v) }",
        ),
    ),
    "pgtype.Date": helper_pair(
        "dateToTimestamp",
        "timestampToDate",
        "pgtype_date",
        PGTYPE_IMPORT,
        TIME_IMPORT,
        TIMESTAMPPB_IMPORT,
    ),
    "pgtype.Timestamptz": helper_pair(
        "timestamptzToTimestamp",
        "timestampToTimestamptz",
        "pgtype_timestamptz",
        PGTYPE_IMPORT,
        TIMESTAMPPB_IMPORT,
    ),
    "pgtype.Text": helper_pair("pgtypeTextToString", "stringToPgtypeText", "pgtype_text", PGTYPE_IMPORT),
    "pgtype.Numeric": helper_pair("numericToString", "stringToNumeric", "pgtype_numeric", PGTYPE_IMPORT),
    "uuid.UUID": helper_pair("uuidToString", "stringToUUID", "uuid", UUID_IMPORT),
    "json.RawMessage": helper_pair("jsonToString", "stringToJSON", "json", JSON_IMPORT),
    "pgtype.Interval": helper_pair(
        "intervalToInt64", "int64ToInterval", "pgtype_interval", PGTYPE_IMPORT
    ),
    "sql.NullString": helper_pair("nullStringToString", "stringToNullString", "null_string", SQL_IMPORT),
    "sql.NullInt16": helper_pair("nullInt16ToInt32", "int32ToNullInt16", "null_int16", SQL_IMPORT),
    "sql.NullInt32": helper_pair("nullInt32ToInt32", "int32ToNullInt32", "null_int32", SQL_IMPORT),
    "sql.NullInt64": helper_pair("nullInt64ToInt64", "int64ToNullInt64", "null_int64", SQL_IMPORT),
    "sql.NullFloat64": helper_pair(
        "nullFloat64ToFloat64", "float64ToNullFloat64", "null_float64", SQL_IMPORT
    ),
    "sql.NullBool": helper_pair("nullBoolToBool", "boolToNullBool", "null_bool", SQL_IMPORT),
    "sql.NullTime": helper_pair(
        "nullTimeToTimestamp", "timestampToNullTime", "null_time", SQL_IMPORT, TIMESTAMPPB_IMPORT
    ),
    "uuid.NullUUID": helper_pair("nullUUIDToString", "stringToNullUUID", "null_uuid", UUID_IMPORT),
}


@dataclass(frozen=True)
class Resolution:
    """Outcome of a type lookup."""

    wire_type: str
    optional: bool
    conversion: Conversion
    matched: bool


class TypeMappingConfig:
    """Registry of standard, nullable and converter tables.

    Custom entries are merged at configuration time. The first lookup freezes
    the table so every resolution in a run sees the same mappings.
    """

    def __init__(
        self,
        standard: Mapping[str, str] | None = None,
        nullable: Mapping[str, str] | None = None,
        converters: Mapping[str, Conversion] | None = None,
    ) -> None:
        self._standard = dict(STANDARD_TYPES if standard is None else standard)
        self._nullable = dict(NULLABLE_TYPES if nullable is None else nullable)
        self._converters = dict(CONVERTERS if converters is None else converters)
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> "TypeMappingConfig":
        self._frozen = True
        return self

    def merge(
        self,
        standard: Mapping[str, str] | None = None,
        nullable: Mapping[str, str] | None = None,
    ) -> None:
        """Overlay custom mappings; later registrations win."""
        if self._frozen:
            raise RuntimeError("Type mappings are frozen once resolution has started")

        for table, custom in ((self._standard, standard), (self._nullable, nullable)):
            for go_type, wire_type in (custom or {}).items():
                previous = self._nullable.get(go_type) or self._standard.get(go_type)
                table[go_type] = wire_type
                if go_type in self._converters and previous not in (None, wire_type):
                    # Built-in helpers produce the old wire type
                    log.debug("Dropping converter for %s (now %s)", go_type, wire_type)
                    del self._converters[go_type]

    def resolve(self, type_name: str) -> Resolution:
        """Resolve a Go type name: nullable table, then standard, then string."""
        self._frozen = True
        conversion = self._converters.get(type_name, IDENTITY)

        if type_name in self._nullable:
            return Resolution(self._nullable[type_name], True, conversion, True)
        if type_name in self._standard:
            return Resolution(self._standard[type_name], False, conversion, True)

        log.debug("No mapping for %s, falling back to %s", type_name, STRING)
        return Resolution(STRING, False, IDENTITY, False)

    def is_mapped(self, type_name: str) -> bool:
        return type_name in self._nullable or type_name in self._standard
