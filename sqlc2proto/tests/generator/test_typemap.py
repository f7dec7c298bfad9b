"""Tests for the type mapping table."""

import pytest

from sqlc2proto.generator.typemap import (
    IDENTITY,
    TypeMappingConfig,
    pointer_conversion,
    slice_conversion,
)


def describe_resolve():
    def maps_standard_types(expect):
        typemap = TypeMappingConfig()
        expect(typemap.resolve("int64").wire_type) == "int64"
        expect(typemap.resolve("int").wire_type) == "int32"
        expect(typemap.resolve("float32").wire_type) == "float"
        expect(typemap.resolve("[]byte").wire_type) == "bytes"
        expect(typemap.resolve("time.Time").wire_type) == "google.protobuf.Timestamp"
        expect(typemap.resolve("pgtype.Interval").wire_type) == "int64"

    def marks_nullable_wrappers_optional(expect):
        resolution = TypeMappingConfig().resolve("sql.NullInt64")
        expect(resolution.wire_type) == "int64"
        expect(resolution.optional) == True
        expect(resolution.matched) == True
        expect(resolution.conversion.to_wire("in.Count")) == "nullInt64ToInt64(in.Count)"
        expect(resolution.conversion.from_wire("in.Count")) == "int64ToNullInt64(in.Count)"

    def falls_back_to_string(expect):
        resolution = TypeMappingConfig().resolve("decimal.Decimal")
        expect(resolution.wire_type) == "string"
        expect(resolution.optional) == False
        expect(resolution.matched) == False
        expect(resolution.conversion) == IDENTITY

    def renders_converter_expressions(expect):
        typemap = TypeMappingConfig()
        time_conv = typemap.resolve("time.Time").conversion
        expect(time_conv.to_wire("in.CreatedAt")) == "timestamppb.New(in.CreatedAt)"
        expect(time_conv.from_wire("in.CreatedAt")) == "in.CreatedAt.AsTime()"

        int16_conv = typemap.resolve("int16").conversion
        expect(int16_conv.to_wire("in.Qty")) == "int32(in.Qty)"
        expect(int16_conv.from_wire("in.Qty")) == "int16(in.Qty)"

        uuid_conv = typemap.resolve("uuid.UUID").conversion
        expect(uuid_conv.to_wire("in.ID")) == "uuidToString(in.ID)"
        expect(uuid_conv.helpers) == ("uuid",)
        expect(uuid_conv.imports) == ("github.com/google/uuid",)

    def passes_plain_types_through(expect):
        conversion = TypeMappingConfig().resolve("string").conversion
        expect(conversion.is_identity) == True
        expect(conversion.to_wire("in.Name")) == "in.Name"


def describe_merge():
    def later_registrations_win(expect):
        typemap = TypeMappingConfig()
        typemap.merge(standard={"decimal.Decimal": "string", "Money": "int64"})
        typemap.merge(standard={"Money": "double"})
        expect(typemap.resolve("Money").wire_type) == "double"
        expect(typemap.resolve("decimal.Decimal").matched) == True

    def drops_converter_when_wire_type_changes(expect):
        typemap = TypeMappingConfig()
        typemap.merge(standard={"uuid.UUID": "bytes"})
        resolution = typemap.resolve("uuid.UUID")
        expect(resolution.wire_type) == "bytes"
        expect(resolution.conversion.is_identity) == True

    def keeps_converter_when_wire_type_is_unchanged(expect):
        typemap = TypeMappingConfig()
        typemap.merge(standard={"uuid.UUID": "string"})
        expect(typemap.resolve("uuid.UUID").conversion.to_wire("x")) == "uuidToString(x)"

    def merges_nullable_mappings(expect):
        typemap = TypeMappingConfig()
        typemap.merge(nullable={"sql.NullString": "google.protobuf.StringValue"})
        resolution = typemap.resolve("sql.NullString")
        expect(resolution.wire_type) == "google.protobuf.StringValue"
        expect(resolution.optional) == True

    def refuses_merge_after_resolution(expect):
        typemap = TypeMappingConfig()
        typemap.resolve("string")
        expect(typemap.frozen) == True
        with pytest.raises(RuntimeError):
            typemap.merge(standard={"Money": "int64"})

    def instances_are_independent(expect):
        custom = TypeMappingConfig()
        custom.merge(standard={"Money": "int64"})
        expect(TypeMappingConfig().is_mapped("Money")) == False


def describe_wrapped_conversions():
    def dereferences_pointers(expect):
        conversion = pointer_conversion(TypeMappingConfig().resolve("time.Time").conversion)
        expect(conversion.to_wire("in.At")) == "timestamppb.New(deref(in.At))"
        expect(conversion.from_wire("in.At")) == "ref(in.At.AsTime())"
        expect("pointer" in conversion.helpers) == True

    def maps_slices_element_wise(expect):
        conversion = slice_conversion(TypeMappingConfig().resolve("uuid.UUID").conversion)
        expect(conversion.to_wire("in.IDs")) == "mapSlice(in.IDs, uuidToString)"
        expect(conversion.from_wire("in.IDs")) == "mapSlice(in.IDs, stringToUUID)"
        expect(conversion.helpers) == ("uuid", "slice")

    def leaves_identity_slices_alone(expect):
        expect(slice_conversion(IDENTITY)) == IDENTITY
