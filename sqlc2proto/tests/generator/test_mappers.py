"""Tests for the Go mapper emitter."""

import os
from pathlib import Path

import pytest

from sqlc2proto.generator.fields import FieldStyle
from sqlc2proto.generator.mappers import is_stdlib, render_mappers, used_helpers, used_imports
from sqlc2proto.generator.parser import parse
from sqlc2proto.generator.typemap import TypeMappingConfig
from sqlc2proto.generator.walker import SourceFile, extract_messages, walk_messages

FILE_DIR = os.path.dirname(os.path.realpath(__file__))
TESTDATA = Path(FILE_DIR) / "testdata"
PROTO_IMPORT = "example.com/library/proto"
DB_IMPORT = "example.com/library/db/sqlc"


@pytest.fixture
def library():
    return walk_messages(TESTDATA / "library", FieldStyle.JSON, TypeMappingConfig())


@pytest.fixture
def types():
    return walk_messages(TESTDATA / "types", FieldStyle.JSON, TypeMappingConfig())


def describe_imports():
    def recognizes_standard_library_paths(expect):
        expect(is_stdlib("database/sql")) == True
        expect(is_stdlib("time")) == True
        expect(is_stdlib("github.com/google/uuid")) == False

    def collects_imports_from_conversions(expect, library):
        expect(used_imports(library)) == (
            ["database/sql", "time"],
            ["github.com/jackc/pgx/v5/pgtype", "google.golang.org/protobuf/types/known/timestamppb"],
        )

    def collects_helpers_from_conversions(expect, library):
        expect(used_helpers(library)) == {"null_string", "pgtype_date", "null_time"}


def describe_render_mappers():
    def writes_package_and_import_block(expect, library):
        text = render_mappers(library, PROTO_IMPORT, DB_IMPORT)
        expect(text.startswith("// Code generated by sqlc2proto. DO NOT EDIT.\n")) == True
        expect("package mappers\n" in text) == True
        expect(
            "import (\n"
            '\t"database/sql"\n'
            '\t"time"\n'
            "\n"
            '\t"github.com/jackc/pgx/v5/pgtype"\n'
            '\t"google.golang.org/protobuf/types/known/timestamppb"\n'
            f'\tpb "{PROTO_IMPORT}"\n'
            f'\tdb "{DB_IMPORT}"\n'
            ")\n"
            in text
        ) == True

    def honors_package_name(expect, library):
        expect("package convert\n" in render_mappers(library, PROTO_IMPORT, DB_IMPORT, package="convert")) == True

    def writes_only_used_helpers(expect, library):
        text = render_mappers(library, PROTO_IMPORT, DB_IMPORT)
        expect("func nullStringToString(v sql.NullString) string {" in text) == True
        expect("func dateToTimestamp(v pgtype.Date) *timestamppb.Timestamp {" in text) == True
        expect("func nullTimeToTimestamp(" in text) == True
        expect("func deref[" in text) == False
        expect("func mapSlice[" in text) == False
        expect("func uuidToString(" in text) == False

    def writes_conversions_in_both_directions(expect, library):
        text = render_mappers(library, PROTO_IMPORT, DB_IMPORT)
        expect("func BookToProto(in *db.Book) *pb.Book {" in text) == True
        expect("\t\tPublishedOn: dateToTimestamp(in.PublishedOn),\n" in text) == True
        expect("\t\tAuthor: AuthorToProto(in.Author),\n" in text) == True
        expect("\t\tAuthorId: in.AuthorID,\n" in text) == True
        expect("func BookFromProto(in *pb.Book) *db.Book {" in text) == True
        expect("\t\tAuthorID: in.AuthorId,\n" in text) == True
        expect("\t\tAuthor: AuthorFromProto(in.Author),\n" in text) == True
        expect("\t\tLoanedAt: in.LoanedAt.AsTime(),\n" in text) == True

    def writes_value_and_slice_variants(expect, library):
        text = render_mappers(library, PROTO_IMPORT, DB_IMPORT)
        expect("func MemberValueFromProto(in *pb.Member) db.Member {" in text) == True
        expect("func MemberSliceToProto(in []db.Member) []*pb.Member {" in text) == True
        expect("func MemberSliceFromProto(in []*pb.Member) []db.Member {" in text) == True

    def writes_generic_helpers_for_pointers_and_slices(expect, types):
        text = render_mappers(types, PROTO_IMPORT, DB_IMPORT)
        expect("func deref[T any](p *T) T {" in text) == True
        expect("func mapSlice[S, T any](in []S, fn func(S) T) []T {" in text) == True
        expect("\t\tItems: OrderItemSliceToProto(in.Items),\n" in text) == True
        expect("\t\tShippingInfo: ShippingInfoToProto(in.ShippingInfo),\n" in text) == True
        expect('\t"github.com/google/uuid"\n' in text) == True

    def separates_helpers_and_functions_with_blank_lines(expect, library):
        text = render_mappers(library, PROTO_IMPORT, DB_IMPORT)
        expect(")\n\nfunc nullStringToString(v sql.NullString) string {" in text) == True
        expect("}\n\nfunc stringToNullString(v string) sql.NullString {" in text) == True
        expect("}\n\n// AuthorToProto converts a db.Author to a pb.Author.\n" in text) == True
        expect("}\n\n// BookToProto converts a db.Book to a pb.Book.\n" in text) == True

    def maps_slices_of_pointers(expect):
        go_file = parse(
            "package db\n\n"
            "type A struct {\n\tName string `json:\"name\"`\n}\n\n"
            "type B struct {\n\tAs []*A `json:\"as\"`\n\tP  []*string `json:\"p\"`\n}\n"
        )
        messages = extract_messages(
            [SourceFile(path=Path("models.go"), go_file=go_file)], FieldStyle.JSON, TypeMappingConfig()
        )
        text = render_mappers(messages, PROTO_IMPORT, DB_IMPORT)
        expect("\t\tAs: mapSlice(in.As, AToProto),\n" in text) == True
        expect("\t\tAs: mapSlice(in.As, AFromProto),\n" in text) == True
        expect("\t\tP: derefs(in.P),\n" in text) == True
        expect("\t\tP: refs(in.P),\n" in text) == True
        expect("func mapSlice[S, T any](in []S, fn func(S) T) []T {" in text) == True
        expect("func derefs[T any](in []*T) []T {" in text) == True
        expect("func refs[T any](in []T) []*T {" in text) == True
        expect("ASliceToProto(in.As)" in text) == False
