"""Tests for includes files and dependency resolution."""

import os
from pathlib import Path

import pytest

from sqlc2proto.generator.descriptors import (
    FieldDescriptor,
    IncludesSet,
    MessageDescriptor,
    QueryDescriptor,
    QueryKind,
)
from sqlc2proto.generator.fields import FieldStyle
from sqlc2proto.generator.includes import (
    IncludesError,
    dependency_additions,
    filter_messages,
    filter_queries,
    load_includes,
    render_includes,
    resolve_dependencies,
    write_includes,
)
from sqlc2proto.generator.typemap import TypeMappingConfig
from sqlc2proto.generator.walker import walk_messages, walk_queries

FILE_DIR = os.path.dirname(os.path.realpath(__file__))
LIBRARY = Path(FILE_DIR) / "testdata" / "library"


@pytest.fixture
def messages():
    return walk_messages(LIBRARY, FieldStyle.JSON, TypeMappingConfig())


@pytest.fixture
def queries():
    return walk_queries(LIBRARY)


def describe_load_includes():
    def reads_active_entries(expect, tmp_path):
        path = tmp_path / "includes.yaml"
        path.write_text("models:\n  - Author\n  # - Book\nqueries:\n  - GetBook\n  - GetBook\n")
        includes = load_includes(path)
        expect(includes.models) == ["Author"]
        expect(includes.queries) == ["GetBook"]

    def treats_fully_commented_lists_as_empty(expect, tmp_path):
        path = tmp_path / "includes.yaml"
        path.write_text("models:\n  # - Author\nqueries:\n  # - GetBook\n")
        expect(load_includes(path).is_empty()) == True

    def treats_empty_files_as_empty(expect, tmp_path):
        path = tmp_path / "includes.yaml"
        path.write_text("")
        expect(load_includes(path).is_empty()) == True

    def rejects_non_list_entries(expect, tmp_path):
        path = tmp_path / "includes.yaml"
        path.write_text("models: Author\n")
        with pytest.raises(IncludesError):
            load_includes(path)

    def rejects_malformed_yaml(expect, tmp_path):
        path = tmp_path / "includes.yaml"
        path.write_text("models: [Author\n")
        with pytest.raises(IncludesError):
            load_includes(path)

    def rejects_missing_files(expect, tmp_path):
        with pytest.raises(IncludesError):
            load_includes(tmp_path / "missing.yaml")


def describe_render_includes():
    def comments_out_entries_by_default(expect):
        text = render_includes(["Author"], ["GetBook"])
        expect("models:\n  # - Author\n" in text) == True
        expect("queries:\n  # - GetBook\n" in text) == True

    def leaves_entries_active_on_request(expect):
        text = render_includes(["Author"], ["GetBook"], active=True)
        expect("  - Author\n" in text) == True
        expect("  - GetBook\n" in text) == True

    def quotes_names_yaml_would_misread(expect):
        expect('  - "Yes"\n' in render_includes(["Yes"], [], active=True)) == True

    def writes_a_file_load_includes_reads_back(expect, tmp_path):
        path = tmp_path / "nested" / "includes.yaml"
        write_includes(path, ["Author", "Null"], ["GetBook"], active=True)
        includes = load_includes(path)
        expect(includes.models) == ["Author", "Null"]
        expect(includes.queries) == ["GetBook"]


def describe_resolve_dependencies():
    def adds_models_reachable_from_queries(expect, messages, queries):
        resolved = resolve_dependencies(IncludesSet(queries=["GetBook"]), queries, messages)
        expect(resolved.models) == ["Book", "Author"]
        expect(resolved.queries) == ["GetBook"]

    def follows_params_before_results(expect, messages, queries):
        resolved = resolve_dependencies(IncludesSet(queries=["CreateBook"]), queries, messages)
        expect(resolved.models) == ["CreateBookParams", "Book", "Author"]

    def follows_fields_of_selected_models(expect, messages):
        resolved = resolve_dependencies(IncludesSet(models=["Book"]), [], messages)
        expect(resolved.models) == ["Book", "Author"]

    def follows_every_query_when_none_are_selected(expect, messages, queries):
        resolved = resolve_dependencies(IncludesSet(models=["Member"]), queries, messages)
        expect(resolved.models) == ["Member", "CreateBookParams", "Book", "Author", "Loan"]
        expect(resolved.queries) == []

    def never_adds_a_model_twice(expect, messages, queries):
        includes = IncludesSet(models=["Author"], queries=["GetBook", "ListBooks"])
        resolved = resolve_dependencies(includes, queries, messages)
        expect(resolved.models) == ["Author", "Book"]

    def skips_unknown_queries(expect, messages, queries):
        resolved = resolve_dependencies(IncludesSet(queries=["Missing"]), queries, messages)
        expect(resolved.models) == []
        expect(resolved.queries) == ["Missing"]

    def closes_over_nested_message_fields(expect):
        def message(name, wire_type):
            field = FieldDescriptor(name="x", wire_type=wire_type, number=1, source_name="X")
            return MessageDescriptor(name=name, fields=[field], source_struct=name)

        messages = [message("A", "B"), message("B", "C"), message("C", "int64")]
        queries = [QueryDescriptor(name="GetA", kind=QueryKind.ONE, return_type="A")]
        resolved = resolve_dependencies(IncludesSet(queries=["GetA"]), queries, messages)
        expect(resolved.models) == ["A", "B", "C"]

    def reports_additions(expect, messages, queries):
        includes = IncludesSet(models=["Member"], queries=["GetBook"])
        resolved = resolve_dependencies(includes, queries, messages)
        expect(dependency_additions(includes, resolved)) == ["Book", "Author"]


def describe_filters():
    def keep_selected_items_in_source_order(expect, messages, queries):
        includes = IncludesSet(models=["Member", "Author"], queries=["ListBooks", "GetBook"])
        expect([m.name for m in filter_messages(messages, includes)]) == ["Author", "Member"]
        expect([q.name for q in filter_queries(queries, includes)]) == ["GetBook", "ListBooks"]

    def keep_everything_for_empty_lists(expect, messages, queries):
        expect(filter_messages(messages, IncludesSet(queries=["GetBook"]))) == messages
        expect(filter_queries(queries, IncludesSet(models=["Author"]))) == queries
