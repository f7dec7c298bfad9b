"""RPC service synthesis from Querier methods.

Methods are grouped by an entity inferred from their names, e.g.
``GetAuthor`` and ``ListAuthors`` both belong to ``AuthorService``. Request
and response messages are synthesized from the method signature.
"""

import logging
from collections.abc import Collection
from dataclasses import dataclass, replace
from enum import StrEnum

from dataclasses_json import DataClassJsonMixin, LetterCase, config

from .descriptors import (
    MessageDescriptor,
    QueryDescriptor,
    QueryKind,
    ServiceDescriptor,
    ServiceField,
    ServiceMethod,
)
from .fields import camel_to_snake, resolve_type
from .parser import GoSyntaxError, parse_type
from .typemap import TypeMappingConfig
from .types import GoType, OtherType
from .walker import base_type_name

log = logging.getLogger(__name__)

CRUD_PREFIXES = (
    "Get",
    "List",
    "Create",
    "Update",
    "Delete",
    "Find",
    "Search",
    "Count",
    "Lookup",
    "Add",
)
ENTITY_SUFFIXES = ("ByID", "ById", "WithDetails", "WithRelations")
LIST_PREFIX = "List"
IDENTITY_PREFIXES = ("Get", "Delete")
DEFAULT_ENTITY = "Resource"
DEFAULT_SERVICE_SUFFIX = "Service"

PAGE_SIZE_FIELD = "limit"
PAGE_TOKEN_FIELD = "page_token"
NEXT_PAGE_TOKEN_FIELD = "next_page_token"
TOTAL_SIZE_FIELD = "total_size"


class ServiceNaming(StrEnum):
    ENTITY = "entity"
    FLAT = "flat"
    CUSTOM = "custom"


@dataclass
class ServiceOptions(DataClassJsonMixin):
    """Service generation options, as found under ``serviceOptions``."""

    dataclass_json_config = config(letter_case=LetterCase.CAMEL)["dataclasses_json"]

    include_pagination: bool = True
    split_services: bool = False
    enable_streaming: bool = False
    page_size_field: str = PAGE_SIZE_FIELD
    page_token_field: str = PAGE_TOKEN_FIELD
    next_page_token_field: str = NEXT_PAGE_TOKEN_FIELD
    total_size_field: str = TOTAL_SIZE_FIELD


def infer_entity(method_name: str) -> str:
    """Strip a CRUD prefix, then one known suffix, then (for List) a plural s."""
    for prefix in CRUD_PREFIXES:
        if not method_name.startswith(prefix):
            continue

        entity = method_name[len(prefix) :]
        for suffix in ENTITY_SUFFIXES:
            if entity.endswith(suffix):
                entity = entity[: -len(suffix)]
                break

        if prefix == LIST_PREFIX and entity.endswith("s"):
            entity = entity[:-1]

        if entity:
            return entity

    log.warning("Cannot infer an entity from %s, grouping it under %s", method_name, DEFAULT_ENTITY)
    return DEFAULT_ENTITY


def _parse_type(type_name: str) -> GoType:
    try:
        return parse_type(type_name)
    except GoSyntaxError:
        return OtherType(text=type_name)


def _request_fields(
    query: QueryDescriptor,
    entity: str,
    known: Collection[str],
    typemap: TypeMappingConfig,
    options: ServiceOptions,
) -> list[ServiceField]:
    fields: list[ServiceField] = []

    for param in query.params:
        if param.type in known:
            fields.append(
                ServiceField(
                    name=camel_to_snake(param.type),
                    wire_type=param.type,
                    number=len(fields) + 1,
                    comment=f"{param.type} to process",
                )
            )
            continue
        field_type = resolve_type(_parse_type(param.type), typemap, known)
        fields.append(
            ServiceField(
                name=camel_to_snake(param.name),
                wire_type=field_type.wire_type,
                number=len(fields) + 1,
                repeated=field_type.repeated,
                optional=field_type.optional,
                comment=f"{param.name} parameter",
            )
        )

    if query.name.startswith(LIST_PREFIX):
        present = {field.name for field in fields}
        if not present & {PAGE_SIZE_FIELD, options.page_size_field}:
            fields.append(
                ServiceField(
                    name=PAGE_SIZE_FIELD,
                    wire_type="int32",
                    number=len(fields) + 1,
                    comment="Maximum number of results to return",
                )
            )
        if not present & {PAGE_TOKEN_FIELD, options.page_token_field}:
            fields.append(
                ServiceField(
                    name=PAGE_TOKEN_FIELD,
                    wire_type="string",
                    number=len(fields) + 1,
                    comment="Token of the page to return",
                )
            )
    elif not query.params and query.name.startswith(IDENTITY_PREFIXES):
        fields.append(
            ServiceField(
                name=f"{camel_to_snake(entity)}_id", wire_type="int32", number=1, comment=f"ID of the {entity}"
            )
        )

    return fields


def _response_fields(
    query: QueryDescriptor,
    known: Collection[str],
    typemap: TypeMappingConfig,
) -> list[ServiceField]:
    if not query.return_type:
        if query.kind != QueryKind.EXEC:
            return []
        return [
            ServiceField(
                name="success",
                wire_type="bool",
                number=1,
                comment="Whether the operation was successful",
            ),
            ServiceField(
                name="affected_rows",
                wire_type="int32",
                number=2,
                comment="Number of rows affected by the operation",
            ),
        ]

    base = base_type_name(query.return_type)
    name = camel_to_snake(base.rsplit(".", 1)[-1])
    if base in known:
        type_name = base
    else:
        type_name = resolve_type(_parse_type(query.return_type), typemap, known).wire_type

    if query.kind != QueryKind.MANY:
        return [
            ServiceField(name=name, wire_type=type_name, number=1, comment=f"The {base} result")
        ]

    fields = [
        ServiceField(
            name=f"{name}s",
            wire_type=type_name,
            number=1,
            repeated=True,
            comment=f"List of {base} results",
        )
    ]
    if query.name.startswith(LIST_PREFIX):
        fields += [
            ServiceField(
                name=NEXT_PAGE_TOKEN_FIELD,
                wire_type="string",
                number=2,
                comment="Token for retrieving the next page of results",
            ),
            ServiceField(
                name=TOTAL_SIZE_FIELD,
                wire_type="int32",
                number=3,
                comment="Total number of results available",
            ),
        ]
    return fields


def synthesize_method(
    query: QueryDescriptor,
    entity: str,
    known: Collection[str],
    typemap: TypeMappingConfig,
    options: ServiceOptions | None = None,
) -> ServiceMethod:
    return ServiceMethod(
        name=query.name,
        request_type=f"{query.name}Request",
        response_type=f"{query.name}Response",
        request_fields=_request_fields(query, entity, known, typemap, options or ServiceOptions()),
        response_fields=_response_fields(query, known, typemap),
        comment=query.comment,
    )


def synthesize(
    queries: list[QueryDescriptor],
    messages: list[MessageDescriptor],
    typemap: TypeMappingConfig,
    options: ServiceOptions | None = None,
) -> list[ServiceDescriptor]:
    """One service per inferred entity, in order of first appearance."""
    known = frozenset(message.name for message in messages)
    services: dict[str, ServiceDescriptor] = {}

    for query in queries:
        entity = infer_entity(query.name)
        service = services.get(entity)
        if service is None:
            service = services[entity] = ServiceDescriptor(
                name=f"{entity}{DEFAULT_SERVICE_SUFFIX}",
                entity=entity,
                comment=f"Service for {entity} operations",
            )
        service.methods.append(synthesize_method(query, entity, known, typemap, options))

    return list(services.values())


def apply_naming(
    services: list[ServiceDescriptor],
    naming: ServiceNaming,
    prefix: str = "",
    suffix: str = DEFAULT_SERVICE_SUFFIX,
) -> list[ServiceDescriptor]:
    """Apply custom prefix and suffix. Other strategies keep names as they are."""
    if naming != ServiceNaming.CUSTOM:
        return services

    renamed = []
    for service in services:
        name = f"{prefix}{service.name}"
        if suffix and suffix != DEFAULT_SERVICE_SUFFIX:
            name = name.removesuffix(DEFAULT_SERVICE_SUFFIX) + suffix
        renamed.append(replace(service, name=name))
    return renamed


def apply_streaming(services: list[ServiceDescriptor]) -> list[ServiceDescriptor]:
    """Mark List methods as server-streaming."""
    return [
        replace(
            service,
            methods=[
                replace(method, streaming=method.streaming or method.name.startswith(LIST_PREFIX))
                for method in service.methods
            ],
        )
        for service in services
    ]


def _renamed(fields: list[ServiceField], names: dict[str, str]) -> list[ServiceField]:
    return [replace(field, name=names.get(field.name, field.name)) for field in fields]


def rename_pagination(
    services: list[ServiceDescriptor], options: ServiceOptions
) -> list[ServiceDescriptor]:
    """Swap default pagination field names for the configured ones.

    Fields are matched by their default names, so this must run once.
    """
    request_names = {
        PAGE_SIZE_FIELD: options.page_size_field,
        PAGE_TOKEN_FIELD: options.page_token_field,
    }
    response_names = {
        NEXT_PAGE_TOKEN_FIELD: options.next_page_token_field,
        TOTAL_SIZE_FIELD: options.total_size_field,
    }

    def rename(method: ServiceMethod) -> ServiceMethod:
        if not method.name.startswith(LIST_PREFIX):
            return method
        return replace(
            method,
            request_fields=_renamed(method.request_fields, request_names),
            response_fields=_renamed(method.response_fields, response_names),
        )

    return [
        replace(service, methods=[rename(method) for method in service.methods])
        for service in services
    ]


def build_services(
    queries: list[QueryDescriptor],
    messages: list[MessageDescriptor],
    typemap: TypeMappingConfig,
    naming: ServiceNaming = ServiceNaming.ENTITY,
    prefix: str = "",
    suffix: str = DEFAULT_SERVICE_SUFFIX,
    options: ServiceOptions | None = None,
) -> list[ServiceDescriptor]:
    """Synthesize services and run each enabled pass exactly once."""
    options = options or ServiceOptions()
    services = synthesize(queries, messages, typemap, options)
    services = apply_naming(services, naming, prefix, suffix)
    if options.enable_streaming:
        services = apply_streaming(services)
    if options.include_pagination:
        services = rename_pagination(services, options)
    return services
