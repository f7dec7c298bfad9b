"""Normalized descriptors produced by the walker and consumed by the emitters."""

from dataclasses import dataclass, field
from enum import StrEnum

from dataclasses_json import DataClassJsonMixin


@dataclass
class FieldDescriptor(DataClassJsonMixin):
    """A message field.

    ``to_wire`` and ``from_wire`` are Go expressions. They read the field from
    an ``in`` variable of the source struct and of the protobuf message
    respectively.
    """

    name: str
    wire_type: str
    number: int
    source_name: str
    source_type: str = ""
    repeated: bool = False
    optional: bool = False
    comment: str | None = None
    json_name: str | None = None
    to_wire: str = ""
    from_wire: str = ""
    helpers: list[str] = field(default_factory=list)
    imports: list[str] = field(default_factory=list)


@dataclass
class MessageDescriptor(DataClassJsonMixin):
    """A protobuf message derived from one Go struct."""

    name: str
    fields: list[FieldDescriptor]
    source_struct: str
    package: str = ""
    comment: str | None = None


class QueryKind(StrEnum):
    ONE = "one"
    MANY = "many"
    EXEC = "exec"


@dataclass
class QueryParam(DataClassJsonMixin):
    name: str
    type: str


@dataclass
class QueryDescriptor(DataClassJsonMixin):
    """A Querier method."""

    name: str
    kind: QueryKind
    params: list[QueryParam] = field(default_factory=list)
    return_type: str = ""
    comment: str | None = None


@dataclass
class ServiceField(DataClassJsonMixin):
    """A field of a synthesized request or response message."""

    name: str
    wire_type: str
    number: int
    repeated: bool = False
    optional: bool = False
    comment: str | None = None
    json_name: str | None = None


@dataclass
class ServiceMethod(DataClassJsonMixin):
    name: str
    request_type: str
    response_type: str
    request_fields: list[ServiceField] = field(default_factory=list)
    response_fields: list[ServiceField] = field(default_factory=list)
    streaming: bool = False
    comment: str | None = None


@dataclass
class ServiceDescriptor(DataClassJsonMixin):
    name: str
    entity: str
    methods: list[ServiceMethod] = field(default_factory=list)
    comment: str | None = None


@dataclass
class IncludesSet(DataClassJsonMixin):
    """A user-selected subset of models and queries, by name."""

    models: list[str] = field(default_factory=list)
    queries: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.models = list(dict.fromkeys(self.models))
        self.queries = list(dict.fromkeys(self.queries))

    def is_empty(self) -> bool:
        return not self.models and not self.queries
