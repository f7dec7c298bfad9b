"""Type definitions for Go source declarations read by the parser.

Type expressions are a closed set of shapes. Anything the generator does not
classify (maps, channels, functions, inline structs) lands in ``OtherType``.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class NamedType:
    """A bare identifier such as ``int64`` or ``Author``."""

    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class QualifiedType:
    """A package-qualified identifier such as ``sql.NullString``."""

    package: str
    name: str

    def __str__(self) -> str:
        return f"{self.package}.{self.name}"


@dataclass(frozen=True)
class PointerType:
    elem: "GoType"

    def __str__(self) -> str:
        return f"*{self.elem}"


@dataclass(frozen=True)
class SliceType:
    """A slice, or a fixed array when ``length`` is set."""

    elem: "GoType"
    length: str | None = None

    def __str__(self) -> str:
        return f"[{self.length or ''}]{self.elem}"


@dataclass(frozen=True)
class OtherType:
    """Any type shape without a dedicated variant."""

    text: str

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class GoField:
    """A struct field. ``name`` is None for embedded fields."""

    name: str | None
    type: "GoType"
    tag: str | None = None
    comment: str | None = None


@dataclass(frozen=True)
class StructType(OtherType):
    fields: tuple[GoField, ...] = ()


@dataclass(frozen=True)
class GoParam:
    name: str | None
    type: "GoType"


@dataclass(frozen=True)
class GoMethod:
    name: str
    params: tuple[GoParam, ...]
    results: tuple["GoType", ...]
    comment: str | None = None


@dataclass(frozen=True)
class InterfaceType(OtherType):
    methods: tuple[GoMethod, ...] = ()


GoType = NamedType | QualifiedType | PointerType | SliceType | OtherType


@dataclass(frozen=True)
class GoStruct:
    name: str
    fields: tuple[GoField, ...]
    comment: str | None = None


@dataclass(frozen=True)
class GoInterface:
    name: str
    methods: tuple[GoMethod, ...]
    comment: str | None = None


@dataclass(frozen=True)
class GoTypeDecl:
    """A named non-struct type such as ``type BookStatus string``."""

    name: str
    type: GoType
    comment: str | None = None


@dataclass
class GoFile:
    """Declarations of one Go source file, in source order."""

    package: str
    structs: list[GoStruct] = field(default_factory=list)
    interfaces: list[GoInterface] = field(default_factory=list)
    type_decls: list[GoTypeDecl] = field(default_factory=list)
