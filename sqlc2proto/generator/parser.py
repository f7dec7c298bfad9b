"""Go declaration parser using Lark."""

import json
import os
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any, TypeVar

from lark import Lark, Token
from lark.exceptions import UnexpectedInput
from lark.lark import PostLex
from lark.visitors import Transformer

from .types import (
    GoField,
    GoFile,
    GoInterface,
    GoMethod,
    GoParam,
    GoStruct,
    GoType,
    GoTypeDecl,
    InterfaceType,
    NamedType,
    OtherType,
    PointerType,
    QualifiedType,
    SliceType,
    StructType,
)

_g_parser: Lark | None = None
_g_postlex: "GoPostLexer | None" = None

# Token kinds after which a newline terminates a statement
_STATEMENT_END_TYPES = frozenset({"NAME", "NUMBER", "STRING", "RAW_STRING", "RUNE"})
_STATEMENT_END_VALUES = frozenset({")", "]", "}"})

_TYPE_SHAPES = (NamedType, QualifiedType, PointerType, SliceType, OtherType)


class SourceError(RuntimeError):
    """Raised when the Go source tree cannot be read."""


class GoSyntaxError(SourceError):
    """Raised when a Go file cannot be parsed."""


@dataclass(frozen=True)
class _Comment:
    line: int
    end_line: int
    text: str
    standalone: bool


class GoPostLexer(PostLex):
    """Applies Go's automatic semicolon rule and sets comments aside.

    A newline only reaches the parser when the previous token could end a
    statement. Comments are collected instead of being forwarded.
    """

    always_accept = ("_NL", "COMMENT")

    def __init__(self) -> None:
        self.comments: list[_Comment] = []

    def process(self, stream: Iterator[Token]) -> Iterator[Token]:
        self.comments = []
        last: Token | None = None
        line_open = False

        for token in stream:
            if token.type == "COMMENT":
                standalone = last is None or last.end_line < token.line
                self.comments.append(
                    _Comment(
                        line=token.line,
                        end_line=token.end_line,
                        text=_comment_text(str(token)),
                        standalone=standalone,
                    )
                )
                continue

            if token.type == "_NL":
                if line_open:
                    line_open = False
                    yield token
                continue

            line_open = token.type in _STATEMENT_END_TYPES or token.value in _STATEMENT_END_VALUES
            last = token
            yield token

        if line_open and last is not None:
            yield Token.new_borrow_pos("_NL", "\n", last)


def _comment_text(raw: str) -> str:
    if raw.startswith("//"):
        return raw[2:].strip()
    lines = [line.strip().lstrip("*").strip() for line in raw[2:-2].splitlines()]
    return " ".join(line for line in lines if line)


class _CommentIndex:
    """Looks up doc comments by the line of the declaration they describe."""

    def __init__(self, comments: list[_Comment]) -> None:
        self._leading = {c.end_line: c for c in comments if c.standalone}
        self._trailing = {c.line: c for c in comments if not c.standalone}

    def leading(self, line: int) -> str | None:
        parts = []
        comment = self._leading.get(line - 1)
        while comment is not None:
            parts.append(comment.text)
            comment = self._leading.get(comment.line - 1)
        text = " ".join(part for part in reversed(parts) if part)
        return text or None

    def trailing(self, line: int) -> str | None:
        comment = self._trailing.get(line)
        return comment.text if comment and comment.text else None


@dataclass
class _Package:
    value: str


@dataclass
class _Skipped:
    pass


@dataclass
class _Tag:
    value: str


@dataclass
class _Fields:
    fields: list[GoField]


@dataclass
class _Params:
    params: list[GoParam]


@dataclass
class _Param:
    name: str | None
    type: GoType


@dataclass
class _Signature:
    params: tuple[GoParam, ...]
    results: tuple[GoType, ...]


@dataclass
class _TypeDecls:
    specs: list[GoStruct | GoInterface | GoTypeDecl]


TFilter = TypeVar("TFilter", bound=object)


def _filter(args: list[Any], class_type: type[TFilter] | tuple[type, ...]) -> list[TFilter]:
    return [v for v in args if isinstance(v, class_type)]


def _find_one(args: list[Any], class_type: type[object] | tuple[type, ...]) -> Any:
    filtered = _filter(args, class_type)
    if len(filtered) == 0:
        return None
    if len(filtered) > 1:
        raise RuntimeError(f"Found more than one {class_type}")
    if isinstance(filtered[0], (_Package, _Tag)):
        return filtered[0].value
    return filtered[0]


TMany = TypeVar("TMany")


def _find_many(args: list[Any], class_type: type[TMany]) -> list[TMany]:
    return _filter(args, class_type)


def _names(args: list[Any]) -> list[Token]:
    return [v for v in args if isinstance(v, Token) and v.type == "NAME"]


def _unquote(token: Token) -> str:
    text = str(token)
    if token.type == "RAW_STRING":
        return text[1:-1]
    try:
        return json.loads(text)
    except ValueError:
        return text[1:-1]


class TreeTransformer(Transformer):
    """Transform a Go parse tree into source declarations."""

    def __init__(self, comments: _CommentIndex) -> None:
        super().__init__()
        self._comments = comments

    def _skip(self, _args: list[Any]) -> _Skipped:
        return _Skipped()

    import_decl = _skip
    const_decl = _skip
    var_decl = _skip
    func_decl = _skip
    receiver = _skip
    block = _skip
    embedded_iface = _skip

    def start(self, args: list[Any]) -> GoFile:
        go_file = GoFile(package=_find_one(args, _Package))
        for decl in _find_many(args, _TypeDecls):
            for spec in decl.specs:
                if isinstance(spec, GoStruct):
                    go_file.structs.append(spec)
                elif isinstance(spec, GoInterface):
                    go_file.interfaces.append(spec)
                else:
                    go_file.type_decls.append(spec)
        return go_file

    def type_only(self, args: list[Any]) -> GoType:
        return args[0]

    def package_clause(self, args: list[Any]) -> _Package:
        return _Package(value=str(args[0]))

    def type_decl(self, args: list[Any]) -> _TypeDecls:
        return _TypeDecls(specs=_filter(args, (GoStruct, GoInterface, GoTypeDecl)))

    def type_spec(self, args: list[Any]) -> GoStruct | GoInterface | GoTypeDecl:
        name = args[0]
        type_ = args[-1]
        comment = self._comments.leading(name.line)
        if isinstance(type_, StructType):
            return GoStruct(name=str(name), fields=type_.fields, comment=comment)
        if isinstance(type_, InterfaceType):
            return GoInterface(name=str(name), methods=type_.methods, comment=comment)
        return GoTypeDecl(name=str(name), type=type_, comment=comment)

    def named_type(self, args: list[Any]) -> NamedType:
        return NamedType(name=str(args[0]))

    def qualified_type(self, args: list[Any]) -> QualifiedType:
        return QualifiedType(package=str(args[0]), name=str(args[1]))

    def pointer_type(self, args: list[Any]) -> PointerType:
        return PointerType(elem=args[0])

    def slice_type(self, args: list[Any]) -> SliceType:
        return SliceType(elem=args[0])

    def array_type(self, args: list[Any]) -> SliceType:
        return SliceType(elem=args[-1], length=str(args[0]))

    def map_type(self, args: list[Any]) -> OtherType:
        return OtherType(text=f"map[{args[0]}]{args[1]}")

    def chan_type(self, args: list[Any]) -> OtherType:
        return OtherType(text=f"chan {args[0]}")

    def func_type(self, args: list[Any]) -> OtherType:
        signature: _Signature = args[0]
        params = ", ".join(str(p.type) for p in signature.params)
        text = f"func({params})"
        if len(signature.results) == 1:
            text += f" {signature.results[0]}"
        elif signature.results:
            text += " (" + ", ".join(str(r) for r in signature.results) + ")"
        return OtherType(text=text)

    def struct_type(self, args: list[Any]) -> StructType:
        fields = tuple(f for group in _find_many(args, _Fields) for f in group.fields)
        return StructType(text="struct{...}" if fields else "struct{}", fields=fields)

    def named_field(self, args: list[Any]) -> _Fields:
        names = _names(args)
        type_ = _find_one(args, _TYPE_SHAPES)
        tag = _find_one(args, _Tag)
        line = names[0].line
        comment = self._comments.leading(line) or self._comments.trailing(line)
        return _Fields(
            fields=[GoField(name=str(n), type=type_, tag=tag, comment=comment) for n in names]
        )

    def embedded_field(self, args: list[Any]) -> _Fields:
        names = _names(args)
        if len(names) == 2:
            type_: GoType = QualifiedType(package=str(names[0]), name=str(names[1]))
        else:
            type_ = NamedType(name=str(names[0]))
        return _Fields(fields=[GoField(name=None, type=type_, tag=_find_one(args, _Tag))])

    def tag(self, args: list[Any]) -> _Tag:
        return _Tag(value=_unquote(args[0]))

    def interface_type(self, args: list[Any]) -> InterfaceType:
        methods = tuple(_find_many(args, GoMethod))
        return InterfaceType(text="interface{...}" if methods else "interface{}", methods=methods)

    def method_spec(self, args: list[Any]) -> GoMethod:
        name = args[0]
        signature: _Signature = args[1]
        return GoMethod(
            name=str(name),
            params=signature.params,
            results=signature.results,
            comment=self._comments.leading(name.line),
        )

    def signature(self, args: list[Any]) -> _Signature:
        params = tuple(args[0].params)
        if len(args) == 1:
            return _Signature(params=params, results=())
        result = args[1]
        if isinstance(result, _Params):
            return _Signature(params=params, results=tuple(p.type for p in result.params))
        return _Signature(params=params, results=(result,))

    def param(self, args: list[Any]) -> _Param:
        names = _names(args)
        type_ = args[-1]
        if any(isinstance(a, Token) and a.type == "ELLIPSIS" for a in args):
            type_ = SliceType(elem=type_)
        return _Param(name=str(names[0]) if names else None, type=type_)

    def parameters(self, args: list[Any]) -> _Params:
        items = _find_many(args, _Param)
        if not any(item.name for item in items):
            return _Params(params=[GoParam(name=None, type=item.type) for item in items])

        # In "a, b int" the leading identifiers parse as bare types
        params = []
        pending: list[str] = []
        for item in items:
            if item.name is None and isinstance(item.type, NamedType):
                pending.append(item.type.name)
                continue
            for name in pending:
                params.append(GoParam(name=name, type=item.type))
            pending = []
            params.append(GoParam(name=item.name, type=item.type))
        return _Params(params=params)


def _get_parser() -> tuple[Lark, "GoPostLexer"]:
    global _g_parser, _g_postlex

    if not _g_parser or not _g_postlex:
        with open(f"{os.path.dirname(__file__)}/golang.lark", encoding="utf-8") as f:
            grammar = f.read()

        _g_postlex = GoPostLexer()
        _g_parser = Lark(
            grammar,
            parser="lalr",
            lexer="contextual",
            postlex=_g_postlex,
            start=["start", "type_only"],
            maybe_placeholders=False,
        )

    return _g_parser, _g_postlex


def parse(text: str, filename: str = "<source>") -> GoFile:
    """Parse the declarations of one Go source file."""
    parser, postlex = _get_parser()

    try:
        tree = parser.parse(text, start="start")
    except UnexpectedInput as exc:
        detail = str(exc).strip().splitlines()[0]
        raise GoSyntaxError(f"{filename}: {detail}") from exc

    return TreeTransformer(_CommentIndex(postlex.comments)).transform(tree)


def parse_type(text: str) -> GoType:
    """Parse a single Go type expression such as ``[]*pgtype.Text``."""
    parser, postlex = _get_parser()

    try:
        tree = parser.parse(text.strip(), start="type_only")
    except UnexpectedInput as exc:
        raise GoSyntaxError(f"invalid type expression {text!r}") from exc

    return TreeTransformer(_CommentIndex(postlex.comments)).transform(tree)
