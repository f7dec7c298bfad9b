"""Template rendering and artifact writing shared by the emitters."""

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from jinja2 import Environment, PackageLoader, StrictUndefined, TemplateError

env = Environment(
    loader=PackageLoader("sqlc2proto.generator", "templates"),
    undefined=StrictUndefined,
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    line_comment_prefix="%%",
    line_statement_prefix="%",
)


class EmitError(RuntimeError):
    """Raised when an artifact cannot be rendered or written."""


@dataclass
class Artifact:
    """A rendered output file."""

    path: Path
    content: str
    kind: str


def render(template_name: str, **context: Any) -> str:
    try:
        return env.get_template(template_name).render(**context)
    except TemplateError as exc:
        raise EmitError(f"Failed to render {template_name}: {exc}") from exc


def write_artifact(path: Path, content: str) -> None:
    """Write ``content`` through a temporary file so a failure never truncates ``path``."""
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp_name, path)
        except BaseException:
            os.unlink(tmp_name)
            raise
    except OSError as exc:
        raise EmitError(f"Failed to write {path}: {exc}") from exc
