"""Configuration file loading and import path derivation."""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dataclasses_json import DataClassJsonMixin, LetterCase, config

from .fields import FieldStyle
from .output import render, write_artifact
from .services import DEFAULT_SERVICE_SUFFIX, ServiceNaming, ServiceOptions
from .typemap import TypeMappingConfig

log = logging.getLogger(__name__)

DEFAULT_CONFIG_PATHS = (
    "sqlc2proto.yaml",
    "sqlc2proto.yml",
    ".sqlc2proto.yaml",
    ".sqlc2proto.yml",
)
DEFAULT_INCLUDE_FILE = "sqlc2proto.includes.yaml"
PLACEHOLDER_MODULE = "github.com/yourusername/yourproject"

_MODULE_LINE = re.compile(r"^\s*module\s+(\S+)")


class ConfigError(RuntimeError):
    """Raised when a configuration file is malformed."""


@dataclass
class Config(DataClassJsonMixin):
    dataclass_json_config = config(letter_case=LetterCase.CAMEL)["dataclasses_json"]

    sqlc_dir: str = "./db/sqlc"
    proto_dir: str = "./proto/gen"
    proto_package: str = "api.v1"
    go_package: str = ""
    module_name: str = ""
    proto_go_import: str = ""
    type_mappings: dict[str, str] = field(default_factory=dict)
    nullable_type_mappings: dict[str, str] = field(default_factory=dict)
    with_mappers: bool = False
    with_services: bool = False
    field_style: FieldStyle = FieldStyle.JSON
    service_naming: ServiceNaming = ServiceNaming.ENTITY
    service_prefix: str = ""
    service_suffix: str = DEFAULT_SERVICE_SUFFIX
    include_file: str = ""
    service_options: ServiceOptions = field(default_factory=ServiceOptions)


def _drop_nulls(data: dict[str, Any]) -> dict[str, Any]:
    return {
        key: _drop_nulls(value) if isinstance(value, dict) else value
        for key, value in data.items()
        if value is not None
    }


def parse_config(data: Any, source: str = "<config>") -> Config:
    """Decode a config mapping. Null values fall back to their defaults."""
    if data is None:
        return Config()
    if not isinstance(data, dict):
        raise ConfigError(f"{source}: expected a mapping at the top level")

    data = _drop_nulls(data)
    for key in ("typeMappings", "nullableTypeMappings", "serviceOptions"):
        if key in data and not isinstance(data[key], dict):
            raise ConfigError(f"{source}: '{key}' must be a mapping")

    try:
        cfg = Config.from_dict(data)
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigError(f"{source}: {exc}") from exc

    cfg.type_mappings = {str(k): str(v) for k, v in cfg.type_mappings.items()}
    cfg.nullable_type_mappings = {str(k): str(v) for k, v in cfg.nullable_type_mappings.items()}
    return cfg


def load_config(path: Path) -> Config:
    path = Path(path)
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
    log.debug("Loaded config from %s", path)
    return parse_config(data, str(path))


def find_config(directory: Path = Path(".")) -> Path | None:
    """First default config path that exists in ``directory``."""
    for name in DEFAULT_CONFIG_PATHS:
        path = Path(directory) / name
        if path.is_file():
            return path
    return None


def module_from_go_mod(directory: Path = Path(".")) -> str | None:
    """Module path declared in ``go.mod``, if there is one."""
    try:
        text = (Path(directory) / "go.mod").read_text(encoding="utf-8")
    except OSError:
        return None

    for line in text.splitlines():
        match = _MODULE_LINE.match(line)
        if match:
            return match.group(1).strip('"')
    return None


def resolve_go_package(cfg: Config) -> str:
    """``go_package`` option for the generated schema."""
    if cfg.go_package:
        return cfg.go_package
    if cfg.module_name:
        return f"{cfg.module_name}/proto"
    return f"{PLACEHOLDER_MODULE}/gen/{cfg.proto_package.rsplit('.', 1)[-1]}"


def proto_import(cfg: Config) -> str:
    """Import path of the protoc-generated Go code used by the mappers."""
    return cfg.proto_go_import or resolve_go_package(cfg)


def db_import(cfg: Config) -> str:
    """Import path of the sqlc package."""
    module = cfg.module_name or PLACEHOLDER_MODULE
    sqlc_dir = cfg.sqlc_dir.removeprefix("./").strip("/")
    return f"{module}/{sqlc_dir}" if sqlc_dir else module


def build_type_mappings(cfg: Config) -> TypeMappingConfig:
    """Built-in tables overlaid with the configured mappings, frozen for the run."""
    typemap = TypeMappingConfig()
    typemap.merge(standard=cfg.type_mappings, nullable=cfg.nullable_type_mappings)
    return typemap.freeze()


def render_config(cfg: Config) -> str:
    return render("sqlc2proto.yaml.j2", config=cfg)


def write_config(path: Path, cfg: Config) -> None:
    """Write ``cfg`` as a commented config file."""
    write_artifact(Path(path), render_config(cfg))
