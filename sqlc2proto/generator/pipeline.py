"""A generation run: walk the sqlc package, select, synthesize and render."""

import logging
from pathlib import Path

from .config import (
    Config,
    build_type_mappings,
    db_import,
    proto_import,
    resolve_go_package,
)
from .descriptors import IncludesSet, MessageDescriptor, QueryDescriptor
from .includes import (
    dependency_additions,
    filter_messages,
    filter_queries,
    load_includes,
    resolve_dependencies,
)
from .mappers import MAPPERS_DIR, MAPPERS_FILE, render_mappers
from .output import Artifact, write_artifact
from .proto import MODELS_FILE, SERVICE_FILE, render_models, render_services, service_file_name
from .services import build_services
from .typemap import TypeMappingConfig
from .walker import QuerierNotFoundError, walk_messages, walk_queries

log = logging.getLogger(__name__)


def load_selection(cfg: Config) -> IncludesSet | None:
    """The configured includes selection, or None to generate everything."""
    if not cfg.include_file:
        return None

    path = Path(cfg.include_file)
    if not path.is_file():
        log.warning("Include file %s not found, generating all models and queries", path)
        return None

    includes = load_includes(path)
    if includes.is_empty():
        log.warning("Include file %s selects nothing, generating all models and queries", path)
        return None
    return includes


def read_queries(directory: Path) -> list[QueryDescriptor]:
    try:
        return walk_queries(directory)
    except QuerierNotFoundError as exc:
        log.warning("%s, skipping services (is emit_interface enabled in sqlc?)", exc)
        return []


def collect(
    cfg: Config, typemap: TypeMappingConfig, with_queries: bool
) -> tuple[list[MessageDescriptor], list[QueryDescriptor]]:
    """Every model and, when asked for, every query in the sqlc package."""
    directory = Path(cfg.sqlc_dir)
    messages = walk_messages(directory, cfg.field_style, typemap)
    queries = read_queries(directory) if with_queries else []
    return messages, queries


def select(
    messages: list[MessageDescriptor],
    queries: list[QueryDescriptor],
    includes: IncludesSet | None,
) -> tuple[list[MessageDescriptor], list[QueryDescriptor]]:
    if includes is None:
        return messages, queries

    resolved = resolve_dependencies(includes, queries, messages)
    additions = dependency_additions(includes, resolved)
    if additions:
        log.info("Including dependencies: %s", ", ".join(additions))
    return filter_messages(messages, resolved), filter_queries(queries, resolved)


def generate(cfg: Config) -> list[Artifact]:
    """Render every artifact the configuration asks for. Nothing is written."""
    typemap = build_type_mappings(cfg)
    messages, queries = collect(cfg, typemap, with_queries=cfg.with_services)
    messages, queries = select(messages, queries, load_selection(cfg))

    proto_dir = Path(cfg.proto_dir)
    go_package = resolve_go_package(cfg)
    artifacts = [
        Artifact(
            path=proto_dir / MODELS_FILE,
            content=render_models(messages, cfg.proto_package, go_package),
            kind="proto",
        )
    ]

    if cfg.with_mappers:
        artifacts.append(
            Artifact(
                path=proto_dir / MAPPERS_DIR / MAPPERS_FILE,
                content=render_mappers(messages, proto_import(cfg), db_import(cfg)),
                kind="mappers",
            )
        )

    if cfg.with_services and queries:
        services = build_services(
            queries,
            messages,
            typemap,
            naming=cfg.service_naming,
            prefix=cfg.service_prefix,
            suffix=cfg.service_suffix,
            options=cfg.service_options,
        )
        if cfg.service_options.split_services:
            groups = [(service_file_name(service), [service]) for service in services]
        else:
            groups = [(SERVICE_FILE, services)]
        for file_name, group in groups:
            artifacts.append(
                Artifact(
                    path=proto_dir / file_name,
                    content=render_services(group, messages, cfg.proto_package, go_package),
                    kind="service",
                )
            )

    return artifacts


def write_artifacts(artifacts: list[Artifact]) -> None:
    for artifact in artifacts:
        write_artifact(artifact.path, artifact.content)
