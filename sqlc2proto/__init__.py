"""sqlc2proto - Protocol Buffers, Go mappers and RPC services from sqlc output."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("sqlc2proto")
except PackageNotFoundError:
    __version__ = "(local)"
