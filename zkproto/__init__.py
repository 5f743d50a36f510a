"""zkproto - Protobuf codec for ZooKeeper node payloads."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("zkproto")
except PackageNotFoundError:
    __version__ = "(local)"
