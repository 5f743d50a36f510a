"""Node path to message type resolution."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import StrEnum, auto

from dataclasses_json import DataClassJsonMixin


class MappingError(ValueError):
    """Raised for malformed path mapping configuration."""


class ResolutionStrategy(StrEnum):
    """How a node path is matched against the mapping table."""

    PREFIX = auto()  # first entry whose key the path starts with
    SEGMENT = auto()  # first path segment below the root path, exact key


@dataclass(frozen=True)
class PathTypeEntry(DataClassJsonMixin):
    """One configured key (path prefix or segment) and its message type."""

    path: str
    type: str


def parse_mapping_text(text: str | None) -> tuple[PathTypeEntry, ...]:
    """Parse "key:type,key:type" configuration text.

    Each entry is split on its last colon, since node paths may contain
    colons and type names never do. Blank entries are skipped.
    """
    entries = []
    for chunk in (text or "").split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        key, sep, type_name = chunk.rpartition(":")
        if not sep or not key.strip() or not type_name.strip():
            raise MappingError(f"Invalid path mapping entry: {chunk!r} (expected key:type)")
        entries.append(PathTypeEntry(path=key.strip(), type=type_name.strip()))
    return tuple(entries)


def resolve_by_prefix(path: str, entries: Iterable[PathTypeEntry]) -> str | None:
    """Return the type of the first entry whose key the path starts with."""
    for entry in entries:
        if path.startswith(entry.path):
            return entry.type
    return None


def strip_root(path: str, root_path: str | None) -> str:
    """Remove root_path from the front of path when path lies below it."""
    root = (root_path or "").rstrip("/")
    if root and (path == root or path.startswith(root + "/")):
        return path[len(root) :]
    return path


def resolve_by_segment(
    path: str, table: Mapping[str, str], root_path: str | None = None
) -> str | None:
    """Look up the first segment below root_path; deeper segments are ignored."""
    segments = [segment for segment in strip_root(path, root_path).split("/") if segment]
    if not segments:
        return None
    return table.get(segments[0])


class PathTypeMapping:
    """Immutable mapping table with a fixed resolution strategy."""

    def __init__(
        self,
        entries: Iterable[PathTypeEntry] = (),
        strategy: ResolutionStrategy = ResolutionStrategy.PREFIX,
        root_path: str | None = None,
    ) -> None:
        self._entries = tuple(entries)
        self._strategy = ResolutionStrategy(strategy)
        self._root_path = root_path or None

        table: dict[str, str] = {}
        for entry in self._entries:
            table.setdefault(entry.path, entry.type)
        self._table = table

    @classmethod
    def from_text(
        cls,
        text: str | None,
        strategy: ResolutionStrategy = ResolutionStrategy.PREFIX,
        root_path: str | None = None,
    ) -> "PathTypeMapping":
        return cls(parse_mapping_text(text), strategy=strategy, root_path=root_path)

    @property
    def entries(self) -> tuple[PathTypeEntry, ...]:
        return self._entries

    @property
    def strategy(self) -> ResolutionStrategy:
        return self._strategy

    @property
    def root_path(self) -> str | None:
        return self._root_path

    def resolve(self, path: str) -> str | None:
        """Return the message type configured for a node path, if any."""
        if self._strategy == ResolutionStrategy.SEGMENT:
            return resolve_by_segment(path, self._table, self._root_path)
        return resolve_by_prefix(path, self._entries)

    def to_list(self) -> list[dict[str, str]]:
        return [entry.to_dict() for entry in self._entries]

    def __len__(self) -> int:
        return len(self._entries)
