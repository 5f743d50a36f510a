"""JSON-safe formatting of ZooKeeper node metadata.

Clients hand back stat fields in several shapes: kazoo gives plain ints,
other clients give 8-byte big-endian buffers or long wrappers split into
32-bit halves. Formatting never raises; a field that cannot be read
becomes "0" (64-bit ids), 0 (32-bit counters) or None (timestamps).
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from dataclasses_json import DataClassJsonMixin, LetterCase, config

PERMISSIONS = (
    ("READ", 1 << 0),
    ("WRITE", 1 << 1),
    ("CREATE", 1 << 2),
    ("DELETE", 1 << 3),
    ("ADMIN", 1 << 4),
)

_DIGITS_RE = re.compile(r"-?[0-9]+")

_MISSING: Any = object()


@dataclass(frozen=True)
class NodeMetadata(DataClassJsonMixin):
    """Per-node stat record as shown to callers."""

    dataclass_json_config = config(letter_case=LetterCase.CAMEL)["dataclasses_json"]

    czxid: str = "0"
    mzxid: str = "0"
    ctime: str | None = None
    mtime: str | None = None
    version: int = 0
    cversion: int = 0
    aversion: int = 0
    ephemeral_owner: str = "0"
    data_length: int = 0
    num_children: int = 0
    pzxid: str = "0"


@dataclass(frozen=True)
class AclEntry(DataClassJsonMixin):
    """One ACL entry with its permission bits spelled out."""

    scheme: str = ""
    id: str = ""
    permissions: list[str] = field(default_factory=list)


def _get(record: Any, *names: str) -> Any:
    for name in names:
        if isinstance(record, Mapping):
            value = record.get(name, _MISSING)
        else:
            value = getattr(record, name, _MISSING)
        if value is not _MISSING:
            return value
    return _MISSING


def to_int(value: Any) -> int | None:
    """Read a 64-bit value from any of the supported shapes, or None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        raw = bytes(value)
        if not raw or len(raw) > 8:
            return None
        return int.from_bytes(raw, "big", signed=True)
    if isinstance(value, str):
        return int(value) if _DIGITS_RE.fullmatch(value.strip()) else None

    high = getattr(value, "high", _MISSING)
    low = getattr(value, "low", _MISSING)
    if isinstance(high, int) and isinstance(low, int):
        number = ((high & 0xFFFFFFFF) << 32) | (low & 0xFFFFFFFF)
        if getattr(value, "unsigned", False):
            return number
        return number - (1 << 64) if number >= 1 << 63 else number

    if hasattr(type(value), "__index__"):
        try:
            return value.__index__()
        except (TypeError, ValueError, OverflowError):
            return None
    return None


def format_long(value: Any) -> str:
    """Render a 64-bit field as a decimal string; unreadable values give "0"."""
    number = to_int(value)
    return str(number) if number is not None else "0"


def format_counter(value: Any) -> int:
    number = to_int(value)
    return number if number is not None else 0


def format_timestamp(value: Any) -> str | None:
    """Render milliseconds since the epoch as ISO-8601 UTC.

    Zero, negative and unreadable values mean unset and give None.
    """
    millis = to_int(value)
    if millis is None or millis <= 0:
        return None
    try:
        seconds, remainder = divmod(millis, 1000)
        moment = datetime.fromtimestamp(seconds, tz=UTC).replace(microsecond=remainder * 1000)
    except (OverflowError, OSError, ValueError):
        return None
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def format_stat(stat: Any) -> NodeMetadata:
    """Convert a raw stat record (object or mapping) into NodeMetadata."""
    if stat is None:
        return NodeMetadata()

    return NodeMetadata(
        czxid=format_long(_get(stat, "czxid")),
        mzxid=format_long(_get(stat, "mzxid")),
        ctime=format_timestamp(_get(stat, "ctime")),
        mtime=format_timestamp(_get(stat, "mtime")),
        version=format_counter(_get(stat, "version")),
        cversion=format_counter(_get(stat, "cversion")),
        aversion=format_counter(_get(stat, "aversion")),
        ephemeral_owner=format_long(_get(stat, "ephemeralOwner", "ephemeral_owner")),
        data_length=format_counter(_get(stat, "dataLength", "data_length")),
        num_children=format_counter(_get(stat, "numChildren", "num_children")),
        pzxid=format_long(_get(stat, "pzxid")),
    )


def format_acl(acl: Any) -> AclEntry:
    """Convert an ACL (kazoo ACL or mapping) into an AclEntry."""
    identity = _get(acl, "id")
    perms = to_int(_get(acl, "perms", "permission", "permissions")) or 0
    scheme = _get(identity, "scheme") if identity is not _MISSING else _MISSING
    ident = _get(identity, "id") if identity is not _MISSING else _MISSING

    return AclEntry(
        scheme=scheme if isinstance(scheme, str) else "",
        id=ident if isinstance(ident, str) else "",
        permissions=[name for name, bit in PERMISSIONS if perms & bit],
    )
