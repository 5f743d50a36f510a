"""Codec service: one loaded registry, one path mapping, decode and encode."""

import logging
from dataclasses import dataclass, field
from typing import Any

from dataclasses_json import DataClassJsonMixin, LetterCase, config

from .codec.messages import (
    CodecError,
    CodecResult,
    EncodeResult,
    decode_hex,
    decode_message,
    encode_message,
)
from .config import Settings
from .mapping import PathTypeMapping
from .schema.loader import SchemaError, SchemaLoader
from .schema.registry import RegistryStore, TypeRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoadReport:
    """Outcome of a schema (re)load."""

    ok: bool
    message_types: tuple[str, ...]
    error: str | None = None


@dataclass(frozen=True)
class SchemaCatalog(DataClassJsonMixin):
    """Loaded files, message types and path mappings, for type selection."""

    dataclass_json_config = config(letter_case=LetterCase.CAMEL)["dataclasses_json"]

    files: list[str] = field(default_factory=list)
    message_types: list[str] = field(default_factory=list)
    path_mappings: list[dict[str, str]] = field(default_factory=list)


class CodecService:
    """Owns the registry store and the path mapping for one process.

    Example:
        service = CodecService(Settings.from_env())
        service.reload()
        result = service.decode(payload, path="/app/backends/node-1")
    """

    def __init__(
        self,
        settings: Settings,
        *,
        loader: SchemaLoader | None = None,
        store: RegistryStore | None = None,
    ) -> None:
        self.settings = settings
        self.loader = loader or SchemaLoader(
            settings.schema_dir,
            import_prefix=settings.import_prefix,
            auxiliary_dir=settings.auxiliary_dir,
        )
        self.store = store or RegistryStore()
        self.mapping: PathTypeMapping = settings.build_mapping()

    @property
    def registry(self) -> TypeRegistry:
        return self.store.current

    @property
    def message_types(self) -> list[str]:
        return list(self.store.current.message_types)

    @property
    def path_mappings(self) -> list[dict[str, str]]:
        return self.mapping.to_list()

    def reload(self) -> LoadReport:
        """Compile the schema directory and publish the result.

        On failure the previously published registry stays in place.
        """
        try:
            registry = self.loader.load()
        except SchemaError as exc:
            logger.error("Failed to load schema files from %s: %s", self.loader.schema_dir, exc)
            return LoadReport(
                ok=False, message_types=self.store.current.message_types, error=str(exc)
            )

        self.store.publish(registry)
        if registry.message_types:
            logger.info("Available message types: %s", ", ".join(registry.message_types))
        return LoadReport(ok=True, message_types=registry.message_types)

    def resolve_type(self, path: str) -> str | None:
        return self.mapping.resolve(path)

    def _type_for(self, type_name: str | None, path: str | None) -> str:
        resolved = type_name or (self.mapping.resolve(path) if path else None)
        if not resolved:
            raise CodecError("No message type specified")
        return resolved

    def decode(
        self, data: bytes, type_name: str | None = None, path: str | None = None
    ) -> CodecResult:
        """Decode a payload as type_name, or as the type mapped to path."""
        return decode_message(self.store.current, data, self._type_for(type_name, path))

    def decode_hex(
        self, data_hex: str, type_name: str | None = None, path: str | None = None
    ) -> CodecResult:
        if not data_hex:
            raise CodecError("No data provided")
        return decode_hex(self.store.current, data_hex, self._type_for(type_name, path))

    def encode(self, obj: Any, type_name: str) -> EncodeResult:
        if not type_name:
            raise CodecError("No message type specified")
        return encode_message(self.store.current, obj, type_name)

    def catalog(self) -> SchemaCatalog:
        registry = self.store.current
        return SchemaCatalog(
            files=[path.name for path in self.loader.discover()],
            message_types=list(registry.message_types),
            path_mappings=self.path_mappings,
        )

    def info(self) -> dict[str, Any]:
        return {
            "protoDir": str(self.loader.schema_dir),
            "messageTypesCount": len(self.store.current.message_types),
            "pathMappingsCount": len(self.mapping),
            "strategy": self.mapping.strategy.value,
        }
