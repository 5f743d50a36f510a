"""Process configuration, read once at startup."""

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from dataclasses_json import DataClassJsonMixin

from .mapping import MappingError, PathTypeMapping, ResolutionStrategy
from .schema.loader import DEFAULT_AUXILIARY_DIR

DEFAULT_PROTO_DIR = "protos"

# Environment variable names
PROTO_DIR = "PROTO_DIR"
PROTO_IMPORT_PREFIX = "PROTO_IMPORT_PREFIX"
ZK_ROOT_PATH = "ZK_ROOT_PATH"
PROTO_PATH_MAPPING = "PROTO_PATH_MAPPING"
PROTO_MAPPING_STRATEGY = "PROTO_MAPPING_STRATEGY"
PROTO_AUX_DIR = "PROTO_AUX_DIR"


class SettingsError(ValueError):
    """Raised for invalid configuration values."""


@dataclass(frozen=True)
class Settings(DataClassJsonMixin):
    """Schema and mapping configuration."""

    proto_dir: str = DEFAULT_PROTO_DIR
    import_prefix: str | None = None
    root_path: str | None = None
    path_mapping: str = ""
    strategy: ResolutionStrategy = ResolutionStrategy.PREFIX
    auxiliary_dir: str = str(DEFAULT_AUXILIARY_DIR)

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "strategy", ResolutionStrategy(str(self.strategy).lower()))
        except ValueError:
            choices = ", ".join(s.value for s in ResolutionStrategy)
            raise SettingsError(
                f"Unknown mapping strategy {self.strategy!r} (expected one of: {choices})"
            ) from None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Read settings from environment variables; unset or empty values use defaults."""
        env = os.environ if environ is None else environ
        return cls(
            proto_dir=env.get(PROTO_DIR) or DEFAULT_PROTO_DIR,
            import_prefix=env.get(PROTO_IMPORT_PREFIX) or None,
            root_path=env.get(ZK_ROOT_PATH) or None,
            path_mapping=env.get(PROTO_PATH_MAPPING, ""),
            strategy=env.get(PROTO_MAPPING_STRATEGY) or ResolutionStrategy.PREFIX,
            auxiliary_dir=env.get(PROTO_AUX_DIR) or str(DEFAULT_AUXILIARY_DIR),
        )

    @property
    def schema_dir(self) -> Path:
        return Path(self.proto_dir)

    def build_mapping(self) -> PathTypeMapping:
        try:
            return PathTypeMapping.from_text(
                self.path_mapping, strategy=self.strategy, root_path=self.root_path
            )
        except MappingError as exc:
            raise SettingsError(str(exc)) from exc
