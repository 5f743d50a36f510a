"""Schema discovery, import resolution and compilation.

All .proto files found directly in the schema directory are compiled in a
single protoc run so that types may reference each other across files.
Imports are resolved by ImportResolver rather than by protoc's include path:
every reachable file is copied into a staging directory under a canonical
name, with its import targets rewritten to the canonical names they resolved
to, and protoc only ever sees the staging directory.
"""

import logging
import os
import subprocess
import sys
import tempfile
from collections import deque
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path

from google.protobuf import descriptor_pb2
from google.protobuf.message import DecodeError

from .imports import ImportScanError, ImportStatement, rewrite_imports, scan_imports
from .registry import TypeRegistry

logger = logging.getLogger(__name__)

SCHEMA_EXTENSION = ".proto"

# Shipped with grpcio-tools next to protoc.
WELL_KNOWN_PREFIX = "google/protobuf/"

# Fetched separately at image build time (googleapis annotations and http rules).
AUXILIARY_PREFIX = "google/api/"
DEFAULT_AUXILIARY_DIR = Path("/app/google-protos")


class SchemaError(RuntimeError):
    """Raised when schema files cannot be read, resolved or compiled."""


def well_known_dir() -> Path:
    """Return the include directory bundled with grpcio-tools."""
    return Path(str(resources.files("grpc_tools") / "_proto"))


@dataclass(frozen=True)
class SchemaSource:
    """One schema file as read from disk."""

    path: Path
    text: str

    @classmethod
    def read(cls, path: Path) -> "SchemaSource":
        try:
            return cls(path=path, text=path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError) as exc:
            raise SchemaError(f"Cannot read schema file {path}: {exc}") from exc


@dataclass(frozen=True)
class ImportResolver:
    """Map an import target to a file on disk.

    Rules, first match wins:
    - absolute targets are used unchanged
    - google/protobuf/... resolves against the grpcio-tools include directory
    - google/api/... resolves against the auxiliary directory
    - targets starting with import_prefix lose the prefix and resolve
      against the schema directory
    - imports made from a file resolve relative to that file's directory
    - anything else resolves against the schema directory
    """

    schema_dir: Path
    import_prefix: str | None = None
    auxiliary_dir: Path = DEFAULT_AUXILIARY_DIR
    well_known_dir: Path = field(default_factory=well_known_dir)

    def __call__(self, target: str, origin: Path | None = None) -> Path:
        if os.path.isabs(target):
            return Path(target)
        if target.startswith(WELL_KNOWN_PREFIX):
            return self.well_known_dir / target
        if target.startswith(AUXILIARY_PREFIX):
            return self.auxiliary_dir / target
        if self.import_prefix and target.startswith(self.import_prefix):
            return self.schema_dir / target[len(self.import_prefix) :].lstrip("/")
        if origin is not None:
            return origin.parent / target
        return self.schema_dir / target

    def canonical_name(self, path: Path) -> str:
        """Return the name a resolved file is staged and compiled under."""
        resolved = path.resolve()
        for base in (self.schema_dir, self.well_known_dir, self.auxiliary_dir):
            try:
                return resolved.relative_to(base.resolve()).as_posix()
            except ValueError:
                continue
        return "external/" + resolved.as_posix().lstrip("/")


class SchemaLoader:
    """Build a TypeRegistry from a directory of .proto files."""

    def __init__(
        self,
        schema_dir: str | Path,
        *,
        import_prefix: str | None = None,
        auxiliary_dir: str | Path = DEFAULT_AUXILIARY_DIR,
        resolver: ImportResolver | None = None,
    ) -> None:
        self.schema_dir = Path(schema_dir)
        self.resolver = resolver or ImportResolver(
            schema_dir=self.schema_dir,
            import_prefix=import_prefix or None,
            auxiliary_dir=Path(auxiliary_dir),
        )

    def discover(self) -> list[Path]:
        """List schema files directly inside the schema directory."""
        try:
            entries = sorted(self.schema_dir.iterdir())
        except OSError:
            return []
        return [path for path in entries if path.suffix == SCHEMA_EXTENSION and path.is_file()]

    def load(self) -> TypeRegistry:
        """Compile every discovered schema file into a new registry.

        Returns:
            A complete registry, empty when the directory holds no schema files.

        Raises:
            SchemaError: If any file fails to resolve or compile.
        """
        files = self.discover()
        if not files:
            logger.info("No %s files found in %s", SCHEMA_EXTENSION, self.schema_dir)
            return TypeRegistry.empty()

        with tempfile.TemporaryDirectory(prefix="zkproto-") as tmp:
            staging = Path(tmp) / "src"
            staging.mkdir()
            roots = self._stage(files, staging)
            file_set = self._compile(roots, staging, Path(tmp) / "descriptors.pb")

        try:
            registry = TypeRegistry.from_file_set(file_set, [path.name for path in files])
        except (TypeError, ValueError) as exc:
            raise SchemaError(f"Cannot build type registry: {exc}") from exc

        logger.info(
            "Loaded %d schema files from %s (%d message types)",
            len(files),
            self.schema_dir,
            len(registry.message_types),
        )
        return registry

    def _stage(self, files: list[Path], staging: Path) -> list[str]:
        names: dict[Path, str] = {}
        owners: dict[str, Path] = {}
        pending: deque[tuple[Path, str]] = deque()

        def register(path: Path) -> str:
            real = path.resolve()
            if real not in names:
                name = self.resolver.canonical_name(real)
                owner = owners.setdefault(name, real)
                if owner != real:
                    raise SchemaError(f"{real} and {owner} both resolve to {name}")
                names[real] = name
                pending.append((real, name))
            return names[real]

        roots = [register(self.resolver(path.name)) for path in files]

        while pending:
            path, name = pending.popleft()
            source = SchemaSource.read(path)
            replacements: list[tuple[ImportStatement, str]] = []
            for statement in self._scan(source, name):
                target = self.resolver(statement.target, source.path)
                if not target.is_file():
                    raise SchemaError(
                        f'{name}: cannot resolve import "{statement.target}" (looked for {target})'
                    )
                replacements.append((statement, register(target)))

            staged = staging / name
            staged.parent.mkdir(parents=True, exist_ok=True)
            staged.write_text(rewrite_imports(source.text, replacements), encoding="utf-8")

        return roots

    @staticmethod
    def _scan(source: SchemaSource, name: str) -> list[ImportStatement]:
        try:
            return scan_imports(source.text)
        except ImportScanError as exc:
            raise SchemaError(f"{name}: {exc}") from exc

    @staticmethod
    def _compile(roots: list[str], staging: Path, output: Path) -> descriptor_pb2.FileDescriptorSet:
        command = [
            sys.executable,
            "-m",
            "grpc_tools.protoc",
            f"--proto_path={staging}",
            f"--descriptor_set_out={output}",
            "--include_imports",
            *roots,
        ]
        result = subprocess.run(command, cwd=staging, capture_output=True, text=True, check=False)
        if result.returncode != 0:
            message = result.stderr.strip() or f"protoc exited with status {result.returncode}"
            raise SchemaError(message)

        try:
            return descriptor_pb2.FileDescriptorSet.FromString(output.read_bytes())
        except (OSError, DecodeError) as exc:
            raise SchemaError(f"Cannot read compiled descriptors: {exc}") from exc
