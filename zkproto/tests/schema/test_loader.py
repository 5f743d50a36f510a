"""Tests for schema discovery, import resolution and compilation."""

from pathlib import Path

import pytest
from pytest import raises

from zkproto.schema import ImportResolver, SchemaError, SchemaLoader
from zkproto.schema.loader import SchemaSource, well_known_dir


@pytest.fixture
def resolver(tmp_path):
    return ImportResolver(
        schema_dir=tmp_path / "protos",
        import_prefix="myproj/",
        auxiliary_dir=tmp_path / "aux",
        well_known_dir=tmp_path / "wkt",
    )


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def describe_import_resolver():
    def keeps_absolute_targets(expect, resolver):
        expect(resolver("/opt/schemas/x.proto", Path("/anywhere/a.proto"))) == Path(
            "/opt/schemas/x.proto"
        )

    def resolves_well_known_imports_against_library(expect, resolver, tmp_path):
        target = resolver("google/protobuf/timestamp.proto", tmp_path / "protos" / "a.proto")
        expect(target) == tmp_path / "wkt" / "google/protobuf/timestamp.proto"

    def resolves_google_api_against_auxiliary_dir(expect, resolver, tmp_path):
        target = resolver("google/api/annotations.proto", tmp_path / "protos" / "a.proto")
        expect(target) == tmp_path / "aux" / "google/api/annotations.proto"

    def strips_configured_prefix(expect, resolver, tmp_path):
        target = resolver("myproj/common/types.proto", tmp_path / "protos" / "sub" / "a.proto")
        expect(target) == tmp_path / "protos" / "common/types.proto"

    def resolves_nested_imports_relative_to_importing_file(expect, resolver, tmp_path):
        target = resolver("roles.proto", tmp_path / "protos" / "nested" / "users.proto")
        expect(target) == tmp_path / "protos" / "nested" / "roles.proto"

    def resolves_root_imports_against_schema_dir(expect, resolver, tmp_path):
        expect(resolver("a.proto")) == tmp_path / "protos" / "a.proto"

    def ignores_prefix_when_unset(expect, tmp_path):
        plain = ImportResolver(schema_dir=tmp_path, well_known_dir=tmp_path / "wkt")
        expect(plain("myproj/a.proto")) == tmp_path / "myproj/a.proto"

    def well_known_checked_before_prefix(expect, tmp_path):
        greedy = ImportResolver(
            schema_dir=tmp_path, import_prefix="google/", well_known_dir=tmp_path / "wkt"
        )
        expected = tmp_path / "wkt" / "google/protobuf/any.proto"
        expect(greedy("google/protobuf/any.proto")) == expected

    def names_files_relative_to_their_base(expect, resolver, tmp_path):
        nested = tmp_path / "protos" / "nested" / "a.proto"
        expect(resolver.canonical_name(nested)) == "nested/a.proto"
        expect(resolver.canonical_name(tmp_path / "wkt" / "google/protobuf/any.proto")) == (
            "google/protobuf/any.proto"
        )
        expect(resolver.canonical_name(Path("/opt/x.proto"))) == "external/opt/x.proto"

    def defaults_to_bundled_well_known_types(expect):
        expect((well_known_dir() / "google/protobuf/timestamp.proto").is_file()) == True


def describe_schema_source():
    def reads_text(expect, tmp_path):
        path = _write(tmp_path / "a.proto", 'syntax = "proto3";')
        expect(SchemaSource.read(path).text) == 'syntax = "proto3";'

    def reports_unreadable_files(expect, tmp_path):
        with raises(SchemaError):
            SchemaSource.read(tmp_path / "missing.proto")


def describe_discover():
    def lists_only_top_level_proto_files(expect, tmp_path):
        _write(tmp_path / "b.proto", "")
        _write(tmp_path / "a.proto", "")
        _write(tmp_path / "notes.txt", "")
        _write(tmp_path / "nested" / "c.proto", "")
        expect([p.name for p in SchemaLoader(tmp_path).discover()]) == ["a.proto", "b.proto"]

    def treats_missing_directory_as_empty(expect, tmp_path):
        expect(SchemaLoader(tmp_path / "absent").discover()) == []


def describe_load():
    def returns_empty_registry_without_schema_files(expect, tmp_path):
        _write(tmp_path / "readme.md", "no schemas here")
        registry = SchemaLoader(tmp_path).load()
        expect(registry.message_types) == ()
        expect(registry.is_empty) == True

    def returns_empty_registry_for_missing_directory(expect, tmp_path):
        expect(SchemaLoader(tmp_path / "absent").load().message_types) == ()

    def compiles_fixture_directory(expect, registry):
        expect(set(registry.message_types)) == {
            "pkg.Backend",
            "pkg.Backend.Endpoint",
            "pkg.common.Region",
            "google.protobuf.Timestamp",
            "config.UserConfig",
            "config.roles.Role",
            "pkg.docs.Document",
            "google.protobuf.Struct",
            "google.protobuf.Value",
            "google.protobuf.ListValue",
            "google.protobuf.DoubleValue",
            "google.protobuf.FloatValue",
            "google.protobuf.Int64Value",
            "google.protobuf.UInt64Value",
            "google.protobuf.Int32Value",
            "google.protobuf.UInt32Value",
            "google.protobuf.BoolValue",
            "google.protobuf.StringValue",
            "google.protobuf.BytesValue",
        }
        expect(registry.files) == (
            "backend.proto",
            "common.proto",
            "documents.proto",
            "users.proto",
        )

    def resolves_cross_file_references(expect, registry):
        descriptor = registry.lookup("pkg.Backend")
        expect(descriptor.fields_by_name["region"].message_type.full_name) == "pkg.common.Region"
        expect(descriptor.fields_by_name["updated_at"].message_type.full_name) == (
            "google.protobuf.Timestamp"
        )

    def follows_relative_imports_from_nested_files(expect, registry):
        role = registry.lookup("config.roles.Role")
        expect(role.fields_by_name["permission"].enum_type.full_name) == "config.roles.Permission"

    def fails_without_import_prefix(expect, protos_dir):
        with raises(SchemaError) as exc_info:
            SchemaLoader(protos_dir).load()
        expect("myproj/common.proto" in str(exc_info.value)) == True

    def reports_compile_errors(expect, tmp_path):
        _write(tmp_path / "bad.proto", 'syntax = "proto3";\nmessage Bad { strin name = 1; }\n')
        with raises(SchemaError) as exc_info:
            SchemaLoader(tmp_path).load()
        expect("strin" in str(exc_info.value)) == True

    def reports_unknown_cross_file_types(expect, tmp_path):
        _write(tmp_path / "a.proto", 'syntax = "proto3";\nmessage A { B b = 1; }\n')
        with raises(SchemaError):
            SchemaLoader(tmp_path).load()

    def compiles_files_referencing_each_other(expect, tmp_path):
        _write(
            tmp_path / "a.proto",
            'syntax = "proto3";\npackage demo;\nimport "b.proto";\nmessage A { B b = 1; }\n',
        )
        _write(
            tmp_path / "b.proto",
            'syntax = "proto3";\npackage demo;\nmessage B { int64 id = 1; }\n',
        )
        registry = SchemaLoader(tmp_path).load()
        expect(registry.message_types) == ("demo.B", "demo.A")

    def loads_auxiliary_imports(expect, tmp_path):
        aux = tmp_path / "google-protos"
        _write(
            aux / "google/api/http.proto",
            'syntax = "proto3";\npackage google.api;\nmessage HttpRule { string get = 1; }\n',
        )
        _write(
            tmp_path / "protos" / "svc.proto",
            'syntax = "proto3";\npackage svc;\nimport "google/api/http.proto";\n'
            "message Route { google.api.HttpRule rule = 1; }\n",
        )
        registry = SchemaLoader(tmp_path / "protos", auxiliary_dir=aux).load()
        expect("google.api.HttpRule" in registry.message_types) == True
        expect("svc.Route" in registry.message_types) == True

    def loads_absolute_imports(expect, tmp_path):
        shared = _write(
            tmp_path / "shared" / "ids.proto",
            'syntax = "proto3";\npackage shared;\nmessage Id { uint64 value = 1; }\n',
        )
        _write(
            tmp_path / "protos" / "a.proto",
            f'syntax = "proto3";\npackage demo;\nimport "{shared}";\n'
            "message A { shared.Id id = 1; }\n",
        )
        registry = SchemaLoader(tmp_path / "protos").load()
        expect(set(registry.message_types)) == {"shared.Id", "demo.A"}

    def rejects_distinct_files_staged_under_one_name(expect, tmp_path):
        rule = 'syntax = "proto3";\npackage google.api;\nmessage Rule { string get = 1; }\n'
        _write(tmp_path / "aux" / "google/api/x.proto", rule)
        _write(tmp_path / "protos" / "google/api/x.proto", rule)
        _write(
            tmp_path / "protos" / "a.proto",
            'syntax = "proto3";\nimport "google/api/x.proto";\n'
            'import "myproj/google/api/x.proto";\n',
        )
        loader = SchemaLoader(
            tmp_path / "protos", import_prefix="myproj/", auxiliary_dir=tmp_path / "aux"
        )
        with raises(SchemaError) as exc_info:
            loader.load()
        expect("both resolve to google/api/x.proto" in str(exc_info.value)) == True
