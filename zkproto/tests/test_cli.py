"""Tests for CLI interface."""

import json
import os

from click.testing import CliRunner

from zkproto.cli import cli

PROTOS_DIR = os.path.join(os.path.dirname(os.path.realpath(__file__)), "protos")

SCHEMA_ARGS = ["--proto-dir", PROTOS_DIR, "--import-prefix", "myproj/"]
MAPPING_ARGS = [
    "--mapping",
    "backends:pkg.Backend,users:config.UserConfig",
    "--strategy",
    "segment",
    "--root-path",
    "/app",
]


def _invoke(*args):
    return CliRunner().invoke(cli, [*SCHEMA_ARGS, *MAPPING_ARGS, *args])


def describe_types_command():
    def lists_message_types(expect):
        result = _invoke("types")
        expect(result.exit_code) == 0
        names = result.output.split()
        expect("pkg.Backend" in names) == True
        expect("config.roles.Role" in names) == True

    def fails_when_schema_does_not_compile(expect):
        result = CliRunner().invoke(cli, ["--proto-dir", PROTOS_DIR, "types"])
        expect(result.exit_code) == 1
        expect("Cannot load schema files" in result.output) == True


def describe_catalog_command():
    def outputs_json(expect):
        result = _invoke("catalog", "--json")
        expect(result.exit_code) == 0
        catalog = json.loads(result.output)
        expect(catalog["files"]) == [
            "backend.proto",
            "common.proto",
            "documents.proto",
            "users.proto",
        ]
        expect(catalog["pathMappings"][0]) == {"path": "backends", "type": "pkg.Backend"}
        expect(catalog["info"]["strategy"]) == "segment"

    def outputs_tables(expect):
        result = _invoke("catalog")
        expect(result.exit_code) == 0
        expect("Schema files" in result.output) == True
        expect("config.UserConfig" in result.output) == True


def describe_resolve_command():
    def prints_mapped_type(expect):
        result = _invoke("resolve", "/app/users/ada")
        expect(result.exit_code) == 0
        expect(result.output.strip()) == "config.UserConfig"

    def fails_for_unmapped_paths(expect):
        result = _invoke("resolve", "/app/other")
        expect(result.exit_code) == 1
        expect("No message type mapped" in result.output) == True


def describe_encode_and_decode_commands():
    def encodes_to_hex(expect):
        result = _invoke("encode", "-t", "config.UserConfig", "--json", '{"user": "ada"}')
        expect(result.exit_code) == 0
        expect(result.output.strip()) == "0a03616461"

    def writes_binary_output(expect, tmp_path):
        output_file = tmp_path / "payload.bin"
        result = _invoke(
            "encode", "-t", "config.UserConfig", "--json", '{"user": "ada"}', "-o", str(output_file)
        )
        expect(result.exit_code) == 0
        expect(output_file.read_bytes()) == bytes.fromhex("0a03616461")
        expect("Wrote 5 bytes" in result.output) == True

    def decodes_hex_by_path(expect):
        result = _invoke("decode", "-p", "/app/users/ada", "--hex", "0a03616461")
        expect(result.exit_code) == 0
        expect(json.loads(result.output)) == {
            "decoded": {"user": "ada", "roles": []},
            "messageType": "config.UserConfig",
        }

    def decodes_binary_files(expect, tmp_path):
        input_file = tmp_path / "payload.bin"
        input_file.write_bytes(bytes.fromhex("0a03616461"))
        result = _invoke("decode", "-t", "config.UserConfig", "-i", str(input_file))
        expect(result.exit_code) == 0
        expect(json.loads(result.output)["decoded"]["user"]) == "ada"

    def fails_without_payload(expect):
        result = _invoke("decode", "-t", "pkg.Backend")
        expect(result.exit_code) == 1
        expect("exactly one of --hex or --input" in result.output) == True

    def fails_for_unknown_types(expect):
        result = _invoke("decode", "-t", "pkg.Ghost", "--hex", "00")
        expect(result.exit_code) == 1
        expect("Message type not found: pkg.Ghost" in result.output) == True

    def fails_for_invalid_json(expect):
        result = _invoke("encode", "-t", "pkg.Backend", "--json", "{nope")
        expect(result.exit_code) == 1
        expect("Invalid JSON" in result.output) == True


def describe_help():
    def lists_commands(expect):
        result = CliRunner().invoke(cli, ["--help"])
        expect(result.exit_code) == 0
        for command in ("types", "catalog", "resolve", "decode", "encode"):
            expect(command in result.output) == True
