"""Conversion between binary payloads and JSON-safe objects."""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from dataclasses_json import DataClassJsonMixin, LetterCase, config
from google.protobuf import json_format
from google.protobuf.descriptor import Descriptor, FieldDescriptor
from google.protobuf.message import DecodeError, EncodeError

from zkproto.schema.registry import TypeRegistry

from .numeric import NUMERIC_TEXT_TYPES, as_json_numbers, normalize, restore

_VALUE_TYPE = "google.protobuf.Value"

# Wrapper types whose JSON form is a bare number.
_NUMERIC_WRAPPER_TYPES = frozenset(
    [
        "google.protobuf.DoubleValue",
        "google.protobuf.FloatValue",
        "google.protobuf.Int64Value",
        "google.protobuf.UInt64Value",
        "google.protobuf.Int32Value",
        "google.protobuf.UInt32Value",
    ]
)

_NUMERIC_CPP_TYPES = frozenset(
    [
        FieldDescriptor.CPPTYPE_INT32,
        FieldDescriptor.CPPTYPE_INT64,
        FieldDescriptor.CPPTYPE_UINT32,
        FieldDescriptor.CPPTYPE_UINT64,
        FieldDescriptor.CPPTYPE_DOUBLE,
        FieldDescriptor.CPPTYPE_FLOAT,
        FieldDescriptor.CPPTYPE_ENUM,
    ]
)


class CodecError(RuntimeError):
    """Raised when a payload cannot be decoded or encoded."""


class PayloadDecodeError(CodecError):
    """Raised for payloads that are not a valid encoding of the type."""


class PayloadEncodeError(CodecError):
    """Raised for objects that cannot be converted to the type."""


@dataclass(frozen=True)
class CodecResult(DataClassJsonMixin):
    """A decoded payload and the type it was decoded as."""

    dataclass_json_config = config(letter_case=LetterCase.CAMEL)["dataclasses_json"]

    decoded: dict[str, Any]
    message_type: str


@dataclass(frozen=True)
class EncodeResult:
    """An encoded payload."""

    data: bytes
    length: int

    @property
    def data_hex(self) -> str:
        return self.data.hex()


def _is_well_known(descriptor: Descriptor) -> bool:
    return descriptor.full_name.startswith("google.protobuf.")


def _is_map(field: FieldDescriptor) -> bool:
    return field.message_type is not None and field.message_type.GetOptions().map_entry


def _fill_unset_messages(obj: dict[str, Any], descriptor: Descriptor) -> None:
    """Render unset singular message fields as null.

    Fields inside a oneof stay absent, as do google.protobuf.Value fields,
    where null is a value of its own.
    """
    if _is_well_known(descriptor):
        return

    for field in descriptor.fields:
        if field.message_type is None:
            continue
        value = obj.get(field.json_name)
        if _is_map(field):
            value_type = field.message_type.fields_by_name["value"].message_type
            if value_type is not None:
                for item in (value or {}).values():
                    if isinstance(item, dict):
                        _fill_unset_messages(item, value_type)
        elif field.is_repeated:
            for item in value or []:
                if isinstance(item, dict):
                    _fill_unset_messages(item, field.message_type)
        elif field.json_name not in obj:
            if field.containing_oneof is None and field.message_type.full_name != _VALUE_TYPE:
                obj[field.json_name] = None
        elif isinstance(value, dict):
            _fill_unset_messages(value, field.message_type)


def decode_message(registry: TypeRegistry, data: bytes, type_name: str) -> CodecResult:
    """Decode a binary payload into a JSON-safe object.

    64-bit integers become decimal strings, enums become their names, bytes
    become base64 strings, and fields missing from the payload are filled in
    with their defaults.

    Raises:
        TypeNotFoundError: If type_name is not registered.
        PayloadDecodeError: If data is not a valid encoding of the type.
    """
    message = registry.message_class(type_name)()
    try:
        message.ParseFromString(bytes(data))
        decoded = json_format.MessageToDict(
            message,
            always_print_fields_with_no_presence=True,
            descriptor_pool=registry.pool,
        )
    except (DecodeError, json_format.Error, TypeError, ValueError) as exc:
        raise PayloadDecodeError(f"Cannot decode {type_name}: {exc}") from exc

    _fill_unset_messages(decoded, message.DESCRIPTOR)
    return CodecResult(decoded=decoded, message_type=message.DESCRIPTOR.full_name)


def decode_hex(registry: TypeRegistry, data_hex: str, type_name: str) -> CodecResult:
    """Decode a hex-encoded payload."""
    try:
        data = bytes.fromhex(data_hex)
    except ValueError as exc:
        raise PayloadDecodeError(f"Invalid hex payload: {exc}") from exc
    return decode_message(registry, data, type_name)


def _message_value(value: Any, descriptor: Descriptor) -> Any:
    if descriptor.full_name in _NUMERIC_WRAPPER_TYPES:
        return as_json_numbers(value)
    if _is_well_known(descriptor) or not isinstance(value, dict):
        return restore(value)

    fields: dict[str, FieldDescriptor] = {}
    for field in descriptor.fields:
        fields[field.name] = field
        fields[field.json_name] = field

    return {
        key: _field_value(item, fields[key]) if key in fields else restore(item)
        for key, item in value.items()
    }


def _field_value(value: Any, field: FieldDescriptor) -> Any:
    if value is None:
        return None
    if _is_map(field):
        if not isinstance(value, dict):
            return restore(value)
        value_field = field.message_type.fields_by_name["value"]
        return {key: _single_value(item, value_field) for key, item in value.items()}
    if field.is_repeated and isinstance(value, list):
        return [_single_value(item, field) for item in value]
    return _single_value(value, field)


def _single_value(value: Any, field: FieldDescriptor) -> Any:
    if field.message_type is not None:
        return _message_value(value, field.message_type)
    if isinstance(value, list):
        return restore(value)
    if not isinstance(value, NUMERIC_TEXT_TYPES):
        return value
    if field.cpp_type in _NUMERIC_CPP_TYPES:
        return value.value
    return value.text


def encode_message(registry: TypeRegistry, obj: Any, type_name: str) -> EncodeResult:
    """Encode a JSON-safe object as a binary payload.

    Accepts the output of decode_message, including 64-bit integers given as
    decimal strings.

    Raises:
        TypeNotFoundError: If type_name is not registered.
        PayloadEncodeError: If obj cannot be converted to the type.
    """
    message = registry.message_class(type_name)()
    if not isinstance(obj, Mapping):
        raise PayloadEncodeError(
            f"Cannot encode {type_name}: expected a JSON object, got {type(obj).__name__}"
        )

    prepared = _message_value(normalize(obj), message.DESCRIPTOR)
    try:
        json_format.ParseDict(prepared, message, descriptor_pool=registry.pool)
        data = message.SerializeToString(deterministic=True)
    except (json_format.Error, EncodeError, TypeError, ValueError) as exc:
        raise PayloadEncodeError(f"Cannot encode {type_name}: {exc}") from exc

    return EncodeResult(data=data, length=len(data))
