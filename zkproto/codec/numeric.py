"""Numeric normalization for JSON input.

Decoding renders 64-bit integers as decimal strings. Before encoding, every
string that looks like a number is classified so the field conversion step
can hand the target field either a number or the original text. Integers
outside the range a double represents exactly stay opaque and are passed on
as text.
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

MAX_SAFE_INTEGER = 2**53 - 1

_INTEGER_RE = re.compile(r"-?[0-9]+")
_DECIMAL_RE = re.compile(r"-?[0-9]+\.[0-9]+")


@dataclass(frozen=True, slots=True)
class ExactInteger:
    """An integer string within the safe range."""

    value: int
    text: str


@dataclass(frozen=True, slots=True)
class DecimalNumber:
    """A decimal string (digits, point, digits)."""

    value: float
    text: str


@dataclass(frozen=True, slots=True)
class OpaqueNumericString:
    """An integer string outside the safe range; its value is its text."""

    text: str

    @property
    def value(self) -> str:
        return self.text


NumericText = ExactInteger | DecimalNumber | OpaqueNumericString
NUMERIC_TEXT_TYPES = (ExactInteger, DecimalNumber, OpaqueNumericString)


def classify(text: str) -> NumericText | str:
    """Classify a single string; non-numeric strings are returned unchanged."""
    if _INTEGER_RE.fullmatch(text):
        number = int(text)
        if -MAX_SAFE_INTEGER <= number <= MAX_SAFE_INTEGER:
            return ExactInteger(value=number, text=text)
        return OpaqueNumericString(text=text)
    if _DECIMAL_RE.fullmatch(text):
        return DecimalNumber(value=float(text), text=text)
    return text


def normalize(value: Any) -> Any:
    """Classify every string value in a JSON tree. Object keys are left alone."""
    if isinstance(value, str):
        return classify(value)
    if isinstance(value, Mapping):
        return {key: normalize(item) for key, item in value.items()}
    if isinstance(value, list):
        return [normalize(item) for item in value]
    return value


def restore(value: Any) -> Any:
    """Replace classified strings with their original text."""
    if isinstance(value, NUMERIC_TEXT_TYPES):
        return value.text
    if isinstance(value, dict):
        return {key: restore(item) for key, item in value.items()}
    if isinstance(value, list):
        return [restore(item) for item in value]
    return value


def as_json_numbers(value: Any) -> Any:
    """Replace classified strings with their numbers; opaque ones stay text."""
    if isinstance(value, NUMERIC_TEXT_TYPES):
        return value.value
    if isinstance(value, dict):
        return {key: as_json_numbers(item) for key, item in value.items()}
    if isinstance(value, list):
        return [as_json_numbers(item) for item in value]
    return value
