"""Raw payload preview shown before any schema is applied."""

import json
from dataclasses import dataclass
from typing import Any

from dataclasses_json import DataClassJsonMixin, LetterCase, config


@dataclass(frozen=True)
class PayloadPreview(DataClassJsonMixin):
    """Text, hex and JSON views of a node payload."""

    dataclass_json_config = config(letter_case=LetterCase.CAMEL)["dataclasses_json"]

    data: str | None = None
    data_hex: str | None = None
    is_json: bool = False
    json_data: Any = None


def preview_payload(data: bytes | None) -> PayloadPreview:
    """Describe a payload as hex, as UTF-8 text and, if it parses, as JSON.

    Invalid UTF-8 sequences are shown as replacement characters.
    """
    if data is None:
        return PayloadPreview()

    text = bytes(data).decode("utf-8", errors="replace")
    try:
        json_data = json.loads(text)
    except ValueError:
        return PayloadPreview(data=text, data_hex=data.hex())
    return PayloadPreview(data=text, data_hex=data.hex(), is_json=True, json_data=json_data)
