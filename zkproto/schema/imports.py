"""Import statement scanner for .proto sources using Lark."""

import os
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from lark import Lark
from lark.exceptions import LarkError
from lark.visitors import Transformer

_g_parser: Lark | None = None


class ImportScanError(RuntimeError):
    """Raised when a schema source cannot be tokenized."""


@dataclass(frozen=True)
class ImportStatement:
    """An import statement and the position of its quoted target.

    start/end delimit the quoted string (quotes included) in the source text.
    """

    target: str
    modifier: str | None
    start: int
    end: int


class ImportTransformer(Transformer):
    """Transform import_stmt subtrees into ImportStatement values."""

    def import_stmt(self, args: list[Any]) -> ImportStatement:
        modifier, target = args
        return ImportStatement(
            target=str(target)[1:-1],
            modifier=str(modifier) if modifier is not None else None,
            start=target.start_pos,
            end=target.end_pos,
        )


def scan_imports(text: str) -> list[ImportStatement]:
    """Return the import statements of a schema source in source order."""
    global _g_parser

    if not _g_parser:
        with open(f"{os.path.dirname(__file__)}/imports.lark", encoding="utf-8") as f:
            grammar = f.read()
        _g_parser = Lark(grammar, parser="lalr")

    try:
        tree = _g_parser.parse(text)
    except LarkError as exc:
        raise ImportScanError(str(exc)) from exc

    items = ImportTransformer().transform(tree).children
    return [item for item in items if isinstance(item, ImportStatement)]


def rewrite_imports(text: str, targets: Iterable[tuple[ImportStatement, str]]) -> str:
    """Replace the quoted target of each import statement with a new target."""
    pieces: list[str] = []
    last = 0
    for statement, target in sorted(targets, key=lambda pair: pair[0].start):
        pieces.append(text[last : statement.start])
        pieces.append(f'"{target}"')
        last = statement.end
    pieces.append(text[last:])
    return "".join(pieces)
