"""JSON-like text codec for export files.

A small hand-written parser and writer for the JSON documents the engine
persists (master catalogs, per-actor ledgers, the audit log, and the quest
definition artifact). Output is deterministic: two-space indentation, keys in
insertion order, one element per line.

Numbers decode to ``int`` when the lexeme is an integer that fits in 64 bits,
otherwise to ``float``.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Any

from questledger.codec.result import ParseErr, ParseOk, ParseResult
from questledger.errors import CodecSyntaxError

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1

_WHITESPACE = frozenset(" \t\r\n")
_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")

_SIMPLE_ESCAPES = {
    '"': '"',
    "\\": "\\",
    "/": "/",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
}

_WRITE_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}


# -----------------------------------------------------------------------------
# Parsing
# -----------------------------------------------------------------------------


class _Parser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.index = 0

    def parse_document(self) -> Any:
        self.skip_whitespace()
        value = self.parse_value()
        self.skip_whitespace()
        if not self.at_end():
            raise self.error("Unexpected characters after the document")
        return value

    def parse_value(self) -> Any:
        self.skip_whitespace()
        if self.at_end():
            raise self.error("Unexpected end of input")
        ch = self.text[self.index]
        if ch == "{":
            return self.parse_object()
        if ch == "[":
            return self.parse_array()
        if ch == '"':
            return self.parse_string()
        if ch == "t":
            return self.parse_literal("true", True)
        if ch == "f":
            return self.parse_literal("false", False)
        if ch == "n":
            return self.parse_literal("null", None)
        if ch == "-" or ch.isdigit():
            return self.parse_number()
        raise self.error(f"Unexpected character '{ch}'")

    def parse_object(self) -> dict[str, Any]:
        self.expect("{")
        result: dict[str, Any] = {}
        if self.consume("}"):
            return result
        while True:
            self.skip_whitespace()
            if self.at_end() or self.text[self.index] != '"':
                raise self.error("Expected '\"' to start an object key")
            key = self.parse_string()
            self.expect(":")
            result[key] = self.parse_value()
            if self.consume("}"):
                return result
            self.expect(",")

    def parse_array(self) -> list[Any]:
        self.expect("[")
        result: list[Any] = []
        if self.consume("]"):
            return result
        while True:
            result.append(self.parse_value())
            if self.consume("]"):
                return result
            self.expect(",")

    def parse_string(self) -> str:
        self.expect('"')
        chunks: list[str] = []
        text = self.text
        while not self.at_end():
            ch = text[self.index]
            self.index += 1
            if ch == '"':
                return "".join(chunks)
            if ch != "\\":
                chunks.append(ch)
                continue
            if self.at_end():
                raise self.error("Incomplete escape sequence")
            escaped = text[self.index]
            self.index += 1
            if escaped in _SIMPLE_ESCAPES:
                chunks.append(_SIMPLE_ESCAPES[escaped])
            elif escaped == "u":
                chunks.append(self.parse_unicode_escape())
            else:
                raise self.error(f"Invalid escape sequence \\{escaped}")
        raise self.error("Unterminated string")

    def parse_unicode_escape(self) -> str:
        code = self.read_hex4()
        # Combine an escaped UTF-16 surrogate pair into one code point.
        if 0xD800 <= code <= 0xDBFF and self.text.startswith("\\u", self.index):
            saved = self.index
            self.index += 2
            low = self.read_hex4()
            if 0xDC00 <= low <= 0xDFFF:
                return chr(0x10000 + ((code - 0xD800) << 10) + (low - 0xDC00))
            self.index = saved
        return chr(code)

    def read_hex4(self) -> int:
        if self.index + 4 > len(self.text):
            raise self.error("Incomplete unicode escape sequence")
        digits = self.text[self.index : self.index + 4]
        if not all(ch in _HEX_DIGITS for ch in digits):
            raise self.error("Invalid unicode escape sequence")
        self.index += 4
        return int(digits, 16)

    def parse_number(self) -> int | float:
        text = self.text
        start = self.index
        if text[self.index] == "-":
            self.index += 1
        if self.at_end():
            raise self.error("Invalid number")
        if text[self.index] == "0":
            self.index += 1
        elif text[self.index].isdigit():
            self.skip_digits()
        else:
            raise self.error("Invalid number")
        fractional = False
        if not self.at_end() and text[self.index] == ".":
            fractional = True
            self.index += 1
            if self.at_end() or not text[self.index].isdigit():
                raise self.error("Invalid number")
            self.skip_digits()
        if not self.at_end() and text[self.index] in "eE":
            fractional = True
            self.index += 1
            if not self.at_end() and text[self.index] in "+-":
                self.index += 1
            if self.at_end() or not text[self.index].isdigit():
                raise self.error("Invalid exponent")
            self.skip_digits()
        lexeme = text[start : self.index]
        if fractional:
            return float(lexeme)
        value = int(lexeme)
        if _INT64_MIN <= value <= _INT64_MAX:
            return value
        return float(lexeme)

    def skip_digits(self) -> None:
        text = self.text
        while self.index < len(text) and "0" <= text[self.index] <= "9":
            self.index += 1

    def parse_literal(self, literal: str, value: Any) -> Any:
        if self.text.startswith(literal, self.index):
            self.index += len(literal)
            return value
        raise self.error(f"Expected '{literal}'")

    def expect(self, expected: str) -> None:
        self.skip_whitespace()
        if self.at_end() or self.text[self.index] != expected:
            raise self.error(f"Expected '{expected}'")
        self.index += 1

    def consume(self, expected: str) -> bool:
        self.skip_whitespace()
        if not self.at_end() and self.text[self.index] == expected:
            self.index += 1
            return True
        return False

    def skip_whitespace(self) -> None:
        text = self.text
        while self.index < len(text) and text[self.index] in _WHITESPACE:
            self.index += 1

    def at_end(self) -> bool:
        return self.index >= len(self.text)

    def error(self, message: str) -> CodecSyntaxError:
        return CodecSyntaxError(message, self.index)


def parse(text: str) -> Any:
    """Parse a JSON document.

    Args:
        text: Document text.

    Returns:
        Decoded value: dict, list, str, int, float, bool, or None.

    Raises:
        CodecSyntaxError: On any grammar violation, with the offset where
            parsing stopped.
    """
    return _Parser(text).parse_document()


def try_parse(text: str) -> ParseResult:
    """Parse a JSON document without raising.

    Returns:
        ParseOk with the value, or ParseErr with the syntax error.
    """
    try:
        return ParseOk(parse(text))
    except CodecSyntaxError as e:
        return ParseErr(e)


# -----------------------------------------------------------------------------
# Writing
# -----------------------------------------------------------------------------


def stringify(value: Any, indent: int | None = 2) -> str:
    """Serialize a value to JSON text.

    Never fails: values that have no JSON form are written as their quoted
    text form.

    Args:
        value: Value to serialize.
        indent: Spaces per nesting level, or None for a single-line form.

    Returns:
        Serialized text without a trailing newline.
    """
    parts: list[str] = []
    unit = None if indent is None else " " * indent
    _write_value(value, parts, 0, unit)
    return "".join(parts)


def _write_value(value: Any, parts: list[str], depth: int, unit: str | None) -> None:
    if value is None:
        parts.append("null")
    elif isinstance(value, bool):
        parts.append("true" if value else "false")
    elif isinstance(value, str):
        parts.append(_quote(value))
    elif isinstance(value, int):
        parts.append(int.__repr__(value))
    elif isinstance(value, float):
        if math.isfinite(value):
            parts.append(float.__repr__(value))
        else:
            parts.append(_quote(float.__repr__(value)))
    elif isinstance(value, dict):
        _write_object(value, parts, depth, unit)
    elif isinstance(value, (list, tuple)):
        _write_array(value, parts, depth, unit)
    elif isinstance(value, Enum):
        _write_value(value.value, parts, depth, unit)
    else:
        parts.append(_quote(str(value)))


def _write_object(
    mapping: dict[Any, Any], parts: list[str], depth: int, unit: str | None
) -> None:
    items = [(key, item) for key, item in mapping.items() if key is not None]
    if not items:
        parts.append("{}")
        return
    parts.append("{")
    for position, (key, item) in enumerate(items):
        if position:
            parts.append(",")
        _newline(parts, depth + 1, unit)
        key_text = key.value if isinstance(key, Enum) else key
        parts.append(_quote(str(key_text)))
        parts.append(": ")
        _write_value(item, parts, depth + 1, unit)
    _newline(parts, depth, unit, closing=True)
    parts.append("}")


def _write_array(
    items: list[Any] | tuple[Any, ...], parts: list[str], depth: int, unit: str | None
) -> None:
    if not items:
        parts.append("[]")
        return
    parts.append("[")
    for position, item in enumerate(items):
        if position:
            parts.append(",")
        _newline(parts, depth + 1, unit)
        _write_value(item, parts, depth + 1, unit)
    _newline(parts, depth, unit, closing=True)
    parts.append("]")


def _newline(parts: list[str], depth: int, unit: str | None, *, closing: bool = False) -> None:
    if unit is None:
        # Single-line form: a space after each comma, nothing before a closer.
        if not closing and parts[-1] == ",":
            parts.append(" ")
        return
    parts.append("\n")
    parts.append(unit * depth)


def _quote(text: str) -> str:
    out = ['"']
    for ch in text:
        escaped = _WRITE_ESCAPES.get(ch)
        if escaped is not None:
            out.append(escaped)
        elif ch < " ":
            out.append(f"\\u{ord(ch):04x}")
        else:
            out.append(ch)
    out.append('"')
    return "".join(out)
