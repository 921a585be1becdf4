"""SNBT (stringified NBT) parser.

Reads the textual tag format used by FTB Quests chapter files into plain
Python containers: compounds become ``dict``, lists become ``list``, quoted
and bare strings become ``str``. Typed numbers keep their tag through the
``Snbt*`` subclasses of ``int`` and ``float`` so they still compare equal to
the plain number.

The parser is lenient about numbers: a bare token that looks like a suffixed
number but does not parse (``5x``, ``300b``) is returned as the string of the
whole token.
"""

from __future__ import annotations

import re
from typing import Any, ClassVar

from questledger.codec.result import ParseErr, ParseOk, ParseResult
from questledger.errors import CodecSyntaxError

_INTEGER_RE = re.compile(r"[+-]?[0-9]+")
_DECIMAL_RE = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1

_ESCAPES = {
    '"': '"',
    "'": "'",
    "\\": "\\",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
}

_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")
_KEY_TERMINATORS = frozenset(":,}]")
_WORD_TERMINATORS = frozenset(",:]};")


class SnbtByte(int):
    """Byte tag (``b`` suffix), range -128..127."""

    suffix: ClassVar[str] = "b"

    def __repr__(self) -> str:
        return f"{int(self)}{self.suffix}"


class SnbtShort(int):
    """Short tag (``s`` suffix), range -32768..32767."""

    suffix: ClassVar[str] = "s"

    def __repr__(self) -> str:
        return f"{int(self)}{self.suffix}"


class SnbtLong(int):
    """Long tag (``l`` suffix), signed 64-bit range."""

    suffix: ClassVar[str] = "l"

    def __repr__(self) -> str:
        return f"{int(self)}{self.suffix}"


class SnbtFloat(float):
    """Float tag (``f`` suffix)."""

    suffix: ClassVar[str] = "f"

    def __repr__(self) -> str:
        return f"{float(self)!r}{self.suffix}"


class SnbtDouble(float):
    """Double tag (``d`` suffix, or any unsuffixed decimal)."""

    suffix: ClassVar[str] = "d"

    def __repr__(self) -> str:
        return f"{float(self)!r}{self.suffix}"


_INTEGER_TAGS: dict[str, tuple[type[int], int, int]] = {
    "b": (SnbtByte, -128, 127),
    "s": (SnbtShort, -32768, 32767),
    "l": (SnbtLong, _INT64_MIN, _INT64_MAX),
}

_FLOAT_TAGS: dict[str, type[float]] = {
    "f": SnbtFloat,
    "d": SnbtDouble,
}


def _parse_integer(text: str, low: int, high: int) -> int | None:
    if not _INTEGER_RE.fullmatch(text):
        return None
    value = int(text)
    if value < low or value > high:
        return None
    return value


def _parse_decimal(text: str) -> float | None:
    if not _DECIMAL_RE.fullmatch(text):
        return None
    return float(text)


def _bare_value(token: str) -> Any:
    lower = token.lower()
    if lower == "true":
        return True
    if lower == "false":
        return False
    if lower == "null":
        return None

    suffix = lower[-1]
    if suffix in _INTEGER_TAGS:
        tag, low, high = _INTEGER_TAGS[suffix]
        number = _parse_integer(token[:-1], low, high)
        return token if number is None else tag(number)
    if suffix in _FLOAT_TAGS:
        decimal = _parse_decimal(token[:-1])
        return token if decimal is None else _FLOAT_TAGS[suffix](decimal)

    if "." in token or "e" in lower:
        decimal = _parse_decimal(token)
        return token if decimal is None else SnbtDouble(decimal)
    number = _parse_integer(token, _INT64_MIN, _INT64_MAX)
    return token if number is None else number


class _Parser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.index = 0

    def parse_document(self) -> Any:
        value = self.parse_value()
        self.skip_whitespace()
        if not self.at_end():
            raise self.error("Unexpected content after the SNBT document")
        return value

    def parse_value(self) -> Any:
        self.skip_whitespace()
        if self.at_end():
            raise self.error("Unexpected end of the SNBT document")
        ch = self.text[self.index]
        if ch == "{":
            return self.parse_compound()
        if ch == "[":
            return self.parse_list()
        if ch in "\"'":
            return self.parse_quoted()
        return self.parse_bare()

    def parse_compound(self) -> dict[str, Any]:
        self.expect("{")
        result: dict[str, Any] = {}
        if self.consume("}"):
            return result
        while True:
            key = self.parse_key()
            self.expect(":")
            result[key] = self.parse_value()
            if self.consume("}"):
                return result
            self.expect(",")

    def parse_key(self) -> str:
        self.skip_whitespace()
        if self.at_end():
            raise self.error("Unexpected end while reading a key")
        if self.text[self.index] in "\"'":
            return self.parse_quoted()
        start = self.index
        text = self.text
        while self.index < len(text):
            ch = text[self.index]
            if ch.isspace() or ch in _KEY_TERMINATORS:
                break
            self.index += 1
        if self.index == start:
            raise self.error("Empty key is not allowed")
        return text[start : self.index]

    def parse_list(self) -> list[Any]:
        self.expect("[")
        self.skip_whitespace()
        type_prefix: str | None = None
        if not self.at_end() and self.text[self.index].isalpha():
            start = self.index
            candidate = self.read_word()
            if self.consume(";"):
                type_prefix = candidate
            else:
                self.index = start
        result: list[Any] = []
        if self.consume("]"):
            return result
        while True:
            result.append(self.parse_value())
            if self.consume("]"):
                break
            self.expect(",")
        # An empty typed list carries no prefix
        if type_prefix is not None:
            result.insert(0, type_prefix)
        return result

    def parse_quoted(self) -> str:
        quote = self.text[self.index]
        self.index += 1
        chunks: list[str] = []
        text = self.text
        while not self.at_end():
            ch = text[self.index]
            self.index += 1
            if ch == quote:
                return "".join(chunks)
            if ch != "\\":
                chunks.append(ch)
                continue
            if self.at_end():
                raise self.error("Incomplete escape sequence in string")
            escaped = text[self.index]
            self.index += 1
            if escaped == "u":
                chunks.append(self.parse_unicode_escape())
            else:
                chunks.append(_ESCAPES.get(escaped, escaped))
        raise self.error("Unterminated string")

    def parse_unicode_escape(self) -> str:
        code = self.read_hex4()
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
            raise self.error(f"Invalid unicode escape: {digits}")
        self.index += 4
        return int(digits, 16)

    def parse_bare(self) -> Any:
        token = self.read_word()
        if not token:
            raise self.error("Empty value is not allowed")
        return _bare_value(token)

    def read_word(self) -> str:
        self.skip_whitespace()
        start = self.index
        text = self.text
        while self.index < len(text):
            ch = text[self.index]
            if ch.isspace() or ch in _WORD_TERMINATORS:
                break
            self.index += 1
        return text[start : self.index]

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
        """Skip whitespace and ``#``, ``//`` and ``/* */`` comments."""
        text = self.text
        length = len(text)
        while self.index < length:
            ch = text[self.index]
            if ch.isspace():
                self.index += 1
            elif ch == "#":
                self.skip_line()
            elif text.startswith("//", self.index):
                self.index += 2
                self.skip_line()
            elif text.startswith("/*", self.index):
                end = text.find("*/", self.index + 2)
                self.index = length if end < 0 else end + 2
            else:
                break

    def skip_line(self) -> None:
        text = self.text
        while self.index < len(text):
            ch = text[self.index]
            self.index += 1
            if ch in "\r\n":
                break

    def at_end(self) -> bool:
        return self.index >= len(self.text)

    def error(self, message: str) -> CodecSyntaxError:
        return CodecSyntaxError(message, self.index)


def parse(text: str) -> Any:
    """Parse an SNBT document.

    Args:
        text: Document text.

    Returns:
        The root value, usually a ``dict`` for quest chapter files.

    Raises:
        CodecSyntaxError: On a grammar violation, with the offset where
            parsing stopped.
    """
    return _Parser(text).parse_document()


def try_parse(text: str) -> ParseResult:
    """Parse an SNBT document without raising."""
    try:
        return ParseOk(parse(text))
    except CodecSyntaxError as e:
        return ParseErr(e)
