"""Typed parse results.

Parsers expose ``try_parse`` functions that never raise; they return either
``ParseOk`` with the decoded value or ``ParseErr`` with the syntax error.
Check the variant with ``isinstance``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from questledger.errors import CodecSyntaxError


@dataclass(frozen=True, slots=True)
class ParseOk:
    """Successful parse carrying the decoded value (which may be ``None``)."""

    value: Any

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class ParseErr:
    """Failed parse carrying the syntax error."""

    error: CodecSyntaxError

    @property
    def ok(self) -> bool:
        return False


ParseResult = ParseOk | ParseErr
"""Discriminated union for parse outcomes."""


def unwrap(result: ParseResult) -> Any:
    """Extract the value from ParseOk, or raise the error from ParseErr.

    Raises:
        CodecSyntaxError: If result is ParseErr.
    """
    if isinstance(result, ParseOk):
        return result.value
    raise result.error
