"""Text codecs: the JSON-like export format and the SNBT quest format."""

from questledger.codec.result import ParseErr, ParseOk, ParseResult, unwrap
from questledger.codec.snbt import SnbtByte, SnbtDouble, SnbtFloat, SnbtLong, SnbtShort

__all__ = [
    "ParseErr",
    "ParseOk",
    "ParseResult",
    "SnbtByte",
    "SnbtDouble",
    "SnbtFloat",
    "SnbtLong",
    "SnbtShort",
    "unwrap",
]
