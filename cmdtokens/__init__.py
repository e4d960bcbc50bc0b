"""Shell-like splitting and quoting of command lines."""

from .shlex_parser import (
    ArgumentVector,
    LexError,
    MissingClosingQuote,
    ResourceExhausted,
    UnterminatedEscape,
    free_split,
    iter_tokens,
    split,
    tokenize,
)
from .shlex_quote import join, needs_quoting, quote

__all__ = [
    "ArgumentVector",
    "LexError",
    "MissingClosingQuote",
    "ResourceExhausted",
    "UnterminatedEscape",
    "free_split",
    "iter_tokens",
    "join",
    "needs_quoting",
    "quote",
    "split",
    "tokenize",
]
