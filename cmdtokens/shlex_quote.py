"""Quote argument lists into lines that split() turns back into the same list."""

import string
from typing import Iterable

from .shlex_parser import Token, decode_line, encode_token

# Characters that never need quoting. Everything else, including whitespace,
# quotes, backslash and shell metacharacters such as ! ? * $ ~ #, is quoted.
SAFE_CHARS = frozenset(string.ascii_letters + string.digits + "%+,-./:=@_")


def needs_quoting(token: Token) -> bool:
    """Check if a token must be quoted to survive split()."""
    text, _ = decode_line(token)
    if not text:
        return True
    return any(ch not in SAFE_CHARS for ch in text)


def quote(token: Token) -> Token:
    """
    Return the shell-like quoted form of one token.

    Tokens made only of safe characters are returned unchanged. Others are
    wrapped in single quotes. A single quote inside the token ends the quoted
    segment, is written as "'", and a new segment is opened.

    Args:
        token: The token to quote, str or bytes

    Returns:
        The quoted token, of the same type as the input
    """
    text, binary = decode_line(token)
    if not needs_quoting(text):
        return encode_token(text, binary)
    quoted = "'" + text.replace("'", "'\"'\"'") + "'"
    return encode_token(quoted, binary)


def join(tokens: Iterable[Token]) -> Token:
    """
    Join tokens into one line, quoting each token only where needed.

    Tokens are separated by a single space. An empty list gives an empty
    string. For any list, split(join(tokens)) == tokens.

    Args:
        tokens: The tokens to join, all str or all bytes

    Returns:
        The joined line; bytes when the tokens are bytes

    Raises:
        TypeError: If str and bytes tokens are mixed
    """
    quoted = [quote(token) for token in tokens]
    if not quoted:
        return ""

    if all(isinstance(q, str) for q in quoted):
        return " ".join(quoted)
    if all(isinstance(q, bytes) for q in quoted):
        return b" ".join(quoted)
    raise TypeError("Cannot join a mix of str and bytes tokens")
