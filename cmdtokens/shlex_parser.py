"""Shell-like lexer for splitting command lines into argument vectors."""

import enum
import itertools
import logging
import sys
from collections.abc import Sequence
from typing import Callable, Iterator, Optional, Union

logger = logging.getLogger(__name__)

TOKEN_BUFFER_INITIAL_SIZE = 128
WHITESPACE = frozenset(" \t\r\n")

Token = Union[str, bytes]


class LexError(ValueError):
    """Base exception for tokenizer errors."""

    def __init__(self, message: str, position: Optional[int] = None):
        super().__init__(message)
        self.position = position


class MissingClosingQuote(LexError):
    """Raised when a quote is opened but never closed."""

    pass


class UnterminatedEscape(LexError):
    """Raised when a backslash is the last character of the input."""

    pass


class ResourceExhausted(LexError):
    """Raised when a token or token list cannot be allocated."""

    pass


class State(enum.Enum):
    """Lexer states."""

    DELIM = "delim"  # Whitespace between tokens.
    BARE = "bare"  # Unquoted token characters.
    SQUOTE = "squote"  # Single quoted token characters.
    DQUOTE = "dquote"  # Double quoted token characters.
    ESC = "esc"  # Character following a backslash.
    QESC = "qesc"  # Character following a backslash in double quotes.
    END = "end"


def decode_line(text: Token) -> tuple[str, bool]:
    """
    Return the text form of a line and whether it was given as bytes.

    Bytes map one-to-one onto the first 256 code points so that every byte
    value survives tokenizing and quoting unchanged.
    """
    if isinstance(text, str):
        return text, False
    if isinstance(text, (bytes, bytearray)):
        return bytes(text).decode("latin-1"), True
    raise TypeError(f"Expected str or bytes, got {type(text).__name__}")


def encode_token(token: str, binary: bool) -> Token:
    """Convert a token back to the type of the input it came from."""
    return token.encode("latin-1") if binary else token


class TokenBuffer:
    """
    Expandable token buffer.

    Capacity starts at TOKEN_BUFFER_INITIAL_SIZE characters and doubles each
    time it fills up, never exceeding max_size.
    """

    def __init__(self, max_size: int = sys.maxsize):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self.buffer_size = min(TOKEN_BUFFER_INITIAL_SIZE, max_size)
        self._chars: list[str] = [""] * self.buffer_size
        self._length = 0

    def __len__(self) -> int:
        return self._length

    def _grow(self) -> None:
        """Double the buffer capacity."""
        if self.buffer_size >= self.max_size:
            raise ResourceExhausted(
                f"Token longer than {self.max_size} characters"
            )

        new_size = min(2 * self.buffer_size, self.max_size)
        try:
            self._chars.extend([""] * (new_size - self.buffer_size))
        except MemoryError as e:
            raise ResourceExhausted("Out of memory growing token buffer") from e
        self.buffer_size = new_size

    def accept(self, ch: str) -> None:
        """Add a character to the token."""
        if self._length == self.buffer_size:
            self._grow()
        self._chars[self._length] = ch
        self._length += 1

    def take(self) -> str:
        """Return the token and clear the buffer for the next one."""
        token = "".join(self._chars[: self._length])
        self._length = 0
        return token


def iter_tokens(text: Token, max_token_size: int = sys.maxsize) -> Iterator[Token]:
    """
    Lazily split a line into tokens using a shell-like syntax.

    Rules:
    - Space, tab, CR and LF separate tokens
    - Single quotes (') make every character up to the closing quote literal
    - Double quotes (") do the same, except that backslash still escapes
    - Backslash (\\) outside single quotes makes the next character literal
    - Quotes switch mode without ending the token, so a'b c'd is one token

    Args:
        text: The line to split, str or bytes
        max_token_size: Largest token, in characters, that may be built

    Yields:
        Each token, fully unescaped, left to right. Tokens are bytes when the
        line is bytes.

    Raises:
        MissingClosingQuote: If a quote is not terminated
        UnterminatedEscape: If the line ends with a backslash
        ResourceExhausted: If a token grows beyond max_token_size
    """
    line, binary = decode_line(text)
    tb = TokenBuffer(max_token_size)
    state = State.DELIM
    opened_at = escaped_at = 0

    # None marks the end of the input.
    for pos, ch in enumerate(itertools.chain(line, (None,))):
        if state is State.DELIM:
            if ch is None:
                state = State.END
            elif ch in WHITESPACE:
                continue
            elif ch == "'":
                state, opened_at = State.SQUOTE, pos
            elif ch == '"':
                state, opened_at = State.DQUOTE, pos
            elif ch == "\\":
                state, opened_at = State.ESC, pos
            else:
                tb.accept(ch)
                state = State.BARE

        elif state is State.BARE:
            if ch is None or ch in WHITESPACE:
                yield encode_token(tb.take(), binary)
                state = State.END if ch is None else State.DELIM
            elif ch == "'":
                state, opened_at = State.SQUOTE, pos
            elif ch == '"':
                state, opened_at = State.DQUOTE, pos
            elif ch == "\\":
                state, opened_at = State.ESC, pos
            else:
                tb.accept(ch)

        elif state is State.SQUOTE:
            if ch is None:
                raise MissingClosingQuote(
                    f"No closing quote for ' at position {opened_at}", opened_at
                )
            if ch == "'":
                state = State.BARE
            else:
                tb.accept(ch)

        elif state is State.DQUOTE:
            if ch is None:
                raise MissingClosingQuote(
                    f'No closing quote for " at position {opened_at}', opened_at
                )
            if ch == '"':
                state = State.BARE
            elif ch == "\\":
                state = State.QESC
                escaped_at = pos
            else:
                tb.accept(ch)

        elif state is State.ESC or state is State.QESC:
            if ch is None:
                at = opened_at if state is State.ESC else escaped_at
                raise UnterminatedEscape(
                    f"No character follows backslash at position {at}", at
                )
            tb.accept(ch)
            state = State.BARE if state is State.ESC else State.DQUOTE

    assert state is State.END


def tokenize(
    text: Token,
    emit: Optional[Callable[[Token], None]],
    max_token_size: int = sys.maxsize,
) -> None:
    """
    Convert a line into tokens, handing each one to a callback.

    The callback is called once per token, in order. An exception raised by
    the callback stops tokenization and propagates unchanged. With emit set
    to None the line is only checked for errors.

    Args:
        text: The line to split
        emit: Called with each token found, or None
        max_token_size: Largest token, in characters, that may be built

    Raises:
        LexError: If the line is malformed or a token cannot be built
    """
    for token in iter_tokens(text, max_token_size):
        if emit is not None:
            emit(token)


class ArgumentVector(Sequence):
    """
    Ordered, fixed-length list of tokens returned by split().

    The vector owns its tokens until free_split() releases them. It can also
    be used as a context manager that releases it on exit.
    """

    __hash__ = None

    def __init__(self, tokens=()):
        self._argv: tuple = tuple(tokens)
        self.released = False

    @property
    def argc(self) -> int:
        """Number of arguments."""
        return len(self._argv)

    @property
    def argv(self) -> tuple:
        """The arguments as a tuple."""
        return self._argv

    def __len__(self) -> int:
        return len(self._argv)

    def __getitem__(self, index):
        return self._argv[index]

    def __eq__(self, other) -> bool:
        if isinstance(other, ArgumentVector):
            return self._argv == other._argv
        if isinstance(other, (list, tuple)):
            return self._argv == tuple(other)
        return NotImplemented

    def __repr__(self) -> str:
        state = " released" if self.released else ""
        return f"<ArgumentVector argc={self.argc}{state} argv={list(self._argv)!r}>"

    def __enter__(self) -> "ArgumentVector":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        free_split(self)


def split(text: Token, max_token_size: int = sys.maxsize) -> ArgumentVector:
    """
    Split a line into an argument vector using a shell-like syntax.

    The caller releases the vector with free_split(). Nothing is returned
    when the line is malformed; tokens collected before the error are
    discarded.

    Args:
        text: The line to split
        max_token_size: Largest token, in characters, that may be built

    Returns:
        ArgumentVector of parsed tokens

    Raises:
        MissingClosingQuote: If quotes are unterminated
        UnterminatedEscape: If the line ends with a backslash
        ResourceExhausted: If memory runs out or a token is too long
    """
    tokens: list[Token] = []

    try:
        tokenize(text, tokens.append, max_token_size)
        return ArgumentVector(tokens)
    except LexError as e:
        logger.debug("Cannot split line: %s", e)
        raise
    except MemoryError as e:
        raise ResourceExhausted("Out of memory collecting tokens") from e
    finally:
        tokens.clear()


def free_split(vector: Optional[ArgumentVector]) -> None:
    """
    Release an argument vector returned by split().

    Safe to call more than once, and with None.
    """
    if vector is None or vector.released:
        return
    vector._argv = ()
    vector.released = True
