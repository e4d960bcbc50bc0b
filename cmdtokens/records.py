"""Line-oriented record files of quoted command lines."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Optional, Union

from . import shlex_parser
from . import shlex_quote

logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]


class RecordException(Exception):
    """Base exception for record file errors."""

    pass


class ValidationFailed(RecordException):
    """Raised when a record file contains malformed lines."""

    pass


class MalformedRecord(RecordException):
    """Raised when a line of a record file cannot be split."""

    def __init__(self, path: str, line_num: int, error: shlex_parser.LexError):
        super().__init__(f"{path}:{line_num}: {error}")
        self.path = path
        self.line_num = line_num
        self.error = error


class UnrepresentableRecord(RecordException):
    """Raised when an argument vector cannot be stored on a single line."""

    pass


@dataclass
class Record:
    """One parsed line of a record file."""

    path: str
    line_num: int
    argv: tuple


@dataclass
class RecordError:
    """Represents an error found while loading a record file."""

    message: str
    line_num: int
    path: str


@dataclass
class RecordStats:
    """Statistics about a loaded record file."""

    record_count: int
    token_count: int
    error_count: int = 0


def _is_comment(line: str) -> bool:
    """Check if a line is a comment or blank."""
    stripped = line.lstrip(" \t\r\n")
    return len(stripped) == 0 or stripped[0] == "#"


def _read_lines(path: PathLike) -> Iterator[tuple[int, str]]:
    """Yield (line number, line) for each non-comment line."""
    # Only LF ends a line; a CR inside a quoted token is kept.
    with open(path, "r", encoding="utf-8", newline="\n") as f:
        for line_num, line in enumerate(f, start=1):
            if _is_comment(line):
                continue
            yield line_num, line.rstrip("\n")


def read_records(path: PathLike) -> Iterator[Record]:
    """
    Lazily read the records of a file.

    Args:
        path: Record file to read

    Yields:
        A Record for each command line, skipping blanks and comments

    Raises:
        MalformedRecord: At the first line that cannot be split
    """
    name = os.fspath(path)
    for line_num, line in _read_lines(path):
        try:
            vector = shlex_parser.split(line)
        except shlex_parser.LexError as e:
            raise MalformedRecord(name, line_num, e) from e
        with vector:
            yield Record(path=name, line_num=line_num, argv=vector.argv)


def format_record(argv: Iterable[str]) -> str:
    """
    Return the line stored for one argument vector.

    Raises:
        UnrepresentableRecord: If the vector is empty, a token holds a newline,
            or a token cannot be encoded as UTF-8
    """
    argv = list(argv)
    if not argv:
        raise UnrepresentableRecord("Cannot store an empty argument vector")
    if any("\n" in token for token in argv):
        raise UnrepresentableRecord("Cannot store a token containing a newline")

    line = shlex_quote.join(argv)
    try:
        line.encode("utf-8")
    except UnicodeEncodeError as e:
        raise UnrepresentableRecord(f"Cannot store {line!r} as UTF-8") from e
    return line


def write_records(path: PathLike, vectors: Iterable[Iterable[str]]) -> int:
    """
    Write argument vectors to a record file, one quoted line each.

    The file is written next to its destination with a .tmp suffix and
    renamed into place, so readers see either the old or the new file.

    Args:
        path: Record file to write
        vectors: Argument vectors to store

    Returns:
        Number of records written

    Raises:
        UnrepresentableRecord: If a vector cannot be stored on one line
    """
    output_path = Path(path)
    temp_path = output_path.with_suffix(output_path.suffix + ".tmp")

    count = 0
    try:
        with open(temp_path, "w", encoding="utf-8", newline="\n") as f:
            for argv in vectors:
                f.write(format_record(argv) + "\n")
                count += 1
        temp_path.replace(output_path)
    except BaseException:
        if temp_path.exists():
            temp_path.unlink()
        raise

    logger.debug("Wrote %d records to %s", count, output_path)
    return count


class RecordFile:
    """A record file loaded in full, with every malformed line reported."""

    def __init__(self, path: PathLike):
        """Initialize an empty record file."""
        self.path = os.fspath(path)
        self.records: list[Record] = []
        self.errors: list[RecordError] = []

    def stats(self) -> RecordStats:
        """
        Return statistics about the loaded records.

        Returns:
            RecordStats with counts of records, tokens and errors
        """
        return RecordStats(
            record_count=len(self.records),
            token_count=sum(len(record.argv) for record in self.records),
            error_count=len(self.errors),
        )

    def load(self) -> None:
        """
        Read and split every line of the file.

        Raises:
            ValidationFailed: If any line could not be split
            OSError: If the file cannot be read
        """
        self.records = []
        self.errors = []

        for line_num, line in _read_lines(self.path):
            try:
                vector = shlex_parser.split(line)
            except shlex_parser.LexError as e:
                self.errors.append(
                    RecordError(
                        message=type(e).__name__, line_num=line_num, path=self.path
                    )
                )
                continue

            with vector:
                self.records.append(
                    Record(path=self.path, line_num=line_num, argv=vector.argv)
                )

        logger.debug(
            "Loaded %d records with %d errors from %s",
            len(self.records),
            len(self.errors),
            self.path,
        )
        if self.errors:
            raise ValidationFailed(
                f"{len(self.errors)} malformed lines in {self.path}"
            )

    def save(self, path: Optional[PathLike] = None) -> int:
        """Write the records back in canonical form, to path or in place."""
        if self.errors:
            raise ValidationFailed(
                f"Refusing to rewrite {self.path} with malformed lines"
            )
        return write_records(
            path if path is not None else self.path,
            (record.argv for record in self.records),
        )
