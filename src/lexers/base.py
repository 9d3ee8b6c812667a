# src/lexers/base.py
from abc import ABC, abstractmethod
from typing import List, NamedTuple, Set, Tuple

NAME = "NAME"
OP = "OP"
STRING = "STRING"
COMMENT = "COMMENT"
NUMBER = "NUMBER"
OTHER = "OTHER"

# token kinds whose text must never be rewritten or split by inserted noise
LITERAL_KINDS = (STRING, COMMENT)


class LexerError(ValueError):
    """Raised when a source text cannot be split into tokens."""


class Token(NamedTuple):
    kind: str
    text: str
    start: int  # absolute character offset
    end: int
    line: int  # 1-based line of the first character
    end_line: int


class SourceLexer(ABC):
    language: str = ""

    @abstractmethod
    def tokenize(self, source: str) -> List[Token]:
        pass

    def literal_lines(self, source: str, tokens: List[Token]) -> Tuple[Set[int], Set[int]]:
        """
        Return (open_lines, inner_lines) for the given token stream.

        open_lines: lines whose end falls inside a string/comment token or that
        end with a backslash continuation, so nothing may be appended to them.
        inner_lines: lines that begin inside such a token, so their leading
        whitespace is part of a literal and must not be changed.
        """
        open_lines: Set[int] = set()
        inner_lines: Set[int] = set()
        for token in tokens:
            if token.kind in LITERAL_KINDS and token.end_line > token.line:
                open_lines.update(range(token.line, token.end_line))
                inner_lines.update(range(token.line + 1, token.end_line + 1))
        for number, line in enumerate(source.split("\n"), start=1):
            if line.rstrip().endswith("\\"):
                open_lines.add(number)
        return open_lines, inner_lines


def line_offsets(source: str) -> List[int]:
    """Absolute offset of the first character of every '\\n'-separated line."""
    offsets = [0]
    for index, char in enumerate(source):
        if char == "\n":
            offsets.append(index + 1)
    return offsets
