# src/lexers/javascript_lexer.py
"""
Small JavaScript scanner. It knows just enough of the grammar to tell
identifiers apart from strings, template literals, comments and regular
expression literals. It does not build a syntax tree.
"""
import re
from bisect import bisect_right
from typing import List

from lexers.base import COMMENT, NAME, NUMBER, OP, STRING, LexerError, SourceLexer, Token, line_offsets

_WHITESPACE = re.compile(r"\s+")
_IDENTIFIER = re.compile(r"[A-Za-z_$\u0080-\uffff][\w$\u0080-\uffff]*")
_NUMBER = re.compile(
    r"0[xXbBoO][0-9a-fA-F_]+n?"
    r"|(?:\d[\d_]*(?:\.[\d_]*)?|\.\d[\d_]*)(?:[eE][+-]?\d[\d_]*)?n?"
)
_PUNCTUATORS = sorted([
    ">>>=", "...", "===", "!==", "**=", "<<=", ">>=", ">>>", "&&=", "||=", "??=",
    "=>", "==", "!=", "<=", ">=", "&&", "||", "??", "?.", "++", "--",
    "+=", "-=", "*=", "/=", "%=", "&=", "|=", "^=", "**", "<<", ">>",
    "{", "}", "(", ")", "[", "]", ";", ",", "<", ">", "+", "-", "*", "/",
    "%", "&", "|", "^", "!", "~", "?", ":", "=", ".", "@", "#",
], key=len, reverse=True)

# a '/' after one of these starts a regular expression, not a division
_REGEX_KEYWORDS = {
    "return", "typeof", "instanceof", "in", "of", "new", "delete", "void",
    "throw", "case", "do", "else", "yield", "await",
}


class JavaScriptLexer(SourceLexer):
    language = "javascript"

    def tokenize(self, source: str) -> List[Token]:
        scanner = _Scanner(source)
        scanner.scan(0, nested=False)
        return scanner.tokens


class _Scanner:
    def __init__(self, source: str):
        self.source = source
        self.offsets = line_offsets(source)
        self.tokens: List[Token] = []

    def scan(self, pos: int, nested: bool) -> int:
        """Scan tokens from pos. When nested, stop at the '}' closing a template substitution."""
        src = self.source
        depth = 0
        if pos == 0 and src.startswith("#!"):
            pos = self._scan_line_comment(0)
        while pos < len(src):
            char = src[pos]
            match = _WHITESPACE.match(src, pos)
            if match:
                pos = match.end()
                continue
            if src.startswith("//", pos):
                pos = self._scan_line_comment(pos)
            elif src.startswith("/*", pos):
                end = src.find("*/", pos + 2)
                if end == -1:
                    raise LexerError(f"Unterminated comment at line {self._line(pos)}")
                pos = self._emit(COMMENT, pos, end + 2)
            elif char in "'\"":
                pos = self._scan_quoted(pos, char)
            elif char == "`":
                pos = self._scan_template(pos)
            elif char == "/" and self._regex_allowed():
                pos = self._scan_regex(pos)
            elif _IDENTIFIER.match(src, pos):
                pos = self._emit(NAME, pos, _IDENTIFIER.match(src, pos).end())
            elif char.isdigit() or (char == "." and src[pos + 1:pos + 2].isdigit()):
                pos = self._emit(NUMBER, pos, _NUMBER.match(src, pos).end())
            elif nested and char == "}" and depth == 0:
                return pos
            else:
                punctuator = next((p for p in _PUNCTUATORS if src.startswith(p, pos)), None)
                if punctuator is None:
                    raise LexerError(f"Unexpected character {char!r} at line {self._line(pos)}")
                if nested and punctuator == "{":
                    depth += 1
                elif nested and punctuator == "}":
                    depth -= 1
                pos = self._emit(OP, pos, pos + len(punctuator))
        if nested:
            raise LexerError("Unterminated template substitution")
        return pos

    def _scan_line_comment(self, pos: int) -> int:
        end = self.source.find("\n", pos)
        return self._emit(COMMENT, pos, len(self.source) if end == -1 else end)

    def _scan_quoted(self, pos: int, quote: str) -> int:
        src = self.source
        i = pos + 1
        while i < len(src):
            char = src[i]
            if char == "\\":
                i += 2
                continue
            if char == quote:
                return self._emit(STRING, pos, i + 1)
            if char == "\n":
                break
            i += 1
        raise LexerError(f"Unterminated string at line {self._line(pos)}")

    def _scan_template(self, pos: int) -> int:
        src = self.source
        start = pos
        i = pos + 1
        while i < len(src):
            char = src[i]
            if char == "\\":
                i += 2
            elif char == "`":
                return self._emit(STRING, start, i + 1)
            elif src.startswith("${", i):
                self._emit(STRING, start, i + 2)
                i = self.scan(i + 2, nested=True)
                # the closing '}' opens the next chunk of the template
                start = i
                i += 1
            else:
                i += 1
        raise LexerError(f"Unterminated template literal at line {self._line(pos)}")

    def _scan_regex(self, pos: int) -> int:
        src = self.source
        in_class = False
        i = pos + 1
        while i < len(src):
            char = src[i]
            if char == "\\":
                i += 2
                continue
            if char == "\n":
                break
            if char == "[":
                in_class = True
            elif char == "]":
                in_class = False
            elif char == "/" and not in_class:
                i += 1
                while i < len(src) and (src[i].isalnum() or src[i] in "_$"):
                    i += 1
                return self._emit(STRING, pos, i)
            i += 1
        raise LexerError(f"Unterminated regular expression at line {self._line(pos)}")

    def _regex_allowed(self) -> bool:
        previous = next((t for t in reversed(self.tokens) if t.kind != COMMENT), None)
        if previous is None:
            return True
        if previous.kind == OP:
            return previous.text not in (")", "]", "++", "--")
        if previous.kind == NAME:
            return previous.text in _REGEX_KEYWORDS
        if previous.kind == STRING:
            # start of a template substitution
            return previous.text.endswith("${")
        return False

    def _emit(self, kind: str, start: int, end: int) -> int:
        self.tokens.append(Token(
            kind,
            self.source[start:end],
            start,
            end,
            self._line(start),
            self._line(max(start, end - 1)),
        ))
        return end

    def _line(self, offset: int) -> int:
        return bisect_right(self.offsets, offset)
