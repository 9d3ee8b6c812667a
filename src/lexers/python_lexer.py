# src/lexers/python_lexer.py
import io
import tokenize
from tokenize import TokenInfo
from typing import List

from lexers.base import COMMENT, NAME, NUMBER, OP, OTHER, STRING, LexerError, SourceLexer, Token, line_offsets

# tokens that carry no text worth keeping
_SKIPPED = {
    tokenize.NEWLINE,
    tokenize.NL,
    tokenize.INDENT,
    tokenize.DEDENT,
    tokenize.ENDMARKER,
}

# f-string pieces exist on Python 3.12+
_STRING_TYPES = {tokenize.STRING}
for _name in ("FSTRING_START", "FSTRING_MIDDLE", "FSTRING_END"):
    if hasattr(tokenize, _name):
        _STRING_TYPES.add(getattr(tokenize, _name))


class PythonLexer(SourceLexer):
    language = "python"

    def tokenize(self, source: str) -> List[Token]:
        offsets = line_offsets(source)
        tokens: List[Token] = []
        try:
            for tok in tokenize.generate_tokens(io.StringIO(source).readline):
                if tok.type in _SKIPPED:
                    continue
                if tok.type == tokenize.ERRORTOKEN:
                    if not tok.string.strip():
                        continue
                    raise LexerError(f"Unexpected {tok.string!r} at line {tok.start[0]}")
                (start_row, start_col), (end_row, end_col) = tok.start, tok.end
                start = offsets[start_row - 1] + start_col
                end = offsets[end_row - 1] + end_col
                kind = self._kind(tok)
                if kind == NAME and source[start:end] != tok.string:
                    raise LexerError(f"Token position mismatch at line {start_row}")
                tokens.append(Token(kind, tok.string, start, end, start_row, end_row))
        except (tokenize.TokenError, SyntaxError, IndexError) as e:
            raise LexerError(str(e)) from e
        return tokens

    @staticmethod
    def _kind(tok: TokenInfo) -> str:
        if tok.type == tokenize.NAME:
            return NAME
        if tok.type == tokenize.OP:
            return OP
        if tok.type in _STRING_TYPES:
            return STRING
        if tok.type == tokenize.COMMENT:
            return COMMENT
        if tok.type == tokenize.NUMBER:
            return NUMBER
        return OTHER
