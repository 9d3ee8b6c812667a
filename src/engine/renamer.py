# src/engine/renamer.py
"""
IdentifierRenamer: replaces declared identifiers with random aliases.

Declarations are found with a handful of token rules per language (assignment
targets, function and class names, property assignments). Every identifier
token that ends up with an alias is then replaced everywhere in the file.
There is no scope analysis: one name maps to one alias for the whole job.
"""

import builtins
import keyword
import logging
import re
import secrets
from dataclasses import dataclass
from typing import Dict, List, Optional

from engine.errors import JobValidationError
from lexers.base import COMMENT, NAME, OP, LexerError, SourceLexer, Token
from lexers.javascript_lexer import JavaScriptLexer
from lexers.python_lexer import PythonLexer

PYTHON_RESERVED = (
    frozenset(keyword.kwlist)
    | frozenset(getattr(keyword, "softkwlist", []))
    | frozenset(dir(builtins))
)

JAVASCRIPT_RESERVED = frozenset({
    # keywords and reserved words
    "break", "case", "catch", "class", "const", "continue", "debugger", "default",
    "delete", "do", "else", "export", "extends", "finally", "for", "function", "if",
    "import", "in", "instanceof", "let", "new", "return", "super", "switch", "this",
    "throw", "try", "typeof", "var", "void", "while", "with", "yield", "await",
    "async", "static", "get", "set", "of", "enum", "implements", "interface",
    "package", "private", "protected", "public", "null", "true", "false",
    "undefined", "NaN", "Infinity", "arguments", "eval",
    # runtime globals
    "console", "process", "require", "module", "exports", "window", "document",
    "globalThis", "Date", "Array", "Object", "String", "Number", "Boolean", "Math",
    "JSON", "Promise", "Symbol", "Map", "Set", "WeakMap", "WeakSet", "RegExp",
    "Error", "TypeError", "RangeError", "SyntaxError", "parseInt", "parseFloat",
    "isNaN", "isFinite", "setTimeout", "setInterval", "clearTimeout",
    "clearInterval", "Buffer", "__dirname", "__filename", "alert", "prompt",
    "fetch", "navigator", "localStorage",
})

RESERVED = {
    "python": PYTHON_RESERVED,
    "javascript": JAVASCRIPT_RESERVED,
}

LEXERS: Dict[str, SourceLexer] = {
    "python": PythonLexer(),
    "javascript": JavaScriptLexer(),
}

# pattern rules used when the source cannot be tokenized
_PY_IDENT = r"[A-Za-z_]\w*"
_JS_IDENT = r"[A-Za-z_$][\w$]*"
PATTERN_RULES: Dict[str, List[re.Pattern]] = {
    "python": [
        re.compile(rf"\b(?P<name>{_PY_IDENT})\s*=(?!=)"),
        re.compile(rf"\bdef\s+(?P<name>{_PY_IDENT})"),
        re.compile(rf"\bclass\s+(?P<name>{_PY_IDENT})"),
    ],
    "javascript": [
        re.compile(rf"\b(?:var|let|const)\s+(?P<name>{_JS_IDENT})"),
        re.compile(rf"\bfunction\b\s*\*?\s*(?P<name>{_JS_IDENT})"),
        re.compile(rf"\.\s*(?P<name>{_JS_IDENT})\s*=(?![=>])"),
    ],
}
SWEEP_PATTERNS: Dict[str, re.Pattern] = {
    "python": re.compile(rf"\b{_PY_IDENT}\b"),
    "javascript": re.compile(rf"(?<![\w$]){_JS_IDENT}"),
}

_OPENING = ("(", "[", "{")
_CLOSING = (")", "]", "}")


def new_alias() -> str:
    return "_" + secrets.token_hex(4)


def get_lexer(language: str) -> SourceLexer:
    try:
        return LEXERS[language]
    except KeyError:
        raise JobValidationError(f"Unsupported language: {language}")


class AliasTable:
    """Name -> alias mapping owned by a single obfuscation job."""

    def __init__(self):
        self._aliases: Dict[str, str] = {}
        self._taken = set()

    def alias_for(self, name: str) -> str:
        alias = self._aliases.get(name)
        if alias is None:
            alias = new_alias()
            while alias in self._taken:
                alias = new_alias()
            self._aliases[name] = alias
            self._taken.add(alias)
        return alias

    def get(self, name: str) -> Optional[str]:
        return self._aliases.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._aliases

    def __len__(self) -> int:
        return len(self._aliases)


@dataclass
class RenameResult:
    code: str
    aliases: AliasTable
    tokenized: bool


class IdentifierRenamer:
    def __init__(self, language: str, aliases: Optional[AliasTable] = None):
        self.language = language
        self.lexer = get_lexer(language)
        self.reserved = RESERVED[language]
        self.aliases = aliases if aliases is not None else AliasTable()

    def rename(self, source: str) -> RenameResult:
        try:
            tokens = self.lexer.tokenize(source)
        except LexerError as e:
            logging.warning(f"[renamer] Could not tokenize {self.language} source ({e}); falling back to pattern rules.")
            return RenameResult(self._rename_with_patterns(source), self.aliases, False)
        significant = [t for t in tokens if t.kind != COMMENT]
        if self.language == "python":
            self._collect_assignments(significant)
            self._collect_after_keyword(significant, "def")
            self._collect_after_keyword(significant, "class")
        else:
            self._collect_declarations(significant)
            self._collect_after_keyword(significant, "function")
            self._collect_property_assignments(significant)
        return RenameResult(self._substitute(source, tokens), self.aliases, True)

    def _declare(self, name: str) -> Optional[str]:
        if name in self.reserved or (name.startswith("__") and name.endswith("__")):
            return None
        return self.aliases.alias_for(name)

    def _collect_assignments(self, tokens: List[Token]):
        depth = 0
        for index, token in enumerate(tokens):
            if token.kind == OP:
                if token.text in _OPENING:
                    depth += 1
                elif token.text in _CLOSING:
                    depth = max(depth - 1, 0)
            elif token.kind == NAME and depth == 0 and _followed_by(tokens, index, "="):
                self._declare(token.text)

    def _collect_after_keyword(self, tokens: List[Token], word: str):
        for index, token in enumerate(tokens[:-1]):
            if token.kind != NAME or token.text != word:
                continue
            following = tokens[index + 1]
            # generator functions: function* name()
            if following.kind == OP and following.text == "*" and index + 2 < len(tokens):
                following = tokens[index + 2]
            if following.kind == NAME:
                self._declare(following.text)

    def _collect_declarations(self, tokens: List[Token]):
        for token, following in zip(tokens, tokens[1:]):
            if token.kind == NAME and token.text in ("var", "let", "const") and following.kind == NAME:
                self._declare(following.text)

    def _collect_property_assignments(self, tokens: List[Token]):
        for index in range(1, len(tokens)):
            token = tokens[index]
            previous = tokens[index - 1]
            if token.kind == NAME and previous.kind == OP and previous.text == "." and _followed_by(tokens, index, "="):
                self._declare(token.text)

    def _substitute(self, source: str, tokens: List[Token]) -> str:
        pieces = []
        position = 0
        for token in tokens:
            if token.kind != NAME:
                continue
            alias = self.aliases.get(token.text)
            if alias is None:
                continue
            pieces.append(source[position:token.start])
            pieces.append(alias)
            position = token.end
        pieces.append(source[position:])
        return "".join(pieces)

    def _rename_with_patterns(self, source: str) -> str:
        code = source
        for pattern in PATTERN_RULES[self.language]:
            code = pattern.sub(self._replace_declared, code)

        def sweep(match):
            return self.aliases.get(match.group(0)) or match.group(0)

        return SWEEP_PATTERNS[self.language].sub(sweep, code)

    def _replace_declared(self, match) -> str:
        alias = self._declare(match.group("name"))
        if alias is None:
            return match.group(0)
        start, end = match.span("name")
        text = match.group(0)
        offset = match.start()
        return text[:start - offset] + alias + text[end - offset:]


def _followed_by(tokens: List[Token], index: int, text: str) -> bool:
    return index + 1 < len(tokens) and tokens[index + 1].kind == OP and tokens[index + 1].text == text


def rename_identifiers(source: str, language: str, aliases: Optional[AliasTable] = None) -> RenameResult:
    return IdentifierRenamer(language, aliases).rename(source)
