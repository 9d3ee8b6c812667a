# src/engine/wrapper.py
"""
Protection wrapper: embeds renamed source in a program of the same language
that asks for a password and refuses to run after an expiration instant.

Helper names inside the templates come from the job's alias table; the
prompts and messages are fixed text.
"""

import hashlib
import logging
import re
import secrets
from datetime import datetime, timezone
from string import Template
from typing import List, Optional, Set, Tuple
from zoneinfo import ZoneInfo

from engine.errors import JobValidationError
from engine.renamer import AliasTable, get_lexer
from engine.settings import settings
from lexers.base import NAME, OP, LexerError, Token

# alias keys for template helpers; ':' keeps them apart from user identifiers
_HELPER_PREFIX = "guard:"

_FUTURE_IMPORT = re.compile(r"^from[ \t]+__future__[ \t]+import[^\n]*\n?", re.MULTILINE)

PYTHON_TEMPLATE = Template('''#!/usr/bin/env python3
# Protected Python Script
$future_imports
import sys
import hashlib
import datetime
try:
    import pytz
except ImportError:
    print("Error: pytz module is required. Install with: pip install pytz")
    sys.exit(1)

def $check_auth():
    # Password verification
    $user_input = input("Enter password: ")
    $expected_hash = "$password_hash"
    $actual_hash = hashlib.sha256($user_input.encode()).hexdigest()

    if $actual_hash != $expected_hash:
        print("Access denied. Invalid password.")
        sys.exit(1)

    # Expiration check
    $zone = pytz.timezone('$zone_name')
    $current_time = datetime.datetime.now($zone)
    $expiry_time = $zone.localize(datetime.datetime($year, $month, $day, $hour, $minute, $second))

    if $current_time > $expiry_time:
        print("Script has expired and cannot be executed.")
        sys.exit(1)

# Run authentication and expiration checks
$check_auth()

# Original code (obfuscated)
$body
''')

JAVASCRIPT_TEMPLATE = Template('''// Protected JavaScript Code
(function() {
    'use strict';

    function $run_protected() {
        // Original code (obfuscated)
$body
    }

    function $check_auth() {
        // Password verification (Node.js environment)
        if (typeof require !== 'undefined') {
            const $crypto = require('crypto');
            const $readline = require('readline');

            return new Promise(($resolve, $reject) => {
                const $rl = $readline.createInterface({
                    input: process.stdin,
                    output: process.stdout
                });

                $rl.question('Enter password: ', ($user_input) => {
                    $rl.close();

                    const $expected_hash = "$password_hash";
                    const $actual_hash = $crypto.createHash('sha256').update($user_input).digest('hex');

                    if ($actual_hash !== $expected_hash) {
                        console.log('Access denied. Invalid password.');
                        process.exit(1);
                    }

                    // Expiration check
                    const $current_time = new Date();
                    const $zoned_time = new Date($current_time.toLocaleString('en-US', { timeZone: '$zone_name' }));
                    const $expiry_time = new Date("$expiry_iso");

                    if ($zoned_time > $expiry_time) {
                        console.log('Script has expired and cannot be executed.');
                        process.exit(1);
                    }

                    $resolve();
                });
            });
        }

        // Browser environment
        const $user_input = prompt('Enter password:');
        if (!$user_input) {
            alert('Access denied. Password required.');
            return;
        }

        // Simple hash for browser (not as secure as Node.js crypto)
        function $simple_hash($str) {
            let $hash = 0;
            for (let $i = 0; $i < $str.length; $i++) {
                const $char = $str.charCodeAt($i);
                $hash = (($hash << 5) - $hash) + $char;
                $hash = $hash & $hash;
            }
            return $hash.toString(16);
        }

        const $expected_simple_hash = "$simple_password_hash";
        if ($simple_hash($user_input) !== $expected_simple_hash) {
            alert('Access denied. Invalid password.');
            return;
        }

        // Expiration check
        const $current_time = new Date();
        const $zoned_time = new Date($current_time.toLocaleString('en-US', { timeZone: '$zone_name' }));
        const $expiry_time = new Date("$expiry_iso");

        if ($zoned_time > $expiry_time) {
            alert('Script has expired and cannot be executed.');
            return;
        }

        return Promise.resolve();
    }

    // Run the original code only once the checks pass
    const $auth_result = $check_auth();
    if ($auth_result instanceof Promise) {
        $auth_result.then($run_protected).catch(($error) => {
            console.error($error);
            if (typeof process !== 'undefined') {
                process.exit(1);
            }
        });
    }
})();
''')

PYTHON_HELPERS = (
    "check_auth", "user_input", "expected_hash", "actual_hash",
    "zone", "current_time", "expiry_time",
)
JAVASCRIPT_HELPERS = (
    "run_protected", "check_auth", "crypto", "readline", "resolve", "reject", "rl",
    "user_input", "expected_hash", "actual_hash", "current_time", "zoned_time",
    "expiry_time", "simple_hash", "str", "hash", "i", "char",
    "expected_simple_hash", "auth_result", "error",
)


def hash_password(password: str) -> str:
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


def rolling_hash(value: str) -> str:
    """
    32-bit string hash computed the same way as the browser fallback in the
    JavaScript template: h = ((h << 5) - h) + charCode over UTF-16 code units,
    kept as a signed 32-bit integer and printed like Number.toString(16).
    """
    h = 0
    data = value.encode("utf-16-le")
    for index in range(0, len(data), 2):
        unit = int.from_bytes(data[index:index + 2], "little")
        h = ((h << 5) - h + unit) & 0xFFFFFFFF
    if h & 0x80000000:
        h -= 1 << 32
    return format(h, "x") if h >= 0 else "-" + format(-h, "x")


def zoned_expiry(expiration_date: datetime, zone_name: str) -> datetime:
    """Expiration instant as wall-clock time in the given zone; naive input is read as UTC."""
    if expiration_date.tzinfo is None:
        expiration_date = expiration_date.replace(tzinfo=timezone.utc)
    return expiration_date.astimezone(ZoneInfo(zone_name)).replace(microsecond=0)


def decorate_body(code: str, language: str, comment_marker: str, indent: str = "") -> str:
    """
    Append a random comment to every non-blank line and indent the lines.
    Lines that end inside a string or comment (or continue with a backslash)
    are left without a suffix, and lines starting inside one are not indented.
    """
    open_lines: Set[int] = set()
    inner_lines: Set[int] = set()
    lexer = get_lexer(language)
    try:
        open_lines, inner_lines = lexer.literal_lines(code, lexer.tokenize(code))
    except LexerError as e:
        logging.warning(f"[wrapper] Could not tokenize {language} body ({e}); decorating every line.")
    lines = []
    for number, line in enumerate(code.split("\n"), start=1):
        if line.strip() and number not in open_lines:
            line = f"{line}{comment_marker}{secrets.token_hex(2)}"
        if line and indent and number not in inner_lines:
            line = indent + line
        lines.append(line)
    return "\n".join(lines)


def split_future_imports(code: str) -> Tuple[str, str]:
    """
    Separate `from __future__ import ...` statements from the rest of a Python
    body. Statement ends come from the token stream, so parenthesised and
    backslash-continued imports move as a whole.
    """
    try:
        tokens = get_lexer("python").tokenize(code)
    except LexerError:
        future = "".join(_FUTURE_IMPORT.findall(code))
        if not future:
            return "", code
        return future.rstrip("\n"), _FUTURE_IMPORT.sub("", code)
    lines = code.split("\n")
    hoisted: Set[int] = set()
    for index, token in enumerate(tokens[:-1]):
        if token.kind != NAME or token.text != "from" or tokens[index + 1].text != "__future__":
            continue
        if index > 0 and tokens[index - 1].end_line == token.line:
            continue
        hoisted.update(range(token.line, _statement_end(tokens, index, lines) + 1))
    if not hoisted:
        return "", code
    future = [line for number, line in enumerate(lines, start=1) if number in hoisted]
    body = [line for number, line in enumerate(lines, start=1) if number not in hoisted]
    return "\n".join(future), "\n".join(body)


def _statement_end(tokens: List[Token], index: int, lines: List[str]) -> int:
    """Last physical line of the statement whose first token is tokens[index]."""
    depth = 0
    for position in range(index, len(tokens)):
        token = tokens[position]
        if token.kind == OP and token.text in ("(", "[", "{"):
            depth += 1
        elif token.kind == OP and token.text in (")", "]", "}"):
            depth -= 1
        if depth > 0 or lines[token.end_line - 1].rstrip().endswith("\\"):
            continue
        if position + 1 == len(tokens) or tokens[position + 1].line > token.end_line:
            return token.end_line
    return tokens[-1].end_line


def _helper_names(aliases: AliasTable, names) -> dict:
    return {name: aliases.alias_for(_HELPER_PREFIX + name) for name in names}


def wrap_python(code: str, password: str, expiration_date: datetime,
                aliases: Optional[AliasTable] = None, zone_name: Optional[str] = None) -> str:
    aliases = aliases if aliases is not None else AliasTable()
    zone_name = zone_name or settings.script_timezone
    expiry = zoned_expiry(expiration_date, zone_name)
    future_imports, body = split_future_imports(code)
    return PYTHON_TEMPLATE.substitute(
        _helper_names(aliases, PYTHON_HELPERS),
        future_imports=future_imports,
        password_hash=hash_password(password),
        zone_name=zone_name,
        year=expiry.year,
        month=expiry.month,
        day=expiry.day,
        hour=expiry.hour,
        minute=expiry.minute,
        second=expiry.second,
        body=decorate_body(body, "python", " # "),
    )


def wrap_javascript(code: str, password: str, expiration_date: datetime,
                    aliases: Optional[AliasTable] = None, zone_name: Optional[str] = None) -> str:
    aliases = aliases if aliases is not None else AliasTable()
    zone_name = zone_name or settings.script_timezone
    expiry = zoned_expiry(expiration_date, zone_name)
    return JAVASCRIPT_TEMPLATE.substitute(
        _helper_names(aliases, JAVASCRIPT_HELPERS),
        password_hash=hash_password(password),
        simple_password_hash=rolling_hash(password),
        zone_name=zone_name,
        # no offset: compared against a Date built from the same zone's wall clock
        expiry_iso=expiry.strftime("%Y-%m-%dT%H:%M:%S"),
        body=decorate_body(code, "javascript", " //", indent=" " * 8),
    )


WRAPPERS = {
    "python": wrap_python,
    "javascript": wrap_javascript,
}


def wrap_code(code: str, password: str, expiration_date: datetime, language: str,
              aliases: Optional[AliasTable] = None) -> str:
    try:
        wrapper = WRAPPERS[language]
    except KeyError:
        raise JobValidationError(f"Unsupported language: {language}")
    return wrapper(code, password, expiration_date, aliases)
