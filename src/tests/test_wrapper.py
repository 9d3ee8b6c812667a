import re
from datetime import datetime, timezone

import pytest

from engine.errors import JobValidationError
from engine.renamer import AliasTable
from engine.wrapper import (
    decorate_body,
    hash_password,
    rolling_hash,
    split_future_imports,
    wrap_code,
    wrap_javascript,
    wrap_python,
    zoned_expiry,
)

EXPIRY = datetime(2026, 1, 1, 0, 0, 30, 750000, tzinfo=timezone.utc)


def test_hash_password_is_sha256_hex():
    assert hash_password("abc") == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"


@pytest.mark.parametrize("value, expected", [
    ("", "0"),
    ("abc", "17862"),
    ("polygenelubricants", "-80000000"),
])
def test_rolling_hash_matches_javascript(value, expected):
    assert rolling_hash(value) == expected


def test_zoned_expiry_uses_fixed_zone_and_drops_fraction():
    local = zoned_expiry(EXPIRY, "Asia/Kuala_Lumpur")
    assert (local.year, local.month, local.day, local.hour, local.minute, local.second) == (2026, 1, 1, 8, 0, 30)
    assert local.microsecond == 0


def test_naive_expiry_is_read_as_utc():
    local = zoned_expiry(datetime(2026, 6, 30, 20, 0), "Asia/Kuala_Lumpur")
    assert (local.month, local.day, local.hour) == (7, 1, 4)


def test_python_wrapper_contents():
    wrapped = wrap_python('print("hi")\n', "pw-123", EXPIRY, zone_name="Asia/Kuala_Lumpur")
    assert wrapped.startswith("#!/usr/bin/env python3\n")
    assert f'"{hash_password("pw-123")}"' in wrapped
    assert "pw-123" not in wrapped
    assert "datetime.datetime(2026, 1, 1, 8, 0, 30)" in wrapped
    assert "pytz.timezone('Asia/Kuala_Lumpur')" in wrapped
    assert 'print("Access denied. Invalid password.")' in wrapped
    assert re.search(r'^print\("hi"\) # [0-9a-f]{4}$', wrapped, re.MULTILINE)
    # helper names are aliased
    for helper in ("check_auth", "user_input", "expected_hash", "current_time"):
        assert helper not in wrapped
    call = re.search(r"^(_[0-9a-f]{8})\(\)$", wrapped, re.MULTILINE)
    assert call and f"def {call.group(1)}():" in wrapped


def test_helper_aliases_come_from_the_job_table():
    table = AliasTable()
    wrap_python("x = 1\n", "pw", EXPIRY, aliases=table)
    assert table.get("guard:check_auth") is not None
    assert table.get("check_auth") is None


def test_python_wrapper_hoists_future_imports():
    wrapped = wrap_python("from __future__ import annotations\nx: int = 1\n", "pw", EXPIRY)
    assert wrapped.index("from __future__ import annotations") < wrapped.index("import sys")
    assert wrapped.count("from __future__") == 1


def test_python_multiline_literals_are_not_decorated():
    code = 'text = """first\nsecond\n"""\ntotal = 1 + \\\n    2\n'
    body = decorate_body(code, "python", " # ")
    lines = body.split("\n")
    assert lines[0] == 'text = """first'
    assert lines[1] == "second"
    assert re.fullmatch(r'""" # [0-9a-f]{4}', lines[2])
    assert lines[3] == "total = 1 + \\"
    assert re.fullmatch(r"    2 # [0-9a-f]{4}", lines[4])
    assert lines[5] == ""


def test_javascript_wrapper_contents():
    wrapped = wrap_javascript("console.log('hi');", "pw-123", EXPIRY, zone_name="Asia/Kuala_Lumpur")
    assert wrapped.startswith("// Protected JavaScript Code\n(function() {")
    assert f'"{hash_password("pw-123")}"' in wrapped
    assert f'"{rolling_hash("pw-123")}"' in wrapped
    assert "pw-123" not in wrapped
    assert 'new Date("2026-01-01T08:00:30")' in wrapped
    assert re.search(r"^ {8}console\.log\('hi'\); //[0-9a-f]{4}$", wrapped, re.MULTILINE)
    assert "checkAuth" not in wrapped and "run_protected" not in wrapped
    assert wrapped.rstrip().endswith("})();")


def test_javascript_template_lines_keep_their_indentation():
    body = decorate_body("const t = `a\n  b`;\nlet x = 1;", "javascript", " //", indent="    ")
    lines = body.split("\n")
    assert lines[0] == "    const t = `a"
    assert re.fullmatch(r"  b`; //[0-9a-f]{4}", lines[1])
    assert re.fullmatch(r"    let x = 1; //[0-9a-f]{4}", lines[2])


def test_blank_lines_stay_blank():
    body = decorate_body("a = 1\n\n   \nb = 2", "python", " # ")
    assert body.split("\n")[1:3] == ["", "   "]


def test_wrap_code_dispatches_by_language():
    assert wrap_code("x = 1", "pw", EXPIRY, "python").startswith("#!/usr/bin/env python3")
    assert wrap_code("var x = 1;", "pw", EXPIRY, "javascript").startswith("// Protected JavaScript Code")
    with pytest.raises(JobValidationError):
        wrap_code("x", "pw", EXPIRY, "cobol")


def test_parenthesised_future_import_moves_as_one_statement():
    code = "from __future__ import (annotations,\n    division)\nx = 1\n"
    future, body = split_future_imports(code)
    assert future == "from __future__ import (annotations,\n    division)"
    assert body == "x = 1\n"
    wrapped = wrap_python(code, "pw", EXPIRY)
    compile(wrapped, "<wrapped>", "exec")
    assert "division) #" not in wrapped


def test_backslash_continued_future_import_is_hoisted():
    code = "# header\nfrom __future__ import \\\n    annotations\nvalue = 2\n"
    future, body = split_future_imports(code)
    assert future == "from __future__ import \\\n    annotations"
    assert body == "# header\nvalue = 2\n"
    compile(wrap_python(code, "pw", EXPIRY), "<wrapped>", "exec")


def test_code_without_future_imports_is_untouched():
    code = "import os\nprint(os.sep)\n"
    assert split_future_imports(code) == ("", code)
