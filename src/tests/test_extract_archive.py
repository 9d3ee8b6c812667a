import io
import zipfile

import pytest

from engine.errors import JobValidationError, UnsupportedOperationError
from utils.extract_archive import extract_source_files
from utils.file_utils import detect_language, download_filename, is_supported_upload


def _zip(files):
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, content in files.items():
            archive.writestr(name, content)
    return buffer.getvalue()


def _mark_encrypted(data):
    # set the "encrypted" flag on every central directory entry
    data = bytearray(data)
    index = data.find(b"PK\x01\x02")
    while index != -1:
        data[index + 8] |= 0x1
        index = data.find(b"PK\x01\x02", index + 4)
    return bytes(data)


def test_extracts_supported_members_and_reports_skips():
    data = _zip({
        "src/": "",
        "src/main.py": "print(1)\n",
        "src/app.js": "\ufeffvar a = 1;\n",
        "__MACOSX/src/._main.py": "junk",
        "src/.hidden.py": "x = 1",
        "notes.md": "# notes",
        "src/blank.js": "\n\n",
        "src/latin.py": b"x = '\xe9'\n",
    })
    sources, skipped = extract_source_files(data, max_members=10, max_bytes=10_000)
    assert sources == [("src/main.py", "print(1)\n"), ("src/app.js", "var a = 1;\n")]
    assert {entry["filename"]: entry["error"] for entry in skipped} == {
        "notes.md": "Unsupported file type",
        "src/blank.js": "File is empty",
        "src/latin.py": "File is not UTF-8 text",
    }


def test_member_limit():
    data = _zip({"a.py": "a = 1", "b.py": "b = 2"})
    with pytest.raises(JobValidationError):
        extract_source_files(data, max_members=1, max_bytes=10_000)


def test_size_limit():
    data = _zip({"big.py": "x = 1\n" * 100})
    with pytest.raises(JobValidationError):
        extract_source_files(data, max_members=10, max_bytes=50)


def test_not_a_zip():
    with pytest.raises(JobValidationError):
        extract_source_files(b"plain text", max_members=10, max_bytes=10_000)


def test_encrypted_archive_is_unsupported():
    data = _mark_encrypted(_zip({"secret.py": "x = 1"}))
    with pytest.raises(UnsupportedOperationError):
        extract_source_files(data, max_members=10, max_bytes=10_000)


def test_language_detection_and_supported_uploads():
    assert detect_language("Main.PY") == "python"
    assert detect_language("lib/index.js") == "javascript"
    assert detect_language("archive.zip") is None
    assert is_supported_upload("bundle.ZIP")
    assert not is_supported_upload("style.css")


@pytest.mark.parametrize("original, language, expected", [
    ("test.py", "python", "test_obfuscated.py"),
    ("script.min.js", "javascript", "script.min_obfuscated.js"),
    ("pkg/module.py", "python", "module_obfuscated.py"),
    ("noext", "python", "noext_obfuscated.py"),
    (None, "python", "obfuscated_code.py"),
    (None, "javascript", "obfuscated_code.js"),
])
def test_download_filename(original, language, expected):
    assert download_filename(original, language) == expected
