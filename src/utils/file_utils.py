import os
from typing import Optional

LANGUAGE_EXTENSIONS = {
    ".py": "python",
    ".js": "javascript",
}
ARCHIVE_EXTENSIONS = (".zip",)
SUPPORTED_UPLOAD_EXTENSIONS = tuple(LANGUAGE_EXTENSIONS) + ARCHIVE_EXTENSIONS

DEFAULT_DOWNLOAD_NAMES = {
    "python": "obfuscated_code.py",
    "javascript": "obfuscated_code.js",
}


def file_extension(filename: str) -> str:
    return os.path.splitext(filename.lower())[1]


def detect_language(filename: str) -> Optional[str]:
    """
    Map a filename to 'python' or 'javascript' by its extension, or None.
    """
    return LANGUAGE_EXTENSIONS.get(file_extension(filename))


def is_archive(filename: str) -> bool:
    return file_extension(filename) in ARCHIVE_EXTENSIONS


def is_supported_upload(filename: str) -> bool:
    return file_extension(filename) in SUPPORTED_UPLOAD_EXTENSIONS


def download_filename(original_filename: Optional[str], language: str) -> str:
    """
    Build the download name: '<base>_obfuscated.<ext>' from the original name,
    with the extension following the stored language, or a fixed default.
    """
    if not original_filename:
        return DEFAULT_DOWNLOAD_NAMES[language]
    base = os.path.basename(original_filename.replace("\\", "/"))
    stem = base.rsplit(".", 1)[0] if "." in base.lstrip(".") else base
    extension = os.path.splitext(DEFAULT_DOWNLOAD_NAMES[language])[1]
    return f"{stem}_obfuscated{extension}"
