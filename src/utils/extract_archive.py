import io
import logging
import posixpath
import zipfile
import zlib
from typing import Dict, List, Tuple

from engine.errors import JobValidationError, UnsupportedOperationError
from utils.file_utils import detect_language


def extract_source_files(data: bytes, max_members: int, max_bytes: int) -> Tuple[List[Tuple[str, str]], List[Dict[str, str]]]:
    """
    Extract Python and JavaScript sources from a zip archive.
    Returns ([(filename, content), ...], [{"filename": ..., "error": ...}, ...]);
    the second list holds members that were skipped and why.
    """
    sources: List[Tuple[str, str]] = []
    skipped: List[Dict[str, str]] = []
    try:
        archive = zipfile.ZipFile(io.BytesIO(data))
    except zipfile.BadZipFile as e:
        raise JobValidationError(f"Invalid zip archive: {e}")

    total_bytes = 0
    with archive:
        for info in archive.infolist():
            name = info.filename
            base = posixpath.basename(name.rstrip("/"))
            if info.is_dir() or name.startswith("__MACOSX/") or base.startswith("."):
                continue
            if detect_language(name) is None:
                skipped.append({"filename": name, "error": "Unsupported file type"})
                continue
            if info.flag_bits & 0x1:
                raise UnsupportedOperationError("Password-protected archives are not supported")
            if len(sources) >= max_members:
                raise JobValidationError(f"Archive contains more than {max_members} source files")
            total_bytes += info.file_size
            if total_bytes > max_bytes:
                raise JobValidationError(f"Archive exceeds {max_bytes} bytes of source code")
            try:
                content = archive.read(info).decode("utf-8-sig")
            except UnicodeDecodeError:
                logging.warning(f"[archive] Skipping {name}: not UTF-8 text")
                skipped.append({"filename": name, "error": "File is not UTF-8 text"})
                continue
            except (zipfile.BadZipFile, zlib.error) as e:
                raise JobValidationError(f"Corrupt archive member {name}: {e}")
            if not content.strip():
                skipped.append({"filename": name, "error": "File is empty"})
                continue
            sources.append((name, content))
    return sources, skipped
