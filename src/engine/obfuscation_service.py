# src/engine/obfuscation_service.py
"""
ObfuscationService: shared logic for turning submissions into stored jobs
(rename, wrap, persist) and for serving them back.
"""
import base64
import binascii
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Union

from engine.errors import JobNotFoundError, JobValidationError
from engine.job_store import JobStore
from engine.models import ObfuscationJob
from engine.renamer import AliasTable, rename_identifiers
from engine.settings import settings
from engine.wrapper import wrap_code
from utils.extract_archive import extract_source_files
from utils.file_utils import detect_language, download_filename, is_archive, is_supported_upload

UNSUPPORTED_FILE_MESSAGE = "Unsupported file type. Only .py, .js, and .zip files are allowed."


@dataclass
class BatchOutcome:
    jobs: List[ObfuscationJob] = field(default_factory=list)
    skipped: List[Dict[str, str]] = field(default_factory=list)


def obfuscate_code(code: str, language: str, password: str, expiration_date: datetime) -> str:
    """Rename identifiers and wrap the result; one alias table per call."""
    aliases = AliasTable()
    renamed = rename_identifiers(code, language, aliases)
    return wrap_code(renamed.code, password, expiration_date, language, aliases)


class ObfuscationService:
    def __init__(self, store: Optional[JobStore] = None):
        self.store = store or JobStore()

    def create_job(self, code: str, language: str, password: str, expiration_date: datetime,
                   original_filename: Optional[str] = None) -> ObfuscationJob:
        if not code or not code.strip():
            raise JobValidationError("Code cannot be empty")
        if not password:
            raise JobValidationError("Password is required")
        if len(code) > settings.max_code_chars:
            raise JobValidationError(f"Code exceeds {settings.max_code_chars} characters")
        code = code.replace("\r\n", "\n")
        obfuscated = obfuscate_code(code, language, password, expiration_date)
        return self.store.create(
            language=language,
            password=password,
            expiration_date=expiration_date,
            obfuscated_code=obfuscated,
            original_filename=original_filename,
        )

    def upload_file(self, filename: str, content: str, password: str,
                    expiration_date: datetime) -> Union[ObfuscationJob, BatchOutcome]:
        """
        Process an uploaded .py/.js file, or a .zip archive whose bytes are
        base64-encoded in content.
        """
        if not filename or not is_supported_upload(filename):
            raise JobValidationError(UNSUPPORTED_FILE_MESSAGE)
        if is_archive(filename):
            try:
                data = base64.b64decode(content, validate=True)
            except (binascii.Error, ValueError):
                raise JobValidationError("Archive content must be base64-encoded")
            return self.upload_archive(filename, data, password, expiration_date)
        if not content or not content.strip():
            raise JobValidationError("File content cannot be empty")
        return self.create_job(content, detect_language(filename), password, expiration_date, original_filename=filename)

    def upload_bytes(self, filename: str, data: bytes, password: str,
                     expiration_date: datetime) -> Union[ObfuscationJob, BatchOutcome]:
        if not filename or not is_supported_upload(filename):
            raise JobValidationError(UNSUPPORTED_FILE_MESSAGE)
        if is_archive(filename):
            return self.upload_archive(filename, data, password, expiration_date)
        try:
            content = data.decode("utf-8-sig")
        except UnicodeDecodeError:
            raise JobValidationError("File is not UTF-8 text")
        return self.upload_file(filename, content, password, expiration_date)

    def upload_archive(self, filename: str, data: bytes, password: str, expiration_date: datetime) -> BatchOutcome:
        if not password:
            raise JobValidationError("Password is required")
        if not data:
            raise JobValidationError("File content cannot be empty")
        sources, skipped = extract_source_files(data, settings.max_archive_members, settings.max_archive_bytes)
        outcome = BatchOutcome(skipped=skipped)
        for member, content in sources:
            try:
                job = self.create_job(content, detect_language(member), password, expiration_date, original_filename=member)
            except Exception as e:
                logging.error(f"[archive={filename}] Skipping {member}: {e}")
                outcome.skipped.append({"filename": member, "error": str(e)})
                continue
            outcome.jobs.append(job)
        if not outcome.jobs:
            raise JobValidationError(f"No supported source files could be processed from {filename}")
        logging.info(f"[archive={filename}] Created {len(outcome.jobs)} jobs, skipped {len(outcome.skipped)} files.")
        return outcome

    def download(self, token: str) -> dict:
        job = self.store.get_by_token(token)
        return {
            "filename": download_filename(job.original_filename, job.language),
            "content": job.obfuscated_code,
            "language": job.language,
        }

    def get_status(self, job_id: int) -> ObfuscationJob:
        job = self.store.get_by_id(job_id)
        if job is None:
            raise JobNotFoundError(f"Job {job_id} not found")
        return job

    def list_jobs(self, limit: int = 20, offset: int = 0, language: Optional[str] = None) -> List[ObfuscationJob]:
        return self.store.list_recent(limit=limit, offset=offset, language=language)
