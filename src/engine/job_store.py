# src/engine/job_store.py
"""
JobStore: persistence for obfuscation jobs, looked up by id or download token.
"""

import logging
import secrets
from datetime import datetime, timedelta
from typing import List, Optional

from engine.db import SessionLocal
from engine.errors import InvalidTokenError
from engine.models import ObfuscationJob, utcnow
from engine.settings import settings


def generate_download_token() -> str:
    return secrets.token_hex(32)


class JobStore:
    def __init__(self, session_factory=SessionLocal, link_ttl_hours: Optional[int] = None):
        self.session_factory = session_factory
        self.link_ttl = timedelta(hours=link_ttl_hours if link_ttl_hours is not None else settings.download_link_ttl_hours)

    def create(self, *, language: str, password: str, expiration_date: datetime,
               obfuscated_code: str, original_filename: Optional[str] = None) -> ObfuscationJob:
        created_at = utcnow()
        job = ObfuscationJob(
            original_filename=original_filename or None,
            language=language,
            password=password,
            expiration_date=expiration_date,
            obfuscated_code=obfuscated_code,
            download_token=generate_download_token(),
            created_at=created_at,
            expires_at=created_at + self.link_ttl,
        )
        db = self.session_factory()
        try:
            db.add(job)
            db.commit()
            db.refresh(job)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
        logging.info(f"[job_id={job.id}] Stored obfuscation job. language={job.language} filename={job.original_filename}")
        return job

    def get_by_token(self, token: str) -> ObfuscationJob:
        db = self.session_factory()
        try:
            job = (
                db.query(ObfuscationJob)
                .filter(ObfuscationJob.download_token == token, ObfuscationJob.expires_at > utcnow())
                .first()
            )
        finally:
            db.close()
        if job is None:
            # unknown and expired tokens look the same to the caller
            logging.info("Download token rejected (unknown or expired).")
            raise InvalidTokenError()
        return job

    def get_by_id(self, job_id: int) -> Optional[ObfuscationJob]:
        db = self.session_factory()
        try:
            return db.query(ObfuscationJob).filter(ObfuscationJob.id == job_id).first()
        finally:
            db.close()

    def list_recent(self, limit: int = 20, offset: int = 0, language: Optional[str] = None) -> List[ObfuscationJob]:
        db = self.session_factory()
        try:
            query = db.query(ObfuscationJob)
            if language:
                query = query.filter(ObfuscationJob.language == language)
            return query.order_by(ObfuscationJob.created_at.desc(), ObfuscationJob.id.desc()).offset(offset).limit(limit).all()
        finally:
            db.close()
