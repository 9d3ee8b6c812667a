# src/engine/models.py
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Enum, Integer, String, Text
from sqlalchemy.orm import declarative_base
from sqlalchemy.types import TypeDecorator

Base = declarative_base()

LANGUAGES = ("python", "javascript")


class UTCDateTime(TypeDecorator):
    """Stores aware datetimes as naive UTC and hands them back as aware UTC."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ObfuscationJob(Base):
    __tablename__ = 'obfuscation_jobs'
    id = Column(Integer, primary_key=True, autoincrement=True)
    original_filename = Column(String, nullable=True)
    language = Column(Enum(*LANGUAGES, name="language"), nullable=False)
    password = Column(String, nullable=False)
    expiration_date = Column(UTCDateTime, nullable=False)  # embedded script expiry
    obfuscated_code = Column(Text, nullable=False)
    download_token = Column(String(64), unique=True, index=True, nullable=False)
    created_at = Column(UTCDateTime, default=utcnow, nullable=False)
    expires_at = Column(UTCDateTime, nullable=False)  # download link expiry
