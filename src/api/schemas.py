# src/api/schemas.py
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Literal, Optional

Language = Literal['python', 'javascript']

REDACTED = "********"


class CreateObfuscationJobRequest(BaseModel):
    code: str = Field(..., description="Source code to obfuscate")
    language: Language
    password: str = Field(..., description="Password the protected script will ask for")
    expiration_date: datetime = Field(..., description="Instant after which the protected script refuses to run")
    original_filename: Optional[str] = None


class FileUploadRequest(BaseModel):
    filename: str = Field(..., description="Name of the uploaded file (.py, .js or .zip)")
    content: str = Field(..., description="File text, or base64-encoded bytes for a .zip archive")
    password: str
    expiration_date: datetime


class ObfuscationResult(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    download_token: str
    original_filename: Optional[str] = None
    language: Language
    created_at: datetime
    expires_at: datetime


class SkippedFile(BaseModel):
    filename: str
    error: str


class BatchUploadResult(BaseModel):
    results: List[ObfuscationResult]
    skipped: List[SkippedFile] = []


class DownloadResponse(BaseModel):
    filename: str
    content: str
    language: Language


class ObfuscationJobStatus(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    original_filename: Optional[str] = None
    language: Language
    password: str = REDACTED
    expiration_date: datetime
    obfuscated_code: str
    download_token: str
    created_at: datetime
    expires_at: datetime

    @classmethod
    def redacted(cls, job) -> "ObfuscationJobStatus":
        status = cls.model_validate(job)
        return status.model_copy(update={"password": REDACTED})
