# src/api/routes.py
from datetime import datetime, timezone
from typing import List, Optional, Union
from urllib.parse import quote

from fastapi import APIRouter, File, Form, Path, Query, Response, UploadFile

from api.schemas import (
    BatchUploadResult,
    CreateObfuscationJobRequest,
    DownloadResponse,
    FileUploadRequest,
    Language,
    ObfuscationJobStatus,
    ObfuscationResult,
)
from engine.obfuscation_service import BatchOutcome, ObfuscationService

router = APIRouter()

obfuscation_service = ObfuscationService()

MEDIA_TYPES = {
    "python": "text/x-python",
    "javascript": "application/javascript",
}


def _attachment_header(filename: str) -> str:
    fallback = filename.encode("ascii", "ignore").decode("ascii").replace('"', "") or "obfuscated_code"
    return f"attachment; filename=\"{fallback}\"; filename*=utf-8''{quote(filename)}"


def _upload_response(outcome) -> Union[ObfuscationResult, BatchUploadResult]:
    if isinstance(outcome, BatchOutcome):
        return BatchUploadResult(
            results=[ObfuscationResult.model_validate(job) for job in outcome.jobs],
            skipped=outcome.skipped,
        )
    return ObfuscationResult.model_validate(outcome)


@router.get("/health")
def health_check():
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


@router.post(
    "/jobs",
    summary="Obfuscate pasted code",
    response_description="Job id and download token",
    tags=["Obfuscation Jobs"],
    response_model=ObfuscationResult,
    responses={
        200: {"description": "Job created"},
        400: {"description": "Empty code or password"},
        500: {"description": "Internal server error"}
    },
)
def create_obfuscation_job(request: CreateObfuscationJobRequest):
    """
    Rename identifiers in the submitted code, wrap it with the password and
    expiration checks and store the result. Returns a download token.
    """
    job = obfuscation_service.create_job(
        code=request.code,
        language=request.language,
        password=request.password,
        expiration_date=request.expiration_date,
        original_filename=request.original_filename,
    )
    return ObfuscationResult.model_validate(job)


@router.post(
    "/upload",
    summary="Obfuscate an uploaded file or zip archive",
    response_description="One result for a source file, all results for an archive",
    tags=["Obfuscation Jobs"],
    response_model=Union[ObfuscationResult, BatchUploadResult],
    responses={
        200: {"description": "Job(s) created"},
        400: {"description": "Unsupported file type, empty content or unusable archive"},
        501: {"description": "Archive format not supported"},
        500: {"description": "Internal server error"}
    },
)
def upload_file(request: FileUploadRequest):
    """
    Process a .py or .js file (language taken from the extension), or a .zip
    archive sent base64-encoded in `content`. Every source file in an archive
    becomes its own job; files that fail are reported under `skipped`.
    """
    outcome = obfuscation_service.upload_file(
        filename=request.filename,
        content=request.content,
        password=request.password,
        expiration_date=request.expiration_date,
    )
    return _upload_response(outcome)


@router.post(
    "/upload/file",
    summary="Obfuscate a file sent as multipart form data",
    tags=["Obfuscation Jobs"],
    response_model=Union[ObfuscationResult, BatchUploadResult],
)
def upload_multipart_file(
    file: UploadFile = File(...),
    password: str = Form(...),
    expiration_date: datetime = Form(...),
):
    data = file.file.read()
    outcome = obfuscation_service.upload_bytes(
        filename=file.filename or "",
        data=data,
        password=password,
        expiration_date=expiration_date,
    )
    return _upload_response(outcome)


@router.get(
    "/download/{token}",
    summary="Fetch obfuscated code by download token",
    tags=["Downloads"],
    response_model=DownloadResponse,
    responses={
        200: {"description": "Obfuscated code"},
        404: {"description": "Invalid or expired download token"}
    },
)
def download_obfuscated_code(token: str = Path(..., min_length=1)):
    return obfuscation_service.download(token)


@router.get("/download/{token}/raw", summary="Download obfuscated code as a file", tags=["Downloads"])
def download_obfuscated_file(token: str = Path(..., min_length=1)):
    payload = obfuscation_service.download(token)
    return Response(
        content=payload["content"],
        media_type=MEDIA_TYPES[payload["language"]],
        headers={"Content-Disposition": _attachment_header(payload["filename"])},
    )


@router.get(
    "/jobs/{job_id}",
    summary="Get an obfuscation job",
    response_description="Job record with the password redacted",
    tags=["Obfuscation Jobs"],
    response_model=ObfuscationJobStatus,
    responses={
        200: {"description": "Job record"},
        404: {"description": "Job not found"}
    },
)
def get_obfuscation_status(job_id: int):
    return ObfuscationJobStatus.redacted(obfuscation_service.get_status(job_id))


@router.get(
    "/jobs",
    summary="List recent obfuscation jobs",
    tags=["Obfuscation Jobs"],
    response_model=List[ObfuscationJobStatus],
)
def list_obfuscation_jobs(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    language: Optional[Language] = None,
):
    """
    Query job history, newest first, optionally filtered by language.
    """
    jobs = obfuscation_service.list_jobs(limit=limit, offset=offset, language=language)
    return [ObfuscationJobStatus.redacted(job) for job in jobs]
