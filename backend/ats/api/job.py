import logging
from pathlib import Path

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Query, UploadFile
from sqlalchemy.orm import Session

from ..config import Settings
from ..database import get_db
from ..schemas.job import JobCreate, JobStatusUpdate, JobUpdate
from ..services.applications import application_to_public, find_application, list_job_applications
from ..services.candidates import find_candidate_by_email
from ..services.jobs import (
    create_job,
    delete_job_cascade,
    get_job,
    get_open_job,
    job_to_public,
    list_jobs,
    update_job,
    update_job_status,
)
from ..services.storage import job_folder
from ..services.submission import Submission, submit_application
from ..utils.dependencies import get_analysis_client, get_mailer, get_settings, get_storage
from ..utils.error_handlers import AppError, DuplicateApplicationError, FileUploadError, get_error_message
from ..utils.validation import parse_json_field, validate_answers, validate_email, validate_string_field

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jobs", tags=["Jobs"])

ALLOWED_RESUME_EXTENSIONS = {".pdf", ".docx"}
ALLOWED_RESUME_CONTENT_TYPES = {
    "application/pdf",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/msword",
    "application/octet-stream",
}


@router.post("", status_code=201)
def post_job(
    payload: JobCreate,
    db: Session = Depends(get_db),
    storage=Depends(get_storage),
):
    job = create_job(db, payload=payload, storage=storage)
    return {"success": True, "job": job_to_public(job)}


@router.get("")
def search_jobs(
    agency_id: int | None = Query(default=None),
    company_name: str | None = Query(default=None, max_length=150),
    status: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    jobs, total = list_jobs(
        db,
        agency_id=agency_id,
        company_name=company_name,
        status=status,
        page=page,
        limit=limit,
    )
    return {"success": True, "jobs": [job_to_public(j) for j in jobs], "total": total, "page": page, "limit": limit}


@router.get("/{job_id:int}")
def job_details(job_id: int, db: Session = Depends(get_db)):
    return {"success": True, "job": job_to_public(get_job(db, job_id))}


@router.patch("/{job_id:int}")
def edit_job(job_id: int, payload: JobUpdate, db: Session = Depends(get_db)):
    job = update_job(db, job_id=job_id, payload=payload)
    return {"success": True, "job": job_to_public(job)}


@router.patch("/{job_id:int}/status")
def change_job_status(job_id: int, payload: JobStatusUpdate, db: Session = Depends(get_db)):
    job = update_job_status(db, job_id=job_id, status=payload.status)
    return {"success": True, "job": job_to_public(job)}


@router.delete("/{job_id:int}", status_code=200)
def delete_job(
    job_id: int,
    db: Session = Depends(get_db),
    storage=Depends(get_storage),
):
    result = delete_job_cascade(db, job_id=job_id, storage=storage)
    return {"success": True, **result}


async def _read_resume(file: UploadFile, *, max_bytes: int) -> tuple[str, bytes]:
    if not file or not file.filename:
        raise FileUploadError("Missing file")

    original_filename = Path(file.filename).name
    ext = Path(original_filename).suffix.lower()
    if ext not in ALLOWED_RESUME_EXTENSIONS:
        raise FileUploadError(get_error_message("invalid_file_type"))

    if file.content_type and file.content_type not in ALLOWED_RESUME_CONTENT_TYPES:
        raise FileUploadError(get_error_message("invalid_file_type"))

    chunks: list[bytes] = []
    size = 0
    try:
        while True:
            chunk = await file.read(1024 * 1024)
            if not chunk:
                break
            size += len(chunk)
            if size > max_bytes:
                raise FileUploadError(get_error_message("file_too_large"), status_code=413)
            chunks.append(chunk)
    finally:
        await file.close()

    if size == 0:
        raise FileUploadError("Uploaded file is empty")
    return original_filename, b"".join(chunks)


@router.post("/{job_id:int}/apply", status_code=201)
async def apply_to_job(
    job_id: int,
    background_tasks: BackgroundTasks,
    full_name: str = Form(...),
    email: str = Form(...),
    phone_number: str = Form(...),
    linkedin_profile: str | None = Form(default=None),
    cover_letter: str | None = Form(default=None),
    answers: str | None = Form(default=None),
    additional_data: str | None = Form(default=None),
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    storage=Depends(get_storage),
    mailer=Depends(get_mailer),
    analysis=Depends(get_analysis_client),
):
    """
    Submit an application with a resume (PDF/DOCX).

    The resume is stored first; candidate + application are then committed together.
    Confirmation email and analysis run as background tasks after the response.
    """
    email = validate_email(email)
    validate_string_field(full_name, "Full name", max_length=255)
    validate_string_field(phone_number, "Phone number", min_length=3, max_length=50)
    raw_answers = parse_json_field(answers, "answers", list)
    extra = parse_json_field(additional_data, "additional_data", dict)

    job = get_open_job(db, job_id)
    checked_answers = validate_answers(job.questions or [], raw_answers)

    # Fast path: skip the upload entirely for a known duplicate.
    existing_candidate = find_candidate_by_email(db, email)
    if existing_candidate and find_application(db, candidate_id=existing_candidate.id, job_id=job.id):
        raise DuplicateApplicationError(candidate_id=existing_candidate.id, job_id=job.id)

    original_filename, data = await _read_resume(file, max_bytes=settings.max_resume_bytes)
    folder = job_folder(job.company_name, job.title, agency_id=job.agency_id, job_id=job.id)
    resume_url = storage.store(folder, data, original_filename)

    try:
        application = submit_application(
            db,
            Submission(
                job_id=job.id,
                email=email,
                full_name=full_name,
                phone_number=phone_number,
                resume_url=resume_url,
                linkedin_profile=linkedin_profile,
                cover_letter=cover_letter,
                additional_data=extra,
                answers=checked_answers,
            ),
            notifier=mailer,
            analysis=analysis,
            max_attempts=settings.submission_max_attempts,
            schedule=background_tasks.add_task,
        )
    except AppError:
        storage.delete(resume_url)
        raise

    return {"success": True, "already_applied": False, "application": application_to_public(application)}


@router.get("/{job_id:int}/applications")
def job_applications(
    job_id: int,
    status: str | None = Query(default=None),
    db: Session = Depends(get_db),
):
    get_job(db, job_id)
    applications = list_job_applications(db, job_id=job_id, status=status)
    return {
        "success": True,
        "applications": [application_to_public(a, include_candidate=True) for a in applications],
    }
